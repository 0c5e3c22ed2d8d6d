# File: vecinity/routers/admin.py

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vecinity.core.security import require_role
from vecinity.db.session import get_db
from vecinity.models.category import Category
from vecinity.models.report import Report
from vecinity.models.user import User, UserRole, ADMIN_ROLES, MANAGER_ROLES
from vecinity.schemas.common import ok
from vecinity.schemas.report import AssignIn, ModerateIn, report_out
from vecinity.schemas.user import RoleChangeIn, user_out
from vecinity.services import reports as report_svc, users as user_svc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

admin = require_role(*ADMIN_ROLES)
manager = require_role(*MANAGER_ROLES)
superadmin = require_role(UserRole.superadmin)

RECENT_LIMIT = 10


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), _: User = Depends(admin)):
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    recent_reports = (
        db.query(Report).order_by(Report.created_at.desc(), Report.id.desc()).limit(RECENT_LIMIT).all()
    )
    recent_users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(RECENT_LIMIT).all()
    return ok({
        "reportes": {
            "total": db.query(Report).count(),
            "recientes": db.query(Report).filter(Report.created_at >= week_ago).count(),
            "por_estatus": report_svc.counts_by_status(db),
        },
        "usuarios": {
            "total": db.query(User).count(),
            "activos": db.query(User).filter(User.is_active.is_(True)).count(),
            "por_rol": user_svc.counts_by_role(db),
        },
        "categorias": {
            "total": db.query(Category).filter(Category.is_active.is_(True)).count(),
        },
        "reportes_recientes": [report_out(r) for r in recent_reports],
        "usuarios_recientes": [user_out(u) for u in recent_users],
    })


@router.get("/reports/assigned")
def assigned_reports(db: Session = Depends(get_db), current: User = Depends(admin)):
    rows = (
        db.query(Report)
        .filter(Report.asignado_a == current.id)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .all()
    )
    return ok([report_out(r) for r in rows], count=len(rows))


@router.put("/reports/{report_id}/moderate")
def moderate_report(report_id: int, body: ModerateIn,
                    db: Session = Depends(get_db), current: User = Depends(admin)):
    report = report_svc.load(db, report_id, for_update=True)
    result = report_svc.moderate(db, report, current, body.accion, body.razon, body.cambios)
    if result is None:
        return ok(message="Report deleted successfully")
    return ok(report_out(result), "Report moderated successfully")


@router.put("/reports/{report_id}/assign")
def assign_report(report_id: int, body: AssignIn,
                  db: Session = Depends(get_db), current: User = Depends(admin)):
    report = report_svc.load(db, report_id, for_update=True)
    report = report_svc.assign(db, report, body.asignado_a)
    logger.info("Report %s assigned to %s by %s", report.id, body.asignado_a, current.id)
    return ok(report_out(report), "Report assigned successfully")


@router.delete("/reports/{report_id}")
def delete_report(report_id: int, db: Session = Depends(get_db), _: User = Depends(manager)):
    report_svc.delete(db, report_svc.load(db, report_id))
    return ok(message="Report deleted successfully")


@router.put("/users/{user_id}/role")
def change_role(user_id: int, body: RoleChangeIn,
                db: Session = Depends(get_db), current: User = Depends(superadmin)):
    user = user_svc.get(db, user_id)
    user = user_svc.change_role(db, user, UserRole(body.role), current)
    return ok({"id": user.id, "role": user.role.value}, "User role updated successfully")


@router.get("/users/stats")
def users_stats(db: Session = Depends(get_db), _: User = Depends(manager)):
    return ok(user_svc.stats(db))
