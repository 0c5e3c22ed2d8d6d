# File: vecinity/routers/users.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from vecinity.core.errors import ValidationFailed
from vecinity.core.security import get_current_user, require_role
from vecinity.db.session import get_db
from vecinity.models.user import User, UserRole, MANAGER_ROLES
from vecinity.schemas.auth import PasswordChangeIn, ProfileIn
from vecinity.schemas.common import MAX_LIMIT, ok, page_meta, validate_payload
from vecinity.schemas.report import report_out
from vecinity.schemas.user import UserAdminUpdate, user_out
from vecinity.services import accounts, media, reports as report_svc, users as svc
from vecinity.services.search import ReportFilters, list_reports

router = APIRouter(prefix="/users", tags=["users"])

manager = require_role(*MANAGER_ROLES)


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationFailed.single("page", "page must be 1 or greater")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationFailed.single("limit", f"limit must be between 1 and {MAX_LIMIT}")


@router.get("/profile")
def get_profile(current: User = Depends(get_current_user)):
    return ok(user_out(current))


@router.put("/profile")
def update_profile(
    nombre: Optional[str] = Form(None),
    calle: Optional[str] = Form(None),
    numero: Optional[str] = Form(None),
    whatsapp: Optional[str] = Form(None),
    avatar: UploadFile | None = File(default=None),
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = {"nombre": nombre, "calle": calle, "numero": numero, "whatsapp": whatsapp}
    body = validate_payload(ProfileIn, {k: v for k, v in fields.items() if v is not None})
    item = media.ingest_avatar(avatar)
    if item:
        current.avatar = item.url
    try:
        user = accounts.update_profile(db, current, body)
    except Exception:
        db.rollback()
        if item:
            media.discard([item])
        raise
    return ok(user_out(user), "Profile updated successfully")


@router.put("/password")
def change_password(
    body: PasswordChangeIn,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    accounts.change_password(db, current, body.current_password, body.new_password)
    return ok(message="Password updated successfully")


@router.get("/reports")
def my_reports(
    page: int = Query(1),
    limit: int = Query(10),
    estatus: Optional[str] = Query(None),
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_page(page, limit)
    data = {"usuario_id": current.id}
    if estatus:
        data["estatus"] = estatus
    f = validate_payload(ReportFilters, data)
    rows, total = list_reports(db, current, f, page=page, limit=limit)
    return ok([report_out(r) for r, _ in rows], pagination=page_meta(page, limit, total))


@router.get("/stats")
def my_stats(current: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok(report_svc.user_stats(db, current))


@router.get("/stats/admin")
def admin_stats(db: Session = Depends(get_db), _: User = Depends(manager)):
    return ok(svc.stats(db))


@router.get("")
def list_users(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    is_verified: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    _: User = Depends(manager),
):
    _check_page(page, limit)
    rows, total = svc.list_users(db, page, limit, search=search, role=role,
                                 is_active=is_active, is_verified=is_verified)
    return ok([user_out(u) for u in rows], pagination=page_meta(page, limit, total))


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), _: User = Depends(manager)):
    return ok(user_out(svc.get(db, user_id)))


@router.put("/{user_id}")
def update_user(user_id: int, body: UserAdminUpdate,
                db: Session = Depends(get_db), _: User = Depends(manager)):
    user = svc.get(db, user_id)
    return ok(user_out(svc.admin_update(db, user, body)), "User updated successfully")


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), current: User = Depends(manager)):
    svc.delete(db, svc.get(db, user_id), current)
    return ok(message="User deleted successfully")
