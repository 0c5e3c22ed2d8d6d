# vecinity/services/users.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from vecinity.core.errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from vecinity.models.category import Category
from vecinity.models.report import Report
from vecinity.models.user import User, UserRole
from vecinity.schemas.user import UserAdminUpdate

logger = logging.getLogger(__name__)


def get(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def list_users(
    db: Session,
    page: int,
    limit: int,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    is_verified: Optional[bool] = None,
) -> tuple[list[User], int]:
    q = db.query(User)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(User.nombre.ilike(like), User.email.ilike(like), User.calle.ilike(like)))
    if role is not None:
        q = q.filter(User.role == role)
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if is_verified is not None:
        q = q.filter(User.is_verified.is_(is_verified))
    total = q.count()
    rows = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total


def admin_update(db: Session, user: User, body: UserAdminUpdate) -> User:
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in data:
        data["email"] = data["email"].lower()
        clash = db.query(User).filter(User.email == data["email"], User.id != user.id).first()
        if clash:
            raise Conflict("A user with that email already exists")
    for k, v in data.items():
        setattr(user, k, v)
    db.commit()
    db.refresh(user)
    return user


def delete(db: Session, user: User, actor: User) -> None:
    if user.id == actor.id:
        raise ValidationFailed("You cannot delete your own account")
    if user.role == UserRole.superadmin:
        raise PermissionDenied("Superadmin accounts cannot be deleted")
    owned = db.query(func.count(Report.id)).filter(Report.usuario_id == user.id).scalar()
    if owned:
        raise Conflict(f"Cannot delete the user because they own {owned} reports")
    created = db.query(func.count(Category.id)).filter(Category.created_by == user.id).scalar()
    if created:
        raise Conflict(f"Cannot delete the user because they created {created} categories")
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user.id, actor.id)


def change_role(db: Session, user: User, role: UserRole, actor: User) -> User:
    if user.id == actor.id:
        raise ValidationFailed("You cannot change your own role")
    old = user.role
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Role of user %s changed from %s to %s by %s", user.id, old.value, role.value, actor.id)
    return user


def counts_by_role(db: Session) -> dict:
    out = {r.value: 0 for r in UserRole}
    for role, n in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        out[role.value] = n
    return out


def stats(db: Session) -> dict:
    since = datetime.now(timezone.utc) - timedelta(days=30)
    return {
        "total": db.query(User).count(),
        "activos": db.query(User).filter(User.is_active.is_(True)).count(),
        "verificados": db.query(User).filter(User.is_verified.is_(True)).count(),
        "nuevos_30_dias": db.query(User).filter(User.created_at >= since).count(),
        "por_rol": counts_by_role(db),
    }
