# File: vecinity/models/user.py
# Project: vecinity-backend
# Auto-added for reference

from __future__ import annotations
from enum import Enum as PyEnum
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Enum, JSON, func, true, false
from sqlalchemy.orm import Mapped, mapped_column
from vecinity.db.base import Base

class UserRole(PyEnum):
    usuario = "usuario"
    admin_operativo = "admin_operativo"
    admin_general = "admin_general"
    superadmin = "superadmin"

    @property
    def rank(self) -> int:
        return ROLE_HIERARCHY.index(self)

    def at_least(self, other: "UserRole") -> bool:
        return self.rank >= other.rank

# lowest to highest privilege
ROLE_HIERARCHY = [UserRole.usuario, UserRole.admin_operativo, UserRole.admin_general, UserRole.superadmin]
ADMIN_ROLES = (UserRole.admin_operativo, UserRole.admin_general, UserRole.superadmin)
MANAGER_ROLES = (UserRole.admin_general, UserRole.superadmin)

def default_preferences() -> dict:
    return {"notificaciones": {"email": True, "whatsapp": True}, "idioma": "es"}

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    nombre: Mapped[str] = mapped_column(String(50), nullable=False)
    calle: Mapped[str] = mapped_column(String(100), nullable=False)
    numero: Mapped[str] = mapped_column(String(10), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    whatsapp: Mapped[str] = mapped_column(String(20), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.usuario, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), index=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    verification_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reset_password_token: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    # naive UTC, compared against naive UTC "now"
    reset_password_expire: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)
    preferences: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=default_preferences)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def wants_email(self) -> bool:
        prefs = self.preferences or {}
        return bool((prefs.get("notificaciones") or {}).get("email", True))
