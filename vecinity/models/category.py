# File: vecinity/models/category.py
# Project: vecinity-backend
# Auto-added for reference

from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, Boolean, Integer, DateTime, JSON, ForeignKey, func, true
from sqlalchemy.orm import Mapped, mapped_column
from vecinity.db.base import Base
from vecinity.models import user  # noqa: F401  registers the users table

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # stored lower-cased
    nombre: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    descripcion: Mapped[str] = mapped_column(String(200), nullable=False)
    icono: Mapped[str] = mapped_column(String(50), default="default-icon", server_default="default-icon")
    color: Mapped[str] = mapped_column(String(7), default="#3B82F6", server_default="#3B82F6")
    subcategorias: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), index=True)
    orden: Mapped[int] = mapped_column(Integer, default=0, server_default="0", index=True)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    updated_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    def has_subcategory(self, name: str) -> bool:
        wanted = (name or "").strip().lower()
        return any((s.get("nombre") or "").lower() == wanted for s in (self.subcategorias or []))
