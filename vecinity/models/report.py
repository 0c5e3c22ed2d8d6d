# File: vecinity/models/report.py
from __future__ import annotations
from enum import Enum as PyEnum
from datetime import datetime
from sqlalchemy import String, Text, Float, Enum, Integer, Boolean, DateTime, JSON, ForeignKey, func, Index, true, false
from sqlalchemy.orm import Mapped, mapped_column, relationship
from vecinity.db.base import Base
from vecinity.models.category import Category
from vecinity.models.user import User

class ReportStatus(PyEnum):
    nuevo = "nuevo"
    en_proceso = "en_proceso"
    resuelto = "resuelto"
    cerrado = "cerrado"

class ReportPriority(PyEnum):
    baja = "baja"
    media = "media"
    alta = "alta"
    urgente = "urgente"

def empty_votes() -> dict:
    return {"positivos": [], "negativos": []}

class Report(Base):
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    titulo: Mapped[str] = mapped_column(String(100), nullable=False)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False)
    direccion: Mapped[str] = mapped_column(String(200), nullable=False)
    latitud: Mapped[float] = mapped_column(Float, nullable=False)
    longitud: Mapped[float] = mapped_column(Float, nullable=False)

    categoria_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="RESTRICT"), index=True, nullable=False)
    subcategoria: Mapped[str | None] = mapped_column(String(50), nullable=True)
    estatus: Mapped[ReportStatus] = mapped_column(Enum(ReportStatus, name="report_status"), default=ReportStatus.nuevo, nullable=False, index=True)
    prioridad: Mapped[ReportPriority] = mapped_column(Enum(ReportPriority, name="report_priority"), default=ReportPriority.media, nullable=False)
    folio: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)

    # JSON documents; always reassigned as a whole so the ORM sees the change
    multimedia: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    historial_estatus: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    comentarios: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    votos: Mapped[dict] = mapped_column(JSON, nullable=False, default=empty_votes)
    etiquetas: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    usuario_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), index=True, nullable=False)
    asignado_a: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)

    is_publico: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False, index=True)
    is_moderado: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    moderado_por: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    fecha_moderacion: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    motivo_moderacion: Mapped[str | None] = mapped_column(Text, nullable=True)

    visitas: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    ultima_visita: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    categoria = relationship(Category, lazy="joined")
    usuario = relationship(User, foreign_keys=[usuario_id], lazy="joined")
    asignado = relationship(User, foreign_keys=[asignado_a], lazy="joined")
    moderador = relationship(User, foreign_keys=[moderado_por], lazy="joined")

Index("ix_reports_lat_lng", Report.latitud, Report.longitud)
Index("ix_reports_estatus_created", Report.estatus, Report.created_at)
