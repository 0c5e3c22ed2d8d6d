# vecinity/services/reports.py
"""
Report lifecycle: creation, edits, status history, comments, votes,
visits, moderation and assignment.

The JSON columns (history, comments, votes, media) are parsed into the
typed value objects from ``vecinity.schemas.report``, mutated, and
written back as fresh lists so the ORM always sees the change. Rows are
loaded ``FOR UPDATE`` before such a read-modify-write; engines without
row locks (SQLite) fall back to last-write-wins.
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from vecinity.core.errors import NotFound, ValidationFailed
from vecinity.core.security import ensure_owner_or_role
from vecinity.models.category import Category
from vecinity.models.report import Report, ReportStatus
from vecinity.models.user import User
from vecinity.schemas.common import validate_payload
from vecinity.schemas.report import (
    Comment,
    MediaItem,
    ReportCreate,
    ReportUpdate,
    StatusHistoryEntry,
    VoteEntry,
    Votes,
    dump_json,
)

logger = logging.getLogger(__name__)

MODERATION_PREFIX = "[MODERACIÓN]"
CREATED_NOTE = "Reporte creado"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def make_folio(report: Report) -> str:
    year = (report.created_at or _now()).year
    return f"VEC-{year}-{report.id:06d}"


# ---------------------------------------------------------------------
# Loading and visibility
# ---------------------------------------------------------------------

def load(db: Session, report_id: int, for_update: bool = False) -> Report:
    q = db.query(Report).filter(Report.id == report_id)
    if for_update:
        q = q.with_for_update(of=Report)
    report = q.first()
    if not report:
        raise NotFound("Report not found")
    return report


def can_view(report: Report, user: Optional[User]) -> bool:
    if report.is_publico:
        return True
    if user is None:
        return False
    return user.id == report.usuario_id or user.is_admin


def get_visible(db: Session, report_id: int, user: Optional[User], for_update: bool = False) -> Report:
    """Private reports look missing to callers who may not see them."""
    report = load(db, report_id, for_update=for_update)
    if not can_view(report, user):
        raise NotFound("Report not found")
    return report


def get_for_write(db: Session, report_id: int, user: User, roles) -> Report:
    report = get_visible(db, report_id, user, for_update=True)
    ensure_owner_or_role(user, report.usuario_id, roles)
    return report


# ---------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------

def _check_category(db: Session, categoria_id: int, subcategoria: Optional[str]) -> Category:
    category = db.get(Category, categoria_id)
    if not category:
        raise ValidationFailed.single("categoria_id", "Category not found")
    if subcategoria and not category.has_subcategory(subcategoria):
        raise ValidationFailed.single("subcategoria", f"Subcategory '{subcategoria}' does not exist in this category")
    return category


def create(db: Session, body: ReportCreate, owner: User, media: Optional[List[MediaItem]] = None) -> Report:
    _check_category(db, body.categoria_id, body.subcategoria)

    first = StatusHistoryEntry(
        estatus=ReportStatus.nuevo,
        comentario=CREATED_NOTE,
        cambiado_por=owner.id,
        fecha_cambio=_now(),
    )
    report = Report(
        titulo=body.titulo,
        descripcion=body.descripcion,
        direccion=body.direccion,
        latitud=body.latitud,
        longitud=body.longitud,
        categoria_id=body.categoria_id,
        subcategoria=body.subcategoria,
        prioridad=body.prioridad,
        estatus=ReportStatus.nuevo,
        folio=body.folio or None,
        multimedia=dump_json(media or []),
        historial_estatus=dump_json([first]),
        comentarios=[],
        votos=Votes().model_dump(mode="json"),
        etiquetas=body.etiquetas,
        is_publico=body.is_publico,
        usuario_id=owner.id,
        ultima_visita=_now(),
    )
    db.add(report)
    db.flush()
    if not report.folio:
        report.folio = make_folio(report)
    db.commit()
    db.refresh(report)
    return report


def _append_status(report: Report, estatus: ReportStatus, comentario: Optional[str],
                   actor_id: int, evidence: Optional[List[MediaItem]] = None) -> bool:
    if report.estatus == estatus:
        return False
    history = [StatusHistoryEntry.model_validate(e) for e in (report.historial_estatus or [])]
    history.append(StatusHistoryEntry(
        estatus=estatus,
        comentario=comentario or f"Estatus cambiado a {estatus.value}",
        multimedia=evidence or [],
        cambiado_por=actor_id,
        fecha_cambio=_now(),
    ))
    report.estatus = estatus
    report.historial_estatus = dump_json(history)
    return True


def apply_update(db: Session, report: Report, body: ReportUpdate, actor: User,
                 media: Optional[List[MediaItem]] = None) -> Report:
    data = body.model_dump(exclude_unset=True)
    estatus = data.pop("estatus", None)

    if "categoria_id" in data or "subcategoria" in data:
        categoria_id = data.get("categoria_id") or report.categoria_id
        subcategoria = data.get("subcategoria", report.subcategoria)
        if "categoria_id" in data and "subcategoria" not in data and subcategoria:
            category = db.get(Category, categoria_id)
            # moving category drops a subcategory the new one does not have
            if category and not category.has_subcategory(subcategoria):
                data["subcategoria"] = subcategoria = None
        _check_category(db, categoria_id, subcategoria)

    for key, value in data.items():
        if value is None and key in ("titulo", "descripcion", "direccion", "latitud", "longitud",
                                     "categoria_id", "prioridad", "is_publico", "etiquetas"):
            continue
        setattr(report, key, value)

    if estatus is not None:
        _append_status(report, estatus, None, actor.id)
    if media:
        report.multimedia = dump_json(media)
    return report


def update(db: Session, report: Report, body: ReportUpdate, actor: User,
           media: Optional[List[MediaItem]] = None) -> Report:
    apply_update(db, report, body, actor, media)
    db.commit()
    db.refresh(report)
    return report


def delete(db: Session, report: Report) -> None:
    db.delete(report)
    db.commit()


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------

def change_status(db: Session, report: Report, estatus: ReportStatus, comentario: Optional[str],
                  actor: User, evidence: Optional[List[MediaItem]] = None) -> bool:
    """Appends one history entry; returns False (and writes nothing) when the status is unchanged."""
    changed = _append_status(report, estatus, comentario, actor.id, evidence)
    if changed:
        db.commit()
        db.refresh(report)
    return changed


def add_comment(db: Session, report: Report, actor: User, contenido: str,
                media: Optional[List[MediaItem]] = None) -> Comment:
    comments = [Comment.model_validate(c) for c in (report.comentarios or [])]
    comment = Comment(usuario_id=actor.id, contenido=contenido, multimedia=media or [], created_at=_now())
    comments.append(comment)
    report.comentarios = dump_json(comments)
    return comment


def comment(db: Session, report: Report, actor: User, contenido: str) -> Report:
    add_comment(db, report, actor, contenido)
    db.commit()
    db.refresh(report)
    return report


def vote(db: Session, report: Report, actor: User, positive: bool) -> Report:
    votes = Votes.model_validate(report.votos or {})
    # a user holds at most one vote across both sets
    positivos = [v for v in votes.positivos if v.usuario_id != actor.id]
    negativos = [v for v in votes.negativos if v.usuario_id != actor.id]
    entry = VoteEntry(usuario_id=actor.id, fecha=_now())
    (positivos if positive else negativos).append(entry)
    report.votos = Votes(positivos=positivos, negativos=negativos).model_dump(mode="json")
    db.commit()
    db.refresh(report)
    return report


def record_visit(db: Session, report: Report) -> Report:
    db.query(Report).filter(Report.id == report.id).update(
        {Report.visitas: Report.visitas + 1, Report.ultima_visita: _now()},
        synchronize_session=False,
    )
    db.commit()
    db.refresh(report)
    return report


def moderate(db: Session, report: Report, moderator: User, accion: str,
             razon: Optional[str] = None, cambios: Optional[dict] = None) -> Optional[Report]:
    """Returns the moderated report, or None when the action deleted it."""
    logger.info("Moderation %s on report %s by user %s", accion, report.id, moderator.id)
    if accion == "eliminar":
        delete(db, report)
        return None

    if accion == "aprobar":
        report.is_publico = True
    elif accion == "rechazar":
        report.is_publico = False
    elif accion == "editar":
        if not cambios:
            raise ValidationFailed.single("cambios", "cambios is required for the editar action")
        patch = validate_payload(ReportUpdate, cambios)
        apply_update(db, report, patch, moderator)

    report.is_moderado = True
    report.moderado_por = moderator.id
    report.fecha_moderacion = _now()
    report.motivo_moderacion = razon
    if razon:
        add_comment(db, report, moderator, f"{MODERATION_PREFIX} {razon}"[:500])
    db.commit()
    db.refresh(report)
    return report


def assign(db: Session, report: Report, assignee_id: int) -> Report:
    assignee = db.get(User, assignee_id)
    if not assignee:
        raise NotFound("Assigned user not found")
    if not assignee.is_admin or not assignee.is_active:
        raise ValidationFailed.single("asignado_a", "Reports can only be assigned to active administrators")
    report.asignado_a = assignee.id
    db.commit()
    db.refresh(report)
    return report


# ---------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------

def counts_by_status(db: Session, **filters) -> dict:
    q = db.query(Report.estatus, func.count(Report.id))
    for k, v in filters.items():
        q = q.filter(getattr(Report, k) == v)
    out = {s.value: 0 for s in ReportStatus}
    for estatus, n in q.group_by(Report.estatus).all():
        out[estatus.value] = n
    return out


def user_stats(db: Session, user: User) -> dict:
    since = _now() - timedelta(days=7)
    base = db.query(Report).filter(Report.usuario_id == user.id)
    return {
        "total": base.count(),
        "recientes": base.filter(Report.created_at >= since).count(),
        "por_estatus": counts_by_status(db, usuario_id=user.id),
    }
