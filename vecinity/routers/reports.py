# File: vecinity/routers/reports.py
from fastapi import APIRouter, Depends, Query, UploadFile, File, Request, Form, BackgroundTasks
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from vecinity.core.ratelimit import limiter
from vecinity.core.security import get_current_user, get_optional_user
from vecinity.db.session import get_db
from vecinity.models.report import Report
from vecinity.models.user import User, ADMIN_ROLES, MANAGER_ROLES
from vecinity.core.errors import ValidationFailed
from vecinity.schemas.common import MAX_LIMIT, ok, page_meta, validate_payload
from vecinity.schemas.report import (
    CommentIn,
    ReportCreate,
    ReportUpdate,
    StatusChangeIn,
    VoteIn,
    report_out,
)
from vecinity.services import media, reports as svc
from vecinity.services.notify_email import send_status_update
from vecinity.services.search import ReportFilters, list_reports

router = APIRouter(prefix="/reports", tags=["reports"])


def _form_dict(**fields) -> dict:
    """Multipart fields arrive as strings; missing ones are left out so defaults apply."""
    return {k: v for k, v in fields.items() if v is not None}


def _notify_owner(background_tasks: BackgroundTasks, report: Report, actor: User, comentario: Optional[str]):
    owner = report.usuario
    if owner and owner.id != actor.id and owner.email and owner.wants_email():
        background_tasks.add_task(
            send_status_update, owner.email, report.id, report.folio, report.estatus.value, comentario or ""
        )


@router.get("/stats")
def report_stats(db: Session = Depends(get_db)):
    return ok(svc.counts_by_status(db))


@router.get("/user/me")
def my_reports(
    page: int = Query(1),
    limit: int = Query(20),
    estatus: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    f = validate_payload(ReportFilters, _form_dict(estatus=estatus, usuario_id=current.id))
    return _paged(db, current, f, page, limit)


def _paged(db: Session, viewer: Optional[User], f: ReportFilters, page: int, limit: int,
           sort: str = "created_at", order: str = "desc") -> dict:
    if page < 1:
        raise ValidationFailed.single("page", "page must be 1 or greater")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationFailed.single("limit", f"limit must be between 1 and {MAX_LIMIT}")
    rows, total = list_reports(db, viewer, f, page=page, limit=limit, sort=sort, order=order)
    return ok([report_out(r, d) for r, d in rows], pagination=page_meta(page, limit, total))


@router.get("")
@limiter.limit("60/minute")
def list_all(
    request: Request,
    page: int = Query(1),
    limit: int = Query(20),
    categoria: Optional[int] = Query(None),
    estatus: Optional[str] = Query(None),
    prioridad: Optional[str] = Query(None),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radio: Optional[float] = Query(None),
    search: Optional[str] = Query(None),
    publico: Optional[bool] = Query(None),
    sort: str = Query("created_at"),
    order: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    f = validate_payload(ReportFilters, _form_dict(
        categoria=categoria, estatus=estatus, prioridad=prioridad, lat=lat, lng=lng,
        radio=radio, search=search, publico=publico,
    ))
    return _paged(db, viewer, f, page, limit, sort=sort, order=order)


@router.post("", status_code=201)
@limiter.limit("10/minute")
def create_report(
    request: Request,
    titulo: Optional[str] = Form(None),
    descripcion: Optional[str] = Form(None),
    direccion: Optional[str] = Form(None),
    latitud: Optional[str] = Form(None),
    longitud: Optional[str] = Form(None),
    categoria_id: Optional[str] = Form(None),
    subcategoria: Optional[str] = Form(None),
    prioridad: Optional[str] = Form(None),
    folio: Optional[str] = Form(None),
    is_publico: Optional[str] = Form(None),
    etiquetas: Optional[str] = Form(None),
    files: List[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    body = validate_payload(ReportCreate, _form_dict(
        titulo=titulo, descripcion=descripcion, direccion=direccion, latitud=latitud,
        longitud=longitud, categoria_id=categoria_id, subcategoria=subcategoria or None,
        prioridad=prioridad or None, folio=folio or None, is_publico=is_publico, etiquetas=etiquetas,
    ))
    items = media.ingest(files)
    try:
        report = svc.create(db, body, current, items)
    except Exception:
        db.rollback()
        media.discard(items)
        raise
    return ok(report_out(report), "Report created successfully")


@router.get("/{report_id}")
def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user),
):
    report = svc.get_visible(db, report_id, viewer)
    report = svc.record_visit(db, report)
    return ok(report_out(report))


@router.put("/{report_id}")
def update_report(
    report_id: int,
    background_tasks: BackgroundTasks,
    titulo: Optional[str] = Form(None),
    descripcion: Optional[str] = Form(None),
    direccion: Optional[str] = Form(None),
    latitud: Optional[str] = Form(None),
    longitud: Optional[str] = Form(None),
    categoria_id: Optional[str] = Form(None),
    subcategoria: Optional[str] = Form(None),
    prioridad: Optional[str] = Form(None),
    estatus: Optional[str] = Form(None),
    folio: Optional[str] = Form(None),
    is_publico: Optional[str] = Form(None),
    etiquetas: Optional[str] = Form(None),
    files: List[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    body = validate_payload(ReportUpdate, _form_dict(
        titulo=titulo, descripcion=descripcion, direccion=direccion, latitud=latitud,
        longitud=longitud, categoria_id=categoria_id, subcategoria=subcategoria, prioridad=prioridad,
        estatus=estatus, folio=folio, is_publico=is_publico, etiquetas=etiquetas,
    ))
    report = svc.get_for_write(db, report_id, current, MANAGER_ROLES)
    before = report.estatus
    items = media.ingest(files)
    try:
        report = svc.update(db, report, body, current, items)
    except Exception:
        db.rollback()
        media.discard(items)
        raise
    if report.estatus != before:
        _notify_owner(background_tasks, report, current, None)
    return ok(report_out(report), "Report updated successfully")


@router.delete("/{report_id}")
def delete_report(
    report_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    report = svc.get_for_write(db, report_id, current, MANAGER_ROLES)
    svc.delete(db, report)
    return ok(message="Report deleted successfully")


@router.put("/{report_id}/status")
def change_status(
    report_id: int,
    background_tasks: BackgroundTasks,
    estatus: Optional[str] = Form(None),
    comentario: Optional[str] = Form(None),
    files: List[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    body = validate_payload(StatusChangeIn, _form_dict(estatus=estatus, comentario=comentario or None))
    report = svc.get_for_write(db, report_id, current, ADMIN_ROLES)
    evidence = media.ingest(files, subdir="evidence")
    try:
        changed = svc.change_status(db, report, body.estatus, body.comentario, current, evidence)
    except Exception:
        db.rollback()
        media.discard(evidence)
        raise
    if not changed:
        media.discard(evidence)
        return ok(report_out(report), "Status unchanged")
    _notify_owner(background_tasks, report, current, body.comentario)
    return ok(report_out(report), "Status updated successfully")


@router.post("/{report_id}/comments")
@limiter.limit("30/minute")
def add_comment(
    request: Request,
    report_id: int,
    body: CommentIn,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    report = svc.get_visible(db, report_id, current, for_update=True)
    report = svc.comment(db, report, current, body.contenido)
    return ok(report_out(report), "Comment added successfully")


@router.post("/{report_id}/vote")
@limiter.limit("30/minute")
def vote(
    request: Request,
    report_id: int,
    body: VoteIn,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    report = svc.get_visible(db, report_id, current, for_update=True)
    report = svc.vote(db, report, current, body.positive)
    return ok(report_out(report), "Vote recorded successfully")
