# vecinity/services/search.py
from math import radians, cos, sin, asin, sqrt
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session, Query

from vecinity.core.errors import ValidationFailed
from vecinity.models.report import Report, ReportPriority, ReportStatus
from vecinity.models.user import User

EARTH_RADIUS_KM = 6371.0
KM_PER_DEG_LAT = 111.32
DEFAULT_RADIUS_KM = 5.0

SORTABLE = {
    "created_at": Report.created_at,
    "updated_at": Report.updated_at,
    "prioridad": Report.prioridad,
    "estatus": Report.estatus,
    "visitas": Report.visitas,
    "titulo": Report.titulo,
    "folio": Report.folio,
}


class ReportFilters(BaseModel):
    categoria: Optional[int] = Field(default=None, ge=1)
    estatus: Optional[ReportStatus] = None
    prioridad: Optional[ReportPriority] = None
    search: Optional[str] = Field(default=None, min_length=2)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    radio: float = Field(default=DEFAULT_RADIUS_KM, ge=0.1, le=50)
    # admins only; everyone else is scoped by visibility rules
    publico: Optional[bool] = None
    usuario_id: Optional[int] = None
    asignado_a: Optional[int] = None

    @property
    def near(self) -> bool:
        return self.lat is not None and self.lng is not None


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(a)))


def bounding_box(lat: float, lng: float, radio_km: float) -> Tuple[float, float, Optional[float], Optional[float]]:
    """Degree box that contains every point within radio_km; longitude bounds are None near the poles."""
    dlat = radio_km / KM_PER_DEG_LAT
    c = cos(radians(lat))
    if c < 1e-6:
        return lat - dlat, lat + dlat, None, None
    dlng = radio_km / (KM_PER_DEG_LAT * c)
    if dlng >= 180:
        return lat - dlat, lat + dlat, None, None
    return lat - dlat, lat + dlat, lng - dlng, lng + dlng


def _lng_filter(min_lng: float, max_lng: float):
    # a box that crosses the antimeridian is split into its two halves
    if min_lng < -180:
        return or_(Report.longitud >= min_lng + 360, Report.longitud <= max_lng)
    if max_lng > 180:
        return or_(Report.longitud >= min_lng, Report.longitud <= max_lng - 360)
    return Report.longitud.between(min_lng, max_lng)


def visible_to(q: Query, viewer: Optional[User], publico: Optional[bool] = None) -> Query:
    if viewer is None:
        return q.filter(Report.is_publico.is_(True))
    if viewer.is_admin:
        if publico is not None:
            q = q.filter(Report.is_publico.is_(publico))
        return q
    return q.filter(or_(Report.is_publico.is_(True), Report.usuario_id == viewer.id))


def _apply_filters(q: Query, f: ReportFilters) -> Query:
    if f.categoria:
        q = q.filter(Report.categoria_id == f.categoria)
    if f.estatus:
        q = q.filter(Report.estatus == f.estatus)
    if f.prioridad:
        q = q.filter(Report.prioridad == f.prioridad)
    if f.usuario_id:
        q = q.filter(Report.usuario_id == f.usuario_id)
    if f.asignado_a:
        q = q.filter(Report.asignado_a == f.asignado_a)
    if f.search:
        like = f"%{f.search.strip()}%"
        q = q.filter(or_(
            Report.titulo.ilike(like),
            Report.descripcion.ilike(like),
            Report.direccion.ilike(like),
            Report.folio.ilike(like),
        ))
    return q


def list_reports(
    db: Session,
    viewer: Optional[User],
    f: ReportFilters,
    page: int = 1,
    limit: int = 20,
    sort: str = "created_at",
    order: str = "desc",
) -> Tuple[List[Tuple[Report, Optional[float]]], int]:
    """
    Returns ``([(report, distance_km | None), ...], total)``.

    With a center point the database only applies the bounding box; exact
    great-circle distances, the radius cut and nearest-first ordering are
    computed here, then the page is sliced.
    """
    if (f.lat is None) != (f.lng is None):
        raise ValidationFailed.single("lat", "lat and lng must be provided together")
    if sort not in SORTABLE:
        raise ValidationFailed.single("sort", f"sort must be one of: {', '.join(sorted(SORTABLE))}")

    q = visible_to(db.query(Report), viewer, f.publico)
    q = _apply_filters(q, f)
    offset = (page - 1) * limit

    if f.near:
        min_lat, max_lat, min_lng, max_lng = bounding_box(f.lat, f.lng, f.radio)
        q = q.filter(Report.latitud.between(min_lat, max_lat))
        if min_lng is not None:
            q = q.filter(_lng_filter(min_lng, max_lng))
        scored = []
        for r in q.all():
            d = haversine_km(f.lat, f.lng, r.latitud, r.longitud)
            if d <= f.radio:
                scored.append((r, d))
        scored.sort(key=lambda x: (x[1], x[0].id))
        return scored[offset:offset + limit], len(scored)

    total = q.order_by(None).count()
    col = SORTABLE[sort]
    ordering = [col.asc(), Report.id.asc()] if order == "asc" else [col.desc(), Report.id.desc()]
    rows = q.order_by(*ordering).offset(offset).limit(limit).all()
    return [(r, None) for r in rows], total
