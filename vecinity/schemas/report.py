from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from typing import Literal, Optional, List
from datetime import datetime

from vecinity.models.report import ReportPriority, ReportStatus
from vecinity.schemas.category import CategoryLite
from vecinity.schemas.user import UserLite

MAX_TAGS = 10
TAG_MAX_LEN = 20


# -- value objects kept inside the report's JSON columns --

class MediaItem(BaseModel):
    tipo: Literal["imagen", "video"]
    url: str
    thumbnail: Optional[str] = None
    nombre_original: str = ""
    tamano: int = Field(default=0, ge=0)
    mime_type: Optional[str] = None
    descripcion: str = ""


class StatusHistoryEntry(BaseModel):
    estatus: ReportStatus
    comentario: str = ""
    multimedia: List[MediaItem] = []
    cambiado_por: Optional[int] = None
    fecha_cambio: datetime


class Comment(BaseModel):
    usuario_id: int
    contenido: str = Field(min_length=1, max_length=500)
    multimedia: List[MediaItem] = []
    created_at: datetime


class VoteEntry(BaseModel):
    usuario_id: int
    fecha: datetime


class Votes(BaseModel):
    positivos: List[VoteEntry] = []
    negativos: List[VoteEntry] = []


def dump_json(items) -> list:
    return [i.model_dump(mode="json") for i in items]


# -- request bodies --

def _split_tags(v):
    if v is None:
        return []
    if isinstance(v, str):
        v = v.split(",")
    return [t.strip() for t in v if t and t.strip()]


class ReportCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    titulo: str = Field(min_length=5, max_length=100)
    descripcion: str = Field(min_length=10, max_length=1000)
    direccion: str = Field(min_length=5, max_length=200)
    latitud: float = Field(ge=-90, le=90)
    longitud: float = Field(ge=-180, le=180)
    categoria_id: int = Field(ge=1)
    subcategoria: Optional[str] = Field(default=None, min_length=2, max_length=50)
    prioridad: ReportPriority = ReportPriority.media
    folio: Optional[str] = Field(default=None, max_length=50)
    is_publico: bool = True
    etiquetas: List[str] = Field(default=[], max_length=MAX_TAGS)

    @field_validator("etiquetas", mode="before")
    @classmethod
    def _tags(cls, v):
        return _split_tags(v)

    @field_validator("etiquetas")
    @classmethod
    def _tag_len(cls, v: List[str]) -> List[str]:
        for t in v:
            if len(t) > TAG_MAX_LEN:
                raise ValueError(f"each tag must be 1-{TAG_MAX_LEN} characters")
        return v

    @field_validator("subcategoria")
    @classmethod
    def _sub_lower(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else None


class ReportUpdate(BaseModel):
    """Partial update; also used to re-validate moderation edits, so unknown keys are rejected."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    titulo: Optional[str] = Field(default=None, min_length=5, max_length=100)
    descripcion: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    direccion: Optional[str] = Field(default=None, min_length=5, max_length=200)
    latitud: Optional[float] = Field(default=None, ge=-90, le=90)
    longitud: Optional[float] = Field(default=None, ge=-180, le=180)
    categoria_id: Optional[int] = Field(default=None, ge=1)
    subcategoria: Optional[str] = Field(default=None, min_length=2, max_length=50)
    prioridad: Optional[ReportPriority] = None
    estatus: Optional[ReportStatus] = None
    folio: Optional[str] = Field(default=None, max_length=50)
    is_publico: Optional[bool] = None
    etiquetas: Optional[List[str]] = Field(default=None, max_length=MAX_TAGS)

    @field_validator("etiquetas", mode="before")
    @classmethod
    def _tags(cls, v):
        return None if v is None else _split_tags(v)

    @field_validator("etiquetas")
    @classmethod
    def _tag_len(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        for t in v or []:
            if len(t) > TAG_MAX_LEN:
                raise ValueError(f"each tag must be 1-{TAG_MAX_LEN} characters")
        return v

    @field_validator("subcategoria")
    @classmethod
    def _sub_lower(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class StatusChangeIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    estatus: ReportStatus
    comentario: Optional[str] = Field(default=None, min_length=5, max_length=500)


class CommentIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    contenido: str = Field(
        min_length=1, max_length=500,
        validation_alias=AliasChoices("contenido", "comentario"),
    )


class VoteIn(BaseModel):
    tipo: Literal["positivo", "negativo", "like", "dislike"]

    @property
    def positive(self) -> bool:
        return self.tipo in ("positivo", "like")


class ModerateIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    accion: Literal["aprobar", "rechazar", "editar", "eliminar"]
    razon: Optional[str] = Field(default=None, min_length=5, max_length=500)
    cambios: Optional[dict] = None


class AssignIn(BaseModel):
    asignado_a: int = Field(ge=1)


# -- response shape --

class ReportOut(BaseModel):
    id: int
    titulo: str
    descripcion: str
    direccion: str
    latitud: float
    longitud: float
    categoria_id: int
    subcategoria: Optional[str] = None
    estatus: ReportStatus
    prioridad: ReportPriority
    folio: Optional[str] = None

    multimedia: List[MediaItem] = []
    historial_estatus: List[StatusHistoryEntry] = []
    comentarios: List[Comment] = []
    votos: Votes = Votes()
    etiquetas: List[str] = []

    usuario_id: int
    asignado_a: Optional[int] = None
    is_publico: bool
    is_moderado: bool
    moderado_por: Optional[int] = None
    fecha_moderacion: Optional[datetime] = None
    motivo_moderacion: Optional[str] = None
    visitas: int = 0
    ultima_visita: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Embedded objects for UI
    categoria: Optional[CategoryLite] = None
    usuario: Optional[UserLite] = None
    asignado: Optional[UserLite] = None
    moderador: Optional[UserLite] = None

    # km from the search center, proximity queries only
    distancia: Optional[float] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def votos_resumen(self) -> dict:
        pos, neg = len(self.votos.positivos), len(self.votos.negativos)
        return {"positivos": pos, "negativos": neg, "total": pos - neg}


def report_out(report, distancia: Optional[float] = None) -> dict:
    out = ReportOut.model_validate(report)
    if distancia is not None:
        out.distancia = round(distancia, 3)
    return out.model_dump(mode="json")
