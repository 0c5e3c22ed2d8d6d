# vecinity/schemas/common.py
import math
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from vecinity.core.errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def page_meta(page: int, limit: int, total: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return Pagination(page=page, limit=limit, total=total, pages=pages).model_dump()


def validate_payload(model: Type[M], data: dict[str, Any]) -> M:
    """Validate a dict built from form fields; every violation is reported at once."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed.from_pydantic(e)


def ok(data: Any = None, message: str | None = None, **extra) -> dict:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
