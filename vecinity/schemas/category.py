# File: vecinity/schemas/category.py

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

class Subcategory(BaseModel):
    """Stored inside ``Category.subcategorias``; nombre is lower-cased on write."""
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre: str = Field(min_length=2, max_length=50)
    descripcion: str = Field(default="", max_length=200)
    icono: str = Field(default="default-sub-icon", min_length=1, max_length=50)

    @field_validator("nombre")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()

class SubcategoryExtra(BaseModel):
    """Body for the path-named subcategory route."""
    model_config = ConfigDict(str_strip_whitespace=True)

    descripcion: str = Field(default="", max_length=200)
    icono: str = Field(default="default-sub-icon", min_length=1, max_length=50)

class CategoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    nombre: str = Field(min_length=2, max_length=50)
    descripcion: str = Field(min_length=5, max_length=200)
    color: str = Field(default="#3B82F6", pattern=COLOR_PATTERN)
    icono: str = Field(default="default-icon", min_length=1, max_length=50)
    orden: int = Field(default=0, ge=0)
    subcategorias: List[Subcategory] = []

    @field_validator("nombre")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()

class CategoryUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    nombre: Optional[str] = Field(default=None, min_length=2, max_length=50)
    descripcion: Optional[str] = Field(default=None, min_length=5, max_length=200)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    icono: Optional[str] = Field(default=None, min_length=1, max_length=50)
    orden: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    subcategorias: Optional[List[Subcategory]] = None

    @field_validator("nombre")
    @classmethod
    def _lower(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

class CategoryOut(BaseModel):
    id: int
    nombre: str
    descripcion: str
    icono: str
    color: str
    subcategorias: List[Subcategory] = []
    is_active: bool
    orden: int
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CategoryLite(BaseModel):
    id: int
    nombre: str
    color: str
    icono: str

    class Config:
        from_attributes = True

def category_out(category) -> dict:
    return CategoryOut.model_validate(category).model_dump(mode="json")
