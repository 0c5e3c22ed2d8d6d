# vecinity/services/categories.py
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from vecinity.core.errors import Conflict, NotFound
from vecinity.models.category import Category
from vecinity.models.report import Report
from vecinity.models.user import User
from vecinity.schemas.category import CategoryCreate, CategoryUpdate, Subcategory


def get(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")
    return category


def list_active(db: Session) -> List[Category]:
    return (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.orden.asc(), Category.nombre.asc())
        .all()
    )


def stats(db: Session) -> list[dict]:
    rows = (
        db.query(Category, func.count(Report.id))
        .outerjoin(Report, Report.categoria_id == Category.id)
        .filter(Category.is_active.is_(True))
        .group_by(Category.id)
        .order_by(Category.orden.asc())
        .all()
    )
    return [
        {"id": c.id, "nombre": c.nombre, "color": c.color, "icono": c.icono, "total_reports": int(n)}
        for c, n in rows
    ]


def _ensure_unique_name(db: Session, nombre: str, exclude_id: int | None = None) -> None:
    q = db.query(Category).filter(Category.nombre == nombre)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise Conflict("A category with that name already exists")


def _dedupe(subs: List[Subcategory]) -> list[dict]:
    seen, out = set(), []
    for s in subs:
        if s.nombre in seen:
            raise Conflict(f"Duplicate subcategory '{s.nombre}'")
        seen.add(s.nombre)
        out.append(s.model_dump())
    return out


def create(db: Session, body: CategoryCreate, actor: User) -> Category:
    _ensure_unique_name(db, body.nombre)
    category = Category(
        nombre=body.nombre,
        descripcion=body.descripcion,
        color=body.color,
        icono=body.icono,
        orden=body.orden,
        subcategorias=_dedupe(body.subcategorias),
        is_active=True,
        created_by=actor.id,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update(db: Session, category: Category, body: CategoryUpdate, actor: User) -> Category:
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "nombre" in data:
        _ensure_unique_name(db, data["nombre"], exclude_id=category.id)
    if "subcategorias" in data:
        new = _dedupe(body.subcategorias)
        removed = {s.get("nombre") for s in category.subcategorias or []} - {s["nombre"] for s in new}
        for name in removed:
            _ensure_subcategory_unused(db, category, name)
        data["subcategorias"] = new
    for k, v in data.items():
        setattr(category, k, v)
    category.updated_by = actor.id
    db.commit()
    db.refresh(category)
    return category


def delete(db: Session, category: Category) -> None:
    n = db.query(func.count(Report.id)).filter(Report.categoria_id == category.id).scalar()
    if n:
        raise Conflict(f"Cannot delete the category because it has {n} associated reports")
    db.delete(category)
    db.commit()


def add_subcategory(db: Session, category: Category, sub: Subcategory, actor: User) -> Category:
    if category.has_subcategory(sub.nombre):
        raise Conflict("A subcategory with that name already exists")
    category.subcategorias = list(category.subcategorias or []) + [sub.model_dump()]
    category.updated_by = actor.id
    db.commit()
    db.refresh(category)
    return category


def _ensure_subcategory_unused(db: Session, category: Category, name: str) -> None:
    n = (
        db.query(func.count(Report.id))
        .filter(Report.categoria_id == category.id, func.lower(Report.subcategoria) == name.lower())
        .scalar()
    )
    if n:
        raise Conflict(f"Cannot delete the subcategory because it has {n} associated reports")


def remove_subcategory(db: Session, category: Category, name: str, actor: User) -> Category:
    wanted = name.strip().lower()
    if not category.has_subcategory(wanted):
        raise NotFound("Subcategory not found")
    _ensure_subcategory_unused(db, category, wanted)
    category.subcategorias = [
        s for s in category.subcategorias or [] if (s.get("nombre") or "").lower() != wanted
    ]
    category.updated_by = actor.id
    db.commit()
    db.refresh(category)
    return category
