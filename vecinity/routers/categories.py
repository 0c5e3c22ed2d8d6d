# File: vecinity/routers/categories.py

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from vecinity.core.security import require_role
from vecinity.db.session import get_db
from vecinity.models.user import User, MANAGER_ROLES
from vecinity.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    Subcategory,
    SubcategoryExtra,
    category_out,
)
from vecinity.schemas.common import ok, validate_payload
from vecinity.services import categories as svc

router = APIRouter(prefix="/categories", tags=["categories"])

manager = require_role(*MANAGER_ROLES)

@router.get("")
def list_categories(db: Session = Depends(get_db)):
    items = [category_out(c) for c in svc.list_active(db)]
    return ok(items, count=len(items))

@router.get("/stats")
def category_stats(db: Session = Depends(get_db)):
    return ok(svc.stats(db))

@router.get("/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    return ok(category_out(svc.get(db, category_id)))

@router.post("", status_code=201)
def create_category(body: CategoryCreate, db: Session = Depends(get_db), user: User = Depends(manager)):
    return ok(category_out(svc.create(db, body, user)), "Category created successfully")

@router.put("/{category_id}")
def update_category(category_id: int, body: CategoryUpdate,
                    db: Session = Depends(get_db), user: User = Depends(manager)):
    category = svc.get(db, category_id)
    return ok(category_out(svc.update(db, category, body, user)), "Category updated successfully")

@router.delete("/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db), user: User = Depends(manager)):
    svc.delete(db, svc.get(db, category_id))
    return ok(message="Category deleted successfully")

@router.post("/{category_id}/subcategories")
def add_subcategory(category_id: int, body: Subcategory,
                    db: Session = Depends(get_db), user: User = Depends(manager)):
    category = svc.get(db, category_id)
    return ok(category_out(svc.add_subcategory(db, category, body, user)), "Subcategory added successfully")

@router.post("/{category_id}/subcategories/{name}")
def add_named_subcategory(category_id: int, name: str,
                          body: Optional[SubcategoryExtra] = Body(default=None),
                          db: Session = Depends(get_db), user: User = Depends(manager)):
    extra = body or SubcategoryExtra()
    sub = validate_payload(Subcategory, {"nombre": name, **extra.model_dump()})
    category = svc.get(db, category_id)
    return ok(category_out(svc.add_subcategory(db, category, sub, user)), "Subcategory added successfully")

@router.delete("/{category_id}/subcategories/{name}")
def remove_subcategory(category_id: int, name: str,
                       db: Session = Depends(get_db), user: User = Depends(manager)):
    category = svc.get(db, category_id)
    return ok(category_out(svc.remove_subcategory(db, category, name, user)), "Subcategory removed successfully")
