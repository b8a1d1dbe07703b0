# backend/routes/categories.py
from fastapi import APIRouter, Depends, Response
from typing import List
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError
from models.category import Category
from models.product import Product
from models.users import User, UserRole
from schemas.category import CategoryCreate, CategoryUpdate, CategoryOut
from utils.audit import write_log
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/categories", tags=["Categories"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)


def _get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError(f'Category with ID "{category_id}" not found.')
    return category


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return db.query(Category).order_by(Category.name.asc()).all()


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        if db.query(Category.id).filter(Category.name == payload.name).first():
            raise ConflictError(f'Category with name "{payload.name}" already exists.')
        category = Category(**payload.model_dump())
        db.add(category)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_CATEGORY", entity="Category",
                  entity_id=category.id, meta={"name": category.name})
    return category


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    changes = payload.model_dump(exclude_unset=True)
    with UnitOfWork(db):
        category = _get_category(db, category_id)
        if "name" in changes and db.query(Category.id).filter(
            Category.name == changes["name"], Category.id != category_id
        ).first():
            raise ConflictError(f'Category with name "{changes["name"]}" already exists.')
        for field, value in changes.items():
            setattr(category, field, value)
        write_log(db, user_id=current_user.id, action="UPDATE_CATEGORY", entity="Category",
                  entity_id=category.id, meta=changes)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        category = _get_category(db, category_id)
        if db.query(Product.id).filter(Product.category_id == category_id).first():
            raise ConflictError(f'Cannot delete category "{category.name}": products are assigned to it.')
        db.delete(category)
        write_log(db, user_id=current_user.id, action="DELETE_CATEGORY", entity="Category",
                  entity_id=category_id, meta={"name": category.name})
    return Response(status_code=204)
