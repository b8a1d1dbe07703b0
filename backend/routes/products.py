# backend/routes/products.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional, Literal
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError
from models.category import Category
from models.order import PurchaseOrderItem, SalesOrderItem
from models.product import Product
from models.stock import StockLevel
from models.transaction import Transaction
from models.users import User, UserRole
from schemas.product import ProductCreate, ProductUpdate, ProductOut, ProductListPage
from utils.audit import write_log
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/products", tags=["Products"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product with ID "{product_id}" not found.')
    return product


def _check_category(db: Session, category_id: Optional[int]):
    if category_id is not None and not db.query(Category.id).filter(Category.id == category_id).first():
        raise NotFoundError(f'Category with ID "{category_id}" not found.')


def _check_sku_free(db: Session, sku: str, exclude_id: Optional[int] = None):
    query = db.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f'Product with SKU "{sku}" already exists.')


# List products with search, filtering and pagination
@router.get("", response_model=ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Search by name or SKU"),
    category_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["name", "sku", "created_at"] = "name",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Product)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if category_id:
        query = query.filter(Product.category_id == category_id)

    col = {"name": Product.name, "sku": Product.sku, "created_at": Product.created_at}[sort_by]
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_product(db, product_id)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        _check_sku_free(db, payload.sku)
        _check_category(db, payload.category_id)
        product = Product(**payload.model_dump())
        db.add(product)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_PRODUCT", entity="Product", entity_id=product.id,
                  meta={"sku": product.sku, "name": product.name})
    return product


# Partial update; only fields present in the body change
@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    changes = payload.model_dump(exclude_unset=True)
    with UnitOfWork(db):
        product = _get_product(db, product_id)
        if "sku" in changes:
            _check_sku_free(db, changes["sku"], exclude_id=product.id)
        if "category_id" in changes:
            _check_category(db, changes["category_id"])
        for field, value in changes.items():
            setattr(product, field, value)
        write_log(db, user_id=current_user.id, action="UPDATE_PRODUCT", entity="Product", entity_id=product.id,
                  meta=changes)
    return product


# Products with stock, ledger or order history cannot be removed
@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        product = _get_product(db, product_id)
        in_use = (
            db.query(StockLevel.id).filter(StockLevel.product_id == product_id).first()
            or db.query(Transaction.id).filter(Transaction.product_id == product_id).first()
            or db.query(PurchaseOrderItem.id).filter(PurchaseOrderItem.product_id == product_id).first()
            or db.query(SalesOrderItem.id).filter(SalesOrderItem.product_id == product_id).first()
        )
        if in_use:
            raise ConflictError(
                f'Cannot delete product "{product.sku}": it is referenced by stock levels, transactions or orders.'
            )
        db.delete(product)
        write_log(db, user_id=current_user.id, action="DELETE_PRODUCT", entity="Product", entity_id=product_id,
                  meta={"sku": product.sku})
    return Response(status_code=204)
