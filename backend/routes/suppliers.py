# backend/routes/suppliers.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError
from models.order import PurchaseOrder
from models.supplier import Supplier
from models.users import User, UserRole
from schemas.partner import SupplierCreate, SupplierUpdate, SupplierOut, SupplierPage
from utils.audit import write_log
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)


def _get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFoundError(f'Supplier with ID "{supplier_id}" not found.')
    return supplier


def _check_name_free(db: Session, name: str, exclude_id: Optional[int] = None):
    query = db.query(Supplier.id).filter(Supplier.name == name)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise ConflictError(f'Supplier with name "{name}" already exists.')


@router.get("", response_model=SupplierPage)
def list_suppliers(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Supplier)
    if q:
        query = query.filter(Supplier.name.ilike(f"%{q}%"))
    total = query.count()
    items = query.order_by(Supplier.name.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_supplier(db, supplier_id)


@router.post("", response_model=SupplierOut, status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        _check_name_free(db, payload.name)
        supplier = Supplier(**payload.model_dump())
        db.add(supplier)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_SUPPLIER", entity="Supplier",
                  entity_id=supplier.id, meta={"name": supplier.name})
    return supplier


@router.patch("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    changes = payload.model_dump(exclude_unset=True)
    with UnitOfWork(db):
        supplier = _get_supplier(db, supplier_id)
        if "name" in changes:
            _check_name_free(db, changes["name"], exclude_id=supplier.id)
        for field, value in changes.items():
            setattr(supplier, field, value)
        write_log(db, user_id=current_user.id, action="UPDATE_SUPPLIER", entity="Supplier",
                  entity_id=supplier.id, meta=changes)
    return supplier


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        supplier = _get_supplier(db, supplier_id)
        if db.query(PurchaseOrder.id).filter(PurchaseOrder.supplier_id == supplier_id).first():
            raise ConflictError(f'Cannot delete supplier "{supplier.name}": it has purchase orders.')
        db.delete(supplier)
        write_log(db, user_id=current_user.id, action="DELETE_SUPPLIER", entity="Supplier",
                  entity_id=supplier_id, meta={"name": supplier.name})
    return Response(status_code=204)
