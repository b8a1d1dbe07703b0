# backend/routes/customers.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError
from models.customer import Customer
from models.order import SalesOrder
from models.users import User, UserRole
from schemas.partner import CustomerCreate, CustomerUpdate, CustomerOut, CustomerPage
from utils.audit import write_log
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/customers", tags=["Customers"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)


def _get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f'Customer with ID "{customer_id}" not found.')
    return customer


@router.get("", response_model=CustomerPage)
def list_customers(
    q: Optional[str] = Query(None, description="Search by name or e-mail"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Customer)
    if q:
        like = f"%{q}%"
        query = query.filter(Customer.name.ilike(like) | Customer.email.ilike(like))
    total = query.count()
    items = query.order_by(Customer.name.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_customer(db, customer_id)


@router.post("", response_model=CustomerOut, status_code=201)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        customer = Customer(**payload.model_dump())
        db.add(customer)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_CUSTOMER", entity="Customer",
                  entity_id=customer.id, meta={"name": customer.name})
    return customer


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    changes = payload.model_dump(exclude_unset=True)
    with UnitOfWork(db):
        customer = _get_customer(db, customer_id)
        for field, value in changes.items():
            setattr(customer, field, value)
        write_log(db, user_id=current_user.id, action="UPDATE_CUSTOMER", entity="Customer",
                  entity_id=customer.id, meta=changes)
    return customer


@router.delete("/{customer_id}", status_code=204)
def delete_customer(customer_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        customer = _get_customer(db, customer_id)
        if db.query(SalesOrder.id).filter(SalesOrder.customer_id == customer_id).first():
            raise ConflictError(f'Cannot delete customer "{customer.name}": it has sales orders.')
        db.delete(customer)
        write_log(db, user_id=current_user.id, action="DELETE_CUSTOMER", entity="Customer",
                  entity_id=customer_id, meta={"name": customer.name})
    return Response(status_code=204)
