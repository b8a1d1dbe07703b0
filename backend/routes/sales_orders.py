# backend/routes/sales_orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, Literal
from datetime import datetime

from database import get_db
from models.order import OrderStatus
from models.users import User, UserRole
from services import order_service
from services.transaction_service import FulfillmentDirection
from utils.notifier import get_notifier
from utils.tokenJWT import get_current_user, role_required
import schemas.order as order_schemas

router = APIRouter(prefix="/sales-orders", tags=["Sales Orders"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)
can_fulfill = role_required(UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF)


@router.post("", response_model=order_schemas.SalesOrderOut, status_code=201)
def create_sales_order(
    payload: order_schemas.SalesOrderCreate,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    current_user: User = Depends(can_manage),
):
    return order_service.create_sales_order(
        db, current_user.id, [i.model_dump() for i in payload.items],
        customer_id=payload.customer_id, customer_ref=payload.customer_ref,
        order_number=payload.order_number, order_date=payload.order_date,
        shipping_date=payload.shipping_date, notes=payload.notes, notifier=notifier,
    )


@router.get("", response_model=order_schemas.SalesOrderPage)
def list_sales_orders(
    customer_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    order_number: Optional[str] = Query(None),
    product_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    sort_by: Literal["orderDate", "createdAt", "orderNumber"] = "createdAt",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return order_service.list_orders(
        db, FulfillmentDirection.SALE, party_id=customer_id, user_id=user_id, status=status,
        order_number=order_number, product_id=product_id, start_date=start_date, end_date=end_date,
        sort_by=sort_by, order=order, page=page, page_size=page_size,
    )


@router.get("/{order_id}", response_model=order_schemas.SalesOrderOut)
def get_sales_order(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return order_service.get_order(db, FulfillmentDirection.SALE, order_id)


@router.patch("/{order_id}/status", response_model=order_schemas.SalesOrderOut)
def update_sales_order_status(
    order_id: int,
    payload: order_schemas.OrderStatusPatch,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    current_user: User = Depends(can_manage),
):
    return order_service.update_status(
        db, FulfillmentDirection.SALE, order_id, payload.status, current_user.id,
        notes=payload.notes, shipping_date=payload.shipping_date, notifier=notifier,
    )


# Ship part of one line out of a location
@router.post("/{order_id}/items/{item_id}/ship", response_model=order_schemas.SalesOrderItemOut)
def ship_sales_order_item(
    order_id: int,
    item_id: int,
    payload: order_schemas.FulfillItemPayload,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    current_user: User = Depends(can_fulfill),
):
    return order_service.ship_sales_order_item(
        db, order_id, item_id, payload.quantity, payload.location_id, current_user.id,
        notes=payload.notes, notifier=notifier,
    )
