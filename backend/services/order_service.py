"""
Purchase and sales orders: creation, manual status changes and line fulfillment.

Both order kinds share one code path parameterized by FulfillmentDirection:
PURCHASE receives stock into a location without a floor, SALE ships stock out
of a location and refuses to go below zero. The header status after any
fulfillment is recomputed from the item counters by ``derive_status``.
"""
import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from database import UnitOfWork
from errors import (
    NotFoundError, InvalidArgumentError, BadRequestError, ConflictError, InvalidTransitionError,
)
from models.customer import Customer
from models.location import Location
from models.order import (
    OrderStatus, PurchaseOrder, PurchaseOrderItem, SalesOrder, SalesOrderItem,
)
from models.product import Product
from models.supplier import Supplier
from services import notification_service, transaction_service
from services.transaction_service import FulfillmentDirection
from utils.audit import write_log

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


@dataclass(frozen=True)
class OrderKind:
    direction: FulfillmentDirection
    order_model: type
    item_model: type
    item_order_fk: str
    fulfilled_field: str
    price_field: str
    done_status: OrderStatus
    entity: str
    label: str
    prefix: str
    verb: str
    past: str
    create_action: str
    status_action: str
    fulfill_action: str


PURCHASE = OrderKind(
    direction=FulfillmentDirection.PURCHASE,
    order_model=PurchaseOrder, item_model=PurchaseOrderItem,
    item_order_fk="purchase_order_id", fulfilled_field="quantity_received", price_field="unit_cost",
    done_status=OrderStatus.RECEIVED,
    entity="PurchaseOrder", label="Purchase Order", prefix="PO",
    verb="receive", past="received",
    create_action="CREATE_PURCHASE_ORDER", status_action="UPDATE_PURCHASE_ORDER_STATUS",
    fulfill_action="RECEIVE_PO_ITEM",
)

SALE = OrderKind(
    direction=FulfillmentDirection.SALE,
    order_model=SalesOrder, item_model=SalesOrderItem,
    item_order_fk="sales_order_id", fulfilled_field="quantity_shipped", price_field="unit_price",
    done_status=OrderStatus.SHIPPED,
    entity="SalesOrder", label="Sales Order", prefix="SO",
    verb="ship", past="shipped",
    create_action="CREATE_SALES_ORDER", status_action="UPDATE_SALES_ORDER_STATUS",
    fulfill_action="SHIP_SO_ITEM",
)

KINDS = {FulfillmentDirection.PURCHASE: PURCHASE, FulfillmentDirection.SALE: SALE}


def kind_for(direction) -> OrderKind:
    return KINDS[FulfillmentDirection(direction)]


# --- status rules ---

def derive_status(lines: Iterable[Tuple[int, int]], direction) -> OrderStatus:
    """
    Status implied by (ordered, fulfilled) pairs alone.

    Nothing fulfilled is PENDING, everything fulfilled is RECEIVED or SHIPPED
    depending on direction, anything in between is PARTIAL.
    """
    total_ordered = 0
    total_fulfilled = 0
    for ordered, fulfilled in lines:
        total_ordered += ordered
        total_fulfilled += fulfilled

    if total_fulfilled == 0:
        return OrderStatus.PENDING
    if total_fulfilled < total_ordered:
        return OrderStatus.PARTIAL
    return kind_for(direction).done_status


def allowed_transitions(direction) -> dict:
    done = kind_for(direction).done_status
    return {
        OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.CANCELLED},
        OrderStatus.APPROVED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, done, OrderStatus.PARTIAL},
        OrderStatus.PROCESSING: {done, OrderStatus.PARTIAL, OrderStatus.CANCELLED},
        OrderStatus.PARTIAL: {done, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
        done: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    }


def fulfillable_statuses(direction) -> frozenset:
    done = kind_for(direction).done_status
    return frozenset({OrderStatus.APPROVED, OrderStatus.PROCESSING, OrderStatus.PARTIAL, done})


def _parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidArgumentError(f'Unknown order status "{value}".')


# --- creation ---

def generate_order_number(prefix: str) -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=5))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def _number_taken(db: Session, kind: OrderKind, number: str) -> bool:
    model = kind.order_model
    return db.query(model.id).filter(model.order_number == number).first() is not None


def _validate_items(db: Session, kind: OrderKind, items: List[dict]) -> None:
    if not items:
        raise InvalidArgumentError("An order must contain at least one item.")

    for line in items:
        if not line.get("quantity_ordered") or line["quantity_ordered"] <= 0:
            raise InvalidArgumentError("Ordered quantity must be a positive integer.")
        if (line.get(kind.price_field) or 0) < 0:
            raise InvalidArgumentError("Item price cannot be negative.")

    product_ids = {line["product_id"] for line in items}
    found = {row[0] for row in db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
    missing = sorted(product_ids - found)
    if missing:
        raise NotFoundError(f"Product(s) with IDs not found: {', '.join(str(i) for i in missing)}")


def _create_order(db: Session, kind: OrderKind, actor_id: int, header: dict, items: List[dict],
                  order_number: Optional[str], notifier=None):
    _validate_items(db, kind, items)

    with UnitOfWork(db, notifier):
        if order_number:
            if _number_taken(db, kind, order_number):
                raise ConflictError(f'{kind.label} number "{order_number}" already exists.')
        else:
            order_number = generate_order_number(kind.prefix)
            while _number_taken(db, kind, order_number):
                order_number = generate_order_number(kind.prefix)

        order = kind.order_model(
            order_number=order_number,
            user_id=actor_id,
            status=OrderStatus.PENDING.value,
            **{k: v for k, v in header.items() if v is not None},
        )
        for line in items:
            order.items.append(kind.item_model(
                product_id=line["product_id"],
                quantity_ordered=line["quantity_ordered"],
                **{kind.fulfilled_field: 0, kind.price_field: line.get(kind.price_field) or 0},
            ))
        db.add(order)
        db.flush()

        write_log(
            db, user_id=actor_id, action=kind.create_action, entity=kind.entity, entity_id=order.id,
            meta={"order_number": order.order_number, "item_count": len(items), **{
                k: v for k, v in header.items() if k.endswith("_id")
            }},
        )

    logger.info("Created %s %s with %s item(s)", kind.label, order.order_number, len(items))
    return order


def create_purchase_order(db: Session, actor_id: int, supplier_id: int, items: List[dict],
                          order_number: Optional[str] = None, order_date: Optional[datetime] = None,
                          expected_delivery_date: Optional[datetime] = None, notes: Optional[str] = None,
                          notifier=None) -> PurchaseOrder:
    if db.get(Supplier, supplier_id) is None:
        raise NotFoundError(f'Supplier with ID "{supplier_id}" not found.')

    header = {
        "supplier_id": supplier_id, "order_date": order_date,
        "expected_delivery_date": expected_delivery_date, "notes": notes,
    }
    return _create_order(db, PURCHASE, actor_id, header, items, order_number, notifier)


def create_sales_order(db: Session, actor_id: int, items: List[dict], customer_id: Optional[int] = None,
                       customer_ref: Optional[str] = None, order_number: Optional[str] = None,
                       order_date: Optional[datetime] = None, shipping_date: Optional[datetime] = None,
                       notes: Optional[str] = None, notifier=None) -> SalesOrder:
    if customer_id is not None and db.get(Customer, customer_id) is None:
        raise NotFoundError(f'Customer with ID "{customer_id}" not found.')

    header = {
        "customer_id": customer_id, "customer_ref": customer_ref, "order_date": order_date,
        "shipping_date": shipping_date, "notes": notes,
    }
    return _create_order(db, SALE, actor_id, header, items, order_number, notifier)


# --- reads ---

def _locked_order(db: Session, kind: OrderKind, order_id: int):
    stmt = (
        select(kind.order_model)
        .where(kind.order_model.id == order_id)
        .with_for_update(of=kind.order_model)
        .execution_options(populate_existing=True)
    )
    order = db.execute(stmt).scalar_one_or_none()
    if order is None:
        raise NotFoundError(f'{kind.label} with ID "{order_id}" not found.')
    return order


def get_order(db: Session, direction, order_id: int):
    kind = kind_for(direction)
    order = db.get(kind.order_model, order_id)
    if order is None:
        raise NotFoundError(f'{kind.label} with ID "{order_id}" not found.')
    return order


ORDER_SORT_FIELDS = {"orderDate": "order_date", "createdAt": "created_at", "orderNumber": "order_number"}


def list_orders(db: Session, direction, party_id: Optional[int] = None, user_id: Optional[int] = None,
                status: Optional[str] = None, order_number: Optional[str] = None,
                product_id: Optional[int] = None, start_date: Optional[datetime] = None,
                end_date: Optional[datetime] = None, sort_by: str = "createdAt", order: str = "desc",
                page: int = 1, page_size: int = 10):
    kind = kind_for(direction)
    model = kind.order_model

    if start_date and end_date and end_date < start_date:
        raise InvalidArgumentError("End date must be on or after start date.")

    query = db.query(model)
    if party_id:
        party_column = model.supplier_id if kind is PURCHASE else model.customer_id
        query = query.filter(party_column == party_id)
    if user_id:
        query = query.filter(model.user_id == user_id)
    if status:
        query = query.filter(model.status == _parse_status(status).value)
    if order_number:
        query = query.filter(model.order_number.ilike(f"%{order_number}%"))
    if product_id:
        item = kind.item_model
        query = query.filter(model.items.any(item.product_id == product_id))
    if start_date:
        query = query.filter(model.order_date >= start_date)
    if end_date:
        query = query.filter(model.order_date <= end_date)

    column = getattr(model, ORDER_SORT_FIELDS.get(sort_by, "created_at"))
    query = query.order_by(column.asc() if order == "asc" else column.desc(), model.id.desc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# --- manual status changes ---

def update_status(db: Session, direction, order_id: int, new_status, actor_id: int,
                  notes: Optional[str] = None, shipping_date: Optional[datetime] = None,
                  notifier=None):
    kind = kind_for(direction)
    target = _parse_status(new_status)

    with UnitOfWork(db, notifier) as uow:
        order = _locked_order(db, kind, order_id)
        current = OrderStatus(order.status)

        if current in TERMINAL_STATUSES:
            logger.warning("Refused status change of %s %s: already %s", kind.label, order.order_number, current.value)
            raise InvalidTransitionError(
                f"Cannot transition {kind.label} from status {current.value} to {target.value}."
            )
        if target not in allowed_transitions(direction).get(current, set()):
            logger.warning("Refused status change of %s %s from %s to %s",
                           kind.label, order.order_number, current.value, target.value)
            raise InvalidTransitionError(
                f"Cannot transition {kind.label} from status {current.value} to {target.value}."
            )

        order.status = target.value
        if notes is not None:
            order.notes = notes
        if shipping_date is not None and kind is SALE:
            order.shipping_date = shipping_date
        db.flush()

        write_log(
            db, user_id=actor_id, action=kind.status_action, entity=kind.entity, entity_id=order.id,
            meta={"old_status": current.value, "new_status": target.value, "notes": notes},
        )
        notification_service.on_order_status_changed(
            uow, order.id, kind.entity, order.order_number, target.value, order.user_id,
        )

    logger.info("%s %s status changed from %s to %s", kind.label, order.order_number, current.value, target.value)
    return order


# --- fulfillment ---

def fulfill_item(db: Session, direction, order_id: int, item_id: int, quantity: int, location_id: int,
                 actor_id: int, notes: Optional[str] = None, notifier=None):
    """
    Receive (PURCHASE) or ship (SALE) ``quantity`` of one order line at ``location_id``.

    The stock movement, its ledger entry, the item counter and the header
    status are committed together. A status change is announced to the order
    creator after commit.

    Raises:
        NotFoundError: order, item, product or location missing, or the item
            belongs to another order.
        ConflictError: the order is not in a fulfillable status.
        InvalidArgumentError: quantity is not positive.
        BadRequestError: quantity exceeds what remains on the line.
        InsufficientStockError: shipping more than the location holds.
    """
    kind = kind_for(direction)
    item_model = kind.item_model

    with UnitOfWork(db, notifier) as uow:
        order = _locked_order(db, kind, order_id)
        item = db.execute(
            select(item_model)
            .where(item_model.id == item_id)
            .with_for_update(of=item_model)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None or getattr(item, kind.item_order_fk) != order.id:
            raise NotFoundError(f'{kind.label} Item with ID "{item_id}" on order "{order_id}" not found.')

        current = OrderStatus(order.status)
        if current not in fulfillable_statuses(direction):
            logger.warning("Refused to %s items for %s %s in status %s",
                           kind.verb, kind.label, order.order_number, current.value)
            raise ConflictError(f'Cannot {kind.verb} items for {kind.label} with status "{current.value}".')

        if quantity is None or quantity <= 0:
            raise InvalidArgumentError(f"Quantity to {kind.verb} must be positive.")

        fulfilled = getattr(item, kind.fulfilled_field)
        remaining = item.quantity_ordered - fulfilled
        if quantity > remaining:
            logger.warning("Refused to %s %s units of item %s (remaining %s)", kind.verb, quantity, item_id, remaining)
            raise BadRequestError(
                f"Cannot {kind.verb} {quantity} units. Total {kind.past} ({fulfilled + quantity}) would exceed "
                f"ordered quantity ({item.quantity_ordered}) for item {item_id}. Remaining: {remaining}"
            )

        if db.get(Location, location_id) is None:
            raise NotFoundError(f'Location with ID "{location_id}" not found.')

        transaction_service.record_fulfillment(
            uow, actor_id, item.product_id, location_id, quantity, order.id, direction, notes=notes,
        )

        setattr(item, kind.fulfilled_field, fulfilled + quantity)
        db.flush()

        lines = [
            (line.quantity_ordered, getattr(line, kind.fulfilled_field))
            for line in db.query(item_model).filter(getattr(item_model, kind.item_order_fk) == order.id).all()
        ]
        derived = derive_status(lines, direction)
        changed = derived != current and current not in TERMINAL_STATUSES
        if changed:
            order.status = derived.value
            db.flush()
            notification_service.on_order_status_changed(
                uow, order.id, kind.entity, order.order_number, derived.value, order.user_id,
            )

        write_log(
            db, user_id=actor_id, action=kind.fulfill_action, entity=item_model.__name__, entity_id=item.id,
            meta={
                "order_id": order.id, "product_id": item.product_id, "quantity": quantity,
                "location_id": location_id, f"total_{kind.past}": fulfilled + quantity, "notes": notes,
            },
        )

    if changed:
        logger.info("%s %s status recomputed from %s to %s", kind.label, order.order_number, current.value, derived.value)
    return item


def receive_purchase_order_item(db: Session, order_id: int, item_id: int, quantity: int, location_id: int,
                                actor_id: int, notes: Optional[str] = None, notifier=None):
    return fulfill_item(db, FulfillmentDirection.PURCHASE, order_id, item_id, quantity, location_id,
                        actor_id, notes, notifier)


def ship_sales_order_item(db: Session, order_id: int, item_id: int, quantity: int, location_id: int,
                          actor_id: int, notes: Optional[str] = None, notifier=None):
    return fulfill_item(db, FulfillmentDirection.SALE, order_id, item_id, quantity, location_id,
                        actor_id, notes, notifier)
