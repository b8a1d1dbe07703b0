import re

import pytest

from conftest import FailingNotifier
from errors import (
    BadRequestError, ConflictError, InsufficientStockError, InvalidArgumentError,
    InvalidTransitionError, NotFoundError,
)
from models.log import AuditLog
from models.order import OrderStatus, PurchaseOrderItem
from models.transaction import Transaction, TransactionType
from services import order_service, stock_service, transaction_service
from services.notification_service import LowStockCrossed, OrderStatusChanged
from services.transaction_service import AdjustmentDirection, FulfillmentDirection

PURCHASE = FulfillmentDirection.PURCHASE
SALE = FulfillmentDirection.SALE


def _qty(db, product, location):
    level = stock_service.get_stock_level(db, product.id, location.id)
    return level.quantity if level else None


def _approved_po(db, manager, supplier, product, ordered=10):
    order = order_service.create_purchase_order(
        db, manager.id, supplier.id, [{"product_id": product.id, "quantity_ordered": ordered, "unit_cost": 1.5}],
    )
    order_service.update_status(db, PURCHASE, order.id, OrderStatus.APPROVED, manager.id)
    return order


def _approved_so(db, manager, product, ordered=5, customer=None):
    order = order_service.create_sales_order(
        db, manager.id, [{"product_id": product.id, "quantity_ordered": ordered, "unit_price": 2.0}],
        customer_id=customer.id if customer else None,
    )
    order_service.update_status(db, SALE, order.id, OrderStatus.APPROVED, manager.id)
    return order


# --- creation ---

def test_create_purchase_order(db, manager, supplier, product):
    order = order_service.create_purchase_order(
        db, manager.id, supplier.id,
        [{"product_id": product.id, "quantity_ordered": 4, "unit_cost": 2.5}], notes="first",
    )

    assert order.status == OrderStatus.PENDING.value
    assert re.fullmatch(r"PO-\d+-[A-Z0-9]{5}", order.order_number)
    assert order.user_id == manager.id
    assert [(i.quantity_ordered, i.quantity_received, i.unit_cost) for i in order.items] == [(4, 0, 2.5)]
    assert db.query(AuditLog).filter(AuditLog.action == "CREATE_PURCHASE_ORDER").count() == 1


def test_create_order_validates_references(db, manager, supplier, product):
    with pytest.raises(NotFoundError):
        order_service.create_purchase_order(db, manager.id, 9999, [{"product_id": product.id, "quantity_ordered": 1}])

    with pytest.raises(NotFoundError) as exc_info:
        order_service.create_purchase_order(
            db, manager.id, supplier.id,
            [{"product_id": product.id, "quantity_ordered": 1}, {"product_id": 777, "quantity_ordered": 1}],
        )
    assert "777" in exc_info.value.detail

    with pytest.raises(NotFoundError):
        order_service.create_sales_order(db, manager.id, [{"product_id": product.id, "quantity_ordered": 1}],
                                         customer_id=9999)

    with pytest.raises(InvalidArgumentError):
        order_service.create_purchase_order(db, manager.id, supplier.id, [])


def test_supplied_order_number_must_be_unique(db, manager, supplier, product):
    line = [{"product_id": product.id, "quantity_ordered": 1}]
    order_service.create_purchase_order(db, manager.id, supplier.id, line, order_number="PO-FIXED-1")

    with pytest.raises(ConflictError):
        order_service.create_purchase_order(db, manager.id, supplier.id, line, order_number="PO-FIXED-1")


def test_sales_order_without_customer(db, manager, product):
    order = order_service.create_sales_order(
        db, manager.id, [{"product_id": product.id, "quantity_ordered": 2}], customer_ref="walk-in",
    )
    assert order.customer_id is None
    assert order.customer_ref == "walk-in"
    assert order.order_number.startswith("SO-")


# --- receipt ---

def test_receipt_completing_the_line(db, notifier, manager, staff, supplier, tracked_product, locations):
    main, _ = locations
    order = _approved_po(db, manager, supplier, tracked_product)
    item = order.items[0]

    order_service.receive_purchase_order_item(db, order.id, item.id, 7, main.id, staff.id)
    db.refresh(order)
    assert order.status == OrderStatus.PARTIAL.value

    updated = order_service.receive_purchase_order_item(db, order.id, item.id, 3, main.id, staff.id,
                                                        notifier=notifier)

    db.refresh(order)
    assert updated.quantity_received == 10
    assert order.status == OrderStatus.RECEIVED.value
    assert _qty(db, tracked_product, main) == 10
    # Stock went up, so no threshold was crossed
    assert notifier.of_type(LowStockCrossed) == []

    changed = notifier.of_type(OrderStatusChanged)
    assert len(changed) == 1
    assert changed[0].new_status == OrderStatus.RECEIVED.value
    assert changed[0].notify_user_id == manager.id
    assert changed[0].order_type == "PurchaseOrder"

    rows = db.query(Transaction).filter(Transaction.related_po_id == order.id).order_by(Transaction.id).all()
    assert [(t.type, t.quantity_change, t.destination_location_id) for t in rows] == [
        (TransactionType.PURCHASE.value, 7, main.id),
        (TransactionType.PURCHASE.value, 3, main.id),
    ]


def test_over_receipt_is_rejected(db, manager, staff, supplier, product, locations):
    main, _ = locations
    order = _approved_po(db, manager, supplier, product)
    item = order.items[0]
    order_service.receive_purchase_order_item(db, order.id, item.id, 7, main.id, staff.id)

    with pytest.raises(BadRequestError) as exc_info:
        order_service.receive_purchase_order_item(db, order.id, item.id, 5, main.id, staff.id)

    assert "Remaining: 3" in exc_info.value.detail
    db.refresh(item)
    assert item.quantity_received == 7
    assert _qty(db, product, main) == 7
    assert db.query(Transaction).count() == 1


def test_receipt_requires_fulfillable_status(db, manager, staff, supplier, product, locations):
    main, _ = locations
    order = order_service.create_purchase_order(
        db, manager.id, supplier.id, [{"product_id": product.id, "quantity_ordered": 3}],
    )
    item_id = order.items[0].id

    with pytest.raises(ConflictError):
        order_service.receive_purchase_order_item(db, order.id, item_id, 1, main.id, staff.id)

    order_service.update_status(db, PURCHASE, order.id, OrderStatus.CANCELLED, manager.id)
    with pytest.raises(ConflictError):
        order_service.receive_purchase_order_item(db, order.id, item_id, 1, main.id, staff.id)

    assert _qty(db, product, main) is None


def test_receipt_validates_item_quantity_and_location(db, manager, staff, supplier, product, locations):
    main, _ = locations
    first = _approved_po(db, manager, supplier, product)
    second = _approved_po(db, manager, supplier, product)

    with pytest.raises(NotFoundError):
        order_service.receive_purchase_order_item(db, first.id, second.items[0].id, 1, main.id, staff.id)
    with pytest.raises(NotFoundError):
        order_service.receive_purchase_order_item(db, 9999, first.items[0].id, 1, main.id, staff.id)
    with pytest.raises(InvalidArgumentError):
        order_service.receive_purchase_order_item(db, first.id, first.items[0].id, 0, main.id, staff.id)
    with pytest.raises(NotFoundError):
        order_service.receive_purchase_order_item(db, first.id, first.items[0].id, 1, 9999, staff.id)

    assert db.query(Transaction).count() == 0
    assert db.query(PurchaseOrderItem).filter(PurchaseOrderItem.quantity_received > 0).count() == 0


# --- shipment ---

def test_shipment_beyond_stock_aborts_everything(db, notifier, manager, staff, product, locations):
    main, _ = locations
    transaction_service.record_adjustment(db, manager.id, product.id, main.id, 2, AdjustmentDirection.IN)
    order = _approved_so(db, manager, product, ordered=5)
    item = order.items[0]

    with pytest.raises(InsufficientStockError):
        order_service.ship_sales_order_item(db, order.id, item.id, 3, main.id, staff.id, notifier=notifier)

    db.refresh(item)
    db.refresh(order)
    assert item.quantity_shipped == 0
    assert order.status == OrderStatus.APPROVED.value
    assert _qty(db, product, main) == 2
    assert notifier.events == []


def test_shipment_crossing_reorder_level(db, notifier, manager, staff, customer, tracked_product, locations):
    main, _ = locations
    transaction_service.record_adjustment(db, manager.id, tracked_product.id, main.id, 14, AdjustmentDirection.IN)
    order = _approved_so(db, manager, tracked_product, ordered=6, customer=customer)
    item = order.items[0]

    order_service.ship_sales_order_item(db, order.id, item.id, 6, main.id, staff.id, notifier=notifier)

    db.refresh(order)
    assert order.status == OrderStatus.SHIPPED.value
    assert _qty(db, tracked_product, main) == 8

    low = notifier.of_type(LowStockCrossed)
    assert len(low) == 1 and low[0].new_quantity == 8
    changed = notifier.of_type(OrderStatusChanged)
    assert [e.new_status for e in changed] == [OrderStatus.SHIPPED.value]

    sale = db.query(Transaction).filter(Transaction.related_so_id == order.id).one()
    assert sale.type == TransactionType.SALE.value
    assert sale.quantity_change == -6
    assert sale.source_location_id == main.id
    assert db.query(AuditLog).filter(AuditLog.action == "SHIP_SO_ITEM").count() == 1


def test_notification_failure_does_not_undo_fulfillment(db, manager, staff, supplier, product, locations):
    main, _ = locations
    order = _approved_po(db, manager, supplier, product, ordered=4)
    failing = FailingNotifier()

    order_service.receive_purchase_order_item(db, order.id, order.items[0].id, 4, main.id, staff.id,
                                              notifier=failing)

    assert failing.calls == 1
    db.refresh(order)
    assert order.status == OrderStatus.RECEIVED.value
    assert _qty(db, product, main) == 4


# --- manual status changes ---

def test_manual_transitions(db, notifier, manager, supplier, product):
    order = order_service.create_purchase_order(
        db, manager.id, supplier.id, [{"product_id": product.id, "quantity_ordered": 3}],
    )

    with pytest.raises(InvalidTransitionError):
        order_service.update_status(db, PURCHASE, order.id, OrderStatus.RECEIVED, manager.id)

    for status in (OrderStatus.APPROVED, OrderStatus.PROCESSING, OrderStatus.RECEIVED, OrderStatus.COMPLETED):
        order_service.update_status(db, PURCHASE, order.id, status, manager.id, notifier=notifier)

    assert [e.new_status for e in notifier.of_type(OrderStatusChanged)] == [
        "APPROVED", "PROCESSING", "RECEIVED", "COMPLETED",
    ]

    # Terminal
    with pytest.raises(InvalidTransitionError):
        order_service.update_status(db, PURCHASE, order.id, OrderStatus.CANCELLED, manager.id)

    assert db.query(AuditLog).filter(AuditLog.action == "UPDATE_PURCHASE_ORDER_STATUS").count() == 4


def test_sales_orders_use_shipped_not_received(db, manager, product):
    order = _approved_so(db, manager, product)

    with pytest.raises(InvalidTransitionError):
        order_service.update_status(db, SALE, order.id, OrderStatus.RECEIVED, manager.id)

    updated = order_service.update_status(db, SALE, order.id, OrderStatus.SHIPPED, manager.id)
    assert updated.status == OrderStatus.SHIPPED.value


def test_unknown_status_value(db, manager, supplier, product):
    order = _approved_po(db, manager, supplier, product)
    with pytest.raises(InvalidArgumentError):
        order_service.update_status(db, PURCHASE, order.id, "LOST", manager.id)


# --- reads ---

def test_list_orders_filters(db, manager, admin, supplier, product, tracked_product):
    order_service.create_purchase_order(db, manager.id, supplier.id, [{"product_id": product.id, "quantity_ordered": 1}])
    order_service.create_purchase_order(db, admin.id, supplier.id,
                                        [{"product_id": tracked_product.id, "quantity_ordered": 1}])

    assert order_service.list_orders(db, PURCHASE)["total"] == 2
    assert order_service.list_orders(db, PURCHASE, user_id=admin.id)["total"] == 1
    by_product = order_service.list_orders(db, PURCHASE, product_id=tracked_product.id)
    assert [o.user_id for o in by_product["items"]] == [admin.id]
    assert order_service.list_orders(db, PURCHASE, status="PENDING")["total"] == 2
    assert order_service.list_orders(db, SALE)["total"] == 0

    with pytest.raises(NotFoundError):
        order_service.get_order(db, PURCHASE, 9999)
