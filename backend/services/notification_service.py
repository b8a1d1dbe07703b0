"""
Notification trigger and outbound delivery.

The inventory core never talks to the notification store directly. It emits
events on its UnitOfWork; after commit the UnitOfWork publishes them to a
NotificationDispatcher, which persists one Notification row per recipient in
its own session. Delivery failures are logged and dropped: they can never fail
or roll back the operation that produced the event.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from errors import NotFoundError
from models.notification import Notification, NotificationType
from models.users import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowStockCrossed:
    product_id: int
    sku: str
    name: str
    reorder_level: int
    location_id: int
    new_quantity: int


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: int
    order_type: str  # "PurchaseOrder" | "SalesOrder"
    order_number: str
    new_status: str
    notify_user_id: int


# --- invocation points used by the core ---

def on_low_stock_crossed(uow, product, location_id: int, new_quantity: int) -> None:
    uow.emit(LowStockCrossed(
        product_id=product.id, sku=product.sku, name=product.name,
        reorder_level=product.reorder_level, location_id=location_id,
        new_quantity=new_quantity,
    ))


def on_order_status_changed(uow, order_id: int, order_type: str, order_number: str,
                            new_status: str, notify_user_id: int) -> None:
    uow.emit(OrderStatusChanged(
        order_id=order_id, order_type=order_type, order_number=order_number,
        new_status=new_status, notify_user_id=notify_user_id,
    ))


# --- persistence ---

def notify(db: Session, user_id: int, message: str, category: NotificationType = NotificationType.GENERAL,
           related_entity_id=None, related_entity_type: Optional[str] = None) -> Notification:
    notification = Notification(
        user_id=user_id,
        message=message,
        type=category.value,
        related_entity_id=str(related_entity_id) if related_entity_id is not None else None,
        related_entity_type=related_entity_type,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    logger.info("Notification created for user %s: %r (type: %s)", user_id, message, category.value)
    return notification


def find_admin_manager_ids(db: Session) -> List[int]:
    rows = (
        db.query(User.id)
        .filter(User.role.in_([UserRole.ADMIN.value, UserRole.MANAGER.value]), User.is_active.is_(True))
        .all()
    )
    return [r[0] for r in rows]


def low_stock_message(event: LowStockCrossed) -> str:
    return (
        f"Low stock alert: {event.name} (SKU: {event.sku}) is at {event.new_quantity} units "
        f"(Reorder Level: {event.reorder_level}) at location ID {event.location_id}."
    )


def status_change_message(event: OrderStatusChanged) -> str:
    type_name = "Purchase Order" if event.order_type == "PurchaseOrder" else "Sales Order"
    return f"{type_name} #{event.order_number} status updated to {event.new_status}."


def deliver_event(db: Session, event) -> int:
    """Write the notification rows for one event. Returns the number written."""
    if isinstance(event, LowStockCrossed):
        recipients = find_admin_manager_ids(db)
        message = low_stock_message(event)
        for user_id in recipients:
            notify(db, user_id, message, NotificationType.LOW_STOCK, event.product_id, "Product")
        return len(recipients)

    if isinstance(event, OrderStatusChanged):
        notify(db, event.notify_user_id, status_change_message(event),
               NotificationType.ORDER_STATUS_UPDATE, event.order_id, event.order_type)
        return 1

    logger.warning("Ignoring unknown notification event %r", event)
    return 0


class NotificationDispatcher:
    """
    Outbound channel for notification events.

    ``deliver`` writes the rows for one event in a fresh session. ``publish``
    delivers inline; request handlers wrap the dispatcher in a
    BackgroundNotifier so delivery runs after the response is sent. Either way
    a delivery problem is logged and never raised.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def publish(self, event) -> None:
        self.deliver(event)

    def deliver(self, event) -> None:
        db = self.session_factory()
        try:
            deliver_event(db, event)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to deliver notification event %r", event)
        finally:
            db.close()


class BackgroundNotifier:
    """Defers delivery to FastAPI background tasks of the current request."""

    def __init__(self, background_tasks: BackgroundTasks, dispatcher: NotificationDispatcher):
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    def publish(self, event) -> None:
        self.background_tasks.add_task(self.dispatcher.deliver, event)


# --- read side used by the notifications routes ---

def list_user_notifications(db: Session, user_id: int, is_read: Optional[bool] = None,
                            page: int = 1, page_size: int = 15):
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if is_read is not None:
        query = query.filter(Notification.is_read.is_(is_read))

    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * page_size).limit(page_size).all()
    )
    unread = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size, "unread_count": unread}


def mark_as_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    # Someone else's notification is reported as missing
    if not notification or notification.user_id != user_id:
        if notification:
            logger.warning("User %s attempted to read notification %s owned by user %s",
                           user_id, notification_id, notification.user_id)
        raise NotFoundError(f'Notification with ID "{notification_id}" not found.')
    if not notification.is_read:
        notification.is_read = True
        db.flush()
    return notification


def mark_all_as_read(db: Session, user_id: int) -> int:
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    logger.info("Marked %s notifications as read for user %s", count, user_id)
    return count
