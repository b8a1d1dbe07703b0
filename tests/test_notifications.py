import asyncio
import logging

import pytest
from fastapi import BackgroundTasks

from config import settings
from conftest import RecordingNotifier, _make_user
from database import UnitOfWork
from errors import NotFoundError
from models.location import Location
from models.notification import Notification, NotificationType
from models.users import UserRole
from services import notification_service
from services.notification_service import (
    BackgroundNotifier, LowStockCrossed, NotificationDispatcher, OrderStatusChanged,
)
from utils.notifier import dispatcher, get_notifier


def _low_stock_event():
    return LowStockCrossed(product_id=1, sku="SKU-LOW", name="Gadget", reorder_level=10,
                           location_id=2, new_quantity=8)


def test_low_stock_goes_to_active_admins_and_managers(db, session_factory, admin, manager, staff):
    retired = _make_user(db, "old.manager@example.com", UserRole.MANAGER, is_active=False)
    expected = {admin.id, manager.id}
    excluded = {staff.id, retired.id}
    db.commit()

    NotificationDispatcher(session_factory).publish(_low_stock_event())

    rows = db.query(Notification).all()
    assert {n.user_id for n in rows} == expected
    assert not excluded & {n.user_id for n in rows}
    assert all(n.type == NotificationType.LOW_STOCK.value for n in rows)
    assert rows[0].message == (
        "Low stock alert: Gadget (SKU: SKU-LOW) is at 8 units (Reorder Level: 10) at location ID 2."
    )
    assert rows[0].related_entity_type == "Product"
    assert rows[0].related_entity_id == "1"


def test_status_change_goes_to_order_creator(db, session_factory, admin, manager):
    creator_id = manager.id
    db.commit()

    event = OrderStatusChanged(order_id=5, order_type="SalesOrder", order_number="SO-1-ABCDE",
                               new_status="SHIPPED", notify_user_id=creator_id)
    NotificationDispatcher(session_factory).publish(event)

    row = db.query(Notification).one()
    assert row.user_id == creator_id
    assert row.message == "Sales Order #SO-1-ABCDE status updated to SHIPPED."
    assert row.type == NotificationType.ORDER_STATUS_UPDATE.value
    assert (row.related_entity_type, row.related_entity_id) == ("SalesOrder", "5")


def test_delivery_failure_is_logged_not_raised(db, session_factory, caplog):
    event = OrderStatusChanged(order_id=5, order_type="PurchaseOrder", order_number="PO-1-ABCDE",
                               new_status="RECEIVED", notify_user_id=9999)

    with caplog.at_level(logging.ERROR, logger="services.notification_service"):
        NotificationDispatcher(session_factory).publish(event)

    assert "Failed to deliver notification event" in caplog.text
    assert db.query(Notification).count() == 0


def test_background_notifier_defers_delivery_to_request_tasks(db, session_factory, admin, manager):
    db.commit()
    tasks = BackgroundTasks()
    notifier = BackgroundNotifier(tasks, NotificationDispatcher(session_factory))

    notifier.publish(_low_stock_event())
    assert db.query(Notification).count() == 0
    db.commit()

    asyncio.run(tasks())

    assert db.query(Notification).count() == 2


def test_notifier_dependency_follows_settings(monkeypatch):
    tasks = BackgroundTasks()

    monkeypatch.setattr(settings, "NOTIFICATIONS_ASYNC", True)
    deferred = get_notifier(tasks)
    assert isinstance(deferred, BackgroundNotifier)
    assert deferred.background_tasks is tasks

    monkeypatch.setattr(settings, "NOTIFICATIONS_ASYNC", False)
    assert get_notifier(tasks) is dispatcher


def test_unit_of_work_publishes_only_after_commit(db):
    notifier = RecordingNotifier()

    with UnitOfWork(db, notifier) as uow:
        uow.emit(_low_stock_event())
        db.add(Location(name="Dock"))
        assert notifier.events == []

    assert notifier.events == [_low_stock_event()]

    with pytest.raises(RuntimeError):
        with UnitOfWork(db, notifier) as uow:
            uow.emit(_low_stock_event())
            raise RuntimeError("boom")

    assert len(notifier.events) == 1


def test_publish_failure_keeps_committed_work(db):
    class Broken:
        def publish(self, event):
            raise RuntimeError("down")

    with UnitOfWork(db, Broken()) as uow:
        db.add(Location(name="Dock"))
        uow.emit(_low_stock_event())

    assert db.query(Location).filter(Location.name == "Dock").count() == 1


def test_reading_own_notifications(db, admin, manager):
    for i in range(3):
        notification_service.notify(db, admin.id, f"message {i}")
    other = notification_service.notify(db, manager.id, "not yours")
    db.commit()

    page = notification_service.list_user_notifications(db, admin.id)
    assert page["total"] == 3
    assert page["unread_count"] == 3

    first = page["items"][0]
    notification_service.mark_as_read(db, first.id, admin.id)
    db.commit()
    assert notification_service.list_user_notifications(db, admin.id)["unread_count"] == 2
    assert notification_service.list_user_notifications(db, admin.id, is_read=True)["total"] == 1

    with pytest.raises(NotFoundError):
        notification_service.mark_as_read(db, other.id, admin.id)

    assert notification_service.mark_all_as_read(db, admin.id) == 2
    db.commit()
    assert notification_service.list_user_notifications(db, admin.id)["unread_count"] == 0
    assert notification_service.list_user_notifications(db, manager.id)["unread_count"] == 1
