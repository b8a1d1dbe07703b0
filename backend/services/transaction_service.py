"""
Transaction recorder: the append-only ledger of stock movements.

``record`` only appends a row. The compositions below pair it with
stock_service.adjust inside one UnitOfWork so the balance and the entry that
explains it are committed together.
"""
import enum
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session

from database import UnitOfWork
from errors import InvalidArgumentError
from models.transaction import Transaction, TransactionType
from services import stock_service
from utils.audit import write_log

logger = logging.getLogger(__name__)

INBOUND_TYPES = (TransactionType.PURCHASE, TransactionType.ADJUSTMENT_IN, TransactionType.TRANSFER_IN)
OUTBOUND_TYPES = (TransactionType.SALE, TransactionType.ADJUSTMENT_OUT, TransactionType.TRANSFER_OUT)


class AdjustmentDirection(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class FulfillmentDirection(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"


def _require_positive(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise InvalidArgumentError("Quantity must be a positive integer.")


# Stamped at write time, after the stock row lock is held
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def record(uow, tx_type: TransactionType, product_id: int, quantity_change: int, actor_id: int,
           source_location_id: Optional[int] = None, destination_location_id: Optional[int] = None,
           related_po_id: Optional[int] = None, related_so_id: Optional[int] = None,
           notes: Optional[str] = None, transfer_group: Optional[str] = None) -> Transaction:
    tx = Transaction(
        type=TransactionType(tx_type).value,
        product_id=product_id,
        quantity_change=quantity_change,
        source_location_id=source_location_id,
        destination_location_id=destination_location_id,
        user_id=actor_id,
        related_po_id=related_po_id,
        related_so_id=related_so_id,
        transfer_group=transfer_group,
        notes=notes,
        timestamp=_utcnow(),
    )
    uow.session.add(tx)
    uow.session.flush()
    return tx


def record_adjustment(db: Session, actor_id: int, product_id: int, location_id: int, quantity: int,
                      direction: AdjustmentDirection, notes: Optional[str] = None,
                      notifier=None) -> Transaction:
    """
    Manual stock correction at one location.

    OUT refuses to drive the balance below zero; IN is never refused.
    """
    _require_positive(quantity)
    direction = AdjustmentDirection(direction)

    with UnitOfWork(db, notifier) as uow:
        if direction == AdjustmentDirection.IN:
            tx_type = TransactionType.ADJUSTMENT_IN
            change = quantity
            stock_service.adjust(uow, product_id, location_id, change, enforce_non_negative=False)
            tx = record(uow, tx_type, product_id, change, actor_id,
                        destination_location_id=location_id, notes=notes)
        else:
            tx_type = TransactionType.ADJUSTMENT_OUT
            change = -quantity
            stock_service.adjust(uow, product_id, location_id, change, enforce_non_negative=True)
            tx = record(uow, tx_type, product_id, change, actor_id,
                        source_location_id=location_id, notes=notes)

        write_log(
            db, user_id=actor_id, action=f"STOCK_{tx_type.value}", entity="Transaction", entity_id=tx.id,
            meta={"product_id": product_id, "location_id": location_id, "quantity": quantity, "notes": notes},
        )

    logger.info("Recorded %s of %s for product %s at location %s", tx_type.value, quantity, product_id, location_id)
    return tx


def record_transfer(db: Session, actor_id: int, product_id: int, from_location_id: int,
                    to_location_id: int, quantity: int, notes: Optional[str] = None,
                    notifier=None) -> Tuple[Transaction, Transaction]:
    """
    Move stock between two locations.

    Writes a TRANSFER_OUT row at the source and a TRANSFER_IN row at the
    destination. Both carry both location ids and the same transfer_group.
    If either side fails, neither balance changes.
    """
    if from_location_id == to_location_id:
        raise InvalidArgumentError("Source and destination locations cannot be the same.")
    _require_positive(quantity)

    group = str(uuid.uuid4())
    with UnitOfWork(db, notifier) as uow:
        stock_service.adjust(uow, product_id, from_location_id, -quantity, enforce_non_negative=True)
        stock_service.adjust(uow, product_id, to_location_id, quantity, enforce_non_negative=False)

        out_tx = record(uow, TransactionType.TRANSFER_OUT, product_id, -quantity, actor_id,
                        source_location_id=from_location_id, destination_location_id=to_location_id,
                        notes=notes, transfer_group=group)
        in_tx = record(uow, TransactionType.TRANSFER_IN, product_id, quantity, actor_id,
                       source_location_id=from_location_id, destination_location_id=to_location_id,
                       notes=notes, transfer_group=group)

        write_log(
            db, user_id=actor_id, action="STOCK_TRANSFER", entity="Transaction", entity_id=group,
            meta={
                "product_id": product_id, "from_location_id": from_location_id,
                "to_location_id": to_location_id, "quantity": quantity,
                "out_transaction_id": out_tx.id, "in_transaction_id": in_tx.id, "notes": notes,
            },
        )

    logger.info("Transferred %s of product %s from location %s to %s",
                quantity, product_id, from_location_id, to_location_id)
    return out_tx, in_tx


def record_fulfillment(uow, actor_id: int, product_id: int, location_id: int, quantity: int,
                       related_order_id: int, direction: FulfillmentDirection,
                       notes: Optional[str] = None) -> Transaction:
    """Stock movement for one order line. Runs inside the caller's unit of work."""
    _require_positive(quantity)
    direction = FulfillmentDirection(direction)

    if direction == FulfillmentDirection.PURCHASE:
        stock_service.adjust(uow, product_id, location_id, quantity, enforce_non_negative=False)
        return record(uow, TransactionType.PURCHASE, product_id, quantity, actor_id,
                      destination_location_id=location_id, related_po_id=related_order_id, notes=notes)

    stock_service.adjust(uow, product_id, location_id, -quantity, enforce_non_negative=True)
    return record(uow, TransactionType.SALE, product_id, -quantity, actor_id,
                  source_location_id=location_id, related_so_id=related_order_id, notes=notes)


# --- read side ---

def _counts_at(location_id: int):
    # Outbound rows count at their source, inbound rows at their destination
    return or_(
        and_(Transaction.type.in_([t.value for t in INBOUND_TYPES]),
             Transaction.destination_location_id == location_id),
        and_(Transaction.type.in_([t.value for t in OUTBOUND_TYPES]),
             Transaction.source_location_id == location_id),
    )


def ledger_balance(db: Session, product_id: int, location_id: int) -> int:
    """Balance of (product, location) reconstructed from the ledger alone."""
    total = (
        db.query(func.coalesce(func.sum(Transaction.quantity_change), 0))
        .filter(Transaction.product_id == product_id, _counts_at(location_id))
        .scalar()
    )
    return int(total or 0)


SORTABLE = {"timestamp": Transaction.timestamp, "quantity_change": Transaction.quantity_change}


def get_transaction_history(db: Session, product_id: Optional[int] = None, location_id: Optional[int] = None,
                            user_id: Optional[int] = None, tx_type: Optional[TransactionType] = None,
                            related_po_id: Optional[int] = None, related_so_id: Optional[int] = None,
                            start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                            sort_by: str = "timestamp", order: str = "desc",
                            page: int = 1, page_size: int = 10):
    if start_date and end_date and end_date < start_date:
        raise InvalidArgumentError("End date must be on or after start date.")

    query = db.query(Transaction)
    if product_id:
        query = query.filter(Transaction.product_id == product_id)
    if location_id:
        query = query.filter(or_(Transaction.source_location_id == location_id,
                                 Transaction.destination_location_id == location_id))
    if user_id:
        query = query.filter(Transaction.user_id == user_id)
    if tx_type:
        query = query.filter(Transaction.type == TransactionType(tx_type).value)
    if related_po_id:
        query = query.filter(Transaction.related_po_id == related_po_id)
    if related_so_id:
        query = query.filter(Transaction.related_so_id == related_so_id)
    if start_date:
        query = query.filter(Transaction.timestamp >= start_date)
    if end_date:
        query = query.filter(Transaction.timestamp <= end_date)

    column = SORTABLE.get(sort_by, Transaction.timestamp)
    if order == "asc":
        query = query.order_by(column.asc(), Transaction.id.asc())
    else:
        query = query.order_by(column.desc(), Transaction.id.desc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}
