"""
Stock adjustment engine and stock level queries.

``adjust`` is the only code path that mutates StockLevel rows. It never writes
ledger entries itself; callers in transaction_service pair every adjustment
with a Transaction row inside the same UnitOfWork.
"""
import logging
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import InvalidArgumentError, NotFoundError, InsufficientStockError
from models.location import Location
from models.product import Product
from models.stock import StockLevel
from services import notification_service

logger = logging.getLogger(__name__)


def _locked_level(db: Session, product_id: int, location_id: int) -> Optional[StockLevel]:
    stmt = (
        select(StockLevel)
        .where(StockLevel.product_id == product_id, StockLevel.location_id == location_id)
        .with_for_update(of=StockLevel)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def _create_level(db: Session, product_id: int, location_id: int, quantity: int) -> Optional[StockLevel]:
    # A concurrent first movement may insert the same key; the savepoint keeps
    # the surrounding unit of work usable when that happens.
    try:
        with db.begin_nested():
            level = StockLevel(product_id=product_id, location_id=location_id, quantity=quantity)
            db.add(level)
        return level
    except IntegrityError:
        logger.info("Stock level %s@%s created concurrently; retrying as update", product_id, location_id)
        return None


def adjust(uow, product_id: int, location_id: int, quantity_change: int,
           enforce_non_negative: bool = True) -> StockLevel:
    """
    Apply ``quantity_change`` to the (product, location) balance.

    The row is locked for the rest of the unit of work, so concurrent
    adjustments of the same key serialize and each sees the previous result
    before its own non-negative check. A rejected adjustment raises and leaves
    the unit of work to roll back.

    Raises:
        InvalidArgumentError: quantity_change is zero.
        NotFoundError: product or location does not exist.
        InsufficientStockError: enforcement is on and the balance would go negative.
    """
    if quantity_change == 0:
        raise InvalidArgumentError("Quantity change cannot be zero.")

    db = uow.session
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError(f'Product with ID "{product_id}" not found.')
    if db.get(Location, location_id) is None:
        raise NotFoundError(f'Location with ID "{location_id}" not found.')

    level = _locked_level(db, product_id, location_id)
    created = False
    if level is None:
        if enforce_non_negative and quantity_change < 0:
            logger.warning("Rejected outbound movement of %s for product %s at empty location %s",
                           -quantity_change, product_id, location_id)
            raise InsufficientStockError(product_id, location_id, -quantity_change, 0,
                                         product_label=f"{product.name} (SKU: {product.sku})")
        level = _create_level(db, product_id, location_id, max(0, quantity_change))
        if level is None:
            level = _locked_level(db, product_id, location_id)
        else:
            created = True

    if created:
        previous = 0
        new_quantity = level.quantity
    else:
        previous = level.quantity
        new_quantity = previous + quantity_change
        if enforce_non_negative and new_quantity < 0:
            logger.warning("Rejected outbound movement of %s for product %s at location %s (available %s)",
                           -quantity_change, product_id, location_id, previous)
            raise InsufficientStockError(product_id, location_id, -quantity_change, previous,
                                         product_label=f"{product.name} (SKU: {product.sku})")
        level.quantity = new_quantity

    db.flush()

    # Fire only when this change moved the balance from above the threshold to at/below it
    reorder_level = product.reorder_level or 0
    if reorder_level > 0 and new_quantity <= reorder_level and previous > reorder_level:
        logger.info("LOW STOCK: %s (SKU: %s) at location %s reached %s (reorder level %s)",
                    product.name, product.sku, location_id, new_quantity, reorder_level)
        notification_service.on_low_stock_crossed(uow, product, location_id, new_quantity)

    return level


# --- queries ---

def get_stock_level(db: Session, product_id: int, location_id: int) -> Optional[StockLevel]:
    return (
        db.query(StockLevel)
        .filter(StockLevel.product_id == product_id, StockLevel.location_id == location_id)
        .first()
    )


def get_stock_levels(db: Session, product_id: Optional[int] = None, location_id: Optional[int] = None,
                     search: Optional[str] = None, below_reorder: bool = False,
                     page: int = 1, page_size: int = 10):
    query = (
        db.query(StockLevel)
        .join(Product, StockLevel.product_id == Product.id)
        .join(Location, StockLevel.location_id == Location.id)
    )
    if product_id:
        query = query.filter(StockLevel.product_id == product_id)
    if location_id:
        query = query.filter(StockLevel.location_id == location_id)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if below_reorder:
        query = query.filter(Product.reorder_level > 0, StockLevel.quantity <= Product.reorder_level)

    total = query.count()
    items = (
        query.order_by(Product.name.asc(), Location.name.asc())
        .offset((page - 1) * page_size).limit(page_size).all()
    )
    return {"items": items, "total": total, "page": page, "page_size": page_size}


def get_low_stock(db: Session, location_id: Optional[int] = None, page: int = 1, page_size: int = 10):
    return get_stock_levels(db, location_id=location_id, below_reorder=True, page=page, page_size=page_size)
