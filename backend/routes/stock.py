# backend/routes/stock.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db
from errors import NotFoundError
from models.users import User, UserRole
from services import stock_service
from utils.tokenJWT import get_current_user, role_required
import schemas.stock as stock_schemas

router = APIRouter(prefix="/stock", tags=["Stock"])


# Current balances with product and location details
@router.get("", response_model=stock_schemas.StockLevelPage)
def list_stock_levels(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Product name or SKU"),
    below_reorder: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return stock_service.get_stock_levels(
        db, product_id=product_id, location_id=location_id, search=search,
        below_reorder=below_reorder, page=page, page_size=page_size,
    )


@router.get("/specific", response_model=stock_schemas.StockLevelOut)
def get_specific_stock_level(
    product_id: int = Query(...),
    location_id: int = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    level = stock_service.get_stock_level(db, product_id, location_id)
    if level is None:
        raise NotFoundError(f"No stock level for product ID {product_id} at location ID {location_id}.")
    return level


@router.get("/low", response_model=stock_schemas.StockLevelPage)
def list_low_stock(
    location_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(UserRole.ADMIN, UserRole.MANAGER)),
):
    return stock_service.get_low_stock(db, location_id=location_id, page=page, page_size=page_size)
