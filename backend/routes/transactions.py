# backend/routes/transactions.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, Literal
from datetime import datetime

from database import get_db
from models.transaction import TransactionType
from models.users import User, UserRole
from services import transaction_service
from services.transaction_service import AdjustmentDirection
from utils.notifier import get_notifier
from utils.tokenJWT import get_current_user, role_required
import schemas.transaction as tx_schemas

router = APIRouter(prefix="/transactions", tags=["Transactions"])

can_move_stock = role_required(UserRole.ADMIN, UserRole.MANAGER)


# Ledger history with filtering and pagination
@router.get("", response_model=tx_schemas.TransactionPage)
def list_transactions(
    product_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None, description="Matches source or destination"),
    user_id: Optional[int] = Query(None),
    tx_type: Optional[TransactionType] = Query(None, alias="type"),
    related_po_id: Optional[int] = Query(None),
    related_so_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    sort_by: Literal["timestamp", "quantity_change"] = "timestamp",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return transaction_service.get_transaction_history(
        db, product_id=product_id, location_id=location_id, user_id=user_id, tx_type=tx_type,
        related_po_id=related_po_id, related_so_id=related_so_id,
        start_date=start_date, end_date=end_date, sort_by=sort_by, order=order,
        page=page, page_size=page_size,
    )


@router.post("/adjustments", response_model=tx_schemas.TransactionOut, status_code=201)
def create_adjustment(
    payload: tx_schemas.AdjustmentCreate,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    current_user: User = Depends(can_move_stock),
):
    direction = AdjustmentDirection.IN if payload.type == "ADJUSTMENT_IN" else AdjustmentDirection.OUT
    return transaction_service.record_adjustment(
        db, current_user.id, payload.product_id, payload.location_id, payload.quantity,
        direction, notes=payload.notes, notifier=notifier,
    )


@router.post("/transfers", response_model=tx_schemas.TransferOut, status_code=201)
def create_transfer(
    payload: tx_schemas.TransferCreate,
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
    current_user: User = Depends(can_move_stock),
):
    out_tx, in_tx = transaction_service.record_transfer(
        db, current_user.id, payload.product_id, payload.source_location_id,
        payload.destination_location_id, payload.quantity, notes=payload.notes, notifier=notifier,
    )
    return {"transfer_group": out_tx.transfer_group, "out_transaction": out_tx, "in_transaction": in_tx}
