# backend/routes/locations.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError
from models.location import Location
from models.stock import StockLevel
from models.transaction import Transaction
from models.users import User, UserRole
from schemas.location import LocationCreate, LocationUpdate, LocationOut, LocationPage
from utils.audit import write_log
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/locations", tags=["Locations"])

can_manage = role_required(UserRole.ADMIN, UserRole.MANAGER)


def _get_location(db: Session, location_id: int) -> Location:
    location = db.query(Location).filter(Location.id == location_id).first()
    if not location:
        raise NotFoundError(f'Location with ID "{location_id}" not found.')
    return location


def _check_name_free(db: Session, name: str, exclude_id: Optional[int] = None):
    query = db.query(Location.id).filter(Location.name == name)
    if exclude_id is not None:
        query = query.filter(Location.id != exclude_id)
    if query.first():
        raise ConflictError(f'Location with name "{name}" already exists.')


@router.get("", response_model=LocationPage)
def list_locations(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Location)
    if q:
        query = query.filter(Location.name.ilike(f"%{q}%"))
    total = query.count()
    items = query.order_by(Location.name.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{location_id}", response_model=LocationOut)
def get_location(location_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_location(db, location_id)


@router.post("", response_model=LocationOut, status_code=201)
def create_location(payload: LocationCreate, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        _check_name_free(db, payload.name)
        location = Location(**payload.model_dump())
        db.add(location)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_LOCATION", entity="Location",
                  entity_id=location.id, meta={"name": location.name})
    return location


@router.patch("/{location_id}", response_model=LocationOut)
def update_location(
    location_id: int,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage),
):
    changes = payload.model_dump(exclude_unset=True)
    with UnitOfWork(db):
        location = _get_location(db, location_id)
        if "name" in changes:
            _check_name_free(db, changes["name"], exclude_id=location.id)
        for field, value in changes.items():
            setattr(location, field, value)
        write_log(db, user_id=current_user.id, action="UPDATE_LOCATION", entity="Location",
                  entity_id=location.id, meta=changes)
    return location


# Locations holding stock or named in the ledger cannot be removed
@router.delete("/{location_id}", status_code=204)
def delete_location(location_id: int, db: Session = Depends(get_db), current_user: User = Depends(can_manage)):
    with UnitOfWork(db):
        location = _get_location(db, location_id)
        in_use = (
            db.query(StockLevel.id).filter(StockLevel.location_id == location_id).first()
            or db.query(Transaction.id).filter(or_(
                Transaction.source_location_id == location_id,
                Transaction.destination_location_id == location_id,
            )).first()
        )
        if in_use:
            raise ConflictError(
                f'Cannot delete location "{location.name}": it is referenced by stock levels or transactions.'
            )
        db.delete(location)
        write_log(db, user_id=current_user.id, action="DELETE_LOCATION", entity="Location",
                  entity_id=location_id, meta={"name": location.name})
    return Response(status_code=204)
