# backend/routes/admin.py
from fastapi import APIRouter, Depends, Query, Response
from typing import Optional, Literal
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db, UnitOfWork
from errors import ConflictError, NotFoundError, BadRequestError
from models.log import AuditLog
from models.notification import Notification
from models.order import PurchaseOrder, SalesOrder
from models.transaction import Transaction
from models.users import User, UserRole
from schemas.user import ProfileUpdate, RoleUpdate, UserCreate, UserResponse, UsersPage, UserStatusUpdate
from utils.audit import write_log
from utils.hashing import get_password_hash
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/users", tags=["Admin"])

admin_only = role_required(UserRole.ADMIN)


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f'User with ID "{user_id}" not found.')
    return user


# Update own name or password (any authenticated user)
@router.put("/me", response_model=UserResponse)
def update_my_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    changed = []
    with UnitOfWork(db):
        if payload.first_name is not None:
            current_user.first_name = payload.first_name
            changed.append("first_name")
        if payload.last_name is not None:
            current_user.last_name = payload.last_name
            changed.append("last_name")
        if payload.password is not None:
            current_user.password_hash = get_password_hash(payload.password)
            changed.append("password")
        write_log(db, user_id=current_user.id, action="UPDATE_PROFILE", entity="User", entity_id=current_user.id,
                  meta={"fields": changed})
    return current_user


# Retrieve a list of users with filtering, sorting, and pagination (Admin only)
@router.get("", response_model=UsersPage)
def get_all_users(
    q: Optional[str] = Query(None, description="Search by e-mail"),
    last_name: Optional[str] = Query(None, description="Search by last name"),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["id", "email", "role", "first_name", "last_name"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    query = db.query(User)

    if q:
        query = query.filter(User.email.ilike(f"%{q.lower()}%"))
    if role:
        query = query.filter(User.role == role.value)
    if last_name:
        query = query.filter(User.last_name.ilike(f"%{last_name}%"))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    sort_map = {
        "id": User.id,
        "email": User.email,
        "role": User.role,
        "first_name": User.first_name,
        "last_name": User.last_name,
    }
    col = sort_map.get(sort_by, User.id)
    query = query.order_by(col.asc() if order == "asc" else col.desc())

    total = query.count()
    users = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": users, "total": total, "page": page, "page_size": page_size}


# Create an account with an explicit role (Admin only)
@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    email = payload.email.strip().lower()
    with UnitOfWork(db):
        if db.query(User).filter(func.lower(User.email) == email).first():
            raise ConflictError(f'User with email "{email}" already exists.')
        user = User(
            email=email,
            password_hash=get_password_hash(payload.password),
            role=payload.role.value,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        db.add(user)
        db.flush()
        write_log(db, user_id=current_user.id, action="CREATE_USER", entity="User", entity_id=user.id,
                  meta={"email": email, "role": user.role})
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(admin_only)):
    return _get_user(db, user_id)


# Update user role (Admin only)
@router.put("/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    new_role: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    with UnitOfWork(db):
        user = _get_user(db, user_id)
        old_role = user.role
        user.role = new_role.role.value
        write_log(db, user_id=current_user.id, action="UPDATE_USER_ROLE", entity="User", entity_id=user.id,
                  meta={"old_role": old_role, "new_role": user.role})
    return user


# Activate or deactivate an account (Admin only)
@router.patch("/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    # Prevent self-lockout
    if user_id == current_user.id and not payload.is_active:
        raise BadRequestError("You cannot deactivate your own account.")

    with UnitOfWork(db):
        user = _get_user(db, user_id)
        user.is_active = payload.is_active
        write_log(db, user_id=current_user.id, action="UPDATE_USER_STATUS", entity="User", entity_id=user.id,
                  meta={"is_active": payload.is_active})
    return user


# Delete an account that has no ledger or order history (Admin only)
@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    if user_id == current_user.id:
        raise BadRequestError("You cannot delete your own account.")

    with UnitOfWork(db):
        user = _get_user(db, user_id)
        has_history = (
            db.query(Transaction.id).filter(Transaction.user_id == user_id).first()
            or db.query(PurchaseOrder.id).filter(PurchaseOrder.user_id == user_id).first()
            or db.query(SalesOrder.id).filter(SalesOrder.user_id == user_id).first()
        )
        if has_history:
            raise ConflictError(
                f'User with ID "{user_id}" has recorded stock movements or orders; deactivate the account instead.'
            )
        db.query(Notification).filter(Notification.user_id == user_id).delete(synchronize_session=False)
        db.query(AuditLog).filter(AuditLog.user_id == user_id).update(
            {AuditLog.user_id: None}, synchronize_session=False
        )
        email = user.email
        db.delete(user)
        write_log(db, user_id=current_user.id, action="DELETE_USER", entity="User", entity_id=user_id,
                  meta={"email": email})
    return Response(status_code=204)
