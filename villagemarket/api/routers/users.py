"""Admin users router — account management (ADMIN only).

Accounts are never physically removed here: DELETE deactivates, and ADMIN
accounts cannot be deleted at all.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select

from villagemarket.api.dependencies import AdminDep, DbDep, require_admin
from villagemarket.core import accounts
from villagemarket.core.auth import hash_password
from villagemarket.core.errors import NotFoundError, ValidationError
from villagemarket.core.logging import get_logger
from villagemarket.models.user import User, UserRole
from villagemarket.schemas.user import (
    AdminUserCreate,
    AdminUserUpdate,
    DeactivationOut,
    UserList,
    UserOut,
)

router = APIRouter(
    prefix="/admin/users", tags=["admin"], dependencies=[Depends(require_admin)]
)
logger = get_logger(__name__)

# Fields an admin may blank out with an explicit null
_CLEARABLE = {"phone", "address"}


async def _get_or_404(db, user_id: uuid.UUID) -> User:
    user = await accounts.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UserList)
async def list_users(
    db: DbDep,
    role: UserRole | None = Query(None),
    active: bool | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> UserList:
    query = select(User)
    count_query = select(func.count()).select_from(User)
    if role is not None:
        query = query.where(User.role == role.value)
        count_query = count_query.where(User.role == role.value)
    if active is not None:
        query = query.where(User.is_active.is_(active))
        count_query = count_query.where(User.is_active.is_(active))

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(User.created_at.desc()).offset(skip).limit(limit)
    )
    return UserList(total=total, items=list(result.scalars().all()))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(payload: AdminUserCreate, db: DbDep) -> User:
    return await accounts.create_local_user(
        db,
        name=payload.name,
        username=payload.username,
        password=payload.password,
        house_number=payload.house_number,
        phone=payload.phone,
        address=payload.address,
        email=payload.email,
        role=payload.role,
    )


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: uuid.UUID, db: DbDep) -> User:
    return await _get_or_404(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID, payload: AdminUserUpdate, db: DbDep, admin: AdminDep
) -> User:
    user = await _get_or_404(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("is_active") is False and user.id == admin.user_id:
        raise ValidationError("Cannot deactivate your own account")

    if "password" in data:
        password = data.pop("password")
        if password is not None:
            user.password_hash = hash_password(password)

    if "role" in data and data["role"] is not None:
        user.role = UserRole(data.pop("role")).value
    data.pop("role", None)

    active = data.pop("is_active", None)
    for field, value in data.items():
        if value is None and field not in _CLEARABLE:
            continue
        setattr(user, field, value)

    await accounts.flush_unique(db, "Username or house number already exists")
    if active is not None and active != user.is_active:
        await accounts.set_active(db, user, active)

    await db.refresh(user)
    logger.info("User updated", user_id=str(user_id), fields=sorted(payload.model_fields_set))
    return user


@router.delete("/{user_id}", response_model=DeactivationOut)
async def delete_user(user_id: uuid.UUID, db: DbDep, admin: AdminDep) -> DeactivationOut:
    """Deactivate the account (and a vendor's shops)."""
    user = await _get_or_404(db, user_id)
    if user.role == UserRole.ADMIN:
        raise ValidationError("Cannot delete admin users")

    shops = await accounts.set_active(db, user, False)
    await db.refresh(user)
    logger.info("User deactivated", user_id=str(user_id), by=str(admin.user_id))
    return DeactivationOut(
        message="User deactivated successfully",
        user=UserOut.model_validate(user),
        shops_deactivated=shops,
    )
