"""Credential store operations on the users table.

Uniqueness (username, house number, LINE id) is enforced by the database's
unique constraints only. Writes are flushed immediately and an
``IntegrityError`` becomes a ``ConflictError``; there is no
look-then-insert pre-check that two concurrent requests could both pass.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from villagemarket.core.auth import hash_password, verify_password
from villagemarket.core.errors import ConflictError, NotFoundError
from villagemarket.core.line import LineProfile
from villagemarket.core.logging import get_logger
from villagemarket.models.shop import Shop
from villagemarket.models.user import User, UserRole
from villagemarket.schemas.auth import CompleteProfileRequest

logger = get_logger(__name__)

DEFAULT_LINE_NAME = "LINE User"


async def flush_unique(db: AsyncSession, message: str) -> None:
    """Flush pending writes, translating unique-constraint violations."""
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.info("Unique constraint rejected write", detail=message, error=str(exc.orig))
        raise ConflictError(message) from exc


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    return (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()


async def create_local_user(
    db: AsyncSession,
    *,
    name: str,
    username: str,
    password: str,
    house_number: str,
    phone: str | None = None,
    address: str | None = None,
    email: str | None = None,
    role: UserRole = UserRole.CUSTOMER,
) -> User:
    """Create a password account; its profile is complete from the start."""
    user = User(
        name=name,
        username=username,
        house_number=house_number,
        phone=phone,
        address=address,
        email=email,
        role=UserRole(role).value,
        password_hash=hash_password(password),
        is_active=True,
        profile_complete=True,
    )
    db.add(user)
    await flush_unique(db, "Username or house number already exists")
    await db.refresh(user)
    logger.info("User created", user_id=str(user.id), username=username, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User | None:
    """Return the user when *password* matches, else None (unknown user included)."""
    user = (
        await db.execute(select(User).where(User.username == username))
    ).scalar_one_or_none()
    if user is None or user.password_hash is None:
        logger.info("Login failed", username=username, reason="unknown_user")
        return None
    if not verify_password(password, user.password_hash):
        logger.info("Login failed", username=username, reason="bad_password")
        return None
    return user


async def get_line_user(db: AsyncSession, line_user_id: str) -> User | None:
    return (
        await db.execute(select(User).where(User.external_id == line_user_id))
    ).scalar_one_or_none()


async def find_or_create_line_user(db: AsyncSession, profile: LineProfile) -> User:
    """Map a LINE profile to a local user.

    New LINE ids get a CUSTOMER account awaiting profile completion. Known
    ids only have name/email/picture refreshed; role and profile state stay
    as they are.
    """
    user = await get_line_user(db, profile.user_id)
    if user is None:
        user = User(
            name=profile.display_name or DEFAULT_LINE_NAME,
            external_id=profile.user_id,
            email=profile.email,
            image=profile.picture_url,
            role=UserRole.CUSTOMER.value,
            is_active=True,
            profile_complete=False,
        )
        db.add(user)
        await flush_unique(db, "LINE account is already linked")
        await db.refresh(user)
        logger.info("Created LINE user", user_id=str(user.id))
        return user

    user.name = profile.display_name or user.name
    user.email = profile.email or user.email
    user.image = profile.picture_url or user.image
    await db.flush()
    await db.refresh(user)
    logger.info("Updated LINE user", user_id=str(user.id))
    return user


async def complete_profile(
    db: AsyncSession, user_id: uuid.UUID, payload: CompleteProfileRequest
) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    user.house_number = payload.house_number
    if payload.phone is not None:
        user.phone = payload.phone
    if payload.address is not None:
        user.address = payload.address
    if payload.role is not None and user.role != UserRole.ADMIN:
        user.role = payload.role.value
    if not user.username:
        user.username = payload.house_number
    user.profile_complete = True

    await flush_unique(db, "House number is already registered")
    await db.refresh(user)
    logger.info("Profile completed", user_id=str(user.id), role=user.role)
    return user


async def set_active(db: AsyncSession, user: User, active: bool) -> int:
    """Set ``is_active`` on *user* and every shop they own. Returns shops touched.

    Ownership decides the cascade, not the current role: a vendor demoted in
    the same update still has shops to switch off.
    """
    user.is_active = active
    result = await db.execute(
        update(Shop).where(Shop.owner_id == user.id).values(is_active=active)
    )
    shops_updated = result.rowcount or 0
    await db.flush()
    logger.info(
        "User activation changed",
        user_id=str(user.id),
        active=active,
        shops_updated=shops_updated,
    )
    return shops_updated
