"""FastAPI dependency providers: DB session, session resolver, route gates."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villagemarket.core.auth import verify_token
from villagemarket.core.config import get_settings
from villagemarket.core.database import get_session_factory
from villagemarket.core.logging import get_logger
from villagemarket.core.permissions import (
    ADMIN_ROLES,
    VENDOR_ROLES,
    AuthContext,
    authorize,
    enforce,
)
from villagemarket.models.user import User, UserRole

logger = get_logger(__name__)

# Bearer is a fallback for API scripts; browsers use the auth-token cookie.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the duration of a request."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbDep = Annotated[AsyncSession, Depends(get_db)]


async def get_auth_context(
    request: Request,
    db: DbDep,
    bearer: Annotated[str | None, Depends(oauth2_scheme)],
) -> AuthContext:
    """Resolve the caller from the cookie (or bearer) token.

    Never raises: anything short of a valid token for an existing user yields
    an anonymous context, and the gate decides what that means for the route.
    """
    token = request.cookies.get(get_settings().auth_cookie_name) or bearer
    if not token:
        return AuthContext.anonymous()

    snapshot = verify_token(token)
    if snapshot is None:
        return AuthContext.anonymous()

    row = (
        await db.execute(
            select(User.is_active, User.role, User.profile_complete).where(
                User.id == snapshot.id
            )
        )
    ).one_or_none()
    if row is None:
        logger.info("Token refers to a missing user", user_id=str(snapshot.id))
        return AuthContext.anonymous()

    return AuthContext(
        user=snapshot,
        is_active=row.is_active,
        role=UserRole(row.role),
        profile_complete=row.profile_complete,
    )


ContextDep = Annotated[AuthContext, Depends(get_auth_context)]


def require_roles(*roles: UserRole):
    """Build a dependency admitting active users holding one of *roles* (any role if empty)."""

    async def dependency(context: ContextDep) -> AuthContext:
        enforce(authorize(context, roles))
        return context

    return dependency


get_current_context = require_roles()
require_vendor = require_roles(*VENDOR_ROLES)
require_admin = require_roles(*ADMIN_ROLES)

CurrentDep = Annotated[AuthContext, Depends(get_current_context)]
VendorDep = Annotated[AuthContext, Depends(require_vendor)]
AdminDep = Annotated[AuthContext, Depends(require_admin)]
