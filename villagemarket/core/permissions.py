"""Authorization gate: one place that decides allow/deny for every route.

``authorize`` is a pure function of the resolved request context, the roles a
route accepts and (for mutations) the owner of the targeted resource. Routes
turn a denial into an HTTP error with ``enforce``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from villagemarket.core.errors import AuthenticationError, AuthorizationError
from villagemarket.models.user import UserRole
from villagemarket.schemas.auth import TokenUser

ANY_ROLE = tuple(UserRole)
VENDOR_ROLES = (UserRole.VENDOR, UserRole.ADMIN)
ADMIN_ROLES = (UserRole.ADMIN,)

UNAUTHENTICATED = "unauthenticated"
INACTIVE = "inactive"
INSUFFICIENT_ROLE = "insufficient_role"
PROFILE_INCOMPLETE = "profile_incomplete"
NOT_OWNER = "not_owner"

_DENY_MESSAGES = {
    INACTIVE: "Account disabled",
    INSUFFICIENT_ROLE: "Insufficient role for this action",
    PROFILE_INCOMPLETE: "Complete your profile first",
    NOT_OWNER: "You can only modify your own resources",
}


@dataclass(frozen=True)
class AuthContext:
    """Read-only view of who is making the request.

    ``user`` is the token snapshot. ``is_active``, ``role`` and
    ``profile_complete`` are read from the store on each request, so an admin
    change takes effect without waiting for the token to expire.
    """

    user: TokenUser | None = None
    is_active: bool = False
    role: UserRole | None = None
    profile_complete: bool = False

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> uuid.UUID | None:
        return self.user.id if self.user else None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class AuthDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AuthDecision(allowed=True)


def authorize(
    context: AuthContext,
    required_roles: Iterable[UserRole] = (),
    resource_owner_id: uuid.UUID | None = None,
) -> AuthDecision:
    if not context.is_authenticated:
        return AuthDecision(False, UNAUTHENTICATED)
    if not context.is_active:
        return AuthDecision(False, INACTIVE)

    roles = tuple(required_roles)
    if roles and context.role not in roles:
        return AuthDecision(False, INSUFFICIENT_ROLE)
    # Role-gated routes stay closed until the house number is on file
    if roles and not context.profile_complete:
        return AuthDecision(False, PROFILE_INCOMPLETE)

    if (
        resource_owner_id is not None
        and context.user_id != resource_owner_id
        and not context.is_admin
    ):
        return AuthDecision(False, NOT_OWNER)
    return ALLOW


def enforce(decision: AuthDecision, owner_message: str | None = None) -> None:
    """Raise the matching error for a denial; no-op when allowed.

    *owner_message* replaces the generic text for ``not_owner`` denials.
    """
    if decision.allowed:
        return
    if decision.reason == UNAUTHENTICATED:
        raise AuthenticationError()
    message = _DENY_MESSAGES.get(decision.reason or "")
    if decision.reason == NOT_OWNER and owner_message:
        message = owner_message
    raise AuthorizationError(message, reason=decision.reason)
