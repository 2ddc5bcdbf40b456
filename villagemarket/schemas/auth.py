"""Schemas for the authentication endpoints and the session token payload."""

from __future__ import annotations

from pydantic import Field, field_validator

from villagemarket.models.user import UserRole
from villagemarket.schemas.base import CamelModel
from villagemarket.schemas.user import UserSummary

_SELF_SERVICE_ROLES = (UserRole.CUSTOMER, UserRole.VENDOR)


def _self_service_role(value: UserRole | None) -> UserRole | None:
    if value is not None and value not in _SELF_SERVICE_ROLES:
        raise ValueError("role must be CUSTOMER or VENDOR")
    return value


class TokenUser(UserSummary):
    """Identity snapshot embedded in the session token.

    It is frozen at issue time. The request resolver reads the live role and
    flags from the users table, so only display fields can go stale.
    """

    external_id: str | None = None


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    house_number: str = Field(..., min_length=1, max_length=20)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = None
    role: UserRole | None = None

    @field_validator("role")
    @classmethod
    def _check_role(cls, v: UserRole | None) -> UserRole | None:
        return _self_service_role(v)


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CompleteProfileRequest(CamelModel):
    house_number: str = Field(..., min_length=1, max_length=20)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = None
    role: UserRole | None = None

    @field_validator("role")
    @classmethod
    def _check_role(cls, v: UserRole | None) -> UserRole | None:
        return _self_service_role(v)


class AuthResponse(CamelModel):
    success: bool = True
    user: UserSummary


class MeResponse(CamelModel):
    user: UserSummary


class CompleteProfileResponse(CamelModel):
    message: str = "Profile completed successfully"
    user: UserSummary
