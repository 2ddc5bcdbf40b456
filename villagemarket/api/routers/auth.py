"""Auth router — register, login, current user, profile completion, logout."""

from fastapi import APIRouter, Request, Response, status

from villagemarket.api.dependencies import CurrentDep, DbDep
from villagemarket.core import accounts
from villagemarket.core.auth import issue_token, token_max_age
from villagemarket.core.config import get_settings
from villagemarket.core.errors import AuthenticationError, AuthorizationError, ValidationError
from villagemarket.core.limiter import limiter
from villagemarket.core.logging import get_logger
from villagemarket.models.user import UserRole
from villagemarket.schemas.auth import (
    AuthResponse,
    CompleteProfileRequest,
    CompleteProfileResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
)
from villagemarket.schemas.user import UserSummary

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


def set_auth_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=token_max_age(),
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/register", response_model=AuthResponse)
async def register(payload: RegisterRequest, response: Response, db: DbDep) -> AuthResponse:
    """Create a password account; the username is the house number."""
    if payload.username != payload.house_number:
        raise ValidationError("Username must match house number")

    user = await accounts.create_local_user(
        db,
        name=payload.name,
        username=payload.username,
        password=payload.password,
        house_number=payload.house_number,
        phone=payload.phone,
        address=payload.address,
        role=payload.role or UserRole.CUSTOMER,
    )
    set_auth_cookie(response, issue_token(user))
    return AuthResponse(user=UserSummary.model_validate(user))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(lambda: get_settings().login_rate_limit)
async def login(
    request: Request, payload: LoginRequest, response: Response, db: DbDep
) -> AuthResponse:
    user = await accounts.authenticate_user(db, payload.username, payload.password)
    if user is None:
        raise AuthenticationError("Invalid username or password")
    if not user.is_active:
        logger.info("Login refused for disabled account", user_id=str(user.id))
        raise AuthorizationError("Account disabled", reason="inactive")

    set_auth_cookie(response, issue_token(user))
    logger.info("Login succeeded", user_id=str(user.id), role=user.role)
    return AuthResponse(user=UserSummary.model_validate(user))


@router.get("/me", response_model=MeResponse)
async def get_me(context: CurrentDep) -> MeResponse:
    """Return the identity snapshot carried by the caller's token."""
    return MeResponse(user=context.user)


@router.post("/complete-profile", response_model=CompleteProfileResponse)
async def complete_profile(
    payload: CompleteProfileRequest, response: Response, context: CurrentDep, db: DbDep
) -> CompleteProfileResponse:
    """Collect the house number (and contact details) after a first LINE login."""
    user = await accounts.complete_profile(db, context.user_id, payload)
    # Fresh snapshot so the token reflects the completed profile
    set_auth_cookie(response, issue_token(user))
    return CompleteProfileResponse(user=UserSummary.model_validate(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """Tokens are stateless; logging out just drops the cookie."""
    clear_auth_cookie(response)
