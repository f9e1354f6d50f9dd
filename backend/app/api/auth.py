import logging
import string
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_login_guard
from app.core.config import settings as app_settings
from app.core.errors import conflict, too_many_requests, unauthorized, validation_error
from app.core.exceptions import StorageUnavailableError
from app.core.security import get_password_hash, verify_password
from app.db.base import utcnow
from app.models.user import User
from app.schemas.auth import LockoutStatusResponse, LoginRequest, LoginResponse, RegisterRequest
from app.schemas.user import UserResponse
from app.services.login_guard import LoginGuard
from app.utils.request import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

# Verified against for unknown usernames so they cost as much as a wrong password
_DUMMY_PASSWORD_HASH = get_password_hash("not-a-real-account-password")


def validate_password_complexity(password: str) -> list[str]:
    """
    Validate password meets the minimum requirements.

    Requirements:
    - At least PASSWORD_MIN_LENGTH characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one number
    - At least one special character

    Returns:
        List of unmet requirements (empty when the password is acceptable)
    """
    if not password:
        return ["Password is required"]

    errors = []
    if len(password) < app_settings.PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {app_settings.PASSWORD_MIN_LENGTH} characters long")
    if not any(c in string.ascii_uppercase for c in password):
        errors.append("Password must contain at least one uppercase letter")
    if not any(c in string.ascii_lowercase for c in password):
        errors.append("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one number")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        errors.append("Password must contain at least one special character")
    return errors


async def _record_attempt(guard: LoginGuard, ip_address: str, username: str, success: bool) -> None:
    """Record a login attempt; a storage failure is logged but does not change the response."""
    try:
        await guard.record_attempt(ip_address, username, success)
    except StorageUnavailableError:
        logger.warning("Login attempt for %s from %s was not recorded", username, ip_address)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    username = request.username.strip()
    if not username:
        raise validation_error("Username and password are required")

    errors = validate_password_complexity(request.password)
    if errors:
        raise validation_error("Password does not meet requirements", details={"errors": errors})

    result = await db.execute(select(User.id).where(User.username == username))
    if result.scalar_one_or_none() is not None:
        raise conflict("Username already exists")

    user = User(
        username=username,
        password_hash=get_password_hash(request.password),
        display_name=request.display_name,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name
        await db.rollback()
        raise conflict("Username already exists")
    await db.refresh(user)

    logger.info("Registered user %s", username)
    return user


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    guard: Annotated[LoginGuard, Depends(get_login_guard)],
):
    ip_address = get_client_ip(http_request)
    username = (request.username or "").strip()

    # Lockout is checked before any credential work
    if username:
        verdict = await guard.check_lockout(ip_address, username)
        if verdict.locked:
            raise too_many_requests(verdict.remaining_wait.total_seconds())

    if not username or not request.password:
        if username:
            await _record_attempt(guard, ip_address, username, False)
        raise validation_error("Username and password are required")

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    # Same response and same hashing work for unknown users and wrong passwords
    if user is None:
        verify_password(request.password, _DUMMY_PASSWORD_HASH)
        authenticated = False
    else:
        authenticated = verify_password(request.password, user.password_hash)

    if not authenticated:
        await _record_attempt(guard, ip_address, username, False)
        logger.info("Failed login for %s from %s", username, ip_address)
        raise unauthorized("Invalid username or password")

    await _record_attempt(guard, ip_address, username, True)

    user.last_login = utcnow()
    await db.commit()

    logger.info("Successful login for %s from %s", username, ip_address)
    return LoginResponse(
        username=user.username,
        display_name=user.display_name,
        last_login=user.last_login,
    )


@router.get("/lockout-status/{username}", response_model=LockoutStatusResponse)
async def lockout_status(
    username: str,
    http_request: Request,
    guard: Annotated[LoginGuard, Depends(get_login_guard)],
):
    """Lockout state of ``username`` for the calling client address."""
    verdict = await guard.check_lockout(get_client_ip(http_request), username)
    return LockoutStatusResponse(
        username=username,
        locked=verdict.locked,
        failure_count=verdict.failure_count,
        remaining_seconds=verdict.remaining_seconds,
        remaining_minutes=verdict.remaining_minutes,
    )
