from app.schemas.auth import LockoutStatusResponse, LoginRequest, LoginResponse, RegisterRequest
from app.schemas.user import UserResponse

__all__ = [
    "LockoutStatusResponse",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "UserResponse",
]
