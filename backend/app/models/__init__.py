from app.models.login_attempt import LoginAttempt
from app.models.user import User

__all__ = [
    "LoginAttempt",
    "User",
]
