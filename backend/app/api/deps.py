from fastapi import Request

from app.db.session import get_db
from app.services.login_guard import LoginGuard

__all__ = ["get_db", "get_login_guard"]


def get_login_guard(request: Request) -> LoginGuard:
    """Return the login guard built at startup."""
    return request.app.state.login_guard
