"""
Login attempt ledger rows.

One row per authentication attempt, successful or not, keyed by the client
address and the username that was tried. Lockout state is derived from these
rows and never stored.
"""

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, UTCDateTime


class LoginAttempt(Base):
    """A single recorded login attempt."""

    __tablename__ = "login_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)  # IPv6 max length
    # Not a foreign key: unknown usernames are tracked like known ones
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_login_attempts_ip_username_attempted", "ip_address", "username", "attempted_at"),
    )

    def __repr__(self) -> str:
        return f"<LoginAttempt {self.username} from {self.ip_address} at {self.attempted_at} success={self.success}>"
