"""
Login attempt ledger.

Append-only history of authentication attempts per (client address, username)
pair. It is the only input to lockout decisions. Rows are removed solely by
the retention sweep.
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import StorageUnavailableError
from app.db.base import utcnow
from app.models.login_attempt import LoginAttempt


Clock = Callable[[], datetime]


class AttemptLedger:
    """Durable store of login attempts backed by the application database.

    Every operation runs as one statement in its own transaction, so a
    concurrent sweep and a lookup never observe each other half applied.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._last_issued: datetime | None = None

    def _next_timestamp(self) -> datetime:
        """Current time, never earlier than the previously issued timestamp."""
        now = self._clock()
        if self._last_issued is not None and now < self._last_issued:
            now = self._last_issued
        self._last_issued = now
        return now

    async def record(self, ip_address: str, username: str, success: bool) -> None:
        """
        Append an attempt stamped with the ledger's clock.

        Raises:
            StorageUnavailableError: if the row could not be written
        """
        attempted_at = self._next_timestamp()
        try:
            async with self._session_factory() as session:
                await session.execute(
                    insert(LoginAttempt).values(
                        ip_address=ip_address,
                        username=username,
                        attempted_at=attempted_at,
                        success=success,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError("record", str(e)) from e

    async def count_recent_failures(
        self,
        ip_address: str,
        username: str,
        since: datetime,
        inclusive: bool = True,
    ) -> tuple[int, datetime | None]:
        """
        Count failed attempts for the exact pair at or after ``since``.

        With ``inclusive=False`` an attempt stamped exactly at ``since`` is
        excluded.

        Returns:
            (count, most_recent_failure) - most_recent_failure is None when count is 0
        """
        window = LoginAttempt.attempted_at >= since if inclusive else LoginAttempt.attempted_at > since
        stmt = select(func.count(LoginAttempt.id), func.max(LoginAttempt.attempted_at)).where(
            LoginAttempt.ip_address == ip_address,
            LoginAttempt.username == username,
            LoginAttempt.success.is_(False),
            window,
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                count, most_recent = result.one()
        except SQLAlchemyError as e:
            raise StorageUnavailableError("count_recent_failures", str(e)) from e

        count = count or 0
        if count == 0:
            return 0, None
        return count, most_recent

    async def delete_before(self, cutoff: datetime) -> int:
        """Remove every attempt older than ``cutoff``, for all pairs. Returns count deleted."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(LoginAttempt).where(LoginAttempt.attempted_at < cutoff)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError("delete_before", str(e)) from e
        return result.rowcount or 0
