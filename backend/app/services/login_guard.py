"""
Brute-force protection entry points for the login workflow.

The login route calls ``check_lockout`` before verifying credentials and
``record_attempt`` once verification finished, whatever the outcome. The two
calls are separate statements: concurrent attempts for one pair may both see
"unlocked" before either failure lands. That race is accepted.
"""

import logging
from datetime import timedelta

from app.core.config import settings
from app.core.exceptions import StorageUnavailableError
from app.db.base import utcnow
from app.services.lockout import LockoutEvaluator, LockoutVerdict
from app.services.login_ledger import AttemptLedger, Clock

logger = logging.getLogger(__name__)


class LoginGuard:
    """Lockout check and attempt recording over a shared ledger."""

    def __init__(
        self,
        ledger: AttemptLedger,
        evaluator: LockoutEvaluator | None = None,
        clock: Clock = utcnow,
        enabled: bool = True,
    ):
        self.ledger = ledger
        self.evaluator = evaluator or LockoutEvaluator(ledger)
        self.clock = clock
        self.enabled = enabled

    @classmethod
    def from_settings(cls, ledger: AttemptLedger, clock: Clock = utcnow) -> "LoginGuard":
        """Build the guard from the LOGIN_* settings, the only place they are read."""
        evaluator = LockoutEvaluator(
            ledger,
            max_attempts=settings.LOGIN_MAX_ATTEMPTS,
            lockout_duration=timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES),
        )
        return cls(ledger, evaluator, clock=clock, enabled=settings.LOGIN_LOCKOUT_ENABLED)

    @property
    def lockout_duration(self) -> timedelta:
        return self.evaluator.lockout_duration

    async def check_lockout(self, ip_address: str, username: str) -> LockoutVerdict:
        """
        Check whether the pair is currently locked out.

        Fails open: if the ledger cannot be read the pair is reported as
        unlocked so a database outage never locks legitimate users out.
        """
        if not self.enabled:
            return LockoutVerdict.unlocked()

        try:
            verdict = await self.evaluator.evaluate(ip_address, username, self.clock())
        except StorageUnavailableError as e:
            logger.error("Lockout check failed, allowing attempt: %s", e)
            return LockoutVerdict.unlocked()

        if verdict.locked:
            logger.warning(
                "Login locked for %s from %s: %s failures, %ss remaining",
                username,
                ip_address,
                verdict.failure_count,
                verdict.remaining_seconds,
            )
        return verdict

    async def record_attempt(self, ip_address: str, username: str, success: bool) -> None:
        """
        Record the outcome of a login attempt.

        Raises:
            StorageUnavailableError: if the attempt could not be stored; the
                caller decides whether that is fatal
        """
        try:
            await self.ledger.record(ip_address, username, success)
        except StorageUnavailableError as e:
            logger.error("Failed to record login attempt for %s from %s: %s", username, ip_address, e)
            raise
