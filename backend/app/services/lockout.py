"""
Lockout evaluation for login protection.

Turns the attempt ledger into a locked/unlocked verdict for a
(client address, username) pair. The window slides: once the failure
threshold is reached, the lockout runs until the lockout duration after the
most recent failure, so every further failure inside the window extends it.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.services.login_ledger import AttemptLedger

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_LOCKOUT_DURATION = timedelta(minutes=15)


@dataclass(frozen=True)
class LockoutVerdict:
    """Result of a lockout check."""

    locked: bool
    remaining_wait: timedelta
    failure_count: int

    @classmethod
    def unlocked(cls, failure_count: int = 0) -> "LockoutVerdict":
        return cls(locked=False, remaining_wait=timedelta(0), failure_count=failure_count)

    @property
    def remaining_seconds(self) -> int:
        return math.ceil(self.remaining_wait.total_seconds())

    @property
    def remaining_minutes(self) -> int:
        """Remaining wait in whole minutes, rounded up."""
        return math.ceil(self.remaining_wait.total_seconds() / 60)


class LockoutEvaluator:
    """Decides whether a pair is locked based on its recent failures.

    Unknown usernames are evaluated exactly like existing ones, and successful
    attempts neither count nor clear earlier failures.
    """

    def __init__(
        self,
        ledger: AttemptLedger,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        lockout_duration: timedelta = DEFAULT_LOCKOUT_DURATION,
    ):
        self.ledger = ledger
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration

    async def evaluate(self, ip_address: str, username: str, now: datetime) -> LockoutVerdict:
        since = now - self.lockout_duration
        # A failure exactly one window old has already expired
        count, most_recent = await self.ledger.count_recent_failures(
            ip_address, username, since, inclusive=False
        )

        if count < self.max_attempts or most_recent is None:
            return LockoutVerdict.unlocked(count)

        remaining = max(timedelta(0), most_recent + self.lockout_duration - now)
        return LockoutVerdict(locked=True, remaining_wait=remaining, failure_count=count)
