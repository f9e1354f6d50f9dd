"""Custom exceptions for the forum backend."""


class StorageUnavailableError(Exception):
    """Raised when the login attempt ledger cannot be read or written."""

    def __init__(self, operation: str, reason: str = "unknown"):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Attempt ledger unavailable during {operation}: {reason}")


class SweepFailedError(Exception):
    """Raised when a periodic login attempt sweep could not complete."""

    def __init__(self, reason: str = "unknown"):
        self.reason = reason
        super().__init__(f"Login attempt sweep failed: {reason}")
