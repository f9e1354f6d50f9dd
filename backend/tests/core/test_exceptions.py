from app.core.exceptions import StorageUnavailableError, SweepFailedError


def test_storage_unavailable_error_message():
    err = StorageUnavailableError("record", "database is locked")
    assert str(err) == "Attempt ledger unavailable during record: database is locked"
    assert err.operation == "record"
    assert err.reason == "database is locked"


def test_storage_unavailable_error_default():
    err = StorageUnavailableError("delete_before")
    assert "unknown" in str(err)


def test_sweep_failed_error_message():
    err = SweepFailedError("disk full")
    assert str(err) == "Login attempt sweep failed: disk full"
    assert err.reason == "disk full"
