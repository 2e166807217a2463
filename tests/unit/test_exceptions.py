"""Tests for exception hierarchy."""

import pytest


def test_exception_hierarchy():
    """All exceptions inherit from LoomError."""
    from loom.core.exceptions import (
        LoomError,
        ConfigurationError,
        ThreadError,
        ThreadValidationError,
        UnknownThreadError,
    )

    assert issubclass(ConfigurationError, LoomError)
    assert issubclass(ThreadError, LoomError)
    assert issubclass(ThreadValidationError, ThreadError)
    assert issubclass(UnknownThreadError, ThreadError)


def test_exceptions_can_be_raised():
    """Exceptions can be raised and caught."""
    from loom.core.exceptions import UnknownThreadError

    with pytest.raises(UnknownThreadError):
        raise UnknownThreadError("Thread t-123 not found")


def test_validation_error_carries_missing_fields():
    from loom.core.exceptions import ThreadValidationError

    record = {"title": "No id"}
    error = ThreadValidationError("missing id", missing_fields=["id"], record=record)

    assert error.message == "missing id"
    assert error.missing_fields == ["id"]
    assert error.record is record


def test_validation_error_defaults():
    from loom.core.exceptions import ThreadValidationError

    error = ThreadValidationError("bad record")

    assert error.missing_fields == []
    assert error.record is None
    assert str(error) == "bad record"
