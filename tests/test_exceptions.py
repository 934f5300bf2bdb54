"""
Unit tests for custom exceptions.
"""
from core.exceptions import (
    ConfigurationError,
    DeliveryError,
    FinMailError,
    LLMError,
)


def test_base_exception():
    """Test base exception class."""
    exc = FinMailError("Test error", details={"key": "value"})
    assert str(exc) == "Test error"
    assert exc.message == "Test error"
    assert exc.details == {"key": "value"}


def test_exception_hierarchy():
    """Test exception inheritance."""
    assert issubclass(ConfigurationError, FinMailError)
    assert issubclass(LLMError, FinMailError)
    assert issubclass(DeliveryError, FinMailError)


def test_exception_with_details():
    """Test exception with details dictionary."""
    exc = DeliveryError("Backend responded with 502", details={"status_code": 502, "url": "http://x"})
    assert exc.message == "Backend responded with 502"
    assert exc.details["status_code"] == 502
    assert exc.details["url"] == "http://x"


def test_exception_without_details():
    """Test exception without details."""
    exc = LLMError("API call failed")
    assert exc.message == "API call failed"
    assert exc.details == {}


def test_delivery_error_status_code():
    """Test the HTTP status is exposed for rejected posts only."""
    assert DeliveryError("rejected", details={"status_code": 409}).status_code == 409
    assert DeliveryError("connection refused").status_code is None
