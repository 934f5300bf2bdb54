"""
Unit tests for envelope address parsing.
"""
import pytest

from core.parsing import extract_email_address, extract_user_id


def test_extract_email_address():
    """Test bare address extraction."""
    assert extract_email_address("Mercado Pago <Info@MercadoPago.com>") == "info@mercadopago.com"
    assert extract_email_address("  INFO@UALA.COM.AR ") == "info@uala.com.ar"
    assert extract_email_address("") == ""
    assert extract_email_address(None) == ""


@pytest.mark.parametrize("address,expected", [
    ("user_abc123@example.com", "abc123"),
    ("USER_ABC123@Example.com", "abc123"),
    ("Someone <user_42_x@example.com>", "42_x"),
    ("admin@example.com", None),
    ("user_@example.com", None),
    ("user_a-b@example.com", None),
    ("", None),
])
def test_extract_user_id(address, expected):
    """Test recipient user id extraction."""
    assert extract_user_id(address) == expected


def test_extract_user_id_with_domain():
    """A configured inbound domain must match exactly."""
    assert extract_user_id("user_abc@inbound.example.com", "inbound.example.com") == "abc"
    assert extract_user_id("user_abc@other.example.com", "inbound.example.com") is None
