"""
Unit tests for sender-verification detection.
"""
from core.verification import (
    extract_verification_code,
    extract_verification_link,
    is_verification_sender,
)

SENDERS = ["forwarding-noreply@google.com", "noreply@google.com"]


def test_is_verification_sender():
    """Test verification sender detection by containment."""
    assert is_verification_sender("Gmail Team <forwarding-noreply@google.com>", SENDERS)
    assert not is_verification_sender("info@mercadopago.com", SENDERS)
    assert not is_verification_sender(None, SENDERS)


def test_extract_labelled_code():
    """Test Spanish and English code labels."""
    assert extract_verification_code("Tu código: 123456789") == "123456789"
    assert extract_verification_code("Tu codigo 123456789") == "123456789"
    assert extract_verification_code("Confirmation code: 987654321") == "987654321"


def test_labelled_code_wins_over_bare_digits():
    """A labelled code is preferred over an earlier bare 9-digit run."""
    text = "Ref 111111111. Confirmation code: 222222222"
    assert extract_verification_code(text) == "222222222"


def test_bare_code_and_missing_code():
    """Test bare 9-digit fallback and absence."""
    assert extract_verification_code("please use 555666777 to confirm") == "555666777"
    assert extract_verification_code("nothing here") is None


def test_extract_verification_link():
    """Test link extraction trims trailing punctuation and unescapes &amp;."""
    text = (
        "Click https://mail.google.com/mail/vf-abc123-xyz?a=1&amp;b=2. "
        "or ignore."
    )
    assert extract_verification_link(text) == "https://mail.google.com/mail/vf-abc123-xyz?a=1&b=2"


def test_link_must_look_like_confirmation():
    """Links without vf-/confirm/verify markers are ignored."""
    assert extract_verification_link("https://mail.google.com/mail/u/0/#inbox") is None


def test_redirect_link():
    """Google redirect links qualify when they carry a marker."""
    text = "<a href=\"https://www.google.com/url?q=https://mail-settings.google.com/confirm&sa=D\">"
    assert extract_verification_link(text) == (
        "https://www.google.com/url?q=https://mail-settings.google.com/confirm&sa=D"
    )
