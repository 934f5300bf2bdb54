"""
Sender-verification messages from the mailbox provider.

When a user sets up automatic forwarding, the provider sends a confirmation
message to our inbound address. It carries a confirmation code and link that
have to reach the user; these messages never become transactions.
"""
import re
from typing import Iterable, Optional

from core.logger import setup_logger

logger = setup_logger(__name__)

_CODE_PATTERNS = (
    re.compile(r"c[oó]digo[:\s]+(\d{9})", re.IGNORECASE),
    re.compile(r"confirmation code[:\s]+(\d{9})", re.IGNORECASE),
    re.compile(r"code[:\s]+(\d{9})", re.IGNORECASE),
    re.compile(r"(\d{9})"),
)

_LINK_PATTERNS = (
    re.compile(r"https?://mail\.google\.com/mail/[^\s\"'<>\]]+", re.IGNORECASE),
    re.compile(r"https?://mail-settings\.google\.com/mail/[^\s\"'<>\]]+", re.IGNORECASE),
    re.compile(r"https?://www\.google\.com/url\?[^\s\"'<>\]]+", re.IGNORECASE),
)

_LINK_TRAILING_RE = re.compile(r"[.,;:!?)>\]&]+$")
_LINK_MARKERS = ("vf-", "confirm", "verify")


def is_verification_sender(from_address: Optional[str], senders: Iterable[str]) -> bool:
    """True when the sender contains one of the verification addresses."""
    if not from_address:
        return False
    lowered = from_address.lower()
    return any(sender in lowered for sender in senders)


def extract_verification_code(text: str) -> Optional[str]:
    """
    Find the 9-digit confirmation code.
    Labelled codes win over a bare 9-digit run.
    """
    for pattern in _CODE_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(1)
    return None


def _clean_link(link: str) -> str:
    return _LINK_TRAILING_RE.sub("", link).replace("&amp;", "&")


def extract_verification_link(text: str) -> Optional[str]:
    """
    Find the confirmation link.

    Only links mentioning vf-, confirm or verify qualify; the first pattern
    with a qualifying link wins.
    """
    for pattern in _LINK_PATTERNS:
        links = [_clean_link(link) for link in pattern.findall(text or "")]
        qualifying = [link for link in links if any(marker in link for marker in _LINK_MARKERS)]
        if qualifying:
            return qualifying[0]
    return None
