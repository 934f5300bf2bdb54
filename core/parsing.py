"""
Envelope address parsing.
Recipient addresses carry the ledger user id (user_<id>@<domain>).
"""
import re
from typing import Optional

from core.logger import setup_logger

logger = setup_logger(__name__)

_ANGLE_ADDRESS_RE = re.compile(r"<([^>]+)>")


def extract_email_address(value: Optional[str]) -> str:
    """
    Extract a bare, lower-cased address from "Display Name <addr>" or plain form.

    Examples:
        "Mercado Pago <Info@MercadoPago.com>" -> "info@mercadopago.com"
        "info@uala.com.ar"                    -> "info@uala.com.ar"
    """
    if not value:
        return ""
    lowered = value.lower().strip()
    match = _ANGLE_ADDRESS_RE.search(lowered)
    return match.group(1).strip() if match else lowered


def extract_user_id(to_address: Optional[str], domain: Optional[str] = None) -> Optional[str]:
    """
    Extract the opaque user id from a recipient like user_abc123@example.com.

    Args:
        to_address: Envelope "to" address
        domain: When given, the address domain must match it exactly

    Returns:
        The id, or None if the address does not follow the user_<id>@ pattern
    """
    address = extract_email_address(to_address)
    if not address:
        return None

    domain_pattern = re.escape(domain.lower()) if domain else r"[^@\s]+"
    match = re.match(rf"^user_([a-z0-9_]+)@{domain_pattern}$", address)
    if not match:
        logger.debug(f"Recipient does not match user_<id>@ pattern: {to_address!r}")
        return None
    return match.group(1)
