"""
Sender matching against the institution registry.

A sender entry is either an exact address ("info@mercadopago.com") or a
domain suffix with a leading "@" ("@uala.com.ar"). Suffix entries compare
the exact tail of the address, so "@uala.com.ar" does not match
"promo@marketing.uala.com.ar".
"""
from typing import Iterable, Optional

from core.institutions import InstitutionRegistry
from core.logger import setup_logger
from core.parsing import extract_email_address
from core.schema import SenderMatch

logger = setup_logger(__name__)


def sender_entry_matches(address: str, entry: str) -> bool:
    """
    Check one registry entry against a bare, lower-cased address.

    Args:
        address: Sender address
        entry: Exact address or "@domain" suffix

    Returns:
        True on match
    """
    if not address or not entry:
        return False
    if entry.startswith("@"):
        return address.endswith(entry)
    return address == entry


def _first_matching_entry(address: str, entries: Iterable[str]) -> Optional[str]:
    for entry in entries:
        if sender_entry_matches(address, entry):
            return entry
    return None


class InstitutionMatcher:
    """Classifies sender addresses against an injected institution registry."""

    def __init__(self, registry: InstitutionRegistry):
        """
        Args:
            registry: Ordered institutions; the first match wins
        """
        self.registry = registry

    def match(self, from_address: Optional[str]) -> Optional[SenderMatch]:
        """
        Identify the institution behind a sender.

        Within an institution the transactional list is checked before the
        marketing list.

        Args:
            from_address: Free-text sender, optionally with display name

        Returns:
            SenderMatch, or None for unknown senders
        """
        address = extract_email_address(from_address)
        if not address:
            return None

        for institution in self.registry:
            for senders, is_marketing in (
                (institution.transactional_senders, False),
                (institution.marketing_senders, True),
            ):
                entry = _first_matching_entry(address, senders)
                if entry is not None:
                    logger.debug(
                        f"Sender {address} matched {institution.id} via {entry!r} "
                        f"(marketing={is_marketing})"
                    )
                    return SenderMatch(
                        institution_id=institution.id,
                        display_name=institution.display_name,
                        kind=institution.kind,
                        is_marketing=is_marketing,
                        matched_entry=entry,
                    )

        return None
