"""
Outbound record assembly.
Merges the pipeline stage outputs into the records posted to the ledger.
"""
from typing import Optional

from core.schema import (
    ExtractedTransaction,
    FailureRecord,
    IntentResult,
    NormalizedMessage,
    PromotionalRecord,
    SenderMatch,
    TransactionRecord,
)

BODY_PREVIEW_LENGTH = 500


def build_transaction_record(
    user_id: str,
    message: NormalizedMessage,
    sender: SenderMatch,
    transaction: ExtractedTransaction,
    email_hash: str,
    category: Optional[str] = None,
) -> TransactionRecord:
    """Successful transaction record."""
    return TransactionRecord(
        user_id=user_id,
        type=transaction.type,
        amount=transaction.amount,
        currency=transaction.currency,
        counterparty=transaction.counterparty,
        description=transaction.description,
        reference_id=transaction.reference_id,
        email_hash=email_hash,
        category=category,
        institution=sender.institution_id,
        institution_name=sender.display_name,
        institution_type=sender.kind,
        subject=message.subject,
        from_=message.raw_from,
    )


def build_promotional_record(
    user_id: str,
    message: NormalizedMessage,
    sender: SenderMatch,
    intent: IntentResult,
) -> PromotionalRecord:
    """Reduced record for promotional messages; carries no transaction fields."""
    return PromotionalRecord(
        user_id=user_id,
        institution=sender.institution_id,
        institution_name=sender.display_name,
        subject=message.subject,
        classification_reason=intent.reason,
        classification_confidence=intent.confidence,
    )


def build_parse_failed_record(
    user_id: str,
    message: NormalizedMessage,
    sender: SenderMatch,
) -> FailureRecord:
    """Transactional message without a positive amount, kept for offline triage."""
    return FailureRecord(
        user_id=user_id,
        reason="parse_failed",
        institution=sender.institution_id,
        subject=message.subject,
        body_preview=message.body[:BODY_PREVIEW_LENGTH],
    )


def build_worker_error_record(error: Exception, user_id: Optional[str] = None) -> FailureRecord:
    """Report for an unexpected failure inside the pipeline."""
    return FailureRecord(
        user_id=user_id,
        reason="worker_error",
        error=str(error),
    )
