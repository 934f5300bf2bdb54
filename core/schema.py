"""
Pydantic schemas for pipeline values and outbound records.
Outbound records serialize with the camelCase field names the ledger expects.
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class TransactionType(str, Enum):
    """Closed set of transaction types."""
    TRANSFER_RECEIVED = "transfer_received"
    TRANSFER_SENT = "transfer_sent"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_SENT = "payment_sent"
    WITHDRAWAL = "withdrawal"
    DEPOSIT = "deposit"
    REFUND_RECEIVED = "refund_received"
    REFUND_SENT = "refund_sent"
    UNKNOWN = "unknown"


VALID_TRANSACTION_TYPES: Tuple[str, ...] = tuple(
    t.value for t in TransactionType if t is not TransactionType.UNKNOWN
)

INCOME_TYPES = frozenset({
    TransactionType.TRANSFER_RECEIVED,
    TransactionType.PAYMENT_RECEIVED,
    TransactionType.DEPOSIT,
    TransactionType.REFUND_RECEIVED,
})

VALID_CATEGORIES: Tuple[str, ...] = (
    "utilities-bills",
    "food-dining",
    "transportation",
    "shopping-clothing",
    "health-wellness",
    "recreation-entertainment",
    "financial-obligations",
    "savings-investments",
    "miscellaneous-other",
)

DEFAULT_CATEGORY = "miscellaneous-other"

DecisionSource = Literal["rule", "model", "default"]


class RawMessage(BaseModel):
    """Envelope addresses plus the full message payload, headers included."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str
    from_: str = Field(..., alias="from")
    payload: Union[bytes, str]

    def payload_text(self) -> str:
        """Consume the payload into a string."""
        if isinstance(self.payload, bytes):
            return self.payload.decode("utf-8", errors="replace")
        return self.payload


class NormalizedMessage(BaseModel):
    """Decoded subject and plain-text body of one message."""
    model_config = ConfigDict(frozen=True)

    subject: str = ""
    body: str = ""
    raw_from: str = ""
    raw_to: str = ""


class Institution(BaseModel):
    """Registry entry for a known financial institution."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    display_name: str = Field(..., alias="name")
    kind: Literal["fintech", "bank"] = Field(..., alias="type")
    transactional_senders: Tuple[str, ...] = Field(default=(), alias="transactionalSenders")
    marketing_senders: Tuple[str, ...] = Field(default=(), alias="marketingSenders")


class SenderMatch(BaseModel):
    """Which institution a sender belongs to, and through which list."""
    model_config = ConfigDict(frozen=True)

    institution_id: str
    display_name: str
    kind: Literal["fintech", "bank"]
    is_marketing: bool = False
    matched_entry: str = ""


class IntentResult(BaseModel):
    """Transactional vs promotional decision."""
    model_config = ConfigDict(frozen=True)

    classification: Literal["transactional", "promotional"]
    confidence: Literal["keyword", "domain", "model", "fallback"]
    reason: str = ""

    @property
    def is_promotional(self) -> bool:
        return self.classification == "promotional"


class ExtractedTransaction(BaseModel):
    """Fields pulled out of a transactional message."""
    model_config = ConfigDict(frozen=True)

    type: TransactionType = TransactionType.UNKNOWN
    type_source: DecisionSource = "default"
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = "ARS"
    counterparty: Optional[str] = None
    description: Optional[str] = None
    reference_id: Optional[str] = None


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Outbound records
# ---------------------------------------------------------------------------

class OutboundRecord(BaseModel):
    """Base for everything posted to the ledger backend."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    valid: bool

    def to_payload(self) -> dict:
        """JSON-ready dict with ledger field names."""
        return self.model_dump(mode="json", by_alias=True)


class TransactionRecord(OutboundRecord):
    valid: bool = True
    type: TransactionType
    amount: Decimal
    currency: str
    counterparty: Optional[str] = None
    description: Optional[str] = None
    reference_id: Optional[str] = Field(None, alias="referenceId")
    email_hash: str = Field(..., alias="emailHash")
    category: Optional[str] = None
    institution: str
    institution_name: str = Field(..., alias="institutionName")
    institution_type: str = Field(..., alias="institutionType")
    subject: str
    from_: str = Field(..., alias="from")
    received_at: str = Field(default_factory=utc_now_iso, alias="receivedAt")

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class PromotionalRecord(OutboundRecord):
    valid: bool = True
    is_promotional: bool = Field(True, alias="isPromotional")
    reason: str = "promotional"
    institution: str
    institution_name: str = Field(..., alias="institutionName")
    subject: str
    classification_reason: str = Field("", alias="classificationReason")
    classification_confidence: str = Field("", alias="classificationConfidence")
    received_at: str = Field(default_factory=utc_now_iso, alias="receivedAt")


class FailureRecord(OutboundRecord):
    """parse_failed and worker_error reports."""
    valid: bool = False
    reason: Literal["not_from_known_institution", "parse_failed", "worker_error"]
    institution: Optional[str] = None
    subject: Optional[str] = None
    body_preview: Optional[str] = Field(None, alias="bodyPreview")
    error: Optional[str] = None


class VerificationForward(BaseModel):
    """Payload for the sender-verification forwarding endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    subject: str
    html_body: str = Field(..., alias="htmlBody")
    verification_link: Optional[str] = Field(None, alias="verificationLink")
    verification_code: Optional[str] = Field(None, alias="verificationCode")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
