"""
Transaction field extraction from normalized notification text.

Type comes from the classifier when it gives a valid answer, otherwise from
ordered keyword rules. Amount, counterparty, description and reference id
are always extracted with deterministic patterns.

Amounts use Argentine number formatting: "." groups thousands and a trailing
",NN" is the decimal part ("$1.500,50" -> 1500.50).
"""
import re
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional, Pattern, Tuple

from core.logger import setup_logger
from core.schema import (
    VALID_TRANSACTION_TYPES,
    DecisionSource,
    ExtractedTransaction,
    TransactionType,
)

logger = setup_logger(__name__)

TYPE_BODY_PREVIEW = 500
ZERO = Decimal("0")


class TypeRule(NamedTuple):
    """Keywords that identify one transaction type."""
    transaction_type: TransactionType
    subject_keywords: Tuple[str, ...]
    body_keywords: Tuple[str, ...] = ()

    def matches(self, subject_lower: str, body_lower: str) -> bool:
        return (
            any(k in subject_lower for k in self.subject_keywords)
            or any(k in body_lower for k in self.body_keywords)
        )


# Money-in rules are listed before money-out rules; first match wins.
TYPE_RULES: Tuple[TypeRule, ...] = (
    TypeRule(
        TransactionType.TRANSFER_RECEIVED,
        ("recibiste", "te transfirieron", "te enviaron", "transferencia recibida"),
    ),
    TypeRule(
        TransactionType.PAYMENT_RECEIVED,
        ("te pagaron", "recibiste un pago", "te depositaron", "pago recibido"),
    ),
    TypeRule(
        TransactionType.REFUND_RECEIVED,
        ("te devolvieron", "reembolso"),
        ("devolución a tu favor",),
    ),
    TypeRule(
        TransactionType.DEPOSIT,
        ("ingreso", "cargaste", "acreditamos", "cashback", "bonificación", "ganaste"),
    ),
    TypeRule(
        TransactionType.TRANSFER_SENT,
        ("transferiste", "enviaste", "transferencia enviada", "fue enviada"),
    ),
    TypeRule(
        TransactionType.PAYMENT_SENT,
        ("pagaste", "compraste", "qr", "suscripción", "cobro automático", "cuota", "débito", "pago enviado"),
    ),
    TypeRule(
        TransactionType.REFUND_SENT,
        ("devolviste", "reembolsaste"),
    ),
    TypeRule(
        TransactionType.WITHDRAWAL,
        ("retiro", "extracción"),
        ("retiro", "extracción"),
    ),
)

AMOUNT_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"\$\s*([\d.]+(?:,\d{2})?)"),
    re.compile(r"\bARS\s*([\d.]+(?:,\d{2})?)", re.IGNORECASE),
)

_DECIMAL_SUFFIX_RE = re.compile(r",\d{2}$")

_NAME = r"[A-Za-zÀ-ÿ]"
_NAME_OR_SPACE = r"[A-Za-zÀ-ÿ\s]"

# Declaration order is significant: the first pattern with a usable capture wins.
COUNTERPARTY_PATTERNS: Tuple[Pattern, ...] = (
    # "Nombre y apellido: Maria Lourdes Montagner"
    re.compile(
        rf"nombre\s+y\s+apellido[:\s*]+\*?({_NAME}{_NAME_OR_SPACE}{{2,40}}?)\*?(?:\s*Entidad|\s*$|\s*\n)",
        re.IGNORECASE,
    ),
    # "Le transferiste a Juan Pérez por $500"
    re.compile(
        rf"(?:transferiste|enviaste|transferencia)\s+a\s+({_NAME}{_NAME_OR_SPACE}{{1,30}}?)(?:\s*\$|\s*por|\s*$|\s*\.)",
        re.IGNORECASE,
    ),
    # "de Juan Pérez", "a Juan Pérez", "para Juan Pérez"
    re.compile(
        rf"\b(?:de|a|para)\s+({_NAME}{_NAME_OR_SPACE}{{1,30}}?)(?:\s*\$|\s*por|\s*$|\s*\.)",
        re.IGNORECASE,
    ),
    # "Juan Pérez te transfirió"
    re.compile(
        rf"({_NAME}{_NAME_OR_SPACE}{{1,30}}?)\s+te\s+(?:transfirió|pagó|envió)",
        re.IGNORECASE,
    ),
    # "Destinatario: Juan Pérez"
    re.compile(
        rf"(?:destinatario|receptor|beneficiario)[:\s]+({_NAME}{_NAME_OR_SPACE}{{1,30}})",
        re.IGNORECASE,
    ),
    # "Pagaste en Tienda XYZ"
    re.compile(
        r"(?:pagaste|compraste)\s+en\s+([A-Za-zÀ-ÿ0-9][A-Za-zÀ-ÿ0-9\s]{1,30})",
        re.IGNORECASE,
    ),
)

# The capture stops at the end of the line, a sentence end, an amount or the
# next field label, so flattened HTML bodies do not run into other fields.
DESCRIPTION_PATTERN = re.compile(
    r"\b(?:concepto|motivo|descripci[oó]n)\s*:\s*(.{2,80}?)"
    r"(?=\s*(?:\r?\n|\s{2,}|\.\s|\$|\b(?:monto|importe|fecha|hora|operaci[oó]n|referencia"
    r"|comprobante|destinatario|cuenta|cbu|cvu|alias)\b|$))",
    re.IGNORECASE,
)

# "Operación 123456", "Comprobante #98765", "Operación N° 12345678"
REFERENCE_PATTERN = re.compile(
    r"\b(?:operaci[oó]n|referencia|id|comprobante)"
    r"(?:\s*(?:n[°º]|nro\.?|n\.|n[uú]mero))?[:\s#.]*(\d{5,})",
    re.IGNORECASE,
)

_TRAILING_MARKERS_RE = re.compile(r"[\s*.,;:!?\-_|]+$")


def parse_locale_amount(value: str) -> Decimal:
    """
    Parse an Argentine-formatted number.

    Examples:
        "1.500,50" -> Decimal("1500.50")
        "1.500"    -> Decimal("1500")
        "2.000,00" -> Decimal("2000.00")
        "."        -> Decimal("0")
    """
    cleaned = (value or "").strip()
    if _DECIMAL_SUFFIX_RE.search(cleaned):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(".", "")

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Could not parse amount candidate {value!r}")
        return ZERO


def extract_amount(text: str) -> Decimal:
    """
    Largest amount found in text.

    Every "$..." and "ARS ..." candidate is parsed and the maximum is kept,
    so smaller incidental figures (fees, partial amounts) that come first do
    not win. This is a heuristic, not a guaranteed parse of the amount.

    Returns:
        Largest amount, or 0 when nothing parses
    """
    max_amount = ZERO
    for pattern in AMOUNT_PATTERNS:
        for match in pattern.finditer(text or ""):
            amount = parse_locale_amount(match.group(1))
            if amount > max_amount:
                max_amount = amount
    return max_amount


def clean_captured_text(value: str) -> str:
    """Trim whitespace and trailing punctuation or markers from a capture."""
    return _TRAILING_MARKERS_RE.sub("", value.strip()).strip()


def extract_counterparty(text: str) -> Optional[str]:
    """First counterparty capture longer than one character, in pattern order."""
    for pattern in COUNTERPARTY_PATTERNS:
        match = pattern.search(text or "")
        if not match:
            continue
        candidate = clean_captured_text(match.group(1))
        if len(candidate) > 1:
            return candidate
    return None


def extract_description(text: str) -> Optional[str]:
    """Free-text concept from a Concepto:/Motivo:/Descripción: label."""
    match = DESCRIPTION_PATTERN.search(text or "")
    if not match:
        return None
    description = clean_captured_text(match.group(1))
    return description if len(description) > 1 else None


def extract_reference_id(text: str) -> Optional[str]:
    """Operation/reference/receipt number (5+ digits) following its label."""
    match = REFERENCE_PATTERN.search(text or "")
    return match.group(1) if match else None


def detect_type_by_keywords(
    subject: str,
    body: str,
    rules: Tuple[TypeRule, ...] = TYPE_RULES,
) -> Tuple[TransactionType, DecisionSource]:
    """
    Keyword fallback for the transaction type.

    Returns:
        (type, "rule") on a match, (UNKNOWN, "default") otherwise
    """
    subject_lower = (subject or "").lower()
    body_lower = (body or "").lower()

    for rule in rules:
        if rule.matches(subject_lower, body_lower):
            return rule.transaction_type, "rule"

    return TransactionType.UNKNOWN, "default"


def _validated_type(value) -> Optional[TransactionType]:
    candidate = getattr(value, "value", value)
    if isinstance(candidate, str) and candidate in VALID_TRANSACTION_TYPES:
        return TransactionType(candidate)
    return None


class TransactionExtractor:
    """Derives type, amount, counterparty, description and reference id."""

    def __init__(self, model=None, default_currency: str = "ARS"):
        """
        Args:
            model: Object with detect_transaction_type(subject, preview), or None
            default_currency: Currency reported for every extracted amount
        """
        self.model = model
        self.default_currency = default_currency

    def detect_type(self, subject: str, body: str) -> Tuple[TransactionType, DecisionSource]:
        """
        Classifier first, keyword rules second, UNKNOWN last.
        Never raises.
        """
        if self.model is not None:
            try:
                answer = self.model.detect_transaction_type(subject, body[:TYPE_BODY_PREVIEW])
            except Exception as e:
                logger.warning(f"Type classifier failed, using keyword matching: {e}")
            else:
                transaction_type = _validated_type(answer)
                if transaction_type is not None:
                    logger.info(f"Classifier detected type: {transaction_type.value}")
                    return transaction_type, "model"
                logger.warning(f"Classifier returned invalid type {answer!r}, using keyword matching")

        return detect_type_by_keywords(subject, body)

    def extract(self, subject: str, body: str) -> ExtractedTransaction:
        """
        Extract transaction fields.

        An amount of 0 means no amount could be parsed; callers report it
        as a parse failure.

        Args:
            subject: Message subject
            body: Normalized body

        Returns:
            ExtractedTransaction
        """
        full_text = f"{subject} {body}"

        transaction_type, type_source = self.detect_type(subject, body)

        extracted = ExtractedTransaction(
            type=transaction_type,
            type_source=type_source,
            amount=extract_amount(full_text),
            currency=self.default_currency,
            counterparty=extract_counterparty(full_text),
            description=extract_description(full_text),
            reference_id=extract_reference_id(full_text),
        )

        logger.info(
            f"Parsed: type={extracted.type.value} ({extracted.type_source}), "
            f"amount={extracted.amount}, counterparty={extracted.counterparty or 'N/A'}"
        )

        return extracted
