"""
Message processing pipeline.
Runs one inbound notification through recipient check, normalization,
institution matching, intent classification, extraction and delivery.
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

from core.config import Settings, get_settings
from core.exceptions import DeliveryError
from core.extraction import TransactionExtractor
from core.fingerprint import fingerprint
from core.institutions import load_institution_registry
from core.intent import IntentClassifier
from core.logger import preview, setup_logger
from core.matching import InstitutionMatcher
from core.normalize import normalize_message
from core.parsing import extract_user_id
from core.schema import (
    DEFAULT_CATEGORY,
    ExtractedTransaction,
    NormalizedMessage,
    OutboundRecord,
    RawMessage,
    VerificationForward,
)
from core.verification import (
    extract_verification_code,
    extract_verification_link,
    is_verification_sender,
)
from llm.classify import ModelClassifier
from services.assembler import (
    build_parse_failed_record,
    build_promotional_record,
    build_transaction_record,
    build_worker_error_record,
)
from services.backend_client import BackendClient

logger = setup_logger(__name__)

PipelineStatus = Literal[
    "dropped_recipient",
    "verification_forwarded",
    "dropped_sender",
    "promotional",
    "parse_failed",
    "delivered",
    "delivery_failed",
    "worker_error",
]

INTENT_BODY_PREVIEW = 500


class PipelineOutcome(BaseModel):
    """How a single invocation ended, and what (if anything) was sent."""
    status: PipelineStatus
    record: Optional[Dict[str, Any]] = None


class MessagePipeline:
    """Stateless per-message pipeline; safe to call concurrently."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        matcher: Optional[InstitutionMatcher] = None,
        backend: Optional[BackendClient] = None,
        model: Optional[ModelClassifier] = None,
        intent_classifier: Optional[IntentClassifier] = None,
        extractor: Optional[TransactionExtractor] = None,
    ):
        """
        Args:
            settings: Application settings
            matcher: Institution matcher; loads the configured registry if omitted
            backend: Ledger client
            model: Probabilistic classifier, None for deterministic fallbacks only
            intent_classifier: Intent stage; built around model if omitted
            extractor: Extraction stage; built around model if omitted
        """
        self.settings = settings or get_settings()
        self.matcher = matcher or InstitutionMatcher(load_institution_registry(self.settings.institutions_path))
        self.backend = backend or BackendClient(self.settings)
        self.model = model
        self.intent_classifier = intent_classifier or IntentClassifier(model=model)
        self.extractor = extractor or TransactionExtractor(
            model=model,
            default_currency=self.settings.default_currency,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MessagePipeline":
        """Wire the pipeline from configuration, classifier included when enabled."""
        settings = settings or get_settings()
        return cls(settings=settings, model=ModelClassifier.from_settings(settings))

    def process(self, message: RawMessage) -> PipelineOutcome:
        """
        Process one inbound message.

        Never raises: unexpected failures are reported as worker_error and
        failures while reporting are swallowed.
        """
        user_id = None
        try:
            user_id = extract_user_id(message.to, self.settings.inbound_email_domain)
            if not user_id:
                logger.info(f"Invalid recipient address: {message.to}")
                return PipelineOutcome(status="dropped_recipient")

            normalized = normalize_message(message)

            if is_verification_sender(message.from_, self.settings.verification_sender_list):
                self._forward_verification(user_id, normalized, message)
                return PipelineOutcome(status="verification_forwarded")

            return self._process_notification(user_id, normalized)

        except Exception as e:
            logger.error(f"Pipeline error: {e}", exc_info=True)
            record = build_worker_error_record(e, user_id).to_payload()
            try:
                self.backend.send_record(record)
            except Exception as report_error:
                logger.warning(f"Could not report pipeline error: {report_error}")
            return PipelineOutcome(status="worker_error", record=record)

    def _process_notification(self, user_id: str, message: NormalizedMessage) -> PipelineOutcome:
        logger.info(f"Processing email from: {message.raw_from}")

        sender = self.matcher.match(message.raw_from)
        if sender is None:
            logger.info(f"Unknown sender, not from any registered institution: {message.raw_from}")
            return PipelineOutcome(status="dropped_sender")

        logger.info(f"Institution: {sender.display_name} ({sender.kind}), subject: {message.subject!r}")
        logger.debug(f"Body preview: {preview(message.body)}")

        intent = self.intent_classifier.classify(sender, message.subject, message.body[:INTENT_BODY_PREVIEW])

        if intent.is_promotional:
            logger.info(f"Promotional email from {sender.display_name}: {intent.reason} ({intent.confidence})")
            record = build_promotional_record(user_id, message, sender, intent)
            return self._deliver(record, "promotional")

        transaction = self.extractor.extract(message.subject, message.body)

        if transaction.amount <= 0:
            logger.warning(f"Could not extract amount from email: {message.subject!r}")
            record = build_parse_failed_record(user_id, message, sender)
            return self._deliver(record, "parse_failed")

        category = self._categorize(transaction, message.subject)

        record = build_transaction_record(
            user_id,
            message,
            sender,
            transaction,
            email_hash=fingerprint(message.subject, message.body),
            category=category,
        )
        outcome = self._deliver(record, "delivered")

        if outcome.status == "delivered":
            logger.info(
                f"Processed: {user_id} - {sender.display_name} - {transaction.type.value} - "
                f"${transaction.amount}" + (f" [{category}]" if category else "")
            )
        return outcome

    def _categorize(self, transaction: ExtractedTransaction, subject: str) -> Optional[str]:
        if self.model is None or not self.settings.categorize_transactions:
            return None

        context = " ".join(
            part for part in (transaction.counterparty, transaction.description, subject) if part
        ).strip()
        if not context:
            return DEFAULT_CATEGORY

        try:
            return self.model.categorize(context, transaction.type)
        except Exception as e:
            logger.warning(f"Categorization failed, defaulting to {DEFAULT_CATEGORY}: {e}")
            return DEFAULT_CATEGORY

    def _deliver(self, record: OutboundRecord, status: PipelineStatus) -> PipelineOutcome:
        payload = record.to_payload()
        try:
            self.backend.send_record(payload)
        except DeliveryError as e:
            logger.error(f"Delivery failed (status={e.status_code}): {e.message}")
            error_record = build_worker_error_record(e, payload.get("userId")).to_payload()
            try:
                self.backend.send_record(error_record)
            except Exception as report_error:
                logger.warning(f"Could not report delivery failure: {report_error}")
            return PipelineOutcome(status="delivery_failed", record=payload)

        return PipelineOutcome(status=status, record=payload)

    def _forward_verification(self, user_id: str, message: NormalizedMessage, raw: RawMessage) -> None:
        logger.info(f"Sender verification email detected for user {user_id}")

        content = f"{message.body} {raw.payload_text()}"
        forward = VerificationForward(
            user_id=user_id,
            subject=message.subject,
            html_body=message.body,
            verification_link=extract_verification_link(content),
            verification_code=extract_verification_code(content),
        )

        if forward.verification_code:
            logger.info(f"Verification code found for user {user_id}")
        else:
            logger.warning(f"No verification code found for user {user_id}")

        try:
            self.backend.forward_verification(forward.to_payload())
            logger.info(f"Verification email sent to backend for forwarding to user {user_id}")
        except DeliveryError as e:
            logger.warning(f"Backend forwarding failed: {e.message}")
