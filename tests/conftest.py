"""
Shared fixtures: settings, registry, and fakes for the classifier and ledger.
"""
from typing import Any, Dict, List, Optional

import pytest

from core.config import PROJECT_ROOT, Settings, reset_settings
from core.exceptions import DeliveryError, LLMError
from core.institutions import load_institution_registry
from core.matching import InstitutionMatcher
from core.schema import RawMessage
from services.pipeline import MessagePipeline


class FakeBackend:
    """Records everything the pipeline would post to the ledger."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.records: List[Dict[str, Any]] = []
        self.forwards: List[Dict[str, Any]] = []
        self.attempts = 0

    def send_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self.attempts += 1
        if self.fail:
            raise DeliveryError("Backend responded with 500", details={"status_code": 500})
        self.records.append(record)
        return {"ok": True}

    def forward_verification(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail:
            raise DeliveryError("Backend responded with 500", details={"status_code": 500})
        self.forwards.append(payload)
        return {"ok": True}


class FakeModel:
    """
    Stand-in for ModelClassifier.

    Each answer may be a value to return or an exception to raise.
    """

    def __init__(self, intent: Any = "transaction", transaction_type: Any = None, category: Any = None):
        self.intent = intent
        self.transaction_type = transaction_type
        self.category = category
        self.calls: List[str] = []

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def classify_intent(self, institution_name: str, subject: str, body_preview: str) -> str:
        self.calls.append("intent")
        return self._answer(self.intent)

    def detect_transaction_type(self, subject: str, body_preview: str):
        self.calls.append("type")
        if self.transaction_type is None:
            raise LLMError("no type configured")
        return self._answer(self.transaction_type)

    def categorize(self, context: str, transaction_type) -> str:
        self.calls.append("category")
        if self.category is None:
            raise LLMError("no category configured")
        return self._answer(self.category)


def build_raw_email(
    subject: str,
    body: str,
    sender: str = "info@mercadopago.com",
    content_type: Optional[str] = "text/plain; charset=utf-8",
    encoding: Optional[str] = None,
    newline: str = "\n",
) -> str:
    """Assemble a minimal raw RFC 822 message."""
    headers = [
        f"From: {sender}",
        "To: user_abc123@example.com",
        f"Subject: {subject}",
        "MIME-Version: 1.0",
    ]
    if content_type:
        headers.append(f"Content-Type: {content_type}")
    if encoding:
        headers.append(f"Content-Transfer-Encoding: {encoding}")
    return newline.join(headers) + newline + newline + body


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep the settings singleton and env-driven values from leaking between tests."""
    for name in ("LOG_LEVEL", "PORT", "LLM_GATEWAY_URL", "INBOUND_SECRET_KEY", "INBOUND_EMAIL_DOMAIN"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BACKEND_WEBHOOK_URL="http://ledger.test/webhook",
        BACKEND_SECRET_KEY="test-secret",
        LLM_GATEWAY_URL="",
    )


@pytest.fixture(scope="session")
def registry():
    return load_institution_registry(PROJECT_ROOT / "data" / "institutions.json")


@pytest.fixture
def matcher(registry) -> InstitutionMatcher:
    return InstitutionMatcher(registry)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def pipeline(settings, matcher, backend) -> MessagePipeline:
    """Pipeline with the classifier disabled."""
    return MessagePipeline(settings=settings, matcher=matcher, backend=backend, model=None)


@pytest.fixture
def make_message():
    def _make(subject: str, body: str, sender: str = "info@mercadopago.com",
              to: str = "user_abc123@example.com", **kwargs) -> RawMessage:
        raw = build_raw_email(subject, body, sender=sender, **kwargs)
        return RawMessage(to=to, from_=sender, payload=raw)
    return _make
