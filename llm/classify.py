"""
Classifier calls with a hard deadline and answer validation.

Each call runs in a worker future; if the answer is not back within the
deadline the caller gets an LLMError and takes its deterministic fallback.
Answers are only trusted after validation against a closed set.
"""
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from core.config import Settings, get_settings
from core.exceptions import LLMError
from core.logger import setup_logger
from core.schema import VALID_CATEGORIES, VALID_TRANSACTION_TYPES, TransactionType
from llm.client import LLMClientWrapper
from llm.prompts import build_category_prompt, build_intent_prompt, build_type_prompt

logger = setup_logger(__name__)

_TYPE_CLEAN_RE = re.compile(r"[^a-z_]")
_CATEGORY_CLEAN_RE = re.compile(r"[^a-z-]")


def parse_transaction_type(answer: Optional[str]) -> Optional[TransactionType]:
    """Validate a type answer against the closed enumeration."""
    cleaned = _TYPE_CLEAN_RE.sub("", (answer or "").strip().lower())
    if cleaned in VALID_TRANSACTION_TYPES:
        return TransactionType(cleaned)
    return None


def parse_category(answer: Optional[str]) -> Optional[str]:
    """Validate a category answer against the category list."""
    cleaned = _CATEGORY_CLEAN_RE.sub("", (answer or "").strip().lower())
    if cleaned in VALID_CATEGORIES:
        return cleaned
    return None


class ModelClassifier:
    """Deadline-bounded access to the probabilistic classifier."""

    def __init__(self, client, timeout: float):
        """
        Args:
            client: Object with complete(prompt, max_tokens) -> str
            timeout: Hard deadline per call, in seconds
        """
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Optional["ModelClassifier"]:
        """Build a classifier, or None when no gateway is configured."""
        settings = settings or get_settings()
        if not settings.llm_enabled:
            logger.info("No classifier gateway configured, deterministic fallbacks only")
            return None
        return cls(LLMClientWrapper(settings), timeout=settings.llm_timeout)

    def ask(self, prompt: str, max_tokens: int) -> str:
        """
        Run one completion under the deadline.

        Raises:
            LLMError: On timeout, failure or empty answer
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
        try:
            future = executor.submit(self.client.complete, prompt, max_tokens)
            answer = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            raise LLMError(
                f"Classifier did not answer within {self.timeout}s",
                details={"timeout": self.timeout}
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Classifier call failed: {e}", details={"error": str(e)})
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if not isinstance(answer, str) or not answer.strip():
            raise LLMError("Classifier returned an empty answer")
        return answer.strip()

    def classify_intent(self, institution_name: str, subject: str, body_preview: str) -> str:
        """
        Ask whether a message is about money that already moved.

        Returns:
            Lower-cased raw answer
        """
        prompt = build_intent_prompt(institution_name, subject, body_preview)
        return self.ask(prompt, max_tokens=10).lower()

    def detect_transaction_type(self, subject: str, body_preview: str) -> TransactionType:
        """
        Ask for the transaction type.

        Raises:
            LLMError: If the answer is outside the closed enumeration
        """
        answer = self.ask(build_type_prompt(subject, body_preview), max_tokens=30)
        transaction_type = parse_transaction_type(answer)
        if transaction_type is None:
            raise LLMError(
                f"Classifier returned invalid type: {answer!r}",
                details={"answer": answer}
            )
        return transaction_type

    def categorize(self, context: str, transaction_type: Optional[TransactionType]) -> str:
        """
        Ask for a spending/income category.

        Raises:
            LLMError: If the answer is not a known category
        """
        answer = self.ask(build_category_prompt(context, transaction_type), max_tokens=30)
        category = parse_category(answer)
        if category is None:
            raise LLMError(
                f"Classifier returned invalid category: {answer!r}",
                details={"answer": answer}
            )
        return category
