"""
Transactional vs promotional intent classification.

Decision order, first applicable step wins:
  1. promotional keyword in subject/body  -> promotional (keyword)
  2. sender matched a marketing entry     -> promotional (domain)
  3. transaction keyword                  -> transactional (keyword)
  4. classifier answer                    -> either (model)
  5. classifier unavailable or failed     -> transactional (fallback)
"""
from typing import Callable, Optional, Sequence, Tuple

from core.logger import setup_logger
from core.schema import IntentResult, SenderMatch

logger = setup_logger(__name__)

PROMOTIONAL_KEYWORDS: Tuple[str, ...] = (
    "cashback disponible", "ganaste", "beneficio exclusivo", "descuento",
    "oferta especial", "promo", "cupón", "premio", "sorteo", "regalo",
    "aprovechá", "no te pierdas", "por tiempo limitado", "solo hoy",
    "última oportunidad", "exclusivo para vos", "bonus", "puntos extra",
    "recompensa", "acumulá", "canjeá", "duplicá", "triplicá",
)

TRANSACTION_KEYWORDS: Tuple[str, ...] = (
    "transferiste", "recibiste", "pagaste", "te transfirieron",
    "te pagaron", "retiro", "depósito", "compra", "cobro",
    "movimiento", "operación exitosa", "comprobante",
)

IntentRule = Callable[[SenderMatch, str], Optional[IntentResult]]


def find_keyword(text: str, keywords: Sequence[str]) -> Optional[str]:
    """Return the first keyword contained in text (already lower-cased)."""
    for keyword in keywords:
        if keyword in text:
            return keyword
    return None


class IntentClassifier:
    """Keyword rules first, classifier second, transactional by default."""

    def __init__(
        self,
        model=None,
        promotional_keywords: Sequence[str] = PROMOTIONAL_KEYWORDS,
        transaction_keywords: Sequence[str] = TRANSACTION_KEYWORDS,
    ):
        """
        Args:
            model: Object with classify_intent(name, subject, preview) -> str, or None
            promotional_keywords: Ordered promotional keywords
            transaction_keywords: Ordered transaction keywords
        """
        self.model = model
        self.promotional_keywords = tuple(k.lower() for k in promotional_keywords)
        self.transaction_keywords = tuple(k.lower() for k in transaction_keywords)
        self.rules: Tuple[IntentRule, ...] = (
            self._promotional_keyword_rule,
            self._marketing_sender_rule,
            self._transaction_keyword_rule,
        )

    def _promotional_keyword_rule(self, sender: SenderMatch, text: str) -> Optional[IntentResult]:
        keyword = find_keyword(text, self.promotional_keywords)
        if keyword:
            return IntentResult(classification="promotional", confidence="keyword", reason=keyword)
        return None

    def _marketing_sender_rule(self, sender: SenderMatch, text: str) -> Optional[IntentResult]:
        if sender.is_marketing:
            return IntentResult(classification="promotional", confidence="domain", reason="marketing domain")
        return None

    def _transaction_keyword_rule(self, sender: SenderMatch, text: str) -> Optional[IntentResult]:
        keyword = find_keyword(text, self.transaction_keywords)
        if keyword:
            return IntentResult(classification="transactional", confidence="keyword", reason=keyword)
        return None

    def classify(self, sender: SenderMatch, subject: str, body_preview: str) -> IntentResult:
        """
        Decide whether a message describes a real money movement.

        Args:
            sender: Matched institution for the sender
            subject: Message subject
            body_preview: Start of the normalized body

        Returns:
            IntentResult; never raises
        """
        text = f"{subject} {body_preview}".lower()

        for rule in self.rules:
            result = rule(sender, text)
            if result is not None:
                logger.info(
                    f"Intent for {sender.institution_id}: {result.classification} "
                    f"({result.confidence}: {result.reason})"
                )
                return result

        return self._classify_with_model(sender, subject, body_preview)

    def _classify_with_model(self, sender: SenderMatch, subject: str, body_preview: str) -> IntentResult:
        if self.model is None:
            return IntentResult(classification="transactional", confidence="fallback", reason="classifier disabled")

        try:
            answer = self.model.classify_intent(sender.display_name, subject, body_preview)
        except Exception as e:
            logger.warning(f"Intent classifier failed, defaulting to transactional: {e}")
            return IntentResult(classification="transactional", confidence="fallback", reason="classifier error")

        classification = "transactional" if "transaction" in answer.lower() else "promotional"
        logger.info(f"Classifier intent for {sender.institution_id}: {classification} ({answer!r})")
        return IntentResult(classification=classification, confidence="model", reason=f"model: {answer}")
