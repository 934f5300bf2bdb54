"""
Ledger backend delivery.
Records are posted as JSON with the shared secret in X-Secret-Key.
Delivery is not retried here; a failed post raises DeliveryError.
"""
from typing import Any, Dict, Optional

import requests

from core.config import Settings, get_settings
from core.exceptions import DeliveryError
from core.logger import setup_logger

logger = setup_logger(__name__)

SECRET_HEADER = "X-Secret-Key"


class BackendClient:
    """Posts outbound records and verification forwards to the ledger backend."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.webhook_url = settings.backend_webhook_url
        self.forward_url = settings.forward_url
        self.secret_key = settings.backend_secret_key
        self.timeout = settings.backend_timeout

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            SECRET_HEADER: self.secret_key,
        }

        try:
            with requests.Session() as session:
                response = session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DeliveryError(
                f"Failed to reach backend: {e}",
                details={"url": url, "error": str(e)}
            )

        if not response.ok:
            raise DeliveryError(
                f"Backend responded with {response.status_code}",
                details={"url": url, "status_code": response.status_code, "response_text": response.text}
            )

        try:
            return response.json()
        except ValueError:
            return {}

    def send_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Post one outbound record to the webhook.

        Raises:
            DeliveryError: On transport failure or a non-2xx response
        """
        result = self._post(self.webhook_url, record)
        logger.debug(f"Delivered record (valid={record.get('valid')}, reason={record.get('reason')})")
        return result

    def forward_verification(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Post a sender-verification forward.

        Raises:
            DeliveryError: On transport failure or a non-2xx response
        """
        return self._post(self.forward_url, payload)
