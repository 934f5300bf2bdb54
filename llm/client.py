"""
Classifier gateway client using direct REST API calls.
Handles chat completion requests with transport retries.
"""
from typing import Any, Dict, Optional

import requests
import urllib3
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError, LLMError
from core.logger import setup_logger

logger = setup_logger(__name__)

_TRANSIENT_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


def extract_completion_text(completion_data: Any) -> Optional[str]:
    """
    Pull the answer text out of a gateway response.

    Supports OpenAI-style "choices", a response "output" message list, and
    Workers-AI-style "result.response" / "response".

    Returns:
        Answer text or None if the structure is not recognised
    """
    if not isinstance(completion_data, dict):
        return None

    if "choices" in completion_data:
        try:
            content = completion_data["choices"][0]["message"]["content"]
            if isinstance(content, str):
                return content
        except (KeyError, IndexError, TypeError):
            pass

    for item in completion_data.get("output") or []:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "message" and item.get("role") == "assistant":
            for content_item in item.get("content", []):
                if content_item.get("type") == "output_text":
                    return content_item.get("text")

    result = completion_data.get("result")
    if isinstance(result, dict) and isinstance(result.get("response"), str):
        return result["response"]

    if isinstance(completion_data.get("response"), str):
        return completion_data["response"]

    return None


class LLMClientWrapper:
    """Wrapper for the classifier REST API with retry logic."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize REST API client."""
        settings = settings or get_settings()

        if not settings.llm_gateway_url:
            raise ConfigurationError(
                "LLM_GATEWAY_URL environment variable not set",
                details={"required_key": "LLM_GATEWAY_URL"}
            )

        self.gateway_url = settings.llm_gateway_url
        self.api_key = settings.llm_api_key
        self.model = settings.llm_model
        self.timeout = settings.llm_timeout
        self.max_attempts = settings.llm_max_attempts
        self.verify_ssl = settings.llm_verify_ssl

        if not self.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        logger.info(f"Initialized classifier REST client with model: {self.model}, gateway: {self.gateway_url}")

    def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> requests.Response:
        for attempt in Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        ):
            with attempt:
                with requests.Session() as session:
                    return session.post(
                        self.gateway_url,
                        headers=headers,
                        json=payload,
                        verify=self.verify_ssl,
                        timeout=self.timeout,
                    )

    def complete(self, prompt: str, max_tokens: int = 10, temperature: float = 0.0) -> str:
        """
        Send a single-turn prompt and return the answer text.

        Args:
            prompt: User prompt
            max_tokens: Answer length cap
            temperature: Model temperature

        Returns:
            Stripped answer text

        Raises:
            LLMError: On transport failure, HTTP error or unreadable response
        """
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self._post(payload, headers)
            response.raise_for_status()
            completion_data = response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f"Gateway request timeout after {self.timeout}s: {e}")
            raise LLMError(
                f"Gateway request timeout after {self.timeout}s",
                details={"gateway_url": self.gateway_url, "timeout": self.timeout}
            )

        except requests.exceptions.HTTPError as e:
            logger.error(f"Gateway HTTP error: {e}")
            raise LLMError(
                f"Gateway returned HTTP error: {e}",
                details={
                    "gateway_url": self.gateway_url,
                    "status_code": getattr(e.response, "status_code", None),
                    "response_text": getattr(e.response, "text", None),
                }
            )

        except requests.exceptions.RequestException as e:
            logger.error(f"Gateway request failed: {e}")
            raise LLMError(
                f"Failed to connect to gateway: {str(e)}",
                details={"gateway_url": self.gateway_url, "error": str(e)}
            )

        except ValueError as e:
            logger.error(f"Failed to parse gateway response as JSON: {e}")
            raise LLMError(
                f"Gateway returned invalid JSON: {e}",
                details={"gateway_url": self.gateway_url}
            )

        content = extract_completion_text(completion_data)
        if content is None:
            keys = list(completion_data.keys()) if isinstance(completion_data, dict) else []
            logger.error(f"Response keys: {keys}")
            raise LLMError(
                "Unexpected response structure: could not find answer text",
                details={"model": self.model, "keys": keys}
            )

        if "usage" in completion_data:
            usage = completion_data["usage"]
            logger.debug(
                f"Token usage - Input: {usage.get('prompt_tokens', 'N/A')}, "
                f"Output: {usage.get('completion_tokens', 'N/A')}"
            )

        return content.strip()
