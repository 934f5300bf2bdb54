"""
Unit tests for ledger backend delivery.
"""
import pytest
import requests

from core.exceptions import DeliveryError
from services.backend_client import SECRET_HEADER, BackendClient


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("No JSON object could be decoded")
        return self._data


def _patch_post(monkeypatch, handler):
    calls = []

    def fake_post(self, url, **kwargs):
        calls.append((url, kwargs))
        return handler()

    monkeypatch.setattr(requests.Session, "post", fake_post)
    return calls


def test_send_record(monkeypatch, settings):
    """Test records are posted to the webhook with the shared secret."""
    calls = _patch_post(monkeypatch, lambda: FakeResponse(data={"id": 1}))

    result = BackendClient(settings).send_record({"userId": "abc", "valid": True})

    assert result == {"id": 1}
    url, kwargs = calls[0]
    assert url == "http://ledger.test/webhook"
    assert kwargs["json"] == {"userId": "abc", "valid": True}
    assert kwargs["headers"][SECRET_HEADER] == "test-secret"
    assert kwargs["timeout"] == settings.backend_timeout


def test_forward_verification_url(monkeypatch, settings):
    """Test verification forwards go to the forwarding endpoint."""
    calls = _patch_post(monkeypatch, lambda: FakeResponse(data={}))

    BackendClient(settings).forward_verification({"userId": "abc"})

    assert calls[0][0] == "http://ledger.test/forward-verification"


def test_non_json_success(monkeypatch, settings):
    """A 2xx response without JSON is still a success."""
    _patch_post(monkeypatch, lambda: FakeResponse(status_code=204))

    assert BackendClient(settings).send_record({"valid": True}) == {}


def test_error_status(monkeypatch, settings):
    """Test non-2xx responses raise DeliveryError."""
    _patch_post(monkeypatch, lambda: FakeResponse(status_code=500, text="boom"))

    with pytest.raises(DeliveryError) as exc_info:
        BackendClient(settings).send_record({"valid": True})
    assert exc_info.value.details["status_code"] == 500
    assert exc_info.value.details["response_text"] == "boom"


def test_connection_error(monkeypatch, settings):
    """Test transport failures raise DeliveryError."""
    def refuse():
        raise requests.exceptions.ConnectionError("refused")

    _patch_post(monkeypatch, refuse)

    with pytest.raises(DeliveryError):
        BackendClient(settings).send_record({"valid": True})
