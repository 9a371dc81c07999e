"""Unit tests for the SendGrid email transport."""

from __future__ import annotations

import json
import types

import pytest

from avisos.infrastructure import email as email_module


class _ConfiguredSettings:
    sendgrid_api_key = "SG.fake"
    sendgrid_sender = "sender@example.com"


def test_send_email_without_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """When SendGrid settings are missing the helper refuses to send."""

    class DummySettings:
        sendgrid_api_key = None
        sendgrid_sender = None

    monkeypatch.setattr(email_module, "get_settings", lambda: DummySettings())

    assert email_module.is_email_configured() is False
    with pytest.raises(email_module.EmailDeliveryError, match="configuration incomplete"):
        email_module.send_email("Subject", "<p>Body</p>", "user@example.com")


def test_send_email_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """A 2xx SendGrid response is accepted and the message is addressed correctly."""

    sent = []

    class SuccessfulClient:
        def __init__(self, api_key: str) -> None:
            self.api_key = api_key

        def send(self, message):
            sent.append(message)
            return types.SimpleNamespace(status_code=202, body=None)

    monkeypatch.setattr(email_module, "get_settings", lambda: _ConfiguredSettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", SuccessfulClient)

    email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    payload = sent[0].get()
    assert payload["from"]["email"] == "sender@example.com"
    assert payload["subject"] == "Subject"
    assert payload["personalizations"][0]["to"][0]["email"] == "user@example.com"


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {
                "errors": [
                    {
                        "message": "The provided authorization grant is invalid.",
                        "help": "https://sendgrid.com/docs/for-developers/sending-email/authentication/",
                    }
                ]
            }
        ).encode()

    class FailingClient:
        def __init__(self, api_key: str) -> None:
            self.api_key = api_key

        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "get_settings", lambda: _ConfiguredSettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        with pytest.raises(email_module.EmailDeliveryError) as excinfo:
            email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert "status 403" in str(excinfo.value)
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_send_email_rejects_non_success_status(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    class ThrottledClient:
        def __init__(self, api_key: str) -> None:
            self.api_key = api_key

        def send(self, message):
            return types.SimpleNamespace(status_code=429, body="Too many requests")

    monkeypatch.setattr(email_module, "get_settings", lambda: _ConfiguredSettings())
    monkeypatch.setattr(email_module, "SendGridAPIClient", ThrottledClient)

    with caplog.at_level("ERROR"):
        with pytest.raises(email_module.EmailDeliveryError, match="status 429: Too many requests"):
            email_module.send_email("Subject", "<p>Body</p>", "user@example.com")

    assert "SendGrid API responded with status 429" in caplog.text


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, None),
        (b"", None),
        ("plain text failure", "plain text failure"),
        ({"errors": [{"message": "first"}, {"message": "second"}]}, "first; second"),
        (["a", "b"], "a; b"),
    ],
)
def test_extract_sendgrid_error_details(body, expected) -> None:
    assert email_module._extract_sendgrid_error_details(body) == expected
