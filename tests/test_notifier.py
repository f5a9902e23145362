"""
Tests for Slack lifecycle notifications.
"""
import logging

import requests

from mirror.common.notifier import SlackNotifier, redact_url

WEBHOOK = "https://hooks.slack.example/services/T000/B000/XXXX"


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error for url: {WEBHOOK}", response=self)


class FakeSession:
    """Records posts instead of sending them."""

    def __init__(self, response=None, exc=None):
        self.response = response or FakeResponse()
        self.exc = exc
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


class TestSlackNotifier:
    """Test webhook posting."""

    def test_send(self, caplog):
        caplog.set_level(logging.INFO, logger="mirror.common.notifier")
        session = FakeSession()
        notifier = SlackNotifier(WEBHOOK, session=session, timeout=5)

        assert notifier.send("hello") is True
        assert session.posts == [{"url": WEBHOOK, "json": {"text": "hello"}, "timeout": 5}]
        messages = [r.getMessage() for r in caplog.records]
        assert "Sending message to Slack URL: 'https://hooks.slack.example/<redacted>'" in messages
        assert "Sent message to Slack URL: 'https://hooks.slack.example/<redacted>'" in messages

    def test_http_error_is_swallowed(self, caplog):
        """A failing webhook is logged, never raised."""
        notifier = SlackNotifier(WEBHOOK, session=FakeSession(response=FakeResponse(500)))

        assert notifier.send("hello") is False
        errors = [r.getMessage() for r in caplog.records if "Error sending message to Slack" in r.getMessage()]
        assert errors == ["Error sending message to Slack: HTTPError (status 500)"]

    def test_webhook_secret_never_logged(self, caplog):
        """Neither success nor failure logs the webhook path."""
        caplog.set_level(logging.DEBUG, logger="mirror.common.notifier")
        SlackNotifier(WEBHOOK, session=FakeSession()).send("hello")
        SlackNotifier(WEBHOOK, session=FakeSession(response=FakeResponse(403))).send("hello")

        assert caplog.records
        assert all("T000/B000/XXXX" not in r.getMessage() for r in caplog.records)

    def test_redact_url(self):
        assert redact_url(WEBHOOK) == "https://hooks.slack.example/<redacted>"
        assert redact_url("not a url") == "<redacted>"

    def test_connection_error_is_swallowed(self):
        session = FakeSession(exc=requests.ConnectionError("unreachable"))
        assert SlackNotifier(WEBHOOK, session=session).send("hello") is False

    def test_no_webhook(self):
        session = FakeSession()
        assert SlackNotifier(None, session=session).send("hello") is False
        assert session.posts == []

    def test_lifecycle_messages(self):
        session = FakeSession()
        notifier = SlackNotifier(WEBHOOK, session=session)

        notifier.start({"sources": ["exports/users"]})
        notifier.complete({"mirrored_records": 3, "rejected_records": 1, "files_processed": 2})
        notifier.error(RuntimeError("boom"))

        texts = [post["json"]["text"] for post in session.posts]
        assert texts == [
            "Mirror started for exports/users",
            "Mirror completed: 3 rows mirrored, 1 documents rejected, 2 files processed",
            "Mirror failed: boom",
        ]
