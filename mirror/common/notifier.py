"""
Slack webhook notifications for mirror lifecycle events.
"""
import logging
from typing import Dict, Any, Optional
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)


def redact_url(url: str) -> str:
    """Keep only scheme and host; the webhook path is the secret."""
    parts = urlsplit(url)
    if not parts.netloc:
        return "<redacted>"
    return f"{parts.scheme}://{parts.netloc}/<redacted>"


class SlackNotifier:
    """Posts human readable lifecycle messages to a Slack incoming webhook."""

    def __init__(self, webhook_url: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: float = 10):
        """
        Initialize notifier.

        Args:
            webhook_url: Incoming webhook URL; without one, messages are only logged
            session: HTTP session to post with (a new one by default)
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, text: str) -> bool:
        """
        Post a message to the webhook.

        Returns:
            True if the webhook accepted the message. Failures are logged,
            never raised, so a broken webhook cannot stop a mirror run.
        """
        if not self.webhook_url:
            logger.debug(f"No Slack webhook configured, not sending: {text}")
            return False

        logger.info(f"Sending message to Slack URL: '{redact_url(self.webhook_url)}'")
        try:
            response = self.session.post(self.webhook_url, json={"text": text}, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            # Exception text can carry the full webhook URL
            status = getattr(e.response, 'status_code', None)
            logger.error(f"Error sending message to Slack: {type(e).__name__} (status {status})")
            return False

        logger.info(f"Sent message to Slack URL: '{redact_url(self.webhook_url)}'")
        return True

    def start(self, config: Dict[str, Any]) -> bool:
        logger.info(f"Started mirror execution with configuration {config}")
        sources = ", ".join(str(s) for s in config.get("sources", [])) or "no sources"
        return self.send(f"Mirror started for {sources}")

    def complete(self, summary: Dict[str, Any]) -> bool:
        logger.info("Completed mirror execution")
        return self.send(
            f"Mirror completed: {summary.get('mirrored_records', 0)} rows mirrored, "
            f"{summary.get('rejected_records', 0)} documents rejected, "
            f"{summary.get('files_processed', 0)} files processed"
        )

    def error(self, err: BaseException) -> bool:
        logger.error(f"Mirror execution failed: {err}")
        return self.send(f"Mirror failed: {err}")
