"""GitHub webhook handler.

This module validates and decodes GitHub webhook deliveries:

1. The raw body is authenticated with the shared secret (HMAC-SHA256 via
   ``X-Hub-Signature-256``, falling back to the legacy HMAC-SHA1
   ``X-Hub-Signature`` header).
2. The event name is read from ``X-GitHub-Event``.
3. The JSON payload is decoded into a ``WebhookEvent`` variant.

GitHub Webhook Payload Structure (issues event):
{
  "action": "opened",
  "issue": {
    "number": 123,
    "title": "Issue title",
    "body": "Issue body",
    "labels": [{"name": "kind/bug"}]
  },
  "repository": {
    "name": "rancher",
    "owner": {"login": "rancher"}
  },
  "sender": {"login": "username"}
}
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from githubbot.webhook.models import (
    IssuesEvent,
    PingEvent,
    UnsupportedEvent,
    WebhookEvent,
)

logger = logging.getLogger(__name__)


# GitHub header names (lower-cased; lookups are case-insensitive)
HEADER_EVENT = "x-github-event"
HEADER_SIGNATURE_256 = "x-hub-signature-256"
HEADER_SIGNATURE = "x-hub-signature"
HEADER_DELIVERY = "x-github-delivery"


class WebhookError(Exception):
    """Base exception for webhook errors."""


class WebhookSignatureError(WebhookError):
    """Raised when webhook signature validation fails."""


class WebhookParseError(WebhookError):
    """Raised when a webhook delivery cannot be decoded."""


def sign_payload(secret: str, body: bytes, algorithm: str = "sha256") -> str:
    """Compute the signature header value GitHub sends for a body.

    Args:
        secret: The shared webhook secret.
        body: The raw request body.
        algorithm: "sha256" or "sha1".

    Returns:
        The header value, e.g. "sha256=<hex digest>".
    """
    digest = hmac.new(secret.encode("utf-8"), body, algorithm).hexdigest()
    return f"{algorithm}={digest}"


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Check a signature header value against the body.

    Args:
        secret: The shared webhook secret.
        body: The raw request body.
        signature: Header value in "sha256=<hex>" or "sha1=<hex>" form.

    Returns:
        True if the signature matches, False otherwise.
    """
    if not signature or "=" not in signature:
        return False

    algorithm, _, received = signature.partition("=")
    if algorithm not in ("sha256", "sha1"):
        logger.warning("Unsupported signature algorithm: %s", algorithm)
        return False

    expected = sign_payload(secret, body, algorithm)
    return hmac.compare_digest(expected, f"{algorithm}={received}")


class WebhookHandler:
    """Validates and decodes GitHub webhook deliveries.

    Attributes:
        secret: The shared webhook secret used to authenticate deliveries.
    """

    def __init__(self, secret: str) -> None:
        """Initialize the webhook handler.

        Args:
            secret: The GitHub webhook secret.
        """
        self.secret = secret

    def parse(self, headers: Mapping[str, str], body: bytes) -> WebhookEvent:
        """Authenticate and decode a webhook delivery.

        Args:
            headers: The HTTP request headers.
            body: The raw request body.

        Returns:
            The decoded event variant.

        Raises:
            WebhookSignatureError: If the signature is missing or wrong.
            WebhookParseError: If the event header is missing, the body is
                not JSON, or an issues payload is malformed.
        """
        normalized = {key.lower(): value for key, value in headers.items()}
        delivery = normalized.get(HEADER_DELIVERY, "unknown")

        self.validate_signature(normalized, body)

        event_name = normalized.get(HEADER_EVENT, "").strip().lower()
        if not event_name:
            raise WebhookParseError("Missing X-GitHub-Event header")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise WebhookParseError(f"Invalid JSON payload: {e}") from e

        if not isinstance(payload, dict):
            raise WebhookParseError(
                f"Invalid payload: expected object, got {type(payload).__name__}"
            )

        logger.debug(
            "Webhook delivery decoded",
            extra={"event": event_name, "delivery": delivery},
        )

        if event_name == "issues":
            return self.parse_issues_event(payload)
        if event_name == "ping":
            hook_id = payload.get("hook_id")
            return PingEvent(
                zen=str(payload.get("zen") or ""),
                hook_id=hook_id if isinstance(hook_id, int) else None,
            )

        action = payload.get("action")
        return UnsupportedEvent(
            name=event_name,
            action=action if isinstance(action, str) else None,
        )

    def validate_signature(self, headers: Mapping[str, str], body: bytes) -> None:
        """Raise WebhookSignatureError unless the delivery is authentic.

        Args:
            headers: Lower-cased request headers.
            body: The raw request body.
        """
        signature = headers.get(HEADER_SIGNATURE_256) or headers.get(HEADER_SIGNATURE)
        if not signature:
            raise WebhookSignatureError("Missing webhook signature header")
        if not verify_signature(self.secret, body, signature):
            raise WebhookSignatureError("Invalid webhook signature")

    def parse_issues_event(self, payload: Dict[str, Any]) -> IssuesEvent:
        """Decode an ``issues`` payload.

        Args:
            payload: The decoded JSON payload.

        Returns:
            IssuesEvent with the fields the labeler needs.

        Raises:
            WebhookParseError: If a required field is missing or invalid.
        """
        action = payload.get("action")
        if not isinstance(action, str) or not action:
            raise WebhookParseError("Missing 'action' field in payload")

        issue_data = payload.get("issue")
        if not isinstance(issue_data, dict):
            raise WebhookParseError(
                f"Missing or invalid 'issue' field in payload: {type(issue_data).__name__}"
            )

        repo_data = payload.get("repository")
        if not isinstance(repo_data, dict):
            raise WebhookParseError(
                f"Missing or invalid 'repository' field in payload: {type(repo_data).__name__}"
            )

        issue_number = issue_data.get("number")
        if isinstance(issue_number, bool) or not isinstance(issue_number, int) or issue_number <= 0:
            raise WebhookParseError(f"Invalid issue number: {issue_number!r}")

        title = issue_data.get("title")
        if not isinstance(title, str):
            title = ""

        # Body can be None or empty string
        body = issue_data.get("body")
        if body is None:
            body = ""
        elif not isinstance(body, str):
            logger.warning("Invalid issue body type: %s", type(body))
            body = ""

        repo_name = repo_data.get("name")
        if not isinstance(repo_name, str) or not repo_name.strip():
            raise WebhookParseError(f"Invalid or empty repository name: {repo_name!r}")

        owner = self._extract_login(repo_data.get("owner"))
        if owner is None:
            raise WebhookParseError("Missing or invalid repository owner")

        return IssuesEvent(
            action=action,
            issue_number=issue_number,
            title=title.strip(),
            body=body,
            labels=self._extract_labels(issue_data.get("labels", [])),
            repository=repo_name.strip(),
            owner=owner,
            sender=self._extract_login(payload.get("sender")),
        )

    def _extract_labels(self, labels_data: Any) -> List[str]:
        """Extract label names from the labels array.

        GitHub sends labels as an array of objects with a 'name' field.
        Invalid entries are skipped.
        """
        if not isinstance(labels_data, list):
            logger.debug("Labels is not a list: %s", type(labels_data))
            return []

        labels = []
        for label in labels_data:
            if isinstance(label, dict):
                name = label.get("name")
                if isinstance(name, str) and name.strip():
                    labels.append(name.strip())
            elif isinstance(label, str) and label.strip():
                labels.append(label.strip())

        return labels

    def _extract_login(self, user_data: Any) -> Optional[str]:
        if not isinstance(user_data, dict):
            return None

        login = user_data.get("login")
        if not isinstance(login, str) or not login.strip():
            return None

        return login.strip()
