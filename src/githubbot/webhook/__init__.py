"""GitHub webhook handling.

This package authenticates webhook deliveries with the shared secret and
decodes them into typed events:
- issues - Issue opened, edited, labeled, ...
- ping - Sent by GitHub when the hook is created
- anything else - Decoded as UnsupportedEvent and ignored
"""

from githubbot.webhook.handler import (
    WebhookError,
    WebhookHandler,
    WebhookParseError,
    WebhookSignatureError,
    sign_payload,
    verify_signature,
)
from githubbot.webhook.models import (
    IssueAction,
    IssuesEvent,
    PingEvent,
    UnsupportedEvent,
    WebhookEvent,
)

__all__ = [
    "IssueAction",
    "IssuesEvent",
    "PingEvent",
    "UnsupportedEvent",
    "WebhookError",
    "WebhookEvent",
    "WebhookHandler",
    "WebhookParseError",
    "WebhookSignatureError",
    "sign_payload",
    "verify_signature",
]
