"""Pytest configuration and shared fixtures for all tests."""

import json
from typing import Any, Dict, List, Optional

import pytest
from prometheus_client import CollectorRegistry

from githubbot.metrics import BotMetrics
from githubbot.webhook.handler import sign_payload


WEBHOOK_SECRET = "test-secret"


def make_issues_payload(
    action: str = "opened",
    number: int = 42,
    body: Optional[str] = "rancher2 cluster fails to start",
    labels: Optional[List[str]] = None,
    owner: str = "rancher",
    repo: str = "rancher",
    title: str = "Cluster does not start",
) -> Dict[str, Any]:
    """Build an issues webhook payload as GitHub sends it."""
    return {
        "action": action,
        "issue": {
            "number": number,
            "title": title,
            "body": body,
            "labels": [{"name": label} for label in (labels or [])],
            "user": {"login": "reporter"},
        },
        "repository": {
            "name": repo,
            "owner": {"login": owner},
        },
        "sender": {"login": "reporter"},
    }


def signed_headers(
    body: bytes,
    event: str = "issues",
    secret: str = WEBHOOK_SECRET,
) -> Dict[str, str]:
    """Headers for a delivery signed with ``secret``."""
    return {
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958",
        "X-Hub-Signature-256": sign_payload(secret, body),
        "Content-Type": "application/json",
    }


def encode(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


@pytest.fixture
def metrics() -> BotMetrics:
    """Metrics bound to a private registry."""
    return BotMetrics(registry=CollectorRegistry())
