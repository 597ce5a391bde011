"""Tests for the FastAPI application.

The app is built with an injected webhook secret, a mocked GitHub client
and a private metrics registry, and exercised through TestClient.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from githubbot.config import BotSettings
from githubbot.github.client import GitHubAPIError, GitHubClient
from githubbot.main import create_app

from conftest import WEBHOOK_SECRET, encode, make_issues_payload, signed_headers


@pytest.fixture
def github_client() -> MagicMock:
    client = MagicMock(spec=GitHubClient)
    client.token = "ghp_test_token"
    client.add_labels = AsyncMock(return_value=[])
    return client


@pytest.fixture
def client(github_client, metrics):
    app = create_app(
        BotSettings(github_org="rancher", github_repo="rancher"),
        webhook_secret=WEBHOOK_SECRET,
        github_client=github_client,
        metrics=metrics,
    )
    with TestClient(app) as test_client:
        yield test_client


def _post(client: TestClient, payload, event: str = "issues", secret: str = WEBHOOK_SECRET):
    body = encode(payload)
    return client.post(
        "/webhooks",
        content=body,
        headers=signed_headers(body, event=event, secret=secret),
    )


class TestWebhookEndpoint:
    def test_opened_issue_is_labeled(self, client, github_client):
        body = (
            "Rancher version: v1\r\n"
            "What kind of request is this, bug or feature?:\r\n"
            "bug\r\n"
        )
        response = _post(client, make_issues_payload(body=body))

        assert response.status_code == 200
        assert response.json() == {
            "status": "labeled",
            "issue": 42,
            "labels": ["version/1.6", "kind/bug"],
        }
        github_client.add_labels.assert_awaited_once_with(
            "rancher", "rancher", 42, ["version/1.6", "kind/bug"]
        )

    def test_edited_issue_is_skipped(self, client, github_client):
        response = _post(client, make_issues_payload(action="edited"))

        assert response.status_code == 200
        assert response.json()["status"] == "skipped"
        assert response.json()["reason"] == "action"
        github_client.add_labels.assert_not_called()

    def test_labeled_issue_is_skipped(self, client, github_client):
        response = _post(client, make_issues_payload(labels=["kind/bug"]))

        assert response.json()["status"] == "skipped"
        assert response.json()["reason"] == "labeled"
        github_client.add_labels.assert_not_called()

    def test_api_failure_still_returns_200(self, client, github_client):
        github_client.add_labels.side_effect = GitHubAPIError(
            "GitHub API error: 403", status_code=403
        )

        response = _post(client, make_issues_payload())

        assert response.status_code == 200
        assert response.json()["status"] == "failed"

    def test_bad_signature_returns_401_without_body(self, client, github_client):
        response = _post(client, make_issues_payload(), secret="wrong")

        assert response.status_code == 401
        assert response.content == b""
        github_client.add_labels.assert_not_called()

    def test_missing_signature_returns_401(self, client):
        response = client.post(
            "/webhooks",
            content=encode(make_issues_payload()),
            headers={"X-GitHub-Event": "issues"},
        )
        assert response.status_code == 401

    def test_invalid_json_returns_400_without_body(self, client):
        body = b"{not json"
        response = client.post("/webhooks", content=body, headers=signed_headers(body))

        assert response.status_code == 400
        assert response.content == b""

    def test_malformed_issue_returns_400(self, client):
        payload = make_issues_payload()
        del payload["issue"]

        assert _post(client, payload).status_code == 400

    def test_ping(self, client):
        response = _post(client, {"zen": "Speak like a human.", "hook_id": 1}, event="ping")

        assert response.status_code == 200
        assert response.json() == {"status": "pong", "zen": "Speak like a human."}

    def test_unsupported_event_is_ignored(self, client, github_client):
        response = _post(client, {"action": "created"}, event="issue_comment")

        assert response.status_code == 202
        assert response.json() == {"status": "ignored", "event": "issue_comment"}
        github_client.add_labels.assert_not_called()

    def test_custom_webhook_path(self, github_client, metrics):
        app = create_app(
            BotSettings(webhook_path="/hooks/github"),
            webhook_secret=WEBHOOK_SECRET,
            github_client=github_client,
            metrics=metrics,
        )
        with TestClient(app) as test_client:
            assert _post(test_client, {"zen": "z"}, event="ping").status_code == 404
            body = encode({"zen": "z"})
            response = test_client.post(
                "/hooks/github",
                content=body,
                headers=signed_headers(body, event="ping"),
            )
            assert response.status_code == 200


class TestOperationalEndpoints:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_metrics_count_deliveries(self, client):
        _post(client, make_issues_payload())
        _post(client, make_issues_payload(), secret="wrong")

        response = client.get("/metrics")

        assert response.status_code == 200
        text = response.text
        assert 'githubbot_webhooks_received_total{event="issues",outcome="labeled"} 1.0' in text
        assert (
            'githubbot_webhooks_received_total{event="unknown",outcome="invalid_signature"} 1.0'
            in text
        )
        assert 'githubbot_labels_applied_total{label="version/2.0"} 1.0' in text

    def test_rejected_deliveries_share_one_series(self, client):
        body = encode(make_issues_payload())
        for i in range(50):
            client.post("/webhooks", content=body, headers={"X-GitHub-Event": f"junk{i}"})

        text = client.get("/metrics").text
        series = [
            line
            for line in text.splitlines()
            if line.startswith("githubbot_webhooks_received_total{")
        ]
        assert series == [
            'githubbot_webhooks_received_total{event="unknown",outcome="invalid_signature"} 50.0'
        ]
        assert "junk" not in text


class TestStartup:
    def test_missing_secret_file_aborts_startup(self, tmp_path, github_client, metrics):
        app = create_app(
            BotSettings(webhook_token_file=str(tmp_path / "absent")),
            github_client=github_client,
            metrics=metrics,
        )
        with pytest.raises(Exception, match="webhooktoken-file"):
            with TestClient(app):
                pass

    def test_credentials_and_rules_loaded_from_files(self, tmp_path, metrics):
        (tmp_path / "webhooktoken").write_text(WEBHOOK_SECRET + "\n")
        (tmp_path / "patoken").write_text("ghp_file_token\n")
        rules = tmp_path / "rules.json"
        rules.write_text('{"version_rules": [{"pattern": "k3s", "label": "product/k3s"}]}')

        app = create_app(
            BotSettings(
                webhook_token_file=str(tmp_path / "webhooktoken"),
                patoken_file=str(tmp_path / "patoken"),
                rules_file=str(rules),
            ),
            metrics=metrics,
        )
        with TestClient(app) as test_client:
            labeler = test_client.app.state.labeler
            assert labeler.github_client.token == "ghp_file_token"
            assert labeler.classifier.classify("k3s node notready") == ["product/k3s"]
            assert test_client.app.state.webhook_handler.secret == WEBHOOK_SECRET
