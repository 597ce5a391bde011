"""Unit tests for webhook signature validation and event decoding."""

import pytest

from githubbot.webhook import (
    IssueAction,
    IssuesEvent,
    PingEvent,
    UnsupportedEvent,
    WebhookHandler,
    WebhookParseError,
    WebhookSignatureError,
    sign_payload,
    verify_signature,
)

from conftest import WEBHOOK_SECRET, encode, make_issues_payload, signed_headers


@pytest.fixture
def handler() -> WebhookHandler:
    return WebhookHandler(secret=WEBHOOK_SECRET)


class TestSignatures:
    def test_sha256_signature_round_trip(self):
        body = b'{"zen": "Keep it logically awesome."}'
        assert verify_signature("s3cret", body, sign_payload("s3cret", body))

    def test_sha1_signature_accepted(self):
        body = b"{}"
        assert verify_signature("s3cret", body, sign_payload("s3cret", body, "sha1"))

    def test_known_digest(self):
        # HMAC-SHA256 example from GitHub's webhook documentation
        signature = (
            "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )
        assert verify_signature("It's a Secret to Everybody", b"Hello, World!", signature)

    def test_wrong_secret_rejected(self):
        body = b"{}"
        assert not verify_signature("s3cret", body, sign_payload("other", body))

    def test_tampered_body_rejected(self):
        signature = sign_payload("s3cret", b'{"action": "opened"}')
        assert not verify_signature("s3cret", b'{"action": "edited"}', signature)

    @pytest.mark.parametrize("signature", [None, "", "sha256", "md5=abc", "sha256=zz"])
    def test_malformed_signatures_rejected(self, signature):
        assert not verify_signature("s3cret", b"{}", signature)


class TestParse:
    def test_issues_event(self, handler):
        body = encode(make_issues_payload(body="rancher2", labels=["area/ui"]))

        event = handler.parse(signed_headers(body), body)

        assert isinstance(event, IssuesEvent)
        assert event.kind == "issues"
        assert event.action == IssueAction.OPENED.value
        assert event.is_opened
        assert event.issue_number == 42
        assert event.body == "rancher2"
        assert event.labels == ["area/ui"]
        assert event.owner == "rancher"
        assert event.repository == "rancher"
        assert event.sender == "reporter"
        assert event.issue_id == "rancher/rancher#42"

    def test_headers_are_case_insensitive(self, handler):
        body = encode(make_issues_payload())
        headers = {key.lower(): value for key, value in signed_headers(body).items()}

        assert isinstance(handler.parse(headers, body), IssuesEvent)

    def test_null_body_becomes_empty(self, handler):
        body = encode(make_issues_payload(body=None))
        event = handler.parse(signed_headers(body), body)
        assert event.body == ""

    def test_unknown_action_still_decodes(self, handler):
        body = encode(make_issues_payload(action="transferred"))
        event = handler.parse(signed_headers(body), body)
        assert event.action == "transferred"
        assert not event.is_opened

    def test_ping_event(self, handler):
        body = encode({"zen": "Design for failure.", "hook_id": 7})
        event = handler.parse(signed_headers(body, event="ping"), body)
        assert isinstance(event, PingEvent)
        assert event.zen == "Design for failure."
        assert event.hook_id == 7

    def test_unsupported_event(self, handler):
        body = encode({"action": "created", "comment": {}})
        event = handler.parse(signed_headers(body, event="issue_comment"), body)
        assert isinstance(event, UnsupportedEvent)
        assert event.name == "issue_comment"
        assert event.action == "created"

    def test_missing_signature(self, handler):
        body = encode(make_issues_payload())
        headers = signed_headers(body)
        del headers["X-Hub-Signature-256"]
        with pytest.raises(WebhookSignatureError):
            handler.parse(headers, body)

    def test_wrong_signature(self, handler):
        body = encode(make_issues_payload())
        with pytest.raises(WebhookSignatureError):
            handler.parse(signed_headers(body, secret="wrong"), body)

    def test_signature_checked_before_decoding(self, handler):
        with pytest.raises(WebhookSignatureError):
            handler.parse(signed_headers(b"not json", secret="wrong"), b"not json")

    def test_missing_event_header(self, handler):
        body = encode(make_issues_payload())
        headers = signed_headers(body)
        del headers["X-GitHub-Event"]
        with pytest.raises(WebhookParseError):
            handler.parse(headers, body)

    def test_invalid_json(self, handler):
        body = b"{not json"
        with pytest.raises(WebhookParseError):
            handler.parse(signed_headers(body), body)

    def test_non_object_json(self, handler):
        body = b"[1, 2, 3]"
        with pytest.raises(WebhookParseError):
            handler.parse(signed_headers(body), body)


class TestParseIssuesEvent:
    @pytest.mark.parametrize(
        "mutate",
        [
            lambda p: p.pop("action"),
            lambda p: p.pop("issue"),
            lambda p: p.pop("repository"),
            lambda p: p["issue"].update(number=0),
            lambda p: p["issue"].update(number="42"),
            lambda p: p["issue"].update(number=True),
            lambda p: p["repository"].update(name=""),
            lambda p: p["repository"].update(owner=None),
        ],
    )
    def test_malformed_payloads_rejected(self, handler, mutate):
        payload = make_issues_payload()
        mutate(payload)
        with pytest.raises(WebhookParseError):
            handler.parse_issues_event(payload)

    def test_non_string_body_becomes_empty(self, handler):
        payload = make_issues_payload()
        payload["issue"]["body"] = {"unexpected": True}
        assert handler.parse_issues_event(payload).body == ""

    def test_invalid_labels_skipped(self, handler):
        payload = make_issues_payload()
        payload["issue"]["labels"] = [{"name": "kind/bug"}, {"color": "fff"}, "plain", 3]
        assert handler.parse_issues_event(payload).labels == ["kind/bug", "plain"]

    def test_labels_not_a_list(self, handler):
        payload = make_issues_payload()
        payload["issue"]["labels"] = "kind/bug"
        assert handler.parse_issues_event(payload).labels == []

    def test_missing_sender(self, handler):
        payload = make_issues_payload()
        del payload["sender"]
        assert handler.parse_issues_event(payload).sender is None

    def test_body_is_not_stripped(self, handler):
        payload = make_issues_payload(body="  What kind of request is this: bug\r\n")
        assert handler.parse_issues_event(payload).body == (
            "  What kind of request is this: bug\r\n"
        )
