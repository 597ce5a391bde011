"""FastAPI application entry point for githubbot.

This module provides the web application that receives GitHub webhooks,
classifies newly opened issues and labels them.

Endpoints:
- POST {webhook_path} (default /webhooks): GitHub webhook receiver
- GET /health: Liveness probe
- GET /metrics: Prometheus metrics
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from githubbot import __version__
from githubbot.classifier import IssueClassifier, load_rules
from githubbot.config import BotSettings, get_settings, redact_secret
from githubbot.github.client import GitHubClient
from githubbot.labeler import IssueLabeler, LabelingStatus
from githubbot.metrics import BotMetrics, get_metrics
from githubbot.webhook.handler import (
    WebhookHandler,
    WebhookParseError,
    WebhookSignatureError,
)
from githubbot.webhook.models import IssuesEvent, PingEvent

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Event label for rejected deliveries; their headers are untrusted.
REJECTED_EVENT = "unknown"


def _log_configuration(settings: BotSettings, secret: str, token: str) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Bot configuration:")
    logger.info(f"  Webhook Token File: {settings.webhook_token_file}")
    logger.info(f"  Webhook Secret: {redact_secret(secret)}")
    logger.info(f"  PA Token File: {settings.patoken_file}")
    logger.info(f"  PA Token: {redact_secret(token)}")
    logger.info(f"  GitHub Org: {settings.github_org or '(from payload)'}")
    logger.info(f"  GitHub Repo: {settings.github_repo or '(from payload)'}")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  Rules File: {settings.rules_file or '(built-in)'}")
    logger.info(f"  Webhook Path: {settings.webhook_path}")


def create_app(
    settings: Optional[BotSettings] = None,
    *,
    webhook_secret: Optional[str] = None,
    github_client: Optional[GitHubClient] = None,
    classifier: Optional[IssueClassifier] = None,
    metrics: Optional[BotMetrics] = None,
) -> FastAPI:
    """Build the application.

    Components that are not passed in are created from ``settings`` when
    the application starts: the webhook secret and token are read from
    their files, and the rules file is loaded if configured. Any
    ConfigurationError or RuleSetError raised there aborts startup.

    Args:
        settings: Bot settings. Read from the environment when None.
        webhook_secret: Shared webhook secret.
        github_client: GitHub client used to add labels.
        classifier: Issue classifier.
        metrics: Metrics container. Uses the default registry when None.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or get_settings()
    metrics = metrics or get_metrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting githubbot %s", __version__)

        secret = webhook_secret or settings.load_webhook_secret()

        client = github_client
        owns_client = client is None
        if client is None:
            token = settings.load_token()
            client = GitHubClient(token=token, base_url=settings.github_base_url)
        _log_configuration(settings, secret, client.token)

        issue_classifier = classifier
        if issue_classifier is None:
            rules = load_rules(settings.rules_file) if settings.rules_file else None
            issue_classifier = IssueClassifier(rules)

        app.state.webhook_handler = WebhookHandler(secret=secret)
        app.state.labeler = IssueLabeler(
            classifier=issue_classifier,
            github_client=client,
            org=settings.github_org,
            repo=settings.github_repo,
            metrics=metrics,
        )

        logger.info("githubbot started, listening on %s", settings.webhook_path)

        yield

        logger.info("githubbot shutting down...")
        if owns_client:
            await client.close()

    app = FastAPI(
        title="githubbot",
        description="Labels newly opened GitHub issues from their description",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=metrics.generate(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    async def github_webhook(request: Request) -> Response:
        """GitHub webhook receiver endpoint.

        Invalid deliveries are logged and answered without a body: 401 for
        a bad signature, 400 for anything that cannot be decoded.
        """
        body = await request.body()
        logger.debug("Incoming HTTP request: %s %s", request.method, request.url.path)

        try:
            event = request.app.state.webhook_handler.parse(request.headers, body)
        except WebhookSignatureError as e:
            logger.warning("Rejected webhook: %s", e)
            metrics.record_webhook(REJECTED_EVENT, "invalid_signature")
            return Response(status_code=401)
        except WebhookParseError as e:
            logger.error("Error while parsing webhook: %s", e)
            metrics.record_webhook(REJECTED_EVENT, "invalid_payload")
            return Response(status_code=400)

        if isinstance(event, PingEvent):
            metrics.record_webhook("ping", "pong")
            return JSONResponse({"status": "pong", "zen": event.zen})

        if not isinstance(event, IssuesEvent):
            logger.debug("Not a matched event: %s", event.name)
            metrics.record_webhook(event.name, "ignored")
            return JSONResponse(
                {"status": "ignored", "event": event.name},
                status_code=202,
            )

        result = await request.app.state.labeler.handle(event)
        metrics.record_webhook("issues", result.status.value)

        content = {
            "status": result.status.value,
            "issue": result.issue_number,
            "labels": result.labels,
        }
        if result.status == LabelingStatus.SKIPPED and result.reason is not None:
            content["reason"] = result.reason.value
        return JSONResponse(content)

    app.add_api_route(settings.webhook_path, github_webhook, methods=["POST"])

    return app


app = create_app()
