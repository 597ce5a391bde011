"""Issue labeler connecting classification to the GitHub API.

Receives decoded issues events and drives them through:
guard → classifier → add labels.

Only newly opened issues without labels are classified, so issues that were
labeled at creation, or that are edited later, are never relabeled. Failures
of the label call are logged and swallowed: the webhook request still
succeeds and nothing is retried. Classification runs in a worker thread so
that long bodies never block the event loop.

Source:
- src/githubbot/webhook/models.py (IssuesEvent)
- src/githubbot/classifier/engine.py (IssueClassifier)
- src/githubbot/github/client.py (GitHubClient)
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from githubbot.classifier.engine import IssueClassifier
from githubbot.github.client import GitHubAPIError, GitHubClient
from githubbot.metrics import BotMetrics
from githubbot.webhook.models import IssuesEvent

logger = logging.getLogger(__name__)


class LabelingStatus(str, Enum):
    """What happened to an issues event.

    Attributes:
        LABELED: Labels were sent to GitHub.
        SKIPPED: The event was not eligible or no rule matched.
        FAILED: Labels were computed but the API call failed.
    """

    LABELED = "labeled"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    ACTION = "action"
    LABELED = "labeled"
    NO_MATCH = "no_match"


class LabelingResult(BaseModel):
    """Outcome of handling one issues event."""

    issue_number: int

    status: LabelingStatus

    labels: list[str] = Field(default_factory=list)

    reason: Optional[SkipReason] = None

    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status == LabelingStatus.LABELED


class IssueLabeler:
    """Applies classifier labels to newly opened issues.

    Attributes:
        classifier: Rule-based issue classifier.
        github_client: GitHub API client used to add labels.
        org: Organization to label issues in. Falls back to the event's
            repository owner when None.
        repo: Repository to label issues in. Falls back to the event's
            repository name when None.
        metrics: Optional metrics container.
    """

    def __init__(
        self,
        classifier: IssueClassifier,
        github_client: GitHubClient,
        org: Optional[str] = None,
        repo: Optional[str] = None,
        metrics: Optional[BotMetrics] = None,
    ):
        self.classifier = classifier
        self.github_client = github_client
        self.org = org
        self.repo = repo
        self.metrics = metrics

    def should_classify(self, event: IssuesEvent) -> Optional[SkipReason]:
        """Return why an event must be skipped, or None if it is eligible."""
        if not event.is_opened:
            return SkipReason.ACTION
        if len(event.labels) != 0:
            return SkipReason.LABELED
        return None

    async def handle(self, event: IssuesEvent) -> LabelingResult:
        """Classify an issue and apply the resulting labels.

        Args:
            event: Decoded issues webhook event.

        Returns:
            LabelingResult describing what was done. Never raises for
            GitHub API or transport failures.
        """
        logger.info(
            "Incoming payload for issue #%d with action %s",
            event.issue_number,
            event.action,
        )

        skip = self.should_classify(event)
        if skip == SkipReason.LABELED:
            logger.info(
                "Skipping issue #%d, has labels on creation", event.issue_number
            )
        if skip is not None:
            return LabelingResult(
                issue_number=event.issue_number,
                status=LabelingStatus.SKIPPED,
                reason=skip,
            )

        logger.debug("Body: %r", event.body)
        labels = await asyncio.to_thread(self.classifier.classify, event.body)
        if not labels:
            logger.info("No rules matched issue #%d", event.issue_number)
            return LabelingResult(
                issue_number=event.issue_number,
                status=LabelingStatus.SKIPPED,
                reason=SkipReason.NO_MATCH,
            )

        for label in labels:
            logger.info("Adding label %s to issue #%d", label, event.issue_number)

        owner = self.org or event.owner
        repo = self.repo or event.repository
        try:
            await self.github_client.add_labels(owner, repo, event.issue_number, labels)
        except (GitHubAPIError, httpx.HTTPError) as e:
            logger.error(
                "Failed to add labels to issue #%d: %s",
                event.issue_number,
                e,
                extra={"owner": owner, "repo": repo, "labels": labels},
            )
            if self.metrics is not None:
                self.metrics.record_label_failure()
            return LabelingResult(
                issue_number=event.issue_number,
                status=LabelingStatus.FAILED,
                labels=labels,
                error=str(e),
            )

        if self.metrics is not None:
            self.metrics.record_labels_applied(labels)

        return LabelingResult(
            issue_number=event.issue_number,
            status=LabelingStatus.LABELED,
            labels=labels,
        )
