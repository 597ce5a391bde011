"""GitHub webhook event models.

Webhook deliveries are decoded once at the HTTP boundary into one of the
variants of ``WebhookEvent``, tagged by ``kind``:

- ``IssuesEvent``: an ``issues`` delivery (opened, edited, labeled, ...)
- ``PingEvent``: the ``ping`` GitHub sends when a hook is created
- ``UnsupportedEvent``: any other event name, kept only for logging

The models use Pydantic for validation, consistent with the rule models in
classifier/models.py.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class IssueAction(str, Enum):
    """GitHub issue event action types the bot refers to.

    GitHub sends many more actions; events keep the raw action string so
    unknown actions still decode.

    Attributes:
        OPENED: A new issue was created. The only action that is classified.
        EDITED: An existing issue was modified.
        LABELED: A label was added to an issue.
    """

    OPENED = "opened"
    EDITED = "edited"
    LABELED = "labeled"


class IssuesEvent(BaseModel):
    """Parsed ``issues`` webhook event.

    Attributes:
        action: The raw action string (compare against IssueAction).
        issue_number: The issue number within the repository.
        title: The issue title text.
        body: The issue body text. A null body decodes to "".
        labels: Names of the labels the issue currently carries.
        repository: The repository name (without owner prefix).
        owner: The repository owner (user or organization).
        sender: The login that triggered the event, when present.
    """

    kind: Literal["issues"] = "issues"

    action: str = Field(
        ...,
        min_length=1,
        description="The issue event action, e.g. opened or edited",
    )

    issue_number: int = Field(
        ...,
        gt=0,
        description="The issue number within the repository (positive integer)",
    )

    title: str = Field(
        default="",
        description="The issue title text",
    )

    body: str = Field(
        default="",
        description="The issue body/description text (may be empty)",
    )

    labels: list[str] = Field(
        default_factory=list,
        description="List of label names attached to the issue",
    )

    repository: str = Field(
        ...,
        min_length=1,
        description="The repository name without owner prefix",
    )

    owner: str = Field(
        ...,
        min_length=1,
        description="The repository owner (user or organization)",
    )

    sender: Optional[str] = Field(
        default=None,
        description="The GitHub login that triggered the event",
    )

    @property
    def issue_id(self) -> str:
        """Canonical identifier in format "{owner}/{repository}#{issue_number}"."""
        return f"{self.owner}/{self.repository}#{self.issue_number}"

    @property
    def is_opened(self) -> bool:
        return self.action == IssueAction.OPENED.value


class PingEvent(BaseModel):
    """Parsed ``ping`` webhook event."""

    kind: Literal["ping"] = "ping"

    zen: str = ""

    hook_id: Optional[int] = None


class UnsupportedEvent(BaseModel):
    """Any delivery whose event name the bot does not handle."""

    kind: Literal["unsupported"] = "unsupported"

    name: str

    action: Optional[str] = None


WebhookEvent = Annotated[
    Union[IssuesEvent, PingEvent, UnsupportedEvent],
    Field(discriminator="kind"),
]
