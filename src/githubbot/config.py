"""Bot configuration using pydantic-settings.

Settings are read from environment variables with the GITHUBBOT_ prefix.
The file and repository settings also accept the unprefixed names used by
existing deployments (WEBHOOK_TOKEN_FILE, PA_TOKEN_FILE, GH_ORG, GH_REPO).
Command-line flags override both; see cli.py.

Credentials are never passed directly: the webhook secret and the personal
access token are read from files once at startup.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the bot cannot be configured at startup."""


class BotSettings(BaseSettings):
    """Bot configuration from environment variables.

    All environment variables are prefixed with GITHUBBOT_ (e.g.,
    GITHUBBOT_PORT). Fields with aliases list the accepted names.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITHUBBOT_",
        case_sensitive=False,
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------
    # File holding the shared secret used to validate webhook signatures
    webhook_token_file: str = Field(
        default="/etc/githubbot/webhooktoken",
        validation_alias=AliasChoices(
            "webhook_token_file",
            "GITHUBBOT_WEBHOOK_TOKEN_FILE",
            "WEBHOOK_TOKEN_FILE",
        ),
    )

    # File holding the personal access token used to call the GitHub API
    patoken_file: str = Field(
        default="/etc/githubbot/patoken",
        validation_alias=AliasChoices(
            "patoken_file",
            "GITHUBBOT_PATOKEN_FILE",
            "PA_TOKEN_FILE",
        ),
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Organization and repository to label issues in. When unset, the
    # repository named in each webhook payload is used.
    github_org: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_org", "GITHUBBOT_GITHUB_ORG", "GH_ORG"),
    )

    github_repo: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_repo", "GITHUBBOT_GITHUB_REPO", "GH_REPO"),
    )

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # -------------------------------------------------------------------------
    # Classifier Configuration
    # -------------------------------------------------------------------------
    # Optional JSON rules file replacing the built-in rule tables
    rules_file: Optional[str] = None

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    webhook_path: str = "/webhooks"

    host: str = "0.0.0.0"

    port: int = 3000

    debug: bool = False

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that the GitHub base URL is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("webhook_path must start with /")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("github_org", "github_repo", "rules_file")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    def load_webhook_secret(self) -> str:
        """Read the webhook secret from webhook_token_file."""
        return load_secret(self.webhook_token_file, "webhooktoken-file")

    def load_token(self) -> str:
        """Read the personal access token from patoken_file."""
        return load_secret(self.patoken_file, "patoken-file")


def load_secret(path: Union[str, Path], name: str = "secret file") -> str:
    """Read a credential from a file.

    A single trailing newline is removed, so files written with
    ``echo secret > file`` work as expected.

    Args:
        path: Path of the file to read.
        name: Name used in error messages.

    Returns:
        str: The credential.

    Raises:
        ConfigurationError: If the file cannot be read or is empty.
    """
    try:
        value = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not load {name} from {path}: {e}") from e

    value = value.removesuffix("\n")
    if not value.strip():
        raise ConfigurationError(f"{name} at {path} is empty")
    return value


def redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def get_settings(**overrides: object) -> BotSettings:
    """Create BotSettings from the environment plus explicit overrides.

    Overrides whose value is None are ignored so unset CLI flags fall back
    to the environment.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return BotSettings(**values)
