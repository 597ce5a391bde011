"""Built-in rule tables and rule file loading.

The default rules recognise the Rancher issue template: the version the
reporter is running (1.6 or 2.0) and the answer to the "What kind of request
is this" prompt.

Alternate rule sets can be supplied as a JSON file:

{
  "version_rules": [{"pattern": "rancher2", "label": "version/2.0"}],
  "kind_pattern": "What kind of request is this.*?:.*?(\\\\w+)\\\\r\\\\n",
  "kinds": {"bug": "kind/bug"}
}

Omitted keys fall back to the built-in values.
"""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from githubbot.classifier.models import Rule, RuleSet


logger = logging.getLogger(__name__)


VERSION_RULES = (
    Rule(pattern=r"rancher/(server|rancher):?\s*v?1", label="version/1.6"),
    Rule(pattern=r"\|Versions\|Rancher\s`v1", label="version/1.6"),
    Rule(pattern=r"Rancher\sversion.*:\s*v?1", label="version/1.6"),
    Rule(pattern=r"(rancher/)?rancher:?\s*v?2", label="version/2.0"),
    Rule(pattern=r"\|Versions\|Rancher\s`v2", label="version/2.0"),
    Rule(pattern=r"Rancher\sversion.*:\s*v?2", label="version/2.0"),
)

KIND_PATTERN = r"What kind of request is this.*?:.*?(\w+|\w+\s+\w+)\r\n"

KINDS = {
    "question": "kind/question",
    "bug": "kind/bug",
    "enhancement": "kind/enhancement",
    "feature request": "kind/feature",
    "feature": "kind/feature",
}

DEFAULT_RULES = RuleSet(
    version_rules=VERSION_RULES,
    kind_pattern=KIND_PATTERN,
    kinds=KINDS,
)


class RuleSetError(Exception):
    """Raised when a rule file cannot be read or is invalid.

    Attributes:
        path: The rule file that failed to load.
    """

    def __init__(self, message: str, path: Union[str, Path, None] = None):
        self.path = path
        super().__init__(message)


def load_rules(path: Union[str, Path]) -> RuleSet:
    """Load a rule set from a JSON file.

    Args:
        path: Path to the JSON rule file.

    Returns:
        RuleSet: The validated rule set.

    Raises:
        RuleSetError: If the file is missing, not JSON, or fails validation.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RuleSetError(f"Could not read rules file {path}: {e}", path) from e
    except json.JSONDecodeError as e:
        raise RuleSetError(f"Rules file {path} is not valid JSON: {e}", path) from e

    if not isinstance(raw, dict):
        raise RuleSetError(
            f"Rules file {path} must contain a JSON object, got {type(raw).__name__}",
            path,
        )

    data = {
        "version_rules": raw.get("version_rules", DEFAULT_RULES.version_rules),
        "kind_pattern": raw.get("kind_pattern", DEFAULT_RULES.kind_pattern),
        "kinds": raw.get("kinds", DEFAULT_RULES.kinds),
    }
    try:
        rules = RuleSet.model_validate(data)
    except ValidationError as e:
        raise RuleSetError(f"Invalid rules in {path}: {e}", path) from e

    logger.info(
        "Loaded rules file",
        extra={
            "path": str(path),
            "version_rules": len(rules.version_rules),
            "kinds": len(rules.kinds),
        },
    )
    return rules
