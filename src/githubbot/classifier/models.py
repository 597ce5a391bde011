"""Rule models for the issue classifier.

This module defines the immutable rule values the classifier is built from:

- ``Rule``: a case-sensitive regular expression paired with the label it
  yields when the pattern is found anywhere in an issue body.
- ``RuleSet``: the version rules, the single kind pattern, and the lookup
  table mapping a captured kind keyword to its label.

Rule sets are constructed once at startup and passed into the classifier.
They use Pydantic for validation, consistent with the webhook models in
webhook/models.py, and are frozen so they can be shared between concurrent
requests.
"""

import re2
from pydantic import BaseModel, ConfigDict, Field, field_validator


def compile_pattern(pattern: str, dotall: bool = False):
    """Compile a rule pattern with RE2.

    RE2 matches in time linear in the input, so no pattern, built-in or
    loaded from a rules file, can backtrack on a hostile issue body. Its
    ``\\s`` and ``\\w`` classes match ASCII only.
    """
    if dotall:
        pattern = "(?s)" + pattern
    return re2.compile(pattern)


def _check_pattern(value: str) -> str:
    """Ensure a pattern compiles, raising ValueError otherwise."""
    try:
        compile_pattern(value)
    except re2.error as e:
        raise ValueError(f"invalid regular expression {value!r}: {e}") from e
    return value


class Rule(BaseModel):
    """A single version detection rule.

    Attributes:
        pattern: Case-sensitive regular expression, searched unanchored.
        label: Label to apply when the pattern matches.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str = Field(
        ...,
        min_length=1,
        description="Case-sensitive regular expression searched in the body",
    )

    label: str = Field(
        ...,
        min_length=1,
        description="Label applied when the pattern matches",
    )

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject patterns that do not compile."""
        return _check_pattern(v)

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        """Reject blank labels."""
        if not v.strip():
            raise ValueError("label cannot be blank")
        return v


class RuleSet(BaseModel):
    """The complete, immutable configuration of the classifier.

    Version rules are evaluated independently of each other, so their order
    never changes which labels are produced, only the order they appear in.
    The kind pattern must contain at least one capture group; group 1 is
    lower-cased and looked up in ``kinds``.

    Attributes:
        version_rules: Rules inferring the product version from the body.
        kind_pattern: Pattern extracting the "kind of request" answer.
            Compiled in dot-all mode so it may span line breaks.
        kinds: Lower-cased keyword to label mapping for the kind answer.
    """

    model_config = ConfigDict(frozen=True)

    version_rules: tuple[Rule, ...] = Field(
        default_factory=tuple,
        description="Version detection rules",
    )

    kind_pattern: str = Field(
        ...,
        min_length=1,
        description="Pattern whose first group captures the request kind",
    )

    kinds: dict[str, str] = Field(
        default_factory=dict,
        description="Lower-cased kind keyword to label mapping",
    )

    @field_validator("kind_pattern")
    @classmethod
    def validate_kind_pattern(cls, v: str) -> str:
        """Require a compilable pattern with a capture group."""
        _check_pattern(v)
        if compile_pattern(v, dotall=True).groups < 1:
            raise ValueError("kind_pattern must contain a capture group")
        return v

    @field_validator("kinds")
    @classmethod
    def validate_kinds(cls, v: dict[str, str]) -> dict[str, str]:
        """Normalise keys to lower case so lookups match captured text."""
        return {key.lower(): label for key, label in v.items()}

    @property
    def labels(self) -> set[str]:
        """Every label this rule set can produce."""
        return {rule.label for rule in self.version_rules} | set(self.kinds.values())
