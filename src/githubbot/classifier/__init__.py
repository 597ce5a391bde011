"""Rule-based issue classification.

This package maps the text of an issue body to labels:
- Version labels from a table of regular expressions
- A kind label from the answer to the issue template's request prompt

Rule sets are immutable values, built in or loaded from a JSON file, that
are passed into the classifier at construction time.
"""

from githubbot.classifier.engine import IssueClassifier, classify
from githubbot.classifier.models import Rule, RuleSet
from githubbot.classifier.rules import DEFAULT_RULES, RuleSetError, load_rules

__all__ = [
    "DEFAULT_RULES",
    "IssueClassifier",
    "Rule",
    "RuleSet",
    "RuleSetError",
    "classify",
    "load_rules",
]
