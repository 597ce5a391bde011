"""Regular-expression issue classifier.

The classifier turns the raw text of an issue body into the list of labels
to apply. It is a pure function of the body and the rule set it was built
with. Patterns are compiled once, with RE2, when the classifier is
constructed, so the cost of a call grows linearly with the body length.

Classification has two independent steps:

1. Version detection: each version rule is searched anywhere in the body and
   every match contributes its label. Several rules may point at the same
   version, so the same label can appear more than once.
2. Kind detection: the kind pattern extracts the answer to the "What kind of
   request is this" template prompt; the answer is lower-cased and looked up
   in the kind table. Unknown answers contribute nothing.
"""

import logging
from typing import Optional

from githubbot.classifier.models import RuleSet, compile_pattern
from githubbot.classifier.rules import DEFAULT_RULES


logger = logging.getLogger(__name__)


class IssueClassifier:
    """Applies a rule set to issue bodies.

    Instances are immutable after construction and safe to share between
    concurrent requests.

    Attributes:
        rules: The rule set the classifier was built from.
    """

    def __init__(self, rules: Optional[RuleSet] = None) -> None:
        self.rules = rules if rules is not None else DEFAULT_RULES
        self._version_matchers = tuple(
            (compile_pattern(rule.pattern), rule)
            for rule in self.rules.version_rules
        )
        self._kind_matcher = compile_pattern(self.rules.kind_pattern, dotall=True)

    def classify(self, body: str) -> list[str]:
        """Return the labels for an issue body.

        Args:
            body: The raw issue description. May be empty.

        Returns:
            Labels in rule order, version labels first. May contain
            duplicates and may be empty.
        """
        if not body:
            return []

        labels = []
        for matcher, rule in self._version_matchers:
            if matcher.search(body):
                logger.debug("Version rule %s matched", rule.pattern)
                labels.append(rule.label)

        kind = self.detect_kind(body)
        if kind is not None:
            labels.append(kind)

        return labels

    def detect_kind(self, body: str) -> Optional[str]:
        """Return the kind label answered in the body, if recognised."""
        match = self._kind_matcher.search(body)
        if match is None:
            return None

        answer = match.group(1).lower()
        label = self.rules.kinds.get(answer)
        if label is None:
            logger.debug("Unrecognised request kind: %r", answer)
        return label


def classify(body: str, rules: Optional[RuleSet] = None) -> list[str]:
    """Classify a body with a throwaway classifier.

    Convenient for one-off calls; long-lived callers should keep an
    IssueClassifier so patterns are compiled only once.
    """
    return IssueClassifier(rules).classify(body)
