"""Pattern classifier for assembled messages."""

import re
from datetime import datetime, timezone

from logcheck.models import ClassifiedEvent, Message, Severity


class PatternClassifier:
    """Scores messages against ordered critical and warning patterns.

    Critical patterns are tried first, in configuration order, then warning
    patterns; the first pattern found anywhere in the message text decides.
    The result depends only on the message text and the two pattern lists.
    """

    def __init__(
        self,
        critical_patterns: list[re.Pattern] | None = None,
        warning_patterns: list[re.Pattern] | None = None,
    ):
        self.critical_patterns = list(critical_patterns or [])
        self.warning_patterns = list(warning_patterns or [])

    def severity_of(self, text: str) -> Severity:
        for pattern in self.critical_patterns:
            if pattern.search(text):
                return Severity.CRITICAL
        for pattern in self.warning_patterns:
            if pattern.search(text):
                return Severity.WARNING
        return Severity.OK

    def matching_pattern(self, text: str) -> re.Pattern | None:
        """Return the pattern that decides the severity of text, if any."""
        for pattern in self.critical_patterns + self.warning_patterns:
            if pattern.search(text):
                return pattern
        return None

    def classify(self, message: Message, now: datetime | None = None) -> ClassifiedEvent | None:
        """Classify a message.

        Args:
            message: Assembled message
            now: Evaluation time, defaults to the current UTC time

        Returns:
            ClassifiedEvent for WARNING/CRITICAL messages, None for OK messages
        """
        severity = self.severity_of(message.text)
        if severity == Severity.OK:
            return None
        return ClassifiedEvent(
            message=message,
            severity=severity,
            evaluated_at=now or datetime.now(timezone.utc),
        )
