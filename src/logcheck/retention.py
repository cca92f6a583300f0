"""Status retention (keepstatus).

Once a WARNING or CRITICAL message is found, the file keeps reporting that
status for the configured duration even if later checks find nothing new.
A timestamp counts while it lies in the closed interval [now - keep, now].
Expired timestamps are not purged; they stop counting and are overwritten by
the next event of that severity.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from logcheck.models import ClassifiedEvent, FileState, KeptMessage, Severity


logger = logging.getLogger(__name__)

DEFAULT_MAX_KEPT_MESSAGES = 20

_RETAINED_SEVERITIES = (Severity.CRITICAL, Severity.WARNING)


@dataclass
class RetentionOutcome:
    """Effective status of one file after folding in retained history."""

    severity: Severity
    retained: list[Severity] = field(default_factory=list)
    retained_messages: list[KeptMessage] = field(default_factory=list)


class RetentionWindow:
    """Merges this run's events with still unexpired earlier ones.

    Args:
        keep: Retention duration; zero disables retention
        max_kept: Maximum number of kept messages stored per file
    """

    def __init__(self, keep: timedelta = timedelta(0), max_kept: int = DEFAULT_MAX_KEPT_MESSAGES):
        self.keep = keep
        self.max_kept = max_kept

    @property
    def enabled(self) -> bool:
        return self.keep > timedelta(0)

    def in_window(self, moment: datetime | None, now: datetime) -> bool:
        if not self.enabled or moment is None:
            return False
        return now - self.keep <= moment <= now

    def retained_severities(self, file_state: FileState, now: datetime) -> list[Severity]:
        """Severities kept alive by earlier checks."""
        return [s for s in _RETAINED_SEVERITIES if self.in_window(file_state.last_seen(s), now)]

    def apply(self, file_state: FileState, events: list[ClassifiedEvent], now: datetime) -> RetentionOutcome:
        """Compute the effective severity and record this run's events.

        Retained history is evaluated against the state as stored by earlier
        runs, then the state is updated with the events of this run.

        Args:
            file_state: State of the file, updated in place
            events: WARNING/CRITICAL events classified in this run
            now: Time of this check

        Returns:
            RetentionOutcome with the effective severity
        """
        retained = self.retained_severities(file_state, now)
        retained_messages = [m for m in file_state.kept_messages if self.in_window(m.seen_at, now)]

        severity = Severity.worst([e.severity for e in events] + retained)

        for event in events:
            if event.severity == Severity.CRITICAL:
                file_state.last_critical_at = event.evaluated_at
            elif event.severity == Severity.WARNING:
                file_state.last_warning_at = event.evaluated_at

        if self.enabled:
            kept = retained_messages + [
                KeptMessage(
                    severity=e.severity,
                    line_number=e.message.line_number,
                    text=e.message.text,
                    seen_at=e.evaluated_at,
                )
                for e in events
            ]
            file_state.kept_messages = kept[-self.max_kept :] if self.max_kept > 0 else []
        else:
            file_state.kept_messages = []

        if retained:
            logger.debug(f'{file_state.path}: retained {", ".join(s.value for s in retained)} within keepstatus')

        return RetentionOutcome(severity=severity, retained=retained, retained_messages=retained_messages)
