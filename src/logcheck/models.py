"""Pydantic models for check state and results, plus the in-run data types"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from logcheck.utils import truncate_text


RESULT_NAME = 'LOGFILES'


class Severity(str, Enum):
    """Monitoring status levels, valued as in the plugin protocol."""

    OK = 'OK'
    WARNING = 'WARNING'
    CRITICAL = 'CRITICAL'
    UNKNOWN = 'UNKNOWN'

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]

    @property
    def rank(self) -> int:
        """Aggregation rank; a file that could not be checked dominates."""
        return _EXIT_CODES[self]

    @classmethod
    def worst(cls, severities) -> 'Severity':
        """Return the highest ranked severity, OK for an empty iterable."""
        result = cls.OK
        for severity in severities:
            if severity.rank > result.rank:
                result = severity
        return result


_EXIT_CODES = {
    Severity.OK: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
    Severity.UNKNOWN: 3,
}


# ============================================================================
# Persisted state
# ============================================================================


class FileIdentity(BaseModel):
    """Fingerprint of a concrete file on disk.

    Either device+inode or, where no inode is available, the file creation
    time. Where the creation time is not available either, a hash of the first
    line is used; it does not change when lines are appended. Two identities
    denote the same file iff they are equal.
    """

    model_config = ConfigDict(frozen=True)

    device: int | None = Field(None, example=2049, description='Device number (inode based identity)')
    inode: int | None = Field(None, example=1234567, description='Inode number (inode based identity)')
    created: float | None = Field(None, example=1760000000.0, description='Creation time (fallback identity)')
    fingerprint: str | None = Field(
        None,
        example='3b6cb2e5d6b7e0c8f3a1b1e1f4d9c3a0a7e2b5c4d8f1e6a9b0c3d2e5f8a1b4c7',
        description='Hash of the first line (fallback identity)',
    )

    @property
    def is_inode_based(self) -> bool:
        return self.inode is not None

    @property
    def is_known(self) -> bool:
        """False for the empty identity of a file without a complete first line."""
        return any(v is not None for v in (self.inode, self.created, self.fingerprint))


class PendingMessage(BaseModel):
    """An assembled message not yet known to be complete, carried across runs."""

    text: str = Field(..., description='Buffered message text including line separators')
    start_offset: int = Field(..., description='Byte offset of the first line in its file')
    start_line: int = Field(..., description='Line number (1-based) of the first line')
    line_count: int = Field(..., description='Number of physical lines buffered')
    end_offset: int = Field(..., description='Byte offset just after the last buffered line')


class KeptMessage(BaseModel):
    """A matching message remembered for the keepstatus window."""

    severity: Severity
    line_number: int
    text: str
    seen_at: datetime


class FileState(BaseModel):
    """Scan progress of one configured log file, keyed by its path.

    Attributes:
        path: Absolute path of the log file
        identity: Identity of the file the offset refers to
        offset: Byte offset just after the last complete line consumed
        line_number: Number of lines consumed up to offset
        pending: Open message held back until a following start line arrives
        last_critical_at: Last time a CRITICAL message was classified
        last_warning_at: Last time a WARNING message was classified
        kept_messages: Recent matches shown while their status is retained
        updated_at: Last time this entry was written by a check
    """

    path: str
    identity: FileIdentity | None = None
    offset: int = 0
    line_number: int = 0
    pending: PendingMessage | None = None
    last_critical_at: datetime | None = None
    last_warning_at: datetime | None = None
    kept_messages: list[KeptMessage] = Field(default_factory=list)
    updated_at: datetime | None = None

    def last_seen(self, severity: Severity) -> datetime | None:
        if severity == Severity.CRITICAL:
            return self.last_critical_at
        if severity == Severity.WARNING:
            return self.last_warning_at
        return None


class CheckState(BaseModel):
    """Persisted mapping from log file path to its FileState."""

    version: int = Field(..., description='State document format version')
    updated_at: datetime | None = None
    files: dict[str, FileState] = Field(default_factory=dict)

    def get(self, path: str) -> FileState | None:
        return self.files.get(path)


# ============================================================================
# In-run data types
# ============================================================================


@dataclass(frozen=True)
class FileSpec:
    """One configured log file, optionally with a rotation filename pattern."""

    path: str
    rotation_pattern: re.Pattern | None = None


@dataclass
class Message:
    """A logical (possibly multi-line) log message."""

    text: str
    path: str
    start_offset: int
    end_offset: int
    line_number: int  # 1-based line the message starts on
    line_count: int


@dataclass
class ClassifiedEvent:
    """A message with its resolved severity."""

    message: Message
    severity: Severity
    evaluated_at: datetime


# ============================================================================
# Results
# ============================================================================


class ScanNote(BaseModel):
    """A diagnostic note about a recoverable condition."""

    kind: str = Field(..., example='rotation_gap', description='Condition identifier')
    text: str = Field(..., example='rotated predecessor not found', description='Human-readable note')


class ReportedMessage(BaseModel):
    """A matching message as reported to the operator."""

    severity: Severity
    line_number: int
    text: str
    retained: bool = Field(False, description='True if the message is from an earlier check (keepstatus)')


class FileResult(BaseModel):
    """Outcome of checking one log file."""

    path: str
    severity: Severity = Severity.OK
    start: str = Field('fresh', description='How scanning started: fresh, continuing, truncated, rotated')
    lines_scanned: int = 0
    warning_count: int = 0
    critical_count: int = 0
    messages: list[ReportedMessage] = Field(default_factory=list)
    notes: list[ScanNote] = Field(default_factory=list)


class CheckResult(BaseModel):
    """Aggregate outcome of one check run."""

    severity: Severity
    files: list[FileResult] = Field(default_factory=list)
    notes: list[ScanNote] = Field(default_factory=list)
    time: float = Field(0.0, description='Check duration in seconds')

    @property
    def warning_count(self) -> int:
        return sum(f.warning_count for f in self.files)

    @property
    def critical_count(self) -> int:
        return sum(f.critical_count for f in self.files)

    @property
    def lines_scanned(self) -> int:
        return sum(f.lines_scanned for f in self.files)

    def summary_line(self) -> str:
        """First output line: status summary plus performance data."""
        return (
            f'{RESULT_NAME} {self.severity.value}: '
            f'{self.warning_count} warnings and {self.critical_count} criticals '
            f'in {self.lines_scanned} lines of {len(self.files)} files'
            f' | warnings={self.warning_count} criticals={self.critical_count} lines={self.lines_scanned}'
        )

    def to_cli(self, max_messages: int = 10, excerpt_chars: int = 300) -> str:
        """Format the result for the monitoring supervisor.

        Args:
            max_messages: Maximum number of messages listed per file
            excerpt_chars: Maximum characters shown per message

        Returns:
            Summary line followed by per-file details and notes
        """
        lines = [self.summary_line()]

        for note in self.notes:
            lines.append(f'Note: {note.text}')

        for file_result in self.files:
            if not file_result.messages and not file_result.notes:
                continue

            lines.append(f'File: {file_result.path}')
            shown = file_result.messages[:max_messages] if max_messages > 0 else []
            for message in shown:
                excerpt = truncate_text(message.text, excerpt_chars).replace('\n', '\n    ')
                suffix = ' (retained)' if message.retained else ''
                lines.append(f'{message.severity.value}({message.line_number}): {excerpt}{suffix}')
            hidden = len(file_result.messages) - len(shown)
            if hidden > 0:
                lines.append(f'... {hidden} more matching messages')

            for note in file_result.notes:
                lines.append(f'Note: {note.text}')

        return '\n'.join(lines)
