"""Log scan orchestration.

This module provides the LogScanner class which checks all configured log
files in configuration order and folds the per-file results into one status.

Key behaviors:
- State is loaded once at the start and saved once at the end of a run
- Only content not consumed by earlier runs is read
- A rotated file's unread tail is drained from its renamed predecessor
- A file that cannot be opened is UNKNOWN; other files are still checked
- An unusable state file degrades the run to full rescans (UNKNOWN per file)
- A failed state save makes the whole run UNKNOWN
"""

import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone
from time import time

from logcheck.assembler import MessageAssembler, MessageStream
from logcheck.classifier import PatternClassifier
from logcheck.config import CheckConfig
from logcheck.identity import ScanStart, identity_of_file, resolve_start
from logcheck.models import (
    CheckResult,
    CheckState,
    ClassifiedEvent,
    FileIdentity,
    FileResult,
    FileSpec,
    FileState,
    Message,
    PendingMessage,
    ReportedMessage,
    ScanNote,
    Severity,
)
from logcheck.retention import RetentionWindow
from logcheck.rotation import find_predecessor
from logcheck.state import (
    CorruptStateError,
    StatePersistenceError,
    expire_entries,
    load_state,
    new_state,
    save_state,
)
from logcheck.utils import format_duration


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogScanner:
    """Runs one check over all configured log files.

    Args:
        config: Parsed check configuration
        clock: Returns the current time; injectable for tests
        use_inode: Set to False to identify files by creation time or first line
    """

    def __init__(
        self,
        config: CheckConfig,
        clock: Callable[[], datetime] = utc_now,
        use_inode: bool = True,
    ):
        self.config = config
        self.clock = clock
        self.use_inode = use_inode
        self.classifier = PatternClassifier(config.critical_patterns, config.warning_patterns)
        self.retention = RetentionWindow(config.keep_status, config.max_kept_messages)

    def run(self) -> CheckResult:
        """Check all files, persist the updated state and return the result."""
        start_time = time()
        now = self.clock()
        notes: list[ScanNote] = []

        degraded = False
        try:
            state = load_state(self.config.state_path)
        except CorruptStateError as e:
            logger.warning(f'{e}; rescanning all files from the start')
            notes.append(ScanNote(kind='corrupt_state', text=f'State file unusable, all files rescanned: {e}'))
            state = new_state()
            degraded = True

        results = []
        for spec in self.config.files:
            file_result = self.check_file(spec, state, now)
            if degraded:
                file_result.severity = Severity.UNKNOWN
                file_result.notes.append(
                    ScanNote(kind='corrupt_state', text='Rescanned from the start because the state was unusable')
                )
            results.append(file_result)

        expire_entries(state, {spec.path for spec in self.config.files}, self.config.state_expiration, now)

        severity = Severity.worst(r.severity for r in results)
        try:
            save_state(self.config.state_path, state)
        except StatePersistenceError as e:
            logger.error(str(e))
            notes.append(ScanNote(kind='persistence_failure', text=f'Progress not saved: {e}'))
            severity = Severity.UNKNOWN

        result = CheckResult(severity=severity, files=results, notes=notes, time=time() - start_time)
        logger.info(
            f'Checked {len(results)} files in {result.time:.3f}s: {result.severity.value} '
            f'({result.warning_count} warnings, {result.critical_count} criticals)'
        )
        return result

    def check_file(self, spec: FileSpec, state: CheckState, now: datetime) -> FileResult:
        """Check one file and update its entry in state.

        Args:
            spec: Configured file
            state: Check state, updated in place
            now: Time of this check

        Returns:
            FileResult for the file
        """
        result = FileResult(path=spec.path)
        previous = state.get(spec.path)

        try:
            fileobj = open(spec.path, 'rb')
        except OSError as e:
            logger.warning(f'Could not open log file {spec.path}: {e}')
            result.severity = Severity.UNKNOWN
            result.notes.append(ScanNote(kind='file_unavailable', text=f'Could not open log file: {e.strerror or e}'))
            return result

        file_state = previous.model_copy(deep=True) if previous else FileState(path=spec.path)
        events: list[ClassifiedEvent] = []

        with fileobj:
            st = os.fstat(fileobj.fileno())
            identity = identity_of_file(fileobj, st, use_inode=self.use_inode)
            position = resolve_start(spec, previous, identity, st.st_size)
            result.start = position.start.value

            pending = file_state.pending
            if pending is not None and position.start in (ScanStart.FRESH, ScanStart.TRUNCATED):
                # the file it belonged to is gone or rewritten, nothing can continue it
                self._finish_pending(spec, pending, now, events)
                pending = None

            assembler = MessageAssembler(
                spec.path,
                line_pattern=self.config.line_pattern,
                max_lines=self.config.max_message_lines,
                pending=pending,
            )

            if position.start == ScanStart.ROTATED:
                result.lines_scanned += self._drain_predecessor(spec, previous, identity, assembler, events, result, now)
            elif position.start == ScanStart.TRUNCATED:
                result.notes.append(
                    ScanNote(kind='truncated', text='File was truncated in place, rescanned from the start')
                )

            stream = MessageStream(
                fileobj,
                assembler,
                offset=position.offset,
                line_number=position.line_number,
                encoding=self.config.encoding,
            )
            for message in stream:
                self._classify(message, now, events)
            result.lines_scanned += stream.lines_read

        file_state.identity = identity
        file_state.offset = stream.offset
        file_state.line_number = stream.line_number
        file_state.pending = assembler.pending
        file_state.updated_at = now

        if assembler.forced_flushes:
            result.notes.append(
                ScanNote(
                    kind='forced_flush',
                    text=f'{assembler.forced_flushes} messages reached {assembler.max_lines} lines '
                    f'and were checked without a following start line',
                )
            )

        outcome = self.retention.apply(file_state, events, now)
        state.files[spec.path] = file_state

        result.severity = outcome.severity
        result.warning_count = sum(1 for e in events if e.severity == Severity.WARNING)
        result.critical_count = sum(1 for e in events if e.severity == Severity.CRITICAL)
        result.messages = [
            ReportedMessage(severity=m.severity, line_number=m.line_number, text=m.text, retained=True)
            for m in outcome.retained_messages
        ] + [
            ReportedMessage(severity=e.severity, line_number=e.message.line_number, text=e.message.text)
            for e in events
        ]

        fresh = {e.severity for e in events}
        for severity in outcome.retained:
            if severity not in fresh:
                since = file_state.last_seen(severity)
                result.notes.append(
                    ScanNote(
                        kind='retained',
                        text=f'{severity.value} kept since {since.isoformat(timespec="seconds")} '
                        f'(keepstatus {format_duration(self.retention.keep)})',
                    )
                )

        logger.debug(
            f'{spec.path}: {result.start}, {result.lines_scanned} lines, '
            f'{result.warning_count} warnings, {result.critical_count} criticals -> {result.severity.value}'
        )
        return result

    def _classify(self, message: Message, now: datetime, events: list[ClassifiedEvent]) -> None:
        event = self.classifier.classify(message, now)
        if event is None:
            return
        pattern = self.classifier.matching_pattern(message.text)
        logger.debug(
            f'{message.path}:{message.line_number}: {event.severity.value} '
            f'(pattern {pattern.pattern if pattern else None!r})'
        )
        events.append(event)

    def _finish_pending(
        self, spec: FileSpec, pending: PendingMessage, now: datetime, events: list[ClassifiedEvent]
    ) -> None:
        logger.info(f'{spec.path}: checking open message from line {pending.start_line} on its own')
        message = MessageAssembler(spec.path, line_pattern=self.config.line_pattern, pending=pending).finish()
        if message is not None:
            self._classify(message, now, events)

    def _drain_predecessor(
        self,
        spec: FileSpec,
        previous: FileState,
        live_identity: FileIdentity,
        assembler: MessageAssembler,
        events: list[ClassifiedEvent],
        result: FileResult,
        now: datetime,
    ) -> int:
        """Read the unread tail of the rotated predecessor into the assembler.

        The predecessor's read position is never stored; only the live path
        is tracked after this run.

        Returns:
            Number of lines read from the predecessor
        """
        predecessor = find_predecessor(spec, previous.identity, live_identity, use_inode=self.use_inode)

        if predecessor is None:
            return self._rotation_gap(spec, previous, result, 'no rotated file found')

        if not predecessor.exact and predecessor.size < previous.offset:
            return self._rotation_gap(
                spec, previous, result, f'{predecessor.path} is smaller than the last read position'
            )

        try:
            with open(predecessor.path, 'rb') as f:
                stream = MessageStream(
                    f,
                    assembler,
                    offset=previous.offset,
                    line_number=previous.line_number,
                    encoding=self.config.encoding,
                    final=True,
                )
                for message in stream:
                    self._classify(message, now, events)
        except OSError as e:
            return self._rotation_gap(spec, previous, result, f'could not read {predecessor.path}: {e}')

        logger.info(
            f'{spec.path}: read {stream.lines_read} lines from rotated file {predecessor.path} '
            f'starting at offset {previous.offset}'
        )
        return stream.lines_read

    def _rotation_gap(self, spec: FileSpec, previous: FileState, result: FileResult, reason: str) -> int:
        logger.warning(f'{spec.path}: rotation gap after offset {previous.offset}: {reason}')
        result.notes.append(
            ScanNote(
                kind='rotation_gap',
                text=f'Content of the rotated file after offset {previous.offset} was not checked: {reason}',
            )
        )
        return 0
