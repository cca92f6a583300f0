"""Multi-line message assembly.

A log message starts with a line matching the line-start pattern and runs up
to the line before the next start line. The assembler is a two-state machine
(no open message / open message with buffer) fed one physical line at a time,
so it can be driven and tested without any file I/O.

End of input never completes an open message when a line-start pattern is
configured: continuation lines may still be written before the next check.
The open message is handed back as a PendingMessage, persisted, and used to
seed the assembler of the next run. Without a line-start pattern every
complete physical line is a complete message.
"""

import logging
import re
from collections.abc import Iterator
from typing import BinaryIO

from logcheck.models import Message, PendingMessage


logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LINES = 10_000


def strip_line_separator(text: str) -> str:
    """Remove one trailing line separator (\\n or \\r\\n)."""
    if text.endswith('\n'):
        text = text[:-1]
        if text.endswith('\r'):
            text = text[:-1]
    return text


class MessageAssembler:
    """Turns physical lines into logical messages.

    Args:
        path: Log file the lines come from (copied into each Message)
        line_pattern: Line-start pattern, None if every line starts a message
        max_lines: Open messages reaching this many lines are completed
        pending: Open message carried over from the previous run
    """

    def __init__(
        self,
        path: str,
        line_pattern: re.Pattern | None = None,
        max_lines: int = DEFAULT_MAX_MESSAGE_LINES,
        pending: PendingMessage | None = None,
    ):
        self.path = path
        self.line_pattern = line_pattern
        self.max_lines = max(1, max_lines)
        self.forced_flushes = 0

        self._chunks: list[str] = []
        self._line_count = 0
        self._start_offset = 0
        self._start_line = 0
        self._end_offset = 0

        if pending is not None and pending.line_count > 0:
            self._chunks = [pending.text]
            self._line_count = pending.line_count
            self._start_offset = pending.start_offset
            self._start_line = pending.start_line
            self._end_offset = pending.end_offset

    @property
    def is_open(self) -> bool:
        return self._line_count > 0

    @property
    def pending(self) -> PendingMessage | None:
        """The open message, None if there is none."""
        if not self.is_open:
            return None
        return PendingMessage(
            text=''.join(self._chunks),
            start_offset=self._start_offset,
            start_line=self._start_line,
            line_count=self._line_count,
            end_offset=self._end_offset,
        )

    def starts_message(self, line: str) -> bool:
        if self.line_pattern is None:
            return True
        return self.line_pattern.search(strip_line_separator(line)) is not None

    def feed(self, line: str, offset: int, end_offset: int, line_number: int) -> list[Message]:
        """Feed one complete physical line.

        Args:
            line: Line text including its line separator
            offset: Byte offset of the line start
            end_offset: Byte offset just after the line separator
            line_number: 1-based line number

        Returns:
            Messages completed by this line (usually zero or one)
        """
        completed = []

        if self.starts_message(line) and self.is_open:
            completed.append(self._flush())

        if not self.is_open:
            self._start_offset = offset
            self._start_line = line_number

        self._chunks.append(line)
        self._line_count += 1
        self._end_offset = end_offset

        if self.line_pattern is None:
            completed.append(self._flush())
        elif self._line_count >= self.max_lines:
            logger.warning(
                f'{self.path}: message starting at line {self._start_line} reached '
                f'{self._line_count} lines, completing it without a following start line'
            )
            self.forced_flushes += 1
            completed.append(self._flush())

        return completed

    def finish(self) -> Message | None:
        """Complete the open message, used when no more lines can follow it."""
        if not self.is_open:
            return None
        return self._flush()

    def _flush(self) -> Message:
        message = Message(
            text=strip_line_separator(''.join(self._chunks)),
            path=self.path,
            start_offset=self._start_offset,
            end_offset=self._end_offset,
            line_number=self._start_line,
            line_count=self._line_count,
        )
        self._chunks = []
        self._line_count = 0
        return message


class MessageStream:
    """Lazily reads complete lines from a binary file into an assembler.

    Iterating yields completed messages. After iteration, ``offset`` and
    ``line_number`` describe the position just after the last complete line
    consumed; a trailing partial line (no separator yet) is left unread so the
    next run retries it from the same offset.
    With ``final`` set the file is known to receive no more writes (a rotated
    predecessor) and a trailing unterminated line is consumed as a complete one.

    Args:
        fileobj: File opened in binary mode
        assembler: Assembler receiving the lines
        offset: Byte offset to start reading at
        line_number: Number of lines before offset
        encoding: Text encoding; undecodable bytes are replaced
        final: Consume a trailing line that has no separator
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        assembler: MessageAssembler,
        offset: int = 0,
        line_number: int = 0,
        encoding: str = 'utf-8',
        final: bool = False,
    ):
        self.fileobj = fileobj
        self.assembler = assembler
        self.offset = offset
        self.line_number = line_number
        self.encoding = encoding
        self.final = final
        self.lines_read = 0
        self.partial_bytes = 0

    def __iter__(self) -> Iterator[Message]:
        self.fileobj.seek(self.offset)

        while True:
            raw = self.fileobj.readline()
            if not raw:
                break
            line = raw.decode(self.encoding, errors='replace')
            if not raw.endswith(b'\n'):
                if not self.final:
                    self.partial_bytes = len(raw)
                    logger.debug(f'{self.assembler.path}: partial line of {len(raw)} bytes left for next run')
                    break
                logger.debug(f'{self.assembler.path}: consuming unterminated last line of {len(raw)} bytes')
                line += '\n'

            line_number = self.line_number + 1
            end_offset = self.offset + len(raw)
            completed = self.assembler.feed(line, self.offset, end_offset, line_number)

            self.offset = end_offset
            self.line_number = line_number
            self.lines_read += 1

            yield from completed
