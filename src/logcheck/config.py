"""Check configuration built from command line options."""

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from logcheck.assembler import DEFAULT_MAX_MESSAGE_LINES
from logcheck.models import FileSpec
from logcheck.retention import DEFAULT_MAX_KEPT_MESSAGES
from logcheck.utils import get_default_state_path, get_int_env, parse_duration


DEFAULT_STATE_EXPIRATION_DAYS = 8
DEFAULT_MAX_OUTPUT_MESSAGES = 10
DEFAULT_EXCERPT_CHARS = 300

WINDOWS_DRIVE_RE = re.compile(r'^[A-Za-z]:[\\/]')


class ConfigError(ValueError):
    """Invalid check configuration (bad pattern, duration or file argument)."""


@dataclass
class CheckConfig:
    """Parsed configuration consumed by the scanner."""

    files: list[FileSpec]
    line_pattern: re.Pattern | None = None
    critical_patterns: list[re.Pattern] = field(default_factory=list)
    warning_patterns: list[re.Pattern] = field(default_factory=list)
    state_path: Path = field(default_factory=get_default_state_path)
    keep_status: timedelta = timedelta(0)
    encoding: str = 'utf-8'
    max_message_lines: int = DEFAULT_MAX_MESSAGE_LINES
    max_kept_messages: int = DEFAULT_MAX_KEPT_MESSAGES
    state_expiration: timedelta = timedelta(days=DEFAULT_STATE_EXPIRATION_DAYS)
    max_output_messages: int = DEFAULT_MAX_OUTPUT_MESSAGES
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS


def compile_pattern(pattern: str, option: str, flags: int = 0) -> re.Pattern:
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise ConfigError(f'Invalid {option} {pattern!r}: {e}') from e


def parse_file_spec(value: str, flags: int = 0) -> FileSpec:
    """Parse a ``path[:rotationPattern]`` file argument.

    The path ends at the first ':'; everything after it is the rotation
    pattern. An empty pattern means no rotation pattern.
    A leading Windows drive (``C:\\`` or ``C:/``) belongs to the path.
    """
    drive = 2 if WINDOWS_DRIVE_RE.match(value) else 0
    path, sep, rotation = value[drive:].partition(':')
    path = value[:drive] + path
    if not path:
        raise ConfigError(f'Invalid file argument {value!r}: empty path')

    rotation_pattern = None
    if sep and rotation:
        rotation_pattern = compile_pattern(rotation, 'rotation pattern', flags)

    return FileSpec(path=os.path.abspath(path), rotation_pattern=rotation_pattern)


def build_config(
    files: list[str] | tuple[str, ...],
    line_pattern: str | None = None,
    warning_patterns: list[str] | tuple[str, ...] = (),
    critical_patterns: list[str] | tuple[str, ...] = (),
    state_path: str | Path | None = None,
    keep_status: str | None = None,
    encoding: str = 'utf-8',
    case_insensitive: bool = False,
    max_output_messages: int = DEFAULT_MAX_OUTPUT_MESSAGES,
) -> CheckConfig:
    """Validate raw option values and build the check configuration.

    Raises:
        ConfigError: On a missing file argument, an invalid regex, an invalid
            keepstatus duration or an unknown encoding
    """
    if not files:
        raise ConfigError('At least one log file is required')

    flags = re.IGNORECASE if case_insensitive else 0

    specs = [parse_file_spec(value, flags) for value in files]

    line_re = None
    if line_pattern:
        line_re = compile_pattern(line_pattern, 'line pattern', flags)

    try:
        keep = parse_duration(keep_status)
    except ValueError as e:
        raise ConfigError(f'Invalid keepstatus: {e}') from e

    try:
        ''.encode(encoding)
    except LookupError as e:
        raise ConfigError(f'Unknown encoding {encoding!r}') from e

    return CheckConfig(
        files=specs,
        line_pattern=line_re,
        critical_patterns=[compile_pattern(p, 'critical pattern', flags) for p in critical_patterns],
        warning_patterns=[compile_pattern(p, 'warning pattern', flags) for p in warning_patterns],
        state_path=Path(state_path) if state_path else get_default_state_path(),
        keep_status=keep,
        encoding=encoding,
        max_message_lines=get_int_env('LOGCHECK_MAX_MESSAGE_LINES', DEFAULT_MAX_MESSAGE_LINES),
        state_expiration=timedelta(days=get_int_env('LOGCHECK_STATE_EXPIRATION_DAYS', DEFAULT_STATE_EXPIRATION_DAYS)),
        max_output_messages=max_output_messages,
    )
