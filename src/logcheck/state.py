"""Check state persistence.

The state file holds one FileState per configured log file, keyed by the
absolute log file path, inside a versioned JSON document.

State behavior:
- Missing state file: an empty state is returned (first run)
- Unparsable file or version mismatch: CorruptStateError, the caller rescans
- Saving writes a sibling temporary file and renames it over the original,
  so an interrupted save never leaves a truncated state file behind
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from logcheck.models import CheckState


logger = logging.getLogger(__name__)

# State format version - increment when format changes
STATE_VERSION = 1


class CorruptStateError(Exception):
    """The state file exists but cannot be used."""


class StatePersistenceError(Exception):
    """The state file could not be written."""


def new_state() -> CheckState:
    """Create an empty check state."""
    return CheckState(version=STATE_VERSION)


def load_state(state_path: str | Path) -> CheckState:
    """Load the check state.

    Args:
        state_path: Path to the state file

    Returns:
        The stored CheckState, or an empty one if the file does not exist

    Raises:
        CorruptStateError: If the file exists but is unreadable, unparsable
            or written by a different format version
    """
    path = Path(state_path)

    if not path.exists():
        logger.debug(f'No state found at {path}')
        return new_state()

    if path.is_dir():
        raise CorruptStateError(f'State path is a directory: {path}')

    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptStateError(f'Could not read state file {path}: {e}') from e

    if not isinstance(data, dict):
        raise CorruptStateError(f'State file {path} does not hold a state document')

    if data.get('version') != STATE_VERSION:
        raise CorruptStateError(
            f'State file {path} has version {data.get("version")!r}, expected {STATE_VERSION}'
        )

    try:
        state = CheckState.model_validate(data)
    except ValidationError as e:
        raise CorruptStateError(f'Could not parse state file {path}: {e}') from e

    logger.debug(f'Loaded state for {len(state.files)} files from {path}')
    return state


@contextmanager
def atomic_write(path: Path):
    """Open a sibling temporary file that replaces ``path`` on success.

    The temporary file is renamed over ``path`` when the block exits normally
    and removed when it raises.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f'.{path.name}.', suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def save_state(state_path: str | Path, state: CheckState) -> None:
    """Persist the check state atomically.

    Args:
        state_path: Path to the state file
        state: State to save

    Raises:
        StatePersistenceError: If the state could not be written; any
            previous state file is left intact
    """
    path = Path(state_path)
    state.version = STATE_VERSION
    state.updated_at = datetime.now(timezone.utc)

    try:
        payload = state.model_dump(mode='json')
        with atomic_write(path) as f:
            json.dump(payload, f, indent=2)
    except (OSError, TypeError, ValueError) as e:
        raise StatePersistenceError(f'Could not write state file {path}: {type(e).__name__}: {e}') from e

    logger.info(f'Saved state for {len(state.files)} files to {path}')


def delete_state(state_path: str | Path) -> bool:
    """Delete the state file (explicit reset).

    Returns:
        True if deleted, False if it did not exist
    """
    path = Path(state_path)
    if not path.exists():
        return False
    path.unlink()
    logger.info(f'Deleted state file {path}')
    return True


def expire_entries(
    state: CheckState,
    keep_paths: set[str],
    max_age: timedelta,
    now: datetime,
) -> list[str]:
    """Drop entries of files no longer configured that were not updated within max_age.

    Args:
        state: State to prune in place
        keep_paths: Paths configured in this run, never dropped
        max_age: Age after which unconfigured entries are dropped
        now: Current time

    Returns:
        Paths of the dropped entries
    """
    dropped = []
    for path, file_state in list(state.files.items()):
        if path in keep_paths:
            continue
        if file_state.updated_at is None or now - file_state.updated_at > max_age:
            del state.files[path]
            dropped.append(path)

    if dropped:
        logger.info(f'Expired state of {len(dropped)} files no longer checked')
    return dropped
