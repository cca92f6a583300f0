"""File identity and scan start resolution.

Decides, for each configured path, whether the file on disk is the one scanned
last time (continue at the stored offset), the same file truncated in place,
a rotated/replaced file, or a file seen for the first time.
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from logcheck.models import FileIdentity, FileSpec, FileState


logger = logging.getLogger(__name__)

FINGERPRINT_BYTES = 1024


class ScanStart(str, Enum):
    """Where scanning of a file starts in this run."""

    FRESH = 'fresh'
    CONTINUING = 'continuing'
    TRUNCATED = 'truncated'
    ROTATED = 'rotated'


@dataclass
class StartPosition:
    """Resolved scan start for the live file."""

    start: ScanStart
    offset: int
    line_number: int


def creation_time(stat: os.stat_result) -> float | None:
    """Creation time of the file, None where the platform does not record it.

    st_birthtime is reported on macOS/BSD (and Windows since Python 3.12).
    On Windows st_ctime is the creation time; elsewhere it is the inode change
    time, which moves on every append, so it is not used.
    """
    created = getattr(stat, 'st_birthtime', None)
    if created is None and os.name == 'nt':
        created = stat.st_ctime
    return float(created) if created is not None else None


def read_fingerprint(fileobj: BinaryIO) -> str | None:
    """Hash of the first line of a file (at most FINGERPRINT_BYTES).

    Appending never changes a complete first line, so the hash stays stable
    while the file grows. Returns None while the file has no complete first
    line yet. The file position is left at the start of the file.
    """
    fileobj.seek(0)
    head = fileobj.read(FINGERPRINT_BYTES)
    fileobj.seek(0)

    newline = head.find(b'\n')
    if newline >= 0:
        head = head[: newline + 1]
    elif len(head) < FINGERPRINT_BYTES:
        return None
    return hashlib.sha256(head).hexdigest()


def needs_fingerprint(stat: os.stat_result, use_inode: bool = True) -> bool:
    if use_inode and getattr(stat, 'st_ino', 0):
        return False
    return creation_time(stat) is None


def identity_from_stat(
    stat: os.stat_result, use_inode: bool = True, fingerprint: str | None = None
) -> FileIdentity:
    """Build the identity of a file from its stat result.

    Device+inode is used whenever the platform reports an inode. Otherwise the
    creation time identifies the file, and where that is not recorded either
    the first line fingerprint does.

    Args:
        stat: Result of os.stat / os.fstat
        use_inode: Set to False to force the fallback identity
        fingerprint: Result of read_fingerprint, needed when needs_fingerprint()

    Returns:
        FileIdentity for the file
    """
    if use_inode and getattr(stat, 'st_ino', 0):
        return FileIdentity(device=stat.st_dev, inode=stat.st_ino)

    created = creation_time(stat)
    if created is not None:
        return FileIdentity(created=created)
    return FileIdentity(fingerprint=fingerprint)


def identity_of_file(fileobj: BinaryIO, stat: os.stat_result, use_inode: bool = True) -> FileIdentity:
    """Identity of an open binary file, reading its first line only when needed."""
    fingerprint = read_fingerprint(fileobj) if needs_fingerprint(stat, use_inode) else None
    return identity_from_stat(stat, use_inode=use_inode, fingerprint=fingerprint)


def identity_of(path: str, use_inode: bool = True) -> FileIdentity:
    """Identity of the file currently at path."""
    with open(path, 'rb') as f:
        return identity_of_file(f, os.fstat(f.fileno()), use_inode=use_inode)


def same_file(a: FileIdentity | None, b: FileIdentity | None) -> bool:
    return a is not None and b is not None and a == b


def resolve_start(
    spec: FileSpec,
    previous: FileState | None,
    identity: FileIdentity,
    size: int,
) -> StartPosition:
    """Classify the live file against the stored state.

    Args:
        spec: Configured file
        previous: State stored by the last run, None if never seen
        identity: Identity of the file now at spec.path
        size: Current size of that file

    Returns:
        StartPosition for reading the live file. For ROTATED the live file is
        read from 0; draining the predecessor is up to the caller.
    """
    if previous is None or previous.identity is None or not previous.identity.is_known:
        logger.debug(f'{spec.path}: no previous state, scanning from start')
        return StartPosition(ScanStart.FRESH, 0, 0)

    if same_file(previous.identity, identity):
        if size >= previous.offset:
            return StartPosition(ScanStart.CONTINUING, previous.offset, previous.line_number)
        logger.warning(f'{spec.path}: truncated in place (size {size} < offset {previous.offset}), rescanning')
        return StartPosition(ScanStart.TRUNCATED, 0, 0)

    if spec.rotation_pattern is not None:
        logger.info(f'{spec.path}: file identity changed, looking for rotated predecessor')
        return StartPosition(ScanStart.ROTATED, 0, 0)

    logger.info(f'{spec.path}: file identity changed, scanning new file from start')
    return StartPosition(ScanStart.FRESH, 0, 0)
