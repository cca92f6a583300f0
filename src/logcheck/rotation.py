"""Rotated predecessor lookup.

After a rotation the tail of the file scanned last time (everything past the
stored offset) lives in a renamed sibling such as ``app.log.1``. Siblings whose
name matches the rotation pattern are candidates; the one with the identity
stored last run is the file that was being read. If none has that identity,
the most recently modified candidate is used as a best effort.
"""

import logging
import os
import stat
from dataclasses import dataclass

from logcheck.identity import identity_from_stat, needs_fingerprint, read_fingerprint
from logcheck.models import FileIdentity, FileSpec


logger = logging.getLogger(__name__)

# gzip, bzip2, xz, zstd
COMPRESSION_MAGIC = (b'\x1f\x8b', b'BZh', b'\xfd7zXZ\x00', b'\x28\xb5\x2f\xfd')


@dataclass
class Predecessor:
    """A rotated file that may hold unread content of the live path."""

    path: str
    identity: FileIdentity
    size: int
    mtime: float
    exact: bool  # True if its identity equals the stored identity


def is_compressed(path: str) -> bool:
    """Check compression magic bytes; unreadable files count as not compressed."""
    try:
        with open(path, 'rb') as f:
            head = f.read(6)
    except OSError:
        return False
    return any(head.startswith(magic) for magic in COMPRESSION_MAGIC)


def list_candidates(spec: FileSpec, use_inode: bool = True) -> list[Predecessor]:
    """List regular sibling files whose name fully matches the rotation pattern.

    Args:
        spec: Configured file with a rotation pattern
        use_inode: Identity mode, see identity_from_stat

    Returns:
        Candidates sorted by name; the live path itself is never a candidate
    """
    if spec.rotation_pattern is None:
        return []

    directory = os.path.dirname(spec.path) or '.'
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        logger.warning(f'Could not list {directory} for rotated files: {e}')
        return []

    candidates = []
    for name in names:
        if not spec.rotation_pattern.fullmatch(name):
            continue
        candidate = os.path.join(directory, name)
        if os.path.abspath(candidate) == os.path.abspath(spec.path):
            continue
        try:
            st = os.stat(candidate)
        except OSError:
            continue
        if not stat.S_ISREG(st.st_mode):
            continue
        fingerprint = None
        if needs_fingerprint(st, use_inode):
            try:
                with open(candidate, 'rb') as f:
                    fingerprint = read_fingerprint(f)
            except OSError:
                continue
        candidates.append(
            Predecessor(
                path=candidate,
                identity=identity_from_stat(st, use_inode=use_inode, fingerprint=fingerprint),
                size=st.st_size,
                mtime=st.st_mtime,
                exact=False,
            )
        )
    return candidates


def find_predecessor(
    spec: FileSpec,
    previous_identity: FileIdentity | None,
    live_identity: FileIdentity | None = None,
    use_inode: bool = True,
) -> Predecessor | None:
    """Pick the rotated file that received the unread tail.

    Args:
        spec: Configured file with a rotation pattern
        previous_identity: Identity stored for spec.path by the last run
        live_identity: Identity of the file now at spec.path, never picked
        use_inode: Identity mode, see identity_from_stat

    Returns:
        The predecessor, or None if no usable candidate exists
    """
    candidates = list_candidates(spec, use_inode=use_inode)

    for candidate in candidates:
        if previous_identity is not None and candidate.identity == previous_identity:
            candidate.exact = True
            logger.debug(f'{spec.path}: rotated predecessor is {candidate.path}')
            return candidate

    fallback = [
        c
        for c in candidates
        if (live_identity is None or c.identity != live_identity) and not is_compressed(c.path)
    ]
    if not fallback:
        return None

    newest = max(fallback, key=lambda c: c.mtime)
    logger.debug(f'{spec.path}: no candidate with the stored identity, using newest {newest.path}')
    return newest
