"""Tests for file identity and scan start resolution.

Every identity code path (device+inode, creation time and the first line
fingerprint) is tested with synthetic stat results, independent of the
filesystem.
"""

import io
import os
import re
from types import SimpleNamespace

from logcheck.identity import (
    FINGERPRINT_BYTES,
    ScanStart,
    identity_from_stat,
    identity_of,
    read_fingerprint,
    resolve_start,
    same_file,
)
from logcheck.models import FileIdentity, FileSpec, FileState


def fake_stat(ino=1234, dev=2049, ctime=1000.0, birthtime=None):
    st = SimpleNamespace(st_ino=ino, st_dev=dev, st_ctime=ctime)
    if birthtime is not None:
        st.st_birthtime = birthtime
    return st


class TestIdentityFromStat:
    def test_inode_based(self):
        identity = identity_from_stat(fake_stat(ino=42, dev=7))
        assert identity == FileIdentity(device=7, inode=42)
        assert identity.is_inode_based

    def test_fallback_uses_birthtime(self):
        identity = identity_from_stat(fake_stat(ino=0, ctime=2000.0, birthtime=1000.0))
        assert identity == FileIdentity(created=1000.0)
        assert not identity.is_inode_based

    def test_ctime_is_not_a_creation_time_on_posix(self, monkeypatch):
        monkeypatch.setattr(os, 'name', 'posix')
        identity = identity_from_stat(fake_stat(ino=0, ctime=1500.5), fingerprint='abc')
        assert identity == FileIdentity(fingerprint='abc')

    def test_ctime_is_the_creation_time_on_windows(self, monkeypatch):
        monkeypatch.setattr(os, 'name', 'nt')
        identity = identity_from_stat(fake_stat(ino=0, ctime=1500.5))
        assert identity == FileIdentity(created=1500.5)

    def test_fallback_forced(self):
        identity = identity_from_stat(fake_stat(ino=42, birthtime=3000.0), use_inode=False)
        assert identity == FileIdentity(created=3000.0)

    def test_fallback_identity_ignores_size(self):
        a = identity_from_stat(SimpleNamespace(st_ino=0, st_dev=1, st_birthtime=10.0, st_size=100))
        b = identity_from_stat(SimpleNamespace(st_ino=0, st_dev=1, st_birthtime=10.0, st_size=900))
        assert same_file(a, b)

    def test_real_file(self, tmp_path):
        path = tmp_path / 'app.log'
        path.write_text('x\n')
        assert same_file(identity_of(str(path)), identity_of(str(path)))

    def test_fallback_identity_survives_append(self, tmp_path):
        path = tmp_path / 'app.log'
        path.write_text('first\n')
        before = identity_of(str(path), use_inode=False)

        with open(path, 'a') as f:
            f.write('second\n')

        assert before.is_known
        assert same_file(before, identity_of(str(path), use_inode=False))

    def test_replaced_file_changes_identity(self, tmp_path):
        path = tmp_path / 'app.log'
        path.write_text('x\n')
        before = identity_of(str(path))
        keep = tmp_path / 'app.log.1'
        path.rename(keep)
        path.write_text('y\n')
        assert not same_file(before, identity_of(str(path)))

    def test_same_file_none(self):
        assert not same_file(None, FileIdentity(created=1.0))


class TestReadFingerprint:
    def test_first_line_only(self):
        assert read_fingerprint(io.BytesIO(b'first\nsecond\n')) == read_fingerprint(io.BytesIO(b'first\nother\n'))

    def test_differs_by_first_line(self):
        assert read_fingerprint(io.BytesIO(b'first\n')) != read_fingerprint(io.BytesIO(b'other\n'))

    def test_none_without_complete_line(self):
        assert read_fingerprint(io.BytesIO(b'')) is None
        assert read_fingerprint(io.BytesIO(b'partial')) is None

    def test_long_first_line_capped(self):
        head = b'x' * FINGERPRINT_BYTES
        assert read_fingerprint(io.BytesIO(head)) == read_fingerprint(io.BytesIO(head + b'more\n'))

    def test_rewinds(self):
        f = io.BytesIO(b'first\nsecond\n')
        f.seek(6)
        read_fingerprint(f)
        assert f.tell() == 0


class TestResolveStart:
    def setup_method(self):
        self.identity = FileIdentity(device=1, inode=100)
        self.spec = FileSpec(path='/var/log/app.log')
        self.rotating_spec = FileSpec(path='/var/log/app.log', rotation_pattern=re.compile(r'app\.log\.\d+'))
        self.previous = FileState(path='/var/log/app.log', identity=self.identity, offset=500, line_number=20)

    def test_no_previous_state(self):
        position = resolve_start(self.spec, None, self.identity, 1000)
        assert (position.start, position.offset, position.line_number) == (ScanStart.FRESH, 0, 0)

    def test_previous_without_identity(self):
        previous = FileState(path='/var/log/app.log', offset=500)
        assert resolve_start(self.spec, previous, self.identity, 1000).start == ScanStart.FRESH

    def test_previous_without_complete_first_line(self):
        previous = FileState(path='/var/log/app.log', identity=FileIdentity(), offset=0)
        position = resolve_start(self.rotating_spec, previous, FileIdentity(fingerprint='abc'), 100)
        assert (position.start, position.offset) == (ScanStart.FRESH, 0)

    def test_continuing(self):
        position = resolve_start(self.spec, self.previous, self.identity, 800)
        assert (position.start, position.offset, position.line_number) == (ScanStart.CONTINUING, 500, 20)

    def test_continuing_without_growth(self):
        position = resolve_start(self.spec, self.previous, self.identity, 500)
        assert position.start == ScanStart.CONTINUING
        assert position.offset == 500

    def test_truncated(self):
        position = resolve_start(self.spec, self.previous, self.identity, 100)
        assert (position.start, position.offset, position.line_number) == (ScanStart.TRUNCATED, 0, 0)

    def test_rotated(self):
        position = resolve_start(self.rotating_spec, self.previous, FileIdentity(device=1, inode=200), 50)
        assert (position.start, position.offset) == (ScanStart.ROTATED, 0)

    def test_replaced_without_rotation_pattern(self):
        position = resolve_start(self.spec, self.previous, FileIdentity(device=1, inode=200), 5000)
        assert (position.start, position.offset) == (ScanStart.FRESH, 0)
