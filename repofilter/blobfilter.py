"""Decides which blobs and file changes are stripped from a filtered stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from repofilter.marks import parse_mark_number
from repofilter.shalookup import StripShaLookup

REPORT_SAMPLE_LIMIT = 20
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


class _SizeOracle(Protocol):
    def is_oversize(self, sha: bytes) -> bool: ...


@dataclass(frozen=True)
class FileChange:
    """An ``M <mode> <dataref> <path>`` line of a commit."""

    mode: bytes
    dataref: bytes
    path: bytes

    @property
    def is_inline(self) -> bool:
        return self.dataref == b"inline"

    @property
    def mark(self) -> int | None:
        """The mark number when the data reference is ``:<n>``."""
        if not self.dataref.startswith(b":"):
            return None
        return parse_mark_number(self.dataref[1:])

    @property
    def sha(self) -> bytes | None:
        """The data reference when it is a 40-character hex id."""
        if len(self.dataref) == 40 and all(b in _HEX_DIGITS for b in self.dataref):
            return self.dataref
        return None


def parse_filechange(line: bytes) -> FileChange | None:
    """Split a modify line into mode, data reference and raw path.

    Returns None for lines that are not ``M`` file changes.
    """
    if not line.startswith(b"M "):
        return None
    rest = line[2:]
    if rest.endswith(b"\n"):
        rest = rest[:-1]
    mode, _, after = rest.partition(b" ")
    dataref, _, path = after.partition(b" ")
    return FileChange(mode=mode, dataref=dataref, path=path)


def _add_sample(samples: list[bytes], path: bytes) -> None:
    if len(samples) < REPORT_SAMPLE_LIMIT and path not in samples:
        samples.append(path)


@dataclass
class BlobFilter:
    """Tracks stripped blobs by size or id and the paths that referenced them."""

    max_blob_size: int | None = None
    strip_lookup: StripShaLookup | None = None
    size_tracker: _SizeOracle | None = None
    oversize_marks: set[int] = field(default_factory=set, init=False)
    oversize_shas: set[bytes] = field(default_factory=set, init=False)
    suppressed_marks_by_size: set[int] = field(default_factory=set, init=False)
    suppressed_marks_by_sha: set[int] = field(default_factory=set, init=False)
    suppressed_shas_by_size: set[bytes] = field(default_factory=set, init=False)
    suppressed_shas_by_sha: set[bytes] = field(default_factory=set, init=False)
    modified_marks: set[int] = field(default_factory=set, init=False)
    samples_size: list[bytes] = field(default_factory=list, init=False)
    samples_sha: list[bytes] = field(default_factory=list, init=False)
    samples_modified: list[bytes] = field(default_factory=list, init=False)

    def _in_strip_list(self, sha: bytes) -> bool:
        return self.strip_lookup is not None and self.strip_lookup.contains_hex(sha)

    def should_skip_blob(
        self, mark: int | None, orig_sha: bytes | None, size: int
    ) -> bool:
        """Decide whether a blob of ``size`` bytes is dropped, recording why."""
        by_size = self.max_blob_size is not None and size > self.max_blob_size
        by_sha = not by_size and orig_sha is not None and self._in_strip_list(orig_sha)
        if not (by_size or by_sha):
            return False
        if mark is not None:
            self.oversize_marks.add(mark)
            if by_size:
                self.suppressed_marks_by_size.add(mark)
            else:
                self.suppressed_marks_by_sha.add(mark)
        if orig_sha is not None:
            self.oversize_shas.add(orig_sha)
            if by_size:
                self.suppressed_shas_by_size.add(orig_sha)
            else:
                self.suppressed_shas_by_sha.add(orig_sha)
        return True

    def check_filechange(self, line: bytes) -> bool:
        """Return True if the file change must be replaced by a deletion."""
        change = parse_filechange(line)
        if change is None:
            return False
        path = change.path
        drop = reason_size = reason_sha = False
        mark = change.mark
        sha = change.sha
        if mark is not None:
            if mark in self.oversize_marks:
                drop = True
                _add_sample(self.samples_size, path)
                reason_size = mark in self.suppressed_marks_by_size
                reason_sha = mark in self.suppressed_marks_by_sha
            if mark in self.modified_marks:
                _add_sample(self.samples_modified, path)
        elif sha is not None:
            if self._in_strip_list(sha):
                drop = reason_sha = True
                self.suppressed_shas_by_sha.add(sha)
            if self.size_tracker is not None and self.size_tracker.is_oversize(sha):
                self.oversize_shas.add(sha)
                self.suppressed_shas_by_size.add(sha)
                drop = reason_size = True
                _add_sample(self.samples_size, path)
        if not drop:
            return False
        if not reason_size and not reason_sha:
            if self.max_blob_size is not None:
                reason_size = True
            else:
                reason_sha = True
        if reason_size:
            _add_sample(self.samples_size, path)
        elif reason_sha:
            _add_sample(self.samples_sha, path)
        return True

    def record_modified(self, mark: int | None) -> None:
        """Note that the blob with ``mark`` had its content rewritten."""
        if mark is not None:
            self.modified_marks.add(mark)