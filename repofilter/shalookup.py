"""Sorted lookup of blob ids to strip, held in memory or in a temporary file."""

from __future__ import annotations

import bisect
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Iterable

SHA_HEX_LEN = 40
SHA_BIN_LEN = 20
STRIP_SHA_ON_DISK_THRESHOLD = 100_000

_HEX_CHARS = frozenset(b"0123456789abcdefABCDEF")


def parse_sha_bytes(data: bytes | str) -> bytes | None:
    """Decode a 40-character hex id into 20 raw bytes, or return None."""
    if isinstance(data, str):
        try:
            data = data.encode("ascii")
        except UnicodeEncodeError:
            return None
    if len(data) != SHA_HEX_LEN or not all(b in _HEX_CHARS for b in data):
        return None
    return bytes.fromhex(data.decode("ascii"))


def parse_sha_line(line: bytes | str) -> bytes | None:
    """Decode one line of an id list, ignoring surrounding whitespace."""
    return parse_sha_bytes(line.strip())


class StripShaLookup:
    """A set of 20-byte ids answering membership by binary search.

    Large sets are written sorted to a temporary file and searched there.
    """

    def __init__(
        self,
        entries: Iterable[bytes] = (),
        on_disk_threshold: int = STRIP_SHA_ON_DISK_THRESHOLD,
    ) -> None:
        unique = sorted(set(entries))
        for entry in unique:
            if len(entry) != SHA_BIN_LEN:
                raise ValueError(f"id must be {SHA_BIN_LEN} bytes, got {len(entry)}")
        self._count = len(unique)
        self._entries: list[bytes] = []
        self._path: str | None = None
        self._file: BinaryIO | None = None
        if self._count > on_disk_threshold:
            self._write_to_disk(unique)
        else:
            self._entries = unique

    def _write_to_disk(self, entries: list[bytes]) -> None:
        fd, path = tempfile.mkstemp(prefix="filter-repo-strip-sha-")
        handle = os.fdopen(fd, "w+b")
        try:
            handle.write(b"".join(entries))
            handle.flush()
        except BaseException:
            handle.close()
            os.unlink(path)
            raise
        self._path = path
        self._file = handle

    def _contains_on_disk(self, needle: bytes) -> bool:
        if self._file is None:
            raise ValueError("lookup is closed")
        left, right = 0, self._count
        while left < right:
            mid = (left + right) // 2
            self._file.seek(mid * SHA_BIN_LEN)
            current = self._file.read(SHA_BIN_LEN)
            if len(current) != SHA_BIN_LEN:
                raise OSError("truncated sha lookup file")
            if current < needle:
                left = mid + 1
            elif current > needle:
                right = mid
            else:
                return True
        return False

    def contains_hex(self, sha_hex: bytes | str) -> bool:
        """Return True if the hex id is in the set; malformed ids are never in it."""
        if len(sha_hex) != SHA_HEX_LEN:
            return False
        needle = parse_sha_bytes(sha_hex)
        if needle is None or self._count == 0:
            return False
        if self._path is not None:
            return self._contains_on_disk(needle)
        index = bisect.bisect_left(self._entries, needle)
        return index < len(self._entries) and self._entries[index] == needle

    def close(self) -> None:
        """Release the temporary file, if one was created."""
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._path is not None:
            try:
                os.unlink(self._path)
            except FileNotFoundError:
                pass

    def __enter__(self) -> "StripShaLookup":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __len__(self) -> int:
        return self._count

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass


def load_strip_sha_lookup(
    path: str | os.PathLike,
    on_disk_threshold: int = STRIP_SHA_ON_DISK_THRESHOLD,
) -> StripShaLookup:
    """Read a file of hex ids, one per line; blank lines and '#' comments are skipped."""
    path = Path(path)
    entries: list[bytes] = []
    with path.open("r", encoding="utf-8") as handle:
        for raw in handle:
            line = raw.rstrip("\n").rstrip("\r")
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            parsed = parse_sha_line(line)
            if parsed is None:
                raise ValueError(f"invalid SHA entry in {path}: {line}")
            entries.append(parsed)
    return StripShaLookup(entries, on_disk_threshold)