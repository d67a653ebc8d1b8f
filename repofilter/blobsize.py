"""Blob size lookups against a source repository, used to find oversized blobs."""

from __future__ import annotations

import os
import subprocess
import sys
import tempfile

_BATCH_FORMAT = "--batch-check=%(objectname) %(objecttype) %(objectsize)"


def _as_bytes(sha: bytes | str) -> bytes:
    return sha.encode("ascii", "replace") if isinstance(sha, str) else bytes(sha)


def _parse_size(raw: bytes) -> int:
    text = raw.strip()
    return int(text) if text.isdigit() else 0


class BlobSizeTracker:
    """Answers whether a blob exceeds a size limit.

    When a limit is set, the sizes of all blobs are read up front with one
    batch query; if that fails, sizes are looked up one blob at a time.
    """

    def __init__(
        self,
        source: str | os.PathLike,
        max_blob_size: int | None = None,
        quiet: bool = False,
    ) -> None:
        self._source = os.fspath(source)
        self._max_blob_size = max_blob_size
        self._oversize: set[bytes] = set()
        self._prefetch_ok = False
        if max_blob_size is not None:
            try:
                self._prefetch_oversize(max_blob_size)
            except OSError as exc:
                self._oversize.clear()
                if not quiet:
                    print(
                        f"Warning: batch blob size pre-computation failed ({exc}), "
                        "falling back to on-demand sizing",
                        file=sys.stderr,
                    )

    def _prefetch_oversize(self, limit: int) -> None:
        command = [
            "git",
            "-C",
            self._source,
            "cat-file",
            "--batch-all-objects",
            _BATCH_FORMAT,
        ]
        with tempfile.TemporaryFile() as err_sink:
            try:
                child = subprocess.Popen(
                    command, stdout=subprocess.PIPE, stderr=err_sink
                )
            except OSError as exc:
                raise OSError(f"failed to run git cat-file batch: {exc}") from exc
            with child:
                assert child.stdout is not None
                for raw in child.stdout:
                    line = raw.rstrip(b"\n").rstrip(b"\r")
                    if not line:
                        continue
                    parts = line.split(b" ")
                    if len(parts) < 3 or not parts[0] or parts[1] != b"blob":
                        continue
                    if _parse_size(parts[2]) > limit:
                        self._oversize.add(parts[0])
                status = child.wait()
            if status != 0:
                err_sink.seek(0)
                message = err_sink.read().decode("utf-8", "replace")
                raise OSError(f"git cat-file batch failed: {message}")
        self._prefetch_ok = True

    def is_oversize(self, sha: bytes | str) -> bool:
        """Return True if the blob is larger than the limit."""
        if self._max_blob_size is None:
            return False
        key = _as_bytes(sha)
        if key in self._oversize:
            return True
        if self._prefetch_ok:
            return False
        try:
            result = subprocess.run(
                ["git", "-C", self._source, "cat-file", "-s", key.decode("ascii", "replace")],
                capture_output=True,
            )
        except OSError:
            return False
        size = _parse_size(result.stdout) if result.returncode == 0 else 0
        if size > self._max_blob_size:
            self._oversize.add(key)
            return True
        return False

    def known_oversize(self, sha: bytes | str) -> bool:
        """Return True if the blob is already recorded as oversized."""
        return _as_bytes(sha) in self._oversize

    def prefetch_ok(self) -> bool:
        """Return True if the batch size query succeeded."""
        return self._prefetch_ok