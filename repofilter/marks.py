"""Helpers for marks and data blocks in a fast-export / fast-import stream."""

from __future__ import annotations

import re
from typing import BinaryIO

MARK_MAX = 2**32 - 1

_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_SIZE_RE = re.compile(r"\+?[0-9]+")
_DATA_PREFIX = b"data "


def parse_mark_number(data: bytes) -> int | None:
    """Parse the decimal digits at the start of ``data``.

    Parsing stops at the first non-digit. Values saturate at ``MARK_MAX``.
    Returns None when ``data`` does not start with a digit.
    """
    value = 0
    seen = False
    for byte in data:
        if byte not in _DIGITS:
            break
        seen = True
        value = min(value * 10 + (byte - 0x30), MARK_MAX)
    return value if seen else None


def read_data_block(header_line: bytes, reader: BinaryIO) -> bytes:
    """Read the payload announced by a ``data <size>`` header line.

    Raises ValueError for a malformed header and EOFError when the stream
    ends before the whole payload has been read.
    """
    if not header_line.startswith(_DATA_PREFIX):
        raise ValueError("invalid data header")
    try:
        text = header_line[len(_DATA_PREFIX):].decode("utf-8").strip()
    except UnicodeDecodeError as exc:
        raise ValueError("invalid data header") from exc
    if not _SIZE_RE.fullmatch(text):
        raise ValueError("invalid data header")
    size = int(text)
    payload = reader.read(size) if size else b""
    if len(payload) != size:
        raise EOFError(f"expected {size} bytes of data, got {len(payload)}")
    return payload


def resolve_mark_oid(writer: BinaryIO, reader: BinaryIO, mark: int) -> bytes | None:
    """Ask fast-import for the object id of ``mark`` and return it in lower case.

    Replies for other marks and lines that are not hex ids are skipped.
    Returns None if the reply stream ends first.
    """
    writer.write(f"get-mark :{mark}\n".encode("ascii"))
    writer.flush()
    for raw in iter(reader.readline, b""):
        trimmed = raw.rstrip(b"\r\n")
        if not trimmed:
            continue
        if trimmed.startswith(b"mark "):
            rest = trimmed[len(b"mark "):]
            digits = len(rest) - len(rest.lstrip(b"0123456789"))
            if parse_mark_number(rest) != mark:
                continue
            candidate = rest[digits:].lstrip(b" ")
        else:
            candidate = trimmed
        if not all(byte in _HEX_DIGITS for byte in candidate):
            continue
        return candidate.lower()
    return None