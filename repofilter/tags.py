"""Annotated and lightweight tag handling for a fast-export stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable

from repofilter.marks import parse_mark_number, read_data_block

TAGS_PREFIX = b"refs/tags/"
_TAG_PREFIX = b"tag "
_RESET_PREFIX = b"reset "
_FROM_PREFIX = b"from "
_DATA_PREFIX = b"data "
_MARK_PREFIX = b"mark :"

TagRename = tuple[bytes, bytes]


@dataclass
class TagState:
    """Refs and marks recorded while tags are written to the filtered stream."""

    updated_refs: set[bytes] = field(default_factory=set)
    annotated_tag_refs: set[bytes] = field(default_factory=set)
    ref_renames: set[tuple[bytes, bytes]] = field(default_factory=set)
    emitted_marks: set[int] = field(default_factory=set)


def _strip_newline(data: bytes) -> bytes:
    return data[:-1] if data.endswith(b"\n") else data


def rename_tag(name: bytes, tag_rename: TagRename | None) -> bytes:
    """Replace the ``old`` prefix of a tag name with ``new`` when it matches."""
    if tag_rename is None:
        return name
    old, new = tag_rename
    if name.startswith(old):
        return new + name[len(old):]
    return name


def precheck_duplicate_tag(
    line: bytes, tag_rename: TagRename | None, updated_refs: Iterable[bytes]
) -> bool:
    """Return True if a ``tag`` line would rename onto a ref already written.

    The check only applies when a tag rename is configured.
    """
    if not line.startswith(_TAG_PREFIX) or tag_rename is None:
        return False
    name = _strip_newline(line[len(_TAG_PREFIX):])
    target_ref = TAGS_PREFIX + rename_tag(name, tag_rename)
    return target_ref in updated_refs


def _write_all(outputs: Iterable[BinaryIO], chunk: bytes) -> None:
    for out in outputs:
        out.write(chunk)


def process_tag_block(
    first_line: bytes,
    reader: BinaryIO,
    outputs: Iterable[BinaryIO],
    tag_rename: TagRename | None,
    state: TagState,
    rewrite_message: Callable[[bytes], bytes] | None = None,
    mirror: BinaryIO | None = None,
) -> bool:
    """Read the rest of an annotated tag block and write it, renamed, to ``outputs``.

    ``mirror`` receives every byte read from ``reader`` unchanged.
    ``rewrite_message`` may rewrite the tag message. Returns True if the tag
    was written, False if it duplicated an already written ref or the stream
    ended before its data block.
    """
    outputs = list(outputs)
    tagname = _strip_newline(first_line[len(_TAG_PREFIX):])
    headers: list[bytes] = []
    for line in iter(reader.readline, b""):
        if mirror is not None:
            mirror.write(line)
        if not line.startswith(_DATA_PREFIX):
            headers.append(line)
            continue

        payload = read_data_block(line, reader)
        if mirror is not None:
            mirror.write(payload)

        renamed = rename_tag(tagname, tag_rename)
        target_ref = TAGS_PREFIX + renamed
        if target_ref in state.updated_refs:
            return False
        state.updated_refs.add(target_ref)
        state.annotated_tag_refs.add(target_ref)
        if renamed != tagname:
            state.ref_renames.add((TAGS_PREFIX + tagname, target_ref))

        _write_all(outputs, _TAG_PREFIX + renamed + b"\n")
        for header in headers:
            _write_all(outputs, header)
            if header.startswith(_MARK_PREFIX):
                mark = parse_mark_number(header[len(_MARK_PREFIX):])
                if mark is not None:
                    state.emitted_marks.add(mark)

        if rewrite_message is not None:
            payload = rewrite_message(payload)
        _write_all(outputs, f"data {len(payload)}\n".encode("ascii"))
        _write_all(outputs, payload)
        return True
    return False


def capture_pending_tag_reset(
    pending_ref: bytes | None,
    line: bytes,
    buffered_tag_resets: list[tuple[bytes, bytes]],
) -> bool:
    """Buffer the ``from`` line that follows a lightweight tag reset.

    Returns True if ``line`` was captured. The pending ref is used up either
    way, so the caller clears it after this call.
    """
    if pending_ref is not None and line.startswith(_FROM_PREFIX):
        buffered_tag_resets.append((pending_ref, line))
        return True
    return False


def process_reset_header(
    line: bytes,
    tag_rename: TagRename | None,
    ref_renames: set[tuple[bytes, bytes]],
) -> bytes | None:
    """Handle ``reset refs/tags/<name>``, applying the tag rename.

    Returns the final ref that awaits its ``from`` line, or None when the
    line is not a tag reset.
    """
    if not line.startswith(_RESET_PREFIX):
        return None
    name = _strip_newline(line[len(_RESET_PREFIX):])
    if not name.startswith(TAGS_PREFIX):
        return None
    tagname = name[len(TAGS_PREFIX):]
    renamed = rename_tag(tagname, tag_rename)
    if renamed == tagname and (tag_rename is None or not tagname.startswith(tag_rename[0])):
        return name
    new_full = TAGS_PREFIX + renamed
    ref_renames.add((name, new_full))
    return new_full