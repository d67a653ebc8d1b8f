# repofilter

Building blocks for rewriting git history through a `git fast-export` →
filter → `git fast-import` pipeline. The package supplies the pieces that
read parts of the export stream and decide what to keep. `git` must be
installed and on `PATH` for the parts that query a repository.

## Modules

- `repofilter.shalookup`: a set of blob ids to strip.
  `load_strip_sha_lookup(path, on_disk_threshold)` reads one 40-hex id per
  line. It skips blank lines and lines that start with `#`, and raises
  `ValueError` on a malformed entry. Duplicates are removed. Sets up to the
  threshold stay in memory. Larger sets are written sorted to a temporary
  file and searched there with binary search. `StripShaLookup.contains_hex`
  answers membership and returns `False` for malformed ids. `StripShaLookup`
  is a context manager, and `close()` removes the temporary file.
  `parse_sha_bytes` and `parse_sha_line` decode a hex id into 20 raw bytes,
  or return `None`.
- `repofilter.blobsize`: `BlobSizeTracker(source, max_blob_size, quiet)`
  finds blobs larger than the limit. It reads every object size once with
  `git cat-file --batch-all-objects`. If that fails, it prints a warning
  unless `quiet` is set, and then asks for each size on demand with
  `git cat-file -s`. The methods are `is_oversize(sha)`,
  `known_oversize(sha)` and `prefetch_ok()`.
- `repofilter.marks`: helpers for the stream format.
  - `parse_mark_number` reads the leading decimal digits of a mark, for
    example what follows `mark :`.
  - `read_data_block` reads the payload that a `data <n>` header announces.
    It raises `ValueError` for a bad header and `EOFError` for a short read.
  - `resolve_mark_oid` sends `get-mark :<n>` to a running `fast-import` and
    returns the object id in lower case, or `None` if the replies end first.
- `repofilter.blobfilter`:
  - `parse_filechange` splits an `M <mode> <dataref> <path>` line into a
    `FileChange`. `FileChange` exposes `is_inline`, `mark` and `sha`.
  - `BlobFilter.should_skip_blob(mark, orig_sha, size)` decides whether a
    blob is dropped, either because it is too large or because its id is in
    the strip list, and records the reason.
  - `BlobFilter.check_filechange(line)` returns `True` when an `M` line
    refers to a dropped blob and should be replaced by a deletion. It also
    collects up to 20 sample paths per reason (`samples_size`,
    `samples_sha`, `samples_modified`).
  - `BlobFilter.record_modified(mark)` notes a blob whose content was
    rewritten.
- `repofilter.tags`: tag handling, where `tag_rename` is an
  `(old_prefix, new_prefix)` pair of bytes.
  - `rename_tag` applies the prefix rename.
  - `precheck_duplicate_tag` spots a `tag` line that would be renamed onto
    a ref that has already been written.
  - `process_tag_block` reads the rest of an annotated tag and writes it,
    renamed, to the given outputs. It can rewrite the message, and it
    returns `False` for duplicates.
  - `process_reset_header` and `capture_pending_tag_reset` handle
    `reset refs/tags/...` lines and their `from` targets.
  - `TagState` holds the refs, renames and marks recorded along the way.

## Example

```python
from repofilter.shalookup import load_strip_sha_lookup
from repofilter.tags import rename_tag

with load_strip_sha_lookup("strip-ids.txt", 100_000) as lookup:
    if lookup.contains_hex(b"0123456789abcdef0123456789abcdef01234567"):
        print("strip it")

assert rename_tag(b"v1.0", (b"v", b"release-")) == b"release-1.0"
```

## What the package does not do

The package has no command-line tool. It has no driver that starts
`git fast-export` and `git fast-import` and runs a whole repository through
them. It does not process commits, filter or rename paths, rename branches,
write commit or ref maps, or write a report file. Those steps are left to
the code that uses these modules.

## Tests

```
pip install -e .[test]
pytest
```