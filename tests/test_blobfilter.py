import pytest

from repofilter.blobfilter import BlobFilter, FileChange, parse_filechange
from repofilter.shalookup import StripShaLookup, parse_sha_bytes

SHA_A = "0123456789abcdef0123456789abcdef01234567"
SHA_B = "89abcdef0123456789abcdef0123456789abcdef"


class _AlwaysOversize:
    def __init__(self):
        self.asked = []

    def is_oversize(self, sha):
        self.asked.append(sha)
        return True


def test_parse_filechange_mark():
    change = parse_filechange(b"M 100644 :12 path/file.txt\n")
    assert change == FileChange(b"100644", b":12", b"path/file.txt")
    assert change.mark == 12
    assert change.sha is None
    assert not change.is_inline


def test_parse_filechange_inline_and_sha():
    inline = parse_filechange(b"M 100644 inline docs/a b.txt\n")
    assert inline.is_inline
    assert inline.path == b"docs/a b.txt"
    with_sha = parse_filechange(f"M 100755 {SHA_A} run.sh".encode())
    assert with_sha.sha == SHA_A.encode()
    assert with_sha.mark is None


def test_parse_filechange_rejects_other_lines():
    assert parse_filechange(b"D some/path\n") is None
    assert parse_filechange(b"from :3\n") is None


def test_size_boundary():
    filt = BlobFilter(max_blob_size=100)
    assert filt.should_skip_blob(1, None, 100) is False
    assert filt.should_skip_blob(2, None, 101) is True
    assert filt.oversize_marks == {2}
    assert filt.suppressed_marks_by_size == {2}


def test_skip_by_sha_records_reason():
    lookup = StripShaLookup([parse_sha_bytes(SHA_A)])
    filt = BlobFilter(strip_lookup=lookup)
    assert filt.should_skip_blob(5, SHA_A.encode(), 10) is True
    assert filt.should_skip_blob(6, SHA_B.encode(), 10) is False
    assert filt.suppressed_marks_by_sha == {5}
    assert filt.suppressed_shas_by_sha == {SHA_A.encode()}
    assert filt.suppressed_marks_by_size == set()


def test_dropped_mark_filechange_sampled_by_size():
    filt = BlobFilter(max_blob_size=10)
    filt.should_skip_blob(3, None, 50)
    assert filt.check_filechange(b"M 100644 :3 big.bin\n") is True
    assert filt.check_filechange(b"M 100644 :4 small.bin\n") is False
    assert filt.samples_size == [b"big.bin"]
    assert filt.samples_sha == []


def test_dropped_mark_filechange_sampled_by_sha():
    lookup = StripShaLookup([parse_sha_bytes(SHA_A)])
    filt = BlobFilter(strip_lookup=lookup)
    filt.should_skip_blob(7, SHA_A.encode(), 5)
    assert filt.check_filechange(b"M 100644 :7 secret.bin\n") is True
    assert filt.samples_sha == [b"secret.bin"]


def test_sha_filechange_stripped_by_lookup():
    lookup = StripShaLookup([parse_sha_bytes(SHA_A)])
    filt = BlobFilter(strip_lookup=lookup)
    assert filt.check_filechange(f"M 100644 {SHA_A} secret.bin\n".encode()) is True
    assert filt.check_filechange(f"M 100644 {SHA_B} keep.bin\n".encode()) is False
    assert filt.suppressed_shas_by_sha == {SHA_A.encode()}
    assert filt.samples_sha == [b"secret.bin"]


def test_sha_filechange_stripped_by_size_tracker():
    tracker = _AlwaysOversize()
    filt = BlobFilter(max_blob_size=1, size_tracker=tracker)
    assert filt.check_filechange(f"M 100644 {SHA_B} huge.bin\n".encode()) is True
    assert tracker.asked == [SHA_B.encode()]
    assert filt.oversize_shas == {SHA_B.encode()}
    assert filt.samples_size == [b"huge.bin"]


def test_inline_filechange_not_dropped():
    filt = BlobFilter(max_blob_size=1, size_tracker=_AlwaysOversize())
    assert filt.check_filechange(b"M 100644 inline a.txt\n") is False
    assert filt.check_filechange(b"commit refs/heads/main\n") is False


def test_modified_mark_sampled():
    filt = BlobFilter()
    filt.record_modified(9)
    filt.record_modified(None)
    assert filt.check_filechange(b"M 100644 :9 changed.txt\n") is False
    assert filt.modified_marks == {9}
    assert filt.samples_modified == [b"changed.txt"]


@pytest.mark.parametrize("count", [25, 40])
def test_samples_are_limited_and_unique(count):
    filt = BlobFilter(max_blob_size=0)
    for mark in range(1, count + 1):
        filt.should_skip_blob(mark, None, 1)
        filt.check_filechange(f"M 100644 :{mark} f{mark}\n".encode())
        filt.check_filechange(f"M 100644 :{mark} f{mark}\n".encode())
    assert len(filt.samples_size) == 20
    assert len(set(filt.samples_size)) == len(filt.samples_size)
    assert filt.samples_size[0] == b"f1"