"""Tests for the content-addressed blob store."""

import hashlib
import tempfile
from pathlib import Path

import pytest

from ver.blobs.store import BlobStore
from ver.errors import (
    BlobIntegrityError,
    BlobNotFoundError,
    InvalidDigestError,
    PersistenceError,
)


def test_digest_is_sha1_hex():
    digest = BlobStore.digest(b"fix login bug")
    assert digest == hashlib.sha1(b"fix login bug").hexdigest()
    assert len(digest) == 40


def test_digest_of_text_matches_utf8_bytes():
    assert BlobStore.digest("café") == BlobStore.digest("café".encode("utf-8"))


def test_put_is_deterministic_across_instances():
    with tempfile.TemporaryDirectory() as tmpdir:
        first = BlobStore(tmpdir).put(b"same bytes")
        second = BlobStore(tmpdir).put(b"same bytes")
        assert first == second


def test_put_shards_by_digest_prefix():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(Path(tmpdir) / "blobs")
        digest = store.put(b"hello")

        expected = Path(tmpdir) / "blobs" / digest[:2] / f"{digest}.txt"
        assert store.path_for(digest) == expected
        assert expected.read_bytes() == b"hello"


def test_put_twice_stores_one_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digest = store.put(b"dup")
        store.put(b"dup")

        files = [p for p in Path(tmpdir).rglob("*") if p.is_file()]
        assert files == [store.path_for(digest)]
        assert files[0].read_bytes() == b"dup"


def test_put_does_not_overwrite_existing_blob():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digest = store.put(b"original")
        store.path_for(digest).write_bytes(b"tampered")

        assert store.put(b"original") == digest
        assert store.path_for(digest).read_bytes() == b"tampered"


def test_verify_mode_detects_tampered_blob_on_put():
    with tempfile.TemporaryDirectory() as tmpdir:
        digest = BlobStore(tmpdir).put(b"original")
        BlobStore(tmpdir).path_for(digest).write_bytes(b"tampered")

        with pytest.raises(BlobIntegrityError) as exc_info:
            BlobStore(tmpdir, verify=True).put(b"original")
        assert exc_info.value.digest == digest


def test_get_and_has():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digest = store.put(b"payload")

        assert store.has(digest)
        assert store.get(digest) == b"payload"


def test_get_missing_blob():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digest = BlobStore.digest(b"never stored")

        assert not store.has(digest)
        with pytest.raises(BlobNotFoundError):
            store.get(digest)


def test_get_in_verify_mode_rehashes():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir, verify=True)
        digest = store.put(b"payload")
        store.path_for(digest).write_bytes(b"changed")

        with pytest.raises(BlobIntegrityError):
            store.get(digest)


@pytest.mark.parametrize("bad", ["", "abc", "../" + "a" * 37, "A" * 40, "g" * 40])
def test_path_for_rejects_malformed_digests(bad):
    store = BlobStore("unused")
    with pytest.raises(InvalidDigestError):
        store.path_for(bad)


def test_put_reports_shard_path_collision():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digest = BlobStore.digest(b"blocked")
        (Path(tmpdir) / digest[:2]).write_text("not a directory")

        with pytest.raises(PersistenceError) as exc_info:
            store.put(b"blocked")
        assert isinstance(exc_info.value.__cause__, OSError)


def test_put_creates_missing_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(Path(tmpdir) / "a" / "b")
        digest = store.put(b"deep")
        assert store.get(digest) == b"deep"


def test_iter_digests_lists_stored_blobs_only():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)
        digests = {store.put(b"one"), store.put(b"two"), store.put(b"three")}
        (Path(tmpdir) / "README").write_text("ignore me")
        (Path(tmpdir) / "zz").mkdir()
        (Path(tmpdir) / "zz" / "notes.txt").write_text("ignore me too")

        assert list(store.iter_digests()) == sorted(digests)


def test_iter_digests_on_missing_root():
    store = BlobStore("/nonexistent/ver-blobs")
    assert list(store.iter_digests()) == []


def test_put_reports_unreadable_blob_path(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BlobStore(tmpdir)

        def denied(self):
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "exists", denied)
        with pytest.raises(PersistenceError) as exc_info:
            store.put(b"anything")
        assert exc_info.value.path == store.path_for(BlobStore.digest(b"anything"))
