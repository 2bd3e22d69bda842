"""Tests for atomic writes and advisory locks."""

import os
import tempfile
import threading
import time
from pathlib import Path

import pytest

from ver.utils.fs import atomic_write_bytes, file_lock


def test_atomic_write_creates_and_replaces():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "data.json"
        atomic_write_bytes(target, b"first")
        atomic_write_bytes(target, b"second")
        assert target.read_bytes() == b"second"
        assert os.listdir(tmpdir) == ["data.json"]


def test_atomic_write_failure_keeps_original(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "data.json"
        target.write_bytes(b"original")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError, match="disk full"):
            atomic_write_bytes(target, b"new")

        assert target.read_bytes() == b"original"
        assert os.listdir(tmpdir) == ["data.json"]


def test_file_lock_creates_lock_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "sub" / "index.lock"
        with file_lock(lock_path):
            assert lock_path.exists()
        assert lock_path.exists()


def test_file_lock_released_after_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "index.lock"
        with pytest.raises(RuntimeError):
            with file_lock(lock_path):
                raise RuntimeError("inside")
        with file_lock(lock_path):
            pass


def test_file_lock_serializes_holders():
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "index.lock"
        events: list[str] = []
        entered = threading.Event()

        def second_holder():
            entered.wait()
            with file_lock(lock_path):
                events.append("second")

        worker = threading.Thread(target=second_holder)
        worker.start()
        with file_lock(lock_path):
            entered.set()
            time.sleep(0.1)
            events.append("first")
        worker.join(timeout=5)

        assert events == ["first", "second"]
