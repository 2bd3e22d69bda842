"""Local file-based patch registry.

Keeps an ordered list of patch records in a single JSON index file and stores
each patch's content in a ``BlobStore``. Every operation reads the whole index
first; mutating operations rewrite it in full, atomically, while holding an
advisory lock on a sibling lock file.
"""

from __future__ import annotations

import json
import logging
import re
from contextlib import ExitStack, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ver.blobs.store import BlobStore
from ver.config import Settings
from ver.errors import (
    BlobIntegrityError,
    BlobNotFoundError,
    CorruptIndexError,
    InvalidDigestError,
    InvalidPositionError,
    PersistenceError,
)
from ver.registry.models import (
    IntegrityReport,
    ListedPatch,
    PatchListing,
    PatchRecord,
    RecordProblem,
)
from ver.utils.fs import atomic_write_bytes, file_lock

logger = logging.getLogger(__name__)

_POSITION_RE = re.compile(r"[0-9]+")


class PatchRegistry:
    """Ordered registry of patch records backed by a JSON index and a blob store."""

    def __init__(
        self,
        index_path: str | Path,
        blobs: BlobStore,
        lock_path: Optional[str | Path] = None,
    ):
        self.index_path = Path(index_path)
        self.blobs = blobs
        self.lock_path = Path(lock_path) if lock_path is not None else None

    @classmethod
    def from_settings(cls, settings: Settings) -> PatchRegistry:
        """Build a registry and its blob store from resolved settings."""
        return cls(
            settings.index_path,
            BlobStore(settings.blob_root, verify=settings.verify_blobs),
            lock_path=settings.lock_path if settings.locking else None,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, message: str) -> PatchRecord:
        """Store ``message`` as a blob and append a record referencing it."""
        with self._locked():
            records = self._load()
            digest = self.blobs.put(message)
            record = PatchRecord(message=message, blob_digest=digest, timestamp=_utc_timestamp())
            records.append(record)
            self._save(records)

        logger.info("Added patch %d with blob %s", len(records), digest)
        return record

    def remove_at(self, position: int | str) -> PatchRecord:
        """Remove and return the record at a 1-based position.

        Later records move up one position. An invalid position raises
        ``InvalidPositionError`` and leaves the index untouched.
        """
        with self._locked():
            records = self._load()
            index = _parse_position(position, len(records))
            removed = records.pop(index)
            self._save(records)

        logger.info("Removed patch %d (%s)", index + 1, removed.blob_digest)
        return removed

    def clear(self) -> None:
        """Discard every record. Blobs are left in place."""
        with self._locked():
            self._save([])
        logger.info("Cleared registry %s", self.index_path)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_patches(self) -> PatchListing:
        """List all records in stored order with 1-based positions."""
        return PatchListing(
            entries=[ListedPatch(position=i + 1, record=r) for i, r in enumerate(self._load())]
        )

    def get(self, position: int | str) -> PatchRecord:
        """Return the record at a 1-based position without changing anything."""
        records = self._load()
        return records[_parse_position(position, len(records))]

    def preview(self) -> list[str]:
        """Return the message of every record in stored order."""
        return [r.message for r in self._load()]

    def snapshot(self) -> list[str]:
        """Return the message of every record in stored order.

        Currently identical to ``preview``.
        """
        return [r.message for r in self._load()]

    def check(self) -> IntegrityReport:
        """Check every record's blob and count blobs no record refers to."""
        records = self._load()
        report = IntegrityReport(checked=len(records))
        referenced: set[str] = set()

        for position, record in enumerate(records, start=1):
            digest = record.blob_digest
            if digest is None:
                report.problems.append(
                    RecordProblem(position, record, "unreferenced", "record has no blob reference")
                )
                continue
            referenced.add(digest)
            try:
                data = self.blobs.get(digest)
            except InvalidDigestError:
                report.problems.append(RecordProblem(position, record, "invalid", f"{digest!r} is not a blob digest"))
                continue
            except BlobNotFoundError:
                report.problems.append(RecordProblem(position, record, "missing", f"blob {digest} not found"))
                continue
            except BlobIntegrityError as e:
                report.problems.append(RecordProblem(position, record, "corrupt", f"blob {digest} hashes to {e.actual}"))
                continue
            actual = BlobStore.digest(data)
            if actual != digest:
                report.problems.append(
                    RecordProblem(position, record, "corrupt", f"blob {digest} hashes to {actual}")
                )

        report.orphaned_blobs = [d for d in self.blobs.iter_digests() if d not in referenced]
        return report

    # ------------------------------------------------------------------
    # Index persistence
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if self.lock_path is None:
            yield
            return
        with ExitStack() as stack:
            try:
                stack.enter_context(file_lock(self.lock_path))
            except OSError as e:
                raise PersistenceError(self.lock_path, str(e)) from e
            yield

    def _load(self) -> list[PatchRecord]:
        if not self.index_path.exists():
            return []
        try:
            raw = self.index_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptIndexError(self.index_path, f"not UTF-8 text ({e})") from e
        except OSError as e:
            raise PersistenceError(self.index_path, str(e)) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptIndexError(self.index_path, f"invalid JSON ({e})") from e
        if not isinstance(data, list):
            raise CorruptIndexError(self.index_path, "top-level value is not a list")

        return [_dict_to_record(item, i, self.index_path) for i, item in enumerate(data)]

    def _save(self, records: list[PatchRecord]) -> None:
        payload = json.dumps([_record_to_dict(r) for r in records], indent=2, ensure_ascii=False)
        try:
            self.index_path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(self.index_path, payload.encode("utf-8"))
        except OSError as e:
            raise PersistenceError(self.index_path, str(e)) from e


def _utc_timestamp() -> str:
    """Return the current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_position(position: int | str, count: int) -> int:
    """Validate a 1-based position and return the matching list index."""
    if isinstance(position, bool):
        raise InvalidPositionError(position, count)
    if isinstance(position, int):
        number = position
    elif isinstance(position, str):
        text = position.strip()
        if not _POSITION_RE.fullmatch(text):
            raise InvalidPositionError(position, count)
        number = int(text)
    else:
        raise InvalidPositionError(position, count)

    if number < 1 or number > count:
        raise InvalidPositionError(position, count)
    return number - 1


def _record_to_dict(record: PatchRecord) -> dict:
    data: dict = {"message": record.message}
    if record.blob_digest is not None:
        data["blob"] = record.blob_digest
    data["timestamp"] = record.timestamp
    return data


def _dict_to_record(data: object, index: int, path: Path) -> PatchRecord:
    if not isinstance(data, dict):
        raise CorruptIndexError(path, f"entry {index} is not an object")

    message = data.get("message")
    timestamp = data.get("timestamp")
    digest = data.get("blob", data.get("blobDigest"))

    if not isinstance(message, str):
        raise CorruptIndexError(path, f"entry {index} has no text 'message'")
    if not isinstance(timestamp, str):
        raise CorruptIndexError(path, f"entry {index} has no text 'timestamp'")
    if digest is not None and not isinstance(digest, str):
        raise CorruptIndexError(path, f"entry {index} has a non-text blob reference")
    if digest is None:
        logger.warning("Entry %d in %s has no blob reference", index + 1, path)

    return PatchRecord(message=message, blob_digest=digest, timestamp=timestamp)
