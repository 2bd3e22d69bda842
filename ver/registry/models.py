"""Registry data models — patch records, listings, and integrity reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class PatchRecord:
    """One entry in the patch registry."""

    message: str
    blob_digest: Optional[str]  # None for records written before blobs existed
    timestamp: str  # ISO 8601, UTC


@dataclass(frozen=True)
class ListedPatch:
    """A record as seen through a listing, with its current 1-based position.

    Positions are a view over the current order, not an identity: removing
    an earlier record shifts every later position down by one.
    """

    position: int
    record: PatchRecord

    @property
    def message(self) -> str:
        return self.record.message

    @property
    def timestamp(self) -> str:
        return self.record.timestamp

    @property
    def blob_digest(self) -> Optional[str]:
        return self.record.blob_digest


@dataclass
class PatchListing:
    """Result of listing the registry."""

    entries: list[ListedPatch] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class RecordProblem:
    """A registry record whose blob cannot be trusted."""

    position: int
    record: PatchRecord
    kind: str  # "missing", "corrupt", "invalid" or "unreferenced"
    detail: str = ""


@dataclass
class IntegrityReport:
    """Result of checking every record against the blob store."""

    checked: int = 0
    problems: list[RecordProblem] = field(default_factory=list)
    orphaned_blobs: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems

    def summary(self) -> str:
        return (
            f"{self.checked} record(s) checked, {len(self.problems)} problem(s), "
            f"{len(self.orphaned_blobs)} orphaned blob(s)"
        )
