"""File-system blob store keyed by content digest."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Iterator

from ver.errors import (
    BlobIntegrityError,
    BlobNotFoundError,
    InvalidDigestError,
    PersistenceError,
)
from ver.utils.fs import atomic_write_bytes

logger = logging.getLogger(__name__)

_DIGEST_RE = re.compile(r"^[0-9a-f]{40}$")


class BlobStore:
    """Deduplicating, content-addressed store of byte sequences.

    Layout::

        <root>/<digest[:2]>/<digest>.txt

    ``put`` never overwrites an existing blob. With ``verify=True`` an
    existing blob is re-read and compared on every hit, and ``get`` re-hashes
    what it reads; otherwise an existing file is trusted as-is.
    """

    SHARD_WIDTH = 2
    SUFFIX = ".txt"

    def __init__(self, root: str | Path, *, verify: bool = False):
        self.root = Path(root)
        self.verify = verify

    @staticmethod
    def digest(content: bytes | str) -> str:
        """Return the hex SHA-1 of ``content`` (text is UTF-8 encoded first)."""
        return hashlib.sha1(_as_bytes(content)).hexdigest()

    def path_for(self, digest: str) -> Path:
        """Return where the blob for ``digest`` lives."""
        if not isinstance(digest, str) or not _DIGEST_RE.match(digest):
            raise InvalidDigestError(str(digest))
        return self.root / digest[: self.SHARD_WIDTH] / f"{digest}{self.SUFFIX}"

    def put(self, content: bytes | str) -> str:
        """Store ``content`` if it is not already present and return its digest."""
        data = _as_bytes(content)
        digest = self.digest(data)
        path = self.path_for(digest)

        try:
            present = path.exists()
        except OSError as e:
            raise PersistenceError(path, str(e)) from e

        if present:
            if self.verify:
                self._check(digest, self._read(path))
            logger.debug("Blob %s already present", digest)
            return digest

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(path, data)
        except OSError as e:
            raise PersistenceError(path, str(e)) from e

        logger.debug("Blob %s stored (%d bytes)", digest, len(data))
        return digest

    def get(self, digest: str) -> bytes:
        """Return the bytes stored under ``digest``."""
        path = self.path_for(digest)
        if not path.is_file():
            raise BlobNotFoundError(digest)
        data = self._read(path)
        if self.verify:
            self._check(digest, data)
        return data

    def has(self, digest: str) -> bool:
        """Check whether a blob is stored under ``digest``."""
        return self.path_for(digest).is_file()

    def iter_digests(self) -> Iterator[str]:
        """Yield the digest of every stored blob in sorted order."""
        if not self.root.is_dir():
            return
        for shard in sorted(self.root.iterdir()):
            if not shard.is_dir() or len(shard.name) != self.SHARD_WIDTH:
                continue
            for path in sorted(shard.glob(f"*{self.SUFFIX}")):
                digest = path.name[: -len(self.SUFFIX)]
                if _DIGEST_RE.match(digest) and digest.startswith(shard.name):
                    yield digest

    def _read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise PersistenceError(path, str(e)) from e

    def _check(self, digest: str, data: bytes) -> None:
        actual = self.digest(data)
        if actual != digest:
            raise BlobIntegrityError(digest, actual)


def _as_bytes(content: bytes | str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)
