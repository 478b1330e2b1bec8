"""
Content equality by SHA-256 digest.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from foldersync.core.exceptions import DigestFailure
from foldersync.core.logging import get_logger
from foldersync.core.models import ComparisonResult

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class _CacheEntry:
    size: int
    mtime_ns: int
    digest: str


class DigestCache:
    """Digest-by-path map, invalidated when a file's size or mtime changes."""

    def __init__(self) -> None:
        self._entries: dict[Path, _CacheEntry] = {}

    def get(self, path: Path, stat: os.stat_result) -> str | None:
        entry = self._entries.get(path)
        if entry is None:
            return None
        if entry.size != stat.st_size or entry.mtime_ns != stat.st_mtime_ns:
            del self._entries[path]
            return None
        return entry.digest

    def put(self, path: Path, stat: os.stat_result, digest: str) -> None:
        self._entries[path] = _CacheEntry(stat.st_size, stat.st_mtime_ns, digest)

    def forget(self, path: Path) -> None:
        self._entries.pop(path, None)

    def retain(self, paths: Iterable[Path]) -> None:
        """Drop entries for every path not in ``paths``."""
        keep = set(paths)
        for path in [p for p in self._entries if p not in keep]:
            del self._entries[path]

    def __len__(self) -> int:
        return len(self._entries)


class ContentComparator:
    """Computes file digests and compares files for content equality."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cache: DigestCache | None = None,
    ) -> None:
        self.chunk_size = chunk_size
        self.cache = cache

    def compute_digest(self, path: Path, *, use_cache: bool = True) -> str:
        """Return the lowercase hex SHA-256 of the file at ``path``."""
        try:
            with open(path, "rb") as handle:
                stat = os.fstat(handle.fileno())
                if use_cache and self.cache is not None:
                    cached = self.cache.get(path, stat)
                    if cached is not None:
                        return cached

                digest = hashlib.sha256()
                for chunk in iter(lambda: handle.read(self.chunk_size), b""):
                    digest.update(chunk)
        except OSError as e:
            raise DigestFailure(path, e) from e

        hexdigest = digest.hexdigest()
        if self.cache is not None:
            self.cache.put(path, stat, hexdigest)
        return hexdigest

    def are_identical(
        self, path_a: Path, path_b: Path, *, use_cache: bool = True
    ) -> ComparisonResult:
        """Compare two files by digest."""
        try:
            digest_a = self.compute_digest(path_a, use_cache=use_cache)
            digest_b = self.compute_digest(path_b, use_cache=use_cache)
        except DigestFailure as e:
            logger.debug("Digest failed", path=str(e.path), error=str(e.cause))
            return ComparisonResult.failed(e)

        if digest_a == digest_b:
            return ComparisonResult.identical()
        return ComparisonResult.different()

    def forget(self, path: Path) -> None:
        """Drop any cached digest for ``path``."""
        if self.cache is not None:
            self.cache.forget(path)

    def retain(self, paths: Iterable[Path]) -> None:
        """Drop cached digests for files no longer present in either tree."""
        if self.cache is not None:
            self.cache.retain(paths)
