"""
Persistent cache of load balancer storage metadata.

The cache is a single JSON object mapping load balancer name to
{account, region, bucket, prefix}. It is loaded once per run and written
at most once per run. Writes merge with whatever is on disk so entries
for other load balancers are never lost.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

from .models import LoadBalancerMetadata

logger = logging.getLogger(__name__)


class MetadataCache:
    """
    Explicit store for resolved load balancer metadata.

    A missing, empty or corrupt cache file is treated as an empty cache.

    Example:
        cache = MetadataCache(settings.cache_file).load()
        meta, cached = cache.get_or_resolve("my-alb", resolver.discover)
        if not cached:
            cache.persist()
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._entries: dict[str, LoadBalancerMetadata] = {}
        self._pending: dict[str, LoadBalancerMetadata] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> "MetadataCache":
        """Read the cache file, replacing any in-memory entries."""
        self._entries = self._read_file()
        self._pending = {}
        logger.debug(f"Loaded {len(self._entries)} cached entries from {self.path}")
        return self

    def get(self, name: str) -> Optional[LoadBalancerMetadata]:
        """Return cached metadata for a load balancer, or None."""
        return self._entries.get(name)

    def put(self, name: str, metadata: LoadBalancerMetadata) -> None:
        """Record metadata to be written by the next persist()."""
        self._entries[name] = metadata
        self._pending[name] = metadata

    def get_or_resolve(
        self,
        name: str,
        resolve: Callable[[str], LoadBalancerMetadata],
    ) -> tuple[LoadBalancerMetadata, bool]:
        """
        Return cached metadata or resolve and record it.

        Args:
            name: Load balancer name
            resolve: Called with the name on a cache miss

        Returns:
            Tuple of (metadata, was_cached)
        """
        cached = self.get(name)
        if cached is not None:
            logger.debug(f"Metadata cache hit for {name}")
            return cached, True

        logger.debug(f"Metadata cache miss for {name}")
        metadata = resolve(name)
        self.put(name, metadata)
        return metadata, False

    def persist(self) -> None:
        """
        Merge pending entries into the cache file on disk.

        The file is re-read right before writing and replaced atomically.

        Raises:
            OSError: If the cache directory or file cannot be written
        """
        if not self._pending:
            return

        merged = self._read_file()
        merged.update(self._pending)
        payload = json.dumps(
            {name: meta.to_dict() for name, meta in merged.items()},
            indent=2,
            sort_keys=True,
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=".alblogs-cache-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._entries = merged
        self._pending = {}
        logger.debug(f"Wrote {len(merged)} entries to {self.path}")

    def clear(self) -> None:
        """Delete the cache file and forget all entries."""
        self.path.unlink(missing_ok=True)
        self._entries = {}
        self._pending = {}

    def _read_file(self) -> dict[str, LoadBalancerMetadata]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            # Corruption is recovered as a cache miss
            logger.debug(f"Ignoring unreadable cache file {self.path}: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.debug(f"Ignoring cache file {self.path}: not a JSON object")
            return {}

        entries = {}
        for name, value in raw.items():
            metadata = LoadBalancerMetadata.from_dict(value)
            if metadata is None:
                logger.debug(f"Skipping malformed cache entry for {name!r}")
                continue
            entries[name] = metadata
        return entries
