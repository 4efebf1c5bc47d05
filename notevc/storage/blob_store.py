"""
Content-addressable blob storage.

Blobs are immutable byte sequences keyed by their SHA-256 hash and laid out
git-style: ``objects/ab/cdef0123...`` (first two hex characters as a fan-out
directory). Content above a small size threshold is gzip-compressed at rest;
compression is detected on read by the gzip magic bytes, so callers never
see it.
"""

from __future__ import annotations

import gzip
import logging
import re
import zlib
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import InvalidHashError, StorageIOError
from ..utils import sha256_hex
from .file_ops import write_bytes_atomic

logger = logging.getLogger(__name__)

# Objects larger than this many bytes are gzip-compressed
MIN_COMPRESSION_SIZE = 100

GZIP_MAGIC = b"\x1f\x8b"

_HEX = re.compile(r"^[0-9a-f]+$")


@dataclass
class BlobStoreStats:
    """Object count and total on-disk size of a blob store."""

    count: int
    total_bytes: int

    def to_dict(self) -> dict[str, int]:
        return {"count": self.count, "totalBytes": self.total_bytes}


class BlobStore:
    """
    Stores and retrieves immutable content by hash.

    Contract:
    - Inputs: bytes (or text, stored as UTF-8)
    - Outputs: SHA-256 hex digests; content by digest
    - Side Effects: Writes under objects_dir; an existing object is never rewritten
    """

    def __init__(
        self,
        objects_dir: Path,
        *,
        compression_enabled: bool = True,
        compression_threshold: int = MIN_COMPRESSION_SIZE,
    ):
        self.objects_dir = Path(objects_dir)
        self.compression_enabled = compression_enabled
        self.compression_threshold = compression_threshold

    def object_path(self, content_hash: str) -> Path:
        """Convert a hash to its fan-out object path.

        Raises:
            InvalidHashError: If the hash is shorter than 3 characters or not lowercase hex
        """
        if len(content_hash) < 3:
            raise InvalidHashError(content_hash, "hash too short")
        if not _HEX.match(content_hash):
            raise InvalidHashError(content_hash, "not a hex digest")
        return self.objects_dir / content_hash[:2] / content_hash[2:]

    @staticmethod
    def hash_of(content: bytes | str) -> str:
        """Hash content exactly as store() would, without writing anything."""
        return sha256_hex(content)

    def store(self, content: bytes | str) -> str:
        """Store content and return its hash.

        Args:
            content: Bytes, or text which is encoded as UTF-8

        Returns:
            SHA-256 hex digest of the content
        """
        data = content.encode("utf-8") if isinstance(content, str) else content
        content_hash = sha256_hex(data)
        path = self.object_path(content_hash)

        if path.exists():
            return content_hash

        if self.compression_enabled and len(data) > self.compression_threshold:
            payload = gzip.compress(data)
        else:
            payload = data

        write_bytes_atomic(path, payload)
        logger.debug(f"Stored object {content_hash[:12]} ({len(data)} bytes, {len(payload)} on disk)")
        return content_hash

    def store_text(self, text: str) -> str:
        """Store text as UTF-8 and return its hash."""
        return self.store(text.encode("utf-8"))

    def get(self, content_hash: str) -> bytes | None:
        """Retrieve content by hash.

        Returns:
            The original bytes, or None if no object exists for the hash
        """
        path = self.object_path(content_hash)
        if not path.exists():
            return None

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StorageIOError("read_object", str(path), e) from e

        if raw[:2] == GZIP_MAGIC:
            try:
                return gzip.decompress(raw)
            except (OSError, EOFError, zlib.error):
                # Plain content that happens to start with the magic bytes
                logger.debug(f"Object {content_hash[:12]} has gzip magic but is not gzip data")
                return raw
        return raw

    def get_text(self, content_hash: str) -> str | None:
        """Retrieve content by hash decoded as UTF-8."""
        data = self.get(content_hash)
        if data is None:
            return None
        return data.decode("utf-8")

    def exists(self, content_hash: str) -> bool:
        """Check whether an object exists for the hash."""
        return self.object_path(content_hash).exists()

    def list_hashes(self) -> list[str]:
        """List all stored object hashes."""
        if not self.objects_dir.exists():
            return []

        hashes = []
        for fan_dir in sorted(self.objects_dir.iterdir()):
            if not fan_dir.is_dir() or len(fan_dir.name) != 2:
                continue
            for obj in sorted(fan_dir.iterdir()):
                if obj.is_file() and not obj.name.startswith("."):
                    hashes.append(fan_dir.name + obj.name)
        return hashes

    def stats(self) -> BlobStoreStats:
        """Count objects and sum their on-disk sizes."""
        hashes = self.list_hashes()
        total = sum(self.object_path(h).stat().st_size for h in hashes)
        return BlobStoreStats(count=len(hashes), total_bytes=total)
