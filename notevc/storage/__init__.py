"""
Local on-disk storage primitives.

Key classes:
- BlobStore: content-addressed, deduplicated, optionally compressed objects
- read_json / write_json_atomic: atomic JSON documents for repository metadata
"""

from .blob_store import MIN_COMPRESSION_SIZE, BlobStore, BlobStoreStats
from .file_ops import ensure_directory, read_json, write_bytes_atomic, write_json_atomic

__all__ = [
    "BlobStore",
    "BlobStoreStats",
    "MIN_COMPRESSION_SIZE",
    "ensure_directory",
    "read_json",
    "write_json_atomic",
    "write_bytes_atomic",
]
