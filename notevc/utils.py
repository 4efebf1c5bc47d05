"""Shared helpers for hashing, timestamps and path naming.

Centralizes the formats that end up on disk so that the blob store,
snapshot store and timeline never disagree about them.
"""

from __future__ import annotations

import hashlib
import re
from datetime import UTC, datetime, timedelta

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")
HEADING_PREFIX = re.compile(r"^#+\s*")


def sha256_hex(content: bytes | str) -> str:
    """Return the SHA-256 hex digest of bytes or UTF-8 text."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def is_valid_hash(value: str) -> bool:
    """Check that a string is a full SHA-256 hex digest."""
    return bool(HASH_PATTERN.match(value))


def clean_heading(heading: str) -> str:
    """Strip the leading ``#`` markers and surrounding whitespace from a heading."""
    return HEADING_PREFIX.sub("", heading).strip()


def sanitize_path(file_path: str) -> str:
    """Flatten a repository-relative path into a filename fragment."""
    return file_path.replace("/", "_").replace("\\", "_")


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds.

    Truncation keeps the in-memory value equal to what ``format_timestamp``
    writes, so a snapshot stored now is found by a lookup at the same instant.
    """
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as ISO 8601 UTC with millisecond precision."""
    return ensure_utc(value).isoformat(timespec="milliseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If the string is not ISO 8601
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_since(since: str, now: datetime | None = None) -> datetime:
    """Resolve a relative age ("2h", "3d", "1w") or an ISO timestamp.

    Unparseable input falls back to the last 24 hours.
    """
    now = now or utc_now()
    units = {"h": timedelta(hours=1), "d": timedelta(days=1), "w": timedelta(weeks=1)}

    suffix = since[-1:].lower()
    if suffix in units:
        try:
            count = int(since[:-1])
        except ValueError:
            count = 1
        return now - units[suffix] * count

    try:
        return parse_timestamp(since)
    except ValueError:
        return now - timedelta(days=1)
