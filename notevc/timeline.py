"""
Commit timeline.

The timeline is a JSON array of commit entries stored newest-first in
``timeline.json``. Each entry points at the entry that was first in the list
when it was created, forming a single parent chain. The whole file is
rewritten on every append.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import (
    AmbiguousCommitError,
    CommitNotFoundError,
    StorageIOError,
    TimelineIntegrityError,
)
from .storage.file_ops import read_json, write_json_atomic
from .utils import format_timestamp, parse_timestamp, sha256_hex

logger = logging.getLogger(__name__)

COMMIT_HASH_LENGTH = 8


@dataclass
class CommitEntry:
    """One commit in the timeline."""

    hash: str
    message: str
    timestamp: str
    author: str
    parent: str | None = None

    @property
    def time(self) -> datetime:
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "hash": self.hash,
            "message": self.message,
            "timestamp": self.timestamp,
            "author": self.author,
        }
        if self.parent is not None:
            data["parent"] = self.parent
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitEntry:
        return cls(
            hash=data["hash"],
            message=data["message"],
            timestamp=data["timestamp"],
            author=data["author"],
            parent=data.get("parent"),
        )


def commit_hash(timestamp: str, message: str, scope: str | None = None) -> str:
    """Short commit hash from timestamp, message and optional single-file scope."""
    seed = f"{timestamp}:{message}" if scope is None else f"{timestamp}:{message}:{scope}"
    return sha256_hex(seed)[:COMMIT_HASH_LENGTH]


class Timeline:
    """
    Reads and appends to ``timeline.json``.

    Contract:
    - Inputs: commit message, author, timestamp
    - Outputs: CommitEntry records, newest first
    - Side Effects: Full rewrite of the timeline file on append
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def entries(self) -> list[CommitEntry]:
        """All commits, newest first. Empty if the file is missing or blank."""
        data = read_json(self.path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageIOError("parse_timeline", str(self.path), TypeError("expected a JSON array"))
        try:
            return [CommitEntry.from_dict(item) for item in data]
        except (KeyError, TypeError) as e:
            raise StorageIOError("parse_timeline", str(self.path), e) from e

    def save(self, entries: list[CommitEntry]) -> None:
        write_json_atomic(self.path, [entry.to_dict() for entry in entries])

    def head(self) -> CommitEntry | None:
        """The newest commit, or None for an empty timeline."""
        entries = self.entries()
        return entries[0] if entries else None

    def append(
        self,
        message: str,
        author: str,
        timestamp: datetime,
        *,
        scope: str | None = None,
    ) -> CommitEntry:
        """Create a commit on top of the current newest entry and persist the list.

        Args:
            message: Commit message
            author: Author name
            timestamp: Commit time
            scope: File path for single-file commits; mixed into the hash

        Returns:
            The new CommitEntry

        Raises:
            TimelineIntegrityError: If a commit with the same hash already exists
        """
        entries = self.entries()
        ts = format_timestamp(timestamp)
        new_hash = self._unique_hash(entries, ts, message, scope)
        entry = CommitEntry(
            hash=new_hash,
            message=message,
            timestamp=ts,
            author=author,
            parent=entries[0].hash if entries else None,
        )
        self.save([entry] + entries)
        logger.debug(f"Appended commit {entry.hash} (parent {entry.parent})")
        return entry

    def check_unique(self, message: str, timestamp: datetime, scope: str | None = None) -> str:
        """Hash a prospective commit, failing if the timeline already holds it.

        Raises:
            TimelineIntegrityError: If a commit with the same hash already exists
        """
        return self._unique_hash(self.entries(), format_timestamp(timestamp), message, scope)

    @staticmethod
    def _unique_hash(entries: list[CommitEntry], ts: str, message: str, scope: str | None) -> str:
        new_hash = commit_hash(ts, message, scope)
        if any(e.hash == new_hash for e in entries):
            raise TimelineIntegrityError(new_hash, "duplicate commit hash, same timestamp and message")
        return new_hash

    def find(self, prefix: str) -> CommitEntry | None:
        """Find a commit by hash or unique hash prefix.

        An exact hash match always wins. Otherwise the prefix must match
        exactly one commit.

        Returns:
            The matching commit, or None if nothing matches

        Raises:
            AmbiguousCommitError: If the prefix matches several commits
        """
        prefix = prefix.strip()
        if not prefix:
            return None

        entries = self.entries()
        for entry in entries:
            if entry.hash == prefix:
                return entry

        matches = [entry for entry in entries if entry.hash.startswith(prefix)]
        if len(matches) > 1:
            raise AmbiguousCommitError(prefix, [m.hash for m in matches])
        return matches[0] if matches else None

    def resolve(self, prefix: str) -> CommitEntry:
        """Like find(), but raise CommitNotFoundError when nothing matches."""
        entry = self.find(prefix)
        if entry is None:
            raise CommitNotFoundError(prefix)
        return entry

    def parent_of(self, entry: CommitEntry) -> CommitEntry | None:
        if entry.parent is None:
            return None
        for candidate in self.entries():
            if candidate.hash == entry.parent:
                return candidate
        return None

    def since(self, cutoff: datetime) -> list[CommitEntry]:
        """Commits strictly newer than ``cutoff``, newest first."""
        return [entry for entry in self.entries() if entry.time > cutoff]

    def verify(self) -> None:
        """Check that every parent is an existing, strictly older entry.

        Raises:
            TimelineIntegrityError: On a duplicate hash or a bad parent link
        """
        entries = self.entries()
        seen: set[str] = set()
        # Walk oldest to newest: a parent must already have been seen
        for entry in reversed(entries):
            if entry.hash in seen:
                raise TimelineIntegrityError(entry.hash, "duplicate commit hash")
            if entry.parent is not None and entry.parent not in seen:
                raise TimelineIntegrityError(entry.hash, f"parent {entry.parent} is not an earlier commit")
            seen.add(entry.hash)
