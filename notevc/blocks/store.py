"""
Snapshot storage and block-level comparison.

Each write event for a note produces one BlockSnapshot file under a
date-partitioned tree:

    {blocks_dir}/YYYY/MM/DD/blocks-HH-MM-SS-{path_with_underscores}.json

Block contents go to the blob store; snapshots only hold their hashes.
Lookups rescan the tree on every call (no index is kept), which keeps
read-after-write consistency trivial at personal-notes scale.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from ..exceptions import CorruptSnapshotError, MissingBlobError
from ..storage.blob_store import BlobStore
from ..storage.file_ops import write_json_atomic
from ..utils import ensure_utc, format_timestamp, parse_timestamp, sanitize_path
from .types import Block, BlockChange, BlockChangeType, BlockSnapshot, BlockState, ParsedFile

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "blocks-"

# Snapshots within this many seconds of a commit belong to it
COMMIT_WINDOW_SECONDS = 60


class SnapshotStore:
    """
    Persists per-file block snapshots and answers point-in-time queries.

    Contract:
    - Inputs: ParsedFile + timestamp; file paths and timestamps for queries
    - Outputs: BlockSnapshot records, reconstructed Blocks, BlockChange lists
    - Side Effects: Blob writes and one JSON file per (file, second)
    """

    def __init__(self, blob_store: BlobStore, blocks_dir: Path):
        self.blob_store = blob_store
        self.blocks_dir = Path(blocks_dir)

    # =========================================================================
    # Writing
    # =========================================================================

    def snapshot_path(self, file_path: str, timestamp: datetime) -> Path:
        """Location of the snapshot file for a file at a given second (UTC)."""
        ts = parse_timestamp(format_timestamp(timestamp))
        date_dir = self.blocks_dir / f"{ts.year:04d}" / f"{ts.month:02d}" / f"{ts.day:02d}"
        filename = f"{SNAPSHOT_PREFIX}{ts:%H-%M-%S}-{sanitize_path(file_path)}.json"
        return date_dir / filename

    def snapshot_of(self, parsed: ParsedFile, timestamp: datetime) -> BlockSnapshot:
        """Build the snapshot for a parsed file without writing anything."""
        return self._build_snapshot(parsed, timestamp, self.blob_store.hash_of)

    def store_blocks(self, parsed: ParsedFile, timestamp: datetime) -> BlockSnapshot:
        """Store block contents and persist a snapshot for the parsed file.

        A second snapshot of the same file within the same second replaces
        the first one.
        """
        snapshot = self._build_snapshot(parsed, timestamp, self.blob_store.store)
        path = self.snapshot_path(parsed.path, timestamp)
        write_json_atomic(path, snapshot.to_dict())
        logger.debug(f"Stored snapshot {path.name} ({len(snapshot.blocks)} blocks)")
        return snapshot

    def _build_snapshot(self, parsed: ParsedFile, timestamp: datetime, hasher) -> BlockSnapshot:
        states = [
            BlockState(
                id=block.id,
                heading=block.heading,
                content_hash=hasher(block.content),
                type=block.type,
                order=block.order,
            )
            for block in parsed.blocks
        ]
        return BlockSnapshot(
            file_path=parsed.path,
            timestamp=format_timestamp(timestamp),
            blocks=states,
            front_matter=parsed.front_matter,
        )

    # =========================================================================
    # Reading
    # =========================================================================

    def load_snapshot(self, path: Path) -> BlockSnapshot:
        """Load one snapshot file.

        Raises:
            CorruptSnapshotError: If the file cannot be read or parsed
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            snapshot = BlockSnapshot.from_dict(data)
            parse_timestamp(snapshot.timestamp)
            return snapshot
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CorruptSnapshotError(str(path), e) from e

    def _iter_snapshot_files(self, file_path: str | None = None) -> Iterator[Path]:
        if not self.blocks_dir.exists():
            return
        fragment = sanitize_path(file_path) if file_path is not None else None
        for path in sorted(self.blocks_dir.rglob(f"{SNAPSHOT_PREFIX}*.json")):
            if not path.is_file():
                continue
            if fragment is not None and fragment not in path.name:
                continue
            yield path

    def iter_snapshots(self, file_path: str | None = None) -> Iterator[BlockSnapshot]:
        """Yield every readable snapshot, optionally only those of one file.

        Corrupt snapshot files are skipped so one bad file cannot hide the
        rest of the history.
        """
        for path in self._iter_snapshot_files(file_path):
            try:
                snapshot = self.load_snapshot(path)
            except CorruptSnapshotError as e:
                logger.debug(f"Skipping corrupt snapshot {path}: {e.cause}")
                continue
            # The filename match is a substring test; "note.md" also matches "subnote.md"
            if file_path is not None and snapshot.file_path != file_path:
                continue
            yield snapshot

    def latest_snapshot(self, file_path: str) -> BlockSnapshot | None:
        """Most recent snapshot of a file, or None if it was never stored."""
        return self._latest(self.iter_snapshots(file_path))

    def latest_snapshot_before(self, file_path: str, timestamp: datetime) -> BlockSnapshot | None:
        """Most recent snapshot of a file taken at or before ``timestamp``."""
        timestamp = ensure_utc(timestamp)
        return self._latest(
            s for s in self.iter_snapshots(file_path) if parse_timestamp(s.timestamp) <= timestamp
        )

    @staticmethod
    def _latest(snapshots) -> BlockSnapshot | None:
        latest: BlockSnapshot | None = None
        latest_time: datetime | None = None
        for snapshot in snapshots:
            ts = parse_timestamp(snapshot.timestamp)
            if latest_time is None or ts > latest_time:
                latest, latest_time = snapshot, ts
        return latest

    def snapshots_for_file(self, file_path: str) -> list[BlockSnapshot]:
        """All snapshots of a file, newest first."""
        snapshots = list(self.iter_snapshots(file_path))
        snapshots.sort(key=lambda s: parse_timestamp(s.timestamp), reverse=True)
        return snapshots

    def has_snapshots(self, file_path: str) -> bool:
        return next(self.iter_snapshots(file_path), None) is not None

    def tracked_files(self) -> list[str]:
        """Paths of every file that has at least one snapshot, sorted."""
        return sorted({s.file_path for s in self.iter_snapshots()})

    def files_near(self, timestamp: datetime, window: int = COMMIT_WINDOW_SECONDS) -> list[str]:
        """Files with a snapshot within ``window`` seconds of ``timestamp``.

        This is how snapshots are associated with a commit: there is no
        explicit manifest, only timestamp proximity.
        """
        timestamp = ensure_utc(timestamp)
        files = set()
        for snapshot in self.iter_snapshots():
            delta = abs((parse_timestamp(snapshot.timestamp) - timestamp).total_seconds())
            if delta <= window:
                files.add(snapshot.file_path)
        return sorted(files)

    def reconstruct_blocks(self, snapshot: BlockSnapshot) -> list[Block]:
        """Fetch the content of every block in a snapshot.

        Raises:
            MissingBlobError: If any referenced content is absent; no partial list is returned
        """
        blocks = []
        for state in snapshot.blocks:
            content = self.blob_store.get_text(state.content_hash)
            if content is None:
                raise MissingBlobError(state.content_hash, state.id)
            blocks.append(
                Block(
                    id=state.id,
                    heading=state.heading,
                    content=content,
                    type=state.type,
                    order=state.order,
                )
            )
        return blocks

    def blocks_at(self, file_path: str, timestamp: datetime) -> list[Block] | None:
        """Blocks of a file as of ``timestamp``, or None if no snapshot qualifies."""
        snapshot = self.latest_snapshot_before(file_path, timestamp)
        if snapshot is None:
            return None
        return self.reconstruct_blocks(snapshot)

    def current_blocks(self, file_path: str) -> list[Block] | None:
        """Blocks of the most recent snapshot of a file."""
        snapshot = self.latest_snapshot(file_path)
        if snapshot is None:
            return None
        return self.reconstruct_blocks(snapshot)

    # =========================================================================
    # Comparison
    # =========================================================================

    @staticmethod
    def compare_blocks(
        old: BlockSnapshot | None, new: BlockSnapshot | None
    ) -> list[BlockChange]:
        """Identity-keyed diff of two snapshots.

        A block whose heading or position changed gets a new id, so it is
        reported as DELETED plus ADDED, never as a rename.
        """
        old_blocks = {b.id: b for b in old.blocks} if old else {}
        new_blocks = {b.id: b for b in new.blocks} if new else {}
        changes: list[BlockChange] = []

        for block_id, new_block in new_blocks.items():
            old_block = old_blocks.get(block_id)
            if old_block is None:
                changes.append(
                    BlockChange(
                        block_id=block_id,
                        type=BlockChangeType.ADDED,
                        heading=new_block.heading,
                        new_hash=new_block.content_hash,
                    )
                )
            elif old_block.content_hash != new_block.content_hash:
                changes.append(
                    BlockChange(
                        block_id=block_id,
                        type=BlockChangeType.MODIFIED,
                        heading=new_block.heading,
                        old_hash=old_block.content_hash,
                        new_hash=new_block.content_hash,
                    )
                )

        for block_id, old_block in old_blocks.items():
            if block_id not in new_blocks:
                changes.append(
                    BlockChange(
                        block_id=block_id,
                        type=BlockChangeType.DELETED,
                        heading=old_block.heading,
                        old_hash=old_block.content_hash,
                    )
                )

        return changes
