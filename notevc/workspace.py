"""
Workspace operations: commit, status, diff, show, log and restore.

This module ties the block parser, snapshot store, blob store and timeline
together for a repository's working tree. Every operation returns
structured results; rendering them is left to the caller.

Commits are associated with snapshots by timestamp: a commit and the
snapshots it wrote share the same timestamp, and later lookups take the
latest snapshot at or before a commit's time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .blocks.diff import DiffLineKind, LineDiff, content_lines, line_diff
from .blocks.parser import BlockParser
from .blocks.store import SnapshotStore
from .blocks.types import Block, BlockChange, BlockChangeType, BlockSnapshot, ParsedFile
from .config import Settings, load_settings
from .exceptions import (
    AmbiguousBlockError,
    BlockNotFoundError,
    FileDisabledError,
    MissingBlobError,
    NoteFileNotFoundError,
    UnreadableNoteError,
    UnsupportedFileTypeError,
)
from .logging_utils import RepositoryLoggerAdapter, apply_log_level
from .repository import NOTEVC_DIR, RepoConfig, Repository
from .storage.blob_store import BlobStore
from .timeline import CommitEntry, Timeline
from .utils import ensure_utc, parse_since, utc_now

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


def find_markdown_files(root: Path) -> list[Path]:
    """All .md files below root, skipping the .notevc directory."""
    if not root.is_dir():
        return []
    files = []
    for path in root.rglob(f"*{MARKDOWN_SUFFIX}"):
        relative = path.relative_to(root)
        if relative.parts and relative.parts[0] == NOTEVC_DIR:
            continue
        if path.is_file():
            files.append(path)
    return sorted(files)


# =============================================================================
# Result types
# =============================================================================


@dataclass
class CommittedFile:
    path: str
    block_count: int


@dataclass
class CommitResult:
    """Outcome of a commit; ``commit`` is None when nothing changed."""

    commit: CommitEntry | None
    files: list[CommittedFile] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.commit is not None

    @property
    def total_blocks(self) -> int:
        return sum(f.block_count for f in self.files)


class FileStatusType(Enum):
    MODIFIED = "MODIFIED"  # Tracked file with block or front matter changes since the last snapshot
    UNTRACKED = "UNTRACKED"  # Never committed
    DELETED = "DELETED"  # Tracked file missing from the working tree


@dataclass
class FileStatus:
    path: str
    type: FileStatusType
    changes: list[BlockChange] = field(default_factory=list)
    block_count: int | None = None
    front_matter_changed: bool = False


@dataclass
class RepositoryStatus:
    files: list[FileStatus] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.files

    def by_type(self, status_type: FileStatusType) -> list[FileStatus]:
        return [f for f in self.files if f.type == status_type]


@dataclass
class FileDiff:
    path: str
    changes: list[BlockChange] = field(default_factory=list)

    def counts(self) -> dict[BlockChangeType, int]:
        counts = {change_type: 0 for change_type in BlockChangeType}
        for change in self.changes:
            counts[change.type] += 1
        return counts


@dataclass
class BlockDiff:
    """One block compared between a snapshot and the working tree."""

    block_id: str
    heading: str
    change: BlockChange | None
    lines: LineDiff


@dataclass
class CommitDetails:
    commit: CommitEntry
    files: list[FileDiff] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        totals = {change_type.value: 0 for change_type in BlockChangeType}
        for file_diff in self.files:
            for change_type, count in file_diff.counts().items():
                totals[change_type.value] += count
        return totals


@dataclass
class RestoreResult:
    commit: CommitEntry
    files: list[str] = field(default_factory=list)
    block_count: int = 0
    block_id: str | None = None


# =============================================================================
# Workspace
# =============================================================================


class Workspace:
    """
    Versioning operations over a repository's working tree.

    Contract:
    - Inputs: repository, optional settings (author, log level) and parser
    - Outputs: CommitResult, RepositoryStatus, FileDiff lists, RestoreResult
    - Side Effects: commit writes blobs, snapshots, timeline and metadata;
      restore writes note files
    """

    def __init__(
        self,
        repository: Repository,
        settings: Settings | None = None,
        parser: BlockParser | None = None,
    ):
        repository.require_initialized()
        self.repository = repository
        self.settings = settings or load_settings()
        self.parser = parser or BlockParser()
        self.logger = RepositoryLoggerAdapter(logger, {"repository": str(repository.root)})
        apply_log_level(self.settings.log_level)

    @classmethod
    def create(
        cls,
        repository: Repository,
        settings: Settings | None = None,
        parser: BlockParser | None = None,
    ) -> Workspace:
        """Initialize a repository and open a workspace on it.

        The user's ``compression_enabled`` setting seeds the new repository's
        RepoConfig. From then on the repository's own config decides
        whether blobs are compressed.

        Raises:
            RepositoryExistsError: If the repository is already initialized
        """
        settings = settings or load_settings()
        repository.init(config=RepoConfig(compression_enabled=settings.compression_enabled))
        return cls(repository, settings=settings, parser=parser)

    @property
    def snapshots(self) -> SnapshotStore:
        return self.repository.snapshot_store

    @property
    def blobs(self) -> BlobStore:
        return self.repository.blob_store

    @property
    def timeline(self) -> Timeline:
        return self.repository.timeline

    # =========================================================================
    # Working tree helpers
    # =========================================================================

    def read_file(self, relative: str) -> str:
        """Read a note as UTF-8 with line endings untouched.

        Raises:
            NoteFileNotFoundError: If the note does not exist
            UnreadableNoteError: If it cannot be read or is not valid UTF-8
        """
        path = self.repository.absolute_path(relative)
        if not path.is_file():
            raise NoteFileNotFoundError(relative)
        try:
            return path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise UnreadableNoteError(relative, e) from e

    def write_file(self, relative: str, content: str) -> None:
        path = self.repository.absolute_path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))

    def parse_working_file(self, relative: str) -> ParsedFile:
        return self.parser.parse(self.read_file(relative), relative)

    def working_files(self) -> list[str]:
        root = self.repository.root
        return [self.repository.relative_path(p) for p in find_markdown_files(root)]

    def _target_file(self, file: str | Path) -> str:
        relative = self.repository.relative_path(file)
        if not self.repository.absolute_path(relative).is_file():
            raise NoteFileNotFoundError(str(file))
        if not relative.lower().endswith(MARKDOWN_SUFFIX):
            raise UnsupportedFileTypeError(str(file))
        return relative

    def _parse_or_skip(self, relative: str) -> ParsedFile | None:
        """Parse a note during a whole-tree scan; unreadable notes are skipped."""
        try:
            return self.parse_working_file(relative)
        except UnreadableNoteError as e:
            self.logger.warning(f"Skipping unreadable note {relative}: {e.cause}", extra={"file": relative})
            return None

    def _has_changes(self, parsed: ParsedFile, timestamp: datetime) -> bool:
        latest = self.snapshots.latest_snapshot(parsed.path)
        if latest is None:
            return True
        current = self.snapshots.snapshot_of(parsed, timestamp)
        if latest.front_matter != current.front_matter:
            return True
        return bool(self.snapshots.compare_blocks(latest, current))

    # =========================================================================
    # Commit
    # =========================================================================

    def commit(
        self,
        message: str,
        file: str | Path | None = None,
        timestamp: datetime | None = None,
        author: str | None = None,
    ) -> CommitResult:
        """Snapshot changed notes and record a commit.

        Args:
            message: Commit message
            file: Commit only this file (path relative to the root or absolute)
            timestamp: Commit time (default: now)
            author: Author name (default: from settings)

        Returns:
            CommitResult; ``commit`` is None if no file changed

        Raises:
            NoteFileNotFoundError: If the file (or any .md file) does not exist
            UnsupportedFileTypeError: If the file is not Markdown
            FileDisabledError: If the file sets enabled: false
            UnreadableNoteError: If the single file is not valid UTF-8; in
                whole-tree commits such notes are skipped with a warning
            TimelineIntegrityError: If a commit with the same timestamp,
                message and scope already exists; nothing is written
        """
        timestamp = ensure_utc(timestamp) if timestamp else utc_now()
        author = author or self.settings.author

        if file is not None:
            relative = self._target_file(file)
            parsed = self.parse_working_file(relative)
            if parsed.front_matter is not None and not parsed.front_matter.enabled:
                raise FileDisabledError(relative)
            candidates = [parsed]
            scope = relative
        else:
            paths = self.working_files()
            if not paths:
                raise NoteFileNotFoundError(f"no markdown files in {self.repository.root}")
            candidates = []
            for relative in paths:
                parsed = self._parse_or_skip(relative)
                if parsed is None:
                    continue
                if parsed.front_matter is not None and not parsed.front_matter.enabled:
                    self.logger.debug(f"Skipping disabled file {relative}")
                    continue
                candidates.append(parsed)
            scope = None

        changed = [parsed for parsed in candidates if self._has_changes(parsed, timestamp)]
        if not changed:
            self.logger.info("No changes detected")
            return CommitResult(commit=None)

        self.timeline.check_unique(message, timestamp, scope)
        committed = []
        for parsed in changed:
            snapshot = self.snapshots.store_blocks(parsed, timestamp)
            committed.append(CommittedFile(path=parsed.path, block_count=len(snapshot.blocks)))

        entry = self.timeline.append(message, author, timestamp, scope=scope)
        self.repository.update_head(entry)

        self.logger.info(f"Created commit {entry.hash} with {len(committed)} file(s)", extra={"commit": entry.hash})
        return CommitResult(commit=entry, files=committed)

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> RepositoryStatus:
        """Compare the working tree with the latest snapshot of every file."""
        tracked = self.snapshots.tracked_files()
        tracked_set = set(tracked)
        now = utc_now()
        statuses: list[FileStatus] = []

        for relative in tracked:
            if not self.repository.absolute_path(relative).is_file():
                statuses.append(FileStatus(path=relative, type=FileStatusType.DELETED))
                continue
            parsed = self._parse_or_skip(relative)
            if parsed is None:
                continue
            latest = self.snapshots.latest_snapshot(relative)
            current = self.snapshots.snapshot_of(parsed, now)
            changes = self.snapshots.compare_blocks(latest, current)
            front_matter_changed = latest.front_matter != current.front_matter
            if changes or front_matter_changed:
                statuses.append(
                    FileStatus(
                        path=relative,
                        type=FileStatusType.MODIFIED,
                        changes=changes,
                        front_matter_changed=front_matter_changed,
                    )
                )

        for relative in self.working_files():
            if relative not in tracked_set:
                parsed = self._parse_or_skip(relative)
                if parsed is None:
                    continue
                statuses.append(
                    FileStatus(
                        path=relative,
                        type=FileStatusType.UNTRACKED,
                        block_count=len(parsed.blocks),
                    )
                )

        return RepositoryStatus(files=statuses)

    # =========================================================================
    # Diff and show
    # =========================================================================

    def _snapshot_at(self, relative: str, commit: CommitEntry | None) -> BlockSnapshot | None:
        if commit is None:
            return self.snapshots.latest_snapshot(relative)
        return self.snapshots.latest_snapshot_before(relative, commit.time)

    def _working_snapshot(self, relative: str, strict: bool = True) -> BlockSnapshot | None:
        if not self.repository.absolute_path(relative).is_file():
            return None
        parsed = self.parse_working_file(relative) if strict else self._parse_or_skip(relative)
        if parsed is None:
            return None
        if parsed.front_matter is not None and not parsed.front_matter.enabled:
            return None
        return self.snapshots.snapshot_of(parsed, utc_now())

    def diff(
        self,
        commit1: str | None = None,
        commit2: str | None = None,
        file: str | Path | None = None,
    ) -> list[FileDiff]:
        """Block changes between commits or between a commit and the working tree.

        - no commits: working tree vs the latest snapshot of each file
        - commit1 only: working tree vs commit1
        - both: commit1 vs commit2

        Only files with at least one change are returned.
        """
        if commit2 is not None and commit1 is None:
            commit1, commit2 = commit2, None

        if commit1 is not None and commit2 is not None:
            first = self.timeline.resolve(commit1)
            second = self.timeline.resolve(commit2)
            if file is not None:
                files = [self.repository.relative_path(file)]
            else:
                latest_time = max(first.time, second.time)
                files = [
                    f for f in self.snapshots.tracked_files()
                    if self.snapshots.latest_snapshot_before(f, latest_time) is not None
                ]
            results = []
            for relative in files:
                old = self._snapshot_at(relative, first)
                new = self._snapshot_at(relative, second)
                changes = self.snapshots.compare_blocks(old, new)
                if changes:
                    results.append(FileDiff(path=relative, changes=changes))
            return results

        base = self.timeline.resolve(commit1) if commit1 is not None else None
        if file is not None:
            files = [self._target_file(file)]
        else:
            files = self.working_files()

        results = []
        for relative in files:
            current = self._working_snapshot(relative, strict=file is not None)
            if current is None:
                continue
            old = self._snapshot_at(relative, base)
            changes = self.snapshots.compare_blocks(old, current)
            if changes:
                results.append(FileDiff(path=relative, changes=changes))
        return results

    def render_change(self, change: BlockChange) -> LineDiff:
        """Line-level view of one block change, for display."""
        old = self.blobs.get_text(change.old_hash) if change.old_hash else None
        new = self.blobs.get_text(change.new_hash) if change.new_hash else None

        if change.type == BlockChangeType.ADDED:
            if new is None:
                raise MissingBlobError(change.new_hash or "", change.block_id)
            return LineDiff(lines=content_lines(new, DiffLineKind.ADDED))
        if change.type == BlockChangeType.DELETED:
            if old is None:
                raise MissingBlobError(change.old_hash or "", change.block_id)
            return LineDiff(lines=content_lines(old, DiffLineKind.REMOVED))
        if old is None or new is None:
            missing = change.old_hash if old is None else change.new_hash
            raise MissingBlobError(missing or "", change.block_id)
        return line_diff(old, new)

    def diff_block(
        self,
        block_prefix: str,
        file: str | Path,
        commit: str | None = None,
    ) -> BlockDiff:
        """Compare one block between a commit (default: latest snapshot) and the working tree.

        Raises:
            BlockNotFoundError: If neither side has a block with the prefix
            AmbiguousBlockError: If the prefix matches several block ids
        """
        relative = self._target_file(file)
        base = self.timeline.resolve(commit) if commit is not None else None
        old_snapshot = self._snapshot_at(relative, base)
        parsed = self.parse_working_file(relative)
        old_states = old_snapshot.blocks if old_snapshot else []

        block_id = _resolve_block_id(
            block_prefix, [s.id for s in old_states] + [b.id for b in parsed.blocks], relative
        )
        if block_id is None:
            raise BlockNotFoundError(block_prefix, relative, commit)
        old_state = next((s for s in old_states if s.id == block_id), None)
        new_block = next((b for b in parsed.blocks if b.id == block_id), None)

        if old_state is None:
            change = BlockChange(
                block_id=new_block.id,
                type=BlockChangeType.ADDED,
                heading=new_block.heading,
                new_hash=self.blobs.hash_of(new_block.content),
            )
            return BlockDiff(
                block_id=new_block.id,
                heading=new_block.heading,
                change=change,
                lines=LineDiff(lines=content_lines(new_block.content, DiffLineKind.ADDED)),
            )

        old_content = self.blobs.get_text(old_state.content_hash)
        if old_content is None:
            raise MissingBlobError(old_state.content_hash, old_state.id)

        if new_block is None:
            change = BlockChange(
                block_id=old_state.id,
                type=BlockChangeType.DELETED,
                heading=old_state.heading,
                old_hash=old_state.content_hash,
            )
            return BlockDiff(
                block_id=old_state.id,
                heading=old_state.heading,
                change=change,
                lines=LineDiff(lines=content_lines(old_content, DiffLineKind.REMOVED)),
            )

        new_hash = self.blobs.hash_of(new_block.content)
        if new_hash == old_state.content_hash:
            return BlockDiff(block_id=new_block.id, heading=new_block.heading, change=None, lines=LineDiff())

        change = BlockChange(
            block_id=new_block.id,
            type=BlockChangeType.MODIFIED,
            heading=new_block.heading,
            old_hash=old_state.content_hash,
            new_hash=new_hash,
        )
        return BlockDiff(
            block_id=new_block.id,
            heading=new_block.heading,
            change=change,
            lines=line_diff(old_content, new_block.content),
        )

    def show(self, commit_ref: str, file: str | Path | None = None) -> CommitDetails:
        """Block changes introduced by a commit relative to its parent."""
        commit = self.timeline.resolve(commit_ref)
        parent = self.timeline.parent_of(commit)

        if file is not None:
            files = [self.repository.relative_path(file)]
        else:
            files = self.snapshots.files_near(commit.time)

        details = CommitDetails(commit=commit)
        for relative in files:
            current = self.snapshots.latest_snapshot_before(relative, commit.time)
            if current is None:
                continue
            previous = (
                self.snapshots.latest_snapshot_before(relative, parent.time) if parent else None
            )
            changes = self.snapshots.compare_blocks(previous, current)
            if changes:
                details.files.append(FileDiff(path=relative, changes=changes))
        return details

    def file_at(self, commit_ref: str, file: str | Path) -> str:
        """Full text of a file as of a commit.

        Raises:
            NoteFileNotFoundError: If the file has no snapshot at that commit
            MissingBlobError: If any block content is missing
        """
        commit = self.timeline.resolve(commit_ref)
        relative = self.repository.relative_path(file)
        return self._reconstruct_at(relative, commit)

    def block_at(self, commit_ref: str, file: str | Path, block_prefix: str) -> Block:
        """A single block of a file as of a commit."""
        commit = self.timeline.resolve(commit_ref)
        relative = self.repository.relative_path(file)
        blocks = self.snapshots.blocks_at(relative, commit.time)
        if blocks is None:
            raise NoteFileNotFoundError(f"{relative} at commit {commit.hash}")
        block_id = _resolve_block_id(block_prefix, [b.id for b in blocks], relative)
        if block_id is None:
            raise BlockNotFoundError(block_prefix, relative, commit.hash)
        return next(b for b in blocks if b.id == block_id)

    def _reconstruct_at(self, relative: str, commit: CommitEntry) -> str:
        snapshot = self.snapshots.latest_snapshot_before(relative, commit.time)
        if snapshot is None:
            raise NoteFileNotFoundError(f"{relative} at commit {commit.hash}")
        blocks = self.snapshots.reconstruct_blocks(snapshot)
        parsed = ParsedFile(path=relative, front_matter=snapshot.front_matter, blocks=blocks)
        return self.parser.reconstruct(parsed)

    # =========================================================================
    # Log
    # =========================================================================

    def log(
        self,
        max_count: int | None = None,
        since: str | datetime | None = None,
        file: str | Path | None = None,
    ) -> list[CommitEntry]:
        """Commit history, newest first, with optional filters.

        Args:
            max_count: Return at most this many commits
            since: Relative age ("2h", "3d", "1w"), ISO timestamp or datetime
            file: Only commits that wrote a snapshot of this file
        """
        if since is None:
            commits = self.timeline.entries()
        else:
            cutoff = ensure_utc(since) if isinstance(since, datetime) else parse_since(since)
            commits = self.timeline.since(cutoff)

        if file is not None:
            relative = self.repository.relative_path(file)
            commits = [c for c in commits if relative in self.snapshots.files_near(c.time)]

        if max_count is not None:
            commits = commits[:max_count]
        return commits

    def commit_files(self, commit_ref: str) -> list[dict[str, Any]]:
        """Files and block headings recorded around a commit's time."""
        commit = self.timeline.resolve(commit_ref)
        details = []
        for relative in self.snapshots.files_near(commit.time):
            snapshot = self.snapshots.latest_snapshot_before(relative, commit.time)
            if snapshot is None:
                continue
            details.append(
                {
                    "path": relative,
                    "blocks": [state.heading for state in sorted(snapshot.blocks, key=lambda s: s.order)],
                }
            )
        return details

    # =========================================================================
    # Restore
    # =========================================================================

    def restore(
        self,
        commit_ref: str,
        file: str | Path | None = None,
        block: str | None = None,
    ) -> RestoreResult:
        """Restore the repository, one file, or one block to a commit.

        Every restored text is computed before any file is written, so a
        missing blob leaves the working tree untouched.

        Raises:
            CommitNotFoundError: If the commit does not exist
            NoteFileNotFoundError: If there is nothing to restore
            BlockNotFoundError: If the block is absent at the commit or in the current file
            AmbiguousBlockError: If the block prefix matches several blocks
            MissingBlobError: If snapshot content is missing
        """
        commit = self.timeline.resolve(commit_ref)

        if block is not None:
            if file is None:
                raise ValueError("restoring a block requires a file")
            return self._restore_block(commit, self.repository.relative_path(file), block)

        if file is not None:
            relative = self.repository.relative_path(file)
            content = self._reconstruct_at(relative, commit)
            snapshot = self.snapshots.latest_snapshot_before(relative, commit.time)
            self.write_file(relative, content)
            self.logger.info(
                f"Restored {relative} from commit {commit.hash}",
                extra={"commit": commit.hash, "file": relative},
            )
            return RestoreResult(commit=commit, files=[relative], block_count=len(snapshot.blocks))

        files = self.snapshots.files_near(commit.time)
        if not files:
            raise NoteFileNotFoundError(f"no files found at commit {commit.hash}")

        restored: dict[str, str] = {}
        block_count = 0
        for relative in files:
            snapshot = self.snapshots.latest_snapshot_before(relative, commit.time)
            if snapshot is None:
                continue
            blocks = self.snapshots.reconstruct_blocks(snapshot)
            parsed = ParsedFile(path=relative, front_matter=snapshot.front_matter, blocks=blocks)
            restored[relative] = self.parser.reconstruct(parsed)
            block_count += len(blocks)

        for relative, content in restored.items():
            self.write_file(relative, content)

        self.logger.info(f"Restored {len(restored)} file(s) to commit {commit.hash}", extra={"commit": commit.hash})
        return RestoreResult(commit=commit, files=sorted(restored), block_count=block_count)

    def _restore_block(self, commit: CommitEntry, relative: str, block_prefix: str) -> RestoreResult:
        blocks = self.snapshots.blocks_at(relative, commit.time)
        if blocks is None:
            raise NoteFileNotFoundError(f"{relative} at commit {commit.hash}")
        block_id = _resolve_block_id(block_prefix, [b.id for b in blocks], relative)
        if block_id is None:
            raise BlockNotFoundError(block_prefix, relative, commit.hash)
        target = next(b for b in blocks if b.id == block_id)

        current = self.parse_working_file(relative)
        index = next((i for i, b in enumerate(current.blocks) if b.id == target.id), None)
        if index is None:
            raise BlockNotFoundError(target.id, relative)

        current.blocks[index] = target
        self.write_file(relative, self.parser.reconstruct(current))
        self.logger.info(
            f"Restored block {target.id} in {relative} from commit {commit.hash}",
            extra={"commit": commit.hash, "file": relative},
        )
        return RestoreResult(commit=commit, files=[relative], block_count=1, block_id=target.id)


def _resolve_block_id(prefix: str, block_ids: list[str], file_path: str) -> str | None:
    """Exact id first, then a unique prefix. None when nothing matches."""
    if not prefix:
        return None
    if prefix in block_ids:
        return prefix
    matches = sorted({block_id for block_id in block_ids if block_id.startswith(prefix)})
    if len(matches) > 1:
        raise AmbiguousBlockError(prefix, matches, file_path)
    return matches[0] if matches else None
