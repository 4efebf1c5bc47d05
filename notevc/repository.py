"""
Repository resolution and metadata.

A repository is any directory containing a ``.notevc`` metadata directory:

    {root}/.notevc/
        metadata.json    - RepoMetadata (version, created, head, config, lastCommit)
        timeline.json    - CommitEntry list, newest first
        objects/         - BlobStore objects
        blocks/          - BlockSnapshot files

The repository owns these paths and hands out the stores built on them; it
contains no versioning logic itself.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from . import __version__
from .blocks.store import SnapshotStore
from .exceptions import NotARepositoryError, RepositoryExistsError, StorageIOError
from .storage.blob_store import BlobStore
from .storage.file_ops import ensure_directory, read_json, write_bytes_atomic, write_json_atomic
from .timeline import CommitEntry, Timeline
from .utils import format_timestamp, utc_now

logger = logging.getLogger(__name__)

NOTEVC_DIR = ".notevc"


@dataclass
class RepoConfig:
    """Per-repository configuration stored inside metadata.json."""

    auto_commit: bool = False
    compression_enabled: bool = True
    max_snapshots: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "autoCommit": self.auto_commit,
            "compressionEnabled": self.compression_enabled,
            "maxSnapshots": self.max_snapshots,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoConfig:
        return cls(
            auto_commit=data.get("autoCommit", False),
            compression_enabled=data.get("compressionEnabled", True),
            max_snapshots=data.get("maxSnapshots", 100),
        )


@dataclass
class CommitInfo:
    """Summary of the most recent commit, kept in metadata.json."""

    hash: str
    message: str
    timestamp: str
    author: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "message": self.message,
            "timestamp": self.timestamp,
            "author": self.author,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitInfo:
        return cls(
            hash=data["hash"],
            message=data["message"],
            timestamp=data["timestamp"],
            author=data["author"],
        )

    @classmethod
    def from_commit(cls, commit: CommitEntry) -> CommitInfo:
        return cls(
            hash=commit.hash,
            message=commit.message,
            timestamp=commit.timestamp,
            author=commit.author,
        )


@dataclass
class RepoMetadata:
    """Contents of metadata.json."""

    version: str
    created: str
    head: str | None = None
    config: RepoConfig = field(default_factory=RepoConfig)
    last_commit: CommitInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "created": self.created,
            "head": self.head,
            "config": self.config.to_dict(),
        }
        if self.last_commit is not None:
            data["lastCommit"] = self.last_commit.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoMetadata:
        last_commit = data.get("lastCommit")
        return cls(
            version=data["version"],
            created=data["created"],
            head=data.get("head"),
            config=RepoConfig.from_dict(data.get("config") or {}),
            last_commit=CommitInfo.from_dict(last_commit) if last_commit else None,
        )


class Repository:
    """
    A notevc repository rooted at a directory.

    Use ``Repository.at(path)`` for a known root (e.g. before ``init``) and
    ``Repository.find()`` to locate an existing repository from a working
    directory.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self._blob_store: BlobStore | None = None
        self._snapshot_store: SnapshotStore | None = None
        self._timeline: Timeline | None = None

    @classmethod
    def at(cls, path: str | Path) -> Repository:
        """Open a repository root, validating the directory.

        Raises:
            NotARepositoryError: If the path is missing, not a directory or not writable
        """
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise NotARepositoryError(str(path), "directory does not exist")
        if not root.is_dir():
            raise NotARepositoryError(str(path), "path is not a directory")
        if not os.access(root, os.W_OK):
            raise NotARepositoryError(str(path), "directory is not writable")
        return cls(root)

    @classmethod
    def find(cls, start: str | Path | None = None) -> Repository:
        """Walk up from ``start`` (default: cwd) to the nearest repository.

        Raises:
            NotARepositoryError: If no ancestor contains a .notevc directory
        """
        origin = Path(start).expanduser().resolve() if start is not None else Path.cwd().resolve()
        for candidate in (origin, *origin.parents):
            if (candidate / NOTEVC_DIR).is_dir():
                logger.debug(f"Found repository at {candidate}")
                return cls(candidate)
        raise NotARepositoryError(str(origin), "no .notevc directory found in any parent")

    def __repr__(self) -> str:
        return f"Repository(path={self.root}, initialized={self.is_initialized})"

    # =========================================================================
    # Paths
    # =========================================================================

    @property
    def metadata_dir(self) -> Path:
        return self.root / NOTEVC_DIR

    @property
    def objects_dir(self) -> Path:
        return self.metadata_dir / "objects"

    @property
    def blocks_dir(self) -> Path:
        return self.metadata_dir / "blocks"

    @property
    def metadata_path(self) -> Path:
        return self.metadata_dir / "metadata.json"

    @property
    def timeline_path(self) -> Path:
        return self.metadata_dir / "timeline.json"

    @property
    def is_initialized(self) -> bool:
        return self.metadata_dir.is_dir()

    def relative_path(self, path: str | Path) -> str:
        """Repository-relative POSIX path of a file, as stored in snapshots.

        Raises:
            NotARepositoryError: If the path lies outside the repository root
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        try:
            relative = candidate.resolve().relative_to(self.root)
        except ValueError as e:
            raise NotARepositoryError(str(path), f"outside repository {self.root}") from e
        return PurePosixPath(*relative.parts).as_posix()

    def absolute_path(self, relative: str) -> Path:
        return self.root.joinpath(*PurePosixPath(relative).parts)

    # =========================================================================
    # Lifecycle and metadata
    # =========================================================================

    def init(self, config: RepoConfig | None = None) -> RepoMetadata:
        """Create the .notevc structure with empty history.

        Args:
            config: Repository configuration to store (default: RepoConfig())

        Raises:
            RepositoryExistsError: If the repository is already initialized
        """
        if self.is_initialized:
            raise RepositoryExistsError(str(self.root))

        ensure_directory(self.objects_dir)
        ensure_directory(self.blocks_dir)

        metadata = RepoMetadata(
            version=__version__,
            created=format_timestamp(utc_now()),
            config=config or RepoConfig(),
        )
        self.save_metadata(metadata)
        write_bytes_atomic(self.timeline_path, b"[]")

        logger.info(f"Initialized empty notevc repository in {self.metadata_dir}")
        return metadata

    def require_initialized(self) -> None:
        if not self.is_initialized:
            raise NotARepositoryError(str(self.root), "run init first")

    def load_metadata(self) -> RepoMetadata:
        """Read metadata.json, recreating defaults if it is missing."""
        data = read_json(self.metadata_path)
        if data is None:
            logger.warning(f"metadata.json missing in {self.metadata_dir}, using defaults")
            return RepoMetadata(version=__version__, created=format_timestamp(utc_now()))
        try:
            return RepoMetadata.from_dict(data)
        except (KeyError, TypeError) as e:
            raise StorageIOError("parse_metadata", str(self.metadata_path), e) from e

    def save_metadata(self, metadata: RepoMetadata) -> None:
        write_json_atomic(self.metadata_path, metadata.to_dict())

    def update_head(self, commit: CommitEntry) -> RepoMetadata:
        """Point HEAD at a commit.

        This is a separate write from the timeline append; an interruption
        between the two leaves HEAD one commit behind the timeline.
        """
        metadata = self.load_metadata()
        metadata.head = commit.hash
        metadata.last_commit = CommitInfo.from_commit(commit)
        self.save_metadata(metadata)
        return metadata

    # =========================================================================
    # Stores
    # =========================================================================

    @property
    def blob_store(self) -> BlobStore:
        if self._blob_store is None:
            config = self.load_metadata().config if self.metadata_path.exists() else RepoConfig()
            self._blob_store = BlobStore(
                self.objects_dir, compression_enabled=config.compression_enabled
            )
        return self._blob_store

    @property
    def snapshot_store(self) -> SnapshotStore:
        if self._snapshot_store is None:
            self._snapshot_store = SnapshotStore(self.blob_store, self.blocks_dir)
        return self._snapshot_store

    @property
    def timeline(self) -> Timeline:
        if self._timeline is None:
            self._timeline = Timeline(self.timeline_path)
        return self._timeline
