"""
notevc

Block-level version control for Markdown notes.

Provides:
- Block parsing of notes into heading sections with stable ids
- Content-addressed, deduplicated, compressed blob storage
- Per-file block snapshots on a date-partitioned tree
- A linear commit timeline with prefix lookup
- Workspace operations: commit, status, diff, show, log, restore

Usage:

    >>> from notevc import Repository, Workspace
    >>> repo = Repository.at("~/notes")
    >>> repo.init()
    >>> workspace = Workspace(repo)
    >>> result = workspace.commit("First draft")
    >>> workspace.status().clean
    True
    >>> workspace.restore(result.commit.hash, file="ideas.md")
"""

__version__ = "1.0.0"

# Block model
from .blocks import (
    Block,
    BlockChange,
    BlockChangeType,
    BlockParser,
    BlockSnapshot,
    BlockState,
    BlockType,
    FrontMatter,
    ParsedFile,
    SnapshotStore,
)

# Configuration
from .config import Settings, load_settings, save_settings

# Exceptions
from .exceptions import (
    AmbiguousBlockError,
    AmbiguousCommitError,
    BlockNotFoundError,
    CommitNotFoundError,
    CorruptSnapshotError,
    FileDisabledError,
    InvalidHashError,
    MissingBlobError,
    NoteFileNotFoundError,
    NotARepositoryError,
    NoteVCError,
    RepositoryExistsError,
    StorageIOError,
    TimelineIntegrityError,
    UnreadableNoteError,
    UnsupportedFileTypeError,
)

# Logging
from .logging_utils import configure_logging

# Repository and history
from .repository import CommitInfo, RepoConfig, RepoMetadata, Repository
from .storage import BlobStore
from .timeline import CommitEntry, Timeline

# Workspace operations
from .workspace import (
    BlockDiff,
    CommitDetails,
    CommitResult,
    FileDiff,
    FileStatus,
    FileStatusType,
    RepositoryStatus,
    RestoreResult,
    Workspace,
)

__all__ = [
    # Repository
    "Repository",
    "RepoConfig",
    "RepoMetadata",
    "CommitInfo",
    # Workspace
    "Workspace",
    "CommitResult",
    "RepositoryStatus",
    "FileStatus",
    "FileStatusType",
    "FileDiff",
    "BlockDiff",
    "CommitDetails",
    "RestoreResult",
    # Storage and history
    "BlobStore",
    "SnapshotStore",
    "Timeline",
    "CommitEntry",
    # Blocks
    "BlockParser",
    "Block",
    "BlockType",
    "BlockState",
    "BlockSnapshot",
    "BlockChange",
    "BlockChangeType",
    "FrontMatter",
    "ParsedFile",
    # Config and logging
    "Settings",
    "load_settings",
    "save_settings",
    "configure_logging",
    # Exceptions
    "NoteVCError",
    "NotARepositoryError",
    "RepositoryExistsError",
    "NoteFileNotFoundError",
    "UnsupportedFileTypeError",
    "FileDisabledError",
    "InvalidHashError",
    "MissingBlobError",
    "CorruptSnapshotError",
    "CommitNotFoundError",
    "AmbiguousCommitError",
    "AmbiguousBlockError",
    "BlockNotFoundError",
    "TimelineIntegrityError",
    "StorageIOError",
    "UnreadableNoteError",
    "__version__",
]
