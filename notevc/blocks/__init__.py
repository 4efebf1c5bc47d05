"""
Block model: parsing notes into heading sections and tracking them over time.

A note is a sequence of blocks whose ids depend on path, heading and
position, so edits to a section's body are tracked as modifications of
the same block.
"""

from .diff import DiffLine, DiffLineKind, LineDiff, content_lines, line_diff
from .parser import BlockParser, generate_block_id
from .store import COMMIT_WINDOW_SECONDS, SnapshotStore
from .types import (
    CONTENT_HEADING,
    Block,
    BlockChange,
    BlockChangeType,
    BlockSnapshot,
    BlockState,
    BlockType,
    FrontMatter,
    ParsedFile,
)

__all__ = [
    # Block types
    "BlockType",
    "BlockChangeType",
    "Block",
    "BlockState",
    "BlockSnapshot",
    "BlockChange",
    "FrontMatter",
    "ParsedFile",
    "CONTENT_HEADING",
    # Parsing
    "BlockParser",
    "generate_block_id",
    # Snapshots
    "SnapshotStore",
    "COMMIT_WINDOW_SECONDS",
    # Line diff
    "DiffLine",
    "DiffLineKind",
    "LineDiff",
    "line_diff",
    "content_lines",
]
