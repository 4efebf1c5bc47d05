"""
Block types and snapshot schemas.

A Markdown note is split into blocks, one per heading-delimited section.
Blocks are identified by path, heading text and position rather than by
content, so an edited section keeps its identity across commits.

The dictionaries produced by ``to_dict`` are the on-disk JSON format and use
camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CONTENT_HEADING = "<!-- Content -->"


class BlockType(Enum):
    """Kinds of blocks in a parsed note."""

    HEADING_SECTION = "HEADING_SECTION"  # '# Heading' line plus its body
    CONTENT_ONLY = "CONTENT_ONLY"  # Content before the first heading


class BlockChangeType(Enum):
    """Kinds of block-level changes between two snapshots."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass
class FrontMatter:
    """Key/value header parsed from a leading ``---`` section.

    List values are stored joined with ``", "``. ``end_line`` records the
    index of the closing delimiter in the source and is ignored for equality,
    since re-serializing a list can move it.
    """

    properties: dict[str, str] = field(default_factory=dict)
    end_line: int = field(default=0, compare=False)

    @property
    def enabled(self) -> bool:
        """Files are tracked unless front matter says ``enabled: false``."""
        return self.properties.get("enabled", "true").lower() != "false"

    @property
    def automatic(self) -> bool:
        return self.properties.get("automatic", "").lower() == "true"

    @property
    def title(self) -> str | None:
        return self.properties.get("title")

    @property
    def tags(self) -> list[str]:
        raw = self.properties.get("tags", "")
        return [tag.strip() for tag in raw.split(",") if tag.strip()]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {"properties": dict(self.properties), "endLine": self.end_line}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FrontMatter:
        """Deserialize from dictionary."""
        return cls(
            properties={str(k): str(v) for k, v in data.get("properties", {}).items()},
            end_line=data.get("endLine", 0),
        )


@dataclass
class Block:
    """A heading-delimited section of a note.

    Attributes:
        id: Stable identifier (12 hex chars of sha256(path:heading:order))
        heading: The heading line, or CONTENT_HEADING for leading content
        content: Full block text including the heading line
        type: Heading section or content-only block
        order: 0-based position within the file
    """

    id: str
    heading: str
    content: str
    type: BlockType
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "heading": self.heading,
            "content": self.content,
            "type": self.type.value,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Block:
        return cls(
            id=data["id"],
            heading=data["heading"],
            content=data["content"],
            type=BlockType(data["type"]),
            order=data["order"],
        )


@dataclass
class ParsedFile:
    """A note split into front matter and ordered blocks. Never persisted."""

    path: str
    front_matter: FrontMatter | None = None
    blocks: list[Block] = field(default_factory=list)


@dataclass
class BlockState:
    """Persisted state of one block; the content lives in the blob store."""

    id: str
    heading: str
    content_hash: str
    type: BlockType
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "heading": self.heading,
            "contentHash": self.content_hash,
            "type": self.type.value,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockState:
        return cls(
            id=data["id"],
            heading=data["heading"],
            content_hash=data["contentHash"],
            type=BlockType(data["type"]),
            order=data["order"],
        )


@dataclass
class BlockSnapshot:
    """The block states of one file at one point in time.

    Attributes:
        file_path: Repository-relative POSIX path of the note
        timestamp: ISO 8601 UTC timestamp of the write event
        blocks: Block states in file order
        front_matter: Front matter at that time, if any
    """

    file_path: str
    timestamp: str
    blocks: list[BlockState] = field(default_factory=list)
    front_matter: FrontMatter | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {
            "filePath": self.file_path,
            "timestamp": self.timestamp,
            "blocks": [b.to_dict() for b in self.blocks],
            "frontMatter": self.front_matter.to_dict() if self.front_matter else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockSnapshot:
        """Deserialize from dictionary."""
        front_matter = data.get("frontMatter")
        return cls(
            file_path=data["filePath"],
            timestamp=data["timestamp"],
            blocks=[BlockState.from_dict(b) for b in data["blocks"]],
            front_matter=FrontMatter.from_dict(front_matter) if front_matter else None,
        )


@dataclass
class BlockChange:
    """One block-level difference between two snapshots."""

    block_id: str
    type: BlockChangeType
    heading: str
    old_hash: str | None = None
    new_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "blockId": self.block_id,
            "type": self.type.value,
            "heading": self.heading,
        }
        if self.old_hash is not None:
            data["oldHash"] = self.old_hash
        if self.new_hash is not None:
            data["newHash"] = self.new_hash
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockChange:
        return cls(
            block_id=data["blockId"],
            type=BlockChangeType(data["type"]),
            heading=data["heading"],
            old_hash=data.get("oldHash"),
            new_hash=data.get("newHash"),
        )
