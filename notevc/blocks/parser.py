"""
Markdown block parser.

Splits a note into front matter and heading-delimited blocks, and rebuilds
the note text from them. Every line starting with ``#`` opens a new block;
text before the first heading becomes one content-only block.

Round trip contract: ``reconstruct(parse(text))`` reproduces ``text`` byte for
byte, except that front matter values are re-quoted and comma-separated values
are written as YAML lists.
"""

from __future__ import annotations

import logging

from ..utils import clean_heading, sha256_hex
from .types import CONTENT_HEADING, Block, BlockType, FrontMatter, ParsedFile

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"
BLOCK_ID_LENGTH = 12


def generate_block_id(file_path: str, heading: str, order: int) -> str:
    """Derive a stable block id from path, cleaned heading text and position."""
    return sha256_hex(f"{file_path}:{clean_heading(heading)}:{order}")[:BLOCK_ID_LENGTH]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _normalize_list(value: str) -> str:
    """Canonical form of a comma-separated value: items trimmed, joined by ', '."""
    if "," not in value:
        return value
    return ", ".join(item.strip() for item in value.split(",") if item.strip())


class BlockParser:
    """Parses Markdown notes into blocks and reconstructs them."""

    def parse(self, text: str, file_path: str) -> ParsedFile:
        """Parse note text into a ParsedFile.

        Args:
            text: Full file content
            file_path: Repository-relative path, part of every block id

        Returns:
            ParsedFile with optional front matter and ordered blocks
        """
        lines = text.split("\n")
        front_matter = self._extract_front_matter(lines)

        if front_matter is not None:
            body = "\n".join(lines[front_matter.end_line + 1 :])
        else:
            body = text

        blocks: list[Block] = []
        if body:
            blocks = self._split_blocks(body.split("\n"), file_path)

        return ParsedFile(path=file_path, front_matter=front_matter, blocks=blocks)

    def _extract_front_matter(self, lines: list[str]) -> FrontMatter | None:
        """Parse a leading ``---`` section, or return None if there is none."""
        if not lines or lines[0].rstrip("\r") != FRONT_MATTER_DELIMITER:
            return None

        end_line = None
        for index in range(1, len(lines)):
            if lines[index].rstrip("\r") == FRONT_MATTER_DELIMITER:
                end_line = index
                break
        if end_line is None:
            return None

        properties: dict[str, str] = {}
        list_key: str | None = None
        list_items: list[str] = []

        def flush_list() -> None:
            if list_key is not None:
                properties[list_key] = _normalize_list(", ".join(list_items))

        for raw in lines[1:end_line]:
            line = raw.rstrip("\r")
            stripped = line.strip()

            if list_key is not None and stripped.startswith("-"):
                item = _unquote(stripped[1:].strip())
                if item:
                    list_items.append(item)
                continue

            key, sep, value = line.partition(":")
            if not sep or not key.strip():
                continue

            flush_list()
            list_key = None
            list_items = []

            key = key.strip()
            value = _unquote(value.strip())
            if value:
                properties[key] = _normalize_list(value)
            else:
                # Either an empty scalar or the start of a '- item' list
                properties[key] = ""
                list_key = key

        flush_list()
        return FrontMatter(properties=properties, end_line=end_line)

    def _split_blocks(self, lines: list[str], file_path: str) -> list[Block]:
        blocks: list[Block] = []
        current: list[str] | None = None
        heading = ""

        def close() -> None:
            order = len(blocks)
            block_type = BlockType.CONTENT_ONLY if heading == CONTENT_HEADING else BlockType.HEADING_SECTION
            blocks.append(
                Block(
                    id=generate_block_id(file_path, heading, order),
                    heading=heading,
                    content="\n".join(current or []),
                    type=block_type,
                    order=order,
                )
            )

        for line in lines:
            if line.startswith("#"):
                if current is not None:
                    close()
                heading = line
                current = [line]
            elif current is None:
                heading = CONTENT_HEADING
                current = [line]
            else:
                current.append(line)

        if current is not None:
            close()

        logger.debug(f"Parsed {file_path} into {len(blocks)} blocks")
        return blocks

    def reconstruct(self, parsed: ParsedFile) -> str:
        """Rebuild note text from front matter and blocks sorted by order."""
        parts: list[str] = []

        if parsed.front_matter is not None:
            parts.append(self.serialize_front_matter(parsed.front_matter))

        ordered = sorted(parsed.blocks, key=lambda b: b.order)
        parts.append("\n".join(block.content for block in ordered))
        return "".join(parts)

    def serialize_front_matter(self, front_matter: FrontMatter) -> str:
        """Render front matter; comma-separated values become YAML lists."""
        lines = [FRONT_MATTER_DELIMITER]
        for key, value in front_matter.properties.items():
            if "," in value:
                lines.append(f"{key}:")
                for item in value.split(","):
                    if item.strip():
                        lines.append(f"  - {item.strip()}")
            else:
                lines.append(f'{key}: "{value}"')
        lines.append(FRONT_MATTER_DELIMITER)
        return "\n".join(lines) + "\n"
