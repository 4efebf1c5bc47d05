"""
JSON file operations for repository metadata.

Provides read/write helpers for the small JSON documents under ``.notevc``:
- Atomic writes using temp file + rename
- Errors wrapped in StorageIOError with the failing path
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..exceptions import StorageIOError


def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path), e) from e


def read_json(path: Path) -> Any:
    """Read a JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data or None if file doesn't exist or is blank
    """
    try:
        if not path.exists():
            return None
        content = path.read_text(encoding="utf-8")
        return json.loads(content) if content.strip() else None
    except json.JSONDecodeError as e:
        raise StorageIOError("parse_json", str(path), e) from e
    except OSError as e:
        raise StorageIOError("read_json", str(path), e) from e


def write_json_atomic(path: Path, data: Any, indent: int | None = 2) -> None:
    """Write JSON file atomically using temp file + rename.

    Args:
        path: Target path for JSON file
        data: Data to serialize as JSON
        indent: Indentation passed to json.dumps (None for compact output)
    """
    write_bytes_atomic(path, json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8"))


def write_bytes_atomic(path: Path, payload: bytes) -> None:
    """Write raw bytes atomically using temp file + rename.

    Args:
        path: Target path
        payload: Bytes to write
    """
    ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)
    except OSError as e:
        # Clean up temp file on error
        try:
            os.remove(temp_path)
        except OSError:
            pass
        raise StorageIOError("write", str(path), e) from e
