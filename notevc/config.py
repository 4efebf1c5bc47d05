"""
User settings for notevc.

Settings live in ~/.notevc/settings.yaml:

```yaml
notevc:
  author: "Alice Writer"
  log_level: "INFO"
  compression_enabled: true
```

Environment variables override the file:
- NOTEVC_AUTHOR
- NOTEVC_LOG_LEVEL
- NOTEVC_SETTINGS (alternate settings file path)

Repository-specific configuration is stored in the repository's own
metadata.json (see RepoConfig), not here.
"""

from __future__ import annotations

import getpass
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "notevc"


def default_settings_path() -> Path:
    override = os.environ.get("NOTEVC_SETTINGS")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".notevc" / "settings.yaml"


def _default_author() -> str:
    try:
        return getpass.getuser()
    except Exception:
        return "unknown"


@dataclass
class Settings:
    """Resolved user settings."""

    author: str
    log_level: str = "WARNING"
    compression_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "author": self.author,
            "log_level": self.log_level,
            "compression_enabled": self.compression_enabled,
        }


def _load_file(path: Path) -> dict[str, Any]:
    """Load the notevc section of a YAML settings file."""
    if not path.exists():
        return {}

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}

    if not isinstance(content, dict):
        logger.warning(f"Ignoring settings file {path}: expected a mapping")
        return {}
    section = content.get(SETTINGS_SECTION, {})
    return section if isinstance(section, dict) else {}


def load_settings(path: Path | None = None) -> Settings:
    """Resolve settings from the YAML file and environment.

    Args:
        path: Settings file. Defaults to ~/.notevc/settings.yaml

    Returns:
        Settings with environment overrides applied
    """
    config = _load_file(path or default_settings_path())

    author = os.environ.get("NOTEVC_AUTHOR") or config.get("author") or _default_author()
    log_level = os.environ.get("NOTEVC_LOG_LEVEL") or config.get("log_level") or "WARNING"
    compression = config.get("compression_enabled", True)

    return Settings(
        author=str(author),
        log_level=str(log_level).upper(),
        compression_enabled=bool(compression),
    )


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write settings back to the YAML file, keeping unrelated sections."""
    path = path or default_settings_path()

    existing: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                existing = loaded
        except yaml.YAMLError:
            existing = {}

    existing[SETTINGS_SECTION] = settings.to_dict()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(existing, default_flow_style=False, sort_keys=False), encoding="utf-8")
    return path
