"""
Shared test configuration and fixtures.

Every repository fixture lives in pytest's tmp_path.
"""

import logging
from pathlib import Path

import pytest

from notevc.config import Settings
from notevc.logging_utils import ROOT_LOGGER_NAME
from notevc.repository import Repository
from notevc.workspace import Workspace


@pytest.fixture(autouse=True)
def reset_notevc_logger():
    """Workspaces apply the settings log level; start each test unset."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.NOTSET)
    yield
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def settings() -> Settings:
    return Settings(author="tester")


@pytest.fixture
def repo(tmp_path: Path) -> Repository:
    """An initialized, empty repository."""
    repository = Repository.at(tmp_path)
    repository.init()
    return repository


@pytest.fixture
def workspace(repo: Repository, settings: Settings) -> Workspace:
    return Workspace(repo, settings=settings)


@pytest.fixture
def write_note(repo: Repository):
    """Write a note into the repository root and return its path."""

    def _write(relative: str, content: str | bytes) -> Path:
        path = repo.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if isinstance(content, bytes) else content.encode("utf-8"))
        return path

    return _write
