"""
End-to-end tests for workspace operations.

These run real commits against a repository in tmp_path and inspect both
the returned results and the files left under .notevc. Commits are made
with explicit timestamps: snapshot files are named by the second, so two
commits of one file in the same second would overwrite each other.
"""

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from notevc.blocks import BlockChangeType, DiffLineKind, generate_block_id
from notevc.config import Settings
from notevc.exceptions import (
    AmbiguousBlockError,
    BlockNotFoundError,
    CommitNotFoundError,
    FileDisabledError,
    MissingBlobError,
    NoteFileNotFoundError,
    NotARepositoryError,
    RepositoryExistsError,
    TimelineIntegrityError,
    UnreadableNoteError,
    UnsupportedFileTypeError,
)
from notevc.logging_utils import ROOT_LOGGER_NAME
from notevc.repository import Repository
from notevc.timeline import commit_hash
from notevc.workspace import FileStatusType, Workspace

BASE_TIME = datetime(2024, 3, 15, 10, 30, 0, tzinfo=UTC)

NOTE_TWO_SECTIONS = "# Intro\nHello there.\n\n# Details\nSome details here.\n"
EDITED_DETAILS = "# Intro\nHello there.\n\n# Details\nChanged details.\n"
EDITED_BOTH = "# Intro\nHello edited.\n\n# Details\nChanged details.\n"

DETAILS_ID = generate_block_id("note.md", "# Details", 1)
INTRO_ID = generate_block_id("note.md", "# Intro", 0)

# "# C122" first and "# B" second in note.md get ids sharing the prefix "e87"
FIRST_LAYOUT = "# A\na\n# B\nb"
SECOND_LAYOUT = "# C122\nc\n# B\nb2"
C122_ID = generate_block_id("note.md", "# C122", 0)
B_ID = generate_block_id("note.md", "# B", 1)
SHARED_PREFIX = "e87"

INVALID_UTF8 = b"# Bad\n\xff\xfe\n"


def at(hours: float = 0, seconds: float = 0) -> datetime:
    """A timestamp offset from BASE_TIME."""
    return BASE_TIME + timedelta(hours=hours, seconds=seconds)


def snapshot_files(repo):
    return sorted(repo.blocks_dir.rglob("*.json"))


@pytest.fixture
def two_commits(workspace, write_note):
    """note.md committed, then its Details section edited and committed again."""
    write_note("note.md", NOTE_TWO_SECTIONS)
    first = workspace.commit("first", timestamp=at(0)).commit
    write_note("note.md", EDITED_DETAILS)
    second = workspace.commit("second", timestamp=at(1)).commit
    return first, second


@pytest.fixture
def shared_prefix_commits(workspace, write_note):
    """Two commits of note.md whose block ids overlap on SHARED_PREFIX."""
    write_note("note.md", FIRST_LAYOUT)
    first = workspace.commit("first", timestamp=at(0)).commit
    write_note("note.md", SECOND_LAYOUT)
    second = workspace.commit("second", timestamp=at(1)).commit
    return first, second


class TestWorkspaceSetup:
    """Tests for opening and creating workspaces."""

    def test_requires_initialized_repository(self, tmp_path: Path, settings: Settings) -> None:
        """Test that a workspace needs an initialized repository."""
        with pytest.raises(NotARepositoryError):
            Workspace(Repository.at(tmp_path), settings=settings)

    def test_create_seeds_compression_from_settings(self, tmp_path: Path) -> None:
        """Test that compression_enabled: false reaches a new repository."""
        repo = Repository.at(tmp_path)
        workspace = Workspace.create(repo, settings=Settings(author="tester", compression_enabled=False))
        assert repo.load_metadata().config.compression_enabled is False

        content = "# Long\n" + "x" * 200
        (tmp_path / "long.md").write_bytes(content.encode("utf-8"))
        workspace.commit("long", timestamp=at(0))

        state = repo.snapshot_store.latest_snapshot("long.md").blocks[0]
        assert repo.blob_store.object_path(state.content_hash).read_bytes() == content.encode("utf-8")

    def test_create_default_compresses(self, tmp_path: Path, settings: Settings) -> None:
        """Test that default settings create a compressing repository."""
        repo = Repository.at(tmp_path)
        Workspace.create(repo, settings=settings)
        assert repo.load_metadata().config.compression_enabled is True

    def test_create_existing_repository(self, repo: Repository, settings: Settings) -> None:
        """Test that create refuses an initialized repository."""
        with pytest.raises(RepositoryExistsError):
            Workspace.create(repo, settings=settings)

    def test_settings_log_level_applied(self, repo: Repository) -> None:
        """Test that the settings log level reaches the notevc logger."""
        Workspace(repo, settings=Settings(author="tester", log_level="DEBUG"))
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_settings_log_level_does_not_override_application(self, repo: Repository) -> None:
        """Test that an application-set level is kept."""
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.ERROR)
        Workspace(repo, settings=Settings(author="tester", log_level="DEBUG"))
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR


class TestCommit:
    """Tests for Workspace.commit."""

    def test_first_commit(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test the results and files of a first commit."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        result = workspace.commit("Initial notes", timestamp=at(0))

        assert result.changed
        assert result.commit.message == "Initial notes"
        assert result.commit.author == "tester"
        assert result.commit.parent is None
        assert [(f.path, f.block_count) for f in result.files] == [("note.md", 2)]
        assert result.total_blocks == 2

        assert len(repo.timeline.entries()) == 1
        files = snapshot_files(repo)
        assert len(files) == 1
        snapshot = json.loads(files[0].read_text(encoding="utf-8"))
        assert len(snapshot["blocks"]) == 2
        assert len(repo.blob_store.list_hashes()) <= 2

        metadata = repo.load_metadata()
        assert metadata.head == result.commit.hash
        assert metadata.last_commit.hash == result.commit.hash

    def test_recommit_without_changes_writes_nothing(
        self, workspace: Workspace, repo: Repository, write_note
    ) -> None:
        """Test that an unchanged tree leaves every file untouched."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        timeline_before = repo.timeline_path.read_bytes()
        metadata_before = repo.metadata_path.read_bytes()
        blobs_before = repo.blob_store.list_hashes()

        result = workspace.commit("again", timestamp=at(1))

        assert result.commit is None
        assert not result.changed
        assert repo.timeline_path.read_bytes() == timeline_before
        assert repo.metadata_path.read_bytes() == metadata_before
        assert repo.blob_store.list_hashes() == blobs_before
        assert len(snapshot_files(repo)) == 1

    def test_second_commit_links_parent(self, two_commits, repo: Repository) -> None:
        """Test the parent link and HEAD after two commits."""
        first, second = two_commits
        assert second.parent == first.hash
        assert [e.hash for e in repo.timeline.entries()] == [second.hash, first.hash]
        assert repo.load_metadata().head == second.hash

    def test_unchanged_block_reuses_blob(self, two_commits, repo: Repository) -> None:
        """Test that only the edited block adds an object."""
        assert len(repo.blob_store.list_hashes()) == 3

    def test_only_changed_files_are_snapshotted(self, workspace: Workspace, write_note) -> None:
        """Test that untouched files get no new snapshot."""
        write_note("a.md", "# A\none\n")
        write_note("sub/b.md", "# B\ntwo\n")
        first = workspace.commit("both", timestamp=at(0))
        assert [f.path for f in first.files] == ["a.md", "sub/b.md"]

        write_note("a.md", "# A\nedited\n")
        second = workspace.commit("just a", timestamp=at(1))
        assert [f.path for f in second.files] == ["a.md"]

    def test_single_file_commit_hash_includes_path(self, workspace: Workspace, write_note) -> None:
        """Test that a single-file commit mixes its path into the hash."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        write_note("other.md", "# Other\n")
        result = workspace.commit("one file", file="note.md", timestamp=at(0))

        assert [f.path for f in result.files] == ["note.md"]
        assert result.commit.hash == commit_hash(result.commit.timestamp, "one file", "note.md")
        assert "other.md" in [f.path for f in workspace.status().by_type(FileStatusType.UNTRACKED)]

    def test_single_file_missing(self, workspace: Workspace) -> None:
        """Test committing a file that does not exist."""
        with pytest.raises(NoteFileNotFoundError):
            workspace.commit("m", file="absent.md")

    def test_single_file_not_markdown(self, workspace: Workspace, write_note) -> None:
        """Test committing a non-Markdown file."""
        write_note("notes.txt", "text")
        with pytest.raises(UnsupportedFileTypeError):
            workspace.commit("m", file="notes.txt")

    def test_single_file_disabled(self, workspace: Workspace, write_note) -> None:
        """Test committing a file with enabled: false."""
        write_note("private.md", "---\nenabled: false\n---\n# Secret\n")
        with pytest.raises(FileDisabledError):
            workspace.commit("m", file="private.md")

    def test_all_files_skips_disabled(self, workspace: Workspace, write_note) -> None:
        """Test that whole-tree commits skip disabled files."""
        write_note("private.md", "---\nenabled: false\n---\n# Secret\n")
        write_note("public.md", "# Public\n")
        result = workspace.commit("m", timestamp=at(0))
        assert [f.path for f in result.files] == ["public.md"]

    def test_no_markdown_files(self, workspace: Workspace) -> None:
        """Test committing an empty tree."""
        with pytest.raises(NoteFileNotFoundError):
            workspace.commit("m")

    def test_metadata_directory_not_scanned(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test that .md files under .notevc are ignored."""
        (repo.metadata_dir / "stray.md").write_text("# Stray\n", encoding="utf-8")
        write_note("note.md", "# Note\n")
        result = workspace.commit("m", timestamp=at(0))
        assert [f.path for f in result.files] == ["note.md"]

    def test_all_files_skips_invalid_utf8(self, workspace: Workspace, write_note) -> None:
        """Test that a whole-tree commit skips a note that is not UTF-8."""
        write_note("good.md", "# Good\n")
        write_note("bad.md", INVALID_UTF8)
        result = workspace.commit("m", timestamp=at(0))
        assert [f.path for f in result.files] == ["good.md"]

    def test_single_file_invalid_utf8(self, workspace: Workspace, write_note) -> None:
        """Test that committing one non-UTF-8 note raises."""
        write_note("bad.md", INVALID_UTF8)
        with pytest.raises(UnreadableNoteError) as exc_info:
            workspace.commit("m", file="bad.md")
        assert exc_info.value.path == "bad.md"
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_front_matter_only_change_commits(self, workspace: Workspace, write_note) -> None:
        """Test that editing only front matter is a change."""
        write_note("note.md", '---\ntitle: "One"\n---\n# A\nbody\n')
        workspace.commit("first", timestamp=at(0))
        write_note("note.md", '---\ntitle: "Two"\n---\n# A\nbody\n')

        result = workspace.commit("retitle", timestamp=at(1))

        assert result.changed
        assert [f.path for f in result.files] == ["note.md"]

    def test_same_timestamp_and_message_rejected(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test that a commit identical in time and message writes nothing."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("save", timestamp=at(0))
        snapshot_before = snapshot_files(repo)[0].read_bytes()
        timeline_before = repo.timeline_path.read_bytes()
        write_note("note.md", EDITED_DETAILS)

        with pytest.raises(TimelineIntegrityError):
            workspace.commit("save", timestamp=at(0))

        assert snapshot_files(repo)[0].read_bytes() == snapshot_before
        assert repo.timeline_path.read_bytes() == timeline_before
        repo.timeline.verify()


class TestStatus:
    """Tests for Workspace.status."""

    def test_clean_after_commit(self, workspace: Workspace, write_note) -> None:
        """Test a clean tree right after a commit."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        assert workspace.status().clean

    def test_untracked_modified_deleted(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test each file status type."""
        write_note("kept.md", "# Kept\n")
        write_note("gone.md", "# Gone\n")
        workspace.commit("first", timestamp=at(0))

        write_note("kept.md", "# Kept\nmore\n")
        (repo.root / "gone.md").unlink()
        write_note("new.md", "# New\none\n# Two\n")

        status = workspace.status()
        by_path = {f.path: f for f in status.files}
        assert by_path["kept.md"].type == FileStatusType.MODIFIED
        assert [c.type for c in by_path["kept.md"].changes] == [BlockChangeType.MODIFIED]
        assert by_path["gone.md"].type == FileStatusType.DELETED
        assert by_path["new.md"].type == FileStatusType.UNTRACKED
        assert by_path["new.md"].block_count == 2

    def test_status_writes_nothing(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test that status stores no blobs or snapshots."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.status()
        assert repo.blob_store.list_hashes() == []
        assert snapshot_files(repo) == []

    def test_front_matter_change_is_modified(self, workspace: Workspace, write_note) -> None:
        """Test that a front matter edit shows as modified with no block changes."""
        write_note("note.md", '---\ntitle: "One"\n---\n# A\nbody\n')
        workspace.commit("first", timestamp=at(0))
        write_note("note.md", '---\ntitle: "Two"\n---\n# A\nbody\n')

        [status] = workspace.status().files
        assert status.type == FileStatusType.MODIFIED
        assert status.front_matter_changed
        assert status.changes == []

    def test_invalid_utf8_skipped(self, workspace: Workspace, write_note) -> None:
        """Test that status leaves out a note that is not UTF-8."""
        write_note("good.md", "# Good\n")
        write_note("bad.md", INVALID_UTF8)
        assert [f.path for f in workspace.status().files] == ["good.md"]


class TestDiff:
    """Tests for Workspace.diff and diff_block."""

    def test_working_tree_against_latest(self, workspace: Workspace, write_note) -> None:
        """Test the default working tree diff."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        write_note("note.md", EDITED_DETAILS)

        diffs = workspace.diff()
        assert len(diffs) == 1
        assert diffs[0].path == "note.md"
        assert [(c.type, c.block_id) for c in diffs[0].changes] == [(BlockChangeType.MODIFIED, DETAILS_ID)]
        assert diffs[0].counts()[BlockChangeType.MODIFIED] == 1

    def test_no_changes_empty(self, workspace: Workspace, write_note) -> None:
        """Test that an unchanged tree has no diffs."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        assert workspace.diff() == []

    def test_between_commits(self, workspace: Workspace, two_commits) -> None:
        """Test diffing two commits."""
        first, second = two_commits
        diffs = workspace.diff(first.hash, second.hash)
        assert [c.type for c in diffs[0].changes] == [BlockChangeType.MODIFIED]
        assert workspace.diff(first.hash, first.hash) == []

    def test_working_tree_against_commit(self, workspace: Workspace, two_commits, write_note) -> None:
        """Test diffing the working tree against an older commit."""
        first, _ = two_commits
        write_note("note.md", EDITED_BOTH)
        diffs = workspace.diff(first.hash[:5])
        assert sorted(c.block_id for c in diffs[0].changes) == sorted([INTRO_ID, DETAILS_ID])

    def test_unknown_commit(self, workspace: Workspace, two_commits) -> None:
        """Test diffing against an unknown commit."""
        with pytest.raises(CommitNotFoundError):
            workspace.diff("ffffffff")

    def test_invalid_utf8_skipped(self, workspace: Workspace, write_note) -> None:
        """Test that a whole-tree diff skips a note that is not UTF-8."""
        write_note("good.md", "# Good\n")
        workspace.commit("first", timestamp=at(0))
        write_note("good.md", "# Good\nmore\n")
        write_note("bad.md", INVALID_UTF8)
        assert [d.path for d in workspace.diff()] == ["good.md"]

    def test_render_modified_change(self, workspace: Workspace, two_commits) -> None:
        """Test the line view of a modified block."""
        first, second = two_commits
        change = workspace.diff(first.hash, second.hash)[0].changes[0]
        rendered = workspace.render_change(change)
        assert [(line.kind, line.text) for line in rendered.lines[:3]] == [
            (DiffLineKind.CONTEXT, "# Details"),
            (DiffLineKind.REMOVED, "Some details here."),
            (DiffLineKind.ADDED, "Changed details."),
        ]

    def test_diff_block(self, workspace: Workspace, write_note) -> None:
        """Test diffing single blocks by id prefix."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        write_note("note.md", EDITED_DETAILS)

        block_diff = workspace.diff_block(DETAILS_ID[:6], "note.md")
        assert block_diff.block_id == DETAILS_ID
        assert block_diff.change.type == BlockChangeType.MODIFIED

        unchanged = workspace.diff_block(INTRO_ID[:6], "note.md")
        assert unchanged.change is None
        assert unchanged.lines.lines == []

    def test_diff_block_unknown(self, workspace: Workspace, write_note) -> None:
        """Test diffing a block id nobody has."""
        write_note("note.md", NOTE_TWO_SECTIONS)
        workspace.commit("first", timestamp=at(0))
        with pytest.raises(BlockNotFoundError):
            workspace.diff_block("zzzz", "note.md")

    def test_diff_block_ambiguous_prefix(self, workspace: Workspace, shared_prefix_commits) -> None:
        """Test that a prefix shared by two blocks is rejected."""
        assert C122_ID.startswith(SHARED_PREFIX) and B_ID.startswith(SHARED_PREFIX)
        with pytest.raises(AmbiguousBlockError) as exc_info:
            workspace.diff_block(SHARED_PREFIX, "note.md")
        assert exc_info.value.matches == sorted([C122_ID, B_ID])

    def test_diff_block_full_id_with_shared_prefix(self, workspace: Workspace, shared_prefix_commits) -> None:
        """Test that a full id picks one of two blocks sharing a prefix."""
        block_diff = workspace.diff_block(B_ID, "note.md")
        assert block_diff.block_id == B_ID
        assert block_diff.heading == "# B"


class TestShow:
    """Tests for show, file_at, block_at and commit_files."""

    def test_first_commit_adds_all_blocks(self, workspace: Workspace, two_commits) -> None:
        """Test that the first commit shows every block as added."""
        first, _ = two_commits
        details = workspace.show(first.hash)
        assert details.commit == first
        assert details.summary() == {"ADDED": 2, "MODIFIED": 0, "DELETED": 0}

    def test_second_commit_against_parent(self, workspace: Workspace, two_commits) -> None:
        """Test that later commits are compared to their parent."""
        _, second = two_commits
        details = workspace.show(second.hash[:4])
        assert [f.path for f in details.files] == ["note.md"]
        assert details.summary() == {"ADDED": 0, "MODIFIED": 1, "DELETED": 0}

    def test_file_at(self, workspace: Workspace, two_commits) -> None:
        """Test reconstructing a file at each commit."""
        first, second = two_commits
        assert workspace.file_at(first.hash, "note.md") == NOTE_TWO_SECTIONS
        assert workspace.file_at(second.hash, "note.md") == EDITED_DETAILS

    def test_block_at(self, workspace: Workspace, two_commits) -> None:
        """Test reading one block at a commit."""
        first, _ = two_commits
        block = workspace.block_at(first.hash, "note.md", DETAILS_ID[:8])
        assert block.content == "# Details\nSome details here.\n"

    def test_block_at_unknown_block(self, workspace: Workspace, two_commits) -> None:
        """Test reading a block id that does not exist."""
        first, _ = two_commits
        with pytest.raises(BlockNotFoundError):
            workspace.block_at(first.hash, "note.md", "zzzz")

    def test_block_at_ambiguous_prefix(self, workspace: Workspace, shared_prefix_commits) -> None:
        """Test that block_at rejects a prefix shared by two blocks."""
        _, second = shared_prefix_commits
        with pytest.raises(AmbiguousBlockError):
            workspace.block_at(second.hash, "note.md", SHARED_PREFIX)
        assert workspace.block_at(second.hash, "note.md", B_ID).content == "# B\nb2"

    def test_commit_files(self, workspace: Workspace, two_commits) -> None:
        """Test listing files and headings around a commit."""
        first, _ = two_commits
        assert workspace.commit_files(first.hash) == [{"path": "note.md", "blocks": ["# Intro", "# Details"]}]


class TestLog:
    """Tests for Workspace.log."""

    def test_newest_first(self, workspace: Workspace, two_commits) -> None:
        """Test log order."""
        first, second = two_commits
        assert [c.hash for c in workspace.log()] == [second.hash, first.hash]

    def test_max_count(self, workspace: Workspace, two_commits) -> None:
        """Test limiting the number of commits."""
        _, second = two_commits
        assert [c.hash for c in workspace.log(max_count=1)] == [second.hash]

    def test_since_datetime(self, workspace: Workspace, two_commits) -> None:
        """Test filtering by a datetime."""
        _, second = two_commits
        assert [c.hash for c in workspace.log(since=at(0.5))] == [second.hash]

    def test_since_iso_string(self, workspace: Workspace, two_commits) -> None:
        """Test filtering by an ISO timestamp string."""
        _, second = two_commits
        assert [c.hash for c in workspace.log(since=at(0.5).isoformat())] == [second.hash]

    def test_file_filter(self, workspace: Workspace, write_note) -> None:
        """Test keeping only commits that touched a file."""
        write_note("a.md", "# A\n")
        first = workspace.commit("a", file="a.md", timestamp=at(0)).commit
        write_note("b.md", "# B\n")
        workspace.commit("b", file="b.md", timestamp=at(1))

        assert [c.hash for c in workspace.log(file="a.md")] == [first.hash]


class TestRestore:
    """Tests for Workspace.restore."""

    def test_restore_repository_reproduces_bytes(self, workspace: Workspace, repo: Repository, two_commits) -> None:
        """Test restoring every file to a commit."""
        first, _ = two_commits
        result = workspace.restore(first.hash)

        assert result.files == ["note.md"]
        assert result.block_count == 2
        assert (repo.root / "note.md").read_bytes() == NOTE_TWO_SECTIONS.encode("utf-8")

    def test_restore_single_file(self, workspace: Workspace, repo: Repository, two_commits) -> None:
        """Test restoring one file."""
        first, _ = two_commits
        workspace.restore(first.hash, file="note.md")
        assert (repo.root / "note.md").read_bytes() == NOTE_TWO_SECTIONS.encode("utf-8")

    def test_restore_deleted_file(self, workspace: Workspace, repo: Repository, two_commits) -> None:
        """Test bringing back a deleted file."""
        _, second = two_commits
        (repo.root / "note.md").unlink()
        workspace.restore(second.hash, file="note.md")
        assert (repo.root / "note.md").read_text(encoding="utf-8") == EDITED_DETAILS

    def test_restore_front_matter_bytes(self, workspace: Workspace, repo: Repository, write_note) -> None:
        """Test that restoring brings back the earlier front matter exactly."""
        original = '---\ntitle: "One"\n---\n# A\nbody\n'
        write_note("note.md", original)
        first = workspace.commit("first", timestamp=at(0)).commit
        write_note("note.md", '---\ntitle: "Two"\n---\n# A\nbody\n')
        workspace.commit("retitle", timestamp=at(1))

        workspace.restore(first.hash, file="note.md")

        assert (repo.root / "note.md").read_bytes() == original.encode("utf-8")

    def test_restore_block_only(self, workspace: Workspace, repo: Repository, two_commits, write_note) -> None:
        """Test restoring one block and keeping the others."""
        first, _ = two_commits
        write_note("note.md", EDITED_BOTH)

        result = workspace.restore(first.hash, file="note.md", block=DETAILS_ID[:6])

        assert result.block_id == DETAILS_ID
        assert (repo.root / "note.md").read_text(encoding="utf-8") == (
            "# Intro\nHello edited.\n\n# Details\nSome details here.\n"
        )

    def test_restore_block_replaces_same_id(
        self, workspace: Workspace, repo: Repository, shared_prefix_commits
    ) -> None:
        """Test that a block restore replaces the block with the same id only."""
        first, _ = shared_prefix_commits

        result = workspace.restore(first.hash, file="note.md", block=SHARED_PREFIX[:2])

        assert result.block_id == B_ID
        assert (repo.root / "note.md").read_text(encoding="utf-8") == "# C122\nc\n# B\nb"

    def test_restore_block_ambiguous_prefix(
        self, workspace: Workspace, repo: Repository, shared_prefix_commits
    ) -> None:
        """Test that an ambiguous block prefix restores nothing."""
        _, second = shared_prefix_commits
        with pytest.raises(AmbiguousBlockError):
            workspace.restore(second.hash, file="note.md", block=SHARED_PREFIX)
        assert (repo.root / "note.md").read_text(encoding="utf-8") == SECOND_LAYOUT

    def test_restore_block_absent_from_current_file(self, workspace: Workspace, shared_prefix_commits) -> None:
        """Test restoring a block the current file no longer has."""
        first, _ = shared_prefix_commits
        with pytest.raises(BlockNotFoundError):
            workspace.restore(first.hash, file="note.md", block=generate_block_id("note.md", "# A", 0))

    def test_restore_block_requires_file(self, workspace: Workspace, two_commits) -> None:
        """Test that a block restore needs a file."""
        first, _ = two_commits
        with pytest.raises(ValueError):
            workspace.restore(first.hash, block=DETAILS_ID)

    def test_restore_does_not_commit(self, workspace: Workspace, repo: Repository, two_commits) -> None:
        """Test that restore leaves the timeline and HEAD alone."""
        first, second = two_commits
        workspace.restore(first.hash)
        assert repo.timeline.head() == second
        assert repo.load_metadata().head == second.hash

    def test_missing_blob_leaves_tree_untouched(
        self, workspace: Workspace, repo: Repository, two_commits, write_note
    ) -> None:
        """Test that a missing blob aborts before any write."""
        first, _ = two_commits
        write_note("note.md", EDITED_BOTH)
        snapshot = repo.snapshot_store.latest_snapshot_before("note.md", first.time)
        repo.blob_store.object_path(snapshot.blocks[0].content_hash).unlink()

        with pytest.raises(MissingBlobError):
            workspace.restore(first.hash)
        assert (repo.root / "note.md").read_text(encoding="utf-8") == EDITED_BOTH

    def test_unknown_commit(self, workspace: Workspace, two_commits) -> None:
        """Test restoring an unknown commit."""
        with pytest.raises(CommitNotFoundError):
            workspace.restore("ffffffff")
