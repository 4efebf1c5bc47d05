"""
Custom exceptions for notevc.

Every component raises these exceptions so callers (a command layer,
an editor plugin) can handle failures uniformly without parsing messages.
"""


class NoteVCError(Exception):
    """Base exception for all notevc errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotARepositoryError(NoteVCError):
    """Raised when no repository can be resolved for a path."""

    def __init__(self, path: str, reason: str | None = None):
        details = {"path": path}
        if reason:
            details["reason"] = reason
        message = f"Not a notevc repository: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, details)
        self.path = path
        self.reason = reason


class RepositoryExistsError(NoteVCError):
    """Raised when initializing a repository that already exists."""

    def __init__(self, path: str):
        super().__init__(f"Repository already initialized at {path}", {"path": path})
        self.path = path


class NoteFileNotFoundError(NoteVCError):
    """Raised when a note file does not exist.

    Note: Named NoteFileNotFoundError to avoid shadowing the builtin FileNotFoundError.
    """

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}", {"path": path})
        self.path = path


class UnsupportedFileTypeError(NoteVCError):
    """Raised when a non-Markdown file is handed to the engine."""

    def __init__(self, path: str):
        super().__init__(
            f"Only markdown files (.md) are supported: {path}",
            {"path": path},
        )
        self.path = path


class FileDisabledError(NoteVCError):
    """Raised when committing a file whose front matter sets enabled: false."""

    def __init__(self, path: str):
        super().__init__(
            f"File {path} is disabled (enabled: false in front matter)",
            {"path": path},
        )
        self.path = path


class InvalidHashError(NoteVCError, ValueError):
    """Raised when a hash string is malformed or too short."""

    def __init__(self, value: str, reason: str):
        super().__init__(f"Invalid hash '{value}': {reason}", {"value": value, "reason": reason})
        self.value = value
        self.reason = reason


class MissingBlobError(NoteVCError):
    """Raised when a block state references content absent from the blob store."""

    def __init__(self, content_hash: str, block_id: str | None = None):
        details = {"content_hash": content_hash}
        if block_id:
            details["block_id"] = block_id
        message = f"Missing content {content_hash}"
        if block_id:
            message += f" for block {block_id}"
        super().__init__(message, details)
        self.content_hash = content_hash
        self.block_id = block_id


class CorruptSnapshotError(NoteVCError):
    """Raised when a snapshot file cannot be read or parsed."""

    def __init__(self, path: str, cause: Exception | None = None):
        details = {"path": path}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Corrupt snapshot: {path}", details)
        self.path = path
        self.cause = cause


class CommitNotFoundError(NoteVCError):
    """Raised when no commit matches a hash prefix."""

    def __init__(self, commit_ref: str):
        super().__init__(f"Commit {commit_ref} not found", {"commit": commit_ref})
        self.commit_ref = commit_ref


class AmbiguousCommitError(NoteVCError):
    """Raised when a hash prefix matches more than one commit."""

    def __init__(self, commit_ref: str, matches: list[str]):
        shown = ", ".join(matches[:3])
        if len(matches) > 3:
            shown += f" and {len(matches) - 3} more"
        super().__init__(
            f"Ambiguous commit '{commit_ref}' matches {len(matches)} commits: {shown}",
            {"commit": commit_ref, "matches": matches},
        )
        self.commit_ref = commit_ref
        self.matches = matches


class BlockNotFoundError(NoteVCError):
    """Raised when a block id prefix does not match any block."""

    def __init__(self, block_ref: str, file_path: str | None = None, commit: str | None = None):
        details = {"block": block_ref}
        if file_path:
            details["file_path"] = file_path
        if commit:
            details["commit"] = commit
        message = f"Block {block_ref} not found"
        if file_path:
            message += f" in {file_path}"
        if commit:
            message += f" at commit {commit}"
        super().__init__(message, details)
        self.block_ref = block_ref
        self.file_path = file_path
        self.commit = commit


class TimelineIntegrityError(NoteVCError):
    """Raised when the commit timeline has a dangling or cyclic parent link."""

    def __init__(self, commit_hash: str, reason: str):
        super().__init__(
            f"Timeline integrity error at {commit_hash}: {reason}",
            {"commit": commit_hash, "reason": reason},
        )
        self.commit_hash = commit_hash
        self.reason = reason


class StorageIOError(NoteVCError):
    """Raised when a repository file operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class UnreadableNoteError(NoteVCError):
    """Raised when a note cannot be read or is not valid UTF-8."""

    def __init__(self, path: str, cause: Exception | None = None):
        details = {"path": path}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Cannot read note {path}", details)
        self.path = path
        self.cause = cause


class AmbiguousBlockError(NoteVCError):
    """Raised when a block id prefix matches more than one block."""

    def __init__(self, block_ref: str, matches: list[str], file_path: str | None = None):
        message = f"Ambiguous block '{block_ref}' matches {len(matches)} blocks"
        if file_path:
            message += f" in {file_path}"
        super().__init__(
            f"{message}: {', '.join(matches)}",
            {"block": block_ref, "matches": matches, "file_path": file_path},
        )
        self.block_ref = block_ref
        self.matches = matches
        self.file_path = file_path
