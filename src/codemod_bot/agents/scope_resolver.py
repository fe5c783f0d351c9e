"""Scope resolver: validates the session and normalizes the file scope."""

import logging
import re
from pathlib import Path

from codemod_bot.agents.exceptions import SessionNotFoundError
from codemod_bot.models import ModificationRequest, ResolvedScope
from codemod_bot.utils.paths import resolve_inside

logger = logging.getLogger(__name__)

MAX_SCOPE_FILES = 20

SKIP_DIRS = frozenset({
    ".git",
    ".idea",
    ".vscode",
    ".gradle",
    ".venv",
    "__pycache__",
    "node_modules",
    "build",
    "target",
    "out",
    "bin",
    "dist",
})

_WILDCARD_CHARS = ("*", "?")


def has_wildcard(pattern: str) -> bool:
    return any(char in pattern for char in _WILDCARD_CHARS)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a scope glob into a full-match regex over repo-relative paths.

    ``**/`` matches zero or more directories, ``**`` matches across
    separators, ``*`` stays within one segment and ``?`` matches a single
    non-separator character. Everything else is literal.
    """
    pattern = pattern.replace("\\", "/")
    if pattern.startswith("./"):
        pattern = pattern[2:]
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts))


class ScopeResolver:
    """Turns a request's file scope into a bounded, traversal-safe file list."""

    def __init__(
        self,
        max_files: int = MAX_SCOPE_FILES,
        skip_dirs: frozenset[str] | None = None,
    ) -> None:
        self.max_files = max_files
        self.skip_dirs = skip_dirs if skip_dirs is not None else SKIP_DIRS

    def resolve(self, request: ModificationRequest) -> ResolvedScope:
        """Validate the session and normalize the requested scope.

        Args:
            request: The modification request.

        Returns:
            ResolvedScope. is_valid is False when nothing matched or the
            scope exceeds max_files; the oversized case carries the
            truncated candidate list for display.

        Raises:
            SessionNotFoundError: If the session root is missing or not a directory.
        """
        root = self.validate_session(request.session_id)
        session_path = str(root)

        if request.file_scope:
            logger.info("Resolving %d file patterns", len(request.file_scope))
            files = self._resolve_patterns(request.file_scope, root)
        else:
            logger.info("No file scope specified, including all files")
            files = self.enumerate_files(root, root)

        if not files:
            logger.warning("No files matched the specified scope")
            return ResolvedScope(
                is_valid=False,
                session_path=session_path,
                error_message="No files matched the specified scope",
            )

        if len(files) > self.max_files:
            logger.warning(
                "File scope too large: %d files (max: %d)", len(files), self.max_files
            )
            return ResolvedScope(
                is_valid=False,
                session_path=session_path,
                normalized_files=files[: self.max_files],
                error_message=(
                    f"File scope too large: {len(files)} files (max: {self.max_files}). "
                    "Please narrow your scope."
                ),
            )

        logger.info("File scope normalized: %d files", len(files))
        return ResolvedScope(is_valid=True, session_path=session_path, normalized_files=files)

    def validate_session(self, session_id: str) -> Path:
        """Return the resolved checkout root for a session id."""
        if not session_id or not session_id.strip():
            raise SessionNotFoundError("Session not found: empty session id")
        root = Path(session_id).expanduser()
        if not root.exists() or not root.is_dir():
            raise SessionNotFoundError(
                f"Session not found: Repository does not exist at path: {session_id}"
            )
        return root.resolve()

    def enumerate_files(self, directory: Path, root: Path) -> list[str]:
        """Recursively list files under directory as root-relative POSIX paths.

        Skips dot-entries, the configured build/VCS/dependency directories
        and symlinks.
        """
        result: list[str] = []

        def traverse(current: Path) -> None:
            try:
                entries = sorted(current.iterdir(), key=lambda p: p.name)
            except OSError as exc:
                logger.warning("Cannot list directory %s: %s", current, exc)
                return
            for entry in entries:
                if entry.name.startswith(".") or entry.is_symlink():
                    continue
                if entry.is_dir():
                    if entry.name not in self.skip_dirs:
                        traverse(entry)
                elif entry.is_file():
                    result.append(entry.relative_to(root).as_posix())

        traverse(directory)
        return result

    def _resolve_patterns(self, patterns: list[str], root: Path) -> list[str]:
        resolved: dict[str, None] = {}
        all_files: list[str] | None = None

        for raw_pattern in patterns:
            pattern = raw_pattern.strip()
            if not pattern:
                continue

            if has_wildcard(pattern):
                if all_files is None:
                    all_files = self.enumerate_files(root, root)
                # A bare name pattern ("*.kt") matches at any depth.
                if "/" not in pattern.replace("\\", "/"):
                    pattern = f"**/{pattern}"
                regex = glob_to_regex(pattern)
                for file_path in all_files:
                    if regex.fullmatch(file_path):
                        resolved.setdefault(file_path, None)
                continue

            target = resolve_inside(root, pattern)
            if target is None:
                logger.warning("Ignoring scope entry outside the session: %s", pattern)
            elif target.is_file():
                resolved.setdefault(target.relative_to(root).as_posix(), None)
            elif target.is_dir():
                for file_path in self.enumerate_files(target, root):
                    resolved.setdefault(file_path, None)
            else:
                logger.warning("Scope entry does not exist: %s", pattern)

        return list(resolved)

