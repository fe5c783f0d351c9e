"""Change auditor: syntax and breaking-change review of a plan."""

import json
import logging
from pathlib import Path

from codemod_bot.agents.exceptions import AuditError
from codemod_bot.models import AuditResult, ChangeType, ModificationPlan, ProposedChange
from codemod_bot.utils.ast_parser import (
    extract_exports,
    find_syntax_error,
    is_tree_sitter_file,
    parse_source,
    python_public_symbols,
    python_syntax_error,
)
from codemod_bot.utils.paths import resolve_inside

logger = logging.getLogger(__name__)

CONTENT_CHANGE_TYPES = frozenset({ChangeType.CREATE, ChangeType.MODIFY, ChangeType.REFACTOR})
SYMBOL_CHANGE_TYPES = frozenset({ChangeType.MODIFY, ChangeType.REFACTOR})


class ChangeAuditor:
    """Checks proposed changes for syntax errors and breaking changes."""

    def audit(self, plan: ModificationPlan, session_path: str) -> AuditResult:
        """Audit an ordered plan against the checkout at session_path.

        Breaking changes are only looked for once every file parses; they
        are reported, never blocking.
        """
        root = Path(session_path).resolve()
        if not root.is_dir():
            raise AuditError(f"Session path is not a directory: {session_path}")
        errors: list[str] = []
        for change in plan.changes:
            error = self.check_syntax(change, root)
            if error:
                errors.append(error)

        if errors:
            logger.warning("Audit found %d syntax errors", len(errors))
            return AuditResult(
                syntax_valid=False,
                errors=errors,
                notes=f"Syntax validation failed for {len(errors)} change(s)",
            )

        breaking: list[str] = []
        for change in plan.changes:
            breaking.extend(self.find_breaking_changes(change, root))

        notes = f"Audited {len(plan.changes)} change(s)"
        if breaking:
            notes += "; breaking changes: " + "; ".join(breaking)
        logger.info("Audit passed with %d breaking changes", len(breaking))
        return AuditResult(syntax_valid=True, breaking_changes=breaking, notes=notes)

    def check_syntax(self, change: ProposedChange, root: Path) -> str | None:
        """Return one error line for the change, or None if it is acceptable."""
        if resolve_inside(root, change.file_path) is None:
            return f"{change.file_path}: path is outside the session root"
        if change.change_type == ChangeType.RENAME:
            target = change.rename_target()
            if not target or resolve_inside(root, target) is None:
                return f"{change.file_path}: invalid rename destination {target!r}"
            return None
        if change.change_type not in CONTENT_CHANGE_TYPES:
            return None

        file_path = change.file_path
        content = change.new_content
        suffix = Path(file_path).suffix.lower()

        if suffix == ".py":
            error = python_syntax_error(content)
            return f"{file_path}: {error}" if error else None
        if suffix == ".json":
            try:
                json.loads(content)
            except json.JSONDecodeError as exc:
                return f"{file_path}: line {exc.lineno}: {exc.msg}"
            return None
        if is_tree_sitter_file(file_path):
            line = find_syntax_error(parse_source(file_path, content))
            return f"{file_path}: line {line}: syntax error" if line is not None else None
        return None

    def find_breaking_changes(self, change: ProposedChange, root: Path) -> list[str]:
        current_path = resolve_inside(root, change.file_path)
        if current_path is None or not current_path.is_file():
            return []

        if change.change_type == ChangeType.DELETE:
            return [f"Deletes existing file {change.file_path}"]
        if change.change_type == ChangeType.RENAME:
            return [f"Renames existing file {change.file_path} to {change.rename_target()}"]
        if change.change_type not in SYMBOL_CHANGE_TYPES:
            return []

        try:
            current = current_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read %s for breaking-change check: %s", change.file_path, exc)
            return []

        removed = sorted(self._public_names(change.file_path, current)
                         - self._public_names(change.file_path, change.new_content))
        return [f"Removes public symbol '{name}' from {change.file_path}" for name in removed]

    @staticmethod
    def _public_names(file_path: str, content: str) -> set[str]:
        if Path(file_path).suffix.lower() == ".py":
            return python_public_symbols(content)
        if is_tree_sitter_file(file_path):
            return set(extract_exports(parse_source(file_path, content)))
        return set()

