"""Code context builder: reads scoped files and derives style signals."""

import logging
from collections import Counter
from pathlib import Path

from codemod_bot.agents.exceptions import ScopeResolutionError
from codemod_bot.models import CodeContext, FileContext, ResolvedScope, StylePatterns
from codemod_bot.utils.ast_parser import python_outline
from codemod_bot.utils.diff_generator import detect_code_style, detect_naming_convention

logger = logging.getLogger(__name__)

MAX_CONTEXT_FILES = 20
MAX_CONTENT_CHARS = 5000

LANGUAGE_BY_EXTENSION = {
    "kt": "Kotlin",
    "kts": "Kotlin",
    "java": "Java",
    "js": "JavaScript",
    "jsx": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "rs": "Rust",
    "go": "Go",
}


def detect_language(file_path: str) -> str:
    """Language label from the file extension; unknown extensions are upper-cased."""
    extension = Path(file_path).suffix.lstrip(".").lower()
    return LANGUAGE_BY_EXTENSION.get(extension, extension.upper())


class CodeContextBuilder:
    """Builds the CodeContext handed to the change planner."""

    def __init__(
        self,
        max_files: int = MAX_CONTEXT_FILES,
        max_content_chars: int = MAX_CONTENT_CHARS,
    ) -> None:
        self.max_files = max_files
        self.max_content_chars = max_content_chars

    def build(self, scope: ResolvedScope) -> CodeContext:
        """Read up to max_files files from the resolved scope.

        Missing or unreadable files are skipped with a warning.

        Raises:
            ScopeResolutionError: If the scope is invalid
        """
        if not scope.is_valid or not scope.session_path:
            raise ScopeResolutionError(
                scope.error_message or "Cannot build context for an invalid scope"
            )

        root = Path(scope.session_path)
        relevant = scope.normalized_files[: self.max_files]
        logger.info("Building context for %d files", len(relevant))

        file_contexts: list[FileContext] = []
        for relative_path in relevant:
            file_context = self._read_file(root, relative_path)
            if file_context is not None:
                file_contexts.append(file_context)

        return CodeContext(
            relevant_files=relevant,
            file_contexts=file_contexts,
            style_patterns=self.analyze_style(file_contexts),
        )

    def _read_file(self, root: Path, relative_path: str) -> FileContext | None:
        path = root / relative_path
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Failed to read file %s: %s", relative_path, exc)
            return None

        language = detect_language(relative_path)
        imports: list[str] = []
        classes: list[str] = []
        functions: list[str] = []
        if language == "Python":
            imports, classes, functions = python_outline(text)

        return FileContext(
            file_path=relative_path,
            content=text[: self.max_content_chars],
            language=language,
            total_lines=len(text.splitlines()),
            imports=imports,
            classes=classes,
            functions=functions,
        )

    def analyze_style(self, file_contexts: list[FileContext]) -> StylePatterns:
        """Rule-of-thumb style analysis; falls back to defaults."""
        patterns = StylePatterns()
        if not file_contexts:
            return patterns

        indents: Counter[str] = Counter()
        naming: Counter[str] = Counter()
        quotes: Counter[str] = Counter()
        for file_context in file_contexts:
            style = detect_code_style(file_context.content)
            if any(line[:1].isspace() for line in file_context.content.splitlines()):
                indents[style["indent"]] += 1
            quotes[style["quotes"]] += 1
            convention = detect_naming_convention(file_context.content)
            if convention:
                naming[convention] += 1

        if indents:
            patterns.indentation = indents.most_common(1)[0][0]
        if naming:
            patterns.naming_convention = naming.most_common(1)[0][0]
        if quotes:
            patterns.common_patterns.append(f"{quotes.most_common(1)[0][0]} quotes")

        languages = sorted({fc.language for fc in file_contexts if fc.language})
        if languages:
            patterns.common_patterns.append("languages: " + ", ".join(languages))
        return patterns
