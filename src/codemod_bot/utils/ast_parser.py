"""Source parsing helpers: tree-sitter for JS/TS, ``ast`` for Python."""

import ast
from pathlib import Path

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Tree

JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

_TS_EXTENSIONS = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

_LANGUAGES = {
    "javascript": JS_LANGUAGE,
    "typescript": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
}


def get_language_for_file(file_path: str) -> str:
    """Map file extension to tree-sitter language name.

    Raises:
        ValueError: If file extension is not supported
    """
    ext = Path(file_path).suffix.lower()
    if ext not in _TS_EXTENSIONS:
        raise ValueError(f"Unsupported file extension: {ext}")
    return _TS_EXTENSIONS[ext]


def is_tree_sitter_file(file_path: str) -> bool:
    return Path(file_path).suffix.lower() in _TS_EXTENSIONS


def get_parser(language: str) -> Parser:
    """Return a tree-sitter Parser for "javascript", "typescript" or "tsx"."""
    if language not in _LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    parser = Parser()
    parser.language = _LANGUAGES[language]
    return parser


def parse_source(file_path: str, content: str) -> Tree:
    """Parse in-memory content using the language implied by file_path."""
    parser = get_parser(get_language_for_file(file_path))
    return parser.parse(content.encode("utf-8"))


def find_syntax_error(tree: Tree) -> int | None:
    """Return the 1-based line of the first ERROR/MISSING node, or None."""
    if not tree.root_node.has_error:
        return None

    def walk(node: Node) -> int | None:
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        for child in node.children:
            if child.has_error or child.is_missing or child.type == "ERROR":
                line = walk(child)
                if line is not None:
                    return line
        return None

    line = walk(tree.root_node)
    return line if line is not None else tree.root_node.start_point[0] + 1


def extract_exports(tree: Tree) -> list[str]:
    """Extract exported symbol names from top-level export statements."""
    exports: list[str] = []

    def name_of(node: Node) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.text:
            return name_node.text.decode("utf-8")
        return None

    def collect(node: Node) -> None:
        if node.type == "export_specifier":
            name = name_of(node)
            alias = node.child_by_field_name("alias")
            if alias is not None and alias.text:
                exports.append(alias.text.decode("utf-8"))
            elif name:
                exports.append(name)
            return
        if node.type in (
            "function_declaration",
            "generator_function_declaration",
            "class_declaration",
            "abstract_class_declaration",
            "interface_declaration",
            "type_alias_declaration",
            "enum_declaration",
            "variable_declarator",
        ):
            name = name_of(node)
            if name:
                exports.append(name)
            return
        for child in node.children:
            collect(child)

    for child in tree.root_node.children:
        if child.type != "export_statement":
            continue
        if any(grandchild.type == "default" for grandchild in child.children):
            exports.append("default")
        collect(child)

    return exports


def python_syntax_error(content: str) -> str | None:
    """Return "line N: message" for invalid Python source, None if it parses."""
    try:
        ast.parse(content)
    except SyntaxError as exc:
        return f"line {exc.lineno}: {exc.msg}"
    return None


def python_outline(content: str) -> tuple[list[str], list[str], list[str]]:
    """Top-level (imports, classes, functions) of a Python module.

    Returns empty lists when the source does not parse.
    """
    try:
        module = ast.parse(content)
    except SyntaxError:
        return [], [], []

    imports: list[str] = []
    classes: list[str] = []
    functions: list[str] = []
    for node in module.body:
        if isinstance(node, ast.Import):
            imports.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            imports.append("." * node.level + (node.module or ""))
        elif isinstance(node, ast.ClassDef):
            classes.append(node.name)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            functions.append(node.name)
    return imports, classes, functions


def python_public_symbols(content: str) -> set[str]:
    """Public top-level classes and functions of a Python module."""
    _, classes, functions = python_outline(content)
    return {name for name in classes + functions if not name.startswith("_")}
