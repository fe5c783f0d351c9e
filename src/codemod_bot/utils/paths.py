"""Path helpers for keeping file access inside a checkout root."""

from pathlib import Path


def resolve_inside(root: Path, relative: str) -> Path | None:
    """Resolve a repo-relative path, or None if it escapes root.

    Absolute paths, the root itself and anything resolving outside the
    root (``..`` segments, symlinks pointing elsewhere) are rejected.
    """
    candidate = Path(relative)
    if candidate.is_absolute():
        return None
    target = (root / candidate).resolve()
    if target == root or not target.is_relative_to(root):
        return None
    return target
