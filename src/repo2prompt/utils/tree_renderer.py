"""Directory listing rendering from a flat list of relative paths."""

from typing import Dict, List, Optional

from .path_utils import PathUtils

# A trie level: name -> sub-level for directories, None for files
_Level = Dict[str, Optional[dict]]


def build_path_trie(relative_paths: List[str]) -> _Level:
    """
    Group relative paths into nested dictionaries by path segment.

    A name seen both as a file and as a directory becomes a directory.
    """
    root: _Level = {}
    for path in sorted(relative_paths, key=PathUtils.ordinal_ignore_case):
        parts = PathUtils.normalize_and_split(path)
        current = root
        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            if part not in current:
                current[part] = None if is_last else {}
            if not is_last:
                if current[part] is None:
                    current[part] = {}
                current = current[part]
    return root


def render_directory_tree(relative_paths: List[str]) -> str:
    """
    Render an indented tree view of the given paths.

    Directories come before files at each level, then names in
    case-insensitive order. Every line, including the last, ends with a
    newline.

    Args:
        relative_paths: Forward-slash paths relative to the tree root.

    Returns:
        The listing, starting with a ``./`` line.
    """
    lines = ["./"]

    def format_level(level: _Level, prefix: str) -> None:
        names = sorted(level, key=lambda k: (level[k] is None, PathUtils.ordinal_ignore_case(k)))
        for i, name in enumerate(names):
            is_last = i == len(names) - 1
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{name}")
            sub_level = level[name]
            if sub_level is not None:
                extension = "    " if is_last else "│   "
                format_level(sub_level, prefix + extension)

    format_level(build_path_trie(relative_paths), "")
    return "\n".join(lines) + "\n"
