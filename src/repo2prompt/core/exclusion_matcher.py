"""
Exclusion pattern matching for repo2prompt.

This module compiles a flat list of exclusion patterns into exact
directory-name, exact file-name and wildcard indexes, and answers whether a
file or directory should start out deselected.
"""

from typing import Iterable, List, Optional, Set

from .models import HARD_EXCLUDED_DIRS
from ..utils.path_utils import PathUtils


_HARD_EXCLUDED = {name.lower() for name in HARD_EXCLUDED_DIRS}


def is_hard_excluded(dir_name: str, excluded_dirs: Optional[Set[str]] = None) -> bool:
    """
    Check if a directory is skipped entirely while building a tree.

    Args:
        dir_name: Directory name (not full path).
        excluded_dirs: Lower-cased names to use instead of HARD_EXCLUDED_DIRS.
    """
    names = _HARD_EXCLUDED if excluded_dirs is None else excluded_dirs
    return dir_name.lower() in names


class ExclusionMatcher:
    """Handles exclusion pattern matching."""

    def __init__(self, patterns: Iterable[str] = ()):
        self._patterns: List[str] = []
        self.exact_dir_names: Set[str] = set()
        self.exact_file_names: Set[str] = set()
        self.wildcard_patterns: List[str] = []
        self.rebuild(patterns)

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def rebuild(self, patterns: Iterable[str]) -> None:
        """
        Rebuild the indexes from a new pattern list.

        Every pattern is kept as a wildcard pattern. Plain names (no ``*``,
        ``?`` or ``/``) are also indexed as exact names: names with a dot go
        to both the file and directory sets (``.git`` is a directory), the
        rest to the directory set only.
        """
        self._patterns = []
        self.exact_dir_names = set()
        self.exact_file_names = set()
        self.wildcard_patterns = []

        for pattern in patterns:
            if not pattern or not pattern.strip():
                continue
            self._patterns.append(pattern)

            cleaned = PathUtils.normalize_path(pattern)
            self.wildcard_patterns.append(cleaned)

            if '*' in cleaned or '?' in cleaned or '/' in cleaned:
                continue
            lowered = cleaned.lower()
            if '.' in cleaned:
                self.exact_file_names.add(lowered)
            self.exact_dir_names.add(lowered)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def is_dir_excluded(self, name: str) -> bool:
        """Check a directory name against the exact-name index and wildcards."""
        return name.lower() in self.exact_dir_names or self.matches_any(name)

    def is_file_excluded(self, name: str) -> bool:
        """Check a file name against the exact-name index and wildcards."""
        return name.lower() in self.exact_file_names or self.matches_any(name)

    def is_excluded(self, name: str, relative_path: str, is_directory: bool = False) -> bool:
        """
        Check if an entry should start out deselected.

        Args:
            name: File or directory name (not full path).
            relative_path: Path relative to the tree root.
            is_directory: Whether the entry is a directory.

        Returns:
            True if any pattern matches the name or the relative path.
        """
        if not self._patterns:
            return False
        if is_directory and self.is_dir_excluded(name):
            return True
        if not is_directory and self.is_file_excluded(name):
            return True
        return self.matches_any(relative_path, is_full_path=True)

    def matches_any(self, candidate: str, is_full_path: bool = False) -> bool:
        """
        Check a name or relative path against every wildcard pattern.

        Args:
            candidate: A bare name, or a root-relative path when is_full_path.
            is_full_path: Also allow substring matches of patterns containing '/'.

        Returns:
            True on the first matching pattern.
        """
        value = PathUtils.normalize_path(candidate).lower()
        for pattern in self.wildcard_patterns:
            if self._matches(value, pattern.lower(), is_full_path):
                return True
        return False

    @staticmethod
    def _matches(value: str, pattern: str, is_full_path: bool) -> bool:
        if value == pattern:
            return True

        starts = pattern.startswith('*')
        ends = pattern.endswith('*')

        # *.ext suffix
        if pattern.startswith('*.') and value.endswith(pattern[1:]):
            return True
        # name.* requires an extension after the prefix
        if pattern.endswith('.*'):
            prefix = pattern[:-2]
            if value.startswith(prefix) and value.rfind('.') >= len(prefix):
                return True
        # prefix*
        if ends and not starts and value.startswith(pattern[:-1]):
            return True
        # *suffix
        if starts and not ends and value.endswith(pattern[1:]):
            return True
        # *contains*
        if starts and ends and len(pattern) > 2 and pattern[1:-1] in value:
            return True

        if is_full_path and '/' in pattern and pattern in value:
            return True
        return False
