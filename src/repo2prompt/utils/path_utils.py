"""Path normalization utilities for cross-platform compatibility."""

import os
from typing import List


class PathUtils:
    """Utilities for consistent path handling across platforms."""

    @staticmethod
    def normalize_path(path: str) -> str:
        """
        Normalize path separators to forward slashes.

        Args:
            path: File path with potentially mixed separators

        Returns:
            Path with forward slashes only
        """
        return path.replace('\\\\', '/').replace('\\', '/')

    @staticmethod
    def normalize_and_split(path: str) -> List[str]:
        """
        Normalize path and split into non-empty components.

        Args:
            path: File path to split

        Returns:
            List of path components
        """
        return [part for part in PathUtils.normalize_path(path).split('/') if part]

    @staticmethod
    def relative_to(root: str, path: str) -> str:
        """
        Path of ``path`` relative to ``root``, with forward slashes.

        Args:
            root: Absolute root directory
            path: Absolute path inside root

        Returns:
            Relative path such as ``src/main.py``
        """
        return PathUtils.normalize_path(os.path.relpath(path, root))

    @staticmethod
    def ordinal_ignore_case(value: str) -> str:
        """Sort/lookup key comparing strings ordinally, ignoring case."""
        return value.upper()

    @staticmethod
    def extension_of(name: str) -> str:
        """
        Lower-cased text after the last dot of a file name.

        Dotfiles keep their name as the extension (``.gitignore`` gives
        ``gitignore``); names without a dot give ''.
        """
        dot = name.rfind('.')
        return name[dot + 1:].lower() if dot >= 0 else ''
