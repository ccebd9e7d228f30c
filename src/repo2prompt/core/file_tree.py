"""
In-memory selection tree for repo2prompt.

A FileTree mirrors a directory subtree. Every node carries a tri-state
selection; checking a directory cascades down, and every change bubbles up
so directory states always agree with their children.
"""

import logging
import os
from typing import Iterator, List, Optional, Set, Tuple, Union

from .models import CheckState, TreeNode
from ..utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class FileTree:
    """Selection tree rooted at a directory on disk."""

    def __init__(self, root: TreeNode, detected_extensions: Optional[Set[str]] = None,
                 errors: Optional[List[str]] = None):
        self.root = root
        self.detected_extensions: Set[str] = detected_extensions or set()
        self.errors: List[str] = errors or []

    @property
    def root_path(self) -> str:
        return self.root.full_path

    def set_checked(self, node: TreeNode, value: Union[CheckState, bool, None],
                    propagate_to_children: bool = True,
                    propagate_to_parent: bool = True) -> None:
        node.set_checked(value, propagate_to_children, propagate_to_parent)

    def recalculate_from_children(self, node: TreeNode) -> None:
        node.recalculate_from_children()

    def recalculate_all(self) -> None:
        """
        Derive every directory state bottom-up from the current leaf states.

        Directories without children keep their explicitly set state.
        """
        for node in self.iter_post_order():
            if node.is_directory and node.children:
                node.check_state = node.state_from_children()

    def iter_post_order(self) -> Iterator[TreeNode]:
        stack: List[Tuple[TreeNode, bool]] = [(self.root, False)]
        while stack:
            node, visited = stack.pop()
            if visited:
                yield node
                continue
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Pre-order traversal in display order."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_files(self) -> Iterator[TreeNode]:
        return (node for node in self.iter_nodes() if not node.is_directory)

    def relative_path(self, node: TreeNode) -> str:
        return PathUtils.relative_to(self.root_path, node.full_path)

    def find_node(self, path: str) -> Optional[TreeNode]:
        """
        Find a node by absolute path or by path relative to the root.

        Args:
            path: Absolute path, or relative path with either separator.

        Returns:
            The matching node, or None if it is not in the tree.
        """
        if os.path.isabs(path):
            try:
                path = os.path.relpath(path, self.root_path)
            except ValueError:
                return None

        parts = PathUtils.normalize_and_split(path)
        if parts == ['.'] or not parts:
            return self.root

        node = self.root
        for part in parts:
            if part == '.':
                continue
            match = next((child for child in node.children if child.name == part), None)
            if match is None:
                key = PathUtils.ordinal_ignore_case(part)
                match = next((child for child in node.children
                              if PathUtils.ordinal_ignore_case(child.name) == key), None)
            if match is None:
                return None
            node = match
        return node

    def checked_file_paths(self) -> Set[str]:
        """Full paths of every checked file (directories excluded)."""
        return {
            node.full_path for node in self.iter_files()
            if node.check_state is CheckState.CHECKED
        }

    def apply_extension_filter(self, extension: str, checked: bool) -> int:
        """
        Check or uncheck every file with the given extension.

        Files are updated without propagation; each distinct parent touched is
        recalculated once afterwards, which bubbles further up on its own.

        Args:
            extension: Extension with or without the leading dot ('' for none).
            checked: New state for matching files.

        Returns:
            Number of files whose state changed.
        """
        target_ext = extension.lstrip('.').lower()
        state = CheckState.from_bool(checked)
        parents: List[TreeNode] = []
        seen: Set[int] = set()
        changed = 0

        for node in self.iter_files():
            if PathUtils.extension_of(node.name) != target_ext:
                continue
            if node.check_state is state:
                continue
            node.set_checked(state, propagate_to_children=False, propagate_to_parent=False)
            changed += 1
            parent = node.parent
            if parent is not None and id(parent) not in seen:
                seen.add(id(parent))
                parents.append(parent)

        for parent in parents:
            parent.recalculate_from_children()

        logger.debug(f"Extension filter '{target_ext}' -> {state.value}: {changed} files updated")
        return changed

    def extension_filters(self) -> List[Tuple[str, str]]:
        """Detected extensions with their display names, sorted."""
        return [
            (ext, f"*.{ext}" if ext else "[No Extension]")
            for ext in sorted(self.detected_extensions)
        ]
