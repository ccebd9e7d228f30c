"""Selection tree building from the local filesystem."""

import logging
import os
from typing import Iterable, List, Optional, Set

from .file_tree import FileTree
from .models import CheckState, InvalidRootError, TreeNode
from .exclusion_matcher import ExclusionMatcher, is_hard_excluded
from ..utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class TreeBuilder:
    """
    Walks a directory and builds a FileTree.

    On a fresh load each file starts checked unless an exclusion pattern
    matches it; on a refresh each file starts checked only if its full path
    is in the restore set. Directory states are then derived bottom-up.
    """

    def __init__(self, hard_excluded_dirs: Optional[Iterable[str]] = None):
        self.hard_excluded_dirs = (
            {name.lower() for name in hard_excluded_dirs} if hard_excluded_dirs is not None else None
        )
        self.root_path = ""
        self.exclude_hard = True
        self.matcher = ExclusionMatcher()
        self.restore_keys: Optional[Set[str]] = None
        self.errors: List[str] = []
        self.detected_extensions: Set[str] = set()

    def build(self, root_path: str, exclude_hard: bool = True,
              matcher: Optional[ExclusionMatcher] = None,
              restore_set: Optional[Iterable[str]] = None) -> FileTree:
        """
        Build the tree for root_path.

        Args:
            root_path: Folder to mirror.
            exclude_hard: Skip hard-excluded directories entirely.
            matcher: Exclusion patterns for the initial state of a fresh load.
            restore_set: Previously checked file paths (refresh). None for a
                fresh load.

        Returns:
            A FileTree whose directory states agree with their files.

        Raises:
            InvalidRootError: If root_path is missing, not a directory, or
                cannot be listed.
        """
        if not root_path or not os.path.isdir(root_path):
            raise InvalidRootError(f"Path is not a directory: {root_path}")

        self.root_path = os.path.abspath(root_path)
        self.exclude_hard = exclude_hard
        self.matcher = matcher or ExclusionMatcher()
        self.restore_keys = None
        if restore_set is not None:
            self.restore_keys = {PathUtils.ordinal_ignore_case(p) for p in restore_set}
        self.errors = []
        self.detected_extensions = set()

        try:
            with os.scandir(self.root_path):
                pass
        except OSError as e:
            raise InvalidRootError(f"Cannot read folder {self.root_path}: {e}") from e

        root = TreeNode(
            name=os.path.basename(self.root_path) or self.root_path,
            full_path=self.root_path,
            is_directory=True,
        )
        root.check_state = CheckState.CHECKED
        self._build_tree_recursive(root, excluded=False)

        tree = FileTree(root, self.detected_extensions, self.errors)
        if self.restore_keys is not None:
            self._apply_restored_selection(tree)
        else:
            tree.recalculate_all()

        logger.debug(
            f"Built tree for {self.root_path}: "
            f"{sum(1 for _ in tree.iter_files())} files, {len(self.errors)} errors"
        )
        return tree

    def _build_tree_recursive(self, node: TreeNode, excluded: bool) -> None:
        """Add directories (recursing depth-first), then files, then sort once."""
        children: List[TreeNode] = []
        path = node.full_path

        try:
            with os.scandir(path) as it:
                entries = list(it)
        except OSError as e:
            self._record_error(f"Error listing {path}: {e}")
            return

        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError as e:
                self._record_error(f"Error accessing {entry.path}: {e}")
                continue
            if self.exclude_hard and is_hard_excluded(entry.name, self.hard_excluded_dirs):
                continue

            child = TreeNode(entry.name, entry.path, True, node)
            child.check_state = CheckState.CHECKED
            rel_path = PathUtils.relative_to(self.root_path, entry.path)
            child_excluded = excluded or (
                self.restore_keys is None and self.matcher.is_excluded(entry.name, rel_path, True)
            )
            children.append(child)
            self._build_tree_recursive(child, child_excluded)

        for entry in entries:
            try:
                if not entry.is_file():
                    continue
            except OSError as e:
                self._record_error(f"Error accessing {entry.path}: {e}")
                continue

            self.detected_extensions.add(PathUtils.extension_of(entry.name))
            child = TreeNode(entry.name, entry.path, False, node)
            child.check_state = self._initial_file_state(entry.name, entry.path, excluded)
            children.append(child)

        node.set_children(children)

    def _initial_file_state(self, name: str, full_path: str, excluded: bool) -> CheckState:
        if self.restore_keys is not None:
            return CheckState.UNCHECKED
        if excluded:
            return CheckState.UNCHECKED
        rel_path = PathUtils.relative_to(self.root_path, full_path)
        return CheckState.from_bool(not self.matcher.is_excluded(name, rel_path, False))

    def _apply_restored_selection(self, tree: FileTree) -> None:
        """Check restored files; directories without restored files end Unchecked."""
        for node in tree.iter_files():
            if PathUtils.ordinal_ignore_case(node.full_path) in self.restore_keys:
                node.check_state = CheckState.CHECKED

        for node in tree.iter_post_order():
            if not node.is_directory:
                continue
            if not node.children:
                node.check_state = CheckState.UNCHECKED
            else:
                node.check_state = node.state_from_children()

    def _record_error(self, message: str) -> None:
        logger.warning(message)
        self.errors.append(message)
