"""
Output generation for repo2prompt.

This module turns the checked part of a FileTree into a single text
artifact: a directory listing followed by the contents of every selected
file. Files are read concurrently with a bounded number of workers, but the
emitted order is always the sorted relative-path order.
"""

import asyncio
import logging
import os
from typing import Callable, Dict, List, Optional

from .file_tree import FileTree
from .models import (
    CheckState, Config, FileResult, GenerationResult, NO_FILES_MESSAGE, TreeNode,
)
from ..utils.encodings import EncodingDetector
from ..utils.path_utils import PathUtils
from ..utils.tree_renderer import render_directory_tree

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def _format_megabytes(size: int) -> str:
    megabytes = size / (1024 * 1024)
    return f"{megabytes:g}" if megabytes == int(megabytes) else f"{megabytes:.2f}"


class OutputGenerator:
    """Collects selected files from a tree and renders the final text."""

    def __init__(self, config: Optional[Config] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.config = config or Config()
        self.max_file_size = self.config.max_file_size
        self.max_workers = self.config.max_workers
        self.progress_callback = progress_callback
        self.encoding_detector = EncodingDetector(self.config.encoding_fallbacks)

    def collect_selected_files(self, tree: FileTree) -> Dict[str, str]:
        """
        Map relative path -> absolute path for every file to include.

        Checked directories contribute all descendants, indeterminate
        directories are searched further, unchecked subtrees are skipped.
        The first path seen wins when two differ only by case.
        """
        selected: Dict[str, str] = {}
        keys = set()
        stack: List[TreeNode] = [tree.root]

        while stack:
            node = stack.pop()
            state = node.check_state
            if state is CheckState.UNCHECKED:
                continue
            if node.is_directory:
                stack.extend(reversed(node.children))
                continue
            if state is not CheckState.CHECKED:
                continue

            relative_path = tree.relative_path(node)
            key = PathUtils.ordinal_ignore_case(relative_path)
            if key not in keys:
                keys.add(key)
                selected[relative_path] = node.full_path

        return selected

    def read_file(self, relative_path: str, full_path: str) -> FileResult:
        """
        Read one file, capturing any failure as an error string.

        Returns:
            FileResult with content, or with an error recorded in its place.
        """
        name = os.path.basename(full_path)
        try:
            size = os.path.getsize(full_path)
            if size > self.max_file_size:
                return FileResult(
                    relative_path,
                    error=(f"Error: File '{name}' is too large ({size / (1024 * 1024):.2f}MB). "
                           f"Max {_format_megabytes(self.max_file_size)}MB.")
                )
            with open(full_path, 'rb') as f:
                raw_content = f.read()
        except PermissionError as e:
            logger.debug(f"Permission denied for {full_path}: {e}")
            return FileResult(relative_path, error=f"Error processing file '{name}': {e.strerror or e}")
        except OSError as e:
            logger.debug(f"Read failed for {full_path}: {e}")
            return FileResult(relative_path, error=f"Error reading file '{name}': {e.strerror or e}")
        except Exception as e:
            logger.debug(f"Unexpected error for {full_path}: {e}")
            return FileResult(relative_path, error=f"Error processing file '{name}': {e}")

        content, error = self.encoding_detector.decode_bytes(raw_content, full_path)
        if error:
            return FileResult(relative_path, error=f"Error processing file '{name}': {error}")
        return FileResult(relative_path, content=content)

    async def read_files(self, files: Dict[str, str]) -> Dict[str, FileResult]:
        """Read every file concurrently, at most max_workers at a time."""
        semaphore = asyncio.Semaphore(self.max_workers)
        total = len(files)
        completed = 0
        results: Dict[str, FileResult] = {}

        async def read_one(relative_path: str, full_path: str) -> None:
            nonlocal completed
            async with semaphore:
                result = await asyncio.to_thread(self.read_file, relative_path, full_path)
            results[relative_path] = result
            completed += 1
            if self.progress_callback:
                self.progress_callback(completed, total)

        await asyncio.gather(*(read_one(rel, full) for rel, full in files.items()))
        return results

    async def build_async(self, tree: FileTree) -> GenerationResult:
        """
        Generate the output body (no pre-prompt) for the tree's current state.

        Returns:
            GenerationResult with the body, sorted file list and read errors.
        """
        files = self.collect_selected_files(tree)
        sorted_paths = sorted(files, key=PathUtils.ordinal_ignore_case)

        if not sorted_paths:
            return GenerationResult(body=f"{NO_FILES_MESSAGE}\n")

        results = await self.read_files(files)

        parts = [
            "Directory Structure:\n",
            "\n",
            render_directory_tree(sorted_paths),
            "\n",
            "--- File Contents ---\n",
            "\n",
        ]
        errors: Dict[str, str] = {}
        for relative_path in sorted_paths:
            result = results[relative_path]
            parts.append(f"\n---\nFile: /{relative_path}\n---\n")
            if result.success:
                parts.append(f"{result.content}\n")
            else:
                errors[relative_path] = result.error
                parts.append(f"{result.error}\n")

        if errors:
            logger.info(f"{len(errors)} of {len(sorted_paths)} files could not be read")
        return GenerationResult(body="".join(parts), file_paths=sorted_paths, errors=errors)

    def build(self, tree: FileTree) -> GenerationResult:
        """Synchronous entry point for build_async."""
        return asyncio.run(self.build_async(tree))

    def generate(self, tree: FileTree, pre_prompt: Optional[str] = None) -> str:
        """
        Generate the final text for the tree's current state.

        Args:
            tree: Tree whose checked files are included.
            pre_prompt: Optional text placed before the output.

        Returns:
            The concatenated directory listing and file contents.
        """
        return self.build(tree).with_pre_prompt(pre_prompt)
