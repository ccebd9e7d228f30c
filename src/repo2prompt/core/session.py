"""
Selection session orchestrator.

A SelectionSession owns one FileTree and is the surface collaborators (the
CLI, a GUI) call into: load a folder, toggle nodes and extension filters,
refresh, generate output and estimate tokens. Tree building, mutation and
generation are "busy" operations; only one runs at a time, and a request
arriving while another is running is rejected.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from .file_tree import FileTree
from .models import CheckState, Config, GenerationResult, LlmModel, TokenEstimate
from .output_generator import OutputGenerator, ProgressCallback
from .tokenizer import TokenEstimator
from .exclusion_matcher import ExclusionMatcher
from .tree_builder import TreeBuilder

logger = logging.getLogger(__name__)


class SelectionSession:
    """Single-writer owner of a selection tree and its generated output."""

    def __init__(self, config: Optional[Config] = None,
                 token_estimator: Optional[TokenEstimator] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.config = config or Config()
        self.matcher = ExclusionMatcher(self.config.effective_exclusions())
        self.generator = OutputGenerator(self.config, progress_callback)
        self._token_estimator = token_estimator
        self._lock = threading.Lock()
        self.tree: Optional[FileTree] = None
        self.folder_path: Optional[str] = None
        self.pre_prompt = ""
        self.last_result: Optional[GenerationResult] = None
        self.last_output = ""

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @property
    def token_estimator(self) -> TokenEstimator:
        """Encodings are loaded on first use."""
        if self._token_estimator is None:
            self._token_estimator = TokenEstimator()
        return self._token_estimator

    @contextmanager
    def _busy(self, operation: str) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        if not acquired:
            logger.debug(f"Ignoring {operation}: another operation is running")
            yield False
            return
        try:
            yield True
        finally:
            self._lock.release()

    def _build(self, path: str, restore: Optional[set] = None) -> FileTree:
        builder = TreeBuilder(self.config.hard_excluded_dirs)
        tree = builder.build(
            path,
            exclude_hard=self.config.use_preset,
            matcher=self.matcher,
            restore_set=restore,
        )
        self.tree = tree
        self.folder_path = tree.root_path
        self.last_result = None
        self.last_output = ""
        return tree

    def select_folder(self, path: str) -> Optional[FileTree]:
        """
        Load a folder with a fresh selection.

        Raises:
            InvalidRootError: If the folder is missing or unreadable.
        """
        with self._busy("select_folder") as ok:
            if not ok:
                return None
            logger.info(f"Loading folder structure: {path}")
            return self._build(path)

    def refresh(self) -> Optional[FileTree]:
        """Rebuild the current folder, keeping previously checked files checked."""
        if self.tree is None or self.folder_path is None:
            return None
        with self._busy("refresh") as ok:
            if not ok:
                return None
            restore = self.tree.checked_file_paths()
            logger.info(f"Refreshing folder structure: {self.folder_path}")
            return self._build(self.folder_path, restore)

    def set_exclusion_preset(self, enabled: bool) -> Optional[FileTree]:
        """
        Enable or disable the web exclusion preset.

        The matcher is rebuilt and the current folder reloaded so the new
        exclusions decide the initial selection.
        """
        with self._busy("set_exclusion_preset") as ok:
            if not ok:
                return None
            self.config.use_preset = enabled
            self.matcher.rebuild(self.config.effective_exclusions())
            if self.folder_path is None or not os.path.isdir(self.folder_path):
                return None
            return self._build(self.folder_path)

    def toggle_node(self, path: str, new_state: Union[CheckState, bool, None]) -> bool:
        """
        Set the state of the node at path (absolute or root-relative).

        Returns:
            True if the node was found and updated.
        """
        if self.tree is None:
            return False
        with self._busy("toggle_node") as ok:
            if not ok:
                return False
            node = self.tree.find_node(path)
            if node is None:
                logger.debug(f"No such entry in tree: {path}")
                return False
            self.tree.set_checked(node, new_state)
            self.last_result = None
            return True

    def toggle_extension_filter(self, extension: str, new_state: bool) -> Optional[int]:
        """
        Check or uncheck every file with an extension.

        Returns:
            Number of files changed, or None if rejected.
        """
        if self.tree is None:
            return None
        with self._busy("toggle_extension_filter") as ok:
            if not ok:
                return None
            changed = self.tree.apply_extension_filter(extension, new_state)
            if changed:
                self.last_result = None
            return changed

    def generate_output(self, pre_prompt: Optional[str] = None) -> Optional[str]:
        """
        Generate the output text for the current selection.

        Args:
            pre_prompt: Replaces the session pre-prompt when given.

        Returns:
            The generated text, or None if no tree is loaded or busy.
        """
        if self.tree is None:
            return None
        with self._busy("generate_output") as ok:
            if not ok:
                return None
            if pre_prompt is not None:
                self.pre_prompt = pre_prompt
            self.last_result = self.generator.build(self.tree)
            self.last_output = self.last_result.with_pre_prompt(self.pre_prompt)
            return self.last_output

    def update_pre_prompt(self, pre_prompt: str) -> Optional[str]:
        """
        Change the pre-prompt, reusing the last generated file contents.

        Returns:
            The new output text, or None when nothing was generated yet or busy.
        """
        self.pre_prompt = pre_prompt
        if self.last_result is None:
            return None
        with self._busy("update_pre_prompt") as ok:
            if not ok:
                return None
            self.last_output = self.last_result.with_pre_prompt(pre_prompt)
            return self.last_output

    def estimate_tokens(self, text: Optional[str] = None,
                        model: Union[LlmModel, str, None] = None) -> TokenEstimate:
        """Estimate tokens for text (default: the last output)."""
        if text is None:
            text = self.last_output
        if model is None:
            model = self.config.default_model
        return self.token_estimator.count(text, model)

    def save_output(self, output_path: str) -> str:
        """Write the last output to a file as UTF-8 and return its path."""
        directory = os.path.dirname(os.path.abspath(output_path))
        os.makedirs(directory, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.last_output)
        return output_path
