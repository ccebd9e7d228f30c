"""
Core data models for repo2prompt.

This module contains the fundamental data structures used throughout
the application: configuration, the tri-state selection tree node,
per-file read results and token estimates.
"""

import os
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Set, Union
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Directories that are never materialized as tree nodes while a preset is active
HARD_EXCLUDED_DIRS = (
    '.git', '.idea', 'node_modules', '.vscode', '.next',
    '.nuxt', 'bin', 'obj', 'dist', 'build',
)

# Web project exclusion preset
WEB_EXCLUSION_PRESET = (
    "node_modules", ".git", "bin", "obj", "dist", "build", "vendor", ".next", ".nuxt",
    ".svelte-kit", "coverage", ".vscode", ".idea", ".cache", "__pycache__", ".pytest_cache",
    ".mypy_cache", ".venv", "venv", "env", ".yarn", ".angular", "bower_components",
    ".sass-cache", "uploads", "public/uploads", "out", ".parcel-cache", ".DS_Store",
    "Thumbs.db", "desktop.ini", ".directory", ".env", ".env.*", "*.config.js", "*.log",
    "*.tmp", "npm-debug.log*", "yarn-debug.log*", "yarn-error.log*", "*.ttf", "*.otf",
    "*.woff", "*.woff2", "*.eot", "*.jpg", "*.jpeg", "*.png", "*.gif", "*.bmp", "*.ico",
    "*.webp", "*.avif", "*.svg", "*.psd", "*.ai", "*.sketch", "*.fig", "*.xcf", "*.mp3",
    "*.wav", "*.ogg", "*.mp4", "*.webm", "*.avi", "*.mov", "*.mkv", "*.flac", "*.m4a",
    "*.aac", "*.pdf", "*.doc", "*.docx", "*.xls", "*.xlsx", "*.ppt", "*.pptx", "*.zip",
    "*.rar", "*.7z", "*.tar", "*.gz", "*.tgz", "*.bz2", "*.sqlite", "*.db", "*.mdb",
    "*.accdb", "*.dll", "*.exe", "*.so", "*.dylib", "*.class", "*.pyc", "*.pyo", "*.crx",
    "*.xpi", "*.app", "*.apk", "*.ipa", "yarn.lock", "package-lock.json", "composer.lock",
    "poetry.lock", "Pipfile.lock", "*.min.js", "*.min.css", "*.map", "*.bin", "*.dat",
    "*.bak", "Dockerfile.bak",
)

MAX_READ_WORKERS = 16


def _default_max_workers() -> int:
    return min(MAX_READ_WORKERS, (os.cpu_count() or 1) * 2)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, '').strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class InvalidRootError(ValueError):
    """Raised when the selected root folder is missing or cannot be listed."""


@dataclass
class Config:
    """Configuration settings for repo2prompt."""

    max_file_size: int = field(
        default_factory=lambda: _env_int('REPO2PROMPT_MAX_FILE_SIZE', 5 * 1024 * 1024)
    )
    max_workers: int = field(
        default_factory=lambda: _env_int('REPO2PROMPT_MAX_WORKERS', _default_max_workers())
    )
    default_model: str = field(default_factory=lambda: os.getenv('REPO2PROMPT_MODEL', 'gpt-4o'))

    # Exclusion settings
    use_preset: bool = True
    extra_exclusions: List[str] = field(default_factory=list)
    hard_excluded_dirs: Set[str] = field(default_factory=lambda: set(HARD_EXCLUDED_DIRS))

    # Encoding fallbacks
    encoding_fallbacks: List[str] = field(default_factory=lambda: [
        'utf-8', 'utf-8-sig', 'latin-1', 'cp1252'
    ])

    def __post_init__(self):
        # Never more than twice the available parallelism
        self.max_workers = max(1, min(self.max_workers, _default_max_workers()))

    def effective_exclusions(self) -> List[str]:
        """Active pattern list: the preset (when enabled) plus extra patterns."""
        patterns = list(WEB_EXCLUSION_PRESET) if self.use_preset else []
        patterns.extend(self.extra_exclusions)
        return patterns


class CheckState(Enum):
    """Tri-state selection value."""
    UNCHECKED = "unchecked"
    CHECKED = "checked"
    INDETERMINATE = "indeterminate"

    @classmethod
    def from_bool(cls, value: Union['CheckState', bool, None]) -> 'CheckState':
        """Convert True/False/None to a CheckState (None means indeterminate)."""
        if isinstance(value, CheckState):
            return value
        if value is None:
            return cls.INDETERMINATE
        return cls.CHECKED if value else cls.UNCHECKED


class TreeNode:
    """
    A file or directory in the selection tree.

    Children are owned by their parent and kept directories-first, then
    case-insensitive alphabetical. The parent link is a weak reference used
    only to notify the parent about state changes.
    """

    def __init__(self, name: str, full_path: str, is_directory: bool,
                 parent: Optional['TreeNode'] = None):
        self.name = name
        self._full_path = full_path
        self._is_directory = is_directory
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self.children: List['TreeNode'] = []
        self.check_state = CheckState.UNCHECKED
        self._updating = False

    def __repr__(self) -> str:
        kind = 'dir' if self._is_directory else 'file'
        return f"TreeNode({self.name!r}, {kind}, {self.check_state.value})"

    @property
    def full_path(self) -> str:
        return self._full_path

    @property
    def is_directory(self) -> bool:
        return self._is_directory

    @property
    def parent(self) -> Optional['TreeNode']:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_checked(self) -> Optional[bool]:
        """The state as True/False, or None when indeterminate."""
        if self.check_state is CheckState.INDETERMINATE:
            return None
        return self.check_state is CheckState.CHECKED

    @staticmethod
    def sort_key(node: 'TreeNode'):
        return (not node.is_directory, node.name.upper())

    def add_child(self, child: 'TreeNode') -> None:
        """Insert a child at its sorted position."""
        key = self.sort_key(child)
        index = len(self.children)
        for i, existing in enumerate(self.children):
            if key < self.sort_key(existing):
                index = i
                break
        self.children.insert(index, child)

    def set_children(self, children: List['TreeNode']) -> None:
        """Replace the children with a fully collected level, sorted once."""
        self.children = sorted(children, key=self.sort_key)

    def set_checked(self, value: Union[CheckState, bool, None],
                    propagate_to_children: bool = True,
                    propagate_to_parent: bool = True) -> None:
        """
        Set this node's state.

        Args:
            value: New state (a CheckState, or True/False/None).
            propagate_to_children: Cascade a Checked/Unchecked value to every
                descendant of a directory without bouncing back up.
            propagate_to_parent: Recalculate the parent chain afterwards.
        """
        if self._updating:
            return

        state = CheckState.from_bool(value)
        self._updating = True
        try:
            self.check_state = state
            if (propagate_to_children and self._is_directory
                    and state is not CheckState.INDETERMINATE):
                self._cascade_down(state)
            parent = self.parent
            if propagate_to_parent and parent is not None:
                parent.recalculate_from_children()
        finally:
            self._updating = False

    def _cascade_down(self, state: CheckState) -> None:
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if node._updating:
                continue
            node._updating = True
            try:
                node.check_state = state
            finally:
                node._updating = False
            stack.extend(reversed(node.children))

    def state_from_children(self) -> CheckState:
        """Derive a directory state from its children (current state if none)."""
        if not self.children:
            return self.check_state

        any_checked = False
        all_checked = True
        for child in self.children:
            if child.check_state is CheckState.INDETERMINATE:
                return CheckState.INDETERMINATE
            if child.check_state is CheckState.CHECKED:
                any_checked = True
            else:
                all_checked = False

        if all_checked:
            return CheckState.CHECKED
        if any_checked:
            return CheckState.INDETERMINATE
        return CheckState.UNCHECKED

    def recalculate_from_children(self) -> None:
        """
        Re-derive this directory's state and bubble changes to the root.

        Stops at the first node whose state does not change, at a node with
        no children, or at a node already being updated.
        """
        node: Optional[TreeNode] = self
        while node is not None and node._is_directory and not node._updating:
            node._updating = True
            try:
                new_state = node.state_from_children()
                changed = new_state is not node.check_state
                if changed:
                    node.check_state = new_state
            finally:
                node._updating = False
            if not changed:
                break
            node = node.parent


class LlmModel(Enum):
    """Model families offered for token estimation."""
    GPT_4O = "gpt-4o"
    GPT_35_TURBO = "gpt-3.5-turbo"
    CLAUDE_SONNET = "claude-sonnet"
    GEMINI_PRO = "gemini-pro"

    @classmethod
    def from_name(cls, name: str) -> Optional['LlmModel']:
        """Look up a model by value or member name, case-insensitively."""
        normalized = name.strip().lower().replace('_', '-')
        for model in cls:
            if normalized in (model.value, model.name.lower().replace('_', '-')):
                return model
        return None


class TokenEstimate(NamedTuple):
    """Result of a token count."""
    count: int
    encoding_name: str
    is_approximate: bool


@dataclass
class FileResult:
    """Result container for reading one selected file."""
    path: str
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


NO_FILES_MESSAGE = "No files selected or found based on current selection."


@dataclass
class GenerationResult:
    """Output of one generation pass, before any pre-prompt is applied."""

    body: str
    file_paths: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return len(self.file_paths)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def with_pre_prompt(self, pre_prompt: Optional[str] = None) -> str:
        """Prepend a pre-prompt (if not blank) followed by a blank line."""
        if pre_prompt and pre_prompt.strip():
            return f"{pre_prompt.strip()}\n\n{self.body}"
        return self.body
