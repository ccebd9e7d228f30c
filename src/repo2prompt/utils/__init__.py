"""Utility modules for repo2prompt."""

from .encodings import EncodingDetector
from .path_utils import PathUtils
from .tree_renderer import render_directory_tree

__all__ = ["EncodingDetector", "PathUtils", "render_directory_tree"]
