"""Core components for repo2prompt."""

from .models import (
    CheckState, Config, FileResult, GenerationResult, InvalidRootError,
    LlmModel, TokenEstimate, TreeNode,
)
from .exclusion_matcher import ExclusionMatcher, is_hard_excluded
from .file_tree import FileTree
from .tree_builder import TreeBuilder
from .output_generator import OutputGenerator
from .session import SelectionSession
from .tokenizer import TokenEstimator, format_estimate

__all__ = [
    "CheckState",
    "Config",
    "FileResult",
    "GenerationResult",
    "InvalidRootError",
    "LlmModel",
    "TokenEstimate",
    "TreeNode",
    "ExclusionMatcher",
    "is_hard_excluded",
    "FileTree",
    "TreeBuilder",
    "OutputGenerator",
    "SelectionSession",
    "TokenEstimator",
    "format_estimate",
]
