"""repo2prompt: turn a selected subset of a folder into a single LLM prompt."""

__version__ = "0.1.0"
