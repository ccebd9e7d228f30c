import pytest
import tempfile
import shutil
from pathlib import Path

from repo2prompt.core.models import CheckState, TreeNode


@pytest.fixture
def temp_workspace():
    """Create a temporary directory for test files."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def sample_repo(temp_workspace):
    """Create a sample web-style repository structure for testing."""
    repo_root = temp_workspace / "sample_repo"
    repo_root.mkdir()

    # Create directory structure
    (repo_root / "src").mkdir()
    (repo_root / "src" / "utils").mkdir()
    (repo_root / "tests").mkdir()
    (repo_root / "docs").mkdir()
    (repo_root / "coverage").mkdir()
    (repo_root / ".git").mkdir()
    (repo_root / "node_modules").mkdir()

    # Create files
    (repo_root / "README.md").write_text("# Sample Repository\n\nTest repository for repo2prompt")
    (repo_root / "setup.py").write_text("from setuptools import setup\n\nsetup(name='sample')")
    (repo_root / "Makefile").write_text("all:\n\techo build")
    (repo_root / "src" / "__init__.py").write_text("")
    (repo_root / "src" / "main.py").write_text("def main():\n    print('Hello, World!')")
    (repo_root / "src" / "utils" / "helpers.py").write_text("def helper():\n    return 42")
    (repo_root / "tests" / "test_main.py").write_text("def test_main():\n    assert True")
    (repo_root / "docs" / "guide.md").write_text("Read me first")
    (repo_root / "coverage" / "report.txt").write_text("100%")
    (repo_root / ".git" / "config").write_text("[core]\n    repositoryformatversion = 0")
    (repo_root / "node_modules" / "package.json").write_text('{"name": "test"}')

    # Files the web preset deselects
    (repo_root / "app.min.js").write_text("var a=1;")
    (repo_root / ".env.local").write_text("SECRET=1")
    (repo_root / "yarn.lock").write_text("# yarn lockfile v1")

    # Create binary file
    (repo_root / "image.png").write_bytes(b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR')

    return repo_root


@pytest.fixture
def small_repo(temp_workspace):
    """Three text files, nothing the preset would exclude."""
    repo_root = temp_workspace / "small_repo"
    (repo_root / "b").mkdir(parents=True)
    (repo_root / "a.txt").write_text("A")
    (repo_root / "b" / "z.txt").write_text("Z")
    (repo_root / "b" / "a.txt").write_text("BA")
    return repo_root


@pytest.fixture
def make_node():
    """Factory for in-memory nodes attached to their parent."""
    def _make_node(name, parent=None, is_directory=False, state=CheckState.UNCHECKED):
        full_path = f"{parent.full_path}/{name}" if parent is not None else f"/{name}"
        node = TreeNode(name, full_path, is_directory, parent)
        node.check_state = state
        if parent is not None:
            parent.add_child(node)
        return node

    return _make_node
