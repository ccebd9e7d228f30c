"""Tests for output generation."""

import asyncio
import threading
import time
from unittest.mock import patch

import pytest

from repo2prompt.core.exclusion_matcher import ExclusionMatcher
from repo2prompt.core.models import CheckState, Config, FileResult, WEB_EXCLUSION_PRESET
from repo2prompt.core.output_generator import OutputGenerator
from repo2prompt.core.tree_builder import TreeBuilder


def load(path, patterns=()):
    return TreeBuilder().build(str(path), matcher=ExclusionMatcher(patterns))


@pytest.fixture
def generator():
    return OutputGenerator(Config(max_file_size=5 * 1024 * 1024, max_workers=4))


class TestOutputFormat:
    def test_exact_output(self, small_repo, generator):
        output = generator.generate(load(small_repo))

        assert output == (
            "Directory Structure:\n"
            "\n"
            "./\n"
            "├── b\n"
            "│   ├── a.txt\n"
            "│   └── z.txt\n"
            "└── a.txt\n"
            "\n"
            "--- File Contents ---\n"
            "\n"
            "\n---\nFile: /a.txt\n---\nA\n"
            "\n---\nFile: /b/a.txt\n---\nBA\n"
            "\n---\nFile: /b/z.txt\n---\nZ\n"
        )

    def test_pre_prompt_is_stripped_and_separated(self, small_repo, generator):
        output = generator.generate(load(small_repo), pre_prompt="\n  Review this code  \n")
        assert output.startswith("Review this code\n\nDirectory Structure:\n")

    def test_blank_pre_prompt_ignored(self, small_repo, generator):
        output = generator.generate(load(small_repo), pre_prompt="   ")
        assert output.startswith("Directory Structure:\n")

    def test_nothing_selected(self, small_repo, generator):
        tree = load(small_repo)
        tree.set_checked(tree.root, False)

        assert generator.generate(tree) == "No files selected or found based on current selection.\n"
        assert generator.generate(tree, "Prompt") == (
            "Prompt\n\nNo files selected or found based on current selection.\n"
        )

    def test_contents_in_sorted_order(self, sample_repo, generator):
        result = generator.build(load(sample_repo, WEB_EXCLUSION_PRESET))

        assert result.file_paths == [
            "docs/guide.md", "Makefile", "README.md", "setup.py",
            "src/main.py", "src/utils/helpers.py", "src/__init__.py", "tests/test_main.py",
        ]
        headers = [line for line in result.body.splitlines() if line.startswith("File: /")]
        assert headers == [f"File: /{path}" for path in result.file_paths]

    def test_unchecked_files_omitted(self, sample_repo, generator):
        output = generator.generate(load(sample_repo, WEB_EXCLUSION_PRESET))

        assert "File: /image.png" not in output
        assert "coverage" not in output
        assert "node_modules" not in output

    def test_deterministic(self, sample_repo, generator):
        tree = load(sample_repo, WEB_EXCLUSION_PRESET)
        assert generator.generate(tree) == generator.generate(tree)

    def test_empty_file(self, sample_repo, generator):
        output = generator.generate(load(sample_repo, WEB_EXCLUSION_PRESET))
        assert "\n---\nFile: /src/__init__.py\n---\n\n" in output


class TestCollectSelectedFiles:
    def test_indeterminate_directories_are_searched(self, small_repo, generator):
        tree = load(small_repo)
        tree.set_checked(tree.find_node("b/z.txt"), False)

        files = generator.collect_selected_files(tree)
        assert sorted(files) == ["a.txt", "b/a.txt"]
        assert files["b/a.txt"] == str(small_repo / "b" / "a.txt")

    def test_case_insensitive_duplicates_collapse(self, small_repo, generator, make_node):
        tree = load(small_repo)
        b = tree.find_node("b")
        make_node("A.TXT", b, state=CheckState.CHECKED)

        files = generator.collect_selected_files(tree)
        assert len([p for p in files if p.lower() == "b/a.txt"]) == 1


class TestReadErrors:
    def test_too_large_file(self, temp_workspace, generator):
        (temp_workspace / "big.txt").write_bytes(b"x" * (6 * 1024 * 1024))
        (temp_workspace / "ok.txt").write_text("fine")

        result = generator.build(load(temp_workspace))

        assert result.errors == {"big.txt": "Error: File 'big.txt' is too large (6.00MB). Max 5MB."}
        assert "---\nFile: /big.txt\n---\nError: File 'big.txt' is too large (6.00MB). Max 5MB.\n" in result.body
        assert "---\nFile: /ok.txt\n---\nfine\n" in result.body

    def test_file_at_limit_is_read(self, temp_workspace):
        (temp_workspace / "edge.txt").write_bytes(b"y" * 100)
        generator = OutputGenerator(Config(max_file_size=100))

        result = generator.read_file("edge.txt", str(temp_workspace / "edge.txt"))
        assert result.success
        assert result.content == "y" * 100

    def test_permission_error(self, temp_workspace, generator):
        path = temp_workspace / "locked.txt"
        path.write_text("secret")

        with patch("builtins.open", side_effect=PermissionError(13, "Permission denied")):
            result = generator.read_file("locked.txt", str(path))

        assert result.error == "Error processing file 'locked.txt': Permission denied"

    def test_io_error(self, temp_workspace, generator):
        path = temp_workspace / "flaky.txt"
        path.write_text("data")

        with patch("builtins.open", side_effect=OSError(5, "Input/output error")):
            result = generator.read_file("flaky.txt", str(path))

        assert result.error == "Error reading file 'flaky.txt': Input/output error"

    def test_vanished_file(self, temp_workspace, generator):
        result = generator.read_file("gone.txt", str(temp_workspace / "gone.txt"))
        assert result.error.startswith("Error reading file 'gone.txt': ")

    def test_undecodable_file(self, temp_workspace):
        path = temp_workspace / "blob.dat"
        path.write_bytes(b"\x80\x81abc")
        generator = OutputGenerator(Config(encoding_fallbacks=["utf-8"]))

        result = generator.read_file("blob.dat", str(path))
        assert result.error.startswith("Error processing file 'blob.dat': Unable to decode")

    def test_bom_and_latin1_decoding(self, temp_workspace, generator):
        (temp_workspace / "bom.txt").write_bytes(b"\xef\xbb\xbfhello")
        (temp_workspace / "latin.txt").write_bytes(b"caf\xe9")

        assert generator.read_file("bom.txt", str(temp_workspace / "bom.txt")).content == "hello"
        assert generator.read_file("latin.txt", str(temp_workspace / "latin.txt")).content == "café"


class TestConcurrentReads:
    def test_progress_callback(self, sample_repo):
        calls = []
        generator = OutputGenerator(
            Config(max_workers=2), progress_callback=lambda done, total: calls.append((done, total))
        )

        result = generator.build(load(sample_repo, WEB_EXCLUSION_PRESET))

        assert len(calls) == result.file_count
        assert calls[-1] == (result.file_count, result.file_count)
        assert [done for done, _ in calls] == list(range(1, result.file_count + 1))

    def test_build_async(self, small_repo, generator):
        result = asyncio.run(generator.build_async(load(small_repo)))
        assert result.file_paths == ["a.txt", "b/a.txt", "b/z.txt"]
        assert not result.has_errors()

    def test_reads_bounded_by_max_workers(self, temp_workspace):
        for index in range(10):
            (temp_workspace / f"file{index}.txt").write_text(str(index))

        lock = threading.Lock()
        in_flight = 0
        peak = 0

        def slow_read(self, relative_path, full_path):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.05)
            with lock:
                in_flight -= 1
            return FileResult(relative_path, content="x")

        generator = OutputGenerator(Config(max_workers=2))
        with patch.object(OutputGenerator, "read_file", slow_read):
            result = generator.build(load(temp_workspace))

        assert result.file_count == 10
        assert 1 <= peak <= 2
