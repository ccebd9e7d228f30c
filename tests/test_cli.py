"""Tests for the command-line interface."""

from unittest.mock import patch, MagicMock

import pytest
from click.testing import CliRunner

from repo2prompt import __version__
from repo2prompt.cli import main
from repo2prompt.core.models import TokenEstimate


@pytest.fixture
def runner():
    return CliRunner()


def run_to_file(runner, repo, tmp_dir, *args):
    output_file = tmp_dir / "prompt.txt"
    result = runner.invoke(main, [str(repo), "--no-tokens", "-o", str(output_file), *args])
    assert result.exit_code == 0, result.output
    return output_file.read_text(encoding="utf-8")


class TestCli:
    def test_generates_output_file(self, runner, sample_repo, temp_workspace):
        text = run_to_file(runner, sample_repo, temp_workspace)

        assert text.startswith("Directory Structure:\n\n./\n")
        assert "File: /src/main.py" in text
        assert "File: /image.png" not in text
        assert "File: /.git/config" not in text

    def test_writes_to_stdout(self, runner, small_repo):
        result = runner.invoke(main, [str(small_repo), "--no-tokens"])

        assert result.exit_code == 0
        assert "File: /b/z.txt" in result.output

    def test_no_preset(self, runner, sample_repo, temp_workspace):
        text = run_to_file(runner, sample_repo, temp_workspace, "--no-preset")

        assert "File: /image.png" in text
        assert "File: /.git/config" in text

    def test_extra_exclusions(self, runner, sample_repo, temp_workspace):
        text = run_to_file(runner, sample_repo, temp_workspace, "-x", "*.md", "--exclude", "tests")

        assert "File: /README.md" not in text
        assert "File: /tests/test_main.py" not in text
        assert "File: /setup.py" in text

    def test_skip_extension(self, runner, sample_repo, temp_workspace):
        text = run_to_file(runner, sample_repo, temp_workspace, "--skip-ext", "py")

        assert "File: /src/main.py" not in text
        assert "File: /README.md" in text

    def test_deselect_and_select(self, runner, sample_repo, temp_workspace):
        text = run_to_file(
            runner, sample_repo, temp_workspace,
            "--deselect", "src", "--select", "src/main.py", "--select", "image.png",
        )

        assert "File: /src/main.py" in text
        assert "File: /src/utils/helpers.py" not in text
        assert "File: /image.png" in text

    def test_unknown_toggle_path_warns(self, runner, small_repo, temp_workspace):
        result = runner.invoke(main, [
            str(small_repo), "--no-tokens", "-o", str(temp_workspace / "out.txt"),
            "--deselect", "nope.txt",
        ])

        assert result.exit_code == 0
        assert "Not in tree: nope.txt" in result.output

    def test_prompt(self, runner, small_repo, temp_workspace):
        text = run_to_file(runner, small_repo, temp_workspace, "--prompt", "Explain this")
        assert text.startswith("Explain this\n\nDirectory Structure:\n")

    def test_prompt_file(self, runner, small_repo, temp_workspace):
        prompt_file = temp_workspace / "prompt.md"
        prompt_file.write_text("Find bugs\n", encoding="utf-8")

        text = run_to_file(runner, small_repo, temp_workspace, "--prompt-file", str(prompt_file))
        assert text.startswith("Find bugs\n\nDirectory Structure:\n")

    def test_bracketed_folder_name_printed_literally(self, runner, temp_workspace):
        repo = temp_workspace / "[red]repo"
        repo.mkdir()
        (repo / "a.txt").write_text("A")

        result = runner.invoke(main, [str(repo), "--no-tokens"])

        assert result.exit_code == 0, result.output
        assert "[red]repo" in result.output

    def test_list_extensions(self, runner, sample_repo):
        result = runner.invoke(main, [str(sample_repo), "--list-extensions"])

        assert result.exit_code == 0
        assert "*.py" in result.output
        assert "[No Extension]" in result.output
        assert "Directory Structure" not in result.output

    def test_token_estimate(self, runner, small_repo, temp_workspace):
        estimator = MagicMock()
        estimator.count.return_value = TokenEstimate(42, "o200k_base", False)

        with patch('repo2prompt.core.session.TokenEstimator', return_value=estimator):
            result = runner.invoke(main, [
                str(small_repo), "-o", str(temp_workspace / "out.txt"), "--model", "gpt-4o",
            ])

        assert result.exit_code == 0
        assert "Tokens: 42 (tokenizer: o200k_base)" in result.output
        estimator.count.assert_called_once()
        assert estimator.count.call_args[0][1] == "gpt-4o"

    def test_missing_path(self, runner, temp_workspace):
        result = runner.invoke(main, [str(temp_workspace / "missing")])
        assert result.exit_code != 0

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
