"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

REFLECTION = "I missed the string concatenation in the login query and the plaintext password compare"


def run_cli_command(command: str, timeout: int = 30, input: str | None = None) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m src.cli.coach')
        timeout: Maximum time to wait
        input: Text fed to stdin for interactive prompts

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f'"{sys.executable}" -m src.cli.coach {command}'

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        encoding="utf-8",
        input=input,
        timeout=timeout,
        env={**os.environ, "PYTHONIOENCODING": "utf-8", "COLUMNS": "200"},
    )

    return result.returncode, result.stdout, result.stderr


def finding(id, category, location):
    return {"id": id, "category": category, "severity": "high", "location": location, "description": ""}


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "CACR" in stdout
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["score", "next", "train"])
    def test_command_help(self, command):
        code, stdout, stderr = run_cli_command(f"{command} --help")

        assert code == 0, f"{command} help failed: {stderr}"


class TestCLIScore:
    """Test score command."""

    @pytest.fixture
    def results_file(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({
            "ground_truth": [finding("A", "injection", "app.py:1"), finding("B", "access-control", "app.py:2")],
            "submission": [finding("s1", "injection", "app.py:1"), finding("s2", "crypto", "app.py:3")],
        }))
        return path

    def test_score_table(self, results_file):
        code, stdout, stderr = run_cli_command(f'score "{results_file}"')

        assert code == 0, f"Score failed: {stderr}"
        assert "Precision" in stdout
        assert "0.50" in stdout

    def test_score_json(self, results_file):
        code, stdout, stderr = run_cli_command(f'score "{results_file}" --json')

        assert code == 0, f"Score failed: {stderr}"
        assert '"f1": 0.5' in stdout

    def test_malformed_submission_fails(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"ground_truth": [], "submission": [{"category": "injection"}]}))

        code, stdout, stderr = run_cli_command(f'score "{path}"')

        assert code == 1
        assert "location" in stdout

    def test_missing_file_fails(self, tmp_path):
        code, stdout, stderr = run_cli_command(f'score "{tmp_path / "missing.json"}"')

        assert code == 1


class TestCLINext:
    """Test next command."""

    def test_next_after_strong_rounds(self, tmp_path, make_history):
        history = make_history(*[{"level": 1, "f1": 0.9, "precision": 0.9}] * 3)
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"session_id": "smoke", "current_difficulty": 1, "rounds": history.to_list()}))

        code, stdout, stderr = run_cli_command(f'next "{path}"')

        assert code == 0, f"Next failed: {stderr}"
        assert "Next level: 2" in stdout

    def test_next_with_empty_history(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"rounds": []}))

        code, stdout, stderr = run_cli_command(f'next "{path}"')

        assert code == 0, f"Next failed: {stderr}"
        assert "Next level: 1" in stdout


class TestCLITrain:
    """Test train command with piped input."""

    def test_one_round_saves_history(self, tmp_path, sample_bank_path):
        save = tmp_path / "history.json"
        answers = "\n".join(["injection", "critical", "login:row", "sqli", "", REFLECTION]) + "\n"

        code, stdout, stderr = run_cli_command(
            f'train "{sample_bank_path}" --rounds 1 --save "{save}"', input=answers
        )

        assert code == 0, f"Train failed: {stderr}"
        assert "Session Summary" in stdout
        saved = json.loads(save.read_text())
        assert len(saved["rounds"]) == 1
        assert saved["rounds"][0]["challenge_id"] == "sr-101"

    @pytest.mark.parametrize("command", ["train {bank} --rounds 1 --resume {history}", "next {history}"])
    def test_out_of_sequence_history_fails_cleanly(self, tmp_path, sample_bank_path, make_history, command):
        rounds = make_history({"level": 1}, {"level": 1}).to_list()
        rounds[1]["index"] = 5
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"rounds": rounds}))

        code, stdout, stderr = run_cli_command(command.format(bank=f'"{sample_bank_path}"', history=f'"{path}"'))

        assert code == 1
        assert "Malformed history file" in stdout
        assert "Traceback" not in stderr
