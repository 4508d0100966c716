"""Tests for the kfs-make command line."""

import logging
import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "python"))

from kfs_cli import main


def exited(code=0):
    return MagicMock(returncode=code)


class TestMain:

    def test_default_action_is_help(self, capsys):
        with patch("kernel_builder.subprocess.run") as mock_run:
            assert main([], environ={}) == 0

        mock_run.assert_not_called()
        assert "available commands:" in capsys.readouterr().out

    def test_build_uses_debug_profile_by_default(self):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)) as mock_run:
            assert main(["build"], environ={}) == 0

        assert mock_run.call_args.args[0] == ["cargo", "build"]

    def test_release_toggle(self):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)) as mock_run:
            assert main(["build"], environ={"RELEASE": "1"}) == 0

        assert mock_run.call_args.args[0] == ["cargo", "build", "--release"]

    def test_failure_mirrors_exit_code(self, capsys):
        with patch("kernel_builder.subprocess.run", return_value=exited(1)) as mock_run:
            assert main(["run"], environ={"RELEASE": "1"}) == 1

        assert mock_run.call_count == 1
        err = capsys.readouterr().err
        assert "Error: run: step 0 (cargo) failed with exit code 1" in err

    def test_signal_exit_status(self):
        with patch("kernel_builder.subprocess.run", return_value=exited(-9)):
            assert main(["build"], environ={}) == 137

    def test_re_alias_runs_clean_then_build(self):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)) as mock_run:
            assert main(["re"], environ={}) == 0

        assert [c.args[0] for c in mock_run.call_args_list] == [["cargo", "clean"], ["cargo", "build"]]

    def test_print_size_missing_artifact(self, tmp_path, capsys):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)):
            assert main(["-C", str(tmp_path), "print-size"], environ={}) == 1

        err = capsys.readouterr().err
        assert str(tmp_path / "target" / "target" / "debug" / "kfs") in err

    def test_unknown_action_is_usage_error(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["deploy"], environ={})

        assert excinfo.value.code == 2

    def test_missing_project_directory(self, tmp_path, capsys):
        with patch("kernel_builder.subprocess.run") as mock_run:
            assert main(["-C", str(tmp_path / "nope"), "build"], environ={}) == 1

        mock_run.assert_not_called()
        assert "Project directory not found" in capsys.readouterr().err

    def test_unexecutable_program_exit_status(self, capsys):
        with patch("kernel_builder.subprocess.run", side_effect=PermissionError(13, "Permission denied")):
            assert main(["build"], environ={}) == 126

        assert "Error: build: step 0 (cargo) failed with exit code 126" in capsys.readouterr().err

    def test_interrupted_build(self, capsys):
        with patch("kernel_builder.subprocess.run", side_effect=KeyboardInterrupt):
            assert main(["build"], environ={}) == 130

        assert "Error: interrupted" in capsys.readouterr().err

    def test_verbose_logs_commands(self, caplog):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)):
            assert main(["-v", "build"], environ={"RELEASE": "1"}) == 0

        debug = [r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG]
        assert any("Command: cargo build --release" in m for m in debug)

    def test_commands_not_logged_without_verbose(self, caplog):
        with patch("kernel_builder.subprocess.run", return_value=exited(0)):
            assert main(["build"], environ={}) == 0

        assert not any("Command:" in r.getMessage() for r in caplog.records)
