"""Tests for toolchain resolution and invocation."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from actorkit.exceptions import ToolchainInvocationFailed, ToolchainNotFound
from actorkit.toolchain import STDERR_TAIL_LINES, install_hint, resolve_driver, run_toolchain


class TestResolveDriver:
    def test_override_wins(self):
        with patch("shutil.which") as which:
            assert resolve_driver(Path("/opt/cargo"), "cargo") == "/opt/cargo"
            which.assert_not_called()

    @patch("shutil.which", return_value="/usr/local/bin/cargo")
    def test_path_lookup(self, which):
        assert resolve_driver(None, "cargo") == "/usr/local/bin/cargo"
        which.assert_called_once_with("cargo")

    @patch("shutil.which", return_value=None)
    def test_missing_driver(self, _):
        with pytest.raises(ToolchainNotFound) as exc_info:
            resolve_driver(None, "tinygo")
        assert "tinygo" in exc_info.value.message
        assert exc_info.value.command == ["tinygo"]

    def test_install_hint(self):
        assert "rustup" in install_hint("/usr/bin/cargo")
        assert "tinygo.org" in install_hint("tinygo")
        assert install_hint("make") == ""


class TestRunToolchain:
    @patch("subprocess.run")
    def test_success(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_toolchain(["cargo", "build", "--release"], cwd=tmp_path)

        args, kwargs = mock_run.call_args
        assert args[0] == ["cargo", "build", "--release"]
        assert kwargs["cwd"] == tmp_path
        assert "timeout" not in kwargs

    @patch("subprocess.run")
    def test_non_zero_exit(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=101, stdout="", stderr="error[E0425]: cannot find value")

        with pytest.raises(ToolchainInvocationFailed) as exc_info:
            run_toolchain(["cargo", "build", "--release"], cwd=tmp_path)

        err = exc_info.value
        assert not isinstance(err, ToolchainNotFound)
        assert err.returncode == 101
        assert "E0425" in err.stderr
        assert "101" in err.message
        assert err.details["command"] == "cargo build --release"

    @patch("subprocess.run")
    def test_stderr_is_truncated(self, mock_run, tmp_path):
        stderr = "\n".join(f"line {i}" for i in range(STDERR_TAIL_LINES + 10))
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr=stderr)

        with pytest.raises(ToolchainInvocationFailed) as exc_info:
            run_toolchain(["tinygo", "build"], cwd=tmp_path)

        lines = exc_info.value.stderr.splitlines()
        assert len(lines) == STDERR_TAIL_LINES
        assert lines[-1] == f"line {STDERR_TAIL_LINES + 9}"

    @patch("subprocess.run", side_effect=FileNotFoundError(2, "No such file", "/opt/cargo"))
    def test_unspawnable_driver(self, _, tmp_path):
        with pytest.raises(ToolchainNotFound):
            run_toolchain(["/opt/cargo", "build"], cwd=tmp_path)

    def test_real_process_exit_status(self, tmp_path):
        """A real failing process is reported with its exit status."""
        import sys

        with pytest.raises(ToolchainInvocationFailed) as exc_info:
            run_toolchain([sys.executable, "-c", "import sys; sys.exit(3)"], cwd=tmp_path)
        assert exc_info.value.returncode == 3

        result = run_toolchain([sys.executable, "-c", "print('ok')"], cwd=tmp_path)
        assert isinstance(result, subprocess.CompletedProcess)
        assert result.stdout.strip() == "ok"
