"""
Tests for compilerkit.execution.runner module.

Tests that spawn real processes rely on POSIX shell utilities and are skipped
on Windows.
"""

import os
import sys
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from compilerkit.execution.runner import (
    CANCELLED,
    MEMORY_LIMIT,
    TIMEOUT,
    ExecutionRequest,
    ExecutionResult,
    ProcessRunner,
    _apply_termination,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX utilities")


def _alive(pid):
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    # Orphans reparented to a non-reaping init linger as zombies
    stat = Path(f"/proc/{pid}/stat")
    try:
        return stat.read_text().rsplit(")", 1)[1].split()[0] != "Z"
    except (OSError, IndexError):
        return True


@pytest.fixture
def runner():
    return ProcessRunner(poll_interval=0.01)


class TestExecutionResult:
    """Tests for ExecutionResult flags."""

    def test_defaults(self):
        result = ExecutionResult()
        assert result.exit_code is None
        assert result.killed is False
        assert result.succeeded is False

    def test_succeeded(self):
        assert ExecutionResult(exit_code=0).succeeded is True
        assert ExecutionResult(exit_code=1).succeeded is False

    def test_killed(self):
        assert ExecutionResult(timed_out=True, signal="SIGKILL").killed is True
        assert ExecutionResult(memory_exceeded=True).killed is True
        assert ExecutionResult(cancelled=True).killed is True


class TestSpawnFailures:
    """Failures that happen before a process exists."""

    def test_missing_executable(self, runner, tmp_path):
        result = runner.execute(ExecutionRequest(command=str(tmp_path / "missing-compiler")))

        assert result.exit_code == -1
        assert result.stderr
        assert result.stdout == ""
        assert result.killed is False

    def test_popen_error(self, runner):
        with patch(
            "compilerkit.execution.runner.subprocess.Popen",
            side_effect=OSError("permission denied"),
        ):
            result = runner.execute(ExecutionRequest(command="cc"))

        assert result.exit_code == -1
        assert result.stderr == "permission denied"

    @pytest.mark.parametrize("command", ["", None])
    def test_empty_command(self, runner, command):
        with pytest.raises(ValueError, match="non-empty string"):
            runner.execute(ExecutionRequest(command=command))


@posix_only
class TestNormalExit:
    """Processes that end on their own."""

    def test_stdout_and_exit_code(self, runner):
        result = runner.execute(ExecutionRequest(command="echo", args=["hello"]))

        assert result.stdout == "hello\n"
        assert result.exit_code == 0
        assert result.signal is None
        assert result.succeeded is True
        assert result.duration_ms > 0

    def test_nonzero_exit(self, runner):
        result = runner.execute(ExecutionRequest(command="sh", args=["-c", "exit 3"]))

        assert result.exit_code == 3
        assert result.succeeded is False
        assert result.killed is False

    def test_stderr_captured_separately(self, runner):
        result = runner.execute(
            ExecutionRequest(command="sh", args=["-c", "echo out; echo err >&2"])
        )

        assert result.stdout == "out\n"
        assert result.stderr == "err\n"

    def test_stdin_is_fed_and_closed(self, runner):
        result = runner.execute(ExecutionRequest(command="cat", stdin="1 2\n3 4\n"))

        assert result.stdout == "1 2\n3 4\n"
        assert result.exit_code == 0

    def test_unread_stdin_is_not_an_error(self, runner):
        result = runner.execute(ExecutionRequest(command="true", stdin="x" * 1_000_000))

        assert result.exit_code == 0

    def test_output_is_not_trimmed(self, runner):
        result = runner.execute(
            ExecutionRequest(command="printf", args=["  padded  \n\n"])
        )

        assert result.stdout == "  padded  \n\n"

    def test_working_directory(self, runner, tmp_path):
        result = runner.execute(ExecutionRequest(command="pwd", cwd=str(tmp_path)))

        assert os.path.realpath(result.stdout.strip()) == os.path.realpath(tmp_path)

    def test_environment(self, runner):
        result = runner.execute(
            ExecutionRequest(
                command="sh",
                args=["-c", "echo $COMPILERKIT_TEST"],
                env={"COMPILERKIT_TEST": "value", "PATH": os.environ.get("PATH", "")},
            )
        )

        assert result.stdout == "value\n"

    def test_terminated_by_signal(self, runner):
        result = runner.execute(ExecutionRequest(command="sh", args=["-c", "kill -TERM $$"]))

        assert result.signal == "SIGTERM"
        assert result.exit_code is None
        assert result.killed is False

    def test_zero_timeout_is_unbounded(self, runner):
        result = runner.execute(
            ExecutionRequest(command="sh", args=["-c", "sleep 0.3; echo done"], timeout_ms=0)
        )

        assert result.stdout == "done\n"
        assert result.timed_out is False

    def test_run_command(self, runner):
        result = runner.run_command("echo", ["a", "b"])

        assert result.stdout == "a b\n"


@posix_only
class TestWatchdogs:
    """Processes killed by a watchdog."""

    def test_timeout(self, runner):
        result = runner.execute(
            ExecutionRequest(command="sleep", args=["5"], timeout_ms=200)
        )

        assert result.timed_out is True
        assert result.memory_exceeded is False
        assert result.cancelled is False
        assert result.signal == "SIGKILL"
        assert result.exit_code is None
        assert result.duration_ms < 3000

    def test_timeout_keeps_partial_output(self, runner):
        result = runner.execute(
            ExecutionRequest(command="sh", args=["-c", "echo started; sleep 5"], timeout_ms=300)
        )

        assert result.timed_out is True
        assert result.stdout == "started\n"

    def test_output_limit(self, runner):
        result = runner.execute(
            ExecutionRequest(command="yes", memory_limit_bytes=1024, timeout_ms=5000)
        )

        assert result.memory_exceeded is True
        assert result.timed_out is False
        assert result.signal == "SIGKILL"
        assert result.exit_code is None
        assert len(result.stdout.encode()) <= 1024

    def test_output_below_limit(self, runner):
        result = runner.execute(
            ExecutionRequest(command="echo", args=["small"], memory_limit_bytes=1024)
        )

        assert result.memory_exceeded is False
        assert result.stdout == "small\n"

    def test_cancel_event(self, runner):
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        try:
            result = runner.execute(
                ExecutionRequest(command="sleep", args=["5"], timeout_ms=0, cancel_event=cancel)
            )
        finally:
            timer.cancel()

        assert result.cancelled is True
        assert result.timed_out is False
        assert result.signal == "SIGKILL"
        assert result.duration_ms < 3000

    def test_background_child_is_killed_on_exit(self, runner, tmp_path):
        result = runner.execute(
            ExecutionRequest(
                command="sh",
                args=["-c", "sleep 40 & echo $! > bg.pid; echo started"],
                cwd=str(tmp_path),
                timeout_ms=2000,
            )
        )

        assert result.exit_code == 0
        assert result.stdout == "started\n"
        assert result.duration_ms < 1000

        pid = int((tmp_path / "bg.pid").read_text())
        deadline = time.monotonic() + 2
        while _alive(pid) and time.monotonic() < deadline:
            time.sleep(0.02)
        assert not _alive(pid)

    def test_limit_after_normal_exit_reports_exit_code(self, runner):
        result = runner.execute(
            ExecutionRequest(
                command="sh",
                args=["-c", "head -c 4096 /dev/zero"],
                memory_limit_bytes=1024,
                timeout_ms=5000,
            )
        )

        assert result.memory_exceeded is True
        assert len(result.stdout.encode()) <= 1024
        # Either the kill ended the process or it had already exited with 0
        if result.signal is None:
            assert result.exit_code == 0
        else:
            assert result.signal == "SIGKILL"
            assert result.exit_code is None


class TestApplyTermination:
    """How the termination fields are derived from watchdog and return code."""

    def test_normal_exit(self):
        result = ExecutionResult()
        _apply_termination(result, None, 3)

        assert result.exit_code == 3
        assert result.signal is None
        assert result.killed is False

    def test_external_signal(self):
        result = ExecutionResult()
        _apply_termination(result, None, -15)

        assert result.signal == "SIGTERM"
        assert result.exit_code is None

    @posix_only
    @pytest.mark.parametrize(
        "reason,flag", [(TIMEOUT, "timed_out"), (MEMORY_LIMIT, "memory_exceeded"), (CANCELLED, "cancelled")]
    )
    def test_kill_landed(self, reason, flag):
        result = ExecutionResult()
        _apply_termination(result, reason, -9)

        assert getattr(result, flag) is True
        assert result.signal == "SIGKILL"
        assert result.exit_code is None

    @posix_only
    def test_limit_hit_after_exit_keeps_exit_code(self):
        result = ExecutionResult()
        _apply_termination(result, MEMORY_LIMIT, 0)

        assert result.memory_exceeded is True
        assert result.exit_code == 0
        assert result.signal is None

    @posix_only
    def test_timeout_after_failing_exit(self):
        result = ExecutionResult()
        _apply_termination(result, TIMEOUT, 2)

        assert result.timed_out is True
        assert result.exit_code == 2
        assert result.signal is None

    def test_fired_without_return_code(self):
        result = ExecutionResult()
        _apply_termination(result, TIMEOUT, None)

        assert result.signal == "SIGKILL"
        assert result.exit_code is None

    def test_windows_counts_fired_watchdog_as_kill(self):
        result = ExecutionResult()
        with patch("compilerkit.execution.runner.IS_WINDOWS", True):
            _apply_termination(result, MEMORY_LIMIT, 1)

        assert result.memory_exceeded is True
        assert result.signal == "SIGKILL"
        assert result.exit_code is None
