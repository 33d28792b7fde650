"""
Process execution with timeout and memory watchdogs.

Every call to ProcessRunner.execute() returns an ExecutionResult. Process-level
failures (spawn errors, timeouts, output limits) are reported as fields of the
result instead of exceptions, and the call returns within a bounded margin of
the requested timeout regardless of what the child does.

Usage:
    from compilerkit.execution.runner import ExecutionRequest, ProcessRunner

    runner = ProcessRunner()
    result = runner.execute(
        ExecutionRequest(command="./program", stdin="1 2\\n", timeout_ms=1000)
    )
    if result.timed_out:
        print("Time limit exceeded")
"""

import logging
import os
import signal as signal_module
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

# Timeout used for short helper queries (--version, -dumpmachine, vswhere)
DEFAULT_COMMAND_TIMEOUT_MS = 30000

_READ_CHUNK_SIZE = 65536
_READER_JOIN_TIMEOUT = 1.0

TIMEOUT = "timeout"
MEMORY_LIMIT = "memory_limit"
CANCELLED = "cancelled"


@dataclass
class ExecutionRequest:
    """
    A command to execute.

    Attributes:
        command: Executable to spawn
        args: Arguments passed to the executable
        cwd: Working directory (default: current directory)
        timeout_ms: Wall-clock limit in milliseconds, 0 means unbounded
        memory_limit_bytes: Limit on accumulated stdout size
        stdin: Text written to the process before its input is closed
        env: Environment for the child (default: inherit)
        cancel_event: Optional event; setting it kills the process
    """

    command: str
    args: List[str] = field(default_factory=list)
    cwd: Optional[str] = None
    timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    memory_limit_bytes: Optional[int] = None
    stdin: str = ""
    env: Optional[Dict[str, str]] = None
    cancel_event: Optional[threading.Event] = None


@dataclass
class ExecutionResult:
    """
    Outcome of an execution.

    A watchdog that fired sets exactly one of timed_out, memory_exceeded or
    cancelled. If its kill ended the process, signal is 'SIGKILL' and exit_code
    None; a process that had already exited on its own keeps its real exit
    code or signal. Without a watchdog, exit_code or signal describes the exit.
    Spawn failures report exit_code -1 with the error text in stderr.
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    signal: Optional[str] = None
    timed_out: bool = False
    memory_exceeded: bool = False
    cancelled: bool = False
    duration_ms: float = 0.0

    @property
    def killed(self) -> bool:
        return self.timed_out or self.memory_exceeded or self.cancelled

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.killed


class _Watchdog:
    """Kills the process once; the first reason to fire wins."""

    def __init__(self, process: subprocess.Popen, log: logging.Logger):
        self._process = process
        self._lock = threading.Lock()
        self._logger = log
        self.reason: Optional[str] = None

    def fire(self, reason: str) -> bool:
        with self._lock:
            if self.reason is not None:
                return False
            self.reason = reason
        self._logger.debug(f"Killing process {self._process.pid}: {reason}")
        _force_kill(self._process)
        return True


def _force_kill(process: subprocess.Popen) -> None:
    """SIGKILL the process group on POSIX, terminate the process on Windows."""
    try:
        if not IS_WINDOWS:
            os.killpg(process.pid, signal_module.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    except OSError:
        try:
            process.kill()
        except OSError:
            pass


class _StreamReader(threading.Thread):
    """
    Drains one pipe into memory.

    With a limit set, the reader stops keeping data beyond the limit and calls
    on_limit the first time the accumulated size exceeds it.
    """

    def __init__(self, stream, limit: Optional[int] = None, on_limit=None):
        super().__init__(daemon=True)
        self._stream = stream
        self._limit = limit
        self._on_limit = on_limit
        self._chunks: List[bytes] = []
        self._size = 0
        self._lock = threading.Lock()

    def run(self):
        try:
            while True:
                chunk = self._stream.read1(_READ_CHUNK_SIZE)
                if not chunk:
                    break
                exceeded = False
                with self._lock:
                    if self._limit is None:
                        self._chunks.append(chunk)
                    else:
                        room = self._limit - self._size
                        if room > 0:
                            self._chunks.append(chunk[:room])
                        exceeded = self._size + len(chunk) > self._limit
                    self._size += len(chunk)
                if exceeded and self._on_limit is not None:
                    self._on_limit()
        except (OSError, ValueError):
            # Pipe closed underneath us after a kill
            pass

    def text(self) -> str:
        with self._lock:
            data = b"".join(self._chunks)
        return data.decode("utf-8", errors="replace")


def _feed_stdin(stream, data: str, log: logging.Logger) -> None:
    try:
        if data:
            stream.write(data.encode("utf-8"))
            stream.flush()
    except (BrokenPipeError, OSError, ValueError) as e:
        log.debug(f"Process closed its input early: {e}")
    finally:
        try:
            stream.close()
        except (BrokenPipeError, OSError, ValueError):
            pass


def _signal_name(returncode: int) -> str:
    try:
        return signal_module.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


def _kill_group(process: subprocess.Popen) -> None:
    """SIGKILL whatever is left of the process group after the leader exited."""
    try:
        os.killpg(process.pid, signal_module.SIGKILL)
    except OSError:
        # Group already empty (ESRCH), or only zombies left (EPERM on macOS)
        pass


def _apply_termination(
    result: ExecutionResult, reason: Optional[str], returncode: Optional[int]
) -> None:
    """
    Fill the termination fields of result.

    On POSIX a watchdog kill shows up as a negative return code; a
    non-negative one means the process exited before the kill arrived.
    Windows cannot tell the two apart, so a fired watchdog counts as a kill.
    """
    result.timed_out = reason == TIMEOUT
    result.memory_exceeded = reason == MEMORY_LIMIT
    result.cancelled = reason == CANCELLED

    kill_landed = reason is not None and (
        IS_WINDOWS or returncode is None or returncode < 0
    )
    if kill_landed:
        result.signal = "SIGKILL"
    elif returncode is not None and returncode < 0:
        result.signal = _signal_name(returncode)
    else:
        result.exit_code = returncode


class ProcessRunner:
    """
    Spawns processes under timeout and memory watchdogs.

    The timeout watchdog is driven by the polling loop in execute(); the
    memory watchdog runs inside the stdout reader thread. Termination is
    always a forced kill.
    """

    def __init__(
        self, poll_interval: float = 0.02, logger: Optional[logging.Logger] = None
    ):
        """
        Initialize runner.

        Args:
            poll_interval: Seconds between watchdog checks
            logger: Logger to report to (default: module logger)
        """
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute a command and wait for it to finish or be killed.

        Args:
            request: Command, limits and input

        Returns:
            ExecutionResult describing how the process ended

        Raises:
            ValueError: If request.command is empty
        """
        if not request.command or not isinstance(request.command, str):
            raise ValueError("Invalid command: command must be a non-empty string")

        argv = [request.command] + [str(arg) for arg in request.args]
        start = time.monotonic()

        popen_kwargs = {}
        if IS_WINDOWS:
            popen_kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)
        else:
            popen_kwargs["start_new_session"] = True

        try:
            process = subprocess.Popen(
                argv,
                cwd=request.cwd,
                env=request.env,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **popen_kwargs,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self.logger.debug(f"Failed to spawn {request.command}: {e}")
            return ExecutionResult(
                stderr=str(e),
                exit_code=-1,
                duration_ms=(time.monotonic() - start) * 1000,
            )

        watchdog = _Watchdog(process, self.logger)
        stdout_reader = _StreamReader(
            process.stdout,
            limit=request.memory_limit_bytes,
            on_limit=lambda: watchdog.fire(MEMORY_LIMIT),
        )
        stderr_reader = _StreamReader(process.stderr)
        stdin_writer = threading.Thread(
            target=_feed_stdin,
            args=(process.stdin, request.stdin, self.logger),
            daemon=True,
        )
        stdout_reader.start()
        stderr_reader.start()
        stdin_writer.start()

        deadline = start + request.timeout_ms / 1000 if request.timeout_ms > 0 else None

        while True:
            wait_for = self.poll_interval
            if deadline is not None and watchdog.reason is None:
                remaining = deadline - time.monotonic()
                if remaining > 0:
                    wait_for = min(wait_for, remaining)
            try:
                process.wait(timeout=wait_for)
                break
            except subprocess.TimeoutExpired:
                pass

            if deadline is not None and time.monotonic() >= deadline:
                watchdog.fire(TIMEOUT)
            if request.cancel_event is not None and request.cancel_event.is_set():
                watchdog.fire(CANCELLED)

        # Background children would keep the pipes open and outlive the call
        if not IS_WINDOWS:
            _kill_group(process)

        # Grandchildren may hold the pipes open; never wait on them indefinitely
        for thread in (stdout_reader, stderr_reader, stdin_writer):
            thread.join(_READER_JOIN_TIMEOUT)

        duration_ms = (time.monotonic() - start) * 1000
        result = ExecutionResult(
            stdout=stdout_reader.text(),
            stderr=stderr_reader.text(),
            duration_ms=duration_ms,
        )

        _apply_termination(result, watchdog.reason, process.returncode)
        if watchdog.reason is not None:
            if result.timed_out:
                self.logger.debug(f"Process timed out after {request.timeout_ms}ms")
            elif result.memory_exceeded:
                self.logger.debug(
                    f"Process exceeded output limit of {request.memory_limit_bytes} bytes"
                )

        self.logger.debug(
            f"Process {request.command} completed in {duration_ms:.0f}ms "
            f"with exit code: {result.exit_code}"
        )
        return result

    def run_command(
        self,
        command: str,
        args: List[str],
        cwd: Optional[str] = None,
        timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS,
    ) -> ExecutionResult:
        """
        Execute a short helper command with the default timeout.

        Args:
            command: Executable to run
            args: Arguments
            cwd: Working directory
            timeout_ms: Wall-clock limit in milliseconds

        Returns:
            ExecutionResult
        """
        return self.execute(
            ExecutionRequest(command=command, args=list(args), cwd=cwd, timeout_ms=timeout_ms)
        )
