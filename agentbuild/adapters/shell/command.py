"""
Shell command execution — the build executor.

Every external process the pipeline starts goes through here, in one of
two modes:

    run_command()     short-lived commands (version probes, tool checks,
                      installs). Blocking, fully captured, bounded by a
                      timeout (20 minutes by default).

    stream_command()  the long-running build steps. Output is drained on
                      reader threads into two independent sinks: a
                      RollingDisplay (last N lines, redrawn in place) for
                      live progress, and an OutputCollector that keeps
                      everything for error reporting.

Both modes take an explicit environment: a snapshot of the base
environment with overrides applied on a copy. The parent process's
``os.environ`` is never modified.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import signal
import subprocess
import sys
import threading
import time
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import IO, TextIO

from agentbuild.core.errors import AgentBuildError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1200  # seconds
DISPLAY_LINES = 6

# Seconds to wait for output pipes to close after a kill
_KILL_GRACE = 2.0

_IS_WINDOWS = os.name == "nt"


class CommandError(AgentBuildError):
    """A command could not be started or exited non-zero.

    ``exit_code`` is None when the process never started (binary not
    found, permission denied).
    """

    def __init__(
        self,
        command: Sequence[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
        message: str | None = None,
    ):
        self.command = list(command)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = f"Command failed with exit code {exit_code}: {format_command(command)}"
            detail = stderr.strip() or stdout.strip()
            if detail:
                message = f"{message}\n{detail}"
        super().__init__(message)


class CommandTimeout(CommandError):
    """A command exceeded its timeout and was killed."""


@dataclass
class CommandResult:
    """Outcome of a command that exited with code 0."""

    command: list[str]
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int = 0


def format_command(command: Sequence[str] | str) -> str:
    """Render a command for logs and error messages."""
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


def compose_env(
    overrides: Mapping[str, str] | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Copy *base* (default: the current ``os.environ``) and apply *overrides*.

    The returned dict is always a fresh copy; neither input is modified.
    """
    env = dict(os.environ if base is None else base)
    if overrides:
        env.update(overrides)
    return env


def _resolve_argv(command: Sequence[str], env: Mapping[str, str]) -> list[str]:
    """Resolve argv[0] against the child's PATH.

    Needed on Windows, where CreateProcess only finds ``.exe`` files and
    tools like ``dda`` or ``pip`` are shims with other extensions.
    """
    argv = [str(part) for part in command]
    if not argv:
        raise ValueError("Empty command")
    resolved = shutil.which(argv[0], path=env.get("PATH"))
    if resolved:
        argv[0] = resolved
    return argv


def run_command(
    command: Sequence[str],
    *,
    cwd: str | os.PathLike | None = None,
    env_overrides: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run a short-lived command synchronously and capture its output.

    Raises:
        CommandError: Non-zero exit, or the process could not be started.
        CommandTimeout: The command exceeded ``timeout`` seconds.
    """
    env = compose_env(env_overrides, base_env)
    argv = _resolve_argv(command, env)

    logger.debug("Executing: %s (cwd=%s)", format_command(command), cwd or ".")
    start = time.monotonic()

    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeout(
            command,
            None,
            stdout=_as_text(e.stdout),
            stderr=_as_text(e.stderr),
            message=f"Command timed out after {timeout}s: {format_command(command)}",
        ) from e
    except OSError as e:
        raise CommandError(
            command,
            None,
            message=f"Failed to start {format_command(command)}: {e}",
        ) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)

    if result.returncode != 0:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)

    return CommandResult(
        command=list(command),
        exit_code=0,
        stdout=result.stdout,
        stderr=result.stderr,
        duration_ms=elapsed_ms,
    )


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


# ── Streaming sinks ─────────────────────────────────────────────


class OutputCollector:
    """Unbounded accumulator for a process's stdout and stderr."""

    def __init__(self) -> None:
        self._lines: dict[str, list[str]] = {"stdout": [], "stderr": []}
        self._lock = threading.Lock()

    def add(self, stream: str, line: str) -> None:
        with self._lock:
            self._lines[stream].append(line)

    def lines(self, stream: str) -> list[str]:
        with self._lock:
            return list(self._lines[stream])

    def text(self, stream: str) -> str:
        return "".join(self.lines(stream))

    @property
    def stdout(self) -> str:
        return self.text("stdout")

    @property
    def stderr(self) -> str:
        return self.text("stderr")


class RollingDisplay:
    """Bounded live view of the most recent output lines.

    On a terminal, the window is redrawn in place so a long build shows
    steady progress without scrolling thousands of lines. Anywhere else
    (CI logs, pipes) each line is sent to the debug log instead.
    """

    def __init__(
        self,
        max_lines: int = DISPLAY_LINES,
        stream: TextIO | None = None,
        interactive: bool | None = None,
    ):
        self._window: deque[str] = deque(maxlen=max(1, max_lines))
        self._stream = stream if stream is not None else sys.stderr
        if interactive is None:
            isatty = getattr(self._stream, "isatty", None)
            interactive = bool(isatty and isatty())
        self._interactive = interactive
        self._drawn = 0
        self._lock = threading.Lock()

    @property
    def lines(self) -> list[str]:
        """Current window contents, oldest first."""
        with self._lock:
            return list(self._window)

    @property
    def max_lines(self) -> int:
        return self._window.maxlen or 0

    def push(self, line: str) -> None:
        text = line.rstrip("\r\n")
        with self._lock:
            self._window.append(text)
            if self._interactive:
                self._redraw()
            else:
                logger.debug("  %s", text)

    def finish(self) -> None:
        """Leave the last window on screen and stop tracking it."""
        with self._lock:
            self._drawn = 0

    def _redraw(self) -> None:
        out = self._stream
        width = max(20, shutil.get_terminal_size().columns - 1)
        if self._drawn:
            out.write(f"\x1b[{self._drawn}F")
        for text in self._window:
            out.write("\x1b[2K" + text[:width] + "\n")
        self._drawn = len(self._window)
        out.flush()


def _pump(
    pipe: IO[str],
    stream: str,
    collector: OutputCollector,
    display: RollingDisplay | None,
) -> None:
    """Drain one pipe into the sinks until EOF."""
    for line in iter(pipe.readline, ""):
        collector.add(stream, line)
        if display is not None:
            display.push(line)
    pipe.close()


def _drain(
    readers: list[threading.Thread],
    display: RollingDisplay | None,
    deadline: float | None = None,
) -> bool:
    """Join the reader threads, giving up at *deadline* (monotonic).

    Returns False if a pipe is still open at the deadline, which means a
    grandchild outlived the command and kept its output.
    """
    for reader in readers:
        if deadline is None:
            reader.join()
        else:
            reader.join(max(0.0, deadline - time.monotonic()))
    if display is not None:
        display.finish()
    return not any(reader.is_alive() for reader in readers)


def _kill_tree(proc: subprocess.Popen) -> None:
    """Kill *proc* and everything it started."""
    if _IS_WINDOWS:
        subprocess.run(
            ["taskkill", "/F", "/T", "/PID", str(proc.pid)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        if proc.poll() is None:
            proc.kill()
    else:
        # The child leads its own session, so its pid is the group id
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    proc.wait()


def stream_command(
    command: Sequence[str],
    *,
    cwd: str | os.PathLike | None = None,
    env_overrides: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    display: RollingDisplay | None = None,
) -> CommandResult:
    """Run a long-running command with live output.

    The caller blocks until the process exits and its output is drained,
    or until the timeout expires; stdout and stderr are drained
    concurrently so neither pipe can fill and stall the child.

    The timeout covers the whole process tree. The command runs in its
    own process group (a new session on POSIX), and on expiry every
    process in it is killed, including background processes still
    holding the output pipes after the command itself exited.

    Raises:
        CommandError: Non-zero exit (with full stderr), or the process
            could not be started.
        CommandTimeout: The command exceeded ``timeout`` seconds and was killed.
    """
    env = compose_env(env_overrides, base_env)
    argv = _resolve_argv(command, env)

    logger.debug("Streaming: %s (cwd=%s)", format_command(command), cwd or ".")
    start = time.monotonic()
    deadline = start + timeout if timeout is not None else None

    if _IS_WINDOWS:
        group_args = {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    else:
        group_args = {"start_new_session": True}

    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            **group_args,
        )
    except OSError as e:
        raise CommandError(
            command,
            None,
            message=f"Failed to start {format_command(command)}: {e}",
        ) from e

    collector = OutputCollector()
    readers = [
        threading.Thread(
            target=_pump, args=(proc.stdout, "stdout", collector, display), daemon=True
        ),
        threading.Thread(
            target=_pump, args=(proc.stderr, "stderr", collector, display), daemon=True
        ),
    ]
    for reader in readers:
        reader.start()

    try:
        exit_code = proc.wait(timeout=timeout)
        drained = _drain(readers, display, deadline)
    except subprocess.TimeoutExpired:
        drained = False

    if not drained:
        _kill_tree(proc)
        # Pipes close once the group is gone; don't wait long for stragglers
        _drain(readers, display, time.monotonic() + _KILL_GRACE)
        raise CommandTimeout(
            command,
            None,
            stdout=collector.stdout,
            stderr=collector.stderr,
            message=f"Command timed out after {timeout}s: {format_command(command)}",
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)

    if exit_code != 0:
        raise CommandError(command, exit_code, collector.stdout, collector.stderr)

    return CommandResult(
        command=list(command),
        exit_code=0,
        stdout=collector.stdout,
        stderr=collector.stderr,
        duration_ms=elapsed_ms,
    )
