"""
process.py - Subprocess execution and line decoding for engine CLIs.

Two entry points:
- exec_command(): run to completion and capture stdout/stderr
- exec_command_streaming(): deliver every non-blank output line to a callback
  as it arrives

Streaming reads stdout and stderr on two reader threads that push lines into
one queue; the calling thread drains the queue and invokes the callback, so
callbacks always run on the caller's thread, one at a time. Order within a
channel is preserved; order across channels follows arrival and is
best-effort.

Spawn failures and timeouts are reported through the exit code (1, or the
signal code after a kill) and the output, never raised. A timed-out stream
stops draining after a short grace period; the reader threads are daemons
and are left behind if a grandchild still holds the pipes.
"""

from __future__ import annotations

import logging
import os
import queue
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable, Dict, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]

_EOF = object()

# How long output is still drained after a timed-out process is killed
KILL_GRACE_SECONDS = 2.0


@dataclass
class CommandOutput:
    """Captured result of a buffered command run."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def combined(self) -> str:
        """stdout followed by stderr, the text result aggregation scans.

        The channels are joined on a line boundary so a final stdout line
        without a newline does not run into the first stderr line.
        """
        if self.stdout and self.stderr and not self.stdout.endswith("\n"):
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout + self.stderr


def _build_env(env: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = dict(os.environ)
    if env:
        merged.update(env)
    return merged


def _build_argv(command: str, args: List[str]) -> List[str]:
    # Resolve through PATH so Windows .cmd wrappers run without a shell
    return [shutil.which(command) or command, *args]


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def iter_lines(stream: IO[str]) -> Iterator[str]:
    """Split a text stream into lines, dropping line endings and blank lines."""
    for raw in stream:
        line = raw.rstrip("\r\n")
        if line.strip():
            yield line


def split_lines(text: str) -> List[str]:
    """Split captured text into non-blank lines (same rules as iter_lines)."""
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


def exec_command(
    command: str,
    args: List[str],
    work_dir: Union[str, Path],
    env: Optional[Dict[str, str]] = None,
    stdin_content: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CommandOutput:
    """Execute a command and capture its output.

    Args:
        command: Executable name or path.
        args: Arguments after the executable.
        work_dir: Working directory for the child process.
        env: Extra environment variables merged over os.environ.
        stdin_content: Optional text passed on stdin (stdin is closed otherwise).
        timeout: Optional timeout in seconds.

    Returns:
        CommandOutput with stdout, stderr and exit code.
    """
    argv = _build_argv(command, args)
    logger.debug("Running %s in %s", argv[0], work_dir)
    try:
        completed = subprocess.run(
            argv,
            cwd=str(work_dir),
            env=_build_env(env),
            input=stdin_content,
            stdin=subprocess.DEVNULL if stdin_content is None else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning("%s timed out after %ss", command, timeout)
        stderr = _to_text(e.stderr)
        return CommandOutput(
            stdout=_to_text(e.stdout),
            stderr=f"{stderr}\nTimed out after {timeout}s",
            exit_code=1,
        )
    except OSError as e:
        logger.warning("Failed to start %s: %s", command, e)
        return CommandOutput(stdout="", stderr=f"\nSpawn error: {e}", exit_code=1)

    return CommandOutput(
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        exit_code=completed.returncode,
    )


def _pump(stream: IO[str], line_queue: "queue.Queue[Any]") -> None:
    try:
        for line in iter_lines(stream):
            line_queue.put(line)
    except (OSError, ValueError) as e:
        logger.debug("Output stream closed early: %s", e)
    finally:
        line_queue.put(_EOF)


def _write_stdin(process: subprocess.Popen, stdin_content: str) -> None:
    if process.stdin is None:
        return
    try:
        process.stdin.write(stdin_content)
        process.stdin.close()
    except (BrokenPipeError, OSError) as e:
        logger.debug("Could not write prompt to stdin: %s", e)


def exec_command_streaming(
    command: str,
    args: List[str],
    work_dir: Union[str, Path],
    on_line: LineCallback,
    env: Optional[Dict[str, str]] = None,
    stdin_content: Optional[str] = None,
    timeout: Optional[float] = None,
) -> int:
    """Execute a command, calling on_line for each non-blank output line.

    Lines from stdout and stderr are merged into one callback sequence.
    on_line is invoked on the calling thread before the next line is taken.

    Args:
        command: Executable name or path.
        args: Arguments after the executable.
        work_dir: Working directory for the child process.
        on_line: Callback receiving each line (without its line ending).
        env: Extra environment variables merged over os.environ.
        stdin_content: Optional text passed on stdin.
        timeout: Optional timeout in seconds. On expiry the process is killed
            and output is drained for at most KILL_GRACE_SECONDS more, even
            if a background grandchild keeps the pipes open.

    Returns:
        The process exit code (1 if the process could not be started).
    """
    argv = _build_argv(command, args)
    logger.debug("Streaming %s in %s", argv[0], work_dir)
    try:
        process = subprocess.Popen(
            argv,
            cwd=str(work_dir),
            env=_build_env(env),
            stdin=subprocess.PIPE if stdin_content is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        logger.warning("Failed to start %s: %s", command, e)
        on_line(f"Spawn error: {e}")
        return 1

    line_queue: "queue.Queue[Any]" = queue.Queue()
    readers = [
        threading.Thread(target=_pump, args=(stream, line_queue), daemon=True)
        for stream in (process.stdout, process.stderr)
    ]
    for reader in readers:
        reader.start()

    # The child may never read stdin; a large prompt must not block the deadline loop
    if stdin_content is not None:
        threading.Thread(target=_write_stdin, args=(process, stdin_content), daemon=True).start()

    deadline = time.monotonic() + timeout if timeout else None
    timed_out = False
    open_streams = len(readers)
    try:
        while open_streams:
            wait = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            try:
                item = line_queue.get(timeout=wait)
            except queue.Empty:
                if timed_out:
                    # A surviving grandchild still holds the pipes open
                    logger.warning(
                        "%s output still open %ss after kill, abandoning readers",
                        command,
                        KILL_GRACE_SECONDS,
                    )
                    break
                logger.warning("%s timed out after %ss, terminating", command, timeout)
                timed_out = True
                deadline = time.monotonic() + KILL_GRACE_SECONDS
                process.kill()
                continue
            if item is _EOF:
                open_streams -= 1
                continue
            on_line(item)
    except BaseException:
        process.kill()
        process.wait()
        raise

    exit_code = process.wait()
    if not open_streams:
        for reader in readers:
            reader.join(timeout=1.0)

    if timed_out:
        on_line(f"Timed out after {timeout}s")
        return exit_code or 1
    return exit_code
