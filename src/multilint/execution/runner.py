# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Controlled execution of external linter processes.

Standard error is redirected into standard output so the captured text keeps
the order in which the program wrote it. File arguments are split across
several invocations when they would not fit in one command line, the way
``xargs`` does, and the statuses are folded into ``123`` when any batch fails.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil

# Bandit: subprocess usage is intentional; commands come from the user's
# configuration and are passed as argument lists without shell expansion.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Final

LOGGER = logging.getLogger(__name__)

XARGS_FAILURE_STATUS: Final[int] = 123
DEFAULT_ARG_MAX: Final[int] = 128 * 1024
KILL_GRACE_SECONDS: Final[float] = 5.0
# Room kept free below ARG_MAX, as POSIX xargs does.
_ARG_HEADROOM: Final[int] = 2048
_POINTER_SIZE: Final[int] = 8


class ExecutionError(RuntimeError):
    """Raised when a linter cannot be started or does not finish."""

    def __init__(self, message: str, *, command: Sequence[str] = (), output: str = "") -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.output = output


class LinterTimeoutError(ExecutionError):
    """Raised when a linter exceeds its configured timeout."""

    def __init__(self, command: Sequence[str], timeout: float, output: str = "") -> None:
        super().__init__(f"Command timed out after {timeout:.1f}s", command=command, output=output)
        self.timeout = timeout


@dataclass(frozen=True, slots=True)
class RawOutput:
    """Exit status and combined output of one linter invocation."""

    exit_status: int
    output: str

    @property
    def lines(self) -> list[str]:
        return self.output.splitlines()

    @property
    def success(self) -> bool:
        return self.exit_status == 0


def _decode(payload: bytes | None) -> str:
    if not payload:
        return ""
    return payload.decode("utf-8", errors="replace")


def _arg_cost(argument: str) -> int:
    return len(os.fsencode(argument)) + 1 + _POINTER_SIZE


def system_arg_max() -> int:
    """Return the platform limit on argument plus environment size."""

    try:
        value = os.sysconf("SC_ARG_MAX")
    except (AttributeError, ValueError, OSError):
        return DEFAULT_ARG_MAX
    return value if value > 0 else DEFAULT_ARG_MAX


def argument_budget(arg_max: int, fixed: Sequence[str], environ: Mapping[str, str] | None = None) -> int:
    """Return the bytes left for file arguments after ``fixed`` and the environment."""

    env = os.environ if environ is None else environ
    used = sum(_arg_cost(f"{key}={value}") for key, value in env.items())
    used += sum(_arg_cost(argument) for argument in fixed)
    return arg_max - used - _ARG_HEADROOM


def batch_arguments(files: Sequence[str], budget: int) -> list[list[str]]:
    """Split ``files`` into ordered batches whose size stays within ``budget``.

    A file that does not fit on its own still gets a batch of its own.
    """

    batches: list[list[str]] = []
    current: list[str] = []
    size = 0
    for path in files:
        cost = _arg_cost(path)
        if current and size + cost > budget:
            batches.append(current)
            current, size = [], 0
        current.append(path)
        size += cost
    if current:
        batches.append(current)
    return batches


def resolve_executable(command: str, work_dir: Path) -> str:
    """Return an absolute path for ``command``.

    Commands containing a path separator are resolved against ``work_dir``;
    bare names are looked up on ``PATH``.

    Raises:
        ExecutionError: If no executable can be found.
    """

    if os.sep in command or (os.altsep and os.altsep in command):
        candidate = Path(command).expanduser()
        if not candidate.is_absolute():
            candidate = work_dir / candidate
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        raise ExecutionError(f"Executable '{command}' was not found", command=(command,))
    resolved = shutil.which(command)
    if resolved is None:
        raise ExecutionError(f"Executable '{command}' was not found on PATH", command=(command,))
    return resolved


class ProcessRunner:
    """Spawn linter processes and keep track of the live ones."""

    def __init__(self, *, arg_max: int | None = None, kill_grace: float = KILL_GRACE_SECONDS) -> None:
        """Create a runner.

        Args:
            arg_max: Limit on the size of one command line plus environment;
                defaults to the platform's ``SC_ARG_MAX``.
            kill_grace: Seconds to wait for remaining output after killing a
                process that timed out.
        """

        self._arg_max = arg_max if arg_max is not None else system_arg_max()
        self._kill_grace = kill_grace
        self._active: set[subprocess.Popen[bytes]] = set()
        self._lock = Lock()
        self._terminating = False

    def run(
        self,
        command: str,
        options: Sequence[str],
        work_dir: Path,
        *,
        files: Sequence[str] = (),
        timeout: float | None = None,
        single_file: bool = False,
    ) -> RawOutput:
        """Run ``command`` with ``options`` (and ``files``) inside ``work_dir``.

        Args:
            command: Executable name or path.
            options: Arguments placed before any file arguments.
            work_dir: Working directory for the process.
            files: File arguments appended after ``options``.
            timeout: Seconds allowed per invocation; ``None`` waits forever.
            single_file: Invoke once per file instead of once per batch.

        Returns:
            RawOutput: Exit status and captured output. With several
            invocations the status is ``0`` when all succeeded and ``123``
            otherwise, and outputs are concatenated in order.

        Raises:
            ExecutionError: If the executable is missing or cannot be spawned.
            LinterTimeoutError: If an invocation exceeds ``timeout``.
        """

        if not work_dir.is_dir():
            raise ExecutionError(f"{work_dir} is not a directory", command=(command,))
        executable = resolve_executable(command, work_dir)
        if single_file and files:
            batches = [[path] for path in files]
        elif files:
            batches = batch_arguments(files, argument_budget(self._arg_max, [executable, *options]))
        else:
            batches = [[]]
        if len(batches) > 1:
            LOGGER.debug("%s: %d file(s) split into %d invocation(s)", command, len(files), len(batches))

        chunks: list[str] = []
        statuses: list[int] = []
        for batch in batches:
            argv = [executable, *options, *batch]
            try:
                status, text = self._spawn(argv, work_dir, timeout)
            except LinterTimeoutError as exc:
                raise LinterTimeoutError(exc.command, exc.timeout, "".join(chunks) + exc.output) from exc
            chunks.append(text)
            statuses.append(status)

        if len(statuses) == 1:
            exit_status = statuses[0]
        else:
            exit_status = 0 if all(status == 0 for status in statuses) else XARGS_FAILURE_STATUS
        return RawOutput(exit_status=exit_status, output="".join(chunks))

    def _spawn(self, argv: Sequence[str], cwd: Path, timeout: float | None) -> tuple[int, str]:
        with self._lock:
            if self._terminating:
                raise ExecutionError("Runner is shutting down", command=argv)
        LOGGER.debug("command: %s (cwd=%s)", shlex.join(argv), cwd)
        try:
            # Bandit: argument list execution without a shell.
            process = subprocess.Popen(  # nosec B603
                list(argv),
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise ExecutionError(f"Cannot spawn '{argv[0]}': {exc}", command=argv) from exc

        with self._lock:
            self._active.add(process)
            # terminate_all may have run while Popen was starting the process.
            if self._terminating:
                process.terminate()
        try:
            try:
                stdout, _ = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                raise LinterTimeoutError(argv, timeout or 0.0, self._drain(process)) from None
        finally:
            with self._lock:
                self._active.discard(process)
        LOGGER.debug("exit status %s from %s", process.returncode, argv[0])
        return process.returncode, _decode(stdout)

    def _drain(self, process: subprocess.Popen[bytes]) -> str:
        """Collect what a killed process left in its pipe, waiting at most ``kill_grace``."""

        try:
            stdout, _ = process.communicate(timeout=self._kill_grace)
        except subprocess.TimeoutExpired as exc:
            # A surviving grandchild still holds the pipe open.
            LOGGER.debug("output pipe of %s still open after kill", process.args)
            if process.stdout is not None:
                process.stdout.close()
            process.wait()
            return _decode(exc.stdout if isinstance(exc.stdout, bytes) else None)
        return _decode(stdout)

    def terminate_all(self) -> int:
        """Terminate every live process, refuse new ones and return how many were signalled."""

        with self._lock:
            self._terminating = True
            processes = list(self._active)
        signalled = 0
        for process in processes:
            if process.poll() is None:
                process.terminate()
                signalled += 1
        return signalled

    @property
    def terminating(self) -> bool:
        with self._lock:
            return self._terminating

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)


__all__ = [
    "DEFAULT_ARG_MAX",
    "ExecutionError",
    "KILL_GRACE_SECONDS",
    "LinterTimeoutError",
    "ProcessRunner",
    "RawOutput",
    "XARGS_FAILURE_STATUS",
    "argument_budget",
    "batch_arguments",
    "resolve_executable",
    "system_arg_max",
]
