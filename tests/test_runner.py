# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the subprocess runner."""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from multilint.execution import (
    XARGS_FAILURE_STATUS,
    ExecutionError,
    LinterTimeoutError,
    ProcessRunner,
    argument_budget,
    batch_arguments,
    resolve_executable,
)

ScriptFactory = Callable[[str, str], Path]


def test_runs_with_options_then_files_in_work_dir(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script(
        "echo-args",
        """
        import os, sys
        print(os.getcwd())
        print(" ".join(sys.argv[1:]))
        """,
    )
    work_dir = tmp_path / "work"
    work_dir.mkdir()

    raw = ProcessRunner().run(str(script), ["-x", "--flag"], work_dir, files=["a.sh", "b.sh"])

    assert raw.success
    assert raw.lines == [str(work_dir.resolve()), "-x --flag a.sh b.sh"]


def test_stderr_is_interleaved_with_stdout(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script(
        "mixed",
        """
        import sys
        print("one", flush=True)
        print("two", file=sys.stderr, flush=True)
        print("three", flush=True)
        sys.exit(3)
        """,
    )

    raw = ProcessRunner().run(str(script), [], tmp_path)

    assert raw.exit_status == 3
    assert not raw.success
    assert raw.lines == ["one", "two", "three"]


def test_single_file_mode_invokes_once_per_file(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script(
        "per-file",
        """
        import sys
        print("args=" + ",".join(sys.argv[1:]))
        sys.exit(1 if "bad" in sys.argv[-1] else 0)
        """,
    )

    runner = ProcessRunner()
    good = runner.run(str(script), [], tmp_path, files=["a", "b"], single_file=True)
    bad = runner.run(str(script), [], tmp_path, files=["a", "bad"], single_file=True)

    assert good.exit_status == 0
    assert good.lines == ["args=a", "args=b"]
    assert bad.exit_status == XARGS_FAILURE_STATUS


def test_missing_executable_raises_execution_error(tmp_path: Path) -> None:
    with pytest.raises(ExecutionError, match="not found"):
        ProcessRunner().run("definitely-not-a-real-linter-binary", [], tmp_path)


def test_relative_command_resolves_against_work_dir(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script("local-tool", "print('local')\n")

    assert resolve_executable("bin/local-tool", tmp_path) == str(script)


def test_timeout_kills_process_and_keeps_partial_output(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script(
        "sleepy",
        """
        import time
        print("started", flush=True)
        time.sleep(30)
        """,
    )

    with pytest.raises(LinterTimeoutError) as info:
        ProcessRunner().run(str(script), [], tmp_path, timeout=1.0)

    assert info.value.timeout == 1.0
    assert "started" in info.value.output
    assert isinstance(info.value, ExecutionError)


def test_terminate_all_stops_live_processes(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script("forever", "import time\ntime.sleep(30)\n")
    runner = ProcessRunner()
    results: list[int] = []

    worker = threading.Thread(target=lambda: results.append(runner.run(str(script), [], tmp_path).exit_status))
    worker.start()
    deadline = time.monotonic() + 10
    while runner.active_count == 0 and time.monotonic() < deadline:
        time.sleep(0.05)

    assert runner.terminate_all() == 1
    worker.join(timeout=10)
    assert results and results[0] != 0
    assert runner.active_count == 0


def test_batch_arguments_respects_budget() -> None:
    files = ["aaaa", "bbbb", "cccc", "dddd", "eeee"]
    # Each argument costs its bytes, a NUL and a pointer: 4 + 1 + 8.
    batches = batch_arguments(files, budget=13 * 2)

    assert batches == [["aaaa", "bbbb"], ["cccc", "dddd"], ["eeee"]]
    assert batch_arguments(files, budget=1) == [[name] for name in files]
    assert batch_arguments([], budget=100) == []


def test_argument_budget_subtracts_environment_and_fixed_arguments() -> None:
    bare = argument_budget(10_000, [], environ={})
    with_env = argument_budget(10_000, ["tool", "-x"], environ={"HOME": "/root"})

    assert bare - with_env == (len("HOME=/root") + 9) + (len("tool") + 9) + (len("-x") + 9)


def test_oversized_file_list_is_split_and_statuses_combined(
    tmp_path: Path, make_script: ScriptFactory
) -> None:
    script = make_script(
        "count-args",
        """
        import sys
        print(len(sys.argv) - 1)
        sys.exit(2 if "c" in sys.argv[1:] else 0)
        """,
    )

    runner = ProcessRunner(arg_max=1)
    split = runner.run(str(script), [], tmp_path, files=["a", "b"])
    failing = runner.run(str(script), [], tmp_path, files=["a", "b", "c"])
    unsplit = ProcessRunner().run(str(script), [], tmp_path, files=["a", "b", "c"])

    assert split.lines == ["1", "1"]
    assert split.exit_status == 0
    assert failing.exit_status == XARGS_FAILURE_STATUS
    assert unsplit.lines == ["3"]
    assert unsplit.exit_status == 2


def test_terminated_runner_refuses_new_processes(tmp_path: Path, make_script: ScriptFactory) -> None:
    script = make_script("quick", "print('hi')\n")
    runner = ProcessRunner()

    runner.terminate_all()

    assert runner.terminating
    with pytest.raises(ExecutionError, match="shutting down"):
        runner.run(str(script), [], tmp_path)


def test_timeout_returns_even_if_a_child_keeps_the_pipe_open(
    tmp_path: Path, make_script: ScriptFactory
) -> None:
    script = make_script(
        "spawner",
        f"""
        import subprocess, time
        subprocess.Popen([{sys.executable!r}, "-c", "import time; time.sleep(8)"])
        print("spawned", flush=True)
        time.sleep(30)
        """,
    )
    runner = ProcessRunner(kill_grace=0.5)

    started = time.monotonic()
    with pytest.raises(LinterTimeoutError):
        runner.run(str(script), [], tmp_path, timeout=1.0)

    assert time.monotonic() - started < 6
