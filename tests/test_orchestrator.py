# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Integration tests for orchestrator execution flow."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable, Sequence
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from multilint.cache import InMemoryCacheStore, JsonFileCacheStore
from multilint.config import ConfigError, MultilintConfig, build_config
from multilint.execution import RawOutput
from multilint.models import OutcomeStatus, RunOutcome
from multilint.orchestration import Orchestrator, OrchestratorHooks
from multilint.parsing import ParseGrammarError
from multilint.reporting import OutputFormat, Printer

GNU_GRAMMAR = "%f:%l:%c: %m"


class StubRunner:
    """Runner stub returning canned results keyed by command."""

    def __init__(
        self,
        responses: dict[str, tuple[int, str]] | None = None,
        delays: dict[str, float] | None = None,
        side_effects: dict[str, Callable[[Path, Sequence[str]], None]] | None = None,
    ) -> None:
        self.responses = responses or {}
        self.delays = delays or {}
        self.side_effects = side_effects or {}
        self.calls: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = []
        self.terminated = 0
        self._lock = threading.Lock()

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
        with self._lock:
            self.calls.append((command, tuple(options), tuple(files)))
        time.sleep(self.delays.get(command, 0.0))
        effect = self.side_effects.get(command)
        if effect is not None:
            effect(work_dir, files)
        status, output = self.responses.get(command, (0, ""))
        return RawOutput(exit_status=status, output=output)

    def terminate_all(self) -> int:
        self.terminated += 1
        return 0

    def commands(self) -> list[str]:
        return [command for command, _, _ in self.calls]


class InterruptingRunner(StubRunner):
    def run(self, command: str, options: Sequence[str], work_dir: Path, **kwargs: Any) -> RawOutput:
        raise KeyboardInterrupt


def _config(root: Path, linters: dict[str, dict[str, Any]], **global_settings: Any) -> MultilintConfig:
    return build_config({"global": global_settings, "linter": linters}, root=root)


def _write(root: Path, *relatives: str) -> None:
    for relative in relatives:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("echo $1\n", encoding="utf-8")


def test_shellcheck_scenario_with_real_process(tmp_path: Path, make_script: Callable[[str, str], Path]) -> None:
    script = make_script(
        "fake-shellcheck",
        """
        import sys
        for path in sys.argv[2:]:
            print(f"{path}:2:6: note: Double quote to prevent globbing and word splitting. [SC2086]")
        sys.exit(1)
        """,
    )
    _write(tmp_path, "foo.sh", "notes.txt")
    config = _config(
        tmp_path,
        {
            "shellcheck": {
                "command": str(script),
                "options": ["--format=gcc"],
                "includes": ["*.sh"],
                "formats": [GNU_GRAMMAR],
            }
        },
    )

    result = Orchestrator(cache_store=InMemoryCacheStore()).run(config)

    outcome = result.outcomes[0]
    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.files == ["foo.sh"]
    assert [(m.program, m.file, m.line, m.column) for m in outcome.messages] == [("shellcheck", "foo.sh", 2, 6)]
    assert outcome.messages[0].message.endswith("[SC2086]")
    assert result.has_failures()


def test_empty_file_set_is_skipped_and_counts_as_success(tmp_path: Path) -> None:
    _write(tmp_path, "readme.md")
    runner = StubRunner()
    config = _config(tmp_path, {"shellcheck": {"command": "shellcheck", "includes": ["*.sh"]}})

    orchestrator = Orchestrator(runner=runner, cache_store=InMemoryCacheStore())
    result = orchestrator.run(config)

    assert result.outcomes[0].status is OutcomeStatus.SKIPPED
    assert runner.calls == []
    assert orchestrator.run_all(config) == 0


def test_unspawnable_command_is_an_error_and_siblings_still_run(
    tmp_path: Path, make_script: Callable[[str, str], Path]
) -> None:
    passing = make_script("passing", "print('all good')\n")
    _write(tmp_path, "a.sh")
    config = _config(
        tmp_path,
        {
            "ghost": {"command": "no-such-linter-on-this-machine", "includes": ["*.sh"]},
            "passing": {"command": str(passing), "includes": ["*.sh"]},
        },
    )

    orchestrator = Orchestrator(cache_store=InMemoryCacheStore())
    result = orchestrator.run(config)

    assert [outcome.program for outcome in result.outcomes] == ["ghost", "passing"]
    ghost, ok = result.outcomes
    assert ghost.status is OutcomeStatus.ERROR
    assert ghost.error is not None and "not found" in ghost.error
    assert ok.status is OutcomeStatus.OK
    assert ok.unstructured == ["all good"]
    assert orchestrator.run_all(config) == 1


def test_files_are_passed_only_when_includes_are_declared(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh", "b.py")
    runner = StubRunner()
    config = _config(
        tmp_path,
        {
            "with-includes": {"command": "one", "options": ["-q"], "includes": ["*.sh"]},
            "whole-tree": {"command": "two", "options": ["check", "."]},
        },
    )

    Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)

    assert sorted(runner.calls) == [("one", ("-q",), ("a.sh",)), ("two", ("check", "."), ())]


def test_hash_mode_second_run_is_cached(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh", "b.sh")
    runner = StubRunner()
    config = _config(tmp_path, {"shellcheck": {"command": "shellcheck", "includes": ["*.sh"], "check_hash": True}})

    first = Orchestrator(runner=runner).run(config)
    second = Orchestrator(runner=runner).run(config)

    assert first.outcomes[0].status is OutcomeStatus.OK
    assert second.outcomes[0].status is OutcomeStatus.CACHED
    assert second.outcomes[0].messages == []
    assert runner.commands() == ["shellcheck"]
    assert JsonFileCacheStore(config.cache_path()).load("shellcheck") is not None


def test_timestamp_mode_touch_forces_rerun(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = StubRunner()
    store = InMemoryCacheStore()
    config = _config(tmp_path, {"shellcheck": {"command": "shellcheck", "includes": ["*.sh"]}})

    Orchestrator(runner=runner, cache_store=store).run(config)
    cached = Orchestrator(runner=runner, cache_store=store).run(config)
    target = tmp_path / "a.sh"
    stat = target.stat()
    os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
    rerun = Orchestrator(runner=runner, cache_store=store).run(config)

    assert cached.outcomes[0].status is OutcomeStatus.CACHED
    assert rerun.outcomes[0].status is OutcomeStatus.OK
    assert runner.commands() == ["shellcheck", "shellcheck"]


def test_failed_linter_is_not_cached(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = StubRunner(responses={"shellcheck": (1, "a.sh:1:1: boom\n")})
    store = InMemoryCacheStore()
    config = _config(tmp_path, {"shellcheck": {"command": "shellcheck", "includes": ["*.sh"]}})

    Orchestrator(runner=runner, cache_store=store).run(config)
    Orchestrator(runner=runner, cache_store=store).run(config)

    assert runner.commands() == ["shellcheck", "shellcheck"]


def test_cache_disabled_in_config_uses_memory(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = StubRunner()
    config = _config(tmp_path, {"shellcheck": {"command": "shellcheck", "includes": ["*.sh"]}}, cache=False)

    Orchestrator(runner=runner).run(config)
    Orchestrator(runner=runner).run(config)

    assert runner.commands() == ["shellcheck", "shellcheck"]
    assert not config.cache_path().exists()


def test_outcomes_are_streamed_in_declaration_order(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = StubRunner(delays={"slow": 0.3, "medium": 0.1})
    started: list[str] = []
    finished: list[str] = []
    hooks = OrchestratorHooks(before_linter=started.append, after_linter=lambda o: finished.append(o.program))
    config = _config(
        tmp_path,
        {
            "slow": {"command": "slow", "includes": ["*.sh"]},
            "medium": {"command": "medium", "includes": ["*.sh"]},
            "fast": {"command": "fast", "includes": ["*.sh"]},
        },
    )

    result = Orchestrator(runner=runner, cache_store=InMemoryCacheStore(), jobs=3, hooks=hooks).run(config)

    assert started == finished == ["slow", "medium", "fast"]
    assert [outcome.program for outcome in result.outcomes] == ["slow", "medium", "fast"]


def test_jsonl_output_is_byte_identical_across_runs(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh", "b.sh", "c.py")
    responses = {
        "shellcheck": (1, "a.sh:1:1: first\nb.sh:2:3: second\n"),
        "pyflakes": (1, "c.py:4:1: unused import\n"),
        "slow": (0, ""),
    }
    config = _config(
        tmp_path,
        {
            "slow": {"command": "slow", "includes": ["*.sh"]},
            "shellcheck": {"command": "shellcheck", "includes": ["*.sh"], "formats": [GNU_GRAMMAR]},
            "pyflakes": {"command": "pyflakes", "includes": ["*.py"], "formats": [GNU_GRAMMAR]},
        },
    )

    def render() -> str:
        buffer = StringIO()
        printer = Printer(OutputFormat.JSONL, Console(file=buffer, color_system=None, soft_wrap=True))
        hooks = OrchestratorHooks(before_linter=printer.start, after_linter=printer.finish)
        runner = StubRunner(responses=responses, delays={"slow": 0.1})
        Orchestrator(runner=runner, cache_store=InMemoryCacheStore(), jobs=3, hooks=hooks).run(config)
        return buffer.getvalue()

    first = render()
    second = render()

    assert first == second
    assert len(first.splitlines()) == 3


def test_malformed_grammar_aborts_before_any_linter_runs(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = StubRunner()
    config = _config(
        tmp_path,
        {
            "good": {"command": "good", "includes": ["*.sh"]},
            "bad": {"command": "bad", "includes": ["*.sh"], "formats": ["%f:%q"]},
        },
    )

    with pytest.raises(ParseGrammarError, match="bad"):
        Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)
    assert runner.calls == []


def test_missing_work_dir_is_a_config_error(tmp_path: Path) -> None:
    runner = StubRunner()
    config = _config(tmp_path, {"tool": {"command": "tool", "work_dir": "absent"}})

    with pytest.raises(ConfigError, match="absent"):
        Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)
    assert runner.calls == []


def test_work_dir_scopes_selection_and_execution(tmp_path: Path) -> None:
    _write(tmp_path, "top.sh", "pkg/inner.sh")
    runner = StubRunner()
    config = _config(tmp_path, {"tool": {"command": "tool", "work_dir": "pkg", "includes": ["*.sh"]}})

    result = Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)

    assert result.outcomes[0].files == ["inner.sh"]
    assert runner.calls == [("tool", (), ("inner.sh",))]


def test_modified_files_are_reported(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "b.py")

    def reformat(work_dir: Path, files: Sequence[str]) -> None:
        (work_dir / "b.py").write_text("print('reformatted and longer')\n", encoding="utf-8")

    runner = StubRunner(side_effects={"fmt": reformat})
    config = _config(tmp_path, {"fmt": {"command": "fmt", "includes": ["*.py"]}})

    result = Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)

    assert result.outcomes[0].modified == ["b.py"]


def test_interrupt_terminates_processes_and_reraises(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    runner = InterruptingRunner()
    config = _config(tmp_path, {"tool": {"command": "tool", "includes": ["*.sh"]}})

    with pytest.raises(KeyboardInterrupt):
        Orchestrator(runner=runner, cache_store=InMemoryCacheStore()).run(config)
    assert runner.terminated == 2


def test_after_execution_hook_receives_result(tmp_path: Path) -> None:
    _write(tmp_path, "a.sh")
    seen: list[list[RunOutcome]] = []
    hooks = OrchestratorHooks(after_execution=lambda result: seen.append(result.outcomes))
    config = _config(tmp_path, {"tool": {"command": "tool", "includes": ["*.sh"]}})

    Orchestrator(runner=StubRunner(), cache_store=InMemoryCacheStore(), hooks=hooks).run(config)

    assert [[outcome.status for outcome in outcomes] for outcomes in seen] == [[OutcomeStatus.OK]]
