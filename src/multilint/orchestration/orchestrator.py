# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Coordinate file selection, caching, execution and streaming of outcomes."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ..cache import CacheGate, CacheStore, InMemoryCacheStore, JsonFileCacheStore, linter_fingerprint
from ..config.models import ConfigError, LinterSettings, MultilintConfig, default_parallel_jobs
from ..constants import EXIT_LINT_FAILURE, EXIT_OK
from ..discovery import FileSelector
from ..execution import ExecutionError, ProcessRunner, RawOutput
from ..logging import warn
from ..models import OutcomeStatus, RunOutcome, RunResult
from ..parsing import Matcher, compile_grammars

LOGGER = logging.getLogger(__name__)

FileState = tuple[int, int]


class LinterRunner(Protocol):
    """Subset of :class:`ProcessRunner` the orchestrator depends on."""

    def run(
        self,
        command: str,
        options: Sequence[str],
        work_dir: Path,
        *,
        files: Sequence[str] = (),
        timeout: float | None = None,
        single_file: bool = False,
    ) -> RawOutput: ...

    def terminate_all(self) -> int: ...


@dataclass
class OrchestratorHooks:
    """Optional callbacks fired in declaration order as outcomes become available."""

    before_linter: Callable[[str], None] | None = None
    after_linter: Callable[[RunOutcome], None] | None = None
    after_selection: Callable[[str, int], None] | None = None
    after_execution: Callable[[RunResult], None] | None = None


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """A linter whose grammars and working directory have been validated."""

    name: str
    settings: LinterSettings
    work_dir: Path
    matcher: Matcher
    fingerprint: str
    files: tuple[str, ...] = field(default=())

    @property
    def absolute_files(self) -> list[Path]:
        return [self.work_dir / relative for relative in self.files]

    @property
    def arguments(self) -> tuple[str, ...]:
        """File arguments appended to the command line."""
        return self.files if self.settings.passes_files else ()


class Orchestrator:
    """Run the configured linters concurrently and report them in order."""

    def __init__(
        self,
        *,
        runner: LinterRunner | None = None,
        cache_store: CacheStore | None = None,
        jobs: int | None = None,
        hooks: OrchestratorHooks | None = None,
        selector: FileSelector | None = None,
        use_color: bool | None = None,
    ) -> None:
        self._runner: LinterRunner = runner or ProcessRunner()
        self._cache_store = cache_store
        self._jobs = jobs
        self._hooks = hooks or OrchestratorHooks()
        self._selector = selector
        self._use_color = use_color

    def run(self, config: MultilintConfig) -> RunResult:
        """Execute every linter in ``config`` and return their outcomes.

        Raises:
            ConfigError: When a grammar is malformed or a working directory is
                missing; nothing has been executed at that point.
        """

        targets = self.resolve_targets(config)
        gate = CacheGate(self._cache_store or self._default_store(config))
        selector = self._selector or FileSelector(skip_paths=[config.cache_path()])
        jobs = self._jobs or config.global_.jobs or default_parallel_jobs()
        LOGGER.debug("running %d linter(s) with %d job(s)", len(targets), jobs)

        result = RunResult(root=config.root)
        slots: list[RunOutcome | Future[RunOutcome]] = []
        executor = ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="multilint")
        try:
            for target in targets:
                slots.append(self._dispatch(target, config, selector, gate, executor))
            for target, slot in zip(targets, slots, strict=True):
                outcome = slot.result() if isinstance(slot, Future) else slot
                result.outcomes.append(outcome)
                self._notify(target.name, outcome)
        except KeyboardInterrupt:
            signalled = self._runner.terminate_all()
            executor.shutdown(wait=False, cancel_futures=True)
            # Catch workers that reached Popen between the first signal and the cancel.
            signalled += self._runner.terminate_all()
            LOGGER.debug("interrupted; terminated %d process(es)", signalled)
            raise
        finally:
            executor.shutdown(wait=True)

        if self._hooks.after_execution is not None:
            self._hooks.after_execution(result)
        return result

    def run_all(self, config: MultilintConfig) -> int:
        """Run every linter and return the overall exit status."""

        result = self.run(config)
        return EXIT_LINT_FAILURE if result.has_failures() else EXIT_OK

    def resolve_targets(self, config: MultilintConfig) -> list[ResolvedTarget]:
        """Compile grammars and check working directories for every linter."""

        targets: list[ResolvedTarget] = []
        for name, settings in config.linters.items():
            try:
                matcher = compile_grammars(settings.formats)
            except ConfigError as exc:
                raise type(exc)(f"linter '{name}': {exc}") from exc
            work_dir = settings.resolve_work_dir(config.root)
            if not work_dir.is_dir():
                raise ConfigError(f"linter '{name}': work_dir {work_dir} is not a directory")
            targets.append(
                ResolvedTarget(
                    name=name,
                    settings=settings,
                    work_dir=work_dir,
                    matcher=matcher,
                    fingerprint=linter_fingerprint(settings, work_dir),
                )
            )
        return targets

    def _dispatch(
        self,
        target: ResolvedTarget,
        config: MultilintConfig,
        selector: FileSelector,
        gate: CacheGate,
        executor: ThreadPoolExecutor,
    ) -> RunOutcome | Future[RunOutcome]:
        files = selector.select(target.settings, target.work_dir, config.global_.excludes)
        if self._hooks.after_selection is not None:
            self._hooks.after_selection(target.name, len(files))
        if not files:
            LOGGER.debug("%s: no files selected", target.name)
            return RunOutcome(program=target.name, status=OutcomeStatus.SKIPPED)

        target = ResolvedTarget(
            name=target.name,
            settings=target.settings,
            work_dir=target.work_dir,
            matcher=target.matcher,
            fingerprint=target.fingerprint,
            files=tuple(files),
        )
        if not gate.should_run(
            target.name,
            target.absolute_files,
            target.settings.check_hash,
            fingerprint=target.fingerprint,
        ):
            LOGGER.debug("%s: inputs unchanged since last successful run", target.name)
            return RunOutcome(program=target.name, status=OutcomeStatus.CACHED, files=list(files))
        return executor.submit(self._execute, target, gate)

    def _execute(self, target: ResolvedTarget, gate: CacheGate) -> RunOutcome:
        settings = target.settings
        before = _stat_files(target.work_dir, target.files)
        try:
            raw = self._runner.run(
                settings.command,
                settings.options,
                target.work_dir,
                files=target.arguments,
                timeout=settings.timeout,
                single_file=settings.single_file,
            )
        except ExecutionError as exc:
            self._log_execution_failure(target, exc)
            outcome = RunOutcome(
                program=target.name,
                status=OutcomeStatus.ERROR,
                output=exc.output,
                lines=target.matcher.parse_output(target.name, exc.output),
                error=str(exc),
                files=list(target.files),
            )
        else:
            outcome = RunOutcome(
                program=target.name,
                status=OutcomeStatus.OK if raw.success else OutcomeStatus.FAILED,
                exit_status=raw.exit_status,
                output=raw.output,
                lines=target.matcher.parse_output(target.name, raw.output),
                files=list(target.files),
                modified=_modified_files(before, _stat_files(target.work_dir, target.files)),
            )
        gate.record_run(
            target.name,
            target.absolute_files,
            outcome,
            check_hash=settings.check_hash,
            fingerprint=target.fingerprint,
        )
        return outcome

    def _notify(self, name: str, outcome: RunOutcome) -> None:
        if self._hooks.before_linter is not None:
            self._hooks.before_linter(name)
        if self._hooks.after_linter is not None:
            self._hooks.after_linter(outcome)

    def _log_execution_failure(self, target: ResolvedTarget, exc: ExecutionError) -> None:
        """Emit a warning describing a linter that could not be run to completion."""

        details = [
            f"command: {shlex.join(exc.command) if exc.command else target.settings.command}",
            f"cwd: {target.work_dir}",
            f"files: {len(target.files)}",
        ]
        tail = _last_non_empty_line(exc.output)
        if tail:
            details.append(f"output: {tail}")
        warn(f"{target.name} failed: {exc}\n  " + "\n  ".join(details), use_color=self._use_color)

    @staticmethod
    def _default_store(config: MultilintConfig) -> CacheStore:
        if config.global_.cache:
            return JsonFileCacheStore(config.cache_path())
        return InMemoryCacheStore()


def _stat_files(work_dir: Path, files: Sequence[str]) -> dict[str, FileState]:
    states: dict[str, FileState] = {}
    for relative in files:
        try:
            stat = (work_dir / relative).stat()
        except OSError:
            continue
        states[relative] = (stat.st_mtime_ns, stat.st_size)
    return states


def _modified_files(before: dict[str, FileState], after: dict[str, FileState]) -> list[str]:
    """Return files whose size or timestamp changed, or that disappeared."""

    return [relative for relative, state in before.items() if after.get(relative) != state]


def _last_non_empty_line(output: str) -> str | None:
    for line in reversed(output.splitlines()):
        if line.strip():
            return line.strip()
    return None


__all__ = ["LinterRunner", "Orchestrator", "OrchestratorHooks", "ResolvedTarget"]
