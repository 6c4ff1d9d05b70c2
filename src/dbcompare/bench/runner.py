"""Comparison run loop.

For each of ``num_runs`` iterations, runs the first target's worker and
then the second's, strictly one at a time. A run that fails for any
reason is logged and left out; the loop always finishes every
iteration. Only once it is done does the lack of data for a target
become an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from dbcompare.bench.config import HarnessConfig, TargetDef, validate_config
from dbcompare.bench.invoker import WorkerOutput, invoke
from dbcompare.bench.results import (
    ComparisonResults,
    RunFailure,
    RunResult,
    parse_run_output,
)
from dbcompare.errors import InsufficientDataError, InvocationError, ParseError, WorkerTimeoutError
from dbcompare.formatting import format_wall_time

log = logging.getLogger("dbcompare")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class RunProgress:
    """Progress info passed to the callback after every run attempt."""

    target: str
    iteration: int  # 1-based
    total_iterations: int
    status: str  # "ok", "invocation", "timeout", "parse", "error"
    wall_time_s: float = 0.0
    operations: int = 0
    detail: str = ""


ProgressCallback = Callable[[RunProgress], None]
Invoker = Callable[..., WorkerOutput]


def _classify(exc: Exception) -> str:
    if isinstance(exc, WorkerTimeoutError):
        return "timeout"
    if isinstance(exc, InvocationError):
        return "invocation"
    if isinstance(exc, ParseError):
        return "parse"
    return "error"


# ---------------------------------------------------------------------------
# ComparisonRunner
# ---------------------------------------------------------------------------


class ComparisonRunner:
    """Runs both targets' workers repeatedly according to a HarnessConfig.

    Usage::

        runner = ComparisonRunner(config)
        results = runner.run()
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        invoker: Invoker = invoke,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.invoker = invoker
        self.progress: ProgressCallback = progress_callback or self._default_progress

    def run(self) -> ComparisonResults:
        """Execute every iteration and collect the successful runs.

        Returns:
            ComparisonResults with each target's successful runs and the
            list of failed attempts.

        Raises:
            ValueError: If the configuration is invalid.
            InsufficientDataError: If any target has no successful run.
        """
        errors = validate_config(self.config)
        for w in (e for e in errors if e.severity == "warning"):
            log.warning("Config warning: %s: %s", w.field, w.message)
        fatal = [e for e in errors if e.severity == "error"]
        if fatal:
            messages = [f"  {e.field}: {e.message}" for e in fatal]
            raise ValueError("Invalid configuration:\n" + "\n".join(messages))

        total = self.config.num_runs
        results = ComparisonResults(targets=self.config.target_names, num_runs=total)
        worker_env = self.config.worker_env()

        for iteration in range(1, total + 1):
            for target in self.config.targets:
                log.debug("Run %d of %d for %s", iteration, total, target.name)
                self._run_once(target, iteration, worker_env, results)

        empty = results.empty_targets
        if empty:
            raise InsufficientDataError(
                f"No successful runs for {', '.join(empty)} after {total} attempt(s); "
                "no results to compare.",
                missing_targets=empty,
            )
        return results

    def _run_once(
        self,
        target: TargetDef,
        iteration: int,
        worker_env: dict[str, str],
        results: ComparisonResults,
    ) -> None:
        """Invoke and parse one run, recording either the result or the failure."""
        total = self.config.num_runs
        try:
            output = self.invoker(
                target,
                timeout=self.config.effective_timeout,
                env=worker_env,
            )
            entries = parse_run_output(output.stdout)
        except Exception as exc:  # noqa: BLE001
            kind = _classify(exc)
            if kind == "error":
                log.debug("Unexpected failure in %s run %d", target.name, iteration, exc_info=True)
            results.failures.append(
                RunFailure(target=target.name, index=iteration, kind=kind, error=str(exc))
            )
            self.progress(
                RunProgress(
                    target=target.name,
                    iteration=iteration,
                    total_iterations=total,
                    status=kind,
                    detail=str(exc),
                )
            )
            return

        results.runs[target.name].append(
            RunResult(
                target=target.name,
                index=iteration,
                entries=entries,
                wall_time_s=output.wall_time_s,
            )
        )
        self.progress(
            RunProgress(
                target=target.name,
                iteration=iteration,
                total_iterations=total,
                status="ok",
                wall_time_s=output.wall_time_s,
                operations=len(entries),
            )
        )

    @staticmethod
    def _default_progress(p: RunProgress) -> None:
        """Log one line per run attempt."""
        prefix = f"Run {p.iteration} of {p.total_iterations} for {p.target}"
        if p.status == "ok":
            log.info(
                "%s: ok (%d operations, %s)",
                prefix,
                p.operations,
                format_wall_time(p.wall_time_s),
            )
        else:
            log.warning("%s: failed [%s] %s", prefix, p.status, p.detail)


def run_comparison(config: HarnessConfig, **kwargs: Any) -> ComparisonResults:
    """Convenience wrapper: ``ComparisonRunner(config, **kwargs).run()``."""
    return ComparisonRunner(config, **kwargs).run()
