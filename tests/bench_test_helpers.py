"""Shared test fixtures for comparison tests."""

from __future__ import annotations

import json
import sys

from dbcompare.bench.config import HarnessConfig, TargetDef
from dbcompare.bench.invoker import WorkerOutput
from dbcompare.bench.results import ComparisonResults, RunResult, TimingEntry


def make_entries(timings: list[tuple[str, float]], unit: str | None = None) -> tuple[TimingEntry, ...]:
    """Create timing entries from (operation, duration) pairs."""
    return tuple(TimingEntry(op, float(d), unit) for op, d in timings)


def make_run(
    target: str,
    index: int,
    timings: list[tuple[str, float]],
    *,
    unit: str | None = None,
) -> RunResult:
    return RunResult(target=target, index=index, entries=make_entries(timings, unit), wall_time_s=1.0)


def make_results(runs: dict[str, list[list[tuple[str, float]]]]) -> ComparisonResults:
    """Create ComparisonResults from target -> list of runs of (op, ms)."""
    targets = list(runs)
    num_runs = max((len(r) for r in runs.values()), default=0)
    results = ComparisonResults(targets=targets, num_runs=num_runs)
    for name, target_runs in runs.items():
        for i, timings in enumerate(target_runs):
            results.runs[name].append(make_run(name, i + 1, timings))
    return results


def worker_json(timings: list[tuple[str, float]]) -> str:
    """Worker stdout in the legacy ``Time_ms`` shape."""
    return json.dumps([{"Operation": op, "Time_ms": ms} for op, ms in timings])


def worker_output(target: str, stdout: str) -> WorkerOutput:
    return WorkerOutput(target=target, stdout=stdout, stderr="", wall_time_s=0.5)


def python_worker(name: str, code: str) -> TargetDef:
    """A target whose worker is ``python -c <code>``."""
    return TargetDef(name=name, command=[sys.executable, "-c", code])


def printing_worker(name: str, stdout: str, *, exit_code: int = 0, stderr: str = "") -> TargetDef:
    """A target whose worker prints *stdout* (and *stderr*) then exits."""
    code = (
        "import sys\n"
        f"sys.stderr.write({stderr!r})\n"
        f"sys.stdout.write({stdout!r})\n"
        f"sys.exit({exit_code})\n"
    )
    return python_worker(name, code)


def make_config(targets: list[TargetDef], *, num_runs: int = 3, **kwargs: object) -> HarnessConfig:
    config = HarnessConfig(targets=targets, num_runs=num_runs)
    for key, value in kwargs.items():
        setattr(config, key, value)
    return config
