"""Aggregation of repeated runs into per-operation comparison rows.

The first successful run of the first target defines which operations
appear in the report and in what order. Every other run is lined up
against it in one of two ways:

``name`` (default)
    Entries are matched by ``(operation label, occurrence number)``, so a
    label that appears twice in a run stays two distinct operations. A
    run that reports a different set of operations raises
    :class:`~dbcompare.errors.AlignmentError` instead of silently
    attributing timings to the wrong operation.

``position``
    Entry *k* of every run counts towards reference operation *k*,
    whatever its label. Runs shorter than the reference simply
    contribute no sample for the missing positions.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from dbcompare.bench.results import ComparisonResults, RunResult, TimingEntry, convert_duration
from dbcompare.bench.stats import mean
from dbcompare.errors import AlignmentError, InsufficientDataError

log = logging.getLogger("dbcompare")

OperationKey = tuple[str, int]


@dataclass(frozen=True)
class ComparisonRow:
    """Mean duration of one operation for each target."""

    operation: str
    means: dict[str, float] = field(default_factory=dict)
    samples: dict[str, int] = field(default_factory=dict)
    unit: str | None = None  # None: bare milliseconds

    def mean_for(self, target: str) -> float:
        return self.means.get(target, 0.0)

    def to_dict(self) -> dict[str, object]:
        return {
            "operation": self.operation,
            "unit": self.unit or "ms",
            "means": {name: round(value, 6) for name, value in self.means.items()},
            "samples": dict(self.samples),
        }


def operation_keys(entries: tuple[TimingEntry, ...] | list[TimingEntry]) -> list[OperationKey]:
    """Label each entry with how many times its label was seen before it."""
    seen: Counter[str] = Counter()
    keys: list[OperationKey] = []
    for entry in entries:
        keys.append((entry.operation, seen[entry.operation]))
        seen[entry.operation] += 1
    return keys


def _describe_key(key: OperationKey) -> str:
    label, occurrence = key
    return label if occurrence == 0 else f"{label} (#{occurrence + 1})"


def _check_alignment(run: RunResult, reference: list[OperationKey]) -> dict[OperationKey, TimingEntry]:
    """Index *run* by operation key, raising if it disagrees with *reference*."""
    keys = operation_keys(run.entries)
    indexed = dict(zip(keys, run.entries))

    missing = [k for k in reference if k not in indexed]
    expected = set(reference)
    unexpected = [k for k in keys if k not in expected]
    if missing or unexpected or len(keys) != len(reference):
        parts = [f"{run.target} run {run.index} reported {len(keys)} operations, expected {len(reference)}"]
        if missing:
            parts.append("missing: " + ", ".join(_describe_key(k) for k in missing))
        if unexpected:
            parts.append("unexpected: " + ", ".join(_describe_key(k) for k in unexpected))
        raise AlignmentError("; ".join(parts))

    if keys != reference:
        log.debug("%s run %d reports operations in a different order", run.target, run.index)
    return indexed


def _samples_by_name(
    runs: list[RunResult],
    reference: list[OperationKey],
    units: list[str | None],
) -> list[list[float]]:
    samples: list[list[float]] = [[] for _ in reference]
    for run in runs:
        indexed = _check_alignment(run, reference)
        for i, key in enumerate(reference):
            entry = indexed[key]
            samples[i].append(convert_duration(entry.duration, entry.unit, units[i]))
    return samples


def _samples_by_position(
    runs: list[RunResult],
    reference: list[OperationKey],
    units: list[str | None],
) -> list[list[float]]:
    samples: list[list[float]] = [[] for _ in reference]
    for run in runs:
        if len(run.entries) != len(reference):
            log.warning(
                "%s run %d reported %d operations, reference has %d; aligning by position",
                run.target,
                run.index,
                len(run.entries),
                len(reference),
            )
        for i, entry in enumerate(run.entries[: len(reference)]):
            samples[i].append(convert_duration(entry.duration, entry.unit, units[i]))
    return samples


def aggregate(
    results: ComparisonResults,
    *,
    targets: list[str] | None = None,
    alignment: str = "name",
) -> list[ComparisonRow]:
    """Average each operation's duration per target.

    Args:
        results: Successful runs collected by the run loop.
        targets: Target order; the first one supplies the reference
            operations. Defaults to ``results.targets``.
        alignment: ``"name"`` or ``"position"``.

    Returns:
        One ComparisonRow per reference operation, in reference order.

    Raises:
        InsufficientDataError: If any target has no successful run.
        AlignmentError: In ``name`` mode, if any run's operations differ
            from the reference run's.
        ValueError: If *alignment* is not recognised.
    """
    names = list(targets or results.targets)
    if alignment not in ("name", "position"):
        raise ValueError(f"Unknown alignment mode: {alignment!r}")

    missing = [name for name in names if not results.runs.get(name)]
    if missing:
        raise InsufficientDataError(
            f"No successful runs for {', '.join(missing)}; nothing to compare.",
            missing_targets=missing,
        )

    reference_run = results.runs[names[0]][0]
    reference = operation_keys(reference_run.entries)
    units = [entry.unit for entry in reference_run.entries]

    collect = _samples_by_name if alignment == "name" else _samples_by_position
    per_target = {name: collect(results.runs[name], reference, units) for name in names}

    rows: list[ComparisonRow] = []
    for i, entry in enumerate(reference_run.entries):
        rows.append(
            ComparisonRow(
                operation=entry.operation,
                means={name: mean(per_target[name][i]) for name in names},
                samples={name: len(per_target[name][i]) for name in names},
                unit=units[i],
            )
        )
    return rows
