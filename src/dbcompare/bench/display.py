"""Terminal display of comparison results.

Produces the aligned comparison table printed on stdout and a short
per-target run summary.
"""

from __future__ import annotations

from dbcompare.bench.compare import ComparisonRow
from dbcompare.bench.results import ComparisonResults
from dbcompare.formatting import format_mean, format_ratio, format_table, format_wall_time


def _column_header(target: str, rows: list[ComparisonRow]) -> str:
    units = {row.unit for row in rows}
    if units == {None}:
        return f"{target} Avg (ms)"
    return f"{target} Avg"


def comparison_cells(rows: list[ComparisonRow], targets: list[str]) -> list[list[str]]:
    """Rows of display strings: operation, one mean per target, ratio."""
    cells: list[list[str]] = []
    for row in rows:
        line = [row.operation]
        line.extend(format_mean(row.mean_for(t), row.unit) for t in targets)
        if len(targets) == 2:
            line.append(format_ratio(row.mean_for(targets[1]), row.mean_for(targets[0])))
        cells.append(line)
    return cells


def format_comparison_table(rows: list[ComparisonRow], targets: list[str]) -> str:
    """Format the performance comparison as an aligned table.

    One row per operation, one column per target, and a ``B/A`` column
    relating the second target's mean to the first's.
    """
    headers = ["Operation"] + [_column_header(t, rows) for t in targets]
    if len(targets) == 2:
        headers.append(f"{targets[1]}/{targets[0]}")
    body = format_table(
        headers,
        comparison_cells(rows, targets),
        alignments=["l"] + ["r"] * (len(headers) - 1),
        max_col_width={0: 48},
    )
    return "Performance Comparison:\n" + body


def format_run_summary(results: ComparisonResults) -> str:
    """Summarize successful and failed runs per target."""
    lines: list[str] = [f"Runs per target: {results.num_runs}"]
    for name in results.targets:
        runs = results.runs.get(name, [])
        failed = results.failures_for(name)
        line = f"  {name}: {len(runs)} ok, {len(failed)} failed"
        if runs:
            avg_wall = sum(r.wall_time_s for r in runs) / len(runs)
            line += f" (avg worker time {format_wall_time(avg_wall)})"
        lines.append(line)
        for failure in failed:
            lines.append(f"    run {failure.index}: {failure.kind}")
    return "\n".join(lines)
