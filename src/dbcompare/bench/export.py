"""Export comparison rows as Markdown or CSV.

Markdown is meant for pasting into READMEs and issues; CSV keeps full
precision plus the sample counts for spreadsheets.
"""

from __future__ import annotations

import csv
import io

from dbcompare.bench.compare import ComparisonRow
from dbcompare.bench.display import comparison_cells


def export_markdown(rows: list[ComparisonRow], targets: list[str]) -> str:
    """Render the comparison as a GitHub-flavoured Markdown table."""
    headers = ["Operation"] + [f"{t} Avg" for t in targets]
    if len(targets) == 2:
        headers.append(f"{targets[1]}/{targets[0]}")

    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join(["---"] + ["---:"] * (len(headers) - 1)) + "|",
    ]
    for cells in comparison_cells(rows, targets):
        escaped = [c.replace("|", "\\|") for c in cells]
        lines.append("| " + " | ".join(escaped) + " |")
    return "\n".join(lines)


def export_csv(rows: list[ComparisonRow], targets: list[str]) -> str:
    """Render the comparison as CSV (one row per operation).

    Columns:
        operation, unit, then ``<target>_mean`` and ``<target>_samples``
        for each target.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")

    header = ["operation", "unit"]
    for t in targets:
        header.extend([f"{t}_mean", f"{t}_samples"])
    writer.writerow(header)

    for row in rows:
        line: list[object] = [row.operation, row.unit or "ms"]
        for t in targets:
            line.extend([round(row.mean_for(t), 6), row.samples.get(t, 0)])
        writer.writerow(line)

    return output.getvalue()
