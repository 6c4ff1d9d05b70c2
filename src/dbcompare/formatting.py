"""Shared text formatting helpers for dbcompare.

Number formatting for averaged timings and an aligned plain-text table
used by the console reporter.
"""

from __future__ import annotations

import math


def format_mean(value: float, unit: str | None = None) -> str:
    """Format an averaged duration with two decimals.

    ``33.3333`` -> ``'33.33'``; with a unit, ``'33.33 ms'``. NaN renders
    as ``'N/A'``.
    """
    if math.isnan(value):
        return "N/A"
    text = f"{value:.2f}"
    if unit:
        return f"{text} {unit}"
    return text


def format_ratio(numerator: float, denominator: float) -> str:
    """Format ``numerator / denominator`` as ``'1.84x'``, or ``'N/A'``."""
    if denominator == 0 or math.isnan(numerator) or math.isnan(denominator):
        return "N/A"
    return f"{numerator / denominator:.2f}x"


def format_wall_time(seconds: float) -> str:
    """Format a worker's wall time: ``'850ms'``, ``'12.4s'``, ``'3m 05s'``."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    total = int(seconds)
    return f"{total // 60}m {total % 60:02d}s"


def truncate(text: str, max_len: int, suffix: str = "...") -> str:
    """Truncate text to *max_len*, adding *suffix* if truncated."""
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return suffix[:max_len]
    return text[: max_len - len(suffix)] + suffix


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    max_col_width: dict[int, int] | None = None,
    indent: int = 2,
) -> str:
    """Format rows as an aligned text table with a rule under the header.

    Column widths come from the content. Columns listed in
    *max_col_width* are truncated with ``'...'``. Alignment per column is
    ``'l'``, ``'r'`` or ``'c'`` (default ``'l'``).

    Args:
        headers: Column header strings.
        rows: List of rows, each a list of cell strings.
        alignments: Per-column alignment.
        max_col_width: Column index to max width mapping.
        indent: Number of leading spaces per line.

    Returns:
        The formatted table as a string.
    """
    if not headers:
        return ""

    ncols = len(headers)
    aligns = list(alignments or [])
    aligns += ["l"] * (ncols - len(aligns))

    cells = [list(headers)]
    for row in rows:
        padded = list(row) + [""] * (ncols - len(row))
        cells.append(padded[:ncols])

    for ci, max_w in (max_col_width or {}).items():
        if ci < ncols:
            for row in cells:
                row[ci] = truncate(row[ci], max_w)

    widths = [max(len(row[ci]) for row in cells) for ci in range(ncols)]

    def _cell(text: str, width: int, align: str) -> str:
        if align == "r":
            return text.rjust(width)
        if align == "c":
            return text.center(width)
        return text.ljust(width)

    prefix = " " * indent
    lines: list[str] = []
    for ri, row in enumerate(cells):
        line = "  ".join(_cell(row[ci], widths[ci], aligns[ci]) for ci in range(ncols))
        lines.append(prefix + line.rstrip())
        if ri == 0:
            lines.append(prefix + "  ".join("─" * w for w in widths))

    return "\n".join(lines)
