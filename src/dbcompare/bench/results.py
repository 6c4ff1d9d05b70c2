"""Worker result data structures and output parsing.

Hierarchy::

    ComparisonResults (one harness invocation)
      → runs: dict[target, list[RunResult]]   successful runs, in run order
        → entries: tuple[TimingEntry, ...]     one per benchmarked operation
      → failures: list[RunFailure]

Workers print a single JSON array to stdout. Two entry shapes are
accepted::

    {"Operation": "Join Query", "Time_ms": 12}                  legacy
    {"Operation": "Join Query", "Time": "12.345", "Unit": "ms"}  with unit

The presence of the unit field selects the decoding path.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from dbcompare.errors import ParseError

log = logging.getLogger("dbcompare")


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

# Canonical unit name -> milliseconds per unit.
_UNIT_SCALE: dict[str, float] = {
    "s": 1000.0,
    "ms": 1.0,
    "microseconds": 0.001,
    "nanoseconds": 0.000001,
}

_UNIT_ALIASES: dict[str, str] = {
    "s": "s",
    "sec": "s",
    "seconds": "s",
    "ms": "ms",
    "millisecond": "ms",
    "milliseconds": "ms",
    "us": "microseconds",
    "µs": "microseconds",
    "microsecond": "microseconds",
    "microseconds": "microseconds",
    "ns": "nanoseconds",
    "nanosecond": "nanoseconds",
    "nanoseconds": "nanoseconds",
}


def normalize_unit(unit: str) -> str:
    """Map a unit label to its canonical name.

    Raises:
        ParseError: If the unit is not recognised.
    """
    canonical = _UNIT_ALIASES.get(unit.strip().lower())
    if canonical is None:
        raise ParseError(f"Unknown time unit: {unit!r}")
    return canonical


def convert_duration(value: float, from_unit: str | None, to_unit: str | None) -> float:
    """Convert *value* between units. ``None`` means milliseconds."""
    src = _UNIT_SCALE[from_unit or "ms"]
    dst = _UNIT_SCALE[to_unit or "ms"]
    if src == dst:
        return value
    return value * src / dst


# ---------------------------------------------------------------------------
# Timing entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimingEntry:
    """One benchmarked operation as reported by a worker."""

    operation: str
    duration: float
    unit: str | None = None  # None: worker gave a bare millisecond count

    @property
    def duration_ms(self) -> float:
        """Duration converted to milliseconds."""
        return convert_duration(self.duration, self.unit, "ms")

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the same shape the worker used."""
        if self.unit is None:
            return {"Operation": self.operation, "Time_ms": self.duration}
        return {"Operation": self.operation, "Time": str(self.duration), "Unit": self.unit}


@dataclass
class RunResult:
    """Timing entries from one successful worker invocation."""

    target: str
    index: int  # 1-based run number
    entries: tuple[TimingEntry, ...]
    wall_time_s: float = 0.0

    @property
    def operations(self) -> list[str]:
        """Operation labels in reported order."""
        return [e.operation for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class RunFailure:
    """A run that was excluded from aggregation."""

    target: str
    index: int
    kind: str  # "invocation", "timeout", "parse", "error"
    error: str


@dataclass
class ComparisonResults:
    """Everything the run loop collected for one comparison."""

    targets: list[str]
    num_runs: int
    runs: dict[str, list[RunResult]] = field(default_factory=dict)
    failures: list[RunFailure] = field(default_factory=list)

    def __post_init__(self) -> None:
        for name in self.targets:
            self.runs.setdefault(name, [])

    def successes(self, target: str) -> int:
        """Number of successful runs for *target*."""
        return len(self.runs.get(target, []))

    def failures_for(self, target: str) -> list[RunFailure]:
        """Failed runs for *target*, in run order."""
        return [f for f in self.failures if f.target == target]

    @property
    def empty_targets(self) -> list[str]:
        """Targets without a single successful run."""
        return [name for name in self.targets if not self.runs.get(name)]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_OPERATION_KEYS = ("operation", "op")
_LEGACY_DURATION_KEYS = ("time_ms",)
_DURATION_KEYS = ("time", "duration")
_UNIT_KEYS = ("unit",)


def _lookup(entry: dict[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    """Find the first of *keys* in *entry*, ignoring key case."""
    lowered = {str(k).lower(): v for k, v in entry.items()}
    for key in keys:
        if key in lowered:
            return True, lowered[key]
    return False, None


def _to_number(value: Any, where: str) -> float:
    """Coerce a JSON number or numeric string to a finite, non-negative float."""
    if isinstance(value, bool):
        raise ParseError(f"{where}: duration must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise ParseError(f"{where}: duration is out of range") from None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ParseError(f"{where}: duration is not numeric: {value!r}") from None
    else:
        raise ParseError(f"{where}: duration must be numeric, got {type(value).__name__}")
    if not math.isfinite(number):
        raise ParseError(f"{where}: duration must be finite, got {value!r}")
    if number < 0:
        raise ParseError(f"{where}: duration must be non-negative, got {value!r}")
    return number


def parse_entry(entry: Any, position: int = 0) -> TimingEntry:
    """Normalize one decoded JSON object into a :class:`TimingEntry`.

    Raises:
        ParseError: If the entry does not have the expected shape.
    """
    where = f"entry {position}"
    if not isinstance(entry, dict):
        raise ParseError(f"{where}: expected an object, got {type(entry).__name__}")

    found, operation = _lookup(entry, _OPERATION_KEYS)
    if not found or not isinstance(operation, str) or not operation.strip():
        raise ParseError(f"{where}: missing operation name")
    where = f"entry {position} ({operation})"

    has_unit, unit = _lookup(entry, _UNIT_KEYS)
    if has_unit:
        if not isinstance(unit, str):
            raise ParseError(f"{where}: unit must be a string, got {unit!r}")
        found, raw = _lookup(entry, _DURATION_KEYS + _LEGACY_DURATION_KEYS)
        if not found:
            raise ParseError(f"{where}: missing duration")
        return TimingEntry(operation, _to_number(raw, where), normalize_unit(unit))

    found, raw = _lookup(entry, _LEGACY_DURATION_KEYS + _DURATION_KEYS)
    if not found:
        raise ParseError(f"{where}: missing duration")
    return TimingEntry(operation, _to_number(raw, where), None)


def parse_run_output(raw_text: str) -> tuple[TimingEntry, ...]:
    """Parse a worker's stdout into timing entries, keeping their order.

    Raises:
        ParseError: If the text is not a non-empty JSON array of
            well-formed timing entries.
    """
    text = raw_text.strip()
    if not text:
        raise ParseError("worker produced no output")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"output is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise ParseError(f"expected a JSON array, got {type(data).__name__}")
    if not data:
        raise ParseError("worker reported no timing entries")

    return tuple(parse_entry(entry, i) for i, entry in enumerate(data))
