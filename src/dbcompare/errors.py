"""Exception hierarchy for dbcompare.

Per-run failures (:class:`InvocationError`, :class:`ParseError`) are
contained by the run loop and only logged. :class:`AlignmentError` and
:class:`InsufficientDataError` abort report generation and surface at
the CLI as a single error line.
"""

from __future__ import annotations


class DbCompareError(Exception):
    """Base class for all dbcompare errors."""


class InvocationError(DbCompareError):
    """A worker could not be started or exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        *,
        target: str = "",
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.target = target
        self.exit_code = exit_code
        self.stderr = stderr


class WorkerTimeoutError(InvocationError):
    """A worker did not finish within the per-invocation timeout."""

    def __init__(
        self,
        message: str,
        *,
        target: str = "",
        timeout: float = 0.0,
        stderr: str = "",
    ) -> None:
        super().__init__(message, target=target, exit_code=None, stderr=stderr)
        self.timeout = timeout


class ParseError(DbCompareError):
    """Worker output was not a well-formed list of timing entries."""


class AlignmentError(DbCompareError):
    """Operation sequences disagree across runs in count or naming."""


class InsufficientDataError(DbCompareError):
    """One or more targets produced no successful runs."""

    def __init__(self, message: str, *, missing_targets: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_targets = list(missing_targets or [])
