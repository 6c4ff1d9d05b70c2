"""Worker process invocation.

Starts one worker, waits for it to exit, and hands back its captured
output. The exit status decides success: a worker that printed a
perfectly good JSON array and then exited non-zero still failed.

Workers run in their own session so that a timeout can kill the whole
process group (``node`` plus anything it spawned).
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping

from dbcompare.bench.config import TargetDef
from dbcompare.errors import InvocationError, WorkerTimeoutError

log = logging.getLogger("dbcompare")

# How much worker stderr to quote in an error message.
_STDERR_TAIL = 2000


@dataclass
class WorkerOutput:
    """Captured output of a worker that exited with status 0."""

    target: str
    stdout: str
    stderr: str
    wall_time_s: float


def build_command(command: str | list[str]) -> list[str]:
    """Split a worker command string into an argument list."""
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def build_env(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Start from ``os.environ`` and layer each mapping on top."""
    env = dict(os.environ)
    for layer in layers:
        if layer:
            env.update(layer)
    return env


def _tail(text: str, limit: int = _STDERR_TAIL) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


def _kill_process_group(pid: int) -> None:
    """Attempt to kill the entire process group on timeout."""
    try:
        os.killpg(os.getpgid(pid), signal.SIGKILL)
    except (ProcessLookupError, PermissionError, OSError):
        pass


def invoke(
    target: TargetDef,
    *,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> WorkerOutput:
    """Run *target*'s worker to completion and capture its output.

    Args:
        target: The target whose command to run.
        timeout: Seconds to wait before killing the worker; ``None`` waits
            indefinitely.
        env: Harness-level variables (the worker tunables). The target's
            own ``env`` is layered on top.

    Returns:
        WorkerOutput with stdout, stderr and wall time.

    Raises:
        InvocationError: If the worker cannot be started or exits non-zero.
        WorkerTimeoutError: If *timeout* expires first.
    """
    argv = build_command(target.command)
    if not argv:
        raise InvocationError(f"{target.name}: empty worker command", target=target.name)

    run_env = build_env(env, target.env)
    log.debug("Starting %s worker: %s", target.name, shlex.join(argv))

    wall_start = time.monotonic()
    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(target.cwd) if target.cwd else None,
            env=run_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            start_new_session=True,
        )
    except OSError as exc:
        raise InvocationError(
            f"{target.name}: could not start worker {argv[0]!r}: {exc}",
            target=target.name,
        ) from exc

    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(proc.pid)
            try:
                _, stderr = proc.communicate(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
                _, stderr = proc.communicate()
            raise WorkerTimeoutError(
                f"{target.name}: worker timed out after {timeout:g}s",
                target=target.name,
                timeout=timeout or 0.0,
                stderr=_tail(stderr or ""),
            ) from None

    wall_time = time.monotonic() - wall_start

    for line in (stderr or "").splitlines():
        if line.strip():
            log.debug("[%s] %s", target.name, line)

    if proc.returncode != 0:
        detail = _tail(stderr or "")
        message = f"{target.name}: worker exited with status {proc.returncode}"
        if detail:
            message += f": {detail}"
        raise InvocationError(
            message,
            target=target.name,
            exit_code=proc.returncode,
            stderr=detail,
        )

    return WorkerOutput(
        target=target.name,
        stdout=stdout or "",
        stderr=stderr or "",
        wall_time_s=round(wall_time, 6),
    )
