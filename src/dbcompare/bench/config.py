"""Harness configuration and target profile loading.

Handles:
- Reading settings from environment variables with documented defaults.
- Loading target definitions from YAML profiles.
- Parsing inline ``--target NAME=COMMAND`` definitions.
- Merging CLI options over profile values over the environment.
- Validating the final configuration before any worker is started.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

log = logging.getLogger("dbcompare")

TIME_UNITS = ("ms", "microseconds", "nanoseconds")
ALIGNMENT_MODES = ("name", "position")


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


@dataclass
class TargetDef:
    """A database engine and the worker program that benchmarks it."""

    name: str
    command: str | list[str]
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    description: str = ""


def default_targets() -> list[TargetDef]:
    """The PostgreSQL and MariaDB workers shipped with the Node.js project."""
    return [
        TargetDef(
            name="PostgreSQL",
            command="node scripts/postgres.js",
            description="pg client, $n placeholders",
        ),
        TargetDef(
            name="MariaDB",
            command="node scripts/maria.js",
            description="mariadb pool, ? placeholders",
        ),
    ]


def parse_inline_target(spec: str) -> TargetDef:
    """Parse ``'Name=command args...'`` into a TargetDef.

    Raises:
        ValueError: If the name or command is missing.
    """
    name, sep, command = spec.partition("=")
    name, command = name.strip(), command.strip()
    if not sep or not name or not command:
        raise ValueError(f"Invalid target {spec!r}: expected NAME=COMMAND")
    return TargetDef(name=name, command=command)


# ---------------------------------------------------------------------------
# HarnessConfig
# ---------------------------------------------------------------------------


@dataclass
class HarnessConfig:
    """Resolved configuration for one comparison."""

    targets: list[TargetDef] = field(default_factory=default_targets)

    # Run control
    num_runs: int = 10
    timeout: float = 600.0  # Per-invocation, seconds. 0 disables.
    alignment: str = "name"

    # Worker tunables, forwarded through the environment
    batch_size: int = 1000
    total_users: int = 10000
    small_dataset_users: int = 100
    time_unit: str = "ms"

    @property
    def target_names(self) -> list[str]:
        return [t.name for t in self.targets]

    @property
    def effective_timeout(self) -> float | None:
        """Timeout for ``subprocess``; ``None`` when disabled."""
        return self.timeout if self.timeout > 0 else None

    def worker_env(self) -> dict[str, str]:
        """Environment variables every worker reads its tunables from."""
        return {
            "BATCH_SIZE": str(self.batch_size),
            "TOTAL_USERS": str(self.total_users),
            "SMALL_DATASET_USERS": str(self.small_dataset_users),
            "TIME_UNIT": self.time_unit,
        }


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not an integer, using %d", key, raw, default)
        return default
    # Zero falls back like the workers' `parseInt(...) || default`.
    return value or default


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not a number, using %s", key, raw, default)
        return default


def config_from_env(environ: Mapping[str, str] | None = None) -> HarnessConfig:
    """Build a HarnessConfig from environment variables.

    Recognised: ``NUM_RUNS``, ``WORKER_TIMEOUT``, ``ALIGNMENT``,
    ``BATCH_SIZE``, ``TOTAL_USERS``, ``SMALL_DATASET_USERS``,
    ``TIME_UNIT``. Missing or unparsable values use the defaults.
    """
    env = os.environ if environ is None else environ
    defaults = HarnessConfig()
    return HarnessConfig(
        num_runs=_env_int(env, "NUM_RUNS", defaults.num_runs),
        timeout=_env_float(env, "WORKER_TIMEOUT", defaults.timeout),
        alignment=env.get("ALIGNMENT", "").strip() or defaults.alignment,
        batch_size=_env_int(env, "BATCH_SIZE", defaults.batch_size),
        total_users=_env_int(env, "TOTAL_USERS", defaults.total_users),
        small_dataset_users=_env_int(env, "SMALL_DATASET_USERS", defaults.small_dataset_users),
        time_unit=env.get("TIME_UNIT", "").strip() or defaults.time_unit,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: HarnessConfig) -> list[ValidationError]:
    """Validate a harness configuration.

    Returns a list of validation errors. Empty list means valid.
    """
    errors: list[ValidationError] = []

    if len(config.targets) != 2:
        errors.append(
            ValidationError(
                field="targets",
                message=f"Exactly two targets are compared (got {len(config.targets)}).",
            )
        )

    seen: set[str] = set()
    for target in config.targets:
        if not target.name or not target.name.strip():
            errors.append(ValidationError(field="targets", message="Target names must be non-empty."))
        elif target.name in seen:
            errors.append(
                ValidationError(
                    field=f"targets.{target.name}",
                    message=f"Duplicate target name '{target.name}'.",
                )
            )
        seen.add(target.name)
        if not target.command:
            errors.append(
                ValidationError(
                    field=f"targets.{target.name}.command",
                    message=f"Target '{target.name}' has no worker command.",
                )
            )
        if target.cwd is not None and not Path(target.cwd).is_dir():
            errors.append(
                ValidationError(
                    field=f"targets.{target.name}.cwd",
                    message=f"Working directory does not exist: {target.cwd}",
                )
            )

    if config.num_runs < 1:
        errors.append(
            ValidationError(
                field="num_runs",
                message=f"Need at least one run (got {config.num_runs}).",
            )
        )
    elif config.num_runs == 1:
        errors.append(
            ValidationError(
                field="num_runs",
                message="A single run per target gives no averaging.",
                severity="warning",
            )
        )

    if config.timeout < 0:
        errors.append(
            ValidationError(
                field="timeout",
                message=f"Timeout cannot be negative (got {config.timeout}).",
            )
        )

    for name in ("batch_size", "total_users", "small_dataset_users"):
        value = getattr(config, name)
        if value <= 0:
            errors.append(ValidationError(field=name, message=f"Must be positive (got {value})."))

    if config.time_unit not in TIME_UNITS:
        errors.append(
            ValidationError(
                field="time_unit",
                message=(
                    f"Unknown time unit {config.time_unit!r}; expected one of {', '.join(TIME_UNITS)}."
                ),
            )
        )

    if config.alignment not in ALIGNMENT_MODES:
        errors.append(
            ValidationError(
                field="alignment",
                message=(
                    f"Unknown alignment {config.alignment!r}; "
                    f"expected one of {', '.join(ALIGNMENT_MODES)}."
                ),
            )
        )

    return errors


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a comparison profile from a YAML file.

    Profile format::

        num_runs: 5
        timeout: 300
        alignment: name
        batch_size: 500
        time_unit: microseconds

        targets:
          PostgreSQL:
            command: "node scripts/postgres.js"
            cwd: "../db-bench"
            env:
              POSTGRES_HOST: "db1"
          MariaDB:
            command: ["node", "scripts/maria.js"]

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    data = yaml.safe_load(profile_path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")
    return data


_PROFILE_FIELDS = (
    "num_runs",
    "timeout",
    "alignment",
    "batch_size",
    "total_users",
    "small_dataset_users",
    "time_unit",
)


def _profile_value(name: str, value: Any, current: Any) -> Any:
    """Check a profile setting against the type of its current value."""
    if isinstance(current, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Profile '{name}' must be an integer, got {value!r}")
        return value
    if isinstance(current, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Profile '{name}' must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Profile '{name}' must be a string, got {value!r}")
    return value


def _targets_from_profile(targets_data: Any, base_dir: Path | None) -> list[TargetDef]:
    if not isinstance(targets_data, dict):
        raise ValueError("Profile 'targets' must be a mapping of target_name -> definition")

    targets: list[TargetDef] = []
    for name, tdata in targets_data.items():
        if isinstance(tdata, (str, list)):
            tdata = {"command": tdata}
        if not isinstance(tdata, dict):
            raise ValueError(f"Target '{name}' must be a mapping, got {type(tdata).__name__}")
        command = tdata.get("command") or ""
        if not isinstance(command, (str, list)):
            raise ValueError(f"Target '{name}' command must be a string or a list")
        if isinstance(command, list):
            command = [str(part) for part in command]
        cwd = tdata.get("cwd")
        cwd_path = None
        if cwd:
            cwd_path = Path(cwd)
            if base_dir is not None and not cwd_path.is_absolute():
                cwd_path = base_dir / cwd_path
        env_data = tdata.get("env") or {}
        if not isinstance(env_data, dict):
            raise ValueError(f"Target '{name}' env must be a mapping")
        env = {str(k): str(v) for k, v in env_data.items()}
        targets.append(
            TargetDef(
                name=str(name),
                command=command,
                cwd=cwd_path,
                env=env,
                description=str(tdata.get("description") or ""),
            )
        )
    return targets


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
    base: HarnessConfig | None = None,
    base_dir: Path | None = None,
) -> HarnessConfig:
    """Build a HarnessConfig from a parsed YAML profile.

    Precedence: CLI overrides (non-None values), then profile values,
    then *base* (normally :func:`config_from_env`).

    Args:
        profile_data: Parsed YAML profile dict.
        cli_overrides: CLI option values keyed by HarnessConfig field name.
        base: Configuration supplying values neither source sets.
        base_dir: Directory relative target ``cwd`` values resolve against.

    Returns:
        HarnessConfig with targets and settings populated.

    Raises:
        ValueError: If a setting has the wrong type or a target definition
            is malformed.
    """
    config = base or HarnessConfig()

    for name in _PROFILE_FIELDS:
        if profile_data.get(name) is not None:
            setattr(config, name, _profile_value(name, profile_data[name], getattr(config, name)))

    if "targets" in profile_data:
        config.targets = _targets_from_profile(profile_data["targets"], base_dir)

    return apply_overrides(config, cli_overrides or {})


def apply_overrides(config: HarnessConfig, overrides: dict[str, Any]) -> HarnessConfig:
    """Set every non-None value of *overrides* on *config*."""
    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise ValueError(f"Unknown configuration key: {key}")
        setattr(config, key, value)
    return config
