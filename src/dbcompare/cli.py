"""Command-line interface for dbcompare.

``dbcompare`` runs the full comparison with no arguments: every option
has a default, and most can also be set through the environment
variables the workers themselves read.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from dbcompare import __version__
from dbcompare.errors import AlignmentError, InsufficientDataError
from dbcompare.logging import setup_logging

log = logging.getLogger("dbcompare")


@click.command()
@click.version_option(version=__version__)
@click.option(
    "--runs",
    "num_runs",
    type=int,
    default=None,
    help="Runs per target (env NUM_RUNS, default: 10).",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-run worker timeout in seconds, 0 for none (env WORKER_TIMEOUT, default: 600).",
)
@click.option(
    "--alignment",
    type=click.Choice(["name", "position"]),
    default=None,
    help="Match operations across runs by name or by position (env ALIGNMENT, default: name).",
)
@click.option("--batch-size", type=int, default=None, help="Rows per bulk insert batch (env BATCH_SIZE, default: 1000).")
@click.option("--total-users", type=int, default=None, help="Synthetic users to insert (env TOTAL_USERS, default: 10000).")
@click.option(
    "--small-dataset-users",
    type=int,
    default=None,
    help="Users in the join-query dataset (env SMALL_DATASET_USERS, default: 100).",
)
@click.option(
    "--time-unit",
    type=click.Choice(["ms", "microseconds", "nanoseconds"]),
    default=None,
    help="Unit the workers report durations in (env TIME_UNIT, default: ms).",
)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML profile defining targets and settings.",
)
@click.option(
    "--target",
    "inline_targets",
    type=str,
    multiple=True,
    help="Target as 'NAME=COMMAND' (repeat twice to replace the defaults).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "markdown", "csv"]),
    default="table",
    show_default=True,
    help="Report format on stdout.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show worker stderr and debug output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def main(  # noqa: PLR0913
    num_runs: int | None,
    timeout: float | None,
    alignment: str | None,
    batch_size: int | None,
    total_users: int | None,
    small_dataset_users: int | None,
    time_unit: str | None,
    profile_path: Path | None,
    inline_targets: tuple[str, ...],
    fmt: str,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Compare bulk and sequential insert performance of two databases.

    Runs each target's worker NUM_RUNS times, averages the reported
    timings per operation, and prints a comparison table. Progress
    goes to stderr.

    \b
    Examples:
        # PostgreSQL vs MariaDB with the default Node.js workers
        dbcompare

        # Five runs, custom workers
        dbcompare --runs 5 \\
            --target "PostgreSQL=node scripts/postgres.js" \\
            --target "MariaDB=node scripts/maria.js"

        # Targets and settings from a profile, Markdown output
        dbcompare --profile compare.yaml --format markdown
    """
    from dbcompare.bench.compare import aggregate
    from dbcompare.bench.config import (
        apply_overrides,
        config_from_env,
        config_from_profile,
        load_profile,
        parse_inline_target,
    )
    from dbcompare.bench.display import format_comparison_table, format_run_summary
    from dbcompare.bench.export import export_csv, export_markdown
    from dbcompare.bench.runner import ComparisonRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_overrides: dict[str, object] = {
        "num_runs": num_runs,
        "timeout": timeout,
        "alignment": alignment,
        "batch_size": batch_size,
        "total_users": total_users,
        "small_dataset_users": small_dataset_users,
        "time_unit": time_unit,
    }

    try:
        config = config_from_env()
        if profile_path:
            config = config_from_profile(
                load_profile(profile_path),
                cli_overrides=cli_overrides,
                base=config,
                base_dir=profile_path.parent,
            )
        else:
            config = apply_overrides(config, cli_overrides)
        if inline_targets:
            config.targets = [parse_inline_target(spec) for spec in inline_targets]
    except (ValueError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    log.info(
        "Comparing %s over %d run(s)",
        " vs ".join(config.target_names),
        config.num_runs,
    )

    runner = ComparisonRunner(config)
    try:
        results = runner.run()
        rows = aggregate(results, targets=config.target_names, alignment=config.alignment)
    except (ValueError, InsufficientDataError, AlignmentError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nComparison interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    log.info("\n%s", format_run_summary(results))

    if fmt == "markdown":
        click.echo(export_markdown(rows, config.target_names))
    elif fmt == "csv":
        click.echo(export_csv(rows, config.target_names), nl=False)
    else:
        click.echo()
        click.echo(format_comparison_table(rows, config.target_names))
