"""Tests for dbcompare.bench.config — settings, profiles, validation."""

from __future__ import annotations

import tempfile
import textwrap
import unittest
from pathlib import Path

from dbcompare.bench.config import (
    HarnessConfig,
    TargetDef,
    apply_overrides,
    config_from_env,
    config_from_profile,
    default_targets,
    load_profile,
    parse_inline_target,
    validate_config,
)


def _errors(config: HarnessConfig, severity: str = "error") -> list[str]:
    return [e.field for e in validate_config(config) if e.severity == severity]


class TestDefaults(unittest.TestCase):
    def test_defaults(self) -> None:
        config = HarnessConfig()
        self.assertEqual(config.num_runs, 10)
        self.assertEqual(config.batch_size, 1000)
        self.assertEqual(config.total_users, 10000)
        self.assertEqual(config.small_dataset_users, 100)
        self.assertEqual(config.time_unit, "ms")
        self.assertEqual(config.alignment, "name")
        self.assertEqual(config.target_names, ["PostgreSQL", "MariaDB"])
        self.assertEqual(validate_config(config), [])

    def test_default_targets_run_node_workers(self) -> None:
        commands = [t.command for t in default_targets()]
        self.assertEqual(commands, ["node scripts/postgres.js", "node scripts/maria.js"])

    def test_worker_env(self) -> None:
        config = HarnessConfig(batch_size=10, total_users=20, small_dataset_users=5, time_unit="nanoseconds")
        self.assertEqual(
            config.worker_env(),
            {
                "BATCH_SIZE": "10",
                "TOTAL_USERS": "20",
                "SMALL_DATASET_USERS": "5",
                "TIME_UNIT": "nanoseconds",
            },
        )

    def test_effective_timeout(self) -> None:
        self.assertEqual(HarnessConfig(timeout=12.5).effective_timeout, 12.5)
        self.assertIsNone(HarnessConfig(timeout=0).effective_timeout)


class TestConfigFromEnv(unittest.TestCase):
    def test_reads_variables(self) -> None:
        config = config_from_env(
            {
                "NUM_RUNS": "3",
                "WORKER_TIMEOUT": "90",
                "BATCH_SIZE": "500",
                "TOTAL_USERS": "2000",
                "SMALL_DATASET_USERS": "50",
                "TIME_UNIT": "microseconds",
                "ALIGNMENT": "position",
            }
        )
        self.assertEqual(config.num_runs, 3)
        self.assertEqual(config.timeout, 90.0)
        self.assertEqual(config.batch_size, 500)
        self.assertEqual(config.total_users, 2000)
        self.assertEqual(config.small_dataset_users, 50)
        self.assertEqual(config.time_unit, "microseconds")
        self.assertEqual(config.alignment, "position")

    def test_empty_environment_gives_defaults(self) -> None:
        config = config_from_env({})
        self.assertEqual(config.num_runs, 10)
        self.assertEqual(config.timeout, 600.0)

    def test_unparsable_values_fall_back(self) -> None:
        with self.assertLogs("dbcompare", level="WARNING") as logs:
            config = config_from_env({"NUM_RUNS": "ten", "BATCH_SIZE": "", "WORKER_TIMEOUT": "soon"})
        self.assertEqual(config.num_runs, 10)
        self.assertEqual(config.batch_size, 1000)
        self.assertEqual(config.timeout, 600.0)
        self.assertTrue(any("NUM_RUNS" in m for m in logs.output))

    def test_zero_falls_back_like_workers(self) -> None:
        self.assertEqual(config_from_env({"NUM_RUNS": "0"}).num_runs, 10)

    def test_zero_timeout_is_kept(self) -> None:
        self.assertEqual(config_from_env({"WORKER_TIMEOUT": "0"}).timeout, 0.0)


class TestInlineTarget(unittest.TestCase):
    def test_parse(self) -> None:
        target = parse_inline_target("PostgreSQL=node scripts/postgres.js --fast")
        self.assertEqual(target.name, "PostgreSQL")
        self.assertEqual(target.command, "node scripts/postgres.js --fast")

    def test_equals_in_command(self) -> None:
        target = parse_inline_target("pg=env MODE=fast node pg.js")
        self.assertEqual(target.command, "env MODE=fast node pg.js")

    def test_invalid(self) -> None:
        for spec in ("PostgreSQL", "=node x.js", "pg=", " = "):
            with self.subTest(spec=spec), self.assertRaises(ValueError):
                parse_inline_target(spec)


class TestValidation(unittest.TestCase):
    def test_needs_exactly_two_targets(self) -> None:
        one = HarnessConfig(targets=[TargetDef("A", "a")])
        three = HarnessConfig(targets=[TargetDef(n, n) for n in "ABC"])
        self.assertIn("targets", _errors(one))
        self.assertIn("targets", _errors(three))

    def test_duplicate_and_blank_names(self) -> None:
        dup = HarnessConfig(targets=[TargetDef("A", "a"), TargetDef("A", "b")])
        self.assertIn("targets.A", _errors(dup))
        blank = HarnessConfig(targets=[TargetDef(" ", "a"), TargetDef("B", "b")])
        self.assertIn("targets", _errors(blank))

    def test_missing_command(self) -> None:
        config = HarnessConfig(targets=[TargetDef("A", ""), TargetDef("B", "b")])
        self.assertIn("targets.A.command", _errors(config))

    def test_missing_cwd(self) -> None:
        config = HarnessConfig(targets=[TargetDef("A", "a", cwd=Path("/nonexistent/dir")), TargetDef("B", "b")])
        self.assertIn("targets.A.cwd", _errors(config))

    def test_runs(self) -> None:
        self.assertIn("num_runs", _errors(HarnessConfig(num_runs=0)))
        self.assertEqual(_errors(HarnessConfig(num_runs=1)), [])
        self.assertIn("num_runs", _errors(HarnessConfig(num_runs=1), "warning"))

    def test_numbers(self) -> None:
        self.assertIn("timeout", _errors(HarnessConfig(timeout=-1)))
        self.assertIn("batch_size", _errors(HarnessConfig(batch_size=0)))
        self.assertIn("total_users", _errors(HarnessConfig(total_users=-5)))
        self.assertIn("small_dataset_users", _errors(HarnessConfig(small_dataset_users=0)))

    def test_choices(self) -> None:
        self.assertIn("time_unit", _errors(HarnessConfig(time_unit="seconds")))
        self.assertIn("alignment", _errors(HarnessConfig(alignment="fuzzy")))
        for unit in ("ms", "microseconds", "nanoseconds"):
            self.assertEqual(_errors(HarnessConfig(time_unit=unit)), [])


class TestProfiles(unittest.TestCase):
    def _write(self, tmpdir: str, text: str) -> Path:
        path = Path(tmpdir) / "compare.yaml"
        path.write_text(textwrap.dedent(text))
        return path

    def test_load_and_build(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "workers").mkdir()
            path = self._write(
                tmpdir,
                """
                num_runs: 4
                timeout: 120
                batch_size: 200
                time_unit: microseconds
                targets:
                  Postgres16:
                    command: "node scripts/postgres.js"
                    cwd: workers
                    env:
                      POSTGRES_PORT: 5433
                  MariaDB11:
                    command: ["node", "scripts/maria.js"]
                    description: "pooled"
                """,
            )
            config = config_from_profile(load_profile(path), base_dir=path.parent)

        self.assertEqual(config.num_runs, 4)
        self.assertEqual(config.timeout, 120.0)
        self.assertIsInstance(config.timeout, float)
        self.assertEqual(config.batch_size, 200)
        self.assertEqual(config.time_unit, "microseconds")
        self.assertEqual(config.target_names, ["Postgres16", "MariaDB11"])
        pg, maria = config.targets
        self.assertEqual(pg.cwd, Path(tmpdir) / "workers")
        self.assertEqual(pg.env, {"POSTGRES_PORT": "5433"})
        self.assertEqual(maria.command, ["node", "scripts/maria.js"])
        self.assertEqual(maria.description, "pooled")

    def test_string_shorthand_target(self) -> None:
        config = config_from_profile({"targets": {"A": "run-a", "B": ["run", "b"]}})
        self.assertEqual([t.command for t in config.targets], ["run-a", ["run", "b"]])

    def test_cli_overrides_win(self) -> None:
        config = config_from_profile(
            {"num_runs": 4, "batch_size": 200},
            cli_overrides={"num_runs": 7, "batch_size": None},
        )
        self.assertEqual(config.num_runs, 7)
        self.assertEqual(config.batch_size, 200)

    def test_profile_over_base(self) -> None:
        base = HarnessConfig(num_runs=3, total_users=500)
        config = config_from_profile({"num_runs": 6}, base=base)
        self.assertEqual(config.num_runs, 6)
        self.assertEqual(config.total_users, 500)
        self.assertEqual(config.target_names, ["PostgreSQL", "MariaDB"])

    def test_bad_targets(self) -> None:
        with self.assertRaises(ValueError):
            config_from_profile({"targets": ["A", "B"]})
        with self.assertRaises(ValueError):
            config_from_profile({"targets": {"A": 5}})

    def test_target_env_must_be_a_mapping(self) -> None:
        with self.assertRaisesRegex(ValueError, "env must be a mapping"):
            config_from_profile({"targets": {"A": {"command": "a", "env": ["PORT"]}, "B": "b"}})

    def test_target_command_type(self) -> None:
        with self.assertRaisesRegex(ValueError, "command"):
            config_from_profile({"targets": {"A": {"command": 5}, "B": "b"}})

    def test_null_description(self) -> None:
        config = config_from_profile({"targets": {"A": {"command": "a", "description": None}, "B": "b"}})
        self.assertEqual(config.targets[0].description, "")

    def test_setting_types_are_checked(self) -> None:
        for data in ({"num_runs": 2.7}, {"num_runs": "5"}, {"batch_size": True}, {"timeout": "soon"}, {"alignment": 3}):
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    config_from_profile(data)

    def test_integer_timeout_becomes_float(self) -> None:
        config = config_from_profile({"timeout": 30})
        self.assertEqual(config.timeout, 30.0)
        self.assertIsInstance(config.timeout, float)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_profile(Path("/nonexistent/compare.yaml"))

    def test_non_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "- a\n- b\n")
            with self.assertRaisesRegex(ValueError, "mapping"):
                load_profile(path)

    def test_apply_overrides_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            apply_overrides(HarnessConfig(), {"colour": "blue"})


if __name__ == "__main__":
    unittest.main()
