"""Tests for the sqlport command line interface.

Commands run through ``main()`` against the sample SQLite database, with
the rich console redirected to a buffer.
"""

import io
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console
from sqlalchemy import create_engine, text

from sqlport.cli import build_parser, main


def _write_config(tmp_path: Path, source: Path, extra: str = "") -> Path:
    target = tmp_path / "target.db"
    path = tmp_path / "db.toml"
    path.write_text(
        "[profiles.src]\n"
        f'url = "sqlite:///{source.as_posix()}"\n'
        'description = "Sample source"\n'
        'provider = "file"\n'
        "\n"
        "[profiles.dst]\n"
        f'url = "sqlite:///{target.as_posix()}"\n'
        f"{extra}"
    )
    return path


@pytest.fixture
def output() -> io.StringIO:
    """Buffer receiving everything printed through the CLI console."""
    buffer = io.StringIO()
    with patch("sqlport.cli.console", Console(file=buffer, width=200)):
        yield buffer


@pytest.fixture
def config(tmp_path: Path, sample_db: Path) -> Path:
    return _write_config(tmp_path, sample_db)


@pytest.fixture(autouse=True)
def _no_profile_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DB_PROFILE", raising=False)


# ============================================================================
# Parser
# ============================================================================


class TestParser:
    """Test argument parsing."""

    def test_global_options(self) -> None:
        """Global options come before the command."""
        args = build_parser().parse_args(
            ["--env-prefix", "APP_", "--config", "x.toml", "-v", "profiles"]
        )
        assert args.env_prefix == "APP_"
        assert args.config == "x.toml"
        assert args.verbose is True
        assert args.command == "profiles"

    def test_command_required(self) -> None:
        """Running without a command is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_invalid_target(self) -> None:
        """--to only accepts supported dialects."""
        with pytest.raises(SystemExit) as exc_info:
            main(["dump", "--to", "oracle"])
        assert exc_info.value.code == 2

    def test_load_requires_files(self) -> None:
        """load needs at least one file."""
        with pytest.raises(SystemExit) as exc_info:
            main(["load", "--profile", "dst"])
        assert exc_info.value.code == 2

    def test_dispatch(self) -> None:
        """main() calls the selected command with the parsed args."""
        with patch("sqlport.cli.cmd_order", return_value=0) as mock_order:
            assert main(["order", "--profile", "src", "--drop"]) == 0
        args = mock_order.call_args[0][0]
        assert args.profile == "src"
        assert args.drop is True


# ============================================================================
# profiles / inspect / order
# ============================================================================


class TestInfoCommands:
    """Test commands that only read configuration or the catalog."""

    def test_profiles(self, config: Path, output: io.StringIO) -> None:
        """Profiles are listed with provider and description."""
        assert main(["--config", str(config), "profiles"]) == 0
        text_out = output.getvalue()
        assert "src" in text_out
        assert "dst" in text_out
        assert "Sample source" in text_out
        assert "active profile" not in text_out

    def test_profiles_marks_active(
        self, config: Path, output: io.StringIO, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The profile named by the prefixed env var is marked."""
        monkeypatch.setenv("APP_DB_PROFILE", "src")
        assert main(["--env-prefix", "APP_", "--config", str(config), "profiles"]) == 0
        assert "= active profile (APP_DB_PROFILE)" in output.getvalue()

    def test_profiles_missing_config(self, tmp_path: Path, output: io.StringIO) -> None:
        """A missing db.toml is reported with exit code 1."""
        assert main(["--config", str(tmp_path / "none.toml"), "profiles"]) == 1
        assert "Database config not found" in output.getvalue()

    def test_inspect(self, config: Path, output: io.StringIO) -> None:
        """Naming-convention tables and views are shown."""
        assert main(["--config", str(config), "inspect", "--profile", "src"]) == 0
        text_out = output.getvalue()
        for name in ("v4_projects", "v4_tasks", "v4_comments"):
            assert name in text_out
        assert "knex_migrations" not in text_out
        assert "Views: v4_open_tasks" in text_out

    def test_inspect_unknown_table(self, config: Path, output: io.StringIO) -> None:
        """Missing tables fail with the table named."""
        code = main(["--config", str(config), "inspect", "-p", "src", "--tables", "v4_nope"])
        assert code == 1
        assert "v4_nope" in output.getvalue()

    def test_order(self, config: Path, output: io.StringIO) -> None:
        """Tables are printed parents first."""
        assert main(["--config", str(config), "order", "--profile", "src"]) == 0
        lines = [line.strip() for line in output.getvalue().splitlines() if line.strip()]
        assert lines == ["1. v4_projects", "2. v4_tasks", "3. v4_comments"]

    def test_order_drop(self, config: Path, output: io.StringIO) -> None:
        """--drop prints children first."""
        assert main(["--config", str(config), "order", "-p", "src", "--drop"]) == 0
        lines = [line.strip() for line in output.getvalue().splitlines() if line.strip()]
        assert lines == ["1. v4_comments", "2. v4_tasks", "3. v4_projects"]

    def test_no_profile(self, config: Path, output: io.StringIO) -> None:
        """Without --profile or DB_PROFILE the command fails."""
        assert main(["--config", str(config), "order"]) == 1
        assert "No database profile configured" in output.getvalue()

    def test_profile_from_env(
        self, config: Path, output: io.StringIO, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """DB_PROFILE selects the profile when --profile is not given."""
        monkeypatch.setenv("DB_PROFILE", "src")
        assert main(["--config", str(config), "order"]) == 0
        assert "1. v4_projects" in output.getvalue()


# ============================================================================
# dump / load
# ============================================================================


class TestDumpCommand:
    """Test the dump command."""

    def test_dump_to_stdout(
        self, config: Path, output: io.StringIO, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Without --output the SQL is written to stdout."""
        assert main(["--config", str(config), "dump", "-p", "src", "--to", "postgresql"]) == 0
        sql = capsys.readouterr().out
        assert sql.startswith("-- SQL Dump generated by sqlport\n")
        assert "-- Target: PostgreSQL" in sql
        assert 'INSERT INTO "v4_projects"' in sql
        assert output.getvalue() == ""

    def test_dump_schema_only(self, config: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """--chunk-size 0 leaves out the data."""
        argv = ["--config", str(config), "dump", "-p", "src", "--to", "sqlite", "--chunk-size", "0"]
        assert main(argv) == 0
        sql = capsys.readouterr().out
        assert "CREATE TABLE" in sql
        assert "INSERT" not in sql

    def test_dump_options(self, config: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Header, schema and table selection flags reach the dump."""
        argv = [
            "--config", str(config), "dump", "-p", "src", "--to", "postgresql",
            "--no-header", "--exclude-schema", "--tables", "v4_projects",
            "--on-conflict", "replace",
        ]
        assert main(argv) == 0
        sql = capsys.readouterr().out
        assert sql.startswith("SET session_replication_role = replica;")
        assert "CREATE TABLE" not in sql
        assert "v4_tasks" not in sql
        assert 'ON CONFLICT ("id") DO UPDATE SET' in sql

    def test_dump_defaults_from_config(
        self, tmp_path: Path, sample_db: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """The [dump] table supplies the target; MySQL defaults to ignore mode."""
        config = _write_config(tmp_path, sample_db, '\n[dump]\ntarget = "mariadb"\n')
        assert main(["--config", str(config), "dump", "-p", "src"]) == 0
        sql = capsys.readouterr().out
        assert "-- Target: MySQL" in sql
        assert "INSERT IGNORE INTO `v4_projects`" in sql

    def test_dump_without_target(self, config: Path, output: io.StringIO) -> None:
        """A dump needs a target from the flag or db.toml."""
        assert main(["--config", str(config), "dump", "-p", "src"]) == 1
        assert "No target dialect" in output.getvalue()

    def test_max_statements_requires_output(self, config: Path, output: io.StringIO) -> None:
        """Part files need an output path."""
        argv = ["--config", str(config), "dump", "-p", "src", "--to", "mysql"]
        assert main([*argv, "--max-statements", "5"]) == 1
        assert "--max-statements requires --output" in output.getvalue()

    def test_dump_to_file(self, config: Path, output: io.StringIO, tmp_path: Path) -> None:
        """--output writes the document and reports the statement count."""
        target = tmp_path / "dump.sql"
        argv = ["--config", str(config), "dump", "-p", "src", "--to", "mysql", "-o", str(target)]
        assert main(argv) == 0
        assert target.read_text().startswith("-- SQL Dump generated by sqlport\n")
        assert "Wrote" in output.getvalue()
        assert "(sqlite -> mysql)" in output.getvalue()

    def test_dump_to_parts(self, config: Path, output: io.StringIO, tmp_path: Path) -> None:
        """--max-statements splits the output into numbered part files."""
        target = tmp_path / "dump.sql"
        argv = [
            "--config", str(config), "dump", "-p", "src", "--to", "sqlite",
            "-o", str(target), "--max-statements", "3",
        ]
        assert main(argv) == 0
        assert not target.exists()
        assert (tmp_path / "dump-part1.sql").exists()
        assert (tmp_path / "dump-part2.sql").exists()
        assert "dump-part1.sql" in output.getvalue()


class TestLoadCommand:
    """Test the load command."""

    def test_dump_then_load(self, config: Path, output: io.StringIO, tmp_path: Path) -> None:
        """A dump written by the CLI loads into another profile."""
        dump = tmp_path / "dump.sql"
        main(["--config", str(config), "dump", "-p", "src", "--to", "sqlite", "-o", str(dump)])

        assert main(["--config", str(config), "load", "--profile", "dst", str(dump)]) == 0
        assert "Loaded" in output.getvalue()

        engine = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
        try:
            with engine.connect() as conn:
                count = conn.execute(text("SELECT COUNT(*) FROM v4_tasks")).scalar()
        finally:
            engine.dispose()
        assert count == 3

    def test_load_parts_in_order(self, config: Path, output: io.StringIO, tmp_path: Path) -> None:
        """Part files given in order load completely."""
        dump = tmp_path / "dump.sql"
        argv = [
            "--config", str(config), "dump", "-p", "src", "--to", "sqlite",
            "-o", str(dump), "--max-statements", "2",
        ]
        assert main(argv) == 0
        parts = sorted(tmp_path.glob("dump-part*.sql"), key=lambda p: int(p.stem.split("part")[1]))

        assert main(["--config", str(config), "load", "-p", "dst", *map(str, parts)]) == 0
        for part in parts:
            assert part.name in output.getvalue()

    def test_load_missing_file(self, config: Path, output: io.StringIO, tmp_path: Path) -> None:
        """A missing dump file fails the command."""
        missing = tmp_path / "missing.sql"
        assert main(["--config", str(config), "load", "-p", "dst", str(missing)]) == 1
        assert "Dump file not found" in output.getvalue()

    def test_load_failure_reported(
        self, config: Path, output: io.StringIO, tmp_path: Path
    ) -> None:
        """A failing statement is reported with its position."""
        dump = tmp_path / "bad.sql"
        dump.write_text("CREATE TABLE t (id INTEGER);\nINSERT INTO nowhere VALUES (1);\n")
        assert main(["--config", str(config), "load", "-p", "dst", str(dump)]) == 1
        assert "Statement 2 failed" in output.getvalue()
