"""Tests for loading dump documents back into a database.

Round trips go SQLite -> dump -> fresh SQLite file, so they run without
a server.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine, text

from sqlport.adapters import SqlAlchemyAdapter
from sqlport.dump import DumpOptions, dump_database, write_parts
from sqlport.errors import LoadError
from sqlport.loader import load_dump


def _rows(engine: Engine, sql: str) -> list[tuple]:
    with engine.connect() as conn:
        return [tuple(r) for r in conn.execute(text(sql))]


def _sqlite_dump(engine: Engine, **kwargs) -> str:
    return dump_database(engine, DumpOptions(target_dialect="sqlite", **kwargs)).render()


# ============================================================================
# Round trip
# ============================================================================


class TestRoundTrip:
    """Test SQLite -> SQLite round trips through a rendered dump."""

    @pytest.fixture
    def target(self, tmp_path: Path):
        adapter = SqlAlchemyAdapter(f"sqlite:///{tmp_path / 'target.db'}")
        yield adapter
        adapter.close()

    def test_data_survives(self, sample_engine: Engine, target: SqlAlchemyAdapter) -> None:
        """Every dumped row arrives unchanged."""
        count = load_dump(target, _sqlite_dump(sample_engine))
        assert count > 0

        for table in ("v4_projects", "v4_tasks", "v4_comments"):
            query = f"SELECT * FROM {table} ORDER BY id"
            assert _rows(target.engine, query) == _rows(sample_engine, query)

    def test_schema_survives(self, sample_engine: Engine, target: SqlAlchemyAdapter) -> None:
        """Dumping the loaded copy reproduces the original dump byte for byte."""
        original = _sqlite_dump(sample_engine)
        load_dump(target, original)
        assert _sqlite_dump(target.engine) == original

    def test_view_loaded(self, sample_engine: Engine, target: SqlAlchemyAdapter) -> None:
        """Views are queryable after loading."""
        load_dump(target, _sqlite_dump(sample_engine))
        assert _rows(target.engine, "SELECT id FROM v4_open_tasks ORDER BY id") == [(2,), (3,)]

    def test_ignore_mode_reload(self, sample_engine: Engine, target: SqlAlchemyAdapter) -> None:
        """An ignore-mode dump can be loaded twice."""
        dump = _sqlite_dump(sample_engine, conflict_mode="ignore")
        load_dump(target, dump)
        load_dump(target, dump)
        assert _rows(target.engine, "SELECT COUNT(*) FROM v4_tasks") == [(3,)]

    def test_replace_mode_restores_rows(
        self, sample_engine: Engine, target: SqlAlchemyAdapter
    ) -> None:
        """A replace-mode dump overwrites rows changed since the first load."""
        dump = _sqlite_dump(sample_engine, conflict_mode="replace")
        load_dump(target, dump)
        target.execute("UPDATE v4_projects SET name = 'Changed' WHERE id = 1")

        load_dump(target, dump)
        assert _rows(target.engine, "SELECT name FROM v4_projects WHERE id = 1") == [("Alpha",)]

    def test_error_mode_reload_fails(
        self, sample_engine: Engine, target: SqlAlchemyAdapter
    ) -> None:
        """A plain dump refuses to load over existing rows and names the statement."""
        document = dump_database(sample_engine, DumpOptions(target_dialect="sqlite"))
        load_dump(target, document.render())

        with pytest.raises(LoadError) as exc_info:
            load_dump(target, document.render())
        failed = exc_info.value
        assert failed.statement.startswith('INSERT INTO "v4_projects"')
        assert failed.index == 1 + next(
            i for i, s in enumerate(document.statements) if s.startswith("INSERT")
        )

    def test_parts_load_in_sequence(
        self, sample_engine: Engine, target: SqlAlchemyAdapter, tmp_path: Path
    ) -> None:
        """Part files load one after another into the same result."""
        document = dump_database(sample_engine, DumpOptions(target_dialect="sqlite"))
        paths = write_parts(document, tmp_path / "dump.sql", max_statements=2)
        assert len(paths) > 1

        for path in paths:
            load_dump(target, path.read_text())

        query = "SELECT * FROM v4_tasks ORDER BY id"
        assert _rows(target.engine, query) == _rows(sample_engine, query)


# ============================================================================
# Statement splitting on load
# ============================================================================


class TestLoadDump:
    """Test how load_dump hands statements to the client."""

    def test_mysql_backslash_escapes(self) -> None:
        """MySQL targets treat backslash-escaped quotes as part of the string."""
        client = MagicMock()
        client.dialect = "mysql"
        client.execute_script.return_value = 2

        count = load_dump(client, "INSERT INTO `t` VALUES ('a\\';b');\nCOMMIT;\n")

        assert count == 2
        client.execute_script.assert_called_once_with(
            ["INSERT INTO `t` VALUES ('a\\';b')", "COMMIT"]
        )

    def test_comments_not_sent(self) -> None:
        """Header and section comments are not executed."""
        client = MagicMock()
        client.dialect = "postgresql"
        client.execute_script.return_value = 1

        load_dump(client, "-- SQL Dump generated by sqlport\n\n-- Table: t\nBEGIN;\n")

        client.execute_script.assert_called_once_with(["BEGIN"])


# ============================================================================
# Placeholder and escape characters in data
# ============================================================================

NOTES = ["100% done", "%s and %(x)s", "C:\\dir\\file", "it's :name"]


@pytest.fixture
def notes_engine(tmp_path: Path):
    """SQLite source whose text values look like driver placeholders."""
    engine = create_engine(f"sqlite:///{tmp_path / 'notes.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE v4_notes (id INTEGER PRIMARY KEY, body TEXT NOT NULL)"))
        for i, body in enumerate(NOTES, start=1):
            conn.execute(
                text("INSERT INTO v4_notes (id, body) VALUES (:id, :body)"),
                {"id": i, "body": body},
            )
    yield engine
    engine.dispose()


class TestSpecialCharacters:
    """Test values containing '%', ':' and backslashes."""

    def test_sqlite_round_trip(self, notes_engine: Engine, tmp_path: Path) -> None:
        """Values are stored unchanged after a load."""
        target = SqlAlchemyAdapter(f"sqlite:///{tmp_path / 'target.db'}")
        try:
            load_dump(target, _sqlite_dump(notes_engine))
            rows = _rows(target.engine, "SELECT body FROM v4_notes ORDER BY id")
        finally:
            target.close()
        assert [r[0] for r in rows] == NOTES

    @pytest.mark.parametrize("dialect", ["postgresql", "mysql"])
    def test_server_statements_unchanged(self, notes_engine: Engine, dialect: str) -> None:
        """Server targets receive every statement exactly as rendered."""
        document = dump_database(notes_engine, DumpOptions(target_dialect=dialect))
        client = MagicMock()
        client.dialect = dialect
        client.execute_script.return_value = document.statement_count

        assert load_dump(client, document.render()) == document.statement_count
        sent = client.execute_script.call_args.args[0]
        assert sent == [s[:-1] for s in document.statements]
        inserts = "\n".join(s for s in sent if s.startswith("INSERT"))
        assert "'100% done'" in inserts
        assert "'%s and %(x)s'" in inserts

    def test_mysql_backslashes_doubled(self, notes_engine: Engine) -> None:
        """MySQL literals escape backslashes and survive statement splitting."""
        document = dump_database(notes_engine, DumpOptions(target_dialect="mysql"))
        client = MagicMock()
        client.dialect = "mysql"

        load_dump(client, document.render())
        inserts = "\n".join(
            s for s in client.execute_script.call_args.args[0] if s.startswith("INSERT")
        )
        assert "'C:\\\\dir\\\\file'" in inserts
        assert "'it''s :name'" in inserts

    def test_postgresql_backslashes_literal(self, notes_engine: Engine) -> None:
        """PostgreSQL literals keep backslashes as written."""
        document = dump_database(notes_engine, DumpOptions(target_dialect="postgresql"))
        assert "'C:\\dir\\file'" in document.render()
