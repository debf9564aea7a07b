"""Tests for dump orchestration over the sample SQLite database.

Verifies that:
- Groups appear in the fixed stage order and empty groups are not rendered
- Output is byte-identical across runs with identical input
- Referenced tables are created and populated before referencing tables
- PostgreSQL targets get exactly one sequence reset per serial key
- Schema-only and data-only dumps leave out the other section
- Scoping errors (missing tables, cycles, replace without a key) fail the dump
"""

from datetime import datetime

import pytest
from sqlalchemy import Engine, text

from sqlport.dump import DumpOptions, dump_database, generate_dump, split_statements
from sqlport.errors import CyclicDependencyError, MissingPrimaryKeyError, NotFoundError


def _dump(engine: Engine, **kwargs):
    """Dump the sample database with ``DumpOptions(**kwargs)``."""
    return dump_database(engine, DumpOptions(**kwargs))


# ============================================================================
# Document structure
# ============================================================================


class TestDocumentStructure:
    """Test group order, header and control statements."""

    def test_group_order(self, sample_engine: Engine) -> None:
        """Stages appear in the fixed order."""
        document = _dump(sample_engine, target_dialect="postgresql")
        assert [g.name for g in document.groups] == [
            "header",
            "disable_fk_checks",
            "begin",
            "tables",
            "views",
            "indexes",
            "foreign_keys",
            "data",
            "sequences",
            "commit",
            "enable_fk_checks",
        ]

    def test_render_frame(self, sample_engine: Engine) -> None:
        """The rendered dump opens with the header and FK/transaction controls."""
        rendered = _dump(sample_engine, target_dialect="postgresql").render()
        assert rendered.startswith(
            "-- SQL Dump generated by sqlport\n"
            "-- Source: SQLite\n"
            "-- Target: PostgreSQL\n"
            "-- Load with: psql -d mydb -f dump.sql\n"
            "\n"
            "SET session_replication_role = replica;\n"
            "\n"
            "BEGIN;\n"
        )
        assert rendered.endswith("COMMIT;\n\nSET session_replication_role = DEFAULT;\n")
        assert "-- Schema (CREATE TABLE statements)" in rendered
        # No deferred FKs, so the section is not rendered
        assert "-- Foreign keys" not in rendered

    def test_mysql_controls(self, sample_engine: Engine) -> None:
        """MySQL dumps disable FK checks and use START TRANSACTION."""
        document = _dump(sample_engine, target_dialect="mysql")
        statements = document.statements
        assert statements[:2] == ["SET FOREIGN_KEY_CHECKS=0;", "START TRANSACTION;"]
        assert statements[-2:] == ["COMMIT;", "SET FOREIGN_KEY_CHECKS=1;"]

    def test_header_date(self, sample_engine: Engine) -> None:
        """The generation date is only written when given."""
        document = _dump(
            sample_engine, target_dialect="sqlite", generated_at=datetime(2024, 5, 1, 12, 0)
        )
        assert "-- Date: 2024-05-01T12:00:00\n" in document.render()
        assert "Date:" not in _dump(sample_engine, target_dialect="sqlite").render()

    def test_no_header(self, sample_engine: Engine) -> None:
        """The header can be left out."""
        document = _dump(sample_engine, target_dialect="sqlite", include_header=False)
        assert document.group("header") is None
        assert document.render().startswith("PRAGMA foreign_keys = OFF;")

    def test_deterministic(self, sample_engine: Engine) -> None:
        """Two dumps of the same database are byte-identical."""
        first = _dump(sample_engine, target_dialect="mysql").render()
        second = _dump(sample_engine, target_dialect="mysql").render()
        assert first == second

    @pytest.mark.parametrize("target", ["sqlite", "mysql", "postgresql"])
    def test_render_splits_back_into_statements(self, sample_engine: Engine, target: str) -> None:
        """Splitting the rendered text recovers every statement exactly."""
        document = _dump(sample_engine, target_dialect=target)
        backslash = target == "mysql"
        assert split_statements(document.render(), backslash_escapes=backslash) == [
            s[:-1] for s in document.statements
        ]


# ============================================================================
# Ordering
# ============================================================================


class TestOrdering:
    """Test dependency ordering of schema and data."""

    def test_projects_before_tasks_on_postgresql(self, sample_engine: Engine) -> None:
        """Parents are created and filled first, then one setval per serial key."""
        document = _dump(
            sample_engine, target_dialect="postgresql", tables=["v4_tasks", "v4_projects"]
        )
        rendered = document.render()

        create_projects = rendered.index('CREATE TABLE IF NOT EXISTS "v4_projects"')
        create_tasks = rendered.index('CREATE TABLE IF NOT EXISTS "v4_tasks"')
        insert_projects = rendered.index('INSERT INTO "v4_projects"')
        insert_tasks = rendered.index('INSERT INTO "v4_tasks"')
        assert create_projects < create_tasks < insert_projects < insert_tasks

        resets = document.group("sequences").statements
        assert len(resets) == 2
        assert rendered.count("pg_get_serial_sequence('\"v4_projects\"', 'id')") == 1
        assert rendered.count("pg_get_serial_sequence('\"v4_tasks\"', 'id')") == 1
        assert rendered.index("setval") > insert_tasks

    def test_three_level_chain(self, sample_engine: Engine) -> None:
        """Comments follow tasks, which follow projects."""
        document = _dump(sample_engine, target_dialect="sqlite")
        tables = [s.comment for s in document.group("tables").statements]
        assert tables == ["Table: v4_projects", "Table: v4_tasks", "Table: v4_comments"]
        data = [s.comment for s in document.group("data").statements if s.comment]
        assert data == [
            "Data for table: v4_projects",
            "Data for table: v4_tasks",
            "Data for table: v4_comments",
        ]

    def test_cycle_reported(self, sample_engine: Engine) -> None:
        """A FK cycle fails the dump and names its tables."""
        with sample_engine.begin() as conn:
            conn.execute(
                text("CREATE TABLE v4_a (id INTEGER PRIMARY KEY, b_id INTEGER REFERENCES v4_b(id))")
            )
            conn.execute(
                text("CREATE TABLE v4_b (id INTEGER PRIMARY KEY, a_id INTEGER REFERENCES v4_a(id))")
            )
        with pytest.raises(CyclicDependencyError) as exc_info:
            _dump(sample_engine, target_dialect="postgresql")
        assert exc_info.value.tables == ["v4_a", "v4_b"]

    def test_cycle_deferred(self, sample_engine: Engine) -> None:
        """With cycles deferred, PostgreSQL gets an ALTER TABLE for the back edge."""
        with sample_engine.begin() as conn:
            conn.execute(
                text("CREATE TABLE v4_a (id INTEGER PRIMARY KEY, b_id INTEGER REFERENCES v4_b(id))")
            )
            conn.execute(
                text("CREATE TABLE v4_b (id INTEGER PRIMARY KEY, a_id INTEGER REFERENCES v4_a(id))")
            )
        document = _dump(
            sample_engine,
            target_dialect="postgresql",
            tables=["v4_a", "v4_b"],
            cycle_policy="defer",
        )
        alters = [s.sql for s in document.group("foreign_keys").statements]
        assert len(alters) == 1
        assert "WHERE conname = ''v4_a_b_id_foreign'' AND conrelid = ''\"v4_a\"''::regclass" in (
            alters[0]
        )
        assert (
            'THEN ALTER TABLE "v4_a" ADD CONSTRAINT "v4_a_b_id_foreign" '
            'FOREIGN KEY ("b_id") REFERENCES "v4_b" ("id"); END IF; END\';'
        ) in alters[0]
        assert split_statements(document.render()) == [s[:-1] for s in document.statements]


# ============================================================================
# Sections and scoping
# ============================================================================


class TestSectionsAndScoping:
    """Test schema-only, data-only and scoped dumps."""

    def test_schema_only(self, sample_engine: Engine) -> None:
        """chunk_size=0 dumps the schema without any data or sequence resets."""
        document = _dump(sample_engine, target_dialect="postgresql", chunk_size=0)
        assert document.group("data") is None
        assert document.group("sequences") is None
        assert "INSERT" not in document.render()
        assert "CREATE TABLE" in document.render()

    def test_data_only(self, sample_engine: Engine) -> None:
        """include_schema=False dumps only data."""
        document = _dump(sample_engine, target_dialect="sqlite", include_schema=False)
        rendered = document.render()
        assert "CREATE" not in rendered
        assert 'INSERT INTO "v4_projects"' in rendered

    def test_view_and_index_sections(self, sample_engine: Engine) -> None:
        """Views are re-quoted and FK-backing indexes are suppressed."""
        rendered = _dump(sample_engine, target_dialect="mysql").render()
        assert (
            "CREATE OR REPLACE VIEW `v4_open_tasks` AS\n"
            "SELECT `id`, `title` FROM `v4_tasks` WHERE `done` = 0;"
        ) in rendered
        assert "  KEY `v4_tasks_title_index` (`title`(191)),\n" in rendered
        assert "v4_tasks_project_id_foreign" not in rendered

    def test_mysql_reload_guarded(self, sample_engine: Engine) -> None:
        """An ignore-mode MySQL dump only creates schema objects behind a guard."""
        document = _dump(sample_engine, target_dialect="mysql", conflict_mode="ignore")
        assert document.group("indexes").statements == ()
        for sql in document.statements:
            if sql.startswith("CREATE"):
                assert sql.startswith(("CREATE TABLE IF NOT EXISTS", "CREATE OR REPLACE VIEW"))
            assert not sql.startswith("ALTER")

    def test_standalone_unique_index_keeps_name(self, sample_engine: Engine) -> None:
        """A named single-column unique index is dumped as itself."""
        with sample_engine.begin() as conn:
            conn.execute(text("CREATE UNIQUE INDEX v4_projects_name_uq ON v4_projects (name)"))
        rendered = _dump(sample_engine, target_dialect="postgresql").render()
        assert (
            'CREATE UNIQUE INDEX IF NOT EXISTS "v4_projects_name_uq" ON "v4_projects" ("name");'
        ) in rendered
        assert '"name" VARCHAR(255) NOT NULL,' in rendered

    def test_mysql_types_and_literals(self, sample_engine: Engine) -> None:
        """Columns and values are spelled for MySQL."""
        rendered = _dump(sample_engine, target_dialect="mysql").render()
        assert "`slug` VARCHAR(100) NOT NULL UNIQUE" in rendered
        assert "`created_at` DATETIME(6) DEFAULT CURRENT_TIMESTAMP(6)" in rendered
        assert "(2, 'Beta''s', 'beta', 0, '2024-02-01 08:00:00')" in rendered

    def test_explicit_tables_skip_views(self, sample_engine: Engine) -> None:
        """Explicit table lists leave views out unless listed."""
        document = _dump(sample_engine, target_dialect="sqlite", tables=["v4_projects"])
        assert document.group("views").statements == ()
        assert [s.comment for s in document.group("tables").statements] == ["Table: v4_projects"]

    def test_table_filters(self, sample_engine: Engine) -> None:
        """Row filters restrict the data of one table."""
        document = _dump(
            sample_engine,
            target_dialect="sqlite",
            tables=["v4_projects", "v4_tasks"],
            table_filters={"v4_tasks": {"project_id": 2}},
        )
        data = "\n".join(s.sql for s in document.group("data").statements)
        assert "'Plan'" in data
        assert "'Ship it'" not in data
        assert "'Alpha'" in data

    def test_filter_on_unselected_table(self, sample_engine: Engine) -> None:
        """A filter for a table outside the dump is an error."""
        with pytest.raises(NotFoundError, match="knex_migrations"):
            _dump(
                sample_engine,
                target_dialect="sqlite",
                table_filters={"knex_migrations": {"id": 1}},
            )

    def test_missing_table(self, sample_engine: Engine) -> None:
        """Requesting an absent table fails the dump."""
        with pytest.raises(NotFoundError):
            _dump(sample_engine, target_dialect="sqlite", tables=["v4_missing"])

    def test_replace_without_key(self, sample_engine: Engine) -> None:
        """Replace mode fails before output when a table has no key."""
        with sample_engine.begin() as conn:
            conn.execute(text("CREATE TABLE v4_logs (message TEXT)"))
        with pytest.raises(MissingPrimaryKeyError, match="v4_logs"):
            _dump(sample_engine, target_dialect="postgresql", conflict_mode="replace")

    def test_replace_without_key_schema_only(self, sample_engine: Engine) -> None:
        """Schema-only dumps do not need keys for replace mode."""
        with sample_engine.begin() as conn:
            conn.execute(text("CREATE TABLE v4_logs (message TEXT)"))
        document = _dump(
            sample_engine, target_dialect="postgresql", conflict_mode="replace", chunk_size=0
        )
        assert 'CREATE TABLE IF NOT EXISTS "v4_logs"' in document.render()

    def test_generate_dump_on_open_connection(self, sample_engine: Engine) -> None:
        """generate_dump works on a caller-managed connection."""
        with sample_engine.connect() as conn:
            document = generate_dump(conn, DumpOptions(target_dialect="postgres"))
        assert document.target_dialect == "postgresql"
        assert document.source_dialect == "sqlite"
