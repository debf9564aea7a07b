"""Shared fixtures: a small SQLite database with the projects/tasks schema."""

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import Engine, create_engine

SAMPLE_SCHEMA = """
CREATE TABLE v4_comments (
    id INTEGER PRIMARY KEY,
    task_id INTEGER NOT NULL REFERENCES v4_tasks(id),
    body TEXT
);
CREATE TABLE v4_projects (
    id INTEGER PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    slug VARCHAR(100) NOT NULL UNIQUE,
    is_active BOOLEAN NOT NULL DEFAULT 1,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE v4_tasks (
    id INTEGER PRIMARY KEY,
    project_id INTEGER NOT NULL REFERENCES v4_projects(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    done BOOLEAN DEFAULT 0,
    due_date DATE
);
CREATE TABLE knex_migrations (
    id INTEGER PRIMARY KEY,
    name TEXT
);
CREATE INDEX v4_tasks_project_id_foreign ON v4_tasks (project_id);
CREATE INDEX v4_tasks_title_index ON v4_tasks (title);
CREATE VIEW v4_open_tasks AS SELECT "id", "title" FROM "v4_tasks" WHERE "done" = 0;
"""

SAMPLE_DATA = """
INSERT INTO v4_projects (id, name, slug, is_active, created_at) VALUES
    (1, 'Alpha', 'alpha', 1, '2024-01-15 10:30:00'),
    (2, 'Beta''s', 'beta', 0, '2024-02-01 08:00:00');
INSERT INTO v4_tasks (id, project_id, title, done, due_date) VALUES
    (1, 1, 'Write; docs', 1, '2024-03-01'),
    (2, 1, 'Ship it', 0, NULL),
    (3, 2, 'Plan', 0, NULL);
INSERT INTO v4_comments (id, task_id, body) VALUES (1, 1, 'looks good');
INSERT INTO knex_migrations (id, name) VALUES (1, '001_init');
"""


def create_sample_db(path: Path, with_data: bool = True) -> Path:
    """Create the sample database file at ``path``."""
    conn = sqlite3.connect(path)
    try:
        conn.executescript(SAMPLE_SCHEMA)
        if with_data:
            conn.executescript(SAMPLE_DATA)
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def sample_db(tmp_path: Path) -> Path:
    """Path to a populated sample SQLite database."""
    return create_sample_db(tmp_path / "source.db")


@pytest.fixture
def sample_engine(sample_db: Path) -> Iterator[Engine]:
    """SQLAlchemy engine over the sample database."""
    engine = create_engine(f"sqlite:///{sample_db}")
    yield engine
    engine.dispose()
