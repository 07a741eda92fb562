"""DuckDB connection wrapper with schema initialization."""

from pathlib import Path

import duckdb


class DuckDBRepo:
    """Manages a DuckDB connection and schema lifecycle.

    Opens a single persistent connection at startup.  Callers obtain
    cursors via ``connection.cursor()`` and close them when done.
    """

    def __init__(self, db_path: str | Path) -> None:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection: duckdb.DuckDBPyConnection = duckdb.connect(str(db_path))

    def initialize_schema(self) -> None:
        """Create core tables and id sequences if they do not already exist.

        No PRIMARY KEY or FOREIGN KEY constraints are used; integrity
        between tasks and annotations is maintained by the services.
        """
        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS project_id_seq START 1")
        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS task_id_seq START 1")
        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS annotation_id_seq START 1")

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id              INTEGER DEFAULT nextval('project_id_seq'),
                name            VARCHAR NOT NULL,
                description     VARCHAR,
                created_at      TIMESTAMP DEFAULT current_timestamp
            )
        """)

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id              INTEGER DEFAULT nextval('task_id_seq'),
                project_id      INTEGER NOT NULL,
                data_url        VARCHAR NOT NULL,
                data_type       VARCHAR NOT NULL DEFAULT 'image',
                status          VARCHAR NOT NULL DEFAULT 'unassigned',
                assigned_to     INTEGER,
                metadata        JSON,
                priority        INTEGER NOT NULL DEFAULT 0,
                created_at      TIMESTAMP DEFAULT current_timestamp,
                updated_at      TIMESTAMP DEFAULT current_timestamp
            )
        """)

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS annotations (
                id              INTEGER DEFAULT nextval('annotation_id_seq'),
                task_id         INTEGER NOT NULL,
                user_id         INTEGER NOT NULL,
                project_id      INTEGER NOT NULL,
                annotation_data JSON NOT NULL,
                is_ground_truth BOOLEAN NOT NULL DEFAULT false,
                review_status   VARCHAR NOT NULL DEFAULT 'pending',
                reviewer_id     INTEGER,
                created_at      TIMESTAMP DEFAULT current_timestamp,
                updated_at      TIMESTAMP DEFAULT current_timestamp
            )
        """)

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self.connection.close()
