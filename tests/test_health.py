"""Smoke tests for application health and database initialization."""

from labeloo.repositories.duckdb_repo import DuckDBRepo


def test_db_creates_all_tables(db: DuckDBRepo) -> None:
    """DuckDB schema initialization creates all tables."""
    tables = db.connection.execute("SHOW TABLES").fetchall()
    table_names = sorted(t[0] for t in tables)
    assert table_names == ["annotations", "projects", "tasks"]


def test_schema_initialization_is_idempotent(db: DuckDBRepo) -> None:
    db.initialize_schema()
    tables = db.connection.execute("SHOW TABLES").fetchall()
    assert len(tables) == 3


async def test_health_endpoint(app_client) -> None:
    """GET /health returns status ok."""
    response = await app_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
