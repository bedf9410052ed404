from __future__ import annotations

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection

# Columns added after the first release of the trades table.
_TRADE_COLUMNS = {
    "quantity": "INTEGER NOT NULL DEFAULT 1",
    "exclude_from_pnl": "BOOLEAN NOT NULL DEFAULT FALSE",
    "import_batch_id": "INTEGER REFERENCES import_batches(id)",
}


def apply_schema_migrations(connection: Connection) -> None:
    """
    Apply lightweight schema migrations that are safe to run on every startup.
    Older databases get the trade columns that create_all does not add to an
    existing table.
    """
    inspector = inspect(connection)
    columns = {column["name"] for column in inspector.get_columns("trades")}
    for name, ddl in _TRADE_COLUMNS.items():
        if name not in columns:
            connection.execute(text(f"ALTER TABLE trades ADD COLUMN {name} {ddl}"))
