"""Add the active billable visit index and seed document sequences."""

from __future__ import annotations

from sqlalchemy import MetaData, func, inspect, select, text
from sqlalchemy.engine import Connection

from .. import get_engine

ACTIVE_VISIT_INDEX = "uq_billable_visits_active_care_visit"


def _ensure_active_visit_index(connection: Connection) -> None:
    """Create the partial unique index when an older schema lacks it.

    Fails if the table already holds two non-VOID rows for one care visit;
    those must be voided by hand first.
    """

    inspector = inspect(connection)
    if "billable_visits" not in inspector.get_table_names():
        return
    existing = {index["name"] for index in inspector.get_indexes("billable_visits")}
    if ACTIVE_VISIT_INDEX in existing:
        return
    connection.execute(
        text(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_VISIT_INDEX} "
            "ON billable_visits (care_visit_id) WHERE status <> 'VOID'"
        )
    )


def _seed_sequence(connection: Connection, name: str, table: str) -> None:
    """Start a sequence past the rows already issued so numbers never repeat."""

    metadata = MetaData()
    metadata.reflect(bind=connection, only=["document_sequences", table])
    sequences = metadata.tables["document_sequences"]
    issued = connection.execute(
        select(func.count()).select_from(metadata.tables[table])
    ).scalar_one()

    current = connection.execute(
        select(sequences.c.last_value).where(sequences.c.name == name)
    ).scalar_one_or_none()
    if current is None:
        connection.execute(sequences.insert().values(name=name, last_value=issued))
    elif current < issued:
        connection.execute(
            sequences.update().where(sequences.c.name == name).values(last_value=issued)
        )


def upgrade() -> None:
    """Apply the migration."""

    engine = get_engine()
    with engine.begin() as connection:
        _ensure_active_visit_index(connection)
        tables = set(inspect(connection).get_table_names())
        if "document_sequences" in tables:
            if "invoices" in tables:
                _seed_sequence(connection, "invoice", "invoices")
            if "credit_notes" in tables:
                _seed_sequence(connection, "credit_note", "credit_notes")


__all__ = ["upgrade"]

if __name__ == "__main__":
    upgrade()
