"""Seed the development database with a demo funder, rate card and care visits."""

from carebill.backend.src.db import get_engine, session_scope
from carebill.backend.src.models.base import Base
from carebill.backend.src.services.seed import seed_development_data


def main() -> None:
    """Create tables (if needed) and ensure the demo billing data exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        result = seed_development_data(session)
        session.flush()

        print("Development data ready!")
        funder_status = "created" if result.funder_created else "unchanged"
        print(f"Funder ({funder_status}): {result.funder.name} [id={result.funder.id}]")
        print(
            f"Service user: {result.service_user.full_name} [id={result.service_user.id}]"
        )
        print(f"Bank holidays added: {result.holidays_created}")
        print(f"Care visits added: {result.visits_created}")
        print()
        print(
            "Generate billable visits with POST /api/reconciliation/generate "
            f'{{"period_start": "2026-03-01", "period_end": "2026-03-31", '
            f'"funder_id": {result.funder.id}}}'
        )


if __name__ == "__main__":
    main()
