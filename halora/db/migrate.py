"""Create the sync-run ledger table."""

from __future__ import annotations

import pathlib
import sys

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from halora.db.session import create_engine_from_env

SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")


def schema_statements(sql: str) -> list[str]:
    return [stmt.strip() for stmt in sql.split(";") if stmt.strip()]


def run_migrations(engine: Engine) -> None:
    """Apply schema.sql; every statement is idempotent."""
    with engine.begin() as conn:
        for stmt in schema_statements(SCHEMA_PATH.read_text()):
            conn.execute(text(stmt))


def main() -> None:
    load_dotenv()
    engine = create_engine_from_env()
    try:
        run_migrations(engine)
    except SQLAlchemyError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        sys.exit(2)
    print(f"Schema applied to {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
