"""
SQLAlchemy declarative base and schema bootstrap for the Supabase Postgres project.

The application itself talks to the tables through supabase-py (PostgREST); these
models only describe the schema so a fresh project can be provisioned with
`python -m app.models`. Nothing here runs on import.
"""
import logging
from typing import Optional

from sqlalchemy import DDL, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.config.settings import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return (and cache) an engine for DATABASE_URL."""
    global _engine
    if _engine is None:
        if not settings.database_url:
            raise RuntimeError(
                "DATABASE_URL is not set. It is required only for schema provisioning."
            )
        _engine = create_engine(settings.database_url, pool_pre_ping=True)
    return _engine


def owner_policy(table_name: str, owner_column: str = "user_id") -> DDL:
    """Row-level security: each row is visible only to its owner."""
    return DDL(
        f"ALTER TABLE {table_name} ENABLE ROW LEVEL SECURITY; "
        f"CREATE POLICY {table_name}_owner ON {table_name} "
        f"USING ({owner_column} = auth.uid()) "
        f"WITH CHECK ({owner_column} = auth.uid())"
    )


def attach_owner_policy(table, using: Optional[str] = None) -> None:
    ddl = owner_policy(table.name) if using is None else DDL(
        f"ALTER TABLE {table.name} ENABLE ROW LEVEL SECURITY; "
        f"CREATE POLICY {table.name}_owner ON {table.name} USING ({using})"
    )
    event.listen(table, "after_create", ddl.execute_if(dialect="postgresql"))


def init_schema(bind: Optional[Engine] = None) -> None:
    """Create all tables (and their RLS policies) that do not exist yet."""
    # Import for side effects: registers the tables on Base.metadata
    import app.models  # noqa: F401

    engine = bind or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Schema ensured for tables: %s", ", ".join(sorted(Base.metadata.tables))
    )
