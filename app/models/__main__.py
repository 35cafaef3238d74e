"""Provision the Supabase Postgres schema: `python -m app.models`."""
import logging

from app.config.settings import settings
from app.models.database import init_schema

if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    init_schema()
