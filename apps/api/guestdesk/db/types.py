"""Portable column types."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite dev/test databases)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
