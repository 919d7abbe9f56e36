"""Database-agnostic type definitions for SQLAlchemy models.

Booking documents are nested, so they are kept as JSON rather than JSONB; both types
below behave the same on PostgreSQL (production) and SQLite (local runs and tests).
"""
from sqlalchemy import JSON, Uuid

# JSON instead of JSONB for cross-database compatibility
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid
