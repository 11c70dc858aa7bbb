"""Guarded Alembic operations that check for existing objects first."""

from __future__ import annotations

from typing import Any

from alembic import op
from sqlalchemy import text


def _exists(statement: str, params: dict[str, Any]) -> bool:
  result = op.get_bind().execute(text(statement), params)
  return result.first() is not None


def schema_exists(*, schema: str) -> bool:
  return _exists("SELECT 1 FROM information_schema.schemata WHERE schema_name = :schema LIMIT 1", {"schema": schema})


def table_exists(*, table_name: str, schema: str | None = None) -> bool:
  """Return True when a base table exists in the target schema (public by default)."""
  statement = """
    SELECT 1
    FROM information_schema.tables
    WHERE table_schema = :schema
      AND table_name = :table_name
      AND table_type = 'BASE TABLE'
    LIMIT 1
    """
  return _exists(statement, {"schema": schema or "public", "table_name": table_name})


def index_exists(*, index_name: str, schema: str | None = None) -> bool:
  return _exists("SELECT 1 FROM pg_indexes WHERE schemaname = :schema AND indexname = :index_name LIMIT 1", {"schema": schema or "public", "index_name": index_name})


def guarded_create_schema(schema: str) -> None:
  if schema_exists(schema=schema):
    return
  op.execute(f'CREATE SCHEMA "{schema}"')


def guarded_create_table(table_name: str, *args: Any, **kwargs: Any) -> None:
  """Create a table unless it already exists; existing question-bank databases may carry it."""
  if table_exists(table_name=table_name, schema=kwargs.get("schema")):
    return
  op.create_table(table_name, *args, **kwargs)


def guarded_drop_table(table_name: str, *args: Any, **kwargs: Any) -> None:
  if not table_exists(table_name=table_name, schema=kwargs.get("schema")):
    return
  op.drop_table(table_name, *args, **kwargs)


def guarded_create_index(index_name: str, table_name: str, *args: Any, **kwargs: Any) -> None:
  schema = kwargs.get("schema")
  if not table_exists(table_name=table_name, schema=schema) or index_exists(index_name=index_name, schema=schema):
    return
  op.create_index(index_name, table_name, *args, **kwargs)


def guarded_drop_index(index_name: str, *args: Any, **kwargs: Any) -> None:
  if not index_exists(index_name=index_name, schema=kwargs.get("schema")):
    return
  op.drop_index(index_name, *args, **kwargs)
