"""Direct PostgreSQL access to the record tables."""

from __future__ import annotations

import contextlib
from typing import Optional

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from medireach.config import Settings
from medireach.sources import TableConfig


def get_connection(settings: Settings):
    return psycopg2.connect(settings.database_url)


def build_select(config: TableConfig, limit: Optional[int] = None) -> tuple[sql.Composed, list]:
    """Build the SELECT statement and parameters for one table."""
    query = sql.SQL("SELECT {columns} FROM {table}").format(
        columns=sql.SQL(", ").join(sql.Identifier(c) for c in config.columns),
        table=sql.Identifier(config.table),
    )
    params: list = []

    if config.filters:
        conditions = []
        for column, value in config.filters.items():
            conditions.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(value)
        query += sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)

    query += sql.SQL(" ORDER BY {}").format(sql.Identifier(config.order_by))

    if limit is not None:
        query += sql.SQL(" LIMIT %s")
        params.append(limit)

    return query, params


def fetch_table_rows(
    settings: Settings,
    config: TableConfig,
    limit: Optional[int] = None,
) -> list[dict]:
    """Read rows of one table as plain dicts."""
    query, params = build_select(config, limit)
    with contextlib.closing(get_connection(settings)) as conn:
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]
