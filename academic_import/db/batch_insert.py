from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""DB batch insert helper.

Batched INSERT through psycopg2.extras.execute_values. Callers pass already
sanitized table/column names; values always travel as parameters.
RETURNING is requested only when the caller needs generated keys (course ids
for the link tables).
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: Sequence[str] | None = None,
    page_size: int = 1000,
) -> InsertResult:
    """Perform batched INSERT using psycopg2.extras.execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name
    columns: insert columns
    rows: row sequences, values in ``columns`` order
    returning: columns to return (e.g. ["id"]); None -> no RETURNING clause
    page_size: execute_values page size

    Returned rows follow input order: a single statement per page keeps VALUES
    order, and execute_values(fetch=True) concatenates pages in order.
    """
    rows_list = [tuple(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if returning:
        sql += " RETURNING " + ",".join(f'"{c}"' for c in returning)

    try:
        fetched = execute_values(
            cursor, sql, rows_list, page_size=page_size, fetch=bool(returning)
        )
    except Exception as e:
        raise BatchInsertError(f"insert into {table} failed: {e}") from e

    returned = [tuple(r) for r in fetched] if returning else None
    return InsertResult(inserted_rows=len(rows_list), returned_values=returned)
