"""
Shared plumbing for repositories

Author: TM3
Date: 2025-11-03
"""
import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from budstack.core.database import get_db_connection_dict


def new_id() -> str:
    return str(uuid.uuid4())


def build_set_clause(fields: Dict[str, Any], allowed: Tuple[str, ...]) -> Tuple[str, List[Any]]:
    """
    "col1 = %s, col2 = %s" and its params for the allowed keys present in fields.

    Column names only ever come from `allowed`, never from user input.
    """
    assignments = []
    params = []
    for column in allowed:
        if column in fields:
            assignments.append(f"{column} = %s")
            params.append(fields[column])
    return ", ".join(assignments), params


class BaseRepository:
    """
    Connection handling for psycopg2 repositories.

    Methods take an optional ``conn``; when given, the caller owns the
    transaction (see core.database.transaction) and nothing is committed here.
    """

    @contextmanager
    def _cursor(self, conn=None, commit: bool = False):
        should_close = conn is None
        if conn is None:
            conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            yield cursor
            if should_close and commit:
                conn.commit()
        except Exception:
            if should_close:
                conn.rollback()
            raise
        finally:
            cursor.close()
            if should_close:
                conn.close()

    def _fetch_one(self, query: str, params=None, conn=None) -> Optional[dict]:
        with self._cursor(conn) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def _fetch_all(self, query: str, params=None, conn=None) -> List[dict]:
        with self._cursor(conn) as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def _write_returning(self, query: str, params=None, conn=None) -> Optional[dict]:
        with self._cursor(conn, commit=True) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def _write(self, query: str, params=None, conn=None) -> int:
        """Execute a write, return affected row count"""
        with self._cursor(conn, commit=True) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount
