"""
PostgreSQL access for BudStack

- SQLAlchemy: declarative Base for the schema in budstack.models (init_db)
- psycopg2: dict-row connections for repositories and raw SQL

Author: TM3
Updated: 2025-11-02
"""
import time
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from budstack.core.config import settings

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT = settings.DB_CONNECT_TIMEOUT

# Schema only; request handling goes through psycopg2 below
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
Base = declarative_base()


def _connect(**kwargs):
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL not configured")
    return psycopg2.connect(settings.DATABASE_URL, connect_timeout=CONNECTION_TIMEOUT, **kwargs)


def get_db_connection_dict():
    """psycopg2 connection whose cursors return RealDictRow rows"""
    return _connect(cursor_factory=RealDictCursor)


def get_db_connection_with_retry(max_retries: int = 3, retry_delay: float = 1.0):
    """
    Open a connection and ping it, backing off exponentially between
    attempts when the server refuses or drops the session.

    Args:
        max_retries: attempts before giving up
        retry_delay: wait before the second attempt, doubled each time

    Raises:
        psycopg2.OperationalError: the last failure once attempts run out
    """
    for attempt in range(1, max_retries + 1):
        try:
            conn = _connect()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
            return conn
        except psycopg2.OperationalError as e:
            if attempt == max_retries:
                logger.error(f"Database unreachable after {max_retries} attempts: {e}")
                raise
            wait = retry_delay * 2 ** (attempt - 1)
            logger.warning(f"Database attempt {attempt}/{max_retries} failed ({e}); retrying in {wait:.1f}s")
            time.sleep(wait)


@contextmanager
def transaction():
    """
    Shared connection for a multi-step write: commit on success, rollback on error.

    Repository write methods take ``conn=`` to join it:

        with transaction() as conn:
            tenant = tenant_repo.create(..., conn=conn)
            user_repo.create(..., conn=conn)
    """
    conn = get_db_connection_dict()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
