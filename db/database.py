"""
Database connection management with connection pooling.

The costing engine only reads from the managed (Supabase) PostgreSQL
backend: tariffs for rate resolution and stored services for
reconciliation. Connections come from a shared psycopg2 pool.
"""

import os
import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)

# Global connection pool
_connection_pool: Optional[pool.ThreadedConnectionPool] = None


def _with_supabase_params(db_url: str) -> str:
    """Append SSL and connect-timeout parameters expected by the Supabase pooler."""
    separator = '&' if '?' in db_url else '?'
    return f"{db_url}{separator}sslmode=require&connect_timeout=10"


def init_connection_pool(
    min_connections: Optional[int] = None,
    max_connections: Optional[int] = None,
    database_url: Optional[str] = None
) -> None:
    """
    Initialize the database connection pool.

    Args:
        min_connections: Minimum pooled connections (defaults to DB_POOL_MIN or 1)
        max_connections: Maximum pooled connections (defaults to DB_POOL_MAX or 5)
        database_url: PostgreSQL connection string (defaults to DATABASE_URL env var)

    Raises:
        ValueError: If DATABASE_URL not provided and not in environment
        psycopg2.Error: If connection pool cannot be created
    """
    global _connection_pool

    if _connection_pool is not None:
        logger.warning("Connection pool already initialized")
        return

    db_url = database_url or os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError(
            "DATABASE_URL not found. Set it in .env file or pass as parameter."
        )

    min_connections = min_connections or int(os.getenv("DB_POOL_MIN", "1"))
    max_connections = max_connections or int(os.getenv("DB_POOL_MAX", "5"))

    try:
        _connection_pool = pool.ThreadedConnectionPool(
            min_connections,
            max_connections,
            _with_supabase_params(db_url),
            keepalives=1,
            keepalives_idle=30,
            keepalives_interval=10,
            keepalives_count=5,
            options='-c statement_timeout=30000'
        )
        logger.info(
            f"Database connection pool initialized: "
            f"min={min_connections}, max={max_connections}"
        )
    except psycopg2.Error as e:
        logger.error(f"Failed to create connection pool: {e}")
        raise


def close_connection_pool() -> None:
    """Close all pooled connections. Called on application shutdown."""
    global _connection_pool

    if _connection_pool is not None:
        _connection_pool.closeall()
        _connection_pool = None
        logger.info("Database connection pool closed")


@contextmanager
def get_db_connection(dict_cursor: bool = True):
    """
    Get a database connection from the pool (context manager).

    Usage:
        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT * FROM tariffe")
                rows = cursor.fetchall()

    Args:
        dict_cursor: If True, rows are returned as dictionaries (RealDictCursor)

    Yields:
        psycopg2.connection: Database connection

    Raises:
        RuntimeError: If connection pool not initialized
        psycopg2.Error: If database operation fails
    """
    if _connection_pool is None:
        raise RuntimeError(
            "Connection pool not initialized. Call init_connection_pool() first."
        )

    conn = None
    original_factory = None
    try:
        conn = _connection_pool.getconn()

        # Pooled connections can be dropped by the Supabase pooler while idle
        if conn.closed:
            logger.warning("Stale connection detected, getting fresh connection")
            _connection_pool.putconn(conn, close=True)
            conn = _connection_pool.getconn()

        if dict_cursor:
            original_factory = conn.cursor_factory
            conn.cursor_factory = RealDictCursor

        yield conn

        conn.commit()

    except Exception as e:
        if conn:
            conn.rollback()
        logger.error(f"Database operation failed: {e}")
        raise

    finally:
        if conn:
            if dict_cursor:
                conn.cursor_factory = original_factory
            _connection_pool.putconn(conn)


def health_check() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if database is accessible, False otherwise
    """
    if _connection_pool is None:
        return False
    try:
        with get_db_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                return cursor.fetchone() is not None
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
