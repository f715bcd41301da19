# app/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

import asyncio
import functools
from collections.abc import AsyncGenerator, Iterator, Sequence
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, TypeVar

import psycopg

from app.db.pool import get_db_connection
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Dict with row data or None if no results
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return row if row else None
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    row = await cur.fetchone()
                    return row if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        List of dicts with row data
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def fetch_all_paginated(
    query: str, params: tuple = (), *, page_size: int
) -> list[dict[str, Any]]:
    """
    Read every row of a query in fixed-size pages.

    The store caps rows per response, so a single read silently truncates.
    `query` must carry a deterministic ORDER BY; LIMIT/OFFSET are appended.
    Stops at the first short (or empty) page.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    paged_query = f"{query}\nLIMIT %s OFFSET %s"
    rows: list[dict[str, Any]] = []
    offset = 0
    pages = 0

    while True:
        batch = await fetch_all(paged_query, (*params, page_size, offset))
        pages += 1
        rows.extend(batch)
        if len(batch) < page_size:
            break
        offset += page_size

    if pages > 1:
        logger.debug("Paginated read completed", pages=pages, row_count=len(rows))
    return rows


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """
    Execute query and return number of affected rows.
    """
    try:
        if connection:
            cursor = await connection.execute(query, params)
            return cursor.rowcount
        else:
            async with await get_db_connection() as conn:
                cursor = await conn.execute(query, params)
                return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


# Same-key waiters in this process queue here instead of each parking a
# pooled connection on the server-side lock.
_local_locks: dict[str, asyncio.Lock] = {}
_local_lock_waiters: dict[str, int] = {}


def _lock_timeout(key: str, timeout: float) -> DatabaseError:
    logger.warning("Advisory lock wait timed out", lock_key=key, timeout_seconds=timeout)
    return DatabaseError(
        f"Timed out after {timeout}s waiting for advisory lock {key}",
        operation="advisory_lock",
        recoverable=True,
    )


@asynccontextmanager
async def advisory_lock(
    key: str, *, timeout: float = 30.0, poll_interval: float = 0.2
) -> AsyncGenerator[None, None]:
    """
    Hold a Postgres session-level advisory lock for the duration of the block.

    The lock is taken with pg_try_advisory_lock and retried every
    `poll_interval` seconds; no connection is held between attempts. Once
    acquired, the winning connection stays checked out until the block exits
    so the lock outlives the block's own autocommit statements.

    Raises:
        DatabaseError: when the lock is not acquired within `timeout` seconds
            or the lock statements fail
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    local = _local_locks.setdefault(key, asyncio.Lock())
    _local_lock_waiters[key] = _local_lock_waiters.get(key, 0) + 1
    try:
        try:
            await asyncio.wait_for(local.acquire(), timeout=max(deadline - loop.time(), 0))
        except asyncio.TimeoutError:
            raise _lock_timeout(key, timeout) from None

        try:
            session, conn = await _acquire_session_lock(key, deadline, poll_interval, timeout)
            async with session:
                try:
                    yield
                finally:
                    try:
                        await conn.execute(
                            "SELECT pg_advisory_unlock(hashtextextended(%s, 0))", (key,)
                        )
                        logger.debug("Advisory lock released", lock_key=key)
                    except psycopg.Error as e:
                        # The server drops session locks when the connection closes
                        logger.error("Advisory unlock error", lock_key=key, error=str(e))
        finally:
            local.release()
    finally:
        _local_lock_waiters[key] -= 1
        if not _local_lock_waiters[key]:
            del _local_lock_waiters[key]
            _local_locks.pop(key, None)


async def _acquire_session_lock(
    key: str, deadline: float, poll_interval: float, timeout: float
) -> tuple[AsyncExitStack, psycopg.AsyncConnection]:
    """Poll for the server-side lock; return the winning connection and the stack that owns it."""
    loop = asyncio.get_running_loop()
    attempts = 0
    while True:
        attempts += 1
        try:
            async with AsyncExitStack() as stack:
                conn = await stack.enter_async_context(await get_db_connection())
                cursor = await conn.execute(
                    "SELECT pg_try_advisory_lock(hashtextextended(%s, 0)) AS locked", (key,)
                )
                row = await cursor.fetchone()
                if row and row["locked"]:
                    logger.debug("Advisory lock acquired", lock_key=key, attempts=attempts)
                    return stack.pop_all(), conn
        except psycopg.Error as e:
            logger.error("Advisory lock error", lock_key=key, error=str(e))
            raise DatabaseError(f"Advisory lock failed: {e}", operation="advisory_lock") from e

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise _lock_timeout(key, timeout)
        await asyncio.sleep(min(poll_interval, remaining))


# Decorator for automatic retry on temporary failures
def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Decorator to retry database operations on temporary failures.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries (exponential backoff)
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except DatabaseError as e:
                    cause = e.__cause__
                    if not isinstance(cause, psycopg.OperationalError):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database operation failed after all retries",
                            operation=func.__name__,
                            attempts=max_retries + 1,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"Operation failed after {max_retries} retries: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
