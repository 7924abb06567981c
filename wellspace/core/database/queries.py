"""Query helpers shared by the Cassandra-backed services.

Driver failures are re-raised as ``StoreError`` so callers never depend on
cassandra exception types.
"""

from typing import Any

import structlog
from cassandra import DriverException, OperationTimedOut
from cassandra.cluster import NoHostAvailable


logger = structlog.get_logger(__name__)


DRIVER_ERRORS = (DriverException, OperationTimedOut, NoHostAvailable)

# Rows per page when a query reads a whole partition
PAGE_SIZE = 500


class StoreError(Exception):
    """A read or write against the store failed."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


async def execute(
    session: Any,
    operation: str,
    statement: Any,
    params: list[Any],
    paging_state: bytes | None = None,
) -> Any:
    """Run one statement, wrapping driver errors in StoreError."""
    try:
        if paging_state is None:
            return await session.aexecute(statement, params)
        return await session.aexecute(statement, params, paging_state=paging_state)
    except DRIVER_ERRORS as e:
        logger.error(
            "store_error",
            operation=operation,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise StoreError(operation, e) from e


async def fetch_all(
    session: Any, operation: str, statement: Any, params: list[Any]
) -> list[Any]:
    """Run a query and collect every page of its result.

    The statement's ``fetch_size`` sets the page size. Pages are requested
    one by one with the previous page's paging state, so no page is fetched
    synchronously by iterating the result set.
    """
    rows: list[Any] = []
    paging_state = None
    while True:
        result = await execute(session, operation, statement, params, paging_state)
        rows.extend(result.current_rows)
        paging_state = result.paging_state
        if not paging_state:
            return rows


def first_row(rows: Any) -> Any:
    """First row of a result, or None."""
    for row in rows:
        return row
    return None
