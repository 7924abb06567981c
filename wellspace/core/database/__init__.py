"""Database connection module for Wellspace."""

from wellspace.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)
from wellspace.core.database.queries import StoreError


__all__ = [
    "AsyncCassandraConnection",
    "StoreError",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
