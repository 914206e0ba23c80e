"""Supabase client initialization and helper methods."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client, create_client

from prompt_shelf.config import get_settings
from prompt_shelf.core.exceptions import RowNotFound, StoreError, UniqueViolation

logger = structlog.get_logger()

# Postgres SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
NO_DATA_FOUND = "P0002"


class SupabaseClient:
    """Wrapper around the Supabase client with convenience methods.

    Every request goes through ``_execute`` so callers only ever see the
    ``StoreError`` family, never PostgREST or transport exceptions.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        """Access the raw Supabase client."""
        return self._client

    def _execute(self, query: Any, table: str) -> Any:
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                logger.info("store.unique_violation", table=table, detail=e.message)
                raise UniqueViolation(e.message) from e
            if e.code == NO_DATA_FOUND:
                raise RowNotFound(e.message) from e
            logger.error("store.request_failed", table=table, code=e.code, error=e.message)
            raise StoreError() from e
        except httpx.HTTPError as e:
            logger.error("store.unreachable", table=table, error=str(e))
            raise StoreError() from e

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a record and return the created row."""
        result = self._execute(self._client.table(table).insert(data), table)
        return result.data[0]

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select records with optional filters, ordering, and limit."""
        query = self._client.table(table).select("*")

        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)

        if order_by:
            query = query.order(order_by, desc=not ascending)

        if limit:
            query = query.limit(limit)

        return self._execute(query, table).data

    def select_in(
        self,
        table: str,
        column: str,
        values: list[Any],
        order_by: str | None = None,
        ascending: bool = True,
    ) -> list[dict[str, Any]]:
        """Select records whose ``column`` is one of ``values``."""
        if not values:
            return []
        query = self._client.table(table).select("*").in_(column, values)
        if order_by:
            query = query.order(order_by, desc=not ascending)
        return self._execute(query, table).data

    def update(self, table: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a record by ID."""
        result = self._execute(self._client.table(table).update(data).eq("id", id), table)
        if not result.data:
            raise RowNotFound(f"Row {id} not found in {table}")
        return result.data[0]

    def update_where(
        self, table: str, filters: dict[str, Any], data: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Update every record matching ``filters``; returns the updated rows."""
        query = self._client.table(table).update(data)
        for key, value in filters.items():
            query = query.eq(key, value)
        return self._execute(query, table).data

    def delete(self, table: str, id: str) -> None:
        """Delete a record by ID."""
        self._execute(self._client.table(table).delete().eq("id", id), table)

    def delete_where(self, table: str, filters: dict[str, Any]) -> int:
        """Delete every record matching ``filters``; returns how many went."""
        query = self._client.table(table).delete()
        for key, value in filters.items():
            query = query.eq(key, value)
        return len(self._execute(query, table).data)

    def rpc(self, fn: str, params: dict[str, Any]) -> Any:
        """Call a Postgres function. Functions run in a single transaction."""
        return self._execute(self._client.rpc(fn, params), fn).data


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """Get cached Supabase client instance."""
    settings = get_settings()
    client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("supabase.connected", url=settings.supabase_url)
    return SupabaseClient(client)
