"""
Database storage
Table access and vector search on Supabase (Postgres + pgvector).
The supabase client is synchronous; calls run in the default executor.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from sales_coach.errors import NotFoundError, SearchError, StorageError

logger = logging.getLogger(__name__)

# PostgREST code for ".single()" matching no rows
NO_ROWS_CODE = "PGRST116"

MATCH_SECTIONS_RPC = "match_topic_sections"


class Database:
    """Thin async wrapper over the Supabase table API."""

    def __init__(self, client: Client):
        self.client = client

    async def _run(self, fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def _execute(self, table: str, action: str, build: Callable[[], Any], not_found: Optional[str] = None) -> Any:
        try:
            response = await self._run(lambda: build().execute())
        except APIError as e:
            if not_found and e.code == NO_ROWS_CODE:
                raise NotFoundError(not_found) from e
            logger.error(f"[DB] {action} on {table} failed: {e.message} (code={e.code})")
            raise StorageError(f"Failed to {action} {table}") from e
        except httpx.HTTPError as e:
            logger.error(f"[DB] {action} on {table} failed: {e}")
            raise StorageError(f"Failed to {action} {table}") from e
        return response.data

    async def insert(self, table: str, rows: Any) -> List[Dict[str, Any]]:
        """
        Insert one row (dict) or several (list); returns the stored rows.
        """
        data = await self._execute(table, "insert", lambda: self.client.table(table).insert(rows))
        return data or []

    async def insert_one(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self.insert(table, row)
        if not rows:
            raise StorageError(f"Failed to insert {table}")
        return rows[0]

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        def build():
            query = self.client.table(table).select(columns)
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            return query

        data = await self._execute(table, "select", build)
        return data or []

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = "*",
        not_found: str = "Record not found",
    ) -> Dict[str, Any]:
        """
        Fetch exactly one row.

        Raises:
            NotFoundError: if no row matches
            StorageError: on any other failure
        """
        def build():
            query = self.client.table(table).select(columns)
            for column, value in filters.items():
                query = query.eq(column, value)
            return query.single()

        data = await self._execute(table, "fetch", build, not_found=not_found)
        if not data:
            raise NotFoundError(not_found)
        return data

    async def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        def build():
            query = self.client.table(table).update(values)
            for column, value in filters.items():
                query = query.eq(column, value)
            return query

        data = await self._execute(table, "update", build)
        return data or []

    async def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        def build():
            query = self.client.table(table).delete()
            for column, value in filters.items():
                query = query.eq(column, value)
            return query

        data = await self._execute(table, "delete", build)
        return data or []

    async def match_sections(
        self,
        query_embedding: List[float],
        match_threshold: float,
        match_count: int,
        scope_filter: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Nearest-neighbour search over stored topic sections.

        Raises:
            SearchError: if the RPC fails
        """
        params = {
            "query_embedding": query_embedding,
            "match_threshold": match_threshold,
            "match_count": match_count,
            "topic_filter": scope_filter,
        }
        start = time.time()
        try:
            response = await self._run(
                lambda: self.client.rpc(MATCH_SECTIONS_RPC, params).execute()
            )
        except APIError as e:
            logger.error(f"[DB] {MATCH_SECTIONS_RPC} failed: {e.message} (code={e.code})")
            raise SearchError(f"Similarity search failed: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error(f"[DB] {MATCH_SECTIONS_RPC} failed: {e}")
            raise SearchError(f"Similarity search failed: {e}") from e

        rows = response.data or []
        logger.debug(f"[DB] {MATCH_SECTIONS_RPC} -> {len(rows)} rows ({time.time() - start:.2f}s)")
        return rows
