"""
Table-backed repository shared by incidents, requirements and users.

Reads go through an enriched view (e.g. incidents_with_times), writes through
the base table. Store errors are translated into the error taxonomy here so
services never see postgrest exceptions.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client

from app.core.errors import (
    Conflict, DeleteFailed, InsertFailed, NotFound, QueryFailed, UpdateFailed, ValidationError,
    FOREIGN_KEY_VIOLATION, UNIQUE_VIOLATION, store_error_code, store_error_message,
)
from app.core.pagination import Page, clamp_limit, clamp_page, effective_page

logger = logging.getLogger(__name__)

# Codes older postgrest clients raise from maybe_single() when no row matches
NO_ROWS_CODES = ("204", "PGRST116")

# Characters with meaning inside a PostgREST or=(...) expression
_SEARCH_RESERVED = re.compile(r"[,()*\\]")

# LIKE wildcards that must match literally in a search term
_LIKE_WILDCARDS = re.compile(r"([%_])")


@dataclass
class ListQuery:
    """Filters for a list call. Empty values are ignored."""
    equals: Dict[str, Any] = field(default_factory=dict)
    created_from: Optional[str] = None
    created_to: Optional[str] = None
    search: Optional[str] = None


class EntityRepository:
    def __init__(
        self,
        supabase: Client,
        table: str,
        view: Optional[str] = None,
        search_columns: Sequence[str] = ("title", "description"),
        label: str = "Record",
    ):
        self.supabase = supabase
        self.table = table
        self.view = view or table
        self.search_columns = tuple(search_columns)
        self.label = label

    def _filtered(self, query, filters: ListQuery):
        for column, value in filters.equals.items():
            if value is not None and value != "":
                query = query.eq(column, value)
        if filters.created_from:
            query = query.gte("created_at", filters.created_from)
        if filters.created_to:
            query = query.lte("created_at", filters.created_to)
        term = _SEARCH_RESERVED.sub(" ", filters.search or "").strip()
        term = _LIKE_WILDCARDS.sub(r"\\\1", term)
        if term:
            query = query.or_(",".join(f"{column}.ilike.%{term}%" for column in self.search_columns))
        return query

    def list(self, filters: ListQuery, page: Optional[int] = None, limit: Optional[int] = None) -> Page:
        """Newest first. Counts first so an out-of-range page is clamped to the last one."""
        limit = clamp_limit(limit)
        page = clamp_page(page)
        try:
            count_result = self._filtered(
                self.supabase.table(self.view).select("*", count="exact", head=True), filters
            ).execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        total = count_result.count or 0
        if total == 0:
            return Page.empty(limit)

        page = effective_page(page, limit, total)
        offset = (page - 1) * limit
        try:
            result = self._filtered(self.supabase.table(self.view).select("*"), filters)\
                .order("created_at", desc=True)\
                .order("id", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        return Page(
            items=result.data or [],
            total=total,
            page=page,
            limit=limit,
            has_more=page * limit < total,
        )

    def rows(self, filters: ListQuery, columns: str = "*") -> List[Dict[str, Any]]:
        """Every matching row from the view, newest first, unpaged."""
        try:
            result = self._filtered(self.supabase.table(self.view).select(columns), filters)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        return result.data or []

    def get(self, entity_id: Any) -> Dict[str, Any]:
        """Enriched row from the view, or NotFound."""
        return self._get_from(self.view, entity_id, "*")

    def get_row(self, entity_id: Any, columns: str = "*") -> Dict[str, Any]:
        """Raw row from the base table, or NotFound."""
        return self._get_from(self.table, entity_id, columns)

    def _get_from(self, source: str, entity_id: Any, columns: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table(source)\
                .select(columns)\
                .eq("id", entity_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            if store_error_code(e) in NO_ROWS_CODES:
                raise NotFound(f"{self.label} not found")
            raise QueryFailed(store_error_message(e))
        if not result or not result.data:
            raise NotFound(f"{self.label} not found")
        return result.data

    def count(self, equals: Optional[Dict[str, Any]] = None) -> int:
        query = self.supabase.table(self.table).select("*", count="exact", head=True)
        for column, value in (equals or {}).items():
            query = query.eq(column, value)
        try:
            return query.execute().count or 0
        except Exception as e:
            raise QueryFailed(store_error_message(e))

    def insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.supabase.table(self.table).insert(values).execute()
        except Exception as e:
            if store_error_code(e) == UNIQUE_VIOLATION:
                raise Conflict(store_error_message(e))
            raise InsertFailed(store_error_message(e))
        if not result.data:
            raise InsertFailed(f"Failed to create {self.label.lower()}")
        return result.data[0]

    def update(
        self,
        entity_id: Any,
        values: Dict[str, Any],
        expected_last_modified_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update one row. With `expected_last_modified_at` the write only applies if the row is unchanged."""
        query = self.supabase.table(self.table).update(values).eq("id", entity_id)
        if expected_last_modified_at is not None:
            query = query.eq("last_modified_at", expected_last_modified_at)
        try:
            result = query.execute()
        except Exception as e:
            raise UpdateFailed(store_error_message(e))
        if not result.data:
            if expected_last_modified_at is not None:
                # Distinguish a missing row from a concurrent modification
                self.get_row(entity_id, "id")
                raise Conflict(f"{self.label} was modified by someone else")
            raise NotFound(f"{self.label} not found")
        return result.data[0]

    def delete(self, entity_id: Any) -> None:
        try:
            result = self.supabase.table(self.table).delete().eq("id", entity_id).execute()
        except Exception as e:
            if store_error_code(e) == FOREIGN_KEY_VIOLATION:
                raise Conflict(store_error_message(e))
            raise DeleteFailed(store_error_message(e))
        if not result.data:
            raise NotFound(f"{self.label} not found")


def find_one(supabase: Client, table: str, equals: Dict[str, Any], columns: str = "*") -> Optional[Dict[str, Any]]:
    """First row of `table` matching every equality, or None."""
    query = supabase.table(table).select(columns)
    for column, value in equals.items():
        query = query.eq(column, value)
    try:
        result = query.limit(1).execute()
    except Exception as e:
        raise QueryFailed(store_error_message(e))
    rows = result.data or []
    return rows[0] if rows else None


def ensure_reference_exists(supabase: Client, table: str, value: Any, message: str) -> None:
    """ValidationError naming the dangling reference when `table` has no row with id `value`."""
    try:
        result = supabase.table(table).select("id").eq("id", value).maybe_single().execute()
    except Exception as e:
        logger.warning(f"Reference lookup on {table} failed: {e}")
        raise ValidationError(message)
    if not result or not result.data:
        raise ValidationError(message)

