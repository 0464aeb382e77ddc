from supabase import Client
from typing import Any, Dict, List
from app.core.errors import QueryFailed, store_error_message


class CatalogService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _active(self, table: str, columns: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table(table)\
                .select(columns)\
                .eq("is_active", True)\
                .order("name")\
                .execute()
        except Exception as e:
            raise QueryFailed(store_error_message(e))
        return result.data or []

    def departments(self) -> List[Dict[str, Any]]:
        """Active departments ordered by name"""
        return self._active("departments", "id, name, short_name, is_active")

    def roles(self) -> List[Dict[str, Any]]:
        """Active roles ordered by name"""
        return self._active("roles", "id, name, description, is_active")
