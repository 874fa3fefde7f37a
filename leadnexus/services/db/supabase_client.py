"""
Supabase REST client - async query builder over PostgREST using httpx directly.

Constructed explicitly and passed to the stores that need it; errors come
back as domain errors (see errors.translate_database_error).
"""

from typing import Any, Dict, List, Optional

import httpx

from ...errors import DatabaseError, require_setting, translate_database_error


class SupabaseTable:
    """Simple table query builder."""

    def __init__(self, client: "SupabaseClient", table_name: str):
        self.client = client
        self.table_name = table_name
        self._select_columns = "*"
        self._count: Optional[str] = None
        self._filters: List[tuple] = []
        self._order_by: Optional[str] = None
        self._order_desc = False
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._operation = "select"
        self._payload: Any = None
        self._on_conflict: Optional[str] = None

    def select(self, columns: str = "*", count: Optional[str] = None) -> "SupabaseTable":
        """Select columns; count="exact" also returns the total row count."""
        self._select_columns = columns
        self._count = count
        return self

    def eq(self, column: str, value: Any) -> "SupabaseTable":
        self._filters.append((column, f"eq.{value}"))
        return self

    def neq(self, column: str, value: Any) -> "SupabaseTable":
        self._filters.append((column, f"neq.{value}"))
        return self

    def in_(self, column: str, values: List[Any]) -> "SupabaseTable":
        """Filter where column value is in the given list."""
        values_str = ",".join(str(v) for v in values)
        self._filters.append((column, f"in.({values_str})"))
        return self

    def or_(self, *conditions: str) -> "SupabaseTable":
        """OR of raw PostgREST conditions, e.g. or_("a.eq.1", "b.eq.1")."""
        self._filters.append(("or", f"({','.join(conditions)})"))
        return self

    def order(self, column: str, desc: bool = False) -> "SupabaseTable":
        self._order_by = column
        self._order_desc = desc
        return self

    def range(self, start: int, end: int) -> "SupabaseTable":
        self._offset = start
        self._limit = end - start + 1
        return self

    def limit(self, count: int) -> "SupabaseTable":
        self._limit = count
        return self

    def insert(self, data: Any) -> "SupabaseTable":
        self._operation = "insert"
        self._payload = data
        return self

    def upsert(self, data: Any, on_conflict: Optional[str] = None) -> "SupabaseTable":
        self._operation = "upsert"
        self._payload = data
        self._on_conflict = on_conflict
        return self

    def update(self, data: Dict[str, Any]) -> "SupabaseTable":
        self._operation = "update"
        self._payload = data
        return self

    def delete(self) -> "SupabaseTable":
        self._operation = "delete"
        return self

    def build_params(self) -> List[tuple]:
        params: List[tuple] = []
        if self._operation == "select":
            params.append(("select", self._select_columns))
        params.extend(self._filters)

        if self._operation == "select":
            if self._order_by:
                direction = ".desc" if self._order_desc else ".asc"
                params.append(("order", f"{self._order_by}{direction}"))
            if self._limit is not None:
                params.append(("limit", str(self._limit)))
            if self._offset:
                params.append(("offset", str(self._offset)))

        if self._operation == "upsert" and self._on_conflict:
            params.append(("on_conflict", self._on_conflict))
        return params

    async def execute(self) -> "SupabaseResponse":
        url = f"{self.client.rest_url}/{self.table_name}"
        params = self.build_params()

        if self._operation == "insert":
            response = await self.client.request("POST", url, params=params, json=self._payload)
        elif self._operation == "upsert":
            headers = {"Prefer": "return=representation,resolution=merge-duplicates"}
            response = await self.client.request(
                "POST", url, params=params, json=self._payload, extra_headers=headers
            )
        elif self._operation == "update":
            response = await self.client.request("PATCH", url, params=params, json=self._payload)
        elif self._operation == "delete":
            response = await self.client.request("DELETE", url, params=params)
        else:
            headers = {"Prefer": f"count={self._count}"} if self._count else None
            response = await self.client.request("GET", url, params=params, extra_headers=headers)

        return SupabaseResponse(response)


class SupabaseResponse:
    """Response wrapper."""

    def __init__(self, response: httpx.Response):
        self.status_code = response.status_code
        self.data: List[Dict[str, Any]] = []
        if response.content:
            body = response.json()
            if isinstance(body, dict):
                body = [body]
            self.data = body if isinstance(body, list) else [{"value": body}]
        self.count = _parse_content_range(response.headers.get("content-range"))


def _parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a PostgREST Content-Range header ("0-9/25" or "*/0")."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class SupabaseClient:
    """Async Supabase REST client."""

    def __init__(
        self,
        url: Optional[str],
        key: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        url = require_setting(url, "SUPABASE_URL", "Database")
        key = require_setting(key, "SUPABASE_KEY", "Database")
        self.url = url.rstrip("/")
        self.rest_url = f"{self.url}/rest/v1"
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[List[tuple]] = None,
        json: Any = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = {**self.headers}
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = await self._client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TransportError as e:
            print(f"[Supabase Error] {method} {url} - {e}")
            raise DatabaseError("Database is unreachable") from e

        if response.status_code >= 400:
            print(f"[Supabase Error] {method} {url}")
            print(f"[Supabase Error] Status: {response.status_code}")
            print(f"[Supabase Error] Response: {response.text[:500]}")
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
            raise translate_database_error(payload, response.status_code)
        return response

    def table(self, table_name: str) -> SupabaseTable:
        return SupabaseTable(self, table_name)

    def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> "SupabaseRPC":
        """Call a Postgres function via RPC."""
        return SupabaseRPC(self, function_name, params or {})

    async def aclose(self) -> None:
        await self._client.aclose()


class SupabaseRPC:
    """RPC call builder for Postgres functions."""

    def __init__(self, client: SupabaseClient, function_name: str, params: Dict[str, Any]):
        self.client = client
        self.function_name = function_name
        self.params = params

    async def execute(self) -> SupabaseResponse:
        url = f"{self.client.rest_url}/rpc/{self.function_name}"
        response = await self.client.request("POST", url, json=self.params)
        return SupabaseResponse(response)
