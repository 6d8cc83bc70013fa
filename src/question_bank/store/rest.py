"""PostgREST (Supabase REST) content store over httpx."""

import json
import logging
import re

import httpx

from .base import Filters, StoreError, is_membership

logger = logging.getLogger(__name__)

_RESERVED = re.compile(r'[,()"\s]')


def format_filter(value) -> str:
    """Encode a filter value as a PostgREST operator expression."""
    if is_membership(value):
        return "in.(" + ",".join(_quote(v) for v in value) + ")"
    if value is None:
        return "is.null"
    return f"eq.{_scalar(value)}"


def _scalar(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value) -> str:
    text = _scalar(value)
    if _RESERVED.search(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


class RestStore:
    """Content store backed by a PostgREST endpoint (e.g. Supabase)."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize REST store.

        Args:
            url: Project URL; ``/rest/v1`` is appended
            api_key: Anon or service key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def query(self, table: str, filters: Filters | None = None) -> list[dict]:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = format_filter(value)

        try:
            response = self.client.get(f"{self.base_url}/{table}", params=params)
        except httpx.RequestError as e:
            raise StoreError(f"Query on {table} failed: {e}") from e

        self._raise_for_status(response, f"Query on {table}")
        return self._rows(response, f"Query on {table}")

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        batch = [rows] if isinstance(rows, dict) else list(rows)
        try:
            response = self.client.post(
                f"{self.base_url}/{table}",
                json=batch,
                headers={"Prefer": "return=representation"},
            )
        except httpx.RequestError as e:
            raise StoreError(f"Insert into {table} failed: {e}") from e

        self._raise_for_status(response, f"Insert into {table}")
        return self._rows(response, f"Insert into {table}")

    @staticmethod
    def _rows(response: httpx.Response, action: str) -> list[dict]:
        try:
            rows = response.json()
        except json.JSONDecodeError as e:
            raise StoreError(f"{action} returned a non-JSON body: {response.text[:200]}") from e
        if not isinstance(rows, list):
            raise StoreError(f"{action} returned {type(rows).__name__}, expected a row list")
        return rows

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        try:
            detail = response.json().get("message") or response.text
        except (json.JSONDecodeError, AttributeError):
            detail = response.text
        raise StoreError(f"{action} failed ({response.status_code}): {detail}")

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
