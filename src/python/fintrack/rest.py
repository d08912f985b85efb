"""Hosted gateway speaking the PostgREST dialect over HTTP."""

from __future__ import annotations

import asyncio
import datetime as dt
from decimal import Decimal
import logging
from typing import Any, Sequence

import requests

from fintrack.exceptions import GatewayError
from fintrack.persistence import (
    Eq,
    Filter,
    NullOrEq,
    PersistenceBackend,
    validate_columns,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
REST_PATH = "/rest/v1"


def _format_value(value: Any) -> str:
    """Render a filter value the way PostgREST expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value)


def _to_json_value(value: Any) -> Any:
    # numeric columns accept string literals without rounding
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return value


class RestGateway(PersistenceBackend):
    """Gateway for a hosted Postgres exposed through PostgREST."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not base_url or not api_key:
            raise GatewayError("REST gateway requires a base URL and an API key")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session: requests.Session | None = None

    def connect(self) -> None:
        """Create the HTTP session with auth headers."""
        if self.session is not None:
            return
        self.session = requests.Session()
        self.session.headers.update(
            {
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session is not None:
            self.session.close()
            self.session = None

    async def select(
        self,
        table: str,
        columns: Sequence[str] = ("*",),
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        names = validate_columns(table, columns)
        params = [("select", ",".join(names))]
        params.extend(self._filter_params(table, filters))
        if order_by is not None:
            validate_columns(table, [order_by])
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        payload = await self._request("GET", table, params=params)
        return payload if isinstance(payload, list) else []

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        validate_columns(table, record.keys())
        body = {key: _to_json_value(value) for key, value in record.items()}
        payload = await self._request(
            "POST",
            table,
            json_body=body,
            headers={"Prefer": "return=representation"},
        )
        if not isinstance(payload, list) or not payload:
            raise GatewayError(f"Insert into {table} returned no row")
        return payload[0]

    async def update(
        self,
        table: str,
        filters: Sequence[Filter],
        patch: dict[str, Any],
    ) -> None:
        validate_columns(table, patch.keys())
        body = {key: _to_json_value(value) for key, value in patch.items()}
        await self._request(
            "PATCH",
            table,
            params=self._filter_params(table, filters),
            json_body=body,
        )

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        await self._request("DELETE", table, params=self._filter_params(table, filters))

    def _filter_params(self, table: str, filters: Sequence[Filter]) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for item in filters:
            validate_columns(table, [item.column])
            if isinstance(item, NullOrEq):
                params.append(
                    ("or", f"({item.column}.is.null,{item.column}.eq.{_format_value(item.value)})")
                )
            elif isinstance(item, Eq) and item.value is None:
                params.append((item.column, "is.null"))
            elif isinstance(item, Eq):
                params.append((item.column, f"eq.{_format_value(item.value)}"))
            else:
                raise TypeError(f"Unsupported filter: {item!r}")
        return params

    async def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Run the blocking HTTP call off the event loop."""
        return await asyncio.to_thread(
            self._send, method, table, params or [], json_body, headers or {}
        )

    def _send(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]],
        json_body: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> Any:
        if self.session is None:
            raise GatewayError("REST gateway session is not initialized")
        url = f"{self.base_url}{REST_PATH}/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, table, exc)
            raise GatewayError(str(exc)) from exc

        if not response.ok:
            message = self._error_message(response)
            logger.error("%s %s returned %s: %s", method, table, response.status_code, message)
            raise GatewayError(message, status=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"Invalid JSON from {table}") from exc

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return f"HTTP {response.status_code}"
