"""Thin wrapper around the Airtable REST API."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

import httpx

from nest_notifier.config import DEFAULT_AIRTABLE_API_URL

DEFAULT_TIMEOUT = 10.0


class AirtableClient:
    """Patch Airtable records over HTTP."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_url: str = DEFAULT_AIRTABLE_API_URL,
        client: httpx.Client | None = None,
    ) -> None:
        if client is None and api_key is None:
            raise ValueError("Either an instantiated client or an API key must be provided.")

        self._api_key = api_key
        self._api_url = api_url.rstrip("/")
        self._client = client or httpx.Client(timeout=DEFAULT_TIMEOUT)

    @property
    def client(self) -> httpx.Client:
        """Expose the underlying httpx client for advanced use cases."""

        return self._client

    def record_url(self, base_id: str, table_id: str, record_id: str) -> str:
        parts = (quote(part, safe="") for part in (base_id, table_id, record_id))
        return "/".join([self._api_url, *parts])

    def update_record(
        self,
        *,
        base_id: str,
        table_id: str,
        record_id: str,
        fields: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        """PATCH the given *fields* onto a record; raises on non-2xx responses."""

        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
        response = self._client.patch(
            self.record_url(base_id, table_id, record_id),
            json={"fields": dict(fields)},
            headers=headers,
        )
        response.raise_for_status()
        return response.json() if response.content else {}
