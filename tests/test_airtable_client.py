"""Unit tests for the Airtable client wrapper."""

import json
from pathlib import Path
import sys

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nest_notifier.airtable_client import AirtableClient  # noqa: E402


def test_requires_api_key_or_client():
    with pytest.raises(ValueError):
        AirtableClient()


def test_update_record_sends_patch_with_bearer_token():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "rec1", "fields": {"Status": "Approved"}})

    client = AirtableClient(api_key="key", client=httpx.Client(transport=httpx.MockTransport(handler)))

    response = client.update_record(
        base_id="appBase",
        table_id="Applications Table",
        record_id="rec1",
        fields={"Status": "Approved"},
    )

    assert response["fields"] == {"Status": "Approved"}
    request = seen[0]
    assert request.method == "PATCH"
    assert request.url.raw_path == b"/v0/appBase/Applications%20Table/rec1"
    assert request.headers["Authorization"] == "Bearer key"
    assert json.loads(request.content) == {"fields": {"Status": "Approved"}}


def test_update_record_raises_on_error_status():
    client = AirtableClient(
        api_key="key",
        client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404))),
    )

    with pytest.raises(httpx.HTTPStatusError):
        client.update_record(base_id="app", table_id="tbl", record_id="rec", fields={"A": 1})


def test_empty_success_body_returns_empty_mapping():
    client = AirtableClient(
        api_key="key",
        client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200))),
    )

    assert client.update_record(base_id="app", table_id="tbl", record_id="rec", fields={"A": 1}) == {}
