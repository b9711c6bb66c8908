"""Tests for applying button updates to Airtable records."""

import json
from pathlib import Path
import sys

import httpx
from structlog.testing import capture_logs

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nest_notifier.actions import ActionContext  # noqa: E402
from nest_notifier.airtable_client import AirtableClient  # noqa: E402
from nest_notifier.notifications.models import ButtonConfig  # noqa: E402
from nest_notifier.records import apply_button_update  # noqa: E402


class RecordingTransport:
    def __init__(self, status_code: int = 200, error: Exception | None = None):
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"id": "rec1", "fields": {}})


def _airtable(transport: RecordingTransport) -> AirtableClient:
    return AirtableClient(
        api_key="key",
        api_url="https://airtable.test/v0",
        client=httpx.Client(transport=httpx.MockTransport(transport)),
    )


def _context(button: ButtonConfig, **kwargs) -> ActionContext:
    kwargs.setdefault("base_id", "appBase")
    kwargs.setdefault("table_id", "tblTable")
    return ActionContext(record_id="rec1", button=button, **kwargs)


def test_acknowledge_only_button_never_patches():
    transport = RecordingTransport()
    airtable = _airtable(transport)
    context = _context(ButtonConfig(label="Ignore"))

    for _ in range(3):
        assert apply_button_update(airtable, context) is None

    assert transport.requests == []


def test_partial_button_is_treated_as_acknowledge_only():
    transport = RecordingTransport()

    with capture_logs() as logs:
        result = apply_button_update(_airtable(transport), _context(ButtonConfig(label="Flag", field="Status")))

    assert result is None
    assert transport.requests == []
    assert any(entry.get("reason") == "partial_button_config" for entry in logs)


def test_update_button_patches_exactly_one_field():
    transport = RecordingTransport()
    context = _context(ButtonConfig(label="Approve", field="Status", value="Approved"))

    result = apply_button_update(_airtable(transport), context)

    assert result is not None and result.ok
    assert len(transport.requests) == 1
    request = transport.requests[0]
    assert request.method == "PATCH"
    assert str(request.url) == "https://airtable.test/v0/appBase/tblTable/rec1"
    assert request.headers["Authorization"] == "Bearer key"
    assert json.loads(request.content) == {"fields": {"Status": "Approved"}}


def test_settings_supply_missing_base_and_table():
    transport = RecordingTransport()
    context = _context(ButtonConfig(label="Approve", field="Status", value="Approved"), base_id=None, table_id=None)

    result = apply_button_update(
        _airtable(transport),
        context,
        default_base_id="appDefault",
        default_table_id="tblDefault",
    )

    assert result.ok
    assert str(transport.requests[0].url) == "https://airtable.test/v0/appDefault/tblDefault/rec1"


def test_missing_record_identity_fails_without_request():
    transport = RecordingTransport()
    context = _context(ButtonConfig(label="Approve", field="Status", value="Approved"), base_id=None, table_id=None)

    result = apply_button_update(_airtable(transport), context)

    assert result is not None and not result.ok
    assert result.error.operation == "update_record"
    assert transport.requests == []


def test_http_error_is_reported_not_raised():
    transport = RecordingTransport(status_code=422)
    context = _context(ButtonConfig(label="Approve", field="Status", value="Approved"))

    with capture_logs() as logs:
        result = apply_button_update(_airtable(transport), context)

    assert not result.ok
    assert result.error.reason == "HTTP 422"
    failures = [entry for entry in logs if entry.get("event") == "record_update_failed"]
    assert failures and failures[0]["status_code"] == 422


def test_transport_error_is_reported_not_raised():
    transport = RecordingTransport(error=httpx.ConnectError("connection refused"))
    context = _context(ButtonConfig(label="Approve", field="Status", value="Approved"))

    result = apply_button_update(_airtable(transport), context)

    assert not result.ok
    assert "connection refused" in result.error.reason
