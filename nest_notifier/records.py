"""Apply a clicked button's field update to the source Airtable record."""

from __future__ import annotations

import httpx
import structlog

from nest_notifier.actions import ActionContext
from nest_notifier.airtable_client import AirtableClient
from nest_notifier.models import DeliveryResult

OPERATION = "update_record"


def apply_button_update(
    airtable: AirtableClient,
    context: ActionContext,
    *,
    default_base_id: str | None = None,
    default_table_id: str | None = None,
) -> DeliveryResult | None:
    """Patch exactly one field of the record named in *context*.

    Returns ``None`` for acknowledge-only buttons (no field or no value), in
    which case no request is made. Failures are logged and reported in the
    returned result rather than raised, so the caller can still rewrite the
    Slack message.
    """

    button = context.button
    log = structlog.get_logger().bind(record_id=context.record_id, operation=OPERATION)

    if not button.applies_update:
        if button.is_partial:
            log.warning("record_update_skipped", reason="partial_button_config", field=button.field)
        return None

    base_id = context.base_id or default_base_id
    table_id = context.table_id or default_table_id
    target = f"{base_id}/{table_id}/{context.record_id}"
    if not base_id or not table_id:
        log.error("record_update_failed", error="missing_base_or_table")
        return DeliveryResult.failure(OPERATION, target, "missing base or table id")

    log = log.bind(base_id=base_id, table_id=table_id, field=button.field)
    try:
        airtable.update_record(
            base_id=base_id,
            table_id=table_id,
            record_id=context.record_id,
            fields={button.field: button.value},
        )
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        log.error("record_update_failed", status_code=status_code, error=exc.response.text[:200])
        return DeliveryResult.failure(OPERATION, target, f"HTTP {status_code}")
    except httpx.HTTPError as exc:
        log.error("record_update_failed", error=str(exc))
        return DeliveryResult.failure(OPERATION, target, str(exc))

    log.info("record_updated")
    return DeliveryResult.success(OPERATION, target)
