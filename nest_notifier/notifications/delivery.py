"""Utilities for posting notifications to Slack channels and editing them later."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

from slack_sdk.errors import SlackApiError
import structlog

from nest_notifier.background import gather_results, run_async
from nest_notifier.models import DeliveryReceipt, DeliveryResult, FanoutReport
from nest_notifier.slack_client import SlackClient

from .messages import RenderedMessage

METADATA_EVENT_TYPE = "notifier_delivery"


def _slack_error(exc: SlackApiError) -> tuple[str, int | None]:
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None) if response is not None else None
    error_code = response.get("error") if response is not None else None
    return error_code or str(exc), status_code


def build_delivery_metadata(receipts: Sequence[DeliveryReceipt]) -> Dict[str, Any]:
    """Return Slack message metadata listing every posted copy of a message."""

    return {
        "event_type": METADATA_EVENT_TYPE,
        "event_payload": {"receipts": [receipt.as_dict() for receipt in receipts]},
    }


def receipts_from_metadata(message: Mapping[str, Any]) -> List[DeliveryReceipt]:
    """Read sibling receipts back from a message's metadata, if it carries any."""

    metadata = message.get("metadata") or {}
    if not isinstance(metadata, dict) or metadata.get("event_type") != METADATA_EVENT_TYPE:
        return []
    raw_receipts = (metadata.get("event_payload") or {}).get("receipts") or []

    receipts: List[DeliveryReceipt] = []
    for raw in raw_receipts:
        if not isinstance(raw, dict):
            continue
        try:
            receipt = DeliveryReceipt.from_dict(raw)
        except ValueError:
            structlog.get_logger().warning("delivery_metadata_invalid", receipt=raw)
            continue
        if receipt not in receipts:
            receipts.append(receipt)
    return receipts


def _post_to_channel(slack_client: SlackClient, channel_id: str, message: RenderedMessage) -> DeliveryResult:
    log = structlog.get_logger().bind(channel=channel_id, operation="post_message")
    try:
        receipt = slack_client.post_message(channel_id, message)
    except SlackApiError as exc:
        error_code, status_code = _slack_error(exc)
        log.error("channel_post_failed", error=error_code, status_code=status_code)
        return DeliveryResult.failure("post_message", channel_id, error_code)
    except Exception as exc:
        log.exception("channel_post_failed", error=str(exc))
        return DeliveryResult.failure("post_message", channel_id, str(exc))

    if receipt is None:
        log.warning("channel_post_missing_ts")
        return DeliveryResult.failure("post_message", channel_id, "response missing message timestamp")

    log.info("channel_post_succeeded", ts=receipt.message_ts)
    return DeliveryResult.success("post_message", channel_id, receipt)


def _update_message(
    slack_client: SlackClient,
    receipt: DeliveryReceipt,
    message: RenderedMessage,
    *,
    operation: str,
    metadata: Mapping[str, Any] | None = None,
) -> DeliveryResult:
    log = structlog.get_logger().bind(channel=receipt.channel_id, ts=receipt.message_ts, operation=operation)
    try:
        slack_client.update_message(receipt, message, metadata=metadata)
    except SlackApiError as exc:
        error_code, status_code = _slack_error(exc)
        log.error("message_update_failed", error=error_code, status_code=status_code)
        return DeliveryResult.failure(operation, receipt.channel_id, error_code)
    except Exception as exc:
        log.exception("message_update_failed", error=str(exc))
        return DeliveryResult.failure(operation, receipt.channel_id, str(exc))

    log.info("message_updated")
    return DeliveryResult.success(operation, receipt.channel_id, receipt)


def publish_notification(
    slack_client: SlackClient,
    message: RenderedMessage,
    channel_ids: Iterable[str],
    *,
    sync_all_channels: bool = False,
) -> FanoutReport:
    """Post *message* to every channel concurrently and collect the results.

    A failing channel never prevents the others from being attempted. With
    *sync_all_channels*, once every post has finished each posted copy is
    updated with metadata listing all copies, so a click on any one of them
    can edit the rest.
    """

    channels = list(channel_ids)
    futures = [run_async(_post_to_channel, slack_client, channel_id, message) for channel_id in channels]
    report = FanoutReport(results=gather_results(futures))

    log = structlog.get_logger().bind(channels=channels)
    receipts = report.receipts
    if sync_all_channels and len(receipts) > 1:
        metadata = build_delivery_metadata(receipts)
        futures = [
            run_async(
                _update_message,
                slack_client,
                receipt,
                message,
                operation="attach_metadata",
                metadata=metadata,
            )
            for receipt in receipts
        ]
        report.results.extend(gather_results(futures))

    log.info(
        "notification_fanout_completed",
        delivered=len(receipts),
        failed=len(report.failures),
    )
    return report


def resolve_rewrite_targets(
    origin: DeliveryReceipt,
    original_message: Mapping[str, Any],
) -> List[DeliveryReceipt]:
    """Return every copy of the message to edit, starting with the clicked one."""

    targets = [origin]
    for receipt in receipts_from_metadata(original_message):
        if receipt not in targets:
            targets.append(receipt)
    return targets


def rewrite_messages(
    slack_client: SlackClient,
    message: RenderedMessage,
    targets: Sequence[DeliveryReceipt],
    *,
    metadata: Mapping[str, Any] | None = None,
) -> List[DeliveryResult]:
    """Replace the content of each target message; failures are reported, not raised."""

    futures = [
        run_async(
            _update_message,
            slack_client,
            receipt,
            message,
            operation="update_message",
            metadata=metadata,
        )
        for receipt in targets
    ]
    return gather_results(futures)
