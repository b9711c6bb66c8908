"""Utilities for encoding button context and decoding Slack interaction payloads.

Nothing is stored between posting a message and a user clicking one of its
buttons, so each button's ``value`` carries everything needed to act on the
click: the record id, the Airtable base/table and the button configuration.
The value is a small versioned JSON envelope; bump ``CONTEXT_VERSION`` when
its shape changes and keep decoding older versions for messages already
sitting in Slack.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from nest_notifier.models import ActionDecodeError
from nest_notifier.notifications.models import ButtonConfig

CONTEXT_VERSION = 1
BLOCK_ACTIONS = "block_actions"

PRIMARY_ACTION_ID = "primary"
SECONDARY_ACTION_ID = "secondary"
LEGACY_APPROVE_ACTION_ID = "approve"
LEGACY_IGNORE_ACTION_ID = "ignore"
KNOWN_ACTION_IDS = frozenset(
    {PRIMARY_ACTION_ID, SECONDARY_ACTION_ID, LEGACY_APPROVE_ACTION_ID, LEGACY_IGNORE_ACTION_ID}
)


@dataclass(frozen=True)
class ActionContext:
    """Decoded state carried by a button."""

    record_id: str
    button: ButtonConfig
    base_id: str | None = None
    table_id: str | None = None
    version: int = CONTEXT_VERSION


@dataclass(frozen=True)
class InteractionEvent:
    """A single button click, as decoded from a Slack interaction payload."""

    control_id: str
    context: ActionContext
    acting_user_name: str
    origin_channel_id: str
    origin_message_ts: str
    origin_message: Dict[str, Any]


def encode_action_context(
    record_id: str,
    button: ButtonConfig,
    *,
    base_id: str | None = None,
    table_id: str | None = None,
) -> str:
    """Serialise the button context into a compact, stable JSON string."""

    envelope: Dict[str, Any] = {
        "v": CONTEXT_VERSION,
        "record_id": record_id,
        "button": button.model_dump(exclude_none=True),
    }
    if base_id is not None:
        envelope["base_id"] = base_id
    if table_id is not None:
        envelope["table_id"] = table_id
    return json.dumps(envelope, sort_keys=True, separators=(",", ":"))


def _parse_legacy_context(payload: Mapping[str, Any], action_id: str) -> ActionContext:
    # Unversioned values posted before the envelope existed.
    record_id = payload.get("recordId")
    status_field = payload.get("statusFieldName")
    if not isinstance(record_id, str) or not record_id:
        raise ActionDecodeError("Invalid action payload.")

    if action_id == LEGACY_APPROVE_ACTION_ID and isinstance(status_field, str) and status_field:
        button = ButtonConfig(label="Approved", field=status_field, value="Approved")
    else:
        button = ButtonConfig(label="Ignored")
    return ActionContext(record_id=record_id, button=button, version=0)


def parse_action_context(raw_value: str, *, action_id: str = PRIMARY_ACTION_ID) -> ActionContext:
    """Parse a button value back into an :class:`ActionContext`."""

    try:
        payload = json.loads(raw_value)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ActionDecodeError("Invalid action payload.") from exc

    if not isinstance(payload, dict):
        raise ActionDecodeError("Invalid action payload.")

    if "v" not in payload and "recordId" in payload:
        return _parse_legacy_context(payload, action_id)

    if payload.get("v") != CONTEXT_VERSION:
        raise ActionDecodeError(f"Unsupported action payload version: {payload.get('v')!r}")

    record_id = payload.get("record_id")
    if not isinstance(record_id, str) or not record_id:
        raise ActionDecodeError("Invalid action payload.")

    base_id = payload.get("base_id")
    table_id = payload.get("table_id")
    if base_id is not None and not isinstance(base_id, str):
        raise ActionDecodeError("Invalid action payload.")
    if table_id is not None and not isinstance(table_id, str):
        raise ActionDecodeError("Invalid action payload.")

    try:
        button = ButtonConfig.model_validate(payload.get("button"))
    except ValidationError as exc:
        raise ActionDecodeError("Invalid button configuration in action payload.") from exc

    return ActionContext(record_id=record_id, button=button, base_id=base_id, table_id=table_id)


def parse_interaction_payload(raw_payload: str | None) -> Dict[str, Any]:
    """Decode the JSON document Slack sends in the ``payload`` form field."""

    if not raw_payload:
        raise ActionDecodeError("Interaction payload missing.")
    try:
        payload = json.loads(raw_payload)
    except json.JSONDecodeError as exc:
        raise ActionDecodeError("Interaction payload is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise ActionDecodeError("Interaction payload must be a JSON object.")
    return payload


def _acting_user_name(user: Mapping[str, Any]) -> str:
    for key in ("name", "username", "id"):
        value = user.get(key)
        if isinstance(value, str) and value:
            return value
    return "unknown"


def decode_interaction(payload: Mapping[str, Any]) -> InteractionEvent | None:
    """Turn a Slack interaction payload into an :class:`InteractionEvent`.

    Returns ``None`` when there is nothing to do: an interaction kind other
    than ``block_actions``, no actions, or a control this service did not
    render. Only the first action is considered. Raises
    :class:`ActionDecodeError` when the payload claims to be one of our
    clicks but cannot be decoded.
    """

    if payload.get("type") != BLOCK_ACTIONS:
        return None

    actions = payload.get("actions") or []
    if not isinstance(actions, list) or not actions or not isinstance(actions[0], dict):
        return None

    action = actions[0]
    action_id = action.get("action_id")
    if action_id not in KNOWN_ACTION_IDS:
        return None

    context = parse_action_context(action.get("value"), action_id=action_id)

    channel = payload.get("channel") or payload.get("container") or {}
    message = payload.get("message")
    user = payload.get("user") or {}
    if not isinstance(channel, dict) or not isinstance(message, dict) or not isinstance(user, dict):
        raise ActionDecodeError("Interaction payload has a malformed channel, message or user.")

    channel_id = channel.get("id") or channel.get("channel_id")
    message_ts = message.get("ts")
    if not isinstance(channel_id, str) or not channel_id or not isinstance(message_ts, str) or not message_ts:
        raise ActionDecodeError("Interaction payload does not reference a message.")

    return InteractionEvent(
        control_id=action_id,
        context=context,
        acting_user_name=_acting_user_name(user),
        origin_channel_id=channel_id,
        origin_message_ts=message_ts,
        origin_message=message,
    )
