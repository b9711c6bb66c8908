"""Block Kit message builders for record notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

import structlog

from nest_notifier.actions import (
    PRIMARY_ACTION_ID,
    SECONDARY_ACTION_ID,
    ActionContext,
    encode_action_context,
)

from .models import ButtonConfig, MessageConfig, SourceRecord
from .templating import format_field_value, render_template

ACTIONS_BLOCK_ID = "notifier_actions"
ACKNOWLEDGEMENT_BLOCK_ID = "notifier_acknowledgement"

_BUTTON_STYLES = {
    PRIMARY_ACTION_ID: "primary",
    SECONDARY_ACTION_ID: "danger",
}


@dataclass(frozen=True)
class RenderedMessage:
    """Fallback text plus the Block Kit blocks posted to Slack."""

    text: str
    blocks: List[Dict[str, Any]] = field(default_factory=list)

    def as_payload(self) -> Dict[str, Any]:
        return {"text": self.text, "blocks": [dict(block) for block in self.blocks]}


def _text_block(text: str, *, block_id: str | None = None) -> Dict[str, Any]:
    block: Dict[str, Any] = {
        "type": "section",
        "text": {"type": "mrkdwn", "text": text},
    }
    if block_id:
        block["block_id"] = block_id
    return block


def _button_element(
    control_id: str,
    button: ButtonConfig,
    record: SourceRecord,
    config: MessageConfig,
) -> Dict[str, Any]:
    return {
        "type": "button",
        "action_id": control_id,
        "style": _BUTTON_STYLES[control_id],
        "text": {"type": "plain_text", "text": button.label, "emoji": True},
        "value": encode_action_context(
            record.id,
            button,
            base_id=config.base_id,
            table_id=config.table_id,
        ),
    }


def build_action_block(record: SourceRecord, config: MessageConfig) -> Dict[str, Any] | None:
    """Return the trailing actions block, or ``None`` when no button is configured."""

    log = structlog.get_logger().bind(record_id=record.id)
    elements: List[Dict[str, Any]] = []
    for control_id, button in (
        (PRIMARY_ACTION_ID, config.primary_button),
        (SECONDARY_ACTION_ID, config.secondary_button),
    ):
        if button is None or not button.label.strip():
            continue
        if button.is_partial:
            log.warning(
                "button_partially_configured",
                control_id=control_id,
                field=button.field,
                has_value=button.value is not None,
            )
        elements.append(_button_element(control_id, button, record, config))

    if not elements:
        return None

    return {
        "type": "actions",
        "block_id": ACTIONS_BLOCK_ID,
        "elements": elements,
    }


def render_notification(record: SourceRecord, config: MessageConfig) -> RenderedMessage:
    """Build the Slack message for *record* from the caller's *config*."""

    text = render_template(config.message_template, record.fields)
    blocks: List[Dict[str, Any]] = [_text_block(text)]

    action_block = build_action_block(record, config)
    if action_block is not None:
        blocks.append(action_block)

    return RenderedMessage(text=text, blocks=blocks)


def describe_outcome(context: ActionContext) -> str:
    """Return what the click did: the text written, or the button label.

    Only a written string reads well as an outcome ("Approved by Bo"); for
    checkbox, number and list values the label is shown instead.
    """

    button = context.button
    if button.applies_update and isinstance(button.value, str) and button.value.strip():
        return format_field_value(button.value)
    return button.label


def build_acknowledged_message(
    original_message: Mapping[str, Any],
    *,
    outcome: str,
    user_name: str,
) -> RenderedMessage:
    """Replace the buttons of *original_message* with a static acknowledgement.

    Every ``actions`` block is swapped for a section reading
    ``"{outcome} by {user_name}"``; all other blocks and the fallback text are
    kept. Reapplying to an already acknowledged message yields the same
    result.
    """

    acknowledgement = _text_block(f"{outcome} by {user_name}", block_id=ACKNOWLEDGEMENT_BLOCK_ID)
    blocks: List[Dict[str, Any]] = []
    for block in original_message.get("blocks") or []:
        if block.get("type") == "actions" or block.get("block_id") == ACKNOWLEDGEMENT_BLOCK_ID:
            blocks.append(acknowledgement)
        else:
            blocks.append(dict(block))

    if acknowledgement not in blocks:
        blocks.append(acknowledgement)

    return RenderedMessage(text=original_message.get("text") or "", blocks=blocks)
