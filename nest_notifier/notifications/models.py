"""Pydantic models describing inbound notification payloads."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from nest_notifier.models import PayloadValidationError

Scalar = Union[str, bool, int, float]
FieldValue = Union[Scalar, List[Scalar], None]

LEGACY_APPROVED_VALUE = "Approved"
LEGACY_IGNORE_LABEL = "Ignore"


def _is_field_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    return isinstance(value, list) and all(isinstance(item, (str, bool, int, float)) for item in value)


def _coerce_cell(value: Any) -> FieldValue:
    """Reduce an Airtable cell to a template-friendly value.

    Collaborator, linked-record and attachment objects collapse to their
    ``name`` (or ``filename``); cells with nothing readable become ``None``
    so their placeholder is left as written.
    """

    if _is_field_value(value):
        return value
    if isinstance(value, dict):
        for key in ("name", "filename"):
            if isinstance(value.get(key), str):
                return value[key]
        return None
    if isinstance(value, list):
        items = [_coerce_cell(item) for item in value]
        if all(isinstance(item, (str, bool, int, float)) for item in items):
            return items
    return None


class SourceRecord(BaseModel):
    """An Airtable record as forwarded by the automation script."""

    model_config = ConfigDict(frozen=True)

    id: str
    fields: Dict[str, FieldValue] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("record id must be a non-empty string")
        return trimmed

    @field_validator("fields", mode="before")
    @classmethod
    def coerce_cells(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {key: _coerce_cell(cell) for key, cell in value.items()}


class ButtonConfig(BaseModel):
    """A button label plus the optional field/value written on click."""

    model_config = ConfigDict(frozen=True)

    label: str
    field: str | None = None
    value: FieldValue = None

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, value: Any) -> Any:
        if not _is_field_value(value):
            raise ValueError("button value must be a scalar or a list of scalars")
        return value

    @field_validator("field")
    @classmethod
    def validate_field(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    @property
    def applies_update(self) -> bool:
        """True only when both the field and the value are configured."""

        return self.field is not None and self.value is not None

    @property
    def is_partial(self) -> bool:
        return (self.field is None) != (self.value is None)


class MessageConfig(BaseModel):
    """Per-notification message settings supplied by the caller."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_template: str = Field(..., validation_alias=AliasChoices("messageTemplate", "message_template"))
    channel_ids: List[str] = Field(
        ..., validation_alias=AliasChoices("channelIds", "slackChannelIds", "channel_ids")
    )
    primary_button: ButtonConfig | None = Field(
        None, validation_alias=AliasChoices("primaryButton", "primary_button")
    )
    secondary_button: ButtonConfig | None = Field(
        None, validation_alias=AliasChoices("secondaryButton", "secondary_button")
    )
    base_id: str | None = Field(None, validation_alias=AliasChoices("baseId", "base_id"))
    table_id: str | None = Field(None, validation_alias=AliasChoices("tableId", "table_id"))

    @model_validator(mode="before")
    @classmethod
    def expand_legacy_buttons(cls, value: Any) -> Any:
        """Translate the older ``approveButtonText``/``statusFieldName`` config.

        Those automations get an approve button writing ``"Approved"`` to the
        status field and an acknowledge-only ``Ignore`` button. Explicit
        ``primaryButton``/``secondaryButton`` entries take precedence.
        """

        if not isinstance(value, dict):
            return value
        label = value.get("approveButtonText")
        status_field = value.get("statusFieldName")
        if label is None and status_field is None:
            return value

        expanded = dict(value)
        if "primaryButton" not in value and "primary_button" not in value:
            expanded["primaryButton"] = {
                "label": label or LEGACY_APPROVED_VALUE,
                "field": status_field,
                "value": LEGACY_APPROVED_VALUE if status_field else None,
            }
        if "secondaryButton" not in value and "secondary_button" not in value:
            expanded["secondaryButton"] = {"label": LEGACY_IGNORE_LABEL}
        return expanded

    @field_validator("primary_button", "secondary_button", mode="before")
    @classmethod
    def drop_disabled_buttons(cls, value: Any) -> Any:
        """An empty object or a button without a label disables the button."""

        if isinstance(value, dict) and not value.get("label"):
            return None
        return value

    @field_validator("channel_ids")
    @classmethod
    def validate_channel_ids(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for channel_id in value:
            channel = (channel_id or "").strip()
            if channel and channel not in cleaned:
                cleaned.append(channel)
        if not cleaned:
            raise ValueError("at least one channel id is required")
        return cleaned

    @field_validator("base_id", "table_id")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class NotificationRequest(BaseModel):
    """The body posted by the Airtable automation."""

    record: SourceRecord
    config: MessageConfig

    @model_validator(mode="before")
    @classmethod
    def ensure_object(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            raise ValueError("notification body must be a JSON object")
        return value


def _error_location(error: Dict[str, Any]) -> str:
    return ".".join(str(part) for part in error.get("loc", ())) or "body"


def parse_notification_request(raw_body: str | bytes) -> NotificationRequest:
    """Parse and validate the automation's JSON body.

    Raises :class:`PayloadValidationError` for unparsable JSON or a body that
    does not describe a record and a message config.
    """

    try:
        data = json.loads(raw_body)
    except (TypeError, ValueError) as exc:
        raise PayloadValidationError("Invalid JSON") from exc

    try:
        return NotificationRequest.model_validate(data)
    except ValidationError as exc:
        locations = sorted({_error_location(error) for error in exc.errors()})
        raise PayloadValidationError(f"Invalid payload: {', '.join(locations)}") from exc
