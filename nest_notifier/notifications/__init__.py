"""Notification payload models, templating, message builders and delivery.

Only the payload models and templating helpers are re-exported here;
``messages`` and ``delivery`` depend on :mod:`nest_notifier.actions`, which in
turn depends on these models.
"""

from .models import (
    ButtonConfig,
    FieldValue,
    MessageConfig,
    NotificationRequest,
    SourceRecord,
    parse_notification_request,
)
from .templating import format_field_value, render_template

__all__ = [
    "ButtonConfig",
    "FieldValue",
    "MessageConfig",
    "NotificationRequest",
    "SourceRecord",
    "parse_notification_request",
    "format_field_value",
    "render_template",
]
