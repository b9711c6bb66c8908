"""Placeholder substitution for message templates.

Templates reference record fields as ``{FieldName}``. Each token is replaced
with the stringified field value; tokens naming a field that is absent (or
``null``) are left exactly as written so an operator can spot them in Slack.
Substitution is a single pass, so braces inside field values are never
themselves expanded.
"""

from __future__ import annotations

import re
from typing import Mapping

from .models import FieldValue

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}\n]+)\}")
LIST_SEPARATOR = ", "


def format_field_value(value: FieldValue) -> str:
    """Return the display form of a field value.

    - strings are returned unchanged
    - booleans render as ``true`` / ``false``
    - integral numbers render without a decimal point
    - lists render each element by the same rules, joined with ", "
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return LIST_SEPARATOR.join(format_field_value(item) for item in value)
    return str(value)


def render_template(template: str, fields: Mapping[str, FieldValue]) -> str:
    """Substitute every ``{FieldName}`` token present in *fields*."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in fields or fields[name] is None:
            return match.group(0)
        return format_field_value(fields[name])

    return PLACEHOLDER_PATTERN.sub(_replace, template)
