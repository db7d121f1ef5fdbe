# apps/automation/field_mapping.py

"""
Maps a detected form field to the sender value it should receive.
"""

import re
from enum import Enum

from apps.crawler.classifier import FieldDescriptor


class FieldRole(str, Enum):
    EMAIL = "email"
    NAME = "name"
    SUBJECT = "subject"
    PHONE = "phone"
    MESSAGE = "message"
    WEBSITE = "website"
    UNKNOWN = "unknown"


TEL_RE = re.compile(r"\btel\b")
NAME_EXCLUSIONS = ("user", "company", "business", "organization", "organisation", "username")


def field_role(field: FieldDescriptor) -> FieldRole:
    """Best guess from type, name, id, label and placeholder."""
    text = " ".join(
        part.lower()
        for part in (field.name, field.id, field.label, field.placeholder)
        if part
    )

    if field.tag_name == "textarea":
        return FieldRole.MESSAGE
    if field.type == "email" or "email" in text or "e-mail" in text:
        return FieldRole.EMAIL
    if field.type == "tel" or "phone" in text or TEL_RE.search(text) or "mobile" in text:
        return FieldRole.PHONE
    if field.type == "url" or "website" in text or "url" in text:
        return FieldRole.WEBSITE
    if "subject" in text or "topic" in text:
        return FieldRole.SUBJECT
    if "message" in text or "comment" in text:
        return FieldRole.MESSAGE
    if "name" in text and not any(word in text for word in NAME_EXCLUSIONS):
        return FieldRole.NAME
    if "author" in text:
        return FieldRole.NAME
    return FieldRole.UNKNOWN


def resolve_field_value(field: FieldDescriptor, sender) -> str | None:
    """Sender value for the field, or None when it should be left alone."""
    if field.type in ("checkbox", "radio", "file", "password", "select"):
        return None

    role = field_role(field)
    value = {
        FieldRole.EMAIL: sender.email,
        FieldRole.NAME: sender.name,
        FieldRole.SUBJECT: sender.subject,
        FieldRole.PHONE: sender.phone,
        FieldRole.MESSAGE: sender.message,
        FieldRole.WEBSITE: sender.website,
    }.get(role)
    return value or None


def field_selector(field: FieldDescriptor, scope: str = "") -> str:
    """CSS selector for the field, scoped to its form when given."""
    if field.id:
        selector = f'[id="{_escape(field.id)}"]'
    else:
        selector = f'[name="{_escape(field.name or "")}"]'
    return f"{scope} {selector}".strip()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
