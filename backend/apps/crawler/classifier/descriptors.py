# apps/crawler/classifier/descriptors.py

from dataclasses import dataclass, field, asdict
from typing import Any


@dataclass
class FieldDescriptor:
    """One fillable control inside a form."""
    type: str
    name: str | None = None
    id: str | None = None
    placeholder: str | None = None
    label: str | None = None
    required: bool = False
    tag_name: str = "input"

    @property
    def key(self) -> str:
        return self.name or self.id or ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "FieldDescriptor":
        return cls(
            type=data.get("type") or "text",
            name=data.get("name"),
            id=data.get("id"),
            placeholder=data.get("placeholder"),
            label=data.get("label"),
            required=bool(data.get("required", False)),
            tag_name=data.get("tag_name") or "input",
        )


@dataclass
class FormDescriptor:
    """A submittable form candidate found on a page."""
    selector: str
    plugin_type: str
    detection_method: str
    action: str = ""
    method: str = "GET"
    fields: list[FieldDescriptor] = field(default_factory=list)
    intent: str = "unknown"
    has_captcha: bool = False
    is_iframe: bool = False
    iframe_src: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["fields"] = [f.to_dict() for f in self.fields]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FormDescriptor":
        return cls(
            selector=data.get("selector", "form"),
            plugin_type=data.get("plugin_type", "unknown"),
            detection_method=data.get("detection_method", "native"),
            action=data.get("action", ""),
            method=data.get("method", "GET"),
            fields=[FieldDescriptor.from_dict(f) for f in data.get("fields") or []],
            intent=data.get("intent", "unknown"),
            has_captcha=bool(data.get("has_captcha", False)),
            is_iframe=bool(data.get("is_iframe", False)),
            iframe_src=data.get("iframe_src"),
        )


@dataclass
class CommentDescriptor:
    """A comment section; embeds carry no fields."""
    selector: str
    type: str
    detection_method: str
    fields: list[FieldDescriptor] = field(default_factory=list)
    is_embed: bool = False
    has_captcha: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["fields"] = [f.to_dict() for f in self.fields]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CommentDescriptor":
        return cls(
            selector=data.get("selector", "form"),
            type=data.get("type", "generic"),
            detection_method=data.get("detection_method", "generic"),
            fields=[FieldDescriptor.from_dict(f) for f in data.get("fields") or []],
            is_embed=bool(data.get("is_embed", False)),
            has_captcha=bool(data.get("has_captcha", False)),
        )
