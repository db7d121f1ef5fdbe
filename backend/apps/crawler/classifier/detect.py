# apps/crawler/classifier/detect.py

import re
import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from .descriptors import CommentDescriptor, FieldDescriptor, FormDescriptor
from .signatures import (
    CAPTCHA_MARKERS,
    COMMENT_FORM_SELECTORS,
    COMMENT_WIDGET_SELECTORS,
    CONTAINER_NAME_PATTERNS,
    CONTAINER_SELECTORS,
    IFRAME_SIGNATURES,
    INTENT_KEYWORDS,
    PLUGIN_SIGNATURES,
    SKIPPED_INPUT_TYPES,
    CommentSystemType,
    DetectionMethod,
    FormIntent,
    FormPluginType,
)

logger = logging.getLogger(__name__)


IDENT_RE = re.compile(r"^[A-Za-z_][\w-]*$")
LOGIN_ACTION_RE = re.compile(r"(login|log-in|signin|sign-in|wp-admin|/admin|wp-login)", re.IGNORECASE)
SEARCH_FIELD_NAMES = {"s", "q", "query", "search", "keyword", "keywords", "search_query"}
COMMENT_FIELD_NAMES = {"comment", "comment_body", "comment[body]", "comment-body", "comment_text"}

# Never treated as generic containers
NON_CONTAINER_TAGS = {
    "html", "body", "head", "form", "input", "textarea", "select", "option",
    "label", "button", "script", "style", "iframe", "noscript", "svg",
}


def parse_html(markup: str | BeautifulSoup) -> BeautifulSoup:
    """Accept raw HTML or an already-parsed document."""
    if isinstance(markup, BeautifulSoup):
        return markup
    return BeautifulSoup(markup or "", "lxml")


# === Public API ===

def detect_forms(html: str | BeautifulSoup, url: str = "") -> list[FormDescriptor]:
    """
    Find submittable forms, running plugin signatures, iframe embeds,
    native forms and generic containers in that order. One physical form
    is reported once.
    """
    soup = parse_html(html)
    seen = _SeenElements()
    forms: list[FormDescriptor] = []

    # (a) Known plugins and page builders
    for selector, plugin in PLUGIN_SIGNATURES:
        for element in soup.select(selector):
            target = _form_within(element)
            key = css_path(soup, target)
            if seen.claims(target, key):
                continue
            seen.add(target, key)
            forms.append(_build_form(soup, target, key, url, plugin, DetectionMethod.PLUGIN))

    # (b) Embedded form services
    for iframe in soup.find_all("iframe"):
        src = iframe.get("src") or iframe.get("data-src") or ""
        plugin = match_iframe_service(src)
        if plugin is None:
            continue
        key = css_path(soup, iframe)
        if seen.claims(iframe, key):
            continue
        seen.add(iframe, key)
        forms.append(FormDescriptor(
            selector=key,
            plugin_type=plugin.value,
            detection_method=DetectionMethod.IFRAME.value,
            action=urljoin(url, src) if url else src,
            is_iframe=True,
            iframe_src=src,
        ))

    # (c) Native <form> elements
    for element in soup.find_all("form"):
        key = css_path(soup, element)
        if seen.claims(element, key):
            continue
        fields = extract_fields(soup, element)
        if is_search_form(element, fields) or is_login_form(element) or is_comment_form(element, fields):
            continue
        if len(fields) < 2:
            continue
        seen.add(element, key)
        forms.append(_build_form(
            soup, element, key, url, FormPluginType.STANDARD, DetectionMethod.NATIVE, fields=fields,
        ))

    # (d) Form-less field groups
    for element in _container_candidates(soup):
        key = css_path(soup, element)
        if seen.claims(element, key):
            continue
        fields = extract_fields(soup, element)
        if len(fields) < 2:
            continue
        seen.add(element, key)
        forms.append(_build_form(
            soup, element, key, url, FormPluginType.GENERIC, DetectionMethod.CONTAINER, fields=fields,
        ))

    return forms


def detect_comment_sections(html: str | BeautifulSoup, url: str = "") -> list[CommentDescriptor]:
    """Find comment forms (CMS areas, third-party widgets, generic reply forms)."""
    soup = parse_html(html)
    seen = _SeenElements()
    sections: list[CommentDescriptor] = []

    for selector, system in COMMENT_FORM_SELECTORS:
        for element in soup.select(selector):
            target = _form_within(element)
            key = css_path(soup, target)
            if seen.claims(target, key):
                continue
            seen.add(target, key)
            sections.append(CommentDescriptor(
                selector=key,
                type=system.value,
                detection_method=DetectionMethod.CMS.value,
                fields=extract_fields(soup, target),
                has_captcha=has_captcha(target),
            ))

    widget_types = set()
    for selector, system in COMMENT_WIDGET_SELECTORS:
        if system in widget_types:
            continue
        element = soup.select_one(selector)
        if element is None:
            continue
        key = css_path(soup, element)
        if seen.claims(element, key):
            continue
        seen.add(element, key)
        widget_types.add(system)
        sections.append(CommentDescriptor(
            selector=key,
            type=system.value,
            detection_method=DetectionMethod.WIDGET.value,
            is_embed=True,
        ))

    for element in soup.find_all("form"):
        key = css_path(soup, element)
        if seen.claims(element, key):
            continue
        fields = extract_fields(soup, element)
        if is_search_form(element, fields) or is_login_form(element):
            continue
        if not any(f.tag_name == "textarea" for f in fields):
            continue

        text = element.get_text(" ").lower()
        names = " ".join(f.key for f in fields).lower()
        if not any(word in text or word in names for word in ("comment", "reply")):
            continue

        seen.add(element, key)
        sections.append(CommentDescriptor(
            selector=key,
            type=CommentSystemType.GENERIC.value,
            detection_method=DetectionMethod.GENERIC.value,
            fields=fields,
            has_captcha=has_captcha(element),
        ))

    return sections


# === Field extraction ===

def extract_fields(soup: BeautifulSoup, element: Tag) -> list[FieldDescriptor]:
    """Fillable input/textarea/select controls under element."""
    fields = []

    for control in element.find_all(["input", "textarea", "select"]):
        tag_name = control.name
        if tag_name == "input":
            field_type = (control.get("type") or "text").strip().lower()
        else:
            field_type = tag_name

        if field_type in SKIPPED_INPUT_TYPES:
            continue

        name = control.get("name") or None
        field_id = control.get("id") or None
        if not name and not field_id:
            continue

        fields.append(FieldDescriptor(
            type=field_type,
            name=name,
            id=field_id,
            placeholder=control.get("placeholder") or None,
            label=find_label(soup, control),
            required=control.has_attr("required") or control.get("aria-required") == "true",
            tag_name=tag_name,
        ))

    return fields


def find_label(soup: BeautifulSoup, control: Tag) -> str | None:
    """label[for=id], then ancestor label, then preceding sibling label, then aria-label."""
    field_id = control.get("id")
    if field_id:
        label = soup.find("label", attrs={"for": field_id})
        if label is not None:
            text = _clean_text(label)
            if text:
                return text

    parent_label = control.find_parent("label")
    if parent_label is not None:
        text = _clean_text(parent_label)
        if text:
            return text

    previous = control.find_previous_sibling()
    if previous is not None and previous.name == "label":
        text = _clean_text(previous)
        if text:
            return text

    aria_label = (control.get("aria-label") or "").strip()
    return aria_label or None


# === Classification helpers ===

def match_iframe_service(src: str) -> FormPluginType | None:
    lower = (src or "").lower()
    for pattern, plugin in IFRAME_SIGNATURES:
        if pattern in lower:
            return plugin
    return None


def is_search_form(form: Tag, fields: list[FieldDescriptor]) -> bool:
    if (form.get("role") or "").lower() == "search":
        return True
    if "search" in _attribute_markers(form):
        return True
    if form.find("input", attrs={"type": "search"}) is not None:
        return True
    names = {f.key.lower() for f in fields}
    return bool(names) and names <= SEARCH_FIELD_NAMES


def is_login_form(form: Tag) -> bool:
    if form.find("input", attrs={"type": "password"}) is not None:
        return True
    action_path = urlparse(form.get("action") or "").path
    return bool(LOGIN_ACTION_RE.search(action_path))


def is_comment_form(form: Tag, fields: list[FieldDescriptor]) -> bool:
    if "comment" in _attribute_markers(form):
        return True
    if form.find_parent(id="respond") is not None or form.find_parent(id="comments") is not None:
        return True
    return any(f.key.lower() in COMMENT_FIELD_NAMES for f in fields)


def has_captcha(element: Tag) -> bool:
    markup = str(element).lower()
    return any(marker in markup for marker in CAPTCHA_MARKERS)


def classify_intent(element: Tag, fields: list[FieldDescriptor]) -> FormIntent:
    parts = [element.get_text(" "), _attribute_markers(element)]
    for f in fields:
        parts.extend([f.key, f.label or "", f.placeholder or ""])
    haystack = " ".join(parts).lower()

    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return intent
    return FormIntent.UNKNOWN


def css_path(soup: BeautifulSoup, element: Tag) -> str:
    """
    Deterministic selector for element: the nearest unique id, then
    tag:nth-of-type steps down to the element.
    """
    parts = []
    node = element

    while isinstance(node, Tag) and node.name != "[document]":
        node_id = node.get("id")
        if isinstance(node_id, str) and IDENT_RE.match(node_id) and len(soup.find_all(id=node_id)) == 1:
            parts.append(f"#{node_id}")
            break
        if node.name in ("html", "body"):
            parts.append(node.name)
            break

        index = 1 + sum(1 for _ in node.find_previous_siblings(node.name))
        parts.append(f"{node.name}:nth-of-type({index})")
        node = node.parent

    return " > ".join(reversed(parts))


# === Internals ===

class _SeenElements:
    """Dedupe by selector key and by element containment."""

    def __init__(self):
        self.keys: set[str] = set()
        self.elements: list[Tag] = []

    def claims(self, element: Tag, key: str) -> bool:
        if key in self.keys:
            return True
        return any(_overlaps(element, other) for other in self.elements)

    def add(self, element: Tag, key: str) -> None:
        self.keys.add(key)
        self.elements.append(element)


def _overlaps(a: Tag, b: Tag) -> bool:
    if a is b:
        return True
    return any(parent is b for parent in a.parents) or any(parent is a for parent in b.parents)


def _form_within(element: Tag) -> Tag:
    if element.name == "form":
        return element
    return element.find("form") or element


def _build_form(
    soup: BeautifulSoup,
    element: Tag,
    key: str,
    url: str,
    plugin: FormPluginType,
    method: DetectionMethod,
    fields: list[FieldDescriptor] | None = None,
) -> FormDescriptor:
    if fields is None:
        fields = extract_fields(soup, element)

    action = element.get("action") if element.name == "form" else None
    return FormDescriptor(
        selector=key,
        plugin_type=plugin.value,
        detection_method=method.value,
        action=urljoin(url, action) if action and url else (action or url),
        method=(element.get("method") or "GET").upper() if element.name == "form" else "POST",
        fields=fields,
        intent=classify_intent(element, fields).value,
        has_captcha=has_captcha(element),
    )


def _container_candidates(soup: BeautifulSoup) -> list[Tag]:
    """Innermost-first candidates, returned in document order."""
    selector_group = ", ".join(CONTAINER_SELECTORS)
    candidates = []

    for position, element in enumerate(soup.find_all(True)):
        if element.name in NON_CONTAINER_TAGS:
            continue
        if not (element.css.match(selector_group) or _has_container_name(element)):
            continue
        if element.find("form") is not None or element.find_parent("form") is not None:
            continue
        depth = sum(1 for _ in element.parents)
        candidates.append((depth, position, element))

    # Deepest first so nested wrappers lose to the element holding the fields
    candidates.sort(key=lambda item: -item[0])
    kept: list[tuple[int, Tag]] = []
    for _, position, element in candidates:
        if any(_overlaps(element, other) for _, other in kept):
            continue
        if len(extract_fields(soup, element)) < 2:
            continue
        kept.append((position, element))

    kept.sort(key=lambda item: item[0])
    return [element for _, element in kept]


def _has_container_name(element: Tag) -> bool:
    markers = _attribute_markers(element, include_action=False)
    return any(pattern in markers for pattern in CONTAINER_NAME_PATTERNS)


def _attribute_markers(element: Tag, include_action: bool = True) -> str:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    parts = [element.get("id") or "", " ".join(classes), element.get("name") or ""]
    if include_action:
        parts.append(element.get("action") or "")
    return " ".join(parts).lower()


def _clean_text(element: Tag) -> str:
    return " ".join(element.get_text(" ", strip=True).split())
