# apps/automation/templates.py

import re
from urllib.parse import urlparse

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def render_message(template: str, **context) -> str:
    """
    Fill {name}, {email}, {phone}, {website}, {domain} and {url} style
    placeholders. Unknown or empty placeholders are left as written.
    """
    values = {key: str(value) for key, value in context.items() if value not in (None, "")}

    def replace(match: re.Match) -> str:
        return values.get(match.group(1), match.group(0))

    return PLACEHOLDER_RE.sub(replace, template or "")


def template_context(sender, page_url: str) -> dict:
    """Placeholder values for a sender submitting on page_url."""
    host = urlparse(page_url).hostname or ""
    return {
        "name": sender.name,
        "email": sender.email,
        "phone": sender.phone,
        "website": sender.website,
        "domain": host.removeprefix("www."),
        "url": page_url,
    }
