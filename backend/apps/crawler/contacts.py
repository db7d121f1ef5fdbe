# apps/crawler/contacts.py

"""
Contact extraction - pulls the first usable email and phone number out of a page.
"""

import re
import logging
from dataclasses import dataclass
from urllib.parse import unquote

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

PHONE_RES = [
    # International: +1-234-567-8900, +44 20 7946 0958
    re.compile(r"\+?\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9}"),
    # Parenthesized area code: (123) 456-7890
    re.compile(r"\(\d{3}\)\s*\d{3}[-.\s]?\d{4}"),
    # Hyphenated: 123-456-7890
    re.compile(r"\d{3}[-.\s]\d{3}[-.\s]\d{4}"),
]

PLACEHOLDER_EMAIL_PATTERNS = [
    "example.com",
    "example.org",
    "example.net",
    "test@",
    "noreply",
    "no-reply",
    "donotreply",
    "do-not-reply",
    "your@",
    "youremail",
    "your-email",
    "yourname@",
    "@domain.com",
    "@email.com",
]

# Retina asset names like logo@2x.png look like emails
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico", ".css", ".js")


@dataclass
class ContactInfo:
    email: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict:
        return {"email": self.email, "phone": self.phone}

    @property
    def found(self) -> bool:
        return bool(self.email or self.phone)


def extract_contacts(html: str | BeautifulSoup) -> ContactInfo:
    """Return the first valid email and phone on the page, or None for each."""
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html or "", "lxml")

    href_emails, href_phones = _extract_from_links(soup)
    body = soup.body or soup
    text = body.get_text(" ")

    emails = _unique(href_emails + extract_emails(text), key=str.lower)
    phones = _unique(href_phones + extract_phones(text))

    return ContactInfo(
        email=emails[0] if emails else None,
        phone=phones[0] if phones else None,
    )


def extract_emails(text: str) -> list[str]:
    """All email-shaped tokens in text, minus placeholders, in order of appearance."""
    return _unique(
        [email for email in EMAIL_RE.findall(text or "") if is_valid_email(email)],
        key=str.lower,
    )


def extract_phones(text: str) -> list[str]:
    """All phone-like tokens in text with 10-15 digits, in order of appearance."""
    matches: list[tuple[int, str]] = []
    for regex in PHONE_RES:
        for match in regex.finditer(text or ""):
            matches.append((match.start(), match.group(0).strip()))

    matches.sort(key=lambda item: item[0])
    return _unique([phone for _, phone in matches if is_valid_phone(phone)])


def is_valid_email(email: str) -> bool:
    lower = email.lower()
    if any(pattern in lower for pattern in PLACEHOLDER_EMAIL_PATTERNS):
        return False
    if lower.endswith(ASSET_SUFFIXES):
        return False
    return EMAIL_RE.fullmatch(email) is not None


def is_valid_phone(phone: str) -> bool:
    digits = re.sub(r"\D", "", phone)
    return 10 <= len(digits) <= 15


def _extract_from_links(soup: BeautifulSoup) -> tuple[list[str], list[str]]:
    """Emails from mailto: and phones from tel: links."""
    emails = []
    phones = []

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        lower = href.lower()

        if lower.startswith("mailto:"):
            address = unquote(href[7:].split("?")[0]).strip()
            # mailto:a@x.com,b@x.com
            for candidate in address.split(","):
                candidate = candidate.strip()
                if candidate and is_valid_email(candidate):
                    emails.append(candidate)

        elif lower.startswith("tel:"):
            number = re.sub(r"[^\d+]", "", unquote(href[4:]))
            if number and is_valid_phone(number):
                phones.append(number)

    return emails, phones


def _unique(items: list[str], key=None) -> list[str]:
    seen = set()
    result = []
    for item in items:
        marker = key(item) if key else item
        if marker in seen:
            continue
        seen.add(marker)
        result.append(item)
    return result
