# apps/crawler/classifier/prioritize.py

"""
Orders form submission candidates. Scores combine form intent, plugin
reliability, field shape and page URL; CAPTCHA and iframe forms sink.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable

from .descriptors import FormDescriptor
from .signatures import FormIntent, FormPluginType


INTENT_SCORES = {
    FormIntent.CONTACT.value: 100,
    FormIntent.QUOTE.value: 85,
    FormIntent.FEEDBACK.value: 75,
    FormIntent.NEWSLETTER.value: 55,
    FormIntent.UNKNOWN.value: 30,
}

PLUGIN_SCORES = {
    FormPluginType.CONTACT_FORM_7.value: 100,
    FormPluginType.GRAVITY_FORMS.value: 100,
    FormPluginType.WPFORMS.value: 95,
    FormPluginType.NINJA_FORMS.value: 90,
    FormPluginType.FORMIDABLE.value: 85,
    FormPluginType.FLUENT_FORMS.value: 85,
    FormPluginType.ELEMENTOR.value: 80,
    FormPluginType.DIVI.value: 75,
    FormPluginType.BEAVER_BUILDER.value: 75,
    FormPluginType.AVADA.value: 70,
    FormPluginType.MAILCHIMP_WP.value: 65,
    FormPluginType.MAILCHIMP.value: 60,
    FormPluginType.HUBSPOT.value: 60,
    FormPluginType.CONVERTKIT.value: 55,
    FormPluginType.ACTIVECAMPAIGN.value: 55,
    FormPluginType.GENERIC.value: 40,
    FormPluginType.STANDARD.value: 35,
    FormPluginType.UNKNOWN.value: 30,
    FormPluginType.JOTFORM.value: 25,
    FormPluginType.GOOGLE_FORMS.value: 20,
    FormPluginType.TYPEFORM.value: 20,
}

CONTACT_URL_RE = re.compile(r"(contact|kontakt|get-in-touch|reach-us|enquir|inquir)", re.IGNORECASE)


@dataclass
class FormCandidate:
    page_url: str
    form: FormDescriptor
    page: Any = None  # the PageDiscovery row, when ranking stored pages
    score: int = 0


def score_form(form: FormDescriptor, page_url: str = "") -> int:
    """0-100; higher means more likely to accept a submission."""
    score = 50.0

    score += INTENT_SCORES.get(form.intent, INTENT_SCORES["unknown"]) * 0.3
    score += PLUGIN_SCORES.get(form.plugin_type, PLUGIN_SCORES["unknown"]) * 0.2

    field_count = len(form.fields)
    if field_count > 10:
        score -= 30
    elif field_count > 7:
        score -= 20
    elif field_count > 5:
        score -= 10
    elif field_count < 2:
        score -= 25

    required_count = sum(1 for f in form.fields if f.required)
    if required_count > 7:
        score -= 25
    elif required_count > 5:
        score -= 15
    elif required_count > 3:
        score -= 5

    if form.has_captcha:
        score -= 40
    if form.is_iframe:
        score -= 30

    if any(_is_message_field(f.tag_name, f.key) for f in form.fields):
        score += 15
    if any(f.type == "email" or "email" in f.key.lower() for f in form.fields):
        score += 10

    if page_url and CONTACT_URL_RE.search(page_url):
        score += 10

    return int(round(max(0.0, min(100.0, score))))


def prioritize(candidates: Iterable[FormCandidate]) -> list[FormCandidate]:
    """Highest score first; ties keep discovery order."""
    ranked = []
    for candidate in candidates:
        candidate.score = score_form(candidate.form, candidate.page_url)
        ranked.append(candidate)
    return sorted(ranked, key=lambda c: -c.score)


def _is_message_field(tag_name: str, key: str) -> bool:
    lower = key.lower()
    return tag_name == "textarea" or "message" in lower or "comment" in lower
