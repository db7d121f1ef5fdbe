# apps/campaigns/services.py

import logging
from datetime import timedelta
from urllib.parse import urlparse

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.common.enums import (
    CampaignStatus,
    DomainStatus,
    LogLevel,
    SubmissionStatus,
    SubmissionType,
)

from .models import (
    Campaign,
    CampaignLog,
    Domain,
    ExtractedContact,
    PageDiscovery,
    SubmissionLog,
)

logger = logging.getLogger(__name__)


STUCK_MESSAGE = "Reset by watchdog (stuck since {since})"


# === Campaigns ===

def create_campaign(name: str, **kwargs) -> Campaign:
    """Create a new campaign in DRAFT."""
    return Campaign.objects.create(name=name, **kwargs)


def start_campaign(campaign: Campaign) -> Campaign:
    """Move a campaign to RUNNING so workers pick up its domains."""
    if campaign.status != CampaignStatus.RUNNING:
        campaign.status = CampaignStatus.RUNNING
        campaign.save(update_fields=["status", "updated_at"])
    return campaign


def pause_campaign(campaign: Campaign) -> Campaign:
    if campaign.status == CampaignStatus.RUNNING:
        campaign.status = CampaignStatus.PAUSED
        campaign.save(update_fields=["status", "updated_at"])
    return campaign


def refresh_campaign_completion(campaign_id: int) -> bool:
    """
    Mark a RUNNING campaign COMPLETED once none of its domains is pending or
    processing. Idempotent; True only for the call that made the transition.
    """
    open_domains = Domain.objects.filter(
        campaign_id=campaign_id,
        status__in=[DomainStatus.PENDING, DomainStatus.PROCESSING],
    )
    if open_domains.exists():
        return False

    updated = Campaign.objects.filter(
        id=campaign_id,
        status=CampaignStatus.RUNNING,
    ).update(status=CampaignStatus.COMPLETED, updated_at=timezone.now())
    return updated > 0


def increment_submission_counter(campaign_id: int, submission_type: str) -> None:
    field = "forms_submitted" if submission_type == SubmissionType.FORM else "comments_submitted"
    Campaign.objects.filter(id=campaign_id).update(**{field: F(field) + 1})


# === Domains ===

def normalize_domain_url(url: str) -> str | None:
    """Reduce user input to https://host[:port]. None if there is no usable host."""
    url = (url or "").strip()
    if not url:
        return None
    if "://" not in url:
        url = f"https://{url}"

    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower().rstrip(".")
        port = parsed.port
    except ValueError:
        return None

    if not host or "." not in host:
        return None
    if port and port not in (80, 443):
        return f"https://{host}:{port}"
    return f"https://{host}"


@transaction.atomic
def add_domains(campaign: Campaign, urls: list[str]) -> dict:
    """
    Bulk-add PENDING domains. Duplicates within the batch or already in the
    campaign are skipped.
    """
    existing = set(campaign.domains.values_list("url", flat=True))
    to_create = []
    skipped = 0
    invalid = []

    for raw in urls:
        url = normalize_domain_url(raw)
        if url is None:
            invalid.append(raw)
            continue
        if url in existing:
            skipped += 1
            continue
        existing.add(url)
        to_create.append(Domain(campaign=campaign, url=url, status=DomainStatus.PENDING))

    Domain.objects.bulk_create(to_create, ignore_conflicts=True)

    logger.info(
        f"Added {len(to_create)} domains to campaign {campaign.id} "
        f"(skipped={skipped}, invalid={len(invalid)})"
    )
    return {"created": len(to_create), "skipped": skipped, "invalid": invalid}


def claim_domain(domain_id: int) -> bool:
    """
    Atomically move a domain PENDING -> PROCESSING.
    False means another worker got there first.
    """
    updated = Domain.objects.filter(
        id=domain_id,
        status=DomainStatus.PENDING,
    ).update(status=DomainStatus.PROCESSING, error_message="", updated_at=timezone.now())
    return updated == 1


def touch_domain(domain: Domain) -> bool:
    """
    Heartbeat for a long-running domain: bump updated_at while it is still
    PROCESSING so the stuck-domain sweep leaves it alone.
    """
    return Domain.objects.filter(id=domain.id, status=DomainStatus.PROCESSING).update(
        updated_at=timezone.now(),
    ) > 0


def record_analysis(domain: Domain, robots_txt: str | None, sitemaps_found: int) -> Domain:
    domain.has_robots_txt = robots_txt is not None
    domain.robots_txt = robots_txt or ""
    domain.sitemaps_found = sitemaps_found
    domain.save(update_fields=["has_robots_txt", "robots_txt", "sitemaps_found", "updated_at"])
    return domain


def mark_domain_completed(domain: Domain, pages_discovered: int) -> bool:
    """PROCESSING -> COMPLETED. False if the domain is no longer ours."""
    now = timezone.now()
    updated = Domain.objects.filter(id=domain.id, status=DomainStatus.PROCESSING).update(
        status=DomainStatus.COMPLETED,
        pages_discovered=pages_discovered,
        error_message="",
        processed_at=now,
        updated_at=now,
    )
    if not updated:
        logger.warning(f"Domain {domain.id} left PROCESSING before completion")
    return updated > 0


def mark_domain_failed(domain: Domain, error: str, pages_discovered: int | None = None) -> bool:
    """PROCESSING -> FAILED. False if the domain is no longer ours."""
    now = timezone.now()
    fields = {
        "status": DomainStatus.FAILED,
        "error_message": error[:5000],
        "processed_at": now,
        "updated_at": now,
    }
    if pages_discovered is not None:
        fields["pages_discovered"] = pages_discovered

    updated = Domain.objects.filter(id=domain.id, status=DomainStatus.PROCESSING).update(**fields)
    if not updated:
        logger.warning(f"Domain {domain.id} left PROCESSING before failure was recorded")
    return updated > 0


def reset_stuck_domains(threshold_minutes: int = 15) -> int:
    """
    Return PROCESSING domains untouched for threshold_minutes to PENDING.
    Each row is reset conditionally so a worker finishing at the same
    moment keeps its result.
    """
    cutoff = timezone.now() - timedelta(minutes=threshold_minutes)
    stuck = list(
        Domain.objects.filter(
            status=DomainStatus.PROCESSING,
            updated_at__lt=cutoff,
        ).values_list("id", "updated_at")
    )

    reset = 0
    for domain_id, updated_at in stuck:
        reset += Domain.objects.filter(
            id=domain_id,
            status=DomainStatus.PROCESSING,
            updated_at=updated_at,
        ).update(
            status=DomainStatus.PENDING,
            error_message=STUCK_MESSAGE.format(since=updated_at.isoformat()),
            updated_at=timezone.now(),
        )

    if reset:
        logger.warning(f"Reset {reset} stuck domains (threshold={threshold_minutes}m)")
    return reset


# === Pages, contacts, submissions ===

def upsert_page_discovery(
    domain: Domain,
    url: str,
    title: str = "",
    forms: list[dict] | None = None,
    comments: list[dict] | None = None,
) -> PageDiscovery:
    """Create or refresh the page row for (campaign, domain, url)."""
    page, _ = PageDiscovery.objects.update_or_create(
        campaign_id=domain.campaign_id,
        domain=domain,
        url=url,
        defaults={
            "title": (title or "Untitled")[:512],
            "has_form": bool(forms),
            "has_comments": bool(comments),
            "form_fields": forms or None,
            "comment_fields": comments or None,
        },
    )
    return page


def upsert_extracted_contact(
    domain: Domain,
    email: str | None,
    phone: str | None,
    extracted_from: str,
) -> ExtractedContact | None:
    """
    Keep the most recent non-empty email/phone for the domain. A page that
    found only one of them leaves the other untouched.
    """
    if not email and not phone:
        return None

    try:
        with transaction.atomic():
            contact, created = ExtractedContact.objects.select_for_update().get_or_create(
                campaign_id=domain.campaign_id,
                domain=domain,
                defaults={
                    "email": email or "",
                    "phone": phone or "",
                    "extracted_from": extracted_from,
                },
            )
            if not created:
                if email:
                    contact.email = email
                if phone:
                    contact.phone = phone
                contact.extracted_from = extracted_from
                contact.save(update_fields=["email", "phone", "extracted_from", "updated_at"])
    except IntegrityError:
        # Concurrent insert for the same domain; the other row wins
        return ExtractedContact.objects.filter(campaign_id=domain.campaign_id, domain=domain).first()

    return contact


def log_submission(
    page: PageDiscovery,
    submission_type: str,
    status: str,
    message: str = "",
    submitted_data: dict | None = None,
) -> SubmissionLog:
    """Append a submission attempt. Successful ones bump the campaign counter."""
    failed = status == SubmissionStatus.FAILED
    entry = SubmissionLog.objects.create(
        campaign_id=page.campaign_id,
        page=page,
        type=submission_type,
        status=status,
        submitted_data=submitted_data or {},
        response_message="" if failed else message,
        error_message=message if failed else "",
    )
    if not failed:
        increment_submission_counter(page.campaign_id, submission_type)
    return entry


# === Logs ===

def create_campaign_log(
    campaign_id: int,
    message: str,
    level: str = LogLevel.INFO,
    domain_id: int | None = None,
) -> CampaignLog:
    return CampaignLog.objects.create(
        campaign_id=campaign_id,
        domain_id=domain_id,
        level=level,
        message=message,
    )
