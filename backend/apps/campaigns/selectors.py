# apps/campaigns/selectors.py

from django.db.models import Count, Q, QuerySet

from apps.common.enums import (
    CampaignStatus,
    DomainStatus,
    SubmissionStatus,
    SubmissionType,
)

from .models import Campaign, CampaignLog, Domain, SubmissionLog


# === Campaign Selectors ===

def get_campaign_by_id(campaign_id: int) -> Campaign | None:
    return Campaign.objects.filter(id=campaign_id).first()


def get_all_campaigns() -> QuerySet[Campaign]:
    return Campaign.objects.all().order_by("-created_at")


def get_campaign_stats(campaign: Campaign) -> dict:
    """Aggregate counts for the campaign dashboard."""
    domain_counts = {status: 0 for status in DomainStatus.values}
    for row in campaign.domains.values("status").annotate(count=Count("id")):
        domain_counts[row["status"]] = row["count"]

    pages = campaign.pages.aggregate(
        total=Count("id"),
        with_forms=Count("id", filter=Q(has_form=True)),
        with_comments=Count("id", filter=Q(has_comments=True)),
    )

    submissions = {
        submission_type: {status: 0 for status in SubmissionStatus.values}
        for submission_type in SubmissionType.values
    }
    rows = campaign.submissions.values("type", "status").annotate(count=Count("id"))
    for row in rows:
        submissions[row["type"]][row["status"]] = row["count"]

    return {
        "campaign_id": campaign.id,
        "status": campaign.status,
        "domains": {
            "total": sum(domain_counts.values()),
            **domain_counts,
        },
        "pages": {
            "total": pages["total"] or 0,
            "with_forms": pages["with_forms"] or 0,
            "with_comments": pages["with_comments"] or 0,
        },
        "forms_submitted": campaign.forms_submitted,
        "comments_submitted": campaign.comments_submitted,
        "submissions": submissions,
        "contacts": campaign.contacts.count(),
    }


# === Domain Selectors ===

def get_domain_by_id(domain_id: int) -> Domain | None:
    return Domain.objects.select_related("campaign").filter(id=domain_id).first()


def get_pending_domain_ids(exclude_ids: set[int] | None = None, limit: int = 1) -> list[int]:
    """Oldest PENDING domains of RUNNING campaigns."""
    qs = Domain.objects.filter(
        status=DomainStatus.PENDING,
        campaign__status=CampaignStatus.RUNNING,
    )
    if exclude_ids:
        qs = qs.exclude(id__in=exclude_ids)
    return list(qs.order_by("created_at", "id").values_list("id", flat=True)[:limit])


def get_domains_for_campaign(campaign: Campaign, status: str | None = None) -> QuerySet[Domain]:
    qs = campaign.domains.all()
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("created_at", "id")


# === Page / Submission Selectors ===

def has_successful_submission(campaign_id: int, url: str, submission_type: str) -> bool:
    """True if this campaign already got a SUCCESS/SUBMITTED of this type on url."""
    return SubmissionLog.objects.filter(
        campaign_id=campaign_id,
        page__url=url,
        type=submission_type,
        status__in=[SubmissionStatus.SUCCESS, SubmissionStatus.SUBMITTED],
    ).exists()


# === Log Selectors ===

def get_recent_logs(campaign: Campaign, limit: int = 200) -> QuerySet[CampaignLog]:
    return campaign.logs.select_related("domain").order_by("-created_at", "-id")[:limit]
