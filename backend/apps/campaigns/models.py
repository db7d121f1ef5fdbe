# apps/campaigns/models.py

from django.db import models
from django.utils import timezone

from apps.common.models import TimestampedModel
from apps.common.enums import (
    CampaignStatus,
    DomainStatus,
    LogLevel,
    SubmissionStatus,
    SubmissionType,
)


class Campaign(TimestampedModel):
    """
    A batch of domains sharing one submission configuration.
    Status COMPLETED is derived: set once no domain is pending or processing.
    """
    name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=CampaignStatus.choices,
        default=CampaignStatus.DRAFT,
        db_index=True,
    )

    # Submission toggles
    submit_forms = models.BooleanField(default=False)
    submit_comments = models.BooleanField(default=False)

    # Sender identity
    sender_name = models.CharField(max_length=255, blank=True)
    sender_email = models.EmailField(blank=True)
    sender_phone = models.CharField(max_length=50, blank=True)
    sender_website = models.URLField(max_length=512, blank=True)

    # Message
    message_subject = models.CharField(max_length=255, blank=True, default="Contact Inquiry")
    message_template = models.TextField(blank=True)

    # Per-run configuration
    max_pages_per_domain = models.PositiveIntegerField(
        default=20,
        help_text="Max pages to crawl per domain",
    )
    target_forms_count = models.PositiveIntegerField(
        default=0,
        help_text="Successful form submissions per domain (0 = every form found)",
    )
    target_comments_count = models.PositiveIntegerField(
        default=0,
        help_text="Comment submissions per domain (0 = every comment section found)",
    )
    crawl_min_delay = models.FloatField(default=2.0, help_text="Seconds")
    crawl_max_delay = models.FloatField(default=4.0, help_text="Seconds")
    extract_contacts = models.BooleanField(default=True)
    fresh_context_per_submission = models.BooleanField(
        default=True,
        help_text="Open a brand-new isolated browser context for every submission",
    )

    # Counters
    forms_submitted = models.PositiveIntegerField(default=0)
    comments_submitted = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.status})"


class Domain(TimestampedModel):
    """
    One target website. Mutated only by the work coordinator.
    Status moves PENDING -> PROCESSING -> COMPLETED/FAILED; the stuck sweep
    is the only path from PROCESSING back to PENDING.
    """
    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.CASCADE,
        related_name="domains",
    )
    url = models.URLField(max_length=2048)
    status = models.CharField(
        max_length=20,
        choices=DomainStatus.choices,
        default=DomainStatus.PENDING,
        db_index=True,
    )

    # Analysis results
    pages_discovered = models.PositiveIntegerField(default=0)
    sitemaps_found = models.PositiveIntegerField(default=0)
    has_robots_txt = models.BooleanField(default=False)
    robots_txt = models.TextField(blank=True)

    error_message = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["campaign", "url"],
                name="unique_domain_per_campaign",
            )
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="domain_status_created_idx"),
            models.Index(fields=["campaign", "status"], name="domain_campaign_status_idx"),
            models.Index(fields=["status", "updated_at"], name="domain_status_updated_idx"),
        ]

    def __str__(self):
        return f"{self.url} ({self.status})"


class PageDiscovery(TimestampedModel):
    """A crawled page with its detected forms and comment sections."""
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="pages")
    domain = models.ForeignKey(Domain, on_delete=models.CASCADE, related_name="pages")
    url = models.URLField(max_length=2048)
    title = models.CharField(max_length=512, blank=True)

    has_form = models.BooleanField(default=False)
    has_comments = models.BooleanField(default=False)

    # Serialized descriptors from the classifier
    form_fields = models.JSONField(null=True, blank=True)
    comment_fields = models.JSONField(null=True, blank=True)

    class Meta:
        verbose_name_plural = "Page Discoveries"
        constraints = [
            models.UniqueConstraint(
                fields=["campaign", "domain", "url"],
                name="unique_page_per_domain",
            )
        ]
        indexes = [
            models.Index(fields=["campaign", "has_form"], name="page_campaign_form_idx"),
        ]

    def __str__(self):
        return self.url[:80]


class ExtractedContact(TimestampedModel):
    """Best-known email/phone for a domain within a campaign."""
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="contacts")
    domain = models.ForeignKey(Domain, on_delete=models.CASCADE, related_name="contacts")
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    extracted_from = models.URLField(max_length=2048, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["campaign", "domain"],
                name="unique_contact_per_domain",
            )
        ]

    def __str__(self):
        return f"{self.email or '-'} / {self.phone or '-'}"


class SubmissionLog(models.Model):
    """Append-only record of one submission attempt."""
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="submissions")
    page = models.ForeignKey(
        PageDiscovery,
        on_delete=models.CASCADE,
        related_name="submissions",
    )
    type = models.CharField(max_length=20, choices=SubmissionType.choices)
    status = models.CharField(max_length=20, choices=SubmissionStatus.choices, db_index=True)
    submitted_data = models.JSONField(default=dict, blank=True)
    response_message = models.TextField(blank=True)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["campaign", "type", "status"], name="submission_campaign_type_idx"),
        ]

    def __str__(self):
        return f"[{self.type}:{self.status}] {self.page.url[:60]}"


class CampaignLog(models.Model):
    """Leveled progress message for the live campaign view."""
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="logs")
    domain = models.ForeignKey(
        Domain,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="logs",
    )
    level = models.CharField(max_length=20, choices=LogLevel.choices, default=LogLevel.INFO)
    message = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"[{self.level}] {self.message[:80]}"
