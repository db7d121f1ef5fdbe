# apps/campaigns/serializers.py

from rest_framework import serializers

from .models import Campaign, CampaignLog, Domain


class CampaignSerializer(serializers.ModelSerializer):
    """Full campaign serializer with configuration and counters."""

    class Meta:
        model = Campaign
        fields = [
            "id",
            "name",
            "status",
            "submit_forms",
            "submit_comments",
            "sender_name",
            "sender_email",
            "sender_phone",
            "sender_website",
            "message_subject",
            "message_template",
            "max_pages_per_domain",
            "target_forms_count",
            "target_comments_count",
            "crawl_min_delay",
            "crawl_max_delay",
            "extract_contacts",
            "fresh_context_per_submission",
            "forms_submitted",
            "comments_submitted",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "status",
            "forms_submitted",
            "comments_submitted",
            "created_at",
            "updated_at",
        ]

    def validate(self, attrs):
        min_delay = attrs.get("crawl_min_delay", getattr(self.instance, "crawl_min_delay", 2.0))
        max_delay = attrs.get("crawl_max_delay", getattr(self.instance, "crawl_max_delay", 4.0))
        if min_delay < 0 or max_delay < min_delay:
            raise serializers.ValidationError("crawl_max_delay must be >= crawl_min_delay >= 0")

        submits = attrs.get("submit_forms") or attrs.get("submit_comments")
        if submits and not attrs.get("sender_email", getattr(self.instance, "sender_email", "")):
            raise serializers.ValidationError({"sender_email": "Required when submissions are enabled"})
        return attrs


class CampaignListSerializer(serializers.ModelSerializer):
    """Lighter serializer for list views."""

    class Meta:
        model = Campaign
        fields = [
            "id",
            "name",
            "status",
            "submit_forms",
            "submit_comments",
            "forms_submitted",
            "comments_submitted",
            "created_at",
        ]


class DomainSerializer(serializers.ModelSerializer):
    class Meta:
        model = Domain
        fields = [
            "id",
            "url",
            "status",
            "pages_discovered",
            "sitemaps_found",
            "has_robots_txt",
            "error_message",
            "processed_at",
            "created_at",
        ]


class DomainBulkCreateSerializer(serializers.Serializer):
    urls = serializers.ListField(
        child=serializers.CharField(max_length=2048),
        allow_empty=False,
        max_length=10000,
    )


class CampaignLogSerializer(serializers.ModelSerializer):
    domain_url = serializers.CharField(source="domain.url", default=None, read_only=True)

    class Meta:
        model = CampaignLog
        fields = ["id", "level", "message", "domain", "domain_url", "created_at"]
