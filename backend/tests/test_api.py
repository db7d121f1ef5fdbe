import pytest
from rest_framework.test import APIClient

from apps.campaigns.models import Campaign, Domain
from apps.campaigns.services import create_campaign_log
from apps.common.enums import CampaignStatus, DomainStatus, LogLevel


@pytest.fixture
def client():
    return APIClient()


@pytest.mark.django_db
class TestCampaignEndpoints:
    def test_create_campaign_starts_as_draft(self, client):
        response = client.post(
            "/api/v1/campaigns/",
            {"name": "Autumn", "submit_forms": True, "sender_email": "me@sender.io"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["status"] == CampaignStatus.DRAFT
        assert response.data["max_pages_per_domain"] == 20
        assert Campaign.objects.get(id=response.data["id"]).sender_email == "me@sender.io"

    def test_submissions_require_sender_email(self, client):
        response = client.post("/api/v1/campaigns/", {"name": "No sender", "submit_comments": True}, format="json")

        assert response.status_code == 400
        assert "sender_email" in response.data

    def test_delay_range_is_validated(self, client):
        response = client.post(
            "/api/v1/campaigns/",
            {"name": "Bad delays", "crawl_min_delay": 5, "crawl_max_delay": 1},
            format="json",
        )

        assert response.status_code == 400

    def test_list_uses_light_serializer(self, client, campaign):
        response = client.get("/api/v1/campaigns/")

        assert response.status_code == 200
        row = response.data["results"][0]
        assert row["name"] == "Spring outreach"
        assert "message_template" not in row

    def test_add_domains_normalizes_and_skips(self, client, campaign, make_domain):
        make_domain("https://shop.test")

        response = client.post(
            f"/api/v1/campaigns/{campaign.id}/domains/",
            {"urls": ["shop.test", "http://www.Blog.test/path", "www.blog.test", "not a host"]},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["created"] == 1
        assert response.data["skipped"] == 2
        assert response.data["invalid"] == ["not a host"]
        assert Domain.objects.filter(campaign=campaign, url="https://www.blog.test").exists()

    def test_domains_listing_filters_by_status(self, client, campaign, make_domain):
        make_domain("https://a.test")
        make_domain("https://b.test", status=DomainStatus.FAILED)

        response = client.get(f"/api/v1/campaigns/{campaign.id}/domains/", {"status": "failed"})

        assert response.status_code == 200
        assert [d["url"] for d in response.data["results"]] == ["https://b.test"]

    def test_start_requires_domains(self, client):
        draft = Campaign.objects.create(name="Empty")

        response = client.post(f"/api/v1/campaigns/{draft.id}/start/")

        assert response.status_code == 400
        assert response.data == {"error": "Campaign has no domains"}

    def test_start_and_pause(self, client, make_domain):
        draft = Campaign.objects.create(name="Ready")
        make_domain("https://a.test", owner=draft)

        response = client.post(f"/api/v1/campaigns/{draft.id}/start/")
        assert response.status_code == 200
        assert response.data["status"] == CampaignStatus.RUNNING

        response = client.post(f"/api/v1/campaigns/{draft.id}/pause/")
        assert response.data["status"] == CampaignStatus.PAUSED

    def test_stats(self, client, campaign, make_domain):
        make_domain("https://a.test")
        make_domain("https://b.test", status=DomainStatus.COMPLETED)

        response = client.get(f"/api/v1/campaigns/{campaign.id}/stats/")

        assert response.status_code == 200
        assert response.data["domains"]["total"] == 2
        assert response.data["domains"]["pending"] == 1
        assert response.data["domains"]["completed"] == 1
        assert response.data["submissions"]["form"]["success"] == 0

    def test_logs_newest_first(self, client, campaign, make_domain):
        domain = make_domain("https://a.test")
        create_campaign_log(campaign.id, "Processing domain: https://a.test", LogLevel.INFO, domain.id)
        create_campaign_log(campaign.id, "Campaign COMPLETED", LogLevel.SUCCESS)

        response = client.get(f"/api/v1/campaigns/{campaign.id}/logs/", {"limit": 5})

        assert response.status_code == 200
        assert [entry["message"] for entry in response.data] == [
            "Campaign COMPLETED",
            "Processing domain: https://a.test",
        ]
        assert response.data[1]["domain_url"] == "https://a.test"
        assert response.data[0]["domain_url"] is None

    @pytest.mark.parametrize("limit, expected", [("abc", 2), ("-5", 1), ("0", 1), ("5000", 2)])
    def test_logs_limit_is_clamped(self, client, campaign, limit, expected):
        create_campaign_log(campaign.id, "Processing domain: https://a.test", LogLevel.INFO)
        create_campaign_log(campaign.id, "Campaign COMPLETED", LogLevel.SUCCESS)

        response = client.get(f"/api/v1/campaigns/{campaign.id}/logs/", {"limit": limit})

        assert response.status_code == 200
        assert len(response.data) == expected
        assert response.data[0]["message"] == "Campaign COMPLETED"
