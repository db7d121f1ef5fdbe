import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Campaign",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("status", models.CharField(
                    choices=[("draft", "Draft"), ("running", "Running"), ("paused", "Paused"), ("completed", "Completed")],
                    db_index=True, default="draft", max_length=20,
                )),
                ("submit_forms", models.BooleanField(default=False)),
                ("submit_comments", models.BooleanField(default=False)),
                ("sender_name", models.CharField(blank=True, max_length=255)),
                ("sender_email", models.EmailField(blank=True, max_length=254)),
                ("sender_phone", models.CharField(blank=True, max_length=50)),
                ("sender_website", models.URLField(blank=True, max_length=512)),
                ("message_subject", models.CharField(blank=True, default="Contact Inquiry", max_length=255)),
                ("message_template", models.TextField(blank=True)),
                ("max_pages_per_domain", models.PositiveIntegerField(default=20, help_text="Max pages to crawl per domain")),
                ("target_forms_count", models.PositiveIntegerField(
                    default=0, help_text="Successful form submissions per domain (0 = every form found)",
                )),
                ("target_comments_count", models.PositiveIntegerField(
                    default=0, help_text="Comment submissions per domain (0 = every comment section found)",
                )),
                ("crawl_min_delay", models.FloatField(default=2.0, help_text="Seconds")),
                ("crawl_max_delay", models.FloatField(default=4.0, help_text="Seconds")),
                ("extract_contacts", models.BooleanField(default=True)),
                ("fresh_context_per_submission", models.BooleanField(
                    default=True, help_text="Open a brand-new isolated browser context for every submission",
                )),
                ("forms_submitted", models.PositiveIntegerField(default=0)),
                ("comments_submitted", models.PositiveIntegerField(default=0)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Domain",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("url", models.URLField(max_length=2048)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("processing", "Processing"), ("completed", "Completed"), ("failed", "Failed")],
                    db_index=True, default="pending", max_length=20,
                )),
                ("pages_discovered", models.PositiveIntegerField(default=0)),
                ("sitemaps_found", models.PositiveIntegerField(default=0)),
                ("has_robots_txt", models.BooleanField(default=False)),
                ("robots_txt", models.TextField(blank=True)),
                ("error_message", models.TextField(blank=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("campaign", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="domains", to="campaigns.campaign",
                )),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="domain_status_created_idx"),
                    models.Index(fields=["campaign", "status"], name="domain_campaign_status_idx"),
                    models.Index(fields=["status", "updated_at"], name="domain_status_updated_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("campaign", "url"), name="unique_domain_per_campaign"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PageDiscovery",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("url", models.URLField(max_length=2048)),
                ("title", models.CharField(blank=True, max_length=512)),
                ("has_form", models.BooleanField(default=False)),
                ("has_comments", models.BooleanField(default=False)),
                ("form_fields", models.JSONField(blank=True, null=True)),
                ("comment_fields", models.JSONField(blank=True, null=True)),
                ("campaign", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="pages", to="campaigns.campaign",
                )),
                ("domain", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="pages", to="campaigns.domain",
                )),
            ],
            options={
                "verbose_name_plural": "Page Discoveries",
                "indexes": [
                    models.Index(fields=["campaign", "has_form"], name="page_campaign_form_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("campaign", "domain", "url"), name="unique_page_per_domain"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExtractedContact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=50)),
                ("extracted_from", models.URLField(blank=True, max_length=2048)),
                ("campaign", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="contacts", to="campaigns.campaign",
                )),
                ("domain", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="contacts", to="campaigns.domain",
                )),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("campaign", "domain"), name="unique_contact_per_domain"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SubmissionLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("form", "Form"), ("comment", "Comment")], max_length=20)),
                ("status", models.CharField(
                    choices=[("success", "Success"), ("submitted", "Submitted"), ("failed", "Failed")],
                    db_index=True, max_length=20,
                )),
                ("submitted_data", models.JSONField(blank=True, default=dict)),
                ("response_message", models.TextField(blank=True)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("campaign", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="submissions", to="campaigns.campaign",
                )),
                ("page", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="submissions", to="campaigns.pagediscovery",
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["campaign", "type", "status"], name="submission_campaign_type_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CampaignLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("level", models.CharField(
                    choices=[("info", "Info"), ("success", "Success"), ("warning", "Warning"), ("error", "Error"), ("step", "Step")],
                    default="info", max_length=20,
                )),
                ("message", models.TextField()),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("campaign", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="logs", to="campaigns.campaign",
                )),
                ("domain", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="logs", to="campaigns.domain",
                )),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
