# apps/common/enums.py

from django.db import models


class CampaignStatus(models.TextChoices):
    """Lifecycle of a campaign. COMPLETED is derived from its domains."""
    DRAFT = "draft", "Draft"
    RUNNING = "running", "Running"
    PAUSED = "paused", "Paused"
    COMPLETED = "completed", "Completed"


class DomainStatus(models.TextChoices):
    """Status states for a domain moving through the pipeline."""
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class SubmissionType(models.TextChoices):
    FORM = "form", "Form"
    COMMENT = "comment", "Comment"


class SubmissionStatus(models.TextChoices):
    """Outcome of a submission attempt.

    SUBMITTED means the form was sent but the response page carried no
    clear success or error indicator.
    """
    SUCCESS = "success", "Success"
    SUBMITTED = "submitted", "Submitted"
    FAILED = "failed", "Failed"


class LogLevel(models.TextChoices):
    """Levels for the live campaign log."""
    INFO = "info", "Info"
    SUCCESS = "success", "Success"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"
    STEP = "step", "Step"
