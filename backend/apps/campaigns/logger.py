# apps/campaigns/logger.py

"""
Campaign-scoped progress log. Rows land in CampaignLog for the live view and
every message is mirrored to stdlib logging.
"""

import logging

from apps.common.enums import LogLevel

from .services import create_campaign_log

logger = logging.getLogger(__name__)


LEVEL_MAP = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.STEP: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class BaseCampaignLogger:
    def __init__(self, campaign_id: int, domain_id: int | None = None):
        self.campaign_id = campaign_id
        self.domain_id = domain_id

    def for_domain(self, domain_id: int | None) -> "BaseCampaignLogger":
        return self.__class__(self.campaign_id, domain_id)

    def log(self, level: str, message: str) -> None:
        raise NotImplementedError

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def success(self, message: str) -> None:
        self.log(LogLevel.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.log(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def step(self, message: str) -> None:
        self.log(LogLevel.STEP, message)


class CampaignLogger(BaseCampaignLogger):
    """Writes CampaignLog rows. Never raises."""

    def log(self, level: str, message: str) -> None:
        logger.log(
            LEVEL_MAP.get(level, logging.INFO),
            f"[campaign {self.campaign_id}] {message}",
        )

        try:
            create_campaign_log(
                campaign_id=self.campaign_id,
                message=message,
                level=level,
                domain_id=self.domain_id,
            )
        except Exception as e:
            logger.error(f"Failed to save campaign log: {e}")


class NullCampaignLogger(BaseCampaignLogger):
    def log(self, level: str, message: str) -> None:
        pass


class RecordingCampaignLogger(BaseCampaignLogger):
    """Keeps (level, message, domain_id) tuples in memory."""

    def __init__(self, campaign_id: int = 0, domain_id: int | None = None, records: list | None = None):
        super().__init__(campaign_id, domain_id)
        self.records: list[tuple[str, str, int | None]] = records if records is not None else []

    def for_domain(self, domain_id: int | None) -> "RecordingCampaignLogger":
        return RecordingCampaignLogger(self.campaign_id, domain_id, records=self.records)

    def log(self, level: str, message: str) -> None:
        self.records.append((str(level), message, self.domain_id))

    def messages(self, level: str | None = None) -> list[str]:
        return [message for lvl, message, _ in self.records if level is None or lvl == level]
