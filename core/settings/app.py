# core/settings/app.py
from functools import lru_cache

from pydantic import BaseModel, Field

# Sections
from core.settings.sections.logging import LoggingSettings
from core.settings.sections.redis import RedisSettings
from core.settings.sections.workflow import WorkflowSettings


class AppSettings(BaseModel):
    """
    Central application settings aggregator.
    Sections are loaded lazily through default factories, so nothing is read
    from the environment at import time.
    """

    workflow: WorkflowSettings = Field(default_factory=WorkflowSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache()
def get_app_settings() -> AppSettings:
    """Return cached global settings for the entire app."""
    return AppSettings()
