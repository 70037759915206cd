# Settings package
from core.settings.app import AppSettings, get_app_settings
from core.settings.sections import LoggingSettings, RedisSettings, WorkflowSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "RedisSettings",
    "WorkflowSettings",
    "get_app_settings",
]
