from core.settings.sections.logging import LoggingSettings
from core.settings.sections.redis import RedisSettings
from core.settings.sections.workflow import WorkflowSettings

__all__ = ["LoggingSettings", "RedisSettings", "WorkflowSettings"]
