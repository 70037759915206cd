from pydantic import Field, field_validator

from core.settings.base import StoreflowBaseSettings


class LoggingSettings(StoreflowBaseSettings):
    level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return value
