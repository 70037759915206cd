# core/settings/base.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreflowBaseSettings(BaseSettings):
    """
    Base for every settings section.
    Values come from the process environment first, then from ./.env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
