from pydantic import Field

from core.settings.base import StoreflowBaseSettings


class RedisSettings(StoreflowBaseSettings):
    """
    Redis connection used by the distributed lock backend.
    """

    url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    lock_prefix: str = Field(default="storeflow:lock:", alias="REDIS_LOCK_PREFIX")
