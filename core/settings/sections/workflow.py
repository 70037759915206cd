from typing import Literal

from pydantic import Field

from core.settings.base import StoreflowBaseSettings


class WorkflowSettings(StoreflowBaseSettings):
    """
    Workflow engine settings.
    Loaded from environment / .env with exact variable name matching.
    """

    default_timeout_seconds: float = Field(
        default=300.0, gt=0, alias="WORKFLOW_DEFAULT_TIMEOUT_SECONDS"
    )
    lock_wait_seconds: float = Field(default=30.0, ge=0, alias="WORKFLOW_LOCK_WAIT_SECONDS")
    lock_ttl_seconds: float = Field(default=60.0, gt=0, alias="WORKFLOW_LOCK_TTL_SECONDS")
    lock_backend: Literal["memory", "redis"] = Field(
        default="memory", alias="WORKFLOW_LOCK_BACKEND"
    )
    execution_history_size: int = Field(
        default=1000, ge=1, alias="WORKFLOW_EXECUTION_HISTORY_SIZE"
    )
