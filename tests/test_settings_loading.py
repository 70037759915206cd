"""
Test settings loading from the environment.

Every key documented in .env.example must map onto exactly one settings
field alias, and each section must honour its environment variables.
"""
from __future__ import annotations

from pathlib import Path
import re

import pytest
from pydantic import ValidationError

from core.settings import AppSettings, LoggingSettings, RedisSettings, WorkflowSettings, get_app_settings
from orchestration import InMemoryLockManager, RedisLockManager, create_default_engine


def _parse_env_keys(env_path: Path) -> list[str]:
    text = env_path.read_text(encoding="utf-8", errors="replace")
    keys: list[str] = []
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        if s.startswith("export "):
            s = s[len("export ") :].strip()
        if "=" not in s:
            continue
        k, _ = s.split("=", 1)
        k = k.strip()
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", k):
            continue
        if k not in keys:
            keys.append(k)
    return keys


def _collect_alias_map(model_cls) -> dict[str, str]:
    """
    Return map: ENV_ALIAS -> field_name for a settings class.
    """
    return {field.alias: name for name, field in model_cls.model_fields.items() if field.alias}


def test_every_documented_env_key_is_mapped():
    repo_root = Path(__file__).resolve().parents[1]
    keys = _parse_env_keys(repo_root / ".env.example")

    alias_to_section: dict[str, str] = {}
    for section in (WorkflowSettings, RedisSettings, LoggingSettings):
        for alias in _collect_alias_map(section):
            if alias in alias_to_section:
                pytest.fail(f"Duplicate env alias mapped twice: {alias}")
            alias_to_section[alias] = section.__name__

    missing = [k for k in keys if k not in alias_to_section]
    assert keys
    assert not missing, f"Unmapped env keys: {missing}"


def test_workflow_settings_defaults():
    settings = WorkflowSettings(_env_file=None)

    assert settings.default_timeout_seconds == 300.0
    assert settings.lock_wait_seconds == 30.0
    assert settings.lock_backend == "memory"
    assert settings.execution_history_size == 1000


def test_workflow_settings_from_environment(monkeypatch):
    monkeypatch.setenv("WORKFLOW_DEFAULT_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("WORKFLOW_LOCK_WAIT_SECONDS", "0")
    monkeypatch.setenv("WORKFLOW_LOCK_BACKEND", "redis")
    monkeypatch.setenv("WORKFLOW_EXECUTION_HISTORY_SIZE", "25")

    settings = WorkflowSettings(_env_file=None)

    assert settings.default_timeout_seconds == 12.5
    assert settings.lock_wait_seconds == 0.0
    assert settings.lock_backend == "redis"
    assert settings.execution_history_size == 25


@pytest.mark.parametrize(
    "key, value",
    [
        ("WORKFLOW_LOCK_BACKEND", "zookeeper"),
        ("WORKFLOW_DEFAULT_TIMEOUT_SECONDS", "0"),
        ("WORKFLOW_EXECUTION_HISTORY_SIZE", "0"),
    ],
)
def test_invalid_workflow_settings_are_rejected(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValidationError):
        WorkflowSettings(_env_file=None)


def test_redis_settings_from_environment(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://cache:6380/2")
    monkeypatch.setenv("REDIS_LOCK_PREFIX", "shop:lock:")

    settings = RedisSettings(_env_file=None)

    assert settings.url == "redis://cache:6380/2"
    assert settings.lock_prefix == "shop:lock:"


def test_log_level_is_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert LoggingSettings(_env_file=None).level == "DEBUG"


def test_unknown_log_level_is_rejected(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")

    with pytest.raises(ValidationError):
        LoggingSettings(_env_file=None)


def test_app_settings_are_cached():
    get_app_settings.cache_clear()
    try:
        assert get_app_settings() is get_app_settings()
    finally:
        get_app_settings.cache_clear()


def test_default_engine_uses_memory_locks():
    settings = AppSettings(
        workflow=WorkflowSettings(_env_file=None),
        redis=RedisSettings(_env_file=None),
        logging=LoggingSettings(_env_file=None),
    )

    engine = create_default_engine(settings)

    assert isinstance(engine.lock_manager, InMemoryLockManager)


def test_redis_backend_selects_redis_locks(monkeypatch):
    monkeypatch.setenv("WORKFLOW_LOCK_BACKEND", "redis")
    settings = AppSettings(
        workflow=WorkflowSettings(_env_file=None),
        redis=RedisSettings(_env_file=None),
        logging=LoggingSettings(_env_file=None),
    )

    engine = create_default_engine(settings)

    assert isinstance(engine.lock_manager, RedisLockManager)
