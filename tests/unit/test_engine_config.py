"""
Engine Configuration Unit Tests
"""

import logging

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from database import DEFAULT_DATABASE_URL
from errors import ValidationError
from startup import EngineConfig, configure_logging, LOG_FORMAT

ENV_VARS = [
    "ENGINE_MAX_PARALLEL",
    "ENGINE_TASK_TIMEOUT_S",
    "ENGINE_STORE_BACKEND",
    "DATABASE_URL",
    "LLM_API_URL",
    "LLM_API_KEY",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEngineConfig:

    def test_defaults(self, clean_env):
        config = EngineConfig.from_env(load_env_file=False)

        assert config.max_parallel is None
        assert config.task_timeout_seconds is None
        assert config.store_backend == "memory"
        assert config.database_url == DEFAULT_DATABASE_URL
        assert config.log_level == "INFO"

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("ENGINE_MAX_PARALLEL", "4")
        clean_env.setenv("ENGINE_TASK_TIMEOUT_S", "30.5")
        clean_env.setenv("ENGINE_STORE_BACKEND", "Database")
        clean_env.setenv("DATABASE_URL", "sqlite+aiosqlite:///engine.db")
        clean_env.setenv("LLM_MODEL", "gpt-4o-mini")
        clean_env.setenv("LLM_TEMPERATURE", "0.2")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = EngineConfig.from_env(load_env_file=False)

        assert config.max_parallel == 4
        assert config.task_timeout_seconds == 30.5
        assert config.store_backend == "database"
        assert config.database_url == "sqlite+aiosqlite:///engine.db"
        assert config.llm_model == "gpt-4o-mini"
        assert config.llm_temperature == 0.2
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("name,value", [
        ("ENGINE_MAX_PARALLEL", "many"),
        ("ENGINE_MAX_PARALLEL", "0"),
        ("ENGINE_TASK_TIMEOUT_S", "-1"),
        ("LLM_MAX_TOKENS", "1.5"),
        ("ENGINE_STORE_BACKEND", "redis"),
    ])
    def test_invalid_values(self, clean_env, name, value):
        clean_env.setenv(name, value)

        with pytest.raises(ValidationError) as exc_info:
            EngineConfig.from_env(load_env_file=False)

        assert exc_info.value.details["field"] == name


class TestConfigureLogging:

    def test_sets_level_and_format(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("warning")

            assert root.level == logging.WARNING
            assert root.handlers[0].formatter._fmt == LOG_FORMAT
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)

    def test_unknown_level(self):
        with pytest.raises(ValidationError):
            configure_logging("chatty")
