"""
EngineConfig - runtime configuration

Reads the engine settings from the environment (after loading .env) and
sets up console logging.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from database.connection import DEFAULT_DATABASE_URL
from errors import ValidationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

T = TypeVar("T")


def _read(name: str, cast: Callable[[str], T], default: Optional[T] = None) -> Optional[T]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid value for {name}: {raw!r}", field=name) from e


@dataclass
class EngineConfig:
    """Engine settings."""
    max_parallel: Optional[int] = None
    task_timeout_seconds: Optional[float] = None
    store_backend: str = "memory"
    database_url: str = DEFAULT_DATABASE_URL
    llm_api_url: Optional[str] = None
    llm_api_key: str = ""
    llm_model: Optional[str] = None
    llm_temperature: Optional[float] = None
    llm_max_tokens: Optional[int] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "EngineConfig":
        """
        Build the config from environment variables.

        Raises:
            ValidationError: a numeric variable does not parse or is not positive
        """
        if load_env_file:
            load_dotenv()

        config = cls(
            max_parallel=_read("ENGINE_MAX_PARALLEL", int),
            task_timeout_seconds=_read("ENGINE_TASK_TIMEOUT_S", float),
            store_backend=_read("ENGINE_STORE_BACKEND", str, "memory").lower(),
            database_url=_read("DATABASE_URL", str, DEFAULT_DATABASE_URL),
            llm_api_url=_read("LLM_API_URL", str),
            llm_api_key=_read("LLM_API_KEY", str, ""),
            llm_model=_read("LLM_MODEL", str),
            llm_temperature=_read("LLM_TEMPERATURE", float),
            llm_max_tokens=_read("LLM_MAX_TOKENS", int),
            log_level=_read("LOG_LEVEL", str, "INFO").upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.max_parallel is not None and self.max_parallel < 1:
            raise ValidationError("ENGINE_MAX_PARALLEL must be at least 1", field="ENGINE_MAX_PARALLEL")
        if self.task_timeout_seconds is not None and self.task_timeout_seconds <= 0:
            raise ValidationError("ENGINE_TASK_TIMEOUT_S must be positive", field="ENGINE_TASK_TIMEOUT_S")
        if self.store_backend not in ("memory", "database"):
            raise ValidationError(
                f"ENGINE_STORE_BACKEND must be 'memory' or 'database', got {self.store_backend!r}",
                field="ENGINE_STORE_BACKEND",
            )


def configure_logging(level: str = "INFO") -> None:
    """Install a console handler on the root logger."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValidationError(f"Unknown log level: {level}", field="LOG_LEVEL")

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
