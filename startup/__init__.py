"""
Startup - engine configuration and logging setup.
"""

from .engine_config import EngineConfig, configure_logging, LOG_FORMAT

__all__ = [
    "EngineConfig",
    "configure_logging",
    "LOG_FORMAT",
]
