"""Runtime configuration."""
import logging
import os
from dataclasses import dataclass
from typing import Optional

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class MapperConfig:
    """Engine settings."""

    strict_types: bool = True  # Check values against target annotations
    log_level: str = "WARNING"

    def __post_init__(self):
        """Normalise and validate the log level."""
        self.log_level = str(self.log_level).strip().upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(
                f"Unknown log level '{self.log_level}'. "
                f"Use DEBUG, INFO, WARNING, ERROR or CRITICAL"
            )

    @classmethod
    def from_env(cls) -> "MapperConfig":
        """Load config from environment variables."""
        return cls(
            strict_types=os.getenv("NANOMAPPER_STRICT_TYPES", "true").strip().lower() in _TRUE_VALUES,
            log_level=os.getenv("NANOMAPPER_LOG_LEVEL", "WARNING"),
        )


def configure_logging(config: Optional[MapperConfig] = None) -> logging.Logger:
    """Apply the configured log level to the package logger."""
    config = config or app_config
    logger = logging.getLogger("nanomapper")
    logger.setLevel(config.log_level)
    return logger


# Global instance
app_config = MapperConfig.from_env()
