"""
Planner configuration.

Settings come from the process environment, optionally seeded from a .env
file in the working directory:

    PLANET_WORKERS      initial number of pool workers (default 0)
    PLANET_EPSILON      occlusion tolerance for segment/polygon tests (default 0.001)
    PLANET_STRICT       raise on malformed polygons instead of skipping them (default true)
    PLANET_LOG_LEVEL    logging level name (default INFO)
"""

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

# Accepted error term compensating for floating point inaccuracy in intersect predicates
DEFAULT_EPSILON = 0.001

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Resolved planner settings."""
    workers: int = 0
    epsilon: float = DEFAULT_EPSILON
    strict: bool = True
    log_level: str = "INFO"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_settings(dotenv: bool = True) -> Settings:
    """
    Read settings from the environment.

    Args:
        dotenv: Load the nearest .env file from the working directory up
            (existing variables are not overridden)

    Returns:
        Settings instance
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    workers = int(os.getenv("PLANET_WORKERS", "0"))
    if workers < 0:
        raise ValueError(f"PLANET_WORKERS must be >= 0, got {workers}")

    epsilon = float(os.getenv("PLANET_EPSILON", str(DEFAULT_EPSILON)))
    if epsilon < 0:
        raise ValueError(f"PLANET_EPSILON must be >= 0, got {epsilon}")

    return Settings(
        workers=workers,
        epsilon=epsilon,
        strict=_env_bool("PLANET_STRICT", True),
        log_level=os.getenv("PLANET_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings = None) -> None:
    """Apply the configured log level to the root logger."""
    settings = settings or load_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level)
