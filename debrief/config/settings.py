"""
Dashboard configuration.

Loaded from .env / environment:
- DATABASE_URL: asyncpg DSN (only needed when reading from the database)
- DEBRIEF_FOCUS_LIMIT: max suggested focus items (default 3)
- DEBRIEF_CANT_MISS_THRESHOLD: hit rate below which a can't-miss is flagged (default 0.5)
- DEBRIEF_TOPIC_VOTE_MIN: votes needed before a topic is suggested (default 2)
- DEBRIEF_LOG_LEVEL: logging level for the CLI (default INFO)
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebriefConfig:
    """Tunables for the focus heuristic and the runners."""

    focus_limit: int = 3
    cant_miss_threshold: float = 0.5
    topic_vote_min: int = 2
    database_url: Optional[str] = None
    log_level: str = "INFO"


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: '{raw}'. Must be an integer")
    if value < 0:
        raise ValueError(f"Invalid {name}: '{raw}'. Must not be negative")
    return value


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"Invalid {name}: '{raw}'. Must be a number")
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"Invalid {name}: '{raw}'. Must be between 0 and 1")
    return value


def load_config() -> DebriefConfig:
    """
    Build a DebriefConfig from the current environment.

    Raises:
        ValueError: If a numeric setting cannot be parsed or is out of range
    """
    config = DebriefConfig(
        focus_limit=_read_int("DEBRIEF_FOCUS_LIMIT", 3),
        cant_miss_threshold=_read_float("DEBRIEF_CANT_MISS_THRESHOLD", 0.5),
        topic_vote_min=_read_int("DEBRIEF_TOPIC_VOTE_MIN", 2),
        database_url=os.getenv("DATABASE_URL") or None,
        log_level=os.getenv("DEBRIEF_LOG_LEVEL", "INFO").upper(),
    )
    logger.debug(
        f"Debrief config: focus_limit={config.focus_limit}, "
        f"cant_miss_threshold={config.cant_miss_threshold}, "
        f"topic_vote_min={config.topic_vote_min}"
    )
    return config

