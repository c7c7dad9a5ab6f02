"""
Settings for the feed reader, loaded from a YAML file.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

from rss_reader.constants import (
    DB_NAME,
    DEFAULT_DATE_FORMATS,
    FETCH_TIMEOUT_SECONDS,
    INDEX_DB_NAME,
    MIN_AGE_DAYS,
    UNIT_AGE_MARGIN_DAYS,
    USER_AGENT,
)
from util.constants import DEFAULT_CONFIG_PATH
from util.logging_util import setup_logger

logger = setup_logger(__name__)


@dataclass
class RecencyPolicy:
    """Domain guards for the recency boost ``1 / -ln(age_days)``.

    Ages are floored at ``min_age_days`` (covers zero and future dates) and
    kept at least ``unit_margin_days`` away from one day, where the boost
    is undefined.
    """
    min_age_days: float = MIN_AGE_DAYS
    unit_margin_days: float = UNIT_AGE_MARGIN_DAYS

    def __post_init__(self):
        if self.min_age_days <= 0:
            raise ValueError("min_age_days must be positive")
        if not 0 < self.unit_margin_days < 1:
            raise ValueError("unit_margin_days must be between 0 and 1")


@dataclass
class Settings:
    """Everything the CLI needs to open storage and run a sync or search."""
    database_path: str = DB_NAME
    index_path: str = INDEX_DB_NAME
    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS
    max_workers: Optional[int] = None
    user_agent: str = USER_AGENT
    date_formats: List[str] = field(default_factory=lambda: list(DEFAULT_DATE_FORMATS))
    verbose: bool = False
    recency: RecencyPolicy = field(default_factory=RecencyPolicy)

    def __post_init__(self):
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be positive")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not self.date_formats:
            raise ValueError("date_formats must not be empty")


def settings_from_dict(data: dict) -> Settings:
    """Build Settings from a parsed YAML mapping.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    values = dict(data)
    recency = values.pop("recency", None) or {}
    unknown_recency = set(recency) - {f.name for f in fields(RecencyPolicy)}
    if unknown_recency:
        raise ValueError(f"Unknown recency settings: {', '.join(sorted(unknown_recency))}")

    return Settings(recency=RecencyPolicy(**recency), **values)


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML, falling back to defaults if the file is missing."""
    if not config_path.exists():
        logger.debug(f"No config at {config_path}, using defaults")
        return Settings()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping of settings")
    return settings_from_dict(data)
