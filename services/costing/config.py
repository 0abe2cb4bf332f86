"""
Costing engine configuration.

Environment variables and constants for tariff caching and the holiday
calendar. Values are read when the config object is created, so .env must
be loaded first (main.py does this before importing anything else).

Malformed values are logged and replaced by their defaults; a typo in .env
must not take pricing down.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_TARIFF_CACHE_TTL_SECONDS = 300.0


def _parse_ttl(raw: str) -> float:
    try:
        ttl = float(raw)
    except ValueError:
        ttl = -1.0
    if ttl < 0:
        logger.warning(
            f"Invalid TARIFF_CACHE_TTL_SECONDS {raw!r}, "
            f"using {DEFAULT_TARIFF_CACHE_TTL_SECONDS}"
        )
        return DEFAULT_TARIFF_CACHE_TTL_SECONDS
    return ttl


def _parse_dates(raw: str) -> List[date]:
    dates = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            dates.append(date.fromisoformat(chunk))
        except ValueError:
            logger.warning(f"Ignoring invalid EXTRA_HOLIDAYS entry {chunk!r} (expected YYYY-MM-DD)")
    return dates


@dataclass
class CostingConfig:
    """Configuration for the costing engine."""

    # Seconds a fetched tariff set is reused before refetching
    tariff_cache_ttl_seconds: float = DEFAULT_TARIFF_CACHE_TTL_SECONDS

    # Extra holidays on top of the national calendar (e.g. patron saint days)
    extra_holidays: List[date] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "CostingConfig":
        """
        Create config from environment variables.

        TARIFF_CACHE_TTL_SECONDS: cache lifetime (default 300)
        EXTRA_HOLIDAYS: comma-separated ISO dates, e.g. "2024-12-07,2025-12-07"
        """
        return cls(
            tariff_cache_ttl_seconds=_parse_ttl(
                os.getenv("TARIFF_CACHE_TTL_SECONDS", str(DEFAULT_TARIFF_CACHE_TTL_SECONDS))
            ),
            extra_holidays=_parse_dates(os.getenv("EXTRA_HOLIDAYS", "")),
        )
