"""
Ranking thresholds, loaded from thresholds.yaml next to this module.

A missing or unreadable file falls back to the built-in defaults.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

THRESHOLDS_PATH = Path(__file__).parent / "thresholds.yaml"


@dataclass(frozen=True)
class RankingThresholds:
    stale_contact_days: int = 90
    missing_contact_days: int = 999
    contact_soon_days: int = 75
    upcoming_meeting_days: int = 7
    semantic_min_query_length: int = 3

    @classmethod
    def from_config(cls, config: dict) -> "RankingThresholds":
        """Build from the nested YAML layout; unknown or missing keys keep defaults."""
        defaults = cls()
        attention = config.get("attention") or {}
        urgency = config.get("contact_urgency") or {}
        search = config.get("search") or {}
        return cls(
            stale_contact_days=int(attention.get("stale_contact_days", defaults.stale_contact_days)),
            missing_contact_days=int(
                attention.get("missing_contact_days", defaults.missing_contact_days)
            ),
            contact_soon_days=int(urgency.get("contact_soon_days", defaults.contact_soon_days)),
            upcoming_meeting_days=int(
                urgency.get("upcoming_meeting_days", defaults.upcoming_meeting_days)
            ),
            semantic_min_query_length=int(
                search.get("semantic_min_query_length", defaults.semantic_min_query_length)
            ),
        )


def load_thresholds(path: Path | None = None) -> RankingThresholds:
    """Load thresholds from YAML."""
    path = path or THRESHOLDS_PATH
    if not path.exists():
        return RankingThresholds()

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ValueError(f"expected a mapping, got {type(config).__name__}")
        return RankingThresholds.from_config(config)
    except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
        logger.warning("Failed to load %s, using defaults: %s", path, e)
        return RankingThresholds()


_current: RankingThresholds | None = None


def get_thresholds() -> RankingThresholds:
    global _current
    if _current is None:
        _current = load_thresholds()
    return _current


def reload_thresholds() -> RankingThresholds:
    """Re-read thresholds.yaml (call after editing it)."""
    global _current
    _current = load_thresholds()
    return _current
