# Wealth RM - Client Ranking & Filtering Engine
"""
Exports for cli.py, api/ and other consumers.
"""

from .clients import count_active_filters, rank, touch_recent
from .intelligence.relationship_health import (
    calculate_relationship_health,
    summarize_relationship_health,
)

__all__ = [
    "rank",
    "count_active_filters",
    "touch_recent",
    "calculate_relationship_health",
    "summarize_relationship_health",
]
