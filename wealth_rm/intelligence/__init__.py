"""
Client intelligence derived from the dashboard feeds.
"""

from .relationship_health import (
    HealthRecord,
    HealthSummary,
    calculate_relationship_health,
    score_book,
    summarize_relationship_health,
)

__all__ = [
    "HealthRecord",
    "HealthSummary",
    "calculate_relationship_health",
    "score_book",
    "summarize_relationship_health",
]
