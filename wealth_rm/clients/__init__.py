"""
Client list ranking and filtering.

    from wealth_rm.clients import rank, count_active_filters, touch_recent

    ranked = rank(clients, feeds={"tasks": tasks}, query="retire", filter_options=opts)
"""

from .attention import AttentionClassifier, AttentionSignal, ContactUrgency
from .completeness import is_incomplete, missing_profile_fields
from .filters import matches
from .models import (
    Alert,
    Appointment,
    Client,
    Feeds,
    FilterOptions,
    MalformedRecordError,
    RankedClient,
    RelationshipHealth,
    SemanticMatch,
    SemanticSearchResult,
    Task,
)
from .ranking import RankingEngine, compare_clients, count_active_filters, get_engine, rank
from .recency_store import JsonFileStorage, MemoryStorage, RecencyStore, touch_recent

__all__ = [
    # Entry points
    "rank",
    "count_active_filters",
    "touch_recent",
    # Engine
    "RankingEngine",
    "get_engine",
    "compare_clients",
    "matches",
    "AttentionClassifier",
    "AttentionSignal",
    "ContactUrgency",
    "is_incomplete",
    "missing_profile_fields",
    "RecencyStore",
    "JsonFileStorage",
    "MemoryStorage",
    # Records
    "Client",
    "Task",
    "Appointment",
    "Alert",
    "Feeds",
    "FilterOptions",
    "SemanticSearchResult",
    "SemanticMatch",
    "RelationshipHealth",
    "RankedClient",
    "MalformedRecordError",
]
