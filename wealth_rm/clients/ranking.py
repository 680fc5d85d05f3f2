"""
Client Ranking Engine.

Turns the client collection plus its signal feeds into the filtered,
ordered list shown on the client page.

Ordering is a short-circuiting rule stack; each level only applies while
the previous ones tie:

1. semantic  (semantic mode)  matched first, higher score first, then
                              upstream result position
2. recency   (recent only)    most recently opened first
3. attention (always)         clients needing attention first
4. tie-break (always)         both have a health score: lower score first;
                              then larger AUM first

The two user-invoked modes (semantic search, recently viewed) therefore
take precedence over the default urgency/value ordering. Remaining ties
keep input order, so the result is a deterministic function of the inputs
and the recency snapshot.
"""

import functools
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from wealth_rm import config

from .attention import AttentionClassifier, AttentionSignal
from .filters import count_active_filters as _count_active_filters
from .filters import is_semantic_mode, matches
from .models import (
    Client,
    Feeds,
    FilterOptions,
    MalformedRecordError,
    RankedClient,
    RelationshipHealth,
    SemanticMatch,
    SemanticSearchResult,
    as_utc,
    client_key,
    iter_clients,
    parse_records,
)
from .recency_store import RecencyStore, get_default_store
from .thresholds import RankingThresholds, get_thresholds

logger = logging.getLogger(__name__)


@dataclass
class RankingContext:
    """Everything the comparator needs, computed once per ranking pass."""

    semantic_mode: bool = False
    semantic_map: dict[str, SemanticMatch] = field(default_factory=dict)
    recent_only: bool = False
    recency_map: dict[str, int] = field(default_factory=dict)
    signals: dict[str, AttentionSignal] = field(default_factory=dict)
    positions: dict[str, int] = field(default_factory=dict)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_clients(a: Client, b: Client, context: RankingContext) -> int:
    """Total-order comparator over two clients that passed the filters."""
    ka, kb = a.key, b.key

    if context.semantic_mode:
        ma = context.semantic_map.get(ka)
        mb = context.semantic_map.get(kb)
        if ma and mb:
            if ma.score != mb.score:
                return _sign(mb.score - ma.score)
            if ma.index != mb.index:
                return _sign(ma.index - mb.index)
        elif ma:
            return -1
        elif mb:
            return 1

    if context.recent_only:
        ra = context.recency_map.get(ka, 0)
        rb = context.recency_map.get(kb, 0)
        if ra != rb:
            return _sign(rb - ra)

    sa = context.signals.get(ka)
    sb = context.signals.get(kb)
    flag_a = bool(sa and sa.needs_attention)
    flag_b = bool(sb and sb.needs_attention)
    if flag_a != flag_b:
        return -1 if flag_a else 1

    health_a = sa.health_score if sa else None
    health_b = sb.health_score if sb else None
    if health_a is not None and health_b is not None and health_a != health_b:
        return _sign(health_a - health_b)
    if a.aum != b.aum:
        return _sign(b.aum - a.aum)

    return _sign(context.positions.get(ka, 0) - context.positions.get(kb, 0))


def build_semantic_map(results: Any) -> dict[str, SemanticMatch]:
    """
    client id -> match, with `index` = position in the upstream result list.

    A client listed more than once takes its last entry, score and index both.
    """
    semantic_map: dict[str, SemanticMatch] = {}
    for index, result in enumerate(parse_records(results, SemanticSearchResult)):
        semantic_map[client_key(result.client_id)] = SemanticMatch(
            client_id=result.client_id,
            score=result.score,
            reasons=result.reasons,
            index=index,
        )
    return semantic_map


def build_health_map(health: Any) -> dict[str, RelationshipHealth]:
    """Accepts a list of records or an id-keyed mapping of records."""
    if health is None:
        return {}
    items: Iterable[Any] = health.values() if isinstance(health, Mapping) else health
    if not isinstance(items, Iterable) or isinstance(items, str | bytes):
        return {}

    health_map: dict[str, RelationshipHealth] = {}
    for item in items:
        if hasattr(item, "as_health"):
            item = item.as_health()
        if not isinstance(item, RelationshipHealth):
            try:
                item = RelationshipHealth.from_dict(item)
            except MalformedRecordError as e:
                logger.debug("Skipping malformed health record: %s", e)
                continue
        health_map[client_key(item.client_id)] = item
    return health_map


class RankingEngine:
    """Filters and orders clients; holds the recency store it reads from."""

    def __init__(
        self,
        recency_store: RecencyStore | None = None,
        classifier: AttentionClassifier | None = None,
        thresholds: RankingThresholds | None = None,
        absolute_max_aum: float = config.ABSOLUTE_MAX_AUM,
    ) -> None:
        self.thresholds = thresholds or get_thresholds()
        self.recency_store = recency_store if recency_store is not None else RecencyStore()
        self.classifier = classifier or AttentionClassifier(self.thresholds)
        self.absolute_max_aum = absolute_max_aum

    def rank(
        self,
        clients: Any,
        feeds: Feeds | Mapping[str, Any] | None = None,
        semantic_results: Any = None,
        query: str = "",
        filter_options: FilterOptions | Mapping[str, Any] | None = None,
        recent_only: bool = False,
        health: Any = None,
        now: datetime | None = None,
    ) -> list[RankedClient]:
        """
        Filter and order `clients`.

        Args:
            clients: client records (Client objects or dicts); malformed
                records and repeated ids are skipped
            feeds: tasks/appointments/alerts (Feeds or mapping), used for
                each client's card status line; ordering does not read them
            semantic_results: upstream semantic search results, best first
            query: raw search box text
            filter_options: FilterOptions or its dict form; None = defaults
            recent_only: restrict to (and order by) recently opened clients
            health: optional relationship-health records; clients with one
                use the health variant of the attention rule
            now: reference time for contact staleness (default: now, UTC)

        Returns:
            RankedClient list, never raising on degenerate input.
        """
        feeds_by_client = Feeds.coerce(feeds).by_client()
        options = self._coerce_options(filter_options)
        query = query if isinstance(query, str) else ""
        now = as_utc(now) or datetime.now(UTC)

        client_list = list(iter_clients(clients))
        if not client_list:
            return []

        semantic_map = build_semantic_map(semantic_results)
        semantic_mode = is_semantic_mode(
            query, semantic_map, self.thresholds.semantic_min_query_length
        )
        recency_map = self.recency_store.snapshot()
        health_map = build_health_map(health)

        filtered = [
            c
            for c in client_list
            if matches(
                c,
                options,
                query=query,
                semantic_mode=semantic_mode,
                semantic_map=semantic_map,
                recent_only=recent_only,
                recency_map=recency_map,
                absolute_max=self.absolute_max_aum,
            )
        ]

        context = RankingContext(
            semantic_mode=semantic_mode,
            semantic_map=semantic_map,
            recent_only=recent_only,
            recency_map=recency_map,
            signals={
                c.key: self.classifier.classify(c, health=health_map.get(c.key), now=now)
                for c in filtered
            },
            positions={c.key: i for i, c in enumerate(client_list)},
        )
        ordered = sorted(
            filtered, key=functools.cmp_to_key(lambda a, b: compare_clients(a, b, context))
        )

        logger.info(
            "Ranked %d of %d clients",
            len(ordered),
            len(client_list),
            extra={
                "semantic_mode": semantic_mode,
                "recent_only": recent_only,
                "active_filters": _count_active_filters(options),
            },
        )

        return [
            RankedClient(
                client=c,
                attention_flag=context.signals[c.key].needs_attention,
                status=self._describe(c, feeds_by_client.get(c.key), now),
                semantic_match=semantic_map.get(c.key) if semantic_mode else None,
                health_score=context.signals[c.key].health_score,
                recent_at=recency_map.get(c.key),
            )
            for c in ordered
        ]

    def count_active_filters(self, filter_options: FilterOptions | Mapping[str, Any] | None) -> int:
        return _count_active_filters(self._coerce_options(filter_options))

    def touch_recent(self, client_id: Any) -> dict[str, int]:
        return self.recency_store.touch(client_id)

    def _describe(self, client: Client, feeds: Feeds | None, now: datetime) -> str:
        feeds = feeds or Feeds()
        return self.classifier.describe_status(
            client, feeds.tasks, feeds.appointments, feeds.alerts, now=now
        )

    @staticmethod
    def _coerce_options(filter_options: Any) -> FilterOptions:
        if isinstance(filter_options, FilterOptions):
            return filter_options
        return FilterOptions.from_dict(filter_options)


_engine: RankingEngine | None = None


def get_engine() -> RankingEngine:
    """Process-wide engine reading the default (file-backed) recency store."""
    global _engine
    if _engine is None:
        _engine = RankingEngine(recency_store=get_default_store())
    return _engine


def reset_engine() -> None:
    global _engine
    _engine = None


def rank(
    clients: Any,
    feeds: Feeds | Mapping[str, Any] | None = None,
    semantic_results: Any = None,
    query: str = "",
    filter_options: FilterOptions | Mapping[str, Any] | None = None,
    recent_only: bool = False,
    health: Any = None,
    now: datetime | None = None,
) -> list[RankedClient]:
    """Rank with the default engine. See RankingEngine.rank."""
    return get_engine().rank(
        clients,
        feeds=feeds,
        semantic_results=semantic_results,
        query=query,
        filter_options=filter_options,
        recent_only=recent_only,
        health=health,
        now=now,
    )


def count_active_filters(filter_options: FilterOptions | Mapping[str, Any] | None) -> int:
    """Badge count of filter dimensions that differ from the defaults."""
    return _count_active_filters(RankingEngine._coerce_options(filter_options))
