#!/usr/bin/env python3
"""
Wealth RM CLI

Command-line access to the client ranking engine.

Usage:
    python cli.py rank clients.json [--tasks F] [--appointments F] [--alerts F]
                                    [--semantic F] [--query Q] [--recent-only]
                                    [--pending-only] [--min-aum N] [--max-aum N]
                                    [--tiers gold silver] [--risk moderate]
                                    [--health-scores] [--json]
    python cli.py touch <client_id>   # Record a client as opened
    python cli.py recent              # Recently opened clients
    python cli.py health clients.json [--tasks F] [--appointments F] [--alerts F] [--json]
    python cli.py init                # Create the app home directories
"""

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from wealth_rm import config, paths
from wealth_rm.clients import Feeds, FilterOptions, get_engine
from wealth_rm.clients.filters import count_active_filters
from wealth_rm.clients.models import iter_clients
from wealth_rm.intelligence.relationship_health import score_book, summarize_relationship_health
from wealth_rm.observability import configure_logging

logger = logging.getLogger(__name__)


def _load_json(path: str | None) -> list:
    """Read a JSON feed file; a missing path is an empty feed."""
    if not path:
        return []
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return []
    return data if isinstance(data, list) else []


def _load_feeds(args) -> Feeds:
    return Feeds.from_raw(
        _load_json(args.tasks),
        _load_json(args.appointments),
        _load_json(args.alerts),
    )


def _format_aum(value: float | None) -> str:
    """Lakh (1,00,000) units, as the dashboard shows AUM."""
    if not value:
        return "-"
    return f"₹{value / 100000:.1f}L"


def cmd_rank(args):
    """Ranked, filtered client list."""
    clients = _load_json(args.clients)
    feeds = _load_feeds(args)

    defaults = FilterOptions.defaults()
    options = FilterOptions(
        min_aum=args.min_aum if args.min_aum is not None else defaults.min_aum,
        max_aum=args.max_aum if args.max_aum is not None else defaults.max_aum,
        included_tiers=frozenset(t.lower() for t in args.tiers) if args.tiers else defaults.included_tiers,
        risk_profiles=frozenset(r.lower() for r in args.risk) if args.risk else defaults.risk_profiles,
        pending_only=args.pending_only,
    )

    health = None
    if args.health_scores:
        health = score_book(list(iter_clients(clients)), feeds.tasks, feeds.appointments, feeds.alerts)

    ranked = get_engine().rank(
        clients,
        feeds=feeds,
        semantic_results=_load_json(args.semantic),
        query=args.query or "",
        filter_options=options,
        recent_only=args.recent_only,
        health=health,
    )

    if args.json:
        print(json.dumps([r.to_dict() for r in ranked], indent=2, default=str))
        return 0

    active = count_active_filters(options)
    print(f"## Clients ({len(ranked)} of {len(clients)})" + (f" - {active} filters" if active else ""))
    if not ranked:
        print("No clients match the current search and filters.")
        return 0

    for i, item in enumerate(ranked, 1):
        flag = "!" if item.attention_flag else " "
        tier = (item.client.tier or "-")[:8]
        print(
            f"{i:>3} {flag} {item.client.full_name[:30]:<30} {tier:<8} "
            f"{_format_aum(item.client.aum_value):>10}  {item.status}"
        )
    return 0


def cmd_touch(args):
    """Record a client as opened."""
    recent = get_engine().touch_recent(args.client_id)
    print(f"Recorded {args.client_id} ({len(recent)}/{config.RECENT_CAPACITY} recent)")
    return 0


def cmd_recent(args):
    """Recently opened clients, newest first."""
    snapshot = get_engine().recency_store.snapshot()
    if not snapshot:
        print("No recently viewed clients")
        return 0

    print(f"## Recently viewed ({len(snapshot)})\n")
    for key, stamp in sorted(snapshot.items(), key=lambda kv: -kv[1]):
        opened = datetime.fromtimestamp(stamp / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M")
        print(f"- {key}  {opened} UTC")
    return 0


def cmd_health(args):
    """Relationship health per client and for the book."""
    clients = list(iter_clients(_load_json(args.clients)))
    feeds = _load_feeds(args)
    records = score_book(clients, feeds.tasks, feeds.appointments, feeds.alerts)
    summary = summarize_relationship_health(records)

    if args.json:
        print(
            json.dumps(
                {"records": [r.to_dict() for r in records], "summary": summary.to_dict()},
                indent=2,
                default=str,
            )
        )
        return 0

    print(f"## Relationship health ({len(records)} clients, average {summary.average_score})\n")
    for record in sorted(records, key=lambda r: r.score):
        focus = f" - {record.recommended_focus}" if record.recommended_focus else ""
        print(f"- {record.client_name}: {record.score} {record.status_label}{focus}")
    return 0


def cmd_init(args):
    """Create the app home and report where state lives."""
    print(f"  ✓ {paths.data_dir()}")
    print(f"  recently viewed: {paths.recency_path()}")
    return 0


def _add_feed_args(p):
    p.add_argument("clients", help="Client list JSON file")
    p.add_argument("--tasks", help="Tasks JSON file")
    p.add_argument("--appointments", help="Appointments JSON file")
    p.add_argument("--alerts", help="Portfolio alerts JSON file")
    p.add_argument("--json", action="store_true", help="Emit JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wealth RM client ranking CLI")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # rank
    p = subparsers.add_parser("rank", help="Ranked, filtered client list")
    _add_feed_args(p)
    p.add_argument("--semantic", help="Semantic search results JSON file")
    p.add_argument("--query", help="Search query")
    p.add_argument("--recent-only", action="store_true", help="Only recently viewed clients")
    p.add_argument("--pending-only", action="store_true", help="Only incomplete profiles")
    p.add_argument("--min-aum", type=float, help="Minimum AUM")
    p.add_argument("--max-aum", type=float, help="Maximum AUM")
    p.add_argument("--tiers", nargs="+", help="Tiers to include")
    p.add_argument("--risk", nargs="+", help="Risk profiles to include")
    p.add_argument("--health-scores", action="store_true", help="Rank by relationship health")

    # touch
    p = subparsers.add_parser("touch", help="Record a client as opened")
    p.add_argument("client_id", help="Client id")

    # recent
    subparsers.add_parser("recent", help="Recently viewed clients")

    # health
    p = subparsers.add_parser("health", help="Relationship health report")
    _add_feed_args(p)

    # init
    subparsers.add_parser("init", help="Create app home directories")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_format=False)

    commands = {
        "rank": cmd_rank,
        "touch": cmd_touch,
        "recent": cmd_recent,
        "health": cmd_health,
        "init": cmd_init,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
