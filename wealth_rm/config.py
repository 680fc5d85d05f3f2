"""
Centralized configuration for the Wealth RM ranking engine.

Values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Filters
# ============================================================

ABSOLUTE_MAX_AUM: float = float(os.environ.get("WEALTH_RM_ABSOLUTE_MAX_AUM", "100000000"))
"""Nominal top of the AUM range slider (10 Cr). A max_aum at or above this is unbounded."""

ALL_TIERS: tuple[str, ...] = ("platinum", "gold", "silver")
"""Tiers selectable in the filter panel, in display order."""

ALL_RISK_PROFILES: tuple[str, ...] = ("conservative", "moderate", "aggressive")
"""Risk profiles selectable in the filter panel, in display order."""

# ============================================================
# Recently viewed
# ============================================================

RECENT_CAPACITY: int = int(os.environ.get("WEALTH_RM_RECENT_CAPACITY", "50"))
"""How many recently opened clients are remembered."""

# ============================================================
# Logging / API
# ============================================================

LOG_LEVEL: str = os.environ.get("WEALTH_RM_LOG_LEVEL", "INFO")
"""Root log level used by cli.py and api/server.py."""

API_TOKEN_ENV = "WEALTH_RM_API_TOKEN"
"""Env var holding the bearer token for the HTTP surface. Unset means auth disabled."""
