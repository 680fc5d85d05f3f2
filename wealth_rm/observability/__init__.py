"""
Observability: structured logging and request ids.

    from wealth_rm.observability import configure_logging, get_logger

    configure_logging("DEBUG", json_format=False)
    logger = get_logger(__name__)
"""

from .context import RequestContext, get_request_id
from .logging import CorrelationIdMiddleware, HumanFormatter, JSONFormatter, configure_logging, get_logger

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    "CorrelationIdMiddleware",
    # Context
    "RequestContext",
    "get_request_id",
]
