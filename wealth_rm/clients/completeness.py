"""
Profile completeness for the "pending profiles only" filter.
"""

from .models import Client

INCOMPLETE_STATUS = "incomplete"


def missing_profile_fields(client: Client) -> list[str]:
    """Core profile fields that are absent or empty."""
    missing = []
    if not client.aum_value:
        missing.append("aumValue")
    if not client.investment_horizon:
        missing.append("investmentHorizon")
    if not client.net_worth:
        missing.append("netWorth")
    return missing


def is_incomplete(client: Client) -> bool:
    """Server marks the profile incomplete, or a core field is missing."""
    if client.profile_status == INCOMPLETE_STATUS:
        return True
    return bool(missing_profile_fields(client))
