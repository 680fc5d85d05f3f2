"""
Pydantic request/response models for the client ranking API.

Request bodies use the dashboard's camelCase field names; feed entries are
passed through as raw objects and validated by the engine, which skips
malformed records instead of rejecting the whole request.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wealth_rm import config

# ==== Envelope ====
# Shape: {status, data, computed_at, params}


class RankingResponse(BaseModel):
    """Standard envelope for ranking endpoints."""

    status: str = Field(description="ok or error")
    data: Any = Field(default=None, description="Response payload")
    computed_at: str = Field(description="ISO timestamp of computation")
    params: dict[str, Any] = Field(default_factory=dict, description="Echo of request params")
    error: str | None = Field(default=None, description="Error message if status=error")
    error_code: str | None = Field(default=None, description="Error code if status=error")


# ==== Filters ====


class FilterOptionsModel(BaseModel):
    """Filter panel state."""

    model_config = ConfigDict(populate_by_name=True)

    min_aum: float = Field(default=0.0, ge=0, alias="minAum")
    max_aum: float = Field(default=config.ABSOLUTE_MAX_AUM, ge=0, alias="maxAum")
    included_tiers: list[str] = Field(default_factory=lambda: list(config.ALL_TIERS), alias="includedTiers")
    risk_profiles: list[str] = Field(
        default_factory=lambda: list(config.ALL_RISK_PROFILES), alias="riskProfiles"
    )
    pending_only: bool = Field(default=False, alias="pendingOnly")

    @model_validator(mode="after")
    def _check_range(self) -> "FilterOptionsModel":
        if self.min_aum > self.max_aum:
            raise ValueError("minAum must not exceed maxAum")
        return self

    def to_options_dict(self) -> dict:
        return self.model_dump(by_alias=True)


# ==== Requests ====


class FeedsModel(BaseModel):
    """Client collection plus the auxiliary feeds, as fetched by the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    clients: list[Any] = Field(default_factory=list)
    tasks: list[Any] = Field(default_factory=list)
    appointments: list[Any] = Field(default_factory=list)
    alerts: list[Any] = Field(default_factory=list)


class RankRequest(FeedsModel):
    """Body of POST /rank."""

    semantic_results: list[Any] = Field(default_factory=list, alias="semanticResults")
    query: str = ""
    filters: FilterOptionsModel = Field(default_factory=FilterOptionsModel)
    recent_only: bool = Field(default=False, alias="recentOnly")
    health: list[Any] | None = Field(default=None, description="Precomputed health records")
    use_health_scores: bool = Field(
        default=False,
        alias="useHealthScores",
        description="Score relationship health from the feeds and rank with it",
    )


class HealthRequest(FeedsModel):
    """Body of POST /health."""


# ==== Mutation Result ====


class TouchResponse(BaseModel):
    success: bool = Field(description="Whether the visit was recorded")
    client_id: str = Field(alias="clientId")
    recent_count: int = Field(alias="recentCount")

    model_config = ConfigDict(populate_by_name=True)


class ActiveFilterCountResponse(BaseModel):
    count: int = Field(description="Filter dimensions narrowed from defaults")
