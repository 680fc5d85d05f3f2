"""
Client and signal-feed records consumed by the ranking engine.

Feeds arrive as JSON lists with camelCase keys (as served by the dashboard
backend). Each record type has a `from_dict` that also accepts snake_case
keys and raises MalformedRecordError when the minimal shape is missing;
`parse_records` turns a whole feed into records, skipping bad entries.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from wealth_rm import config

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """A feed record is missing identity or is not an object."""


# =============================================================================
# Coercion helpers
# =============================================================================


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First non-None value among keys (camelCase first, then snake_case)."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def client_key(client_id: Any) -> str:
    """Canonical string key for a client id (JSON ids may be int or str)."""
    return str(client_id)


def _has_identity(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, int)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts datetime/date objects, ISO-8601 strings (a trailing Z is fine)
    and epoch milliseconds. Anything unparseable is None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, int | float):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def as_utc(moment: datetime | None) -> datetime | None:
    """Naive datetimes are read as UTC."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=UTC)


def _text(value: Any) -> str | None:
    """Wire feeds send phone numbers as JSON numbers; keep every contact field a str."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    return str(value)


def _to_bool(value: Any, default: bool = False) -> bool:
    """Strict flag parsing: "false", "0" and "off" are False, not truthy strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes", "on"):
            return True
        if text in ("false", "0", "no", "off", ""):
            return False
    return default


def _label_set(value: Any, default: frozenset[str]) -> frozenset[str]:
    """A list of labels, or a single label sent as a bare string."""
    if value is None:
        return default
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Iterable) or isinstance(value, Mapping):
        return default
    return frozenset(str(item).strip().lower() for item in value)


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _to_int(value: Any, default: int = 0) -> int:
    return int(_to_float(value, float(default)))


def _label(value: Any, unset: str) -> str | None:
    """Lower-cased label, or None when blank or the explicit 'unset' marker."""
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    if not text or text == unset:
        return None
    return text


def _require_mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise MalformedRecordError(f"{kind} record is not an object: {type(data).__name__}")
    return data


# =============================================================================
# Client
# =============================================================================


@dataclass
class AttentionReason:
    """Server-supplied reason a client may need follow-up."""

    category: str
    message: str
    severity: str = "info"

    @classmethod
    def from_dict(cls, data: Any) -> "AttentionReason":
        data = _require_mapping(data, "attention reason")
        return cls(
            category=str(data.get("category") or ""),
            message=str(data.get("message") or ""),
            severity=str(data.get("severity") or "info"),
        )

    def to_dict(self) -> dict:
        return {"category": self.category, "message": self.message, "severity": self.severity}


@dataclass
class Client:
    """A client record as listed by the backend. Read-only input."""

    id: int | str
    full_name: str = ""
    tier: str | None = None  # platinum | gold | silver | None (unknown)
    risk_profile: str | None = None  # conservative | moderate | aggressive | None
    aum_value: float | None = None
    phone: str | None = None
    email: str | None = None
    last_contact_date: datetime | None = None
    last_transaction_date: datetime | None = None
    alert_count: int = 0
    attention_reasons: list[AttentionReason] = field(default_factory=list)
    profile_status: str | None = None
    investment_horizon: str | None = None
    net_worth: float | None = None
    one_year_return: float | None = None

    def __post_init__(self):
        self.full_name = "" if self.full_name is None else str(self.full_name)
        self.phone = _text(self.phone)
        self.email = _text(self.email)
        self.last_contact_date = as_utc(self.last_contact_date)
        self.last_transaction_date = as_utc(self.last_transaction_date)

    @property
    def key(self) -> str:
        return client_key(self.id)

    @property
    def aum(self) -> float:
        """AUM with absent/invalid values read as 0."""
        return self.aum_value if self.aum_value is not None else 0.0

    @classmethod
    def from_dict(cls, data: Any) -> "Client":
        data = _require_mapping(data, "client")
        client_id = data.get("id")
        if not _has_identity(client_id):
            raise MalformedRecordError("client record has no id")

        reasons = []
        for raw_reason in _pick(data, "attentionReasons", "attention_reasons", default=[]) or []:
            try:
                reasons.append(AttentionReason.from_dict(raw_reason))
            except MalformedRecordError:
                continue

        raw_aum = _pick(data, "aumValue", "aum_value")
        raw_net_worth = _pick(data, "netWorth", "net_worth")
        raw_return = _pick(data, "oneYearReturn", "one_year_return", "yearlyPerformance")
        horizon = _pick(data, "investmentHorizon", "investment_horizon")

        return cls(
            id=client_id,
            full_name=str(_pick(data, "fullName", "full_name", default="")),
            tier=_label(data.get("tier"), "unknown"),
            risk_profile=_label(_pick(data, "riskProfile", "risk_profile"), "unspecified"),
            aum_value=None if raw_aum is None else max(0.0, _to_float(raw_aum)),
            phone=_text(_pick(data, "phone")),
            email=_text(_pick(data, "email")),
            last_contact_date=parse_timestamp(_pick(data, "lastContactDate", "last_contact_date")),
            last_transaction_date=parse_timestamp(
                _pick(data, "lastTransactionDate", "last_transaction_date")
            ),
            alert_count=max(0, _to_int(_pick(data, "alertCount", "alert_count", default=0))),
            attention_reasons=reasons,
            profile_status=_pick(data, "profileStatus", "profile_status"),
            investment_horizon=str(horizon) if horizon not in (None, "") else None,
            net_worth=None if raw_net_worth in (None, "") else _to_float(raw_net_worth),
            one_year_return=None if raw_return is None else _to_float(raw_return),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "tier": self.tier,
            "riskProfile": self.risk_profile,
            "aumValue": self.aum_value,
            "phone": self.phone,
            "email": self.email,
            "lastContactDate": self.last_contact_date.isoformat() if self.last_contact_date else None,
            "lastTransactionDate": (
                self.last_transaction_date.isoformat() if self.last_transaction_date else None
            ),
            "alertCount": self.alert_count,
            "attentionReasons": [r.to_dict() for r in self.attention_reasons],
            "profileStatus": self.profile_status,
            "investmentHorizon": self.investment_horizon,
            "netWorth": self.net_worth,
        }


# =============================================================================
# Auxiliary feeds
# =============================================================================


def _feed_client_id(data: Mapping[str, Any], kind: str) -> int | str:
    client_id = _pick(data, "clientId", "client_id")
    if not _has_identity(client_id):
        raise MalformedRecordError(f"{kind} record has no clientId")
    return client_id


@dataclass
class Task:
    client_id: int | str
    due_date: datetime | None = None
    completed: bool = False
    priority: str | None = None

    def __post_init__(self):
        self.due_date = as_utc(self.due_date)

    @classmethod
    def from_dict(cls, data: Any) -> "Task":
        data = _require_mapping(data, "task")
        priority = data.get("priority")
        return cls(
            client_id=_feed_client_id(data, "task"),
            due_date=parse_timestamp(_pick(data, "dueDate", "due_date")),
            completed=bool(data.get("completed")),
            priority=str(priority).lower() if priority else None,
        )


@dataclass
class Appointment:
    client_id: int | str
    start_time: datetime | None = None

    def __post_init__(self):
        self.start_time = as_utc(self.start_time)

    @classmethod
    def from_dict(cls, data: Any) -> "Appointment":
        data = _require_mapping(data, "appointment")
        return cls(
            client_id=_feed_client_id(data, "appointment"),
            start_time=parse_timestamp(_pick(data, "startTime", "start_time")),
        )


@dataclass
class Alert:
    client_id: int | str
    severity: str = "medium"
    title: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Alert":
        data = _require_mapping(data, "alert")
        return cls(
            client_id=_feed_client_id(data, "alert"),
            severity=str(data.get("severity") or "medium").lower(),
            title=str(data.get("title") or ""),
        )

    @property
    def is_complaint(self) -> bool:
        return "complaint" in self.title.lower()


def parse_records(raw: Any, record_type: type) -> list:
    """
    Parse a feed into records of `record_type`.

    A feed that is not a list is treated as empty; entries failing the
    record's shape check are skipped.
    """
    if not isinstance(raw, list | tuple):
        if raw is not None:
            logger.debug("Ignoring %s feed of type %s", record_type.__name__, type(raw).__name__)
        return []

    records = []
    for item in raw:
        if isinstance(item, record_type):
            records.append(item)
            continue
        try:
            records.append(record_type.from_dict(item))
        except MalformedRecordError as e:
            logger.debug("Skipping malformed %s record: %s", record_type.__name__, e)
    return records


@dataclass
class Feeds:
    """The task, appointment and alert feeds, grouped per client on demand."""

    tasks: list[Task] = field(default_factory=list)
    appointments: list[Appointment] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)

    @classmethod
    def from_raw(cls, tasks: Any = None, appointments: Any = None, alerts: Any = None) -> "Feeds":
        return cls(
            tasks=parse_records(tasks, Task),
            appointments=parse_records(appointments, Appointment),
            alerts=parse_records(alerts, Alert),
        )

    @classmethod
    def coerce(cls, value: Any) -> "Feeds":
        """Accept a Feeds, a {tasks, appointments, alerts} mapping, or None."""
        if isinstance(value, Feeds):
            return value
        if isinstance(value, Mapping):
            return cls.from_raw(value.get("tasks"), value.get("appointments"), value.get("alerts"))
        return cls()

    def for_client(self, client_id: Any) -> "Feeds":
        return self.by_client().get(client_key(client_id), Feeds())

    def by_client(self) -> dict[str, "Feeds"]:
        """Split every feed by client id in one pass."""
        grouped: dict[str, Feeds] = {}
        for task in self.tasks:
            grouped.setdefault(client_key(task.client_id), Feeds()).tasks.append(task)
        for appointment in self.appointments:
            grouped.setdefault(client_key(appointment.client_id), Feeds()).appointments.append(
                appointment
            )
        for alert in self.alerts:
            grouped.setdefault(client_key(alert.client_id), Feeds()).alerts.append(alert)
        return grouped


# =============================================================================
# Semantic search / health
# =============================================================================


@dataclass
class SemanticSearchResult:
    client_id: int | str
    score: float
    reasons: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "SemanticSearchResult":
        data = _require_mapping(data, "semantic result")
        client_id = _pick(data, "clientId", "client_id")
        if not _has_identity(client_id):
            raise MalformedRecordError("semantic result has no clientId")
        return cls(
            client_id=client_id,
            score=_to_float(data.get("score")),
            reasons=[str(r) for r in data.get("reasons") or []],
        )


@dataclass
class SemanticMatch:
    """A semantic result plus its position in the upstream result list."""

    client_id: int | str
    score: float
    reasons: list[str]
    index: int

    def to_dict(self) -> dict:
        return {
            "clientId": self.client_id,
            "score": self.score,
            "reasons": list(self.reasons),
            "index": self.index,
        }


HEALTH_STATUS_ALIASES = {"on-track": "steady", "at_risk": "at-risk", "atrisk": "at-risk"}


@dataclass
class RelationshipHealth:
    """Externally computed relationship health (lower score = worse)."""

    client_id: int | str
    score: float
    status: str  # strong | steady | watch | at-risk

    @classmethod
    def from_dict(cls, data: Any) -> "RelationshipHealth":
        data = _require_mapping(data, "health")
        client_id = _pick(data, "clientId", "client_id")
        if not _has_identity(client_id):
            raise MalformedRecordError("health record has no clientId")
        status = str(data.get("status") or "").strip().lower()
        return cls(
            client_id=client_id,
            score=_to_float(data.get("score")),
            status=HEALTH_STATUS_ALIASES.get(status, status),
        )


# =============================================================================
# Filter options
# =============================================================================

FILTER_FIELDS = ("min_aum", "max_aum", "included_tiers", "risk_profiles", "pending_only")


@dataclass(frozen=True)
class FilterOptions:
    """User-selected filter panel state. `recent_only` is held separately."""

    min_aum: float = 0.0
    max_aum: float = config.ABSOLUTE_MAX_AUM
    included_tiers: frozenset[str] = frozenset(config.ALL_TIERS)
    risk_profiles: frozenset[str] = frozenset(config.ALL_RISK_PROFILES)
    pending_only: bool = False

    @classmethod
    def defaults(cls) -> "FilterOptions":
        """Practice-wide defaults: full AUM range, every tier and risk profile."""
        return cls()

    reset = defaults

    @classmethod
    def from_dict(cls, data: Any) -> "FilterOptions":
        if not isinstance(data, Mapping):
            return cls.defaults()
        base = cls.defaults()
        tiers = _pick(data, "includedTiers", "included_tiers")
        risks = _pick(data, "riskProfiles", "risk_profiles")
        return cls(
            min_aum=_to_float(_pick(data, "minAum", "min_aum"), base.min_aum),
            max_aum=_to_float(_pick(data, "maxAum", "max_aum"), base.max_aum),
            included_tiers=_label_set(tiers, base.included_tiers),
            risk_profiles=_label_set(risks, base.risk_profiles),
            pending_only=_to_bool(_pick(data, "pendingOnly", "pending_only"), base.pending_only),
        )

    def to_dict(self) -> dict:
        return {
            "minAum": self.min_aum,
            "maxAum": self.max_aum,
            "includedTiers": [t for t in config.ALL_TIERS if t in self.included_tiers]
            + sorted(self.included_tiers - set(config.ALL_TIERS)),
            "riskProfiles": [r for r in config.ALL_RISK_PROFILES if r in self.risk_profiles]
            + sorted(self.risk_profiles - set(config.ALL_RISK_PROFILES)),
            "pendingOnly": self.pending_only,
        }

    def is_default(self, field_name: str, defaults: "FilterOptions | None" = None) -> bool:
        """
        Whether one dimension is at (or no narrower than) its default.

        A min below the default min, a max above the default max, or a
        superset of the default tier/risk sets all count as default.
        """
        defaults = defaults or FilterOptions.defaults()
        if field_name == "min_aum":
            return self.min_aum <= defaults.min_aum
        if field_name == "max_aum":
            return self.max_aum >= defaults.max_aum
        if field_name == "included_tiers":
            return self.included_tiers >= defaults.included_tiers
        if field_name == "risk_profiles":
            return self.risk_profiles >= defaults.risk_profiles
        if field_name == "pending_only":
            return self.pending_only == defaults.pending_only
        raise KeyError(field_name)


# =============================================================================
# Output
# =============================================================================


@dataclass
class RankedClient:
    """A client that passed the filters, with the signals used to place it."""

    client: Client
    attention_flag: bool = False
    status: str = ""
    semantic_match: SemanticMatch | None = None
    health_score: float | None = None
    recent_at: int | None = None

    @property
    def id(self) -> int | str:
        return self.client.id

    def to_dict(self) -> dict:
        data = self.client.to_dict()
        data.update(
            {
                "attentionFlag": self.attention_flag,
                "status": self.status,
                "semanticMatch": self.semantic_match.to_dict() if self.semantic_match else None,
                "healthScore": self.health_score,
                "recentAt": self.recent_at,
            }
        )
        return data


def iter_clients(raw: Any) -> Iterable[Client]:
    """Parse the client collection, skipping malformed records and repeated ids."""
    seen: set[str] = set()
    for client in parse_records(raw, Client):
        if not _has_identity(client.id):
            logger.debug("Skipping client without an id")
            continue
        if client.key in seen:
            logger.debug("Skipping duplicate client id %s", client.id)
            continue
        seen.add(client.key)
        yield client
