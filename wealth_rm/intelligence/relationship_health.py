"""
Relationship Health — per-client health score from contact, task, alert,
performance and engagement signals.

Produces the external health records the ranking engine can use instead
of its contact/alert heuristic, and a book-level summary for the
dashboard.

Score weights:
    contact      0.30  days since last contact, linear over 120 days
    tasks        0.25  overdue and open high-priority tasks
    alerts       0.20  high/medium severity alerts, complaints
    performance  0.15  one-year portfolio return banded
    engagement   0.10  meetings in the last 30 days, upcoming meetings

Status bands: >=85 strong, >=70 steady, >=55 watch, else at-risk.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from wealth_rm.clients.models import (
    Alert,
    Appointment,
    Client,
    RelationshipHealth,
    Task,
    as_utc,
    client_key,
)

logger = logging.getLogger(__name__)

WEIGHTS = {
    "contact": 0.30,
    "tasks": 0.25,
    "alerts": 0.20,
    "performance": 0.15,
    "engagement": 0.10,
}

STATUS_LABELS = {
    "strong": "Strong",
    "steady": "Steady",
    "watch": "Watch",
    "at-risk": "At Risk",
}

STATUS_TONES = {
    "strong": "positive",
    "steady": "neutral",
    "watch": "caution",
    "at-risk": "critical",
}


@dataclass
class HealthSignals:
    """Raw signal counts behind a health score."""

    days_since_last_contact: int | None = None
    meetings_past_30_days: int = 0
    upcoming_meetings: int = 0
    overdue_tasks: int = 0
    open_high_priority_tasks: int = 0
    high_severity_alerts: int = 0
    medium_severity_alerts: int = 0
    has_complaints: bool = False
    performance_return: float | None = None

    def to_dict(self) -> dict:
        return {
            "daysSinceLastContact": self.days_since_last_contact,
            "meetingsPast30Days": self.meetings_past_30_days,
            "upcomingMeetings": self.upcoming_meetings,
            "overdueTasks": self.overdue_tasks,
            "openHighPriorityTasks": self.open_high_priority_tasks,
            "highSeverityAlerts": self.high_severity_alerts,
            "mediumSeverityAlerts": self.medium_severity_alerts,
            "hasComplaints": self.has_complaints,
            "performanceReturn": self.performance_return,
        }


@dataclass
class HealthRecord:
    """Computed relationship health for one client."""

    client_id: int | str
    client_name: str
    score: int
    status: str
    strengths: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    recommended_focus: str | None = None
    signals: HealthSignals = field(default_factory=HealthSignals)

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]

    def as_health(self) -> RelationshipHealth:
        """The slice of this record the ranking engine consumes."""
        return RelationshipHealth(client_id=self.client_id, score=self.score, status=self.status)

    def to_dict(self) -> dict:
        return {
            "clientId": self.client_id,
            "clientName": self.client_name,
            "score": self.score,
            "status": self.status,
            "statusLabel": self.status_label,
            "tone": STATUS_TONES[self.status],
            "strengths": list(self.strengths),
            "risks": list(self.risks),
            "recommendedFocus": self.recommended_focus,
            "signals": self.signals.to_dict(),
        }


@dataclass
class HealthSummary:
    """Book-level roll-up of health records."""

    average_score: int = 0
    dominant_status: str = "watch"
    distribution: dict[str, int] = field(default_factory=dict)
    strengths: list[dict] = field(default_factory=list)
    risks: list[dict] = field(default_factory=list)
    at_risk_clients: list[HealthRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "averageScore": self.average_score,
            "dominantStatus": self.dominant_status,
            "dominantStatusLabel": STATUS_LABELS[self.dominant_status],
            "distribution": dict(self.distribution),
            "strengths": list(self.strengths),
            "risks": list(self.risks),
            "atRiskClients": [r.to_dict() for r in self.at_risk_clients],
        }


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def status_from_score(score: float) -> str:
    """Map a 0-100 score to a status band."""
    if score >= 85:
        return "strong"
    if score >= 70:
        return "steady"
    if score >= 55:
        return "watch"
    return "at-risk"


def performance_score(one_year_return: float | None) -> float:
    """Band the one-year return; unknown performance scores 65."""
    if one_year_return is None:
        return 65.0
    if one_year_return >= 12:
        return 95.0
    if one_year_return >= 8:
        return 88.0
    if one_year_return >= 4:
        return 74.0
    if one_year_return >= 0:
        return 60.0
    if one_year_return >= -5:
        return 40.0
    return 25.0


def contact_score(days_since_last_contact: int | None) -> float:
    """100 at today, falling linearly to a floor of 10 at 120+ days. Unknown = 70."""
    if days_since_last_contact is None:
        return 70.0
    normalised = 100 - _clamp(days_since_last_contact, 0, 120) / 120 * 100
    return _clamp(normalised, 10, 100)


def task_score(overdue: int, open_high_priority: int) -> float:
    return 100.0 - min(overdue * 22 + open_high_priority * 12, 100)


def alert_score(high: int, medium: int, has_complaints: bool) -> float:
    complaint_penalty = 18 if has_complaints else 0
    return 100.0 - min(high * 28 + medium * 14 + complaint_penalty, 100)


def engagement_score(meetings_past_30_days: int, upcoming_meetings: int) -> float:
    base = _clamp(meetings_past_30_days / 4 * 100, 0, 100)
    if upcoming_meetings > 0:
        base = _clamp(base + 8, 0, 100)
    return base


def collect_signals(
    client: Client,
    tasks: list[Task],
    appointments: list[Appointment],
    alerts: list[Alert],
    now: datetime,
) -> HealthSignals:
    """Count the signals for `client` from the shared feeds."""
    key = client.key
    signals = HealthSignals(performance_return=client.one_year_return)

    if client.last_contact_date is not None:
        signals.days_since_last_contact = (now - client.last_contact_date).days

    month_ago = now - timedelta(days=30)
    week_ahead = now + timedelta(days=7)
    for appointment in appointments:
        if client_key(appointment.client_id) != key or appointment.start_time is None:
            continue
        if month_ago <= appointment.start_time <= now:
            signals.meetings_past_30_days += 1
        elif now < appointment.start_time <= week_ahead:
            signals.upcoming_meetings += 1

    for task in tasks:
        if client_key(task.client_id) != key or task.completed:
            continue
        if task.due_date is not None and task.due_date < now:
            signals.overdue_tasks += 1
        if task.priority in ("high", "urgent"):
            signals.open_high_priority_tasks += 1

    for alert in alerts:
        if client_key(alert.client_id) != key:
            continue
        if alert.severity in ("high", "critical"):
            signals.high_severity_alerts += 1
        elif alert.severity == "medium":
            signals.medium_severity_alerts += 1
        title = alert.title.lower()
        if "complaint" in title or "grievance" in title:
            signals.has_complaints = True

    return signals


def calculate_relationship_health(
    client: Client,
    tasks: list[Task] | None = None,
    appointments: list[Appointment] | None = None,
    alerts: list[Alert] | None = None,
    now: datetime | None = None,
) -> HealthRecord:
    """Score one client's relationship health."""
    now = as_utc(now) or datetime.now(UTC)
    s = collect_signals(client, tasks or [], appointments or [], alerts or [], now)

    weighted = (
        contact_score(s.days_since_last_contact) * WEIGHTS["contact"]
        + task_score(s.overdue_tasks, s.open_high_priority_tasks) * WEIGHTS["tasks"]
        + alert_score(s.high_severity_alerts, s.medium_severity_alerts, s.has_complaints)
        * WEIGHTS["alerts"]
        + performance_score(s.performance_return) * WEIGHTS["performance"]
        + engagement_score(s.meetings_past_30_days, s.upcoming_meetings) * WEIGHTS["engagement"]
    )
    score = _round_half_up(_clamp(weighted, 0, 100))
    status = status_from_score(score)

    strengths = []
    if s.meetings_past_30_days >= 2:
        strengths.append("Consistent engagement in the last month")
    if s.upcoming_meetings > 0:
        strengths.append("Upcoming touchpoints scheduled")
    if s.overdue_tasks == 0:
        strengths.append("No overdue tasks")
    if s.performance_return is not None and s.performance_return >= 6:
        strengths.append("Portfolio performance is delivering above benchmarks")

    risks = []
    if s.days_since_last_contact is not None and s.days_since_last_contact > 60:
        risks.append("Contact gap exceeds 60 days")
    if s.overdue_tasks > 0:
        plural = "s" if s.overdue_tasks > 1 else ""
        risks.append(f"{s.overdue_tasks} overdue task{plural}")
    if s.open_high_priority_tasks > 0:
        plural = "s" if s.open_high_priority_tasks > 1 else ""
        risks.append(f"{s.open_high_priority_tasks} high-priority task{plural} still open")
    if s.high_severity_alerts > 0:
        plural = "s" if s.high_severity_alerts > 1 else ""
        risks.append(f"Active high-severity alert{plural}")
    if s.has_complaints:
        risks.append("Recent complaint flagged by client")
    if s.performance_return is not None and s.performance_return < 0:
        risks.append("Portfolio returns are negative")

    if risks:
        focus = risks[0]
    elif status == "steady":
        focus = "Maintain cadence with proactive outreach"
    else:
        focus = None

    return HealthRecord(
        client_id=client.id,
        client_name=client.full_name or "Client",
        score=score,
        status=status,
        strengths=strengths,
        risks=risks,
        recommended_focus=focus,
        signals=s,
    )


def score_book(
    clients: list[Client],
    tasks: list[Task] | None = None,
    appointments: list[Appointment] | None = None,
    alerts: list[Alert] | None = None,
    now: datetime | None = None,
) -> list[HealthRecord]:
    """Health records for every client, in input order."""
    now = as_utc(now) or datetime.now(UTC)
    records = [calculate_relationship_health(c, tasks, appointments, alerts, now) for c in clients]
    logger.debug("Scored relationship health for %d clients", len(records))
    return records


def summarize_relationship_health(records: list[HealthRecord]) -> HealthSummary:
    """Average, status distribution, top strengths/risks, worst five watch/at-risk clients."""
    distribution = {status: 0 for status in STATUS_LABELS}
    if not records:
        return HealthSummary(distribution=distribution)

    average = _round_half_up(sum(r.score for r in records) / len(records))
    for record in records:
        distribution[record.status] += 1

    # ties resolve to the earlier status in band order
    dominant = max(distribution, key=lambda status: distribution[status])
    if distribution[dominant] == 0:
        dominant = status_from_score(average)

    strength_counts = Counter(s for r in records for s in r.strengths)
    risk_counts = Counter(s for r in records for s in r.risks)

    at_risk = sorted(
        (r for r in records if r.status in ("at-risk", "watch")),
        key=lambda r: r.score,
    )[:5]

    return HealthSummary(
        average_score=average,
        dominant_status=dominant,
        distribution=distribution,
        strengths=[{"label": label, "count": n} for label, n in strength_counts.most_common(5)],
        risks=[{"label": label, "count": n} for label, n in risk_counts.most_common(5)],
        at_risk_clients=at_risk,
    )
