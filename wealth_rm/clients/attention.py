"""
Attention Classifier — which clients need relationship-manager follow-up.

Two variants behind one interface, chosen per client:

- heuristic: stale contact (> 90 days, missing contact = 999 days) or any
  open portfolio alert. Ties among equally urgent clients break on AUM,
  largest first.
- health: an externally computed relationship-health record is available
  for the client. Status watch/at-risk flags attention and the health
  score (lower = worse) is the tie-break key.

The card status line (`describe_status`) is a separate, richer derivation
used for display only; it never affects ranking.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime

from .models import Alert, Appointment, Client, RelationshipHealth, Task, as_utc, client_key
from .thresholds import RankingThresholds, get_thresholds

logger = logging.getLogger(__name__)

ATTENTION_HEALTH_STATUSES = frozenset({"watch", "at-risk"})

# Card status labels, in priority order
STATUS_MEETING_TODAY = "Meeting Today"
STATUS_COMPLAINT = "Complaint"
STATUS_OVERDUE_TASKS = "Overdue Tasks"
STATUS_CONTACT_OVERDUE = "Contact Overdue"
STATUS_ON_TRACK = "On Track"

MS_PER_DAY = 86_400_000


def _now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    return now if now.tzinfo else now.replace(tzinfo=UTC)


def days_since(moment: datetime | None, now: datetime, missing: int = 999) -> int:
    """Whole days elapsed since `moment` (floored); `missing` when absent."""
    if moment is None:
        return missing
    elapsed_ms = (as_utc(now) - as_utc(moment)).total_seconds() * 1000
    return math.floor(elapsed_ms / MS_PER_DAY)


@dataclass(frozen=True)
class AttentionSignal:
    """Per-client attention outcome plus the key used to break ties."""

    needs_attention: bool
    source: str  # heuristic | health
    health_score: float | None = None
    days_since_contact: int | None = None


@dataclass(frozen=True)
class ContactUrgency:
    is_urgent: bool
    message: str = ""


class HeuristicAttention:
    """Contact-staleness / alert-count rule used when no health record exists."""

    def __init__(self, thresholds: RankingThresholds):
        self.thresholds = thresholds

    def evaluate(self, client: Client, now: datetime) -> AttentionSignal:
        days = days_since(client.last_contact_date, now, self.thresholds.missing_contact_days)
        flag = days > self.thresholds.stale_contact_days or client.alert_count > 0
        return AttentionSignal(needs_attention=flag, source="heuristic", days_since_contact=days)


class HealthScoreAttention:
    """Delegates to an externally computed relationship-health record."""

    def evaluate(self, client: Client, health: RelationshipHealth) -> AttentionSignal:
        return AttentionSignal(
            needs_attention=health.status in ATTENTION_HEALTH_STATUSES,
            source="health",
            health_score=health.score,
        )


class AttentionClassifier:
    """Selects the health variant when a record is supplied, else the heuristic."""

    def __init__(self, thresholds: RankingThresholds | None = None):
        self.thresholds = thresholds or get_thresholds()
        self.heuristic = HeuristicAttention(self.thresholds)
        self.health = HealthScoreAttention()

    def classify(
        self,
        client: Client,
        health: RelationshipHealth | None = None,
        now: datetime | None = None,
    ) -> AttentionSignal:
        if health is not None:
            return self.health.evaluate(client, health)
        return self.heuristic.evaluate(client, _now(now))

    def needs_attention(
        self,
        client: Client,
        tasks: list[Task] | None = None,
        appointments: list[Appointment] | None = None,
        alerts: list[Alert] | None = None,
        health: RelationshipHealth | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Boolean attention flag for one client.

        The feeds are accepted for interface symmetry with `describe_status`;
        the ranking rule reads only contact date and alert count (or the
        health record).
        """
        return self.classify(client, health=health, now=now).needs_attention

    def describe_status(
        self,
        client: Client,
        tasks: list[Task] | None = None,
        appointments: list[Appointment] | None = None,
        alerts: list[Alert] | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        Card status line, first match wins:
        meeting today, complaint alert, overdue task, stale contact.
        """
        now = _now(now)
        today = now.date()
        key = client.key

        for appointment in appointments or []:
            if client_key(appointment.client_id) != key or appointment.start_time is None:
                continue
            if appointment.start_time.astimezone(now.tzinfo).date() == today:
                return STATUS_MEETING_TODAY

        for alert in alerts or []:
            if client_key(alert.client_id) == key and alert.severity == "high" and alert.is_complaint:
                return STATUS_COMPLAINT

        for task in tasks or []:
            if client_key(task.client_id) != key or task.completed or task.due_date is None:
                continue
            # due at end of its day: overdue once that day has passed
            if task.due_date.astimezone(now.tzinfo).date() < today:
                return STATUS_OVERDUE_TASKS

        days = days_since(client.last_contact_date, now, self.thresholds.missing_contact_days)
        if days > self.thresholds.stale_contact_days:
            return STATUS_CONTACT_OVERDUE

        return STATUS_ON_TRACK

    def contact_urgency(
        self,
        client: Client,
        appointments: list[Appointment] | None = None,
        now: datetime | None = None,
    ) -> ContactUrgency:
        """Card hint: no contact on record, a meeting coming up, or contact going stale."""
        now = _now(now)
        window = self.thresholds.upcoming_meeting_days
        has_upcoming_meeting = False
        for appointment in appointments or []:
            if client_key(appointment.client_id) != client.key or appointment.start_time is None:
                continue
            diff_days = math.ceil((appointment.start_time - now).total_seconds() / 86400)
            if 0 <= diff_days <= window:
                has_upcoming_meeting = True
                break

        if client.last_contact_date is None:
            return ContactUrgency(True, "No contact record")
        days = days_since(client.last_contact_date, now)
        if has_upcoming_meeting or days > self.thresholds.contact_soon_days:
            return ContactUrgency(True, "Contact soon")
        return ContactUrgency(False)
