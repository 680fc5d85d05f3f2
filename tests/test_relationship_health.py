"""
Tests for relationship health scoring and the book summary.
"""

from datetime import datetime, timedelta

import pytest

from wealth_rm.clients.models import Alert, Appointment, Client, Task
from wealth_rm.intelligence.relationship_health import (
    HealthRecord,
    alert_score,
    calculate_relationship_health,
    contact_score,
    engagement_score,
    performance_score,
    score_book,
    status_from_score,
    summarize_relationship_health,
    task_score,
)


class TestComponentScores:
    @pytest.mark.parametrize(
        "score,status",
        [(100, "strong"), (85, "strong"), (84, "steady"), (70, "steady"), (69, "watch"), (55, "watch"), (54, "at-risk")],
    )
    def test_status_bands(self, score, status):
        assert status_from_score(score) == status

    def test_contact_score(self):
        assert contact_score(None) == 70
        assert contact_score(0) == 100
        assert contact_score(60) == 50
        assert contact_score(500) == 10

    def test_task_score(self):
        assert task_score(0, 0) == 100
        assert task_score(1, 1) == 66
        assert task_score(10, 0) == 0

    def test_alert_score(self):
        assert alert_score(0, 0, False) == 100
        assert alert_score(1, 1, True) == 40

    def test_performance_bands(self):
        assert performance_score(None) == 65
        assert performance_score(15) == 95
        assert performance_score(-2) == 40
        assert performance_score(-20) == 25

    def test_engagement_score(self):
        assert engagement_score(0, 0) == 0
        assert engagement_score(2, 1) == 58
        assert engagement_score(8, 1) == 100


class TestCalculateRelationshipHealth:
    def test_engaged_client_is_strong(self, now):
        client = Client(id=1, full_name="Kavya", last_contact_date=now - timedelta(days=2), one_year_return=13)
        appointments = [
            Appointment(client_id=1, start_time=now - timedelta(days=d)) for d in (3, 10, 20, 25)
        ] + [Appointment(client_id=1, start_time=now + timedelta(days=2))]
        record = calculate_relationship_health(client, appointments=appointments, now=now)
        assert record.status == "strong"
        assert record.score >= 85
        assert "Consistent engagement in the last month" in record.strengths
        assert record.risks == []
        assert record.recommended_focus is None

    def test_neglected_client_is_at_risk(self, now):
        client = Client(id=2, full_name="Rohit", last_contact_date=now - timedelta(days=200), one_year_return=-8)
        tasks = [
            Task(client_id=2, due_date=now - timedelta(days=5), priority="high"),
            Task(client_id=2, due_date=now - timedelta(days=1)),
        ]
        alerts = [Alert(client_id=2, severity="high", title="Complaint about advisory fees")]
        record = calculate_relationship_health(client, tasks, alerts=alerts, now=now)
        assert record.status == "at-risk"
        assert record.signals.overdue_tasks == 2
        assert record.signals.has_complaints is True
        assert record.recommended_focus == "Contact gap exceeds 60 days"
        assert "2 overdue tasks" in record.risks

    def test_other_clients_ignored(self, now):
        client = Client(id=3, last_contact_date=now)
        tasks = [Task(client_id=4, due_date=now - timedelta(days=9))]
        record = calculate_relationship_health(client, tasks, now=now)
        assert record.signals.overdue_tasks == 0

    def test_as_health_feeds_ranking(self, now):
        record = calculate_relationship_health(Client(id=5), now=now)
        health = record.as_health()
        assert health.client_id == 5
        assert health.score == record.score
        assert health.status == record.status

    def test_to_dict(self, now):
        data = calculate_relationship_health(Client(id=6, full_name="Z"), now=now).to_dict()
        assert data["clientId"] == 6
        assert data["statusLabel"] in {"Strong", "Steady", "Watch", "At Risk"}
        assert "daysSinceLastContact" in data["signals"]

    def test_naive_datetimes(self):
        client = Client(id=7, last_contact_date=datetime(2026, 10, 9, 10))
        tasks = [Task(client_id=7, due_date=datetime(2026, 10, 1))]
        record = calculate_relationship_health(client, tasks, now=datetime(2026, 10, 19, 10))
        assert record.signals.days_since_last_contact == 10
        assert record.signals.overdue_tasks == 1
        assert record.client_id == 7


class TestSummary:
    def test_empty(self):
        summary = summarize_relationship_health([])
        assert summary.average_score == 0
        assert summary.distribution == {"strong": 0, "steady": 0, "watch": 0, "at-risk": 0}

    def test_distribution_and_at_risk(self):
        records = [
            HealthRecord(client_id=i, client_name=f"c{i}", score=s, status=status_from_score(s), risks=r)
            for i, (s, r) in enumerate(
                [(90, []), (72, []), (60, ["No contact"]), (40, ["No contact", "Complaint"]), (30, ["No contact"])]
            )
        ]
        summary = summarize_relationship_health(records)
        assert summary.average_score == 58
        assert summary.distribution == {"strong": 1, "steady": 1, "watch": 1, "at-risk": 2}
        assert summary.dominant_status == "at-risk"
        assert [r.score for r in summary.at_risk_clients] == [30, 40, 60]
        assert summary.risks[0] == {"label": "No contact", "count": 3}
        assert summary.to_dict()["dominantStatusLabel"] == "At Risk"

    def test_score_book_keeps_order(self, now):
        records = score_book([Client(id=2), Client(id=1)], now=now)
        assert [r.client_id for r in records] == [2, 1]
