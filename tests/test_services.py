import asyncio
from datetime import UTC, datetime

import pytest

from dps.models.patient import Patient, QuickAdmission, TriageStatus
from dps.services.admissions import build_quick_admission, discharge, victim_label, with_triage_status
from dps.services.checklist import ChecklistSession, ChecklistSessions
from dps.services.clinical import glasgow_total, vital_alerts
from dps.services.notifications import NotificationCenter


# --- Clinical helpers ---

class TestClinical:
    def test_glasgow_total(self):
        assert glasgow_total("4", "5", "6") == 15
        assert glasgow_total("1", "1", "1") == 3

    def test_glasgow_unreadable_components(self):
        assert glasgow_total("", None, "6") == 6
        assert glasgow_total("x", "5", "6") == 11

    def test_no_alerts_for_normal_vitals(self):
        patient = Patient(id="1", created_at="", spo2="98", heart_rate="80", glasgow_score="15", pain_scale="2")
        assert vital_alerts(patient) == []

    def test_alerts(self):
        patient = Patient(id="1", created_at="", spo2="90", heart_rate="130", glasgow_score="7", pain_scale="8")
        alerts = {a.vital: a.level for a in vital_alerts(patient)}
        assert alerts == {"spo2": "critical", "heart_rate": "critical", "glasgow": "critical", "pain": "high"}

    def test_moderate_alerts(self):
        patient = Patient(id="1", created_at="", glasgow_score="11", pain_scale="5")
        alerts = {a.vital: a.level for a in vital_alerts(patient)}
        assert alerts == {"glasgow": "warning", "pain": "moderate"}

    def test_blank_vitals_ignored(self):
        assert vital_alerts(Patient(id="1", created_at="")) == []


# --- Admissions ---

class TestQuickAdmission:
    NOW = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)

    def test_with_bib(self):
        patient = build_quick_admission(
            QuickAdmission(bib_number="512", triage_status=TriageStatus.UR, sector="km 21"), self.NOW
        )
        assert patient.last_name == "Participant"
        assert patient.first_name == "#512"
        assert patient.bib_number == "512"
        assert patient.triage_status is TriageStatus.UR
        assert patient.circumstances == "Secteur: km 21"
        assert patient.chief_complaint == "Soins course"
        assert patient.address == "PMA"
        assert patient.admission_date == self.NOW.isoformat()

    def test_without_bib_generates_label(self):
        admission = QuickAdmission()
        label = victim_label(admission)
        assert label.startswith("DOSS-")
        patient = build_quick_admission(admission, self.NOW)
        assert patient.first_name.startswith("#DOSS-")
        assert patient.circumstances == "DPS Sportif"
        assert patient.triage_status is TriageStatus.UIMP

    def test_distinct_ids(self):
        a = build_quick_admission(QuickAdmission(bib_number="1"))
        b = build_quick_admission(QuickAdmission(bib_number="1"))
        assert a.id != b.id

    def test_with_triage_status(self):
        patient = build_quick_admission(QuickAdmission(bib_number="1"))
        assert with_triage_status(patient, TriageStatus.UA).triage_status is TriageStatus.UA
        assert with_triage_status(patient, None).triage_status is None
        assert patient.triage_status is TriageStatus.UIMP


class TestDischarge:
    def test_return_to_race(self):
        patient = Patient(id="1", created_at="", observations="Repos")
        updated, label = discharge(patient, "race")
        assert label == "Retour Course"
        assert updated.observations.startswith("Repos\n[")
        assert updated.observations.endswith("] Retour Course")

    def test_evacuation_on_empty_observations(self):
        updated, label = discharge(Patient(id="1", created_at=""), "evac")
        assert label == "Évacuation Hôpital"
        assert updated.observations.startswith("[")
        assert "\n" not in updated.observations

    def test_invalid_kind(self):
        with pytest.raises(KeyError):
            discharge(Patient(id="1", created_at=""), "home")


# --- Checklist sessions ---

class TestChecklistSession:
    ITEMS = {"Matériel": ["DSA", "Oxygène"], "Logistique": ["Radio", "Eau"]}

    def test_starts_empty(self):
        session = ChecklistSession()
        assert session.state == {}
        assert session.history == []
        assert session.progress(self.ITEMS) == 0

    def test_toggle_twice_restores_state(self):
        session = ChecklistSession()
        assert session.toggle("DSA", "Alice") is True
        assert session.toggle("DSA", "Alice") is False
        assert session.state["DSA"] is False
        assert [h.action for h in session.history] == ["uncheck", "check"]

    def test_progress(self):
        session = ChecklistSession()
        session.toggle("DSA")
        assert session.progress(self.ITEMS) == 25
        session.toggle("Radio")
        session.toggle("Eau")
        assert session.progress(self.ITEMS) == 75

    def test_progress_ignores_unknown_items(self):
        session = ChecklistSession()
        session.toggle("Civière")
        assert session.progress(self.ITEMS) == 0

    def test_progress_without_items(self):
        assert ChecklistSession().progress({}) == 0

    def test_default_user_name(self):
        session = ChecklistSession()
        session.toggle("DSA")
        assert session.history[0].user_name == "Utilisateur"
        assert session.history[0].item == "DSA"

    def test_reset(self):
        session = ChecklistSession()
        session.toggle("DSA", "Bob")
        session.reset("Bob")
        assert session.state == {}
        assert session.history[0].action == "reset"
        assert session.history[0].item is None

    def test_history_capped_newest_first(self):
        session = ChecklistSession(history_limit=3)
        for item in ["a", "b", "c", "d"]:
            session.toggle(item)
        assert [h.item for h in session.history] == ["d", "c", "b"]


class TestChecklistSessions:
    def test_sessions_are_independent(self):
        sessions = ChecklistSessions()
        first = sessions.start()
        second = sessions.start()
        first.toggle("DSA")
        assert sessions.get(second.session_id).state == {}
        assert sessions.get(first.session_id) is first

    def test_close(self):
        sessions = ChecklistSessions()
        session = sessions.start()
        assert sessions.close(session.session_id) is True
        assert sessions.get(session.session_id) is None
        assert sessions.close(session.session_id) is False


# --- Notifications ---

class TestNotificationCenter:
    def test_recent_newest_first(self):
        center = NotificationCenter()
        center.add_notification("premier")
        center.add_notification("second", "success")
        assert [n.message for n in center.recent()] == ["second", "premier"]
        assert center.recent()[0].severity == "success"

    def test_history_limit(self):
        center = NotificationCenter(history_limit=2)
        for i in range(5):
            center.add_notification(f"n{i}")
        assert [n.message for n in center.recent()] == ["n4", "n3"]

    def test_default_severity(self):
        assert NotificationCenter().add_notification("info").severity == "info"


async def test_notification_broadcast():
    center = NotificationCenter()
    queue = center.subscribe()
    center.add_notification("Patient 12 admis", "success")
    event = await asyncio.wait_for(queue.get(), timeout=1.0)
    assert event["type"] == "notification"
    assert event["message"] == "Patient 12 admis"
    assert event["severity"] == "success"


async def test_unsubscribed_queue_receives_nothing():
    center = NotificationCenter()
    queue = center.subscribe()
    center.unsubscribe(queue)
    center.add_notification("ignored")
    assert queue.empty()
