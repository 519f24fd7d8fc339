"""Tests for Pydantic models - patient record, intake form, checklist."""

import pytest
from pydantic import ValidationError

from dps.models.checklist import ChecklistLog
from dps.models.intake import (
    CARE_OPTIONS,
    MECHANISM_OPTIONS,
    Disposition,
    EvacuationMeans,
    IntakeForm,
    PatientIntake,
)
from dps.models.notification import Notification
from dps.models.patient import BodyInjury, DischargeRequest, Patient, QuickAdmission, TriageStatus


class TestPatient:
    def test_defaults(self):
        p = Patient(id="1", created_at="2026-05-01T10:00:00+00:00")
        assert p.last_name == ""
        assert p.observations == ""
        assert p.injuries == []
        assert p.bib_number is None
        assert p.triage_status is None
        assert p.admission_date is None

    def test_triage_status_from_string(self):
        p = Patient(id="1", created_at="", triage_status="UA")
        assert p.triage_status is TriageStatus.UA

    def test_invalid_triage_status(self):
        with pytest.raises(ValidationError):
            Patient(id="1", created_at="", triage_status="ROUGE")

    def test_json_round_trip(self):
        p = Patient(
            id="1",
            created_at="2026-05-01T10:00:00+00:00",
            injuries=[BodyInjury(id="i1", x=12.5, y=40, view="back", type="wound")],
            triage_status=TriageStatus.UIMP,
        )
        assert Patient.model_validate_json(p.model_dump_json()) == p


class TestQuickAdmission:
    def test_defaults(self):
        admission = QuickAdmission()
        assert admission.triage_status is TriageStatus.UIMP
        assert admission.sex == "Homme"

    def test_discharge_kind(self):
        assert DischargeRequest(kind="evac").kind == "evac"
        with pytest.raises(ValidationError):
            DischargeRequest(kind="home")


class TestIntake:
    def test_options(self):
        assert "Chute" in MECHANISM_OPTIONS
        assert "Défibrillation" in CARE_OPTIONS

    def test_evacuation_means(self):
        intake = PatientIntake(disposition=Disposition.MEDICAL_EVACUATION, destination="Hélicoptère")
        assert intake.evacuation_means is EvacuationMeans.HELICOPTER

    def test_evacuation_means_free_destination(self):
        intake = PatientIntake(disposition=Disposition.MEDICAL_EVACUATION, destination="CHU Nord")
        assert intake.evacuation_means is None

    def test_evacuation_means_requires_evacuation(self):
        intake = PatientIntake(disposition=Disposition.ON_SITE_SURVEILLANCE, destination="Ambulance")
        assert intake.evacuation_means is None

    def test_form_without_patient(self):
        assert IntakeForm(intake=PatientIntake()).patient_id is None


class TestChecklistLog:
    def test_reset_has_no_item(self):
        log = ChecklistLog(id="1", date="2026-05-01T10:00:00+00:00", user_name="Alice", action="reset")
        assert log.item is None

    def test_invalid_action(self):
        with pytest.raises(ValidationError):
            ChecklistLog(id="1", date="", user_name="Alice", action="toggle")


class TestNotification:
    def test_invalid_severity(self):
        with pytest.raises(ValidationError):
            Notification(id="1", message="x", severity="fatal", timestamp="")
