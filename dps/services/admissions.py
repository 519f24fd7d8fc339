import random
import uuid
from datetime import UTC, datetime

from dps.models.patient import Patient, QuickAdmission, TriageStatus

GENERATED_ID_PREFIX = "DOSS-"
DEFAULT_COMPLAINT = "Soins course"
DEFAULT_CIRCUMSTANCES = "DPS Sportif"
POST_ADDRESS = "PMA"

DISCHARGE_LABELS = {
    "race": "Retour Course",
    "evac": "Évacuation Hôpital",
}


def victim_label(admission: QuickAdmission) -> str:
    """Bib number, or a generated tag when the runner has none."""
    return admission.bib_number or f"{GENERATED_ID_PREFIX}{random.randint(0, 9999)}"


def build_quick_admission(admission: QuickAdmission, now: datetime | None = None) -> Patient:
    """Patient record for a runner admitted at the triage entrance."""
    now = now or datetime.now(UTC)
    label = victim_label(admission)
    return Patient(
        id=str(uuid.uuid4()),
        created_at=now.isoformat(),
        last_name="Participant",
        first_name=f"#{label}",
        bib_number=admission.bib_number,
        triage_status=admission.triage_status,
        sex=admission.sex.value,
        age=admission.approximate_age,
        address=POST_ADDRESS,
        chief_complaint=admission.complaint or DEFAULT_COMPLAINT,
        circumstances=f"Secteur: {admission.sector}" if admission.sector else DEFAULT_CIRCUMSTANCES,
        admission_date=now.isoformat(),
    )


def with_triage_status(patient: Patient, status: TriageStatus | None) -> Patient:
    return patient.model_copy(update={"triage_status": status})


def discharge(patient: Patient, kind: str, now: datetime | None = None) -> tuple[Patient, str]:
    """Append a timestamped discharge line to the observations.

    Returns the updated patient and the discharge label.
    """
    label = DISCHARGE_LABELS[kind]
    stamp = (now or datetime.now(UTC)).astimezone().strftime("%H:%M:%S")
    prefix = f"{patient.observations}\n" if patient.observations else ""
    updated = patient.model_copy(update={"observations": f"{prefix}[{stamp}] {label}"})
    return updated, label
