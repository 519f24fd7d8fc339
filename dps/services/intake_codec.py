"""Conversion between the structured intake form and the flat patient record.

The patient record keeps the team, the incident mechanisms and the accident
narrative packed in ``circumstances``::

    Team: {team} | Meca: {mechanism, mechanism} | {narrative}

and the care actions and orientation decision tagged around the free
observations::

    [Soins: {care, care}]
    {narrative}
    [Décision: {disposition}] via {destination}

Decoding is lenient: any text, including None, yields a fully populated
intake with defaults for whatever is missing.
"""

import logging
import re
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import TypeVar

from dps.models.intake import (
    Consciousness,
    Disposition,
    PatientIntake,
    Pulse,
    Respiration,
    Sex,
)
from dps.models.patient import Patient, TriageStatus
from dps.services.clinical import summarize_injuries

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ", "
UNSET_LAST_NAMES = ("Inconnu", "Participant")
DEFAULT_LAST_NAME = "Participant"
DEFAULT_FIRST_NAME = "Inconnu"
DEFAULT_CHIEF_COMPLAINT = "Prise en charge DPS"
INTAKE_ADDRESS = "DPS"

# Every patient saved through the full form lands in light care
INTAKE_TRIAGE_STATUS = TriageStatus.UIMP

_CARE_TAG = re.compile(r"\[Soins:\s*([^\]]+)\]")
_CARE_TAG_STRIP = re.compile(r"\[Soins:[^\]]+\]\s*")
_DECISION_TAG = re.compile(r"\[Décision:\s*([^\]]+)\](?:\s*via\s*([^\n]*))?\s*")

E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: type[E], value: str | None, default: E) -> E:
    if not value:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.debug("Unknown %s value %r, using %s", enum_cls.__name__, value, default.value)
        return default


def _split_list(value: str) -> list[str]:
    if not value:
        return []
    return [item for item in value.split(LIST_SEPARATOR) if item]


def parse_meta(text: str | None, key: str) -> str:
    """Return the trimmed value of ``{key}: value`` up to the next ``|``."""
    if not text:
        return ""
    match = re.search(rf"{re.escape(key)}:\s*([^|]+)", text)
    return match.group(1).strip() if match else ""


def parse_circumstances(text: str | None) -> tuple[str, list[str], str]:
    """Split circumstances into (team, mechanisms, narrative)."""
    if not text:
        return "", [], ""
    team = parse_meta(text, "Team")
    mechanisms = _split_list(parse_meta(text, "Meca"))
    narrative = text.rsplit("|", 1)[1].strip() if "|" in text else ""
    return team, mechanisms, narrative


def parse_observations(text: str | None) -> tuple[list[str], str, Disposition | None, str]:
    """Split observations into (care actions, narrative, disposition, destination)."""
    if not text:
        return [], "", None, ""

    care_match = _CARE_TAG.search(text)
    care_actions = _split_list(care_match.group(1)) if care_match else []

    disposition = None
    destination = ""
    decision_match = _DECISION_TAG.search(text)
    if decision_match:
        disposition = _coerce(Disposition, decision_match.group(1).strip(), None)
        destination = (decision_match.group(2) or "").strip()

    narrative = _CARE_TAG_STRIP.sub("", text, count=1)
    narrative = _DECISION_TAG.sub("", narrative, count=1)
    return care_actions, narrative.strip(), disposition, destination


def strip_care_tag(text: str | None) -> str:
    """Observations without the leading care-actions tag."""
    return _CARE_TAG_STRIP.sub("", text or "", count=1)


def format_circumstances(team: str, mechanisms: list[str], narrative: str) -> str:
    return f"Team: {team} | Meca: {LIST_SEPARATOR.join(mechanisms)} | {narrative}"


def format_observations(
    narrative: str,
    care_actions: list[str],
    disposition: Disposition | None,
    destination: str = "",
) -> str:
    observations = narrative
    if care_actions:
        observations = f"[Soins: {LIST_SEPARATOR.join(care_actions)}]\n" + observations
    if disposition:
        observations += f"\n[Décision: {disposition.value}]"
    if disposition is Disposition.MEDICAL_EVACUATION and destination:
        observations += f" via {destination}"
    return observations


def decode_intake(patient: Patient | None) -> PatientIntake:
    """Build the form state for a stored patient, or the blank form."""
    if patient is None:
        return PatientIntake()

    team, mechanisms, description = parse_circumstances(patient.circumstances)
    care_actions, observations, disposition, destination = parse_observations(patient.observations)

    last_name = "" if patient.last_name in UNSET_LAST_NAMES else (patient.last_name or "")
    first_name = patient.first_name or ""
    if first_name.startswith("#"):
        first_name = ""

    consciousness = Consciousness.CONSCIOUS
    if patient.consciousness and "Inconscient" in patient.consciousness:
        consciousness = Consciousness.UNCONSCIOUS

    return PatientIntake(
        bib_number=patient.bib_number or "",
        first_name=first_name,
        last_name=last_name,
        sex=_coerce(Sex, patient.sex, Sex.MALE),
        age=patient.age or "",
        team=team,
        mechanisms=mechanisms,
        accident_description=description,
        consciousness=consciousness,
        glasgow=patient.glasgow_score or "15",
        gcs_eye=patient.gcs_eye or "4",
        gcs_verbal=patient.gcs_verbal or "5",
        gcs_motor=patient.gcs_motor or "6",
        respiration=_coerce(Respiration, patient.respiration, Respiration.NORMAL),
        pulse=_coerce(Pulse, patient.pulse, Pulse.NORMAL),
        pain=patient.pain_scale or "0",
        systolic_bp=patient.systolic_bp or "",
        diastolic_bp=patient.diastolic_bp or "",
        heart_rate=patient.heart_rate or "",
        respiratory_rate=patient.respiratory_rate or "",
        spo2=patient.spo2 or "",
        temperature=patient.temperature or "",
        glycemia=patient.glycemia or "",
        care_actions=care_actions,
        lesions=patient.physical_exam or "",
        injuries=list(patient.injuries),
        observations=observations,
        disposition=disposition,
        destination=destination,
    )


def encode_intake(
    intake: PatientIntake,
    source: Patient | None = None,
    now: datetime | None = None,
) -> Patient:
    """Flatten the form state into a patient record.

    Identity is carried over from ``source`` when editing; otherwise a new id
    and creation timestamp are generated.
    """
    if source is not None:
        patient_id = source.id
        created_at = source.created_at
        admission_date = source.admission_date
    else:
        patient_id = str(uuid.uuid4())
        created_at = (now or datetime.now(UTC)).isoformat()
        admission_date = created_at

    physical_exam = intake.lesions
    if not physical_exam and intake.injuries:
        physical_exam = summarize_injuries(intake.injuries)

    return Patient(
        id=patient_id,
        created_at=created_at,
        last_name=intake.last_name or DEFAULT_LAST_NAME,
        first_name=intake.first_name or ("" if intake.bib_number else DEFAULT_FIRST_NAME),
        birth_date=source.birth_date if source else "",
        bib_number=intake.bib_number,
        sex=intake.sex.value,
        age=intake.age,
        address=INTAKE_ADDRESS,
        phone="",
        circumstances=format_circumstances(intake.team, intake.mechanisms, intake.accident_description),
        glasgow_score=intake.glasgow,
        gcs_eye=intake.gcs_eye,
        gcs_verbal=intake.gcs_verbal,
        gcs_motor=intake.gcs_motor,
        consciousness=intake.consciousness.value,
        respiration=intake.respiration.value,
        pulse=intake.pulse.value,
        pain_scale=intake.pain,
        systolic_bp=intake.systolic_bp,
        diastolic_bp=intake.diastolic_bp,
        heart_rate=intake.heart_rate,
        respiratory_rate=intake.respiratory_rate,
        spo2=intake.spo2,
        temperature=intake.temperature,
        glycemia=intake.glycemia,
        physical_exam=physical_exam,
        injuries=list(intake.injuries),
        observations=format_observations(
            intake.observations, intake.care_actions, intake.disposition, intake.destination
        ),
        chief_complaint=intake.mechanisms[0] if intake.mechanisms else DEFAULT_CHIEF_COMPLAINT,
        triage_status=INTAKE_TRIAGE_STATUS,
        admission_date=admission_date,
    )
