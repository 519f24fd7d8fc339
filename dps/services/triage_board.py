"""Active patient list of the first-aid post: filtering, ordering and counts."""

import logging
from datetime import UTC, datetime

from dps.models.patient import BoardEntry, Patient, TriageBoard, TriageStats, TriageStatus

logger = logging.getLogger(__name__)

SEVERITY_RANK = {
    TriageStatus.UA: 0,
    TriageStatus.UR: 1,
    TriageStatus.UIMP: 2,
    TriageStatus.DCD: 3,
}
UNTRIAGED_RANK = 4

EVACUATION_MARKER = "Évacuation"
RETURN_TO_RACE_MARKER = "Retour Course"

ALL_STATUSES = "Tous"


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _created_ts(patient: Patient) -> float:
    parsed = parse_timestamp(patient.created_at)
    return parsed.timestamp() if parsed else 0.0


def is_active(patient: Patient) -> bool:
    return bool(patient.triage_status or patient.bib_number or patient.admission_date)


def severity_rank(patient: Patient) -> int:
    if patient.triage_status is None:
        return UNTRIAGED_RANK
    return SEVERITY_RANK.get(patient.triage_status, UNTRIAGED_RANK)


def active_patients(patients: list[Patient]) -> list[Patient]:
    """Patients on the post's board, most severe first, then most recent first."""
    active = [p for p in patients if is_active(p)]
    return sorted(active, key=lambda p: (severity_rank(p), -_created_ts(p)))


def filter_patients(patients: list[Patient], search: str = "", status: str = ALL_STATUSES) -> list[Patient]:
    """Narrow the board by free-text search and triage status, keeping order."""
    term = search.lower()
    result = []
    for patient in patients:
        if term:
            haystacks = (patient.last_name, patient.bib_number, patient.chief_complaint)
            if not any(h and term in h.lower() for h in haystacks):
                continue
        if status != ALL_STATUSES:
            current = patient.triage_status.value if patient.triage_status else None
            if current != status:
                continue
        result.append(patient)
    return result


def is_evacuated(patient: Patient) -> bool:
    return EVACUATION_MARKER in (patient.observations or "")


def outcome_label(patient: Patient) -> str:
    observations = patient.observations or ""
    if RETURN_TO_RACE_MARKER in observations:
        return "RETOUR COURSE"
    if EVACUATION_MARKER in observations:
        return "ÉVACUATION"
    return "SUR PLACE"


def compute_stats(patients: list[Patient]) -> TriageStats:
    counts = {status: 0 for status in TriageStatus}
    untriaged = 0
    for patient in patients:
        if patient.triage_status is None:
            untriaged += 1
        else:
            counts[patient.triage_status] += 1

    return TriageStats(
        total=len(patients),
        ua=counts[TriageStatus.UA],
        ur=counts[TriageStatus.UR],
        uimp=counts[TriageStatus.UIMP],
        dcd=counts[TriageStatus.DCD],
        untriaged=untriaged,
        medical_care=counts[TriageStatus.UA] + counts[TriageStatus.UR],
        light_care=counts[TriageStatus.UIMP],
        evacuations=sum(1 for p in patients if is_evacuated(p)),
    )


def format_elapsed(start: str | None, now: datetime | None = None) -> str:
    """Time spent at the post, as shown on the board."""
    started = parse_timestamp(start)
    if started is None:
        return "-"
    now = now or datetime.now(UTC)
    minutes = int((now - started).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60}h {minutes % 60}m"


def handover_order(patients: list[Patient]) -> list[Patient]:
    """Chronological order of arrival, for the handover log."""
    def arrival(patient: Patient) -> float:
        parsed = parse_timestamp(patient.admission_date or patient.created_at)
        return parsed.timestamp() if parsed else 0.0

    return sorted(patients, key=arrival)


def build_board(
    patients: list[Patient],
    search: str = "",
    status: str = ALL_STATUSES,
    now: datetime | None = None,
) -> TriageBoard:
    """Board view: stats cover the whole active list, rows follow the filters."""
    active = active_patients(patients)
    visible = filter_patients(active, search=search, status=status)
    return TriageBoard(
        patients=[
            BoardEntry(
                patient=p,
                elapsed=format_elapsed(p.admission_date, now),
                outcome=outcome_label(p),
            )
            for p in visible
        ],
        stats=compute_stats(active),
    )
