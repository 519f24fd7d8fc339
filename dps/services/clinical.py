from dps.models.clinical import VitalAlert
from dps.models.patient import BodyInjury, Patient

INJURY_LABELS = {
    "pain": "Douleur",
    "wound": "Plaie",
}


def _to_int(value: str | int | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(str(value).replace(",", ".")))
    except ValueError:
        return None


def glasgow_total(eye: str | None, verbal: str | None, motor: str | None) -> int:
    """Sum of the GCS components, unreadable components counting as 0."""
    return sum(_to_int(part) or 0 for part in (eye, verbal, motor))


def summarize_injuries(injuries: list[BodyInjury]) -> str:
    """Describe body-map markers as a lesion summary line."""
    return ", ".join(
        f"{INJURY_LABELS.get(injury.type, injury.type)} ({injury.description or 'Zone'})"
        for injury in injuries
    )


def vital_alerts(patient: Patient) -> list[VitalAlert]:
    """Flag vitals outside the ranges the post watches for."""
    alerts: list[VitalAlert] = []

    spo2 = _to_int(patient.spo2)
    if spo2 is not None and spo2 < 94:
        alerts.append(VitalAlert(vital="spo2", value=patient.spo2, level="critical"))

    heart_rate = _to_int(patient.heart_rate)
    if heart_rate is not None and (heart_rate < 50 or heart_rate > 120):
        alerts.append(VitalAlert(vital="heart_rate", value=patient.heart_rate, level="critical"))

    glasgow = _to_int(patient.glasgow_score)
    if glasgow is not None:
        if glasgow <= 8:
            alerts.append(VitalAlert(vital="glasgow", value=patient.glasgow_score, level="critical"))
        elif glasgow <= 12:
            alerts.append(VitalAlert(vital="glasgow", value=patient.glasgow_score, level="warning"))

    pain = _to_int(patient.pain_scale)
    if pain is not None:
        if pain > 6:
            alerts.append(VitalAlert(vital="pain", value=patient.pain_scale, level="high"))
        elif pain > 3:
            alerts.append(VitalAlert(vital="pain", value=patient.pain_scale, level="moderate"))

    return alerts
