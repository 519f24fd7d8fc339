from fastapi import APIRouter, HTTPException, Query

from dps.models.clinical import VitalAlert
from dps.models.patient import (
    DischargeRequest,
    Patient,
    QuickAdmission,
    TriageBoard,
    TriageStatusUpdate,
)
from dps.services.admissions import build_quick_admission, discharge, with_triage_status
from dps.services.clinical import vital_alerts
from dps.services.data_provider import DataProvider, PatientNotFoundError, PersistenceError
from dps.services.notifications import notifications
from dps.services.triage_board import build_board

router = APIRouter(prefix="/api/pma", tags=["pma"])


def persistence_failed(message: str) -> HTTPException:
    """Tell the user a save failed; the caller raises the returned error."""
    notifications.add_notification(message, "error")
    return HTTPException(status_code=500, detail=message)


async def _get_or_404(provider: DataProvider, patient_id: str) -> Patient:
    patient = await provider.get_patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.get("/board", response_model=TriageBoard)
async def get_board(
    search: str = "",
    status: str = Query("Tous", pattern="^(Tous|UA|UR|UIMP|DCD)$"),
):
    """Active patients of the post, most severe first, with the summary counts."""
    provider = await DataProvider.connect()
    return build_board(await provider.patients(), search=search, status=status)


@router.get("/patients", response_model=list[Patient])
async def list_patients():
    """All patient records, newest first."""
    provider = await DataProvider.connect()
    return await provider.patients()


@router.get("/patients/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str):
    provider = await DataProvider.connect()
    return await _get_or_404(provider, patient_id)


@router.get("/patients/{patient_id}/alerts", response_model=list[VitalAlert])
async def get_patient_alerts(patient_id: str):
    """Vitals outside the watched ranges."""
    provider = await DataProvider.connect()
    return vital_alerts(await _get_or_404(provider, patient_id))


@router.post("/patients", response_model=Patient)
async def quick_admit(body: QuickAdmission):
    """Admit a runner at the triage entrance with minimal information."""
    provider = await DataProvider.connect()
    patient = build_quick_admission(body)
    try:
        await provider.add_patient(patient)
    except PersistenceError:
        raise persistence_failed("Erreur lors de l'ajout.") from None
    notifications.add_notification(f"Patient {patient.first_name.lstrip('#')} admis", "success")
    return patient


@router.patch("/patients/{patient_id}/status", response_model=Patient)
async def update_status(patient_id: str, body: TriageStatusUpdate):
    provider = await DataProvider.connect()
    patient = with_triage_status(await _get_or_404(provider, patient_id), body.triage_status)
    try:
        await provider.update_patient(patient)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found") from None
    except PersistenceError:
        raise persistence_failed("Erreur mise à jour.") from None
    notifications.add_notification("Statut mis à jour.", "info")
    return patient


@router.post("/patients/{patient_id}/discharge", response_model=Patient)
async def discharge_patient(patient_id: str, body: DischargeRequest):
    """Record a return to the race or a hospital evacuation."""
    provider = await DataProvider.connect()
    patient, label = discharge(await _get_or_404(provider, patient_id), body.kind)
    try:
        await provider.update_patient(patient)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found") from None
    except PersistenceError:
        raise persistence_failed("Erreur.") from None
    notifications.add_notification(f"{label} validé pour {patient.first_name}", "success")
    return patient


@router.delete("/patients/{patient_id}")
async def delete_patient(patient_id: str):
    provider = await DataProvider.connect()
    try:
        await provider.delete_patient(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found") from None
    except PersistenceError:
        raise persistence_failed("Erreur lors de la suppression.") from None
    notifications.add_notification("Patient supprimé avec succès.", "success")
    return {"id": patient_id, "deleted": True}
