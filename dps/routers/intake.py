import logging

from fastapi import APIRouter, HTTPException

from dps.models.clinical import GlasgowScore
from dps.models.intake import IntakeForm
from dps.models.patient import Patient
from dps.routers.patients import persistence_failed
from dps.services.clinical import glasgow_total
from dps.services.data_provider import DataProvider, PatientNotFoundError, PersistenceError
from dps.services.intake_codec import decode_intake, encode_intake
from dps.services.notifications import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pma/intake", tags=["intake"])


@router.get("", response_model=IntakeForm)
async def new_intake():
    """Blank intake form."""
    return IntakeForm(intake=decode_intake(None))


@router.get("/{patient_id}", response_model=IntakeForm)
async def open_intake(patient_id: str):
    """Intake form pre-filled from a stored patient."""
    provider = await DataProvider.connect()
    patient = await provider.get_patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return IntakeForm(patient_id=patient.id, intake=decode_intake(patient))


@router.post("", response_model=Patient)
async def save_intake(body: IntakeForm):
    """Encode the form and create the patient, or update it when it exists."""
    provider = await DataProvider.connect()
    source = await provider.get_patient(body.patient_id) if body.patient_id else None
    patient = encode_intake(body.intake, source=source)
    try:
        if source is not None:
            await provider.update_patient(patient)
            message = "Fiche DPS mise à jour."
        else:
            await provider.add_patient(patient)
            message = "Fiche DPS créée."
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found") from None
    except PersistenceError:
        raise persistence_failed("Erreur sauvegarde fiche.") from None

    logger.info("Intake saved for patient %s", patient.id)
    notifications.add_notification(message, "success")
    return patient


@router.post("/glasgow", response_model=GlasgowScore)
async def compute_glasgow(body: GlasgowScore):
    """Glasgow total from its eye, verbal and motor components."""
    return body.model_copy(update={"total": glasgow_total(body.eye, body.verbal, body.motor)})
