"""Structured state of the multi-step intake form ("fiche de prise en charge").

A ``PatientIntake`` only lives while a form is open: it is decoded from a
stored patient (or defaulted), edited, then encoded back into a ``Patient``.
"""

from enum import Enum

from pydantic import BaseModel

from dps.models.patient import BodyInjury, Sex

MECHANISM_OPTIONS = [
    "Chute",
    "Collision",
    "Coup direct",
    "Malaise",
    "Surmenage / Déshydratation",
    "Autre",
]

CARE_OPTIONS = [
    "Mise au repos",
    "Immobilisation",
    "Pansement / Compression",
    "Glace",
    "Oxygénothérapie",
    "RCP",
    "Défibrillation",
    "Médication",
]


class Consciousness(str, Enum):
    CONSCIOUS = "Consciente"
    UNCONSCIOUS = "Inconsciente"


class Respiration(str, Enum):
    NORMAL = "Normale"
    LABORED = "Difficile (Dyspnée)"
    RAPID = "Rapide (Polypnée)"
    ABSENT = "Absente"


class Pulse(str, Enum):
    NORMAL = "Normal"
    RAPID = "Rapide (Tachy)"
    SLOW = "Lent (Brady)"
    THREADY = "Filant"
    ABSENT = "Absent"


class Disposition(str, Enum):
    RESUME_ACTIVITY = "Reprise de l’activité"
    ON_SITE_SURVEILLANCE = "Surveillance sur site"
    MEDICAL_EVACUATION = "Évacuation médicale"


class EvacuationMeans(str, Enum):
    AMBULANCE = "Ambulance"
    MEDICALIZED_VEHICLE = "Véhicule médicalisé"
    HELICOPTER = "Hélicoptère"


class PatientIntake(BaseModel):
    # Identity
    bib_number: str = ""
    first_name: str = ""
    last_name: str = ""
    sex: Sex = Sex.MALE
    age: str = ""
    team: str = ""

    # Context
    mechanisms: list[str] = []
    accident_description: str = ""

    # Assessment
    consciousness: Consciousness = Consciousness.CONSCIOUS
    glasgow: str = "15"
    gcs_eye: str = "4"
    gcs_verbal: str = "5"
    gcs_motor: str = "6"
    respiration: Respiration = Respiration.NORMAL
    pulse: Pulse = Pulse.NORMAL
    pain: str = "0"

    systolic_bp: str = ""
    diastolic_bp: str = ""
    heart_rate: str = ""
    respiratory_rate: str = ""
    spo2: str = ""
    temperature: str = ""
    glycemia: str = ""

    # Care
    care_actions: list[str] = []
    lesions: str = ""
    injuries: list[BodyInjury] = []
    observations: str = ""

    # Orientation
    disposition: Disposition | None = None
    destination: str = ""

    @property
    def evacuation_means(self) -> EvacuationMeans | None:
        """The evacuation means when the destination names one of them."""
        if self.disposition is not Disposition.MEDICAL_EVACUATION:
            return None
        try:
            return EvacuationMeans(self.destination)
        except ValueError:
            return None


class IntakeForm(BaseModel):
    """Intake state returned to the editor, with the patient it came from."""
    patient_id: str | None = None
    intake: PatientIntake
