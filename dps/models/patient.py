from enum import Enum
from typing import Literal

from pydantic import BaseModel


class TriageStatus(str, Enum):
    """Triage categories used at the first-aid post."""
    UA = "UA"          # urgence absolue
    UR = "UR"          # urgence relative
    UIMP = "UIMP"      # urgence impliquée (light care)
    DCD = "DCD"        # deceased


class Sex(str, Enum):
    MALE = "Homme"
    FEMALE = "Femme"


class BodyInjury(BaseModel):
    """Marker placed on the body map."""
    id: str
    x: float
    y: float
    view: str = "front"         # "front" | "back"
    type: str = "pain"          # "pain" | "wound" | "bruise" | "burn"
    description: str | None = None


class Patient(BaseModel):
    """Flat patient record as stored by the data provider."""
    id: str
    created_at: str
    last_name: str = ""
    first_name: str = ""
    birth_date: str = ""
    age: str = ""
    sex: str = "Homme"      # Sex value; older records may hold other text, read back as Homme
    address: str = ""
    phone: str = ""
    chief_complaint: str = ""
    circumstances: str = ""

    # Vitals (free text, no numeric validation)
    systolic_bp: str = ""
    diastolic_bp: str = ""
    heart_rate: str = ""
    respiratory_rate: str = ""
    spo2: str = ""
    temperature: str = ""
    glycemia: str = ""
    pain_scale: str = ""
    glasgow_score: str = ""
    gcs_eye: str | None = None
    gcs_verbal: str | None = None
    gcs_motor: str | None = None

    # Primary survey
    consciousness: str = ""
    respiration: str = ""
    pulse: str = ""

    physical_exam: str = ""
    injuries: list[BodyInjury] = []
    observations: str = ""

    # First-aid post tracking
    bib_number: str | None = None
    triage_status: TriageStatus | None = None
    admission_date: str | None = None


class QuickAdmission(BaseModel):
    """Minimal admission at the triage entrance."""
    bib_number: str = ""
    triage_status: TriageStatus = TriageStatus.UIMP
    sex: Sex = Sex.MALE
    approximate_age: str = ""
    complaint: str = ""
    sector: str = ""


class TriageStatusUpdate(BaseModel):
    triage_status: TriageStatus | None


class DischargeRequest(BaseModel):
    kind: Literal["race", "evac"]


class TriageStats(BaseModel):
    total: int = 0
    ua: int = 0
    ur: int = 0
    uimp: int = 0
    dcd: int = 0
    untriaged: int = 0
    medical_care: int = 0
    light_care: int = 0
    evacuations: int = 0


class BoardEntry(BaseModel):
    """A patient row on the triage board."""
    patient: Patient
    elapsed: str
    outcome: str


class TriageBoard(BaseModel):
    patients: list[BoardEntry]
    stats: TriageStats
