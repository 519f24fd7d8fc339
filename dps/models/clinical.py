from pydantic import BaseModel


class VitalAlert(BaseModel):
    vital: str    # "spo2", "heart_rate", "glasgow", "pain"
    value: str
    level: str    # "critical", "warning", "high", "moderate"


class GlasgowScore(BaseModel):
    eye: str = "4"
    verbal: str = "5"
    motor: str = "6"
    total: int = 15
