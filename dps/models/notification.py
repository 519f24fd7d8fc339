from typing import Literal

from pydantic import BaseModel

Severity = Literal["success", "error", "info", "warning"]


class Notification(BaseModel):
    id: str
    message: str
    severity: Severity = "info"
    timestamp: str
