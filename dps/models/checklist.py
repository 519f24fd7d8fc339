from typing import Literal

from pydantic import BaseModel

# Category name -> ordered item labels
ChecklistItems = dict[str, list[str]]


class ChecklistLog(BaseModel):
    id: str
    date: str
    user_name: str
    action: Literal["check", "uncheck", "reset"]
    item: str | None = None


class ChecklistToggle(BaseModel):
    item: str


class ChecklistView(BaseModel):
    session_id: str
    items: ChecklistItems
    state: dict[str, bool]
    progress: int
