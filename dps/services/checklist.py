"""Operational equipment checklist of the post.

Check state belongs to a checklist session: it starts empty, lives in memory
for as long as the session is open, and is never persisted. Only the item
labels come from the data provider.
"""

import logging
import uuid
from datetime import UTC, datetime

from dps.config import CHECKLIST_HISTORY_LIMIT
from dps.models.checklist import ChecklistItems, ChecklistLog

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "Utilisateur"


class ChecklistSession:
    def __init__(self, session_id: str | None = None, history_limit: int = CHECKLIST_HISTORY_LIMIT) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.state: dict[str, bool] = {}
        self.history: list[ChecklistLog] = []
        self._history_limit = history_limit

    def _log(self, action: str, user_name: str | None, item: str | None = None) -> ChecklistLog:
        entry = ChecklistLog(
            id=uuid.uuid4().hex,
            date=datetime.now(UTC).isoformat(),
            user_name=user_name or DEFAULT_USER_NAME,
            action=action,
            item=item,
        )
        self.history = [entry, *self.history][: self._history_limit]
        return entry

    def toggle(self, item: str, user_name: str | None = None) -> bool:
        """Flip an item and record it. Returns the new checked state."""
        checked = not self.state.get(item, False)
        self.state[item] = checked
        self._log("check" if checked else "uncheck", user_name, item)
        return checked

    def reset(self, user_name: str | None = None) -> None:
        self.state = {}
        self._log("reset", user_name)
        logger.info("Checklist session %s reset", self.session_id)

    def progress(self, items: ChecklistItems) -> int:
        """Percentage of configured items currently checked."""
        labels = {label for category in items.values() for label in category}
        if not labels:
            return 0
        checked = sum(1 for label in labels if self.state.get(label))
        return round(checked / len(labels) * 100)


class ChecklistSessions:
    """Open checklist sessions, keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, ChecklistSession] = {}

    def start(self) -> ChecklistSession:
        session = ChecklistSession()
        self._sessions[session.session_id] = session
        logger.info("Checklist session %s started", session.session_id)
        return session

    def get(self, session_id: str) -> ChecklistSession | None:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()


checklist_sessions = ChecklistSessions()
