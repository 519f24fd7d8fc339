from fastapi import APIRouter, Header, HTTPException

from dps.models.checklist import ChecklistItems, ChecklistLog, ChecklistToggle, ChecklistView
from dps.routers.patients import persistence_failed
from dps.services.checklist import ChecklistSession, checklist_sessions
from dps.services.data_provider import DataProvider, PersistenceError
from dps.services.notifications import notifications

router = APIRouter(prefix="/api/checklist", tags=["checklist"])


def _session_or_404(session_id: str) -> ChecklistSession:
    session = checklist_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Checklist session not found")
    return session


async def _view(session: ChecklistSession) -> ChecklistView:
    provider = await DataProvider.connect()
    items = await provider.pma_checklist_items()
    return ChecklistView(
        session_id=session.session_id,
        items=items,
        state=session.state,
        progress=session.progress(items),
    )


@router.get("/items", response_model=dict[str, list[str]])
async def get_items():
    provider = await DataProvider.connect()
    return await provider.pma_checklist_items()


@router.put("/items", response_model=dict[str, list[str]])
async def update_items(body: ChecklistItems):
    """Replace the checklist categories and their items."""
    provider = await DataProvider.connect()
    try:
        return await provider.update_pma_checklist_items(body)
    except PersistenceError:
        raise persistence_failed("Erreur mise à jour.") from None


@router.post("/sessions", response_model=ChecklistView)
async def start_session():
    """Open a checklist session with every item unchecked."""
    return await _view(checklist_sessions.start())


@router.get("/sessions/{session_id}", response_model=ChecklistView)
async def get_session(session_id: str):
    return await _view(_session_or_404(session_id))


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    if not checklist_sessions.close(session_id):
        raise HTTPException(status_code=404, detail="Checklist session not found")
    return {"session_id": session_id, "closed": True}


@router.post("/sessions/{session_id}/toggle", response_model=ChecklistView)
async def toggle_item(session_id: str, body: ChecklistToggle, x_user_name: str | None = Header(None)):
    session = _session_or_404(session_id)
    session.toggle(body.item, x_user_name)
    return await _view(session)


@router.post("/sessions/{session_id}/reset", response_model=ChecklistView)
async def reset_session(session_id: str, x_user_name: str | None = Header(None)):
    session = _session_or_404(session_id)
    session.reset(x_user_name)
    notifications.add_notification("Checklist réinitialisée.", "info")
    return await _view(session)


@router.post("/sessions/{session_id}/save", response_model=ChecklistView)
async def save_session(session_id: str):
    """Acknowledge the current state; nothing is persisted."""
    session = _session_or_404(session_id)
    notifications.add_notification("État du PMA sauvegardé avec succès.", "success")
    return await _view(session)


@router.get("/sessions/{session_id}/history", response_model=list[ChecklistLog])
async def get_history(session_id: str):
    """Checklist actions, newest first."""
    return _session_or_404(session_id).history
