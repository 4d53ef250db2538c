"""Cooking session API router.

Endpoints:
- /session - Create, read and cancel the active session
- /session/items - Add, edit and remove items
- /session/batches - Manual batching and temperature-based suggestions
- /session/optimize - Build the phase plan
- /session/start, /session/phases/... - Guided execution
- /sessions - History
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..deps import get_cooking_service
from ..schemas import (
    BatchAssignRequest,
    BatchHintOut,
    BatchPatch,
    BatchSuggestionApply,
    CookingBatch,
    CookingPhase,
    CookingSession,
    ItemMoveRequest,
    ManualBatchingToggle,
    ReorderRequest,
    SessionItem,
    SessionItemCreate,
    SessionItemFromRecipe,
    SessionItemPatch,
    SessionProgress,
)
from ..services.cooking_session import CookingSessionService
from ..services.session_store import SessionPersistenceError

router = APIRouter(prefix="/cooking", tags=["cooking"])
limiter = Limiter(key_func=get_remote_address)
logger = logging.getLogger("fryplan.cooking")


# --- Helpers ---

def _active(service: CookingSessionService) -> CookingSession:
    if service.current_session is None:
        raise HTTPException(status_code=404, detail="No active cooking session")
    return service.current_session


def _applied(service: CookingSessionService, ok: bool, action: str) -> CookingSession:
    session = _active(service)
    if not ok:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot {action} while session is {session.status}",
        )
    return session


def _stored(call, *args):
    try:
        return call(*args)
    except SessionPersistenceError as e:
        raise HTTPException(status_code=503, detail=f"{e}. Please retry.")


# --- Session ---

@router.post("/session", response_model=CookingSession)
def create_session(service: CookingSessionService = Depends(get_cooking_service)):
    """Start planning a new session (replaces any unsaved one)."""
    return service.create_session()


@router.get("/session", response_model=CookingSession)
def get_session(service: CookingSessionService = Depends(get_cooking_service)):
    return _active(service)


@router.delete("/session", status_code=204)
def cancel_session(service: CookingSessionService = Depends(get_cooking_service)):
    """Cancel the active session. In-progress sessions are kept in history."""
    _active(service)
    _stored(service.cancel_session)


# --- Items ---

@router.post("/session/items", response_model=SessionItem, status_code=201)
def add_item(body: SessionItemCreate, service: CookingSessionService = Depends(get_cooking_service)):
    item = service.add_item(body.name, body.temperature, body.time_minutes, body.shake_halfway)
    _applied(service, item is not None, "add items")
    return item


@router.post("/session/items/from-recipe", response_model=SessionItem, status_code=201)
def add_item_from_recipe(body: SessionItemFromRecipe, service: CookingSessionService = Depends(get_cooking_service)):
    item = service.add_item_from_recipe(
        body.recipe_id, body.name, body.temperature, body.time_minutes, body.shake_halfway
    )
    _applied(service, item is not None, "add items")
    return item


@router.patch("/session/items/{item_id}", response_model=CookingSession)
def update_item(
    item_id: str,
    body: SessionItemPatch,
    service: CookingSessionService = Depends(get_cooking_service),
):
    ok = service.update_item(item_id, **body.model_dump(exclude_unset=True))
    return _applied(service, ok, "update this item")


@router.delete("/session/items/{item_id}", response_model=CookingSession)
def remove_item(item_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.remove_item(item_id), "remove this item")


@router.delete("/session/items", response_model=CookingSession)
def clear_items(service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.clear_items(), "clear items")


@router.post("/session/items/{item_id}/move", response_model=CookingSession)
def move_item(
    item_id: str,
    body: ItemMoveRequest,
    service: CookingSessionService = Depends(get_cooking_service),
):
    ok = service.move_item_between_batches(item_id, body.from_batch_id, body.to_batch_id, body.index)
    return _applied(service, ok, "move this item")


@router.get("/session/items/unassigned", response_model=list[SessionItem])
def unassigned_items(service: CookingSessionService = Depends(get_cooking_service)):
    _active(service)
    return service.get_unassigned_items()


# --- Batches ---

@router.put("/session/manual-batching", response_model=CookingSession)
def toggle_manual_batching(
    body: ManualBatchingToggle,
    service: CookingSessionService = Depends(get_cooking_service),
):
    return _applied(service, service.toggle_manual_batching(body.enabled), "change batching mode")


@router.post("/session/batches", response_model=CookingBatch, status_code=201)
def create_batch(service: CookingSessionService = Depends(get_cooking_service)):
    batch = service.create_batch()
    _applied(service, batch is not None, "add batches")
    return batch


@router.post("/session/batches/reorder", response_model=CookingSession)
def reorder_batches(body: ReorderRequest, service: CookingSessionService = Depends(get_cooking_service)):
    ok = service.reorder_batches(body.old_index, body.new_index)
    return _applied(service, ok, "reorder batches")


@router.get("/session/batches/suggestion", response_model=list[CookingBatch])
def suggest_batches(service: CookingSessionService = Depends(get_cooking_service)):
    """Temperature-based batches for preview; nothing is applied."""
    _active(service)
    return service.auto_suggest_batches()


@router.post("/session/batches/suggestion", response_model=CookingSession)
def apply_suggestion(body: BatchSuggestionApply, service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.apply_batch_suggestion(body.batches), "apply batches")


@router.get("/session/batches/hints", response_model=list[BatchHintOut])
def batch_hints(service: CookingSessionService = Depends(get_cooking_service)):
    _active(service)
    return [
        BatchHintOut(batch_id=batch.id, order=batch.order, hint=hint)
        for batch, hint in service.get_batch_hints()
    ]


@router.delete("/session/batches/items/{item_id}", response_model=CookingSession)
def unassign_item(item_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.unassign_item(item_id), "unassign this item")


@router.patch("/session/batches/{batch_id}", response_model=CookingSession)
def update_batch_notes(
    batch_id: str,
    body: BatchPatch,
    service: CookingSessionService = Depends(get_cooking_service),
):
    return _applied(service, service.update_batch_notes(batch_id, body.user_notes), "edit this batch")


@router.delete("/session/batches/{batch_id}", response_model=CookingSession)
def delete_batch(batch_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.delete_batch(batch_id), "delete this batch")


@router.post("/session/batches/{batch_id}/items", response_model=CookingSession)
def assign_item(
    batch_id: str,
    body: BatchAssignRequest,
    service: CookingSessionService = Depends(get_cooking_service),
):
    ok = service.assign_item_to_batch(body.item_id, batch_id, body.index)
    return _applied(service, ok, "assign this item")


@router.post("/session/batches/{batch_id}/reorder", response_model=CookingSession)
def reorder_batch_items(
    batch_id: str,
    body: ReorderRequest,
    service: CookingSessionService = Depends(get_cooking_service),
):
    ok = service.reorder_items_in_batch(batch_id, body.old_index, body.new_index)
    return _applied(service, ok, "reorder this batch")


# --- Optimization ---

@router.post("/session/optimize", response_model=CookingSession)
@limiter.limit("60/minute")
def optimize_session(
    request: Request,  # Required for rate limiter
    service: CookingSessionService = Depends(get_cooking_service),
):
    return _applied(service, service.optimize_session(), "optimize")


@router.delete("/session/optimization", response_model=CookingSession)
def reset_optimization(service: CookingSessionService = Depends(get_cooking_service)):
    return _applied(service, service.reset_optimization(), "reset the plan")


# --- Execution ---

@router.post("/session/start", response_model=CookingSession)
def start_session(service: CookingSessionService = Depends(get_cooking_service)):
    ok = _stored(service.start_session)
    return _applied(service, ok, "start")


@router.post("/session/phases/{phase_index}/events/{event_index}/complete", response_model=CookingSession)
def complete_event(
    phase_index: int,
    event_index: int,
    service: CookingSessionService = Depends(get_cooking_service),
):
    return _applied(service, service.complete_event(phase_index, event_index), "complete this step")


@router.post("/session/phases/{phase_index}/complete", response_model=CookingSession)
def complete_phase(phase_index: int, service: CookingSessionService = Depends(get_cooking_service)):
    ok = _stored(service.complete_phase, phase_index)
    return _applied(service, ok, "complete this phase")


@router.get("/session/phases/current", response_model=Optional[CookingPhase])
def current_phase(service: CookingSessionService = Depends(get_cooking_service)):
    _active(service)
    return service.get_current_phase()


@router.post("/session/complete", response_model=CookingSession)
def complete_session(service: CookingSessionService = Depends(get_cooking_service)):
    session = _active(service)
    if not _stored(service.complete_session):
        raise HTTPException(status_code=409, detail=f"Session is already {session.status}")
    return service.recent_sessions[0]


@router.get("/session/progress", response_model=SessionProgress)
def progress(service: CookingSessionService = Depends(get_cooking_service)):
    return service.get_progress()


# --- History ---

@router.get("/sessions/recent", response_model=list[CookingSession])
def recent_sessions(service: CookingSessionService = Depends(get_cooking_service)):
    """Stored sessions, newest first."""
    return _stored(service.load_recent_sessions)


@router.get("/sessions/{session_id}", response_model=CookingSession)
def get_stored_session(session_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    session = _stored(service.store.get, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/sessions/{session_id}/load", response_model=CookingSession)
def load_session(session_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    """Make a stored session the active one (e.g. resume an in-progress cook)."""
    if not _stored(service.load_session, session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return service.current_session


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str, service: CookingSessionService = Depends(get_cooking_service)):
    _stored(service.delete_session, session_id)
    logger.info(f"Deleted cooking session {session_id}")
