"""Cooking session orchestration.

Owns the single active session: item and batch editing, optimization and
guided execution. Operations that are not valid for the current status (or
that arrive with no active session) change nothing and return False; the
caller is expected to only offer valid actions. Storage failures raise
SessionPersistenceError and leave in-memory state untouched.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Optional

from ..schemas import (
    CookingBatch,
    CookingPhase,
    CookingSession,
    SessionItem,
    SessionProgress,
    TemperatureHint,
    utcnow,
)
from ..settings import settings
from .cooking_optimizer import (
    calculate_temperature_hint,
    group_by_temperature,
    optimize_cooking_session,
    round_half_up,
)
from .session_store import SessionPersistenceError, SqlSessionStore

logger = logging.getLogger("fryplan.session")

EDITABLE_STATUSES = ("planning", "optimized")
FINAL_STATUSES = ("completed", "cancelled")
ITEM_FIELDS = ("name", "temperature", "time_minutes", "shake_halfway")


def _synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class CookingSessionService:
    def __init__(
        self,
        store: SqlSessionStore,
        tolerance: Optional[float] = None,
        rest_minutes: Optional[float] = None,
        recent_limit: Optional[int] = None,
    ):
        self.store = store
        self.tolerance = settings.batch_temperature_tolerance if tolerance is None else tolerance
        self.rest_minutes = settings.rest_between_phases_minutes if rest_minutes is None else rest_minutes
        self.recent_limit = settings.recent_sessions_limit if recent_limit is None else recent_limit

        self.current_session: Optional[CookingSession] = None
        self.recent_sessions: list[CookingSession] = []
        self.error: Optional[str] = None
        self._lock = threading.RLock()

    # --- Session lifecycle ---

    @_synchronized
    def create_session(self) -> CookingSession:
        self.current_session = CookingSession()
        self.error = None
        logger.info(f"Created cooking session {self.current_session.id}")
        return self.current_session

    @_synchronized
    def load_session(self, session_id: str) -> bool:
        self.error = None
        session = self._persisting(self.store.get, session_id)
        if session is None:
            self.error = "Session not found"
            return False
        self.current_session = session
        return True

    @_synchronized
    def load_recent_sessions(self) -> list[CookingSession]:
        self.recent_sessions = self._persisting(self.store.list_recent, self.recent_limit)
        return self.recent_sessions

    @_synchronized
    def delete_session(self, session_id: str) -> None:
        self._persisting(self.store.delete, session_id)
        self.recent_sessions = [s for s in self.recent_sessions if s.id != session_id]
        if self.current_session and self.current_session.id == session_id:
            self.current_session = None

    # --- Items ---

    @_synchronized
    def add_item(
        self,
        name: str,
        temperature: float,
        time_minutes: float,
        shake_halfway: bool = False,
        source_recipe_id: Optional[str] = None,
    ) -> Optional[SessionItem]:
        session = self._editable("add_item")
        if session is None:
            return None

        item = SessionItem(
            name=name,
            temperature=temperature,
            time_minutes=time_minutes,
            shake_halfway=shake_halfway,
            source_recipe_id=source_recipe_id,
        )
        session.items.append(item)
        self._invalidate(session)
        return item

    def add_item_from_recipe(
        self,
        recipe_id: str,
        name: str,
        temperature: float,
        time_minutes: float,
        shake_halfway: bool = False,
    ) -> Optional[SessionItem]:
        return self.add_item(name, temperature, time_minutes, shake_halfway, source_recipe_id=recipe_id)

    @_synchronized
    def update_item(self, item_id: str, **updates) -> bool:
        session = self._editable("update_item")
        if session is None:
            return False
        item = self._find_item(session, item_id)
        if item is None:
            return self._ignore("update_item", f"unknown item {item_id}")

        changes = {
            field: value for field, value in updates.items()
            if field in ITEM_FIELDS and value is not None and getattr(item, field) != value
        }
        if not changes:
            return True

        for field, value in changes.items():
            setattr(item, field, value)
        self._invalidate(session)
        return True

    @_synchronized
    def remove_item(self, item_id: str) -> bool:
        session = self._editable("remove_item")
        if session is None:
            return False
        if self._find_item(session, item_id) is None:
            return self._ignore("remove_item", f"unknown item {item_id}")

        session.items = [item for item in session.items if item.id != item_id]
        for batch in session.batches:
            batch.item_ids = [i for i in batch.item_ids if i != item_id]
        self._invalidate(session)
        return True

    @_synchronized
    def clear_items(self) -> bool:
        session = self._editable("clear_items")
        if session is None:
            return False
        session.items = []
        session.batches = []
        self._invalidate(session)
        return True

    # --- Batches (manual batching) ---

    @_synchronized
    def create_batch(self) -> Optional[CookingBatch]:
        session = self._editable("create_batch")
        if session is None:
            return None

        batch = CookingBatch(order=len(session.batches) + 1)
        session.batches.append(batch)
        session.use_manual_batching = True
        self._invalidate(session)
        return batch

    @_synchronized
    def delete_batch(self, batch_id: str) -> bool:
        session = self._editable("delete_batch")
        if session is None:
            return False
        if self._find_batch(session, batch_id) is None:
            return self._ignore("delete_batch", f"unknown batch {batch_id}")

        # Items stay in the session, just unassigned
        for item in session.items:
            if item.batch_id == batch_id:
                item.batch_id = None
        session.batches = [b for b in session.batches if b.id != batch_id]
        self._renumber(session)
        self._invalidate(session)
        return True

    @_synchronized
    def reorder_batches(self, old_index: int, new_index: int) -> bool:
        session = self._editable("reorder_batches")
        if session is None:
            return False
        if not _move(session.batches, old_index, new_index):
            return self._ignore("reorder_batches", f"index out of range ({old_index} -> {new_index})")
        self._renumber(session)
        self._invalidate(session)
        return True

    @_synchronized
    def update_batch_notes(self, batch_id: str, notes: str) -> bool:
        session = self._editable("update_batch_notes")
        if session is None:
            return False
        batch = self._find_batch(session, batch_id)
        if batch is None:
            return self._ignore("update_batch_notes", f"unknown batch {batch_id}")

        # Notes don't affect the plan
        batch.user_notes = notes
        session.updated_at = utcnow()
        return True

    @_synchronized
    def assign_item_to_batch(self, item_id: str, batch_id: str, index: Optional[int] = None) -> bool:
        return self._place_item("assign_item_to_batch", item_id, batch_id, index)

    @_synchronized
    def move_item_between_batches(
        self,
        item_id: str,
        from_batch_id: Optional[str],
        to_batch_id: Optional[str],
        index: Optional[int] = None,
    ) -> bool:
        session = self.current_session
        if session and from_batch_id is not None:
            item = self._find_item(session, item_id)
            if item is not None and item.batch_id != from_batch_id:
                return self._ignore("move_item_between_batches", f"item {item_id} is not in batch {from_batch_id}")
        return self._place_item("move_item_between_batches", item_id, to_batch_id, index)

    @_synchronized
    def unassign_item(self, item_id: str) -> bool:
        return self._place_item("unassign_item", item_id, None)

    @_synchronized
    def reorder_items_in_batch(self, batch_id: str, old_index: int, new_index: int) -> bool:
        session = self._editable("reorder_items_in_batch")
        if session is None:
            return False
        batch = self._find_batch(session, batch_id)
        if batch is None or not _move(batch.item_ids, old_index, new_index):
            return self._ignore("reorder_items_in_batch", f"bad batch or index for {batch_id}")
        self._invalidate(session)
        return True

    @_synchronized
    def toggle_manual_batching(self, enabled: bool) -> bool:
        session = self._editable("toggle_manual_batching")
        if session is None:
            return False

        session.use_manual_batching = enabled
        if not enabled:
            session.batches = []
            for item in session.items:
                item.batch_id = None
        self._invalidate(session)
        return True

    @_synchronized
    def auto_suggest_batches(self) -> list[CookingBatch]:
        """Preview a temperature-based batching without applying it."""
        session = self.current_session
        if session is None or not session.items:
            return []
        return self._suggest(session.items)

    @_synchronized
    def apply_batch_suggestion(self, batches: list[CookingBatch]) -> bool:
        session = self._editable("apply_batch_suggestion")
        if session is None:
            return False

        known = {item.id for item in session.items}
        seen: set[str] = set()
        applied = []
        for order, batch in enumerate(batches, start=1):
            item_ids = [i for i in batch.item_ids if i in known and i not in seen]
            seen.update(item_ids)
            applied.append(batch.model_copy(update={"order": order, "item_ids": item_ids}))

        owner = {item_id: batch.id for batch in applied for item_id in batch.item_ids}
        for item in session.items:
            item.batch_id = owner.get(item.id)

        session.batches = applied
        session.use_manual_batching = True
        self._invalidate(session)
        return True

    def get_unassigned_items(self) -> list[SessionItem]:
        session = self.current_session
        if session is None:
            return []
        return [item for item in session.items if not item.batch_id]

    def get_batch_hints(self) -> list[tuple[CookingBatch, TemperatureHint]]:
        session = self.current_session
        if session is None:
            return []
        by_id = {item.id: item for item in session.items}
        return [
            (batch, calculate_temperature_hint([by_id[i] for i in batch.item_ids if i in by_id]))
            for batch in session.batches
        ]

    # --- Optimization ---

    @_synchronized
    def optimize_session(self) -> bool:
        session = self._editable("optimize_session")
        if session is None:
            return False
        if not session.items:
            return self._ignore("optimize_session", "no items")

        if session.use_manual_batching and session.batches:
            # Unassigned items stay out of the plan until the user batches them
            result = optimize_cooking_session(
                session.items, mode="manual-batches", batches=session.batches, rest_minutes=self.rest_minutes,
            )
        else:
            result = optimize_cooking_session(
                session.items, tolerance=self.tolerance, rest_minutes=self.rest_minutes,
            )

        for item in session.items:
            self._apply_schedule(item, result.phases)

        session.phases = result.phases
        session.total_estimated_minutes = result.total_minutes
        session.status = "optimized"
        session.updated_at = utcnow()
        logger.info(
            f"Optimized session {session.id}: {len(result.phases)} phases, "
            f"{result.total_minutes:g} min"
        )
        return True

    @_synchronized
    def reset_optimization(self) -> bool:
        session = self._editable("reset_optimization")
        if session is None:
            return False
        self._invalidate(session)
        return True

    # --- Execution ---

    @_synchronized
    def start_session(self) -> bool:
        session = self._require_status("start_session", "optimized")
        if session is None:
            return False

        now = utcnow()
        started = session.model_copy(deep=True, update={
            "status": "in_progress",
            "current_phase_index": 0,
            "current_event_index": 0,
            "started_at": now,
            "updated_at": now,
        })
        self._persisting(self.store.put, started)
        self.current_session = started
        logger.info(f"Started cooking session {started.id}")
        return True

    @_synchronized
    def complete_event(self, phase_index: int, event_index: int) -> bool:
        session = self._require_status("complete_event", "in_progress")
        if session is None:
            return False
        if not (0 <= phase_index < len(session.phases)):
            return self._ignore("complete_event", f"no phase {phase_index}")
        events = session.phases[phase_index].events
        if not (0 <= event_index < len(events)):
            return self._ignore("complete_event", f"no event {event_index} in phase {phase_index}")

        events[event_index].completed = True
        session.current_event_index = event_index + 1
        session.updated_at = utcnow()
        return True

    @_synchronized
    def complete_phase(self, phase_index: int) -> bool:
        session = self._require_status("complete_phase", "in_progress")
        if session is None:
            return False
        if not (0 <= phase_index < len(session.phases)):
            return self._ignore("complete_phase", f"no phase {phase_index}")

        now = utcnow()
        updated = session.model_copy(deep=True)
        updated.phases[phase_index].completed_at = now

        is_last = phase_index + 1 >= len(updated.phases)
        next_index = phase_index if is_last else phase_index + 1
        updated.current_phase_index = max(session.current_phase_index or 0, next_index)
        updated.current_event_index = 0
        updated.updated_at = now

        self._persisting(self.store.put, updated)
        self.current_session = updated
        return True

    @_synchronized
    def complete_session(self) -> bool:
        session = self.current_session
        if session is None:
            return self._ignore("complete_session", "no active session")
        if session.status in FINAL_STATUSES:
            return self._ignore("complete_session", f"session already {session.status}")

        now = utcnow()
        completed = session.model_copy(deep=True, update={
            "status": "completed",
            "completed_at": now,
            "updated_at": now,
        })
        self._persisting(self.store.put, completed)
        self._retire(completed)
        logger.info(f"Completed cooking session {completed.id}")
        return True

    @_synchronized
    def cancel_session(self) -> bool:
        session = self.current_session
        if session is None:
            return self._ignore("cancel_session", "no active session")

        if session.status != "in_progress":
            # Planned-only sessions were never stored
            self.current_session = None
            logger.info(f"Discarded cooking session {session.id}")
            return True

        cancelled = session.model_copy(deep=True, update={
            "status": "cancelled",
            "updated_at": utcnow(),
        })
        self._persisting(self.store.put, cancelled)
        self._retire(cancelled)
        logger.info(f"Cancelled cooking session {cancelled.id}")
        return True

    # --- Queries ---

    def get_current_phase(self) -> Optional[CookingPhase]:
        session = self.current_session
        if session is None or session.current_phase_index is None:
            return None
        if session.current_phase_index >= len(session.phases):
            return None
        return session.phases[session.current_phase_index]

    def get_progress(self) -> SessionProgress:
        session = self.current_session
        if session is None or not session.phases:
            return SessionProgress(current_phase=0, total_phases=0, percent_complete=0)

        done = sum(1 for phase in session.phases if phase.completed_at)
        return SessionProgress(
            current_phase=(session.current_phase_index or 0) + 1,
            total_phases=len(session.phases),
            percent_complete=round_half_up(done / len(session.phases) * 100),
        )

    # --- Internals ---

    def _ignore(self, operation: str, reason: str) -> bool:
        logger.debug(f"Ignoring {operation}: {reason}")
        return False

    def _require_status(self, operation: str, *statuses: str) -> Optional[CookingSession]:
        session = self.current_session
        if session is None:
            self._ignore(operation, "no active session")
            return None
        if session.status not in statuses:
            self._ignore(operation, f"session is {session.status}")
            return None
        return session

    def _editable(self, operation: str) -> Optional[CookingSession]:
        return self._require_status(operation, *EDITABLE_STATUSES)

    def _persisting(self, call, *args):
        try:
            return call(*args)
        except SessionPersistenceError as e:
            self.error = str(e)
            raise

    def _invalidate(self, session: CookingSession) -> None:
        """Drop the computed plan; items, batches and the manual flag are its inputs."""
        session.status = "planning"
        session.phases = []
        session.total_estimated_minutes = 0
        session.current_phase_index = None
        session.current_event_index = None
        for item in session.items:
            item.phase_id = None
            item.start_offset_minutes = None
            item.end_offset_minutes = None
        session.updated_at = utcnow()

    def _retire(self, session: CookingSession) -> None:
        self.current_session = None
        history = [s for s in self.recent_sessions if s.id != session.id]
        self.recent_sessions = [session, *history][: self.recent_limit]

    def _suggest(self, items: list[SessionItem]) -> list[CookingBatch]:
        return [
            CookingBatch(
                order=index,
                item_ids=[item.id for item in group.items],
                target_temperature=group.target_temperature,
            )
            for index, group in enumerate(group_by_temperature(items, tolerance=self.tolerance), start=1)
        ]

    def _place_item(self, operation: str, item_id: str, batch_id: Optional[str], index: Optional[int] = None) -> bool:
        """Move an item into batch_id (None unassigns), keeping it in at most one batch."""
        session = self._editable(operation)
        if session is None:
            return False
        item = self._find_item(session, item_id)
        target = self._find_batch(session, batch_id) if batch_id is not None else None
        if item is None or (batch_id is not None and target is None):
            return self._ignore(operation, f"unknown item {item_id} or batch {batch_id}")

        for batch in session.batches:
            batch.item_ids = [i for i in batch.item_ids if i != item_id]
        if target is not None:
            if index is None:
                target.item_ids.append(item_id)
            else:
                target.item_ids.insert(index, item_id)

        item.batch_id = batch_id
        self._invalidate(session)
        return True

    @staticmethod
    def _apply_schedule(item: SessionItem, phases: list[CookingPhase]) -> None:
        phase = next((p for p in phases if item.id in p.item_ids), None)
        if phase is None:
            item.phase_id = item.start_offset_minutes = item.end_offset_minutes = None
            return

        added = next((e for e in phase.events if e.event_type == "add_item" and item.id in e.item_ids), None)
        removed = next((e for e in phase.events if e.event_type == "remove_item" and item.id in e.item_ids), None)

        item.phase_id = phase.id
        item.start_offset_minutes = added.minute_offset if added else 0
        item.end_offset_minutes = removed.minute_offset if removed else max(0.0, item.time_minutes)

    @staticmethod
    def _find_item(session: CookingSession, item_id: str) -> Optional[SessionItem]:
        return next((item for item in session.items if item.id == item_id), None)

    @staticmethod
    def _find_batch(session: CookingSession, batch_id: str) -> Optional[CookingBatch]:
        return next((batch for batch in session.batches if batch.id == batch_id), None)

    @staticmethod
    def _renumber(session: CookingSession) -> None:
        for order, batch in enumerate(session.batches, start=1):
            batch.order = order


def _move(values: list, old_index: int, new_index: int) -> bool:
    if not (0 <= old_index < len(values)) or not (0 <= new_index < len(values)):
        return False
    values.insert(new_index, values.pop(old_index))
    return True
