"""Pydantic schemas for the FryPlan API.

Models for:
- Cooking session aggregate (items, batches, phases, events)
- Optimizer results and batch hints
- Request bodies for the cooking session endpoints
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Literal

from pydantic import BaseModel, Field

from .settings import settings


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


SessionStatus = Literal["planning", "optimized", "in_progress", "completed", "cancelled"]
PhaseEventType = Literal["preheat_start", "add_item", "shake_reminder", "remove_item", "phase_complete"]


# --- Session Aggregate ---

class SessionItem(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    temperature: float
    time_minutes: float
    shake_halfway: bool = False
    source_recipe_id: Optional[str] = None

    # Set by the optimizer only
    phase_id: Optional[str] = None
    start_offset_minutes: Optional[float] = None
    end_offset_minutes: Optional[float] = None

    # Manual batching
    batch_id: Optional[str] = None


class CookingBatch(BaseModel):
    id: str = Field(default_factory=generate_id)
    order: int  # 1-based
    item_ids: list[str] = []
    target_temperature: Optional[float] = None
    user_notes: Optional[str] = None


class PhaseEvent(BaseModel):
    id: str = Field(default_factory=generate_id)
    minute_offset: float
    event_type: PhaseEventType
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    item_ids: list[str] = []  # every item the instruction covers
    instruction: str
    completed: bool = False


class CookingPhase(BaseModel):
    id: str = Field(default_factory=generate_id)
    order: int  # 0-based
    target_temperature: float
    total_duration_minutes: float
    item_ids: list[str] = []
    rest_minutes_after: float = 0
    events: list[PhaseEvent] = []
    completed_at: Optional[datetime] = None


class CookingSession(BaseModel):
    id: str = Field(default_factory=generate_id)
    status: SessionStatus = "planning"
    items: list[SessionItem] = []
    batches: list[CookingBatch] = []
    use_manual_batching: bool = False
    phases: list[CookingPhase] = []
    total_estimated_minutes: float = 0

    current_phase_index: Optional[int] = None
    current_event_index: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


# --- Optimizer Output ---

class OptimizationResult(BaseModel):
    phases: list[CookingPhase] = []
    total_minutes: float = 0
    temperature_groups: int = 0
    parallel_items: int = 0
    efficiency_gain: float = 0  # minutes saved vs cooking one item at a time


class TemperatureRange(BaseModel):
    min: float
    max: float


class TemperatureHint(BaseModel):
    severity: Literal["ok", "warning", "mismatch"]
    message: str
    temperature_range: TemperatureRange


class BatchHintOut(BaseModel):
    batch_id: str
    order: int
    hint: TemperatureHint


class SessionProgress(BaseModel):
    current_phase: int
    total_phases: int
    percent_complete: int


# --- Requests ---

class SessionItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    temperature: float = Field(..., ge=settings.min_temperature, le=settings.max_temperature)
    time_minutes: float = Field(..., gt=0, le=settings.max_cook_minutes)
    shake_halfway: bool = False


class SessionItemFromRecipe(SessionItemCreate):
    recipe_id: str


class SessionItemPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    temperature: Optional[float] = Field(None, ge=settings.min_temperature, le=settings.max_temperature)
    time_minutes: Optional[float] = Field(None, gt=0, le=settings.max_cook_minutes)
    shake_halfway: Optional[bool] = None


class ManualBatchingToggle(BaseModel):
    enabled: bool


class ReorderRequest(BaseModel):
    old_index: int = Field(..., ge=0)
    new_index: int = Field(..., ge=0)


class BatchPatch(BaseModel):
    user_notes: str = Field(..., max_length=500)


class BatchAssignRequest(BaseModel):
    item_id: str
    index: Optional[int] = Field(None, ge=0)


class ItemMoveRequest(BaseModel):
    from_batch_id: Optional[str] = None
    to_batch_id: Optional[str] = None
    index: Optional[int] = Field(None, ge=0)


class BatchSuggestionApply(BaseModel):
    batches: list[CookingBatch]
