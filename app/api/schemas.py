# app/api/schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from app.intake.schema import PainPoint


class TabResponse(BaseModel):
    tab_id: str


class LockRequest(BaseModel):
    patient_id: str
    tab_id: str


class LockStatusResponse(BaseModel):
    acquired: bool
    is_locked: bool
    lock_holder: Optional[str] = None
    message: Optional[Dict[str, str]] = None


class LockResultResponse(BaseModel):
    ok: bool


class TabRequest(BaseModel):
    """Mutating intake routes also accept the tab id as an ``X-Tab-Id`` header."""

    tab_id: Optional[str] = None


class StartIntakeRequest(TabRequest):
    patient_id: str
    language: str = "en"
    age: Optional[int] = Field(None, ge=0, le=130)
    sex: Optional[str] = None


class EmergencyAnswerRequest(TabRequest):
    response: Union[bool, str]
    checkpoint_id: Optional[str] = None


class ComplaintRequest(TabRequest):
    complaint_type: str
    complaint_text: Optional[str] = None


class ZoneResolveRequest(BaseModel):
    zone_id: str
    complaint_type: Optional[str] = None


class BodyMapRequest(TabRequest):
    body_location: Optional[str] = None
    pain_points: List[PainPoint] = Field(default_factory=list)


class BaselineRequest(TabRequest):
    answers: Dict[str, Any]


class AnswerRequest(TabRequest):
    question_id: str
    value: Any = None


class AdvanceRequest(TabRequest):
    target_phase: str


class FinalizeRequest(TabRequest):
    confirm_baseline: bool = False


class EmergencyPayload(BaseModel):
    source: str
    checkpoint_id: Optional[str] = None
    protocol: Optional[str] = None
    alert: Dict[str, Any]


class IntakeStepResponse(BaseModel):
    """
    State of the intake after an operation. ``emergency`` is set (and
    ``phase`` is None) when the intake was stopped and the patient must
    be routed to emergency care.
    """

    patient_id: str
    phase: Optional[str] = None
    progress: int = 0
    is_first_time: bool = True
    can_go_back: bool = False
    resumed: bool = False
    prompt: Optional[Dict[str, Any]] = None
    encounter: Dict[str, Any]
    emergency: Optional[EmergencyPayload] = None


class QuestionResponse(BaseModel):
    phase: str
    prompt: Optional[Dict[str, Any]] = None


class BaselineQuestionsResponse(BaseModel):
    is_first_time: bool
    questions: List[Dict[str, Any]]


class ErrorResponse(BaseModel):
    code: str
    message: Dict[str, str]
    field: Optional[str] = None
    severity: Optional[str] = None
    retryable: Optional[bool] = None
    suggested_action: Optional[str] = None
    lock_holder: Optional[str] = None
