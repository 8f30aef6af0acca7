# app/intake/state.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from pydantic import Field

from app.intake.schema import Encounter, utcnow
from app.intake.stages import IntakePhase, StepType
from app.records import Record


class NavigationStep(Record):
    step_id: str
    step_type: StepType
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class IntakeSession(Record):
    """
    Resumable state of one patient's intake.

    Immutable: orchestrator transitions return a new session. The
    navigation stack holds one step per phase that has been left, most
    recent last, and drives back-navigation.
    """

    patient_id: str
    phase: IntakePhase = IntakePhase.EMERGENCY
    navigation_stack: Tuple[NavigationStep, ...] = ()
    encounter: Encounter
    is_first_time: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @classmethod
    def new(
        cls,
        patient_id: str,
        encounter: Encounter,
        is_first_time: bool,
        now: Optional[datetime] = None,
        ttl: timedelta = timedelta(hours=24),
    ) -> "IntakeSession":
        now = now or utcnow()
        return cls(
            patient_id=patient_id,
            encounter=encounter,
            is_first_time=is_first_time,
            created_at=now,
            expires_at=now + ttl,
        )

    @property
    def can_go_back(self) -> bool:
        return bool(self.navigation_stack)

    @property
    def top_step(self) -> Optional[NavigationStep]:
        return self.navigation_stack[-1] if self.navigation_stack else None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def with_encounter(self, encounter: Encounter) -> "IntakeSession":
        return self.model_copy(update={"encounter": encounter})
