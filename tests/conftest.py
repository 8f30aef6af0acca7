# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from app.config import Settings
from app.db import create_db_engine, create_session_factory
from app.decision import ClinicalDecisionEngine
from app.intake import (
    BaselineModule,
    EmergencyScreener,
    IntakeOrchestrator,
    IntakePhase,
    ZoneResolver,
    default_registry,
)
from app.services import (
    ErrorRecoveryService,
    InMemoryClinicianSink,
    InMemoryKeyValueStore,
    IntakeLockService,
    IntakeSessionService,
    init_db,
)

NO_FLAGS = {
    "chest_syncope": False,
    "chest_sweating": False,
    "chest_breathing_worse": False,
}

# Age 55 crushing chest pain radiating to arm and jaw.
CHEST_ANSWERS = {
    **NO_FLAGS,
    "onset": "suddenly",
    "quality": ["crushing", "pressure"],
    "radiation": ["left-arm", "jaw"],
    "severity": 8,
    "duration": "lt-1-hour",
    "timing": "at-rest",
    "associated": ["none"],
}

FIRST_VISIT_BASELINE = {
    "chronic_conditions": ["hypertension"],
    "current_medications": "Amlodipine 5mg, aspirin",
    "allergies": "None",
    "smoking_status": "former",
    "family_heart_disease": True,
}


class ManualClock:
    """Timezone-aware clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def settings():
    return Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=False)


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    return create_session_factory(engine)


@pytest.fixture
def decision_engine():
    return ClinicalDecisionEngine()


@pytest.fixture
def orchestrator(clock, decision_engine):
    return IntakeOrchestrator(
        screener=EmergencyScreener(clock=clock),
        resolver=ZoneResolver(),
        registry=default_registry(),
        engine=decision_engine,
        baseline=BaselineModule(),
        clock=clock,
    )


@pytest.fixture
def sink():
    return InMemoryClinicianSink()


@pytest.fixture
def locks(store, settings, clock):
    return IntakeLockService(store, settings, clock=clock)


@pytest.fixture
def recovery(store, settings, clock):
    return ErrorRecoveryService(store, settings, clock=clock)


@pytest.fixture
def service(orchestrator, store, locks, recovery, sink, settings, clock):
    return IntakeSessionService(
        orchestrator=orchestrator,
        store=store,
        locks=locks,
        recovery=recovery,
        sink=sink,
        settings=settings,
        clock=clock,
    )


class IntakeDriver:
    """Walks an orchestrator session forward through the mandatory phases."""

    def __init__(self, orchestrator: IntakeOrchestrator):
        self.orchestrator = orchestrator

    def clear_screening(self, session):
        for _ in range(6):
            session = self.orchestrator.answer_emergency(session, "no")
        return self.orchestrator.advance_phase(session, IntakePhase.COMPLAINT_SELECTION)

    def to_body_map(self, session, complaint="chest_pain"):
        session = self.clear_screening(session)
        session = self.orchestrator.select_complaint(session, complaint)
        return self.orchestrator.advance_phase(session, IntakePhase.BODY_MAP)

    def to_tree(self, session, zone="chest.anterior.middle.left", baseline=FIRST_VISIT_BASELINE):
        session = self.to_body_map(session)
        session = self.orchestrator.record_body_map(session, body_location=zone)
        if session.is_first_time:
            session = self.orchestrator.advance_phase(session, IntakePhase.BASELINE)
            session = self.orchestrator.submit_baseline(session, baseline)
        return self.orchestrator.advance_phase(session, IntakePhase.COMPLAINT_TREE)

    def answer_all(self, session, answers):
        for question_id, value in answers.items():
            session = self.orchestrator.answer_question(session, question_id, value)
        return session

    def to_summary(self, session, answers=CHEST_ANSWERS):
        session = self.answer_all(self.to_tree(session), answers)
        return self.orchestrator.advance_phase(session, IntakePhase.SUMMARY)


@pytest.fixture
def driver(orchestrator):
    return IntakeDriver(orchestrator)
