# tests/test_session_service.py
import pytest

from conftest import CHEST_ANSWERS, FIRST_VISIT_BASELINE

from app.config import Settings
from app.intake import EmergencyExit, IntakePhase, IntakeSession, IntakeValidationError, SessionExpiredError
from app.intake.schema import EncounterStatus
from app.intake.tree_catalog import CHEST_PAIN_TREE
from app.intake.trees import derive_findings
from app.llm import LLMClient, OpenAILLMClient, build_llm_client
from app.services import (
    ErrorCode,
    InMemoryClinicianSink,
    IntakeLockedError,
    IntakeServiceError,
    IntakeSessionService,
    PatientAccountRepository,
)
from app.services.storage import recovery_key, session_key

PID = "patient-1"
TAB = "tab-a"


class StaticLLM(LLMClient):
    def __init__(self, reply="Rewritten history of present illness."):
        self.reply = reply
        self.calls = []

    def chat(self, messages, temperature=0.2, model=None):
        self.calls.append(messages)
        return self.reply


class FailingLLM(LLMClient):
    def chat(self, messages, temperature=0.2, model=None):
        raise RuntimeError("OpenAI request failed")


def build_service(orchestrator, store, locks, recovery, clock, **overrides):
    options = dict(
        orchestrator=orchestrator,
        store=store,
        locks=locks,
        recovery=recovery,
        sink=InMemoryClinicianSink(),
        settings=Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=False),
        clock=clock,
    )
    options.update(overrides)
    return IntakeSessionService(**options)


def walk_to_summary(service, pid=PID, tab=TAB):
    for _ in range(6):
        service.answer_emergency(pid, tab, "no")
    service.advance_phase(pid, tab, IntakePhase.COMPLAINT_SELECTION)
    service.select_complaint(pid, tab, "chest_pain")
    service.advance_phase(pid, tab, IntakePhase.BODY_MAP)
    session = service.record_body_map(pid, tab, body_location="chest.anterior.middle.left")
    if session.is_first_time:
        service.advance_phase(pid, tab, IntakePhase.BASELINE)
        service.submit_baseline(pid, tab, FIRST_VISIT_BASELINE)
    service.advance_phase(pid, tab, IntakePhase.COMPLAINT_TREE)
    for question_id, value in CHEST_ANSWERS.items():
        service.answer_question(pid, tab, question_id, value)
    return service.advance_phase(pid, tab, IntakePhase.SUMMARY)


@pytest.fixture
def started(service, locks):
    locks.acquire(PID, TAB)
    session, resumed = service.start_or_resume(PID, TAB)
    assert resumed is False
    return session


def test_operations_require_the_lock(service, locks):
    with pytest.raises(IntakeLockedError):
        service.start_or_resume(PID, TAB)

    locks.acquire(PID, "tab-b")
    with pytest.raises(IntakeLockedError) as excinfo:
        service.start_or_resume(PID, TAB)
    assert excinfo.value.status.lock_holder == "tab-b"
    assert excinfo.value.to_dict()["code"] == "INTAKE_LOCKED"


def test_other_tab_cannot_write(service, locks, started):
    locks.release(PID, TAB)
    locks.acquire(PID, "tab-b")

    with pytest.raises(IntakeLockedError):
        service.answer_emergency(PID, TAB, "no")
    assert service.load_session(PID).encounter.emergency_screening.checkpoints == ()


def test_resume_returns_stored_session(service, started):
    service.answer_emergency(PID, TAB, "no")
    session, resumed = service.start_or_resume(PID, TAB)

    assert resumed is True
    assert session.encounter.id == started.encounter.id
    assert len(session.encounter.emergency_screening.checkpoints) == 1


def test_prompt_follows_phase(service, started):
    assert service.current_prompt(started)["id"] == "emergency_chest_pain"
    session = walk_to_summary(service)
    assert service.current_prompt(session) is None


def test_validation_errors_pass_through_untouched(service, started, store):
    with pytest.raises(IntakeValidationError) as excinfo:
        service.answer_emergency(PID, TAB, "maybe")
    assert excinfo.value.field == "response"
    assert store.get(recovery_key(PID)) is None


def test_missing_session_is_reported_as_expired(service, locks):
    locks.acquire(PID, TAB)
    with pytest.raises(SessionExpiredError):
        service.answer_emergency(PID, TAB, "no")


def test_tree_answers_survive_save_and_reload(service, started):
    walk_to_summary(service)
    reloaded = service.load_session(PID)

    assert reloaded.encounter.answers == CHEST_ANSWERS
    pain, _ = derive_findings(
        CHEST_PAIN_TREE,
        reloaded.encounter.answers,
        body_location=reloaded.encounter.body_location,
    )
    assert pain.intensity == 8
    assert pain.quality == ("crushing", "pressure")


def test_non_finite_severity_never_reaches_storage(service, started, store):
    walk_to_summary(service)
    service.handle_back(PID, TAB)

    with pytest.raises(IntakeValidationError) as excinfo:
        service.answer_question(PID, TAB, "severity", "nan")
    assert excinfo.value.field == "severity"
    assert store.get(session_key(PID))["encounter"]["answers"]["severity"] == 8


def test_expired_session_is_snapshotted_and_recoverable(service, locks, clock, store, started):
    for _ in range(6):
        service.answer_emergency(PID, TAB, "no")
    service.advance_phase(PID, TAB, IntakePhase.COMPLAINT_SELECTION)
    service.select_complaint(PID, TAB, "headache")

    clock.advance(hours=25)
    assert service.load_session(PID) is None
    assert store.get(session_key(PID)) is None
    assert store.get(recovery_key(PID))["code"] == "SESSION_EXPIRED"

    locks.acquire(PID, TAB)
    recovered = service.recover(PID, TAB)

    assert recovered.phase is IntakePhase.EMERGENCY
    assert recovered.encounter.complaint_type.value == "headache"
    assert service.load_session(PID) is not None
    assert store.get(recovery_key(PID)) is None


def test_recover_without_snapshot(service, locks):
    locks.acquire(PID, TAB)
    assert service.recover(PID, TAB) is None


def test_save_refreshes_expiry(service, locks, clock, started):
    clock.advance(hours=20)
    locks.acquire(PID, TAB)
    session = service.answer_emergency(PID, TAB, "no")
    assert session.expires_at == clock() + service.session_ttl


def test_emergency_exit_goes_to_sink_and_clears(service, sink, started):
    outcome = service.answer_emergency(PID, TAB, "yes")

    assert isinstance(outcome, EmergencyExit)
    assert sink.encounters[0].status is EncounterStatus.EMERGENCY
    assert service.load_session(PID) is None


def test_finalize_submits_and_clears(service, sink, started):
    walk_to_summary(service)
    done = service.finalize(PID, TAB)

    assert done.phase is IntakePhase.COMPLETE
    assert sink.encounters[0].triage_result.urgency.score == 95
    assert sink.encounters[0].clinical_note.generated_by == "rule-engine"
    assert service.load_session(PID) is None


def test_unexpected_failure_is_classified_and_snapshotted(service, started, store, monkeypatch):
    walk_to_summary(service)

    def boom(encounter):
        raise TimeoutError("decision engine timed out")

    monkeypatch.setattr(service.orchestrator.engine, "analyze", boom)
    with pytest.raises(IntakeServiceError) as excinfo:
        service.finalize(PID, TAB)

    assert excinfo.value.classified.code is ErrorCode.NETWORK_TIMEOUT
    assert isinstance(excinfo.value.original, TimeoutError)
    assert store.get(recovery_key(PID))["state"]["phase"] == "summary"
    assert service.load_session(PID).phase is IntakePhase.SUMMARY


def test_sink_failure_is_a_storage_error(orchestrator, store, locks, recovery, clock):
    class BrokenSink:
        def submit(self, encounter):
            raise RuntimeError("connection reset")

    service = build_service(orchestrator, store, locks, recovery, clock, sink=BrokenSink())
    locks.acquire(PID, TAB)
    service.start_or_resume(PID, TAB)

    with pytest.raises(IntakeServiceError) as excinfo:
        service.answer_emergency(PID, TAB, "yes")
    assert excinfo.value.classified.code is ErrorCode.STORAGE_ERROR


def test_unreadable_stored_session_is_classified_and_dropped(service, locks, store):
    locks.acquire(PID, TAB)
    store.set(session_key(PID), {"patientId": PID, "phase": "not-a-phase"})

    with pytest.raises(IntakeServiceError) as excinfo:
        service.answer_emergency(PID, TAB, "no")

    classified = excinfo.value.classified
    assert classified.code is ErrorCode.STORAGE_ERROR
    assert classified.user_message.ur
    assert store.get(session_key(PID)) is None
    session, resumed = service.start_or_resume(PID, TAB)
    assert resumed is False


def test_store_failure_on_save(orchestrator, locks, recovery, clock):
    class ReadOnlyStore:
        def get(self, key):
            return None

        def set(self, key, value):
            raise OSError("read-only file system")

        def remove(self, key):
            pass

    service = build_service(orchestrator, ReadOnlyStore(), locks, recovery, clock)
    with pytest.raises(IntakeServiceError) as excinfo:
        service.create_session(PID)
    assert excinfo.value.classified.code is ErrorCode.STORAGE_ERROR


def test_llm_rewrites_hpi_when_enabled(orchestrator, store, locks, recovery, clock):
    llm = StaticLLM()
    sink = InMemoryClinicianSink()
    service = build_service(
        orchestrator, store, locks, recovery, clock,
        sink=sink,
        llm_client=llm,
        settings=Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=True),
    )
    locks.acquire(PID, TAB)
    service.start_or_resume(PID, TAB)
    walk_to_summary(service)

    done = service.finalize(PID, TAB)

    note = done.encounter.clinical_note
    assert note.hpi == "Rewritten history of present illness."
    assert note.generated_by == "rule-engine+llm"
    assert sink.encounters[0].clinical_note.hpi == note.hpi
    assert "Draft HPI" in llm.calls[0][1]["content"]


def test_llm_failure_keeps_rule_note(orchestrator, store, locks, recovery, clock):
    sink = InMemoryClinicianSink()
    service = build_service(
        orchestrator, store, locks, recovery, clock,
        sink=sink,
        llm_client=FailingLLM(),
        settings=Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=True),
    )
    locks.acquire(PID, TAB)
    service.start_or_resume(PID, TAB)
    walk_to_summary(service)

    done = service.finalize(PID, TAB)

    assert done.phase is IntakePhase.COMPLETE
    assert done.encounter.clinical_note.generated_by == "rule-engine"
    assert len(sink.encounters) == 1


def test_enrichment_disabled_without_client(service):
    assert service.enrich_notes is False


def test_confirmed_baseline_makes_next_visit_returning(
    orchestrator, store, locks, recovery, clock, session_factory
):
    accounts = PatientAccountRepository(session_factory, clock=clock)
    service = build_service(orchestrator, store, locks, recovery, clock, accounts=accounts)
    locks.acquire(PID, TAB)
    first, _ = service.start_or_resume(PID, TAB)
    assert first.is_first_time is True
    walk_to_summary(service)

    service.finalize(PID, TAB, confirm_baseline=True)

    account = accounts.get(PID)
    assert account.baseline_confirmed_by == "patient"
    assert account.baseline.chronic_conditions == ("hypertension",)

    second, resumed = service.start_or_resume(PID, TAB)
    assert resumed is False
    assert second.is_first_time is False
    assert second.encounter.medical_history.conditions == ("hypertension",)


def test_abandon_clears_state(service, store, started):
    service.abandon(PID, TAB)
    assert store.get(session_key(PID)) is None
    assert isinstance(started, IntakeSession)


def test_build_llm_client_follows_settings():
    off = Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=False, openai_api_key="sk-test")
    no_key = Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=True, openai_api_key=None)
    on = Settings(_env_file=None, database_url="sqlite://", ai_note_enrichment=True, openai_api_key="sk-test")

    assert build_llm_client(off) is None
    assert build_llm_client(no_key) is None
    client = build_llm_client(on)
    assert isinstance(client, OpenAILLMClient)
    assert client.default_model == on.llm_model
