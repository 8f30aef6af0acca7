# app/api/routes.py
from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from app.decision import ClinicalDecisionEngine, ClinicalInput, PatientDemographics, TriageResult
from app.intake.agent import EmergencyExit
from app.intake.errors import IntakeValidationError
from app.intake.stages import ComplaintType, IntakePhase
from app.intake.state import IntakeSession
from app.services import IntakeLockService, IntakeSessionService, generate_tab_id
from app.services.lock import LockStatus
from .schemas import (
    AdvanceRequest,
    AnswerRequest,
    BaselineQuestionsResponse,
    BaselineRequest,
    BodyMapRequest,
    ComplaintRequest,
    EmergencyAnswerRequest,
    EmergencyPayload,
    FinalizeRequest,
    IntakeStepResponse,
    LockRequest,
    LockResultResponse,
    LockStatusResponse,
    QuestionResponse,
    StartIntakeRequest,
    TabRequest,
    TabResponse,
    ZoneResolveRequest,
)

router = APIRouter()


def get_service(request: Request) -> IntakeSessionService:
    return request.app.state.intake_service


def get_locks(request: Request) -> IntakeLockService:
    return request.app.state.lock_service


def get_engine(request: Request) -> ClinicalDecisionEngine:
    return request.app.state.decision_engine


def _tab_id(payload: Optional[TabRequest], header: Optional[str]) -> str:
    tab_id = (payload.tab_id if payload else None) or header
    if not tab_id:
        raise IntakeValidationError(
            "A tab id is required (X-Tab-Id header or tab_id field).",
            "ٹیب کی شناخت درکار ہے۔",
            field="tabId",
        )
    return tab_id


def _lock_response(status: LockStatus) -> LockStatusResponse:
    return LockStatusResponse(
        acquired=status.acquired,
        is_locked=status.is_locked,
        lock_holder=status.lock_holder,
        message=status.message.to_wire() if status.message else None,
    )


def _step_response(
    service: IntakeSessionService,
    outcome: Union[IntakeSession, EmergencyExit],
    resumed: bool = False,
) -> IntakeStepResponse:
    if isinstance(outcome, EmergencyExit):
        return IntakeStepResponse(
            patient_id=outcome.patient_id,
            progress=0,
            encounter=outcome.encounter.to_wire(),
            emergency=EmergencyPayload(
                source=outcome.source,
                checkpoint_id=outcome.checkpoint_id,
                protocol=outcome.protocol,
                alert=outcome.alert.to_wire(),
            ),
        )
    return IntakeStepResponse(
        patient_id=outcome.patient_id,
        phase=outcome.phase.value,
        progress=service.progress(outcome),
        is_first_time=outcome.is_first_time,
        can_go_back=outcome.can_go_back,
        resumed=resumed,
        prompt=service.current_prompt(outcome) if outcome.phase is not IntakePhase.COMPLETE else None,
        encounter=outcome.encounter.to_wire(),
    )


# ----------------------------------------------------------------------
# Tabs and locks
# ----------------------------------------------------------------------


@router.post("/tabs", response_model=TabResponse)
def issue_tab() -> TabResponse:
    return TabResponse(tab_id=generate_tab_id())


@router.post("/lock/acquire", response_model=LockStatusResponse)
def acquire_lock(payload: LockRequest, locks: IntakeLockService = Depends(get_locks)):
    """
    409 with the holder's tab id when another tab holds a live lock.
    """
    status = locks.acquire(payload.patient_id, payload.tab_id)
    body = _lock_response(status)
    if not status.acquired:
        return JSONResponse(status_code=409, content=body.model_dump())
    return body


@router.post("/lock/heartbeat", response_model=LockResultResponse)
def heartbeat_lock(payload: LockRequest, locks: IntakeLockService = Depends(get_locks)) -> LockResultResponse:
    return LockResultResponse(ok=locks.heartbeat(payload.patient_id, payload.tab_id))


@router.post("/lock/release", response_model=LockResultResponse)
def release_lock(payload: LockRequest, locks: IntakeLockService = Depends(get_locks)) -> LockResultResponse:
    return LockResultResponse(ok=locks.release(payload.patient_id, payload.tab_id))


@router.get("/lock/{patient_id}", response_model=LockStatusResponse)
def lock_status(
    patient_id: str,
    tab_id: Optional[str] = None,
    locks: IntakeLockService = Depends(get_locks),
) -> LockStatusResponse:
    return _lock_response(locks.status(patient_id, tab_id))


# ----------------------------------------------------------------------
# Intake flow
# ----------------------------------------------------------------------


@router.post("/intake/start", response_model=IntakeStepResponse)
def start_intake(
    payload: StartIntakeRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    """
    Resume the patient's stored intake, or start a new one at the
    emergency screening.
    """
    demographics = None
    if payload.age is not None or payload.sex is not None:
        demographics = PatientDemographics(age=payload.age, sex=payload.sex)

    session, resumed = service.start_or_resume(
        payload.patient_id,
        _tab_id(payload, x_tab_id),
        language=payload.language,
        demographics=demographics,
    )
    return _step_response(service, session, resumed=resumed)


@router.get("/intake/{patient_id}", response_model=IntakeStepResponse)
def get_intake(patient_id: str, service: IntakeSessionService = Depends(get_service)) -> IntakeStepResponse:
    return _step_response(service, service.get_session(patient_id), resumed=True)


@router.get("/intake/{patient_id}/question", response_model=QuestionResponse)
def current_question(patient_id: str, service: IntakeSessionService = Depends(get_service)) -> QuestionResponse:
    session = service.get_session(patient_id)
    return QuestionResponse(phase=session.phase.value, prompt=service.current_prompt(session))


@router.get("/intake/{patient_id}/baseline", response_model=BaselineQuestionsResponse)
def baseline_questions(
    patient_id: str, service: IntakeSessionService = Depends(get_service)
) -> BaselineQuestionsResponse:
    session = service.get_session(patient_id)
    return BaselineQuestionsResponse(
        is_first_time=session.is_first_time,
        questions=service.baseline_questions(session),
    )


@router.post("/intake/{patient_id}/emergency", response_model=IntakeStepResponse)
def answer_emergency(
    patient_id: str,
    payload: EmergencyAnswerRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.answer_emergency(
        patient_id, _tab_id(payload, x_tab_id), payload.response, payload.checkpoint_id
    )
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/complaint", response_model=IntakeStepResponse)
def select_complaint(
    patient_id: str,
    payload: ComplaintRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.select_complaint(
        patient_id, _tab_id(payload, x_tab_id), payload.complaint_type, payload.complaint_text
    )
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/zones/resolve")
def resolve_zone(
    patient_id: str,
    payload: ZoneResolveRequest,
    service: IntakeSessionService = Depends(get_service),
) -> dict:
    complaint = None
    if payload.complaint_type:
        try:
            complaint = ComplaintType(payload.complaint_type)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown complaint type: {payload.complaint_type}")
    return service.resolve_zone(payload.zone_id, complaint).to_wire()


@router.post("/intake/{patient_id}/body-map", response_model=IntakeStepResponse)
def record_body_map(
    patient_id: str,
    payload: BodyMapRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.record_body_map(
        patient_id, _tab_id(payload, x_tab_id), payload.body_location, payload.pain_points
    )
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/baseline", response_model=IntakeStepResponse)
def submit_baseline(
    patient_id: str,
    payload: BaselineRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.submit_baseline(patient_id, _tab_id(payload, x_tab_id), payload.answers)
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/answers", response_model=IntakeStepResponse)
def answer_question(
    patient_id: str,
    payload: AnswerRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.answer_question(
        patient_id, _tab_id(payload, x_tab_id), payload.question_id, payload.value
    )
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/advance", response_model=IntakeStepResponse)
def advance_phase(
    patient_id: str,
    payload: AdvanceRequest,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.advance_phase(patient_id, _tab_id(payload, x_tab_id), payload.target_phase)
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/back", response_model=IntakeStepResponse)
def go_back(
    patient_id: str,
    payload: Optional[TabRequest] = None,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    outcome = service.handle_back(patient_id, _tab_id(payload, x_tab_id))
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/finalize", response_model=IntakeStepResponse)
def finalize_intake(
    patient_id: str,
    payload: Optional[FinalizeRequest] = None,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    confirm = payload.confirm_baseline if payload else False
    outcome = service.finalize(patient_id, _tab_id(payload, x_tab_id), confirm_baseline=confirm)
    return _step_response(service, outcome)


@router.post("/intake/{patient_id}/recover", response_model=IntakeStepResponse)
def recover_intake(
    patient_id: str,
    payload: Optional[TabRequest] = None,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> IntakeStepResponse:
    session = service.recover(patient_id, _tab_id(payload, x_tab_id))
    if session is None:
        raise HTTPException(status_code=404, detail="No recoverable intake for this patient.")
    return _step_response(service, session, resumed=True)


@router.delete("/intake/{patient_id}")
def abandon_intake(
    patient_id: str,
    x_tab_id: Optional[str] = Header(None),
    service: IntakeSessionService = Depends(get_service),
) -> dict:
    service.abandon(patient_id, _tab_id(None, x_tab_id))
    return {"cleared": True}


# ----------------------------------------------------------------------
# Decision support
# ----------------------------------------------------------------------


@router.post("/triage/analyze")
def analyze(payload: ClinicalInput, engine: ClinicalDecisionEngine = Depends(get_engine)) -> dict:
    result: TriageResult = engine.analyze_input(payload)
    return result.to_wire()
