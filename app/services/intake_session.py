# app/services/intake_session.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings
from app.db import Base
from app.intake.agent import EmergencyExit, IntakeOrchestrator
from app.intake.errors import (
    IntakeError,
    IntakeStorageError,
    IntakeValidationError,
    SessionExpiredError,
)
from app.intake.schema import Encounter, PainPoint, PatientAccount, utcnow
from app.intake.stages import ComplaintType, IntakePhase, Language
from app.intake.state import IntakeSession
from app.intake.summarizer import rewrite_hpi_with_llm
from app.intake.trees import format_question
from app.intake.zones import ZoneResolution
from app.decision import PatientDemographics
from app.llm import LLMClient
from app.logging_config import get_logger, log_with_context
from app.services.lock import IntakeLockService, IntakeLockedError
from app.services.persistence import ClinicianSink, PatientAccountRepository
from app.services.recovery import ErrorCode, ErrorRecoveryService, IntakeServiceError
from app.services.storage import KeyValueStore, session_key

logger = get_logger(__name__)

Outcome = Union[IntakeSession, EmergencyExit]


@contextmanager
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Create all tables. Call this once at startup.
    """
    # Register the models on Base.metadata.
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


class IntakeSessionService:
    """
    Service that coordinates:
      - loading and saving the IntakeSession in shared storage
      - checking that the calling tab holds the patient's lock
      - driving the IntakeOrchestrator one operation at a time
      - handing finished (or emergency-stopped) encounters to the clinician sink
      - classifying failures through the ErrorRecoveryService
    """

    def __init__(
        self,
        orchestrator: IntakeOrchestrator,
        store: KeyValueStore,
        locks: IntakeLockService,
        recovery: ErrorRecoveryService,
        sink: ClinicianSink,
        settings: Settings,
        accounts: Optional[PatientAccountRepository] = None,
        llm_client: Optional[LLMClient] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.locks = locks
        self.recovery = recovery
        self.sink = sink
        self.accounts = accounts
        self.llm_client = llm_client
        self.enrich_notes = settings.ai_note_enrichment and llm_client is not None
        self.session_ttl = timedelta(hours=settings.session_ttl_hours)
        self._clock = clock

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_session(
        self,
        patient_id: str,
        language: Language | str = Language.EN,
        demographics: Optional[PatientDemographics] = None,
    ) -> IntakeSession:
        account = self._account(patient_id)
        session = self.orchestrator.create_session(
            patient_id, account=account, language=language, demographics=demographics
        )
        return self.save_session(session)

    def load_session(self, patient_id: str) -> Optional[IntakeSession]:
        """
        Return the stored session, or None when there is none, it belongs
        to another patient, or it has expired. An expired session is
        snapshotted for recovery and removed.
        """
        key = session_key(patient_id)
        try:
            raw = self.store.get(key)
            session = IntakeSession.model_validate(raw) if raw else None
        except Exception as exc:
            # Unreadable record: drop it so the patient can start over.
            self._discard(key)
            error = IntakeStorageError(f"Stored session could not be read: {exc}")
            raise IntakeServiceError(self.recovery.handle(error), exc) from exc
        if session is None:
            return None

        if session.patient_id != patient_id:
            logger.warning("Stored session under %s belongs to %s", patient_id, session.patient_id)
            return None

        if session.is_expired(self._clock()):
            logger.info("Intake session expired: patient=%s phase=%s", patient_id, session.phase.value)
            self.recovery.snapshot(session, ErrorCode.SESSION_EXPIRED)
            self.store.remove(session_key(patient_id))
            return None
        return session

    def save_session(self, session: IntakeSession) -> IntakeSession:
        session = session.model_copy(update={"expires_at": self._clock() + self.session_ttl})
        try:
            self.store.set(session_key(session.patient_id), session.to_wire())
        except Exception as exc:
            error = IntakeStorageError(f"Session storage failed: {exc}")
            raise IntakeServiceError(self.recovery.handle(error, session), exc) from exc
        return session

    def clear_session(self, patient_id: str) -> None:
        self.store.remove(session_key(patient_id))
        self.recovery.clear(patient_id)

    def start_or_resume(
        self,
        patient_id: str,
        tab_id: str,
        language: Language | str = Language.EN,
        demographics: Optional[PatientDemographics] = None,
    ) -> Tuple[IntakeSession, bool]:
        """Returns the session and whether it was resumed."""
        self._require_lock(patient_id, tab_id)
        existing = self.load_session(patient_id)
        if existing is not None:
            return existing, True
        return self.create_session(patient_id, language, demographics), False

    def recover(self, patient_id: str, tab_id: str) -> Optional[IntakeSession]:
        self._require_lock(patient_id, tab_id)
        session = self.recovery.recover(patient_id)
        if session is None:
            return None
        session = self.save_session(session)
        self.recovery.clear(patient_id)
        logger.info("Intake recovered: patient=%s phase=%s", patient_id, session.phase.value)
        return session

    def get_session(self, patient_id: str) -> IntakeSession:
        session = self.load_session(patient_id)
        if session is None:
            raise SessionExpiredError(patient_id)
        return session

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def progress(self, session: IntakeSession) -> int:
        return self.orchestrator.progress(session)

    def current_prompt(self, session: IntakeSession) -> Optional[Dict[str, Any]]:
        """What the patient should be asked next in the current phase, if anything."""
        language = session.encounter.language
        if session.phase is IntakePhase.EMERGENCY:
            checkpoint = self.orchestrator.current_checkpoint(session)
            if checkpoint is None:
                return None
            return {
                "id": checkpoint.id,
                "text": checkpoint.question.get(language),
                "responseType": "yes_no",
            }
        if session.phase is IntakePhase.COMPLAINT_TREE:
            item = self.orchestrator.next_question(session)
            return format_question(item, language) if item is not None else None
        return None

    def baseline_questions(self, session: IntakeSession) -> List[dict]:
        return self.orchestrator.baseline_questions(session, session.encounter.language)

    def resolve_zone(self, zone_id: str, complaint: Optional[ComplaintType] = None) -> ZoneResolution:
        return self.orchestrator.resolve_zone(zone_id, complaint)

    # ------------------------------------------------------------------
    # Flow operations (require the lock)
    # ------------------------------------------------------------------

    def answer_emergency(
        self,
        patient_id: str,
        tab_id: str,
        response: Union[str, bool],
        checkpoint_id: Optional[str] = None,
    ) -> Outcome:
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.answer_emergency(s, response, checkpoint_id),
        )

    def select_complaint(
        self,
        patient_id: str,
        tab_id: str,
        complaint_type: Union[ComplaintType, str],
        complaint_text: Optional[str] = None,
    ) -> Outcome:
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.select_complaint(s, complaint_type, complaint_text),
        )

    def record_body_map(
        self,
        patient_id: str,
        tab_id: str,
        body_location: Optional[str] = None,
        pain_points: Sequence[PainPoint] = (),
    ) -> Outcome:
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.record_body_map(s, body_location, pain_points),
        )

    def submit_baseline(self, patient_id: str, tab_id: str, answers: Dict[str, Any]) -> Outcome:
        account = self._account(patient_id)
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.submit_baseline(s, answers, account),
        )

    def answer_question(self, patient_id: str, tab_id: str, question_id: str, value: Any) -> Outcome:
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.answer_question(s, question_id, value),
        )

    def advance_phase(self, patient_id: str, tab_id: str, target: Union[IntakePhase, str]) -> Outcome:
        return self._run(
            patient_id,
            tab_id,
            lambda s: self.orchestrator.advance_phase(s, target),
        )

    def handle_back(self, patient_id: str, tab_id: str) -> Outcome:
        return self._run(patient_id, tab_id, self.orchestrator.handle_back)

    def finalize(self, patient_id: str, tab_id: str, confirm_baseline: bool = False) -> Outcome:
        """
        SUMMARY -> COMPLETE. With ``confirm_baseline`` a first-time
        patient's questionnaire answers are written to their account.
        """
        session = self._run(patient_id, tab_id, self.orchestrator.finalize)
        if confirm_baseline and self.accounts is not None and isinstance(session, IntakeSession):
            encounter = session.encounter
            if session.is_first_time and encounter.baseline_committed:
                self.accounts.confirm_baseline_update(
                    patient_id, encounter.medical_history, confirmed_by="patient"
                )
        return session

    def abandon(self, patient_id: str, tab_id: str) -> None:
        self._require_lock(patient_id, tab_id)
        self.clear_session(patient_id)
        logger.info("Intake abandoned: patient=%s", patient_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _account(self, patient_id: str) -> Optional[PatientAccount]:
        return self.accounts.get(patient_id) if self.accounts is not None else None

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except Exception:
            logger.exception("Failed to remove unreadable record %s", key)

    def _require_lock(self, patient_id: str, tab_id: str) -> None:
        if not self.locks.holds(patient_id, tab_id):
            raise IntakeLockedError(self.locks.status(patient_id, tab_id))

    def _run(
        self,
        patient_id: str,
        tab_id: str,
        operation: Callable[[IntakeSession], Outcome],
    ) -> Outcome:
        self._require_lock(patient_id, tab_id)
        session = self.get_session(patient_id)
        try:
            result = operation(session)
        except IntakeValidationError:
            raise
        except Exception as exc:
            raise IntakeServiceError(self.recovery.handle(exc, session), exc) from exc

        if isinstance(result, EmergencyExit):
            return self._exit_to_emergency(result)
        if result.phase is IntakePhase.COMPLETE:
            return self._complete(result)
        return self.save_session(result)

    def _exit_to_emergency(self, exit_: EmergencyExit) -> EmergencyExit:
        self._submit(exit_.encounter, None)
        self.clear_session(exit_.patient_id)
        log_with_context(
            logger,
            logging.CRITICAL,
            f"Intake exited to emergency guidance: patient={exit_.patient_id} "
            f"source={exit_.source} protocol={exit_.protocol}",
            event="emergency_exit",
            patient_id=exit_.patient_id,
            checkpoint_id=exit_.checkpoint_id,
            protocol=exit_.protocol,
            encounter_id=exit_.encounter.id,
        )
        return exit_

    def _complete(self, session: IntakeSession) -> IntakeSession:
        encounter = session.encounter
        if self.enrich_notes and encounter.clinical_note is not None:
            try:
                note = rewrite_hpi_with_llm(encounter.clinical_note, encounter, self.llm_client)
            except Exception as exc:
                # Degraded: keep the deterministic note.
                self.recovery.handle(exc, session)
            else:
                encounter = encounter.updated(clinical_note=note)
                session = session.with_encounter(encounter)

        self._submit(encounter, session)
        self.clear_session(session.patient_id)
        return session

    def _submit(self, encounter: Encounter, session: Optional[IntakeSession]) -> None:
        try:
            self.sink.submit(encounter)
        except IntakeError:
            raise
        except Exception as exc:
            error = IntakeStorageError(f"Clinician sink storage failed: {exc}")
            raise IntakeServiceError(self.recovery.handle(error, session), exc) from exc
