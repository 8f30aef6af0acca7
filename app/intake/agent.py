# app/intake/agent.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from app.decision import ClinicalDecisionEngine, PatientDemographics, TriageResult, UrgencyLevel
from app.intake.baseline import BaselineModule
from app.intake.emergency import EmergencyAlert, EmergencyCheckpoint, EmergencyScreener
from app.intake.errors import IntakeValidationError
from app.intake.schema import (
    ClinicalNote,
    DetectedRedFlag,
    Encounter,
    EncounterStatus,
    PainPoint,
    PatientAccount,
    RedFlagAction,
    utcnow,
)
from app.intake.stages import (
    PHASE_PROGRESS,
    STEP_FOR_PHASE,
    ComplaintType,
    IntakePhase,
    Language,
    phase_after_step,
    phase_order,
)
from app.intake.state import IntakeSession, NavigationStep
from app.intake.summarizer import build_clinical_note, build_emergency_note
from app.intake.trees import (
    ComplaintTree,
    ComplaintTreeRegistry,
    ConditionalQuestion,
    RedFlagCheck,
    TreeItem,
    coerce_answer,
    derive_findings,
)
from app.intake.zones import ZoneResolution, ZoneResolver
from app.logging_config import get_logger
from app.records import Record

logger = get_logger(__name__)


class EmergencyExit(Record):
    """
    Terminal outcome of a positive emergency checkpoint or a STOP_INTAKE
    red flag. The session is over; the caller routes the patient to
    emergency guidance and clears stored state.
    """

    patient_id: str
    source: str  # "screening" or "red_flag"
    checkpoint_id: Optional[str] = None
    protocol: Optional[str] = None
    alert: EmergencyAlert
    encounter: Encounter


Outcome = Union[IntakeSession, EmergencyExit]


class IntakeOrchestrator:
    """
    Mandatory-order intake state machine.

    Phases: EMERGENCY -> COMPLAINT_SELECTION -> BODY_MAP -> (BASELINE,
    first-time only) -> COMPLAINT_TREE -> SUMMARY -> COMPLETE.

    Every method takes an IntakeSession and returns a new one (or an
    EmergencyExit); nothing is mutated in place and nothing is persisted
    here. Rejected operations raise IntakeValidationError and leave the
    caller's session untouched.
    """

    def __init__(
        self,
        screener: EmergencyScreener,
        resolver: ZoneResolver,
        registry: ComplaintTreeRegistry,
        engine: ClinicalDecisionEngine,
        baseline: Optional[BaselineModule] = None,
        clock: Callable[[], datetime] = utcnow,
        session_ttl: timedelta = timedelta(hours=24),
    ):
        self.screener = screener
        self.resolver = resolver
        self.registry = registry
        self.engine = engine
        self.baseline = baseline or BaselineModule()
        self._clock = clock
        self.session_ttl = session_ttl

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_session(
        self,
        patient_id: str,
        account: Optional[PatientAccount] = None,
        language: Language | str = Language.EN,
        demographics: Optional[PatientDemographics] = None,
    ) -> IntakeSession:
        now = self._clock()
        is_first_time = account is None or account.is_first_time

        encounter = Encounter(
            patient_id=patient_id,
            created_at=now,
            updated_at=now,
            language=Language(language),
            emergency_screening=self.screener.start(),
        )
        if account is not None:
            encounter = encounter.model_copy(
                update={"demographics": account.demographics_snapshot(now.date())}
            )
            if not is_first_time:
                encounter = encounter.model_copy(
                    update={"medical_history": account.history_snapshot()}
                )
        if demographics is not None:
            encounter = encounter.model_copy(update={"demographics": demographics})

        logger.info(
            "Intake session created: patient=%s first_time=%s encounter=%s",
            patient_id,
            is_first_time,
            encounter.id,
        )
        return IntakeSession.new(
            patient_id, encounter, is_first_time, now=now, ttl=self.session_ttl
        )

    def progress(self, session: IntakeSession) -> int:
        return PHASE_PROGRESS[session.phase]

    # ------------------------------------------------------------------
    # EMERGENCY
    # ------------------------------------------------------------------

    def current_checkpoint(self, session: IntakeSession) -> Optional[EmergencyCheckpoint]:
        screening = session.encounter.emergency_screening or self.screener.start()
        return self.screener.next_checkpoint(screening)

    def answer_emergency(
        self,
        session: IntakeSession,
        response: Union[str, bool],
        checkpoint_id: Optional[str] = None,
    ) -> Outcome:
        self._require_phase(session, IntakePhase.EMERGENCY)
        screening = session.encounter.emergency_screening or self.screener.start()
        screening = self.screener.answer(screening, response, checkpoint_id)

        encounter = session.encounter.updated(
            emergency_screening=screening, updated_at=self._clock()
        )
        if not screening.any_positive:
            return session.with_encounter(encounter)

        self.screener.log_emergency_event(session.patient_id, screening)
        fired = self.screener.positive_checkpoint(screening)
        checkpoint = self.screener.get_checkpoint(fired) if fired else None
        finding = checkpoint.question.en if checkpoint else (screening.emergency_type or "emergency")
        return self._emergency_exit(
            session,
            encounter,
            source="screening",
            checkpoint_id=fired,
            protocol=screening.emergency_type,
            finding=finding,
            alert=self.screener.format_alert(fired, encounter.language),
        )

    # ------------------------------------------------------------------
    # COMPLAINT_SELECTION / BODY_MAP
    # ------------------------------------------------------------------

    def select_complaint(
        self,
        session: IntakeSession,
        complaint_type: Union[ComplaintType, str],
        complaint_text: Optional[str] = None,
    ) -> IntakeSession:
        self._require_phase(session, IntakePhase.COMPLAINT_SELECTION)
        try:
            complaint = ComplaintType(complaint_type)
        except ValueError:
            raise IntakeValidationError(
                f"Unknown complaint type: {complaint_type}",
                "نامعلوم شکایت",
                field="complaintType",
            ) from None

        text = complaint_text.strip() if complaint_text else None
        encounter = session.encounter.updated(
            complaint_type=complaint,
            complaint_text=text or None,
            updated_at=self._clock(),
        )
        return session.with_encounter(encounter)

    def resolve_zone(self, zone_id: str, complaint: Optional[ComplaintType] = None) -> ZoneResolution:
        return self.resolver.resolve(zone_id, complaint)

    def record_body_map(
        self,
        session: IntakeSession,
        body_location: Optional[str] = None,
        pain_points: Sequence[PainPoint] = (),
    ) -> IntakeSession:
        """
        Record the selected location and/or pain points. Broad zones must
        be refined first; every zone id is validated against the taxonomy.
        """
        self._require_phase(session, IntakePhase.BODY_MAP)

        location = body_location.strip() if body_location else None
        for zone_id in [location, *(p.zone_id for p in pain_points)]:
            if zone_id:
                self._require_terminal_zone(zone_id)

        points = tuple(pain_points)
        if points and not any(p.is_primary for p in points):
            points = (points[0].model_copy(update={"is_primary": True}),) + points[1:]

        encounter = session.encounter.updated(
            body_location=location,
            pain_points=points,
            updated_at=self._clock(),
        )
        return session.with_encounter(self._retarget_tree(encounter))

    def _retarget_tree(self, encounter: Encounter) -> Encounter:
        """Resolve the tree key from the location and complaint; a new key drops old tree answers."""
        primary = encounter.primary_pain_point
        primary_zone = encounter.body_location or (primary.zone_id if primary else None)
        tree_key = self.resolver.tree_key_for(primary_zone, encounter.complaint_type)
        if tree_key == encounter.tree_key:
            return encounter
        return encounter.updated(
            tree_key=tree_key,
            answers={},
            red_flags_detected=(),
            triage_override=None,
            pain=None,
            associated_symptoms=(),
        )

    # ------------------------------------------------------------------
    # BASELINE
    # ------------------------------------------------------------------

    def baseline_questions(self, session: IntakeSession, language: Language | str = Language.EN) -> List[dict]:
        answers = {
            key.removeprefix("baseline_") if session.is_first_time else key: value
            for key, value in session.encounter.baseline_answers.items()
        }
        return self.baseline.format_questions(session.is_first_time, answers, language)

    def submit_baseline(
        self,
        session: IntakeSession,
        answers: Dict[str, Any],
        account: Optional[PatientAccount] = None,
    ) -> IntakeSession:
        self._require_phase(session, IntakePhase.BASELINE)
        encounter = self.baseline.commit(session.encounter, session.is_first_time, answers, account)
        return session.with_encounter(encounter)

    # ------------------------------------------------------------------
    # COMPLAINT_TREE
    # ------------------------------------------------------------------

    def tree_for(self, session: IntakeSession) -> ComplaintTree:
        key = session.encounter.tree_key
        tree = self.registry.get_tree(key) if key is not None else None
        if tree is None:
            raise IntakeValidationError(
                "No complaint tree selected. Please mark where it hurts first.",
                "کوئی سوالنامہ منتخب نہیں ہوا۔ پہلے درد کی جگہ بتائیں۔",
                field="treeKey",
            )
        return tree

    def next_question(self, session: IntakeSession) -> Optional[TreeItem]:
        return self.tree_for(session).next_item(session.encounter.answers)

    def answer_question(self, session: IntakeSession, question_id: str, raw: Any) -> Outcome:
        self._require_phase(session, IntakePhase.COMPLAINT_TREE)
        tree = self.tree_for(session)
        encounter = session.encounter

        item = tree.item(question_id)
        if item is None:
            raise IntakeValidationError(
                f"Unknown question {question_id} for {tree.key.value}",
                "نامعلوم سوال",
                field=question_id,
            )
        if isinstance(item, ConditionalQuestion) and not item.applies(encounter.answers):
            raise IntakeValidationError(
                f"Question {question_id} does not apply to the answers given so far.",
                "یہ سوال آپ کے جوابات پر لاگو نہیں ہوتا۔",
                field=question_id,
            )

        value = coerce_answer(item, raw)
        answers = {**encounter.answers, question_id: value}
        # Drop answers to conditionals that no longer apply.
        applicable = {i.id for i in tree.applicable_items(answers)}
        answers = {k: v for k, v in answers.items() if k in applicable}

        detected = tuple(f for f in encounter.red_flags_detected if f.check_id != question_id)
        stop_check: Optional[RedFlagCheck] = None
        if isinstance(item, RedFlagCheck) and value is True:
            detected += (
                DetectedRedFlag(
                    check_id=item.id,
                    tree_key=tree.key,
                    severity=item.severity,
                    action=item.action,
                    symptom=item.symptom,
                    description=item.alert,
                    detected_at=self._clock(),
                ),
            )
            if item.action is RedFlagAction.STOP_INTAKE:
                stop_check = item

        escalated = any(f.action is RedFlagAction.ESCALATE for f in detected)
        encounter = encounter.updated(
            answers=answers,
            red_flags_detected=detected,
            triage_override=UrgencyLevel.URGENT if escalated else None,
            updated_at=self._clock(),
        )

        if stop_check is not None:
            logger.critical(
                "Red flag stopped intake: patient=%s check=%s tree=%s",
                session.patient_id,
                stop_check.id,
                tree.key.value,
                extra={
                    "extra_fields": {
                        "event": "red_flag_stop",
                        "patient_id": session.patient_id,
                        "check_id": stop_check.id,
                        "tree_key": tree.key.value,
                    }
                },
            )
            return self._emergency_exit(
                session,
                encounter,
                source="red_flag",
                checkpoint_id=stop_check.id,
                protocol=f"RED_FLAG_{tree.key.value}",
                finding=stop_check.prompt.en,
                alert=self._red_flag_alert(stop_check, encounter.language),
            )

        if isinstance(item, RedFlagCheck) and value is True:
            logger.warning(
                "Red flag escalated: patient=%s check=%s", session.patient_id, item.id
            )
        return session.with_encounter(encounter)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance_phase(self, session: IntakeSession, target: Union[IntakePhase, str]) -> IntakeSession:
        """
        Move to ``target``, which must be the next phase in the mandatory
        order. The phase being left must be finished; the accepted
        transition pushes that phase's step onto the navigation stack.
        Advancing to COMPLETE finalises the encounter.
        """
        target = IntakePhase(target)
        current = session.phase

        if current is IntakePhase.COMPLETE:
            raise IntakeValidationError(
                "This intake is already complete.",
                "یہ انٹیک پہلے ہی مکمل ہو چکا ہے۔",
                field="phase",
            )

        order = phase_order(session.is_first_time)
        expected = order[order.index(current) + 1]
        if target is not expected:
            raise IntakeValidationError(
                f"Cannot move from {current.value} to {target.value}; next step is {expected.value}.",
                "کوئی مرحلہ چھوڑا نہیں جا سکتا۔",
                field="phase",
            )

        if target is IntakePhase.COMPLETE:
            return self.finalize(session)

        encounter = self._leave(session, current)
        stack = session.navigation_stack
        step = STEP_FOR_PHASE.get(current)
        if step is not None:
            step_id, step_type = step
            stack = stack + (
                NavigationStep(
                    step_id=step_id,
                    step_type=step_type,
                    data=self._step_data(current, encounter),
                    timestamp=self._clock(),
                ),
            )

        logger.info(
            "Phase advanced: patient=%s %s -> %s", session.patient_id, current.value, target.value
        )
        return session.model_copy(
            update={"phase": target, "navigation_stack": stack, "encounter": encounter}
        )

    def handle_back(self, session: IntakeSession) -> IntakeSession:
        if session.phase is IntakePhase.COMPLETE or not session.can_go_back:
            raise IntakeValidationError(
                "There is no previous step to go back to.",
                "واپس جانے کے لیے کوئی پچھلا مرحلہ نہیں ہے۔",
                field="phase",
            )
        stack = session.navigation_stack[:-1]
        top = stack[-1].step_type if stack else None
        phase = phase_after_step(top, session.is_first_time)
        return session.model_copy(update={"phase": phase, "navigation_stack": stack})

    def finalize(self, session: IntakeSession, location_label: Optional[str] = None) -> IntakeSession:
        """
        SUMMARY -> COMPLETE: check the completion invariant, run the
        decision engine and attach the triage result and clinical note.
        """
        self._require_phase(session, IntakePhase.SUMMARY)
        encounter = session.encounter
        self.check_completion(encounter)

        encounter = self._with_findings(encounter, self.tree_for(session))
        triage = self.engine.analyze(encounter)
        if location_label is None:
            location_label = self._location_label(encounter)
        note = build_clinical_note(
            encounter,
            triage,
            location_label=location_label,
            baseline_changes=self.baseline.reported_changes(encounter),
        )
        now = self._clock()
        encounter = encounter.updated(
            status=EncounterStatus.COMPLETE,
            completed_at=now,
            updated_at=now,
            triage_result=triage,
            clinical_note=note,
        )
        logger.info(
            "Intake complete: patient=%s encounter=%s urgency=%s",
            session.patient_id,
            encounter.id,
            triage.urgency.level.value,
        )
        return session.model_copy(update={"phase": IntakePhase.COMPLETE, "encounter": encounter})

    def check_completion(self, encounter: Encounter) -> None:
        """
        An encounter may only complete after a negative screening, with a
        recorded location and every required tree item answered.
        """
        screening = encounter.emergency_screening
        if screening is None or not screening.cleared:
            raise IntakeValidationError(
                "Emergency screening has not been completed.",
                "ایمرجنسی اسکریننگ مکمل نہیں ہوئی۔",
                field="emergencyScreening",
            )
        if not encounter.has_location:
            raise IntakeValidationError(
                "Please mark where it hurts on the body map before continuing.",
                "براہ کرم آگے بڑھنے سے پہلے جسم کے نقشے پر درد کی جگہ بتائیں۔",
                field="bodyLocation",
            )
        tree = self.registry.get_tree(encounter.tree_key) if encounter.tree_key else None
        if tree is None or not tree.is_complete(encounter.answers):
            missing = tree.missing(encounter.answers) if tree else []
            raise IntakeValidationError(
                "Please answer all required questions"
                + (f": {', '.join(missing)}" if missing else "."),
                "براہ کرم تمام ضروری سوالات کے جواب دیں۔",
                field=missing[0] if missing else "answers",
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_phase(self, session: IntakeSession, phase: IntakePhase) -> None:
        if session.phase is not phase:
            raise IntakeValidationError(
                f"This action belongs to the {phase.value} step; the intake is at {session.phase.value}.",
                "یہ عمل موجودہ مرحلے میں دستیاب نہیں ہے۔",
                field="phase",
            )

    def _require_terminal_zone(self, zone_id: str) -> None:
        resolution = self.resolver.resolve(zone_id)
        if resolution.needs_refinement:
            raise IntakeValidationError(
                f"Please choose a more specific area for {zone_id}.",
                "براہ کرم زیادہ مخصوص جگہ منتخب کریں۔",
                field="zoneId",
            )

    def _leave(self, session: IntakeSession, phase: IntakePhase) -> Encounter:
        """Check that ``phase`` is finished; return the encounter to carry forward."""
        encounter = session.encounter

        if phase is IntakePhase.EMERGENCY:
            screening = encounter.emergency_screening
            if screening is None or not screening.cleared:
                raise IntakeValidationError(
                    "Please answer every emergency question before continuing.",
                    "براہ کرم آگے بڑھنے سے پہلے تمام ایمرجنسی سوالات کے جواب دیں۔",
                    field="emergencyScreening",
                )

        elif phase is IntakePhase.COMPLAINT_SELECTION:
            if encounter.complaint_type is None:
                raise IntakeValidationError(
                    "Please tell us why you are here today.",
                    "براہ کرم بتائیں کہ آپ آج کیوں آئے ہیں۔",
                    field="complaintType",
                )

        elif phase is IntakePhase.BODY_MAP:
            if not encounter.has_location:
                raise IntakeValidationError(
                    "Please mark where it hurts on the body map before continuing.",
                    "براہ کرم آگے بڑھنے سے پہلے جسم کے نقشے پر درد کی جگہ بتائیں۔",
                    field="bodyLocation",
                )
            encounter = self._retarget_tree(encounter)

        elif phase is IntakePhase.BASELINE:
            if not encounter.baseline_committed:
                raise IntakeValidationError(
                    "Please complete your medical history before continuing.",
                    "براہ کرم آگے بڑھنے سے پہلے اپنی طبی تاریخ مکمل کریں۔",
                    field="baseline",
                )

        elif phase is IntakePhase.COMPLAINT_TREE:
            tree = self.tree_for(session)
            if not tree.is_complete(encounter.answers):
                missing = tree.missing(encounter.answers)
                raise IntakeValidationError(
                    "Please answer all required questions"
                    + (f": {', '.join(missing)}" if missing else "."),
                    "براہ کرم تمام ضروری سوالات کے جواب دیں۔",
                    field=missing[0] if missing else "answers",
                )
            encounter = self._with_findings(encounter, tree)

        return encounter

    def _with_findings(self, encounter: Encounter, tree: ComplaintTree) -> Encounter:
        pain, associated = derive_findings(
            tree, encounter.answers, encounter.body_location, encounter.pain_points
        )
        return encounter.updated(pain=pain, associated_symptoms=associated, updated_at=self._clock())

    def _step_data(self, phase: IntakePhase, encounter: Encounter) -> Dict[str, Any]:
        if phase is IntakePhase.EMERGENCY:
            screening = encounter.emergency_screening
            return {"checkpoints": len(screening.checkpoints) if screening else 0}
        if phase is IntakePhase.COMPLAINT_SELECTION:
            return {"complaintType": encounter.complaint_type.value}
        if phase is IntakePhase.BODY_MAP:
            return {
                "bodyLocation": encounter.body_location,
                "painPoints": [p.zone_id for p in encounter.pain_points],
                "treeKey": encounter.tree_key.value if encounter.tree_key else None,
            }
        if phase is IntakePhase.BASELINE:
            return {"answered": len(encounter.baseline_answers)}
        return {
            "treeKey": encounter.tree_key.value if encounter.tree_key else None,
            "answered": len(encounter.answers),
        }

    def _location_label(self, encounter: Encounter) -> Optional[str]:
        zone_id = encounter.body_location
        if zone_id is None and encounter.primary_pain_point is not None:
            zone_id = encounter.primary_pain_point.zone_id
        if zone_id is None:
            return None
        resolution = self.resolver.resolve(zone_id)
        return resolution.zone.clinical_name if resolution.zone else zone_id

    def _red_flag_alert(self, check: RedFlagCheck, language: Language) -> EmergencyAlert:
        urdu = language is Language.UR
        number = self.screener.emergency_number
        return EmergencyAlert(
            checkpoint_id=check.id,
            protocol="RED_FLAG",
            title="شدید ایمرجنسی" if urdu else "CRITICAL EMERGENCY",
            message=(
                f"فوری طور پر {number} پر کال کریں" if urdu else f"CALL {number} IMMEDIATELY\n\n{check.alert}"
            ),
            actions=(
                f"Call {number}",
                "قریبی ہسپتال جائیں" if urdu else "Go to nearest hospital",
            ),
        )

    def _emergency_exit(
        self,
        session: IntakeSession,
        encounter: Encounter,
        source: str,
        checkpoint_id: Optional[str],
        protocol: Optional[str],
        finding: str,
        alert: EmergencyAlert,
    ) -> EmergencyExit:
        triage: TriageResult = self.engine.analyze(encounter)
        note: ClinicalNote = build_emergency_note(
            encounter, protocol, finding, emergency_number=self.screener.emergency_number
        )
        now = self._clock()
        encounter = encounter.updated(
            status=EncounterStatus.EMERGENCY,
            completed_at=now,
            updated_at=now,
            triage_result=triage,
            clinical_note=note,
        )
        return EmergencyExit(
            patient_id=session.patient_id,
            source=source,
            checkpoint_id=checkpoint_id,
            protocol=protocol,
            alert=alert,
            encounter=encounter,
        )
