# app/intake/emergency.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from app.intake.errors import IntakeValidationError, InvalidEmergencyResponseError
from app.intake.schema import (
    CheckpointResult,
    EmergencyResponse,
    EmergencyScreeningResult,
    RecommendedAction,
    utcnow,
)
from app.intake.stages import Language
from app.logging_config import get_logger
from app.records import LocalizedText, Record

logger = get_logger(__name__)

YES_VARIANTS = frozenset({"yes", "y", "yeah", "yep", "ہاں", "جی", "جی ہاں"})
NO_VARIANTS = frozenset({"no", "n", "nope", "نہیں"})


def normalize_emergency_response(raw: Union[str, bool, EmergencyResponse]) -> EmergencyResponse:
    """
    Strictly binary: YES or NO. Anything else is rejected, never defaulted.
    """
    if isinstance(raw, EmergencyResponse):
        return raw
    if isinstance(raw, bool):
        return EmergencyResponse.YES if raw else EmergencyResponse.NO

    normalized = str(raw).strip().lower()
    if normalized in YES_VARIANTS:
        return EmergencyResponse.YES
    if normalized in NO_VARIANTS:
        return EmergencyResponse.NO
    raise InvalidEmergencyResponseError(str(raw))


@dataclass(frozen=True)
class EmergencyCheckpoint:
    id: str
    question: LocalizedText
    protocol: str
    message: LocalizedText
    emergency_service: str
    severity: str = "CRITICAL"


class EmergencyAlert(Record):
    checkpoint_id: Optional[str] = None
    protocol: Optional[str] = None
    title: str
    message: str
    actions: Tuple[str, ...]


def build_checkpoints(service: str = "1122", helpline: str = "042-35761999") -> Tuple[EmergencyCheckpoint, ...]:
    """The six forced-choice checkpoints, in the order they are asked."""
    return (
        EmergencyCheckpoint(
            id="emergency_chest_pain",
            question=LocalizedText(
                en="Are you having chest pain RIGHT NOW?",
                ur="کیا آپ کو ابھی سینے میں درد ہو رہا ہے؟",
            ),
            protocol="ACS_PROTOCOL",
            message=LocalizedText(
                en=(
                    f"CALL {service} IMMEDIATELY\n\nPossible heart emergency. Do not wait.\n\n"
                    'Tell them: "Chest pain - possible heart attack"'
                ),
                ur=(
                    f"فوری طور پر {service} پر کال کریں\n\nدل کی ممکنہ ایمرجنسی۔ انتظار نہ کریں۔\n\n"
                    'انہیں بتائیں: "سینے میں درد - دل کا دورہ ممکن ہے"'
                ),
            ),
            emergency_service=service,
        ),
        EmergencyCheckpoint(
            id="emergency_breathing",
            question=LocalizedText(
                en="Are you struggling to breathe RIGHT NOW?",
                ur="کیا آپ کو ابھی سانس لینے میں شدید مشکل ہو رہی ہے؟",
            ),
            protocol="RESPIRATORY_DISTRESS",
            message=LocalizedText(
                en=(
                    f"CALL {service} IMMEDIATELY\n\nRespiratory emergency. Get help now.\n\n"
                    "Sit upright while waiting."
                ),
                ur=(
                    f"فوری طور پر {service} پر کال کریں\n\nسانس کی ایمرجنسی۔ ابھی مدد لیں۔\n\n"
                    "انتظار کے دوران سیدھے بیٹھیں۔"
                ),
            ),
            emergency_service=service,
        ),
        EmergencyCheckpoint(
            id="emergency_consciousness",
            question=LocalizedText(
                en="Did you lose consciousness or have a seizure?",
                ur="کیا آپ بے ہوش ہوئے یا دورہ پڑا؟",
            ),
            protocol="NEURO_EMERGENCY",
            message=LocalizedText(
                en=(
                    f"CALL {service} IMMEDIATELY\n\nNeurological emergency. You need immediate "
                    "evaluation.\n\nDo not drive yourself."
                ),
                ur=(
                    f"فوری طور پر {service} پر کال کریں\n\nاعصابی ایمرجنسی۔ آپ کو فوری معائنہ کی ضرورت ہے۔\n\n"
                    "خود گاڑی نہ چلائیں۔"
                ),
            ),
            emergency_service=service,
        ),
        EmergencyCheckpoint(
            id="emergency_weakness",
            question=LocalizedText(
                en="Do you have sudden weakness on one side of your body?",
                ur="کیا آپ کے جسم کے ایک طرف اچانک کمزوری ہے؟",
            ),
            protocol="STROKE_PROTOCOL",
            message=LocalizedText(
                en=(
                    f"CALL {service} IMMEDIATELY - POSSIBLE STROKE\n\nTime is critical. Every "
                    "minute counts.\n\nNote the time symptoms started."
                ),
                ur=(
                    f"فوری طور پر {service} پر کال کریں - فالج کا خطرہ\n\nوقت بہت اہم ہے۔ ہر منٹ اہم ہے۔\n\n"
                    "علامات شروع ہونے کا وقت نوٹ کریں۔"
                ),
            ),
            emergency_service=service,
        ),
        EmergencyCheckpoint(
            id="emergency_bleeding",
            question=LocalizedText(
                en="Are you bleeding heavily that won't stop?",
                ur="کیا آپ کو شدید خون بہہ رہا ہے جو رک نہیں رہا؟",
            ),
            protocol="HEMORRHAGE_PROTOCOL",
            message=LocalizedText(
                en=(
                    f"CALL {service} IMMEDIATELY\n\nApply firm pressure to the bleeding area.\n"
                    "Elevate if possible. Get help NOW."
                ),
                ur=(
                    f"فوری طور پر {service} پر کال کریں\n\nخون بہنے والی جگہ پر مضبوط دباؤ لگائیں۔\n"
                    "اگر ممکن ہو تو اوپر اٹھائیں۔ ابھی مدد لیں۔"
                ),
            ),
            emergency_service=service,
        ),
        EmergencyCheckpoint(
            id="emergency_suicide",
            question=LocalizedText(
                en="Are you thinking of harming yourself or others?",
                ur="کیا آپ خود کو یا دوسروں کو نقصان پہنچانے کے بارے میں سوچ رہے ہیں؟",
            ),
            protocol="PSYCHIATRIC_EMERGENCY",
            message=LocalizedText(
                en=(
                    f"Mental Health Emergency\n\nCall:\n- {service} (Emergency)\n"
                    f"- {helpline} (Mental Health Helpline)\n\n"
                    "You are not alone. Help is available."
                ),
                ur=(
                    f"ذہنی صحت کی ایمرجنسی\n\nکال کریں:\n- {service} (ایمرجنسی)\n"
                    f"- {helpline} (ذہنی صحت ہیلپ لائن)\n\n"
                    "آپ تنہا نہیں ہیں۔ مدد دستیاب ہے۔"
                ),
            ),
            emergency_service=f"{service} or {helpline}",
        ),
    )


class EmergencyScreener:
    """
    Forced-choice emergency screening.

    Checkpoints are asked strictly in order. The first YES stops screening:
    the result is marked positive, records only the checkpoints asked so far
    and names the emergency protocol. Nothing after a YES is ever asked.

    Results are immutable; ``answer`` returns a new result.
    """

    def __init__(
        self,
        emergency_number: str = "1122",
        helpline: str = "042-35761999",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.emergency_number = emergency_number
        self.checkpoints = build_checkpoints(emergency_number, helpline)
        self._by_id: Dict[str, EmergencyCheckpoint] = {c.id: c for c in self.checkpoints}
        self._clock = clock

    # ------------------------------------------------------------------
    # Step-wise API
    # ------------------------------------------------------------------

    def start(self) -> EmergencyScreeningResult:
        return EmergencyScreeningResult(screening_completed=False, screening_date=self._clock())

    def next_checkpoint(self, result: EmergencyScreeningResult) -> Optional[EmergencyCheckpoint]:
        if result.screening_completed:
            return None
        return self.checkpoints[len(result.checkpoints)]

    def answer(
        self,
        result: EmergencyScreeningResult,
        response: Union[str, bool, EmergencyResponse],
        checkpoint_id: Optional[str] = None,
    ) -> EmergencyScreeningResult:
        """
        Record the answer to the current checkpoint.

        ``checkpoint_id``, when given, must match the checkpoint actually
        being asked; answers cannot be given out of order.
        """
        checkpoint = self.next_checkpoint(result)
        if checkpoint is None:
            raise IntakeValidationError(
                "Emergency screening is already complete.",
                "ایمرجنسی اسکریننگ مکمل ہو چکی ہے۔",
                field="checkpointId",
            )
        if checkpoint_id is not None and checkpoint_id != checkpoint.id:
            raise IntakeValidationError(
                f"Expected an answer for {checkpoint.id}, got {checkpoint_id}.",
                "براہ کرم موجودہ سوال کا جواب دیں۔",
                field="checkpointId",
            )

        normalized = normalize_emergency_response(response)
        recorded = CheckpointResult(
            id=checkpoint.id,
            response=normalized,
            severity=checkpoint.severity,
            timestamp=self._clock(),
        )
        checkpoints = result.checkpoints + (recorded,)

        if normalized is EmergencyResponse.YES:
            return result.model_copy(
                update={
                    "checkpoints": checkpoints,
                    "any_positive": True,
                    "emergency_type": checkpoint.protocol,
                    "recommended_action": RecommendedAction.CALL_EMERGENCY,
                    "screening_completed": True,
                }
            )

        finished = len(checkpoints) == len(self.checkpoints)
        return result.model_copy(
            update={
                "checkpoints": checkpoints,
                "screening_completed": finished,
            }
        )

    # ------------------------------------------------------------------
    # Blocking loop
    # ------------------------------------------------------------------

    def screen(self, ask: Callable[[EmergencyCheckpoint], Union[str, bool]]) -> EmergencyScreeningResult:
        """
        Run the whole screening against ``ask``, which is called once per
        checkpoint and must return a yes/no answer.
        """
        result = self.start()
        while not result.screening_completed:
            checkpoint = self.next_checkpoint(result)
            result = self.answer(result, ask(checkpoint))
        return result

    # ------------------------------------------------------------------
    # Lookups for the exit-to-emergency collaborator
    # ------------------------------------------------------------------

    def get_checkpoint(self, checkpoint_id: str) -> Optional[EmergencyCheckpoint]:
        return self._by_id.get(checkpoint_id)

    def get_protocol(self, checkpoint_id: str) -> str:
        checkpoint = self._by_id.get(checkpoint_id)
        return checkpoint.protocol if checkpoint else "UNKNOWN"

    def get_message(self, checkpoint_id: str, language: Language | str = Language.EN) -> str:
        checkpoint = self._by_id.get(checkpoint_id)
        return checkpoint.message.get(language) if checkpoint else ""

    def format_alert(self, checkpoint_id: Optional[str], language: Language | str = Language.EN) -> EmergencyAlert:
        urdu = Language(language) is Language.UR
        checkpoint = self._by_id.get(checkpoint_id) if checkpoint_id else None

        if checkpoint is None:
            return EmergencyAlert(
                checkpoint_id=checkpoint_id,
                title="ایمرجنسی" if urdu else "Emergency",
                message="فوری طبی امداد حاصل کریں" if urdu else "Seek immediate medical attention",
                actions=(f"Call {self.emergency_number}",),
            )

        return EmergencyAlert(
            checkpoint_id=checkpoint.id,
            protocol=checkpoint.protocol,
            title="شدید ایمرجنسی" if urdu else "CRITICAL EMERGENCY",
            message=checkpoint.message.get(language),
            actions=(
                f"Call {checkpoint.emergency_service}",
                "قریبی ہسپتال جائیں" if urdu else "Go to nearest hospital",
            ),
        )

    @staticmethod
    def positive_checkpoint(result: EmergencyScreeningResult) -> Optional[str]:
        for checkpoint in result.checkpoints:
            if checkpoint.response is EmergencyResponse.YES:
                return checkpoint.id
        return None

    def log_emergency_event(self, patient_id: str, result: EmergencyScreeningResult) -> None:
        checkpoint_id = self.positive_checkpoint(result)
        logger.critical(
            "Emergency checkpoint triggered: patient=%s checkpoint=%s protocol=%s",
            patient_id,
            checkpoint_id,
            result.emergency_type,
            extra={
                "extra_fields": {
                    "event": "emergency_exit",
                    "patient_id": patient_id,
                    "checkpoint_id": checkpoint_id,
                    "protocol": result.emergency_type,
                }
            },
        )

    def questions(self, language: Language | str = Language.EN) -> List[dict]:
        return [
            {"id": c.id, "question": c.question.get(language), "responseType": "YES_NO_ONLY"}
            for c in self.checkpoints
        ]
