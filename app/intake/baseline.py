# app/intake/baseline.py
"""
Baseline history.

First-time patients answer the full questionnaire (past medical, surgical,
family and social history). Returning patients only reconfirm that nothing
changed since their last visit; their history comes from the account and
is never silently overwritten from encounter answers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.intake.errors import IntakeValidationError
from app.intake.schema import Encounter, FamilyHistoryEntry, MedicalHistory, PatientAccount
from app.intake.stages import Language
from app.intake.trees import Question, QuestionOption, ResponseType, coerce_answer, format_question
from app.records import LocalizedText as T

ANSWER_PREFIX = "baseline_"

_NOTHING = {"none", "no", "nil", "n/a", "na", "nothing", "کوئی نہیں", "نہیں"}


class BaselineCategory(str, Enum):
    PMH = "PMH"
    PSH = "PSH"
    FHX = "FHx"
    SHX = "SHx"
    RECONFIRM = "RECONFIRM"


@dataclass(frozen=True)
class BaselineQuestion:
    question: Question
    category: BaselineCategory
    placeholder: Optional[T] = None
    depends_on: Optional[Tuple[str, Any]] = None

    @property
    def id(self) -> str:
        return self.question.id

    def applies(self, answers: Mapping[str, Any]) -> bool:
        if self.depends_on is None:
            return True
        qid, value = self.depends_on
        return answers.get(qid) == value


def _q(qid: str, en: str, ur: str, rtype: ResponseType, *options: Tuple[str, str, str], required: bool = True) -> Question:
    return Question(
        qid,
        T(en=en, ur=ur),
        rtype,
        tuple(QuestionOption(value=v, label=T(en=l_en, ur=l_ur)) for v, l_en, l_ur in options),
        required=required,
    )


FULL_BASELINE: Tuple[BaselineQuestion, ...] = (
    BaselineQuestion(
        _q(
            "chronic_conditions",
            "Do you have any chronic medical conditions?",
            "کیا آپ کو کوئی دائمی بیماری ہے؟",
            ResponseType.MULTI_SELECT,
            ("diabetes", "Diabetes", "ذیابیطس"),
            ("hypertension", "High Blood Pressure", "ہائی بلڈ پریشر"),
            ("heart_disease", "Heart Disease", "دل کی بیماری"),
            ("asthma", "Asthma", "دمہ"),
            ("thyroid", "Thyroid Disease", "تھائیرائیڈ"),
            ("none", "None", "کوئی نہیں"),
        ),
        BaselineCategory.PMH,
    ),
    BaselineQuestion(
        _q(
            "current_medications",
            "What medications are you currently taking?",
            "آپ فی الوقت کون سی دوائیں استعمال کر رہے ہیں؟",
            ResponseType.FREE_TEXT,
        ),
        BaselineCategory.PMH,
        placeholder=T(
            en='List all medications (or write "None")',
            ur='تمام دوائیوں کی فہرست بنائیں (یا "کوئی نہیں" لکھیں)',
        ),
    ),
    BaselineQuestion(
        _q(
            "allergies",
            "Do you have any allergies to medications, foods, or other substances?",
            "کیا آپ کو دوائیوں، خوراک، یا کسی اور چیز سے الرجی ہے؟",
            ResponseType.FREE_TEXT,
        ),
        BaselineCategory.PMH,
        placeholder=T(en='Describe any allergies (or write "None")', ur="کسی بھی الرجی کی تفصیل دیں"),
    ),
    BaselineQuestion(
        _q(
            "past_surgeries",
            "Have you had any surgeries or hospitalizations?",
            "کیا آپ کی کوئی سرجری یا ہسپتال میں داخلے کی تاریخ ہے؟",
            ResponseType.FREE_TEXT,
            required=False,
        ),
        BaselineCategory.PSH,
        placeholder=T(en="List surgeries with approximate dates", ur="سرجریوں کی فہرست تقریبی تاریخوں کے ساتھ"),
    ),
    BaselineQuestion(
        _q(
            "family_diabetes",
            "Does anyone in your family have diabetes?",
            "کیا آپ کے خاندان میں کسی کو ذیابیطس ہے؟",
            ResponseType.YES_NO,
            required=False,
        ),
        BaselineCategory.FHX,
    ),
    BaselineQuestion(
        _q(
            "family_heart_disease",
            "Does anyone in your family have heart disease?",
            "کیا آپ کے خاندان میں کسی کو دل کی بیماری ہے؟",
            ResponseType.YES_NO,
            required=False,
        ),
        BaselineCategory.FHX,
    ),
    BaselineQuestion(
        _q(
            "family_cancer",
            "Does anyone in your family have cancer?",
            "کیا آپ کے خاندان میں کسی کو کینسر ہے؟",
            ResponseType.YES_NO,
            required=False,
        ),
        BaselineCategory.FHX,
    ),
    BaselineQuestion(
        _q(
            "smoking_status",
            "Do you smoke?",
            "کیا آپ سگریٹ نوشی کرتے ہیں؟",
            ResponseType.SINGLE_CHOICE,
            ("never", "Never", "کبھی نہیں"),
            ("former", "Former smoker", "پہلے کرتا تھا"),
            ("current", "Current smoker", "فی الحال کرتا ہوں"),
        ),
        BaselineCategory.SHX,
    ),
)

RECONFIRMATION: Tuple[BaselineQuestion, ...] = (
    BaselineQuestion(
        _q(
            "baseline_changed",
            "Have there been any changes to your medical history, medications, or allergies since your last visit?",
            "کیا آپ کی آخری ملاقات کے بعد آپ کی طبی تاریخ، دوائیوں یا الرجی میں کوئی تبدیلی آئی ہے؟",
            ResponseType.YES_NO,
        ),
        BaselineCategory.RECONFIRM,
    ),
    BaselineQuestion(
        _q(
            "baseline_changes_detail",
            "Please describe what has changed:",
            "براہ کرم بتائیں کہ کیا تبدیل ہوا ہے:",
            ResponseType.FREE_TEXT,
        ),
        BaselineCategory.RECONFIRM,
        placeholder=T(en="Describe changes...", ur="تبدیلیوں کی تفصیل دیں..."),
        depends_on=("baseline_changed", True),
    ),
)

FAMILY_HISTORY_CONDITIONS: Dict[str, str] = {
    "family_diabetes": "diabetes",
    "family_heart_disease": "heart_disease",
    "family_cancer": "cancer",
}


def split_list(text: Optional[str]) -> Tuple[str, ...]:
    """'Aspirin, metformin; warfarin' -> ('Aspirin', 'metformin', 'warfarin'). 'None' -> ()."""
    if not text:
        return ()
    items = [part.strip() for part in re.split(r"[,;\n]+", text)]
    return tuple(i for i in items if i and i.lower() not in _NOTHING)


class BaselineModule:
    """Questionnaire selection, validation and commit for the BASELINE phase."""

    def questions(self, is_first_time: bool) -> Tuple[BaselineQuestion, ...]:
        return FULL_BASELINE if is_first_time else RECONFIRMATION

    def applicable(self, is_first_time: bool, answers: Mapping[str, Any]) -> List[BaselineQuestion]:
        return [q for q in self.questions(is_first_time) if q.applies(answers)]

    def format_questions(
        self,
        is_first_time: bool,
        answers: Mapping[str, Any],
        language: Language | str = Language.EN,
    ) -> List[dict]:
        formatted = []
        for item in self.applicable(is_first_time, answers):
            data = format_question(item.question, language)
            data["category"] = item.category.value
            data["placeholder"] = item.placeholder.get(language) if item.placeholder else None
            formatted.append(data)
        return formatted

    def validate(self, is_first_time: bool, answers: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Coerce every supplied answer and check required fields.

        Returns the cleaned answers; raises IntakeValidationError naming the
        first missing or invalid field.
        """
        by_id = {q.id: q for q in self.questions(is_first_time)}
        cleaned: Dict[str, Any] = {}
        for key, raw in answers.items():
            item = by_id.get(key)
            if item is None:
                raise IntakeValidationError(
                    f"Unknown baseline question: {key}",
                    "نامعلوم سوال",
                    field=key,
                )
            if raw is None or raw == "" or raw == []:
                continue
            cleaned[key] = coerce_answer(item.question, raw)

        for item in self.applicable(is_first_time, cleaned):
            if item.question.required and item.id not in cleaned:
                raise IntakeValidationError(
                    f"Please answer: {item.question.prompt.en}",
                    f"براہ کرم جواب دیں: {item.question.prompt.ur}",
                    field=item.id,
                )

        conditions = cleaned.get("chronic_conditions")
        if conditions and "none" in conditions and len(conditions) > 1:
            raise IntakeValidationError(
                "'None' cannot be combined with other conditions.",
                "'کوئی نہیں' کو دوسری بیماریوں کے ساتھ نہیں ملایا جا سکتا۔",
                field="chronic_conditions",
            )
        return cleaned

    def build_history(
        self,
        is_first_time: bool,
        answers: Mapping[str, Any],
        account: Optional[PatientAccount] = None,
    ) -> MedicalHistory:
        if not is_first_time:
            return account.history_snapshot() if account else MedicalHistory()

        family = tuple(
            FamilyHistoryEntry(condition=condition, relative="family member")
            for key, condition in FAMILY_HISTORY_CONDITIONS.items()
            if answers.get(key) is True
        )
        return MedicalHistory(
            conditions=tuple(c for c in answers.get("chronic_conditions", ()) if c != "none"),
            medications=split_list(answers.get("current_medications")),
            allergies=split_list(answers.get("allergies")),
            surgeries=split_list(answers.get("past_surgeries")),
            family_history=family,
            smoking_status=answers.get("smoking_status"),
        )

    def commit(
        self,
        encounter: Encounter,
        is_first_time: bool,
        answers: Mapping[str, Any],
        account: Optional[PatientAccount] = None,
    ) -> Encounter:
        """
        Validate and attach baseline answers to ``encounter``.

        Raw answers are kept under ``baseline_<id>`` for audit. The account
        itself is not touched here.
        """
        cleaned = self.validate(is_first_time, answers)
        stored = {
            key if key.startswith(ANSWER_PREFIX) else f"{ANSWER_PREFIX}{key}": value
            for key, value in cleaned.items()
        }
        return encounter.updated(
            baseline_answers=stored,
            baseline_committed=True,
            medical_history=self.build_history(is_first_time, cleaned, account),
        )

    @staticmethod
    def reported_changes(encounter: Encounter) -> Optional[str]:
        if encounter.baseline_answers.get("baseline_changed") is True:
            return encounter.baseline_answers.get("baseline_changes_detail")
        return None
