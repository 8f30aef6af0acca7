# app/intake/trees.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app.decision.schema import PainSymptom
from app.intake.errors import IntakeValidationError
from app.intake.schema import PainPoint, RedFlagAction, RedFlagSeverity
from app.intake.stages import Language, TreeKey, exhaustive
from app.records import LocalizedText, Record

Answers = Mapping[str, Any]


class ResponseType(str, Enum):
    YES_NO = "YES_NO"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTI_SELECT = "MULTI_SELECT"
    FREE_TEXT = "FREE_TEXT"
    NUMERIC = "NUMERIC"
    SEVERITY_SCALE = "SEVERITY_SCALE"
    DURATION = "DURATION"


@dataclass(frozen=True)
class QuestionOption:
    value: str
    label: LocalizedText


@dataclass(frozen=True)
class ValidationRule:
    error_message: LocalizedText
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    custom: Optional[Callable[[Any], bool]] = None


@dataclass(frozen=True)
class Question:
    id: str
    prompt: LocalizedText
    response_type: ResponseType
    options: Tuple[QuestionOption, ...] = ()
    validation: Optional[ValidationRule] = None
    required: bool = True
    help_text: Optional[LocalizedText] = None

    def option_values(self) -> Tuple[str, ...]:
        return tuple(o.value for o in self.options)


@dataclass(frozen=True)
class ConditionalQuestion(Question):
    # Predicate over prior answers; the question only applies when true.
    condition: Callable[[Answers], bool] = field(default=lambda answers: True)

    def applies(self, answers: Answers) -> bool:
        return bool(self.condition(answers))


@dataclass(frozen=True)
class RedFlagCheck:
    id: str
    prompt: LocalizedText
    severity: RedFlagSeverity
    action: RedFlagAction
    alert: str
    symptom: Optional[str] = None
    response_type: ResponseType = ResponseType.YES_NO
    required: bool = True


TreeItem = Union[Question, RedFlagCheck]


class TreeProgress(Record):
    questions_answered: int
    questions_total: int
    questions_remaining: int
    overall_progress: int


@dataclass(frozen=True)
class ComplaintTree:
    """
    Static question set for one presenting complaint.

    Ask order: red-flag checks first, then the mandatory questions, then
    whichever conditional questions apply to the answers so far.
    """

    key: TreeKey
    display_name: LocalizedText
    urgency: str
    mandatory_questions: Tuple[Question, ...]
    conditional_questions: Tuple[ConditionalQuestion, ...] = ()
    red_flags: Tuple[RedFlagCheck, ...] = ()
    minimum_questions_required: int = 0
    estimated_minutes: int = 5

    def __post_init__(self):
        ids = [item.id for item in self.all_items()]
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            raise ValueError(f"{self.key.value}: duplicate question ids {sorted(dupes)}")

    def all_items(self) -> List[TreeItem]:
        return [*self.red_flags, *self.mandatory_questions, *self.conditional_questions]

    def item(self, item_id: str) -> Optional[TreeItem]:
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None

    def applicable_items(self, answers: Answers) -> List[TreeItem]:
        return [
            *self.red_flags,
            *self.mandatory_questions,
            *(q for q in self.conditional_questions if q.applies(answers)),
        ]

    def next_item(self, answers: Answers) -> Optional[TreeItem]:
        for item in self.applicable_items(answers):
            if item.id not in answers and item.required:
                return item
        for item in self.applicable_items(answers):
            if item.id not in answers:
                return item
        return None

    def missing(self, answers: Answers) -> List[str]:
        return [
            item.id
            for item in self.applicable_items(answers)
            if item.required and item.id not in answers
        ]

    def answered_count(self, answers: Answers) -> int:
        return sum(1 for item in self.applicable_items(answers) if item.id in answers)

    def is_complete(self, answers: Answers) -> bool:
        return not self.missing(answers) and self.answered_count(answers) >= self.minimum_questions_required

    def progress(self, answers: Answers) -> TreeProgress:
        mandatory = [q for q in self.mandatory_questions if q.required]
        answered = sum(1 for q in mandatory if q.id in answers)
        total = len(mandatory)
        return TreeProgress(
            questions_answered=answered,
            questions_total=total,
            questions_remaining=total - answered,
            overall_progress=round(answered / total * 100) if total else 100,
        )


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


class ValidationOutcome(Record):
    valid: bool
    error: Optional[LocalizedText] = None


def validate_response(question: TreeItem, response: Any) -> ValidationOutcome:
    """
    Apply the question's rule in priority order: numeric range, pattern,
    custom predicate. The first failing check wins.
    """
    rule = getattr(question, "validation", None)
    if rule is None:
        return ValidationOutcome(valid=True)

    is_number = isinstance(response, (int, float)) and not isinstance(response, bool)
    if is_number and (rule.min is not None or rule.max is not None):
        if not math.isfinite(response):
            return ValidationOutcome(valid=False, error=rule.error_message)
        if rule.min is not None and response < rule.min:
            return ValidationOutcome(valid=False, error=rule.error_message)
        if rule.max is not None and response > rule.max:
            return ValidationOutcome(valid=False, error=rule.error_message)

    if isinstance(response, str) and rule.pattern:
        if not re.search(rule.pattern, response):
            return ValidationOutcome(valid=False, error=rule.error_message)

    if rule.custom is not None and not rule.custom(response):
        return ValidationOutcome(valid=False, error=rule.error_message)

    return ValidationOutcome(valid=True)


_YES = {"yes", "y", "true", "1", "ہاں", "جی"}
_NO = {"no", "n", "false", "0", "نہیں"}


def _invalid(item: TreeItem, en: str, ur: str = "براہ کرم درست جواب دیں۔") -> IntakeValidationError:
    return IntakeValidationError(en, ur, field=item.id)


def coerce_answer(item: TreeItem, raw: Any) -> Any:
    """
    Normalise a raw answer to the question's response type, then validate
    it. Raises IntakeValidationError with a user-facing message.
    """
    rtype = item.response_type

    if rtype is ResponseType.YES_NO:
        if isinstance(raw, bool):
            value: Any = raw
        elif isinstance(raw, str) and raw.strip().lower() in _YES:
            value = True
        elif isinstance(raw, str) and raw.strip().lower() in _NO:
            value = False
        else:
            raise _invalid(item, f"Please answer yes or no for {item.id}.", "براہ کرم ہاں یا نہیں میں جواب دیں۔")

    elif rtype in (ResponseType.NUMERIC, ResponseType.SEVERITY_SCALE):
        try:
            number = float(raw) if not isinstance(raw, bool) else None
        except (TypeError, ValueError):
            number = None
        if number is None or not math.isfinite(number):
            raise _invalid(item, f"Please enter a number for {item.id}.", "براہ کرم ایک عدد درج کریں۔")
        value = int(number) if number.is_integer() else number

    elif rtype is ResponseType.SINGLE_CHOICE:
        value = str(raw).strip()
        if value not in item.option_values():
            raise _invalid(item, f"'{value}' is not a valid option for {item.id}.")

    elif rtype is ResponseType.MULTI_SELECT:
        values = [raw] if isinstance(raw, str) else list(raw or [])
        value = [str(v).strip() for v in values]
        if not value:
            raise _invalid(item, f"Please select at least one option for {item.id}.")
        unknown = [v for v in value if v not in item.option_values()]
        if unknown:
            raise _invalid(item, f"Invalid options for {item.id}: {', '.join(unknown)}.")

    else:
        # FREE_TEXT / DURATION
        value = str(raw).strip() if raw is not None else ""
        if item.options and value not in item.option_values():
            raise _invalid(item, f"'{value}' is not a valid option for {item.id}.")
        if not value:
            raise _invalid(item, f"An answer is required for {item.id}.", "جواب ضروری ہے۔")

    outcome = validate_response(item, value)
    if not outcome.valid:
        raise IntakeValidationError(outcome.error.en, outcome.error.ur, field=item.id)
    return value


def format_question(item: TreeItem, language: Language | str = Language.EN) -> Dict[str, Any]:
    """Strip a question down to what the UI renders."""
    help_text = getattr(item, "help_text", None)
    return {
        "id": item.id,
        "text": item.prompt.get(language),
        "helpText": help_text.get(language) if help_text else None,
        "type": item.response_type.value,
        "required": item.required,
        "isRedFlag": isinstance(item, RedFlagCheck),
        "options": [
            {"value": o.value, "label": o.label.get(language)}
            for o in getattr(item, "options", ())
        ],
    }


# ----------------------------------------------------------------------
# Findings
# ----------------------------------------------------------------------

# Coarse location vocabulary used by the decision rules.
TREE_LOCATIONS: Dict[TreeKey, str] = exhaustive(
    TreeKey,
    {
        TreeKey.CHEST_PAIN: "chest",
        TreeKey.HEADACHE: "head",
        TreeKey.ABDOMINAL_PAIN: "abdomen",
        TreeKey.BACK_PAIN: "lower-back",
        TreeKey.PELVIC_PAIN: "pelvis",
        TreeKey.LIMB_PAIN: "limb",
        TreeKey.RESPIRATORY: "respiratory",
        TreeKey.GENERAL: "general",
    },
    "TREE_LOCATIONS",
)

_UPPER_BACK_PREFIXES = ("chest.posterior", "spine.thoracic", "spine.cervical")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _without_none(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(v for v in values if v != "none")


def derive_findings(
    tree: ComplaintTree,
    answers: Answers,
    body_location: Optional[str] = None,
    pain_points: Tuple[PainPoint, ...] = (),
) -> Tuple[Optional[PainSymptom], Tuple[str, ...]]:
    """
    Build the structured pain description and associated-symptom list the
    decision engine consumes. Red-flag checks answered YES contribute
    their symptom tag.
    """
    primary = next((p for p in pain_points if p.is_primary), pain_points[0] if pain_points else None)
    zone_id = body_location or (primary.zone_id if primary else None)

    associated: List[str] = list(_without_none(_as_list(answers.get("associated"))))
    for check in tree.red_flags:
        if answers.get(check.id) is True and check.symptom and check.symptom not in associated:
            associated.append(check.symptom)

    intensity = answers.get("severity")
    if intensity is None and primary is not None:
        intensity = primary.intensity
    if intensity is None:
        return None, tuple(associated)

    location = TREE_LOCATIONS[tree.key]
    if tree.key is TreeKey.BACK_PAIN and zone_id and zone_id.startswith(_UPPER_BACK_PREFIXES):
        location = "upper-back"

    radiation = list(_without_none(_as_list(answers.get("radiation"))))
    if primary is not None:
        radiation.extend(r for r in primary.radiates_to if r not in radiation)

    pain = PainSymptom(
        location=location,
        subzone=zone_id.rsplit(".", 1)[-1] if zone_id else None,
        intensity=max(1, min(10, int(intensity))),
        onset=answers.get("onset"),
        duration=answers.get("duration"),
        quality=_without_none(_as_list(answers.get("quality"))),
        radiation=tuple(radiation),
        timing=answers.get("timing"),
        worsened_by=_without_none(_as_list(answers.get("worsened_by"))),
        relieved_by=_without_none(_as_list(answers.get("relieved_by"))),
    )
    return pain, tuple(associated)


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------


class TreeMetadata(Record):
    key: TreeKey
    display_name: LocalizedText
    urgency: str
    requires_urgent_triage: bool
    estimated_minutes: int


URGENT_TRIAGE_TREES = frozenset({TreeKey.CHEST_PAIN, TreeKey.RESPIRATORY, TreeKey.ABDOMINAL_PAIN})


class ComplaintTreeRegistry:
    """
    Lookup of complaint trees by key.

    Built once from a full set of trees; construction fails if any TreeKey
    has no tree or appears twice.
    """

    def __init__(self, trees: Iterable[ComplaintTree]):
        by_key: Dict[TreeKey, ComplaintTree] = {}
        for tree in trees:
            if tree.key in by_key:
                raise ValueError(f"Duplicate complaint tree for {tree.key.value}")
            by_key[tree.key] = tree
        self._trees = exhaustive(TreeKey, by_key, "ComplaintTreeRegistry")

    def get_tree(self, key: Union[TreeKey, str]) -> Optional[ComplaintTree]:
        try:
            return self._trees[TreeKey(key)]
        except ValueError:
            return None

    def has_tree(self, key: Union[TreeKey, str]) -> bool:
        return self.get_tree(key) is not None

    def keys(self) -> List[TreeKey]:
        return list(self._trees)

    def metadata(self, key: TreeKey) -> TreeMetadata:
        tree = self._trees[TreeKey(key)]
        return TreeMetadata(
            key=tree.key,
            display_name=tree.display_name,
            urgency=tree.urgency,
            requires_urgent_triage=tree.key in URGENT_TRIAGE_TREES,
            estimated_minutes=tree.estimated_minutes,
        )

    def requires_urgent_triage(self, key: TreeKey) -> bool:
        return TreeKey(key) in URGENT_TRIAGE_TREES
