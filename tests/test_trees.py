# tests/test_trees.py
import pytest

from conftest import CHEST_ANSWERS

from app.intake import TreeKey, default_registry
from app.intake.errors import IntakeValidationError
from app.intake.schema import PainPoint
from app.intake.tree_catalog import ALL_TREES, CHEST_PAIN_TREE, GENERAL_TREE
from app.intake.trees import (
    ComplaintTreeRegistry,
    RedFlagCheck,
    coerce_answer,
    derive_findings,
    format_question,
    validate_response,
)


@pytest.fixture
def registry():
    return default_registry()


def test_registry_covers_every_tree_key(registry):
    assert set(registry.keys()) == set(TreeKey)
    for key in TreeKey:
        assert registry.get_tree(key).key is key


def test_registry_rejects_missing_tree():
    with pytest.raises(ValueError, match="HEADACHE"):
        ComplaintTreeRegistry([t for t in ALL_TREES if t.key is not TreeKey.HEADACHE])


def test_registry_rejects_duplicate_tree():
    with pytest.raises(ValueError, match="Duplicate"):
        ComplaintTreeRegistry([*ALL_TREES, CHEST_PAIN_TREE])


def test_unknown_key_returns_none(registry):
    assert registry.get_tree("NOT_A_TREE") is None
    assert registry.has_tree("CHEST_PAIN") is True


def test_metadata_and_urgent_triage(registry):
    meta = registry.metadata(TreeKey.CHEST_PAIN)
    assert meta.urgency == "high"
    assert meta.requires_urgent_triage is True
    assert registry.requires_urgent_triage(TreeKey.LIMB_PAIN) is False


@pytest.mark.parametrize("tree", ALL_TREES, ids=lambda t: t.key.value)
def test_every_tree_can_meet_its_minimum_with_required_items(tree):
    required = [item for item in tree.all_items() if item.required]
    assert len(required) >= tree.minimum_questions_required


def test_red_flags_are_asked_first():
    first = CHEST_PAIN_TREE.next_item({})
    assert isinstance(first, RedFlagCheck)
    assert first.id == "chest_syncope"


def test_conditional_question_only_applies_when_condition_holds():
    answers = {**CHEST_ANSWERS}
    assert "relieved_by" not in [i.id for i in CHEST_PAIN_TREE.applicable_items(answers)]

    answers["timing"] = "with-exertion"
    assert CHEST_PAIN_TREE.missing(answers) == ["relieved_by"]
    assert not CHEST_PAIN_TREE.is_complete(answers)

    answers["relieved_by"] = ["rest"]
    assert CHEST_PAIN_TREE.is_complete(answers)


def test_completion_requires_every_red_flag_check():
    answers = {k: v for k, v in CHEST_ANSWERS.items() if k != "chest_sweating"}
    assert CHEST_PAIN_TREE.missing(answers) == ["chest_sweating"]
    assert not CHEST_PAIN_TREE.is_complete(answers)


def test_optional_question_is_offered_after_required_ones():
    assert CHEST_PAIN_TREE.next_item(CHEST_ANSWERS).id == "worsened_by"


def test_progress_counts_required_mandatory_questions():
    progress = CHEST_PAIN_TREE.progress({"onset": "suddenly", "severity": 5})
    assert progress.questions_total == 7
    assert progress.questions_answered == 2
    assert progress.questions_remaining == 5


def test_coerce_yes_no_and_scale():
    syncope = CHEST_PAIN_TREE.item("chest_syncope")
    assert coerce_answer(syncope, "Yes") is True
    assert coerce_answer(syncope, "نہیں") is False
    assert coerce_answer(CHEST_PAIN_TREE.item("severity"), "7") == 7

    with pytest.raises(IntakeValidationError):
        coerce_answer(syncope, "perhaps")


def test_severity_outside_scale_is_rejected():
    with pytest.raises(IntakeValidationError) as excinfo:
        coerce_answer(CHEST_PAIN_TREE.item("severity"), 11)
    assert excinfo.value.field == "severity"
    assert "1 to 10" in excinfo.value.message_en


def test_none_cannot_be_combined():
    with pytest.raises(IntakeValidationError):
        coerce_answer(CHEST_PAIN_TREE.item("radiation"), ["none", "jaw"])


def test_unknown_option_is_rejected():
    with pytest.raises(IntakeValidationError):
        coerce_answer(CHEST_PAIN_TREE.item("quality"), ["squishy"])


def test_temperature_range_validation():
    temperature = GENERAL_TREE.item("temperature")
    assert coerce_answer(temperature, "38.5") == 38.5
    assert not validate_response(temperature, 45).valid
    assert validate_response(temperature, 36).valid


@pytest.mark.parametrize("raw", ["nan", "NaN", "inf", "-inf", float("nan"), float("inf")])
def test_non_finite_numbers_are_rejected(raw):
    with pytest.raises(IntakeValidationError) as excinfo:
        coerce_answer(CHEST_PAIN_TREE.item("severity"), raw)
    assert excinfo.value.field == "severity"

    with pytest.raises(IntakeValidationError):
        coerce_answer(GENERAL_TREE.item("temperature"), raw)


def test_range_check_fails_on_non_finite_values():
    assert not validate_response(CHEST_PAIN_TREE.item("severity"), float("nan")).valid
    assert not validate_response(GENERAL_TREE.item("temperature"), float("-inf")).valid


def test_description_pattern_limits_length():
    description = GENERAL_TREE.item("description")
    assert validate_response(description, "feels feverish").valid
    assert not validate_response(description, "x" * 501).valid


def test_format_question_in_urdu():
    data = format_question(CHEST_PAIN_TREE.item("chest_syncope"), "ur")
    assert data["isRedFlag"] is True
    assert data["type"] == "YES_NO"
    assert data["text"].startswith("کیا")


def test_derive_findings_for_chest_tree():
    answers = {**CHEST_ANSWERS, "chest_sweating": True}
    pain, associated = derive_findings(
        CHEST_PAIN_TREE,
        answers,
        body_location="chest.anterior.middle.left",
        pain_points=(PainPoint(zone_id="chest.anterior.middle.left", intensity=6, radiates_to=("neck",)),),
    )

    assert pain.location == "chest"
    assert pain.subzone == "left"
    assert pain.intensity == 8
    assert pain.quality == ("crushing", "pressure")
    assert pain.radiation == ("left-arm", "jaw", "neck")
    assert associated == ("diaphoresis",)


def test_derive_findings_without_intensity_has_no_pain():
    pain, associated = derive_findings(GENERAL_TREE, {"associated": ["fever"]})
    assert pain is None
    assert associated == ("fever",)
