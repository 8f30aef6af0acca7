# tests/test_baseline.py
import pytest

from conftest import FIRST_VISIT_BASELINE

from app.intake import BaselineModule
from app.intake.baseline import split_list
from app.intake.errors import IntakeValidationError
from app.intake.schema import BaselineProfile, Encounter, PatientAccount, RiskProfile


@pytest.fixture
def baseline():
    return BaselineModule()


@pytest.fixture
def returning_account():
    return PatientAccount(
        patient_id="p-returning",
        baseline=BaselineProfile(chronic_conditions=("diabetes",), long_term_medications=("metformin",)),
        risk_profile=RiskProfile(smoking_status="never"),
        has_completed_baseline=True,
        baseline_confirmed_by="doctor",
    )


def test_first_visit_gets_full_questionnaire(baseline):
    ids = [q.id for q in baseline.questions(is_first_time=True)]
    assert ids[:3] == ["chronic_conditions", "current_medications", "allergies"]
    assert "smoking_status" in ids


def test_returning_patient_only_reconfirms(baseline):
    assert [q.id for q in baseline.applicable(False, {})] == ["baseline_changed"]
    assert [q.id for q in baseline.applicable(False, {"baseline_changed": True})] == [
        "baseline_changed",
        "baseline_changes_detail",
    ]


def test_missing_required_answer_is_named(baseline):
    answers = {k: v for k, v in FIRST_VISIT_BASELINE.items() if k != "allergies"}
    with pytest.raises(IntakeValidationError) as excinfo:
        baseline.validate(True, answers)
    assert excinfo.value.field == "allergies"


def test_unknown_question_is_rejected(baseline):
    with pytest.raises(IntakeValidationError) as excinfo:
        baseline.validate(True, {**FIRST_VISIT_BASELINE, "favourite_colour": "blue"})
    assert excinfo.value.field == "favourite_colour"


def test_none_condition_is_exclusive(baseline):
    with pytest.raises(IntakeValidationError) as excinfo:
        baseline.validate(True, {**FIRST_VISIT_BASELINE, "chronic_conditions": ["none", "asthma"]})
    assert excinfo.value.field == "chronic_conditions"


def test_commit_builds_history_and_keeps_raw_answers(baseline):
    encounter = baseline.commit(Encounter(patient_id="p1"), True, FIRST_VISIT_BASELINE)

    assert encounter.baseline_committed is True
    assert encounter.baseline_answers["baseline_smoking_status"] == "former"
    history = encounter.medical_history
    assert history.conditions == ("hypertension",)
    assert history.medications == ("Amlodipine 5mg", "aspirin")
    assert history.allergies == ()
    assert [f.condition for f in history.family_history] == ["heart_disease"]
    assert history.smoking_status == "former"


def test_returning_commit_uses_account_history(baseline, returning_account):
    encounter = baseline.commit(
        Encounter(patient_id="p-returning"),
        False,
        {"baseline_changed": "yes", "baseline_changes_detail": "Started insulin"},
        returning_account,
    )

    assert encounter.medical_history.conditions == ("diabetes",)
    assert encounter.medical_history.smoking_status == "never"
    assert BaselineModule.reported_changes(encounter) == "Started insulin"


def test_changes_detail_required_when_something_changed(baseline):
    with pytest.raises(IntakeValidationError) as excinfo:
        baseline.validate(False, {"baseline_changed": True})
    assert excinfo.value.field == "baseline_changes_detail"


def test_format_questions_carries_category_and_placeholder(baseline):
    formatted = baseline.format_questions(True, {}, "ur")
    medications = next(q for q in formatted if q["id"] == "current_medications")
    assert medications["category"] == "PMH"
    assert "کوئی نہیں" in medications["placeholder"]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Aspirin, metformin; warfarin", ("Aspirin", "metformin", "warfarin")),
        ("None", ()),
        ("کوئی نہیں", ()),
        ("", ()),
    ],
)
def test_split_list(text, expected):
    assert split_list(text) == expected
