# tests/test_decision_engine.py
import pytest

from app.decision import (
    ClinicalDecisionEngine,
    ClinicalInput,
    DifferentialEntry,
    HistorySnapshot,
    PainSymptom,
    PatientDemographics,
    Probability,
    UrgencyLevel,
)
from app.decision.differential import rank_differential
from app.decision.schema import StepPriority
from app.intake.schema import DetectedRedFlag, Encounter, RedFlagAction, RedFlagSeverity
from app.intake.stages import TreeKey


@pytest.fixture
def engine():
    return ClinicalDecisionEngine()


def chest_input(**overrides):
    data = dict(
        demographics=PatientDemographics(age=55, sex="male"),
        pain=PainSymptom(
            location="chest",
            intensity=8,
            onset="suddenly",
            quality=("crushing", "pressure"),
            radiation=("left-arm", "jaw"),
        ),
    )
    data.update(overrides)
    return ClinicalInput(**data)


def test_cardiac_presentation_is_an_emergency(engine):
    result = engine.analyze_input(chest_input())

    assert result.urgency.level is UrgencyLevel.EMERGENCY
    assert result.urgency.score == 95
    assert result.urgency.factors == (
        "severe-pain-intensity",
        "chest-pain",
        "cardiac-pattern-radiation",
        "crushing-chest-pain",
        "sudden-onset",
    )
    assert result.possible_conditions[0].condition == "Acute coronary syndrome (URGENT)"
    assert [f.flag for f in result.red_flags] == ["Cardiac-pattern pain radiation"]


def test_cardiac_recommendations_and_next_steps(engine):
    result = engine.analyze_input(chest_input())

    first, last = result.recommendations[0], result.recommendations[-1]
    assert first.priority == 1
    assert first.recommendation == "Call Emergency Services (1122) immediately"
    assert first.timeframe == "NOW"
    assert last.priority == 4
    assert all(r.recommendation != "Cardiac workup recommended" for r in result.recommendations)

    steps = [(s.step, s.priority) for s in result.next_steps]
    assert steps == [
        ("Immediate Emergency Care", StepPriority.CRITICAL),
        ("Cardiac Workup", StepPriority.HIGH),
    ]


def test_emergency_flag_forces_score_100(engine):
    result = engine.analyze_input(ClinicalInput(emergency_flags=("loss-of-consciousness",)))

    assert result.urgency.score == 100
    assert result.urgency.level is UrgencyLevel.EMERGENCY
    assert result.urgency.factors == ("loss-of-consciousness",)
    assert "1122" in result.urgency.timeframe


def test_escalation_raises_floor_to_urgent(engine):
    mild = PainSymptom(location="limb", intensity=3)
    result = engine.analyze_input(ClinicalInput(pain=mild, escalations=("limb_cold_pale",)))

    assert result.urgency.level is UrgencyLevel.URGENT
    assert result.urgency.score == 70
    assert result.urgency.factors[-1] == "red-flag-escalation"


def test_escalation_never_lowers_a_higher_score(engine):
    result = engine.analyze_input(chest_input(escalations=("chest_sweating",)))
    assert result.urgency.score == 95
    assert result.urgency.level is UrgencyLevel.EMERGENCY


def test_migraine_is_routine_with_neurology_referral(engine):
    pain = PainSymptom(location="head", intensity=6, onset="gradually", quality=("throbbing",))
    result = engine.analyze_input(ClinicalInput(pain=pain, associated=("nausea", "photophobia")))

    assert result.urgency.level is UrgencyLevel.ROUTINE
    assert result.possible_conditions[0].condition == "Migraine"
    assert result.possible_conditions[0].probability is Probability.HIGH
    assert any(r.recommendation == "Consider Neurology consultation" for r in result.recommendations)


def test_urgent_conditions_rank_above_likely_ones(engine):
    pain = PainSymptom(location="head", intensity=9, onset="suddenly", quality=("throbbing",))
    result = engine.analyze_input(ClinicalInput(pain=pain, associated=("nausea",)))

    names = [c.condition for c in result.possible_conditions]
    assert names.index("Subarachnoid hemorrhage (URGENT)") < names.index("Migraine")
    assert "thunderclap-headache" in result.urgency.factors
    assert ("Neuroimaging", StepPriority.CRITICAL) in [(s.step, s.priority) for s in result.next_steps]


def test_ranking_is_stable_for_equal_entries():
    a = DifferentialEntry(condition="A", probability=Probability.MODERATE)
    b = DifferentialEntry(condition="B", probability=Probability.MODERATE)
    c = DifferentialEntry(condition="C", probability=Probability.CONSIDER, urgency=UrgencyLevel.URGENT)
    assert [e.condition for e in rank_differential([a, b, c])] == ["C", "A", "B"]


@pytest.mark.parametrize(
    "history, associated, factor",
    [
        (HistorySnapshot(medications=("Warfarin 5mg",)), ("bleeding",), "anticoagulated-with-bleeding"),
        (HistorySnapshot(conditions=("HIV",)), ("fever",), "immunocompromised-with-fever"),
        (HistorySnapshot(medications=("tacrolimus (immunosuppressant)",)), ("fever",), "immunocompromised-with-fever"),
        (HistorySnapshot(conditions=("diabetes",)), ("confusion",), "diabetic-with-altered-mental-status"),
    ],
)
def test_history_factors(engine, history, associated, factor):
    result = engine.analyze_input(ClinicalInput(medical_history=history, associated=associated))
    assert factor in result.urgency.factors


def test_known_cardiac_history_counts_only_for_chest_pain(engine):
    history = HistorySnapshot(conditions=("heart_disease",))
    chest = engine.analyze_input(chest_input(medical_history=history))
    head = engine.analyze_input(
        ClinicalInput(medical_history=history, pain=PainSymptom(location="head", intensity=4))
    )
    assert "known-cardiac-history-with-chest-pain" in chest.urgency.factors
    assert "known-cardiac-history-with-chest-pain" not in head.urgency.factors


@pytest.mark.parametrize("age, factor", [(70, "elderly-patient"), (1, "infant-patient"), (8, "pediatric-patient")])
def test_age_factors(engine, age, factor):
    result = engine.analyze_input(ClinicalInput(demographics=PatientDemographics(age=age)))
    assert result.urgency.factors == (factor,)


def test_mild_pain_gets_self_care_advice(engine):
    pain = PainSymptom(location="lower-back", intensity=4, onset="gradually")
    result = engine.analyze_input(ClinicalInput(pain=pain))

    assert result.urgency.level is UrgencyLevel.ROUTINE
    assert result.possible_conditions[0].condition == "Mechanical low back pain"
    assert "Over-the-counter pain management" in [r.recommendation for r in result.recommendations]
    assert [r.priority for r in result.recommendations] == sorted(r.priority for r in result.recommendations)


def test_analyze_encounter_maps_red_flags(engine):
    encounter = Encounter(
        patient_id="p1",
        red_flags_detected=(
            DetectedRedFlag(
                check_id="chest_syncope",
                tree_key=TreeKey.CHEST_PAIN,
                severity=RedFlagSeverity.CRITICAL,
                action=RedFlagAction.STOP_INTAKE,
                symptom="loss-of-consciousness",
                description="Syncope with chest pain",
            ),
        ),
    )
    result = engine.analyze(encounter)

    assert result.urgency.score == 100
    assert result.urgency.factors == ("loss-of-consciousness",)
    assert "clinician" in result.disclaimer
