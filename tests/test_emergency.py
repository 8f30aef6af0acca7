# tests/test_emergency.py
import logging

import pytest

from app.intake import EmergencyScreener, InvalidEmergencyResponseError, normalize_emergency_response
from app.intake.errors import IntakeValidationError
from app.intake.schema import EmergencyResponse, RecommendedAction


@pytest.fixture
def screener(clock):
    return EmergencyScreener(clock=clock)


@pytest.mark.parametrize("raw", ["yes", " YES ", "y", "yeah", "Yep", "ہاں", "جی", "جی ہاں", True])
def test_normalize_accepts_yes_variants(raw):
    assert normalize_emergency_response(raw) is EmergencyResponse.YES


@pytest.mark.parametrize("raw", ["no", "N", "nope", "نہیں", False])
def test_normalize_accepts_no_variants(raw):
    assert normalize_emergency_response(raw) is EmergencyResponse.NO


@pytest.mark.parametrize("raw", ["maybe", "", "not sure", "true"])
def test_normalize_rejects_anything_else(raw):
    with pytest.raises(InvalidEmergencyResponseError):
        normalize_emergency_response(raw)


def test_checkpoints_are_asked_in_fixed_order(screener):
    ids = [c.id for c in screener.checkpoints]
    assert ids == [
        "emergency_chest_pain",
        "emergency_breathing",
        "emergency_consciousness",
        "emergency_weakness",
        "emergency_bleeding",
        "emergency_suicide",
    ]


def test_chest_pain_yes_stops_screening_immediately(screener):
    result = screener.answer(screener.start(), "yes")

    assert result.any_positive is True
    assert result.screening_completed is True
    assert result.recommended_action is RecommendedAction.CALL_EMERGENCY
    assert result.to_wire()["recommendedAction"] == "call_1122"
    assert result.emergency_type == "ACS_PROTOCOL"
    assert [c.id for c in result.checkpoints] == ["emergency_chest_pain"]
    assert screener.next_checkpoint(result) is None


def test_all_no_completes_negative_screening(screener):
    result = screener.screen(lambda checkpoint: "no")

    assert result.screening_completed is True
    assert result.any_positive is False
    assert result.cleared is True
    assert len(result.checkpoints) == 6
    assert result.recommended_action is RecommendedAction.CONTINUE


def test_blocking_loop_never_asks_past_a_yes(screener):
    asked = []

    def ask(checkpoint):
        asked.append(checkpoint.id)
        return "yes" if checkpoint.id == "emergency_weakness" else "no"

    result = screener.screen(ask)

    assert asked[-1] == "emergency_weakness"
    assert "emergency_bleeding" not in asked
    assert result.emergency_type == "STROKE_PROTOCOL"


def test_answer_must_match_current_checkpoint(screener):
    with pytest.raises(IntakeValidationError):
        screener.answer(screener.start(), "no", checkpoint_id="emergency_bleeding")


def test_cannot_answer_after_screening_completed(screener):
    result = screener.answer(screener.start(), "yes")
    with pytest.raises(IntakeValidationError):
        screener.answer(result, "no")


def test_self_harm_alert_includes_helpline(screener):
    alert = screener.format_alert("emergency_suicide")

    assert alert.protocol == "PSYCHIATRIC_EMERGENCY"
    assert "042-35761999" in alert.message
    assert alert.actions[0] == "Call 1122 or 042-35761999"


def test_alert_in_urdu(screener):
    alert = screener.format_alert("emergency_breathing", "ur")
    assert alert.title == "شدید ایمرجنسی"
    assert "1122" in alert.message


def test_unknown_checkpoint_gets_generic_alert(screener):
    alert = screener.format_alert("nope")
    assert alert.title == "Emergency"
    assert screener.get_protocol("nope") == "UNKNOWN"


def test_positive_screening_is_logged_as_critical(screener, caplog):
    result = screener.answer(screener.start(), "yes")
    with caplog.at_level(logging.CRITICAL):
        screener.log_emergency_event("p1", result)

    record = caplog.records[-1]
    assert record.levelno == logging.CRITICAL
    assert record.extra_fields["checkpoint_id"] == "emergency_chest_pain"
    assert record.extra_fields["protocol"] == "ACS_PROTOCOL"
