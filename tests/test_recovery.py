# tests/test_recovery.py
from datetime import timedelta

import pytest

from conftest import NO_FLAGS

from app.intake import IntakePhase, IntakeStorageError, InvalidZoneError, SessionExpiredError
from app.services import ErrorCode, ErrorRecoveryService, ErrorSeverity, classify_error
from app.services.recovery import ERROR_CATALOG, SuggestedAction
from app.services.storage import recovery_key


@pytest.fixture
def in_tree(orchestrator, driver):
    session = driver.to_tree(orchestrator.create_session("p1"))
    return driver.answer_all(session, NO_FLAGS)


@pytest.mark.parametrize(
    "error, code",
    [
        (TimeoutError("read"), ErrorCode.NETWORK_TIMEOUT),
        (TimeoutError(""), ErrorCode.NETWORK_TIMEOUT),
        (RuntimeError("network request timed out"), ErrorCode.NETWORK_TIMEOUT),
        (ConnectionError("network unreachable"), ErrorCode.NETWORK_ERROR),
        (RuntimeError("failed to fetch"), ErrorCode.NETWORK_ERROR),
        (ValueError("invalid severity"), ErrorCode.VALIDATION_ERROR),
        (RuntimeError("OpenAI returned 500"), ErrorCode.AI_SERVICE_ERROR),
        (RuntimeError("AI service down"), ErrorCode.AI_SERVICE_ERROR),
        (OSError("disk quota exceeded"), ErrorCode.STORAGE_ERROR),
        (RuntimeError("session store lost"), ErrorCode.SESSION_EXPIRED),
        (RuntimeError("said hello to the maintainer"), ErrorCode.SYSTEM_ERROR),
        (KeyError("boom"), ErrorCode.SYSTEM_ERROR),
    ],
)
def test_classify_by_message(error, code):
    assert classify_error(error) is code


def test_intake_error_code_wins_over_message():
    assert classify_error(IntakeStorageError("network is down")) is ErrorCode.STORAGE_ERROR
    assert classify_error(SessionExpiredError("p1")) is ErrorCode.SESSION_EXPIRED


def test_uncatalogued_intake_error_falls_back_to_message():
    error = InvalidZoneError("arm.wing", "wing", "arm")
    assert classify_error(error) is ErrorCode.VALIDATION_ERROR


def test_catalog_entries():
    assert ERROR_CATALOG[ErrorCode.SYSTEM_ERROR].severity is ErrorSeverity.CRITICAL
    assert ERROR_CATALOG[ErrorCode.AI_SERVICE_ERROR].suggested_action is SuggestedAction.CONTINUE
    assert ERROR_CATALOG[ErrorCode.NETWORK_TIMEOUT].retryable is True
    assert ERROR_CATALOG[ErrorCode.STORAGE_ERROR].retryable is False


def test_recoverable_error_snapshots_session(recovery, store, in_tree):
    classified = recovery.handle(TimeoutError("upstream"), in_tree)

    assert classified.code is ErrorCode.NETWORK_TIMEOUT
    assert classified.technical_details == "upstream"
    snapshot = store.get(recovery_key("p1"))
    assert snapshot["version"] == "1.0"
    assert snapshot["code"] == "NETWORK_TIMEOUT"


def test_critical_error_does_not_snapshot(recovery, store, in_tree):
    classified = recovery.handle(KeyError("boom"), in_tree)
    assert classified.severity is ErrorSeverity.CRITICAL
    assert store.get(recovery_key("p1")) is None


def test_recover_restores_recent_snapshot(recovery, clock, in_tree):
    recovery.handle(TimeoutError("upstream"), in_tree)
    clock.advance(seconds=3600)

    restored = recovery.recover("p1")
    assert restored.phase is IntakePhase.COMPLAINT_TREE
    assert restored.encounter.answers == NO_FLAGS
    assert restored.navigation_stack == in_tree.navigation_stack


def test_recover_discards_snapshot_older_than_an_hour(recovery, store, clock, in_tree):
    recovery.handle(TimeoutError("upstream"), in_tree)
    clock.advance(seconds=3601)

    assert recovery.recover("p1") is None
    assert store.get(recovery_key("p1")) is None


def test_recover_ignores_snapshot_for_other_patient(recovery, store, in_tree):
    recovery.snapshot(in_tree)
    store.set(recovery_key("p2"), store.get(recovery_key("p1")))
    assert recovery.recover("p2") is None


def test_expired_session_snapshot_restarts_at_emergency(recovery, clock, in_tree):
    recovery.handle(SessionExpiredError("p1"), in_tree)
    clock.advance(minutes=10)

    restored = recovery.recover("p1")

    assert restored.phase is IntakePhase.EMERGENCY
    assert restored.navigation_stack == ()
    assert restored.expires_at == clock() + timedelta(hours=24)
    assert restored.encounter.emergency_screening.screening_completed is False
    assert restored.encounter.emergency_screening.checkpoints == ()
    assert restored.encounter.answers == NO_FLAGS
    assert restored.encounter.complaint_type is not None


def test_snapshot_failure_is_reported_not_raised(settings, clock, in_tree):
    class BrokenStore:
        def set(self, key, value):
            raise OSError("disk full")

    service = ErrorRecoveryService(BrokenStore(), settings, clock=clock)
    assert service.snapshot(in_tree) is False


def test_clear_removes_snapshot(recovery, store, in_tree):
    recovery.snapshot(in_tree)
    recovery.clear("p1")
    assert recovery.recover("p1") is None
