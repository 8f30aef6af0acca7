# tests/test_persistence.py
from datetime import date

import pytest

from conftest import CHEST_ANSWERS

from app.intake import IntakePhase, IntakeValidationError
from app.intake.schema import AccountDemographics, FamilyHistoryEntry, MedicalHistory
from app.models import Patient
from app.services import PatientAccountRepository, SqlClinicianSink


@pytest.fixture
def accounts(session_factory, clock):
    return PatientAccountRepository(session_factory, clock=clock)


@pytest.fixture
def completed(orchestrator, driver):
    session = orchestrator.create_session("p1")
    return orchestrator.advance_phase(driver.to_summary(session, CHEST_ANSWERS), IntakePhase.COMPLETE)


def test_sql_sink_stores_encounter_and_triage(session_factory, completed):
    sink = SqlClinicianSink(session_factory)
    sink.submit(completed.encounter)

    stored = sink.get(completed.encounter.id)
    assert stored.id == completed.encounter.id
    assert stored.triage_result.urgency.score == 95
    assert stored.answers["severity"] == 8

    with session_factory() as db:
        patient = db.get(Patient, "p1")
        row = patient.encounters[0]
        assert row.status == "complete"
        assert row.urgency_level == "emergency"
        assert row.chief_complaint == "Chest pain"
        assert row.triage["urgency"]["level"] == "emergency"


def test_sql_sink_resubmit_updates_row(session_factory, completed):
    sink = SqlClinicianSink(session_factory)
    sink.submit(completed.encounter)
    sink.submit(completed.encounter.updated(complaint_text="Tight chest since morning"))

    encounters = sink.list_for_patient("p1")
    assert len(encounters) == 1
    assert encounters[0].complaint_text == "Tight chest since morning"
    assert sink.get("missing") is None


def test_get_or_create_is_idempotent(accounts):
    created = accounts.get_or_create("p9", display_name="Ayesha")
    again = accounts.get_or_create("p9")

    assert created.is_first_time is True
    assert again.display_name == "Ayesha"
    assert accounts.get("unknown") is None


def test_confirm_baseline_update_records_confirmer(accounts, session_factory, clock):
    history = MedicalHistory(
        conditions=("diabetes",),
        medications=("metformin",),
        allergies=("penicillin",),
        family_history=(FamilyHistoryEntry(condition="heart_disease", relative="father"),),
        smoking_status="never",
    )

    account = accounts.confirm_baseline_update("p1", history, confirmed_by="doctor")

    assert account.has_completed_baseline is True
    assert account.is_first_time is False
    assert account.baseline_confirmed_by == "doctor"
    assert account.baseline_updated_at == clock()
    assert account.baseline.long_term_medications == ("metformin",)
    assert account.risk_profile.smoking_status == "never"

    reloaded = accounts.get("p1")
    assert reloaded.history_snapshot() == history
    with session_factory() as db:
        assert db.get(Patient, "p1").baseline_version == 1

    accounts.confirm_baseline_update("p1", history, confirmed_by="patient")
    with session_factory() as db:
        assert db.get(Patient, "p1").baseline_version == 2


def test_baseline_update_needs_patient_or_doctor(accounts):
    with pytest.raises(IntakeValidationError) as excinfo:
        accounts.confirm_baseline_update("p1", MedicalHistory(), confirmed_by="encounter")
    assert excinfo.value.field == "confirmedBy"
    assert accounts.get("p1") is None


def test_demographics_feed_encounter_age(accounts, orchestrator, clock):
    account = accounts.update_demographics(
        "p3", AccountDemographics(date_of_birth=date(1969, 3, 2), gender="female")
    )

    session = orchestrator.create_session("p3", account=account)
    assert session.encounter.demographics.age == 54
    assert session.encounter.demographics.sex == "female"
