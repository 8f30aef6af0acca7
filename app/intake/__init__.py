# app/intake/__init__.py
from .agent import EmergencyExit, IntakeOrchestrator
from .baseline import BaselineModule
from .emergency import EmergencyScreener, normalize_emergency_response
from .errors import (
    IntakeError,
    IntakeStorageError,
    IntakeValidationError,
    InvalidEmergencyResponseError,
    InvalidZoneError,
    SessionExpiredError,
)
from .schema import Encounter, PainPoint, PatientAccount
from .stages import ComplaintType, IntakePhase, Language, TreeKey
from .state import IntakeSession, NavigationStep
from .tree_catalog import default_registry
from .trees import ComplaintTreeRegistry
from .zones import ZoneResolver

__all__ = [
    "BaselineModule",
    "ComplaintTreeRegistry",
    "ComplaintType",
    "EmergencyExit",
    "EmergencyScreener",
    "Encounter",
    "IntakeError",
    "IntakeOrchestrator",
    "IntakePhase",
    "IntakeSession",
    "IntakeStorageError",
    "IntakeValidationError",
    "InvalidEmergencyResponseError",
    "InvalidZoneError",
    "Language",
    "NavigationStep",
    "PainPoint",
    "PatientAccount",
    "SessionExpiredError",
    "TreeKey",
    "ZoneResolver",
    "default_registry",
    "normalize_emergency_response",
]
