# app/services/__init__.py
from .intake_session import IntakeSessionService, db_session, init_db
from .lock import IntakeLockService, IntakeLockedError, LockStatus, TabLock, generate_tab_id
from .persistence import (
    ClinicianSink,
    InMemoryClinicianSink,
    PatientAccountRepository,
    SqlClinicianSink,
)
from .recovery import (
    ClassifiedError,
    ErrorCode,
    ErrorRecoveryService,
    ErrorSeverity,
    IntakeServiceError,
    classify_error,
)
from .storage import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore, StorageEvent

__all__ = [
    "ClassifiedError",
    "ClinicianSink",
    "ErrorCode",
    "ErrorRecoveryService",
    "ErrorSeverity",
    "InMemoryClinicianSink",
    "InMemoryKeyValueStore",
    "IntakeLockService",
    "IntakeLockedError",
    "IntakeServiceError",
    "IntakeSessionService",
    "KeyValueStore",
    "LockStatus",
    "PatientAccountRepository",
    "SqlClinicianSink",
    "SqlKeyValueStore",
    "StorageEvent",
    "TabLock",
    "classify_error",
    "db_session",
    "init_db",
]
