# app/services/recovery.py
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Optional

from app.config import Settings
from app.intake.errors import IntakeError
from app.intake.schema import EmergencyScreeningResult, utcnow
from app.intake.stages import IntakePhase, exhaustive
from app.intake.state import IntakeSession
from app.logging_config import get_logger, log_with_context
from app.records import LocalizedText, Record
from app.services.storage import KeyValueStore, recovery_key

logger = get_logger(__name__)

SNAPSHOT_VERSION = "1.0"


class ErrorCode(str, Enum):
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class ErrorSeverity(str, Enum):
    RECOVERABLE = "recoverable"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class SuggestedAction(str, Enum):
    RETRY = "retry"
    CONTINUE = "continue"
    CONTACT_SUPPORT = "contact_support"
    RESTART = "restart"


class CatalogEntry(Record):
    code: ErrorCode
    severity: ErrorSeverity
    user_message: LocalizedText
    retryable: bool
    suggested_action: SuggestedAction


class ClassifiedError(CatalogEntry):
    technical_details: Optional[str] = None


def _entry(code, severity, en, ur, retryable, action) -> CatalogEntry:
    return CatalogEntry(
        code=code,
        severity=severity,
        user_message=LocalizedText(en=en, ur=ur),
        retryable=retryable,
        suggested_action=action,
    )


ERROR_CATALOG: Dict[ErrorCode, CatalogEntry] = exhaustive(
    ErrorCode,
    {
        ErrorCode.NETWORK_TIMEOUT: _entry(
            ErrorCode.NETWORK_TIMEOUT,
            ErrorSeverity.RECOVERABLE,
            "Connection timed out. Your progress has been saved. Please try again.",
            "کنکشن ٹائم آؤٹ ہو گیا۔ آپ کی پیشرفت محفوظ ہے۔ براہ کرم دوبارہ کوشش کریں۔",
            True,
            SuggestedAction.RETRY,
        ),
        ErrorCode.NETWORK_ERROR: _entry(
            ErrorCode.NETWORK_ERROR,
            ErrorSeverity.RECOVERABLE,
            "Network error. Please check your connection and try again.",
            "نیٹ ورک کی خرابی۔ براہ کرم اپنا کنکشن چیک کریں اور دوبارہ کوشش کریں۔",
            True,
            SuggestedAction.RETRY,
        ),
        ErrorCode.VALIDATION_ERROR: _entry(
            ErrorCode.VALIDATION_ERROR,
            ErrorSeverity.RECOVERABLE,
            "Invalid response. Please check your answer and try again.",
            "غلط جواب۔ براہ کرم اپنا جواب چیک کریں اور دوبارہ کوشش کریں۔",
            True,
            SuggestedAction.RETRY,
        ),
        ErrorCode.AI_SERVICE_ERROR: _entry(
            ErrorCode.AI_SERVICE_ERROR,
            ErrorSeverity.DEGRADED,
            "AI service temporarily unavailable. Continuing with basic form.",
            "AI سروس عارضی طور پر دستیاب نہیں۔ بنیادی فارم کے ساتھ جاری۔",
            False,
            SuggestedAction.CONTINUE,
        ),
        ErrorCode.STORAGE_ERROR: _entry(
            ErrorCode.STORAGE_ERROR,
            ErrorSeverity.DEGRADED,
            "Cannot save progress. Please complete intake in one session.",
            "پیشرفت محفوظ نہیں کر سکتے۔ براہ کرم ایک سیشن میں مکمل کریں۔",
            False,
            SuggestedAction.CONTINUE,
        ),
        ErrorCode.SESSION_EXPIRED: _entry(
            ErrorCode.SESSION_EXPIRED,
            ErrorSeverity.RECOVERABLE,
            "Session expired. Your progress has been saved. Please restart.",
            "سیشن ختم ہو گیا۔ آپ کی پیشرفت محفوظ ہے۔ براہ کرم دوبارہ شروع کریں۔",
            True,
            SuggestedAction.RESTART,
        ),
        ErrorCode.SYSTEM_ERROR: _entry(
            ErrorCode.SYSTEM_ERROR,
            ErrorSeverity.CRITICAL,
            "System error. Please contact support or try again later.",
            "سسٹم کی خرابی۔ براہ کرم سپورٹ سے رابطہ کریں یا بعد میں کوشش کریں۔",
            False,
            SuggestedAction.CONTACT_SUPPORT,
        ),
    },
    "ERROR_CATALOG",
)

_CODES = frozenset(c.value for c in ErrorCode)

# First match wins.
_RULES = (
    (ErrorCode.NETWORK_TIMEOUT, re.compile(r"timeout|timed out")),
    (ErrorCode.NETWORK_ERROR, re.compile(r"network|fetch")),
    (ErrorCode.VALIDATION_ERROR, re.compile(r"validation|invalid")),
    (ErrorCode.AI_SERVICE_ERROR, re.compile(r"\bai\b|gemini|openai")),
    (ErrorCode.STORAGE_ERROR, re.compile(r"storage|quota")),
    (ErrorCode.SESSION_EXPIRED, re.compile(r"session|expired")),
)


def classify_error(error: BaseException) -> ErrorCode:
    """
    Classify by the error's own code when it is an intake error with a
    catalogued code, otherwise by substring tests over the exception type
    name and message.
    """
    if isinstance(error, IntakeError) and error.code in _CODES:
        return ErrorCode(error.code)

    text = f"{type(error).__name__}: {error}".lower()
    for code, pattern in _RULES:
        if pattern.search(text):
            return code
    return ErrorCode.SYSTEM_ERROR


class IntakeServiceError(Exception):
    """A failure classified by ErrorRecoveryService, ready for the API layer."""

    def __init__(self, classified: ClassifiedError, original: Optional[BaseException] = None):
        super().__init__(classified.technical_details or classified.code.value)
        self.classified = classified
        self.original = original


class ErrorRecoveryService:
    """
    Classifies failures and keeps a recovery snapshot of the intake.

    Non-critical failures snapshot the session; snapshots older than
    ``recovery_max_age_seconds`` are discarded instead of restored.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.max_age = timedelta(seconds=settings.recovery_max_age_seconds)
        self.session_ttl = timedelta(hours=settings.session_ttl_hours)
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def handle(
        self,
        error: BaseException,
        session: Optional[IntakeSession] = None,
    ) -> ClassifiedError:
        code = classify_error(error)
        entry = ERROR_CATALOG[code]
        classified = ClassifiedError(
            **entry.model_dump(),
            technical_details=str(error) or type(error).__name__,
        )

        log_with_context(
            logger,
            logging.ERROR,
            f"Intake error: code={code.value} severity={entry.severity.value} message={error}",
            error_code=code.value,
            patient_id=session.patient_id if session else None,
            phase=session.phase.value if session else None,
            has_answers=bool(session and session.encounter.answers),
        )

        if entry.severity is not ErrorSeverity.CRITICAL and session is not None:
            self.snapshot(session, code)
        return classified

    def snapshot(self, session: IntakeSession, code: Optional[ErrorCode] = None) -> bool:
        data = {
            "state": session.to_wire(),
            "timestamp": self._clock().isoformat(),
            "version": SNAPSHOT_VERSION,
            "code": code.value if code else None,
        }
        try:
            self.store.set(recovery_key(session.patient_id), data)
        except Exception:
            logger.exception("Failed to save recovery snapshot for %s", session.patient_id)
            return False
        return True

    def recover(self, patient_id: str) -> Optional[IntakeSession]:
        """
        Return the saved session if the snapshot is recent enough.
        Expired snapshots are deleted. A snapshot taken for an expired
        session restarts the phase sequence, keeping collected data.
        """
        data = self.store.get(recovery_key(patient_id))
        if not data:
            return None

        saved_at = datetime.fromisoformat(data["timestamp"])
        age = self._clock() - saved_at
        if age > self.max_age:
            logger.info(
                "Discarding recovery snapshot for %s (age %ss)", patient_id, int(age.total_seconds())
            )
            self.clear(patient_id)
            return None

        session = IntakeSession.model_validate(data["state"])
        if session.patient_id != patient_id:
            return None

        if data.get("code") == ErrorCode.SESSION_EXPIRED.value:
            now = self._clock()
            session = session.model_copy(
                update={
                    "phase": IntakePhase.EMERGENCY,
                    "navigation_stack": (),
                    "expires_at": now + self.session_ttl,
                    "encounter": session.encounter.updated(
                        emergency_screening=EmergencyScreeningResult(
                            screening_completed=False, screening_date=now
                        )
                    ),
                }
            )

        logger.info(
            "Recovery snapshot found for %s: age=%ss phase=%s",
            patient_id,
            int(age.total_seconds()),
            session.phase.value,
        )
        return session

    def clear(self, patient_id: str) -> None:
        self.store.remove(recovery_key(patient_id))
