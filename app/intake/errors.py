# app/intake/errors.py
from __future__ import annotations

from typing import Optional

from app.intake.stages import Language


class IntakeError(Exception):
    """
    Base class for errors raised by the intake core.

    Every error carries a machine-readable ``code`` and a bilingual
    user-facing message so the API layer can surface something actionable
    instead of a generic failure.
    """

    code = "INTAKE_ERROR"

    def __init__(self, message_en: str, message_ur: Optional[str] = None):
        super().__init__(message_en)
        self.message_en = message_en
        self.message_ur = message_ur or message_en

    def message(self, language: Language | str = Language.EN) -> str:
        return self.message_ur if Language(language) is Language.UR else self.message_en

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": {"en": self.message_en, "ur": self.message_ur},
        }


class IntakeValidationError(IntakeError):
    """A rejected transition or an answer that failed validation."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message_en: str,
        message_ur: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message_en, message_ur)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class InvalidZoneError(IntakeValidationError):
    code = "INVALID_ZONE"

    def __init__(self, zone_id: str, segment: str, path: str):
        super().__init__(
            f"Invalid zone ID: {zone_id} - segment '{segment}' not found at path {path or '<root>'}",
            f"غلط جسمانی حصہ: {zone_id}",
            field="zoneId",
        )
        self.zone_id = zone_id
        self.segment = segment
        self.path = path


class InvalidEmergencyResponseError(IntakeValidationError):
    code = "INVALID_EMERGENCY_RESPONSE"

    def __init__(self, raw: str):
        super().__init__(
            f"Please answer YES or NO (got {raw!r}).",
            "براہ کرم ہاں یا نہیں میں جواب دیں۔",
            field="response",
        )
        self.raw = raw


class SessionExpiredError(IntakeError):
    code = "SESSION_EXPIRED"

    def __init__(self, patient_id: str):
        super().__init__(
            f"Intake session for patient {patient_id} has expired",
            "آپ کا سیشن ختم ہو گیا ہے۔",
        )
        self.patient_id = patient_id


class IntakeStorageError(IntakeError):
    code = "STORAGE_ERROR"
