# app/records.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """
    Base class for every serialisable intake / triage record.

    Records are immutable snapshots: update them with
    ``record.model_copy(update={...})`` and keep the new object.

    Field names are snake_case in Python and camelCase on the wire
    (``anyPositive``, ``needsRefinement`` ...), so downstream stores see
    the same shapes the clinician UI already consumes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class LocalizedText(Record):
    en: str
    ur: str = ""

    def get(self, language: str = "en") -> str:
        # Untranslated strings fall back to English.
        if str(getattr(language, "value", language)) == "ur" and self.ur:
            return self.ur
        return self.en
