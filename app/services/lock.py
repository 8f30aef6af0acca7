# app/services/lock.py
from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from app.config import Settings
from app.intake.errors import IntakeError
from app.intake.schema import utcnow
from app.logging_config import get_logger
from app.records import LocalizedText, Record
from app.services.storage import KeyValueStore, StorageEvent, lock_key

logger = get_logger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits

TAKEOVER_WARNING = LocalizedText(
    en="Intake was started in another tab. This tab can no longer make changes.",
    ur="انٹیک کسی دوسرے ٹیب میں شروع کر دیا گیا ہے۔ یہ ٹیب مزید تبدیلیاں نہیں کر سکتا۔",
)
LOCKED_ELSEWHERE = LocalizedText(
    en="This intake is already open in another tab. Please continue there or wait a few minutes.",
    ur="یہ انٹیک پہلے ہی کسی دوسرے ٹیب میں کھلا ہے۔ براہ کرم وہاں جاری رکھیں یا چند منٹ انتظار کریں۔",
)


def generate_tab_id(clock: Callable[[], datetime] = utcnow) -> str:
    """Stable per-tab id: ``tab-<epoch ms>-<9 random chars>``."""
    millis = int(clock().timestamp() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"tab-{millis}-{suffix}"


class LockRecord(Record):
    tab_id: str
    patient_id: str
    timestamp: datetime


class LockStatus(Record):
    acquired: bool
    is_locked: bool
    lock_holder: Optional[str] = None
    message: Optional[LocalizedText] = None


class IntakeLockService:
    """
    Leased per-patient intake lock.

    A lock record older than ``lock_timeout_seconds`` is abandoned and may
    be taken by any tab. Every write is a compare-and-swap against the
    record just read, so two tabs racing for the same lock cannot both
    succeed; the loser re-reads and sees the winner.
    """

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.timeout = timedelta(seconds=settings.lock_timeout_seconds)
        self.heartbeat_interval = timedelta(seconds=settings.lock_heartbeat_seconds)
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(self, patient_id: str) -> Optional[LockRecord]:
        raw = self.store.get(lock_key(patient_id))
        return LockRecord.model_validate(raw) if raw else None

    def is_stale(self, record: LockRecord, now: Optional[datetime] = None) -> bool:
        return (now or self._clock()) - record.timestamp >= self.timeout

    def acquire(self, patient_id: str, tab_id: str) -> LockStatus:
        key = lock_key(patient_id)
        for _ in range(self.MAX_ATTEMPTS):
            raw = self.store.get(key)
            now = self._clock()
            if raw:
                current = LockRecord.model_validate(raw)
                if current.tab_id != tab_id and not self.is_stale(current, now):
                    logger.info(
                        "Lock refused: patient=%s tab=%s holder=%s",
                        patient_id,
                        tab_id,
                        current.tab_id,
                    )
                    return self._refused(current.tab_id)
                if current.tab_id != tab_id:
                    logger.warning(
                        "Taking over stale lock: patient=%s stale_holder=%s tab=%s",
                        patient_id,
                        current.tab_id,
                        tab_id,
                    )

            record = LockRecord(tab_id=tab_id, patient_id=patient_id, timestamp=now)
            if self.store.compare_and_swap(key, raw, record.to_wire()):
                logger.info("Lock acquired: patient=%s tab=%s", patient_id, tab_id)
                return LockStatus(acquired=True, is_locked=False, lock_holder=tab_id)

        holder = self.read(patient_id)
        return self._refused(holder.tab_id if holder else None)

    def heartbeat(self, patient_id: str, tab_id: str) -> bool:
        """
        Refresh the lease. Returns False, writing nothing, if the record
        no longer belongs to ``tab_id``.
        """
        key = lock_key(patient_id)
        raw = self.store.get(key)
        if not raw or raw.get("tabId") != tab_id:
            return False
        record = LockRecord(tab_id=tab_id, patient_id=patient_id, timestamp=self._clock())
        return self.store.compare_and_swap(key, raw, record.to_wire())

    def release(self, patient_id: str, tab_id: str) -> bool:
        key = lock_key(patient_id)
        raw = self.store.get(key)
        if not raw or raw.get("tabId") != tab_id:
            return False
        released = self.store.compare_and_swap(key, raw, None)
        if released:
            logger.info("Lock released: patient=%s tab=%s", patient_id, tab_id)
        return released

    def holds(self, patient_id: str, tab_id: str) -> bool:
        record = self.read(patient_id)
        return record is not None and record.tab_id == tab_id and not self.is_stale(record)

    def status(self, patient_id: str, tab_id: Optional[str] = None) -> LockStatus:
        record = self.read(patient_id)
        if record is None or self.is_stale(record):
            return LockStatus(acquired=False, is_locked=False)
        if tab_id is not None and record.tab_id == tab_id:
            return LockStatus(acquired=True, is_locked=False, lock_holder=tab_id)
        return self._refused(record.tab_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _refused(holder: Optional[str]) -> LockStatus:
        return LockStatus(
            acquired=False,
            is_locked=True,
            lock_holder=holder,
            message=LOCKED_ELSEWHERE,
        )


class TabLock:
    """
    One tab's view of a patient's intake lock.

    Listens to lock-key changes made by other tabs: a cleared lock marks
    this tab unlocked, and a lock written by another tab while this tab
    held it revokes the local flag and records a takeover warning.
    ``tick`` drives the heartbeat; ``close`` releases on teardown.
    """

    def __init__(
        self,
        service: IntakeLockService,
        patient_id: str,
        tab_id: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.service = service
        self.patient_id = patient_id
        self.tab_id = tab_id or generate_tab_id(clock)
        self._clock = clock

        self.has_lock = False
        self.is_locked = False
        self.lock_holder: Optional[str] = None
        self.warnings: List[LocalizedText] = []
        self.last_heartbeat: Optional[datetime] = None

        self._key = lock_key(patient_id)
        self._unsubscribe = service.store.subscribe(self._on_storage_event)

    def acquire(self) -> bool:
        status = self.service.acquire(self.patient_id, self.tab_id)
        self.has_lock = status.acquired
        self.is_locked = status.is_locked
        self.lock_holder = status.lock_holder
        if status.acquired:
            self.last_heartbeat = self._clock()
        return status.acquired

    def tick(self, now: Optional[datetime] = None) -> None:
        """Heartbeat if the interval has elapsed since the last one."""
        if not self.has_lock:
            return
        now = now or self._clock()
        if self.last_heartbeat is not None and now - self.last_heartbeat < self.service.heartbeat_interval:
            return
        if self.service.heartbeat(self.patient_id, self.tab_id):
            self.last_heartbeat = now
        else:
            self._revoke(self.service.read(self.patient_id))

    def release(self) -> bool:
        released = False
        if self.has_lock:
            released = self.service.release(self.patient_id, self.tab_id)
        self.has_lock = False
        return released

    def close(self) -> None:
        self.release()
        self._unsubscribe()

    def __enter__(self) -> "TabLock":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key != self._key:
            return
        if event.new_value is None:
            self.has_lock = False
            self.is_locked = False
            self.lock_holder = None
            return
        holder = event.new_value.get("tabId")
        if holder == self.tab_id:
            return
        if self.has_lock:
            self._revoke(LockRecord.model_validate(event.new_value))
        else:
            self.is_locked = True
            self.lock_holder = holder

    def _revoke(self, current: Optional[LockRecord]) -> None:
        self.has_lock = False
        self.is_locked = current is not None
        self.lock_holder = current.tab_id if current else None
        self.warnings.append(TAKEOVER_WARNING)
        logger.warning(
            "Intake lock taken over: patient=%s tab=%s new_holder=%s",
            self.patient_id,
            self.tab_id,
            self.lock_holder,
        )


class IntakeLockedError(IntakeError):
    """Raised by the session service when the calling tab does not hold the lock."""

    code = "INTAKE_LOCKED"

    def __init__(self, status: LockStatus):
        super().__init__(LOCKED_ELSEWHERE.en, LOCKED_ELSEWHERE.ur)
        self.status = status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["lockHolder"] = self.status.lock_holder
        return data
