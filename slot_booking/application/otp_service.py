# slot_booking/application/otp_service.py
"""
One-time password login for customers.

Codes live in an explicit in-process cache keyed by normalized phone. Entries
expire lazily on read; purge_expired() drops everything past its expiry.
"""

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from slot_booking.domain.customer import normalize_phone
from slot_booking.domain.exceptions import OtpCooldownError, OtpInvalidError

logger = logging.getLogger(__name__)


@dataclass
class OtpEntry:
    phone: str
    code: str
    name: str
    created_at: float
    expires_at: float
    attempts: int = 0


class NotificationSender(Protocol):
    def send(self, phone: str, message: str) -> bool:
        """Deliver a message. Returns False when nothing was actually sent."""
        ...


class LoggingNotificationSender:
    """Sender used when no messaging provider is wired in: logs instead of delivering."""

    def send(self, phone: str, message: str) -> bool:
        logger.debug("Notification for %s: %s", phone, message)
        return False


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


class OtpStore:

    def __init__(
        self,
        ttl_seconds: int = 300,
        resend_cooldown_seconds: int = 30,
        max_attempts: int = 5,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.resend_cooldown_seconds = resend_cooldown_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        self._entries: dict[str, OtpEntry] = {}
        self._lock = threading.Lock()

    def _live_entry(self, phone: str, now: float) -> OtpEntry | None:
        entry = self._entries.get(phone)
        if entry is not None and entry.expires_at <= now:
            del self._entries[phone]
            return None
        return entry

    def issue(self, phone: str, name: str = "") -> OtpEntry:
        now = self._clock()
        with self._lock:
            existing = self._live_entry(phone, now)
            if existing is not None:
                elapsed = now - existing.created_at
                if elapsed < self.resend_cooldown_seconds:
                    raise OtpCooldownError(int(self.resend_cooldown_seconds - elapsed) + 1)

            entry = OtpEntry(
                phone=phone,
                code=generate_otp(),
                name=name,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
            self._entries[phone] = entry
            return entry

    def verify(self, phone: str, code: str) -> OtpEntry:
        now = self._clock()
        with self._lock:
            entry = self._live_entry(phone, now)
            if entry is None:
                raise OtpInvalidError("OTP expired or not found")

            if entry.attempts >= self.max_attempts:
                del self._entries[phone]
                raise OtpInvalidError("Too many attempts")

            if not secrets.compare_digest(entry.code, str(code).strip()):
                entry.attempts += 1
                raise OtpInvalidError("Invalid OTP")

            del self._entries[phone]
            return entry

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [phone for phone, entry in self._entries.items() if entry.expires_at <= now]
            for phone in expired:
                del self._entries[phone]
        return len(expired)

    def active_count(self) -> int:
        self.purge_expired()
        with self._lock:
            return len(self._entries)


class OtpService:

    def __init__(self, store: OtpStore, sender: NotificationSender):
        self.store = store
        self.sender = sender

    def send_otp(self, raw_phone: str, name: str | None = None) -> tuple[str, bool]:
        """Issue a code for the phone. Returns (normalized phone, delivered)."""
        phone = normalize_phone(raw_phone)
        entry = self.store.issue(phone, name or "")
        delivered = self.sender.send(phone, f"Your verification code is: {entry.code}")
        if not delivered:
            logger.warning("OTP for %s was not delivered, demo mode", phone)
        return phone, delivered

    def verify_otp(self, raw_phone: str, code: str) -> OtpEntry:
        return self.store.verify(normalize_phone(raw_phone), code)
