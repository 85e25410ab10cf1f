import secrets
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from slot_booking.application.admin_service import AdminService
from slot_booking.application.booking_service import BookingService
from slot_booking.application.otp_service import LoggingNotificationSender, OtpService, OtpStore
from slot_booking.config import Settings, get_settings
from slot_booking.domain.payments import PaymentGateway
from slot_booking.infrastructure.db.session import SessionLocal
from slot_booking.infrastructure.payments.razorpay_gateway import build_payment_gateway


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@lru_cache
def _gateway_for(settings: Settings) -> PaymentGateway:
    return build_payment_gateway(settings)


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> PaymentGateway:
    return _gateway_for(settings)


@lru_cache
def _otp_store_for(settings: Settings) -> OtpStore:
    return OtpStore(
        ttl_seconds=settings.otp_ttl_seconds,
        resend_cooldown_seconds=settings.otp_resend_cooldown_seconds,
        max_attempts=settings.otp_max_attempts,
    )


def get_otp_store(settings: Settings = Depends(get_settings)) -> OtpStore:
    return _otp_store_for(settings)


def get_otp_service(store: OtpStore = Depends(get_otp_store)) -> OtpService:
    return OtpService(store, LoggingNotificationSender())


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> BookingService:
    return BookingService(
        db,
        gateway,
        allow_demo_payments=settings.allow_demo_payments,
    )


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)


def require_admin(
    x_admin_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_api_token:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_api_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin token required",
        )
