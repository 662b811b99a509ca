import hashlib
import hmac
import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from email_templates import build_otp_email
from emailer import EmailDeliveryError, send_email
from models import OtpChallenge

logger = logging.getLogger(__name__)

OTP_TTL_SECONDS = int(os.environ.get("OTP_TTL_SECONDS", 300))
OTP_RESEND_COOLDOWN_SECONDS = int(os.environ.get("OTP_RESEND_COOLDOWN_SECONDS", 30))
OTP_MAX_ATTEMPTS = int(os.environ.get("OTP_MAX_ATTEMPTS", 5))
OTP_LENGTH = 6


def _debug_fallback_enabled() -> bool:
    return str(os.environ.get("OTP_DEBUG_FALLBACK", "")).strip().lower() in {"1", "true", "yes", "on"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything here is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_code() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(OTP_LENGTH))


def hash_code(code: str) -> str:
    return hashlib.sha256(str(code).strip().encode("utf-8")).hexdigest()


def _open_challenges(db: Session, email: str, purpose: str):
    return db.query(OtpChallenge).filter(
        OtpChallenge.email == email,
        OtpChallenge.purpose == purpose,
        OtpChallenge.consumed_at.is_(None),
    )


def issue_otp(db: Session, email: str, purpose: str) -> str:
    """Create a fresh challenge and return the plain code.

    Older open challenges for the same email and purpose are discarded.
    Raises 429 while the previous code is inside the resend cooldown.
    """
    now = _utcnow()
    latest = _open_challenges(db, email, purpose).order_by(OtpChallenge.sent_at.desc()).first()
    if latest:
        wait = OTP_RESEND_COOLDOWN_SECONDS - (now - _as_utc(latest.sent_at)).total_seconds()
        if wait > 0:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Please wait {int(wait) + 1} seconds before requesting a new code",
            )
    _open_challenges(db, email, purpose).delete(synchronize_session=False)

    code = generate_code()
    db.add(OtpChallenge(
        email=email,
        purpose=purpose,
        code_hash=hash_code(code),
        attempts=0,
        sent_at=now,
        expires_at=now + timedelta(seconds=OTP_TTL_SECONDS),
    ))
    db.commit()
    return code


def deliver_otp(db: Session, email: str, purpose: str) -> Optional[str]:
    """Issue and email a code. Returns the code only when the debug fallback applies."""
    code = issue_otp(db, email, purpose)
    subject, html, text = build_otp_email(code, validity_minutes=max(1, OTP_TTL_SECONDS // 60))
    try:
        send_email(email, subject, html, text)
    except EmailDeliveryError as exc:
        if _debug_fallback_enabled():
            logger.warning("OTP email to %s failed, returning debug code: %s", email, exc)
            return code
        logger.error("OTP email to %s failed: %s", email, exc)
        _open_challenges(db, email, purpose).delete(synchronize_session=False)
        db.commit()
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Unable to send verification code")
    return None


def verify_otp(db: Session, email: str, purpose: str, code: str) -> None:
    challenge = _open_challenges(db, email, purpose).order_by(OtpChallenge.sent_at.desc()).first()
    now = _utcnow()
    if not challenge or _as_utc(challenge.expires_at) <= now:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification code expired or not found")

    if not hmac.compare_digest(challenge.code_hash, hash_code(code)):
        challenge.attempts = (challenge.attempts or 0) + 1
        if challenge.attempts >= OTP_MAX_ATTEMPTS:
            challenge.consumed_at = now
            db.commit()
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Too many invalid attempts; request a new code")
        db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid verification code")

    challenge.consumed_at = now
    db.commit()
