import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import decode_token, get_current_staff, get_password_hash, get_token_payload, issue_token_pair, verify_password
from database import get_db
from models import Profile
from otp import OTP_TTL_SECONDS, deliver_otp, verify_otp
from schemas import (
    ChangePasswordRequest,
    MessageResponse,
    OtpChallengeResponse,
    OtpVerifyRequest,
    RefreshRequest,
    StaffLogin,
    StaffPortalEnum,
    StaffResponse,
    TokenResponse,
)
from security import OTP_PORTALS, PORTAL_ROLES, build_staff_response

logger = logging.getLogger(__name__)
router = APIRouter()


def _otp_purpose(portal: StaffPortalEnum) -> str:
    return f"{portal.value}_login"


def _authenticate(db: Session, portal: StaffPortalEnum, email: str, password: str) -> Profile:
    user = db.query(Profile).filter(Profile.email == str(email).lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    if user.role not in PORTAL_ROLES[portal.value]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"This account cannot sign in to the {portal.value} portal")
    return user


def _token_response(user: Profile, portal: Optional[str], mfa: bool = False) -> TokenResponse:
    tokens = issue_token_pair(user.email, "staff", role=user.role.value, mfa=mfa, portal=portal)
    return TokenResponse(**tokens, user=build_staff_response(user, {"portal": portal, "mfa": mfa}))


@router.post("/auth/{portal}/login", response_model=None)
def staff_login(portal: StaffPortalEnum, payload: StaffLogin, db: Session = Depends(get_db)):
    user = _authenticate(db, portal, payload.email, payload.password)
    if portal.value not in OTP_PORTALS:
        logger.info("%s signed in to %s portal", user.email, portal.value)
        return _token_response(user, portal.value)

    debug_code = deliver_otp(db, user.email, _otp_purpose(portal))
    return OtpChallengeResponse(
        message="Verification code sent to your email",
        email=user.email,
        expires_in=OTP_TTL_SECONDS,
        debug_otp=debug_code,
    )


@router.post("/auth/{portal}/verify-otp", response_model=TokenResponse)
def staff_verify_otp(portal: StaffPortalEnum, payload: OtpVerifyRequest, db: Session = Depends(get_db)):
    if portal.value not in OTP_PORTALS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This portal does not use verification codes")
    email = str(payload.email).lower()
    user = db.query(Profile).filter(Profile.email == email).first()
    if not user or not user.is_active or user.role not in PORTAL_ROLES[portal.value]:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid verification request")
    verify_otp(db, email, _otp_purpose(portal), payload.code)
    logger.info("%s verified OTP for %s portal", user.email, portal.value)
    return _token_response(user, portal.value, mfa=True)


@router.post("/auth/refresh", response_model=TokenResponse)
def staff_refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    claims = decode_token(payload.refresh_token)
    if claims.get("type") != "refresh" or claims.get("user_type") != "staff":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = db.query(Profile).filter(Profile.email == claims.get("sub")).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return _token_response(user, claims.get("portal"), mfa=bool(claims.get("mfa")))


@router.get("/auth/me", response_model=StaffResponse)
def staff_me(user: Profile = Depends(get_current_staff), payload: dict = Depends(get_token_payload)):
    return build_staff_response(user, payload)


@router.post("/auth/change-password", response_model=MessageResponse)
def staff_change_password(
    payload: ChangePasswordRequest,
    user: Profile = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    if payload.current_password == payload.new_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password must differ from the current one")
    user.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    return MessageResponse(message="Password updated")
