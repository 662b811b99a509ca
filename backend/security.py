from typing import Optional, Set
from fastapi import Depends, HTTPException, status

from auth import get_current_staff, get_token_payload
from models import Profile, StaffRole
from schemas import StaffResponse

ALL_RIGHTS = {"attendance", "scoring", "event_management"}

ROLE_RIGHTS = {
    StaffRole.ADMIN: ALL_RIGHTS,
    StaffRole.COORDINATOR: ALL_RIGHTS,
    StaffRole.JUDGE: {"scoring"},
    StaffRole.VOLUNTEER: {"attendance"},
}

# Roles allowed to sign in through each staff portal.
PORTAL_ROLES = {
    "admin": {StaffRole.ADMIN},
    "organizer": {StaffRole.ORGANIZER, StaffRole.ADMIN},
    "volunteer": {StaffRole.VOLUNTEER, StaffRole.ORGANIZER, StaffRole.ADMIN},
    "coordinator": {StaffRole.COORDINATOR, StaffRole.ADMIN},
    "judge": {StaffRole.JUDGE, StaffRole.ADMIN},
}

OTP_PORTALS = {"admin", "organizer"}
OTP_ROLES = {StaffRole.ADMIN, StaffRole.ORGANIZER}

# Ceiling for admin and organizer sessions opened through a password-only portal.
PORTAL_RIGHTS = {
    "volunteer": {"attendance"},
    "judge": {"scoring"},
    "coordinator": {"attendance", "scoring"},
}


def resolve_rights(user: Profile, claims: Optional[dict] = None) -> Set[str]:
    """Effective rights of `user`, narrowed by the session claims when given.

    Admins and organizers only hold their full rights in an OTP-verified
    session. Without the `mfa` claim they are limited to what the issuing
    portal grants, and never hold `event_management`.
    """
    if user.role == StaffRole.ORGANIZER:
        rights = {right for right in (user.rights or []) if right in ALL_RIGHTS}
    else:
        rights = set(ROLE_RIGHTS.get(user.role, set()))
    if claims is not None and user.role in OTP_ROLES and not claims.get("mfa"):
        rights &= PORTAL_RIGHTS.get(claims.get("portal"), set())
    return rights


def require_staff(user: Profile = Depends(get_current_staff)) -> Profile:
    return user


def require_admin(
    user: Profile = Depends(get_current_staff),
    payload: dict = Depends(get_token_payload),
) -> Profile:
    if user.role != StaffRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    if not payload.get("mfa"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin session must be verified with OTP")
    return user


def require_right(right: str):
    def _checker(
        user: Profile = Depends(get_current_staff),
        payload: dict = Depends(get_token_payload),
    ) -> Profile:
        if right not in resolve_rights(user, payload):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Missing '{right}' right")
        return user

    return _checker


def build_staff_response(user: Profile, claims: Optional[dict] = None) -> StaffResponse:
    return StaffResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
        role=user.role,
        rights=sorted(resolve_rights(user, claims)),
        is_active=bool(user.is_active),
        created_at=user.created_at,
    )
