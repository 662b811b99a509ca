import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from auth import generate_password, get_password_hash
from database import get_db
from email_templates import build_credentials_email
from emailer import send_email_best_effort
from models import AdminLog, Profile, StaffRole, SystemConfig
from schemas import (
    AdminLogResponse,
    MessageResponse,
    RegistrationConfig,
    StaffCreate,
    StaffCreateResponse,
    StaffPasswordReset,
    StaffResponse,
    StaffRightsUpdate,
    StaffStatusUpdate,
)
from security import build_staff_response, require_admin
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_staff_or_404(db: Session, user_id: int) -> Profile:
    user = db.query(Profile).filter(Profile.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _guard_self(admin: Profile, target: Profile, action: str) -> None:
    if target.id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"You cannot {action} your own account")


@router.post("/admin/staff", response_model=StaffCreateResponse)
def create_staff(
    payload: StaffCreate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    email = str(payload.email).lower()
    if db.query(Profile).filter(Profile.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An account with this email already exists")

    generated = None if payload.password else generate_password()
    password = payload.password or generated
    user = Profile(
        email=email,
        full_name=payload.full_name.strip(),
        phone=payload.phone,
        role=payload.role,
        rights=[right.value for right in payload.rights] if payload.role == StaffRole.ORGANIZER else None,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    subject, html, text = build_credentials_email(user.full_name, user.email, password, user.role.value)
    email_sent = send_email_best_effort(user.email, subject, html, text)
    log_admin_action(db, admin, "create_staff", request.method, request.url.path, {"email": user.email, "role": user.role.value})
    return StaffCreateResponse(user=build_staff_response(user), generated_password=generated, email_sent=email_sent)


@router.get("/admin/staff", response_model=List[StaffResponse])
def list_staff(
    role: Optional[StaffRole] = Query(None),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Profile)
    if role:
        query = query.filter(Profile.role == role)
    return [build_staff_response(user) for user in query.order_by(Profile.full_name.asc()).all()]


@router.put("/admin/staff/{user_id}/rights", response_model=StaffResponse)
def update_staff_rights(
    user_id: int,
    payload: StaffRightsUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_staff_or_404(db, user_id)
    if user.role != StaffRole.ORGANIZER:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rights can only be assigned to organizers")
    user.rights = sorted({right.value for right in payload.rights})
    db.commit()
    db.refresh(user)
    log_admin_action(db, admin, "update_staff_rights", request.method, request.url.path, {"user_id": user.id, "rights": user.rights})
    return build_staff_response(user)


@router.put("/admin/staff/{user_id}/status", response_model=StaffResponse)
def update_staff_status(
    user_id: int,
    payload: StaffStatusUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_staff_or_404(db, user_id)
    _guard_self(admin, user, "deactivate")
    user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    log_admin_action(db, admin, "update_staff_status", request.method, request.url.path, {"user_id": user.id, "is_active": user.is_active})
    return build_staff_response(user)


@router.post("/admin/staff/{user_id}/reset-password", response_model=StaffCreateResponse)
def reset_staff_password(
    user_id: int,
    payload: StaffPasswordReset,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_staff_or_404(db, user_id)
    generated = None if payload.new_password else generate_password()
    password = payload.new_password or generated
    user.hashed_password = get_password_hash(password)
    db.commit()
    db.refresh(user)

    subject, html, text = build_credentials_email(user.full_name, user.email, password, user.role.value)
    email_sent = send_email_best_effort(user.email, subject, html, text)
    log_admin_action(db, admin, "reset_staff_password", request.method, request.url.path, {"user_id": user.id})
    return StaffCreateResponse(user=build_staff_response(user), generated_password=generated, email_sent=email_sent)


@router.delete("/admin/staff/{user_id}", response_model=MessageResponse)
def delete_staff(
    user_id: int,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_staff_or_404(db, user_id)
    _guard_self(admin, user, "delete")
    if user.role == StaffRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admin accounts cannot be deleted")
    email = user.email
    db.delete(user)
    db.commit()
    log_admin_action(db, admin, "delete_staff", request.method, request.url.path, {"email": email})
    return MessageResponse(message="User deleted")


@router.get("/admin/logs", response_model=List[AdminLogResponse])
def list_admin_logs(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(AdminLog)
    if action:
        query = query.filter(AdminLog.action == action.strip())
    logs = query.order_by(AdminLog.created_at.desc(), AdminLog.id.desc()).offset(offset).limit(limit).all()
    return [AdminLogResponse.model_validate(row) for row in logs]


@router.get("/admin/config/registration", response_model=RegistrationConfig)
def get_registration_config(admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    row = db.query(SystemConfig).filter(SystemConfig.key == "registration_open").first()
    return RegistrationConfig(registration_open=not (row and row.value == "false"))


@router.put("/admin/config/registration", response_model=RegistrationConfig)
def update_registration_config(
    payload: RegistrationConfig,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    row = db.query(SystemConfig).filter(SystemConfig.key == "registration_open").first()
    value = "true" if payload.registration_open else "false"
    if row:
        row.value = value
    else:
        db.add(SystemConfig(key="registration_open", value=value))
    db.commit()
    log_admin_action(db, admin, "update_registration_config", request.method, request.url.path, {"registration_open": payload.registration_open})
    return payload
