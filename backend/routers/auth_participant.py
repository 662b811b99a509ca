from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models import EventParticipant, EventStatus, ParticipantAccount, SystemConfig
from schemas import (
    ParticipantAccountCreate,
    ParticipantAccountLogin,
    ParticipantAccountResponse,
    ParticipantTokenResponse,
    RefreshRequest,
    ChangePasswordRequest,
    MessageResponse,
    SelfRegistrationCreate,
    EntryResponse,
)
from auth import verify_password, get_password_hash, issue_token_pair, decode_token, get_current_participant
from event_service import create_entry, entry_to_response, get_event_or_404, load_entries

router = APIRouter()


def _registration_open(db: Session) -> bool:
    reg_config = db.query(SystemConfig).filter(SystemConfig.key == "registration_open").first()
    return not (reg_config and reg_config.value == "false")


def _token_response(account: ParticipantAccount) -> ParticipantTokenResponse:
    return ParticipantTokenResponse(
        **issue_token_pair(account.email, "participant"),
        user=ParticipantAccountResponse.model_validate(account),
    )


@router.post("/participant-auth/register", response_model=ParticipantTokenResponse)
def participant_register(user_data: ParticipantAccountCreate, db: Session = Depends(get_db)):
    email = str(user_data.email).lower()
    if db.query(ParticipantAccount).filter(ParticipantAccount.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    account = ParticipantAccount(
        email=email,
        full_name=user_data.full_name.strip(),
        phone=user_data.phone,
        ima_branch=(user_data.ima_branch or "").strip() or None,
        hashed_password=get_password_hash(user_data.password),
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return _token_response(account)


@router.post("/participant-auth/login", response_model=ParticipantTokenResponse)
def participant_login(login_data: ParticipantAccountLogin, db: Session = Depends(get_db)):
    account = db.query(ParticipantAccount).filter(ParticipantAccount.email == str(login_data.email).lower()).first()
    if not account or not verify_password(login_data.password, account.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _token_response(account)


@router.post("/participant-auth/refresh", response_model=ParticipantTokenResponse)
def participant_refresh(request: RefreshRequest, db: Session = Depends(get_db)):
    payload = decode_token(request.refresh_token)
    if payload.get("type") != "refresh" or payload.get("user_type") != "participant":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    account = db.query(ParticipantAccount).filter(ParticipantAccount.email == payload.get("sub")).first()
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return _token_response(account)


@router.get("/participant/me", response_model=ParticipantAccountResponse)
def participant_me(account: ParticipantAccount = Depends(get_current_participant)):
    return ParticipantAccountResponse.model_validate(account)


@router.post("/participant/change-password", response_model=MessageResponse)
def participant_change_password(
    payload: ChangePasswordRequest,
    account: ParticipantAccount = Depends(get_current_participant),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, account.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    account.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    return MessageResponse(message="Password updated")


@router.post("/participant/registrations", response_model=EntryResponse)
def participant_register_event(
    payload: SelfRegistrationCreate,
    account: ParticipantAccount = Depends(get_current_participant),
    db: Session = Depends(get_db),
):
    if not _registration_open(db):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Registration is closed")
    event = get_event_or_404(db, payload.event_id)
    if event.status == EventStatus.COMPLETED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event has already been completed")
    existing = db.query(EventParticipant).filter(
        EventParticipant.event_id == event.id,
        EventParticipant.account_id == account.id,
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already registered for this event")

    try:
        entry = create_entry(db, event, payload, account_id=account.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Registration conflicts with an existing entry")
    db.refresh(entry)
    return entry_to_response(entry)


@router.get("/participant/registrations", response_model=List[EntryResponse])
def participant_registrations(
    account: ParticipantAccount = Depends(get_current_participant),
    db: Session = Depends(get_db),
):
    return [entry_to_response(entry) for entry in load_entries(db, account_id=account.id)]
