import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from csv_io import PARTICIPANT_ALIASES, normalize_name, pick, read_csv_rows
from database import get_db
from event_service import create_entry, delete_entries, entry_to_response, get_event_or_404, move_entry
from models import Event, EventParticipant, ParticipantType, Profile, TeamMember
from ranking import normalize_branch
from schemas import BulkUploadResult, EntryCreate, EntryDeleteRequest, EntryResponse, EntryUpdate, MessageResponse
from security import require_right
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()

require_event_manager = require_right("event_management")


def _get_entry_or_404(db: Session, entry_id: int) -> EventParticipant:
    entry = db.query(EventParticipant).filter(EventParticipant.id == entry_id).first()
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")
    return entry


def _parse_participant_type(value: str) -> ParticipantType:
    key = str(value or "").strip().lower()
    if key in {"group", "team"}:
        return ParticipantType.GROUP
    return ParticipantType.INDIVIDUAL


@router.get("/admin/participants", response_model=List[EntryResponse])
def list_participants(
    search: Optional[str] = Query(None),
    event_id: Optional[int] = Query(None),
    branch: Optional[str] = Query(None),
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    query = (
        db.query(EventParticipant)
        .join(Event, Event.id == EventParticipant.event_id)
        .options(selectinload(EventParticipant.members), selectinload(EventParticipant.event))
    )
    if event_id is not None:
        query = query.filter(EventParticipant.event_id == event_id)
    if branch:
        query = query.filter(EventParticipant.ima_branch.ilike(branch.strip()))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            EventParticipant.name.ilike(like),
            EventParticipant.team_name.ilike(like),
            EventParticipant.ima_branch.ilike(like),
            Event.name.ilike(like),
        ))
    entries = query.order_by(Event.name.asc(), EventParticipant.name.asc()).all()
    return [entry_to_response(entry) for entry in entries]


@router.post("/admin/events/{event_id}/entries", response_model=EntryResponse)
def add_entry(
    event_id: int,
    payload: EntryCreate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    entry = create_entry(db, event, payload)
    db.commit()
    db.refresh(entry)
    log_admin_action(db, user, "add_entry", request.method, request.url.path, {"event_id": event.id, "participant_id": entry.id})
    return entry_to_response(entry)


@router.put("/admin/participants/{entry_id}", response_model=EntryResponse)
def update_participant(
    entry_id: int,
    payload: EntryUpdate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    entry = _get_entry_or_404(db, entry_id)
    updates = payload.model_dump(exclude_unset=True)
    fields = sorted(updates)
    event_id = updates.pop("event_id", None)
    if event_id is not None:
        move_entry(db, entry, get_event_or_404(db, event_id))
    if "ima_branch" in updates:
        updates["ima_branch"] = normalize_branch(updates["ima_branch"])
    for field, value in updates.items():
        setattr(entry, field, value)
    if "name" in updates and entry.participant_type == ParticipantType.INDIVIDUAL and len(entry.members) == 1:
        entry.members[0].name = entry.name
    db.commit()
    db.refresh(entry)
    log_admin_action(db, user, "update_participant", request.method, request.url.path, {"participant_id": entry.id, "fields": fields})
    return entry_to_response(entry)


@router.delete("/admin/participants/{entry_id}", response_model=MessageResponse)
def delete_participant(
    entry_id: int,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    _get_entry_or_404(db, entry_id)
    delete_entries(db, [entry_id])
    log_admin_action(db, user, "delete_participant", request.method, request.url.path, {"participant_id": entry_id}, commit=False)
    db.commit()
    return MessageResponse(message="Participant deleted")


@router.post("/admin/participants/delete", response_model=MessageResponse)
def delete_participants(
    payload: EntryDeleteRequest,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    deleted = delete_entries(db, payload.ids)
    log_admin_action(db, user, "delete_participants", request.method, request.url.path, {"ids": payload.ids, "deleted": deleted}, commit=False)
    db.commit()
    return MessageResponse(message=f"{deleted} participant(s) deleted")


@router.post("/admin/participants/bulk-upload", response_model=BulkUploadResult)
async def bulk_upload_participants(
    request: Request,
    file: UploadFile = File(...),
    dry_run: bool = Query(False),
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only .csv files are supported")
    contents = await file.read()
    try:
        rows = read_csv_rows(contents.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV must be UTF-8 encoded")
    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV file has no data rows")

    events = {normalize_name(event.name): event for event in db.query(Event).all()}
    seen = {
        (entry.event_id, normalize_name(entry.name), normalize_name(entry.ima_branch))
        for entry in db.query(EventParticipant).all()
    }
    warnings = []
    valid = []
    for row in rows:
        row_no = row["__row__"]
        name = pick(row, PARTICIPANT_ALIASES["name"])
        event_name = pick(row, PARTICIPANT_ALIASES["event"])
        if not name:
            warnings.append(f"Row {row_no}: missing participant name")
            continue
        event = events.get(normalize_name(event_name))
        if not event:
            warnings.append(f"Row {row_no}: event '{event_name}' not found")
            continue
        branch = normalize_branch(pick(row, PARTICIPANT_ALIASES["branch"]))
        key = (event.id, normalize_name(name), normalize_name(branch))
        if key in seen:
            warnings.append(f"Row {row_no}: '{name}' ({branch}) is already registered for '{event.name}'")
            continue
        seen.add(key)
        valid.append({
            "row": row_no,
            "name": name,
            "event_id": event.id,
            "event": event.name,
            "branch": branch,
            "team_name": pick(row, PARTICIPANT_ALIASES["team_name"]) or None,
            "mobile": pick(row, PARTICIPANT_ALIASES["mobile"]) or None,
            "participant_type": _parse_participant_type(pick(row, PARTICIPANT_ALIASES["participant_type"])).value,
        })

    if dry_run:
        return BulkUploadResult(inserted=0, skipped=len(warnings), warnings=warnings, dry_run=True, preview=valid)

    for item in valid:
        entry = EventParticipant(
            event_id=item["event_id"],
            name=item["name"],
            team_name=item["team_name"],
            ima_branch=item["branch"],
            mobile=item["mobile"],
            participant_type=ParticipantType(item["participant_type"]),
        )
        db.add(entry)
        db.flush()
        db.add(TeamMember(participant_id=entry.id, name=item["name"], mobile=item["mobile"]))
    log_admin_action(db, user, "bulk_upload_participants", request.method, request.url.path, {"inserted": len(valid), "skipped": len(warnings)}, commit=False)
    db.commit()
    logger.info("Participant upload: %s inserted, %s skipped", len(valid), len(warnings))
    return BulkUploadResult(inserted=len(valid), skipped=len(warnings), warnings=warnings, preview=valid)
