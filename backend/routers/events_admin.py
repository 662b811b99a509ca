import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from csv_io import EVENT_ALIASES, normalize_name, pick, read_csv_rows
from database import get_db
from event_service import delete_event_cascade, find_event_by_name, get_event_or_404
from models import Event, EventType, Profile
from schemas import BulkUploadResult, EventCreate, EventResponse, EventStatusUpdate, EventUpdate, MessageResponse
from scoring_service import recompute_event_ranks
from security import require_right
from time_utils import parse_event_time
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()

require_event_manager = require_right("event_management")


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    existing = find_event_by_name(db, name)
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Event '{existing.name}' already exists")


def _parse_event_type(value: str) -> Optional[EventType]:
    key = str(value or "").strip().lower()
    for event_type in EventType:
        if event_type.value.lower() == key:
            return event_type
    return None


@router.post("/admin/events", response_model=EventResponse)
def create_event(
    payload: EventCreate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    _ensure_unique_name(db, payload.name)
    event = Event(**payload.model_dump())
    db.add(event)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event already exists")
    db.refresh(event)
    log_admin_action(db, user, "create_event", request.method, request.url.path, {"event_id": event.id, "name": event.name})
    return EventResponse.model_validate(event)


@router.put("/admin/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    payload: EventUpdate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    updates = payload.model_dump(exclude_unset=True)
    if "name" in updates:
        updates["name"] = str(updates["name"] or "").strip()
        if not updates["name"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event name is required")
        _ensure_unique_name(db, updates["name"], exclude_id=event.id)
    for field, value in updates.items():
        setattr(event, field, value)
    if updates.get("event_type") is not None:
        recompute_event_ranks(db, event)
    db.commit()
    db.refresh(event)
    log_admin_action(db, user, "update_event", request.method, request.url.path, {"event_id": event.id, "fields": sorted(updates)})
    return EventResponse.model_validate(event)


@router.patch("/admin/events/{event_id}/status", response_model=EventResponse)
def update_event_status(
    event_id: int,
    payload: EventStatusUpdate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    event.status = payload.status
    db.commit()
    db.refresh(event)
    log_admin_action(db, user, "update_event_status", request.method, request.url.path, {"event_id": event.id, "status": event.status.value})
    return EventResponse.model_validate(event)


@router.delete("/admin/events/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: int,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    name = event.name
    try:
        deleted = delete_event_cascade(db, event)
        log_admin_action(db, user, "delete_event", request.method, request.url.path, {"event_id": event_id, "name": name, "deleted": deleted}, commit=False)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.exception("Failed to delete event %s", event_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event could not be deleted")
    return MessageResponse(message=f"Event '{name}' deleted")


@router.post("/admin/events/bulk-upload", response_model=BulkUploadResult)
async def bulk_upload_events(
    request: Request,
    file: UploadFile = File(...),
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

    existing = {normalize_name(name) for (name,) in db.query(Event.name).all()}
    warnings = []
    inserted = 0
    for row in rows:
        row_no = row["__row__"]
        name = pick(row, EVENT_ALIASES["name"])
        if not name:
            warnings.append(f"Row {row_no}: missing event name")
            continue
        key = normalize_name(name)
        if key in existing:
            warnings.append(f"Row {row_no}: event '{name}' already exists")
            continue
        try:
            event_time = parse_event_time(pick(row, EVENT_ALIASES["event_time"]))
            revised_time = parse_event_time(pick(row, EVENT_ALIASES["revised_time"]))
        except ValueError as exc:
            warnings.append(f"Row {row_no}: {exc}")
            continue
        raw_type = pick(row, EVENT_ALIASES["event_type"], default="Solo")
        event_type = _parse_event_type(raw_type)
        if not event_type:
            warnings.append(f"Row {row_no}: unknown event type '{raw_type}'")
            continue

        db.add(Event(
            name=name,
            category=pick(row, EVENT_ALIASES["category"], default="General"),
            event_type=event_type,
            location=pick(row, EVENT_ALIASES["location"], default="Main Hall"),
            description=pick(row, EVENT_ALIASES["description"]) or None,
            event_time=event_time,
            revised_time=revised_time,
        ))
        existing.add(key)
        inserted += 1

    db.commit()
    log_admin_action(db, user, "bulk_upload_events", request.method, request.url.path, {"inserted": inserted, "skipped": len(warnings)})
    logger.info("Event upload: %s inserted, %s skipped", inserted, len(warnings))
    return BulkUploadResult(inserted=inserted, skipped=len(warnings), warnings=warnings)
