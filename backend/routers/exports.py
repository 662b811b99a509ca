import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from csv_io import (
    CSV_MEDIA_TYPE,
    EVENT_EXPORT_HEADERS,
    PARTICIPANT_EXPORT_HEADERS,
    XLSX_MEDIA_TYPE,
    export_to_csv,
    export_to_xlsx,
)
from database import get_db
from event_service import load_entries, schedule_sort_key
from models import (
    Attendance,
    Event,
    EventPerformance,
    Profile,
    ResultsApproval,
    Score,
    TeamMember,
    EventParticipant,
    Artwork,
)
from schemas import DataResetRequest, DataResetResponse
from security import require_admin, require_right
from time_utils import format_event_time
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()

require_event_manager = require_right("event_management")

RESET_PHRASE = "DELETE ALL DATA"


def _export_response(headers, rows, filename: str, export_format: str) -> StreamingResponse:
    if export_format == "xlsx":
        content = export_to_xlsx(headers, rows)
        media_type = XLSX_MEDIA_TYPE
    else:
        content = export_to_csv(headers, rows)
        media_type = CSV_MEDIA_TYPE
    return StreamingResponse(
        iter([content]),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}.{export_format}"},
    )


@router.get("/admin/export/participants")
def export_participants(
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    event_id: Optional[int] = Query(None),
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    entries = load_entries(db, event_id=event_id)
    entries.sort(key=lambda entry: (entry.event.name.lower() if entry.event else "", entry.name.lower()))
    rows = [
        [
            entry.team_name or "",
            entry.ima_branch,
            entry.participant_type.value,
            entry.name,
            entry.event.name if entry.event else "",
            entry.mobile or "",
        ]
        for entry in entries
    ]
    return _export_response(PARTICIPANT_EXPORT_HEADERS, rows, "participants", format)


@router.get("/admin/export/events")
def export_events(
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    events = sorted(db.query(Event).all(), key=schedule_sort_key)
    rows = [
        [
            event.name,
            event.location or "",
            format_event_time(event.event_time),
            format_event_time(event.revised_time),
            event.description or "",
        ]
        for event in events
    ]
    return _export_response(EVENT_EXPORT_HEADERS, rows, "events", format)


@router.get("/admin/export/directory")
def export_directory(user: Profile = Depends(require_event_manager), db: Session = Depends(get_db)):
    entries = load_entries(db)
    entries.sort(key=lambda entry: (entry.event.name.lower() if entry.event else "", entry.name.lower()))
    return [
        {
            "Event": entry.event.name if entry.event else "",
            "Name": entry.name,
            "Branch": entry.ima_branch,
            "Phone": entry.mobile or "",
            "Zone": entry.ima_branch_zone or "",
            "Type": entry.participant_type.value,
        }
        for entry in entries
    ]


@router.post("/admin/data/reset", response_model=DataResetResponse)
def reset_event_data(
    payload: DataResetRequest,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.confirmation != RESET_PHRASE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Type '{RESET_PHRASE}' to confirm")

    deleted = {}
    try:
        db.query(Artwork).filter(Artwork.event_id.isnot(None)).update({Artwork.event_id: None}, synchronize_session=False)
        for key, model in (
            ("attendance", Attendance),
            ("scores", Score),
            ("performances", EventPerformance),
            ("approvals", ResultsApproval),
            ("members", TeamMember),
            ("participants", EventParticipant),
            ("events", Event),
        ):
            deleted[key] = db.query(model).delete(synchronize_session=False)
        log_admin_action(db, admin, "reset_event_data", request.method, request.url.path, deleted, commit=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Event data reset failed")
        raise
    logger.warning("Event data reset by %s: %s", admin.email, deleted)
    return DataResetResponse(message="All event data deleted", deleted=deleted)
