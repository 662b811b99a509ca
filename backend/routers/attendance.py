from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from csv_io import ATTENDANCE_EXPORT_HEADERS, CSV_MEDIA_TYPE, export_to_csv
from database import get_db
from event_service import get_event_or_404, load_entries
from models import Attendance, AttendanceStatus, Event, EventParticipant, Profile
from schemas import AttendanceBulkRequest, AttendanceReport, AttendanceRow, AttendanceStats, EventResponse
from security import require_right
from time_utils import format_event_time, now_tz
from utils import log_admin_action

router = APIRouter()

require_attendance = require_right("attendance")

PENDING = "Pending"


def build_attendance_report(db: Session, event: Event) -> AttendanceReport:
    marks = {row.participant_id: row for row in db.query(Attendance).filter(Attendance.event_id == event.id).all()}
    stats = AttendanceStats()
    rows = []
    for entry in sorted(load_entries(db, event_id=event.id), key=lambda item: item.name.lower()):
        mark = marks.get(entry.id)
        label = mark.status.value if mark else PENDING
        rows.append(AttendanceRow(
            participant_id=entry.id,
            name=entry.name,
            team_name=entry.team_name,
            ima_branch=entry.ima_branch,
            status=label,
            check_in_time=mark.check_in_time if mark else None,
            marked_by=mark.marked_by if mark else None,
        ))
        stats.total += 1
        setattr(stats, label.lower(), getattr(stats, label.lower()) + 1)
    return AttendanceReport(event=EventResponse.model_validate(event), rows=rows, stats=stats)


@router.get("/attendance/events/{event_id}", response_model=AttendanceReport)
def attendance_report(
    event_id: int,
    user: Profile = Depends(require_attendance),
    db: Session = Depends(get_db),
):
    return build_attendance_report(db, get_event_or_404(db, event_id))


@router.post("/attendance/events/{event_id}", response_model=AttendanceReport)
def mark_attendance(
    event_id: int,
    payload: AttendanceBulkRequest,
    request: Request,
    user: Profile = Depends(require_attendance),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    ids = {record.participant_id for record in payload.records}
    known = {
        row.id
        for row in db.query(EventParticipant.id).filter(EventParticipant.event_id == event.id, EventParticipant.id.in_(ids)).all()
    }
    missing = sorted(ids - known)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Participants not registered for this event: {', '.join(str(pid) for pid in missing)}",
        )

    existing = {
        row.participant_id: row
        for row in db.query(Attendance).filter(Attendance.event_id == event.id, Attendance.participant_id.in_(ids)).all()
    }
    now = now_tz()
    for record in payload.records:
        row = existing.get(record.participant_id)
        if not row:
            row = Attendance(event_id=event.id, participant_id=record.participant_id)
            db.add(row)
            existing[record.participant_id] = row
        if record.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE):
            if row.status != record.status or not row.check_in_time:
                row.check_in_time = now
        else:
            row.check_in_time = None
        row.status = record.status
        row.marked_by_id = user.id
        row.marked_by = user.full_name
    log_admin_action(db, user, "mark_attendance", request.method, request.url.path, {"event_id": event.id, "count": len(payload.records)}, commit=False)
    db.commit()
    return build_attendance_report(db, event)


@router.get("/attendance/events/{event_id}/export")
def export_attendance(
    event_id: int,
    user: Profile = Depends(require_attendance),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    report = build_attendance_report(db, event)
    rows = [
        [row.name, row.team_name or "", row.ima_branch, row.status, format_event_time(row.check_in_time), row.marked_by or ""]
        for row in report.rows
    ]
    content = export_to_csv(ATTENDANCE_EXPORT_HEADERS, rows)
    filename = f"attendance_{event.id}.csv"
    return StreamingResponse(
        iter([content]),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
