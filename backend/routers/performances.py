from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from event_service import get_event_or_404, load_entries
from models import EventParticipant, EventPerformance, PerformanceStatus, Profile
from schemas import PerformanceRow, PerformanceUpdate
from security import require_right
from utils import log_admin_action

router = APIRouter()

require_event_manager = require_right("event_management")


def _performance_rows(db: Session, event_id: int) -> List[PerformanceRow]:
    slots = {row.participant_id: row for row in db.query(EventPerformance).filter(EventPerformance.event_id == event_id).all()}
    rows = []
    for entry in load_entries(db, event_id=event_id):
        slot = slots.get(entry.id)
        rows.append(PerformanceRow(
            participant_id=entry.id,
            name=entry.name,
            team_name=entry.team_name,
            ima_branch=entry.ima_branch,
            slot_number=slot.slot_number if slot else None,
            status=slot.status if slot else PerformanceStatus.PENDING,
        ))
    rows.sort(key=lambda row: (row.slot_number is None, row.slot_number or 0, row.name.lower()))
    return rows


@router.get("/performances/events/{event_id}", response_model=List[PerformanceRow])
def list_performances(event_id: int, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    return _performance_rows(db, event.id)


@router.put("/performances/events/{event_id}/entries/{participant_id}", response_model=List[PerformanceRow])
def update_performance(
    event_id: int,
    participant_id: int,
    payload: PerformanceUpdate,
    request: Request,
    user: Profile = Depends(require_event_manager),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    entry = db.query(EventParticipant).filter(EventParticipant.id == participant_id, EventParticipant.event_id == event.id).first()
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found for this event")

    row = db.query(EventPerformance).filter(EventPerformance.event_id == event.id, EventPerformance.participant_id == entry.id).first()
    if not row:
        row = EventPerformance(event_id=event.id, participant_id=entry.id, status=PerformanceStatus.PENDING)
        db.add(row)

    updates = payload.model_dump(exclude_unset=True)
    if updates.get("status") == PerformanceStatus.PERFORMING:
        busy = db.query(EventPerformance).filter(
            EventPerformance.event_id == event.id,
            EventPerformance.status == PerformanceStatus.PERFORMING,
            EventPerformance.participant_id != entry.id,
        ).first()
        if busy:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Another participant is already performing")
    if "slot_number" in updates and updates["slot_number"] is not None:
        taken = db.query(EventPerformance).filter(
            EventPerformance.event_id == event.id,
            EventPerformance.slot_number == updates["slot_number"],
            EventPerformance.participant_id != entry.id,
        ).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Slot {updates['slot_number']} is already assigned")
    for field, value in updates.items():
        if field == "status" and value is None:
            continue
        setattr(row, field, value)
    log_admin_action(db, user, "update_performance", request.method, request.url.path, {"event_id": event.id, "participant_id": entry.id}, commit=False)
    db.commit()
    return _performance_rows(db, event.id)
