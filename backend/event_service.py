from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models import (
    Artwork,
    Attendance,
    Event,
    EventFormat,
    EventParticipant,
    EventPerformance,
    ParticipantType,
    ResultsApproval,
    Score,
    TeamMember,
)
from ranking import normalize_branch
from schemas import EntryCreate, EntryResponse, MemberResponse, PublicEntryResponse
from time_utils import ensure_timezone

FORMAT_MEMBER_LIMITS = {
    EventFormat.SINGLE: (1, 1),
    EventFormat.DOUBLE: (2, 2),
    EventFormat.GROUP: (1, None),
}


def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def find_event_by_name(db: Session, name: str) -> Optional[Event]:
    key = str(name or "").strip().lower()
    if not key:
        return None
    return db.query(Event).filter(func.lower(func.trim(Event.name)) == key).first()


def effective_time(event: Event):
    value = event.revised_time or event.event_time
    return ensure_timezone(value) if value else None


def schedule_sort_key(event: Event):
    when = effective_time(event)
    return (when is None, when.timestamp() if when else 0, event.name.lower())


def validate_member_count(event: Event, member_count: int) -> None:
    minimum, maximum = FORMAT_MEMBER_LIMITS.get(event.format, (1, None))
    if member_count < minimum or (maximum is not None and member_count > maximum):
        if maximum == minimum:
            expected = f"exactly {minimum} member{'s' if minimum != 1 else ''}"
        else:
            expected = f"at least {minimum} member"
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{event.format.value.title()} events require {expected}",
        )


def create_entry(db: Session, event: Event, payload: EntryCreate, account_id: Optional[int] = None) -> EventParticipant:
    """Add an entry and its members to the session. The caller commits."""
    validate_member_count(event, len(payload.members))
    lead = payload.members[0]
    if payload.event_type == ParticipantType.GROUP:
        name = payload.team_name or lead.name
    else:
        name = lead.name
    entry = EventParticipant(
        event_id=event.id,
        account_id=account_id,
        name=name,
        team_name=payload.team_name,
        ima_branch=normalize_branch(payload.ima_branch),
        ima_branch_zone=payload.ima_branch_zone,
        mobile=lead.mobile,
        participant_type=payload.event_type,
        details=payload.details,
    )
    db.add(entry)
    db.flush()
    for member in payload.members:
        db.add(TeamMember(participant_id=entry.id, name=member.name, email=member.email, mobile=member.mobile))
    db.flush()
    return entry


def move_entry(db: Session, entry: EventParticipant, event: Event) -> None:
    """Point an entry at another event. Entries that already carry per-event rows stay put."""
    if entry.event_id == event.id:
        return
    for model in (Score, Attendance, EventPerformance):
        if db.query(model.id).filter(model.participant_id == entry.id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Entry already has scores, attendance or a performance slot; delete and re-register it instead",
            )
    validate_member_count(event, len(entry.members))
    entry.event_id = event.id


def delete_entries(db: Session, entry_ids: Iterable[int]) -> int:
    """Delete entries with their members and per-event rows. The caller commits."""
    ids = list({int(value) for value in entry_ids})
    if not ids:
        return 0
    for model in (TeamMember, Attendance, Score, EventPerformance):
        db.query(model).filter(model.participant_id.in_(ids)).delete(synchronize_session=False)
    return db.query(EventParticipant).filter(EventParticipant.id.in_(ids)).delete(synchronize_session=False)


def delete_event_cascade(db: Session, event: Event) -> Dict[str, int]:
    entry_ids = [row.id for row in db.query(EventParticipant.id).filter(EventParticipant.event_id == event.id).all()]
    deleted = {"members": 0}
    if entry_ids:
        deleted["members"] = db.query(TeamMember).filter(TeamMember.participant_id.in_(entry_ids)).delete(synchronize_session=False)
    for key, model in (("attendance", Attendance), ("scores", Score), ("performances", EventPerformance), ("approvals", ResultsApproval)):
        deleted[key] = db.query(model).filter(model.event_id == event.id).delete(synchronize_session=False)
    db.query(Artwork).filter(Artwork.event_id == event.id).update({Artwork.event_id: None}, synchronize_session=False)
    deleted["participants"] = db.query(EventParticipant).filter(EventParticipant.event_id == event.id).delete(synchronize_session=False)
    db.query(Event).filter(Event.id == event.id).delete(synchronize_session=False)
    return deleted


def load_entries(db: Session, event_id: Optional[int] = None, account_id: Optional[int] = None) -> List[EventParticipant]:
    query = db.query(EventParticipant).options(selectinload(EventParticipant.members), selectinload(EventParticipant.event))
    if event_id is not None:
        query = query.filter(EventParticipant.event_id == event_id)
    if account_id is not None:
        query = query.filter(EventParticipant.account_id == account_id)
    return query.order_by(EventParticipant.id.asc()).all()


def entry_to_response(entry: EventParticipant) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        event_id=entry.event_id,
        event_name=entry.event.name if entry.event else None,
        name=entry.name,
        team_name=entry.team_name,
        ima_branch=entry.ima_branch,
        ima_branch_zone=entry.ima_branch_zone,
        mobile=entry.mobile,
        participant_type=entry.participant_type,
        members=[MemberResponse.model_validate(member) for member in entry.members],
    )


def entry_to_public(entry: EventParticipant) -> PublicEntryResponse:
    return PublicEntryResponse(
        id=entry.id,
        name=entry.name,
        team_name=entry.team_name,
        ima_branch=entry.ima_branch,
        participant_type=entry.participant_type,
        members=[member.name for member in entry.members],
    )
