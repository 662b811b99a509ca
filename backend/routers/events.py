from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import get_db
from event_service import entry_to_public, get_event_or_404, load_entries, schedule_sort_key
from models import Event, EventParticipant, EventPerformance, EventStatus, PerformanceStatus, ResultsApproval, ResultsStatus, Score
from ranking import podium
from schemas import (
    BranchStandingResponse,
    DirectoryEntry,
    EventDetailResponse,
    EventResponse,
    EventResult,
    HallTracker,
    LiveStatusRow,
    TrackerParticipant,
)
from scoring_service import event_branch_standings, overall_leaderboard, released_event_ids

router = APIRouter()


def _schedule(db: Session, category: Optional[str] = None) -> List[Event]:
    query = db.query(Event)
    if category:
        query = query.filter(func.lower(Event.category) == category.strip().lower())
    return sorted(query.all(), key=schedule_sort_key)


@router.get("/events", response_model=List[EventResponse])
def list_events(category: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return [EventResponse.model_validate(event) for event in _schedule(db, category)]


@router.get("/events/live-status", response_model=List[LiveStatusRow])
def live_status(db: Session = Depends(get_db)):
    counts = dict(
        db.query(EventParticipant.event_id, func.count(EventParticipant.id))
        .group_by(EventParticipant.event_id)
        .all()
    )
    released = set(released_event_ids(db))
    return [
        LiveStatusRow(
            id=event.id,
            name=event.name,
            hall=event.hall,
            location=event.location,
            event_time=event.revised_time or event.event_time,
            status=event.status,
            participant_count=int(counts.get(event.id, 0)),
            results_released=event.id in released,
        )
        for event in _schedule(db)
    ]


def _top_participants(db: Session, event_id: int) -> List[TrackerParticipant]:
    rows = (
        db.query(Score, EventParticipant)
        .join(EventParticipant, EventParticipant.id == Score.participant_id)
        .filter(Score.event_id == event_id, Score.rank.isnot(None), Score.rank <= 3)
        .order_by(Score.rank.asc(), EventParticipant.name.asc())
        .all()
    )
    return [
        TrackerParticipant(name=entry.name, branch=entry.ima_branch, rank=score.rank, score=score.score)
        for score, entry in rows
    ]


def _performing_name(db: Session, event_id: int) -> Optional[str]:
    row = (
        db.query(EventParticipant.name)
        .join(EventPerformance, EventPerformance.participant_id == EventParticipant.id)
        .filter(EventPerformance.event_id == event_id, EventPerformance.status == PerformanceStatus.PERFORMING)
        .first()
    )
    return row.name if row else None


@router.get("/events/live-tracker", response_model=List[HallTracker])
def live_tracker(db: Session = Depends(get_db)):
    """Per hall: the ongoing event (podium once released) and the next upcoming one."""
    released = set(released_event_ids(db))
    halls: Dict[Optional[int], List[Event]] = {}
    for event in _schedule(db):
        halls.setdefault(event.hall, []).append(event)

    trackers = []
    for hall in sorted(halls, key=lambda value: (value is None, value or 0)):
        events = halls[hall]
        current = next((event for event in events if event.status == EventStatus.ONGOING), None)
        upcoming = next((event for event in events if event.status == EventStatus.UPCOMING and event is not current), None)
        tracker = HallTracker(
            hall=hall,
            current_event=EventResponse.model_validate(current) if current else None,
            next_event=EventResponse.model_validate(upcoming) if upcoming else None,
        )
        if current:
            tracker.performing = _performing_name(db, current.id)
            if current.id in released:
                tracker.top_participants = _top_participants(db, current.id)
        trackers.append(tracker)
    return trackers


@router.get("/events/{event_id}", response_model=EventDetailResponse)
def event_detail(event_id: int, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    return EventDetailResponse(
        **EventResponse.model_validate(event).model_dump(),
        participants=[entry_to_public(entry) for entry in load_entries(db, event_id=event.id)],
    )


def _directory(db: Session, search: Optional[str]) -> List[DirectoryEntry]:
    query = db.query(EventParticipant, Event).join(Event, Event.id == EventParticipant.event_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            EventParticipant.name.ilike(like),
            EventParticipant.team_name.ilike(like),
            EventParticipant.ima_branch.ilike(like),
            Event.name.ilike(like),
        ))
    rows = query.order_by(Event.name.asc(), EventParticipant.name.asc()).all()
    return [
        DirectoryEntry(
            id=entry.id,
            event=event.name,
            name=entry.name,
            team_name=entry.team_name,
            branch=entry.ima_branch,
            zone=entry.ima_branch_zone,
            participant_type=entry.participant_type,
        )
        for entry, event in rows
    ]


@router.get("/directory", response_model=List[DirectoryEntry])
def participant_directory(search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return _directory(db, search)


@router.get("/results", response_model=List[EventResult])
def public_results(db: Session = Depends(get_db)):
    approvals = {
        row.event_id: row
        for row in db.query(ResultsApproval).filter(ResultsApproval.status == ResultsStatus.RELEASED).all()
    }
    if not approvals:
        return []
    events = db.query(Event).filter(Event.id.in_(list(approvals))).all()
    results = []
    for event in sorted(events, key=schedule_sort_key):
        standings = podium(event_branch_standings(db, event.id, by="marks"))
        results.append(EventResult(
            event_id=event.id,
            event_name=event.name,
            event_type=event.event_type,
            category=event.category,
            released_at=approvals[event.id].released_at,
            podium=[BranchStandingResponse(**standing.as_dict()) for standing in standings],
        ))
    return results


@router.get("/leaderboard", response_model=List[BranchStandingResponse])
def live_leaderboard(db: Session = Depends(get_db)):
    """Branch standings over every event whose results have been released."""
    standings = overall_leaderboard(db, released_event_ids(db))
    return [BranchStandingResponse(**standing.as_dict()) for standing in standings]
