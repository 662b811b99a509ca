import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from event_service import get_event_or_404, load_entries
from models import Profile, ResultsStatus, Score, ScoringConfig
from schemas import (
    ApprovalResponse,
    BranchStandingResponse,
    ScoredEntry,
    ScoreSubmitRequest,
    ScoringConfigItem,
    ScoringConfigUpdate,
    ScoringDashboard,
    EventResponse,
)
from scoring_service import (
    approval_status,
    ensure_scoring_config,
    event_branch_standings,
    get_approval,
    recompute_event_ranks,
    reset_scoring_config,
)
from security import require_admin, require_right
from time_utils import now_tz
from utils import log_admin_action

logger = logging.getLogger(__name__)
router = APIRouter()

require_scoring = require_right("scoring")


def _config_items(rows) -> List[ScoringConfigItem]:
    ordered = sorted(rows.values(), key=lambda row: row.event_type.value)
    return [ScoringConfigItem.model_validate(row) for row in ordered]


@router.get("/admin/scoring-config", response_model=List[ScoringConfigItem])
def get_scoring_config(user: Profile = Depends(require_scoring), db: Session = Depends(get_db)):
    return _config_items(ensure_scoring_config(db))


@router.put("/admin/scoring-config", response_model=List[ScoringConfigItem])
def update_scoring_config(
    payload: ScoringConfigUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = ensure_scoring_config(db)
    for item in payload.items:
        row = rows.get(item.event_type)
        if not row:
            row = ScoringConfig(event_type=item.event_type)
            db.add(row)
            rows[item.event_type] = row
        row.rank_1_score = item.rank_1_score
        row.rank_2_score = item.rank_2_score
        row.rank_3_score = item.rank_3_score
    log_admin_action(db, admin, "update_scoring_config", request.method, request.url.path, {"event_types": [item.event_type.value for item in payload.items]}, commit=False)
    db.commit()
    return _config_items(rows)


@router.post("/admin/scoring-config/reset", response_model=List[ScoringConfigItem])
def reset_config(request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    rows = reset_scoring_config(db)
    log_admin_action(db, admin, "reset_scoring_config", request.method, request.url.path)
    return _config_items(rows)


def _dashboard(db: Session, event) -> ScoringDashboard:
    scores = {row.participant_id: row for row in db.query(Score).filter(Score.event_id == event.id).all()}
    entries = []
    for entry in load_entries(db, event_id=event.id):
        score = scores.get(entry.id)
        entries.append(ScoredEntry(
            participant_id=entry.id,
            name=entry.name,
            team_name=entry.team_name,
            ima_branch=entry.ima_branch,
            score=score.score if score else None,
            rank=score.rank if score else None,
            points=score.points if score else 0,
        ))
    entries.sort(key=lambda item: (item.rank is None, item.rank or 0, item.name.lower()))
    standings = event_branch_standings(db, event.id)
    return ScoringDashboard(
        event=EventResponse.model_validate(event),
        entries=entries,
        standings=[BranchStandingResponse(**standing.as_dict()) for standing in standings],
        approval_status=approval_status(db, event.id),
    )


@router.get("/scoring/events/{event_id}", response_model=ScoringDashboard)
def scoring_dashboard(event_id: int, user: Profile = Depends(require_scoring), db: Session = Depends(get_db)):
    return _dashboard(db, get_event_or_404(db, event_id))


@router.post("/scoring/events/{event_id}/scores", response_model=ScoringDashboard)
def submit_scores(
    event_id: int,
    payload: ScoreSubmitRequest,
    request: Request,
    user: Profile = Depends(require_scoring),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    entry_ids = {entry.id for entry in load_entries(db, event_id=event.id)}
    unknown = sorted({item.participant_id for item in payload.scores} - entry_ids)
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Participants not registered for this event: {', '.join(str(pid) for pid in unknown)}",
        )

    existing = {row.participant_id: row for row in db.query(Score).filter(Score.event_id == event.id).all()}
    for item in payload.scores:
        row = existing.get(item.participant_id)
        if not row:
            row = Score(event_id=event.id, participant_id=item.participant_id)
            db.add(row)
            existing[item.participant_id] = row
        row.score = item.score
        row.judge_id = user.id
    db.flush()
    recompute_event_ranks(db, event)
    get_approval(db, event.id, create=True)
    log_admin_action(db, user, "submit_scores", request.method, request.url.path, {"event_id": event.id, "count": len(payload.scores)}, commit=False)
    db.commit()
    return _dashboard(db, event)


@router.post("/admin/results/{event_id}/approve", response_model=ApprovalResponse)
def approve_results(event_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    approval = get_approval(db, event.id, create=True)
    if approval.status == ResultsStatus.RELEASED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Results are already released")
    approval.status = ResultsStatus.APPROVED
    approval.approved_by = admin.full_name
    approval.approved_at = now_tz()
    log_admin_action(db, admin, "approve_results", request.method, request.url.path, {"event_id": event.id}, commit=False)
    db.commit()
    db.refresh(approval)
    return ApprovalResponse.model_validate(approval)


@router.post("/admin/results/{event_id}/release", response_model=ApprovalResponse)
def release_results(event_id: int, request: Request, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    if not db.query(Score).filter(Score.event_id == event.id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No scores recorded for this event")
    approval = get_approval(db, event.id, create=True)
    if approval.status == ResultsStatus.RELEASED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Results are already released")
    if approval.status == ResultsStatus.PENDING:
        approval.approved_by = admin.full_name
        approval.approved_at = now_tz()
    approval.status = ResultsStatus.RELEASED
    approval.released_at = now_tz()
    log_admin_action(db, admin, "release_results", request.method, request.url.path, {"event_id": event.id}, commit=False)
    db.commit()
    db.refresh(approval)
    logger.info("Results released for event %s", event.id)
    return ApprovalResponse.model_validate(approval)
