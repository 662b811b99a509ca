import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from models import Event, EventParticipant, EventType, ResultsApproval, ResultsStatus, Score, ScoringConfig
from ranking import DEFAULT_SCORING_CONFIG, BranchStanding, ScoreRow, points_for_rank, rank_branches, rank_participants

logger = logging.getLogger(__name__)


def ensure_scoring_config(db: Session) -> Dict[EventType, ScoringConfig]:
    """Seed missing event types with their default points and return all rows."""
    rows = {row.event_type: row for row in db.query(ScoringConfig).all()}
    created = False
    for event_type in EventType:
        if event_type in rows:
            continue
        first, second, third = DEFAULT_SCORING_CONFIG[event_type.value]
        row = ScoringConfig(event_type=event_type, rank_1_score=first, rank_2_score=second, rank_3_score=third)
        db.add(row)
        rows[event_type] = row
        created = True
    if created:
        db.commit()
        logger.info("Seeded default scoring config")
    return rows


def reset_scoring_config(db: Session) -> Dict[EventType, ScoringConfig]:
    rows = ensure_scoring_config(db)
    for event_type, row in rows.items():
        row.rank_1_score, row.rank_2_score, row.rank_3_score = DEFAULT_SCORING_CONFIG[event_type.value]
    db.commit()
    return rows


def points_table(db: Session, event_type: EventType) -> Sequence[int]:
    row = ensure_scoring_config(db).get(event_type)
    if not row:
        return DEFAULT_SCORING_CONFIG[event_type.value]
    return (row.rank_1_score, row.rank_2_score, row.rank_3_score)


def recompute_event_ranks(db: Session, event: Event) -> List[Score]:
    """Re-rank every score of the event by marks and refresh their points. The caller commits."""
    scores = db.query(Score).filter(Score.event_id == event.id).all()
    ranks = rank_participants({row.participant_id: row.score for row in scores})
    table = points_table(db, event.event_type)
    for row in scores:
        row.rank = ranks.get(row.participant_id)
        row.points = points_for_rank(row.rank, table)
    db.flush()
    return scores


def get_approval(db: Session, event_id: int, create: bool = False) -> Optional[ResultsApproval]:
    approval = db.query(ResultsApproval).filter(ResultsApproval.event_id == event_id).first()
    if not approval and create:
        approval = ResultsApproval(event_id=event_id, status=ResultsStatus.PENDING)
        db.add(approval)
        db.flush()
    return approval


def approval_status(db: Session, event_id: int) -> ResultsStatus:
    approval = get_approval(db, event_id)
    return approval.status if approval else ResultsStatus.PENDING


def released_event_ids(db: Session) -> List[int]:
    rows = db.query(ResultsApproval.event_id).filter(ResultsApproval.status == ResultsStatus.RELEASED).all()
    return [row.event_id for row in rows]


def _score_rows(db: Session, event_ids: Optional[List[int]] = None):
    query = db.query(Score, EventParticipant).join(EventParticipant, EventParticipant.id == Score.participant_id)
    if event_ids is not None:
        query = query.filter(Score.event_id.in_(event_ids))
    return query.all()


def event_branch_standings(db: Session, event_id: int, by: str = "points") -> List[BranchStanding]:
    rows = [
        ScoreRow(
            participant=entry.name,
            branch=entry.ima_branch,
            points=score.points if by == "points" else score.score,
            event_id=score.event_id,
        )
        for score, entry in _score_rows(db, [event_id])
    ]
    return rank_branches(rows)


def overall_leaderboard(db: Session, event_ids: Optional[List[int]] = None) -> List[BranchStanding]:
    rows = [
        ScoreRow(participant=entry.name, branch=entry.ima_branch, points=score.points, event_id=score.event_id)
        for score, entry in _score_rows(db, event_ids)
    ]
    return rank_branches(rows)
