from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

UNKNOWN_BRANCH = "Unknown"

DEFAULT_SCORING_CONFIG: Dict[str, Sequence[int]] = {
    "Solo": (10, 7, 5),
    "Group": (20, 15, 10),
    "Cultural": (30, 25, 15),
    "Mega": (40, 25, 15),
}


@dataclass
class ScoreRow:
    participant: str
    branch: Optional[str]
    points: Optional[float]
    event_id: Optional[int] = None


@dataclass
class BranchStanding:
    branch: str
    total_points: float = 0
    rank: int = 0
    participants: List[str] = field(default_factory=list)
    events_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "branch": self.branch,
            "total_points": self.total_points,
            "rank": self.rank,
            "participants": list(self.participants),
            "events_count": self.events_count,
        }


def normalize_branch(value: Optional[str]) -> str:
    branch = str(value or "").strip()
    return branch or UNKNOWN_BRANCH


def competition_rank(items: List[T], key: Callable[[T], float]) -> List[int]:
    """Ranks for items already sorted by key descending: 1, 1, 3, ..."""
    ranks: List[int] = []
    previous = None
    for position, item in enumerate(items, start=1):
        value = key(item)
        if ranks and value == previous:
            ranks.append(ranks[-1])
        else:
            ranks.append(position)
        previous = value
    return ranks


def _as_score_row(row: Any) -> ScoreRow:
    if isinstance(row, ScoreRow):
        return row
    if isinstance(row, dict):
        return ScoreRow(
            participant=row.get("participant"),
            branch=row.get("branch"),
            points=row.get("points"),
            event_id=row.get("event_id"),
        )
    values = tuple(row)
    return ScoreRow(*values[:4])


def rank_branches(rows: Iterable[Any]) -> List[BranchStanding]:
    """Aggregate scored rows per branch and rank branches by total points.

    Rows may be ScoreRow instances, dicts or (participant, branch, points[, event_id])
    tuples. Rows whose points are None are ignored, so a branch with no scored
    participant is left out entirely.
    """
    standings: Dict[str, BranchStanding] = {}
    events: Dict[str, set] = {}
    for raw in rows:
        row = _as_score_row(raw)
        if row.points is None:
            continue
        branch = normalize_branch(row.branch)
        standing = standings.setdefault(branch, BranchStanding(branch=branch))
        standing.total_points += row.points
        if row.participant and row.participant not in standing.participants:
            standing.participants.append(row.participant)
        if row.event_id is not None:
            events.setdefault(branch, set()).add(row.event_id)

    ordered = sorted(standings.values(), key=lambda item: (-item.total_points, item.branch.lower()))
    for standing, rank in zip(ordered, competition_rank(ordered, key=lambda item: item.total_points)):
        standing.rank = rank
        standing.events_count = len(events.get(standing.branch, ()))
    return ordered


def rank_participants(scores: Dict[Any, Optional[float]]) -> Dict[Any, Optional[int]]:
    """Map participant ids to their competition rank by marks, None when unscored."""
    scored = [(pid, value) for pid, value in scores.items() if value is not None]
    scored.sort(key=lambda item: -item[1])
    ranked: Dict[Any, Optional[int]] = {pid: None for pid in scores}
    for (pid, _), rank in zip(scored, competition_rank(scored, key=lambda item: item[1])):
        ranked[pid] = rank
    return ranked


def points_for_rank(rank: Optional[int], config: Sequence[int]) -> int:
    if rank is None or rank < 1 or rank > len(config):
        return 0
    return int(config[rank - 1])


def podium(standings: List[BranchStanding], places: int = 3) -> List[BranchStanding]:
    return [standing for standing in standings if standing.rank <= places]
