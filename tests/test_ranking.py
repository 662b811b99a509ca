from itertools import permutations
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from ranking import (
    UNKNOWN_BRANCH,
    ScoreRow,
    competition_rank,
    podium,
    points_for_rank,
    rank_branches,
    rank_participants,
)


def test_rank_branches_uses_competition_ranking_for_ties():
    rows = [
        ScoreRow("Asha", "Salem", 10),
        ScoreRow("Bala", "Madurai", 10),
        ScoreRow("Chitra", "Erode", 5),
    ]
    standings = rank_branches(rows)
    assert [(s.branch, s.total_points, s.rank) for s in standings] == [
        ("Madurai", 10, 1),
        ("Salem", 10, 1),
        ("Erode", 5, 3),
    ]


def test_rank_branches_sums_points_and_tracks_participants():
    rows = [
        {"participant": "Asha", "branch": "Salem", "points": 10, "event_id": 1},
        {"participant": "Asha", "branch": "Salem", "points": 7, "event_id": 2},
        {"participant": "Devi", "branch": "salem ", "points": 5, "event_id": 2},
        ("Bala", "Madurai", 20, 3),
    ]
    standings = rank_branches(rows)
    assert standings[0].branch == "Madurai"
    salem = standings[1]
    assert salem.total_points == 17
    assert salem.participants == ["Asha"]
    assert salem.events_count == 2
    # Branch names are only stripped, not case-folded.
    assert standings[2].branch == "salem"


def test_rank_branches_blank_branch_and_unscored_rows():
    rows = [
        ScoreRow("Asha", "", 4),
        ScoreRow("Bala", None, 3),
        ScoreRow("Chitra", "Erode", None),
    ]
    standings = rank_branches(rows)
    assert len(standings) == 1
    assert standings[0].branch == UNKNOWN_BRANCH
    assert standings[0].total_points == 7
    assert standings[0].participants == ["Asha", "Bala"]


def test_rank_branches_empty():
    assert rank_branches([]) == []


def test_competition_rank():
    assert competition_rank([9, 9, 7, 7, 7, 1], key=lambda v: v) == [1, 1, 3, 3, 3, 6]


def test_rank_participants_leaves_unscored_unranked():
    ranks = rank_participants({1: 90, 2: 95, 3: 90, 4: None, 5: 40})
    assert ranks == {1: 2, 2: 1, 3: 2, 4: None, 5: 4}


def test_points_for_rank():
    config = (10, 7, 5)
    assert points_for_rank(1, config) == 10
    assert points_for_rank(3, config) == 5
    assert points_for_rank(4, config) == 0
    assert points_for_rank(None, config) == 0


def test_podium_keeps_ties_on_the_last_place():
    standings = rank_branches([
        ScoreRow("a", "A", 50),
        ScoreRow("b", "B", 40),
        ScoreRow("c", "C", 30),
        ScoreRow("d", "D", 30),
        ScoreRow("e", "E", 10),
    ])
    assert [s.branch for s in podium(standings)] == ["A", "B", "C", "D"]


def test_as_dict_copies_participants():
    standing = rank_branches([ScoreRow("Asha", "Salem", 1, 1)])[0]
    data = standing.as_dict()
    data["participants"].append("x")
    assert standing.participants == ["Asha"]
    assert data["events_count"] == 1


def test_rank_branches_ignores_input_order():
    rows = [
        ScoreRow("Asha", "Salem", 7.5, event_id=1),
        ScoreRow("Bala", "Madurai", 10, event_id=1),
        ScoreRow("Chitra", "Salem", 2.5, event_id=2),
        ScoreRow("Devi", "", 10, event_id=2),
        ScoreRow("Ezhil", "Erode", 5, event_id=1),
        ScoreRow("Farah", "Erode", None, event_id=2),
    ]
    expected = [
        ("Madurai", 10, 1),
        ("Salem", 10, 1),
        (UNKNOWN_BRANCH, 10, 1),
        ("Erode", 5, 4),
    ]
    for ordering in permutations(rows):
        standings = rank_branches(list(ordering))
        assert [(s.branch, s.total_points, s.rank) for s in standings] == expected
