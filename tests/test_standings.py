from datetime import datetime, timezone

from tcgpairing.constants import RESULT_DRAW, STATUS_COMPLETED, STATUS_READY
from tcgpairing.models.tournament import MatchRecord, RegisteredPlayer
from tcgpairing.tournament.standings import (
    build_standings_from_matches,
    previous_pairings_from_matches,
)


def _match(round_number, number, p1, p2, winner=None, result=None, status=STATUS_COMPLETED):
    return MatchRecord(
        round_number=round_number,
        match_number=number,
        player1_id=p1,
        player1_name=p1.upper(),
        player2_id=p2,
        player2_name=p2.upper() if p2 else None,
        winner_id=winner,
        result=result,
        status=status,
    )


def _players(*ids):
    return [RegisteredPlayer(id=pid, name=pid.upper()) for pid in ids]


def _by_id(standings):
    return {s.id: s for s in standings}


def test_players_without_matches_start_at_zero():
    standings = build_standings_from_matches([], _players("a", "b"))
    assert [s.id for s in standings] == ["a", "b"]
    assert all(s.match_points == 0 and s.matches_played == 0 for s in standings)


def test_win_loss_and_draw_are_replayed():
    matches = [
        _match(1, 1, "a", "b", winner="a", result="2-0"),
        _match(1, 2, "c", "d", result=RESULT_DRAW),
    ]
    standings = _by_id(build_standings_from_matches(matches, _players("a", "b", "c", "d")))

    assert (standings["a"].wins, standings["a"].match_points) == (1, 3)
    assert (standings["b"].losses, standings["b"].match_points) == (1, 0)
    assert standings["c"].draws == 1 and standings["c"].match_points == 1
    assert standings["d"].opponents == ["c"]
    assert standings["a"].opponents == ["b"]


def test_bye_counts_as_win_without_opponent():
    bye = MatchRecord.bye(1, 3, "e", "E")
    standings = _by_id(build_standings_from_matches([bye], _players("e")))
    assert standings["e"].wins == 1
    assert standings["e"].matches_played == 1
    assert standings["e"].byes_received == 1
    assert standings["e"].opponents == []
    assert standings["e"].match_points == 3


def test_unfinished_and_later_matches_are_ignored():
    matches = [
        _match(1, 1, "a", "b", winner="a"),
        _match(2, 1, "a", "b", status=STATUS_READY),
        _match(3, 1, "b", "a", winner="b"),
    ]
    standings = _by_id(build_standings_from_matches(matches, _players("a", "b"), before_round=3))
    assert standings["a"].wins == 1
    assert standings["b"].wins == 0


def test_completed_match_without_winner_or_draw_is_skipped():
    matches = [_match(1, 1, "a", "b")]
    standings = _by_id(build_standings_from_matches(matches, _players("a", "b")))
    assert standings["a"].matches_played == 0


def test_unregistered_players_are_picked_up_from_matches():
    standings = build_standings_from_matches([_match(1, 1, "a", "z", winner="z")], _players("a"))
    assert [s.id for s in standings] == ["a", "z"]
    assert standings[1].name == "Z"


def test_previous_pairings_follow_round_then_creation_order():
    early = datetime(2025, 1, 1, 10, tzinfo=timezone.utc)
    late = datetime(2025, 1, 1, 11, tzinfo=timezone.utc)
    first = _match(1, 2, "a", "b", winner="a")
    first.created_at = early
    second = _match(1, 1, "c", "d", winner="c")
    second.created_at = late
    third = _match(2, 1, "a", "c")
    pairings = previous_pairings_from_matches([third, second, first], before_round=2)

    assert [p.key for p in pairings] == ["a-b", "c-d"]
