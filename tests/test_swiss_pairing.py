import random

import pytest

from tcgpairing.config import PairingConfig
from tcgpairing.constants import (
    STAGE_BOUNDED_SEARCH,
    STAGE_BRACKET,
    STAGE_FIRST_ROUND,
    STAGE_FORCED_REMATCH,
)
from tcgpairing.exceptions import InvalidStandingsException
from tcgpairing.models.pairing import Pairing
from tcgpairing.models.standing import PlayerStanding, calculate_match_points
from tcgpairing.pairing.swiss import (
    bye_seed,
    fnv1a_32,
    generate_swiss_pairings,
    have_played_before,
)


def _standing(pid, wins=0, losses=0, draws=0, byes=0, opponents=None):
    return PlayerStanding.from_record(
        pid, f"Player {pid}", wins, losses, draws, opponents, byes
    )


def _pair(a, b, round_number=1):
    return Pairing(a, f"Player {a}", b, f"Player {b}" if b else None, round_number)


def _seated_ids(result):
    return [pid for p in result.pairings for pid in p.player_ids]


def _points(standings):
    return {s.id: s.match_points for s in standings}


def test_round_one_four_players():
    standings = [_standing(pid) for pid in "abcd"]
    result = generate_swiss_pairings(standings, 1, [], rng=random.Random(1))

    assert len(result.pairings) == 2
    assert not any(p.is_bye for p in result.pairings)
    assert sorted(_seated_ids(result)) == list("abcd")
    assert result.decision_log.stage_used == STAGE_FIRST_ROUND


def test_round_one_is_reproducible_with_seeded_rng():
    standings = [_standing(f"p{i}") for i in range(10)]
    first = generate_swiss_pairings(standings, 1, [], rng=random.Random(7))
    second = generate_swiss_pairings(standings, 1, [], rng=random.Random(7))
    assert [p.to_dict() for p in first.pairings] == [
        p.to_dict() for p in second.pairings
    ]


def test_round_two_even_brackets_need_no_floats():
    standings = (
        [_standing(pid, wins=1) for pid in "abcd"]
        + [_standing(pid, draws=1) for pid in "ef"]
        + [_standing(pid, losses=1) for pid in "ghi"]
    )
    result = generate_swiss_pairings(standings, 2, [])
    points = _points(standings)

    assert len(result.pairings) == 5
    byes = [p for p in result.pairings if p.is_bye]
    assert len(byes) == 1
    assert byes[0].player1_id in "ghi"

    real = [p for p in result.pairings if not p.is_bye]
    assert all(points[p.player1_id] == points[p.player2_id] for p in real)
    assert sorted(points[p.player1_id] for p in real) == [0, 1, 3, 3]
    assert result.decision_log.max_float_distance == 0
    assert result.decision_log.float_reasons == {}
    assert result.decision_log.stage_used == STAGE_BRACKET


def test_bye_never_goes_to_player_with_existing_bye():
    standings = [
        PlayerStanding(id=pid, name=f"Player {pid}", losses=2, matches_played=2)
        for pid in "abcd"
    ]
    standings.append(
        PlayerStanding(
            id="e", name="Player e", losses=2, matches_played=2, byes_received=1
        )
    )
    result = generate_swiss_pairings(standings, 3, [])

    bye = result.bye
    assert bye is not None
    assert bye.player1_id != "e"
    assert result.decision_log.bye_player_id == bye.player1_id
    assert "fewest byes" in result.decision_log.bye_reason


def test_bye_prefers_lowest_score_over_fewest_byes():
    standings = [
        PlayerStanding(
            id="x", name="Player x", losses=2, matches_played=2, byes_received=1
        ),
        _standing("y", wins=1, losses=1),
        _standing("z", wins=1, losses=1),
    ]
    result = generate_swiss_pairings(standings, 3, [])
    assert result.bye.player1_id == "x"
    assert result.decision_log.bye_reason.startswith("lowest score (0 pts)")


def test_round_one_bye_prefers_fewest_byes():
    standings = [
        PlayerStanding(id="a", name="Player a", byes_received=1),
        _standing("b"),
        _standing("c"),
    ]
    for seed in range(5):
        result = generate_swiss_pairings(standings, 1, [], rng=random.Random(seed))
        assert result.bye.player1_id in ("b", "c")


def test_bye_tie_break_uses_seeded_hash():
    standings = [_standing(pid, losses=1) for pid in "abcde"]
    expected = min("abcde", key=lambda pid: bye_seed(2, pid))

    result = generate_swiss_pairings(standings, 2, [])
    assert result.bye.player1_id == expected
    assert "seeded tie-break among 5 tied players" in result.decision_log.bye_reason


def test_fnv1a_matches_reference_values():
    assert fnv1a_32("") == 0x811C9DC5
    assert fnv1a_32("a") == 0xE40C292C


def test_rematch_free_alternative_is_used():
    standings = [_standing(pid, wins=1, losses=1) for pid in "abcdefgh"]
    previous = [_pair("a", "b"), _pair("c", "d"), _pair("e", "f"), _pair("g", "h")]
    previous += [
        _pair("a", "c", 2),
        _pair("b", "d", 2),
        _pair("e", "g", 2),
        _pair("f", "h", 2),
    ]
    result = generate_swiss_pairings(standings, 3, previous)

    assert result.decision_log.rematch_count == 0
    for pairing in result.pairings:
        assert not have_played_before(pairing.player1_id, pairing.player2_id, previous)


def test_search_backtracks_out_of_greedy_dead_end():
    # greedy would take a-b and leave c-d, who already met
    standings = [_standing(pid, wins=1, losses=1) for pid in "abcd"]
    previous = [_pair("c", "d"), _pair("a", "c", 2)]
    result = generate_swiss_pairings(standings, 3, previous)

    keys = {frozenset(p.player_ids) for p in result.pairings}
    assert keys == {frozenset("ad"), frozenset("bc")}
    assert result.decision_log.rematch_count == 0


def test_unavoidable_rematch_is_counted():
    standings = [_standing(pid, wins=1, losses=2) for pid in "abcd"]
    previous = [_pair("a", "b"), _pair("a", "c", 2), _pair("a", "d", 3)]
    result = generate_swiss_pairings(standings, 4, previous)

    assert result.decision_log.rematch_count == 1
    assert result.decision_log.rematch_occurred
    assert result.decision_log.stage_used == STAGE_FORCED_REMATCH
    keys = {frozenset(p.player_ids) for p in result.pairings}
    assert frozenset("cd") in keys


def test_odd_bracket_floats_exactly_one_player():
    standings = [_standing(pid, wins=1) for pid in "abc"] + [
        _standing(pid, losses=1) for pid in "defg"
    ]
    result = generate_swiss_pairings(standings, 2, [])
    points = _points(standings)
    log = result.decision_log

    assert result.bye.player1_id in "defg"
    real = [p for p in result.pairings if not p.is_bye]
    cross = [p for p in real if points[p.player1_id] != points[p.player2_id]]
    assert len(cross) == 1
    assert abs(points[cross[0].player1_id] - points[cross[0].player2_id]) == 3
    assert len([p for p in real if points[p.player1_id] == points[p.player2_id] == 3]) == 1
    assert len([p for p in real if points[p.player1_id] == points[p.player2_id] == 0]) == 1

    assert log.max_float_distance == 3
    assert len(log.float_reasons) == 1
    floater = next(iter(log.float_reasons))
    assert points[floater] == 3
    assert "odd bracket (3 pts" in log.float_reasons[floater]
    assert log.float_details[0].player_id == floater


def test_mixed_bracket_floats_native_member():
    standings = [
        _standing("x", wins=2),
        _standing("y", wins=1, losses=1),
        _standing("z", wins=1, losses=1),
        _standing("u", losses=2),
        _standing("v", losses=2),
        _standing("w", losses=2),
    ]
    result = generate_swiss_pairings(standings, 3, [])
    log = result.decision_log
    points = _points(standings)

    x_pairing = next(p for p in result.pairings if p.involves("x"))
    assert points[x_pairing.opponent_of("x")] == 3
    assert set(log.float_reasons) == {"x", "y"}
    assert "odd mixed bracket (6->3)" in log.float_reasons["y"]
    assert log.max_float_distance == 3


def test_floater_choice_avoids_rematch():
    standings = [_standing(pid, wins=1, losses=1) for pid in "abc"] + [
        _standing(pid, losses=2) for pid in "def"
    ]
    previous = [_pair("b", "c"), _pair("a", "d", 2)]
    result = generate_swiss_pairings(standings, 3, previous)

    assert set(result.decision_log.float_reasons) == {"b"}
    assert result.decision_log.rematch_count == 0


def _late_floater_field():
    # g and h have each met a-f and each other, so only floating g (or h)
    # lets the 9-point bracket pair without a rematch
    standings = [_standing(pid, wins=3) for pid in "abcdefghz"]
    standings.append(_standing("y", losses=3))
    previous = [_pair("g", pid) for pid in "abcdefh"]
    previous += [_pair("h", pid, 2) for pid in "abcdef"]
    return standings, previous


def test_floater_search_looks_past_candidate_limit():
    standings, previous = _late_floater_field()
    result = generate_swiss_pairings(standings, 4, previous)
    log = result.decision_log

    assert set(log.float_reasons) == {"g"}
    assert log.rematch_count == 0
    assert log.stage_used == STAGE_BRACKET
    g_pairing = next(p for p in result.pairings if p.involves("g"))
    assert g_pairing.opponent_of("g") == "y"


def test_capped_floater_search_is_not_reported_as_forced():
    standings, previous = _late_floater_field()
    config = PairingConfig(exhaustive_pool_limit=4, float_candidate_limit=1)
    result = generate_swiss_pairings(standings, 4, previous, config=config)

    assert set(result.decision_log.float_reasons) == {"a"}
    assert result.decision_log.rematch_count == 1
    assert result.decision_log.stage_used == STAGE_BOUNDED_SEARCH


def test_output_order_top_tables_first_byes_last():
    standings = (
        [_standing(pid, wins=2) for pid in "ab"]
        + [_standing(pid, wins=1, losses=1) for pid in "cd"]
        + [_standing(pid, losses=2) for pid in "efg"]
    )
    result = generate_swiss_pairings(standings, 3, [])
    points = _points(standings)

    assert result.pairings[-1].is_bye
    tops = [
        max(points[p.player1_id], points[p.player2_id])
        for p in result.pairings
        if not p.is_bye
    ]
    assert tops == sorted(tops, reverse=True)


def test_later_rounds_are_deterministic():
    standings = [_standing(f"p{i:02d}", wins=i % 3, losses=2 - i % 3) for i in range(15)]
    previous = [_pair(f"p{i:02d}", f"p{i + 1:02d}") for i in range(0, 14, 2)]
    first = generate_swiss_pairings(standings, 3, previous)
    second = generate_swiss_pairings(list(reversed(standings)), 3, previous)

    assert first.to_dict() == second.to_dict()


def test_large_pool_uses_bounded_search_without_rematches():
    standings = [_standing(f"p{i:02d}", wins=1, losses=1) for i in range(40)]
    previous = [_pair(f"p{i:02d}", f"p{i + 1:02d}") for i in range(0, 40, 2)]
    previous += [_pair(f"p{i:02d}", f"p{i + 2:02d}", 2) for i in range(0, 40, 4)]
    previous += [_pair(f"p{i + 1:02d}", f"p{i + 3:02d}", 2) for i in range(0, 40, 4)]
    result = generate_swiss_pairings(standings, 3, previous)

    assert len(result.pairings) == 20
    assert result.decision_log.rematch_count == 0
    assert result.decision_log.stage_used == STAGE_BRACKET


def test_inputs_are_not_mutated():
    standings = [_standing(pid, wins=1, opponents=["z"]) for pid in "abcd"]
    before = [s.to_dict() for s in standings]
    generate_swiss_pairings(standings, 2, [])
    assert [s.to_dict() for s in standings] == before


def test_empty_field_has_no_pairings():
    result = generate_swiss_pairings([], 2, [])
    assert result.pairings == []


@pytest.mark.parametrize(
    "standings, round_number",
    [
        ([PlayerStanding(id="a", name="A"), PlayerStanding(id="a", name="B")], 2),
        ([PlayerStanding(id="a", name="A", wins=1, match_points=2)], 2),
        ([PlayerStanding(id="a", name="A", losses=-1)], 2),
        ([PlayerStanding(id="", name="A")], 2),
        ([PlayerStanding(id="a", name="")], 2),
        ([PlayerStanding(id="a", name="A")], 0),
    ],
)
def test_malformed_standings_are_rejected(standings, round_number):
    with pytest.raises(InvalidStandingsException):
        generate_swiss_pairings(standings, round_number, [])


def test_have_played_before_ignores_seat_order_and_byes():
    previous = [_pair("a", "b"), _pair("c", None)]
    assert have_played_before("b", "a", previous)
    assert not have_played_before("a", "c", previous)
    assert not have_played_before("c", "d", previous)


def test_calculate_match_points():
    assert calculate_match_points(0, 0) == 0
    assert calculate_match_points(2, 1) == 7


def test_decision_log_serializes_float_reasons_as_plain_dict():
    standings = [_standing(pid, wins=1) for pid in "abc"] + [
        _standing(pid, losses=1) for pid in "def"
    ]
    log = generate_swiss_pairings(standings, 2, []).decision_log
    data = log.to_dict()

    assert isinstance(data["float_reasons"], dict)
    assert data["float_reasons"] == log.float_reasons
    assert data["float_details"][0]["player_id"] in data["float_reasons"]
