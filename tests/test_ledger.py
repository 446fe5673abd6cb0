"""
tests/test_ledger.py - Player statistics folded from completed matches.
"""

import pytest

from roundrobin.ledger import derive_outcome, recompute, validate_match
from roundrobin.models import DOUBLES, SINGLES, Match, Player, Tournament


def singles(mid, p1, p2, s1, s2, completed=True, round=1):
    return Match(id=mid, round=round, players=[p1, p2], scores=[s1, s2], completed=completed)


def doubles(mid, players, s1, s2, completed=True, round=1):
    return Match(id=mid, round=round, players=list(players), scores=[s1, s2],
                 completed=completed, is_doubles=True)


def make_tournament(n, mode=SINGLES, matches=()):
    players = [Player(id=f"p{i}", name=f"Player {i}") for i in range(n)]
    return Tournament(id="t", name="T", mode=mode, total_rounds=3,
                      players=players, matches=list(matches))


def stats_of(t, pid):
    p = t.get_player(pid)
    return (p.matches_played, p.wins, p.total_points_scored, p.games_played)


class TestDeriveOutcome:
    def test_singles(self):
        m = singles("m", "a", "b", 21, 15)
        assert derive_outcome(m, 0) == (21, 15, True)
        assert derive_outcome(m, 1) == (15, 21, False)

    def test_doubles_teams_share_score(self):
        m = doubles("m", ["a", "b", "c", "d"], 18, 21)
        assert derive_outcome(m, 0) == (18, 21, False)
        assert derive_outcome(m, 1) == (18, 21, False)
        assert derive_outcome(m, 2) == (21, 18, True)
        assert derive_outcome(m, 3) == (21, 18, True)

    def test_tie_is_nobodys_win(self):
        m = singles("m", "a", "b", 20, 20)
        assert derive_outcome(m, 0)[2] is False
        assert derive_outcome(m, 1)[2] is False


class TestRecompute:
    def test_sums_completed_matches_only(self):
        p = Player(id="a", name="A")
        matches = [
            singles("m1", "a", "b", 21, 15),
            singles("m2", "c", "a", 21, 19),
            singles("m3", "a", "c", 21, 0, completed=False),
            singles("m4", "b", "c", 21, 3),
        ]
        stats = recompute(p, matches)
        assert stats.matches_played == 2
        assert stats.games_played == 2
        assert stats.wins == 1
        assert stats.total_points_scored == 40

    def test_ignores_stored_stats(self):
        p = Player(id="a", name="A", matches_played=9, wins=9, total_points_scored=999)
        stats = recompute(p, [singles("m1", "a", "b", 21, 15)])
        assert (stats.matches_played, stats.wins, stats.total_points_scored) == (1, 1, 21)

    def test_order_independent(self):
        p = Player(id="a", name="A")
        matches = [singles("m1", "a", "b", 21, 15), doubles("m2", ["c", "a", "b", "d"], 11, 21)]
        assert recompute(p, matches) == recompute(p, list(reversed(matches)))


class TestValidateMatch:
    def test_first_validation(self):
        m = singles("m1", "p0", "p1", 21, 15)
        t = make_tournament(2, matches=[m])
        validate_match(t, m)
        assert stats_of(t, "p0") == (1, 1, 21, 1)
        assert stats_of(t, "p1") == (1, 0, 15, 1)

    def test_revalidating_is_idempotent(self):
        m = doubles("m1", ["p0", "p1", "p2", "p3"], 21, 17)
        t = make_tournament(4, DOUBLES, matches=[m])
        validate_match(t, m)
        first = [stats_of(t, f"p{i}") for i in range(4)]
        validate_match(t, m)
        assert [stats_of(t, f"p{i}") for i in range(4)] == first

    def test_edit_and_revalidate(self):
        m1 = singles("m1", "p0", "p1", 21, 10)
        m2 = singles("m2", "p0", "p2", 21, 5, round=2)
        m3 = singles("m3", "p2", "p3", 21, 12, round=2)
        t = make_tournament(4, matches=[m1, m2, m3])
        for m in (m1, m2, m3):
            validate_match(t, m)
        before = {f"p{i}": stats_of(t, f"p{i}") for i in range(4)}

        m1.scores = [10, 21]
        validate_match(t, m1)

        assert stats_of(t, "p0") == (2, before["p0"][1] - 1, before["p0"][2] - 11, 2)
        assert stats_of(t, "p1") == (1, 1, 21, 1)
        assert stats_of(t, "p2") == before["p2"]
        assert stats_of(t, "p3") == before["p3"]

    def test_stale_player_skipped(self):
        m = singles("m1", "p0", "gone", 21, 15)
        t = make_tournament(1, matches=[m])
        validate_match(t, m)
        assert stats_of(t, "p0") == (1, 1, 21, 1)

    @pytest.mark.parametrize("scores,wins", [((21, 19), 1), ((19, 21), 0), ((21, 21), 0)])
    def test_doubles_team_credit(self, scores, wins):
        m = doubles("m1", ["p0", "p1", "p2", "p3"], *scores)
        t = make_tournament(4, DOUBLES, matches=[m])
        validate_match(t, m)
        assert stats_of(t, "p0") == stats_of(t, "p1") == (1, wins, scores[0], 1)
