import logging
import random
from typing import Dict, List, Optional, Tuple

from roundrobin.exceptions import GeneratorConsistencyError, InvalidConfigurationError
from roundrobin.fairness import idle_priorities
from roundrobin.models import DOUBLES, SINGLES, Match, Player, Tournament

logger = logging.getLogger(__name__)

# players % 4 -> (singles matches, idle players); doubles matches are always players // 4
DOUBLES_DISTRIBUTION = {
    0: (0, 0),
    1: (0, 1),
    2: (1, 0),
    3: (1, 1),
}


def doubles_distribution(n: int) -> Tuple[int, int, int]:
    """Return (doubles matches, singles matches, idle count) for n players."""
    singles, idle = DOUBLES_DISTRIBUTION[n % 4]
    return n // 4, singles, idle


def _match_id(round_number: int, index: int) -> str:
    return f"r{round_number}m{index}"


def generate_singles_round(players: List[Player], round_number: int) -> Tuple[List[Match], List[str]]:
    """Pair players by roster order: 0 vs 1, 2 vs 3, ... The odd one out sits idle."""
    matches = []
    for i in range(len(players) // 2):
        p1, p2 = players[2 * i], players[2 * i + 1]
        matches.append(Match(
            id=_match_id(round_number, i + 1),
            round=round_number,
            players=[p1.id, p2.id],
            is_doubles=False,
        ))

    idle = [players[-1].id] if len(players) % 2 == 1 else []
    return matches, idle


def select_idle_players(players: List[Player], idle_count: int, idle_history: Dict[int, List[str]]) -> List[Player]:
    """Pick who sits out, favouring players who have never been idle."""
    if idle_count == 0:
        return []

    priorities = idle_priorities(players, idle_history)
    never_idle = [p for p in priorities if not p.has_been_idle]
    been_idle = sorted((p for p in priorities if p.has_been_idle), key=lambda p: p.idle_count)
    everyone_else_idle = len(players) <= len(been_idle) + idle_count

    candidates = never_idle if never_idle else been_idle
    selected = [
        c.player for c in candidates[:idle_count]
        if not c.has_been_idle or everyone_else_idle
    ]
    if len(selected) != idle_count:
        raise GeneratorConsistencyError(
            f"needed {idle_count} idle players, could only select {len(selected)}"
        )
    return selected


def generate_doubles_round(
    players: List[Player],
    round_number: int,
    idle_history: Dict[int, List[str]],
    rng: Optional[random.Random] = None,
) -> Tuple[List[Match], List[str]]:
    """Doubles round: fill doubles courts, one singles match for a leftover pair, rotate byes."""
    rng = rng or random
    doubles, singles, idle_count = doubles_distribution(len(players))
    logger.debug(
        "Round %d: %d players -> %d doubles, %d singles, %d idle",
        round_number, len(players), doubles, singles, idle_count,
    )

    idle_players = select_idle_players(players, idle_count, idle_history)
    idle_ids = {p.id for p in idle_players}
    available = [p for p in players if p.id not in idle_ids]
    rng.shuffle(available)

    matches = []
    while len(matches) < doubles and len(available) >= 4:
        team1, team2 = available[:2], available[2:4]
        available = available[4:]
        matches.append(Match(
            id=_match_id(round_number, len(matches) + 1),
            round=round_number,
            players=[team1[0].id, team1[1].id, team2[0].id, team2[1].id],
            is_doubles=True,
        ))

    singles_played = 0
    while singles_played < singles and len(available) >= 2:
        p1, p2 = available[:2]
        available = available[2:]
        matches.append(Match(
            id=_match_id(round_number, len(matches) + 1),
            round=round_number,
            players=[p1.id, p2.id],
            is_doubles=False,
            is_singles=True,
        ))
        singles_played += 1

    if available:
        raise GeneratorConsistencyError(
            f"round {round_number}: {len(available)} players left without a match"
        )

    logger.debug(
        "Final round %d: %d matches (%d doubles, %d singles), %d idle",
        round_number, len(matches), doubles, singles_played, len(idle_players),
    )
    return matches, [p.id for p in idle_players]


def generate_round(
    players: List[Player],
    mode: str,
    round_number: int,
    idle_history: Dict[int, List[str]],
    rng: Optional[random.Random] = None,
) -> Tuple[List[Match], List[str]]:
    """Generate one round's matches and idle list."""
    if mode == SINGLES:
        return generate_singles_round(players, round_number)
    if mode == DOUBLES:
        return generate_doubles_round(players, round_number, idle_history, rng)
    raise InvalidConfigurationError(f"Unknown mode {mode!r}")


def generate_round_robin_rounds(
    players: List[Player],
    mode: str,
    total_rounds: int,
    rng: Optional[random.Random] = None,
) -> Tuple[List[Match], Dict[int, List[str]]]:
    """Generate the full schedule for rounds 1..total_rounds."""
    matches = []
    idle_history: Dict[int, List[str]] = {}

    for round_number in range(1, total_rounds + 1):
        round_matches, idle = generate_round(players, mode, round_number, idle_history, rng)
        matches.extend(round_matches)
        idle_history[round_number] = idle

    return matches, idle_history


def calculate_standings(tournament: Tournament) -> List[dict]:
    """Rank players by average points per match, then by wins."""
    ranked = sorted(tournament.players, key=lambda p: (-p.average_points, -p.wins))
    standings = []
    for player in ranked:
        standings.append({
            "id": player.id,
            "name": player.name,
            "matches_played": player.matches_played,
            "wins": player.wins,
            "total_points_scored": player.total_points_scored,
            "average_points": round(player.average_points, 2),
        })
    for i, s in enumerate(standings):
        s["rank"] = i + 1
    return standings
