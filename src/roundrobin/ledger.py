"""Per-player statistics derived from completed matches.

Stats are never carried forward as deltas. A player's record is always the
sum over the completed matches that currently include them, so editing a
past result and validating it again cannot double count.
"""

import logging
from typing import Iterable, Tuple

from roundrobin.models import Match, Player, PlayerStats, Tournament

logger = logging.getLogger(__name__)


def derive_outcome(match: Match, slot: int) -> Tuple[int, int, bool]:
    """Return (score for, score against, won) for the player at ``slot``."""
    if match.is_doubles:
        team1 = slot < 2
        score_for = match.scores[0] if team1 else match.scores[1]
        score_against = match.scores[1] if team1 else match.scores[0]
    else:
        score_for = match.scores[slot]
        score_against = match.scores[1 - slot]
    return score_for, score_against, score_for > score_against


def _update_player_stats(stats: PlayerStats, score_for: int, score_against: int):
    stats.matches_played += 1
    stats.games_played += 1
    stats.total_points_scored += score_for
    if score_for > score_against:
        stats.wins += 1


def apply_match(stats: PlayerStats, match: Match, player_id: str) -> PlayerStats:
    if player_id not in match.players:
        return stats
    score_for, score_against, _ = derive_outcome(match, match.players.index(player_id))
    _update_player_stats(stats, score_for, score_against)
    return stats


def recompute(player: Player, completed_matches: Iterable[Match]) -> PlayerStats:
    """Fold every completed match containing ``player`` into a fresh record."""
    stats = PlayerStats()
    for match in completed_matches:
        if match.completed:
            apply_match(stats, match, player.id)
    return stats


def validate_match(tournament: Tournament, match: Match):
    """Rebuild the records of everyone in ``match`` from scratch.

    Each player is refolded over all other completed matches that still
    include them, then the (possibly edited) match is applied on top.
    """
    others = [m for m in tournament.matches if m.completed and m.id != match.id]
    for player_id in dict.fromkeys(match.players):
        player = tournament.get_player(player_id)
        if player is None:
            logger.debug("Match %s references unknown player %s", match.id, player_id)
            continue
        stats = recompute(player, others)
        if match.completed:
            apply_match(stats, match, player_id)
        player.set_stats(stats)
