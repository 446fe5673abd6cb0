"""The single owner of the active tournament.

Every command works on a copy of the current tournament and swaps it in
only when it completes, so a command that raises leaves the previous
version in place and readers never see a half-applied change. Commands
must be serialized by the caller; the machine holds no lock.
"""

import copy
import logging
import random
from typing import List, Optional

from roundrobin import ledger, snapshot
from roundrobin.exceptions import (
    InvalidCommandError,
    InvalidConfigurationError,
    MatchNotFoundError,
    NoActiveTournamentError,
)
from roundrobin.functions import generate_round, generate_round_robin_rounds
from roundrobin.models import (
    DOUBLES,
    MODES,
    SINGLES,
    Match,
    MatchFormat,
    Player,
    Tournament,
    generate_id,
    utcnow,
)

logger = logging.getLogger(__name__)

MIN_PLAYERS = {SINGLES: 2, DOUBLES: 4}


def _sync_idle_rounds(tournament: Tournament):
    for player in tournament.players:
        player.idle_rounds = sorted(
            r for r, ids in tournament.idle_history.items() if player.id in ids
        )


class TournamentStateMachine:
    def __init__(self, tournament: Optional[Tournament] = None, rng: Optional[random.Random] = None):
        self._tournament = tournament
        self._rng = rng

    @property
    def tournament(self) -> Optional[Tournament]:
        return self._tournament

    @property
    def active(self) -> bool:
        return self._tournament is not None

    # -- Helpers ---------------------------------------------------------------

    def _working_copy(self) -> Tournament:
        if self._tournament is None:
            raise NoActiveTournamentError("No tournament is loaded")
        return copy.deepcopy(self._tournament)

    def _commit(self, tournament: Tournament) -> Tournament:
        tournament.updated_at = utcnow()
        self._tournament = tournament
        return tournament

    @staticmethod
    def _find_match(tournament: Tournament, match_id: str) -> Match:
        match = tournament.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return match

    @staticmethod
    def _check_round(tournament: Tournament, round_number: int):
        if not 1 <= round_number <= tournament.total_rounds:
            raise InvalidCommandError(
                f"Round {round_number} is outside 1..{tournament.total_rounds}"
            )

    # -- Commands --------------------------------------------------------------

    def create_tournament(
        self,
        name: str,
        player_names: List[str],
        mode: str,
        total_rounds: int,
        match_format: Optional[MatchFormat] = None,
    ) -> Tournament:
        if mode not in MODES:
            raise InvalidConfigurationError(f"Unknown mode {mode!r}")
        names = [n.strip() for n in player_names if n and n.strip()]
        if len(names) < MIN_PLAYERS[mode]:
            raise InvalidConfigurationError(
                f"{mode} needs at least {MIN_PLAYERS[mode]} players, got {len(names)}"
            )
        if total_rounds < 1:
            raise InvalidConfigurationError("A tournament needs at least one round")

        players = [Player(id=generate_id(), name=n) for n in names]
        matches, idle_history = generate_round_robin_rounds(players, mode, total_rounds, self._rng)

        tournament = Tournament(
            id=generate_id(),
            name=name,
            mode=mode,
            total_rounds=total_rounds,
            players=players,
            matches=matches,
            current_round=1,
            match_format=match_format or MatchFormat(),
            idle_history=idle_history,
        )
        _sync_idle_rounds(tournament)
        logger.info(
            "Created %s tournament %s (%s): %d players, %d rounds, %d matches",
            mode, tournament.id, name, len(players), total_rounds, len(matches),
        )
        return self._commit(tournament)

    def update_score(self, match_id: str, slot: int, score: int) -> Match:
        """Overwrite one side's pending score. The ledger is untouched until validation."""
        if slot not in (0, 1):
            raise InvalidCommandError(f"Score slot must be 0 or 1, got {slot}")
        if score < 0:
            raise InvalidCommandError(f"Score cannot be negative, got {score}")

        t = self._working_copy()
        match = self._find_match(t, match_id)
        match.scores[slot] = score
        logger.debug("Match %s score slot %d -> %d", match_id, slot, score)
        self._commit(t)
        return match

    def validate_match(self, match_id: str) -> Match:
        t = self._working_copy()
        match = self._find_match(t, match_id)
        match.completed = True
        ledger.validate_match(t, match)
        logger.debug("Validated match %s: %s %s", match_id, match.players, match.scores)
        self._commit(t)
        return match

    def update_match_players(self, match_id: str, players: List[str]) -> Match:
        """Replace a match's lineup and reset it to an unplayed 0-0.

        Stats already credited to the previous lineup are not rewound.
        """
        if len(players) not in (2, 4):
            raise InvalidCommandError(f"A match takes 2 or 4 players, got {len(players)}")

        t = self._working_copy()
        match = self._find_match(t, match_id)
        match.players = list(players)
        match.is_doubles = len(players) == 4
        match.is_singles = len(players) == 2
        match.scores = [0, 0]
        match.completed = False
        self._commit(t)
        return match

    def update_idle_players(self, round_number: int, players: List[str]) -> Tournament:
        t = self._working_copy()
        self._check_round(t, round_number)
        t.idle_history[round_number] = list(players)
        _sync_idle_rounds(t)
        return self._commit(t)

    def regenerate_round(self, round_number: int) -> Tournament:
        """Throw away a round's matches and idle list and draw it again."""
        t = self._working_copy()
        self._check_round(t, round_number)
        history = {r: ids for r, ids in t.idle_history.items() if r < round_number}
        matches, idle = generate_round(t.players, t.mode, round_number, history, self._rng)

        t.matches = [m for m in t.matches if m.round != round_number] + matches
        t.idle_history[round_number] = idle
        _sync_idle_rounds(t)
        logger.info("Regenerated round %d of %s: %d matches, %d idle", round_number, t.id, len(matches), len(idle))
        return self._commit(t)

    def add_player(self, name: str) -> Player:
        name = (name or "").strip()
        if not name:
            raise InvalidCommandError("Player name cannot be empty")

        t = self._working_copy()
        player = Player(id=generate_id(), name=name)
        t.players.append(player)
        logger.info("Added player %s (%s) to %s", player.id, name, t.id)
        self._commit(t)
        return player

    def remove_player(self, player_id: str) -> Tournament:
        """Drop a player and every match they appear in. Rounds are not repaired."""
        t = self._working_copy()
        if t.get_player(player_id) is None:
            logger.debug("Player %s not in %s, nothing removed", player_id, t.id)
            return self._tournament

        before = len(t.matches)
        t.players = [p for p in t.players if p.id != player_id]
        t.matches = [m for m in t.matches if player_id not in m.players]
        logger.info("Removed player %s from %s (%d matches deleted)", player_id, t.id, before - len(t.matches))
        return self._commit(t)

    def next_round(self) -> Tournament:
        t = self._working_copy()
        t.current_round = min(t.current_round + 1, t.total_rounds)
        return self._commit(t)

    def reset(self):
        self._tournament = None

    def load(self, tournament: Tournament) -> Tournament:
        """Replace the active tournament verbatim, as read from an import."""
        self._tournament = tournament
        logger.info("Loaded tournament %s (%s)", tournament.id, tournament.name)
        return tournament

    def import_snapshot(self, data: dict) -> Tournament:
        return self.load(snapshot.import_snapshot(data))

    def export_snapshot(self) -> dict:
        if self._tournament is None:
            raise NoActiveTournamentError("No tournament is loaded")
        return snapshot.export_snapshot(self._tournament)
