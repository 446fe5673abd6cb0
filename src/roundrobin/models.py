from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

SINGLES = "singles"
DOUBLES = "doubles"
MODES = (SINGLES, DOUBLES)


def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PlayerStats:
    matches_played: int = 0
    wins: int = 0
    total_points_scored: int = 0
    games_played: int = 0


@dataclass
class Player:
    id: str
    name: str
    matches_played: int = 0
    wins: int = 0
    total_points_scored: int = 0
    games_played: int = 0
    idle_rounds: List[int] = field(default_factory=list)

    def set_stats(self, stats: PlayerStats):
        self.matches_played = stats.matches_played
        self.wins = stats.wins
        self.total_points_scored = stats.total_points_scored
        self.games_played = stats.games_played

    @property
    def average_points(self) -> float:
        if not self.matches_played:
            return 0
        return self.total_points_scored / self.matches_played


@dataclass
class Match:
    id: str
    round: int
    players: List[str]  # player ids; doubles: [0, 1] team 1, [2, 3] team 2
    scores: List[int] = field(default_factory=lambda: [0, 0])
    completed: bool = False
    is_doubles: bool = False
    is_singles: Optional[bool] = None  # singles match inside a doubles round


@dataclass
class MatchFormat:
    points_to_win: int = 21
    require_two_point_lead: bool = True


@dataclass
class Tournament:
    id: str
    name: str
    mode: str  # singles, doubles
    total_rounds: int
    players: List[Player] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)
    current_round: int = 1
    match_format: MatchFormat = field(default_factory=MatchFormat)
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    idle_history: Dict[int, List[str]] = field(default_factory=dict)  # round -> player ids

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def get_match(self, match_id: str) -> Optional[Match]:
        return next((m for m in self.matches if m.id == match_id), None)

    def round_matches(self, round_number: int) -> List[Match]:
        return [m for m in self.matches if m.round == round_number]
