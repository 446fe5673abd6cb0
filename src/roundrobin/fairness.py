from dataclasses import dataclass
from typing import Dict, Iterable, List

from roundrobin.models import Player


@dataclass
class IdlePriority:
    player: Player
    has_been_idle: bool
    idle_count: int


def previously_idle(idle_history: Dict[int, List[str]]) -> set:
    """Ids of everyone idle in at least one recorded round."""
    return {pid for round_idle in idle_history.values() for pid in round_idle}


def idle_priorities(players: Iterable[Player], idle_history: Dict[int, List[str]]) -> List[IdlePriority]:
    """Idle standing of each player, in roster order, from the authoritative history."""
    idle_before = previously_idle(idle_history)
    return [
        IdlePriority(
            player=p,
            has_been_idle=p.id in idle_before,
            idle_count=sum(1 for round_idle in idle_history.values() if p.id in round_idle),
        )
        for p in players
    ]
