"""Where tournament snapshots live between requests.

The router loads a tournament, applies one command and saves the result.
Saving is not transactional with the command: a failure between the two
loses that command only.
"""

import copy
import logging
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from database import MatchORM, PlayerORM, TournamentORM
from roundrobin.models import Match, MatchFormat, Player, Tournament
from roundrobin.snapshot import export_snapshot, import_snapshot

logger = logging.getLogger(__name__)


class MemoryStore:
    """Exported snapshots kept in a dict, keyed by tournament id."""

    def __init__(self):
        self.tournaments_db: Dict[str, dict] = {}

    async def get(self, tid: str) -> Optional[Tournament]:
        data = self.tournaments_db.get(tid)
        if data is None:
            return None
        return import_snapshot(copy.deepcopy(data))

    async def save(self, tournament: Tournament):
        self.tournaments_db[tournament.id] = export_snapshot(tournament)

    async def delete(self, tid: str):
        self.tournaments_db.pop(tid, None)


def _orm_to_tournament(t_row: TournamentORM) -> Tournament:
    """Convert SQLAlchemy ORM rows into the Tournament dataclass."""
    players = [
        Player(
            id=p.id, name=p.name,
            matches_played=p.matches_played, wins=p.wins,
            total_points_scored=p.total_points_scored,
            games_played=p.games_played,
            idle_rounds=list(p.idle_rounds or []),
        )
        for p in t_row.players
    ]
    matches = [
        Match(
            id=m.id, round=m.round,
            players=list(m.players), scores=list(m.scores),
            completed=m.completed,
            is_doubles=m.is_doubles, is_singles=m.is_singles,
        )
        for m in t_row.matches
    ]
    return Tournament(
        id=t_row.id, name=t_row.name, mode=t_row.mode,
        total_rounds=t_row.total_rounds,
        players=players, matches=matches,
        current_round=t_row.current_round,
        match_format=MatchFormat(
            points_to_win=t_row.points_to_win,
            require_two_point_lead=t_row.require_two_point_lead,
        ),
        is_active=t_row.is_active,
        created_at=t_row.created_at,
        updated_at=t_row.updated_at,
        idle_history={int(r): list(ids) for r, ids in (t_row.idle_history or {}).items()},
    )


def _tournament_to_orm(t: Tournament) -> TournamentORM:
    t_orm = TournamentORM(
        id=t.id, mode=t.mode, name=t.name,
        current_round=t.current_round, total_rounds=t.total_rounds,
        points_to_win=t.match_format.points_to_win,
        require_two_point_lead=t.match_format.require_two_point_lead,
        is_active=t.is_active,
        idle_history={str(r): list(ids) for r, ids in t.idle_history.items()},
        created_at=t.created_at, updated_at=t.updated_at,
    )
    t_orm.players = [
        PlayerORM(
            id=p.id, tournament_id=t.id, position=i, name=p.name,
            matches_played=p.matches_played, wins=p.wins,
            total_points_scored=p.total_points_scored,
            games_played=p.games_played,
            idle_rounds=list(p.idle_rounds),
        )
        for i, p in enumerate(t.players)
    ]
    t_orm.matches = [
        MatchORM(
            id=m.id, tournament_id=t.id, round=m.round, position=i,
            players=list(m.players), scores=list(m.scores),
            completed=m.completed,
            is_doubles=m.is_doubles, is_singles=m.is_singles,
        )
        for i, m in enumerate(t.matches)
    ]
    return t_orm


class DatabaseStore:
    """Snapshots persisted as tournament, player and match rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, tid: str) -> Optional[Tournament]:
        row = await self.session.get(TournamentORM, tid)
        if not row:
            return None
        return _orm_to_tournament(row)

    async def save(self, tournament: Tournament):
        # rows are replaced wholesale
        await self.delete(tournament.id)
        self.session.add(_tournament_to_orm(tournament))
        await self.session.commit()
        logger.debug("Saved tournament %s (%d matches)", tournament.id, len(tournament.matches))

    async def delete(self, tid: str):
        row = await self.session.get(TournamentORM, tid)
        if row:
            await self.session.delete(row)
            await self.session.flush()
