import asyncio
import random

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from database import Base
from roundrobin.state import TournamentStateMachine
from roundrobin.store import DatabaseStore, MemoryStore, _orm_to_tournament, _tournament_to_orm


def make_tournament():
    machine = TournamentStateMachine(rng=random.Random(5))
    t = machine.create_tournament("League", ["A", "B", "C", "D", "E", "F"], "doubles", 3)
    match = t.matches[0]
    machine.update_score(match.id, 0, 21)
    machine.update_score(match.id, 1, 12)
    machine.validate_match(match.id)
    return machine.tournament


def test_memory_store_round_trip():
    store = MemoryStore()
    t = make_tournament()

    async def run():
        await store.save(t)
        loaded = await store.get(t.id)
        await store.delete(t.id)
        return loaded, await store.get(t.id)

    loaded, gone = asyncio.run(run())
    assert loaded == t
    assert loaded is not t
    assert gone is None


def test_memory_store_returns_copies():
    store = MemoryStore()
    t = make_tournament()

    async def run():
        await store.save(t)
        first = await store.get(t.id)
        first.players[0].wins = 99
        return await store.get(t.id)

    assert asyncio.run(run()).players[0].wins == t.players[0].wins


def test_orm_rows_keep_order_and_stats():
    t = make_tournament()
    row = _tournament_to_orm(t)

    assert [p.position for p in row.players] == list(range(len(t.players)))
    assert row.idle_history == {str(r): ids for r, ids in t.idle_history.items()}
    assert _orm_to_tournament(row) == t


# ======================================================================
# DatabaseStore (SQLite stands in for PostgreSQL)
# ======================================================================


def _rows(t):
    return (
        [(m.id, m.round, m.players, m.scores, m.completed, m.is_doubles, m.is_singles) for m in t.matches],
        [(p.id, p.name, p.matches_played, p.wins, p.total_points_scored, p.idle_rounds) for p in t.players],
        t.idle_history,
    )


def test_database_store_save_reload_and_resave(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roundrobin.db'}", poolclass=NullPool)
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    t = make_tournament()

    async def run():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with sessions() as session:
            await DatabaseStore(session).save(t)

        # load, edit and save again in one session: rows are replaced under the same keys
        async with sessions() as session:
            store = DatabaseStore(session)
            machine = TournamentStateMachine(await store.get(t.id))
            match = machine.tournament.matches[1]
            machine.update_score(match.id, 1, 21)
            machine.validate_match(match.id)
            await store.save(machine.tournament)
            edited = machine.tournament

        async with sessions() as session:
            store = DatabaseStore(session)
            reloaded = await store.get(t.id)
            await store.delete(t.id)
            await session.commit()
            gone = await store.get(t.id)

        await engine.dispose()
        return edited, reloaded, gone

    edited, reloaded, gone = asyncio.run(run())
    assert len(reloaded.matches) == len(t.matches)
    assert _rows(reloaded) == _rows(edited)
    assert reloaded.matches[1].completed
    assert gone is None
