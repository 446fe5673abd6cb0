import logging
from typing import Callable, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_session
from roundrobin.exceptions import (
    GeneratorConsistencyError,
    MatchNotFoundError,
    NoActiveTournamentError,
    TournamentError,
)
from roundrobin.functions import calculate_standings
from roundrobin.models import MODES, MatchFormat
from roundrobin.snapshot import export_filename, export_snapshot, loads
from roundrobin.state import TournamentStateMachine
from roundrobin.store import DatabaseStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/roundrobin', tags=['Round robin'])

# -- Helpers -------------------------------------------------------------------

async def get_store(session: AsyncSession = Depends(get_session)):
    return DatabaseStore(session)


def _http_error(e: TournamentError) -> HTTPException:
    if isinstance(e, (MatchNotFoundError, NoActiveTournamentError)):
        status_code = 404
    elif isinstance(e, GeneratorConsistencyError):
        status_code = 500
    else:
        status_code = 400
    logger.warning("Command rejected (%s): %s", type(e).__name__, e)
    return HTTPException(status_code=status_code, detail=str(e))


def _redirect(tid: str) -> RedirectResponse:
    return RedirectResponse(f"/roundrobin/tournament/{tid}", status_code=303)


async def _get_machine(tid: str, store) -> TournamentStateMachine:
    t = await store.get(tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return TournamentStateMachine(t)


async def _apply(tid: str, store, command: Callable[[TournamentStateMachine], object]) -> RedirectResponse:
    """Load, run one command, persist, redirect back to the tournament."""
    machine = await _get_machine(tid, store)
    try:
        command(machine)
    except TournamentError as e:
        raise _http_error(e) from e
    await store.save(machine.tournament)
    return _redirect(tid)

# -- Routes --------------------------------------------------------------------

@router.post("/tournament/create")
async def create_tournament(
    name: str = Form(...),
    mode: str = Form(...),
    total_rounds: int = Form(...),
    player_names: str = Form(...),
    points_to_win: int = Form(21),
    require_two_point_lead: bool = Form(True),
    store=Depends(get_store),
):
    names = [n.strip() for n in player_names.split("\n") if n.strip()]
    machine = TournamentStateMachine()
    try:
        t = machine.create_tournament(
            name, names, mode, total_rounds,
            MatchFormat(points_to_win=points_to_win, require_two_point_lead=require_two_point_lead),
        )
    except TournamentError as e:
        raise _http_error(e) from e

    await store.save(t)
    return _redirect(t.id)


@router.post("/tournament/import")
async def import_tournament(file: UploadFile = File(...), store=Depends(get_store)):
    machine = TournamentStateMachine()
    try:
        t = machine.load(loads(await file.read()))
    except TournamentError as e:
        raise _http_error(e) from e

    await store.save(t)
    return _redirect(t.id)


@router.head("/tournament/{tid}")
async def tournament_exists(tid: str, store=Depends(get_store)):
    if not await store.get(tid):
        raise HTTPException(status_code=404)
    return Response(status_code=200)


@router.get("/tournament/{tid}")
async def tournament_view(tid: str, store=Depends(get_store)):
    t = await store.get(tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")

    data = export_snapshot(t)
    return {
        "tournament": data,
        "standings": calculate_standings(t),
        "current_matches": [m for m in data["matches"] if m["round"] == t.current_round],
        "idle_players": t.idle_history.get(t.current_round, []),
    }


@router.get("/tournament/{tid}/export")
async def export_tournament(tid: str, store=Depends(get_store)):
    t = await store.get(tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return JSONResponse(
        content=export_snapshot(t),
        headers={"Content-Disposition": f'attachment; filename="{export_filename(t)}"'},
    )


@router.post("/tournament/{tid}/score")
async def submit_score(
    tid: str,
    match_id: str = Form(...),
    slot: int = Form(...),
    score: int = Form(...),
    store=Depends(get_store),
):
    return await _apply(tid, store, lambda m: m.update_score(match_id, slot, score))


@router.post("/tournament/{tid}/validate")
async def validate_match(tid: str, match_id: str = Form(...), store=Depends(get_store)):
    return await _apply(tid, store, lambda m: m.validate_match(match_id))


@router.post("/tournament/{tid}/match-players")
async def update_match_players(
    tid: str,
    match_id: str = Form(...),
    players: List[str] = Form(...),
    store=Depends(get_store),
):
    return await _apply(tid, store, lambda m: m.update_match_players(match_id, players))


@router.post("/tournament/{tid}/idle-players")
async def update_idle_players(
    tid: str,
    round: int = Form(...),
    players: List[str] = Form([]),
    store=Depends(get_store),
):
    return await _apply(tid, store, lambda m: m.update_idle_players(round, players))


@router.post("/tournament/{tid}/regenerate-round")
async def regenerate_round(tid: str, round: int = Form(...), store=Depends(get_store)):
    return await _apply(tid, store, lambda m: m.regenerate_round(round))


@router.post("/tournament/{tid}/players/add")
async def add_player(tid: str, name: str = Form(...), store=Depends(get_store)):
    return await _apply(tid, store, lambda m: m.add_player(name))


@router.post("/tournament/{tid}/players/remove")
async def remove_player(tid: str, player_id: str = Form(...), store=Depends(get_store)):
    return await _apply(tid, store, lambda m: m.remove_player(player_id))


@router.post("/tournament/{tid}/next-round")
async def next_round(tid: str, store=Depends(get_store)):
    return await _apply(tid, store, lambda m: m.next_round())


@router.post("/tournament/{tid}/delete")
async def delete_tournament(tid: str, store=Depends(get_store)):
    await store.delete(tid)
    return RedirectResponse("/roundrobin/", status_code=303)


@router.get("/")
async def index():
    return {"modes": list(MODES)}
