"""Plain structured snapshots of a tournament, for export and import.

The field names follow the transfer format used by exported tournament
files (camelCase keys, ISO-8601 timestamps, idle history keyed by round
number as a string). Importing performs no schedule validation; only the
structure is checked.
"""

import json
import re
from datetime import datetime
from typing import Any, Dict

from roundrobin.exceptions import SnapshotImportError
from roundrobin.models import MODES, Match, MatchFormat, Player, Tournament, utcnow


def _player_to_dict(p: Player) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "matchesPlayed": p.matches_played,
        "wins": p.wins,
        "totalPointsScored": p.total_points_scored,
        "gamesPlayed": p.games_played,
        "idleRounds": list(p.idle_rounds),
    }


def _match_to_dict(m: Match) -> dict:
    data = {
        "id": m.id,
        "round": m.round,
        "players": list(m.players),
        "scores": list(m.scores),
        "isCompleted": m.completed,
        "isDoubles": m.is_doubles,
    }
    if m.is_singles is not None:
        data["isSingles"] = m.is_singles
    return data


def export_snapshot(tournament: Tournament) -> Dict[str, Any]:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "players": [_player_to_dict(p) for p in tournament.players],
        "matches": [_match_to_dict(m) for m in tournament.matches],
        "currentRound": tournament.current_round,
        "totalRounds": tournament.total_rounds,
        "mode": tournament.mode,
        "matchFormat": {
            "pointsToWin": tournament.match_format.points_to_win,
            "requireTwoPointLead": tournament.match_format.require_two_point_lead,
        },
        "isActive": tournament.is_active,
        "createdAt": tournament.created_at.isoformat(),
        "updatedAt": tournament.updated_at.isoformat(),
        "idleHistory": {str(r): list(ids) for r, ids in tournament.idle_history.items()},
    }


def _parse_time(value) -> datetime:
    if value is None:
        return utcnow()
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def import_snapshot(data: Dict[str, Any]) -> Tournament:
    """Build a tournament from an exported snapshot, verbatim."""
    try:
        if data["mode"] not in MODES:
            raise SnapshotImportError(f"Invalid tournament file: unknown mode {data['mode']!r}")
        players = [
            Player(
                id=str(p["id"]),
                name=str(p["name"]),
                matches_played=int(p.get("matchesPlayed", 0)),
                wins=int(p.get("wins", 0)),
                total_points_scored=int(p.get("totalPointsScored", 0)),
                games_played=int(p.get("gamesPlayed", 0)),
                idle_rounds=[int(r) for r in p.get("idleRounds", [])],
            )
            for p in data["players"]
        ]
        matches = [
            Match(
                id=str(m["id"]),
                round=int(m["round"]),
                players=[str(pid) for pid in m["players"]],
                scores=[int(s) for s in m["scores"]],
                completed=bool(m.get("isCompleted", False)),
                is_doubles=bool(m.get("isDoubles", False)),
                is_singles=m.get("isSingles"),
            )
            for m in data["matches"]
        ]
        match_format = data.get("matchFormat") or {}
        return Tournament(
            id=str(data["id"]),
            name=str(data["name"]),
            mode=str(data["mode"]),
            total_rounds=int(data["totalRounds"]),
            players=players,
            matches=matches,
            current_round=int(data["currentRound"]),
            match_format=MatchFormat(
                points_to_win=int(match_format.get("pointsToWin", 21)),
                require_two_point_lead=bool(match_format.get("requireTwoPointLead", True)),
            ),
            is_active=bool(data.get("isActive", True)),
            created_at=_parse_time(data.get("createdAt")),
            updated_at=_parse_time(data.get("updatedAt")),
            idle_history={
                int(r): [str(pid) for pid in ids]
                for r, ids in (data.get("idleHistory") or {}).items()
            },
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SnapshotImportError(f"Invalid tournament file: {e}") from e


def dumps(tournament: Tournament) -> str:
    return json.dumps(export_snapshot(tournament), indent=2)


def loads(raw) -> Tournament:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SnapshotImportError(f"Invalid tournament file: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotImportError("Invalid tournament file: expected an object")
    return import_snapshot(data)


def export_filename(tournament: Tournament) -> str:
    slug = re.sub(r"[^a-z0-9]", "_", tournament.name, flags=re.IGNORECASE).lower()
    return f"tournament-{slug}-{utcnow().date().isoformat()}.json"
