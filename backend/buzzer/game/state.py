from __future__ import annotations

from .models import BuzzEntry, Player, PlayerStatus, RoundResult, RoundState, Session, SessionSettings, Team


def player_status(player_id: str, round_state: RoundState) -> PlayerStatus:
    """What ``player_id`` sees on their buzzer right now."""
    if round_state.status in ("waiting", "ended"):
        return "waiting"
    if round_state.active_player_id == player_id:
        return "active"
    if round_state.entry_for(player_id) is not None:
        return "queued"
    if round_state.status == "open":
        return "ready"
    return "waiting"


def settings_public_state(settings: SessionSettings) -> dict:
    return {
        "teamModeEnabled": settings.team_mode_enabled,
        "oneBuzzPerTeam": settings.one_buzz_per_team,
        "allowLateBuzzes": settings.allow_late_buzzes,
        "showQueueToPlayers": settings.show_queue_to_players,
        "maxPlayersPerSession": settings.max_players_per_session,
        "buzzCooldownMs": settings.buzz_cooldown_ms,
    }


def team_public_state(team: Team) -> dict:
    return {"id": team.id, "name": team.name, "color": team.color, "score": team.score}


def player_public_state(player: Player, round_state: RoundState) -> dict:
    # The connection id stays server-side.
    return {
        "id": player.id,
        "displayName": player.display_name,
        "teamId": player.team_id,
        "isConnected": player.connected,
        "lastSeen": player.last_seen_ms,
        "status": player_status(player.id, round_state),
    }


def buzz_entry_public_state(entry: BuzzEntry) -> dict:
    return {
        "playerId": entry.player_id,
        "playerName": entry.player_name,
        "teamId": entry.team_id,
        "teamName": entry.team_name,
        "teamColor": entry.team_color,
        "timestamp": entry.timestamp_ms,
        "position": entry.position,
    }


def round_public_state(round_state: RoundState) -> dict:
    return {
        "status": round_state.status,
        "questionNumber": round_state.question_number,
        "startedAt": round_state.started_at_ms,
        "lockedAt": round_state.locked_at_ms,
        "activePlayerId": round_state.active_player_id,
        "buzzQueue": [buzz_entry_public_state(e) for e in round_state.buzz_queue],
    }


def round_result_public_state(result: RoundResult) -> dict:
    return {
        "questionNumber": result.question_number,
        "winnerId": result.winner_id,
        "winnerName": result.winner_name,
        "teamId": result.team_id,
        "buzzCount": result.buzz_count,
        "duration": result.duration_ms,
    }


def session_public_state(session: Session) -> dict:
    with session.lock:
        return {
            "code": session.code,
            "createdAt": session.created_at_ms,
            "settings": settings_public_state(session.settings),
            "teams": [team_public_state(t) for t in session.teams],
            "players": [player_public_state(p, session.round) for p in session.players.values()],
            "round": round_public_state(session.round),
            "roundHistory": [round_result_public_state(r) for r in session.round_history],
        }
