from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import ErrorCode, SessionCorrupt, SessionError
from ..game.models import Session
from ..game.service import GameService
from ..game.state import (
    buzz_entry_public_state,
    player_public_state,
    round_public_state,
    session_public_state,
    team_public_state,
)
from .events import Action, ServerEvent, session_room
from .payloads import (
    optional_dict,
    optional_str,
    require_dict,
    require_int,
    require_name,
    require_session_code,
    require_str,
)

logger = logging.getLogger(__name__)


def close_session(socketio: SocketIO, service: GameService, code: str, reason: str) -> None:
    """Tell the room the session is over, then drop it and the room."""
    room = session_room(code)
    socketio.emit(ServerEvent.SESSION_ENDED.value, {"code": code, "reason": reason}, to=room)
    service.registry.end(code)
    socketio.close_room(room)


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    registry = service.registry
    directory = service.directory
    rounds = service.rounds

    def _broadcast(event: ServerEvent, data: Any, code: str) -> None:
        socketio.emit(event.value, data, to=session_room(code))

    def _broadcast_session(session: Session) -> None:
        _broadcast(ServerEvent.SESSION_UPDATED, session_public_state(session), session.code)

    def _broadcast_round(event: ServerEvent, session: Session) -> None:
        with session.lock:
            payload = round_public_state(session.round)
        _broadcast(event, payload, session.code)

    def _player_payload(session: Session, player) -> dict:
        with session.lock:
            return player_public_state(player, session.round)

    def _host_session() -> Session:
        session = registry.hosted_by(request.sid)
        if session is None:
            raise SessionError(ErrorCode.NOT_HOST)
        return session

    def _guarded(handler: Callable[[Any], Any]) -> Callable[..., Any]:
        @functools.wraps(handler)
        def wrapper(data=None):
            try:
                return handler(data)
            except SessionError as err:
                emit(ServerEvent.SESSION_ERROR.value, err.to_dict())
                return {"ok": False, "error": err.code.value}
            except SessionCorrupt as err:
                logger.exception("Ending corrupt session %s", err.code)
                close_session(socketio, service, err.code, reason="corrupt")
                return {"ok": False, "error": "SESSION_CORRUPT"}

        return wrapper

    # ------------------------------------------------------------------
    # Session

    def host_create(data):
        overrides = optional_dict(data)
        settings = registry.default_settings.merged(overrides)
        session = registry.create_session(request.sid, settings)
        join_room(session_room(session.code))
        emit(
            ServerEvent.SESSION_CREATED.value,
            {"sessionCode": session.code, "session": session_public_state(session)},
        )
        return {"ok": True, "sessionCode": session.code}

    def host_update_settings(data):
        session = _host_session()
        overrides = require_dict(data)
        with session.lock:
            registry.update_settings(session, session.settings.merged(overrides))
        _broadcast_session(session)
        return {"ok": True}

    def host_end_session(data):
        session = _host_session()
        close_session(socketio, service, session.code, reason="host")
        return {"ok": True}

    # ------------------------------------------------------------------
    # Players

    def player_join(data):
        payload = require_dict(data)
        code = require_session_code(payload)
        name = require_name(payload, "displayName")

        session = registry.get(code)
        if session is None:
            raise SessionError(ErrorCode.SESSION_NOT_FOUND)

        previous = directory.release_connection(request.sid)
        if previous is not None:
            old_session, old_player = previous
            leave_room(session_room(old_session.code))
            _broadcast(ServerEvent.PLAYER_LEFT, {"playerId": old_player.id}, old_session.code)
            _broadcast_session(old_session)

        player = directory.add_player(session, request.sid, name)
        room = session_room(code)
        join_room(room)
        emit(
            ServerEvent.SESSION_JOINED.value,
            {"playerId": player.id, "session": session_public_state(session)},
        )
        emit(ServerEvent.PLAYER_JOINED.value, _player_payload(session, player), to=room, include_self=False)
        return {"ok": True, "playerId": player.id}

    def player_rejoin(data):
        payload = require_dict(data)
        code = require_session_code(payload)
        player_id = require_str(payload, "playerId")

        session, player = directory.rejoin(code, player_id, request.sid)
        room = session_room(code)
        join_room(room)
        emit(
            ServerEvent.SESSION_REJOINED.value,
            {"playerId": player.id, "session": session_public_state(session)},
        )
        emit(ServerEvent.PLAYER_UPDATED.value, _player_payload(session, player), to=room, include_self=False)
        return {"ok": True, "playerId": player.id}

    def player_set_team(data):
        payload = require_dict(data)
        team_id = optional_str(payload, "teamId")

        resolved = registry.resolve(request.sid)
        if resolved is None:
            raise SessionError(ErrorCode.PLAYER_NOT_FOUND)
        session, player = resolved

        if not directory.assign_player_to_team(session, player.id, team_id):
            return {"ok": False}
        _broadcast(ServerEvent.PLAYER_UPDATED, _player_payload(session, player), session.code)
        return {"ok": True}

    def player_buzz(data):
        try:
            session, entry = rounds.process_buzz(request.sid)
        except SessionError as err:
            # Not echoed back: spammed buzzers would drown in errors.
            logger.debug("Buzz from %s rejected: %s", request.sid, err.code.value)
            return {"ok": False}

        _broadcast(ServerEvent.ROUND_BUZZ_RECEIVED, buzz_entry_public_state(entry), session.code)
        if entry.position == 1:
            with session.lock:
                locked = {
                    "activePlayerId": session.round.active_player_id,
                    "queue": [buzz_entry_public_state(e) for e in session.round.buzz_queue],
                }
            _broadcast(ServerEvent.ROUND_LOCKED, locked, session.code)
        return {"ok": True, "position": entry.position}

    def host_kick_player(data):
        session = _host_session()
        player_id = require_str(require_dict(data), "playerId")

        player = directory.remove_player(session, player_id)
        if player is None:
            return {"ok": False}

        socketio.emit(ServerEvent.PLAYER_KICKED.value, {"playerId": player.id}, to=player.sid)
        leave_room(session_room(session.code), sid=player.sid)
        _broadcast(ServerEvent.PLAYER_LEFT, {"playerId": player.id}, session.code)
        _broadcast_session(session)
        return {"ok": True}

    # ------------------------------------------------------------------
    # Rounds

    def host_start_round(data):
        session = _host_session()
        rounds.start_round(session)
        _broadcast_round(ServerEvent.ROUND_STARTED, session)
        return {"ok": True}

    def host_mark_correct(data):
        session = _host_session()
        result = rounds.mark_correct(session)
        if result is None:
            return {"ok": False}
        _broadcast(
            ServerEvent.ROUND_CORRECT,
            {"playerId": result.winner_id, "playerName": result.winner_name, "teamId": result.team_id},
            session.code,
        )
        _broadcast_session(session)
        return {"ok": True}

    def host_mark_pass(data):
        session = _host_session()
        result = rounds.mark_pass(session)
        if result is None:
            return {"ok": False}
        passed_id, new_active_id = result
        _broadcast(
            ServerEvent.ROUND_PLAYER_PASSED,
            {"passedPlayerId": passed_id, "newActivePlayerId": new_active_id},
            session.code,
        )
        _broadcast_session(session)
        return {"ok": True}

    def host_skip_player(data):
        session = _host_session()
        player_id = require_str(require_dict(data), "playerId")
        if not rounds.skip_player(session, player_id):
            return {"ok": False}
        _broadcast_session(session)
        return {"ok": True}

    def host_reset_round(data):
        session = _host_session()
        rounds.reset_round(session)
        _broadcast_round(ServerEvent.ROUND_RESET, session)
        return {"ok": True}

    # ------------------------------------------------------------------
    # Teams

    def host_add_team(data):
        session = _host_session()
        name = require_name(require_dict(data), "name")
        team = directory.add_team(session, name)
        _broadcast(ServerEvent.TEAM_ADDED, team_public_state(team), session.code)
        return {"ok": True, "teamId": team.id}

    def host_remove_team(data):
        session = _host_session()
        team_id = require_str(require_dict(data), "teamId")
        if not directory.remove_team(session, team_id):
            return {"ok": False}
        _broadcast(ServerEvent.TEAM_REMOVED, {"teamId": team_id}, session.code)
        # Members lost their team; resend everything.
        _broadcast_session(session)
        return {"ok": True}

    def host_assign_team(data):
        session = _host_session()
        payload = require_dict(data)
        player_id = require_str(payload, "playerId")
        team_id = optional_str(payload, "teamId")

        player = directory.assign_player_to_team(session, player_id, team_id)
        if player is None:
            return {"ok": False}
        _broadcast(ServerEvent.PLAYER_UPDATED, _player_payload(session, player), session.code)
        return {"ok": True}

    def host_update_score(data):
        session = _host_session()
        payload = require_dict(data)
        team_id = require_str(payload, "teamId")
        delta = require_int(payload, "delta")

        team = directory.update_score(session, team_id, delta)
        if team is None:
            return {"ok": False}
        _broadcast(ServerEvent.TEAM_SCORE_UPDATED, {"teamId": team.id, "score": team.score}, session.code)
        return {"ok": True}

    # ------------------------------------------------------------------
    # Connection lifecycle

    def on_connect(auth=None):
        logger.debug("Client connected: %s", request.sid)

    def on_disconnect(reason=None):
        sid = request.sid
        logger.debug("Client disconnected: %s (%s)", sid, reason)

        hosted = registry.hosted_by(sid)
        if hosted is not None:
            # Kept alive for a host reconnect; the stale sweep ends it otherwise.
            logger.info("Host disconnected from session %s", hosted.code)

        result = directory.disconnect(sid)
        if result is not None:
            session, player = result
            _broadcast(ServerEvent.PLAYER_UPDATED, _player_payload(session, player), session.code)

    handlers: dict[Action, Callable[[Any], Any]] = {
        Action.HOST_CREATE: host_create,
        Action.HOST_UPDATE_SETTINGS: host_update_settings,
        Action.PLAYER_JOIN: player_join,
        Action.PLAYER_REJOIN: player_rejoin,
        Action.PLAYER_SET_TEAM: player_set_team,
        Action.PLAYER_BUZZ: player_buzz,
        Action.HOST_START_ROUND: host_start_round,
        Action.HOST_MARK_CORRECT: host_mark_correct,
        Action.HOST_MARK_PASS: host_mark_pass,
        Action.HOST_SKIP_PLAYER: host_skip_player,
        Action.HOST_RESET_ROUND: host_reset_round,
        Action.HOST_END_SESSION: host_end_session,
        Action.HOST_ADD_TEAM: host_add_team,
        Action.HOST_REMOVE_TEAM: host_remove_team,
        Action.HOST_ASSIGN_TEAM: host_assign_team,
        Action.HOST_UPDATE_SCORE: host_update_score,
        Action.HOST_KICK_PLAYER: host_kick_player,
    }
    missing = [action.value for action in Action if action not in handlers]
    if missing:
        raise RuntimeError(f"no handler for actions: {', '.join(missing)}")

    socketio.on_event("connect", on_connect)
    socketio.on_event("disconnect", on_disconnect)
    for action, handler in handlers.items():
        socketio.on_event(action.value, _guarded(handler))
