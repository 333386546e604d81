from __future__ import annotations

from enum import Enum


class Action(str, Enum):
    """Inbound client actions. Every member must have a registered handler."""

    HOST_CREATE = "host:create"
    HOST_UPDATE_SETTINGS = "host:updateSettings"
    PLAYER_JOIN = "player:join"
    PLAYER_REJOIN = "player:rejoin"
    PLAYER_SET_TEAM = "player:setTeam"
    PLAYER_BUZZ = "player:buzz"
    HOST_START_ROUND = "host:startRound"
    HOST_MARK_CORRECT = "host:markCorrect"
    HOST_MARK_PASS = "host:markPass"
    HOST_SKIP_PLAYER = "host:skipPlayer"
    HOST_RESET_ROUND = "host:resetRound"
    HOST_END_SESSION = "host:endSession"
    HOST_ADD_TEAM = "host:addTeam"
    HOST_REMOVE_TEAM = "host:removeTeam"
    HOST_ASSIGN_TEAM = "host:assignPlayerToTeam"
    HOST_UPDATE_SCORE = "host:updateTeamScore"
    HOST_KICK_PLAYER = "host:kickPlayer"


class ServerEvent(str, Enum):
    SESSION_CREATED = "session:created"
    SESSION_JOINED = "session:joined"
    SESSION_REJOINED = "session:rejoined"
    SESSION_UPDATED = "session:updated"
    SESSION_ENDED = "session:ended"
    SESSION_ERROR = "session:error"
    PLAYER_JOINED = "player:joined"
    PLAYER_LEFT = "player:left"
    PLAYER_UPDATED = "player:updated"
    PLAYER_KICKED = "player:kicked"
    ROUND_STARTED = "round:started"
    ROUND_BUZZ_RECEIVED = "round:buzzReceived"
    ROUND_LOCKED = "round:locked"
    ROUND_PLAYER_PASSED = "round:playerPassed"
    ROUND_CORRECT = "round:correct"
    ROUND_RESET = "round:reset"
    TEAM_ADDED = "team:added"
    TEAM_REMOVED = "team:removed"
    TEAM_SCORE_UPDATED = "team:scoreUpdated"


def session_room(code: str) -> str:
    return f"session:{code}"
