from __future__ import annotations

from dataclasses import dataclass, field, fields
from threading import RLock
from typing import Any, Literal

from .errors import ErrorCode, SessionError


RoundStatus = Literal["waiting", "open", "locked", "evaluating", "ended"]
PlayerStatus = Literal["waiting", "ready", "active", "queued"]

MAX_NAME_LENGTH = 20

TEAM_COLORS = (
    "#FF2D55",  # red
    "#007AFF",  # blue
    "#34C759",  # green
    "#FF9500",  # orange
    "#AF52DE",  # purple
    "#FFCC00",  # yellow
    "#00C7BE",  # teal
    "#FF375F",  # pink
)


def clean_name(raw: str) -> str:
    return raw.strip()[:MAX_NAME_LENGTH].rstrip()


# Transport key -> (attribute, type)
_SETTINGS_KEYS: dict[str, tuple[str, type]] = {
    "teamModeEnabled": ("team_mode_enabled", bool),
    "oneBuzzPerTeam": ("one_buzz_per_team", bool),
    "allowLateBuzzes": ("allow_late_buzzes", bool),
    "showQueueToPlayers": ("show_queue_to_players", bool),
    "maxPlayersPerSession": ("max_players_per_session", int),
    "buzzCooldownMs": ("buzz_cooldown_ms", int),
}


@dataclass
class SessionSettings:
    team_mode_enabled: bool = False
    one_buzz_per_team: bool = False
    allow_late_buzzes: bool = True
    show_queue_to_players: bool = True
    max_players_per_session: int = 50
    buzz_cooldown_ms: int = 100

    def merged(self, payload: dict[str, Any] | None) -> SessionSettings:
        """Return a copy with camelCase overrides from ``payload`` applied.

        Unknown keys are ignored. A known key with the wrong type (or a
        negative number) raises ``INVALID_PAYLOAD``.
        """
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, raw in (payload or {}).items():
            spec = _SETTINGS_KEYS.get(key)
            if spec is None:
                continue
            attr, kind = spec
            # bool is an int subclass; keep the two apart
            if kind is int and (isinstance(raw, bool) or not isinstance(raw, int) or raw < 0):
                raise SessionError(ErrorCode.INVALID_PAYLOAD, f"{key} must be a non-negative integer")
            if kind is bool and not isinstance(raw, bool):
                raise SessionError(ErrorCode.INVALID_PAYLOAD, f"{key} must be a boolean")
            values[attr] = raw
        return SessionSettings(**values)


@dataclass
class Team:
    id: str
    name: str
    color: str
    score: int = 0


@dataclass
class Player:
    id: str
    sid: str
    display_name: str
    team_id: str | None = None
    connected: bool = True
    last_seen_ms: int = 0


@dataclass(frozen=True)
class BuzzEntry:
    player_id: str
    player_name: str
    team_id: str | None
    team_name: str | None
    team_color: str | None
    timestamp_ms: int
    position: int


@dataclass
class RoundState:
    status: RoundStatus = "waiting"
    question_number: int = 0
    started_at_ms: int | None = None
    locked_at_ms: int | None = None
    active_player_id: str | None = None
    buzz_queue: list[BuzzEntry] = field(default_factory=list)

    def entry_for(self, player_id: str) -> BuzzEntry | None:
        for entry in self.buzz_queue:
            if entry.player_id == player_id:
                return entry
        return None


@dataclass(frozen=True)
class RoundResult:
    question_number: int
    winner_id: str | None
    winner_name: str | None
    team_id: str | None
    buzz_count: int
    duration_ms: int


@dataclass
class Session:
    code: str
    host_sid: str
    created_at_ms: int
    settings: SessionSettings = field(default_factory=SessionSettings)
    teams: list[Team] = field(default_factory=list)
    players: dict[str, Player] = field(default_factory=dict)
    round: RoundState = field(default_factory=RoundState)
    round_history: list[RoundResult] = field(default_factory=list)
    # Number of teams ever created; drives the colour rotation.
    teams_created: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def team(self, team_id: str | None) -> Team | None:
        if team_id is None:
            return None
        for t in self.teams:
            if t.id == team_id:
                return t
        return None

    def connected_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.connected]

    def last_activity_ms(self) -> int:
        return max([self.created_at_ms, *(p.last_seen_ms for p in self.players.values())])
