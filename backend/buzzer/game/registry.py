from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from .ids import generate_session_code, now_ms
from .models import Player, Session, SessionSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_MS = 60 * 60 * 1000


class SessionRegistry:
    """Live sessions keyed by code, plus the cross-session reverse lookups.

    ``self._lock`` only guards the maps below. Session state is guarded by
    each ``Session.lock``; when both are needed the session lock is taken
    first.
    """

    MAX_CODE_ATTEMPTS = 100

    def __init__(
        self,
        default_settings: SessionSettings | None = None,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], int] = now_ms,
        code_factory: Callable[[], str] = generate_session_code,
    ) -> None:
        self.default_settings = default_settings or SessionSettings()
        self.max_age_ms = max_age_ms
        self.clock = clock
        self._code_factory = code_factory

        self._lock = RLock()
        self._sessions: dict[str, Session] = {}
        self._sid_to_player: dict[str, str] = {}
        self._player_to_session: dict[str, str] = {}
        self._host_sid_to_session: dict[str, str] = {}
        # Last accepted buzz per player; survives round boundaries.
        self._buzz_timestamps: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create_session(self, host_sid: str, settings: SessionSettings | None = None) -> Session:
        with self._lock:
            for _ in range(self.MAX_CODE_ATTEMPTS):
                code = self._code_factory()
                if code not in self._sessions:
                    break
            else:
                raise RuntimeError("could not allocate a free session code")

            session = Session(
                code=code,
                host_sid=host_sid,
                created_at_ms=self.clock(),
                settings=settings or self.default_settings.merged(None),
            )
            self._sessions[code] = session
            previous = self._host_sid_to_session.get(host_sid)
            if previous:
                logger.warning("Connection %s now hosts %s instead of %s", host_sid, code, previous)
            self._host_sid_to_session[host_sid] = code

        logger.info("Session created: %s", code)
        return session

    def get(self, code: str) -> Session | None:
        with self._lock:
            return self._sessions.get(code)

    def list_sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def end(self, code: str) -> Session | None:
        session = self.get(code)
        if session is None:
            return None

        with session.lock:
            with self._lock:
                if self._sessions.get(code) is not session:
                    return None
                del self._sessions[code]
                for player in session.players.values():
                    self._player_to_session.pop(player.id, None)
                    if self._sid_to_player.get(player.sid) == player.id:
                        del self._sid_to_player[player.sid]
                    self._buzz_timestamps.pop(player.id, None)
                if self._host_sid_to_session.get(session.host_sid) == code:
                    del self._host_sid_to_session[session.host_sid]

        logger.info("Session ended: %s", code)
        return session

    def update_settings(self, session: Session, settings: SessionSettings) -> SessionSettings:
        with session.lock:
            session.settings = settings
            return settings

    def sweep_stale(self, max_age_ms: int | None = None) -> list[str]:
        """End sessions idle for strictly longer than ``max_age_ms``."""
        max_age = self.max_age_ms if max_age_ms is None else max_age_ms
        ended: list[str] = []
        for session in self.list_sessions():
            with session.lock:
                idle_ms = self.clock() - session.last_activity_ms()
                if idle_ms <= max_age or self.end(session.code) is None:
                    continue
            logger.info("Cleaned up stale session %s (idle %d ms)", session.code, idle_ms)
            ended.append(session.code)
        return ended

    # ------------------------------------------------------------------
    # Reverse lookups

    def resolve(self, sid: str) -> tuple[Session, Player] | None:
        with self._lock:
            player_id = self._sid_to_player.get(sid)
            if player_id is None:
                return None
            code = self._player_to_session.get(player_id)
            session = self._sessions.get(code) if code else None
        if session is None:
            return None
        player = session.players.get(player_id)
        if player is None:
            return None
        return session, player

    def hosted_by(self, sid: str) -> Session | None:
        with self._lock:
            code = self._host_sid_to_session.get(sid)
            return self._sessions.get(code) if code else None

    def bind_player(self, session: Session, player: Player, old_sid: str | None = None) -> None:
        with self._lock:
            if old_sid is not None and self._sid_to_player.get(old_sid) == player.id:
                del self._sid_to_player[old_sid]
            self._sid_to_player[player.sid] = player.id
            self._player_to_session[player.id] = session.code

    def release_player(self, player: Player) -> None:
        with self._lock:
            if self._sid_to_player.get(player.sid) == player.id:
                del self._sid_to_player[player.sid]
            self._player_to_session.pop(player.id, None)
            self._buzz_timestamps.pop(player.id, None)

    def last_buzz_ms(self, player_id: str) -> int | None:
        with self._lock:
            return self._buzz_timestamps.get(player_id)

    def record_buzz(self, player_id: str, at_ms: int) -> None:
        with self._lock:
            self._buzz_timestamps[player_id] = at_ms
