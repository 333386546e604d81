from __future__ import annotations

import logging

from .errors import ErrorCode, SessionError
from .ids import new_id
from .models import TEAM_COLORS, Player, Session, Team, clean_name
from .registry import SessionRegistry
from .rounds import advance_queue, drop_from_queue

logger = logging.getLogger(__name__)


class PlayerDirectory:
    """Per-session membership, connection status, teams and scores."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    # ------------------------------------------------------------------
    # Players

    def add_player(self, session: Session, sid: str, display_name: str) -> Player:
        name = clean_name(display_name)
        self.release_connection(sid)
        with session.lock:
            # Ended (swept or closed) since the caller looked it up.
            if self.registry.get(session.code) is not session:
                raise SessionError(ErrorCode.SESSION_NOT_FOUND)

            connected = session.connected_players()
            if len(connected) >= session.settings.max_players_per_session:
                raise SessionError(ErrorCode.CAPACITY_EXCEEDED)

            # Only connected players hold their name.
            folded = name.casefold()
            if any(p.display_name.casefold() == folded for p in connected):
                raise SessionError(ErrorCode.NAME_TAKEN)

            player = Player(
                id=new_id(),
                sid=sid,
                display_name=name,
                last_seen_ms=self.registry.clock(),
            )
            session.players[player.id] = player
            self.registry.bind_player(session, player)

        logger.info("Player joined: %s (%s) in session %s", name, player.id, session.code)
        return player

    def rejoin(self, code: str, player_id: str, sid: str) -> tuple[Session, Player]:
        session = self.registry.get(code)
        if session is None:
            raise SessionError(ErrorCode.PLAYER_NOT_FOUND)

        with session.lock:
            player = session.players.get(player_id)
            if player is None:
                raise SessionError(ErrorCode.PLAYER_NOT_FOUND)

            old_sid = player.sid
            player.sid = sid
            player.connected = True
            player.last_seen_ms = self.registry.clock()
            self.registry.bind_player(session, player, old_sid=old_sid)

        logger.info("Player rejoined: %s (%s)", player.display_name, player.id)
        return session, player

    def disconnect(self, sid: str) -> tuple[Session, Player] | None:
        resolved = self.registry.resolve(sid)
        if resolved is None:
            return None
        session, player = resolved

        with session.lock:
            # A rejoin from another connection may have happened already.
            if player.sid != sid or session.players.get(player.id) is not player:
                return None
            player.connected = False
            player.last_seen_ms = self.registry.clock()

        logger.info("Player disconnected: %s", player.display_name)
        return session, player

    def release_connection(self, sid: str) -> tuple[Session, Player] | None:
        """Remove the player currently bound to ``sid``, if any.

        A connection holds at most one player; joining again replaces it.
        """
        resolved = self.registry.resolve(sid)
        if resolved is None:
            return None
        session, player = resolved
        if self.remove_player(session, player.id) is None:
            return None
        return session, player

    def remove_player(self, session: Session, player_id: str) -> Player | None:
        with session.lock:
            player = session.players.pop(player_id, None)
            if player is None:
                return None
            self.registry.release_player(player)

            rnd = session.round
            drop_from_queue(rnd, player_id)
            if rnd.active_player_id == player_id:
                advance_queue(rnd)

        logger.info("Player removed: %s (%s) from session %s", player.display_name, player_id, session.code)
        return player

    # ------------------------------------------------------------------
    # Teams

    def add_team(self, session: Session, name: str) -> Team:
        with session.lock:
            team = Team(
                id=new_id(),
                name=clean_name(name),
                color=TEAM_COLORS[session.teams_created % len(TEAM_COLORS)],
            )
            session.teams_created += 1
            session.teams.append(team)
            return team

    def remove_team(self, session: Session, team_id: str) -> bool:
        with session.lock:
            team = session.team(team_id)
            if team is None:
                return False
            session.teams.remove(team)
            for player in session.players.values():
                if player.team_id == team_id:
                    player.team_id = None
            return True

    def assign_player_to_team(self, session: Session, player_id: str, team_id: str | None) -> Player | None:
        """Returns None when the player or the team no longer exists."""
        with session.lock:
            player = session.players.get(player_id)
            if player is None:
                return None
            if team_id is not None and session.team(team_id) is None:
                return None
            player.team_id = team_id
            return player

    def update_score(self, session: Session, team_id: str, delta: int) -> Team | None:
        with session.lock:
            team = session.team(team_id)
            if team is None:
                return None
            team.score += delta
            return team
