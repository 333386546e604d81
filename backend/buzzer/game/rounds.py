from __future__ import annotations

import logging
from dataclasses import replace

from .errors import ErrorCode, SessionCorrupt, SessionError
from .models import BuzzEntry, RoundResult, RoundState, Session
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


def drop_from_queue(round_state: RoundState, player_id: str) -> bool:
    """Remove ``player_id`` from the queue and renumber positions from 1."""
    remaining = [e for e in round_state.buzz_queue if e.player_id != player_id]
    if len(remaining) == len(round_state.buzz_queue):
        return False
    round_state.buzz_queue = [replace(e, position=i) for i, e in enumerate(remaining, start=1)]
    return True


def advance_queue(round_state: RoundState) -> str | None:
    """Make the queue head active; with an empty queue fall back to waiting."""
    head = round_state.buzz_queue[0] if round_state.buzz_queue else None
    round_state.active_player_id = head.player_id if head else None
    if head is None:
        round_state.status = "waiting"
    return round_state.active_player_id


class RoundMachine:
    """Round phase and buzz queue for every session in a registry."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    def start_round(self, session: Session) -> RoundState:
        # Replaces a live round too: a second start is a host force-restart.
        with session.lock:
            session.round = RoundState(
                status="open",
                question_number=session.round.question_number + 1,
                started_at_ms=self.registry.clock(),
            )
            logger.info("Round %d started in session %s", session.round.question_number, session.code)
            return session.round

    def reset_round(self, session: Session) -> RoundState:
        with session.lock:
            session.round = RoundState(
                status="waiting",
                question_number=session.round.question_number,
            )
            return session.round

    def process_buzz(self, sid: str) -> tuple[Session, BuzzEntry]:
        resolved = self.registry.resolve(sid)
        if resolved is None:
            raise SessionError(ErrorCode.PLAYER_NOT_FOUND)
        session, player = resolved

        with session.lock:
            # Kicked between the lookup and taking the lock.
            if session.players.get(player.id) is not player:
                raise SessionError(ErrorCode.PLAYER_NOT_FOUND)

            rnd = session.round
            settings = session.settings

            if rnd.status not in ("open", "locked"):
                raise SessionError(ErrorCode.BUZZER_INACTIVE)

            if rnd.entry_for(player.id) is not None:
                raise SessionError(ErrorCode.DUPLICATE_BUZZ)

            now = self.registry.clock()
            last = self.registry.last_buzz_ms(player.id)
            if last is not None and now - last < settings.buzz_cooldown_ms:
                raise SessionError(ErrorCode.RATE_LIMITED)

            if settings.one_buzz_per_team and player.team_id:
                if any(e.team_id == player.team_id for e in rnd.buzz_queue):
                    raise SessionError(ErrorCode.TEAM_ALREADY_BUZZED)

            if rnd.status == "locked" and not settings.allow_late_buzzes:
                raise SessionError(ErrorCode.BUZZER_LOCKED)

            team = session.team(player.team_id)
            if player.team_id is not None and team is None:
                raise SessionCorrupt(session.code, f"player {player.id} references missing team {player.team_id}")

            entry = BuzzEntry(
                player_id=player.id,
                player_name=player.display_name,
                team_id=player.team_id,
                team_name=team.name if team else None,
                team_color=team.color if team else None,
                timestamp_ms=now,
                position=len(rnd.buzz_queue) + 1,
            )
            rnd.buzz_queue.append(entry)
            self.registry.record_buzz(player.id, now)

            if rnd.status == "open":
                rnd.status = "locked"
                rnd.locked_at_ms = now
                rnd.active_player_id = player.id

            logger.info("Buzz from %s in %s - position #%d", player.display_name, session.code, entry.position)
            return session, entry

    def mark_correct(self, session: Session) -> RoundResult | None:
        with session.lock:
            rnd = session.round
            if rnd.active_player_id is None or rnd.status not in ("locked", "evaluating"):
                return None

            winner = session.players.get(rnd.active_player_id)
            now = self.registry.clock()
            result = RoundResult(
                question_number=rnd.question_number,
                winner_id=rnd.active_player_id,
                winner_name=winner.display_name if winner else None,
                team_id=winner.team_id if winner else None,
                buzz_count=len(rnd.buzz_queue),
                duration_ms=now - rnd.started_at_ms if rnd.started_at_ms is not None else 0,
            )

            if result.team_id is not None:
                team = session.team(result.team_id)
                if team is None:
                    raise SessionCorrupt(session.code, f"winner references missing team {result.team_id}")
                team.score += 1

            session.round_history.append(result)
            session.round = RoundState(status="ended", question_number=rnd.question_number)

            logger.info("Round %d in %s won by %s", result.question_number, session.code, result.winner_name)
            return result

    def mark_pass(self, session: Session) -> tuple[str, str | None] | None:
        """Drop the active player; returns ``(passed_id, new_active_id)``."""
        with session.lock:
            rnd = session.round
            passed_id = rnd.active_player_id
            if passed_id is None:
                return None

            drop_from_queue(rnd, passed_id)
            new_active = advance_queue(rnd)
            if new_active is not None:
                rnd.status = "locked"
            return passed_id, new_active

    def skip_player(self, session: Session, player_id: str) -> bool:
        with session.lock:
            rnd = session.round
            if not drop_from_queue(rnd, player_id):
                return False
            if rnd.active_player_id == player_id:
                advance_queue(rnd)
            return True
