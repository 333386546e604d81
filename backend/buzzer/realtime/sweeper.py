from __future__ import annotations

import logging

from flask_socketio import SocketIO

from ..game.service import GameService
from .events import ServerEvent, session_room

logger = logging.getLogger(__name__)


def start_stale_sweeper(socketio: SocketIO, service: GameService, interval_sec: int):
    """Periodically end idle sessions and notify whoever is still listening."""

    def _runner() -> None:
        while True:
            socketio.sleep(interval_sec)
            try:
                ended = service.registry.sweep_stale()
            except Exception:
                logger.exception("Stale session sweep failed")
                continue

            for code in ended:
                room = session_room(code)
                socketio.emit(ServerEvent.SESSION_ENDED.value, {"code": code, "reason": "stale"}, to=room)
                socketio.close_room(room)

    logger.info("Stale session sweeper running every %ss", interval_sec)
    return socketio.start_background_task(_runner)
