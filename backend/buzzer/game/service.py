from __future__ import annotations

from typing import Callable

from .directory import PlayerDirectory
from .ids import generate_session_code, now_ms
from .models import SessionSettings
from .registry import SessionRegistry
from .rounds import RoundMachine


class GameService:
    """One registry with the directory and round machine bound to it."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry
        self.directory = PlayerDirectory(registry)
        self.rounds = RoundMachine(registry)

    @classmethod
    def from_config(
        cls,
        config,
        clock: Callable[[], int] = now_ms,
        code_factory: Callable[[], str] = generate_session_code,
    ) -> GameService:
        defaults = SessionSettings(
            max_players_per_session=config.MAX_PLAYERS_PER_SESSION,
            buzz_cooldown_ms=config.BUZZ_COOLDOWN_MS,
        )
        registry = SessionRegistry(
            default_settings=defaults,
            max_age_ms=config.SESSION_MAX_AGE_SEC * 1000,
            clock=clock,
            code_factory=code_factory,
        )
        return cls(registry)
