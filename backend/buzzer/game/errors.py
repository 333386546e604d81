from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    NAME_TAKEN = "NAME_TAKEN"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    BUZZER_INACTIVE = "BUZZER_INACTIVE"
    DUPLICATE_BUZZ = "DUPLICATE_BUZZ"
    RATE_LIMITED = "RATE_LIMITED"
    TEAM_ALREADY_BUZZED = "TEAM_ALREADY_BUZZED"
    BUZZER_LOCKED = "BUZZER_LOCKED"
    NOT_HOST = "NOT_HOST"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"


_MESSAGES = {
    ErrorCode.NAME_TAKEN: "Name already taken",
    ErrorCode.CAPACITY_EXCEEDED: "Session is full",
    ErrorCode.PLAYER_NOT_FOUND: "Player not found",
    ErrorCode.SESSION_NOT_FOUND: "Session not found",
    ErrorCode.BUZZER_INACTIVE: "Buzzer is not active",
    ErrorCode.DUPLICATE_BUZZ: "Already buzzed",
    ErrorCode.RATE_LIMITED: "Too fast",
    ErrorCode.TEAM_ALREADY_BUZZED: "Team already buzzed",
    ErrorCode.BUZZER_LOCKED: "Buzzer is locked",
    ErrorCode.NOT_HOST: "Not a host",
    ErrorCode.INVALID_PAYLOAD: "Invalid payload",
}


class SessionError(Exception):
    """A well-formed action the session does not allow right now."""

    def __init__(self, code: ErrorCode, message: str | None = None):
        self.code = code
        self.message = message or _MESSAGES[code]
        super().__init__(f"{code.value}: {self.message}")

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


class SessionCorrupt(Exception):
    """Session state broke an invariant; the session must be ended."""

    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(f"session {code} is corrupt: {reason}")
