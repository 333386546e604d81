from __future__ import annotations

from typing import Any

from ..game.errors import ErrorCode, SessionError
from ..game.ids import SESSION_CODE_LENGTH


def _invalid(message: str) -> SessionError:
    return SessionError(ErrorCode.INVALID_PAYLOAD, message)


def require_dict(data: Any) -> dict:
    if not isinstance(data, dict):
        raise _invalid("payload must be an object")
    return data


def optional_dict(data: Any) -> dict:
    if data is None:
        return {}
    return require_dict(data)


def require_str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise _invalid(f"{key} is required")
    return value.strip()


def optional_str(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise _invalid(f"{key} must be a string or null")
    return value.strip()


def require_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _invalid(f"{key} must be an integer")
    return value


def require_session_code(payload: dict, key: str = "sessionCode") -> str:
    code = require_str(payload, key).upper()
    if len(code) != SESSION_CODE_LENGTH or not code.isalnum():
        raise _invalid(f"{key} is not a session code")
    return code


def require_name(payload: dict, key: str) -> str:
    name = require_str(payload, key)
    # Avoid obvious HTML/script injection.
    if "<" in name or ">" in name:
        raise _invalid(f"{key} contains forbidden characters")
    if any(ord(ch) < 32 for ch in name):
        raise _invalid(f"{key} contains control characters")
    return name
