from __future__ import annotations

import random
import secrets
import time
import uuid


# No O/0, I/1: codes get read aloud and typed on phones.
SESSION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SESSION_CODE_LENGTH = 6

_system_random = secrets.SystemRandom()


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_code(rng: random.Random | None = None) -> str:
    r = rng or _system_random
    return "".join(r.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))


def new_id() -> str:
    return str(uuid.uuid4())
