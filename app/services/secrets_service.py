"""
Identifier and join secret generation
"""

import logging
import secrets
import time
import uuid

logger = logging.getLogger(__name__)

# Must never contain the invitation delimiters ("|" and "#")
PASSWORD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MIN_PASSWORD_LENGTH = 4


def new_id() -> str:
    """Opaque identifier for any stored record"""
    return str(uuid.uuid4())


def new_event_id() -> str:
    return new_id()


def new_join_password(length: int = 6) -> str:
    """Generate a short human-enterable join password.

    Each character is one byte from the OS random source reduced modulo the
    alphabet size. If the random source is unavailable, the trailing digits of
    the current timestamp are used instead. That fallback is predictable and
    only keeps event creation working.
    """
    actual_length = max(length, MIN_PASSWORD_LENGTH)

    try:
        random_bytes = secrets.token_bytes(actual_length)
    except (OSError, NotImplementedError) as e:
        logger.warning(f"Random source unavailable, using timestamp fallback for join password: {e}")
        return _timestamp_password(actual_length)

    return "".join(PASSWORD_ALPHABET[b % len(PASSWORD_ALPHABET)] for b in random_bytes)


def _timestamp_password(length: int) -> str:
    return str(time.time_ns())[-length:].zfill(length)
