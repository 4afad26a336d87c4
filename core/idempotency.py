"""
Client mutation id generation.

Every Universe mutation carries a caller-generated ``clientMutationId`` that
the API echoes back. Ids have the shape::

    {operation}-{timestamp_ms}-{random}[-{identifier}]

The timestamp component never repeats within a process, so ids stay unique
even when many are minted in the same millisecond or from several threads.
"""

import secrets
import string
import threading
import time
from typing import Callable, Optional

_ALPHABET = string.ascii_lowercase + string.digits


class MutationIdGenerator:
    """Mints client mutation ids with a strictly increasing timestamp part."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = 0

    def _next_timestamp(self) -> int:
        with self._lock:
            now_ms = int(self._clock() * 1000)
            if now_ms <= self._last_ms:
                now_ms = self._last_ms + 1
            self._last_ms = now_ms
            return now_ms

    def generate(self, operation: str, identifier: Optional[str] = None) -> str:
        timestamp = self._next_timestamp()
        random_part = "".join(secrets.choice(_ALPHABET) for _ in range(6))
        suffix = f"-{identifier}" if identifier else ""
        return f"{operation}-{timestamp}-{random_part}{suffix}"


_default_generator = MutationIdGenerator()


def generate_client_mutation_id(operation: str, identifier: Optional[str] = None) -> str:
    """
    Generate a client mutation id using the process-wide generator.

    Args:
        operation: Mutation name, e.g. "event-create"
        identifier: Optional source record or event id appended as a suffix

    Returns:
        A new id; never equal to any id previously returned in this process
    """
    return _default_generator.generate(operation, identifier)
