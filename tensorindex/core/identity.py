"""
Identity generation for tensorindex library.

Identities are the only thing that decides whether two indices are the same
leg. Generated identities are unique within one running process; they start
at 1 (0 is never generated) and grow monotonically. Externally an identity is
a 128-bit value, so this module also owns the policy for crossing into
systems with 64-bit identities:

- export keeps the low 64 bits (lossy),
- import zero-extends into the low 64 bits.
"""

from __future__ import annotations
import itertools
from threading import Lock
from typing import Optional, Tuple

from ..types.aliases import (
    Identity,
    Identity64,
    MAX_IDENTITY,
    MAX_GENERATED_IDENTITY,
    LOW_WORD_MASK,
)
from ..exceptions import InvalidArgument, InternalError
from ..logging_config import get_logger

logger = get_logger(__name__)


class IdentityGenerator:
    """Thread-safe monotonically increasing identity source."""

    __slots__ = ('_counter', '_lock', '_limit', '_last')

    def __init__(self, start: int = 1, limit: int = MAX_GENERATED_IDENTITY):
        if start < 1 or start > limit:
            raise InvalidArgument(f"Invalid identity range: start={start}, limit={limit}")
        self._counter = itertools.count(start)
        self._lock = Lock()
        self._limit = limit
        self._last = start - 1

    @property
    def last(self) -> int:
        """Most recently returned identity, 0 before the first call."""
        return self._last

    def next(self) -> Identity:
        with self._lock:
            value = next(self._counter)
            if value > self._limit:
                logger.error("identity.exhausted", limit=self._limit)
                raise InternalError("Identity space exhausted", limit=self._limit)
            self._last = value
            return Identity(value)

    __next__ = next

    def __iter__(self) -> IdentityGenerator:
        return self


_process_generator: Optional[IdentityGenerator] = None
_process_generator_lock = Lock()


def process_generator() -> IdentityGenerator:
    """Return the process-wide generator, created on first use."""
    global _process_generator
    if _process_generator is None:
        with _process_generator_lock:
            if _process_generator is None:
                _process_generator = IdentityGenerator()
    return _process_generator


def next_identity() -> Identity:
    return process_generator().next()


def validate_identity(identity: int) -> Identity:
    if isinstance(identity, bool) or not isinstance(identity, int):
        raise InvalidArgument(f"Identity must be an integer, got {type(identity).__name__}")
    if identity < 0 or identity > MAX_IDENTITY:
        raise InvalidArgument(f"Identity out of 128-bit range: {identity}", identity=identity)
    return Identity(identity)


def export_identity64(identity: int) -> Identity64:
    """Truncate a 128-bit identity to its low 64 bits.

    Two identities that differ only in their high word collide after export.
    """
    identity = validate_identity(identity)
    return Identity64(identity & LOW_WORD_MASK)


def import_identity64(identity: int) -> Identity:
    """Zero-extend a 64-bit identity into the 128-bit identity space."""
    if isinstance(identity, bool) or not isinstance(identity, int):
        raise InvalidArgument(f"Identity must be an integer, got {type(identity).__name__}")
    if identity < 0 or identity > LOW_WORD_MASK:
        raise InvalidArgument(f"Identity out of 64-bit range: {identity}", identity=identity)
    return Identity(identity)


def split_identity(identity: int) -> Tuple[int, int]:
    """Split an identity into its (high, low) 64-bit words."""
    identity = validate_identity(identity)
    return identity >> 64, identity & LOW_WORD_MASK


def join_identity(high: int, low: int) -> Identity:
    for word in (high, low):
        if isinstance(word, bool) or not isinstance(word, int) or word < 0 or word > LOW_WORD_MASK:
            raise InvalidArgument(f"Identity word out of 64-bit range: {word!r}")
    return Identity((high << 64) | low)
