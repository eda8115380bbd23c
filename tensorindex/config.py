"""
Runtime configuration for tensorindex library.

This module owns environment variable parsing and validation.
Other modules read a typed, frozen config object instead of raw env values.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache

from .exceptions import InvalidArgument

DEFAULT_MAX_TAGS = 4
DEFAULT_MAX_TAG_LEN = 16
DEFAULT_LINK_TAG = "Link"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class TensorIndexConfig:
    max_tags: int = DEFAULT_MAX_TAGS
    max_tag_len: int = DEFAULT_MAX_TAG_LEN
    strict_shapes: bool = True
    link_tag: str = DEFAULT_LINK_TAG

    def __post_init__(self):
        if self.max_tags <= 0:
            raise InvalidArgument(f"max_tags must be positive: {self.max_tags}")

        if self.max_tag_len <= 0:
            raise InvalidArgument(f"max_tag_len must be positive: {self.max_tag_len}")

        link_len = len(self.link_tag.encode("utf-8"))
        if not self.link_tag or "," in self.link_tag or link_len > self.max_tag_len:
            raise InvalidArgument(f"Invalid link tag: {self.link_tag!r}")

    @classmethod
    def from_env(cls) -> TensorIndexConfig:
        """Build config from TENSORINDEX_* environment variables."""
        return cls(
            max_tags=_parse_int("TENSORINDEX_MAX_TAGS", DEFAULT_MAX_TAGS),
            max_tag_len=_parse_int("TENSORINDEX_MAX_TAG_LEN", DEFAULT_MAX_TAG_LEN),
            strict_shapes=_parse_bool("TENSORINDEX_STRICT_SHAPES", True),
            link_tag=os.getenv("TENSORINDEX_LINK_TAG", DEFAULT_LINK_TAG),
        )


@lru_cache(maxsize=1)
def get_default_config() -> TensorIndexConfig:
    return TensorIndexConfig.from_env()


def _parse_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise InvalidArgument(f"{name} must be an integer, got {raw_value!r}") from error


def _parse_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise InvalidArgument(f"{name} must be a boolean, got {raw_value!r}")
