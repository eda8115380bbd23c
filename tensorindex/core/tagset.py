"""
Bounded tag sets for tensorindex library.

A TagSet holds a small, fixed number of short labels in insertion order.
Storage is a slot array sized at construction plus a logical length, so a
set never grows past its capacity.
"""

from __future__ import annotations
from typing import Iterable, Iterator, List, Optional

from ..config import get_default_config
from ..exceptions import InvalidArgument, TagOverflow, TagTooLong, BufferTooSmall


class TagSet:
    """Ordered, capacity-bounded set of tags. Duplicates are kept."""

    __slots__ = ('_slots', '_length', '_max_tags', '_max_tag_len')

    def __init__(self, max_tags: Optional[int] = None, max_tag_len: Optional[int] = None):
        config = get_default_config()
        self._max_tags = config.max_tags if max_tags is None else max_tags
        self._max_tag_len = config.max_tag_len if max_tag_len is None else max_tag_len
        if self._max_tags <= 0 or self._max_tag_len <= 0:
            raise InvalidArgument(
                f"TagSet limits must be positive: max_tags={self._max_tags}, "
                f"max_tag_len={self._max_tag_len}"
            )
        self._slots: List[Optional[str]] = [None] * self._max_tags
        self._length = 0

    @classmethod
    def from_csv(cls, csv: str, max_tags: Optional[int] = None,
                 max_tag_len: Optional[int] = None) -> TagSet:
        tagset = cls(max_tags=max_tags, max_tag_len=max_tag_len)
        tagset.replace_from_csv(csv)
        return tagset

    @property
    def capacity(self) -> int:
        return self._max_tags

    @property
    def max_tag_len(self) -> int:
        return self._max_tag_len

    def add(self, tag: str) -> None:
        if self._length >= self._max_tags:
            raise TagOverflow(
                f"Too many tags (max {self._max_tags})", tag=tag, max_tags=self._max_tags
            )
        self._validate_tag(tag)
        self._slots[self._length] = tag
        self._length += 1

    def has(self, tag: str) -> bool:
        return tag in self._slots[:self._length]

    def has_all(self, other: Iterable[str]) -> bool:
        return all(self.has(tag) for tag in other)

    def remove(self, tag: str) -> bool:
        """Remove the first occurrence of tag, keeping the order of the rest."""
        live = self._slots[:self._length]
        if tag not in live:
            return False
        live.remove(tag)
        self._store(live)
        return True

    def common(self, other: TagSet) -> TagSet:
        result = TagSet(max_tags=self._max_tags, max_tag_len=self._max_tag_len)
        result._store([tag for tag in self if other.has(tag)])
        return result

    def replace_from_csv(self, csv: str) -> None:
        """Replace all tags from a comma-separated string.

        Every parsed tag is validated before anything is replaced, so a
        failing call leaves the current tags untouched.
        """
        if not isinstance(csv, str):
            raise InvalidArgument(f"Tags must be a string, got {type(csv).__name__}")

        parsed = [part.strip() for part in csv.split(",")]
        parsed = [tag for tag in parsed if tag]

        for position, tag in enumerate(parsed):
            if position >= self._max_tags:
                raise TagOverflow(
                    f"Too many tags (max {self._max_tags})", tag=tag, max_tags=self._max_tags
                )
            self._validate_tag(tag)

        self._store(parsed)

    def to_csv(self) -> str:
        return ",".join(self)

    def encode_into(self, buffer: Optional[bytearray]) -> int:
        """Write the CSV form as NUL-terminated UTF-8 into a caller buffer.

        Returns the required length. With no buffer (or an empty one) nothing
        is written, which lets callers size their buffer first.
        """
        payload = self.to_csv().encode("utf-8") + b"\x00"
        required = len(payload)

        if buffer is None or len(buffer) == 0:
            return required

        if len(buffer) < required:
            raise BufferTooSmall(
                f"Buffer too small: {len(buffer)} < {required}",
                required=required, provided=len(buffer)
            )

        buffer[:required] = payload
        return required

    def get(self, position: int) -> Optional[str]:
        if 0 <= position < self._length:
            return self._slots[position]
        return None

    def copy(self) -> TagSet:
        duplicate = TagSet(max_tags=self._max_tags, max_tag_len=self._max_tag_len)
        duplicate._slots = list(self._slots)
        duplicate._length = self._length
        return duplicate

    __copy__ = copy

    def _validate_tag(self, tag: str) -> None:
        if not isinstance(tag, str):
            raise InvalidArgument(f"Tag must be a string, got {type(tag).__name__}")
        if not tag or "," in tag:
            raise InvalidArgument(f"Invalid tag: {tag!r}", tag=tag)
        byte_len = len(tag.encode("utf-8"))
        if byte_len > self._max_tag_len:
            raise TagTooLong(
                f"Tag too long (max {self._max_tag_len} bytes): {tag!r}",
                tag=tag, actual=byte_len, max_len=self._max_tag_len
            )

    def _store(self, tags: List[str]) -> None:
        self._slots = tags + [None] * (self._max_tags - len(tags))
        self._length = len(tags)

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots[:self._length])

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and self.has(tag)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagSet):
            return NotImplemented
        return list(self) == list(other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"TagSet({self.to_csv()!r})"
