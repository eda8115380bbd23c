"""
Tensor index implementation for tensorindex library.

An Index is one tensor leg: a positive dimension, an identity and a set of
descriptive tags. Equality and hashing look at the identity only, so two
indices built independently, or decorated with different tags afterwards,
are the same leg when their identities match.
"""

from __future__ import annotations
from typing import Optional

from ..config import get_default_config
from ..types.aliases import Identity, Dimension
from ..types.enums import SymmetryKind
from ..types.protocols import ISymmetrySpace
from ..exceptions import InvalidArgument
from .identity import next_identity, validate_identity
from .tagset import TagSet


class NoSymmSpace:
    """Symmetry marker for indices without quantum-number structure."""

    __slots__ = ()

    _instance: Optional[NoSymmSpace] = None

    def __new__(cls) -> NoSymmSpace:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def kind(self) -> SymmetryKind:
        return SymmetryKind.NONE

    @property
    def is_symmetric(self) -> bool:
        return False

    def validate_dim(self, dim: int) -> None:
        if isinstance(dim, bool) or not isinstance(dim, int):
            raise InvalidArgument(f"Index dimension must be an integer, got {type(dim).__name__}")
        if dim <= 0:
            raise InvalidArgument(f"Index dimension must be positive, got {dim}", dim=dim)

    def __repr__(self) -> str:
        return "NoSymmSpace()"


class Index:
    """A tensor leg with an immutable identity and mutable tags."""

    __slots__ = ('_dim', '_identity', '_tags', '_symmetry')

    def __init__(
        self,
        dim: int,
        identity: Optional[int] = None,
        tags: str = "",
        symmetry: Optional[ISymmetrySpace] = None
    ):
        self._symmetry = symmetry if symmetry is not None else NoSymmSpace()
        self._symmetry.validate_dim(dim)

        tagset = TagSet()
        if tags:
            tagset.replace_from_csv(tags)

        self._dim = Dimension(dim)
        self._identity = next_identity() if identity is None else validate_identity(identity)
        self._tags = tagset

    @classmethod
    def new(cls, dim: int) -> Index:
        return cls(dim)

    @classmethod
    def new_with_tags(cls, dim: int, tags: str) -> Index:
        return cls(dim, tags=tags)

    @classmethod
    def new_with_id(cls, dim: int, identity: int, tags: str = "") -> Index:
        """Create an index that reuses an identity from elsewhere.

        The process generator is neither consulted nor advanced.
        """
        validate_identity(identity)
        return cls(dim, identity=identity, tags=tags)

    @classmethod
    def new_link(cls, dim: int) -> Index:
        return cls(dim, tags=get_default_config().link_tag)

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def tags(self) -> str:
        return self._tags.to_csv()

    @property
    def tagset(self) -> TagSet:
        """A copy of the tags; mutate through add_tag / set_tags."""
        return self._tags.copy()

    @property
    def symmetry(self) -> ISymmetrySpace:
        return self._symmetry

    def has_tag(self, tag: str) -> bool:
        return self._tags.has(tag)

    def add_tag(self, tag: str) -> None:
        self._tags.add(tag)

    def remove_tag(self, tag: str) -> bool:
        return self._tags.remove(tag)

    def set_tags(self, csv: str) -> None:
        self._tags.replace_from_csv(csv)

    def tags_into(self, buffer: Optional[bytearray]) -> int:
        return self._tags.encode_into(buffer)

    def clone(self) -> Index:
        duplicate = Index.__new__(Index)
        duplicate._dim = self._dim
        duplicate._identity = self._identity
        duplicate._tags = self._tags.copy()
        duplicate._symmetry = self._symmetry
        return duplicate

    __copy__ = clone

    def __deepcopy__(self, memo) -> Index:
        return self.clone()

    def sim(self) -> Index:
        """Same dimension and tags under a fresh identity."""
        return Index(self._dim, tags=self.tags, symmetry=self._symmetry)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Index):
            return NotImplemented
        return self._identity == other._identity

    def __hash__(self) -> int:
        return hash(self._identity)

    def __repr__(self) -> str:
        id_short = f"{self._identity:x}"[-8:]
        tags = self.tags
        if not tags:
            return f"(dim={self._dim}|id=...{id_short})"
        return f"(dim={self._dim}|id=...{id_short}|\"{tags}\")"
