"""
Dense tensor containers for tensorindex library.

A tensor binds an ordered list of indices (and their dimensions) to one
Storage handle. The storage is shared, never owned exclusively: writes go
through Storage.mutate so they stay invisible to other tensors on the same
buffer. Elements are laid out row-major.

TensorDynLen fixes its rank when constructed. TensorStaticLen.of_rank(n)
returns a class whose rank is part of the type; its element accessors
take exactly that many coordinates, checked against the class constant.
"""

from __future__ import annotations
import math
from functools import lru_cache
from typing import Any, ClassVar, Iterable, Optional, Sequence, Tuple, Type, TypeVar

import numpy as np
import torch

from ..config import get_default_config
from ..types.enums import StorageKind
from ..exceptions import InvalidArgument, NullHandle
from ..logging_config import get_logger
from .index import Index
from .storage import DenseBuffer, Storage

logger = get_logger(__name__)

TensorT = TypeVar('TensorT', bound='TensorBase')


def _row_major_strides(dims: Tuple[int, ...]) -> Tuple[int, ...]:
    strides = []
    step = 1
    for dim in reversed(dims):
        strides.append(step)
        step *= dim
    return tuple(reversed(strides))


class TensorBase:
    """Shared behaviour of the dynamic- and static-rank containers."""

    __slots__ = ('_indices', '_dims', '_strides', '_storage')

    def __init__(
        self,
        indices: Sequence[Index],
        dims: Sequence[int],
        storage: Storage,
        strict: Optional[bool] = None
    ):
        indices = tuple(indices)
        dims = tuple(dims)

        if len(indices) != len(dims):
            raise InvalidArgument(
                f"Number of indices ({len(indices)}) does not match number of dims ({len(dims)})"
            )

        for position, (index, dim) in enumerate(zip(indices, dims)):
            if not isinstance(index, Index):
                raise InvalidArgument(f"Expected Index at position {position}, got {type(index).__name__}")
            if dim != index.dim:
                raise InvalidArgument(
                    f"Dimension {dim} at position {position} does not match index {index!r}"
                )

        if len(set(indices)) != len(indices):
            raise InvalidArgument(f"Tensor indices must be distinct: {indices}")

        if not storage.is_valid:
            raise NullHandle("Tensor storage handle has been released")

        strict = get_default_config().strict_shapes if strict is None else strict
        numel = math.prod(dims)
        length = storage.length
        if (strict and numel != length) or (not strict and numel > length):
            raise InvalidArgument(
                f"Product of dims {dims} = {numel} does not match storage length {length}"
            )

        self._indices = indices
        self._dims = dims
        self._strides = _row_major_strides(dims)
        self._storage = storage
        logger.debug("tensor.created", rank=len(dims), dims=list(dims), kind=storage.kind.name)

    @classmethod
    def from_indices(cls: Type[TensorT], indices: Sequence[Index], storage: Storage) -> TensorT:
        indices = tuple(indices)
        return cls(indices, [index.dim for index in indices], storage)

    @classmethod
    def zeros(cls: Type[TensorT], indices: Sequence[Index],
              kind: StorageKind = StorageKind.DENSE_F64) -> TensorT:
        indices = tuple(indices)
        dims = [index.dim for index in indices]
        return cls(indices, dims, Storage.new_dense(kind, math.prod(dims)))

    @classmethod
    def from_array(cls: Type[TensorT], indices: Sequence[Index], values: Any,
                   kind: Optional[StorageKind] = None) -> TensorT:
        """Build a tensor from row-major array-like values shaped like the indices."""
        indices = tuple(indices)
        dims = tuple(index.dim for index in indices)
        shape = tuple(values.shape) if hasattr(values, 'shape') else np.shape(values)
        if tuple(shape) != dims:
            raise InvalidArgument(f"Value shape {tuple(shape)} does not match index dims {dims}")
        return cls(indices, dims, Storage.from_values(values, kind))

    @property
    def indices(self) -> Tuple[Index, ...]:
        return self._indices

    @property
    def dims(self) -> Tuple[int, ...]:
        return self._dims

    @property
    def rank(self) -> int:
        return len(self._dims)

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def kind(self) -> StorageKind:
        return self._storage.kind

    @property
    def numel(self) -> int:
        return math.prod(self._dims)

    def position(self, index: Index) -> Optional[int]:
        for position, candidate in enumerate(self._indices):
            if candidate == index:
                return position
        return None

    def get(self, *coords: int) -> Any:
        self._check_rank(coords)
        return self._storage.read(self._offset(coords))

    def set(self, coords: Sequence[int], value: Any) -> None:
        coords = tuple(coords)
        self._check_rank(coords)
        self._storage.write(self._offset(coords), value)

    def fill(self, value: Any) -> None:
        self._storage.fill(value)

    def to_numpy(self, copy: bool = False) -> np.ndarray:
        flat = self._storage.to_numpy(copy=copy)
        return flat[:self.numel].reshape(self._dims)

    def to_torch(self) -> torch.Tensor:
        return self._storage.to_torch()[:self.numel].reshape(self._dims)

    def share(self: TensorT) -> TensorT:
        """A new tensor over the same indices sharing this tensor's buffer."""
        return type(self)(self._indices, self._dims, self._storage.share(), strict=False)

    def copy(self: TensorT) -> TensorT:
        return type(self)(self._indices, self._dims, self._storage.deep_copy(), strict=False)

    def permute(self: TensorT, indices: Iterable[Index]) -> TensorT:
        """Return a tensor with legs reordered to match the given indices."""
        order = []
        for index in indices:
            position = self.position(index)
            if position is None or position in order:
                raise InvalidArgument(f"Not a permutation of the tensor indices: {index!r}")
            order.append(position)
        if len(order) != self.rank:
            raise InvalidArgument(f"Expected {self.rank} indices, got {len(order)}")

        data = self.to_torch().permute(*order).contiguous() if order else self.to_torch()
        new_indices = tuple(self._indices[p] for p in order)
        new_dims = tuple(self._dims[p] for p in order)
        return type(self)(new_indices, new_dims, Storage(DenseBuffer.from_tensor(data, self.kind)))

    def release(self) -> None:
        self._storage.release()

    def _check_rank(self, coords: Tuple[int, ...]) -> None:
        if len(coords) != self.rank:
            raise InvalidArgument(f"Expected {self.rank} coordinates, got {len(coords)}")

    def _offset(self, coords: Tuple[int, ...]) -> int:
        offset = 0
        for coord, dim, stride in zip(coords, self._dims, self._strides):
            if coord < 0 or coord >= dim:
                raise InvalidArgument(f"Coordinate {coord} out of range for dimension {dim}")
            offset += coord * stride
        return offset

    def __enter__(self: TensorT) -> TensorT:
        return self

    def __exit__(self, *args) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(indices={list(self._indices)}, dims={self._dims}, "
            f"storage={self._storage!r})"
        )


class TensorDynLen(TensorBase):
    """Tensor whose rank is a runtime value fixed at construction."""

    __slots__ = ()


class TensorStaticLen(TensorBase):
    """Tensor whose rank is fixed by its class. Use TensorStaticLen.of_rank(n)."""

    __slots__ = ()

    RANK: ClassVar[Optional[int]] = None

    def __init__(
        self,
        indices: Sequence[Index],
        dims: Sequence[int],
        storage: Storage,
        strict: Optional[bool] = None
    ):
        if self.RANK is None:
            raise InvalidArgument("TensorStaticLen has no rank; use TensorStaticLen.of_rank(n)")
        indices = tuple(indices)
        if len(indices) != self.RANK:
            raise InvalidArgument(f"{type(self).__name__} requires {self.RANK} indices, got {len(indices)}")
        super().__init__(indices, dims, storage, strict=strict)

    @staticmethod
    def of_rank(rank: int) -> Type[TensorStaticLen]:
        if isinstance(rank, bool) or not isinstance(rank, int) or rank < 0:
            raise InvalidArgument(f"Rank must be a non-negative integer: {rank!r}")
        return _static_rank_class(rank)

    @property
    def rank(self) -> int:
        return self.RANK

    def _check_rank(self, coords: Tuple[int, ...]) -> None:
        if len(coords) != self.RANK:
            raise InvalidArgument(f"{type(self).__name__} takes {self.RANK} coordinates, got {len(coords)}")


@lru_cache(maxsize=None)
def _static_rank_class(rank: int) -> Type[TensorStaticLen]:
    return type(f"TensorStaticLen{rank}", (TensorStaticLen,), {'__slots__': (), 'RANK': rank})
