from __future__ import annotations
from typing import Protocol, runtime_checkable, Any, Callable, TypeVar

import torch

from .aliases import ElementOffset
from .enums import StorageKind, SymmetryKind

ResultT = TypeVar('ResultT')


@runtime_checkable
class ISymmetrySpace(Protocol):
    @property
    def kind(self) -> SymmetryKind:
        ...

    @property
    def is_symmetric(self) -> bool:
        ...

    def validate_dim(self, dim: int) -> None:
        ...


@runtime_checkable
class IStorageBuffer(Protocol):
    @property
    def kind(self) -> StorageKind:
        ...

    @property
    def length(self) -> int:
        ...

    @property
    def data(self) -> torch.Tensor:
        ...

    def read(self, offset: ElementOffset) -> Any:
        ...

    def clone(self) -> IStorageBuffer:
        ...


@runtime_checkable
class IStorageHandle(Protocol):
    @property
    def kind(self) -> StorageKind:
        ...

    @property
    def length(self) -> int:
        ...

    @property
    def ref_count(self) -> int:
        ...

    @property
    def is_valid(self) -> bool:
        ...

    def share(self) -> IStorageHandle:
        ...

    def mutate(self, f: Callable[[torch.Tensor], ResultT]) -> ResultT:
        ...

    def release(self) -> None:
        ...
