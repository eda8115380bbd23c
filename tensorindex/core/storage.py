"""
Copy-on-write tensor storage for tensorindex library.

A Storage is a handle onto a reference-counted dense buffer. Handles are
cheap to share; the first write through a handle whose buffer is also
referenced elsewhere clones the buffer and rebinds that handle, so no other
handle ever observes the write.

Handles are not meant to be driven from several threads at once. The
reference count itself is updated under a lock, and the uniqueness check
and the write it guards run as one critical section per handle.
"""

from __future__ import annotations
import numbers
from threading import Lock, RLock
from typing import Any, Callable, Optional, TypeVar
from weakref import finalize

import numpy as np
import torch

from ..types.aliases import ElementOffset
from ..types.enums import StorageKind
from ..exceptions import AllocationFailure, InvalidArgument, NullHandle
from ..logging_config import get_logger

logger = get_logger(__name__)

ResultT = TypeVar('ResultT')


class DenseBuffer:
    """Contiguous one-dimensional buffer of float64 or complex128 elements."""

    __slots__ = ('_kind', '_data')

    def __init__(self, kind: StorageKind, length: int):
        if isinstance(length, bool) or not isinstance(length, int) or length < 0:
            raise InvalidArgument(f"Storage length must be a non-negative integer: {length!r}")

        self._kind = StorageKind(kind)
        try:
            self._data = torch.zeros(length, dtype=self._kind.dtype)
        except (RuntimeError, MemoryError) as e:
            raise AllocationFailure(
                f"Failed to allocate {self._kind.name} buffer: {e}", requested_length=length
            ) from e

    @classmethod
    def from_tensor(cls, data: torch.Tensor, kind: Optional[StorageKind] = None) -> DenseBuffer:
        kind = StorageKind.from_dtype(data.dtype) if kind is None else StorageKind(kind)
        if data.dtype.is_complex and not kind.is_complex:
            raise InvalidArgument("Complex values cannot be stored in a real buffer")

        buffer = cls.__new__(cls)
        buffer._kind = kind
        try:
            flat = data.detach().resolve_conj().resolve_neg().reshape(-1)
            buffer._data = flat.to(dtype=kind.dtype, device='cpu').clone()
        except (RuntimeError, MemoryError) as e:
            raise AllocationFailure(
                f"Failed to allocate {kind.name} buffer: {e}", requested_length=data.numel()
            ) from e
        return buffer

    @property
    def kind(self) -> StorageKind:
        return self._kind

    @property
    def length(self) -> int:
        return self._data.numel()

    @property
    def data(self) -> torch.Tensor:
        return self._data

    def read(self, offset: ElementOffset) -> Any:
        if offset < 0 or offset >= self.length:
            raise InvalidArgument(f"Offset out of bounds: {offset} (length {self.length})")
        return self._data[offset].item()

    def clone(self) -> DenseBuffer:
        return DenseBuffer.from_tensor(self._data, self._kind)

    def __repr__(self) -> str:
        return f"DenseBuffer(kind={self._kind.name}, length={self.length})"


class _SharedCell:
    __slots__ = ('buffer', 'refcount', 'lock')

    def __init__(self, buffer: DenseBuffer):
        self.buffer = buffer
        self.refcount = 1
        self.lock = Lock()


class Storage:
    """Shared, reference-counted handle with copy-on-write mutation."""

    __slots__ = ('_cell', '_lock', '_finalizer', '__weakref__')

    def __init__(self, buffer: DenseBuffer):
        self._lock = RLock()
        self._cell: Optional[_SharedCell] = None
        self._finalizer: Optional[finalize] = None
        self._bind(_SharedCell(buffer))
        logger.debug("storage.allocated", kind=buffer.kind.name, length=buffer.length)

    @classmethod
    def new_dense(cls, kind: StorageKind, length: int) -> Storage:
        return cls(DenseBuffer(kind, length))

    @classmethod
    def from_values(cls, values: Any, kind: Optional[StorageKind] = None) -> Storage:
        """Copy array-like values (numpy, torch or nested sequences) into new storage."""
        if isinstance(values, torch.Tensor):
            data = values
        else:
            data = torch.from_numpy(np.ascontiguousarray(np.asarray(values)))
        if not (data.dtype.is_floating_point or data.dtype.is_complex):
            data = data.to(torch.float64)
        return cls(DenseBuffer.from_tensor(data, kind))

    @classmethod
    def _from_cell(cls, cell: _SharedCell) -> Storage:
        handle = cls.__new__(cls)
        handle._lock = RLock()
        handle._cell = None
        handle._finalizer = None
        handle._bind(cell)
        return handle

    def _bind(self, cell: _SharedCell) -> None:
        self._cell = cell
        self._finalizer = finalize(self, Storage._drop_reference, cell)

    def _require_cell(self) -> _SharedCell:
        cell = self._cell
        if cell is None:
            raise NullHandle("Storage handle has been released")
        return cell

    @property
    def is_valid(self) -> bool:
        return self._cell is not None

    @property
    def kind(self) -> StorageKind:
        return self._require_cell().buffer.kind

    @property
    def length(self) -> int:
        return self._require_cell().buffer.length

    @property
    def ref_count(self) -> int:
        cell = self._require_cell()
        with cell.lock:
            return cell.refcount

    @property
    def is_unique(self) -> bool:
        return self.ref_count == 1

    def shares_buffer_with(self, other: Storage) -> bool:
        return self._cell is not None and self._cell is other._cell

    def share(self) -> Storage:
        """Return another handle onto the same buffer."""
        with self._lock:
            cell = self._require_cell()
            with cell.lock:
                cell.refcount += 1
            return Storage._from_cell(cell)

    def deep_copy(self) -> Storage:
        """Return a uniquely owned handle onto a copy of the buffer."""
        with self._lock:
            return Storage(self._require_cell().buffer.clone())

    def mutate(self, f: Callable[[torch.Tensor], ResultT]) -> ResultT:
        """Apply an in-place mutation, cloning first if the buffer is shared."""
        with self._lock:
            cell = self._require_cell()
            clone: Optional[DenseBuffer] = None
            with cell.lock:
                if cell.refcount > 1:
                    clone = cell.buffer.clone()
                    cell.refcount -= 1

            if clone is not None:
                self._finalizer.detach()
                self._bind(_SharedCell(clone))
                logger.debug("storage.cow_clone", kind=clone.kind.name, length=clone.length)

            return f(self._cell.buffer.data)

    def read(self, offset: ElementOffset) -> Any:
        return self._require_cell().buffer.read(offset)

    def write(self, offset: ElementOffset, value: Any) -> None:
        length = self.length
        if offset < 0 or offset >= length:
            raise InvalidArgument(f"Offset out of bounds: {offset} (length {length})")
        self._check_value_kind(value)
        self.mutate(lambda data: data.__setitem__(offset, value))

    def fill(self, value: Any) -> None:
        self._check_value_kind(value)
        self.mutate(lambda data: data.fill_(value))

    def to_numpy(self, copy: bool = False) -> np.ndarray:
        """Return the elements as a flat numpy array.

        Without copy the array is a read-only view; it follows later
        in-place writes made while this handle is the unique owner.
        """
        data = self._require_cell().buffer.data
        if copy:
            return data.numpy().copy()
        view = data.numpy()
        view.flags.writeable = False
        return view

    def to_torch(self) -> torch.Tensor:
        return self._require_cell().buffer.data.clone()

    def release(self) -> None:
        """Drop this handle's reference. Safe to call more than once."""
        with self._lock:
            if self._cell is None:
                return
            self._finalizer()
            self._cell = None

    def _check_value_kind(self, value: Any) -> None:
        if isinstance(value, torch.Tensor):
            is_complex = value.is_complex()
        elif isinstance(value, (numbers.Number, np.generic)):
            is_complex = isinstance(value, (complex, np.complexfloating))
        else:
            raise InvalidArgument(f"Unsupported element value: {value!r}")
        if is_complex and not self.kind.is_complex:
            raise InvalidArgument("Complex values cannot be stored in a real buffer")

    @staticmethod
    def _drop_reference(cell: _SharedCell) -> None:
        with cell.lock:
            cell.refcount -= 1
            remaining = cell.refcount
        if remaining == 0:
            logger.debug("storage.released", kind=cell.buffer.kind.name, length=cell.buffer.length)

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *args) -> None:
        self.release()

    def __len__(self) -> int:
        return self.length

    def __repr__(self) -> str:
        if self._cell is None:
            return "Storage(released)"
        return (
            f"Storage(kind={self.kind.name}, length={self.length}, "
            f"ref_count={self.ref_count})"
        )
