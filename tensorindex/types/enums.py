"""
Enumeration types for tensorindex library.

This module defines the enumeration types used for status reporting,
storage selection and symmetry capabilities.
"""

from enum import IntEnum

import torch


class StatusCode(IntEnum):
    """Status codes shared with native callers. Values are stable."""
    SUCCESS = 0
    NULL_POINTER = -1
    INVALID_ARGUMENT = -2
    TAG_OVERFLOW = -3
    TAG_TOO_LONG = -4
    BUFFER_TOO_SMALL = -5
    INTERNAL_ERROR = -6


class StorageKind(IntEnum):
    """Element kinds of dense storage buffers."""
    DENSE_F64 = 1
    DENSE_C64 = 2

    @property
    def dtype(self) -> torch.dtype:
        return _STORAGE_DTYPES[self]

    @property
    def is_complex(self) -> bool:
        return self is StorageKind.DENSE_C64

    @classmethod
    def from_dtype(cls, dtype: torch.dtype) -> "StorageKind":
        if dtype.is_complex:
            return cls.DENSE_C64
        return cls.DENSE_F64


class SymmetryKind(IntEnum):
    """Symmetry capabilities an Index can carry."""
    NONE = 0


_STORAGE_DTYPES = {
    StorageKind.DENSE_F64: torch.float64,
    StorageKind.DENSE_C64: torch.complex128,
}
