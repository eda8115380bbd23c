"""
tensorindex - Index identity and tensor storage core

The foundation layer of a tensor-network library: every tensor leg gets a
process-unique identity, optional tags and a dimension, and tensors keep
their numbers in shared, copy-on-write dense storage.

Key Features:
- Identity-only index equality, independent of tags and dimension
- Bounded, ordered tag sets with CSV round-trip
- Reference-counted dense storage (float64 / complex128) with copy-on-write
- Dynamic-rank and static-rank tensor containers
- Index-aware QR and SVD decompositions
- Stable status codes and a 128/64-bit identity width policy for interop
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Tensor Memory Systems"
__email__ = "info@tensormemory.com"
__license__ = "MIT"

# Core components
from .core.identity import (
    IdentityGenerator,
    next_identity,
    export_identity64,
    import_identity64,
    split_identity,
    join_identity
)
from .core.tagset import TagSet
from .core.index import Index, NoSymmSpace
from .core.storage import DenseBuffer, Storage
from .core.tensor import TensorBase, TensorDynLen, TensorStaticLen

# Linear algebra
from .linalg import unfold_split, qr, svd

# Configuration
from .config import TensorIndexConfig, get_default_config
from .logging_config import configure_logging

# Types
from .types.enums import StatusCode, StorageKind, SymmetryKind
from .types.aliases import Identity, Identity64
from .types.protocols import ISymmetrySpace, IStorageBuffer, IStorageHandle

# Exceptions
from .exceptions import (
    TensorIndexError,
    InvalidArgument,
    TagError,
    TagOverflow,
    TagTooLong,
    BufferTooSmall,
    NullHandle,
    InternalError,
    AllocationFailure,
    DecompositionError,
    status_of
)

# Public API
__all__ = [
    # Core components
    "IdentityGenerator",
    "next_identity",
    "export_identity64",
    "import_identity64",
    "split_identity",
    "join_identity",
    "TagSet",
    "Index",
    "NoSymmSpace",
    "DenseBuffer",
    "Storage",
    "TensorBase",
    "TensorDynLen",
    "TensorStaticLen",

    # Linear algebra
    "unfold_split",
    "qr",
    "svd",

    # Configuration
    "TensorIndexConfig",
    "get_default_config",
    "configure_logging",

    # Types
    "StatusCode",
    "StorageKind",
    "SymmetryKind",
    "Identity",
    "Identity64",
    "ISymmetrySpace",
    "IStorageBuffer",
    "IStorageHandle",

    # Exceptions
    "TensorIndexError",
    "InvalidArgument",
    "TagError",
    "TagOverflow",
    "TagTooLong",
    "BufferTooSmall",
    "NullHandle",
    "InternalError",
    "AllocationFailure",
    "DecompositionError",
    "status_of",
]

# Version info
VERSION_INFO = tuple(map(int, __version__.split('.')))

def get_version() -> str:
    """Get the current version string."""
    return __version__

def get_version_info() -> tuple[int, ...]:
    """Get version as tuple of integers."""
    return VERSION_INFO
