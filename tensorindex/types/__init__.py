"""
Type definitions and protocols for tensorindex library.

This module provides type definitions, protocols, and enumerations
used throughout the tensorindex library for type safety and clarity.
"""

from .enums import (
    StatusCode,
    StorageKind,
    SymmetryKind
)
from .protocols import (
    ISymmetrySpace,
    IStorageBuffer,
    IStorageHandle
)
from .aliases import (
    Identity,
    Identity64,
    Dimension,
    ElementOffset,
    MAX_IDENTITY,
    MAX_GENERATED_IDENTITY
)

__all__ = [
    # Enums
    "StatusCode",
    "StorageKind",
    "SymmetryKind",

    # Protocols
    "ISymmetrySpace",
    "IStorageBuffer",
    "IStorageHandle",

    # Type aliases
    "Identity",
    "Identity64",
    "Dimension",
    "ElementOffset",
    "MAX_IDENTITY",
    "MAX_GENERATED_IDENTITY",
]
