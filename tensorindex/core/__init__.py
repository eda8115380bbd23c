"""
Core components of tensorindex library.

This module contains identity generation, tag sets, indices,
copy-on-write storage and the tensor containers built on them.
"""

from .identity import (
    IdentityGenerator,
    next_identity,
    export_identity64,
    import_identity64,
    split_identity,
    join_identity
)
from .tagset import TagSet
from .index import Index, NoSymmSpace
from .storage import DenseBuffer, Storage
from .tensor import TensorBase, TensorDynLen, TensorStaticLen

__all__ = [
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
]
