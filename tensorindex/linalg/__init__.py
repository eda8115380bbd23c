"""
Linear algebra on tensors for tensorindex library.

This module provides index-aware QR and SVD decompositions built on
torch.linalg.
"""

from .decomposition import unfold_split, qr, svd

__all__ = [
    "unfold_split",
    "qr",
    "svd",
]
