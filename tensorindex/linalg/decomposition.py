"""
Tensor decompositions for tensorindex library.

Both decompositions unfold a tensor into a matrix, with a chosen group of
indices as rows and the remaining indices as columns, factor the matrix
with torch.linalg, and fold the factors back into tensors joined by a
freshly created bond index tagged as a link.
"""

from __future__ import annotations
import math
from typing import Sequence, Tuple

import torch

from ..core.index import Index
from ..core.tensor import TensorBase, TensorDynLen
from ..exceptions import InvalidArgument, DecompositionError
from ..logging_config import get_logger

logger = get_logger(__name__)


def unfold_split(
    tensor: TensorBase,
    left_inds: Sequence[Index]
) -> Tuple[torch.Tensor, int, int, Tuple[Index, ...], Tuple[Index, ...]]:
    """Unfold a tensor into an m x n matrix.

    Args:
        tensor: Tensor of rank >= 2.
        left_inds: Indices that become the rows, in this order.

    Returns:
        (matrix, m, n, left_indices, right_indices), where right_indices are
        the remaining indices in tensor order.

    Raises:
        InvalidArgument: If the rank is below 2, left_inds is empty, covers
            every index, repeats an index or names one the tensor lacks.
    """
    if tensor.rank < 2:
        raise InvalidArgument(f"Unfolding requires rank >= 2, got {tensor.rank}")

    left_positions = []
    for index in left_inds:
        position = tensor.position(index)
        if position is None:
            raise InvalidArgument(f"Index {index!r} is not an index of the tensor")
        if position in left_positions:
            raise InvalidArgument(f"Index {index!r} appears more than once")
        left_positions.append(position)

    if not left_positions or len(left_positions) == tensor.rank:
        raise InvalidArgument("left_inds must be a non-empty proper subset of the tensor indices")

    right_positions = [p for p in range(tensor.rank) if p not in left_positions]
    order = left_positions + right_positions

    m = math.prod(tensor.dims[p] for p in left_positions)
    n = math.prod(tensor.dims[p] for p in right_positions)
    matrix = tensor.to_torch().permute(*order).reshape(m, n)

    left = tuple(tensor.indices[p] for p in left_positions)
    right = tuple(tensor.indices[p] for p in right_positions)
    return matrix, m, n, left, right


def qr(tensor: TensorBase, left_inds: Sequence[Index]) -> Tuple[TensorDynLen, TensorDynLen]:
    """Thin QR decomposition A = Q R.

    Q carries [left..., bond] and R carries [bond, right...], where the bond
    has dimension min(m, n).
    """
    matrix, m, n, left, right = unfold_split(tensor, left_inds)
    k = min(m, n)

    try:
        q_matrix, r_matrix = torch.linalg.qr(matrix, mode='reduced')
    except RuntimeError as e:
        raise DecompositionError(f"QR computation failed: {e}", operation='qr') from e

    bond = Index.new_link(k)
    logger.debug("linalg.qr", m=m, n=n, bond_dim=k)

    q = TensorDynLen.from_array(
        (*left, bond), q_matrix.reshape(*(i.dim for i in left), k), tensor.kind
    )
    r = TensorDynLen.from_array(
        (bond, *right), r_matrix.reshape(k, *(i.dim for i in right)), tensor.kind
    )
    return q, r


def svd(
    tensor: TensorBase,
    left_inds: Sequence[Index]
) -> Tuple[TensorDynLen, TensorDynLen, TensorDynLen]:
    """Thin singular value decomposition A = U S V^H.

    U carries [left..., u], S is diagonal over [u, v] and V carries
    [right..., v]. Both bond indices have dimension min(m, n); v is a
    similar copy of u with its own identity.
    """
    matrix, m, n, left, right = unfold_split(tensor, left_inds)
    k = min(m, n)

    try:
        u_matrix, singular_values, vh_matrix = torch.linalg.svd(matrix, full_matrices=False)
    except RuntimeError as e:
        raise DecompositionError(f"SVD computation failed: {e}", operation='svd') from e

    u_bond = Index.new_link(k)
    v_bond = u_bond.sim()
    logger.debug("linalg.svd", m=m, n=n, bond_dim=k)

    u = TensorDynLen.from_array(
        (*left, u_bond), u_matrix.reshape(*(i.dim for i in left), k), tensor.kind
    )
    s = TensorDynLen.from_array((u_bond, v_bond), torch.diag(singular_values), tensor.kind)
    v = TensorDynLen.from_array(
        (*right, v_bond), vh_matrix.conj().T.reshape(*(i.dim for i in right), k), tensor.kind
    )
    return u, s, v
