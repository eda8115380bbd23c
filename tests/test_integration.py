import pytest
import numpy as np
import torch
from concurrent.futures import ThreadPoolExecutor, as_completed
from unittest.mock import patch

import tensorindex
from tensorindex import (
    Index,
    Storage,
    StorageKind,
    TensorDynLen,
    TensorStaticLen,
    InvalidArgument,
    NullHandle,
    DecompositionError,
    next_identity,
    unfold_split,
    qr,
    svd
)


class TestBasicIntegration:
    def test_import_tensorindex(self):
        """Test that tensorindex can be imported successfully"""
        assert tensorindex.__version__ == "0.1.0"
        assert tensorindex.get_version_info() == (0, 1, 0)
        assert len(tensorindex.__all__) > 30

    def test_default_config(self):
        config = tensorindex.get_default_config()
        assert config is tensorindex.get_default_config()
        assert config.max_tags == 4


class TestTensorDynLen:
    def setup_method(self):
        self.i = Index(2, tags="i")
        self.j = Index(3, tags="j")

    def test_construction(self):
        t = TensorDynLen([self.i, self.j], [2, 3], Storage.new_dense(StorageKind.DENSE_F64, 6))
        assert t.indices == (self.i, self.j)
        assert t.dims == (2, 3)
        assert t.rank == 2
        assert t.numel == 6
        assert t.kind == StorageKind.DENSE_F64

    def test_length_mismatch(self):
        with pytest.raises(InvalidArgument, match="does not match number of dims"):
            TensorDynLen([self.i, self.j], [2], Storage.new_dense(StorageKind.DENSE_F64, 2))

    def test_dim_mismatch(self):
        with pytest.raises(InvalidArgument, match="does not match index"):
            TensorDynLen([self.i, self.j], [3, 2], Storage.new_dense(StorageKind.DENSE_F64, 6))

    def test_duplicate_indices(self):
        with pytest.raises(InvalidArgument, match="distinct"):
            TensorDynLen([self.i, self.i.clone()], [2, 2], Storage.new_dense(StorageKind.DENSE_F64, 4))

    def test_storage_length_mismatch(self):
        with pytest.raises(InvalidArgument, match="does not match storage length"):
            TensorDynLen([self.i, self.j], [2, 3], Storage.new_dense(StorageKind.DENSE_F64, 7))

    def test_non_strict_allows_longer_storage(self):
        t = TensorDynLen([self.i, self.j], [2, 3],
                         Storage.new_dense(StorageKind.DENSE_F64, 8), strict=False)
        assert t.to_numpy().shape == (2, 3)

        with pytest.raises(InvalidArgument):
            TensorDynLen([self.i, self.j], [2, 3],
                         Storage.new_dense(StorageKind.DENSE_F64, 5), strict=False)

    def test_released_storage(self):
        storage = Storage.new_dense(StorageKind.DENSE_F64, 6)
        storage.release()
        with pytest.raises(NullHandle, match="released"):
            TensorDynLen([self.i, self.j], [2, 3], storage)

    def test_non_index_rejected(self):
        with pytest.raises(InvalidArgument, match="Expected Index"):
            TensorDynLen(["i"], [2], Storage.new_dense(StorageKind.DENSE_F64, 2))

    def test_scalar_tensor(self):
        t = TensorDynLen([], [], Storage.new_dense(StorageKind.DENSE_F64, 1))
        t.set((), 4.0)
        assert t.rank == 0
        assert t.get() == 4.0

    def test_from_array(self):
        values = np.arange(6.0).reshape(2, 3)
        t = TensorDynLen.from_array([self.i, self.j], values)
        assert t.get(1, 0) == 3.0
        assert np.array_equal(t.to_numpy(), values)

        with pytest.raises(InvalidArgument, match="does not match index dims"):
            TensorDynLen.from_array([self.j, self.i], values)

    def test_from_indices(self):
        t = TensorDynLen.from_indices([self.i, self.j], Storage.new_dense(StorageKind.DENSE_C64, 6))
        assert t.dims == (2, 3)
        assert t.kind == StorageKind.DENSE_C64

    def test_element_access(self):
        t = TensorDynLen.zeros([self.i, self.j])
        t.set((0, 2), 1.0)
        t.set([1, 1], 2.0)

        assert t.get(0, 2) == 1.0
        assert t.get(1, 1) == 2.0
        assert t.storage.read(2) == 1.0
        assert t.storage.read(4) == 2.0

    def test_element_access_checks(self):
        t = TensorDynLen.zeros([self.i, self.j])

        with pytest.raises(InvalidArgument, match="Expected 2 coordinates"):
            t.get(0)
        with pytest.raises(InvalidArgument, match="out of range"):
            t.get(2, 0)
        with pytest.raises(InvalidArgument, match="out of range"):
            t.set((0, -1), 1.0)

    def test_shared_tensors_copy_on_write(self):
        t1 = TensorDynLen.zeros([self.i, self.j])
        t2 = t1.share()
        assert t1.storage.ref_count == 2

        t2.set((1, 2), 5.0)

        assert t1.get(1, 2) == 0.0
        assert t2.get(1, 2) == 5.0
        assert t1.storage.ref_count == 1
        assert t2.storage.ref_count == 1

    def test_fill_through_shared_tensor(self):
        t1 = TensorDynLen.from_array([self.i, self.j], np.ones((2, 3)))
        t2 = t1.share()
        t1.fill(0.0)

        assert np.array_equal(t2.to_numpy(), np.ones((2, 3)))
        assert np.array_equal(t1.to_numpy(), np.zeros((2, 3)))

    def test_copy(self):
        t1 = TensorDynLen.zeros([self.i, self.j])
        t2 = t1.copy()
        assert t1.storage.ref_count == 1
        assert t2.storage.ref_count == 1
        assert not t1.storage.shares_buffer_with(t2.storage)

    def test_position(self):
        t = TensorDynLen.zeros([self.i, self.j])
        assert t.position(self.j) == 1
        assert t.position(self.j.clone()) == 1
        assert t.position(Index(3)) is None

    def test_permute(self):
        values = np.arange(6.0).reshape(2, 3)
        t = TensorDynLen.from_array([self.i, self.j], values)
        p = t.permute([self.j, self.i])

        assert p.indices == (self.j, self.i)
        assert p.dims == (3, 2)
        assert np.array_equal(p.to_numpy(), values.T)

        with pytest.raises(InvalidArgument):
            t.permute([self.j])
        with pytest.raises(InvalidArgument):
            t.permute([self.j, self.j])

    def test_context_manager_releases(self):
        with TensorDynLen.zeros([self.i]) as t:
            storage = t.storage
        assert not storage.is_valid

    def test_repr(self):
        text = repr(TensorDynLen.zeros([self.i]))
        assert "TensorDynLen" in text
        assert "dim=2" in text


class TestTensorStaticLen:
    def test_of_rank_is_cached(self):
        assert TensorStaticLen.of_rank(2) is TensorStaticLen.of_rank(2)
        assert TensorStaticLen.of_rank(2) is not TensorStaticLen.of_rank(3)
        assert TensorStaticLen.of_rank(3).RANK == 3

    def test_construction(self):
        Matrix = TensorStaticLen.of_rank(2)
        i, j = Index(2), Index(2)
        m = Matrix.zeros([i, j])

        assert isinstance(m, TensorStaticLen)
        assert m.rank == 2
        m.set((1, 0), 3.0)
        assert m.get(1, 0) == 3.0

    def test_wrong_rank(self):
        Matrix = TensorStaticLen.of_rank(2)
        with pytest.raises(InvalidArgument, match="requires 2 indices"):
            Matrix.zeros([Index(2)])

    def test_unranked_base(self):
        with pytest.raises(InvalidArgument, match="of_rank"):
            TensorStaticLen.zeros([Index(2)])

    @pytest.mark.parametrize("rank", [-1, 1.5, True])
    def test_invalid_rank(self, rank):
        with pytest.raises(InvalidArgument):
            TensorStaticLen.of_rank(rank)

    def test_share_keeps_class(self):
        Vector = TensorStaticLen.of_rank(1)
        v = Vector.zeros([Index(3)])
        w = v.share()
        assert type(w) is Vector
        w.set((0,), 1.0)
        assert v.get(0) == 0.0

    @pytest.mark.parametrize("coords", [(), (1,), (0, 2, 0)])
    def test_get_wrong_coordinate_count(self, coords):
        Matrix = TensorStaticLen.of_rank(2)
        m = Matrix.from_array([Index(2), Index(3)], [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

        with pytest.raises(InvalidArgument, match="takes 2 coordinates"):
            m.get(*coords)

    @pytest.mark.parametrize("coords", [(1,), (0, 2, 99)])
    def test_set_wrong_coordinate_count(self, coords):
        Matrix = TensorStaticLen.of_rank(2)
        m = Matrix.from_array([Index(2), Index(3)], [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

        with pytest.raises(InvalidArgument, match="takes 2 coordinates"):
            m.set(coords, 9.0)
        assert np.array_equal(m.to_numpy(), [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


class TestDecompositions:
    def setup_method(self):
        torch.manual_seed(0)
        self.i = Index(2, tags="i")
        self.j = Index(3, tags="j")
        self.k = Index(4, tags="k")
        self.values = torch.randn(2, 3, 4, dtype=torch.float64).numpy()
        self.t = TensorDynLen.from_array([self.i, self.j, self.k], self.values)

    def test_unfold_split(self):
        matrix, m, n, left, right = unfold_split(self.t, [self.k, self.i])

        assert (m, n) == (8, 3)
        assert left == (self.k, self.i)
        assert right == (self.j,)
        expected = np.transpose(self.values, (2, 0, 1)).reshape(8, 3)
        assert np.allclose(matrix.numpy(), expected)

    @pytest.mark.parametrize("left", [[], "all", "dup", "missing"])
    def test_unfold_split_invalid(self, left):
        if left == "all":
            left = [self.i, self.j, self.k]
        elif left == "dup":
            left = [self.i, self.i]
        elif left == "missing":
            left = [Index(2)]

        with pytest.raises(InvalidArgument):
            unfold_split(self.t, left)

    def test_unfold_split_rank_one(self):
        with pytest.raises(InvalidArgument, match="rank >= 2"):
            unfold_split(TensorDynLen.zeros([self.i]), [self.i])

    def test_qr(self):
        q, r = qr(self.t, [self.i, self.k])
        bond = q.indices[-1]

        assert bond.has_tag("Link")
        assert bond.dim == 3
        assert q.indices[:2] == (self.i, self.k)
        assert r.indices == (bond, self.j)

        rebuilt = np.einsum('ikb,bj->ijk', q.to_numpy(), r.to_numpy())
        assert np.allclose(rebuilt, self.values)

        q_matrix = q.to_numpy().reshape(8, 3)
        assert np.allclose(q_matrix.T @ q_matrix, np.eye(3))

    def test_svd(self):
        u, s, v = svd(self.t, [self.i])
        u_bond, v_bond = s.indices

        assert u_bond.dim == v_bond.dim == 2
        assert u_bond != v_bond
        assert u.indices == (self.i, u_bond)
        assert v.indices == (self.j, self.k, v_bond)

        rebuilt = np.einsum('ia,ab,jkb->ijk', u.to_numpy(), s.to_numpy(), v.to_numpy().conj())
        assert np.allclose(rebuilt, self.values)

        singular = np.diag(s.to_numpy())
        assert np.all(singular[:-1] >= singular[1:])

    def test_complex_svd(self):
        values = (torch.randn(3, 2, dtype=torch.float64)
                  + 1j * torch.randn(3, 2, dtype=torch.float64)).numpy()
        a, b = Index(3), Index(2)
        t = TensorDynLen.from_array([a, b], values)

        u, s, v = svd(t, [a])
        assert u.kind == StorageKind.DENSE_C64
        rebuilt = u.to_numpy() @ s.to_numpy() @ v.to_numpy().conj().T
        assert np.allclose(rebuilt, values)

    def test_backend_failure(self):
        with patch('tensorindex.linalg.decomposition.torch.linalg.qr',
                   side_effect=RuntimeError("did not converge")):
            with pytest.raises(DecompositionError, match="QR computation failed"):
                qr(self.t, [self.i])


class TestConcurrency:
    def test_concurrent_identity_generation(self):
        def worker(count):
            return [next_identity() for _ in range(count)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(worker, 500) for _ in range(8)]
            identities = []
            for future in as_completed(futures):
                identities.extend(future.result())

        assert len(identities) == 4000
        assert len(set(identities)) == 4000
        assert 0 not in identities

    def test_concurrent_index_creation(self):
        with ThreadPoolExecutor(max_workers=8) as executor:
            indices = list(executor.map(lambda _: Index(2), range(1000)))
        assert len(set(indices)) == 1000

    def test_concurrent_share_and_release(self):
        storage = Storage.new_dense(StorageKind.DENSE_F64, 16)

        def worker():
            handles = [storage.share() for _ in range(50)]
            for handle in handles:
                handle.release()

        with ThreadPoolExecutor(max_workers=8) as executor:
            for future in [executor.submit(worker) for _ in range(8)]:
                future.result()

        assert storage.ref_count == 1

    def test_concurrent_writers_on_own_handles(self):
        storage = Storage.new_dense(StorageKind.DENSE_F64, 4)
        handles = [storage.share() for _ in range(8)]

        def worker(position, handle):
            handle.fill(float(position))
            return handle

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(worker, range(8), handles))

        for position, handle in enumerate(results):
            assert np.array_equal(handle.to_numpy(), np.full(4, float(position)))
        assert np.array_equal(storage.to_numpy(), np.zeros(4))


if __name__ == "__main__":
    pytest.main([__file__])
