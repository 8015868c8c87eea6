# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import warnings

import numpy as np
import pytest

from groupspmv import (
    CSRMatrix, DenseVector, HostSyncError, KernelNotAvailableError, WidthFallbackWarning,
)
from groupspmv._csr.float import csrmv, csrmv_p
from groupspmv._csr.test_util import grouped_csrmv, naive_csrmv, random_csr, reassociation_bound
from groupspmv._csr.width import SUPPORTED_WIDTHS, select_row_width
from groupspmv._misc import numba_cuda_available

PLATFORMS = ('cpu', 'gpu') if numba_cuda_available() else ('cpu',)


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    from groupspmv.config import invalidate_cache
    monkeypatch.setattr('groupspmv.config.get_config_path', lambda: str(tmp_path / 'defaults.json'))
    invalidate_cache()
    yield
    invalidate_cache()


def _run(A, x_host, **kwargs):
    x = DenseVector.from_array(x_host, platform=A.platform)
    y = csrmv(A, x, **kwargs)
    y.sync_to_host()
    return y.to_numpy()


def _assert_kernel_order(platform, y, row_offsets, col_indices, values, x, width):
    """Check ``y`` against the kernel's own lane order and the sequential sum.

    The CPU kernel reproduces :func:`grouped_csrmv` exactly.  The CUDA kernel
    may contract multiply-adds, and the sequential sum adds the products in
    another order; both gaps are rounding only and stay within
    :func:`reassociation_bound`.
    """
    y_group = grouped_csrmv(row_offsets, col_indices, values, x, width)
    bound = reassociation_bound(row_offsets, col_indices, values, x)
    if platform == 'cpu':
        np.testing.assert_array_equal(y, y_group)
    else:
        assert np.all(np.abs(y - y_group) <= bound)
    assert np.all(np.abs(y - naive_csrmv(row_offsets, col_indices, values, x)) <= bound)


def _four_by_four(platform):
    return CSRMatrix.from_coo(
        [0, 1, 1, 3], [0, 1, 2, 3], [2.0, 3.0, 1.0, 4.0], shape=(4, 4), platform=platform,
    )


@pytest.mark.parametrize('platform', PLATFORMS)
class TestCSRMV:
    def test_four_by_four(self, platform):
        A = _four_by_four(platform)
        y = _run(A, np.ones(4))
        np.testing.assert_array_equal(y, [2.0, 4.0, 0.0, 4.0])

    def test_matmul_operator(self, platform):
        A = _four_by_four(platform)
        x = DenseVector.from_array(np.ones(4), platform=platform)
        y = (A @ x).sync_to_host()
        np.testing.assert_array_equal(y.to_numpy(), [2.0, 4.0, 0.0, 4.0])

    @pytest.mark.parametrize('nrows', [0, 1, 7, 5000])
    def test_no_nonzeros(self, platform, nrows):
        A = CSRMatrix(np.zeros(nrows + 1, dtype=np.int64), [], [], shape=(nrows, 10), platform=platform)
        x = DenseVector.random(10, seed=1, platform=platform)
        y = csrmv(A, x).sync_to_host()
        np.testing.assert_array_equal(y.to_numpy(), np.zeros(nrows))

    def test_output_overwrites_previous_contents(self, platform):
        A = _four_by_four(platform)
        x = DenseVector.from_array(np.ones(4), platform=platform)
        y = DenseVector.from_array(np.full(4, 7.0), platform=platform)
        csrmv(A, x, y).sync_to_host()
        np.testing.assert_array_equal(y.to_numpy(), [2.0, 4.0, 0.0, 4.0])

    @pytest.mark.parametrize('max_nnz', [1, 3, 17, 32, 33, 100])
    def test_matches_sequential_accumulation(self, platform, max_nnz):
        row_offsets, col_indices, values = random_csr(300, 200, max_nnz, seed=max_nnz, empty_rows=0.1)
        A = CSRMatrix(row_offsets, col_indices, values, shape=(300, 200), platform=platform)
        x = np.random.default_rng(7).uniform(0.0, 1.0, 200)
        y = _run(A, x)
        width = select_row_width(A.max_nnz_per_row)
        _assert_kernel_order(platform, y, row_offsets, col_indices, values, x, width)

    def test_exact_inputs_match_sequential_within_eps(self, platform):
        # small integers keep every partial sum exact, so the lane order cannot matter
        rng = np.random.default_rng(21)
        row_offsets, col_indices, _ = random_csr(400, 300, 90, seed=21, empty_rows=0.1)
        values = rng.integers(-8, 9, size=col_indices.size).astype(np.float64)
        x = rng.integers(-8, 9, size=300).astype(np.float64)
        A = CSRMatrix(row_offsets, col_indices, values, shape=(400, 300), platform=platform)
        y = _run(A, x)
        assert np.all(np.abs(y - naive_csrmv(row_offsets, col_indices, values, x)) < 1e-14)

    @pytest.mark.parametrize('width', SUPPORTED_WIDTHS)
    def test_every_width_variant(self, platform, width):
        row_offsets, col_indices, values = random_csr(2100, 300, 150, seed=width, empty_rows=0.05)
        A = CSRMatrix(row_offsets, col_indices, values, shape=(2100, 300), platform=platform)
        x = np.random.default_rng(width).uniform(-1.0, 1.0, 300)
        y = _run(A, x, width=width)
        _assert_kernel_order(platform, y, row_offsets, col_indices, values, x, width)

    def test_idempotent(self, platform):
        row_offsets, col_indices, values = random_csr(500, 400, 60, seed=3)
        A = CSRMatrix(row_offsets, col_indices, values, shape=(500, 400), platform=platform)
        x = DenseVector.random(400, seed=4, platform=platform)
        y1 = csrmv(A, x).sync_to_host().to_numpy()
        y2 = csrmv(A, x).sync_to_host().to_numpy()
        np.testing.assert_array_equal(y1, y2)

    def test_single_entry_row_in_large_matrix(self, platform):
        n = 10000
        A = CSRMatrix.from_coo([4321], [1234], [2.5], shape=(n, n), platform=platform)
        assert select_row_width(A.max_nnz_per_row) == 1
        x = np.arange(n, dtype=np.float64)
        y = _run(A, x)
        expected = np.zeros(n)
        expected[4321] = 2.5 * 1234
        np.testing.assert_array_equal(y, expected)

    def test_unsupported_width_falls_back(self, platform):
        A = _four_by_four(platform)
        x = DenseVector.from_array(np.ones(4), platform=platform)
        with pytest.warns(WidthFallbackWarning):
            y = csrmv(A, x, width=3)
        np.testing.assert_array_equal(y.sync_to_host().to_numpy(), [2.0, 4.0, 0.0, 4.0])

    def test_result_host_is_stale_until_synced(self, platform):
        A = _four_by_four(platform)
        x = DenseVector.from_array(np.ones(4), platform=platform)
        y = csrmv(A, x)
        assert y.host_stale
        with pytest.raises(HostSyncError):
            y.to_numpy()

    def test_inputs_unchanged(self, platform):
        A = _four_by_four(platform)
        x = DenseVector.from_array(np.arange(4.0), platform=platform)
        csrmv(A, x)
        np.testing.assert_array_equal(x.to_numpy(), np.arange(4.0))
        np.testing.assert_array_equal(A.values, [2.0, 3.0, 1.0, 4.0])


class TestCSRMVErrors:
    def test_shape_mismatch_x(self):
        A = _four_by_four('cpu')
        with pytest.raises(ValueError):
            csrmv(A, DenseVector.from_array(np.ones(5)))

    def test_shape_mismatch_y(self):
        A = _four_by_four('cpu')
        x = DenseVector.from_array(np.ones(4))
        with pytest.raises(ValueError):
            csrmv(A, x, DenseVector(3))

    def test_requires_csr_matrix(self):
        with pytest.raises(TypeError):
            csrmv(np.eye(4), np.ones(4))

    def test_x_must_be_on_device(self):
        A = _four_by_four('cpu')
        x = DenseVector.from_array(np.ones(4), sync=False)
        with pytest.raises(HostSyncError):
            csrmv(A, x)

    def test_array_input_is_converted(self):
        A = _four_by_four('cpu')
        y = csrmv(A, np.ones(4)).sync_to_host()
        np.testing.assert_array_equal(y.to_numpy(), [2.0, 4.0, 0.0, 4.0])

    def test_unknown_backend(self):
        A = _four_by_four('cpu')
        x = DenseVector.from_array(np.ones(4))
        with pytest.raises(KernelNotAvailableError):
            csrmv(A, x, backend='numba_cuda')

    def test_supported_width_does_not_warn(self):
        A = _four_by_four('cpu')
        x = DenseVector.from_array(np.ones(4))
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter('always')
            csrmv(A, x, width=64)
        assert not any(issubclass(item.category, WidthFallbackWarning) for item in w)


class TestCSRMVRegistry:
    def test_backends(self):
        assert csrmv_p.available_backends('cpu') == ['numba']
        assert csrmv_p.available_backends('gpu') == ['numba_cuda']
        assert csrmv_p.defaults == {'cpu': 'numba', 'gpu': 'numba_cuda'}

    def test_benchmark(self):
        row_offsets, col_indices, values = random_csr(200, 200, 8, seed=0)
        A = CSRMatrix(row_offsets, col_indices, values, shape=(200, 200))
        x = DenseVector.random(200, seed=0)
        result = csrmv_p.benchmark(A, x, platform='cpu', n_warmup=1, n_runs=2, label='rand')
        assert len(result) == 1
        record = result.fastest()
        assert record.backend == 'numba'
        assert record.label == 'rand'
        assert record.success


@pytest.mark.skipif(not numba_cuda_available(), reason='Numba CUDA not available')
class TestCSRMVGPUvsCPU:
    @pytest.mark.parametrize('max_nnz', [0, 2, 31, 64, 200])
    def test_backends_agree(self, max_nnz):
        """Both backends fold lanes in the same order; only FMA contraction on the GPU separates them."""
        row_offsets, col_indices, values = random_csr(3000, 500, max_nnz, seed=11)
        x = np.random.default_rng(12).uniform(0.0, 1.0, 500)
        y_cpu = _run(CSRMatrix(row_offsets, col_indices, values, shape=(3000, 500), platform='cpu'), x)
        y_gpu = _run(CSRMatrix(row_offsets, col_indices, values, shape=(3000, 500), platform='gpu'), x)
        assert np.all(np.abs(y_gpu - y_cpu) <= reassociation_bound(row_offsets, col_indices, values, x))
