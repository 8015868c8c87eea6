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

# -*- coding: utf-8 -*-

import numpy as np


def random_csr(nrows, ncols, max_nnz_per_row, seed=0, empty_rows=0.0):
    """Generate random CSR arrays for testing.

    Parameters
    ----------
    nrows, ncols : int
        Matrix shape.
    max_nnz_per_row : int
        Row lengths are drawn uniformly from ``[0, max_nnz_per_row]`` and
        capped at ``ncols``.  At least one row has exactly this length
        (when ``nrows > 0``).
    seed : int, optional
        Seed of the generator.
    empty_rows : float, optional
        Fraction of rows forced to be empty.

    Returns
    -------
    row_offsets, col_indices, values : numpy.ndarray
        Column indices are sorted and distinct within each row.
    """
    rng = np.random.default_rng(seed)
    max_nnz_per_row = min(max_nnz_per_row, ncols)
    counts = rng.integers(0, max_nnz_per_row + 1, size=nrows)
    if empty_rows > 0:
        counts[rng.random(nrows) < empty_rows] = 0
    if nrows > 0:
        counts[rng.integers(nrows)] = max_nnz_per_row
    row_offsets = np.zeros(nrows + 1, dtype=np.int64)
    np.cumsum(counts, out=row_offsets[1:])
    col_indices = np.concatenate(
        [np.sort(rng.choice(ncols, size=c, replace=False)) for c in counts]
    ).astype(np.int64) if nrows > 0 else np.zeros(0, dtype=np.int64)
    values = rng.standard_normal(row_offsets[-1])
    return row_offsets, col_indices, values


def naive_csrmv(row_offsets, col_indices, values, x):
    """Sequential float64 accumulation of ``A @ x``, one row at a time."""
    nrows = len(row_offsets) - 1
    y = np.zeros(nrows, dtype=np.float64)
    for r in range(nrows):
        s = 0.0
        for k in range(row_offsets[r], row_offsets[r + 1]):
            s += values[k] * x[col_indices[k]]
        y[r] = s
    return y


def grouped_csrmv(row_offsets, col_indices, values, x, width):
    """Row-group accumulation of ``A @ x`` with the kernel's lane order.

    Lane ``l`` sums offsets ``start + l, start + l + width, ...``; the
    partial sums are folded pairwise with the step halving from
    ``width / 2`` to 1.  The CPU kernel matches it bit for bit; the CUDA
    kernel may differ by fused multiply-add contraction, within
    :func:`reassociation_bound`.
    """
    nrows = len(row_offsets) - 1
    y = np.zeros(nrows, dtype=np.float64)
    for r in range(nrows):
        partial = [0.0] * width
        for lane in range(width):
            s = 0.0
            for k in range(row_offsets[r] + lane, row_offsets[r + 1], width):
                s += values[k] * x[col_indices[k]]
            partial[lane] = s
        step = width // 2
        while step > 0:
            for lane in range(step):
                partial[lane] += partial[lane + step]
            step //= 2
        y[r] = partial[0]
    return y


def reassociation_bound(row_offsets, col_indices, values, x):
    """Per-row bound on the gap between two float64 evaluations of ``A @ x``.

    Adding the same ``n`` products in any order, with or without fused
    multiply-add, stays within ``gamma_n * sum(|a_k * x_k|)`` of the exact
    row sum, where ``gamma_n = n * u / (1 - n * u)`` and ``u`` is the unit
    roundoff.  Two such evaluations therefore differ by at most
    ``2 * gamma_n * sum(|a_k * x_k|)``; the value returned,
    ``2 * n * eps * sum(|a_k * x_k|)`` with ``eps = 2 * u``, covers it.
    Empty rows get a bound of 0.
    """
    products = np.abs(np.asarray(values) * np.asarray(x)[np.asarray(col_indices)])
    nrows = len(row_offsets) - 1
    bound = np.zeros(nrows, dtype=np.float64)
    for r in range(nrows):
        p = products[row_offsets[r]:row_offsets[r + 1]]
        bound[r] = 2 * p.size * np.finfo(np.float64).eps * p.sum()
    return bound
