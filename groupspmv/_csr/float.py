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

import functools
import logging
from typing import Optional

import numpy as np

from groupspmv._csr.launch import launch_config
from groupspmv._csr.main import CSRMatrix
from groupspmv._csr.width import resolve_kernel_width, select_row_width
from groupspmv._data import DenseVector
from groupspmv._error import HostSyncError
from groupspmv._op import SpMVKernel
from groupspmv._op.util import WARP_SIZE, cuda_guard, device_limits
from groupspmv.config import get_numba_parallel

__all__ = [
    'csrmv',
    'csrmv_p',
]

logger = logging.getLogger(__name__)


def csrmv(
    A: CSRMatrix,
    x,
    y: Optional[DenseVector] = None,
    *,
    width: Optional[int] = None,
    backend: Optional[str] = None,
) -> DenseVector:
    """
    Product of a CSR sparse matrix and a dense vector, ``y = A @ x``.

    Every row is handled by a group of ``width`` cooperating lanes.  Lane
    ``l`` of a group accumulates the entries at offsets ``start + l``,
    ``start + l + width``, ... of its row into a private partial sum; the
    partial sums are then folded by a tree reduction (step ``width / 2``
    down to 1, lane ``i`` adding lane ``i + step``) and lane 0 writes the
    row's result.  Unless ``width`` is given, it is chosen once for the
    whole matrix by :func:`~groupspmv.select_row_width`.

    The result lives on the device.  Its host copy is stale until
    :meth:`DenseVector.sync_to_host` is called.

    Parameters
    ----------
    A : CSRMatrix
        The sparse matrix, synchronized to the device.
    x : DenseVector or array_like
        Dense vector of size ``A.ncols``.  A ``DenseVector`` must already
        be synchronized to the device; an array is copied into a new
        vector on ``A.platform``.
    y : DenseVector, optional
        Output vector of size ``A.nrows``, overwritten in place.  A new
        one is allocated when omitted.
    width : int, optional
        Force the lane-group width.  Widths outside
        ``(1, 2, 4, 8, 16, 32, 64, 128)`` fall back to 1 with a
        :class:`~groupspmv.WidthFallbackWarning`.
    backend : str, optional
        Kernel backend: ``'numba'`` on ``'cpu'``, ``'numba_cuda'`` on
        ``'gpu'``.  Default is the user default or the first registered
        backend for the platform.

    Returns
    -------
    DenseVector
        ``y``, written on the device.

    Raises
    ------
    ValueError
        On a shape mismatch, or if ``A``, ``x`` and ``y`` live on
        different platforms.
    HostSyncError
        If ``A`` or ``x`` has not been pushed to the device.
    KernelNotAvailableError
        If ``backend`` is not registered for the platform.
    AcceleratorError
        If the CUDA runtime fails during the launch.

    See Also
    --------
    groupspmv.validate : Cross-check the result against a reference routine.

    Examples
    --------
    .. code-block:: python

        >>> import numpy as np
        >>> from groupspmv import CSRMatrix, DenseVector, csrmv
        >>> A = CSRMatrix([0, 1, 3, 3, 4], [0, 1, 2, 3], [2., 3., 1., 4.], shape=(4, 4))
        >>> x = DenseVector.from_array(np.ones(4))
        >>> y = csrmv(A, x).sync_to_host()
        >>> y.to_numpy()
        array([2., 4., 0., 4.])
    """
    if not isinstance(A, CSRMatrix):
        raise TypeError(f'A must be a CSRMatrix, got {type(A).__name__}.')
    if not isinstance(x, DenseVector):
        x = DenseVector.from_array(x, platform=A.platform)
    if x.size != A.ncols:
        raise ValueError(f'Shape mismatch: A has {A.ncols} columns but x has size {x.size}.')
    if x.platform != A.platform:
        raise ValueError(f'A lives on {A.platform!r} but x lives on {x.platform!r}.')
    if y is None:
        y = DenseVector(A.nrows, platform=A.platform)
    elif y.size != A.nrows:
        raise ValueError(f'Shape mismatch: A has {A.nrows} rows but y has size {y.size}.')
    elif y.platform != A.platform:
        raise ValueError(f'A lives on {A.platform!r} but y lives on {y.platform!r}.')
    if not x.device_synced:
        raise HostSyncError('x has not been synchronized to the device; call x.sync_to_device() first.')

    limits = device_limits(A.platform)
    if width is None:
        width = select_row_width(A.max_nnz_per_row, limits.warp_size)
    else:
        width = resolve_kernel_width(width)
    cfg = launch_config(A.nrows, width, limits.max_threads_per_block)
    logger.debug(
        'csrmv: shape=%s nnz=%d max_nnz_per_row=%d width=%d rows_per_block=%d num_blocks=%d',
        A.shape, A.nnz, A.max_nnz_per_row, cfg.width, cfg.rows_per_block, cfg.num_blocks,
    )

    if cfg.num_blocks > 0:
        kernel = csrmv_p.kernel(
            A.platform,
            backend,
            width=cfg.width,
            rows_per_block=cfg.rows_per_block,
            num_blocks=cfg.num_blocks,
        )
        kernel(*A.device_arrays(), x.device, y.device)
    y.mark_device_written()
    return y


@functools.lru_cache(maxsize=None)
def _build_numba_mv(width: int, rows_per_block: int, parallel: bool):
    import numba  # pylint: disable=import-outside-toplevel

    if width == 1:
        @numba.njit(parallel=parallel, fastmath=False, nogil=True)
        def mv(row_offsets, col_indices, values, x, y, num_blocks):
            nrows = y.shape[0]
            for block in numba.prange(num_blocks):
                for slot in range(rows_per_block):
                    row = block * rows_per_block + slot
                    if row < nrows:
                        s = 0.0
                        for idx in range(row_offsets[row], row_offsets[row + 1]):
                            s += values[idx] * x[col_indices[idx]]
                        y[row] = s

    else:
        # Lanes of a group run one after another; the fold below pairs
        # partial sums exactly as the GPU shuffle reduction does.
        @numba.njit(parallel=parallel, fastmath=False, nogil=True)
        def mv(row_offsets, col_indices, values, x, y, num_blocks):
            nrows = y.shape[0]
            for block in numba.prange(num_blocks):
                partial = np.zeros(width, dtype=np.float64)
                for slot in range(rows_per_block):
                    row = block * rows_per_block + slot
                    if row < nrows:
                        start = row_offsets[row]
                        end = row_offsets[row + 1]
                        for lane in range(width):
                            s = 0.0
                            idx = start + lane
                            while idx < end:
                                s += values[idx] * x[col_indices[idx]]
                                idx += width
                            partial[lane] = s
                        step = width // 2
                        while step > 0:
                            for lane in range(step):
                                partial[lane] += partial[lane + step]
                            step //= 2
                        y[row] = partial[0]

    return mv


def _csrmv_numba_kernel_generator(
    width: int,
    rows_per_block: int,
    num_blocks: int,
    **kwargs
):
    mv = _build_numba_mv(width, rows_per_block, get_numba_parallel())

    def kernel(row_offsets, col_indices, values, x, y):
        mv(row_offsets, col_indices, values, x, y, num_blocks)

    return kernel


@functools.lru_cache(maxsize=None)
def _build_numba_cuda_mv(width: int, rows_per_block: int):
    from numba import cuda  # pylint: disable=import-outside-toplevel

    threads_per_block = width * rows_per_block

    if width <= WARP_SIZE:
        # The whole group sits inside one warp: register shuffles only.
        @cuda.jit
        def mv(row_offsets, col_indices, values, x, y):
            tid = cuda.threadIdx.x
            lane = tid % width
            row = cuda.blockIdx.x * rows_per_block + tid // width
            nrows = y.shape[0]

            s = 0.0
            if row < nrows:
                idx = row_offsets[row] + lane
                end = row_offsets[row + 1]
                while idx < end:
                    s += values[idx] * x[col_indices[idx]]
                    idx += width

            # every thread of the warp must reach the shuffles
            step = width // 2
            while step > 0:
                s += cuda.shfl_down_sync(0xFFFFFFFF, s, step)
                step //= 2

            if row < nrows and lane == 0:
                y[row] = s

    else:
        # The group spans several warps.  Rounds with step >= 32 cross
        # warp boundaries and go through shared memory.
        @cuda.jit
        def mv(row_offsets, col_indices, values, x, y):
            buf = cuda.shared.array(threads_per_block, dtype=np.float64)
            tid = cuda.threadIdx.x
            lane = tid % width
            row = cuda.blockIdx.x * rows_per_block + tid // width
            nrows = y.shape[0]

            s = 0.0
            if row < nrows:
                idx = row_offsets[row] + lane
                end = row_offsets[row + 1]
                while idx < end:
                    s += values[idx] * x[col_indices[idx]]
                    idx += width
            buf[tid] = s
            cuda.syncthreads()

            step = width // 2
            while step >= WARP_SIZE:
                if lane < step:
                    buf[tid] += buf[tid + step]
                cuda.syncthreads()
                step //= 2

            s = buf[tid]
            step = WARP_SIZE // 2
            while step > 0:
                s += cuda.shfl_down_sync(0xFFFFFFFF, s, step)
                step //= 2

            if row < nrows and lane == 0:
                y[row] = s

    return mv, threads_per_block


def _csrmv_numba_cuda_kernel_generator(
    width: int,
    rows_per_block: int,
    num_blocks: int,
    **kwargs
):
    from numba import cuda  # pylint: disable=import-outside-toplevel

    mv, threads_per_block = _build_numba_cuda_mv(width, rows_per_block)

    def kernel(row_offsets, col_indices, values, x, y):
        with cuda_guard(f'launching csrmv[w={width}] on {num_blocks}x{threads_per_block} threads'):
            mv[num_blocks, threads_per_block](row_offsets, col_indices, values, x, y)
            cuda.synchronize()

    return kernel


csrmv_p = SpMVKernel(
    'csrmv',
    doc="""
Backend registry for ``csrmv``.

Holds one kernel generator per backend: ``numba`` on ``cpu`` and
``numba_cuda`` on ``gpu``.  A generator receives the lane-group
``width``, ``rows_per_block`` and ``num_blocks`` and returns a kernel
specialized for that width.  Compiled variants are cached per width.

Available backends can be queried with ``csrmv_p.available_backends(platform)``,
and the default backend can be configured with ``csrmv_p.set_default(platform, backend)``.

See Also
--------
csrmv : High-level user-facing function wrapper.
"""
)
csrmv_p.def_numba_kernel(_csrmv_numba_kernel_generator)
csrmv_p.def_numba_cuda_kernel(_csrmv_numba_cuda_kernel_generator)
csrmv_p.def_call(csrmv)
