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

from typing import Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from groupspmv._data import MirroredArray
from groupspmv._error import HostSyncError, MatrixFormatError

__all__ = [
    'CSRMatrix',
]


def _check_csr_arrays(row_offsets, col_indices, values, nrows, ncols):
    if row_offsets.ndim != 1 or row_offsets.shape[0] != nrows + 1:
        raise MatrixFormatError(
            f'row_offsets must have nrows + 1 = {nrows + 1} entries, got shape {row_offsets.shape}.'
        )
    if col_indices.ndim != 1 or values.ndim != 1:
        raise MatrixFormatError('col_indices and values must be one-dimensional.')
    nnz = col_indices.shape[0]
    if values.shape[0] != nnz:
        raise MatrixFormatError(
            f'col_indices and values must have the same length, got {nnz} and {values.shape[0]}.'
        )
    if nnz > nrows * ncols:
        raise MatrixFormatError(f'nnz = {nnz} exceeds nrows * ncols = {nrows * ncols}.')
    if row_offsets[0] != 0:
        raise MatrixFormatError(f'row_offsets[0] must be 0, got {row_offsets[0]}.')
    if row_offsets[-1] != nnz:
        raise MatrixFormatError(f'row_offsets[nrows] must equal nnz = {nnz}, got {row_offsets[-1]}.')
    if nrows > 0 and np.any(np.diff(row_offsets) < 0):
        raise MatrixFormatError('row_offsets must be monotonically non-decreasing.')
    if nnz > 0 and (col_indices.min() < 0 or col_indices.max() >= ncols):
        raise MatrixFormatError(f'col_indices must lie in [0, {ncols}).')


class CSRMatrix:
    """An immutable sparse matrix in compressed sparse row (CSR) format.

    Row ``r`` owns the entries ``values[row_offsets[r]:row_offsets[r + 1]]``
    at columns ``col_indices[row_offsets[r]:row_offsets[r + 1]]``.  The
    matrix keeps a host copy and a device copy of all three arrays.  The
    host arrays are frozen at construction; the device copies are filled
    by :meth:`sync_to_device` (called by the constructor unless
    ``sync=False``).

    Parameters
    ----------
    row_offsets : array_like of int
        Row pointer array of length ``nrows + 1``.
    col_indices : array_like of int
        Column index of every stored entry, in ``[0, ncols)``.
    values : array_like of float
        Value of every stored entry.  Stored as float64.
    shape : tuple of int
        ``(nrows, ncols)``.
    platform : {'cpu', 'gpu'}, optional
        Where the device copies live.  Default is ``'cpu'``.
    sync : bool, optional
        Push the arrays to the device right away.  Default is ``True``.

    Raises
    ------
    MatrixFormatError
        If the arrays violate the CSR invariants.

    See Also
    --------
    CSRMatrix.from_coo : Build from coordinate triplets.
    CSRMatrix.from_scipy : Build from any ``scipy.sparse`` matrix.
    groupspmv.csrmv : Sparse matrix--dense vector product.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv import CSRMatrix
        >>> A = CSRMatrix([0, 1, 3, 3, 4], [0, 1, 2, 3], [2., 3., 1., 4.], shape=(4, 4))
        >>> A.max_nnz_per_row
        2
    """
    __module__ = 'groupspmv'

    def __init__(
        self,
        row_offsets,
        col_indices,
        values,
        *,
        shape: Tuple[int, int],
        platform: str = 'cpu',
        sync: bool = True,
    ):
        nrows, ncols = (int(s) for s in shape)
        if nrows < 0 or ncols < 0:
            raise MatrixFormatError(f'Matrix dimensions must be non-negative, got {shape}.')
        row_offsets = np.asarray(row_offsets)
        col_indices = np.asarray(col_indices)
        values = np.asarray(values, dtype=np.float64)
        for name, arr in (('row_offsets', row_offsets), ('col_indices', col_indices)):
            if arr.size and not np.issubdtype(arr.dtype, np.integer):
                raise MatrixFormatError(f'{name} must hold integers, got dtype {arr.dtype}.')
        row_offsets = row_offsets.astype(np.int64)
        col_indices = col_indices.astype(np.int64)
        _check_csr_arrays(row_offsets, col_indices, values, nrows, ncols)

        self._shape = (nrows, ncols)
        self._row_offsets = MirroredArray(row_offsets, np.int64, platform=platform, readonly=True)
        self._col_indices = MirroredArray(col_indices, np.int64, platform=platform, readonly=True)
        self._values = MirroredArray(values, np.float64, platform=platform, readonly=True)
        self._max_nnz_per_row = int(np.diff(row_offsets).max()) if nrows > 0 else 0
        if sync:
            self.sync_to_device()

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_scipy(cls, mat, platform: str = 'cpu', sync: bool = True) -> 'CSRMatrix':
        """Build from any ``scipy.sparse`` matrix or array.

        The input is converted with ``tocsr()``; duplicate coordinates are
        summed and column indices sorted within each row.
        """
        csr = sp.csr_matrix(mat)
        csr.sum_duplicates()
        return cls(csr.indptr, csr.indices, csr.data, shape=csr.shape, platform=platform, sync=sync)

    @classmethod
    def from_coo(
        cls,
        rows: Sequence[int],
        cols: Sequence[int],
        values: Sequence[float],
        *,
        shape: Tuple[int, int],
        platform: str = 'cpu',
        sync: bool = True,
    ) -> 'CSRMatrix':
        """Build from zero-based coordinate triplets ``(rows[k], cols[k], values[k])``."""
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        values = np.asarray(values, dtype=np.float64)
        if not (rows.shape == cols.shape == values.shape):
            raise MatrixFormatError('rows, cols and values must have the same length.')
        if rows.size and (rows.min() < 0 or rows.max() >= shape[0]):
            raise MatrixFormatError(f'Row indices must lie in [0, {shape[0]}).')
        if cols.size and (cols.min() < 0 or cols.max() >= shape[1]):
            raise MatrixFormatError(f'Column indices must lie in [0, {shape[1]}).')
        coo = sp.coo_matrix((values, (rows, cols)), shape=shape)
        return cls.from_scipy(coo, platform=platform, sync=sync)

    @classmethod
    def from_dense(cls, mat, platform: str = 'cpu', sync: bool = True) -> 'CSRMatrix':
        """Build from a dense two-dimensional array, storing its nonzeros."""
        mat = np.asarray(mat, dtype=np.float64)
        if mat.ndim != 2:
            raise MatrixFormatError(f'Expected a two-dimensional array, got shape {mat.shape}.')
        return cls.from_scipy(sp.csr_matrix(mat), platform=platform, sync=sync)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    @property
    def nrows(self) -> int:
        return self._shape[0]

    @property
    def ncols(self) -> int:
        return self._shape[1]

    @property
    def nnz(self) -> int:
        return self._col_indices.size

    @property
    def platform(self) -> str:
        return self._values.platform

    @property
    def row_offsets(self) -> np.ndarray:
        """Read-only host copy of the row pointer array."""
        return self._row_offsets.host

    @property
    def col_indices(self) -> np.ndarray:
        """Read-only host copy of the column indices."""
        return self._col_indices.host

    @property
    def values(self) -> np.ndarray:
        """Read-only host copy of the stored values."""
        return self._values.host

    @property
    def max_nnz_per_row(self) -> int:
        """Largest number of stored entries in any row (0 for an empty matrix)."""
        return self._max_nnz_per_row

    @property
    def device_synced(self) -> bool:
        return all(a.device_synced for a in self._arrays())

    def row_nnz(self) -> np.ndarray:
        """Number of stored entries in every row."""
        return np.diff(self.row_offsets)

    def device_arrays(self):
        """Return ``(row_offsets, col_indices, values)`` as device buffers.

        Raises
        ------
        HostSyncError
            If the device copies have not been synchronized.
        """
        if not self.device_synced:
            raise HostSyncError('CSR arrays are not on the device yet; call sync_to_device() first.')
        return self._row_offsets.device, self._col_indices.device, self._values.device

    # ------------------------------------------------------------------
    # Host/device movement and lifetime
    # ------------------------------------------------------------------

    def _arrays(self):
        return self._row_offsets, self._col_indices, self._values

    def sync_to_device(self) -> 'CSRMatrix':
        """Copy the host arrays into the device buffers."""
        for arr in self._arrays():
            arr.sync_to_device()
        return self

    def close(self):
        """Release the device copies of all three arrays."""
        for arr in self._arrays():
            arr.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_scipy(self) -> sp.csr_matrix:
        """Return a ``scipy.sparse.csr_matrix`` view of the host arrays."""
        return sp.csr_matrix((self.values, self.col_indices, self.row_offsets), shape=self.shape)

    def todense(self) -> np.ndarray:
        return self.to_scipy().toarray()

    def __matmul__(self, other):
        from groupspmv._csr.float import csrmv  # pylint: disable=import-outside-toplevel
        return csrmv(self, other)

    def __repr__(self):
        return (
            f'CSRMatrix(shape={self.shape}, nnz={self.nnz}, '
            f'max_nnz_per_row={self.max_nnz_per_row}, platform={self.platform!r})'
        )
