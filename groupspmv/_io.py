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

import logging
import os
from typing import Union

import numpy as np
import scipy.io
import scipy.sparse as sp

from groupspmv._csr.main import CSRMatrix
from groupspmv._error import MatrixFormatError, MatrixReadError

__all__ = [
    'load_matrix_market',
]

logger = logging.getLogger(__name__)


def load_matrix_market(
    path: Union[str, os.PathLike],
    platform: str = 'cpu',
) -> CSRMatrix:
    """Read a MatrixMarket file into a device-synchronized :class:`CSRMatrix`.

    The file is parsed with :func:`scipy.io.mmread`.  One-based
    coordinates become zero-based, symmetric and skew-symmetric storage
    is expanded to the full matrix, pattern matrices get the value 1.0,
    and duplicate coordinates are summed.  Dense ``array`` files are
    accepted and their nonzeros stored.

    Parameters
    ----------
    path : str or os.PathLike
        Path of the ``.mtx`` file (optionally ``.gz`` or ``.bz2``
        compressed).
    platform : {'cpu', 'gpu'}, optional
        Where the device copies live.  Default is ``'cpu'``.

    Returns
    -------
    CSRMatrix
        The matrix, already pushed to the device.

    Raises
    ------
    MatrixReadError
        If the file is missing or unreadable, is not valid MatrixMarket,
        holds complex values, or produces an invalid CSR structure.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv import load_matrix_market
        >>> A = load_matrix_market('bcsstk01.mtx')  # doctest: +SKIP
        >>> A.shape  # doctest: +SKIP
        (48, 48)
    """
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise MatrixReadError(f"Cannot read MatrixMarket file {path!r}: no such file.")
    try:
        mat = scipy.io.mmread(path)
    except Exception as e:  # the parser raises its own exception types for malformed input
        raise MatrixReadError(f'Cannot read MatrixMarket file {path!r}: {e}') from e

    if not sp.issparse(mat):
        mat = np.asarray(mat)
        if mat.ndim != 2:
            raise MatrixReadError(f'{path!r} does not hold a two-dimensional matrix.')
    if np.iscomplexobj(mat):
        raise MatrixReadError(f'{path!r} holds complex values; only real matrices are supported.')

    try:
        A = CSRMatrix.from_scipy(sp.csr_matrix(mat, dtype=np.float64), platform=platform)
    except MatrixFormatError as e:
        raise MatrixReadError(f'{path!r} does not describe a valid sparse matrix: {e}') from e
    logger.debug('loaded %s: shape=%s nnz=%d', path, A.shape, A.nnz)
    return A
