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

import importlib.util
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import scipy.sparse as sp

from groupspmv._csr.main import CSRMatrix
from groupspmv._data import DenseVector
from groupspmv._error import KernelNotAvailableError
from groupspmv.config import get_user_default

__all__ = [
    'DEFAULT_EPS',
    'REFERENCES',
    'Mismatch',
    'ValidationReport',
    'available_references',
    'default_reference',
    'reference_spmv',
    'compare',
    'validate',
]

logger = logging.getLogger(__name__)

# Absolute tolerance of the elementwise comparison.
DEFAULT_EPS = 1e-14

# Reference routines, in order of preference.
REFERENCES = ('jax', 'scipy')


@dataclass(frozen=True)
class Mismatch:
    """One output component that differs from the reference by at least ``eps``."""
    index: int
    custom: float
    reference: float

    @property
    def abs_diff(self) -> float:
        return abs(self.custom - self.reference)


@dataclass
class ValidationReport:
    """Outcome of comparing a kernel result with a reference result.

    Attributes
    ----------
    correct : bool
        ``True`` iff every component differs by less than ``eps``.
    mismatches : list of Mismatch
        Every offending component, in index order.
    max_abs_diff : float
        Largest absolute difference over all components (``nan`` if any
        component is ``nan``).
    reference : str
        Name of the reference routine.
    eps : float
        Tolerance used.
    size : int
        Number of compared components.
    """
    correct: bool
    mismatches: List[Mismatch] = field(default_factory=list)
    max_abs_diff: float = 0.0
    reference: str = ''
    eps: float = DEFAULT_EPS
    size: int = 0

    def format(self, max_report: Optional[int] = None) -> str:
        """Render ``"correct"`` or one line per mismatch.

        Parameters
        ----------
        max_report : int, optional
            List at most this many mismatches and summarize the rest.
        """
        if self.correct:
            return 'correct'
        shown = self.mismatches if max_report is None else self.mismatches[:max_report]
        lines = [
            f'y[{m.index}]: custom={m.custom!r} reference={m.reference!r} |diff|={m.abs_diff:.3e}'
            for m in shown
        ]
        hidden = len(self.mismatches) - len(shown)
        if hidden > 0:
            lines.append(f'... and {hidden} more')
        lines.append(
            f'{len(self.mismatches)} of {self.size} entries differ from {self.reference or "reference"} '
            f'by >= {self.eps:g} (max |diff| = {self.max_abs_diff:.3e})'
        )
        return '\n'.join(lines)

    def __str__(self):
        return self.format()


def available_references() -> List[str]:
    """Return the reference routines whose package is installed."""
    return [name for name in REFERENCES if importlib.util.find_spec(name) is not None]


def default_reference(platform: str = 'cpu') -> str:
    """Pick the reference for *platform*: the user default if usable, else the first available."""
    available = available_references()
    if not available:
        raise KernelNotAvailableError(f'No reference routine is installed; install one of {REFERENCES}.')
    choice = get_user_default('reference', platform)
    if choice in available:
        return choice
    return available[0]


def _jax_spmv(row_offsets, col_indices, values, shape, x):
    import jax.numpy as jnp  # pylint: disable=import-outside-toplevel
    from jax.experimental import enable_x64  # pylint: disable=import-outside-toplevel
    from jax.experimental import sparse as jsparse  # pylint: disable=import-outside-toplevel

    # float64 end to end, without touching the caller's global x64 setting
    with enable_x64():
        mat = jsparse.CSR(
            (jnp.asarray(values), jnp.asarray(col_indices), jnp.asarray(row_offsets)),
            shape=shape,
        )
        return np.asarray(mat @ jnp.asarray(x), dtype=np.float64)


def _scipy_spmv(row_offsets, col_indices, values, shape, x):
    mat = sp.csr_matrix((values, col_indices, row_offsets), shape=shape)
    return np.asarray(mat @ x, dtype=np.float64)


_REFERENCE_FUNCS = {
    'jax': _jax_spmv,
    'scipy': _scipy_spmv,
}


def reference_spmv(A: CSRMatrix, x, reference: Optional[str] = None) -> np.ndarray:
    """Compute ``A @ x`` with a vendor sparse routine, on host data.

    The routine receives the host CSR arrays of ``A`` (zero-based) and a
    copy of ``x``; it computes ``1 * A @ x + 0``.  ``'jax'`` runs
    ``jax.experimental.sparse`` (cuSPARSE on a GPU backend) with 64-bit
    mode enabled for the duration of the call; ``'scipy'`` runs ``scipy.sparse``.

    Parameters
    ----------
    A : CSRMatrix
        The sparse matrix.
    x : DenseVector or array_like
        Input of size ``A.ncols``.  A ``DenseVector`` must not be host-stale.
    reference : {'jax', 'scipy'}, optional
        Reference routine.  Default is :func:`default_reference`.

    Returns
    -------
    numpy.ndarray
        The reference result, of size ``A.nrows``.

    Raises
    ------
    KernelNotAvailableError
        If ``reference`` is unknown or its package is not installed.
    """
    if reference is None:
        reference = default_reference(A.platform)
    if reference not in _REFERENCE_FUNCS:
        raise KernelNotAvailableError(f'Unknown reference {reference!r}. Expected one of {REFERENCES}.')
    if reference not in available_references():
        raise KernelNotAvailableError(f'Reference {reference!r} is not installed.')

    x = x.to_numpy() if isinstance(x, DenseVector) else np.array(x, dtype=np.float64)
    if x.shape != (A.ncols,):
        raise ValueError(f'Shape mismatch: A has {A.ncols} columns but x has shape {x.shape}.')
    logger.debug('reference %s: shape=%s nnz=%d', reference, A.shape, A.nnz)
    if A.nnz == 0:
        return np.zeros(A.nrows, dtype=np.float64)
    return _REFERENCE_FUNCS[reference](
        A.row_offsets.copy(), A.col_indices.copy(), A.values.copy(), A.shape, x,
    )


def compare(
    y_custom,
    y_ref,
    eps: float = DEFAULT_EPS,
    reference: str = '',
) -> ValidationReport:
    """Compare two result vectors elementwise with absolute tolerance ``eps``.

    A component passes iff ``|y_custom[i] - y_ref[i]| < eps``; ``nan``
    never passes.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv import compare
        >>> compare([1.0, 2.0], [1.0, 2.0]).correct
        True
        >>> print(compare([1.0, 2.0], [1.0, 2.5]))  # doctest: +SKIP
        y[1]: custom=2.0 reference=2.5 |diff|=5.000e-01
        1 of 2 entries differ from reference by >= 1e-14 (max |diff| = 5.000e-01)
    """
    y_custom = np.asarray(y_custom, dtype=np.float64)
    y_ref = np.asarray(y_ref, dtype=np.float64)
    if y_custom.shape != y_ref.shape:
        raise ValueError(f'Shape mismatch: {y_custom.shape} vs. {y_ref.shape}.')
    if eps <= 0:
        raise ValueError(f'eps must be positive, got {eps}.')
    diff = np.abs(y_custom - y_ref)
    bad = np.flatnonzero(~(diff < eps))
    mismatches = [Mismatch(int(i), float(y_custom[i]), float(y_ref[i])) for i in bad]
    max_abs_diff = float(np.max(diff)) if diff.size else 0.0
    return ValidationReport(
        correct=not mismatches,
        mismatches=mismatches,
        max_abs_diff=max_abs_diff,
        reference=reference,
        eps=eps,
        size=int(y_custom.size),
    )


def validate(
    A: CSRMatrix,
    x: DenseVector,
    y: DenseVector,
    reference: Optional[str] = None,
    eps: float = DEFAULT_EPS,
) -> ValidationReport:
    """Check a kernel result ``y`` against the reference ``A @ x``.

    ``y`` must have been copied back to the host with
    :meth:`DenseVector.sync_to_host`.  Neither input is modified.

    Raises
    ------
    HostSyncError
        If ``x`` or ``y`` holds stale host data.
    KernelNotAvailableError
        If the reference routine is unavailable.
    ValueError
        On a shape mismatch.
    """
    y_custom = y.to_numpy()
    if y_custom.shape != (A.nrows,):
        raise ValueError(f'Shape mismatch: A has {A.nrows} rows but y has size {y_custom.shape[0]}.')
    if reference is None:
        reference = default_reference(A.platform)
    y_ref = reference_spmv(A, x, reference)
    report = compare(y_custom, y_ref, eps=eps, reference=reference)
    logger.debug(
        'validate against %s: correct=%s mismatches=%d max_abs_diff=%.3e',
        reference, report.correct, len(report.mismatches), report.max_abs_diff,
    )
    return report
