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


__all__ = [
    'MatrixFormatError',
    'MatrixReadError',
    'KernelNotAvailableError',
    'AcceleratorError',
    'HostSyncError',
    'WidthFallbackWarning',
]


class MatrixFormatError(ValueError):
    """Raised when CSR arrays violate the compressed-row invariants.

    The CSR container checks its arrays once, at construction time, so
    that no kernel ever receives a malformed matrix.  Typical causes are
    a ``row_offsets`` array that does not start at zero, is not
    monotonically non-decreasing, or does not end at ``nnz``, and column
    indices outside ``[0, ncols)``.

    Parameters
    ----------
    message : str
        A human-readable description of the violated invariant.

    See Also
    --------
    MatrixReadError : Raised when a matrix file cannot be read at all.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv._error import MatrixFormatError
        >>> raise MatrixFormatError("row_offsets[0] must be 0, got 3")  # doctest: +SKIP
    """
    __module__ = 'groupspmv'


class MatrixReadError(MatrixFormatError):
    """Raised when a matrix source is missing, unreadable, or malformed.

    This is the input error surfaced by the MatrixMarket reader.  The
    command-line interface turns it into an early, non-zero exit.

    Parameters
    ----------
    message : str
        A description including the offending path and the underlying
        parser error.
    """
    __module__ = 'groupspmv'


class KernelNotAvailableError(Exception):
    """Raised when a requested kernel backend or reference routine is unavailable.

    Either nothing is registered under the requested name for the
    platform, or the package providing it (``numba.cuda`` with a working
    device, ``jax``, ``scipy``) is not installed.

    Parameters
    ----------
    message : str
        A description naming the backend, the platform, and the
        alternatives that are available.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv._error import KernelNotAvailableError
        >>> raise KernelNotAvailableError(
        ...     "Backend 'numba_cuda' is not registered for platform 'cpu'."
        ... )  # doctest: +SKIP
    """
    __module__ = 'groupspmv'


class AcceleratorError(RuntimeError):
    """Raised when the accelerator runtime fails.

    Allocation, host/device copies, kernel launch, and device
    synchronization failures all end up here.  They are not retried:
    they indicate resource exhaustion or a programming defect, and the
    run is aborted.

    Parameters
    ----------
    message : str
        A description of the failed runtime operation.  The original
        driver exception is chained as ``__cause__``.
    """
    __module__ = 'groupspmv'


class HostSyncError(RuntimeError):
    """Raised when host data is read while the device copy is newer.

    Kernels write only to the device copy of their output vector.  The
    host copy stays stale until :meth:`~groupspmv.DenseVector.sync_to_host`
    is called; comparing or printing it before then is a usage error.

    Parameters
    ----------
    message : str
        A description of the stale buffer.
    """
    __module__ = 'groupspmv'


class WidthFallbackWarning(UserWarning):
    """Issued when a requested group width has no compiled kernel variant.

    The dispatcher then runs the width-1 variant, which is always valid.
    """
    __module__ = 'groupspmv'
