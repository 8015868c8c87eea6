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

import warnings

from groupspmv._error import WidthFallbackWarning
from groupspmv._misc import is_power_of_two
from groupspmv._op.util import WARP_SIZE

__all__ = [
    'SUPPORTED_WIDTHS',
    'select_row_width',
    'resolve_kernel_width',
]

# Group widths for which a kernel variant is compiled.
SUPPORTED_WIDTHS = (1, 2, 4, 8, 16, 32, 64, 128)


def select_row_width(max_nnz_per_row: int, max_width: int = WARP_SIZE) -> int:
    """Choose how many lanes cooperate on each row.

    Starts at ``max_width`` and halves while the width exceeds the longest
    row, stopping at 1.  A row shorter than the group would leave lanes
    idle; a group much narrower than the row serializes its loads.  One
    width is chosen for the whole matrix.

    Parameters
    ----------
    max_nnz_per_row : int
        Largest number of nonzeros in any row.  Must be non-negative.
    max_width : int, optional
        The hardware lane-group size (the warp size).  Must be a positive
        power of two.  Default is 32.

    Returns
    -------
    int
        A power of two in ``[1, max_width]``.

    Raises
    ------
    ValueError
        If ``max_nnz_per_row`` is negative or ``max_width`` is not a
        positive power of two.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv._csr.width import select_row_width
        >>> select_row_width(0)
        1
        >>> select_row_width(5)
        4
        >>> select_row_width(32)
        32
        >>> select_row_width(1000)
        32
    """
    if max_nnz_per_row < 0:
        raise ValueError(f'max_nnz_per_row must be non-negative, got {max_nnz_per_row}.')
    if not is_power_of_two(max_width):
        raise ValueError(f'max_width must be a positive power of two, got {max_width}.')
    width = max_width
    while width > 1 and width > max_nnz_per_row:
        width //= 2
    return width


def resolve_kernel_width(width: int) -> int:
    """Map a requested width onto a compiled kernel variant.

    Widths in :data:`SUPPORTED_WIDTHS` are returned unchanged.  Anything
    else falls back to the single-lane variant, which is correct for every
    matrix, and a :class:`~groupspmv.WidthFallbackWarning` is issued.
    """
    if width in SUPPORTED_WIDTHS:
        return width
    warnings.warn(
        f'No kernel variant for group width {width}; '
        f'supported widths are {SUPPORTED_WIDTHS}. Falling back to width 1.',
        WidthFallbackWarning,
        stacklevel=3,
    )
    return 1
