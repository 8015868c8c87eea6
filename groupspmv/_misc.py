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

__all__ = [
    'cdiv',
    'is_power_of_two',
    'numba_cuda_available',
]


def cdiv(m: int, n: int) -> int:
    """Compute the ceiling division of two integers.

    Returns the smallest integer ``k`` such that ``k * n >= m``, using only
    integer arithmetic.

    Parameters
    ----------
    m : int
        The dividend (numerator).  Must be non-negative.
    n : int
        The divisor (denominator).  Must be positive.

    Returns
    -------
    int
        ``(m + n - 1) // n``.

    Raises
    ------
    ValueError
        If ``n`` is not positive.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv._misc import cdiv
        >>> cdiv(10, 3)
        4
        >>> cdiv(0, 32)
        0
    """
    if n <= 0:
        raise ValueError("Divisor must be positive")
    return (m + n - 1) // n


def is_power_of_two(n: int) -> bool:
    """Return ``True`` if ``n`` is a positive power of two."""
    return n > 0 and (n & (n - 1)) == 0


def numba_cuda_available() -> bool:
    """Return whether ``numba.cuda`` is importable and sees a usable device."""
    if importlib.util.find_spec('numba') is None:
        return False
    from numba import cuda  # pylint: disable=import-outside-toplevel
    return bool(cuda.is_available())
