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

from typing import NamedTuple

from groupspmv._misc import cdiv
from groupspmv._op.util import MAX_THREADS_PER_BLOCK

__all__ = [
    'LaunchConfig',
    'launch_config',
]


class LaunchConfig(NamedTuple):
    """Grid shape for one SpMV launch.

    Each block hosts ``rows_per_block`` groups of ``width`` lanes; group
    ``slot`` of block ``block`` owns row ``block * rows_per_block + slot``.
    Slots past the last row exist only in the final block and do nothing.
    """
    width: int
    rows_per_block: int
    num_blocks: int

    @property
    def threads_per_block(self) -> int:
        return self.rows_per_block * self.width

    def row_index(self, block: int, slot: int) -> int:
        """Row handled by group ``slot`` of block ``block`` (may be ``>= nrows``)."""
        return block * self.rows_per_block + slot


def launch_config(
    nrows: int,
    width: int,
    max_threads_per_block: int = MAX_THREADS_PER_BLOCK,
) -> LaunchConfig:
    """Compute how many row groups fit in a block and how many blocks are needed.

    Parameters
    ----------
    nrows : int
        Number of matrix rows.  Must be non-negative.
    width : int
        Lanes per row group.  Must be positive and no larger than
        ``max_threads_per_block``.
    max_threads_per_block : int, optional
        Hardware thread limit of one block.  Default is 1024.

    Returns
    -------
    LaunchConfig
        ``rows_per_block = max_threads_per_block // width`` and
        ``num_blocks = ceil(nrows / rows_per_block)``.  An empty matrix
        needs zero blocks.

    Examples
    --------
    .. code-block:: python

        >>> from groupspmv._csr.launch import launch_config
        >>> launch_config(100, 32)
        LaunchConfig(width=32, rows_per_block=32, num_blocks=4)
    """
    if nrows < 0:
        raise ValueError(f'nrows must be non-negative, got {nrows}.')
    if width <= 0 or width > max_threads_per_block:
        raise ValueError(
            f'width must lie in [1, {max_threads_per_block}], got {width}.'
        )
    rows_per_block = max_threads_per_block // width
    return LaunchConfig(width, rows_per_block, cdiv(nrows, rows_per_block))
