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

import contextlib
import functools
from typing import NamedTuple

from groupspmv._error import AcceleratorError, KernelNotAvailableError
from groupspmv._misc import numba_cuda_available

__all__ = [
    'PLATFORMS',
    'WARP_SIZE',
    'MAX_THREADS_PER_BLOCK',
    'DeviceLimits',
    'device_limits',
    'check_platform',
    'cuda_guard',
]

PLATFORMS = ('cpu', 'gpu')

# Fallback hardware constants, used on the CPU platform and whenever no
# CUDA device can be queried.
WARP_SIZE = 32
MAX_THREADS_PER_BLOCK = 1024


class DeviceLimits(NamedTuple):
    """Hardware limits that shape the launch configuration."""
    warp_size: int
    max_threads_per_block: int


def check_platform(platform: str) -> str:
    """Validate a platform name and return it.

    Raises
    ------
    ValueError
        If ``platform`` is not one of :data:`PLATFORMS`.
    KernelNotAvailableError
        If ``platform`` is ``'gpu'`` but no CUDA device is usable.
    """
    if platform not in PLATFORMS:
        raise ValueError(f"Unknown platform {platform!r}. Expected one of {PLATFORMS}.")
    if platform == 'gpu' and not numba_cuda_available():
        raise KernelNotAvailableError(
            "Platform 'gpu' requested, but numba.cuda reports no usable CUDA device."
        )
    return platform


@contextlib.contextmanager
def cuda_guard(action: str):
    """Translate CUDA driver and runtime failures into :class:`AcceleratorError`.

    Parameters
    ----------
    action : str
        Short description of the runtime operation, used in the message
        (e.g. ``"launching csrmv[w=32]"``).
    """
    from numba.cuda.cudadrv.error import (  # pylint: disable=import-outside-toplevel
        CudaDriverError, CudaRuntimeError, CudaSupportError,
    )
    try:
        yield
    except (CudaDriverError, CudaRuntimeError, CudaSupportError) as e:
        raise AcceleratorError(f"CUDA runtime failure while {action}: {e}") from e


@functools.lru_cache(maxsize=None)
def device_limits(platform: str = 'gpu') -> DeviceLimits:
    """Return the warp size and the maximum threads per block.

    On the ``'gpu'`` platform the values are read from the current CUDA
    device; everywhere else the defaults ``(32, 1024)`` are returned.
    """
    if platform == 'gpu' and numba_cuda_available():
        from numba import cuda  # pylint: disable=import-outside-toplevel
        with cuda_guard('querying device limits'):
            device = cuda.get_current_device()
            return DeviceLimits(int(device.WARP_SIZE), int(device.MAX_THREADS_PER_BLOCK))
    return DeviceLimits(WARP_SIZE, MAX_THREADS_PER_BLOCK)
