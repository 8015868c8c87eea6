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

from typing import Optional

import numpy as np

from groupspmv._error import AcceleratorError, HostSyncError
from groupspmv._op.util import check_platform, cuda_guard

__all__ = [
    'MirroredArray',
    'DenseVector',
]


class MirroredArray:
    """A one-dimensional host array paired with a device-resident copy.

    The two copies are never kept coherent implicitly.  Data moves only
    when :meth:`sync_to_device` or :meth:`sync_to_host` is called, which
    keeps the cost of every transfer visible to the caller.

    On the ``'gpu'`` platform the device copy is a ``numba.cuda`` device
    array.  On the ``'cpu'`` platform it is a second, independent NumPy
    array, so code written against this class behaves identically (and
    can be tested) on machines without an accelerator.

    Parameters
    ----------
    host : array_like
        Initial host contents.  The array is copied; the caller keeps
        ownership of its own buffer.
    dtype : numpy dtype, optional
        Element type of both copies.  Defaults to the dtype of ``host``.
    platform : {'cpu', 'gpu'}
        Where the device copy lives.
    readonly : bool, optional
        If ``True`` the host copy is frozen after construction.  Read-only
        mirrors can only be pushed to the device.

    Notes
    -----
    The device copy is allocated at construction but *not* filled; call
    :meth:`sync_to_device` before handing :attr:`device` to a kernel.
    """
    __module__ = 'groupspmv'

    def __init__(
        self,
        host,
        dtype=None,
        platform: str = 'cpu',
        readonly: bool = False,
    ):
        self._platform = check_platform(platform)
        self._host = np.array(host, dtype=dtype, copy=True).reshape(-1)
        if readonly:
            self._host.flags.writeable = False
        self._device = self._allocate_device()
        self._device_synced = False
        self._host_stale = False

    def _allocate_device(self):
        if self._platform == 'gpu':
            from numba import cuda  # pylint: disable=import-outside-toplevel
            with cuda_guard(f'allocating {self._host.nbytes} bytes of device memory'):
                return cuda.device_array(self._host.shape, dtype=self._host.dtype)
        return np.empty_like(self._host)

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def size(self) -> int:
        return int(self._host.shape[0])

    @property
    def dtype(self):
        return self._host.dtype

    @property
    def host(self) -> np.ndarray:
        """The host copy.  Never synchronized implicitly."""
        return self._host

    @property
    def device(self):
        """The device copy, as handed to kernels.

        Raises
        ------
        AcceleratorError
            If the device memory has already been released.
        """
        if self._device is None:
            raise AcceleratorError('Device buffer has been released.')
        return self._device

    @property
    def host_stale(self) -> bool:
        """``True`` when the device copy was written after the last host-ward sync."""
        return self._host_stale

    @property
    def device_synced(self) -> bool:
        """``True`` once the host contents have been pushed to the device."""
        return self._device_synced

    def mark_device_written(self):
        """Record that a kernel wrote the device copy."""
        self._host_stale = True
        self._device_synced = True

    def sync_to_device(self):
        """Copy the host contents into the device buffer."""
        device = self.device
        if self._platform == 'gpu':
            with cuda_guard('copying host to device'):
                device.copy_to_device(self._host)
        else:
            np.copyto(device, self._host)
        self._device_synced = True
        self._host_stale = False
        return self

    def sync_to_host(self):
        """Copy the device contents into the host buffer.

        Raises
        ------
        ValueError
            If the host copy is read-only.
        """
        if not self._host.flags.writeable:
            raise ValueError('Cannot synchronize into a read-only host buffer.')
        device = self.device
        if self._platform == 'gpu':
            with cuda_guard('copying device to host'):
                device.copy_to_host(self._host)
        else:
            np.copyto(self._host, device)
        self._host_stale = False
        return self

    def read_host(self, what: str = 'buffer') -> np.ndarray:
        """Return the host copy, refusing to hand out stale data.

        Raises
        ------
        HostSyncError
            If a kernel has written the device copy since the last
            :meth:`sync_to_host`.
        """
        if self._host_stale:
            raise HostSyncError(
                f'The host copy of this {what} is stale: the device copy was written by a kernel. '
                f'Call sync_to_host() before reading it on the host.'
            )
        return self._host

    def release(self):
        """Drop the device copy.  Host data stays available."""
        self._device = None
        self._device_synced = False

    @property
    def released(self) -> bool:
        return self._device is None


class DenseVector:
    """A dense float64 vector with a host copy and a device copy.

    ``DenseVector`` is the input and output type of
    :func:`~groupspmv.csrmv`.  Kernels read and write only the device
    copy.  After a kernel has written a vector its host copy is *stale*
    until :meth:`sync_to_host` is called; reading it through
    :meth:`to_numpy` or handing it to the validation harness before then
    raises :class:`~groupspmv.HostSyncError`.

    Parameters
    ----------
    size : int
        Number of components.
    platform : {'cpu', 'gpu'}, optional
        Where the device copy lives.  Default is ``'cpu'``.

    See Also
    --------
    DenseVector.from_array : Build a vector from existing host data.
    DenseVector.random : Build a vector of uniform pseudo-random values.

    Examples
    --------
    .. code-block:: python

        >>> import numpy as np
        >>> from groupspmv import DenseVector
        >>> x = DenseVector.from_array(np.ones(4))
        >>> x.sync_to_device()  # doctest: +SKIP
        >>> x.size
        4
    """
    __module__ = 'groupspmv'

    def __init__(self, size: int, platform: str = 'cpu'):
        if size < 0:
            raise ValueError(f'Vector size must be non-negative, got {size}.')
        self._buffer = MirroredArray(np.zeros(size, dtype=np.float64), platform=platform)

    @classmethod
    def from_array(cls, values, platform: str = 'cpu', sync: bool = True) -> 'DenseVector':
        """Create a vector holding a copy of ``values``.

        Parameters
        ----------
        values : array_like
            One-dimensional host data.
        platform : {'cpu', 'gpu'}, optional
            Where the device copy lives.
        sync : bool, optional
            Push the data to the device right away.  Default is ``True``.
        """
        values = np.asarray(values, dtype=np.float64)
        if values.ndim != 1:
            raise ValueError(f'Expected a one-dimensional array, got shape {values.shape}.')
        vec = cls(values.shape[0], platform=platform)
        np.copyto(vec._buffer.host, values)
        if sync:
            vec.sync_to_device()
        return vec

    @classmethod
    def random(
        cls,
        size: int,
        seed: Optional[int] = None,
        platform: str = 'cpu',
        low: float = 0.0,
        high: float = 1.0,
    ) -> 'DenseVector':
        """Create a device-synchronized vector of uniform values in ``[low, high)``."""
        rng = np.random.default_rng(seed)
        return cls.from_array(rng.uniform(low, high, size=size), platform=platform)

    @property
    def size(self) -> int:
        return self._buffer.size

    @property
    def shape(self):
        return (self.size,)

    @property
    def platform(self) -> str:
        return self._buffer.platform

    @property
    def host(self) -> np.ndarray:
        """Writable host copy.  Changes reach the device only via :meth:`sync_to_device`."""
        return self._buffer.host

    @property
    def device(self):
        return self._buffer.device

    @property
    def host_stale(self) -> bool:
        return self._buffer.host_stale

    @property
    def device_synced(self) -> bool:
        """``True`` once the device copy holds valid data."""
        return self._buffer.device_synced

    def sync_to_device(self) -> 'DenseVector':
        self._buffer.sync_to_device()
        return self

    def sync_to_host(self) -> 'DenseVector':
        self._buffer.sync_to_host()
        return self

    def mark_device_written(self):
        self._buffer.mark_device_written()

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the host data.

        Raises
        ------
        HostSyncError
            If the host copy is stale.
        """
        return self._buffer.read_host('vector').copy()

    def fill(self, value: float) -> 'DenseVector':
        """Fill the host copy with ``value``.  Does not touch the device copy."""
        self._buffer.host.fill(value)
        return self

    def close(self):
        """Release the device buffer."""
        self._buffer.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __len__(self):
        return self.size

    def __repr__(self):
        state = 'released' if self._buffer.released else ('host-stale' if self.host_stale else 'synced')
        return f'DenseVector(size={self.size}, platform={self.platform!r}, {state})'
