# -*- coding: utf-8 -*-
# Copyright 2024 BrainX Ecosystem Limited. All Rights Reserved.
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

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from groupspmv._error import KernelNotAvailableError
from groupspmv.config import get_user_default
from .benchmark import BenchmarkRecord, BenchmarkResult, benchmark_function

__all__ = [
    'SpMVKernel',
    'KernelEntry',
]

logger = logging.getLogger(__name__)

# A kernel generator receives the static launch parameters (``width``,
# ``rows_per_block``...) as keyword arguments and returns a callable
# ``kernel(row_offsets, col_indices, values, x, y)`` that runs to completion.
KernelGenerator = Callable[..., Callable]


@dataclass
class KernelEntry:
    """A registered kernel implementation for a specific backend and platform.

    Parameters
    ----------
    backend : str
        The backend name (``'numba'`` or ``'numba_cuda'``).
    platform : str
        The hardware platform name (``'cpu'`` or ``'gpu'``).
    kernel_generator : KernelGenerator
        A callable that accepts the static launch parameters as keyword
        arguments and returns a concrete kernel function ready to be
        invoked with device buffers.

    Examples
    --------
    .. code-block:: python

        >>> entry = KernelEntry(
        ...     backend='numba',
        ...     platform='cpu',
        ...     kernel_generator=my_kernel_generator,
        ... )
        >>> entry.backend
        'numba'
    """
    backend: str
    platform: str
    kernel_generator: KernelGenerator


class SpMVKernel:
    """Registry of backend implementations for one sparse operation.

    Each platform may have several backends.  When the operation is
    dispatched, the backend is chosen in this order:

    1. the ``backend`` passed explicitly by the caller;
    2. the user default stored with :func:`groupspmv.config.set_user_default`
       under this operation's name, if it is registered for the platform;
    3. the per-kernel default (``set_default`` or ``asdefault=True``);
    4. the first backend registered for the platform.

    Supported backends by platform:

    - **CPU**: Numba (``'numba'``)
    - **GPU**: Numba CUDA (``'numba_cuda'``)

    Parameters
    ----------
    name : str
        The operation name.  Also the key under which user defaults are
        stored.
    doc : str, optional
        Docstring of the instance.

    See Also
    --------
    KernelEntry : Data class representing a single registered kernel.

    Examples
    --------
    .. code-block:: python

        >>> kernel = SpMVKernel('my_op')
        >>> kernel.def_numba_kernel(numba_kernel_generator)  # CPU default
        >>> kernel.def_numba_cuda_kernel(cuda_kernel_generator)
        >>> kernel.defaults
        {'cpu': 'numba', 'gpu': 'numba_cuda'}
    """

    __module__ = 'groupspmv'

    def __init__(self, name: str, doc: str = None):
        self.name = name
        if doc is not None:
            self.__doc__ = doc

        # kernel storage: platform -> backend -> KernelEntry
        self._kernels: Dict[str, Dict[str, KernelEntry]] = {}
        # default backends per platform: platform -> backend_name
        self._defaults: Dict[str, str] = {}
        # call function for benchmarking
        self._call_fn: Optional[Callable] = None

    def def_kernel(
        self,
        backend: str,
        platform: str,
        kg: KernelGenerator,
        asdefault: bool = False
    ):
        """Register a kernel implementation for a specific backend and platform.

        If this is the first kernel registered for the given *platform*,
        it automatically becomes the default.  Pass ``asdefault=True`` to
        override an existing default.

        Raises
        ------
        AssertionError
            If *backend* or *platform* is not a string, or if *kg* is not
            callable.
        """
        assert isinstance(backend, str), f'The `backend` should be a string, but got {type(backend)}.'
        assert isinstance(platform, str), f'The `platform` should be a string, but got {type(platform)}.'
        assert callable(kg), f'The `kg` should be a callable, but got {type(kg)}.'

        entry = KernelEntry(backend=backend, platform=platform, kernel_generator=kg)
        self._kernels.setdefault(platform, {})[backend] = entry
        if asdefault or platform not in self._defaults:
            self._defaults[platform] = backend

    def def_numba_kernel(self, kg: KernelGenerator, asdefault: bool = False):
        """Register a Numba kernel for the CPU platform."""
        self.def_kernel(backend='numba', platform='cpu', kg=kg, asdefault=asdefault)

    def def_numba_cuda_kernel(self, kg: KernelGenerator, asdefault: bool = False):
        """Register a Numba CUDA kernel for the GPU platform."""
        self.def_kernel(backend='numba_cuda', platform='gpu', kg=kg, asdefault=asdefault)

    def set_default(self, platform: str, backend: str):
        """Set the default backend for a platform.

        Raises
        ------
        ValueError
            If no kernels are registered for *platform*, or if *backend*
            is not registered for *platform*.
        """
        if platform not in self._kernels:
            raise ValueError(f"No kernels registered for platform '{platform}'")
        if backend not in self._kernels[platform]:
            available = list(self._kernels[platform].keys())
            raise ValueError(
                f"Backend '{backend}' not registered for platform '{platform}'. "
                f"Available: {available}"
            )
        self._defaults[platform] = backend

    def get_default(self, platform: str) -> Optional[str]:
        """Get the current default backend for a platform, or ``None``."""
        return self._defaults.get(platform)

    @property
    def defaults(self) -> Dict[str, str]:
        """A copy of the default backend for every platform."""
        return dict(self._defaults)

    def available_backends(self, platform: str) -> List[str]:
        """Return the list of registered backend names for a platform."""
        if platform not in self._kernels:
            return []
        return list(self._kernels[platform].keys())

    def resolve_backend(self, platform: str, backend: Optional[str] = None) -> str:
        """Pick the backend that a dispatch on *platform* would use.

        Raises
        ------
        KernelNotAvailableError
            If nothing is registered for *platform*, or the explicitly
            requested *backend* is not registered for it.
        ValueError
            If *backend* is an empty string.
        """
        kernels = self._kernels.get(platform, {})
        if not kernels:
            raise KernelNotAvailableError(
                f"No kernels registered for platform '{platform}' in operation '{self.name}'."
            )
        if backend is not None:
            if backend == '':
                raise ValueError(f"backend cannot be an empty string in operation '{self.name}'.")
            if backend not in kernels:
                raise KernelNotAvailableError(
                    f'{backend} not available for platform {platform} in operation {self.name}. '
                    f'Available: {list(kernels)}'
                )
            return backend

        user_be = get_user_default(self.name, platform)
        if user_be is not None and user_be in kernels:
            return user_be
        default_be = self._defaults.get(platform)
        if default_be in kernels:
            return default_be
        return next(iter(kernels))

    def kernel(self, platform: str, backend: Optional[str] = None, **kwargs) -> Callable:
        """Resolve a backend and build its kernel for the given launch parameters."""
        backend = self.resolve_backend(platform, backend)
        logger.debug('%s: dispatching to backend %r on %s with %s', self.name, backend, platform, kwargs)
        return self._kernels[platform][backend].kernel_generator(**kwargs)

    def def_call(self, fn: Callable):
        """Register the high-level call function used by :meth:`call` and :meth:`benchmark`.

        The function must accept a ``backend`` keyword argument.
        """
        self._call_fn = fn

    def call(self, *args, **kwargs):
        if self._call_fn is None:
            raise ValueError(
                f"No call function registered for '{self.name}'. "
                "Use def_call() to register one."
            )
        return self._call_fn(*args, **kwargs)

    def benchmark(
        self,
        *args,
        platform: str,
        label: str = '',
        n_warmup: int = 3,
        n_runs: int = 20,
        backends: Optional[List[str]] = None,
        catch_errors: bool = True,
        data_kwargs: Optional[dict] = None,
    ) -> BenchmarkResult:
        """Time the registered call function on every backend of *platform*.

        Parameters
        ----------
        *args
            Positional arguments forwarded to the call function.
        platform : str
            Target platform (``'cpu'`` or ``'gpu'``).
        label : str, optional
            Label stored in every record, usually the matrix name.
        n_warmup, n_runs : int, optional
            Untimed and timed repetitions per backend.
        backends : list of str, optional
            Restrict the run to these backends.  Default is every
            registered backend.
        catch_errors : bool, optional
            If ``True`` (default), a backend that raises is recorded with
            ``success=False`` and the run continues with the others.
        data_kwargs : dict, optional
            Description of the input, copied into every record.

        Returns
        -------
        BenchmarkResult
            One record per backend.

        Raises
        ------
        ValueError
            If no call function is registered or no backend is available.
        """
        if self._call_fn is None:
            raise ValueError(
                f"No call function registered for '{self.name}'. "
                "Use def_call() to register one before benchmarking."
            )
        backends_to_test = backends if backends is not None else self.available_backends(platform)
        if not backends_to_test:
            raise ValueError(
                f"No backends registered for platform '{platform}' in operation '{self.name}'."
            )

        records: List[BenchmarkRecord] = []
        for be in backends_to_test:

            def run_fn():
                return self._call_fn(*args, backend=be)

            try:
                mean_s, std_s, min_s, _max_s, _ = benchmark_function(run_fn, n_warmup, n_runs)
                record = BenchmarkRecord(
                    platform=platform,
                    backend=be,
                    label=label,
                    mean_ms=mean_s * 1000.0,
                    std_ms=std_s * 1000.0,
                    min_ms=min_s * 1000.0,
                    data_kwargs=dict(data_kwargs or {}),
                )
            except Exception as exc:
                if not catch_errors:
                    raise
                logger.warning('%s [%s|%s] %s: FAILED: %s', self.name, platform, be, label, exc)
                record = BenchmarkRecord(
                    platform=platform,
                    backend=be,
                    label=label,
                    mean_ms=float('nan'),
                    std_ms=float('nan'),
                    min_ms=float('nan'),
                    success=False,
                    error=f"{type(exc).__name__}: {exc}",
                    data_kwargs=dict(data_kwargs or {}),
                )
            records.append(record)
        return BenchmarkResult(records=records, primitive_name=self.name)
