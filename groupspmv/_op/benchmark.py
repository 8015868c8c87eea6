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

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

__all__ = [
    'BenchmarkRecord',
    'BenchmarkResult',
    'benchmark_function',
]


@dataclass
class BenchmarkRecord:
    """One row in the benchmark result table.

    Each ``BenchmarkRecord`` represents a single (matrix, backend) run.

    Attributes
    ----------
    platform : str
        Hardware platform (``'cpu'`` or ``'gpu'``).
    backend : str
        Kernel backend (``'numba'``, ``'numba_cuda'``) or reference
        routine (``'reference:jax'``, ``'reference:scipy'``).
    label : str
        Label of the benchmarked input, usually the matrix file name.
    mean_ms : float
        Mean execution time in milliseconds.
    std_ms : float
        Standard deviation of execution time in milliseconds.
    min_ms : float
        Minimum execution time in milliseconds.
    success : bool
        Whether the benchmark run completed without error.
    error : str or None
        Error message if the run failed; ``None`` on success.
    data_kwargs : dict
        Properties of the benchmarked input (``nrows``, ``nnz``,
        ``width``...).  Recorded for reference only.
    """
    platform: str
    backend: str
    label: str
    mean_ms: float
    std_ms: float
    min_ms: float
    success: bool = True
    error: Optional[str] = None
    data_kwargs: Dict[str, Any] = field(default_factory=dict)


class BenchmarkResult:
    """Container for the records collected by one benchmark session.

    Parameters
    ----------
    records : list of BenchmarkRecord
        All collected benchmark records.
    primitive_name : str, optional
        Name of the operation that was benchmarked.

    Examples
    --------
    .. code-block:: python

        >>> result = csrmv_p.benchmark(A, x)  # doctest: +SKIP
        >>> print(result)                       # doctest: +SKIP
        >>> result.fastest().backend            # doctest: +SKIP
        'numba'
        >>> result.save('bench.json')           # doctest: +SKIP
    """

    def __init__(
        self,
        records: List[BenchmarkRecord],
        primitive_name: str = '',
    ):
        self._records: List[BenchmarkRecord] = list(records)
        self.primitive_name: str = primitive_name

    @property
    def records(self) -> List[BenchmarkRecord]:
        """Return a copy of all benchmark records."""
        return list(self._records)

    def fastest(
        self,
        label: Optional[str] = None,
        kernels_only: bool = False,
    ) -> Optional[BenchmarkRecord]:
        """Return the fastest successful record.

        Parameters
        ----------
        label : str or None, optional
            If given, consider only records with this label.
        kernels_only : bool, optional
            If ``True``, ignore the reference routines.

        Returns
        -------
        BenchmarkRecord or None
            The record with the smallest ``mean_ms``, or ``None`` if no
            successful records exist (after optional filtering).
        """
        candidates = [r for r in self._records if r.success]
        if label is not None:
            candidates = [r for r in candidates if r.label == label]
        if kernels_only:
            candidates = [r for r in candidates if not r.backend.startswith('reference:')]
        if not candidates:
            return None
        return min(candidates, key=lambda r: r.mean_ms)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dictionary of the result."""
        return {
            'primitive_name': self.primitive_name,
            'records': [
                {
                    'platform': r.platform,
                    'backend': r.backend,
                    'label': r.label,
                    'mean_ms': r.mean_ms,
                    'std_ms': r.std_ms,
                    'min_ms': r.min_ms,
                    'success': r.success,
                    'error': r.error,
                    'data_kwargs': {k: _json_safe(v) for k, v in r.data_kwargs.items()},
                }
                for r in self._records
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BenchmarkResult':
        records = []
        for r in data.get('records', []):
            records.append(
                BenchmarkRecord(
                    platform=r.get('platform', ''),
                    backend=r.get('backend', ''),
                    label=r.get('label', ''),
                    mean_ms=float(r.get('mean_ms', 0.0)),
                    std_ms=float(r.get('std_ms', 0.0)),
                    min_ms=float(r.get('min_ms', 0.0)),
                    success=bool(r.get('success', True)),
                    error=r.get('error'),
                    data_kwargs=r.get('data_kwargs', {}),
                )
            )
        return cls(records=records, primitive_name=data.get('primitive_name', ''))

    def save(self, path: Union[str, Path]) -> None:
        """Write the result to ``path`` as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write('\n')

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'BenchmarkResult':
        """Read a result previously written by :meth:`save`."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))

    def format_table(self) -> str:
        header = f"{'platform':<8} {'backend':<18} {'label':<24} {'mean_ms':>10} {'std_ms':>10} {'min_ms':>10}"
        lines = [header, '-' * len(header)]
        best = self.fastest()
        for r in self._records:
            if r.success:
                mark = ' *' if r is best else ''
                lines.append(
                    f"{r.platform:<8} {r.backend:<18} {r.label:<24} "
                    f"{r.mean_ms:>10.4f} {r.std_ms:>10.4f} {r.min_ms:>10.4f}{mark}"
                )
            else:
                lines.append(f"{r.platform:<8} {r.backend:<18} {r.label:<24} FAILED: {r.error}")
        return '\n'.join(lines)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f'BenchmarkResult(primitive_name={self.primitive_name!r}, n_records={len(self._records)})'

    def __str__(self) -> str:
        return self.format_table()


def _json_safe(v: Any) -> Any:
    """Convert a value to a JSON-serializable type."""
    if isinstance(v, (str, int, float, bool, type(None))):
        return v
    if isinstance(v, np.generic):
        return v.item()
    return str(v)


def benchmark_function(
    fn: Callable[[], Any],
    n_warmup: int,
    n_runs: int,
    block: Optional[Callable[[], None]] = None,
) -> Tuple[float, float, float, float, Any]:
    """Benchmark a function and return timing statistics.

    Parameters
    ----------
    fn : callable
        A callable that takes no arguments and returns the result.
    n_warmup : int
        Number of warmup runs (not timed).  The first run also pays the
        JIT compilation cost.
    n_runs : int
        Number of timed runs.  Must be positive.
    block : callable, optional
        Called after every run, before the clock stops, to wait for
        asynchronous device work (e.g. ``numba.cuda.synchronize``).

    Returns
    -------
    tuple of (float, float, float, float, Any)
        ``(mean_time, std_time, min_time, max_time, output)`` where
        times are in seconds.
    """
    if n_runs <= 0:
        raise ValueError(f'n_runs must be positive, got {n_runs}.')
    output = None
    for _ in range(n_warmup):
        output = fn()
    if block is not None:
        block()

    times = []
    for _ in range(n_runs):
        start = time.perf_counter()
        output = fn()
        if block is not None:
            block()
        times.append(time.perf_counter() - start)

    times = np.array(times)
    return (
        float(np.mean(times)),
        float(np.std(times)),
        float(np.min(times)),
        float(np.max(times)),
        output,
    )
