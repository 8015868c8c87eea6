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

__version__ = "0.1.0"

from . import config
from ._csr import (
    CSRMatrix, csrmv, csrmv_p, LaunchConfig, launch_config,
    SUPPORTED_WIDTHS, select_row_width, resolve_kernel_width,
)
from ._data import DenseVector, MirroredArray
from ._error import (
    MatrixFormatError, MatrixReadError, KernelNotAvailableError,
    AcceleratorError, HostSyncError, WidthFallbackWarning,
)
from ._io import load_matrix_market
from ._op import SpMVKernel, KernelEntry, BenchmarkRecord, BenchmarkResult, benchmark_function
from ._validate import (
    DEFAULT_EPS, Mismatch, ValidationReport, available_references,
    reference_spmv, compare, validate,
)
from .config import (
    get_user_default, set_user_default, clear_user_defaults,
    set_numba_parallel, get_numba_parallel,
)

__all__ = [

    # --- data --- #
    'CSRMatrix',
    'DenseVector',
    'MirroredArray',
    'load_matrix_market',

    # --- kernel --- #
    'csrmv',
    'csrmv_p',
    'SUPPORTED_WIDTHS',
    'select_row_width',
    'resolve_kernel_width',
    'LaunchConfig',
    'launch_config',

    # --- validation --- #
    'DEFAULT_EPS',
    'Mismatch',
    'ValidationReport',
    'available_references',
    'reference_spmv',
    'compare',
    'validate',

    # --- backend registry and benchmarking --- #
    'SpMVKernel',
    'KernelEntry',
    'BenchmarkRecord',
    'BenchmarkResult',
    'benchmark_function',

    # --- configuration --- #
    'config',
    'get_user_default',
    'set_user_default',
    'clear_user_defaults',
    'set_numba_parallel',
    'get_numba_parallel',

    # --- errors --- #
    'MatrixFormatError',
    'MatrixReadError',
    'KernelNotAvailableError',
    'AcceleratorError',
    'HostSyncError',
    'WidthFallbackWarning',

]
