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

from .benchmark import BenchmarkRecord, BenchmarkResult, benchmark_function
from .main import SpMVKernel, KernelEntry
from .util import PLATFORMS, WARP_SIZE, MAX_THREADS_PER_BLOCK, DeviceLimits, device_limits, check_platform, cuda_guard

__all__ = [
    'SpMVKernel', 'KernelEntry',
    'BenchmarkRecord', 'BenchmarkResult', 'benchmark_function',
    'PLATFORMS', 'WARP_SIZE', 'MAX_THREADS_PER_BLOCK',
    'DeviceLimits', 'device_limits', 'check_platform', 'cuda_guard',
]
