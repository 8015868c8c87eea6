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

import pytest

from groupspmv import WidthFallbackWarning
from groupspmv._csr.width import SUPPORTED_WIDTHS, resolve_kernel_width, select_row_width


class TestSelectRowWidth:
    @pytest.mark.parametrize(
        'max_nnz, expected',
        [(0, 1), (1, 1), (2, 2), (3, 2), (5, 4), (8, 8), (16, 16), (31, 16), (32, 32), (33, 32), (10 ** 6, 32)],
    )
    def test_default_warp(self, max_nnz, expected):
        assert select_row_width(max_nnz) == expected

    def test_never_above_max_width(self):
        assert select_row_width(1000, max_width=16) == 16
        assert select_row_width(1000, max_width=128) == 128

    def test_monotonic(self):
        widths = [select_row_width(n) for n in range(0, 200)]
        assert widths == sorted(widths)

    def test_power_of_two(self):
        for n in range(0, 70):
            w = select_row_width(n)
            assert w & (w - 1) == 0
            assert w <= max(n, 1)

    def test_negative(self):
        with pytest.raises(ValueError):
            select_row_width(-1)

    @pytest.mark.parametrize('max_width', [0, 3, 48, -32])
    def test_bad_max_width(self, max_width):
        with pytest.raises(ValueError):
            select_row_width(4, max_width=max_width)


class TestResolveKernelWidth:
    @pytest.mark.parametrize('width', SUPPORTED_WIDTHS)
    def test_supported(self, width):
        assert resolve_kernel_width(width) == width

    @pytest.mark.parametrize('width', [0, 3, 12, 256, -4])
    def test_fallback(self, width):
        with pytest.warns(WidthFallbackWarning):
            assert resolve_kernel_width(width) == 1
