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

from groupspmv._misc import cdiv, is_power_of_two, numba_cuda_available


class TestCdiv:
    @pytest.mark.parametrize('m, n, expected', [(0, 4, 0), (1, 4, 1), (4, 4, 1), (5, 4, 2), (1024, 32, 32)])
    def test_values(self, m, n, expected):
        assert cdiv(m, n) == expected

    @pytest.mark.parametrize('n', [0, -1])
    def test_non_positive_divisor(self, n):
        with pytest.raises(ValueError):
            cdiv(10, n)


def test_is_power_of_two():
    assert [n for n in range(-2, 70) if is_power_of_two(n)] == [1, 2, 4, 8, 16, 32, 64]


def test_numba_cuda_available_returns_bool():
    assert isinstance(numba_cuda_available(), bool)
