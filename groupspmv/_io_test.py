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

import numpy as np
import pytest

from groupspmv import MatrixFormatError, MatrixReadError, load_matrix_market

GENERAL = """%%MatrixMarket matrix coordinate real general
% the 4 x 4 example
4 4 4
1 1 2.0
2 2 3.0
2 3 1.0
4 4 4.0
"""

SYMMETRIC = """%%MatrixMarket matrix coordinate real symmetric
3 3 3
1 1 1.0
2 1 5.0
3 3 2.0
"""

PATTERN = """%%MatrixMarket matrix coordinate pattern general
2 3 2
1 3
2 1
"""

COMPLEX = """%%MatrixMarket matrix coordinate complex general
1 1 1
1 1 1.0 2.0
"""


def _write(tmp_path, text, name='m.mtx'):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestLoadMatrixMarket:
    def test_general(self, tmp_path):
        A = load_matrix_market(_write(tmp_path, GENERAL))
        assert A.shape == (4, 4)
        assert A.nnz == 4
        assert A.device_synced
        np.testing.assert_array_equal(A.row_offsets, [0, 1, 3, 3, 4])
        np.testing.assert_array_equal(A.col_indices, [0, 1, 2, 3])
        np.testing.assert_array_equal(A.values, [2.0, 3.0, 1.0, 4.0])

    def test_str_path(self, tmp_path):
        A = load_matrix_market(str(_write(tmp_path, GENERAL)))
        assert A.max_nnz_per_row == 2

    def test_symmetric_is_expanded(self, tmp_path):
        A = load_matrix_market(_write(tmp_path, SYMMETRIC))
        np.testing.assert_array_equal(
            A.todense(), [[1.0, 5.0, 0.0], [5.0, 0.0, 0.0], [0.0, 0.0, 2.0]]
        )

    def test_pattern(self, tmp_path):
        A = load_matrix_market(_write(tmp_path, PATTERN))
        np.testing.assert_array_equal(A.todense(), [[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])

    def test_missing_file(self, tmp_path):
        with pytest.raises(MatrixReadError):
            load_matrix_market(tmp_path / 'missing.mtx')

    def test_garbage(self, tmp_path):
        with pytest.raises(MatrixReadError):
            load_matrix_market(_write(tmp_path, 'this is not a matrix\n'))

    def test_complex_rejected(self, tmp_path):
        with pytest.raises(MatrixReadError):
            load_matrix_market(_write(tmp_path, COMPLEX))

    def test_read_error_is_format_error(self, tmp_path):
        with pytest.raises(MatrixFormatError):
            load_matrix_market(tmp_path / 'missing.mtx')
