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

from groupspmv import AcceleratorError, DenseVector, HostSyncError, MirroredArray


class TestMirroredArray:
    def test_copies_host(self):
        src = np.arange(4.0)
        buf = MirroredArray(src)
        src[0] = 10.0
        assert buf.host[0] == 0.0
        assert buf.size == 4
        assert buf.dtype == np.float64

    def test_device_not_filled_until_sync(self):
        buf = MirroredArray(np.arange(4.0))
        assert not buf.device_synced
        buf.sync_to_device()
        assert buf.device_synced
        np.testing.assert_array_equal(buf.device, np.arange(4.0))

    def test_host_and_device_diverge(self):
        buf = MirroredArray(np.zeros(3)).sync_to_device()
        buf.host[:] = 1.0
        np.testing.assert_array_equal(buf.device, np.zeros(3))
        buf.sync_to_device()
        np.testing.assert_array_equal(buf.device, np.ones(3))

    def test_stale_tracking(self):
        buf = MirroredArray(np.zeros(3)).sync_to_device()
        buf.device[:] = 5.0
        buf.mark_device_written()
        assert buf.host_stale
        with pytest.raises(HostSyncError):
            buf.read_host()
        buf.sync_to_host()
        assert not buf.host_stale
        np.testing.assert_array_equal(buf.read_host(), np.full(3, 5.0))

    def test_readonly(self):
        buf = MirroredArray(np.zeros(2), readonly=True)
        buf.sync_to_device()
        with pytest.raises(ValueError):
            buf.sync_to_host()

    def test_release(self):
        buf = MirroredArray(np.zeros(2)).sync_to_device()
        buf.release()
        assert buf.released
        with pytest.raises(AcceleratorError):
            _ = buf.device


class TestDenseVector:
    def test_zeros(self):
        v = DenseVector(5)
        assert v.size == 5
        assert len(v) == 5
        assert v.shape == (5,)
        np.testing.assert_array_equal(v.to_numpy(), np.zeros(5))

    def test_negative_size(self):
        with pytest.raises(ValueError):
            DenseVector(-1)

    def test_from_array(self):
        v = DenseVector.from_array([1, 2, 3])
        assert v.device_synced
        np.testing.assert_array_equal(v.device, [1.0, 2.0, 3.0])

    def test_from_array_requires_1d(self):
        with pytest.raises(ValueError):
            DenseVector.from_array(np.ones((2, 2)))

    def test_random_is_seeded(self):
        a = DenseVector.random(100, seed=42)
        b = DenseVector.random(100, seed=42)
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())
        assert np.all((a.to_numpy() >= 0.0) & (a.to_numpy() < 1.0))

    def test_random_range(self):
        v = DenseVector.random(1000, seed=0, low=-2.0, high=-1.0)
        assert np.all((v.to_numpy() >= -2.0) & (v.to_numpy() < -1.0))

    def test_to_numpy_is_a_copy(self):
        v = DenseVector.from_array([1.0, 2.0])
        out = v.to_numpy()
        out[0] = 9.0
        assert v.host[0] == 1.0

    def test_fill_does_not_touch_device(self):
        v = DenseVector.from_array([1.0, 2.0])
        v.fill(0.0)
        np.testing.assert_array_equal(v.device, [1.0, 2.0])
        v.sync_to_device()
        np.testing.assert_array_equal(v.device, [0.0, 0.0])

    def test_stale_after_device_write(self):
        v = DenseVector(3).sync_to_device()
        v.device[:] = 2.0
        v.mark_device_written()
        assert 'host-stale' in repr(v)
        with pytest.raises(HostSyncError):
            v.to_numpy()
        np.testing.assert_array_equal(v.sync_to_host().to_numpy(), np.full(3, 2.0))

    def test_context_manager_releases(self):
        with DenseVector.from_array([1.0]) as v:
            pass
        assert 'released' in repr(v)
        np.testing.assert_array_equal(v.to_numpy(), [1.0])
