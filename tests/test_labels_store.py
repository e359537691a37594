"""
tests/test_labels_store.py — label decoding and the region store.
Run: pytest tests/ -v
"""

from __future__ import annotations
import sys
from pathlib import Path
import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _bgr(b, g, r, H=2, W=2):
    img = np.zeros((H, W, 3), dtype=np.uint8)
    img[...] = (b, g, r)
    return img


def _store_of_sizes(sizes):
    from superpixel_merge.region import Region
    from superpixel_merge.store import RegionStore
    return RegionStore(
        Region(tag=i + 1, coords=[(0, 0)] * n) for i, n in enumerate(sizes)
    )


# labels

class TestLabels:

    def test_2d_labels_are_offset(self):
        from superpixel_merge.labels import decode_labels
        tags = decode_labels(np.array([[0, 1], [2, 3]], dtype=np.int32))
        assert tags.tolist() == [[1, 2], [3, 4]]

    def test_bgr_packing(self):
        from superpixel_merge.labels import decode_labels
        tags = decode_labels(_bgr(1, 2, 3))
        assert int(tags[0, 0]) == ((3 << 16) | (2 << 8) | 1) + 1

    def test_reserved_tag_rejected(self):
        from superpixel_merge.labels import decode_labels
        from superpixel_merge.errors import InputValidation
        img = _bgr(0, 0, 0)
        img[1, 0] = (255, 255, 255)
        with pytest.raises(InputValidation, match="0xFFFFFF"):
            decode_labels(img)

    @pytest.mark.parametrize("label", [0xFFFFFF, 0x1000000, 2**31 - 1])
    def test_2d_label_out_of_range(self, label):
        from superpixel_merge.errors import InputValidation
        from superpixel_merge.store import RegionStore
        with pytest.raises(InputValidation):
            RegionStore.parse(np.array([[0, label]], dtype=np.int64))

    def test_largest_valid_2d_label(self):
        from superpixel_merge.labels import decode_labels, encode_labels
        labels = np.array([[0, 0xFFFFFE]], dtype=np.int64)
        tags = decode_labels(labels)
        assert np.array_equal(decode_labels(encode_labels(tags)), tags)

    def test_input_validation_is_value_error(self):
        from superpixel_merge.errors import InputValidation
        assert issubclass(InputValidation, ValueError)

    @pytest.mark.parametrize("bad", [
        np.zeros((0, 0), dtype=np.int32),
        np.zeros((4,), dtype=np.int32),
        np.zeros((4, 4), dtype=np.float32),
        np.zeros((4, 4, 4), dtype=np.uint8),
        np.zeros((4, 4, 3), dtype=np.int32),
        -np.ones((2, 2), dtype=np.int32),
    ])
    def test_malformed_images(self, bad):
        from superpixel_merge.labels import decode_labels
        from superpixel_merge.errors import InputValidation
        with pytest.raises(InputValidation):
            decode_labels(bad)

    def test_encode_inverts_decode(self):
        from superpixel_merge.labels import decode_labels, encode_labels
        rng = np.random.RandomState(0)
        img = rng.randint(0, 255, (5, 7, 3)).astype(np.uint8)
        assert np.array_equal(encode_labels(decode_labels(img)), img)


# store

class TestRegionStore:

    def test_uniform_image_is_one_region(self):
        from superpixel_merge.store import RegionStore
        store = RegionStore.parse(np.zeros((4, 4), dtype=np.int32))
        assert len(store) == 1
        region = store.get(1)
        assert len(region.coords) == 16
        # row-major scan order
        assert region.coords[:3] == [(0, 0), (1, 0), (2, 0)]
        assert region.coords[4] == (0, 1)

    def test_one_region_per_label(self):
        from superpixel_merge.store import RegionStore
        labels = np.random.RandomState(3).randint(0, 9, (16, 12))
        store  = RegionStore.parse(labels)
        assert store.tags == sorted(int(v) + 1 for v in np.unique(labels))
        assert store.total_coords() == labels.size
        for t in store.tags:
            assert len(store[t].coords) == int((labels == t - 1).sum())

    def test_get_absent_returns_none(self):
        from superpixel_merge.store import RegionStore
        store = RegionStore.parse(np.zeros((2, 2), dtype=np.int32))
        assert store.get(99) is None
        assert 99 not in store

    def test_remove_keeps_tags_sorted(self):
        store = _store_of_sizes([1, 2, 3, 4, 5])
        store.remove(3)
        assert store.tags == [1, 2, 4, 5]
        assert store.get(3) is None

    def test_remove_missing_is_invariant_violation(self):
        from superpixel_merge.errors import InvariantViolation
        store = _store_of_sizes([1, 2])
        with pytest.raises(InvariantViolation):
            store.remove(7)
        store.remove(1)
        with pytest.raises(InvariantViolation):
            store.remove(1)

    def test_sorted_by_size_ties_by_tag(self):
        store = _store_of_sizes([5, 9, 5, 1, 9])
        assert store.sorted_by_size() == [2, 5, 1, 3, 4]

    def test_smallest_and_largest_unlocked(self):
        store = _store_of_sizes([5, 9, 2, 7])
        assert store.largest_unlocked(set()) == 2
        assert store.largest_unlocked({2}) == 4
        assert store.smallest_unlocked({3}) == 1
        assert store.smallest_unlocked({1, 2, 3, 4}) is None

    def test_scan_largest_finds_outlier(self):
        store = _store_of_sizes([20] * 20 + [2000])
        assert store.scan_largest_by_size() == [21]

    def test_scan_largest_empty_when_sizes_close(self):
        store = _store_of_sizes([100, 120, 140, 160, 300])
        assert store.scan_largest_by_size() == []

    def test_scan_largest_ignores_tiny(self):
        # without the tiny regions the spread is zero
        store = _store_of_sizes([500] * 6 + [1] * 40)
        assert store.scan_largest_by_size() == []
