import math
import threading

import numpy as np
import pytest

from regioncap.datasets import DatasetIntegrityError, EmptySplitError, Split, SplitManager


def test_indicator_split_partitions_every_image_exactly_once():
    labels = [0, 2, 1, 0, 0, 2, 1, 1, 0]
    manager = SplitManager.from_indicator(labels)

    train = manager.split_indices(Split.TRAIN)
    val = manager.split_indices(Split.VAL)
    test = manager.split_indices(Split.TEST)

    assert train == [1, 4, 5, 9]
    assert val == [3, 7, 8]
    assert test == [2, 6]
    assert sorted(train + val + test) == list(range(1, len(labels) + 1))


def test_indicator_split_rejects_unknown_labels():
    with pytest.raises(DatasetIntegrityError, match="image 3"):
        SplitManager.from_indicator(np.array([0, 1, 3]))


@pytest.mark.parametrize(
    "labels,bad_image",
    [([0.0, 1.7, 2.0, 0.5], 2), ([0.0, 1.0, 0.5], 3), ([0.0, float("nan")], 2)],
)
def test_indicator_split_rejects_fractional_labels(labels, bad_image):
    with pytest.raises(DatasetIntegrityError, match=f"image {bad_image};"):
        SplitManager.from_indicator(np.array(labels, dtype=np.float32))


def test_indicator_split_accepts_integral_float_labels():
    manager = SplitManager.from_indicator(np.array([0.0, 2.0, 1.0, 0.0], dtype=np.float32))
    assert manager.split_indices(Split.TRAIN) == [1, 4]
    assert manager.split_indices(Split.VAL) == [3]
    assert manager.split_indices(Split.TEST) == [2]


@pytest.mark.parametrize(
    "num_images,train_frac,val_frac",
    [(10, 0.5, 0.25), (7, 0.5, 0.0), (13, 0.6, 0.3), (4, 1.0, 0.0), (5, 0.0, 0.0)],
)
def test_fraction_split_is_contiguous_and_covers_all_images(num_images, train_frac, val_frac):
    manager = SplitManager.from_fractions(num_images, train_frac, val_frac)
    b1 = math.ceil(num_images * train_frac)
    b2 = math.ceil(num_images * (train_frac + val_frac))

    assert manager.split_indices(Split.TRAIN) == list(range(1, b1 + 1))
    assert manager.split_indices(Split.VAL) == list(range(b1 + 1, b2 + 1))
    assert manager.split_indices(Split.TEST) == list(range(b2 + 1, num_images + 1))

    combined = (
        manager.split_indices(Split.TRAIN)
        + manager.split_indices(Split.VAL)
        + manager.split_indices(Split.TEST)
    )
    assert combined == list(range(1, num_images + 1))


def test_fraction_split_tolerates_empty_val():
    manager = SplitManager.from_fractions(7, 0.5, 0.0)
    assert manager.sizes() == {Split.TRAIN: 4, Split.VAL: 0, Split.TEST: 3}


@pytest.mark.parametrize("train_frac,val_frac", [(-0.1, 0.2), (0.8, 0.3), (0.5, 1.5)])
def test_fraction_split_rejects_malformed_fractions(train_frac, val_frac):
    with pytest.raises(ValueError):
        SplitManager.from_fractions(10, train_frac, val_frac)


def test_cursor_visits_each_position_once_then_wraps():
    manager = SplitManager.from_indicator([0, 1, 0, 0, 1])
    size = manager.size(Split.TRAIN)
    manager.reset(Split.TRAIN)

    visited = [manager.next_position(Split.TRAIN, iterate=True) for _ in range(size)]
    assert visited == list(range(1, size + 1))
    assert manager.next_position(Split.TRAIN, iterate=True) == 1


def test_cursors_are_independent_per_split():
    manager = SplitManager.from_indicator([0, 1, 0, 1, 2])
    manager.next_position(Split.TRAIN)
    assert manager.position(Split.TRAIN) == 2
    assert manager.position(Split.VAL) == 1
    assert manager.next_position(Split.VAL) == 1


def test_reset_rewinds_the_cursor():
    manager = SplitManager.from_indicator([0, 0, 0])
    manager.next_position(0)
    manager.next_position(0)
    manager.reset(0)
    assert manager.next_position(0) == 1


def test_random_positions_stay_in_range_and_leave_cursor_alone():
    manager = SplitManager.from_indicator([0] * 5 + [1], seed=123)
    positions = {manager.next_position(Split.TRAIN, iterate=False) for _ in range(200)}
    assert positions <= set(range(1, 6))
    assert len(positions) > 1
    assert manager.position(Split.TRAIN) == 1


def test_random_positions_are_reproducible_with_a_seed():
    a = SplitManager.from_indicator([0] * 20, seed=7)
    b = SplitManager.from_indicator([0] * 20, seed=7)
    draws_a = [a.next_position(0, iterate=False) for _ in range(10)]
    draws_b = [b.next_position(0, iterate=False) for _ in range(10)]
    assert draws_a == draws_b


def test_debug_maximum_caps_the_effective_size():
    manager = SplitManager.from_indicator([0] * 6, max_items=2)
    assert manager.size(0) == 6
    assert manager.effective_size(0) == 2
    assert [manager.next_position(0) for _ in range(3)] == [1, 2, 1]
    draws = {manager.next_position(0, iterate=False) for _ in range(50)}
    assert draws <= {1, 2}


def test_debug_maximum_larger_than_split_uses_split_size():
    manager = SplitManager.from_indicator([0, 0, 1], max_items=10)
    assert manager.effective_size(Split.TRAIN) == 2
    assert [manager.next_position(0) for _ in range(3)] == [1, 2, 1]


def test_empty_split_fails_fast():
    manager = SplitManager.from_indicator([0, 0])
    with pytest.raises(EmptySplitError, match="empty"):
        manager.next_position(Split.TEST)
    with pytest.raises(EmptySplitError):
        manager.next_position(Split.VAL, iterate=False)


@pytest.mark.parametrize("split", [3, -1, "train", 1.0, True])
def test_invalid_split_identifier_is_rejected(split):
    manager = SplitManager.from_indicator([0, 1, 2])
    with pytest.raises(ValueError, match="split must be integer"):
        manager.reset(split)
    with pytest.raises(ValueError, match="split must be integer"):
        manager.next_position(split)


def test_image_index_maps_positions_to_global_ids():
    manager = SplitManager.from_indicator([1, 0, 1, 0])
    assert manager.image_index(Split.TRAIN, 1) == 2
    assert manager.image_index(Split.TRAIN, 2) == 4
    with pytest.raises(IndexError, match="out of bounds"):
        manager.image_index(Split.TRAIN, 3)


def test_concurrent_cursor_updates_do_not_lose_positions():
    manager = SplitManager.from_indicator([0] * 1000)
    seen: list[int] = []
    seen_lock = threading.Lock()

    def _worker():
        local = [manager.next_position(0) for _ in range(250)]
        with seen_lock:
            seen.extend(local)

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(seen) == list(range(1, 1001))
