"""Train/val/test partitioning of image ids and per-split read cursors.

Image ids are ``1..N``. Each split is an ordered list of image ids; positions
into a split ("split-local positions") are 1-based as well, so position ``p``
of split ``s`` is image ``split_indices(s)[p - 1]``.
"""

from __future__ import annotations

import math
import random
import threading
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from regioncap.utils import get_logger

from .contracts import DatasetIntegrityError, EmptySplitError, Split, normalize_split

logger = get_logger(__name__)


class SplitCursor:
    """Sequential read position (1-based) into one split."""

    def __init__(self) -> None:
        self.position = 1
        self.lock = threading.Lock()

    def reset(self) -> None:
        with self.lock:
            self.position = 1

    def advance(self, limit: int) -> int:
        """Return the current position and move on, wrapping after ``limit``."""
        with self.lock:
            current = self.position
            nxt = current + 1
            if nxt > limit:
                nxt = 1
            self.position = nxt
            return current


class SplitManager:
    """Owns the three split lists and one cursor per split."""

    def __init__(
        self,
        split_indices: Mapping[Split, Sequence[int]],
        *,
        max_items: int = -1,
        seed: Optional[int] = None,
    ) -> None:
        self._indices: Dict[Split, List[int]] = {
            split: [int(i) for i in split_indices.get(split, ())] for split in Split
        }
        self.max_items = int(max_items)
        self._cursors: Dict[Split, SplitCursor] = {split: SplitCursor() for split in Split}
        self._rng = random.Random(seed)

    @classmethod
    def from_indicator(cls, split_labels: Sequence[int], **kwargs) -> "SplitManager":
        """Assign image ``i`` to the split named by ``split_labels[i - 1]`` (0/1/2)."""

        labels = np.asarray(split_labels).reshape(-1)
        indices: Dict[Split, List[int]] = {split: [] for split in Split}
        for i, label in enumerate(labels.tolist(), start=1):
            message = (
                f"/split holds {label!r} for image {i}; expected 0 (train), 1 (val) or 2 (test)"
            )
            # float-typed arrays are fine as long as every label is integral
            if isinstance(label, bool) or (isinstance(label, float) and not label.is_integer()):
                raise DatasetIntegrityError(message)
            try:
                split = Split(int(label))
            except (TypeError, ValueError) as exc:
                raise DatasetIntegrityError(message) from exc
            indices[split].append(i)
        logger.info("using the split indicator array to compute the data splits.")
        manager = cls(indices, **kwargs)
        manager._log_sizes()
        return manager

    @classmethod
    def from_fractions(
        cls, num_images: int, train_frac: float, val_frac: float, **kwargs
    ) -> "SplitManager":
        """Contiguous split by image id; test takes the remainder.

        ``b1 = ceil(N * train_frac)`` and ``b2 = ceil(N * (train_frac + val_frac))``;
        images ``1..b1`` go to train, ``b1+1..b2`` to val, the rest to test.
        """

        if not 0.0 <= train_frac <= 1.0 or not 0.0 <= val_frac <= 1.0:
            raise ValueError(
                f"train_frac and val_frac must be in [0, 1], got {train_frac}, {val_frac}"
            )
        if train_frac + val_frac > 1.0:
            raise ValueError(
                f"train_frac + val_frac must be <= 1, got {train_frac} + {val_frac}"
            )
        n = int(num_images)
        b1 = min(n, math.ceil(n * train_frac))
        b2 = min(n, math.ceil(n * (train_frac + val_frac)))
        indices = {
            Split.TRAIN: list(range(1, b1 + 1)),
            Split.VAL: list(range(b1 + 1, b2 + 1)),
            Split.TEST: list(range(b2 + 1, n + 1)),
        }
        logger.info("setting splits according to train_frac/val_frac")
        manager = cls(indices, **kwargs)
        manager._log_sizes()
        return manager

    def _log_sizes(self) -> None:
        sizes = self.sizes()
        logger.info(
            "assigned %d/%d/%d to train/val/test.",
            sizes[Split.TRAIN],
            sizes[Split.VAL],
            sizes[Split.TEST],
        )

    def split_indices(self, split: int) -> List[int]:
        return list(self._indices[normalize_split(split)])

    def size(self, split: int) -> int:
        return len(self._indices[normalize_split(split)])

    def sizes(self) -> Dict[Split, int]:
        return {split: len(ix) for split, ix in self._indices.items()}

    def effective_size(self, split: int) -> int:
        """Split size, capped by ``max_items`` when that is positive."""
        size = self.size(split)
        if self.max_items > 0:
            return min(size, self.max_items)
        return size

    def position(self, split: int) -> int:
        return self._cursors[normalize_split(split)].position

    def reset(self, split: int) -> None:
        self._cursors[normalize_split(split)].reset()

    def next_position(self, split: int, iterate: bool = True) -> int:
        """Pick the next split-local position (1-based).

        ``iterate=True`` reads and advances the split's cursor with wraparound;
        otherwise a uniformly random position is drawn and the cursor is left
        untouched.
        """

        split = normalize_split(split)
        limit = self.effective_size(split)
        if limit <= 0:
            raise EmptySplitError(f"split {split.name.lower()} ({int(split)}) is empty")
        if iterate:
            return self._cursors[split].advance(limit)
        return self._rng.randint(1, limit)

    def image_index(self, split: int, position: int) -> int:
        """Global image id at split-local ``position``."""

        split = normalize_split(split)
        ix = self._indices[split]
        if not ix:
            raise EmptySplitError(f"split {split.name.lower()} ({int(split)}) is empty")
        position = int(position)
        if not 1 <= position <= len(ix):
            raise IndexError(
                f"split {int(split)} was accessed out of bounds with {position} (size {len(ix)})"
            )
        return ix[position - 1]


__all__ = ["SplitCursor", "SplitManager"]
