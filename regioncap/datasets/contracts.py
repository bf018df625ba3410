"""Shared dataset contracts, error types and validation helpers.

Notes:
- Image ids, region offsets and split-local positions are 1-based on every
  public surface because the HDF5 offset tables and the JSON metadata are
  written 1-based by the preprocessing step.
- Boxes handed to the consumer are always ``xcycwh``.
"""

from __future__ import annotations

import numbers
from enum import IntEnum
from typing import Any, List, NamedTuple, Optional, Tuple, TypedDict

import torch


class RegionCapError(ValueError):
    """Base class for dataset integrity and batch request failures."""


class DatasetIntegrityError(RegionCapError):
    """The on-disk dataset or its metadata is missing pieces or malformed."""


class EmptySplitError(RegionCapError):
    """A batch was requested from a split with no images."""


class MissingFilenameError(KeyError):
    """The metadata document has no filename for a resolved image index."""


class Split(IntEnum):
    TRAIN = 0
    VAL = 1
    TEST = 2


def normalize_split(split: Any) -> Split:
    """Accept a ``Split`` or the plain integers 0/1/2."""

    if isinstance(split, bool) or not isinstance(split, numbers.Integral):
        raise ValueError(
            f"split must be integer, either 0 (train), 1 (val) or 2 (test); got {split!r}"
        )
    try:
        return Split(int(split))
    except ValueError as exc:
        raise ValueError(
            f"split must be integer, either 0 (train), 1 (val) or 2 (test); got {split!r}"
        ) from exc


class BatchInfo(TypedDict):
    filename: str
    # (split-local 1-based position, number of images in the split)
    split_bounds: Tuple[int, int]
    width: int
    height: int
    ori_width: int
    ori_height: int
    image_index: int


class RegionBatch(NamedTuple):
    """One image with its regions, shaped as a batch of size 1."""

    image: torch.Tensor  # [1, C, H, W] float32, mean-subtracted
    boxes: torch.Tensor  # [1, R, 4] float32, xcycwh
    labels: torch.Tensor  # [1, R, L] int64
    info: List[BatchInfo]
    proposals: Optional[torch.Tensor]  # [1, P, 5] float32 xcycwh + score, or None


__all__ = [
    "RegionCapError",
    "DatasetIntegrityError",
    "EmptySplitError",
    "MissingFilenameError",
    "Split",
    "normalize_split",
    "BatchInfo",
    "RegionBatch",
]
