"""Per-image slices of the global region arrays."""

from __future__ import annotations

from typing import Tuple

import torch

from .index import DatasetIndex


class RegionStore:
    """Resolve an image's inclusive offset range into ``/boxes`` and ``/labels``."""

    def __init__(self, index: DatasetIndex) -> None:
        self.index = index

    def regions_for(self, image_index: int) -> Tuple[torch.Tensor, torch.Tensor]:
        """Boxes ``[1, R, 4]`` (xcycwh, float32) and labels ``[1, R, L]`` (int64)."""

        r0, r1 = self.index.region_range(image_index)
        box_rows = self.index.boxes[r0 - 1 : r1]
        label_rows = self.index.labels[r0 - 1 : r1]

        boxes = torch.from_numpy(box_rows.astype("float32", copy=True))
        labels = torch.from_numpy(label_rows.astype("int64", copy=True))
        return boxes.unsqueeze(0), labels.unsqueeze(0)


__all__ = ["RegionStore"]
