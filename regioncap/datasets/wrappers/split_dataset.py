"""Map-style torch dataset over one split of a ``DenseCapDataLoader``."""

from __future__ import annotations

from torch.utils.data import Dataset

from ..contracts import RegionBatch, normalize_split


class SplitDataset(Dataset):
    """Item ``i`` is the batch at split-local position ``i + 1``.

    Reads go through ``loader.get_batch_at`` so split cursors are never moved.
    Use with ``num_workers=0``: the loader's HDF5 handle is not shared across
    processes.
    """

    def __init__(self, loader, split: int) -> None:
        super().__init__()
        self.loader = loader
        self.split = normalize_split(split)

    def __len__(self) -> int:
        return self.loader.splits.effective_size(self.split)

    def __getitem__(self, index: int) -> RegionBatch:
        size = len(self)
        index = int(index)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError(f"SplitDataset index {index} out of range for size {size}")
        return self.loader.get_batch_at(self.split, index + 1)
