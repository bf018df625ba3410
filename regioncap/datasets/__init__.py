"""Datasets package for region-annotated image/caption training data.

Submodules:
- storage: ArrayStore interface with HDF5 (h5py) and in-memory backends
- metadata / vocab: JSON metadata document, vocabulary, sequence decoding
- index: per-image and global region arrays read from the HDF5 file
- splits: train/val/test partitioning and per-split cursors
- regions / proposals: per-image region and proposal slices
- loader: DenseCapDataLoader, the batch assembler
- wrappers: torch Dataset views

Main exports:
- DenseCapDataLoader: primary entry point
- RegionBatch, BatchInfo, Split: batch contracts
"""

from .contracts import (
    BatchInfo,
    DatasetIntegrityError,
    EmptySplitError,
    MissingFilenameError,
    RegionBatch,
    RegionCapError,
    Split,
    normalize_split,
)
from .index import DatasetIndex
from .loader import DenseCapDataLoader
from .metadata import DatasetMetadata
from .proposals import ProposalStore
from .regions import RegionStore
from .splits import SplitCursor, SplitManager
from .storage import ArrayStore, H5ArrayStore, MemoryArrayStore
from .vocab import Vocabulary, decode_sequence
from .wrappers import SplitDataset

__all__ = [
    # Primary loader
    "DenseCapDataLoader",
    "SplitDataset",
    # Components
    "DatasetIndex",
    "DatasetMetadata",
    "SplitManager",
    "SplitCursor",
    "RegionStore",
    "ProposalStore",
    "Vocabulary",
    "decode_sequence",
    # Storage
    "ArrayStore",
    "H5ArrayStore",
    "MemoryArrayStore",
    # Contracts
    "BatchInfo",
    "RegionBatch",
    "Split",
    "normalize_split",
    "RegionCapError",
    "DatasetIntegrityError",
    "EmptySplitError",
    "MissingFilenameError",
]
