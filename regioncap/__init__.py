"""regioncap: dataset access for region-annotated image/caption training.

Indexes a preprocessed HDF5 file of padded images, per-image regions and
token-id captions, splits it into train/val/test, and serves it one image at a
time through ``DenseCapDataLoader``.
"""

from .config import ConfigLoader, LoaderConfig, RegionCapConfig
from .datasets import DenseCapDataLoader, RegionBatch, Split

__version__ = "0.1.0"

__all__ = [
    "ConfigLoader",
    "LoaderConfig",
    "RegionCapConfig",
    "DenseCapDataLoader",
    "RegionBatch",
    "Split",
]
