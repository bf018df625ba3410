"""Random-access array stores backing the region dataset.

``ArrayStore`` is the only surface the index, region and proposal code talks
to: whole-array reads, per-dimension partial reads and shape queries, keyed by
array name. ``H5ArrayStore`` serves arrays from an HDF5 file through h5py;
``MemoryArrayStore`` serves numpy arrays already resident in memory (the
full-preload mode, and tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Sequence, Tuple

import h5py
import numpy as np

from regioncap.utils import get_logger

from .contracts import DatasetIntegrityError

logger = get_logger(__name__)


def _normalize_key(key: str) -> str:
    return str(key).lstrip("/")


class ArrayStore(ABC):
    """Named n-dimensional arrays with whole and partial reads."""

    name: str = "arrays"

    @abstractmethod
    def has(self, key: str) -> bool: ...

    @abstractmethod
    def shape(self, key: str) -> Tuple[int, ...]: ...

    @abstractmethod
    def read_all(self, key: str) -> np.ndarray: ...

    @abstractmethod
    def read_partial(self, key: str, slices: Sequence[slice]) -> np.ndarray:
        """Read one hyperslab; ``slices`` holds one 0-based ``slice`` per dimension."""

    def close(self) -> None:
        return None

    def require(self, key: str) -> None:
        if not self.has(key):
            raise DatasetIntegrityError(
                f"{self.name} is missing required array '/{_normalize_key(key)}'"
            )

    def __enter__(self) -> "ArrayStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class H5ArrayStore(ArrayStore):
    """Read-only view of the datasets in one HDF5 file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"HDF5 file not found: {self.path}")
        self.name = str(self.path)
        self._file: h5py.File | None = h5py.File(self.path, "r")

    @property
    def closed(self) -> bool:
        return self._file is None

    def _dataset(self, key: str) -> h5py.Dataset:
        if self._file is None:
            raise RuntimeError(f"HDF5 file {self.path} is closed")
        self.require(key)
        node = self._file[_normalize_key(key)]
        if not isinstance(node, h5py.Dataset):
            raise DatasetIntegrityError(
                f"{self.path}: '/{_normalize_key(key)}' is a group, expected a dataset"
            )
        return node

    def has(self, key: str) -> bool:
        if self._file is None:
            raise RuntimeError(f"HDF5 file {self.path} is closed")
        return _normalize_key(key) in self._file

    def shape(self, key: str) -> Tuple[int, ...]:
        return tuple(int(d) for d in self._dataset(key).shape)

    def read_all(self, key: str) -> np.ndarray:
        return np.asarray(self._dataset(key)[()])

    def read_partial(self, key: str, slices: Sequence[slice]) -> np.ndarray:
        dataset = self._dataset(key)
        if len(slices) != dataset.ndim:
            raise ValueError(
                f"partial read of '/{_normalize_key(key)}' needs {dataset.ndim} slices, got {len(slices)}"
            )
        return np.asarray(dataset[tuple(slices)])

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.debug("Closed HDF5 file %s", self.path)


class MemoryArrayStore(ArrayStore):
    """Arrays held in host memory; partial reads are plain numpy slicing."""

    def __init__(self, arrays: Mapping[str, np.ndarray], *, name: str = "memory") -> None:
        self.name = name
        self._arrays = {_normalize_key(k): np.asarray(v) for k, v in arrays.items()}

    def has(self, key: str) -> bool:
        return _normalize_key(key) in self._arrays

    def _array(self, key: str) -> np.ndarray:
        self.require(key)
        return self._arrays[_normalize_key(key)]

    def shape(self, key: str) -> Tuple[int, ...]:
        return tuple(int(d) for d in self._array(key).shape)

    def read_all(self, key: str) -> np.ndarray:
        return self._array(key)

    def read_partial(self, key: str, slices: Sequence[slice]) -> np.ndarray:
        array = self._array(key)
        if len(slices) != array.ndim:
            raise ValueError(
                f"partial read of '/{_normalize_key(key)}' needs {array.ndim} slices, got {len(slices)}"
            )
        return array[tuple(slices)]


__all__ = ["ArrayStore", "H5ArrayStore", "MemoryArrayStore"]
