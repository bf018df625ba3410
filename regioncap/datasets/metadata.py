"""The JSON document that accompanies the region HDF5 file.

It carries two string-keyed lookups written by preprocessing:
``idx_to_token`` (the caption vocabulary) and ``idx_to_filename`` (image id
to source filename). Both are converted to int-keyed mappings here so the rest
of the package never deals with stringified indices.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from regioncap.common.io import read_json
from regioncap.utils import get_logger

from .contracts import DatasetIntegrityError, MissingFilenameError
from .vocab import Vocabulary, parse_index_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class DatasetMetadata:
    vocab: Vocabulary
    filenames: Mapping[int, str]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "DatasetMetadata":
        if not isinstance(payload, Mapping):
            raise TypeError("metadata document must be a mapping")

        idx_to_token = payload.get("idx_to_token")
        if not isinstance(idx_to_token, Mapping):
            raise DatasetIntegrityError(
                "metadata document is missing the 'idx_to_token' mapping"
            )
        idx_to_filename = payload.get("idx_to_filename")
        if not isinstance(idx_to_filename, Mapping):
            raise DatasetIntegrityError(
                "metadata document is missing the 'idx_to_filename' mapping"
            )

        filenames: Dict[int, str] = {}
        for raw_key, filename in idx_to_filename.items():
            idx = parse_index_key(raw_key, where="idx_to_filename")
            if not isinstance(filename, str) or not filename:
                raise DatasetIntegrityError(
                    f"idx_to_filename[{idx}] must be a non-empty string, got {filename!r}"
                )
            filenames[idx] = filename

        return cls(vocab=Vocabulary(idx_to_token), filenames=filenames)

    @classmethod
    def from_json(cls, json_path: str | Path) -> "DatasetMetadata":
        logger.info("DataLoader loading json file: %s", json_path)
        return cls.from_mapping(read_json(json_path))

    def filename(self, image_index: int) -> str:
        try:
            return self.filenames[int(image_index)]
        except KeyError:
            raise MissingFilenameError(
                f"lookup for index {int(image_index)} failed in the json info table."
            ) from None

    def validate_filenames(self, num_images: int) -> None:
        """Every image id ``1..num_images`` must resolve to a filename."""

        missing = [i for i in range(1, int(num_images) + 1) if i not in self.filenames]
        if missing:
            raise DatasetIntegrityError(
                f"idx_to_filename has no entry for {len(missing)} of {num_images} images "
                f"(first missing ids: {missing[:10]})"
            )


__all__ = ["DatasetMetadata"]
