"""In-memory index over the region HDF5 file.

The small per-image arrays and the global region arrays are read once at
construction. The image array is either read per batch through partial reads
or, with ``read_all_images``, materialized once into a ``MemoryArrayStore``
after which the backing store is closed.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from regioncap.utils import get_logger

from .contracts import DatasetIntegrityError
from .storage import ArrayStore, MemoryArrayStore

logger = get_logger(__name__)

REGION_KEYS: Sequence[str] = (
    "box_to_img",
    "boxes",
    "image_heights",
    "image_widths",
    "img_to_first_box",
    "img_to_last_box",
    "labels",
    "lengths",
    "original_heights",
    "original_widths",
)
SPLIT_KEY = "split"
IMAGES_KEY = "images"

_PER_IMAGE_KEYS = (
    "image_heights",
    "image_widths",
    "img_to_first_box",
    "img_to_last_box",
    "original_heights",
    "original_widths",
)


class DatasetIndex:
    def __init__(
        self,
        store: ArrayStore,
        *,
        use_split_indicator: bool = True,
        read_all_images: bool = False,
        strict_bounds: bool = False,
    ) -> None:
        keys = list(REGION_KEYS)
        if use_split_indicator:
            keys.append(SPLIT_KEY)
        for key in keys + [IMAGES_KEY]:
            store.require(key)

        arrays = {}
        for key in keys:
            logger.debug("reading %s", key)
            arrays[key] = store.read_all(key)

        self.box_to_img: np.ndarray = arrays["box_to_img"].reshape(-1)
        self.boxes: np.ndarray = arrays["boxes"]
        self.image_heights: np.ndarray = arrays["image_heights"].reshape(-1)
        self.image_widths: np.ndarray = arrays["image_widths"].reshape(-1)
        self.img_to_first_box: np.ndarray = arrays["img_to_first_box"].reshape(-1)
        self.img_to_last_box: np.ndarray = arrays["img_to_last_box"].reshape(-1)
        self.labels: np.ndarray = arrays["labels"]
        self.lengths: np.ndarray = arrays["lengths"].reshape(-1)
        self.original_heights: np.ndarray = arrays["original_heights"].reshape(-1)
        self.original_widths: np.ndarray = arrays["original_widths"].reshape(-1)
        self.split: Optional[np.ndarray] = (
            arrays[SPLIT_KEY].reshape(-1) if use_split_indicator else None
        )

        if self.boxes.ndim != 2 or self.boxes.shape[1] != 4:
            raise DatasetIntegrityError(
                f"/boxes should be a (num_regions, 4) array, got shape {self.boxes.shape}"
            )
        if self.labels.ndim != 2 or self.labels.shape[0] != self.boxes.shape[0]:
            raise DatasetIntegrityError(
                f"/labels should be a (num_regions, seq_length) array aligned with /boxes, "
                f"got shape {self.labels.shape} for {self.boxes.shape[0]} boxes"
            )

        images_size = store.shape(IMAGES_KEY)
        if len(images_size) != 4:
            raise DatasetIntegrityError(
                f"/images should be a 4D tensor, got shape {images_size}"
            )
        if images_size[2] != images_size[3]:
            raise DatasetIntegrityError(
                f"/images width and height must match, got {images_size[2]}x{images_size[3]}"
            )
        self.num_images = int(images_size[0])
        self.num_channels = int(images_size[1])
        self.max_image_size = int(images_size[2])
        self.num_regions = int(self.boxes.shape[0])
        self.seq_length = int(self.labels.shape[1])

        if strict_bounds:
            self._check_bounds()

        self.store: Optional[ArrayStore] = store
        if read_all_images:
            logger.info("reading the full /images array into memory")
            images = store.read_all(IMAGES_KEY)
            self.image_source: ArrayStore = MemoryArrayStore(
                {IMAGES_KEY: images}, name=f"{store.name} (in memory)"
            )
            logger.info("closing h5 file, everything is in RAM")
            store.close()
            self.store = None
        else:
            self.image_source = store

        logger.info(
            "#images: %d, #regions: %d, sequence max length: %d",
            self.num_images,
            self.num_regions,
            self.seq_length,
        )

    def _check_bounds(self) -> None:
        per_image = list(_PER_IMAGE_KEYS)
        if self.split is not None:
            per_image.append(SPLIT_KEY)
        for key in per_image:
            count = int(getattr(self, key).shape[0])
            if count != self.num_images:
                raise DatasetIntegrityError(
                    f"/{key} has {count} entries but /images holds {self.num_images} images"
                )

        first = self.img_to_first_box.astype(np.int64)
        last = self.img_to_last_box.astype(np.int64)
        bad = np.nonzero((first < 1) | (last < first) | (last > self.num_regions))[0]
        if bad.size:
            i = int(bad[0])
            raise DatasetIntegrityError(
                f"region range [{first[i]}, {last[i]}] of image {i + 1} is outside "
                f"[1, {self.num_regions}] ({bad.size} images affected)"
            )

        for key in ("image_heights", "image_widths"):
            dims = getattr(self, key).astype(np.int64)
            bad = np.nonzero((dims < 1) | (dims > self.max_image_size))[0]
            if bad.size:
                i = int(bad[0])
                raise DatasetIntegrityError(
                    f"/{key}[{i + 1}] = {dims[i]} is outside [1, {self.max_image_size}]"
                )

        for key in ("box_to_img", "lengths"):
            count = int(getattr(self, key).shape[0])
            if count != self.num_regions:
                raise DatasetIntegrityError(
                    f"/{key} has {count} entries but /boxes holds {self.num_regions} regions"
                )

        # every row listed under image i must point back to image i
        counts = last - first + 1
        owners = np.repeat(np.arange(1, self.num_images + 1), counts)
        starts = np.repeat(first - 1, counts)
        offsets = np.arange(int(counts.sum())) - np.repeat(np.cumsum(counts) - counts, counts)
        rows = starts + offsets
        box_to_img = self.box_to_img.astype(np.int64)
        bad = np.nonzero(box_to_img[rows] != owners)[0]
        if bad.size:
            j = int(bad[0])
            raise DatasetIntegrityError(
                f"/box_to_img[{rows[j] + 1}] = {box_to_img[rows[j]]} but region {rows[j] + 1} "
                f"lies in the range of image {owners[j]}"
            )

        lengths = self.lengths.astype(np.int64)
        bad = np.nonzero((lengths < 0) | (lengths > self.seq_length))[0]
        if bad.size:
            r = int(bad[0])
            raise DatasetIntegrityError(
                f"/lengths[{r + 1}] = {lengths[r]} is outside [0, {self.seq_length}]"
            )

    def region_range(self, image_index: int) -> tuple[int, int]:
        """Inclusive 1-based ``(first, last)`` rows of image ``image_index``."""
        i = int(image_index) - 1
        return int(self.img_to_first_box[i]), int(self.img_to_last_box[i])

    def stored_size(self, image_index: int) -> tuple[int, int]:
        """``(width, height)`` of the stored (resized, unpadded) image."""
        i = int(image_index) - 1
        return int(self.image_widths[i]), int(self.image_heights[i])

    def original_size(self, image_index: int) -> tuple[int, int]:
        i = int(image_index) - 1
        return int(self.original_widths[i]), int(self.original_heights[i])

    def read_image(self, image_index: int) -> np.ndarray:
        """Full ``[1, C, S, S]`` canvas of one image, padding included."""
        i = int(image_index) - 1
        return self.image_source.read_partial(
            IMAGES_KEY,
            (
                slice(i, i + 1),
                slice(0, self.num_channels),
                slice(0, self.max_image_size),
                slice(0, self.max_image_size),
            ),
        )

    def close(self) -> None:
        self.image_source.close()
        if self.store is not None:
            self.store.close()
            self.store = None


__all__ = ["DatasetIndex", "REGION_KEYS", "SPLIT_KEY", "IMAGES_KEY"]
