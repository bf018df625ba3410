import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import h5py
import numpy as np
import pytest

ROOT = Path(__file__).resolve().parent.parent

# Put this repo first so the in-tree regioncap package wins over any install.
root_str = str(ROOT)
sys.path = [root_str] + [p for p in sys.path if p != root_str]

VOCAB = ["a", "man", "riding", "red", "bike", "on", "the", "street"]
SEQ_LENGTH = 4
CANVAS = 8
CHANNELS = 3


@dataclass
class RegionDatasetFiles:
    h5_path: Path
    json_path: Path
    proposals_path: Optional[Path]
    arrays: Dict[str, np.ndarray]
    proposal_arrays: Dict[str, np.ndarray] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


def build_region_arrays(
    num_images: int = 6,
    *,
    split: Optional[list] = None,
    seed: int = 0,
) -> Dict[str, np.ndarray]:
    """Arrays in the layout written by the region preprocessing step.

    Image ``i`` (1-based) owns ``(i - 1) % 3 + 1`` regions; offsets are 1-based
    and inclusive.
    """

    rng = np.random.default_rng(seed)
    counts = [(i % 3) + 1 for i in range(num_images)]
    first, last, box_to_img = [], [], []
    cursor = 1
    for img_id, count in enumerate(counts, start=1):
        first.append(cursor)
        last.append(cursor + count - 1)
        box_to_img.extend([img_id] * count)
        cursor += count
    num_regions = cursor - 1

    heights = np.array([CANVAS - (i % 3) for i in range(num_images)], dtype=np.int32)
    widths = np.array([CANVAS - ((i + 1) % 4) for i in range(num_images)], dtype=np.int32)

    boxes = np.arange(num_regions * 4, dtype=np.int32).reshape(num_regions, 4)
    labels = np.full((num_regions, SEQ_LENGTH), len(VOCAB) + 1, dtype=np.uint32)
    for r in range(num_regions):
        n_words = (r % SEQ_LENGTH) + 1
        labels[r, :n_words] = [(r + k) % len(VOCAB) + 1 for k in range(n_words)]
    lengths = (labels <= len(VOCAB)).sum(axis=1).astype(np.int32)

    if split is None:
        split = [0, 0, 1, 2, 0, 1][:num_images] + [0] * max(0, num_images - 6)

    return {
        "box_to_img": np.array(box_to_img, dtype=np.int32),
        "boxes": boxes,
        "image_heights": heights,
        "image_widths": widths,
        "img_to_first_box": np.array(first, dtype=np.int32),
        "img_to_last_box": np.array(last, dtype=np.int32),
        "labels": labels,
        "lengths": lengths,
        "original_heights": heights * 2,
        "original_widths": widths * 2,
        "split": np.array(split, dtype=np.int32),
        "images": rng.integers(0, 256, size=(num_images, CHANNELS, CANVAS, CANVAS), dtype=np.uint8),
    }


def build_proposal_arrays(num_images: int = 6, per_image: int = 2) -> Dict[str, np.ndarray]:
    first = np.arange(num_images, dtype=np.int32) * per_image + 1
    last = first + per_image - 1
    rows = []
    for i in range(num_images * per_image):
        rows.append([10.0 * i, 5.0 * i, 4.0, 6.0, 0.5])
    return {
        "img_to_first_box": first,
        "img_to_last_box": last,
        "boxes": np.array(rows, dtype=np.float32),
    }


def write_h5(path: Path, arrays: Dict[str, np.ndarray]) -> Path:
    with h5py.File(path, "w") as f:
        for key, value in arrays.items():
            f.create_dataset(key, data=value)
    return path


def build_metadata(num_images: int) -> Dict[str, Any]:
    return {
        "idx_to_token": {str(i): tok for i, tok in enumerate(VOCAB, start=1)},
        "idx_to_filename": {str(i): f"{i}.jpg" for i in range(1, num_images + 1)},
    }


@pytest.fixture
def make_region_dataset(tmp_path: Path) -> Callable[..., RegionDatasetFiles]:
    def _make(
        num_images: int = 6,
        *,
        with_proposals: bool = False,
        drop: tuple = (),
        overrides: Optional[Dict[str, np.ndarray]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        split: Optional[list] = None,
    ) -> RegionDatasetFiles:
        arrays = build_region_arrays(num_images, split=split)
        arrays.update(overrides or {})
        for key in drop:
            arrays.pop(key, None)
        h5_path = write_h5(tmp_path / "regions.h5", arrays)

        meta = metadata if metadata is not None else build_metadata(num_images)
        json_path = tmp_path / "regions-dicts.json"
        json_path.write_text(json.dumps(meta), encoding="utf-8")

        proposals_path = None
        proposal_arrays: Dict[str, np.ndarray] = {}
        if with_proposals:
            proposal_arrays = build_proposal_arrays(num_images)
            proposals_path = write_h5(tmp_path / "proposals.h5", proposal_arrays)

        return RegionDatasetFiles(
            h5_path=h5_path,
            json_path=json_path,
            proposals_path=proposals_path,
            arrays=arrays,
            proposal_arrays=proposal_arrays,
            metadata=meta,
        )

    return _make
