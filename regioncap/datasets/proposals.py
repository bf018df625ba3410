"""Externally computed region proposals (objectness boxes).

The proposal HDF5 file has its own offset tables (``img_to_first_box``,
``img_to_last_box``; 1-based, inclusive) into a ``boxes`` array of
``x, y, w, h, score`` rows expressed in the coordinate frame of the original
image. Rows are read per image and rescaled into the frame of the stored
(resized) image, then re-encoded as ``xcycwh``.
"""

from __future__ import annotations

import numpy as np
import torch

from regioncap.common.geometry import scale_boxes_xywh, xywh_to_xcycwh
from regioncap.utils import get_logger

from .contracts import DatasetIntegrityError
from .storage import ArrayStore

logger = get_logger(__name__)

PROPOSAL_COLUMNS = 5


class ProposalStore:
    def __init__(self, store: ArrayStore) -> None:
        for key in ("img_to_first_box", "img_to_last_box", "boxes"):
            store.require(key)
        boxes_shape = store.shape("boxes")
        if len(boxes_shape) != 2 or boxes_shape[1] != PROPOSAL_COLUMNS:
            raise DatasetIntegrityError(
                f"{store.name}: /boxes should be a (num_proposals, 5) array of x,y,w,h,score, "
                f"got shape {boxes_shape}"
            )
        self.store = store
        self.img_to_first_box: np.ndarray = store.read_all("img_to_first_box").reshape(-1)
        self.img_to_last_box: np.ndarray = store.read_all("img_to_last_box").reshape(-1)
        self.num_proposals = int(boxes_shape[0])
        logger.info(
            "DataLoader loaded objectness boxes index for %d images (%d proposals) from %s",
            self.img_to_first_box.shape[0],
            self.num_proposals,
            store.name,
        )

    def proposal_range(self, image_index: int) -> tuple[int, int]:
        i = int(image_index) - 1
        return int(self.img_to_first_box[i]), int(self.img_to_last_box[i])

    def proposals_for(
        self, image_index: int, stored_width: int, original_width: int
    ) -> torch.Tensor:
        """``[1, P, 5]`` float32 proposals as ``xc, yc, w, h, score``.

        One uniform scale ``stored_width / original_width`` is applied to both
        axes; the upstream resize preserves aspect ratio.
        """

        r0, r1 = self.proposal_range(image_index)
        rows = self.store.read_partial(
            "boxes", (slice(r0 - 1, r1), slice(0, PROPOSAL_COLUMNS))
        )
        proposals = torch.from_numpy(np.asarray(rows, dtype=np.float32).copy())

        # e.g. original 800 px wide, stored at 512 -> scale by 512/800
        frac = float(stored_width) / float(original_width)
        scaled = scale_boxes_xywh(proposals[:, :4], frac)
        proposals[:, :4] = xywh_to_xcycwh(scaled)
        return proposals.unsqueeze(0)

    def close(self) -> None:
        self.store.close()


__all__ = ["ProposalStore", "PROPOSAL_COLUMNS"]
