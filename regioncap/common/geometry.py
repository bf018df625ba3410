"""Box encodings and transforms shared by the region and proposal stores.

Encodings:
- ``xywh``: top-left x, top-left y, width, height
- ``xcycwh``: center x, center y, width, height

All helpers operate on the trailing dimension of a ``(..., 4)`` float tensor
and return new tensors; inputs are never modified in place.
"""

from __future__ import annotations

import torch


def _check_boxes(boxes: torch.Tensor, *, name: str) -> None:
    if boxes.dim() < 1 or boxes.shape[-1] != 4:
        raise ValueError(f"{name} must have a trailing dimension of 4, got shape {tuple(boxes.shape)}")


def scale_boxes_xywh(boxes: torch.Tensor, frac: float) -> torch.Tensor:
    """Uniformly rescale xywh boxes; the origin stays fixed at (0, 0)."""

    _check_boxes(boxes, name="boxes")
    return boxes * float(frac)


def xywh_to_xcycwh(boxes: torch.Tensor) -> torch.Tensor:
    _check_boxes(boxes, name="boxes")
    x, y, w, h = boxes.unbind(dim=-1)
    return torch.stack((x + w / 2, y + h / 2, w, h), dim=-1)


__all__ = ["scale_boxes_xywh", "xywh_to_xcycwh"]
