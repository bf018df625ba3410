from __future__ import annotations

import contextlib
from typing import Any, Dict, List, Optional

import torch

from regioncap.config.schema import LoaderConfig
from regioncap.utils import get_logger

from .contracts import BatchInfo, DatasetIntegrityError, RegionBatch, Split, normalize_split
from .index import DatasetIndex
from .metadata import DatasetMetadata
from .proposals import ProposalStore
from .regions import RegionStore
from .splits import SplitManager
from .storage import ArrayStore, H5ArrayStore
from .vocab import decode_sequence

logger = get_logger(__name__)


class DenseCapDataLoader:
    """Serve one region-annotated image at a time from a preprocessed HDF5 file.

    Each batch holds a single image cropped to its stored size and
    mean-subtracted, its ground-truth regions (xcycwh boxes and token-id
    captions), a one-element info list, and optionally the image's region
    proposals rescaled into the stored image frame.

    Splits are iterated in order with wraparound (``iterate=True``) or sampled
    uniformly at random (``iterate=False``). Cursors can be reset with
    ``reset_iterator``; ``get_batch_at`` reads a position without touching them.

    Not thread-safe: all reads go through one HDF5 handle per file.
    """

    def __init__(
        self,
        config: LoaderConfig,
        *,
        store: Optional[ArrayStore] = None,
        proposal_store: Optional[ArrayStore] = None,
    ) -> None:
        self.config = config

        # Every store handed over or opened here is closed again if construction fails.
        with contextlib.ExitStack() as cleanup:
            if store is not None:
                cleanup.callback(store.close)
            if proposal_store is not None:
                cleanup.callback(proposal_store.close)

            self.metadata = DatasetMetadata.from_json(config.json_file)
            self.vocab = self.metadata.vocab

            if store is None:
                logger.info("DataLoader loading h5 file: %s", config.h5_file)
                store = H5ArrayStore(config.h5_file)
                cleanup.callback(store.close)
            self.index = DatasetIndex(
                store,
                use_split_indicator=config.use_split_indicator,
                read_all_images=config.h5_read_all,
                strict_bounds=config.strict_bounds,
            )

            if config.validate_filenames:
                self.metadata.validate_filenames(self.index.num_images)

            if len(config.pixel_mean) != self.index.num_channels:
                raise DatasetIntegrityError(
                    f"pixel_mean has {len(config.pixel_mean)} values but /images has "
                    f"{self.index.num_channels} channels"
                )
            self.pixel_mean = torch.tensor(config.pixel_mean, dtype=torch.float32).view(
                1, -1, 1, 1
            )

            self.regions = RegionStore(self.index)

            self.proposals: Optional[ProposalStore] = None
            if proposal_store is None and config.proposal_regions_h5:
                logger.info(
                    "DataLoader loading objectness boxes from h5 file: %s",
                    config.proposal_regions_h5,
                )
                proposal_store = H5ArrayStore(config.proposal_regions_h5)
                cleanup.callback(proposal_store.close)
            if proposal_store is not None:
                self.proposals = ProposalStore(proposal_store)

            split_kwargs: Dict[str, Any] = {
                "max_items": config.debug_max_train_images,
                "seed": config.seed,
            }
            if config.use_split_indicator:
                self.splits = SplitManager.from_indicator(self.index.split, **split_kwargs)
            else:
                self.splits = SplitManager.from_fractions(
                    self.index.num_images,
                    float(config.train_frac),
                    float(config.val_frac),
                    **split_kwargs,
                )

            # construction succeeded; the loader owns the stores from here on
            cleanup.pop_all()

        logger.info("initialized DataLoader for %s", self.index.image_source.name)

    # ------------------------------------------------------------------ accessors
    def get_image_max_size(self) -> int:
        return self.index.max_image_size

    def get_seq_length(self) -> int:
        return self.index.seq_length

    def get_vocab_size(self) -> int:
        return len(self.vocab)

    def get_vocab(self) -> Dict[int, str]:
        return self.vocab.as_dict()

    @property
    def num_images(self) -> int:
        return self.index.num_images

    @property
    def num_regions(self) -> int:
        return self.index.num_regions

    @property
    def split_sizes(self) -> Dict[Split, int]:
        return self.splits.sizes()

    def decode_sequence(self, seq: Any) -> List[str]:
        """Decode an ``[L, N]`` array of token ids into ``N`` caption strings."""
        return decode_sequence(self.vocab, seq)

    # ------------------------------------------------------------------ batching
    def reset_iterator(self, split: int) -> None:
        self.splits.reset(split)

    def get_batch(self, split: int = Split.TRAIN, iterate: bool = True) -> RegionBatch:
        """Return the next image of ``split`` as a batch of size 1.

        Args:
            split: 0 (train), 1 (val) or 2 (test)
            iterate: read the split in order with wraparound (advancing its
                cursor) when True; pick a uniformly random image when False.
        """
        split = normalize_split(split)
        position = self.splits.next_position(split, iterate=iterate)
        return self.get_batch_at(split, position)

    def get_batch_at(self, split: int, position: int) -> RegionBatch:
        """Assemble the batch for split-local ``position`` (1-based)."""
        split = normalize_split(split)
        ix = self.splits.image_index(split, position)

        w, h = self.index.stored_size(ix)
        ow, oh = self.index.original_size(ix)

        # crop away the padding, then batch and subtract the channel mean
        canvas = self.index.read_image(ix)
        img = torch.from_numpy(canvas[0, :, :h, :w].astype("float32", copy=True))
        img = img.unsqueeze(0)
        img -= self.pixel_mean.expand_as(img)

        box_batch, label_batch = self.regions.regions_for(ix)

        info: BatchInfo = {
            "filename": self.metadata.filename(ix),
            "split_bounds": (int(position), self.splits.size(split)),
            "width": w,
            "height": h,
            "ori_width": ow,
            "ori_height": oh,
            "image_index": ix,
        }

        obj_boxes = None
        if self.proposals is not None:
            obj_boxes = self.proposals.proposals_for(ix, w, ow)

        return RegionBatch(img, box_batch, label_batch, [info], obj_boxes)

    def close(self) -> None:
        self.index.close()
        if self.proposals is not None:
            self.proposals.close()

    def __enter__(self) -> "DenseCapDataLoader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["DenseCapDataLoader"]
