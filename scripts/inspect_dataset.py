#!/usr/bin/env python
"""Inspect a preprocessed region dataset through DenseCapDataLoader.

Loads a YAML config, builds the loader, logs the split sizes and, for the first
few images of a split, the region/proposal counts and decoded captions.

Usage (inside repo root):
  python scripts/inspect_dataset.py \
      --config configs/vg_regions.yaml \
      --split 1 --num-batches 3 --captions 5
"""

from __future__ import annotations

import argparse

from regioncap.config import ConfigLoader
from regioncap.datasets import DenseCapDataLoader, Split
from regioncap.utils import FileLoggingConfig, enable_output_dir_file_logging, get_logger, set_log_level

logger = get_logger("scripts.inspect_dataset")


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect a region dataset split.")
    parser.add_argument("--config", required=True, type=str, help="YAML config path")
    parser.add_argument(
        "--split", default=0, type=int, choices=[0, 1, 2], help="0 train, 1 val, 2 test (default: 0)"
    )
    parser.add_argument("--num-batches", default=3, type=int, help="Images to inspect (default: 3)")
    parser.add_argument("--captions", default=5, type=int, help="Captions to decode per image (default: 5)")
    parser.add_argument(
        "--random", action="store_true", help="Sample images at random instead of in order"
    )
    args = parser.parse_args()

    if args.num_batches <= 0:
        raise ValueError("--num-batches must be > 0")

    config = ConfigLoader.load_config(args.config)
    set_log_level(config.logging.level)
    if config.logging.output_dir:
        enable_output_dir_file_logging(
            config.logging.output_dir, FileLoggingConfig(filename=config.logging.filename)
        )

    split = Split(args.split)
    with DenseCapDataLoader(config.data) as loader:
        sizes = loader.split_sizes
        logger.info(
            "vocab size %d, seq length %d, max image size %d, splits train/val/test = %d/%d/%d",
            loader.get_vocab_size(),
            loader.get_seq_length(),
            loader.get_image_max_size(),
            sizes[Split.TRAIN],
            sizes[Split.VAL],
            sizes[Split.TEST],
        )

        for _ in range(args.num_batches):
            batch = loader.get_batch(split, iterate=not args.random)
            info = batch.info[0]
            num_proposals = "-" if batch.proposals is None else batch.proposals.shape[1]
            logger.info(
                "[%d/%d] %s  %dx%d (orig %dx%d)  regions=%d proposals=%s",
                info["split_bounds"][0],
                info["split_bounds"][1],
                info["filename"],
                info["width"],
                info["height"],
                info["ori_width"],
                info["ori_height"],
                batch.boxes.shape[1],
                num_proposals,
            )
            # labels are [1, R, L]; the decoder wants [L, N]
            captions = loader.decode_sequence(batch.labels[0, : args.captions].t())
            for caption in captions:
                logger.info("    %s", caption)


if __name__ == "__main__":
    main()
