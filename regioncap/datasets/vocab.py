"""Caption vocabulary and token-id sequence decoding.

Token ids ``1..V`` are words. Any id outside that range (conventionally
``V + 1``) is an end marker: decoding a sequence stops at the first one.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import numpy as np
import torch

from .contracts import DatasetIntegrityError


def parse_index_key(key: Any, *, where: str) -> int:
    if isinstance(key, bool):
        raise DatasetIntegrityError(f"{where}: key {key!r} is not an integer id")
    if isinstance(key, int):
        return key
    text = str(key).strip()
    if not text.lstrip("-").isdigit():
        raise DatasetIntegrityError(f"{where}: key {key!r} is not an integer id")
    return int(text)


class Vocabulary:
    """Immutable mapping of token id (1..V) to token string."""

    def __init__(self, idx_to_token: Mapping[Any, str]) -> None:
        tokens: Dict[int, str] = {}
        for raw_key, token in idx_to_token.items():
            idx = parse_index_key(raw_key, where="idx_to_token")
            if idx in tokens:
                raise DatasetIntegrityError(f"idx_to_token: duplicate token id {idx}")
            if not isinstance(token, str):
                raise DatasetIntegrityError(
                    f"idx_to_token[{idx}] must be a string, got {type(token).__name__}"
                )
            tokens[idx] = token

        size = len(tokens)
        missing = [i for i in range(1, size + 1) if i not in tokens]
        if missing:
            raise DatasetIntegrityError(
                f"idx_to_token must cover ids 1..{size} exactly; missing {missing[:10]}"
            )
        self._tokens = tokens
        self._size = size

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, idx: int) -> str:
        return self._tokens[int(idx)]

    @property
    def end_token(self) -> int:
        return self._size + 1

    def is_word(self, idx: int) -> bool:
        return 1 <= int(idx) <= self._size

    def as_dict(self) -> Dict[int, str]:
        return dict(self._tokens)

    def decode(self, sequences: Any) -> List[str]:
        return decode_sequence(self, sequences)


def decode_sequence(vocab: Vocabulary, sequences: Any) -> List[str]:
    """Decode a ``[L, N]`` array of token ids into ``N`` strings.

    Each column is read top to bottom; words are joined with single spaces and
    the first id outside ``[1, V]`` ends that column. A 1-D input is treated as
    a single sequence.
    """

    if isinstance(sequences, torch.Tensor):
        seq = sequences.detach().cpu().numpy()
    else:
        seq = np.asarray(sequences)
    if seq.ndim == 1:
        seq = seq.reshape(-1, 1)
    if seq.ndim != 2:
        raise ValueError(f"sequences must be shaped [L, N], got shape {seq.shape}")

    length, count = seq.shape
    out: List[str] = []
    for i in range(count):
        words: List[str] = []
        for j in range(length):
            ix = int(seq[j, i])
            if not vocab.is_word(ix):
                break
            words.append(vocab[ix])
        out.append(" ".join(words))
    return out


__all__ = ["Vocabulary", "decode_sequence"]
