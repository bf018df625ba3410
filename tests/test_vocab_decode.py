import numpy as np
import pytest
import torch

from regioncap.datasets import DatasetIntegrityError, Vocabulary, decode_sequence


def _vocab(size: int = 8) -> Vocabulary:
    return Vocabulary({str(i): f"tok{i}" for i in range(1, size + 1)})


def test_decode_stops_at_first_end_marker():
    vocab = _vocab(8)
    seq = torch.tensor([[3], [7], [9], [2]])
    assert decode_sequence(vocab, seq) == ["tok3 tok7"]


def test_decode_handles_multiple_columns_and_numpy_input():
    vocab = _vocab(8)
    seq = np.array(
        [
            [1, 0, 8],
            [2, 5, 8],
            [3, 6, 0],
        ]
    )
    assert vocab.decode(seq) == ["tok1 tok2 tok3", "", "tok8 tok8"]


def test_decode_without_leading_word_is_empty():
    vocab = _vocab(4)
    assert decode_sequence(vocab, torch.tensor([[5, 0, -1], [1, 1, 1]])) == ["", "", ""]


def test_decode_accepts_single_sequence():
    vocab = _vocab(4)
    assert decode_sequence(vocab, [4, 1, 5]) == ["tok4 tok1"]


def test_decode_rejects_higher_rank_input():
    with pytest.raises(ValueError, match=r"\[L, N\]"):
        decode_sequence(_vocab(4), torch.zeros((2, 2, 2), dtype=torch.long))


def test_vocabulary_requires_contiguous_ids():
    with pytest.raises(DatasetIntegrityError, match="missing"):
        Vocabulary({"1": "a", "3": "c"})


def test_vocabulary_rejects_non_integer_keys():
    with pytest.raises(DatasetIntegrityError, match="not an integer id"):
        Vocabulary({"one": "a"})


def test_vocabulary_exposes_int_keyed_mapping_and_end_token():
    vocab = _vocab(3)
    assert len(vocab) == 3
    assert vocab.end_token == 4
    assert vocab.as_dict() == {1: "tok1", 2: "tok2", 3: "tok3"}
    assert vocab.is_word(3) and not vocab.is_word(4) and not vocab.is_word(0)
