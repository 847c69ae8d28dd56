"""
Tests for the clause-output feature transform.
"""

import numpy as np
import pytest
import torch

from mctm.errors import OutOfRangeInput
from mctm.inference.transformer import ClauseTransformer
from mctm.models.ensemble import Ensemble
from mctm.utils.bitset import pack_examples


@pytest.fixture
def transformer(small_engine_config, generator):
    """
    Two classes with hand-set clauses:
    - class 0, clause 0 includes literal 0; clause 1 includes literal 1
    - class 1, clause 2 includes literals 0 and 1
    """
    ensemble = Ensemble.create(2, small_engine_config, generator=generator)
    ensemble.initialize()
    class_0, class_1 = ensemble.engines
    include = class_0.include_threshold
    class_0._ta_state[0, 0] = include
    class_0._ta_state[1, 1] = include
    class_1._ta_state[2, 0] = include
    class_1._ta_state[2, 1] = include
    return ClauseTransformer(ensemble)


@pytest.fixture
def examples():
    literals = np.zeros((3, 8), dtype=bool)
    literals[0, 0] = True
    literals[1, [0, 1]] = True
    return pack_examples(literals)


def test_output_layout(transformer, examples):
    out = transformer.transform(examples)
    assert out.shape == (3, 20)
    assert out.dtype == torch.uint8
    assert transformer.number_of_outputs == 20

    expected = torch.zeros(3, 20, dtype=torch.uint8)
    expected[0, 0] = 1
    expected[1, [0, 1, 12]] = 1
    assert torch.equal(out, expected)


def test_invert_is_complement(transformer, examples):
    plain = transformer.transform(examples)
    inverted = transformer.transform(examples, invert=True)
    assert torch.equal(inverted, 1 - plain)


def test_empty_clauses_emit_zero(transformer, examples):
    out = transformer.transform(examples)
    assert out[:, 3:10].sum() == 0
    assert out[:, 13:].sum() == 0


def test_num_examples(transformer, examples):
    assert transformer.transform(examples, num_examples=2).shape == (2, 20)
    with pytest.raises(OutOfRangeInput):
        transformer.transform(examples, num_examples=4)
