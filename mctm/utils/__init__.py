"""Bit packing and random stream helpers."""

from .bitset import (
    WORD_BITS,
    Bitset,
    as_word_tensor,
    num_chunks,
    pack_bits,
    pack_examples,
    unpack_bits,
)
from .random import bernoulli_mask, make_generator, permutation, randint

__all__ = [
    'WORD_BITS',
    'Bitset',
    'as_word_tensor',
    'num_chunks',
    'pack_bits',
    'pack_examples',
    'unpack_bits',
    'bernoulli_mask',
    'make_generator',
    'permutation',
    'randint',
]
