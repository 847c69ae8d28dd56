"""
Packed bitsets and word-level packing helpers.

Clause and literal masks, clause outputs and examples are all stored as
fixed-width chunks. The default chunk width is 32 bits, the word width of
packed examples. Chunk values live in int64 tensors, so a full 32-bit chunk
never collides with the sign bit.

Usage:
    mask = Bitset(100)
    mask.set(37)
    mask.test(37)        # True
    mask.clear_all()

    words = pack_bits(bool_tensor)            # [..., n] -> [..., ceil(n/32)]
    bits = unpack_bits(words, n)              # inverse
"""

from typing import Any, Optional

import numpy as np
import torch

from ..errors import InvalidConfig, OutOfRangeInput


WORD_BITS = 32


def num_chunks(num_bits: int, chunk_bits: int = WORD_BITS) -> int:
    """Number of chunks needed to hold num_bits bits."""
    return (num_bits + chunk_bits - 1) // chunk_bits


def _check_chunk_bits(chunk_bits: int):
    # 63 would touch the int64 sign bit
    if not 1 <= chunk_bits <= 62:
        raise InvalidConfig(f"chunk_bits must be in [1, 62], got {chunk_bits}")


def pack_bits(bits: torch.Tensor, chunk_bits: int = WORD_BITS) -> torch.Tensor:
    """
    Pack the last dimension of a boolean tensor into chunks.

    Bit k lands in chunk k // chunk_bits at position k % chunk_bits.

    Args:
        bits: Tensor of shape [..., n] (bool or 0/1 integers)
        chunk_bits: Bits per chunk

    Returns:
        int64 tensor of shape [..., ceil(n / chunk_bits)]
    """
    _check_chunk_bits(chunk_bits)
    bits = torch.as_tensor(bits).to(torch.int64)
    n = bits.shape[-1]
    pad = num_chunks(n, chunk_bits) * chunk_bits - n
    if pad:
        padding = torch.zeros(*bits.shape[:-1], pad, dtype=torch.int64)
        bits = torch.cat([bits, padding], dim=-1)
    bits = bits.reshape(*bits.shape[:-1], num_chunks(n, chunk_bits), chunk_bits)
    weights = torch.ones(chunk_bits, dtype=torch.int64) << torch.arange(chunk_bits, dtype=torch.int64)
    return (bits * weights).sum(dim=-1)


def unpack_bits(chunks: torch.Tensor, num_bits: int, chunk_bits: int = WORD_BITS) -> torch.Tensor:
    """
    Inverse of pack_bits.

    Args:
        chunks: int tensor of shape [..., c]
        num_bits: Number of leading bits to keep (<= c * chunk_bits)
        chunk_bits: Bits per chunk

    Returns:
        bool tensor of shape [..., num_bits]
    """
    _check_chunk_bits(chunk_bits)
    chunks = torch.as_tensor(chunks).to(torch.int64)
    shifts = torch.arange(chunk_bits, dtype=torch.int64)
    bits = (chunks.unsqueeze(-1) >> shifts) & 1
    bits = bits.reshape(*chunks.shape[:-1], chunks.shape[-1] * chunk_bits)
    return bits[..., :num_bits].bool()


def as_word_tensor(X: Any) -> torch.Tensor:
    """Convert packed input (tensor, ndarray or nested list) to an int64 tensor."""
    if isinstance(X, torch.Tensor):
        return X.to(torch.int64)
    return torch.from_numpy(np.asarray(X).astype(np.int64))


def pack_examples(
    literals: Any,
    number_of_ta_chunks: Optional[int] = None,
) -> torch.Tensor:
    """
    Pack boolean literal matrices into the example word layout.

    Args:
        literals: [num_examples, num_literals] or
            [num_examples, num_patches, num_literals] boolean array
        number_of_ta_chunks: Words per patch (default: ceil(num_literals / 32))

    Returns:
        int64 tensor of shape [num_examples, num_patches * number_of_ta_chunks]
    """
    if isinstance(literals, torch.Tensor):
        literals = literals.bool()
    else:
        literals = torch.from_numpy(np.asarray(literals).astype(bool))
    if literals.dim() == 2:
        literals = literals.unsqueeze(1)
    if literals.dim() != 3:
        raise InvalidConfig(
            f"Expected [examples, literals] or [examples, patches, literals], got shape {tuple(literals.shape)}"
        )

    words = pack_bits(literals)
    needed = words.shape[-1]
    if number_of_ta_chunks is None:
        number_of_ta_chunks = needed
    if number_of_ta_chunks < needed:
        raise InvalidConfig(
            f"{literals.shape[-1]} literals need at least {needed} chunks, got {number_of_ta_chunks}"
        )
    if number_of_ta_chunks > needed:
        padding = torch.zeros(*words.shape[:-1], number_of_ta_chunks - needed, dtype=torch.int64)
        words = torch.cat([words, padding], dim=-1)
    return words.reshape(words.shape[0], -1)


class Bitset:
    """
    Fixed-size bitset over chunked int64 storage.

    Used for the per-engine drop_clause / drop_literal masks and the
    clause_output cache.
    """

    def __init__(self, num_bits: int, chunk_bits: int = WORD_BITS):
        _check_chunk_bits(chunk_bits)
        if num_bits < 0:
            raise InvalidConfig(f"num_bits must be non-negative, got {num_bits}")
        self.num_bits = num_bits
        self.chunk_bits = chunk_bits
        self.chunks = torch.zeros(num_chunks(num_bits, chunk_bits), dtype=torch.int64)

    @classmethod
    def from_bool(cls, mask: torch.Tensor, chunk_bits: int = WORD_BITS) -> "Bitset":
        """Build a bitset whose bit k is mask[k]."""
        bitset = cls(int(mask.shape[-1]), chunk_bits)
        bitset.assign(mask)
        return bitset

    @property
    def number_of_chunks(self) -> int:
        return int(self.chunks.numel())

    def __len__(self) -> int:
        return self.num_bits

    def _locate(self, index: int):
        if not 0 <= index < self.num_bits:
            raise OutOfRangeInput(f"bit {index} outside [0, {self.num_bits})")
        return divmod(index, self.chunk_bits)

    def test(self, index: int) -> bool:
        chunk, pos = self._locate(index)
        return bool((int(self.chunks[chunk]) >> pos) & 1)

    def set(self, index: int):
        chunk, pos = self._locate(index)
        self.chunks[chunk] = self.chunks[chunk] | (1 << pos)

    def clear(self, index: int):
        chunk, pos = self._locate(index)
        self.chunks[chunk] = self.chunks[chunk] & ~(1 << pos)

    def clear_all(self):
        self.chunks.zero_()

    def assign(self, mask: torch.Tensor):
        """Overwrite every bit from a boolean tensor of length num_bits."""
        mask = torch.as_tensor(mask)
        if mask.shape != (self.num_bits,):
            raise OutOfRangeInput(
                f"mask of shape {tuple(mask.shape)} does not fit a bitset of {self.num_bits} bits"
            )
        self.chunks.copy_(pack_bits(mask.bool(), self.chunk_bits))

    def to_bool(self) -> torch.Tensor:
        return unpack_bits(self.chunks, self.num_bits, self.chunk_bits)

    def count(self) -> int:
        return int(self.to_bool().sum().item())

    def any(self) -> bool:
        return bool(self.chunks.any().item())

    def __repr__(self) -> str:
        return f"Bitset(num_bits={self.num_bits}, set={self.count()})"
