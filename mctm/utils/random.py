"""
Seedable random stream shared by training components.

A single torch.Generator drives shuffling, negative-class sampling, dropout
draws and engine feedback. The generator is not safe to share between
threads: give every parallel worker its own stream.
"""

from typing import Optional

import torch


def make_generator(seed: Optional[int] = None) -> torch.Generator:
    """Create a CPU generator, seeded deterministically when seed is given."""
    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(seed)
    return generator


def randint(generator: torch.Generator, high: int) -> int:
    """Uniform integer in [0, high)."""
    return int(torch.randint(high, (1,), generator=generator).item())


def permutation(generator: torch.Generator, n: int) -> torch.Tensor:
    """Uniform random permutation of [0, n)."""
    return torch.randperm(n, generator=generator)


def bernoulli_mask(generator: torch.Generator, n: int, p: float) -> torch.Tensor:
    """Boolean mask of n independent draws, each True with probability p."""
    if p <= 0.0:
        return torch.zeros(n, dtype=torch.bool)
    return torch.rand(n, generator=generator) < p
