"""
Single-class engine interface.

The ensemble only talks to its engines through this capability set, so
alternate engines (plain, convolutional, or anything else that scores a
packed example) can be substituted without touching the orchestration
layer.

Every engine exposes three bitsets the orchestration layer reads or writes:
- drop_clause: one bit per clause, set bits skip the clause during update
- drop_literal: one bit per literal, set bits hide the literal during update
- clause_output: one bit per clause, refreshed by every score() call
"""

from abc import ABC, abstractmethod

import torch

from ..config import EngineConfig
from ..utils.bitset import Bitset


class SingleClassEngine(ABC):
    """Binary learner for one class of the ensemble."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.drop_clause = Bitset(config.number_of_clauses)
        self.drop_literal = Bitset(config.number_of_features)
        self.clause_output = Bitset(config.number_of_clauses)

    # === LAYOUT ===

    @property
    def number_of_clauses(self) -> int:
        return self.config.number_of_clauses

    @property
    def number_of_clause_chunks(self) -> int:
        return self.drop_clause.number_of_chunks

    @property
    def number_of_features(self) -> int:
        return self.config.number_of_features

    @property
    def number_of_patches(self) -> int:
        return self.config.number_of_patches

    @property
    def number_of_ta_chunks(self) -> int:
        return self.config.number_of_ta_chunks

    @property
    def number_of_state_bits(self) -> int:
        return self.config.number_of_state_bits

    # === LIFECYCLE ===

    @abstractmethod
    def initialize(self):
        """Put every automaton in its starting state."""

    @abstractmethod
    def destroy(self):
        """Release engine state."""

    # === LEARNING ===

    @abstractmethod
    def score(self, example: torch.Tensor) -> int:
        """Class vote sum for one packed example; refreshes clause_output."""

    @abstractmethod
    def update(self, example: torch.Tensor, label: int):
        """One online learning step with label 1 (positive) or 0 (negative)."""

    # === STATE ===

    @abstractmethod
    def get_ta_state(self) -> torch.Tensor:
        """Bit-sliced automaton state, config.ta_state_size words."""

    @abstractmethod
    def set_ta_state(self, ta_state: torch.Tensor):
        """Inverse of get_ta_state."""

    @abstractmethod
    def get_weights(self) -> torch.Tensor:
        """Clause weights, one per clause."""

    @abstractmethod
    def set_weights(self, clause_weights: torch.Tensor):
        """Inverse of get_weights."""

    @abstractmethod
    def ta_state(self, clause: int, ta: int) -> int:
        """State of one automaton."""

    @abstractmethod
    def ta_action(self, clause: int, ta: int) -> int:
        """1 if the automaton includes its literal, else 0."""
