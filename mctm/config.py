"""
mctm Configuration

Centralized configuration for the per-class engines and the multi-class
ensemble. Validation happens in __post_init__ and raises InvalidConfig.
"""

from typing import Optional
from dataclasses import dataclass, fields

from .errors import InvalidConfig
from .utils.bitset import WORD_BITS, num_chunks


def _require(condition: bool, message: str):
    if not condition:
        raise InvalidConfig(message)


@dataclass
class EngineConfig:
    """
    Layout and learning hyperparameters shared by every single-class engine.

    Layout:
    - number_of_clauses: Clauses per class (even index = positive polarity)
    - number_of_features: Literals per patch, negations included
    - number_of_patches: Patches per example (1 = plain machine)
    - number_of_ta_chunks: 32-bit words per patch (None = ceil(features / 32))
    - number_of_state_bits: Bits per automaton state

    Learning:
    - T: Vote clamp / feedback threshold
    - s: Specificity
    - s_range: Specificity at the last literal (None = s for every literal)
    - boost_true_positive_feedback: Always reinforce true-positive literals
    - weighted_clauses: Learn integer clause weights
    """

    number_of_clauses: int = 20
    number_of_features: int = 32
    number_of_patches: int = 1
    number_of_ta_chunks: Optional[int] = None
    number_of_state_bits: int = 8
    T: int = 15
    s: float = 3.9
    s_range: Optional[float] = None
    boost_true_positive_feedback: bool = True
    weighted_clauses: bool = False

    def __post_init__(self):
        _require(self.number_of_clauses > 0, "number_of_clauses must be positive")
        _require(self.number_of_features > 0, "number_of_features must be positive")
        _require(self.number_of_patches > 0, "number_of_patches must be positive")
        min_chunks = num_chunks(self.number_of_features, WORD_BITS)
        if self.number_of_ta_chunks is None:
            self.number_of_ta_chunks = min_chunks
        _require(
            self.number_of_ta_chunks >= min_chunks,
            f"{self.number_of_features} features need at least {min_chunks} ta chunks, "
            f"got {self.number_of_ta_chunks}",
        )
        _require(1 <= self.number_of_state_bits <= 62, "number_of_state_bits must be in [1, 62]")
        _require(self.T > 0, "T must be positive")
        _require(self.s >= 1.0, "s must be >= 1")
        if self.s_range is None:
            self.s_range = self.s
        _require(self.s_range >= 1.0, "s_range must be >= 1")

    @property
    def number_of_clause_chunks(self) -> int:
        return num_chunks(self.number_of_clauses, WORD_BITS)

    @property
    def example_stride(self) -> int:
        """Words per packed example."""
        return self.number_of_patches * self.number_of_ta_chunks

    @property
    def ta_state_size(self) -> int:
        """Words in a bit-sliced automaton state buffer."""
        return self.number_of_clauses * self.number_of_ta_chunks * self.number_of_state_bits

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: dict) -> "EngineConfig":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class MCTMConfig:
    """
    Configuration for a multi-class machine.

    Engine fields mirror EngineConfig and are copied into every class
    engine. Dropout probabilities and the seed belong to the ensemble.
    """

    # === ENSEMBLE ===
    number_of_classes: int = 2

    # === ENGINE LAYOUT ===
    number_of_clauses: int = 20
    number_of_features: int = 32
    number_of_patches: int = 1
    number_of_ta_chunks: Optional[int] = None
    number_of_state_bits: int = 8

    # === ENGINE LEARNING ===
    T: int = 15
    s: float = 3.9
    s_range: Optional[float] = None
    boost_true_positive_feedback: bool = True
    weighted_clauses: bool = False

    # === REGULARIZATION ===
    clause_drop_p: float = 0.0
    literal_drop_p: float = 0.0

    # === REPRODUCIBILITY ===
    seed: Optional[int] = None

    def __post_init__(self):
        _require(self.number_of_classes >= 1, "number_of_classes must be >= 1")
        _require(0.0 <= self.clause_drop_p <= 1.0, "clause_drop_p must be in [0, 1]")
        _require(0.0 <= self.literal_drop_p <= 1.0, "literal_drop_p must be in [0, 1]")
        # Validates and fills the derived engine fields
        engine = self.engine_config()
        self.number_of_ta_chunks = engine.number_of_ta_chunks
        self.s_range = engine.s_range

    def engine_config(self) -> EngineConfig:
        return EngineConfig.from_dict(self.to_dict())

    @classmethod
    def small(cls, number_of_classes: int = 2, number_of_features: int = 32) -> "MCTMConfig":
        """Small configuration for tests and quick experiments."""
        return cls(
            number_of_classes=number_of_classes,
            number_of_clauses=10,
            number_of_features=number_of_features,
            T=10,
            s=3.0,
        )

    @classmethod
    def base(cls, number_of_classes: int = 10, number_of_features: int = 1568) -> "MCTMConfig":
        """Base configuration (MNIST-sized literal count)."""
        return cls(
            number_of_classes=number_of_classes,
            number_of_clauses=2000,
            number_of_features=number_of_features,
            T=50,
            s=10.0,
            weighted_clauses=True,
        )

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: dict) -> "MCTMConfig":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


def get_default_config() -> MCTMConfig:
    """Get default mctm configuration."""
    return MCTMConfig()
