"""
mctm: Multi-Class Tsetlin Machine orchestration

Trains and runs an ensemble of single-class pattern-recognition engines,
one per class, on bit-packed examples.

Key Components:
- SingleClassEngine: Interface every per-class engine implements
- TsetlinEngine: Reference (convolutional) Tsetlin machine engine
- Ensemble: Engine array with shared layout, lifecycle and state access
- Predictor: Argmax over class vote sums
- Trainer: One-vs-other updates with per-epoch shuffling and dropout
- ClauseTransformer: Clause outputs as features for stacked learners
- MultiClassTsetlinMachine: Facade over all of the above
"""

__version__ = "0.1.0"
__author__ = "mctm Team"

from mctm.config import EngineConfig, MCTMConfig, get_default_config
from mctm.errors import (
    MCTMError,
    AllocationError,
    InvalidConfig,
    SizeMismatch,
    OutOfRangeInput,
    LifecycleError,
)
from mctm.models import (
    SingleClassEngine,
    TsetlinEngine,
    Ensemble,
    MultiClassTsetlinMachine,
)
from mctm.inference import Predictor, ClauseTransformer
from mctm.training import Trainer, TrainingConfig, EpochLogger, EpochStats
from mctm.utils import Bitset, pack_bits, unpack_bits, pack_examples, make_generator

__all__ = [
    # Configuration
    "EngineConfig",
    "MCTMConfig",
    "get_default_config",
    # Errors
    "MCTMError",
    "AllocationError",
    "InvalidConfig",
    "SizeMismatch",
    "OutOfRangeInput",
    "LifecycleError",
    # Models
    "SingleClassEngine",
    "TsetlinEngine",
    "Ensemble",
    "MultiClassTsetlinMachine",
    # Inference
    "Predictor",
    "ClauseTransformer",
    # Training
    "Trainer",
    "TrainingConfig",
    "EpochLogger",
    "EpochStats",
    # Utilities
    "Bitset",
    "pack_bits",
    "unpack_bits",
    "pack_examples",
    "make_generator",
]
