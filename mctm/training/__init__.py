"""
mctm Training Components.

Provides:
- Trainer with one-vs-other updates, shuffling and per-epoch dropout
- EpochLogger for structured per-epoch logging
"""

from .trainer import (
    Trainer,
    TrainingConfig,
)
from .epoch_logger import (
    EpochLogger,
    EpochStats,
    MetricStats,
)

__all__ = [
    # Trainer
    'Trainer',
    'TrainingConfig',
    # Epoch Logger
    'EpochLogger',
    'EpochStats',
    'MetricStats',
]
