"""
mctm Inference.

- Predictor: argmax class prediction
- ClauseTransformer: clause-output features for stacked learners
"""

from .predictor import Predictor
from .transformer import ClauseTransformer

__all__ = [
    'Predictor',
    'ClauseTransformer',
]
