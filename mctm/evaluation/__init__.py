"""
mctm Evaluation Module.

Accuracy, confusion matrix, per-class accuracy and an accumulator.
"""

from .metrics import (
    accuracy,
    confusion_matrix,
    per_class_accuracy,
    ClassificationMetrics,
)

__all__ = [
    'accuracy',
    'confusion_matrix',
    'per_class_accuracy',
    'ClassificationMetrics',
]
