"""
Classification Metrics.

Provides the metrics used to evaluate multi-class machines:
- Accuracy
- Confusion matrix
- Per-class accuracy (recall)
- ClassificationMetrics accumulator
"""

from typing import Any, Dict, List, Optional

import numpy as np
import torch


def _as_labels(values: Any) -> np.ndarray:
    if isinstance(values, torch.Tensor):
        values = values.detach().cpu().numpy()
    return np.asarray(values).reshape(-1).astype(np.int64)


def accuracy(pred: Any, target: Any) -> float:
    """
    Fraction of predictions equal to the target.

    Args:
        pred: Predicted class ids
        target: True class ids (same length)

    Returns:
        Accuracy in [0, 1] (1.0 for empty input)
    """
    pred, target = _as_labels(pred), _as_labels(target)
    if pred.shape != target.shape:
        raise ValueError(f"pred has {pred.size} labels, target has {target.size}")
    if target.size == 0:
        return 1.0
    return float((pred == target).mean())


def confusion_matrix(pred: Any, target: Any, num_classes: int) -> np.ndarray:
    """[num_classes, num_classes] counts; rows are true classes, columns predictions."""
    pred, target = _as_labels(pred), _as_labels(target)
    matrix = np.zeros((num_classes, num_classes), dtype=np.int64)
    np.add.at(matrix, (target, pred), 1)
    return matrix


def per_class_accuracy(pred: Any, target: Any, num_classes: int) -> np.ndarray:
    """Recall of every class; NaN for classes absent from target."""
    matrix = confusion_matrix(pred, target, num_classes)
    support = matrix.sum(axis=1)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(support > 0, np.diag(matrix) / support, np.nan)


class ClassificationMetrics:
    """
    Accumulator for multi-class evaluation.

    Usage:
        metrics = ClassificationMetrics(num_classes=10)
        for X_batch, y_batch in batches:
            metrics.update(machine.predict(X_batch), y_batch)
        summary = metrics.compute()
    """

    def __init__(self, num_classes: int):
        self.num_classes = num_classes
        self.reset()

    def reset(self):
        """Reset all metrics."""
        self.matrix = np.zeros((self.num_classes, self.num_classes), dtype=np.int64)
        self.batch_accuracies: List[float] = []

    def update(self, pred: Any, target: Any):
        self.matrix += confusion_matrix(pred, target, self.num_classes)
        self.batch_accuracies.append(accuracy(pred, target))

    @property
    def total(self) -> int:
        return int(self.matrix.sum())

    @property
    def correct(self) -> int:
        return int(np.trace(self.matrix))

    def compute(self) -> Dict[str, Any]:
        total = self.total
        support = self.matrix.sum(axis=1)
        with np.errstate(divide='ignore', invalid='ignore'):
            recall = np.where(support > 0, np.diag(self.matrix) / support, np.nan)
        return {
            'accuracy': self.correct / total if total else 1.0,
            'total': total,
            'correct': self.correct,
            'per_class_accuracy': recall.tolist(),
            'num_batches': len(self.batch_accuracies),
        }

    def summary(self, class_names: Optional[List[str]] = None) -> str:
        results = self.compute()
        names = class_names or [str(i) for i in range(self.num_classes)]
        lines = [f"Accuracy: {results['accuracy']:.4f} ({results['correct']}/{results['total']})"]
        for name, value in zip(names, results['per_class_accuracy']):
            value_str = "n/a" if np.isnan(value) else f"{value:.4f}"
            lines.append(f"  class {name}: {value_str}")
        return "\n".join(lines)
