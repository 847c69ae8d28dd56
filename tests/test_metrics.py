"""
Tests for classification metrics.
"""

import numpy as np
import pytest
import torch

from mctm.evaluation.metrics import (
    ClassificationMetrics,
    accuracy,
    confusion_matrix,
    per_class_accuracy,
)


def test_accuracy_accepts_tensors_and_arrays():
    assert accuracy(torch.tensor([0, 1, 1, 2]), np.array([0, 1, 2, 2])) == pytest.approx(0.75)
    assert accuracy([], []) == 1.0


def test_accuracy_length_mismatch():
    with pytest.raises(ValueError):
        accuracy([0, 1], [0])


def test_confusion_matrix():
    matrix = confusion_matrix([0, 1, 1, 2], [0, 1, 2, 2], num_classes=3)
    assert matrix.tolist() == [[1, 0, 0], [0, 1, 0], [0, 1, 1]]


def test_per_class_accuracy_absent_class():
    recall = per_class_accuracy([0, 0, 1], [0, 1, 1], num_classes=3)
    assert recall[0] == 1.0
    assert recall[1] == 0.5
    assert np.isnan(recall[2])


class TestClassificationMetrics:

    def test_accumulates_batches(self):
        metrics = ClassificationMetrics(num_classes=2)
        metrics.update([0, 1], [0, 1])
        metrics.update([1, 1], [0, 1])
        results = metrics.compute()
        assert results["total"] == 4
        assert results["correct"] == 3
        assert results["accuracy"] == pytest.approx(0.75)
        assert results["per_class_accuracy"] == [0.5, 1.0]
        assert results["num_batches"] == 2

    def test_reset(self):
        metrics = ClassificationMetrics(num_classes=2)
        metrics.update([1], [0])
        metrics.reset()
        assert metrics.total == 0
        assert metrics.compute()["accuracy"] == 1.0

    def test_summary(self):
        metrics = ClassificationMetrics(num_classes=3)
        metrics.update([0, 1], [0, 1])
        text = metrics.summary(class_names=["a", "b", "c"])
        assert text.splitlines()[0] == "Accuracy: 1.0000 (2/2)"
        assert "class c: n/a" in text
