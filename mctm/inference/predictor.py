"""
Argmax prediction over the class engines.

Every example is scored by every engine in class order. The running
maximum is only replaced by a strictly greater score, so ties go to the
lowest class index.
"""

from typing import Any, Optional

import torch

from ..models.ensemble import Ensemble


class Predictor:
    """
    Multi-class prediction through an Ensemble.

    Usage:
        predictor = Predictor(ensemble)
        y_hat = predictor.predict(X)                 # [num_examples]
        sums = predictor.class_scores(X)             # [num_examples, num_classes]

    Side effect: after a call, each engine's clause_output reflects the last
    example it scored.
    """

    def __init__(self, ensemble: Ensemble):
        self.ensemble = ensemble

    def predict_example(self, example: torch.Tensor) -> int:
        engines = self.ensemble.engines
        max_class = 0
        max_class_sum = engines[0].score(example)
        for class_id in range(1, len(engines)):
            class_sum = engines[class_id].score(example)
            if class_sum > max_class_sum:
                max_class_sum = class_sum
                max_class = class_id
        return max_class

    def predict(self, X: Any, num_examples: Optional[int] = None) -> torch.Tensor:
        """
        Predict one class id per example.

        Args:
            X: Packed examples, flat or [num_examples, stride]
            num_examples: Number of examples to read (None = all of X)

        Returns:
            int64 tensor of class ids, same order as the input
        """
        examples = self.ensemble.examples(X, num_examples)
        y = torch.empty(examples.shape[0], dtype=torch.int64)
        for l in range(examples.shape[0]):
            y[l] = self.predict_example(examples[l])
        return y

    def class_scores(self, X: Any, num_examples: Optional[int] = None) -> torch.Tensor:
        """Clamped vote sum of every class for every example, [num_examples, num_classes]."""
        examples = self.ensemble.examples(X, num_examples)
        engines = self.ensemble.engines
        scores = torch.empty(examples.shape[0], len(engines), dtype=torch.int64)
        for l in range(examples.shape[0]):
            for class_id, engine in enumerate(engines):
                scores[l, class_id] = engine.score(examples[l])
        return scores
