"""
Clause-output feature transform.

Re-scores every class engine on each example and emits the binary output
of every clause, producing input features for a stacked second-stage
learner.

Layout of one output row (num_classes * number_of_clauses bits):
    [class 0: clause 0 .. clause C-1][class 1: clause 0 .. clause C-1]...
"""

from typing import Any, Optional

import torch

from ..models.ensemble import Ensemble


class ClauseTransformer:
    """
    Usage:
        transformer = ClauseTransformer(ensemble)
        features = transformer.transform(X)                 # 1 = clause matched
        inverted = transformer.transform(X, invert=True)    # 1 = clause silent
    """

    def __init__(self, ensemble: Ensemble):
        self.ensemble = ensemble

    @property
    def number_of_outputs(self) -> int:
        return self.ensemble.number_of_classes * self.ensemble.number_of_clauses

    def transform_example(self, example: torch.Tensor, invert: bool = False) -> torch.Tensor:
        rows = []
        for engine in self.ensemble.engines:
            engine.score(example)
            rows.append(engine.clause_output.to_bool())
        return torch.cat(rows) != bool(invert)

    def transform(
        self,
        X: Any,
        invert: bool = False,
        num_examples: Optional[int] = None,
    ) -> torch.Tensor:
        """
        Args:
            X: Packed examples, flat or [num_examples, stride]
            invert: Emit 1 for silent clauses instead of matching ones
            num_examples: Number of examples to read (None = all of X)

        Returns:
            uint8 tensor [num_examples, num_classes * number_of_clauses]
        """
        examples = self.ensemble.examples(X, num_examples)
        X_transformed = torch.zeros(examples.shape[0], self.number_of_outputs, dtype=torch.uint8)
        for l in range(examples.shape[0]):
            X_transformed[l] = self.transform_example(examples[l], invert).to(torch.uint8)
        return X_transformed
