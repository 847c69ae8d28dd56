"""
Multi-Class Tsetlin Machine.

Facade over Ensemble, Predictor, Trainer and ClauseTransformer exposing the
full call contract of the machine:

    create / initialize / destroy
    predict / fit / update / transform
    ta_state / ta_action / clause_configuration
    get_state / set_state

Usage:
    machine = MultiClassTsetlinMachine(
        number_of_classes=10, number_of_clauses=2000, number_of_features=1568,
        T=50, s=10.0, seed=42,
    )
    machine.initialize()
    machine.fit(X_train, y_train, epochs=25)
    y_hat = machine.predict(X_test)
    machine.destroy()
"""

from typing import Any, List, Optional, Tuple

import torch

from ..config import MCTMConfig
from ..inference.predictor import Predictor
from ..inference.transformer import ClauseTransformer
from ..training.epoch_logger import EpochStats
from ..training.trainer import Trainer, TrainingConfig
from ..utils.random import make_generator
from .ensemble import Ensemble, EngineFactory


class MultiClassTsetlinMachine:
    """
    One single-class engine per class, trained one-vs-other.

    Args:
        number_of_classes: Number of classes (>= 2 to train)
        number_of_clauses: Clauses per class
        number_of_features: Literals per patch, negations included
        number_of_patches: Patches per example (1 = plain machine)
        number_of_ta_chunks: 32-bit words per patch (None = derived from features)
        number_of_state_bits: Bits per automaton state
        T: Vote clamp / feedback threshold
        s: Specificity
        s_range: Specificity at the last literal (None = s)
        boost_true_positive_feedback: Always reinforce true-positive literals
        weighted_clauses: Learn integer clause weights
        clause_drop_p: Per-epoch clause dropout probability
        literal_drop_p: Per-epoch literal dropout probability
        seed: Seed of the shared random stream (ignored when generator is given)
        generator: Explicit random stream
        engine_factory: Engine constructor, (config, generator=...) -> engine
        training_config: Trainer settings (epochs, logging)
    """

    def __init__(
        self,
        number_of_classes: int,
        number_of_clauses: int,
        number_of_features: int,
        number_of_patches: int = 1,
        number_of_ta_chunks: Optional[int] = None,
        number_of_state_bits: int = 8,
        T: int = 15,
        s: float = 3.9,
        s_range: Optional[float] = None,
        boost_true_positive_feedback: bool = True,
        weighted_clauses: bool = False,
        clause_drop_p: float = 0.0,
        literal_drop_p: float = 0.0,
        seed: Optional[int] = None,
        generator: Optional[torch.Generator] = None,
        engine_factory: Optional[EngineFactory] = None,
        training_config: Optional[TrainingConfig] = None,
    ):
        self.config = MCTMConfig(
            number_of_classes=number_of_classes,
            number_of_clauses=number_of_clauses,
            number_of_features=number_of_features,
            number_of_patches=number_of_patches,
            number_of_ta_chunks=number_of_ta_chunks,
            number_of_state_bits=number_of_state_bits,
            T=T,
            s=s,
            s_range=s_range,
            boost_true_positive_feedback=boost_true_positive_feedback,
            weighted_clauses=weighted_clauses,
            clause_drop_p=clause_drop_p,
            literal_drop_p=literal_drop_p,
            seed=seed,
        )
        self.generator = generator if generator is not None else make_generator(seed)
        self.ensemble = Ensemble.create(
            number_of_classes,
            self.config.engine_config(),
            clause_drop_p=clause_drop_p,
            literal_drop_p=literal_drop_p,
            generator=self.generator,
            engine_factory=engine_factory,
        )
        self.training_config = training_config or TrainingConfig()
        self.predictor = Predictor(self.ensemble)
        self.transformer = ClauseTransformer(self.ensemble)
        # Built on first training call: a single-class machine can still predict
        self._trainer: Optional[Trainer] = None

    @classmethod
    def from_config(
        cls,
        config: MCTMConfig,
        engine_factory: Optional[EngineFactory] = None,
        training_config: Optional[TrainingConfig] = None,
    ) -> "MultiClassTsetlinMachine":
        kwargs = config.to_dict()
        return cls(**kwargs, engine_factory=engine_factory, training_config=training_config)

    @property
    def number_of_classes(self) -> int:
        return self.ensemble.number_of_classes

    @property
    def trainer(self) -> Trainer:
        if self._trainer is None:
            self._trainer = Trainer(self.ensemble, self.training_config, generator=self.generator)
        return self._trainer

    # === LIFECYCLE ===

    def initialize(self):
        self.ensemble.initialize()

    def destroy(self):
        if self._trainer is not None:
            self._trainer.close()
        self.ensemble.destroy()

    def __enter__(self) -> "MultiClassTsetlinMachine":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()
        return False

    # === INFERENCE ===

    def predict(self, X: Any, num_examples: Optional[int] = None) -> torch.Tensor:
        return self.predictor.predict(X, num_examples)

    def class_scores(self, X: Any, num_examples: Optional[int] = None) -> torch.Tensor:
        return self.predictor.class_scores(X, num_examples)

    def transform(self, X: Any, invert: bool = False, num_examples: Optional[int] = None) -> torch.Tensor:
        return self.transformer.transform(X, invert=invert, num_examples=num_examples)

    # === TRAINING ===

    def fit(
        self,
        X: Any,
        y: Any,
        num_examples: Optional[int] = None,
        epochs: Optional[int] = None,
    ) -> List[EpochStats]:
        return self.trainer.fit(X, y, num_examples=num_examples, epochs=epochs)

    def update(self, example: Any, target_class: int):
        self.trainer.update(example, target_class)

    # === STATE ===

    def ta_state(self, class_id: int, clause: int, ta: int) -> int:
        return self.ensemble.ta_state(class_id, clause, ta)

    def ta_action(self, class_id: int, clause: int, ta: int) -> int:
        return self.ensemble.ta_action(class_id, clause, ta)

    def clause_configuration(self, class_id: int, clause: int) -> torch.Tensor:
        return self.ensemble.clause_configuration(class_id, clause)

    def get_state(
        self,
        class_id: int,
        ta_state: Optional[Any] = None,
        clause_weights: Optional[Any] = None,
    ) -> Tuple[Any, Any]:
        return self.ensemble.get_state(class_id, ta_state, clause_weights)

    def set_state(self, class_id: int, ta_state: Any, clause_weights: Any):
        self.ensemble.set_state(class_id, ta_state, clause_weights)

    def __repr__(self) -> str:
        return f"MultiClassTsetlinMachine({self.ensemble})"
