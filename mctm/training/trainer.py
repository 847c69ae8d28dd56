"""
mctm Training Loop.

Implements:
1. One-vs-other online updates (target class positive, one sampled other class negative)
2. Epoch-level shuffling of the example order
3. Per-epoch clause and literal dropout, scoped to the epoch
4. Optional per-epoch training accuracy
5. Console, JSONL and wandb logging through EpochLogger

Updates are strictly sequential: automaton state carries from one example
to the next, so the processing order is part of the learning dynamics.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

import numpy as np
import torch

from ..errors import InvalidConfig, OutOfRangeInput
from ..evaluation.metrics import accuracy
from ..inference.predictor import Predictor
from ..models.ensemble import Ensemble
from ..utils.random import bernoulli_mask, permutation, randint
from .epoch_logger import EpochLogger, EpochStats

try:
    import wandb
    WANDB_AVAILABLE = True
except ImportError:
    WANDB_AVAILABLE = False


@dataclass
class TrainingConfig:
    """Training configuration."""
    # Default epoch count for fit()
    epochs: int = 1

    # Evaluate training accuracy every N epochs (0 = never)
    eval_every: int = 0

    # Logging
    verbose: bool = False
    log_dir: Optional[str] = None
    log_to_file: bool = False
    use_wandb: bool = False
    wandb_project: str = 'mctm'
    wandb_run_name: Optional[str] = None


class Trainer:
    """
    Epoch-based and online training of an Ensemble.

    Usage:
        trainer = Trainer(ensemble, TrainingConfig(epochs=25))
        history = trainer.fit(X, y)

        # Online / incremental mode
        trainer.update(X[0], y[0])

    All randomness (shuffle, negative sampling, dropout, engine feedback)
    comes from one generator: the ensemble's own. A generator passed in
    must be that same object.
    """

    def __init__(
        self,
        ensemble: Ensemble,
        config: Optional[TrainingConfig] = None,
        generator: Optional[torch.Generator] = None,
    ):
        if ensemble.number_of_classes < 2:
            raise InvalidConfig(
                f"one-vs-other training needs at least 2 classes, got {ensemble.number_of_classes}"
            )
        self.ensemble = ensemble
        self.config = config or TrainingConfig()
        if generator is not None and generator is not ensemble.generator:
            raise InvalidConfig("trainer must share the ensemble's random stream")
        self.generator = ensemble.generator
        self.predictor = Predictor(ensemble)

        self.current_epoch = 0

        self.wandb_run = None
        if self.config.use_wandb and WANDB_AVAILABLE:
            self._init_wandb()

        self.epoch_logger = EpochLogger(
            log_dir=self.config.log_dir,
            enable_file_logging=self.config.log_to_file,
            enable_console=self.config.verbose,
            wandb_run=self.wandb_run,
        )

        if self.config.verbose:
            print(f"[Trainer] {ensemble}")
            print(
                f"[Trainer] Dropout: clause_p={ensemble.clause_drop_p}, "
                f"literal_p={ensemble.literal_drop_p}"
            )

    def _init_wandb(self):
        """Initialize Weights & Biases logging."""
        run_name = self.config.wandb_run_name or f"mctm-{time.strftime('%Y%m%d-%H%M%S')}"
        self.wandb_run = wandb.init(
            project=self.config.wandb_project,
            name=run_name,
            config={
                'engine': self.ensemble.engine_config.to_dict(),
                'number_of_classes': self.ensemble.number_of_classes,
                'clause_drop_p': self.ensemble.clause_drop_p,
                'literal_drop_p': self.ensemble.literal_drop_p,
                'training': self.config.__dict__,
            },
        )

    # === ONLINE UPDATE ===

    def _check_class(self, target_class: int):
        if not 0 <= target_class < self.ensemble.number_of_classes:
            raise OutOfRangeInput(
                f"class {target_class} outside [0, {self.ensemble.number_of_classes})"
            )

    def sample_negative_class(self, target_class: int) -> int:
        """Uniform draw over the classes other than target_class (rejection sampling)."""
        self._check_class(target_class)
        number_of_classes = self.ensemble.number_of_classes
        negative_class = randint(self.generator, number_of_classes)
        while negative_class == target_class:
            negative_class = randint(self.generator, number_of_classes)
        return negative_class

    def update(self, example: Any, target_class: int):
        """Train the target engine positive and one randomly chosen other engine negative."""
        target_class = int(target_class)
        self._check_class(target_class)
        self.ensemble.engine(target_class).update(example, 1)

        negative_class = self.sample_negative_class(target_class)
        self.ensemble.engine(negative_class).update(example, 0)

    # === DROPOUT ===

    def clear_dropout(self):
        for engine in self.ensemble.engines:
            engine.drop_clause.clear_all()
            engine.drop_literal.clear_all()

    def draw_dropout(self) -> Tuple[float, float]:
        """
        Clear, then redraw every engine's clause and literal masks.

        Returns:
            Mean fraction of dropped clauses and of dropped literals
        """
        clause_fraction, literal_fraction = 0.0, 0.0
        engines = self.ensemble.engines
        for engine in engines:
            engine.drop_clause.clear_all()
            engine.drop_clause.assign(
                bernoulli_mask(self.generator, engine.number_of_clauses, self.ensemble.clause_drop_p)
            )
            engine.drop_literal.clear_all()
            engine.drop_literal.assign(
                bernoulli_mask(self.generator, engine.number_of_features, self.ensemble.literal_drop_p)
            )
            clause_fraction += engine.drop_clause.count() / engine.number_of_clauses
            literal_fraction += engine.drop_literal.count() / engine.number_of_features
        return clause_fraction / len(engines), literal_fraction / len(engines)

    @contextmanager
    def dropout_scope(self) -> Iterator[Tuple[float, float]]:
        """Masks are active inside the block and all-zero again on every exit path."""
        fractions = self.draw_dropout()
        try:
            yield fractions
        finally:
            self.clear_dropout()

    # === BATCH TRAINING ===

    def _labels(self, y: Any, num_examples: int) -> torch.Tensor:
        labels = y if isinstance(y, torch.Tensor) else torch.from_numpy(np.asarray(y))
        labels = labels.reshape(-1)
        if labels.numel() < num_examples:
            raise OutOfRangeInput(f"{labels.numel()} labels for {num_examples} examples")
        labels = labels[:num_examples]
        # Class ids are never truncated from fractional labels
        if labels.is_floating_point() and not torch.equal(labels, labels.round()):
            raise OutOfRangeInput("labels must be whole class ids")
        labels = labels.to(torch.int64)
        if num_examples and (labels.min() < 0 or labels.max() >= self.ensemble.number_of_classes):
            raise OutOfRangeInput(
                f"labels must be in [0, {self.ensemble.number_of_classes}), "
                f"got range [{int(labels.min())}, {int(labels.max())}]"
            )
        return labels

    def fit(
        self,
        X: Any,
        y: Any,
        num_examples: Optional[int] = None,
        epochs: Optional[int] = None,
    ) -> List[EpochStats]:
        """
        Train for a number of epochs.

        Args:
            X: Packed examples, flat or [num_examples, stride]
            y: Class id per example
            num_examples: Number of examples to read (None = all of X; <= 0 trains nothing)
            epochs: Epoch count (None = config.epochs; <= 0 trains nothing)

        Returns:
            EpochStats for every epoch run by this call
        """
        epochs = self.config.epochs if epochs is None else epochs
        examples = self.ensemble.examples(X, num_examples)
        num_examples = examples.shape[0]
        labels = self._labels(y, num_examples)

        history: List[EpochStats] = []
        self.clear_dropout()
        try:
            if num_examples <= 0 or epochs <= 0:
                return history

            index = torch.arange(num_examples)
            for epoch in range(epochs):
                start_time = time.time()
                index = index[permutation(self.generator, num_examples)]

                with self.dropout_scope() as (clause_fraction, literal_fraction):
                    for i in index.tolist():
                        self.update(examples[i], int(labels[i]))

                stats = EpochStats(
                    epoch=self.current_epoch,
                    num_examples=num_examples,
                    duration_s=time.time() - start_time,
                    clause_drop_fraction=clause_fraction,
                    literal_drop_fraction=literal_fraction,
                )
                if self.config.eval_every and (epoch + 1) % self.config.eval_every == 0:
                    stats.train_accuracy = accuracy(self.predictor.predict(examples), labels)

                self.epoch_logger.log_epoch(stats, epochs)
                history.append(stats)
                self.current_epoch += 1
        finally:
            self.clear_dropout()

        self.epoch_logger.close()
        return history

    def close(self):
        """Finish the wandb run, if any."""
        if self.wandb_run is not None:
            self.wandb_run.finish()
            self.wandb_run = None
