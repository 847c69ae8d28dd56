"""
Ensemble Model and State Accessor.

The Ensemble owns one single-class engine per class (index = class id)
plus the layout shared by all of them. Predictor, Trainer and Transformer
reach the engines only through an Ensemble.

Lifecycle:
    ensemble = Ensemble.create(num_classes, engine_config, generator=g)
    ensemble.initialize()        # exactly once
    ...
    ensemble.destroy()           # engines first, then the sequence
"""

from typing import Any, Callable, List, Optional, Tuple

import numpy as np
import torch

from ..config import EngineConfig
from ..errors import AllocationError, InvalidConfig, LifecycleError, OutOfRangeInput, SizeMismatch
from ..utils.bitset import as_word_tensor
from ..utils.random import make_generator
from .engine import SingleClassEngine
from .tsetlin import TsetlinEngine


EngineFactory = Callable[..., SingleClassEngine]


def _copy_into(out: Any, values: torch.Tensor, name: str):
    """Bulk copy into a caller buffer (torch tensor or numpy array) of exactly matching size."""
    size = out.numel() if isinstance(out, torch.Tensor) else np.size(out)
    if size != values.numel():
        raise SizeMismatch(f"{name} buffer has {size} elements, expected {values.numel()}")
    if isinstance(out, torch.Tensor):
        out.copy_(values.reshape(out.shape).to(out.dtype))
    else:
        np.copyto(out, values.numpy().reshape(np.shape(out)), casting='unsafe')


class Ensemble:
    """
    Fixed-size array of single-class engines sharing one layout.

    Attributes:
        number_of_classes: Fixed at creation
        engine_config: Configuration copied into every engine
        clause_drop_p / literal_drop_p: Per-epoch dropout probabilities
        generator: Random stream shared by the engines and the trainer
    """

    def __init__(
        self,
        engines: List[SingleClassEngine],
        engine_config: EngineConfig,
        clause_drop_p: float = 0.0,
        literal_drop_p: float = 0.0,
        generator: Optional[torch.Generator] = None,
    ):
        self._engines = engines
        self.number_of_classes = len(engines)
        self.engine_config = engine_config
        self.clause_drop_p = clause_drop_p
        self.literal_drop_p = literal_drop_p
        self.generator = generator if generator is not None else make_generator()
        self._initialized = False
        self._destroyed = False

    @classmethod
    def create(
        cls,
        number_of_classes: int,
        engine_config: EngineConfig,
        clause_drop_p: float = 0.0,
        literal_drop_p: float = 0.0,
        generator: Optional[torch.Generator] = None,
        engine_factory: Optional[EngineFactory] = None,
    ) -> "Ensemble":
        """
        Allocate number_of_classes engines, each built from the same config.

        Args:
            number_of_classes: Number of class engines (>= 1)
            engine_config: Layout and learning hyperparameters
            clause_drop_p: Probability of dropping each clause per epoch
            literal_drop_p: Probability of dropping each literal per epoch
            generator: Shared random stream (fresh unseeded stream if None)
            engine_factory: Callable (config, generator=...) -> engine

        Raises:
            InvalidConfig: number_of_classes < 1, dropout outside [0, 1], or an engine
                built with a config other than engine_config
            AllocationError: an engine or the container could not be allocated
        """
        if number_of_classes < 1:
            raise InvalidConfig(f"number_of_classes must be >= 1, got {number_of_classes}")
        for name, p in (('clause_drop_p', clause_drop_p), ('literal_drop_p', literal_drop_p)):
            if not 0.0 <= p <= 1.0:
                raise InvalidConfig(f"{name} must be in [0, 1], got {p}")

        generator = generator if generator is not None else make_generator()
        factory = engine_factory or TsetlinEngine

        engines: List[SingleClassEngine] = []
        try:
            for _ in range(number_of_classes):
                engines.append(factory(engine_config, generator=generator))
        except (MemoryError, RuntimeError) as e:
            for engine in engines:
                engine.destroy()
            raise AllocationError(
                f"failed to allocate engine {len(engines)} of {number_of_classes}"
            ) from e

        # Every engine must share the example layout the ensemble strides over
        for class_id, engine in enumerate(engines):
            if engine.config != engine_config:
                for built in engines:
                    built.destroy()
                raise InvalidConfig(
                    f"engine {class_id} was built with {engine.config}, expected {engine_config}"
                )

        return cls(engines, engine_config, clause_drop_p, literal_drop_p, generator)

    # === LIFECYCLE ===

    def _check_alive(self):
        if self._destroyed:
            raise LifecycleError("ensemble has been destroyed")

    def initialize(self):
        """Initialize every engine's automaton state. Call exactly once."""
        self._check_alive()
        if self._initialized:
            raise LifecycleError("ensemble already initialized")
        for engine in self._engines:
            engine.initialize()
        self._initialized = True

    def destroy(self):
        """Destroy every engine, then release the sequence. Repeated calls do nothing."""
        if self._destroyed:
            return
        for engine in self._engines:
            engine.destroy()
        self._engines = []
        self._destroyed = True

    def __enter__(self) -> "Ensemble":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()
        return False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # === ENGINE ACCESS ===

    @property
    def engines(self) -> Tuple[SingleClassEngine, ...]:
        """Read-only view of the engine sequence."""
        self._check_alive()
        return tuple(self._engines)

    def engine(self, class_id: int) -> SingleClassEngine:
        self._check_alive()
        if not 0 <= class_id < self.number_of_classes:
            raise OutOfRangeInput(f"class {class_id} outside [0, {self.number_of_classes})")
        return self._engines[class_id]

    def __len__(self) -> int:
        return self.number_of_classes

    @property
    def number_of_patches(self) -> int:
        return self.engine_config.number_of_patches

    @property
    def number_of_ta_chunks(self) -> int:
        return self.engine_config.number_of_ta_chunks

    @property
    def number_of_state_bits(self) -> int:
        return self.engine_config.number_of_state_bits

    @property
    def number_of_clauses(self) -> int:
        return self.engine_config.number_of_clauses

    @property
    def example_stride(self) -> int:
        """Words per packed example."""
        return self.number_of_patches * self.number_of_ta_chunks

    def examples(self, X: Any, num_examples: Optional[int] = None) -> torch.Tensor:
        """
        View packed input as [num_examples, stride] words.

        num_examples=None takes every complete example in X, which must then
        hold a whole number of examples.

        Raises:
            OutOfRangeInput: X shorter than stride * num_examples, or 2-D X
                whose rows are not stride words long
        """
        words = as_word_tensor(X)
        stride = self.example_stride
        if words.dim() > 1 and (words.dim() != 2 or words.shape[1] != stride):
            raise OutOfRangeInput(
                f"expected flat input or [num_examples, {stride}] words, got shape {tuple(words.shape)}"
            )
        words = words.reshape(-1)
        if num_examples is None:
            if words.numel() % stride:
                raise OutOfRangeInput(
                    f"input of {words.numel()} words is not a whole number of {stride}-word examples"
                )
            num_examples = words.numel() // stride
        num_examples = max(int(num_examples), 0)
        if words.numel() < stride * num_examples:
            raise OutOfRangeInput(
                f"input has {words.numel()} words, {num_examples} examples need {stride * num_examples}"
            )
        return words[:stride * num_examples].view(num_examples, stride)

    # === STATE ACCESSOR ===

    def get_state(
        self,
        class_id: int,
        ta_state: Optional[Any] = None,
        clause_weights: Optional[Any] = None,
    ) -> Tuple[Any, Any]:
        """
        Copy one class engine's automaton state and clause weights out.

        Args:
            class_id: Engine to read
            ta_state: Optional buffer of exactly clauses * ta_chunks * state_bits elements
            clause_weights: Optional buffer of exactly clauses elements

        Returns:
            (ta_state, clause_weights): the given buffers, or fresh int64 tensors

        Raises:
            SizeMismatch: a given buffer has the wrong number of elements
        """
        engine = self.engine(class_id)
        state = engine.get_ta_state()
        weights = engine.get_weights()
        if ta_state is None:
            ta_state = state
        else:
            _copy_into(ta_state, state, 'ta_state')
        if clause_weights is None:
            clause_weights = weights
        else:
            _copy_into(clause_weights, weights, 'clause_weights')
        return ta_state, clause_weights

    def set_state(self, class_id: int, ta_state: Any, clause_weights: Any):
        """Copy automaton state and clause weights into one class engine (no content checks)."""
        engine = self.engine(class_id)
        expected_state = self.engine_config.ta_state_size
        for name, buffer, expected in (
            ('ta_state', ta_state, expected_state),
            ('clause_weights', clause_weights, self.number_of_clauses),
        ):
            size = buffer.numel() if isinstance(buffer, torch.Tensor) else np.size(buffer)
            if size != expected:
                raise SizeMismatch(f"{name} buffer has {size} elements, expected {expected}")
        engine.set_ta_state(ta_state)
        engine.set_weights(clause_weights)

    def ta_state(self, class_id: int, clause: int, ta: int) -> int:
        return self.engine(class_id).ta_state(clause, ta)

    def ta_action(self, class_id: int, clause: int, ta: int) -> int:
        return self.engine(class_id).ta_action(clause, ta)

    def clause_configuration(self, class_id: int, clause: int) -> torch.Tensor:
        """Include (1) / exclude (0) action of every literal in one clause."""
        engine = self.engine(class_id)
        return torch.tensor(
            [engine.ta_action(clause, k) for k in range(engine.number_of_features)],
            dtype=torch.int64,
        )

    def __repr__(self) -> str:
        return (
            f"Ensemble(classes={self.number_of_classes}, clauses={self.number_of_clauses}, "
            f"patches={self.number_of_patches}, ta_chunks={self.number_of_ta_chunks})"
        )
