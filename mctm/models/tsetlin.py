"""
Reference Tsetlin machine engine.

A single-class (convolutional) Tsetlin machine over packed examples:
- Each clause owns one automaton per literal; an automaton includes its
  literal when its state reaches the upper half of the state range.
- A clause matches a patch when every included literal is 1 in that
  patch; the clause output is 1 when any patch matches.
- Even clauses vote for the class, odd clauses vote against it. The vote
  sum is clamped to [-T, T].
- With a single patch this is the plain Tsetlin machine.

Reference: Granmo et al., "The Convolutional Tsetlin Machine",
https://arxiv.org/abs/1905.09688
"""

from typing import Optional

import torch

from ..config import EngineConfig
from ..errors import LifecycleError, OutOfRangeInput, SizeMismatch
from ..utils.bitset import WORD_BITS, as_word_tensor, unpack_bits
from ..utils.random import make_generator
from .engine import SingleClassEngine


class TsetlinEngine(SingleClassEngine):
    """
    Single-class Tsetlin machine with clause and literal dropout support.

    Usage:
        engine = TsetlinEngine(EngineConfig(number_of_clauses=10, number_of_features=32))
        engine.initialize()
        engine.update(example, 1)
        votes = engine.score(example)
    """

    def __init__(self, config: EngineConfig, generator: Optional[torch.Generator] = None):
        super().__init__(config)
        self.generator = generator if generator is not None else make_generator()

        self.max_state = (1 << config.number_of_state_bits) - 1
        self.include_threshold = 1 << (config.number_of_state_bits - 1)

        C, F = config.number_of_clauses, config.number_of_features
        self._ta_state = torch.zeros(C, F, dtype=torch.int64)
        self._clause_weights = torch.ones(C, dtype=torch.int64)

        # Even clauses vote for the class, odd clauses against it
        self._polarity = torch.ones(C, dtype=torch.int64)
        self._polarity[1::2] = -1

        # Per-literal specificity, spread linearly from s to s_range
        self._specificity = torch.linspace(config.s, config.s_range, F, dtype=torch.float64)

        self._initialized = False
        self._destroyed = False

    # === LIFECYCLE ===

    def initialize(self):
        if self._destroyed:
            raise LifecycleError("engine has been destroyed")
        # One step below inclusion: every literal starts excluded
        self._ta_state.fill_(self.include_threshold - 1)
        self._clause_weights.fill_(1)
        self.drop_clause.clear_all()
        self.drop_literal.clear_all()
        self.clause_output.clear_all()
        self._initialized = True

    def destroy(self):
        self._ta_state = None
        self._clause_weights = None
        self._destroyed = True
        self._initialized = False

    def _check_ready(self):
        if self._destroyed:
            raise LifecycleError("engine has been destroyed")
        if not self._initialized:
            raise LifecycleError("engine used before initialize()")

    # === CLAUSE EVALUATION ===

    def _literals(self, example) -> torch.Tensor:
        """Unpack one example into a [patches, features] boolean tensor."""
        words = as_word_tensor(example).reshape(-1)
        stride = self.config.example_stride
        if words.numel() != stride:
            raise OutOfRangeInput(f"example has {words.numel()} words, expected {stride}")
        words = words.view(self.number_of_patches, self.number_of_ta_chunks)
        return unpack_bits(words, self.number_of_features)

    @staticmethod
    def _clause_matches(literals: torch.Tensor, include: torch.Tensor) -> torch.Tensor:
        """[clauses, patches] mask of patches where no included literal is 0."""
        violations = include.to(torch.float32) @ (~literals).to(torch.float32).T
        return violations == 0

    def _sum_votes(self, output: torch.Tensor) -> int:
        votes = int((self._polarity * self._clause_weights * output.to(torch.int64)).sum().item())
        T = self.config.T
        return max(-T, min(T, votes))

    def score(self, example) -> int:
        self._check_ready()
        literals = self._literals(example)
        include = self._ta_state >= self.include_threshold
        matches = self._clause_matches(literals, include)
        # Empty clauses are silent outside training
        output = matches.any(dim=1) & include.any(dim=1)
        self.clause_output.assign(output)
        return self._sum_votes(output)

    # === LEARNING ===

    def _pick_patches(self, matches: torch.Tensor) -> torch.Tensor:
        """One uniformly chosen matching patch per clause (0 where none match)."""
        if self.number_of_patches == 1:
            return torch.zeros(matches.shape[0], dtype=torch.int64)
        noise = torch.rand(matches.shape, generator=self.generator, dtype=torch.float64)
        return noise.masked_fill(~matches, -1.0).argmax(dim=1)

    def update(self, example, label: int):
        self._check_ready()
        literals = self._literals(example)
        active = ~self.drop_clause.to_bool()
        visible = ~self.drop_literal.to_bool()

        include = (self._ta_state >= self.include_threshold) & visible
        matches = self._clause_matches(literals, include) & active.unsqueeze(1)
        output = matches.any(dim=1)
        class_sum = self._sum_votes(output)

        T = self.config.T
        if label:
            feedback_p = (T - class_sum) / (2.0 * T)
        else:
            feedback_p = (T + class_sum) / (2.0 * T)

        C = self.number_of_clauses
        selected = (torch.rand(C, generator=self.generator, dtype=torch.float64) <= feedback_p) & active
        positive = self._polarity > 0
        type_i = selected & (positive == bool(label))
        type_ii = selected & (positive != bool(label))

        clause_literals = literals[self._pick_patches(matches)]

        self._type_i_feedback(type_i, output, clause_literals, visible)
        self._type_ii_feedback(type_ii, output, clause_literals, visible)

    def _type_i_feedback(self, selected, output, clause_literals, visible):
        """Reinforce patterns: memorize literals of matching clauses, forget otherwise."""
        fire = (selected & output).unsqueeze(1)
        silent = (selected & ~output).unsqueeze(1)

        draw = torch.rand(clause_literals.shape, generator=self.generator, dtype=torch.float64)
        forget = draw <= 1.0 / self._specificity
        if self.config.boost_true_positive_feedback:
            memorize = torch.ones_like(forget)
        else:
            memorize = draw <= (self._specificity - 1.0) / self._specificity

        increment = fire & clause_literals & memorize
        decrement = (fire & ~clause_literals & forget) | (silent & forget)
        delta = (increment & visible).to(torch.int64) - (decrement & visible).to(torch.int64)
        self._ta_state = (self._ta_state + delta).clamp_(0, self.max_state)

        if self.config.weighted_clauses:
            self._clause_weights[selected & output] += 1

    def _type_ii_feedback(self, selected, output, clause_literals, visible):
        """Combat false positives: include zero-valued literals of matching clauses."""
        fire = selected & output
        excluded = self._ta_state < self.include_threshold
        increment = fire.unsqueeze(1) & ~clause_literals & excluded & visible
        self._ta_state = (self._ta_state + increment.to(torch.int64)).clamp_(0, self.max_state)

        if self.config.weighted_clauses:
            self._clause_weights[fire] = (self._clause_weights[fire] - 1).clamp_(min=1)

    # === STATE ===

    def _check_size(self, buffer: torch.Tensor, expected: int, name: str) -> torch.Tensor:
        buffer = as_word_tensor(buffer).reshape(-1)
        if buffer.numel() != expected:
            raise SizeMismatch(f"{name} buffer has {buffer.numel()} elements, expected {expected}")
        return buffer

    def get_ta_state(self) -> torch.Tensor:
        self._check_ready()
        C, F = self.number_of_clauses, self.number_of_features
        chunks, bits = self.number_of_ta_chunks, self.number_of_state_bits

        padded = torch.zeros(C, chunks * WORD_BITS, dtype=torch.int64)
        padded[:, :F] = self._ta_state
        padded = padded.view(C, chunks, 1, WORD_BITS)

        state_bits = torch.arange(bits, dtype=torch.int64).view(bits, 1)
        positions = torch.arange(WORD_BITS, dtype=torch.int64)
        sliced = ((padded >> state_bits) & 1) << positions    # [C, chunks, bits, 32]
        return sliced.sum(dim=-1).reshape(-1)

    def set_ta_state(self, ta_state):
        if self._destroyed:
            raise LifecycleError("engine has been destroyed")
        C, F = self.number_of_clauses, self.number_of_features
        chunks, bits = self.number_of_ta_chunks, self.number_of_state_bits

        words = self._check_size(ta_state, self.config.ta_state_size, "ta_state")
        words = words.view(C, chunks, bits, 1)

        positions = torch.arange(WORD_BITS, dtype=torch.int64)
        state_bits = torch.arange(bits, dtype=torch.int64).view(bits, 1)
        planes = ((words >> positions) & 1) << state_bits      # [C, chunks, bits, 32]
        self._ta_state = planes.sum(dim=2).reshape(C, -1)[:, :F].contiguous()
        self._initialized = True

    def get_weights(self) -> torch.Tensor:
        self._check_ready()
        return self._clause_weights.clone()

    def set_weights(self, clause_weights):
        if self._destroyed:
            raise LifecycleError("engine has been destroyed")
        weights = self._check_size(clause_weights, self.number_of_clauses, "clause_weights")
        self._clause_weights = weights.clone()

    def _check_automaton(self, clause: int, ta: int):
        if not 0 <= clause < self.number_of_clauses:
            raise OutOfRangeInput(f"clause {clause} outside [0, {self.number_of_clauses})")
        if not 0 <= ta < self.number_of_features:
            raise OutOfRangeInput(f"automaton {ta} outside [0, {self.number_of_features})")

    def ta_state(self, clause: int, ta: int) -> int:
        self._check_ready()
        self._check_automaton(clause, ta)
        return int(self._ta_state[clause, ta].item())

    def ta_action(self, clause: int, ta: int) -> int:
        return int(self.ta_state(clause, ta) >= self.include_threshold)
