"""
Pytest configuration and shared fixtures.
"""

import pytest
import torch
import numpy as np

from mctm.config import EngineConfig
from mctm.models.engine import SingleClassEngine
from mctm.utils.bitset import pack_examples


def with_negations(x: np.ndarray) -> np.ndarray:
    """Append the negated features: [x, 1 - x]."""
    return np.concatenate([x, 1 - x], axis=-1)


def make_dataset(num_per_class: int, num_features: int, seed: int, separable: bool = True):
    """
    Two-class bit-pattern dataset.

    separable=True: feature 0 equals the label.
    separable=False: labels drawn independently of the features.

    Returns:
        X (packed examples), y (labels), number of literals
    """
    rng = np.random.default_rng(seed)
    y = np.repeat([0, 1], num_per_class)
    rng.shuffle(y)
    x = rng.integers(0, 2, size=(len(y), num_features))
    if separable:
        x[:, 0] = y
    else:
        y = rng.permutation(y)
    literals = with_negations(x)
    return pack_examples(literals), y, literals.shape[1]


class StubEngine(SingleClassEngine):
    """
    Engine double with a fixed score that records every call.

    Each recorded update is (example_words, label, dropped_clauses, dropped_literals).
    """

    def __init__(self, config: EngineConfig, generator=None, score_value: int = 0, fail_on_update: int = -1):
        super().__init__(config)
        self.score_value = score_value
        self.fail_on_update = fail_on_update
        self.updates = []
        self.scored = []
        self.initialize_calls = 0
        self.destroyed = False
        self._ta_state = torch.zeros(config.ta_state_size, dtype=torch.int64)
        self._weights = torch.ones(config.number_of_clauses, dtype=torch.int64)

    def initialize(self):
        self.initialize_calls += 1

    def destroy(self):
        self.destroyed = True

    def score(self, example) -> int:
        self.scored.append(example.clone())
        return self.score_value

    def update(self, example, label):
        if len(self.updates) == self.fail_on_update:
            raise RuntimeError("update failed")
        self.updates.append(
            (example.clone(), label, self.drop_clause.count(), self.drop_literal.count())
        )

    def get_ta_state(self):
        return self._ta_state.clone()

    def set_ta_state(self, ta_state):
        self._ta_state = torch.as_tensor(ta_state).reshape(-1).clone()

    def get_weights(self):
        return self._weights.clone()

    def set_weights(self, clause_weights):
        self._weights = torch.as_tensor(clause_weights).reshape(-1).clone()

    def ta_state(self, clause, ta):
        return 0

    def ta_action(self, clause, ta):
        return 0


def stub_factory(scores=None, **kwargs):
    """Engine factory handing out StubEngines with the given scores, in class order."""
    created = []

    def factory(config, generator=None):
        score_value = scores[len(created)] if scores is not None else 0
        engine = StubEngine(config, generator, score_value=score_value, **kwargs)
        created.append(engine)
        return engine

    factory.created = created
    return factory


@pytest.fixture
def small_engine_config():
    """Small engine config for fast testing: 10 clauses over 8 literals."""
    return EngineConfig(
        number_of_clauses=10,
        number_of_features=8,
        T=10,
        s=3.0,
    )


@pytest.fixture
def generator():
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def separable_dataset():
    """200 examples per class, label = feature 0."""
    return make_dataset(num_per_class=200, num_features=12, seed=0)


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
