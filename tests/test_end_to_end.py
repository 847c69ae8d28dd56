"""
End-to-end tests of the multi-class machine on small bit-pattern datasets.
"""

import numpy as np
import pytest
import torch

from mctm import MCTMConfig, MultiClassTsetlinMachine
from mctm.errors import InvalidConfig
from mctm.evaluation.metrics import accuracy

from conftest import make_dataset, with_negations
from mctm.utils.bitset import pack_examples


@pytest.mark.slow
def test_learns_separable_patterns(separable_dataset):
    X, y, n_literals = separable_dataset
    with MultiClassTsetlinMachine(
        number_of_classes=2,
        number_of_clauses=10,
        number_of_features=n_literals,
        T=10,
        s=3.0,
        seed=42,
    ) as machine:
        machine.initialize()
        history = machine.fit(X, y, epochs=25)
        assert len(history) == 25
        assert accuracy(machine.predict(X), y) >= 0.95


@pytest.mark.slow
def test_random_labels_are_not_memorized():
    X, y, n_literals = make_dataset(num_per_class=200, num_features=4, seed=8, separable=False)
    machine = MultiClassTsetlinMachine(
        number_of_classes=2,
        number_of_clauses=10,
        number_of_features=n_literals,
        T=10,
        s=3.0,
        seed=42,
    )
    machine.initialize()
    machine.fit(X, y, epochs=10)
    assert accuracy(machine.predict(X), y) <= 0.62
    machine.destroy()


def test_three_classes_with_dropout():
    rng = np.random.default_rng(6)
    y = rng.integers(0, 3, size=300)
    x = rng.integers(0, 2, size=(300, 8))
    # Class encoded one-hot in the first three features
    x[:, :3] = np.eye(3, dtype=x.dtype)[y]
    X = pack_examples(with_negations(x))

    config = MCTMConfig(
        number_of_classes=3,
        number_of_clauses=10,
        number_of_features=16,
        T=10,
        s=3.0,
        clause_drop_p=0.1,
        literal_drop_p=0.05,
        seed=3,
    )
    machine = MultiClassTsetlinMachine.from_config(config)
    machine.initialize()
    machine.fit(X, y, epochs=20)
    assert accuracy(machine.predict(X), y) >= 0.85
    for engine in machine.ensemble.engines:
        assert not engine.drop_clause.any()
        assert not engine.drop_literal.any()

    features = machine.transform(X)
    assert features.shape == (300, 30)
    assert torch.equal(machine.transform(X, invert=True), 1 - features)


def test_online_updates(separable_dataset):
    X, y, n_literals = separable_dataset
    machine = MultiClassTsetlinMachine(
        number_of_classes=2,
        number_of_clauses=10,
        number_of_features=n_literals,
        T=10,
        s=3.0,
        seed=1,
    )
    machine.initialize()
    for _ in range(10):
        for example, label in zip(X, y):
            machine.update(example, int(label))
    assert accuracy(machine.predict(X), y) >= 0.9


def test_single_class_predicts_but_cannot_train():
    machine = MultiClassTsetlinMachine(number_of_classes=1, number_of_clauses=4, number_of_features=8)
    machine.initialize()
    assert machine.predict(torch.zeros(5, dtype=torch.int64)).tolist() == [0] * 5
    with pytest.raises(InvalidConfig):
        machine.fit(torch.zeros(5, dtype=torch.int64), torch.zeros(5, dtype=torch.int64))
