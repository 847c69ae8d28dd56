"""
Tests for the Ensemble Model lifecycle.
"""

import pytest
import torch

from mctm.config import EngineConfig
from mctm.errors import AllocationError, InvalidConfig, LifecycleError, OutOfRangeInput
from mctm.models.ensemble import Ensemble
from mctm.models.tsetlin import TsetlinEngine

from conftest import StubEngine, stub_factory


class TestCreate:

    def test_one_engine_per_class(self, small_engine_config, generator):
        ensemble = Ensemble.create(3, small_engine_config, generator=generator)
        engines = ensemble.engines
        assert len(ensemble) == 3
        assert all(isinstance(engine, TsetlinEngine) for engine in engines)
        assert len({id(engine) for engine in engines}) == 3
        assert all(engine.config == small_engine_config for engine in engines)
        assert all(engine.generator is generator for engine in engines)

    def test_shared_layout(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config, clause_drop_p=0.25, literal_drop_p=0.1)
        assert ensemble.number_of_patches == 1
        assert ensemble.number_of_ta_chunks == 1
        assert ensemble.number_of_state_bits == 8
        assert ensemble.example_stride == 1
        assert ensemble.clause_drop_p == 0.25
        assert ensemble.literal_drop_p == 0.1

    @pytest.mark.parametrize("num_classes", [0, -1])
    def test_invalid_class_count(self, small_engine_config, num_classes):
        with pytest.raises(InvalidConfig):
            Ensemble.create(num_classes, small_engine_config)

    def test_invalid_dropout(self, small_engine_config):
        with pytest.raises(InvalidConfig):
            Ensemble.create(2, small_engine_config, clause_drop_p=2.0)

    def test_allocation_failure(self, small_engine_config):
        built = []

        def factory(config, generator=None):
            if len(built) == 2:
                raise MemoryError("out of memory")
            engine = StubEngine(config)
            built.append(engine)
            return engine

        with pytest.raises(AllocationError):
            Ensemble.create(4, small_engine_config, engine_factory=factory)
        assert all(engine.destroyed for engine in built)

    def test_engines_must_share_layout(self, small_engine_config):
        built = []
        other_layout = EngineConfig(number_of_clauses=10, number_of_features=40)

        def factory(config, generator=None):
            engine = StubEngine(other_layout if built else config)
            built.append(engine)
            return engine

        with pytest.raises(InvalidConfig):
            Ensemble.create(3, small_engine_config, engine_factory=factory)
        assert len(built) == 3
        assert all(engine.destroyed for engine in built)


class TestLifecycle:

    def test_initialize_delegates_once(self, small_engine_config):
        factory = stub_factory()
        ensemble = Ensemble.create(3, small_engine_config, engine_factory=factory)
        ensemble.initialize()
        assert ensemble.initialized
        assert [engine.initialize_calls for engine in factory.created] == [1, 1, 1]

    def test_double_initialize(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        ensemble.initialize()
        with pytest.raises(LifecycleError):
            ensemble.initialize()

    def test_destroy_releases_engines(self, small_engine_config):
        factory = stub_factory()
        ensemble = Ensemble.create(2, small_engine_config, engine_factory=factory)
        ensemble.destroy()
        assert ensemble.destroyed
        assert all(engine.destroyed for engine in factory.created)
        with pytest.raises(LifecycleError):
            ensemble.engine(0)
        with pytest.raises(LifecycleError):
            ensemble.initialize()

    def test_destroy_twice_is_noop(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        ensemble.destroy()
        ensemble.destroy()
        assert ensemble.destroyed

    def test_context_manager(self, small_engine_config):
        factory = stub_factory()
        with Ensemble.create(2, small_engine_config, engine_factory=factory) as ensemble:
            ensemble.initialize()
        assert ensemble.destroyed
        assert all(engine.destroyed for engine in factory.created)


class TestEngineAccess:

    def test_engine_index_range(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        assert ensemble.engine(1) is ensemble.engines[1]
        with pytest.raises(OutOfRangeInput):
            ensemble.engine(2)
        with pytest.raises(OutOfRangeInput):
            ensemble.engine(-1)

    def test_examples_view(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        X = torch.arange(6)
        assert ensemble.examples(X).shape == (6, 1)
        assert ensemble.examples(X, 4).tolist() == [[0], [1], [2], [3]]
        assert ensemble.examples(X, 0).shape == (0, 1)

    @pytest.mark.parametrize("shape", [(3, 2), (2, 1, 1)])
    def test_examples_wrong_row_length(self, small_engine_config, shape):
        ensemble = Ensemble.create(2, small_engine_config)
        with pytest.raises(OutOfRangeInput):
            ensemble.examples(torch.zeros(shape, dtype=torch.int64))

    def test_examples_two_dimensional(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        assert ensemble.examples(torch.arange(3).view(3, 1)).tolist() == [[0], [1], [2]]

    def test_examples_too_short(self, small_engine_config):
        ensemble = Ensemble.create(2, small_engine_config)
        with pytest.raises(OutOfRangeInput):
            ensemble.examples(torch.arange(3), 4)

    def test_examples_partial_record(self):
        ensemble = Ensemble.create(2, EngineConfig(number_of_features=8, number_of_patches=2))
        with pytest.raises(OutOfRangeInput):
            ensemble.examples(torch.arange(5))
