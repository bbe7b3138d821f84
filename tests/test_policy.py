import numpy as np
import pytest

from sweepevo.environment import EnvConfig, HeadlessMinesweeper
from sweepevo.environment.minesweeper import Observation
from sweepevo.exceptions import SimulationError, TopologyMismatchError
from sweepevo.genome import Genome
from sweepevo.policy import MLPPolicy, PolicyTopology, encode_observation


def observation(rows, cols, revealed=(), flagged=(), count=2) -> Observation:
    rev = np.zeros((rows, cols), dtype=bool)
    flg = np.zeros((rows, cols), dtype=bool)
    for cell in revealed:
        rev[cell] = True
    for cell in flagged:
        flg[cell] = True
    return Observation(
        rows=rows,
        cols=cols,
        counts=np.full((rows, cols), count, dtype=np.int8),
        revealed=rev,
        flagged=flg,
    )


class TestTopology:
    def test_layer_shapes(self, small_topology):
        assert small_topology.layer_shapes == [(12, 4), (4,), (4, 8), (8,)]
        assert small_topology.parameter_count == 92
        assert small_topology.action_count == 8

    def test_default_hidden_layers(self):
        topology = PolicyTopology(rows=9, cols=9)

        assert topology.layer_sizes == [243, 128, 64, 162]

    def test_random_genome_fits(self, small_topology, rng):
        genome = small_topology.random_genome(rng)

        small_topology.check(genome)
        assert not genome.layers[1].data.any()
        limit = np.sqrt(6.0 / (12 + 4))
        assert np.abs(genome.layers[0].data).max() <= limit

    def test_check_rejects_other_shapes(self, small_topology, rng):
        other = PolicyTopology(rows=3, cols=3, hidden_units=(4,)).random_genome(rng)

        with pytest.raises(TopologyMismatchError):
            small_topology.check(other)


class TestEncoding:
    def test_channels_and_padding(self):
        topology = PolicyTopology(rows=3, cols=3, hidden_units=(4,))
        obs = observation(2, 2, revealed=[(0, 0)], flagged=[(1, 1)], count=2)

        grid = encode_observation(obs, topology).reshape(3, 3, 3)

        assert grid[0, 0].tolist() == pytest.approx([3 / 9, 0.0, 0.0])
        assert grid[0, 1].tolist() == [0.0, 1.0, 0.0]
        assert grid[1, 1].tolist() == [0.0, 1.0, 1.0]
        assert not grid[2].any()
        assert not grid[:, 2].any()

    def test_board_larger_than_topology(self, small_topology):
        with pytest.raises(SimulationError):
            encode_observation(observation(3, 3), small_topology)


class TestMLPPolicy:
    def test_decide_respects_mask(self, small_topology, rng):
        policy = MLPPolicy(small_topology)
        genome = small_topology.random_genome(rng)
        obs = observation(2, 2)
        for legal in range(8):
            mask = np.zeros(8, dtype=bool)
            mask[legal] = True
            assert policy.decide(genome, obs, mask) == legal

    def test_overflowed_values_still_pick_legal_action(self, small_topology):
        arrays = [np.zeros(shape, dtype=np.float32) for shape in small_topology.layer_shapes]
        arrays[-1][:] = -np.inf
        genome = Genome.from_arrays(arrays)
        mask = np.zeros(8, dtype=bool)
        mask[5] = True

        assert MLPPolicy(small_topology).decide(genome, observation(2, 2), mask) == 5

    def test_empty_mask_rejected(self, small_topology, rng):
        with pytest.raises(SimulationError):
            MLPPolicy(small_topology).decide(
                small_topology.random_genome(rng), observation(2, 2), np.zeros(8, dtype=bool)
            )

    def test_decide_is_deterministic(self, small_topology, rng):
        policy = MLPPolicy(small_topology)
        genome = small_topology.random_genome(rng)
        obs = observation(2, 2, revealed=[(0, 1)])
        mask = np.ones(8, dtype=bool)

        assert policy.decide(genome, obs, mask) == policy.decide(genome, obs, mask)

    def test_load_reuses_buffers(self, small_topology, rng):
        policy = MLPPolicy(small_topology)
        buffers = [id(b) for b in policy._buffers]
        a, b = small_topology.random_genome(rng), small_topology.random_genome(rng)

        policy.load(a)
        policy.load(b)

        assert [id(buf) for buf in policy._buffers] == buffers
        assert policy.loaded_fingerprint == b.fingerprint
        np.testing.assert_array_equal(policy._buffers[0], b.layers[0].as_array())

    def test_wrong_genome_rejected(self, small_topology):
        policy = MLPPolicy(small_topology)

        with pytest.raises(TopologyMismatchError):
            policy.load(Genome.from_arrays([np.zeros((2, 2))]))

    def test_smaller_board_on_larger_network(self, rng):
        topology = PolicyTopology(rows=4, cols=4, hidden_units=(8,))
        env = HeadlessMinesweeper(EnvConfig(rows=3, cols=2, mines=1), rng)
        policy = MLPPolicy(topology)

        action = policy.decide(
            topology.random_genome(rng), env.observe(), env.legal_action_mask()
        )

        assert 0 <= action < env.action_count

    def test_mask_shape_checked(self, small_topology, rng):
        policy = MLPPolicy(small_topology)

        with pytest.raises(SimulationError):
            policy.decide(
                small_topology.random_genome(rng), observation(2, 2), np.ones(5, dtype=bool)
            )
