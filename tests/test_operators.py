import numpy as np
import pytest

from sweepevo.exceptions import TopologyMismatchError
from sweepevo.genome import Genome, crossover, mutate


class TestCrossover:
    def test_child_has_parent_shapes(self, make_genome, rng):
        a, b = make_genome(), make_genome()
        for _ in range(20):
            child = crossover(a, b, rng)
            assert child.shapes == a.shapes == b.shapes

    def test_every_element_comes_from_a_parent(self, make_genome, rng):
        a, b = make_genome(fill=1.0), make_genome(fill=-1.0)
        for _ in range(20):
            values = crossover(a, b, rng).flat()
            assert np.all((values == 1.0) | (values == -1.0))

    def test_parents_are_untouched(self, make_genome, rng):
        a, b = make_genome(), make_genome()
        a_before, b_before = a.flat().copy(), b.flat().copy()

        crossover(a, b, rng)

        np.testing.assert_array_equal(a.flat(), a_before)
        np.testing.assert_array_equal(b.flat(), b_before)

    def test_identical_parents_give_identical_child(self, make_genome, rng):
        a = make_genome()

        assert crossover(a, a, rng) == a

    def test_topology_mismatch_raises(self, make_genome, rng):
        other = Genome.from_arrays([np.zeros((2, 2))])

        with pytest.raises(TopologyMismatchError):
            crossover(make_genome(), other, rng)

    def test_both_schemes_are_used(self, make_genome):
        # one-point children have exactly one switch per layer, uniform ones many
        a, b = make_genome(fill=1.0), make_genome(fill=-1.0)
        rng = np.random.default_rng(7)
        switches = set()
        for _ in range(40):
            first = crossover(a, b, rng).layers[0].data
            switches.add(int(np.count_nonzero(np.diff(first))) <= 1)
        assert switches == {True, False}


class TestMutate:
    def test_zero_rate_is_equal_copy(self, make_genome, rng):
        genome = make_genome()
        mutant = mutate(genome, 0.0, 1.0, rng)

        assert mutant == genome
        assert mutant is not genome
        for new, old in zip(mutant.layers, genome.layers):
            assert not np.shares_memory(new.data, old.data)

    def test_zero_amount_is_noop(self, make_genome, rng):
        genome = make_genome()

        assert mutate(genome, 1.0, 0.0, rng) == genome

    def test_full_rate_perturbs_within_amount(self, make_genome, rng):
        genome = make_genome(fill=0.0)
        mutant = mutate(genome, 1.0, 0.5, rng)
        delta = mutant.flat() - genome.flat()

        assert mutant.shapes == genome.shapes
        assert np.all(np.abs(delta) <= 0.5 + 1e-6)
        assert np.count_nonzero(delta) > 0.9 * delta.size

    def test_input_is_untouched(self, make_genome, rng):
        genome = make_genome()
        before = genome.flat().copy()

        mutate(genome, 1.0, 1.0, rng)

        np.testing.assert_array_equal(genome.flat(), before)

    def test_weights_are_not_clamped(self, make_genome, rng):
        genome = make_genome(fill=100.0)

        assert mutate(genome, 1.0, 0.1, rng).flat().min() > 99.0

    @pytest.mark.parametrize("rate,amount", [(-0.1, 0.1), (1.5, 0.1), (0.5, -1.0)])
    def test_invalid_arguments(self, make_genome, rng, rate, amount):
        with pytest.raises(ValueError):
            mutate(make_genome(), rate, amount, rng)
