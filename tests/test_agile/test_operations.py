"""
Tests for GA operations: mutation and crossover.
"""

import unittest
from unittest import mock
import numpy as np

from agile.config import MutationConfig
from agile.crossover import uniform_crossover, uniform_crossover_with_mask
from agile.genome import Genome, Locus, LENGTH, FIRST_RI_BYTE
from agile.mutation import (
    NUM_FIXED_LOCI,
    breeder_mutate,
    breeder_value,
    draw_value,
    mutate,
    prep,
    random_mutate,
    random_value,
)
from agile.paramset import (
    ParamSet,
    LAYERS,
    MINIMUM_RI,
    MAX_POSSIBILITIES,
    PARTITION_THICKNESSES,
    nth,
)


def assert_valid_design(test, genome):
    """Check the invariants every operator output must hold."""
    test.assertEqual(genome.normalised(), genome)

    params = genome.to_params()
    test.assertIn(params.partitions_thickness, PARTITION_THICKNESSES)
    for code in params.active_layers():
        test.assertGreaterEqual(code, MINIMUM_RI)
    for code in params.layers[params.len():]:
        test.assertIsNone(code)


class TestMutationHelpers(unittest.TestCase):
    """Test mutation bookkeeping."""

    def setUp(self):
        self.rng = np.random.default_rng(42)
        self.genome = Genome.from_params(ParamSet(layers=(40, 41, 42)))

    def test_prep_locus_count(self):
        locus_count, _ = prep(self.genome, 0.0, self.rng)
        self.assertEqual(locus_count, NUM_FIXED_LOCI + 3)

    def test_prep_zero_rate(self):
        """Below one expected mutation nothing is mutated."""
        for _ in range(20):
            _, count = prep(self.genome, 0.0, self.rng)
            self.assertEqual(count, 0)

    def test_prep_full_rate(self):
        for _ in range(20):
            _, count = prep(self.genome, 1.0, self.rng)
            self.assertEqual(count, NUM_FIXED_LOCI + 3)

    def test_prep_expected_count(self):
        """The fractional part is rounded up with matching probability."""
        counts = [prep(self.genome, 0.25, self.rng)[1] for _ in range(2000)]
        self.assertTrue(set(counts) <= {1, 2})
        self.assertAlmostEqual(np.mean(counts), 6 * 0.25, delta=0.05)

    def test_random_value_inclusive(self):
        values = {random_value(3, 5, self.rng) for _ in range(200)}
        self.assertEqual(values, {3, 4, 5})

    def test_breeder_value(self):
        self.assertEqual(breeder_value(10, 1, 1.0, 1), 11)
        self.assertEqual(breeder_value(10, 1, 1.0, -1), 9)
        self.assertEqual(breeder_value(10, 8, 1.0 / 8, -1), 9)
        # A fine step below one truncates to nothing
        self.assertEqual(breeder_value(10, 1, 1.0 / 8, 1), 10)


class TestMutationOperators(unittest.TestCase):
    """Test breeder and random mutation."""

    def setUp(self):
        self.rng = np.random.default_rng(42)

    def test_zero_rate_is_identity(self):
        genome = Genome.from_params(nth(123_456_789))
        self.assertEqual(breeder_mutate(genome, 0.0, self.rng), genome)
        self.assertEqual(random_mutate(genome, 0.0, self.rng), genome)

    def test_outputs_are_valid(self):
        """Mutated genomes always decode to valid designs."""
        for seed in range(50):
            rng = np.random.default_rng(seed)
            genome = Genome.from_params(nth(int(rng.integers(0, MAX_POSSIBILITIES))))

            assert_valid_design(self, breeder_mutate(genome, 1.0, rng, range_=40))
            assert_valid_design(self, random_mutate(genome, 1.0, rng))

    def test_input_not_modified(self):
        genome = Genome.from_params(nth(987_654_321))
        before = genome.data
        random_mutate(genome, 1.0, self.rng)
        self.assertEqual(genome.data, before)

    def test_breeder_changes_something(self):
        genome = Genome.from_params(ParamSet(layers_thickness=100, layers=(40,) * LAYERS))
        results = {breeder_mutate(genome, 1.0, self.rng) for _ in range(20)}
        self.assertGreater(len(results - {genome}), 0)

    def test_breeder_below_min_redraws(self):
        """Values stepping below min_value are replaced from the allowed range."""
        genome = Genome.from_params(ParamSet(layers_thickness=0, layers=(MINIMUM_RI,)))
        for _ in range(50):
            child = breeder_mutate(genome, 1.0, self.rng, min_value=50, max_value=60)
            thickness = child[0]
            self.assertTrue(thickness == 0 or 50 <= thickness <= 60, thickness)

    def test_breeder_above_max_clamps(self):
        genome = Genome.from_params(ParamSet(layers_thickness=200, layers=(MINIMUM_RI,)))
        for _ in range(50):
            child = breeder_mutate(genome, 1.0, self.rng, range_=8, min_value=0, max_value=5)
            self.assertTrue(child[0] == 200 or child[0] <= 5, child[0])

    def test_random_respects_bounds(self):
        genome = Genome.from_params(ParamSet(layers_thickness=0, layers=(MINIMUM_RI,)))
        for _ in range(50):
            child = random_mutate(genome, 1.0, self.rng, min_value=70, max_value=80)
            self.assertTrue(child[0] == 0 or 70 <= child[0] <= 80)
            active = child.to_params().active_layers()
            for code in active:
                self.assertTrue(code == MINIMUM_RI or 70 <= code <= 80)

    def test_random_length_is_uniform(self):
        """Random mutation of the length locus spreads over every layer count."""
        genome = Genome.from_params(ParamSet(layers=(40, 41)))
        lengths = []
        with mock.patch('agile.mutation.prep', return_value=(1, 1)):
            for _ in range(2000):
                lengths.append(random_mutate(genome, 1.0, self.rng).to_params().len())

        self.assertEqual(set(lengths), set(range(1, LAYERS + 1)))
        share_full = lengths.count(LAYERS) / len(lengths)
        self.assertLess(share_full, 0.2)

    def test_draw_value(self):
        lengths = {draw_value(LENGTH, 0, 255, self.rng) for _ in range(500)}
        self.assertEqual(lengths, set(range(1, LAYERS + 1)))

        values = {draw_value(Locus.ri(2), 70, 72, self.rng) for _ in range(100)}
        self.assertEqual(values, {70, 71, 72})

    def test_mutation_keeps_a_layer(self):
        """No operator output is an empty stack."""
        for seed in range(50):
            rng = np.random.default_rng(seed)
            genome = Genome.from_params(ParamSet(layers=(MINIMUM_RI,)))
            self.assertGreaterEqual(random_mutate(genome, 1.0, rng).to_params().len(), 1)
            self.assertGreaterEqual(breeder_mutate(genome, 1.0, rng).to_params().len(), 1)

    def test_deterministic_for_seed(self):
        genome = Genome.from_params(nth(42))
        first = breeder_mutate(genome, 0.5, np.random.default_rng(9))
        second = breeder_mutate(genome, 0.5, np.random.default_rng(9))
        self.assertEqual(first, second)

    def test_mutate_dispatch(self):
        genome = Genome.default()

        with mock.patch('agile.mutation.random_mutate', return_value=genome) as patched:
            mutate(genome, MutationConfig(operator="random", rate=0.3), self.rng)
        patched.assert_called_once()
        self.assertEqual(patched.call_args[0][1], 0.3)

        with mock.patch('agile.mutation.breeder_mutate', return_value=genome) as patched:
            mutate(genome, MutationConfig(operator="breeder", range=4), self.rng)
        patched.assert_called_once()
        self.assertEqual(patched.call_args[1]['range_'], 4)


class TestCrossover(unittest.TestCase):
    """Test uniform RI-locus crossover."""

    def setUp(self):
        self.rng = np.random.default_rng(42)
        self.parents = [
            ParamSet(layers_thickness=1, partitions_thickness=2, layers=(40,) * LAYERS),
            ParamSet(layers_thickness=2, partitions_thickness=4, layers=(45, 46, 47)),
            ParamSet(layers_thickness=3, partitions_thickness=30, layers=(51,) * 6),
        ]

    def test_arity(self):
        """One child per parent."""
        for n in range(1, 6):
            parents = [nth(i * 1_000_003) for i in range(n)]
            self.assertEqual(len(uniform_crossover(parents, self.rng)), n)

    def test_base_parent_supplies_thicknesses(self):
        children, masks = uniform_crossover_with_mask(self.parents, self.rng)
        for child, mask in zip(children, masks):
            base = self.parents[mask[0]]
            self.assertEqual(child.layers_thickness, base.layers_thickness)
            self.assertEqual(child.partitions_thickness, base.partitions_thickness)

    def test_ri_loci_copied_from_donors(self):
        genomes = [Genome.from_params(p) for p in self.parents]

        for _ in range(20):
            children, masks = uniform_crossover_with_mask(self.parents, self.rng)
            for child, mask in zip(children, masks):
                self.assertEqual(len(mask), 1 + LAYERS)
                for slot in range(child.len()):
                    donor = genomes[mask[1 + slot]]
                    self.assertEqual(child.layers[slot], donor[FIRST_RI_BYTE + slot])

    def test_children_truncate_at_first_gap(self):
        for _ in range(20):
            children, masks = uniform_crossover_with_mask(self.parents, self.rng)
            for child, mask in zip(children, masks):
                donors = [self.parents[d] for d in mask[1:]]
                expected = 0
                while expected < LAYERS and donors[expected].layers[expected] is not None:
                    expected += 1
                self.assertEqual(child.len(), expected)

    def test_identical_parents(self):
        parent = nth(31_415_926_535)
        children = uniform_crossover([parent] * 4, self.rng)
        self.assertEqual(children, [parent] * 4)

    def test_single_parent(self):
        parent = nth(271_828)
        self.assertEqual(uniform_crossover([parent], self.rng), [parent])

    def test_children_are_valid(self):
        for child in uniform_crossover(self.parents, self.rng):
            assert_valid_design(self, Genome.from_params(child))

    def test_empty_parents(self):
        with self.assertRaises(ValueError):
            uniform_crossover([], self.rng)


def run_tests():
    """Run all tests in this module."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestMutationHelpers))
    suite.addTests(loader.loadTestsFromTestCase(TestMutationOperators))
    suite.addTests(loader.loadTestsFromTestCase(TestCrossover))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    import sys
    success = run_tests()
    sys.exit(0 if success else 1)
