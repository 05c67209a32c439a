"""
Unit tests for the theta sketch union.
"""

import itertools
import random
import unittest

from tiny_theta.algorithms.kmv import KMVSketch
from tiny_theta.algorithms.theta.sketch import Mode, ThetaSketch
from tiny_theta.algorithms.theta.union import UnionAccumulator, union
from tiny_theta.core.errors import (
    AccumulatorFinishedError,
    ConfigError,
    DomainError,
)


def build(values, capacity):
    """Build a sketch by inserting values in order."""
    sketch = ThetaSketch(capacity=capacity)
    for value in values:
        sketch.insert(value)
    return sketch


class TestUnionAccumulator(unittest.TestCase):
    """Test cases for UnionAccumulator and union()."""

    def setUp(self):
        self.rng = random.Random(42)
        universe = [self.rng.random() for _ in range(3000)]
        # Three overlapping streams
        self.stream_a = universe[:1500]
        self.stream_b = universe[1000:2500]
        self.stream_c = universe[2000:] + universe[:200]
        self.all_values = set(self.stream_a) | set(self.stream_b) | set(self.stream_c)

    def test_identity(self):
        """Test that a union with an empty sketch returns the original."""
        exact = build([0.1, 0.4, 0.7], capacity=8)
        self.assertEqual(union(exact, ThetaSketch(capacity=8)), exact)
        self.assertEqual(union(ThetaSketch(capacity=8), exact), exact)

        estimating = build(self.stream_a, capacity=32)
        self.assertEqual(union(estimating, ThetaSketch(capacity=32)), estimating)

    def test_idempotence(self):
        """Test that A union A equals A."""
        for sketch in (
            build([0.2, 0.3], capacity=4),
            build(self.stream_b, capacity=64),
        ):
            result = union(sketch, sketch)
            self.assertEqual(result, sketch)
            self.assertEqual(result.mode, sketch.mode)

    def test_matches_direct_insertion(self):
        """Test that the union equals a sketch built from every value."""
        for capacity in (1, 16, 128):
            a = build(self.stream_a, capacity)
            b = build(self.stream_b, capacity)
            c = build(self.stream_c, capacity)
            direct = build(self.stream_a + self.stream_b + self.stream_c, capacity)

            result = union(a, b, c)
            self.assertEqual(result, direct)
            self.assertEqual(result.theta, sorted(self.all_values)[capacity])

    def test_order_independence(self):
        """Test that accumulation order does not change the result."""
        sketches = [
            build(self.stream_a, 32),
            build(self.stream_b, 32),
            build(self.stream_c, 32),
            build([0.001, 0.002], 32),
        ]
        reference = union(*sketches)
        for permutation in itertools.permutations(sketches):
            self.assertEqual(union(*permutation), reference)

    def test_tree_reduction(self):
        """Test that partial unions combine to the same result."""
        a = build(self.stream_a, 32)
        b = build(self.stream_b, 32)
        c = build(self.stream_c, 32)

        flat = union(a, b, c)
        self.assertEqual(union(union(a, b), c), flat)
        self.assertEqual(union(a, union(b, c)), flat)
        self.assertEqual(union(union(a, c), union(b, c)), flat)

    def test_exact_iff_fits(self):
        """Test that the union stays exact exactly when the union fits."""
        a = build([0.1, 0.2, 0.3], capacity=5)
        b = build([0.3, 0.4, 0.5], capacity=5)
        result = union(a, b)
        self.assertEqual(result.mode, Mode.EXACT)
        self.assertEqual(result.estimate(), 5.0)

        c = build([0.6], capacity=5)
        result = union(a, b, c)
        self.assertEqual(result.mode, Mode.ESTIMATING)
        self.assertEqual(result.theta, 0.6)
        self.assertEqual(result.retained_values(), (0.1, 0.2, 0.3, 0.4, 0.5))

    def test_theta_filter_on_finish(self):
        """Test that values admitted under a looser theta are re-filtered."""
        loose = build([0.1, 0.5, 0.9], capacity=8)
        # theta 0.4, retaining 0.2 and 0.3
        tight = build([0.2, 0.3, 0.4], capacity=2)

        result = union(loose, tight, capacity=8)
        self.assertEqual(result.theta, 0.4)
        self.assertEqual(result.retained_values(), (0.1, 0.2, 0.3))
        self.assertTrue(all(v < result.theta for v in result.retained_values()))

    def test_minimum_capacity_policy(self):
        """Test that the result takes the smallest input capacity by default."""
        big = build([0.1, 0.2, 0.3, 0.4], capacity=10)
        small = build([0.5], capacity=3)

        result = union(big, small)
        self.assertEqual(result.capacity, 3)
        self.assertEqual(result.retained_values(), (0.1, 0.2, 0.3))
        self.assertEqual(result.theta, 0.4)
        self.assertEqual(result, build([0.1, 0.2, 0.3, 0.4, 0.5], capacity=3))

        # The order in which capacities appear does not matter
        self.assertEqual(union(small, big), result)

    def test_explicit_capacity(self):
        """Test that an explicit capacity overrides the input capacities."""
        a = build([0.1, 0.2], capacity=2)
        b = build([0.3, 0.4], capacity=2)

        result = union(a, b, capacity=10)
        self.assertEqual(result.capacity, 10)
        self.assertEqual(result.retained_values(), (0.1, 0.2, 0.3, 0.4))
        self.assertEqual(result.mode, Mode.EXACT)

        with self.assertRaises(ConfigError):
            UnionAccumulator(capacity=0)

    def test_raw_values(self):
        """Test folding raw hashed values alongside sketches."""
        accumulator = UnionAccumulator(capacity=16)
        for value in self.stream_a:
            accumulator.update(value)
        self.assertEqual(accumulator.finish(), build(self.stream_a, 16))

        accumulator = UnionAccumulator()
        accumulator.accumulate(build(self.stream_a, 16))
        for value in self.stream_b:
            accumulator.update(value)
        self.assertEqual(
            accumulator.finish(), build(self.stream_a + self.stream_b, 16)
        )

        accumulator = UnionAccumulator(capacity=4)
        with self.assertRaises(DomainError):
            accumulator.update(1.0)

    def test_unknown_capacity(self):
        """Test the errors raised when no capacity can be determined."""
        with self.assertRaises(ConfigError):
            UnionAccumulator().update(0.5)
        with self.assertRaises(ConfigError):
            UnionAccumulator().finish()

        # With a capacity, an empty union is an empty sketch
        result = UnionAccumulator(capacity=4).finish()
        self.assertTrue(result.is_empty())
        self.assertEqual(result.capacity, 4)

    def test_single_use(self):
        """Test that an accumulator cannot be reused after finish()."""
        accumulator = UnionAccumulator()
        accumulator.accumulate(build([0.1], 4))
        accumulator.finish()

        with self.assertRaises(AccumulatorFinishedError):
            accumulator.finish()
        with self.assertRaises(AccumulatorFinishedError):
            accumulator.accumulate(build([0.2], 4))
        with self.assertRaises(AccumulatorFinishedError):
            accumulator.update(0.3)

    def test_inputs_not_modified(self):
        """Test that union leaves its inputs untouched."""
        a = build(self.stream_a, 16)
        b = build(self.stream_b, 8)
        a_before, b_before = a.copy(), b.copy()

        union(a, b)
        self.assertEqual(a, a_before)
        self.assertEqual(b, b_before)

    def test_type_check(self):
        """Test that only theta sketches can be accumulated."""
        with self.assertRaises(TypeError):
            UnionAccumulator().accumulate(KMVSketch(k=4))

    def test_union_estimate(self):
        """Test the union estimate against the true union size."""
        a = build(self.stream_a, 256)
        b = build(self.stream_b, 256)
        c = build(self.stream_c, 256)

        estimate = union(a, b, c).estimate()
        true_count = len(self.all_values)
        rel_error = abs(estimate - true_count) / true_count
        self.assertLessEqual(rel_error, 0.2)

    def test_running_theta(self):
        """Test that the running theta only decreases."""
        accumulator = UnionAccumulator()
        thetas = [accumulator.theta]
        for stream in (self.stream_a, self.stream_b, self.stream_c):
            accumulator.accumulate(build(stream, 16))
            thetas.append(accumulator.theta)
        self.assertEqual(thetas, sorted(thetas, reverse=True))
        self.assertEqual(accumulator.capacity, 16)


if __name__ == "__main__":
    unittest.main()
