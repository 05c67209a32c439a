"""
Unit tests for the theta sketch difference (A and not B).
"""

import random
import unittest

from tiny_theta.algorithms.theta.difference import difference
from tiny_theta.algorithms.theta.intersection import intersection
from tiny_theta.algorithms.theta.sketch import Mode, ThetaSketch
from tiny_theta.algorithms.theta.union import union


def build(values, capacity):
    """Build a sketch by inserting values in order."""
    sketch = ThetaSketch(capacity=capacity)
    for value in values:
        sketch.insert(value)
    return sketch


class TestDifference(unittest.TestCase):
    """Test cases for difference()."""

    def test_asymmetry(self):
        """Test that A - B and B - A differ."""
        a = build([0.1, 0.2, 0.3], capacity=8)
        b = build([0.2, 0.3, 0.4], capacity=8)

        a_not_b = difference(a, b)
        b_not_a = difference(b, a)

        self.assertEqual(a_not_b.retained_values(), (0.1,))
        self.assertEqual(b_not_a.retained_values(), (0.4,))
        self.assertEqual(a_not_b.theta, 1.0)
        self.assertEqual(a_not_b.mode, Mode.EXACT)
        self.assertEqual(a_not_b.estimate(), 1.0)
        self.assertNotEqual(a_not_b, b_not_a)

    def test_shared_theta(self):
        """Test that both sides are cut at the smaller theta."""
        # theta 0.5, retaining 0.1 to 0.4
        a = build([0.1, 0.2, 0.3, 0.4, 0.5, 0.6], capacity=4)
        b = build([0.2, 0.45, 0.7], capacity=8)

        result = difference(a, b)
        self.assertEqual(result.theta, 0.5)
        self.assertEqual(result.mode, Mode.ESTIMATING)
        self.assertEqual(result.retained_values(), (0.1, 0.3, 0.4))
        self.assertEqual(result.capacity, a.capacity)

        # b's smaller theta cuts a's values too
        narrow_b = build([0.05, 0.15, 0.25], capacity=2)  # theta 0.25
        result = difference(a, narrow_b)
        self.assertEqual(result.theta, 0.25)
        self.assertEqual(result.retained_values(), (0.1, 0.2))

    def test_self_difference(self):
        """Test that A - A has no retained values."""
        exact = build([0.1, 0.2], capacity=4)
        result = difference(exact, exact)
        self.assertEqual(result.mode, Mode.EMPTY)
        self.assertEqual(result.estimate(), 0.0)

        estimating = build([0.1, 0.2, 0.3], capacity=2)
        result = difference(estimating, estimating)
        self.assertEqual(result.theta, estimating.theta)
        self.assertEqual(result.retained_values(), ())
        self.assertEqual(result.estimate(), 0.0)

    def test_difference_with_empty(self):
        """Test that subtracting an empty sketch returns A."""
        a = build([0.1, 0.2, 0.3, 0.4, 0.5], capacity=4)
        self.assertEqual(difference(a, ThetaSketch(capacity=4)), a)
        self.assertTrue(difference(ThetaSketch(capacity=4), a).retained_values() == ())

    def test_composability(self):
        """Test that difference results feed other operations."""
        a = build([0.1, 0.2, 0.3], capacity=8)
        b = build([0.2, 0.3, 0.4], capacity=8)

        # (A - B) union (A intersect B) is A
        rebuilt = union(difference(a, b), intersection(a, b))
        self.assertEqual(rebuilt, a)

    def test_difference_estimate(self):
        """Test the difference estimate on overlapping random streams."""
        rng = random.Random(99)
        universe = [rng.random() for _ in range(20000)]
        a = build(universe[:12000], capacity=1024)
        b = build(universe[6000:], capacity=1024)

        true_count = 6000
        estimate = difference(a, b).estimate()
        rel_error = abs(estimate - true_count) / true_count
        self.assertLessEqual(rel_error, 0.25)

    def test_inputs_not_modified(self):
        """Test that difference leaves its inputs untouched."""
        a = build([0.1, 0.2, 0.3], capacity=2)
        b = build([0.2], capacity=2)
        a_before, b_before = a.copy(), b.copy()

        difference(a, b)
        self.assertEqual(a, a_before)
        self.assertEqual(b, b_before)

    def test_type_check(self):
        """Test that both arguments must be theta sketches."""
        sketch = ThetaSketch(capacity=4)
        with self.assertRaises(TypeError):
            difference(sketch, [0.1])
        with self.assertRaises(TypeError):
            difference(None, sketch)


if __name__ == "__main__":
    unittest.main()
