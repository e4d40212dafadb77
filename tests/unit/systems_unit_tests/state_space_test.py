# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Unit Tests for StateSpaceSystem

Tests cover:
- Construction and dimension validation
- Zero-state (pure gain) systems
- Immutability of the stored matrices
- Point evaluation and poles
- Operator sugar (series, parallel, negation)
"""

import unittest

import numpy as np
import pytest
from numpy.testing import assert_allclose

from loopshape.exceptions import MalformedSystemError
from loopshape.systems.rational import RationalSystem
from loopshape.systems.state_space import StateSpaceSystem


class StateSpaceTestCase(unittest.TestCase):
    """Base class with common test systems."""

    def setUp(self):
        # G(s) = 1 / (s + 1)
        self.first_order = StateSpaceSystem([[-1.0]], [[1.0]], [[1.0]], [[0.0]])

        # Double integrator
        self.double_int = StateSpaceSystem([[0, 1], [0, 0]], [[0], [1]], [[1, 0]], [[0]])

        # 2x2 stable system
        self.mimo = StateSpaceSystem(
            [[-1.0, 0.5], [0.0, -3.0]],
            [[1.0, 0.0], [0.5, 1.0]],
            [[1.0, 0.0], [0.2, 1.0]],
            [[0.0, 0.1], [0.0, 0.0]],
        )


class TestConstruction(StateSpaceTestCase):
    """Dimensions and validation."""

    def test_dimensions(self):
        self.assertEqual(self.mimo.n_states, 2)
        self.assertEqual(self.mimo.n_inputs, 2)
        self.assertEqual(self.mimo.n_outputs, 2)
        self.assertEqual(self.mimo.shape, (2, 2))

    def test_from_realization_matches_constructor(self):
        G = StateSpaceSystem.from_realization([[-1.0]], [[1.0]], [[1.0]], [[0.0]])
        self.assertTrue(G.allclose(self.first_order))

    def test_vector_b_is_a_column(self):
        G = StateSpaceSystem(np.diag([-1.0, -2.0]), [1.0, 0.0], [[1.0, 1.0]], 0.0)
        self.assertEqual(G.B.shape, (2, 1))
        self.assertEqual(G.D.shape, (1, 1))

    def test_empty_d_is_zero_filled(self):
        G = StateSpaceSystem([[-1.0]], [[1.0, 2.0]], [[1.0]], [])
        assert_allclose(G.D, np.zeros((1, 2)))

    def test_non_square_a_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem([[1.0, 2.0]], [[1.0]], [[1.0]], [[0.0]])

    def test_b_row_mismatch_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem(np.eye(2), [[1.0], [0.0], [0.0]], [[1.0, 0.0]], [[0.0]])

    def test_c_column_mismatch_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem(np.eye(2), [[1.0], [0.0]], [[1.0]], [[0.0]])

    def test_d_mismatch_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem([[-1.0]], [[1.0]], [[1.0]], [[0.0, 0.0]])

    def test_non_finite_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem([[np.nan]], [[1.0]], [[1.0]], [[0.0]])

    def test_non_numeric_raises(self):
        with self.assertRaises(MalformedSystemError):
            StateSpaceSystem([["a"]], [[1.0]], [[1.0]], [[0.0]])

    def test_malformed_is_value_error(self):
        with self.assertRaises(ValueError):
            StateSpaceSystem([[1.0, 2.0]], [[1.0]], [[1.0]], [[0.0]])


class TestStaticSystems(StateSpaceTestCase):
    """Zero-state systems."""

    def test_static_scalar(self):
        K = StateSpaceSystem.static(1e-6)
        self.assertTrue(K.is_static)
        self.assertEqual(K.shape, (1, 1))
        self.assertEqual(K.A.shape, (0, 0))
        self.assertEqual(K.B.shape, (0, 1))
        self.assertEqual(K.C.shape, (1, 0))

    def test_static_matrix(self):
        K = StateSpaceSystem.static([[1.0, 2.0, 3.0]])
        self.assertEqual(K.shape, (1, 3))
        self.assertEqual(K.B.shape, (0, 3))

    def test_sizes_from_d_with_empty_state(self):
        K = StateSpaceSystem([], [], [], [[1.0, 2.0]])
        self.assertEqual((K.n_outputs, K.n_inputs), (1, 2))
        self.assertEqual(K.n_states, 0)

    def test_identity_and_zero(self):
        assert_allclose(StateSpaceSystem.identity(3).D, np.eye(3))
        assert_allclose(StateSpaceSystem.zero(2, 3).D, np.zeros((2, 3)))

    def test_static_evaluate_is_d(self):
        K = StateSpaceSystem.static([[2.0, 0.0], [0.0, 3.0]])
        assert_allclose(K.evaluate(5j), K.D)

    def test_static_has_no_poles(self):
        self.assertEqual(StateSpaceSystem.static(1.0).poles().size, 0)


class TestImmutability(StateSpaceTestCase):
    """Matrices are copied and read-only."""

    def test_matrices_are_read_only(self):
        with self.assertRaises(ValueError):
            self.first_order.A[0, 0] = 5.0

    def test_input_arrays_are_copied(self):
        A = np.array([[-1.0]])
        G = StateSpaceSystem(A, [[1.0]], [[1.0]], [[0.0]])
        A[0, 0] = 10.0
        self.assertEqual(G.A[0, 0], -1.0)

    def test_cannot_rebind_attributes(self):
        with self.assertRaises(Exception):
            self.first_order.A = np.eye(1)


class TestEvaluation(StateSpaceTestCase):
    """Point evaluation and poles."""

    def test_evaluate_first_order(self):
        assert_allclose(self.first_order.evaluate(0.0), [[1.0]])
        assert_allclose(self.first_order.evaluate(1j), [[1.0 / (1.0 + 1j)]])

    def test_poles(self):
        assert_allclose(np.sort(self.mimo.poles().real), [-3.0, -1.0])

    def test_double_integrator_poles(self):
        assert_allclose(self.double_int.poles(), [0.0, 0.0])

    def test_matrices_tuple(self):
        A, B, C, D = self.first_order.matrices()
        self.assertIs(A, self.first_order.A)
        self.assertIs(D, self.first_order.D)


class TestOperators(StateSpaceTestCase):
    """Operator sugar delegates to the algebra."""

    def test_scalar_times_system(self):
        G = 3.0 * self.first_order
        assert_allclose(G.evaluate(2j), 3.0 * self.first_order.evaluate(2j))
        self.assertEqual(G.n_states, 1)

    def test_product_order(self):
        # G1 * G2 applies G2 first: shapes (1x2) * (2x2)
        row = StateSpaceSystem.static([[1.0, -1.0]])
        H = row * self.mimo
        self.assertEqual(H.shape, (1, 2))
        assert_allclose(H.evaluate(1j), row.D @ self.mimo.evaluate(1j))

    def test_addition(self):
        G = self.first_order + self.first_order
        assert_allclose(G.evaluate(0.5j), 2.0 * self.first_order.evaluate(0.5j))

    def test_scalar_addition_broadcasts(self):
        G = self.mimo + 1.0
        assert_allclose(G.evaluate(1j), self.mimo.evaluate(1j) + np.eye(2))

    def test_subtraction_cancels(self):
        G = self.first_order - self.first_order
        assert_allclose(G.evaluate(0.3j), [[0.0]], atol=1e-14)

    def test_negation(self):
        assert_allclose((-self.first_order).evaluate(1j), -self.first_order.evaluate(1j))

    def test_rational_operand(self):
        W = RationalSystem.from_coefficients([1.0], [1.0, 2.0])
        G = self.first_order * W
        expected = self.first_order.evaluate(1j) * W.evaluate(1j)
        assert_allclose(G.evaluate(1j), expected)


def test_repr_mentions_dimensions():
    G = StateSpaceSystem.static([[1.0, 2.0]])
    assert "n_inputs=2" in repr(G)
    assert "n_states=0" in repr(G)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
