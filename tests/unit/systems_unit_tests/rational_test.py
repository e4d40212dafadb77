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
Unit Tests for RationalSystem

Tests cover:
- Coefficient normalization and validation
- Construction from sympy expressions and strings
- Poles, zeros and properness
- Controllable canonical realization
"""

import numpy as np
import pytest
import sympy as sp
from numpy.testing import assert_allclose

from loopshape.exceptions import MalformedSystemError
from loopshape.systems.rational import RationalSystem
from loopshape.systems.state_space import StateSpaceSystem


@pytest.fixture
def plant():
    """P(s) = 10 / ((s - 1)(s + 1))"""
    return RationalSystem.from_coefficients([10.0], [1.0, 0.0, -1.0])


@pytest.fixture
def wt():
    """Wt(s) = 2.4 s / (s + 4)"""
    return RationalSystem.from_coefficients([2.4, 0.0], [1.0, 4.0])


class TestConstruction:
    def test_leading_zeros_are_stripped(self):
        G = RationalSystem.from_coefficients([0.0, 1.0], [0.0, 1.0, 2.0])
        assert_allclose(G.num, [1.0])
        assert_allclose(G.den, [1.0, 2.0])

    def test_zero_numerator_is_kept(self):
        G = RationalSystem.from_coefficients([0.0], [1.0, 1.0])
        assert_allclose(G.num, [0.0])
        assert G.evaluate(1j) == 0

    def test_zero_denominator_raises(self):
        with pytest.raises(MalformedSystemError):
            RationalSystem.from_coefficients([1.0], [0.0, 0.0])

    def test_non_finite_coefficients_raise(self):
        with pytest.raises(MalformedSystemError):
            RationalSystem.from_coefficients([np.inf], [1.0, 1.0])

    def test_two_dimensional_coefficients_raise(self):
        with pytest.raises(MalformedSystemError):
            RationalSystem.from_coefficients([[1.0, 2.0]], [1.0, 1.0])

    def test_coefficients_are_read_only(self, plant):
        with pytest.raises(ValueError):
            plant.den[0] = 2.0


class TestFromExpression:
    def test_string_expression(self):
        W = RationalSystem.from_expression("2.4*s/(s+4)")
        assert_allclose(W.num, [2.4, 0.0])
        assert_allclose(W.den, [1.0, 4.0])

    def test_factored_denominator_is_expanded(self):
        P = RationalSystem.from_expression("10/((s-1)*(s+1))")
        assert_allclose(P.num, [10.0])
        assert_allclose(P.den, [1.0, 0.0, -1.0])

    def test_sympy_expression(self):
        s = sp.Symbol("s")
        G = RationalSystem.from_expression((s + 2) / (s**2 + 3 * s + 2))
        assert_allclose(G.den, [1.0, 3.0, 2.0])

    def test_expanded_numerator(self):
        G = RationalSystem.from_expression("(s+1)*(s+3)/(s**3+2*s+5)")
        assert_allclose(G.num, [1.0, 4.0, 3.0])
        assert G.order == 3

    def test_custom_variable(self):
        G = RationalSystem.from_expression("1/(p+3)", variable="p")
        assert_allclose(G.den, [1.0, 3.0])

    def test_extra_symbol_raises(self):
        with pytest.raises(MalformedSystemError, match="symbols other than"):
            RationalSystem.from_expression("k/(s+1)")

    def test_unparsable_raises(self):
        with pytest.raises(MalformedSystemError):
            RationalSystem.from_expression("1/(s+")

    def test_complex_coefficient_raises(self):
        with pytest.raises(MalformedSystemError, match="real polynomials"):
            RationalSystem.from_expression("I*s/(s+1)")


class TestProperties:
    def test_poles_and_zeros(self, plant, wt):
        assert_allclose(np.sort(plant.poles().real), [-1.0, 1.0])
        assert_allclose(wt.zeros(), [0.0])

    def test_order_and_relative_degree(self, plant, wt):
        assert plant.order == 2
        assert plant.relative_degree == 2
        assert wt.relative_degree == 0
        assert wt.is_proper

    def test_improper(self):
        G = RationalSystem.from_coefficients([1.0, 0.0, 0.0], [1.0, 1.0])
        assert not G.is_proper

    def test_evaluate(self, plant):
        # 10 / ((2j)^2 - 1) = -2
        assert_allclose(plant.evaluate(2j), -2.0)

    def test_gain(self):
        G = RationalSystem.from_coefficients([1.0], [1.0, 1.0], gain=4.0)
        assert_allclose(G.evaluate(0.0), 4.0)

    def test_negation(self, wt):
        assert_allclose((-wt).evaluate(1j), -wt.evaluate(1j))


class TestRealization:
    def test_strictly_proper_realization(self, plant):
        G = plant.to_realization()
        assert isinstance(G, StateSpaceSystem)
        assert G.n_states == 2
        assert_allclose(G.D, [[0.0]])
        for s in (0.5j, 2j, 1.0 + 3j):
            assert_allclose(G.evaluate(s)[0, 0], plant.evaluate(s))

    def test_biproper_realization(self, wt):
        G = wt.to_realization()
        assert_allclose(G.A, [[-4.0]])
        assert_allclose(G.B, [[1.0]])
        assert_allclose(G.C, [[-9.6]])
        assert_allclose(G.D, [[2.4]])

    def test_non_monic_denominator(self):
        R = RationalSystem.from_coefficients([3.0, 1.0], [2.0, 4.0, 2.0])
        G = R.to_realization()
        assert_allclose(G.evaluate(1.5j)[0, 0], R.evaluate(1.5j))

    def test_poles_match(self, plant):
        assert_allclose(
            np.sort(plant.to_realization().poles().real),
            np.sort(plant.poles().real),
            atol=1e-12,
        )

    def test_constant_is_static(self):
        G = RationalSystem.from_coefficients([5.0], [2.0]).to_realization()
        assert G.is_static
        assert_allclose(G.D, [[2.5]])

    def test_improper_raises(self):
        G = RationalSystem.from_coefficients([1.0, 0.0], [1.0])
        with pytest.raises(MalformedSystemError, match="improper"):
            G.to_realization()


class TestOperatorSugar:
    def test_product_with_rational(self, plant, wt):
        L = wt * plant
        assert isinstance(L, StateSpaceSystem)
        assert_allclose(L.evaluate(2j)[0, 0], wt.evaluate(2j) * plant.evaluate(2j))

    def test_scalar_product(self, wt):
        L = 2.0 * wt
        assert_allclose(L.evaluate(1j)[0, 0], 2.0 * wt.evaluate(1j))

    def test_sum(self, plant, wt):
        G = plant + wt
        assert_allclose(G.evaluate(1j)[0, 0], plant.evaluate(1j) + wt.evaluate(1j))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
