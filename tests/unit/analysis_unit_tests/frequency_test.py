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
Unit Tests for Frequency Response Evaluation

Tests cover:
- Logarithmic grid construction and grid validation
- Evaluation of C (jωI - A)⁻¹ B + D, including static systems
- Detection of poles on the imaginary axis
- Singular values, sampled H∞ norm and peak frequency
- Coarse-grid warning
- Bode helpers (magnitude, unwrapped phase, channels)
"""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from loopshape.analysis.frequency import (
    FrequencyResponse,
    dc_gain,
    evaluate,
    frequency_grid,
    peak_frequency,
    peak_norm,
    singular_values,
)
from loopshape.exceptions import SingularFrequencyError
from loopshape.systems.algebra import feedback
from loopshape.systems.rational import RationalSystem
from loopshape.systems.state_space import StateSpaceSystem


@pytest.fixture
def first_order():
    """G(s) = 1 / (s + 1)"""
    return StateSpaceSystem([[-1.0]], [[1.0]], [[1.0]], [[0.0]])


@pytest.fixture
def resonant():
    """G(s) = 1 / (s² + 0.02 s + 1), damping ratio 0.01"""
    return RationalSystem.from_coefficients([1.0], [1.0, 0.02, 1.0]).to_realization()


@pytest.fixture
def grid():
    return frequency_grid(-3.0, 3.0, 300)


class TestFrequencyGrid:
    def test_endpoints(self):
        assert_allclose(frequency_grid(-1, 1, 3), [0.1, 1.0, 10.0])

    def test_defaults(self):
        w = frequency_grid()
        assert w.size == 600
        assert_allclose([w[0], w[-1]], [1e-3, 1e3])

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            frequency_grid(0, 1, 0)
        with pytest.raises(ValueError):
            frequency_grid(2, 1, 10)


class TestEvaluate:
    def test_first_order(self, first_order):
        response = evaluate(first_order, [0.0, 1.0])
        assert response.values.shape == (2, 1, 1)
        assert_allclose(response.values[:, 0, 0], [1.0, 1.0 / (1.0 + 1j)])

    def test_matches_point_evaluation(self, grid):
        G = StateSpaceSystem(
            [[-1.0, 0.5], [0.0, -3.0]],
            [[1.0, 0.0], [0.5, 1.0]],
            [[1.0, 0.0], [0.2, 1.0]],
            [[0.0, 0.1], [0.0, 0.0]],
        )
        response = evaluate(G, grid)
        for k in (0, 120, 299):
            assert_allclose(response.values[k], G.evaluate(1j * grid[k]))

    def test_static_system_is_constant(self, grid):
        K = StateSpaceSystem.static([[2.0, -1.0]])
        response = evaluate(K, grid)
        assert response.values.shape == (300, 1, 2)
        assert_allclose(response.values, np.broadcast_to([[2.0, -1.0]], (300, 1, 2)))

    def test_grid_order_is_preserved(self, first_order):
        w = [10.0, 0.1, 1.0]
        response = evaluate(first_order, w)
        assert_allclose(response.frequencies, w)
        assert_allclose(response.values[1, 0, 0], 1.0 / (1.0 + 0.1j))

    def test_zero_frequency_allowed(self, first_order):
        assert_allclose(evaluate(first_order, [0.0]).values[0], [[1.0]])

    def test_integrator_pole_at_origin(self):
        integrator = StateSpaceSystem([[0.0]], [[1.0]], [[1.0]], [[0.0]])
        with pytest.raises(SingularFrequencyError) as exc_info:
            evaluate(integrator, [0.0, 1.0])
        assert exc_info.value.frequency == 0.0

    def test_undamped_pole_on_axis(self):
        oscillator = StateSpaceSystem([[0.0, 1.0], [-4.0, 0.0]], [[0.0], [1.0]], [[1.0, 0.0]], [[0.0]])
        with pytest.raises(SingularFrequencyError) as exc_info:
            evaluate(oscillator, [2.0])
        assert exc_info.value.frequency == 2.0
        assert_allclose(evaluate(oscillator, [1.0]).values[0], [[1.0 / 3.0]])

    @pytest.mark.parametrize(
        "frequencies",
        [[], [-1.0, 1.0], [np.nan], [[1.0, 2.0], [3.0, 4.0]]],
    )
    def test_invalid_grid_raises(self, first_order, frequencies):
        with pytest.raises(ValueError):
            evaluate(first_order, frequencies)


class TestCoarseGridWarning:
    def test_coarse_grid_warns(self, first_order):
        with pytest.warns(UserWarning, match="points per decade"):
            evaluate(first_order, [0.5, 2.0])

    def test_dense_grid_is_silent(self, first_order, grid):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            evaluate(first_order, grid)

    def test_single_point_is_silent(self, first_order):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            evaluate(first_order, [1.0])


class TestNorms:
    def test_singular_values_descending(self, grid):
        K = StateSpaceSystem.static(np.diag([1.0, 3.0]))
        sv = singular_values(evaluate(K, grid))
        assert sv.shape == (300, 2)
        assert_allclose(sv[0], [3.0, 1.0])

    def test_singular_values_without_inputs(self, grid):
        K = StateSpaceSystem.static(np.zeros((2, 0)))
        response = evaluate(K, grid)
        assert singular_values(response).shape == (300, 0)
        assert peak_norm(response) == 0.0

    def test_peak_norm_first_order(self, first_order, grid):
        # Maximum at the lowest grid frequency 1e-3
        assert_allclose(peak_norm(evaluate(first_order, grid)), 1.0 / np.sqrt(1.0 + 1e-6))

    def test_peak_norm_is_order_and_duplicate_invariant(self, resonant, grid):
        base = peak_norm(evaluate(resonant, grid))
        shuffled = np.random.default_rng(0).permutation(grid)
        doubled = np.concatenate([grid, grid[::3]])
        assert peak_norm(evaluate(resonant, grid[::-1])) == base
        assert peak_norm(evaluate(resonant, shuffled)) == base
        assert peak_norm(evaluate(resonant, doubled)) == base

    def test_peak_norm_is_a_lower_bound(self, resonant):
        dense = np.linspace(0.99, 1.01, 2001)
        true_peak = 1.0 / (2 * 0.01 * np.sqrt(1 - 0.01**2))
        assert_allclose(peak_norm(evaluate(resonant, dense)), true_peak, rtol=1e-4)

        with pytest.warns(UserWarning):
            coarse = peak_norm(evaluate(resonant, [0.5, 2.0]))
        assert coarse < true_peak / 10

    def test_peak_frequency_of_resonance(self, resonant):
        dense = np.linspace(0.99, 1.01, 2001)
        assert_allclose(peak_frequency(evaluate(resonant, dense)), np.sqrt(1 - 2 * 0.01**2), atol=2e-5)

    def test_peak_frequency_ties_go_lowest(self, grid):
        K = StateSpaceSystem.static(2.0)
        assert peak_frequency(evaluate(K, grid)) == grid[0]
        assert peak_frequency(evaluate(K, grid[::-1])) == grid[0]

    def test_dc_gain_of_unity_feedback(self):
        P = RationalSystem.from_coefficients([10.0], [1.0, 0.0, -1.0]).to_realization()
        T = feedback(P, StateSpaceSystem.static(1.0))
        assert_allclose(dc_gain(T), [[10.0 / 9.0]])


class TestFrequencyResponse:
    def test_bode_helpers(self, first_order):
        response = evaluate(first_order, [1.0])
        assert_allclose(response.magnitude_db[0, 0, 0], -10 * np.log10(2.0))
        assert_allclose(response.phase_deg[0, 0, 0], -45.0)

    def test_phase_is_unwrapped(self):
        # Triple pole: phase runs continuously to -270 degrees
        G = RationalSystem.from_coefficients([1.0], [1.0, 3.0, 3.0, 1.0]).to_realization()
        phase = evaluate(G, frequency_grid(-2, 3, 200)).phase_deg[:, 0, 0]
        assert phase[-1] < -260.0
        assert np.all(np.diff(phase) < 1e-9)

    def test_channel_and_shape(self, grid):
        G = StateSpaceSystem.static([[1.0, 2.0], [3.0, 4.0]])
        response = evaluate(G, grid)
        assert response.shape == (2, 2)
        assert_allclose(response.channel(1, 0), np.full(300, 3.0))

    def test_arrays_are_read_only(self, first_order, grid):
        response = evaluate(first_order, grid)
        with pytest.raises(ValueError):
            response.values[0, 0, 0] = 0.0
        with pytest.raises(ValueError):
            response.frequencies[0] = 0.0

    def test_shape_validation(self):
        with pytest.raises(ValueError):
            FrequencyResponse(np.array([1.0, 2.0]), np.zeros((3, 1, 1)))
        with pytest.raises(ValueError):
            FrequencyResponse(np.array([1.0]), np.zeros((1, 1)))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
