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
Unit Tests for Structural Analysis

Tests cover:
- Continuous-time stability classification
- Controllability and observability rank tests with mode reporting
- Minimal realization (state elimination preserving the transfer matrix)
- SystemAnalysis wrapper
"""

import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose

from loopshape.systems.analysis import (
    SystemAnalysis,
    analyze_controllability,
    analyze_observability,
    analyze_stability,
    minimal_realization,
)
from loopshape.systems.rational import RationalSystem
from loopshape.systems.state_space import StateSpaceSystem


@pytest.fixture
def uncontrollable():
    """Second mode (s = -2) is not driven by the input."""
    return StateSpaceSystem(np.diag([-1.0, -2.0]), [[1.0], [0.0]], [[1.0, 1.0]], [[0.0]])


@pytest.fixture
def unobservable():
    """First mode (s = -1) never reaches the output."""
    return StateSpaceSystem(np.diag([-1.0, -2.0]), [[1.0], [1.0]], [[0.0, 1.0]], [[0.0]])


class TestStability:
    def test_stable(self):
        info = analyze_stability(np.array([[0.0, 1.0], [-2.0, -3.0]]))
        assert info["is_stable"]
        assert not info["is_unstable"]
        assert_allclose(info["max_real_part"], -1.0)
        assert_allclose(info["stability_margin"], 1.0)

    def test_unstable(self):
        info = analyze_stability(np.array([[1.0]]))
        assert info["is_unstable"]
        assert not info["is_stable"]

    def test_marginal(self):
        info = analyze_stability(np.array([[0.0, 1.0], [-4.0, 0.0]]))
        assert info["is_marginally_stable"]
        assert not info["is_stable"]
        assert not info["is_unstable"]

    def test_static_system_is_stable(self):
        info = analyze_stability(np.zeros((0, 0)))
        assert info["is_stable"]
        assert info["max_real_part"] == float("-inf")
        assert info["eigenvalues"].size == 0

    def test_non_square_raises(self):
        with pytest.raises(ValueError):
            analyze_stability(np.ones((2, 3)))


class TestControllability:
    def test_controllable(self):
        A = np.array([[0.0, 1.0], [0.0, 0.0]])
        B = np.array([[0.0], [1.0]])
        info = analyze_controllability(A, B)
        assert info["is_controllable"]
        assert info["rank"] == 2
        assert info["uncontrollable_modes"] is None
        assert_allclose(info["controllability_matrix"], [[0.0, 1.0], [1.0, 0.0]])

    def test_uncontrollable_mode_is_reported(self, uncontrollable):
        info = analyze_controllability(uncontrollable.A, uncontrollable.B)
        assert not info["is_controllable"]
        assert info["rank"] == 1
        assert_allclose(info["uncontrollable_modes"], [-2.0])

    def test_zero_input_matrix(self):
        info = analyze_controllability(np.diag([-1.0, -3.0]), np.zeros((2, 1)))
        assert info["rank"] == 0
        assert_allclose(np.sort(info["uncontrollable_modes"].real), [-3.0, -1.0])

    def test_row_mismatch_raises(self):
        with pytest.raises(ValueError):
            analyze_controllability(np.eye(2), np.ones((3, 1)))


class TestObservability:
    def test_observable(self, uncontrollable):
        info = analyze_observability(uncontrollable.A, uncontrollable.C)
        assert info["is_observable"]
        assert info["unobservable_modes"] is None

    def test_unobservable_mode_is_reported(self, unobservable):
        info = analyze_observability(unobservable.A, unobservable.C)
        assert not info["is_observable"]
        assert info["rank"] == 1
        assert_allclose(info["unobservable_modes"], [-1.0])

    def test_observability_matrix_layout(self):
        A = np.array([[0.0, 1.0], [0.0, 0.0]])
        C = np.array([[1.0, 0.0]])
        info = analyze_observability(A, C)
        assert_allclose(info["observability_matrix"], [[1.0, 0.0], [0.0, 1.0]])

    def test_column_mismatch_raises(self):
        with pytest.raises(ValueError):
            analyze_observability(np.eye(2), np.ones((1, 3)))


class TestMinimalRealization:
    def test_uncontrollable_state_removed(self, uncontrollable):
        G = minimal_realization(uncontrollable)
        assert G.n_states == 1
        for s in (0.0, 1j, 4j):
            assert_allclose(G.evaluate(s), [[1.0 / (s + 1.0)]], atol=1e-12)

    def test_unobservable_state_removed(self, unobservable):
        G = minimal_realization(unobservable)
        assert G.n_states == 1
        assert_allclose(G.poles(), [-2.0])

    def test_pole_zero_cancellation(self):
        # (s + 1) / ((s + 1)(s + 2)) in controllable canonical form
        R = RationalSystem.from_coefficients([1.0, 1.0], [1.0, 3.0, 2.0])
        full = R.to_realization()
        assert full.n_states == 2
        G = minimal_realization(full)
        assert G.n_states == 1
        assert_allclose(G.evaluate(2j), [[1.0 / (2j + 2.0)]], atol=1e-12)

    def test_minimal_system_unchanged_in_size(self):
        P = RationalSystem.from_coefficients([10.0], [1.0, 0.0, -1.0]).to_realization()
        assert minimal_realization(P).n_states == 2

    def test_static_system(self):
        K = StateSpaceSystem.static([[1.0, 2.0]])
        assert minimal_realization(K) is K

    def test_feedthrough_preserved(self):
        G = StateSpaceSystem(np.diag([-1.0, -2.0]), [[1.0], [0.0]], [[1.0, 1.0]], [[0.5]])
        assert_allclose(minimal_realization(G).D, [[0.5]])

    def test_info_report(self, uncontrollable):
        G, info = minimal_realization(uncontrollable, return_info=True)
        assert info == {
            "original_states": 2,
            "controllable_states": 1,
            "minimal_states": 1,
            "removed_states": 1,
        }

    def test_loose_tolerance_removes_weak_mode(self):
        # Mode at -2 is driven with strength 1e-7
        G = StateSpaceSystem(np.diag([-1.0, -2.0]), [[1.0], [1e-7]], [[1.0, 1.0]], [[0.0]])
        assert minimal_realization(G).n_states == 2
        assert minimal_realization(G, tolerance=1e-5).n_states == 1

    def test_debug_log_on_reduction(self, uncontrollable, caplog):
        with caplog.at_level(logging.DEBUG, logger="loopshape.systems.analysis"):
            minimal_realization(uncontrollable)
        assert "removed 1 of 2 states" in caplog.text


class TestSystemAnalysis:
    def test_wrapper_routes_to_functions(self, uncontrollable):
        analysis = SystemAnalysis(uncontrollable)
        assert analysis.stability()["is_stable"]
        assert not analysis.controllability()["is_controllable"]
        assert analysis.observability()["is_observable"]
        assert analysis.minimal().n_states == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
