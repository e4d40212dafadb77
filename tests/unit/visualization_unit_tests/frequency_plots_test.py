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
Unit Tests for Frequency-Domain Plots

Tests cover:
- Singular-value plots for one or several responses, with a gamma line
- Bode plots of a single channel
- µ bound and D-K history plots
- Theme handling
"""

import numpy as np
import plotly.graph_objects as go
import pytest
from numpy.testing import assert_allclose

from loopshape.analysis.frequency import evaluate, frequency_grid
from loopshape.control.dk_iteration import DKIterationRecord, DKResult, DKState
from loopshape.control.mu import MuBounds
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.visualization import FrequencyPlotter


@pytest.fixture
def plotter():
    return FrequencyPlotter()


@pytest.fixture
def mimo_response():
    G = StateSpaceSystem(
        [[-1.0, 0.5], [0.0, -3.0]],
        [[1.0, 0.0], [0.5, 1.0]],
        [[1.0, 0.0], [0.2, 1.0]],
        [[0.0, 0.1], [0.0, 0.0]],
    )
    return evaluate(G, frequency_grid(-2, 2, 80))


@pytest.fixture
def siso_response():
    G = StateSpaceSystem([[-1.0]], [[1.0]], [[1.0]], [[0.0]])
    return evaluate(G, frequency_grid(-2, 2, 80))


@pytest.fixture
def bounds():
    w = frequency_grid(-1, 1, 30)
    upper = 1.0 / (1.0 + (w - 1.0) ** 2)
    return MuBounds(w, upper, 0.9 * upper)


class TestSingularValues:
    def test_one_trace_per_singular_value(self, plotter, mimo_response):
        fig = plotter.plot_singular_values(mimo_response)
        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 2
        assert fig.layout.xaxis.type == "log"

    def test_values_in_db(self, plotter, siso_response):
        fig = plotter.plot_singular_values(siso_response)
        w = siso_response.frequencies
        assert_allclose(fig.data[0].y, -10 * np.log10(1 + w**2))

    def test_several_responses(self, plotter, mimo_response, siso_response):
        fig = plotter.plot_singular_values({"open": mimo_response, "closed": siso_response})
        assert len(fig.data) == 3
        assert fig.data[0].name == "open"
        assert fig.data[2].name == "closed"

    def test_gamma_line(self, plotter, siso_response):
        fig = plotter.plot_singular_values(siso_response, gamma=0.5)
        assert len(fig.layout.shapes) == 1
        assert_allclose(fig.layout.shapes[0].y0, 20 * np.log10(0.5))

    def test_unsorted_grid_is_plotted_in_order(self, plotter):
        G = StateSpaceSystem([[-1.0]], [[1.0]], [[1.0]], [[0.0]])
        w = frequency_grid(-2, 2, 80)[::-1]
        fig = plotter.plot_singular_values(evaluate(G, w))
        assert np.all(np.diff(fig.data[0].x) > 0)


class TestBode:
    def test_magnitude_and_phase(self, plotter, siso_response):
        fig = plotter.plot_bode(siso_response)
        assert len(fig.data) == 2
        assert fig.data[1].y[-1] < -80.0

    def test_channel_selection(self, plotter, mimo_response):
        fig = plotter.plot_bode(mimo_response, output=1, input=0)
        expected = 20 * np.log10(np.abs(mimo_response.channel(1, 0)))
        assert_allclose(fig.data[0].y, expected)
        assert "output 2, input 1" in fig.layout.title.text


class TestRobustnessPlots:
    def test_mu_bounds(self, plotter, bounds):
        fig = plotter.plot_mu_bounds(bounds)
        assert len(fig.data) == 3
        assert fig.data[2].x[0] == bounds.peak_frequency

    def test_dk_history(self, plotter, bounds):
        K = StateSpaceSystem.static(1.0)
        history = (
            DKIterationRecord(1, np.ones(2), K, 2.0, bounds, 1.5),
            DKIterationRecord(2, np.ones(2), K, 1.8, bounds, 1.2),
        )
        fig = plotter.plot_dk_history(DKResult(DKState.CONVERGED, history))
        assert len(fig.data) == 2
        assert list(fig.data[0].y) == [1.5, 1.2]
        assert list(fig.data[1].y) == [2.0, 1.8]

    def test_empty_history(self, plotter):
        with pytest.raises(ValueError):
            plotter.plot_dk_history([])


class TestThemes:
    def test_theme_override(self, plotter, siso_response):
        fig = plotter.plot_singular_values(siso_response, theme="dark")
        assert fig.layout.template.layout.paper_bgcolor is not None

    def test_default_theme_validation(self):
        with pytest.raises(ValueError):
            FrequencyPlotter(default_theme="neon")
        with pytest.raises(ValueError):
            FrequencyPlotter(color_scheme="rainbow")

    def test_list_available_themes(self):
        assert FrequencyPlotter.list_available_themes() == ["dark", "default", "publication"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
