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
Frequency-Domain Plots

Optional reporting layer: renders data returned by the pipeline, never
computes it. Nothing in the core imports this module.

Main Class
----------
FrequencyPlotter
    plot_singular_values() : σ(G(jω)) of one or several responses, with γ line
    plot_bode() : Magnitude and phase of one channel
    plot_mu_bounds() : Upper and lower µ bounds
    plot_dk_history() : Peak µ and γ per D-K iteration

Usage
-----
>>> from loopshape.visualization import FrequencyPlotter
>>>
>>> plotter = FrequencyPlotter()
>>> fig = plotter.plot_singular_values(
...     report["response"], gamma=report["synthesis"]["gamma"], theme="publication"
... )
>>> fig.show()
"""

from typing import Dict, Optional, Sequence, Union

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from loopshape.analysis.frequency import FrequencyResponse, singular_values
from loopshape.control.dk_iteration import DKIterationRecord, DKResult
from loopshape.control.mu import MuBounds
from loopshape.visualization.themes import ColorSchemes, PlotThemes


def _db(values: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore"):
        return 20.0 * np.log10(np.asarray(values, dtype=float))


class FrequencyPlotter:
    """
    Plotly renderer for frequency responses, µ bounds and D-K histories.

    Attributes
    ----------
    default_theme : str
        Theme applied when a method gets ``theme=None``
    color_scheme : str
        Palette name passed to ``ColorSchemes.get_colors``

    Examples
    --------
    >>> plotter = FrequencyPlotter(default_theme="dark")
    >>> fig = plotter.plot_mu_bounds(bounds)
    """

    def __init__(self, default_theme: str = "default", color_scheme: str = "plotly"):
        PlotThemes.resolve(default_theme)
        ColorSchemes.get_colors(color_scheme)
        self.default_theme = default_theme
        self.color_scheme = color_scheme

    def _finish(self, fig: go.Figure, title: str, theme: Optional[str]) -> go.Figure:
        fig.update_layout(title=title, width=800)
        return PlotThemes.apply_theme(fig, theme or self.default_theme)

    # =========================================================================
    # Singular values
    # =========================================================================

    def plot_singular_values(
        self,
        responses: Union[FrequencyResponse, Dict[str, FrequencyResponse]],
        gamma: Optional[float] = None,
        title: str = "Singular Values",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Singular values in dB against log frequency.

        Parameters
        ----------
        responses : FrequencyResponse or Dict[str, FrequencyResponse]
            One response, or several keyed by legend label
        gamma : Optional[float]
            Draw a dashed line at 20·log10(γ)
        title : str
            Figure title
        theme : Optional[str]
            Theme name, defaults to ``default_theme``

        Returns
        -------
        go.Figure
            One trace per singular value and response
        """
        if isinstance(responses, FrequencyResponse):
            responses = {"σ": responses}
        colors = ColorSchemes.get_colors(self.color_scheme, n_colors=len(responses))

        fig = go.Figure()
        for color, (label, response) in zip(colors, responses.items()):
            order = np.argsort(response.frequencies)
            sv = singular_values(response)[order]
            for i in range(sv.shape[1]):
                fig.add_trace(
                    go.Scatter(
                        x=response.frequencies[order],
                        y=_db(sv[:, i]),
                        mode="lines",
                        name=label if i == 0 else f"{label} σ{i + 1}",
                        line=dict(color=color, dash="solid" if i == 0 else "dot"),
                    ),
                )

        if gamma is not None:
            fig.add_hline(
                y=float(_db(gamma)),
                line_dash="dash",
                line_color="gray",
                annotation_text=f"γ = {gamma:.4g}",
            )

        fig.update_xaxes(title_text="Frequency (rad/s)", type="log", showgrid=True)
        fig.update_yaxes(title_text="Singular value (dB)", showgrid=True)
        return self._finish(fig, title, theme)

    # =========================================================================
    # Bode
    # =========================================================================

    def plot_bode(
        self,
        response: FrequencyResponse,
        output: int = 0,
        input: int = 0,
        title: str = "Bode Plot",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """Magnitude (dB) and unwrapped phase (deg) of one channel."""
        order = np.argsort(response.frequencies)
        w = response.frequencies[order]
        H = response.channel(output, input)[order]
        mag_color, phase_color = ColorSchemes.get_colors(self.color_scheme, n_colors=2)

        fig = make_subplots(
            rows=2,
            cols=1,
            subplot_titles=("Magnitude", "Phase"),
            vertical_spacing=0.12,
            shared_xaxes=True,
        )
        fig.add_trace(
            go.Scatter(x=w, y=_db(np.abs(H)), mode="lines", line=dict(color=mag_color)),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Scatter(x=w, y=np.degrees(np.unwrap(np.angle(H))), mode="lines", line=dict(color=phase_color)),
            row=2,
            col=1,
        )
        fig.add_hline(y=0, line_dash="dash", line_color="gray", opacity=0.5, row=1, col=1)

        fig.update_xaxes(type="log", showgrid=True, row=1, col=1)
        fig.update_xaxes(title_text="Frequency (rad/s)", type="log", showgrid=True, row=2, col=1)
        fig.update_yaxes(title_text="Magnitude (dB)", row=1, col=1)
        fig.update_yaxes(title_text="Phase (deg)", row=2, col=1)
        fig.update_layout(height=700, showlegend=False)
        return self._finish(fig, f"{title} (output {output + 1}, input {input + 1})", theme)

    # =========================================================================
    # Robustness
    # =========================================================================

    def plot_mu_bounds(
        self,
        bounds: MuBounds,
        title: str = "Structured Singular Value",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """Upper and lower µ bounds with the peak marked."""
        order = np.argsort(bounds.frequencies)
        upper_color, lower_color = ColorSchemes.get_colors(self.color_scheme, n_colors=2)

        fig = go.Figure()
        fig.add_trace(
            go.Scatter(
                x=bounds.frequencies[order],
                y=bounds.upper[order],
                mode="lines",
                name="µ upper bound",
                line=dict(color=upper_color),
            ),
        )
        fig.add_trace(
            go.Scatter(
                x=bounds.frequencies[order],
                y=bounds.lower[order],
                mode="lines",
                name="µ lower bound",
                line=dict(color=lower_color, dash="dash"),
            ),
        )
        fig.add_trace(
            go.Scatter(
                x=[bounds.peak_frequency],
                y=[bounds.peak_upper],
                mode="markers",
                name=f"peak {bounds.peak_upper:.4g}",
                marker=dict(color=upper_color, symbol="x", size=10),
            ),
        )
        fig.update_xaxes(title_text="Frequency (rad/s)", type="log", showgrid=True)
        fig.update_yaxes(title_text="µ", showgrid=True)
        return self._finish(fig, title, theme)

    def plot_dk_history(
        self,
        history: Union[DKResult, Sequence[DKIterationRecord]],
        title: str = "D-K Iteration",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """Peak µ and achieved γ against the iteration index."""
        records = history.history if isinstance(history, DKResult) else tuple(history)
        if not records:
            raise ValueError("D-K history is empty")
        iterations = [record.iteration for record in records]
        mu_color, gamma_color = ColorSchemes.get_colors(self.color_scheme, n_colors=2)

        fig = go.Figure()
        fig.add_trace(
            go.Scatter(
                x=iterations,
                y=[record.peak_mu for record in records],
                mode="lines+markers",
                name="peak µ",
                line=dict(color=mu_color),
            ),
        )
        fig.add_trace(
            go.Scatter(
                x=iterations,
                y=[record.gamma for record in records],
                mode="lines+markers",
                name="γ",
                line=dict(color=gamma_color, dash="dash"),
            ),
        )
        fig.update_xaxes(title_text="Iteration", dtick=1)
        fig.update_yaxes(title_text="Value", showgrid=True)
        return self._finish(fig, title, theme)

    @staticmethod
    def list_available_themes():
        return sorted(PlotThemes.presets())


__all__ = [
    "FrequencyPlotter",
]
