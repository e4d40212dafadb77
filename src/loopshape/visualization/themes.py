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
Plot Themes

Palettes and figure styling shared by the frequency-domain plots.

Usage
-----
>>> from loopshape.visualization.themes import ColorSchemes, PlotThemes
>>>
>>> colors = ColorSchemes.get_colors("colorblind_safe", n_colors=3)
>>> fig = PlotThemes.apply_theme(fig, theme="publication")
"""

from typing import Dict, List, Optional, Union

import plotly.graph_objects as go


class ColorSchemes:
    """
    Named categorical palettes.

    Examples
    --------
    >>> ColorSchemes.get_colors("plotly", n_colors=2)
    ['#636EFA', '#EF553B']
    """

    PLOTLY = [
        "#636EFA",
        "#EF553B",
        "#00CC96",
        "#AB63FA",
        "#FFA15A",
        "#19D3F3",
        "#FF6692",
        "#B6E880",
        "#FF97FF",
        "#FECB52",
    ]

    # Wong palette
    COLORBLIND_SAFE = [
        "#0173B2",
        "#DE8F05",
        "#029E73",
        "#CC78BC",
        "#CA9161",
        "#949494",
        "#ECE133",
        "#56B4E9",
    ]

    TABLEAU = [
        "#4E79A7",
        "#F28E2B",
        "#E15759",
        "#76B7B2",
        "#59A14F",
        "#EDC948",
        "#B07AA1",
        "#FF9DA7",
        "#9C755F",
        "#BAB0AC",
    ]

    @classmethod
    def palettes(cls) -> Dict[str, List[str]]:
        return {
            "plotly": cls.PLOTLY,
            "colorblind_safe": cls.COLORBLIND_SAFE,
            "tableau": cls.TABLEAU,
        }

    @classmethod
    def get_colors(cls, scheme: str = "plotly", n_colors: Optional[int] = None) -> List[str]:
        """
        Palette by name, cycled to ``n_colors`` entries if given.

        Raises
        ------
        ValueError
            If the scheme is unknown
        """
        key = scheme.lower().replace("-", "_").replace(" ", "_")
        if key == "wong":
            key = "colorblind_safe"
        palettes = cls.palettes()
        if key not in palettes:
            raise ValueError(f"Unknown color scheme '{scheme}'. Available: {sorted(palettes)}")

        palette = palettes[key]
        if n_colors is None:
            return list(palette)
        return [palette[i % len(palette)] for i in range(n_colors)]


class PlotThemes:
    """
    Figure-level styling presets.

    A theme is a dict with optional keys ``template``, ``font_family``,
    ``font_size``, ``line_width`` and ``showlegend``. ``apply_theme`` accepts
    a preset name or such a dict.
    """

    DEFAULT = {
        "template": "plotly_white",
        "font_family": "Arial, sans-serif",
        "font_size": 12,
        "line_width": 2,
    }

    PUBLICATION = {
        "template": "simple_white",
        "font_family": "Times New Roman, serif",
        "font_size": 14,
        "line_width": 2.5,
        "showlegend": True,
    }

    DARK = {
        "template": "plotly_dark",
        "font_family": "Arial, sans-serif",
        "font_size": 12,
        "line_width": 2,
    }

    @classmethod
    def presets(cls) -> Dict[str, dict]:
        return {"default": cls.DEFAULT, "publication": cls.PUBLICATION, "dark": cls.DARK}

    @classmethod
    def resolve(cls, theme: Union[str, dict]) -> dict:
        if isinstance(theme, dict):
            return theme
        if not isinstance(theme, str):
            raise TypeError("theme must be str or dict")
        presets = cls.presets()
        if theme.lower() not in presets:
            raise ValueError(f"Unknown theme '{theme}'. Available: {sorted(presets)}")
        return presets[theme.lower()]

    @classmethod
    def apply_theme(cls, fig: go.Figure, theme: Union[str, dict] = "default") -> go.Figure:
        """
        Style a figure in place and return it.

        Examples
        --------
        >>> fig = PlotThemes.apply_theme(fig, "dark")
        >>> fig = PlotThemes.apply_theme(fig, {"font_size": 16})
        """
        config = cls.resolve(theme)

        if "template" in config:
            fig.update_layout(template=config["template"])
        font = {}
        if "font_family" in config:
            font["family"] = config["font_family"]
        if "font_size" in config:
            font["size"] = config["font_size"]
        if font:
            fig.update_layout(font=font)
        if "showlegend" in config:
            fig.update_layout(showlegend=config["showlegend"])
        if "line_width" in config:
            for trace in fig.data:
                if hasattr(trace, "line"):
                    trace.line.width = config["line_width"]
        return fig


__all__ = [
    "ColorSchemes",
    "PlotThemes",
]
