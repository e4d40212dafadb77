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
Configuration Types

Defines the numerical knobs of the pipeline:
- Tolerances for algebraic-loop inversion, jω-axis pole detection and
  minimal-realization rank decisions
- The gamma bracket and iteration cap handed to the synthesis engine
- The frequency grid used for closed-loop validation

Every configuration is a ``total=False`` TypedDict: callers pass only the keys
they want to override and the ``resolve_*`` / ``validate_*`` helpers merge
them with the module defaults.

Usage
-----
>>> from loopshape.types.config import SynthesisConfig, validate_synthesis_config
>>>
>>> config: SynthesisConfig = {'gamma_low': 0.1, 'gamma_high': 8.0}
>>> config = validate_synthesis_config(config)
>>> config['tolerance']
0.001
"""

from typing import Optional

from typing_extensions import TypedDict

# ============================================================================
# Tolerances
# ============================================================================


class ToleranceConfig(TypedDict, total=False):
    """
    Numerical tolerances.

    Attributes
    ----------
    loop : float
        Relative threshold on the smallest singular value of ``I - L`` below
        which an algebraic loop is declared singular
    frequency : float
        Relative threshold on the smallest singular value of ``jωI - A``
        below which ω is declared a pole frequency
    minimal : float
        Relative rank threshold used when discarding uncontrollable and
        unobservable modes

    Examples
    --------
    >>> tolerances: ToleranceConfig = {'minimal': 1e-6}
    >>> resolve_tolerances(tolerances)['loop']
    1e-10
    """

    loop: float
    frequency: float
    minimal: float


DEFAULT_TOLERANCES: ToleranceConfig = {
    "loop": 1e-10,
    "frequency": 1e-12,
    "minimal": 1e-9,
}
"""
Default tolerances.

The minimal-realization tolerance decides which modes count as cancelled.
Use a tiny value for exact textbook data and a larger one for identified
models.
"""


def resolve_tolerances(overrides: Optional[ToleranceConfig] = None) -> ToleranceConfig:
    """
    Merge user overrides with ``DEFAULT_TOLERANCES``.

    Parameters
    ----------
    overrides : Optional[ToleranceConfig]
        Keys to override

    Returns
    -------
    ToleranceConfig
        Complete tolerance configuration

    Raises
    ------
    ValueError
        If a key is unknown or a value is not strictly positive
    """
    resolved: ToleranceConfig = dict(DEFAULT_TOLERANCES)  # type: ignore[assignment]
    if not overrides:
        return resolved

    for key, value in overrides.items():
        if key not in DEFAULT_TOLERANCES:
            raise ValueError(
                f"Unknown tolerance '{key}'. Choose from: {tuple(DEFAULT_TOLERANCES)}",
            )
        if not value > 0:
            raise ValueError(f"Tolerance '{key}' must be positive, got {value}")
        resolved[key] = float(value)  # type: ignore[literal-required]

    return resolved


# ============================================================================
# Synthesis
# ============================================================================


class SynthesisConfig(TypedDict, total=False):
    """
    Gamma bracket and stopping rule for H∞ synthesis.

    Attributes
    ----------
    gamma_low : float
        Lower end of the bracket searched for the achievable norm
    gamma_high : float
        Upper end of the bracket; synthesis fails if no controller achieves it
    tolerance : float
        Relative width ``(high - low) / high`` at which the search stops
    max_iter : int
        Cap on the number of engine evaluations

    Examples
    --------
    >>> config: SynthesisConfig = {
    ...     'gamma_low': 0.1,
    ...     'gamma_high': 8.0,
    ...     'tolerance': 1e-3,
    ... }
    """

    gamma_low: float
    gamma_high: float
    tolerance: float
    max_iter: int


DEFAULT_SYNTHESIS_CONFIG: SynthesisConfig = {
    "gamma_low": 1e-3,
    "gamma_high": 1e3,
    "tolerance": 1e-3,
    "max_iter": 60,
}


def validate_synthesis_config(config: Optional[SynthesisConfig] = None) -> SynthesisConfig:
    """
    Validate a synthesis configuration and fill in defaults.

    Parameters
    ----------
    config : Optional[SynthesisConfig]
        Partial configuration

    Returns
    -------
    SynthesisConfig
        Complete, validated configuration

    Raises
    ------
    ValueError
        If the bracket is empty or non-positive, the tolerance is not
        positive, or the iteration cap is below one

    Examples
    --------
    >>> validate_synthesis_config({'gamma_low': 0.1, 'gamma_high': 8.0})['max_iter']
    60
    >>> validate_synthesis_config({'gamma_low': 5.0, 'gamma_high': 1.0})  # ValueError
    """
    merged: SynthesisConfig = dict(DEFAULT_SYNTHESIS_CONFIG)  # type: ignore[assignment]
    if config:
        unknown = set(config) - set(DEFAULT_SYNTHESIS_CONFIG)
        if unknown:
            raise ValueError(
                f"Unknown synthesis option(s) {sorted(unknown)}. "
                f"Choose from: {tuple(DEFAULT_SYNTHESIS_CONFIG)}",
            )
        merged.update(config)

    gamma_low = float(merged["gamma_low"])
    gamma_high = float(merged["gamma_high"])
    if not 0 < gamma_low < gamma_high:
        raise ValueError(
            f"Gamma bracket must satisfy 0 < gamma_low < gamma_high, "
            f"got ({gamma_low}, {gamma_high})",
        )
    if not merged["tolerance"] > 0:
        raise ValueError(f"tolerance must be positive, got {merged['tolerance']}")
    if int(merged["max_iter"]) < 1:
        raise ValueError(f"max_iter must be at least 1, got {merged['max_iter']}")

    return {
        "gamma_low": gamma_low,
        "gamma_high": gamma_high,
        "tolerance": float(merged["tolerance"]),
        "max_iter": int(merged["max_iter"]),
    }


# ============================================================================
# Frequency Grid
# ============================================================================


class GridConfig(TypedDict, total=False):
    """
    Logarithmic frequency grid specification (decades of rad/s).

    Attributes
    ----------
    start_decade : float
        log10 of the lowest frequency
    stop_decade : float
        log10 of the highest frequency
    num : int
        Number of points
    """

    start_decade: float
    stop_decade: float
    num: int


DEFAULT_GRID: GridConfig = {
    "start_decade": -3.0,
    "stop_decade": 3.0,
    "num": 600,
}


# ============================================================================
# Pipeline
# ============================================================================


class PipelineConfig(TypedDict, total=False):
    """
    Settings of one loop-shaping pipeline run.

    Attributes
    ----------
    synthesis : SynthesisConfig
        Gamma bracket and stopping rule
    grid : GridConfig
        Validation grid, used when ``run`` gets no explicit frequencies
    tolerances : ToleranceConfig
        Numerical tolerances

    Examples
    --------
    >>> config: PipelineConfig = {
    ...     "synthesis": {"gamma_low": 0.1, "gamma_high": 8.0},
    ...     "grid": {"start_decade": -2, "stop_decade": 4, "num": 1000},
    ... }
    """

    synthesis: SynthesisConfig
    grid: GridConfig
    tolerances: ToleranceConfig


def resolve_grid(grid: Optional[GridConfig] = None) -> GridConfig:
    """Merge a partial grid with ``DEFAULT_GRID``."""
    resolved: GridConfig = dict(DEFAULT_GRID)  # type: ignore[assignment]
    if grid:
        unknown = set(grid) - set(DEFAULT_GRID)
        if unknown:
            raise ValueError(f"Unknown grid option(s) {sorted(unknown)}")
        resolved.update(grid)
    return resolved


__all__ = [
    "PipelineConfig",
    "resolve_grid",
    "ToleranceConfig",
    "DEFAULT_TOLERANCES",
    "resolve_tolerances",
    "SynthesisConfig",
    "DEFAULT_SYNTHESIS_CONFIG",
    "validate_synthesis_config",
    "GridConfig",
    "DEFAULT_GRID",
]
