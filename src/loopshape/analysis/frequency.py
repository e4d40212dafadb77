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
Frequency Response and Norm Evaluation

Evaluates G(jω) = C (jωI - A)⁻¹ B + D on a frequency grid and derives the
quantities used to judge a loop: singular values, the sampled H∞ norm and
the DC gain.

Accuracy of the sampled norm
----------------------------
``peak_norm`` returns max_k σ̄(G(jω_k)) over the grid. It is a LOWER BOUND on
the true H∞ norm sup_ω σ̄(G(jω)): a lightly damped resonance that falls
between two grid points is under-estimated, possibly by a large factor. Use
a dense logarithmic grid around the crossover and any known resonance, and
treat the reported value as an estimate, not a certificate.

Poles on the imaginary axis
---------------------------
If jω is (numerically) an eigenvalue of A the response is unbounded. Rather
than letting Inf/NaN leak into downstream reports, ``evaluate`` raises
``SingularFrequencyError`` naming the offending frequency. ω = 0 is allowed
and evaluates the DC gain.

Usage
-----
>>> from loopshape.analysis.frequency import evaluate, frequency_grid, peak_norm
>>>
>>> w = frequency_grid(-2, 3, 500)
>>> response = evaluate(closed_loop, w)
>>> print(f"Max singular value = {peak_norm(response):.4f}")
"""

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import linalg

from loopshape.exceptions import SingularFrequencyError
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import DEFAULT_GRID, DEFAULT_TOLERANCES
from loopshape.types.core import ArrayLike, FrequencyGrid, ResponseArray, SingularValueArray

# Fewer points per decade than this triggers a coarse-grid warning
MIN_POINTS_PER_DECADE = 10


# ============================================================================
# Frequency grid
# ============================================================================


def frequency_grid(
    start_decade: float = DEFAULT_GRID["start_decade"],
    stop_decade: float = DEFAULT_GRID["stop_decade"],
    num: int = DEFAULT_GRID["num"],
) -> FrequencyGrid:
    """
    Logarithmically spaced frequencies in rad/s.

    Args:
        start_decade: log10 of the first frequency
        stop_decade: log10 of the last frequency
        num: Number of points

    Returns:
        Array (num,) from 10**start_decade to 10**stop_decade

    Examples
    --------
    >>> frequency_grid(-1, 1, 3)
    array([ 0.1,  1. , 10. ])
    """
    if num < 1:
        raise ValueError(f"num must be at least 1, got {num}")
    if stop_decade < start_decade:
        raise ValueError(
            f"stop_decade ({stop_decade}) must not be below start_decade ({start_decade})",
        )
    return np.logspace(start_decade, stop_decade, int(num))


def _validate_grid(frequencies: ArrayLike) -> np.ndarray:
    w = np.atleast_1d(np.asarray(frequencies, dtype=float))
    if w.ndim != 1 or w.size == 0:
        raise ValueError(f"frequencies must be a non-empty 1-D array, got shape {w.shape}")
    if not np.all(np.isfinite(w)):
        raise ValueError("frequencies must be finite")
    if np.any(w < 0):
        raise ValueError("frequencies must be non-negative (rad/s)")

    positive = np.unique(w[w > 0])
    if positive.size > 1:
        decades = np.log10(positive[-1] / positive[0])
        if decades > 0 and positive.size / decades < MIN_POINTS_PER_DECADE:
            warnings.warn(
                f"Frequency grid has {positive.size / decades:.1f} points per decade; "
                f"sampled norms may badly under-estimate resonant peaks",
                UserWarning,
                stacklevel=3,
            )
    return w


# ============================================================================
# Frequency response
# ============================================================================


@dataclass(frozen=True, eq=False)
class FrequencyResponse:
    """
    Sampled frequency response.

    Attributes
    ----------
    frequencies : np.ndarray
        Grid in rad/s, shape (N,), in the order it was evaluated
    values : np.ndarray
        Complex responses G(jω_k), shape (N, p, m)

    Examples
    --------
    >>> response = evaluate(G, frequency_grid())
    >>> response.values.shape
    (600, 1, 1)
    >>> response.magnitude_db[:, 0, 0]    # Bode magnitude
    """

    frequencies: FrequencyGrid
    values: ResponseArray

    def __post_init__(self):
        w = np.asarray(self.frequencies, dtype=float)
        G = np.asarray(self.values, dtype=complex)
        if G.ndim != 3 or G.shape[0] != w.shape[0]:
            raise ValueError(
                f"values must have shape (N, p, m) with N = {w.shape[0]}, got {G.shape}",
            )
        w = w.copy()
        G = G.copy()
        w.flags.writeable = False
        G.flags.writeable = False
        object.__setattr__(self, "frequencies", w)
        object.__setattr__(self, "values", G)

    @property
    def shape(self):
        """(p, m) of the sampled transfer matrix."""
        return self.values.shape[1:]

    @property
    def singular_values(self) -> SingularValueArray:
        """Descending singular values per frequency, shape (N, min(p, m))."""
        return singular_values(self)

    @property
    def magnitude_db(self) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(np.abs(self.values))

    @property
    def phase_deg(self) -> np.ndarray:
        """Unwrapped phase along the frequency axis."""
        return np.degrees(np.unwrap(np.angle(self.values), axis=0))

    def channel(self, output: int, input: int) -> np.ndarray:
        """Complex SISO response of one channel, shape (N,)."""
        return self.values[:, output, input]


def evaluate(
    system: StateSpaceSystem,
    frequencies: ArrayLike,
    tolerance: Optional[float] = None,
) -> FrequencyResponse:
    """
    Evaluate C (jωI - A)⁻¹ B + D on a grid.

    Args:
        system: System to evaluate
        frequencies: Non-negative frequencies in rad/s
        tolerance: Relative threshold on the smallest singular value of
            jωI - A; defaults to ``DEFAULT_TOLERANCES['frequency']``

    Returns:
        FrequencyResponse with values of shape (N, p, m)

    Raises:
        SingularFrequencyError: If some ω is a pole frequency
        ValueError: If the grid is empty, negative or not finite

    Examples
    --------
    >>> integrator = StateSpaceSystem([[0.0]], [[1.0]], [[1.0]], [[0.0]])
    >>> evaluate(integrator, [0.0, 1.0])    # SingularFrequencyError at ω = 0
    """
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCES["frequency"]

    w = _validate_grid(frequencies)
    A, B, C, D = system.matrices()
    n = system.n_states
    values = np.empty((w.size, system.n_outputs, system.n_inputs), dtype=complex)

    if n == 0:
        values[:] = D
        return FrequencyResponse(w, values)

    identity = np.eye(n)
    for k, omega in enumerate(w):
        M = 1j * omega * identity - A
        sv = linalg.svdvals(M)
        if sv[-1] <= tolerance * max(1.0, sv[0]):
            raise SingularFrequencyError(
                f"Pole on the imaginary axis at ω = {omega:g} rad/s "
                f"(smallest singular value of jωI - A is {sv[-1]:.3e})",
                frequency=float(omega),
            )
        values[k] = C @ linalg.solve(M, B) + D

    return FrequencyResponse(w, values)


# ============================================================================
# Derived quantities
# ============================================================================


def singular_values(response: FrequencyResponse) -> SingularValueArray:
    """
    Singular values per frequency, in descending order.

    Returns:
        Array (N, min(p, m)); (N, 0) for a system without inputs or outputs
    """
    N, p, m = response.values.shape
    if min(p, m) == 0:
        return np.zeros((N, 0))
    return np.linalg.svd(response.values, compute_uv=False)


def peak_norm(response: FrequencyResponse) -> float:
    """
    Sampled H∞ norm: max over the grid of the largest singular value.

    This is a lower bound on the true H∞ norm whose accuracy depends on the
    grid density (see module notes). The result does not depend on grid order
    or on duplicated points.

    Examples
    --------
    >>> print(f"Max singular value = {peak_norm(response):.4f}")
    """
    sv = singular_values(response)
    if sv.shape[1] == 0:
        return 0.0
    return float(np.max(sv[:, 0]))


def peak_frequency(response: FrequencyResponse) -> float:
    """
    Frequency at which ``peak_norm`` is attained.

    Ties resolve to the lowest such frequency, so the result is also
    independent of grid order.
    """
    sv = singular_values(response)
    if sv.shape[1] == 0:
        return float(np.min(response.frequencies))
    top = sv[:, 0]
    candidates = response.frequencies[top == np.max(top)]
    return float(np.min(candidates))


def dc_gain(system: StateSpaceSystem, tolerance: Optional[float] = None) -> np.ndarray:
    """
    Real steady-state gain G(0) = D - C A⁻¹ B.

    Raises:
        SingularFrequencyError: If the system has a pole at the origin

    Examples
    --------
    >>> dc_gain(feedback(P, StateSpaceSystem.static(1.0)))   # 10/9
    array([[1.11111111]])
    """
    return evaluate(system, [0.0], tolerance).values[0].real


__all__ = [
    "MIN_POINTS_PER_DECADE",
    "frequency_grid",
    "FrequencyResponse",
    "evaluate",
    "singular_values",
    "peak_norm",
    "peak_frequency",
    "dc_gain",
]
