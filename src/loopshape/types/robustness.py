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
Robust Synthesis Types

Result types for H∞ synthesis and the loop-shaping pipeline.

Mathematical Background
----------------------
Generalized plant, partitioned by exogenous/control inputs and
performance/measured outputs:

    [z]   [P11  P12] [w]
    [y] = [P21  P22] [u]

A controller u = K y closes the lower loop:

    T_zw = F_l(P, K) = P11 + P12 K (I - P22 K)⁻¹ P21

H∞ synthesis looks for a stabilizing K with ‖T_zw‖∞ < γ; the achieved
γ is the smallest value in the search bracket for which the engine
succeeded (up to the search tolerance).

Usage
-----
>>> from loopshape.types.robustness import SynthesisResult
>>>
>>> result: SynthesisResult = synthesize(P, 1, 1, 0.1, 8.0)
>>> K = result['controller']
>>> print(f"Final gamma = {result['gamma']:.4f}")
"""

from typing import TYPE_CHECKING, Tuple

import numpy as np
from typing_extensions import TypedDict

if TYPE_CHECKING:
    from loopshape.analysis.frequency import FrequencyResponse
    from loopshape.systems.state_space import StateSpaceSystem


# ============================================================================
# H∞ Synthesis
# ============================================================================


class SynthesisResult(TypedDict):
    """
    H∞ synthesis result.

    Fields
    ------
    controller : StateSpaceSystem
        Stabilizing controller K, from measurements to control inputs
    closed_loop : StateSpaceSystem
        F_l(P, K), from exogenous inputs to performance outputs
    gamma : float
        Achieved norm bound
    gamma_bracket : Tuple[float, float]
        Bracket that was searched
    iterations : int
        Number of engine evaluations reported by the engine
    peak_norm : float
        Sampled H∞ norm of ``closed_loop`` on the default validation grid
    closed_loop_stable : bool
        Result of the eigenvalue check on ``closed_loop``

    Examples
    --------
    >>> result: SynthesisResult = synthesize(P, n_meas=1, n_control=1,
    ...                                      gamma_low=0.1, gamma_high=8.0)
    >>> assert result['gamma_bracket'][0] < result['gamma'] < result['gamma_bracket'][1]
    """

    controller: "StateSpaceSystem"
    closed_loop: "StateSpaceSystem"
    gamma: float
    gamma_bracket: Tuple[float, float]
    iterations: int
    peak_norm: float
    closed_loop_stable: bool


# ============================================================================
# Pipeline Report
# ============================================================================


class PipelineReport(TypedDict):
    """
    Outcome of one loop-shaping pipeline run.

    Fields
    ------
    synthesis : SynthesisResult
        Controller and achieved gamma
    response : FrequencyResponse
        Closed-loop frequency response on the validation grid
    singular_values : np.ndarray
        Descending singular values per frequency (N, k)
    peak_norm : float
        Sampled H∞ norm of the closed loop (a lower bound on the true norm)
    peak_frequency : float
        Frequency at which ``peak_norm`` occurs

    Examples
    --------
    >>> report: PipelineReport = pipeline.run(P, n_meas=1, n_control=1)
    >>> print(f"Final Gamma = {report['synthesis']['gamma']:.4f}, "
    ...       f"Max Singular Value = {report['peak_norm']:.4f}")
    """

    synthesis: SynthesisResult
    response: "FrequencyResponse"
    singular_values: np.ndarray
    peak_norm: float
    peak_frequency: float


__all__ = [
    "SynthesisResult",
    "PipelineReport",
]
