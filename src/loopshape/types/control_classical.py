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
Classical Analysis Types

Result types for the structural analysis of linear systems:
- Stability (eigenvalue location)
- Controllability and observability (rank tests)
- Minimal realization (state elimination report)

Mathematical Background
----------------------
Stability (continuous time):
    All Re(λ(A)) < 0

Controllability: rank([B AB A²B ... Aⁿ⁻¹B]) = n
Observability:   rank([C; CA; CA²; ...; CAⁿ⁻¹]) = n

Minimal realization:
    Keeps exactly the modes that are both controllable and observable.

Usage
-----
>>> from loopshape.types.control_classical import StabilityInfo
>>>
>>> stability: StabilityInfo = analyze_stability(system.A)
>>> if not stability['is_stable']:
...     print(stability['eigenvalues'])
"""

from typing import Optional

import numpy as np
from typing_extensions import TypedDict

from .core import ControllabilityMatrix, ObservabilityMatrix

# ============================================================================
# Stability Analysis Types
# ============================================================================


class StabilityInfo(TypedDict):
    """
    Stability analysis result dictionary.

    Fields
    ------
    eigenvalues : np.ndarray
        Eigenvalues of the state matrix (complex)
    max_real_part : float
        Largest real part (continuous-time abscissa); -inf for static systems
    stability_margin : float
        ``-max_real_part``; positive means asymptotically stable
    is_stable : bool
        True if all Re(λ) < -tolerance
    is_marginally_stable : bool
        True if the abscissa is within tolerance of zero
    is_unstable : bool
        True if any Re(λ) > tolerance

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> stability: StabilityInfo = analyze_stability(A)
    >>> stability['is_stable']
    True
    """

    eigenvalues: np.ndarray
    max_real_part: float
    stability_margin: float
    is_stable: bool
    is_marginally_stable: bool
    is_unstable: bool


# ============================================================================
# Controllability / Observability Types
# ============================================================================


class ControllabilityInfo(TypedDict):
    """
    Controllability analysis result.

    Fields
    ------
    controllability_matrix : ControllabilityMatrix
        [B, AB, ..., Aⁿ⁻¹B]
    rank : int
        Dimension of the controllable subspace
    is_controllable : bool
        True if rank == n
    uncontrollable_modes : Optional[np.ndarray]
        Eigenvalues of the uncontrollable part, None when controllable
    """

    controllability_matrix: ControllabilityMatrix
    rank: int
    is_controllable: bool
    uncontrollable_modes: Optional[np.ndarray]


class ObservabilityInfo(TypedDict):
    """
    Observability analysis result.

    Fields
    ------
    observability_matrix : ObservabilityMatrix
        [C; CA; ...; CAⁿ⁻¹]
    rank : int
        Dimension of the observable subspace
    is_observable : bool
        True if rank == n
    unobservable_modes : Optional[np.ndarray]
        Eigenvalues of the unobservable part, None when observable
    """

    observability_matrix: ObservabilityMatrix
    rank: int
    is_observable: bool
    unobservable_modes: Optional[np.ndarray]


class MinimalRealizationInfo(TypedDict):
    """
    Report of a minimal-realization reduction.

    Fields
    ------
    original_states : int
        State dimension before reduction
    controllable_states : int
        States kept after the controllable projection
    minimal_states : int
        States kept after the observable projection
    removed_states : int
        ``original_states - minimal_states``
    """

    original_states: int
    controllable_states: int
    minimal_states: int
    removed_states: int


__all__ = [
    "StabilityInfo",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "MinimalRealizationInfo",
]
