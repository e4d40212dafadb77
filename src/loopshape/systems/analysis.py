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
Structural Analysis of Linear Systems

Pure stateless functions:

**Analysis:**
- Stability - eigenvalue location (continuous time)
- Controllability - rank test plus uncontrollable modes
- Observability - rank test plus unobservable modes

**Reduction:**
- Minimal realization - discard uncontrollable and unobservable modes

Mathematical Background
-----------------------
Stability:       All Re(λ(A)) < 0
Controllability: rank([B AB A²B ... Aⁿ⁻¹B]) = n
Observability:   rank([C; CA; CA²; ...; CAⁿ⁻¹]) = n

The controllable subspace is computed with an orthogonal staircase
(block Krylov) iteration rather than from the controllability matrix itself,
which becomes badly conditioned for more than a handful of states:

    Q₀ = orth(B)
    Q_{k+1} = orth((I - Q Qᵀ) A Q_k)      until no new direction appears

Projecting onto Q gives the controllable part; applying the same step to
(Aᵀ, Cᵀ) of the result gives the observable part. Rank decisions use the
relative tolerance ``tolerance · max(1, ‖A‖, ‖B‖)``. Mode removal is
therefore numerical, not an exact pole-zero cancellation test.

Usage
-----
>>> from loopshape.systems.analysis import analyze_stability, minimal_realization
>>>
>>> stability = analyze_stability(system.A)
>>> reduced = minimal_realization(system, tolerance=1e-9)
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np
from scipy import linalg

from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import DEFAULT_TOLERANCES
from loopshape.types.control_classical import (
    ControllabilityInfo,
    MinimalRealizationInfo,
    ObservabilityInfo,
    StabilityInfo,
)
from loopshape.types.core import InputMatrix, OutputMatrix, StateMatrix

logger = logging.getLogger(__name__)


# ============================================================================
# Staircase helpers (Internal)
# ============================================================================


def _threshold(tolerance: float, *matrices: np.ndarray) -> float:
    scale = max([1.0] + [np.linalg.norm(m, 2) for m in matrices if m.size])
    return tolerance * scale


def _orth(M: np.ndarray, threshold: float) -> np.ndarray:
    """Orthonormal basis of range(M), dropping directions below threshold."""
    if M.size == 0:
        return np.zeros((M.shape[0], 0))
    U, s, _ = np.linalg.svd(M, full_matrices=False)
    return U[:, s > threshold]


def _reachable_basis(A: np.ndarray, B: np.ndarray, tolerance: float) -> np.ndarray:
    """
    Orthonormal basis of the controllable subspace of (A, B).

    Returns:
        Q with shape (n, k), k = dimension of the controllable subspace
    """
    n = A.shape[0]
    threshold = _threshold(tolerance, A, B)

    Q = _orth(B, threshold)
    new = Q
    while new.shape[1] > 0 and Q.shape[1] < n:
        candidate = A @ new
        candidate = candidate - Q @ (Q.T @ candidate)
        new = _orth(candidate, threshold)
        Q = np.hstack([Q, new])
    return Q


def _complement_modes(A: np.ndarray, Q: np.ndarray) -> Optional[np.ndarray]:
    """Eigenvalues of A restricted to the orthogonal complement of range(Q)."""
    n = A.shape[0]
    if Q.shape[1] == n:
        return None
    Qc = linalg.null_space(Q.T) if Q.shape[1] else np.eye(n)
    return np.linalg.eigvals(Qc.T @ A @ Qc)


# ============================================================================
# Stability Analysis
# ============================================================================


def analyze_stability(A: StateMatrix, tolerance: float = 1e-10) -> StabilityInfo:
    """
    Analyze continuous-time stability via eigenvalue analysis.

    Args:
        A: State matrix (n, n)
        tolerance: Band around the imaginary axis treated as marginal

    Returns:
        StabilityInfo with eigenvalues, abscissa and stability flags

    Examples
    --------
    >>> analyze_stability(np.array([[0, 1], [-2, -3]]))['is_stable']
    True
    >>> analyze_stability(np.array([[1.0]]))['is_unstable']
    True

    Notes
    -----
    A static system (n = 0) has no modes and is reported stable with an
    infinite margin.
    """
    A_np = np.asarray(A, dtype=float)
    if A_np.size == 0:
        A_np = A_np.reshape(0, 0)
    if A_np.ndim != 2 or A_np.shape[0] != A_np.shape[1]:
        raise ValueError(f"A must be square matrix, got shape {A_np.shape}")

    if A_np.shape[0] == 0:
        result: StabilityInfo = {
            "eigenvalues": np.zeros(0, dtype=complex),
            "max_real_part": float("-inf"),
            "stability_margin": float("inf"),
            "is_stable": True,
            "is_marginally_stable": False,
            "is_unstable": False,
        }
        return result

    eigenvalues = np.linalg.eigvals(A_np)
    max_real = float(np.max(np.real(eigenvalues)))

    result = {
        "eigenvalues": eigenvalues,
        "max_real_part": max_real,
        "stability_margin": -max_real,
        "is_stable": bool(max_real < -tolerance),
        "is_marginally_stable": bool(abs(max_real) <= tolerance),
        "is_unstable": bool(max_real > tolerance),
    }
    return result


# ============================================================================
# Controllability Analysis
# ============================================================================


def analyze_controllability(
    A: StateMatrix,
    B: InputMatrix,
    tolerance: float = 1e-10,
) -> ControllabilityInfo:
    """
    Test controllability of (A, B).

    The rank is the dimension of the staircase controllable subspace; the
    controllability matrix [B, AB, ..., Aⁿ⁻¹B] is returned for inspection.

    Args:
        A: State matrix (n, n)
        B: Input matrix (n, m)
        tolerance: Relative rank tolerance

    Returns:
        ControllabilityInfo with matrix, rank, flag and uncontrollable modes

    Examples
    --------
    >>> A = np.diag([-1.0, -2.0])
    >>> B = np.array([[1.0], [0.0]])       # second mode not driven
    >>> info = analyze_controllability(A, B)
    >>> info['rank'], info['uncontrollable_modes']
    (1, array([-2.+0.j]))
    """
    A_np = np.asarray(A, dtype=float)
    B_np = np.asarray(B, dtype=float)

    nx = A_np.shape[0]
    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    if B_np.ndim != 2 or B_np.shape[0] != nx:
        raise ValueError(f"B must have {nx} rows, got shape {B_np.shape}")
    nu = B_np.shape[1]

    # Build controllability matrix: C = [B, AB, A²B, ..., Aⁿ⁻¹B]
    C = np.zeros((nx, nx * nu))
    AB = B_np.copy()
    for i in range(nx):
        C[:, i * nu : (i + 1) * nu] = AB
        AB = A_np @ AB

    Q = _reachable_basis(A_np, B_np, tolerance)
    rank = Q.shape[1]
    modes = _complement_modes(A_np, Q)

    result: ControllabilityInfo = {
        "controllability_matrix": C,
        "rank": int(rank),
        "is_controllable": bool(rank == nx),
        "uncontrollable_modes": None if modes is None else modes.astype(complex),
    }
    return result


# ============================================================================
# Observability Analysis
# ============================================================================


def analyze_observability(
    A: StateMatrix,
    C: OutputMatrix,
    tolerance: float = 1e-10,
) -> ObservabilityInfo:
    """
    Test observability of (A, C).

    Dual of controllability: (A, C) observable ⟺ (Aᵀ, Cᵀ) controllable.

    Args:
        A: State matrix (n, n)
        C: Output matrix (p, n)
        tolerance: Relative rank tolerance

    Returns:
        ObservabilityInfo with matrix, rank, flag and unobservable modes

    Examples
    --------
    >>> A = np.diag([-1.0, -2.0])
    >>> C = np.array([[0.0, 1.0]])         # first mode never seen
    >>> analyze_observability(A, C)['is_observable']
    False
    """
    A_np = np.asarray(A, dtype=float)
    C_np = np.asarray(C, dtype=float)

    nx = A_np.shape[0]
    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    if C_np.ndim != 2 or C_np.shape[1] != nx:
        raise ValueError(f"C must have {nx} columns, got shape {C_np.shape}")

    dual = analyze_controllability(A_np.T, C_np.T, tolerance)

    result: ObservabilityInfo = {
        "observability_matrix": dual["controllability_matrix"].T,
        "rank": dual["rank"],
        "is_observable": dual["is_controllable"],
        "unobservable_modes": dual["uncontrollable_modes"],
    }
    return result


# ============================================================================
# Minimal Realization
# ============================================================================


def minimal_realization(
    system: StateSpaceSystem,
    tolerance: Optional[float] = None,
    return_info: bool = False,
) -> Union[StateSpaceSystem, Tuple[StateSpaceSystem, MinimalRealizationInfo]]:
    """
    Remove uncontrollable and unobservable modes.

    The system is projected onto its controllable subspace, then the result
    onto its observable subspace. The returned state dimension equals the
    number of modes that are both controllable and observable; the transfer
    matrix is unchanged.

    Args:
        system: System to reduce
        tolerance: Relative rank tolerance, defaults to
            ``DEFAULT_TOLERANCES['minimal']``
        return_info: Also return a MinimalRealizationInfo report

    Returns:
        Reduced system, or (system, info) when ``return_info`` is set

    Examples
    --------
    >>> # Second state is not driven by the input
    >>> G = StateSpaceSystem(np.diag([-1.0, -2.0]), [[1.0], [0.0]], [[1.0, 1.0]], [[0.0]])
    >>> minimal_realization(G).n_states
    1

    Notes
    -----
    Static systems are returned unchanged.
    """
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCES["minimal"]

    A, B, C, D = system.matrices()
    n = system.n_states

    if n == 0:
        reduced, n_ctrb = system, 0
    else:
        Qc = _reachable_basis(A, B, tolerance)
        Ac, Bc, Cc = Qc.T @ A @ Qc, Qc.T @ B, C @ Qc
        n_ctrb = Qc.shape[1]

        Qo = _reachable_basis(Ac.T, Cc.T, tolerance)
        Am, Bm, Cm = Qo.T @ Ac @ Qo, Qo.T @ Bc, Cc @ Qo
        reduced = StateSpaceSystem(Am, Bm, Cm, D)

    if reduced.n_states < n:
        logger.debug(
            "Minimal realization removed %d of %d states (%d controllable)",
            n - reduced.n_states,
            n,
            n_ctrb,
        )

    if not return_info:
        return reduced

    info: MinimalRealizationInfo = {
        "original_states": n,
        "controllable_states": n_ctrb,
        "minimal_states": reduced.n_states,
        "removed_states": n - reduced.n_states,
    }
    return reduced, info


# ============================================================================
# Composition wrapper
# ============================================================================


class SystemAnalysis:
    """
    Thin wrapper binding the analysis functions to one system.

    Holds no state beyond the system and a tolerance; every method routes
    to the pure functions above.

    Examples
    --------
    >>> analysis = SystemAnalysis(closed_loop)
    >>> analysis.stability()["is_stable"]
    True
    >>> analysis.minimal().n_states <= closed_loop.n_states
    True
    """

    def __init__(self, system: StateSpaceSystem, tolerance: float = 1e-10):
        self.system = system
        self.tolerance = tolerance

    def stability(self) -> StabilityInfo:
        return analyze_stability(self.system.A, self.tolerance)

    def controllability(self) -> ControllabilityInfo:
        return analyze_controllability(self.system.A, self.system.B, self.tolerance)

    def observability(self) -> ObservabilityInfo:
        return analyze_observability(self.system.A, self.system.C, self.tolerance)

    def minimal(self, tolerance: Optional[float] = None) -> StateSpaceSystem:
        """Minimal realization, see ``minimal_realization``."""
        return minimal_realization(self.system, tolerance)


__all__ = [
    "SystemAnalysis",
    "analyze_stability",
    "analyze_controllability",
    "analyze_observability",
    "minimal_realization",
]
