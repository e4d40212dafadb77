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
System Algebra

Pure functions composing ``StateSpaceSystem`` objects. Every function returns
a new system; operands are never modified.

Composition rules (state vectors are concatenated in argument order):

    series(a, b)         y = b(a(u))                    D = D_b D_a
    parallel(a, b)       y = a(u) + b(u)                D = D_a + D_b
    feedback(a, b, σ)    u_a = r + σ b(y_a), y = y_a    needs (I - σ D_a D_b)⁻¹
    block_diagonal(...)  independent channels           D = diag(D_i)
    hstack(...)          y = Σ G_i(u_i)
    vstack(...)          y = [G_1(u); G_2(u); ...]
    lower_lft(P, K)      u = K y closes the lower loop of P

Static (zero-state) operands contribute no states, so cascading a weight
with a pure gain never inflates the realization.

Usage
-----
>>> from loopshape.systems.algebra import series, feedback
>>> from loopshape.systems.rational import RationalSystem
>>>
>>> P = RationalSystem.from_coefficients([10], [1, 0, -1]).to_realization()
>>> T = feedback(P, StateSpaceSystem.static(1.0))   # unity negative feedback
>>> T.poles()                                        # ±3j
"""

from typing import Optional, Type

import numpy as np
from scipy.linalg import block_diag

from loopshape.exceptions import LoopShapeError, MalformedSystemError, SingularLoopError
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import DEFAULT_TOLERANCES

# ============================================================================
# Internal helpers
# ============================================================================


def _check_invertible(
    M: np.ndarray,
    tolerance: float,
    error: Type[LoopShapeError],
    context: str,
) -> None:
    """Raise ``error`` if M is singular relative to its own scale."""
    if M.size == 0:
        return
    sv = np.linalg.svd(M, compute_uv=False)
    if sv[-1] <= tolerance * max(1.0, sv[0]):
        raise error(
            f"{context}: loop matrix is singular "
            f"(smallest singular value {sv[-1]:.3e}, tolerance {tolerance:.1e})",
        )


# ============================================================================
# Basic interconnections
# ============================================================================


def series(a: StateSpaceSystem, b: StateSpaceSystem) -> StateSpaceSystem:
    """
    Cascade: the output of ``a`` drives ``b``.

    Realization with x = [x_a; x_b]:

        A = [A_a      0  ]    B = [B_a    ]
            [B_b C_a  A_b]        [B_b D_a]

        C = [D_b C_a  C_b]    D = D_b D_a

    Args:
        a: First system (p_a outputs)
        b: Second system (p_a inputs)

    Returns:
        StateSpaceSystem with a.n_states + b.n_states states

    Raises:
        MalformedSystemError: If a.n_outputs != b.n_inputs

    Examples
    --------
    >>> k = StateSpaceSystem.static(3.0)
    >>> G2 = series(k, G)      # 3·G, same number of states as G
    """
    if a.n_outputs != b.n_inputs:
        raise MalformedSystemError(
            f"series: first system has {a.n_outputs} outputs but second has {b.n_inputs} inputs",
        )

    na, nb = a.n_states, b.n_states
    A = np.zeros((na + nb, na + nb))
    A[:na, :na] = a.A
    A[na:, :na] = b.B @ a.C
    A[na:, na:] = b.A
    B = np.vstack([a.B, b.B @ a.D])
    C = np.hstack([b.D @ a.C, b.C])
    D = b.D @ a.D
    return StateSpaceSystem(A, B, C, D)


def parallel(a: StateSpaceSystem, b: StateSpaceSystem) -> StateSpaceSystem:
    """
    Sum of two systems driven by the same input.

    Raises:
        MalformedSystemError: If the transfer-matrix shapes differ
    """
    if a.shape != b.shape:
        raise MalformedSystemError(f"parallel: shapes differ, {a.shape} vs {b.shape}")

    A = block_diag(a.A, b.A)
    B = np.vstack([a.B, b.B])
    C = np.hstack([a.C, b.C])
    D = a.D + b.D
    return StateSpaceSystem(A, B, C, D)


def feedback(
    a: StateSpaceSystem,
    b: StateSpaceSystem,
    sign: int = -1,
    tolerance: Optional[float] = None,
) -> StateSpaceSystem:
    """
    Close a feedback loop around ``a`` with ``b`` in the return path.

        u_a = r + sign·y_b,   y_b = b(y_a),   output y = y_a

    The direct-feedthrough loop is resolved with F = (I - sign·D_a D_b)⁻¹:

        C = F [C_a, sign·D_a C_b]
        D = F D_a

    Args:
        a: Forward path (m inputs, p outputs)
        b: Return path (p inputs, m outputs)
        sign: -1 for negative feedback (default), +1 for positive
        tolerance: Relative singularity threshold for I - sign·D_a D_b

    Returns:
        Closed-loop system from r to y_a

    Raises:
        MalformedSystemError: If dimensions are incompatible or sign is not ±1
        SingularLoopError: If I - sign·D_a D_b is not invertible

    Examples
    --------
    >>> # P(s) = 10/((s-1)(s+1)) with unity negative feedback: T(s) = 10/(s²+9)
    >>> T = feedback(P, StateSpaceSystem.static(1.0))
    >>> T.evaluate(0.0)      # 10/9
    """
    if sign not in (-1, 1):
        raise MalformedSystemError(f"feedback sign must be +1 or -1, got {sign}")
    if b.n_inputs != a.n_outputs or b.n_outputs != a.n_inputs:
        raise MalformedSystemError(
            f"feedback: return path must be {a.n_inputs}x{a.n_outputs}, got {b.n_outputs}x{b.n_inputs}",
        )
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCES["loop"]

    s = float(sign)
    p, m = a.n_outputs, a.n_inputs
    na, nb = a.n_states, b.n_states

    E = np.eye(p) - s * a.D @ b.D
    _check_invertible(E, tolerance, SingularLoopError, "feedback")

    C_cl = np.linalg.solve(E, np.hstack([a.C, s * a.D @ b.C]))
    D_cl = np.linalg.solve(E, a.D)

    # u_a expressed in terms of the closed-loop state and reference
    U_x = s * b.D @ C_cl + np.hstack([np.zeros((m, na)), s * b.C])
    U_r = np.eye(m) + s * b.D @ D_cl

    A = block_diag(a.A, b.A)
    A = A + np.vstack([a.B, np.zeros((nb, m))]) @ U_x
    A = A + np.vstack([np.zeros((na, p)), b.B]) @ C_cl
    B = np.vstack([a.B @ U_r, b.B @ D_cl])
    return StateSpaceSystem(A, B, C_cl, D_cl)


def block_diagonal(*systems: StateSpaceSystem) -> StateSpaceSystem:
    """
    Stack systems into independent channels.

    States, inputs and outputs are concatenated in argument order with no
    coupling, so the transfer matrix is diag(G_1, G_2, ...). Used to combine
    separate weighting filters into one multi-channel weight.

    Raises:
        MalformedSystemError: If called without systems
    """
    if not systems:
        raise MalformedSystemError("block_diagonal needs at least one system")
    if len(systems) == 1:
        return systems[0]

    A = block_diag(*(g.A for g in systems))
    B = block_diag(*(g.B for g in systems))
    C = block_diag(*(g.C for g in systems))
    D = block_diag(*(g.D for g in systems))
    return StateSpaceSystem(A, B, C, D)


def hstack(*systems: StateSpaceSystem) -> StateSpaceSystem:
    """Horizontal concatenation [G_1 G_2 ...]: separate inputs, summed outputs."""
    if not systems:
        raise MalformedSystemError("hstack needs at least one system")
    p = systems[0].n_outputs
    if any(g.n_outputs != p for g in systems):
        raise MalformedSystemError(
            f"hstack: all systems need {p} outputs, got {[g.n_outputs for g in systems]}",
        )

    A = block_diag(*(g.A for g in systems))
    B = block_diag(*(g.B for g in systems))
    C = np.hstack([g.C for g in systems])
    D = np.hstack([g.D for g in systems])
    return StateSpaceSystem(A, B, C, D)


def vstack(*systems: StateSpaceSystem) -> StateSpaceSystem:
    """Vertical concatenation [G_1; G_2; ...]: shared input, stacked outputs."""
    if not systems:
        raise MalformedSystemError("vstack needs at least one system")
    m = systems[0].n_inputs
    if any(g.n_inputs != m for g in systems):
        raise MalformedSystemError(
            f"vstack: all systems need {m} inputs, got {[g.n_inputs for g in systems]}",
        )

    A = block_diag(*(g.A for g in systems))
    B = np.vstack([g.B for g in systems])
    C = block_diag(*(g.C for g in systems))
    D = np.vstack([g.D for g in systems])
    return StateSpaceSystem(A, B, C, D)


def inverse(system: StateSpaceSystem, tolerance: Optional[float] = None) -> StateSpaceSystem:
    """
    System inverse for a square system with nonsingular D.

        A_i = A - B D⁻¹ C,  B_i = B D⁻¹,  C_i = -D⁻¹ C,  D_i = D⁻¹

    Used to apply D-scalings as D G D⁻¹.

    Raises:
        MalformedSystemError: If the system is not square
        SingularLoopError: If D is singular
    """
    if system.n_inputs != system.n_outputs:
        raise MalformedSystemError(f"inverse needs a square system, got shape {system.shape}")
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCES["loop"]
    _check_invertible(system.D, tolerance, SingularLoopError, "inverse")

    D_inv = np.linalg.inv(system.D)
    A = system.A - system.B @ D_inv @ system.C
    B = system.B @ D_inv
    C = -D_inv @ system.C
    return StateSpaceSystem(A, B, C, D_inv)


# ============================================================================
# Static loop closure
# ============================================================================


def close_static_loop(
    system: StateSpaceSystem,
    loop: np.ndarray,
    external_to_input: np.ndarray,
    output_from_internal: np.ndarray,
    output_from_external: np.ndarray,
    tolerance: Optional[float] = None,
    error: Type[LoopShapeError] = SingularLoopError,
    context: str = "loop closure",
) -> StateSpaceSystem:
    """
    Close static wiring around a system with inputs v and outputs y.

    The wiring is

        v = L y + E w        (internal inputs from outputs and externals)
        z = O_y y + O_w w    (external outputs)

    so y solves (I - D L) y = C x + D E w. With F = (I - D L)⁻¹:

        y  = F C x + F D E w
        ẋ  = (A + B L F C) x + B (L F D E + E) w
        z  = O_y F C x + (O_y F D E + O_w) w

    Args:
        system: Aggregate system (usually block diagonal of components)
        loop: L, shape (m, p)
        external_to_input: E, shape (m, q)
        output_from_internal: O_y, shape (r, p)
        output_from_external: O_w, shape (r, q)
        tolerance: Relative singularity threshold for I - D L
        error: Exception class raised when I - D L is singular
        context: Prefix for the error message

    Returns:
        System from w (q inputs) to z (r outputs)
    """
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCES["loop"]

    m, p = system.n_inputs, system.n_outputs
    L = np.asarray(loop, dtype=float)
    E = np.asarray(external_to_input, dtype=float)
    Oy = np.asarray(output_from_internal, dtype=float)
    Ow = np.asarray(output_from_external, dtype=float)
    q, r = E.shape[1], Oy.shape[0]
    if L.shape != (m, p) or E.shape[0] != m or Oy.shape[1] != p or Ow.shape != (r, q):
        raise MalformedSystemError(
            f"{context}: wiring shapes L{L.shape}, E{E.shape}, O_y{Oy.shape}, O_w{Ow.shape} "
            f"do not fit a system with {m} inputs and {p} outputs",
        )

    M = np.eye(p) - system.D @ L
    _check_invertible(M, tolerance, error, context)

    Cy = np.linalg.solve(M, system.C) if p else np.zeros((0, system.n_states))
    Dy = np.linalg.solve(M, system.D @ E) if p else np.zeros((0, q))

    A = system.A + system.B @ L @ Cy
    B = system.B @ (L @ Dy + E)
    C = Oy @ Cy
    D = Oy @ Dy + Ow
    return StateSpaceSystem(A, B, C, D)


def lower_lft(
    plant: StateSpaceSystem,
    controller: StateSpaceSystem,
    n_meas: int,
    n_control: int,
    tolerance: Optional[float] = None,
) -> StateSpaceSystem:
    """
    Lower linear fractional transformation F_l(P, K).

    The last ``n_control`` inputs of the plant are driven by the controller
    (u = K y) and the last ``n_meas`` outputs feed the controller.

        [z]   [P11 P12] [w]
        [y] = [P21 P22] [u],    u = K y

    Args:
        plant: Generalized plant from [w; u] to [z; y]
        controller: K from y (n_meas) to u (n_control)
        n_meas: Number of measured outputs
        n_control: Number of control inputs

    Returns:
        Closed loop from w to z

    Raises:
        MalformedSystemError: If partition sizes do not fit
        SingularLoopError: If I - P22 K has a singular feedthrough
    """
    if not 0 < n_meas <= plant.n_outputs or not 0 < n_control <= plant.n_inputs:
        raise MalformedSystemError(
            f"lower_lft: partition ({n_meas} meas, {n_control} control) does not fit plant "
            f"with {plant.n_outputs} outputs and {plant.n_inputs} inputs",
        )
    if controller.shape != (n_control, n_meas):
        raise MalformedSystemError(
            f"lower_lft: controller must be {n_control}x{n_meas}, got {controller.shape}",
        )

    nw = plant.n_inputs - n_control
    nz = plant.n_outputs - n_meas
    aggregate = block_diagonal(plant, controller)

    # inputs v = [w_P; u_P; y_K], outputs y = [z_P; y_P; u_K]
    m = nw + n_control + n_meas
    p = nz + n_meas + n_control
    L = np.zeros((m, p))
    L[nw : nw + n_control, nz + n_meas :] = np.eye(n_control)
    L[nw + n_control :, nz : nz + n_meas] = np.eye(n_meas)
    E = np.zeros((m, nw))
    E[:nw, :] = np.eye(nw)
    Oy = np.zeros((nz, p))
    Oy[:, :nz] = np.eye(nz)
    Ow = np.zeros((nz, nw))

    return close_static_loop(
        aggregate, L, E, Oy, Ow, tolerance=tolerance, error=SingularLoopError, context="lower_lft",
    )


__all__ = [
    "series",
    "parallel",
    "feedback",
    "block_diagonal",
    "hstack",
    "vstack",
    "inverse",
    "close_static_loop",
    "lower_lft",
]
