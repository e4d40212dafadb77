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
State-Space Systems

The canonical LTI representation used by every other module:

    ẋ = A x + B u
    y = C x + D u

``StateSpaceSystem`` is an immutable value object. Its matrices are copied on
construction and marked read-only, so composition never aliases or mutates
an operand.

Zero-state (pure gain) systems are first-class: A is (0, 0), B is (0, m),
C is (p, 0) and the system is described entirely by D.

Usage
-----
>>> from loopshape.systems.state_space import StateSpaceSystem
>>>
>>> G = StateSpaceSystem.from_realization([[-1.0]], [[1.0]], [[2.0]], [[0.0]])
>>> G.n_states, G.n_inputs, G.n_outputs
(1, 1, 1)
>>> K = StateSpaceSystem.static(5.0)
>>> L = K * G                      # series: G then K
>>> L.n_states
1
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from loopshape.exceptions import MalformedSystemError
from loopshape.types.core import (
    ArrayLike,
    FeedthroughMatrix,
    InputMatrix,
    OutputMatrix,
    StateMatrix,
)


def _as_matrix(
    value: ArrayLike,
    name: str,
    vector_as_column: bool = False,
) -> np.ndarray:
    """
    Coerce an array-like to a 2-D float array.

    Scalars become (1, 1). One-dimensional input becomes a row, or a column
    when ``vector_as_column`` is set (the natural reading of a B vector).
    Empty input becomes (0, 0) and is reshaped by the caller.
    """
    try:
        arr = np.array(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise MalformedSystemError(f"{name} is not a real numeric array: {exc}") from exc

    if arr.size == 0:
        return arr if arr.ndim == 2 else np.zeros((0, 0))
    if arr.ndim == 0:
        return arr.reshape(1, 1)
    if arr.ndim == 1:
        return arr.reshape(-1, 1) if vector_as_column else arr.reshape(1, -1)
    if arr.ndim != 2:
        raise MalformedSystemError(f"{name} must be at most 2-D, got shape {arr.shape}")
    return arr


@dataclass(frozen=True, eq=False)
class StateSpaceSystem:
    """
    Continuous-time LTI system in state-space form.

    Attributes
    ----------
    A : np.ndarray
        State matrix (n, n)
    B : np.ndarray
        Input matrix (n, m)
    C : np.ndarray
        Output matrix (p, n)
    D : np.ndarray
        Feedthrough matrix (p, m)

    Raises
    ------
    MalformedSystemError
        If A is not square or the matrices are not conformant

    Examples
    --------
    >>> # Double integrator
    >>> G = StateSpaceSystem.from_realization(
    ...     [[0, 1], [0, 0]], [[0], [1]], [[1, 0]], [[0]]
    ... )
    >>> G.poles()
    array([0.+0.j, 0.+0.j])
    >>>
    >>> # Pure gain, no states
    >>> K = StateSpaceSystem.static([[2.0, 0.0], [0.0, 3.0]])
    >>> K.is_static
    True
    """

    A: np.ndarray
    B: np.ndarray
    C: np.ndarray
    D: np.ndarray

    def __post_init__(self):
        A = _as_matrix(self.A, "A")
        B = _as_matrix(self.B, "B", vector_as_column=True)
        C = _as_matrix(self.C, "C")
        D = _as_matrix(self.D, "D")

        n = A.shape[0]
        if A.shape[0] != A.shape[1]:
            raise MalformedSystemError(f"A must be square, got shape {A.shape}")

        if n == 0:
            # Input/output sizes come from D unless D is empty
            m = D.shape[1] if D.size else B.shape[1]
            p = D.shape[0] if D.size else C.shape[0]
            B = np.zeros((0, m))
            C = np.zeros((p, 0))
        if D.size == 0:
            D = np.zeros((C.shape[0], B.shape[1]))

        if B.shape[0] != n:
            raise MalformedSystemError(f"B must have {n} rows, got shape {B.shape}")
        if C.shape[1] != n:
            raise MalformedSystemError(f"C must have {n} columns, got shape {C.shape}")
        if D.shape != (C.shape[0], B.shape[1]):
            raise MalformedSystemError(
                f"D must be ({C.shape[0]}, {B.shape[1]}) to match C and B, got {D.shape}",
            )

        for name, matrix in (("A", A), ("B", B), ("C", C), ("D", D)):
            if not np.all(np.isfinite(matrix)):
                raise MalformedSystemError(f"{name} contains non-finite entries")
            matrix = matrix.copy()
            matrix.flags.writeable = False
            object.__setattr__(self, name, matrix)

    # ========================================================================
    # Constructors
    # ========================================================================

    @classmethod
    def from_realization(
        cls,
        A: StateMatrix,
        B: InputMatrix,
        C: OutputMatrix,
        D: FeedthroughMatrix,
    ) -> "StateSpaceSystem":
        """
        Build a system from its (A, B, C, D) realization.

        Args:
            A: State matrix (n, n); pass ``[]`` for a static system
            B: Input matrix (n, m)
            C: Output matrix (p, n)
            D: Feedthrough matrix (p, m)

        Returns:
            StateSpaceSystem

        Raises:
            MalformedSystemError: If the dimensions are not conformant
        """
        return cls(A, B, C, D)

    @classmethod
    def static(cls, gain: FeedthroughMatrix) -> "StateSpaceSystem":
        """
        Build a zero-state system y = gain·u.

        Examples
        --------
        >>> StateSpaceSystem.static(1e-6).D
        array([[1.e-06]])
        """
        D = _as_matrix(gain, "gain")
        return cls(np.zeros((0, 0)), np.zeros((0, D.shape[1])), np.zeros((D.shape[0], 0)), D)

    @classmethod
    def identity(cls, size: int) -> "StateSpaceSystem":
        """Static identity of the given width."""
        return cls.static(np.eye(size))

    @classmethod
    def zero(cls, n_outputs: int, n_inputs: int) -> "StateSpaceSystem":
        """Static zero gain (n_outputs, n_inputs)."""
        return cls.static(np.zeros((n_outputs, n_inputs)))

    # ========================================================================
    # Dimensions and properties
    # ========================================================================

    @property
    def n_states(self) -> int:
        return self.A.shape[0]

    @property
    def n_inputs(self) -> int:
        return self.B.shape[1]

    @property
    def n_outputs(self) -> int:
        return self.C.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """(n_outputs, n_inputs), the shape of the transfer matrix."""
        return (self.n_outputs, self.n_inputs)

    @property
    def is_static(self) -> bool:
        return self.n_states == 0

    def poles(self) -> np.ndarray:
        """Eigenvalues of A (empty for a static system)."""
        if self.is_static:
            return np.zeros(0, dtype=complex)
        return np.linalg.eigvals(self.A).astype(complex)

    def evaluate(self, s: complex) -> np.ndarray:
        """
        Transfer matrix at a single complex point s.

        Returns:
            Complex array (p, m) equal to C (sI - A)⁻¹ B + D

        Raises:
            numpy.linalg.LinAlgError: If s is an eigenvalue of A

        Notes
        -----
        For sampled jω evaluation with pole detection use
        ``loopshape.analysis.frequency.evaluate``.
        """
        D = self.D.astype(complex)
        if self.is_static:
            return D
        M = s * np.eye(self.n_states) - self.A
        return self.C @ np.linalg.solve(M, self.B) + D

    def allclose(self, other: "StateSpaceSystem", rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """True if both realizations agree matrix by matrix (not similarity)."""
        return all(
            a.shape == b.shape and np.allclose(a, b, rtol=rtol, atol=atol)
            for a, b in zip(self.matrices(), other.matrices())
        )

    def matrices(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return (A, B, C, D)."""
        return self.A, self.B, self.C, self.D

    # ========================================================================
    # Operator sugar (delegates to loopshape.systems.algebra)
    # ========================================================================

    def __mul__(self, other: "StateSpaceSystem") -> "StateSpaceSystem":
        # self * other: other acts first, matching transfer-function products
        from loopshape.systems.algebra import series

        return series(_coerce(other), self)

    def __rmul__(self, other) -> "StateSpaceSystem":
        from loopshape.systems.algebra import series

        return series(self, _coerce(other))

    def __add__(self, other) -> "StateSpaceSystem":
        from loopshape.systems.algebra import parallel

        return parallel(self, _coerce(other, like=self))

    def __radd__(self, other) -> "StateSpaceSystem":
        return self.__add__(other)

    def __neg__(self) -> "StateSpaceSystem":
        return StateSpaceSystem(self.A, self.B, -self.C, -self.D)

    def __sub__(self, other) -> "StateSpaceSystem":
        return self + (-_coerce(other, like=self))

    def __repr__(self) -> str:
        return (
            f"StateSpaceSystem(n_states={self.n_states}, "
            f"n_inputs={self.n_inputs}, n_outputs={self.n_outputs})"
        )


def _coerce(value, like: Optional[StateSpaceSystem] = None) -> StateSpaceSystem:
    """Promote scalars and arrays to static systems for operator use."""
    if isinstance(value, StateSpaceSystem):
        return value
    if hasattr(value, "to_realization"):
        return value.to_realization()
    gain = _as_matrix(value, "gain")
    if like is not None and gain.shape == (1, 1) and like.shape != (1, 1):
        # Scalar broadcast for addition: only meaningful for square systems
        gain = gain[0, 0] * np.eye(like.n_outputs, like.n_inputs)
    return StateSpaceSystem.static(gain)


__all__ = [
    "StateSpaceSystem",
]
