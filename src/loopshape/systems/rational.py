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
Rational Transfer Functions

SISO transfer functions given by polynomial coefficients, the form in which
plants and weighting filters are usually written down:

             num(s)
    G(s) = k ------
             den(s)

``RationalSystem`` is the entry point for coefficient data; everything
downstream (algebra, interconnection, frequency evaluation) works on the
``StateSpaceSystem`` returned by ``to_realization()``.

Usage
-----
>>> from loopshape.systems.rational import RationalSystem
>>>
>>> # P(s) = 10 / ((s - 1)(s + 1))
>>> P = RationalSystem.from_coefficients([10], [1, 0, -1])
>>> P.poles()
array([-1.,  1.])
>>>
>>> # Same plant from an expression
>>> P = RationalSystem.from_expression("10/((s-1)*(s+1))")
>>> G = P.to_realization()
>>> G.n_states
2
"""

from dataclasses import dataclass
from typing import Union

import numpy as np
import sympy as sp

from loopshape.exceptions import MalformedSystemError
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.core import CoefficientVector


def _coefficients(values: CoefficientVector, name: str) -> np.ndarray:
    """Convert to a 1-D float array with leading zeros removed."""
    try:
        arr = np.atleast_1d(np.array(values, dtype=float))
    except (TypeError, ValueError) as exc:
        raise MalformedSystemError(f"{name} coefficients must be real numbers: {exc}") from exc
    if arr.ndim != 1:
        raise MalformedSystemError(f"{name} coefficients must be 1-D, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise MalformedSystemError(f"{name} coefficients contain non-finite entries")

    nonzero = np.flatnonzero(arr)
    if nonzero.size == 0:
        return np.zeros(1)
    return arr[nonzero[0] :]


@dataclass(frozen=True, eq=False)
class RationalSystem:
    """
    SISO rational transfer function ``gain * num(s) / den(s)``.

    Attributes
    ----------
    num : np.ndarray
        Numerator coefficients, highest degree first
    den : np.ndarray
        Denominator coefficients, highest degree first
    gain : float
        Scalar multiplier applied to the numerator

    Raises
    ------
    MalformedSystemError
        If the denominator is identically zero

    Notes
    -----
    Properness (deg num ≤ deg den) is not checked on construction; it is
    required by ``to_realization()``.
    """

    num: np.ndarray
    den: np.ndarray
    gain: float = 1.0

    def __post_init__(self):
        num = _coefficients(self.num, "Numerator")
        den = _coefficients(self.den, "Denominator")
        if den.size == 1 and den[0] == 0.0:
            raise MalformedSystemError("Denominator leading coefficient must be nonzero")

        num.flags.writeable = False
        den.flags.writeable = False
        object.__setattr__(self, "num", num)
        object.__setattr__(self, "den", den)
        object.__setattr__(self, "gain", float(self.gain))

    # ========================================================================
    # Constructors
    # ========================================================================

    @classmethod
    def from_coefficients(
        cls,
        num: CoefficientVector,
        den: CoefficientVector,
        gain: float = 1.0,
    ) -> "RationalSystem":
        """
        Build a transfer function from polynomial coefficients.

        Args:
            num: Numerator coefficients, highest degree first
            den: Denominator coefficients, highest degree first
            gain: Scalar gain

        Examples
        --------
        >>> # Wt(s) = 2.4 s / (s + 4)
        >>> Wt = RationalSystem.from_coefficients([2.4, 0], [1, 4])
        """
        return cls(num, den, gain)

    @classmethod
    def from_expression(
        cls,
        expression: Union[str, sp.Expr],
        variable: str = "s",
    ) -> "RationalSystem":
        """
        Build a transfer function from a rational expression in ``variable``.

        The expression is brought over a common denominator with
        ``sympy.together``. Only the cancellations sympy performs on its own
        are applied; use ``from_coefficients`` to keep an exact pole-zero
        pair in the realization.

        Args:
            expression: Sympy expression or string, e.g. ``"2.4*s/(s+4)"``
            variable: Name of the Laplace variable

        Raises:
            MalformedSystemError: If the expression has other free symbols,
                cannot be parsed or has complex coefficients

        Examples
        --------
        >>> RationalSystem.from_expression("10/((s-1)*(s+1))").den
        array([ 1.,  0., -1.])
        """
        s = sp.Symbol(variable)
        if isinstance(expression, str):
            try:
                expression = sp.sympify(expression, locals={variable: s})
            except (sp.SympifyError, SyntaxError, TypeError) as exc:
                raise MalformedSystemError(f"Cannot parse '{expression}': {exc}") from exc

        extra = expression.free_symbols - {s}
        if extra:
            raise MalformedSystemError(
                f"Expression contains symbols other than '{variable}': {sorted(map(str, extra))}",
            )

        num_expr, den_expr = sp.fraction(sp.together(expression))
        try:
            num = [float(c) for c in sp.Poly(sp.expand(num_expr), s).all_coeffs()]
            den = [float(c) for c in sp.Poly(sp.expand(den_expr), s).all_coeffs()]
        except (TypeError, ValueError, sp.PolynomialError) as exc:
            raise MalformedSystemError(
                f"'{expression}' is not a ratio of real polynomials in {variable}: {exc}",
            ) from exc
        return cls(num, den)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def order(self) -> int:
        """Degree of the denominator."""
        return self.den.size - 1

    @property
    def relative_degree(self) -> int:
        """deg den - deg num (negative for improper systems)."""
        return (self.den.size - 1) - (self.num.size - 1)

    @property
    def is_proper(self) -> bool:
        return self.relative_degree >= 0

    def poles(self) -> np.ndarray:
        return np.roots(self.den)

    def zeros(self) -> np.ndarray:
        return np.roots(self.num)

    def evaluate(self, s: complex) -> complex:
        """Value of the transfer function at a complex point."""
        return self.gain * np.polyval(self.num, s) / np.polyval(self.den, s)

    # ========================================================================
    # Realization
    # ========================================================================

    def to_realization(self) -> StateSpaceSystem:
        """
        Controllable canonical realization.

        With the monic denominator ``sⁿ + a₁sⁿ⁻¹ + ... + aₙ`` and the
        numerator padded to ``b₀sⁿ + ... + bₙ``:

            A = [-a₁ -a₂ ... -aₙ]      B = [1]
                [ 1   0  ...  0 ]          [0]
                [ ⋮        ⋱   ⋮ ]          [⋮]
                [ 0  ...  1   0 ]          [0]

            C = [b₁ - b₀a₁, ..., bₙ - b₀aₙ],   D = b₀

        A constant transfer function yields a zero-state system.

        Raises:
            MalformedSystemError: If the transfer function is improper
        """
        if not self.is_proper:
            raise MalformedSystemError(
                f"Cannot realize improper transfer function "
                f"(numerator degree {self.num.size - 1} > denominator degree {self.order})",
            )

        lead = self.den[0]
        a = self.den / lead
        b = np.zeros(self.order + 1)
        b[self.order + 1 - self.num.size :] = self.gain * self.num / lead

        n = self.order
        D = np.array([[b[0]]])
        if n == 0:
            return StateSpaceSystem.static(D)

        A = np.zeros((n, n))
        A[0, :] = -a[1:]
        A[1:, :-1] = np.eye(n - 1)
        B = np.zeros((n, 1))
        B[0, 0] = 1.0
        C = (b[1:] - b[0] * a[1:]).reshape(1, n)
        return StateSpaceSystem(A, B, C, D)

    # ========================================================================
    # Operator sugar
    # ========================================================================

    def __mul__(self, other) -> StateSpaceSystem:
        return self.to_realization() * other

    def __rmul__(self, other) -> StateSpaceSystem:
        return other * self.to_realization()

    def __add__(self, other) -> StateSpaceSystem:
        return self.to_realization() + other

    def __radd__(self, other) -> StateSpaceSystem:
        return self.to_realization() + other

    def __neg__(self) -> "RationalSystem":
        return RationalSystem(self.num, self.den, -self.gain)

    def __repr__(self) -> str:
        return f"RationalSystem(num={self.num.tolist()}, den={self.den.tolist()}, gain={self.gain})"


__all__ = [
    "RationalSystem",
]
