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
Exceptions

Every failure of the pipeline is unrecoverable for the stage that raised it,
so each exception carries the context needed to locate the problem (component
name, signal, frequency, gamma bracket) in its message and as attributes.

Hierarchy
---------
LoopShapeError (ValueError)
├── MalformedSystemError              dimension mismatch in a realization
├── SingularLoopError                 algebraic feedback loop not invertible
├── UnresolvableInterconnectionError  wiring cannot be resolved
├── DimensionMismatchError            wiring references an out-of-range slice
├── SingularFrequencyError            evaluation at a pole on the jω axis
└── SynthesisInfeasibleError          no controller within the gamma bracket
"""

from typing import Optional, Tuple


class LoopShapeError(ValueError):
    """Base class for all pipeline errors."""

    pass


class MalformedSystemError(LoopShapeError):
    """Raised when realization matrices or coefficients are inconsistent."""

    pass


class SingularLoopError(LoopShapeError):
    """Raised when ``I - D_a D_b`` cannot be inverted while closing a loop."""

    pass


class UnresolvableInterconnectionError(LoopShapeError):
    """
    Raised when an interconnection cannot be resolved.

    Covers unknown signal names, components without input wiring and a
    singular coupling matrix ``I - L``.
    """

    def __init__(self, message: str, component: Optional[str] = None):
        super().__init__(message)
        self.component = component


class DimensionMismatchError(LoopShapeError):
    """Raised when a wiring expression references a slice out of range."""

    def __init__(self, message: str, signal: Optional[str] = None):
        super().__init__(message)
        self.signal = signal


class SingularFrequencyError(LoopShapeError):
    """Raised when a frequency coincides with a pole on the imaginary axis."""

    def __init__(self, message: str, frequency: float):
        super().__init__(message)
        self.frequency = frequency


class SynthesisInfeasibleError(LoopShapeError):
    """Raised when no stabilizing controller is found in the gamma bracket."""

    def __init__(self, message: str, gamma_bracket: Optional[Tuple[float, float]] = None):
        super().__init__(message)
        self.gamma_bracket = gamma_bracket


__all__ = [
    "LoopShapeError",
    "MalformedSystemError",
    "SingularLoopError",
    "UnresolvableInterconnectionError",
    "DimensionMismatchError",
    "SingularFrequencyError",
    "SynthesisInfeasibleError",
]
