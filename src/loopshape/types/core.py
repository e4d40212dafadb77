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
Core Array Types

Semantic aliases for the arrays that flow through the loop-shaping pipeline.
All aliases resolve to NumPy arrays (or anything ``np.asarray`` accepts);
the names document the *role* of an array, not a separate runtime type.

State-space convention
----------------------
    ẋ = A x + B u
    y = C x + D u

    A : StateMatrix        (n, n)
    B : InputMatrix        (n, m)
    C : OutputMatrix       (p, n)
    D : FeedthroughMatrix  (p, m)

Frequency-domain convention
---------------------------
    G(jω) = C (jωI - A)⁻¹ B + D

    FrequencyGrid          (N,)        rad/s, non-negative
    ResponseArray          (N, p, m)   complex
    SingularValueArray     (N, k)      k = min(p, m), descending

Usage
-----
>>> from loopshape.types.core import StateMatrix, FrequencyGrid
>>> A: StateMatrix = np.array([[0.0, 1.0], [-2.0, -3.0]])
>>> w: FrequencyGrid = np.logspace(-2, 2, 200)
"""

from typing import Sequence, Union

import numpy as np

# ============================================================================
# Generic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, Sequence[float], Sequence[Sequence[float]], float]
"""
Anything convertible with ``np.asarray``.

Examples
--------
>>> a: ArrayLike = [[1.0, 0.0], [0.0, 1.0]]
>>> a: ArrayLike = np.eye(2)
>>> a: ArrayLike = 2.5  # scalar gain
"""

CoefficientVector = Union[np.ndarray, Sequence[float]]
"""
Polynomial coefficients ordered from highest degree to constant term.

Examples
--------
>>> # s² - 1
>>> den: CoefficientVector = [1.0, 0.0, -1.0]
"""

# ============================================================================
# Matrix Types - Semantic Naming by Role
# ============================================================================

StateMatrix = ArrayLike
"""State matrix A (n, n)."""

InputMatrix = ArrayLike
"""Input matrix B (n, m)."""

OutputMatrix = ArrayLike
"""Output matrix C (p, n)."""

FeedthroughMatrix = ArrayLike
"""
Direct feedthrough matrix D (p, m).

A system with no states is fully described by its D matrix (pure gain).
"""

ControllabilityMatrix = np.ndarray
"""
Controllability matrix (n, n*m).

C = [B, AB, A²B, ..., A^(n-1)B]
"""

ObservabilityMatrix = np.ndarray
"""
Observability matrix (n*p, n).

O = [C; CA; CA²; ...; CA^(n-1)]
"""

# ============================================================================
# Frequency-Domain Types
# ============================================================================

FrequencyGrid = Union[np.ndarray, Sequence[float]]
"""
Frequencies in rad/s at which a response is sampled.

Usually logarithmically spaced; ω = 0 is allowed for DC evaluation.

Examples
--------
>>> w: FrequencyGrid = np.logspace(-3, 3, 400)
"""

ResponseArray = np.ndarray
"""Complex transfer matrices stacked along the first axis, shape (N, p, m)."""

SingularValueArray = np.ndarray
"""Descending singular values per frequency, shape (N, min(p, m))."""

GainMatrix = np.ndarray
"""Static gain matrix (p, m)."""


__all__ = [
    "ArrayLike",
    "CoefficientVector",
    "StateMatrix",
    "InputMatrix",
    "OutputMatrix",
    "FeedthroughMatrix",
    "ControllabilityMatrix",
    "ObservabilityMatrix",
    "FrequencyGrid",
    "ResponseArray",
    "SingularValueArray",
    "GainMatrix",
]
