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
Structured Singular Value Bounds

Boundary to an external µ engine. Given the frequency response M(jω) seen
by a block-diagonal uncertainty Δ = diag(Δ_1, ..., Δ_k), an engine returns
per-frequency bounds

    lower(ω) ≤ µ_Δ(M(jω)) ≤ upper(ω)

plus the diagonal D-scaling that achieves the upper bound. The pipeline does
not compute µ itself.

Engines
-------
``slycot_mu_engine``
    SLICOT ``ab13md`` upper bound (with its optimal D-scaling); lower bound
    from the spectral radius. Supports full complex blocks and real scalar
    blocks.
``singular_value_mu_engine``
    σ̄(M) as upper bound (the unstructured case, Δ one full block) and the
    spectral radius as lower bound. No external dependency; useful as a
    conservative fallback and in tests.

Both lower bounds use that δI belongs to every block structure: ρ(M) for
all-complex structures and the largest real eigenvalue magnitude when real
blocks are present.

Usage
-----
>>> from loopshape.control.mu import UncertaintyBlock, mu_bounds
>>>
>>> structure = [UncertaintyBlock(1), UncertaintyBlock(2)]
>>> bounds = mu_bounds(evaluate(closed_loop, w), structure)
>>> print(f"peak mu <= {bounds.peak_upper:.3f}")
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from loopshape.analysis.frequency import FrequencyResponse
from loopshape.exceptions import DimensionMismatchError

MuEngine = Callable[[np.ndarray, Sequence["UncertaintyBlock"]], Tuple[float, float, Optional[np.ndarray]]]


@dataclass(frozen=True)
class UncertaintyBlock:
    """
    One block of the uncertainty structure.

    Attributes
    ----------
    size : int
        Block dimension (square)
    repeated : bool
        True for a repeated scalar block δI, False for a full block
    complex : bool
        True for complex uncertainty, False for real
    """

    size: int
    repeated: bool = False
    complex: bool = True

    def __post_init__(self):
        if int(self.size) < 1:
            raise ValueError(f"Uncertainty block size must be positive, got {self.size}")


@dataclass(frozen=True, eq=False)
class MuBounds:
    """
    µ bounds over a frequency grid.

    Attributes
    ----------
    frequencies : np.ndarray
        Grid in rad/s (N,)
    upper : np.ndarray
        Upper bound per frequency (N,)
    lower : np.ndarray
        Lower bound per frequency (N,)
    scalings : Optional[np.ndarray]
        Diagonal D-scaling per frequency (N, n), None if the engine gives none
    """

    frequencies: np.ndarray
    upper: np.ndarray
    lower: np.ndarray
    scalings: Optional[np.ndarray] = None

    @property
    def peak_index(self) -> int:
        return int(np.argmax(self.upper))

    @property
    def peak_upper(self) -> float:
        return float(self.upper[self.peak_index])

    @property
    def peak_lower(self) -> float:
        return float(np.max(self.lower))

    @property
    def peak_frequency(self) -> float:
        return float(self.frequencies[self.peak_index])


# ============================================================================
# Engines
# ============================================================================


def _lower_bound(M: np.ndarray, structure: Sequence[UncertaintyBlock]) -> float:
    eigenvalues = np.linalg.eigvals(M)
    if all(block.complex for block in structure):
        return float(np.max(np.abs(eigenvalues)))
    real = eigenvalues[np.abs(eigenvalues.imag) <= 1e-10 * max(1.0, np.max(np.abs(eigenvalues)))]
    return float(np.max(np.abs(real.real))) if real.size else 0.0


def slycot_mu_engine(
    M: np.ndarray,
    structure: Sequence[UncertaintyBlock],
) -> Tuple[float, float, Optional[np.ndarray]]:
    """
    µ bounds of one complex matrix via SLICOT ``ab13md``.

    Returns:
        (upper, lower, d) with d the diagonal of the optimal D-scaling

    Raises:
        ValueError: For repeated blocks of size > 1 or real full blocks,
            which ``ab13md`` does not support
    """
    import slycot

    for block in structure:
        if block.size > 1 and (block.repeated or not block.complex):
            raise ValueError(
                f"ab13md supports full complex blocks and real scalars only, got {block}",
            )
    nblock = np.array([block.size for block in structure], dtype=int)
    itype = np.array([2 if block.complex else 1 for block in structure], dtype=int)

    bound, d, _g, _x = slycot.ab13md(np.asarray(M, dtype=complex), nblock, itype)
    return float(bound), _lower_bound(M, structure), np.asarray(d, dtype=float)


def singular_value_mu_engine(
    M: np.ndarray,
    structure: Sequence[UncertaintyBlock],
) -> Tuple[float, float, Optional[np.ndarray]]:
    """Unstructured bounds: σ̄(M) above, spectral radius below."""
    upper = float(np.linalg.svd(M, compute_uv=False)[0])
    return upper, _lower_bound(M, structure), None


# ============================================================================
# Boundary
# ============================================================================


def mu_bounds(
    response: FrequencyResponse,
    structure: Sequence[UncertaintyBlock],
    engine: Optional[MuEngine] = None,
) -> MuBounds:
    """
    Evaluate µ bounds along a frequency response.

    Args:
        response: Square frequency response seen by the uncertainty
        structure: Ordered uncertainty blocks; sizes must sum to the
            response dimension
        engine: Per-frequency µ engine, defaults to ``slycot_mu_engine``

    Returns:
        MuBounds

    Raises:
        DimensionMismatchError: If the response is not square or the block
            sizes do not cover it

    Examples
    --------
    >>> bounds = mu_bounds(response, [UncertaintyBlock(1)] * 2,
    ...                    engine=singular_value_mu_engine)
    >>> bool(np.all(bounds.lower <= bounds.upper + 1e-12))
    True
    """
    p, m = response.shape
    if p != m:
        raise DimensionMismatchError(f"µ needs a square response, got {p}x{m}")
    structure = tuple(structure)
    if not structure:
        raise ValueError("Uncertainty structure must contain at least one block")
    total = sum(block.size for block in structure)
    if total != p:
        raise DimensionMismatchError(
            f"Uncertainty blocks cover {total} channels but the response has {p}",
        )
    if engine is None:
        engine = slycot_mu_engine

    N = response.frequencies.shape[0]
    upper = np.empty(N)
    lower = np.empty(N)
    scalings = []
    for k in range(N):
        upper[k], lower[k], d = engine(response.values[k], structure)
        scalings.append(d)

    D = None if any(d is None for d in scalings) else np.vstack(scalings)
    return MuBounds(response.frequencies, upper, lower, D)


__all__ = [
    "UncertaintyBlock",
    "MuBounds",
    "MuEngine",
    "slycot_mu_engine",
    "singular_value_mu_engine",
    "mu_bounds",
]
