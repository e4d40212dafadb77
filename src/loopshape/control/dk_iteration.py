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
D-K Iteration

Alternates H∞ synthesis (K-step) and D-scaling fitting (D-step) to reduce
the µ upper bound of a closed loop:

    INITIALIZE_SCALING ──> SYNTHESIZE_CONTROLLER ──> COMPUTE_MU_BOUND
                                 ^                        │
                                 │                        ├──> CONVERGED
                           FIT_SCALING <──────────────────┤
                                                          ├──> MAX_ITERATIONS_REACHED
                                                          │
    (K-step infeasible after the first iteration) ────────┴──> STOPPED_INFEASIBLE

Only ``DKIteration`` holds mutable loop state. Each pass appends a frozen
``DKIterationRecord`` so convergence can be inspected after the run.

Plant partition
---------------
The generalized plant maps [w_Δ; u] to [z_Δ; y]. The uncertainty channels
w_Δ / z_Δ are the first ``n`` inputs/outputs, n being the total size of the
block structure (a performance block is modelled as one more full block).
A scaling D = diag(d_1 I, ..., d_k I) acts as

    G_D = diag(D, I_meas) · G · diag(D⁻¹, I_control)

D is either a constant diagonal (``StaticScalingFitter``) or a square
system D(s) with a stable inverse (``SlycotScalingFitter``), in which case
the products above are series connections and D⁻¹ is the system inverse.

Usage
-----
>>> from loopshape.control.dk_iteration import DKIteration
>>>
>>> dk = DKIteration(G, n_meas=1, n_control=1,
...                  structure=[UncertaintyBlock(1), UncertaintyBlock(1)],
...                  frequencies=frequency_grid(-2, 2, 200))
>>> result = dk.run()
>>> result.state, result.best.peak_mu
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np

from loopshape.analysis.frequency import FrequencyResponse, evaluate
from loopshape.control.mu import MuBounds, MuEngine, UncertaintyBlock, mu_bounds
from loopshape.control.synthesis import SynthesisEngine, synthesize
from loopshape.exceptions import DimensionMismatchError, SynthesisInfeasibleError
from loopshape.systems.algebra import block_diagonal, inverse, lower_lft, series
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import SynthesisConfig, validate_synthesis_config
from loopshape.types.core import ArrayLike

logger = logging.getLogger(__name__)

Scaling = Union[np.ndarray, StateSpaceSystem]


class DKState(Enum):
    """States of the D-K loop."""

    INITIALIZE_SCALING = "initialize_scaling"
    SYNTHESIZE_CONTROLLER = "synthesize_controller"
    COMPUTE_MU_BOUND = "compute_mu_bound"
    FIT_SCALING = "fit_scaling"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STOPPED_INFEASIBLE = "stopped_infeasible"

    @property
    def is_terminal(self) -> bool:
        return self in (
            DKState.CONVERGED,
            DKState.MAX_ITERATIONS_REACHED,
            DKState.STOPPED_INFEASIBLE,
        )


@dataclass(frozen=True, eq=False)
class DKIterationRecord:
    """
    Outcome of one K-step plus µ analysis.

    Attributes
    ----------
    iteration : int
        1-based iteration index
    scaling : Union[np.ndarray, StateSpaceSystem]
        D-scaling used for the K-step: a diagonal (n,) or a system D(s)
    controller : StateSpaceSystem
        Controller synthesized for the scaled plant
    gamma : float
        Achieved gamma of the scaled problem
    mu : MuBounds
        µ bounds of the unscaled closed loop
    peak_mu : float
        Peak of the µ upper bound
    """

    iteration: int
    scaling: Scaling
    controller: StateSpaceSystem
    gamma: float
    mu: MuBounds
    peak_mu: float


@dataclass(frozen=True)
class DKResult:
    """Terminal state, full history and the record with the lowest peak µ."""

    state: DKState
    history: Tuple[DKIterationRecord, ...]

    @property
    def best(self) -> DKIterationRecord:
        return min(self.history, key=lambda record: record.peak_mu)

    @property
    def controller(self) -> StateSpaceSystem:
        return self.best.controller


# ============================================================================
# D-step
# ============================================================================


@runtime_checkable
class ScalingFitterProtocol(Protocol):
    """Turns µ bounds into the D-scaling for the next K-step."""

    def fit(
        self,
        mu: MuBounds,
        structure: Sequence[UncertaintyBlock],
        closed_loop: Optional[StateSpaceSystem] = None,
    ) -> Scaling:
        """
        Return the D-scaling for the next K-step.

        Args:
            mu: µ bounds of the last closed loop
            structure: Uncertainty blocks
            closed_loop: Closed loop seen by Δ, for fitters that need it

        Returns:
            Diagonal of a constant D (n,), or a square system D(s) (n, n)
        """
        ...


@dataclass
class StaticScalingFitter:
    """
    Constant D taken from the engine scaling at the peak-µ frequency.

    Entries are averaged per block (the scaling must commute with Δ) and
    normalized so the last block has unit scaling. Without engine scalings
    the identity is returned.

    Attributes
    ----------
    bounds : Tuple[float, float]
        Clip range for the block scalings
    """

    bounds: Tuple[float, float] = (1e-4, 1e4)

    def fit(
        self,
        mu: MuBounds,
        structure: Sequence[UncertaintyBlock],
        closed_loop: Optional[StateSpaceSystem] = None,
    ) -> np.ndarray:
        n = sum(block.size for block in structure)
        if mu.scalings is None:
            return np.ones(n)

        d = np.abs(np.asarray(mu.scalings[mu.peak_index], dtype=float))
        if d.shape != (n,):
            raise DimensionMismatchError(f"Engine scaling has shape {d.shape}, expected ({n},)")

        per_block = []
        offset = 0
        for block in structure:
            per_block.append(float(np.mean(d[offset : offset + block.size])))
            offset += block.size
        per_block = np.asarray(per_block)
        if per_block[-1] > 0:
            per_block = per_block / per_block[-1]
        per_block = np.clip(per_block, *self.bounds)

        return np.concatenate([np.full(b.size, s) for b, s in zip(structure, per_block)])


def _peak_scaled_gain(M: np.ndarray, left: np.ndarray, right: np.ndarray) -> float:
    """max over frequency of σ̄(left M right) for stacks of (N, n, n) values."""
    return float(np.max(np.linalg.svd(left @ M @ right, compute_uv=False)[:, 0]))


@dataclass
class SlycotScalingFitter:
    """
    Dynamic D(s) fitted with SLICOT ``sb10md``.

    ``sb10md`` computes the µ upper bound of the closed loop on the frequency
    grid and fits every block scaling with a stable, minimum-phase SISO
    system, so D(s) and D(s)⁻¹ are both stable. The fit is returned in the
    orientation that gives the lower peak of σ̄(D M D⁻¹) on the grid.

    Only complex blocks that are scalar or full are supported.

    Attributes
    ----------
    order : int
        Maximum order of each scalar fit
    qutol : float
        Acceptable mean relative error of the fit

    Examples
    --------
    >>> dk = DKIteration(G, 1, 1, [UncertaintyBlock(1), UncertaintyBlock(1)], w,
    ...                  fitter=SlycotScalingFitter(order=2))
    >>> result = dk.run()
    >>> result.history[-1].scaling
    StateSpaceSystem(n_states=..., n_inputs=2, n_outputs=2)
    """

    order: int = 4
    qutol: float = 2.0

    def fit(
        self,
        mu: MuBounds,
        structure: Sequence[UncertaintyBlock],
        closed_loop: Optional[StateSpaceSystem] = None,
    ) -> StateSpaceSystem:
        if closed_loop is None:
            raise ValueError("SlycotScalingFitter needs the closed loop seen by the uncertainty")
        for block in structure:
            if not block.complex or (block.repeated and block.size > 1):
                raise ValueError(
                    f"sb10md supports scalar or full complex blocks only, got {block}",
                )
        n = sum(block.size for block in structure)
        if closed_loop.shape != (n, n):
            raise DimensionMismatchError(
                f"Closed loop {closed_loop.shape} does not match {n} uncertainty channels",
            )

        import slycot

        omega = np.unique(mu.frequencies[mu.frequencies > 0])
        nblock = np.array([block.size for block in structure], dtype=int)
        itype = np.full(len(structure), 2, dtype=int)
        A, B, C, D = (np.array(m) for m in closed_loop.matrices())
        # The fitted scaling carries a trailing I_f block; f = 1 and it is cut off below
        out = slycot.sb10md(1, self.order, nblock, itype, self.qutol, A, B, C, D, omega)
        ad, bd, cd, dd = out[6:10]
        fitted = StateSpaceSystem(ad, np.asarray(bd)[:, :n], np.asarray(cd)[:n, :], np.asarray(dd)[:n, :n])
        fitted_inverse = inverse(fitted)

        M = evaluate(closed_loop, omega).values
        Dw = evaluate(fitted, omega).values
        Dw_inv = evaluate(fitted_inverse, omega).values
        direct = _peak_scaled_gain(M, Dw, Dw_inv)
        flipped = _peak_scaled_gain(M, Dw_inv, Dw)
        logger.debug(
            "sb10md fit of order %d: peak scaled gain %.4f (D M D^-1), %.4f (D^-1 M D)",
            fitted.n_states,
            direct,
            flipped,
        )
        return fitted if direct <= flipped else fitted_inverse


# ============================================================================
# Driver
# ============================================================================


class DKIteration:
    """
    Finite-state D-K iteration driver.

    Parameters
    ----------
    plant : StateSpaceSystem
        Generalized plant from [w_Δ; u] to [z_Δ; y]
    n_meas, n_control : int
        Partition of the control channels
    structure : Sequence[UncertaintyBlock]
        Uncertainty blocks covering w_Δ / z_Δ
    frequencies : ArrayLike
        Grid for µ analysis
    synthesis : Optional[SynthesisConfig]
        Gamma bracket, tolerance and iteration cap for every K-step
    max_iterations : int
        Cap on the number of K-steps
    tolerance : float
        Stop when the relative change of peak µ drops below this
    engine : Optional[SynthesisEngine]
        H∞ engine passed to ``synthesize``
    mu_engine : Optional[MuEngine]
        µ engine passed to ``mu_bounds``
    fitter : Optional[ScalingFitterProtocol]
        D-step, defaults to ``StaticScalingFitter()``; use
        ``SlycotScalingFitter()`` for dynamic D(s) scalings

    Examples
    --------
    >>> dk = DKIteration(G, 1, 1, [UncertaintyBlock(2)], frequency_grid(-2, 2, 100),
    ...                  max_iterations=5)
    >>> result = dk.run()
    >>> [record.peak_mu for record in result.history]
    """

    def __init__(
        self,
        plant: StateSpaceSystem,
        n_meas: int,
        n_control: int,
        structure: Sequence[UncertaintyBlock],
        frequencies: ArrayLike,
        synthesis: Optional[SynthesisConfig] = None,
        max_iterations: int = 10,
        tolerance: float = 1e-2,
        engine: Optional[SynthesisEngine] = None,
        mu_engine: Optional[MuEngine] = None,
        fitter: Optional[ScalingFitterProtocol] = None,
    ):
        self.structure = tuple(structure)
        self.n_uncertain = sum(block.size for block in self.structure)
        if plant.n_inputs != self.n_uncertain + n_control or plant.n_outputs != self.n_uncertain + n_meas:
            raise DimensionMismatchError(
                f"Plant {plant.shape} does not match {self.n_uncertain} uncertainty channels "
                f"plus {n_meas} measurement(s) and {n_control} control(s)",
            )
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        if not tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")

        self.plant = plant
        self.n_meas = n_meas
        self.n_control = n_control
        self.frequencies = np.asarray(frequencies, dtype=float)
        self.synthesis = validate_synthesis_config(synthesis)
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.engine = engine
        self.mu_engine = mu_engine
        self.fitter = fitter if fitter is not None else StaticScalingFitter()

        self.state = DKState.INITIALIZE_SCALING
        self.history: List[DKIterationRecord] = []
        self.transitions: List[DKState] = [self.state]

    # ========================================================================
    # Hooks
    # ========================================================================

    def scaled_interconnection(self, scaling: Union[ArrayLike, StateSpaceSystem]) -> StateSpaceSystem:
        """
        Plant scaled by diag(D, I_meas) · G · diag(D⁻¹, I_control).

        Args:
            scaling: Diagonal of a constant D, one positive entry per
                uncertainty channel, or a square system D(s) with
                nonsingular feedthrough

        Raises:
            DimensionMismatchError: If the scaling does not cover the
                uncertainty channels
            SingularLoopError: If D(s) has a singular feedthrough
        """
        if isinstance(scaling, StateSpaceSystem):
            if scaling.shape != (self.n_uncertain, self.n_uncertain):
                raise DimensionMismatchError(
                    f"Scaling system must be {self.n_uncertain}x{self.n_uncertain}, got {scaling.shape}",
                )
            left = block_diagonal(scaling, StateSpaceSystem.identity(self.n_meas))
            right = block_diagonal(inverse(scaling), StateSpaceSystem.identity(self.n_control))
            return series(series(right, self.plant), left)

        d = np.asarray(scaling, dtype=float)
        if d.shape != (self.n_uncertain,):
            raise DimensionMismatchError(
                f"Scaling must have {self.n_uncertain} entries, got shape {d.shape}",
            )
        if np.any(d <= 0):
            raise ValueError("D-scaling entries must be positive")

        left = np.concatenate([d, np.ones(self.n_meas)])
        right = np.concatenate([1.0 / d, np.ones(self.n_control)])
        A, B, C, D = self.plant.matrices()
        return StateSpaceSystem(A, B * right, left[:, None] * C, left[:, None] * D * right)

    def closed_loop(self, controller: StateSpaceSystem) -> StateSpaceSystem:
        """Unscaled closed loop F_l(G, K) from w_Δ to z_Δ."""
        return lower_lft(self.plant, controller, self.n_meas, self.n_control)

    def mu_response(self, controller: StateSpaceSystem) -> FrequencyResponse:
        """Frequency response of the unscaled closed loop seen by Δ."""
        return evaluate(self.closed_loop(controller), self.frequencies)

    # ========================================================================
    # Loop
    # ========================================================================

    def _enter(self, state: DKState) -> None:
        self.state = state
        self.transitions.append(state)

    def run(self) -> DKResult:
        """
        Run the loop until a terminal state.

        Every call starts over from INITIALIZE_SCALING with an empty history.

        Returns:
            DKResult with the terminal state and the iteration history

        Raises:
            SynthesisInfeasibleError: If the very first K-step fails
        """
        self.state = DKState.INITIALIZE_SCALING
        self.history = []
        self.transitions = [self.state]

        scaling: Scaling = np.ones(self.n_uncertain)
        controller: Optional[StateSpaceSystem] = None
        gamma = float("nan")

        while not self.state.is_terminal:
            if self.state is DKState.INITIALIZE_SCALING:
                scaling = np.ones(self.n_uncertain)
                self._enter(DKState.SYNTHESIZE_CONTROLLER)

            elif self.state is DKState.SYNTHESIZE_CONTROLLER:
                try:
                    result = synthesize(
                        self.scaled_interconnection(scaling),
                        self.n_meas,
                        self.n_control,
                        engine=self.engine,
                        **self.synthesis,
                    )
                except SynthesisInfeasibleError as exc:
                    if not self.history:
                        raise
                    logger.warning(
                        "K-step %d infeasible, keeping best controller so far: %s",
                        len(self.history) + 1,
                        exc,
                    )
                    self._enter(DKState.STOPPED_INFEASIBLE)
                    continue
                controller, gamma = result["controller"], result["gamma"]
                self._enter(DKState.COMPUTE_MU_BOUND)

            elif self.state is DKState.COMPUTE_MU_BOUND:
                bounds = mu_bounds(self.mu_response(controller), self.structure, self.mu_engine)
                record = DKIterationRecord(
                    iteration=len(self.history) + 1,
                    scaling=scaling.copy() if isinstance(scaling, np.ndarray) else scaling,
                    controller=controller,
                    gamma=gamma,
                    mu=bounds,
                    peak_mu=bounds.peak_upper,
                )
                self.history.append(record)
                logger.info(
                    "D-K iteration %d: gamma = %.4f, peak mu = %.4f at %.3g rad/s",
                    record.iteration,
                    record.gamma,
                    record.peak_mu,
                    bounds.peak_frequency,
                )
                self._enter(self._next_after_mu())

            elif self.state is DKState.FIT_SCALING:
                last = self.history[-1]
                fitted = self.fitter.fit(last.mu, self.structure, self.closed_loop(last.controller))
                scaling = fitted if isinstance(fitted, StateSpaceSystem) else np.asarray(fitted, dtype=float)
                self._enter(DKState.SYNTHESIZE_CONTROLLER)

        logger.info("D-K iteration finished in state %s", self.state.name)
        return DKResult(self.state, tuple(self.history))

    def _next_after_mu(self) -> DKState:
        if len(self.history) >= 2:
            previous, current = self.history[-2].peak_mu, self.history[-1].peak_mu
            if abs(previous - current) <= self.tolerance * max(abs(previous), 1e-12):
                return DKState.CONVERGED
        if len(self.history) >= self.max_iterations:
            return DKState.MAX_ITERATIONS_REACHED
        return DKState.FIT_SCALING


__all__ = [
    "DKState",
    "DKIterationRecord",
    "DKResult",
    "ScalingFitterProtocol",
    "StaticScalingFitter",
    "SlycotScalingFitter",
    "DKIteration",
]
