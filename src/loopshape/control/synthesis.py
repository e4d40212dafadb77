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
H∞ Synthesis Adapter

Boundary between the pipeline and an external H∞ synthesis engine.

The pipeline never solves Riccati equations itself. It hands a generalized
plant and a gamma bracket to an engine and checks what comes back:

    engine(plant, n_meas, n_control, gamma_low, gamma_high, tolerance, max_iter)
        -> (controller, closed_loop, gamma, iterations)

An engine signals "no stabilizing controller in the bracket" by raising
``SynthesisInfeasibleError``. The default engine, ``slycot_hinf_engine``,
bisects gamma over SLICOT's suboptimal solver ``sb10fd``, which gives the
usual hinfsyn(gmin, gmax, tol) behaviour.

Sign convention: controllers are applied as u = K y (positive feedback into
the lower loop), as SLICOT and ``lower_lft`` both assume.

Usage
-----
>>> from loopshape.control.synthesis import synthesize
>>>
>>> result = synthesize(P, n_meas=1, n_control=1, gamma_low=0.1, gamma_high=8.0)
>>> print(f"Final gamma = {result['gamma']:.4f}")
>>> result['closed_loop_stable']
True
"""

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from loopshape.analysis.frequency import evaluate, frequency_grid, peak_norm
from loopshape.exceptions import (
    LoopShapeError,
    MalformedSystemError,
    SynthesisInfeasibleError,
)
from loopshape.systems.algebra import lower_lft
from loopshape.systems.analysis import analyze_stability
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import DEFAULT_SYNTHESIS_CONFIG, validate_synthesis_config
from loopshape.types.robustness import SynthesisResult

logger = logging.getLogger(__name__)

EngineOutput = Tuple[StateSpaceSystem, StateSpaceSystem, float, int]
SynthesisEngine = Callable[..., EngineOutput]


# ============================================================================
# Default engine (SLICOT)
# ============================================================================


def _slycot_attempt(
    plant: StateSpaceSystem,
    n_meas: int,
    n_control: int,
    gamma: float,
) -> Optional[Tuple[StateSpaceSystem, StateSpaceSystem]]:
    """
    One suboptimal solve at fixed gamma.

    Returns:
        (controller, closed_loop) if SLICOT succeeds and the loop is stable,
        None otherwise
    """
    import slycot

    A, B, C, D = plant.matrices()
    try:
        Ak, Bk, Ck, Dk, _rcond = slycot.sb10fd(
            plant.n_states,
            plant.n_inputs,
            plant.n_outputs,
            n_control,
            n_meas,
            gamma,
            np.array(A),
            np.array(B),
            np.array(C),
            np.array(D),
        )
    except (ValueError, ArithmeticError) as exc:
        logger.debug("sb10fd failed at gamma = %.6g: %s", gamma, exc)
        return None

    controller = StateSpaceSystem(Ak, Bk, Ck, Dk)
    try:
        closed_loop = lower_lft(plant, controller, n_meas, n_control)
    except LoopShapeError as exc:
        logger.debug("Loop closure failed at gamma = %.6g: %s", gamma, exc)
        return None
    if not analyze_stability(closed_loop.A)["is_stable"]:
        logger.debug("Controller at gamma = %.6g does not stabilize the plant", gamma)
        return None
    return controller, closed_loop


def slycot_hinf_engine(
    plant: StateSpaceSystem,
    n_meas: int,
    n_control: int,
    gamma_low: float,
    gamma_high: float,
    tolerance: float,
    max_iter: int,
) -> EngineOutput:
    """
    Gamma bisection over SLICOT ``sb10fd``.

    ``gamma_high`` is tried first; if it fails the bracket is infeasible.
    Each further evaluation halves the bracket until its relative width
    ``(high - low) / high`` drops below ``tolerance`` or ``max_iter``
    evaluations have been spent.

    Returns:
        (controller, closed_loop, gamma, iterations) where gamma is the
        smallest feasible value tried

    Raises:
        SynthesisInfeasibleError: If no controller achieves ``gamma_high``

    Notes
    -----
    Requires the ``slycot`` package. SLICOT's standing assumptions apply:
    (A, B2) stabilizable, (C2, A) detectable, D12 full column rank and D21
    full row rank.
    """
    best = _slycot_attempt(plant, n_meas, n_control, gamma_high)
    iterations = 1
    if best is None:
        raise SynthesisInfeasibleError(
            f"No stabilizing controller achieves gamma = {gamma_high:g}",
            gamma_bracket=(gamma_low, gamma_high),
        )

    low, high = gamma_low, gamma_high
    while (high - low) > tolerance * high and iterations < max_iter:
        gamma = 0.5 * (low + high)
        iterations += 1
        candidate = _slycot_attempt(plant, n_meas, n_control, gamma)
        if candidate is None:
            low = gamma
        else:
            high, best = gamma, candidate
        logger.debug(
            "Bisection step %d: gamma = %.6g %s, bracket [%.6g, %.6g]",
            iterations,
            gamma,
            "feasible" if candidate is not None else "infeasible",
            low,
            high,
        )

    if (high - low) > tolerance * high:
        logger.warning(
            "Gamma bisection stopped after %d evaluations with bracket [%.6g, %.6g]",
            iterations,
            low,
            high,
        )

    controller, closed_loop = best
    return controller, closed_loop, high, iterations


# ============================================================================
# Adapter
# ============================================================================


def synthesize(
    plant: StateSpaceSystem,
    n_meas: int,
    n_control: int,
    gamma_low: float = DEFAULT_SYNTHESIS_CONFIG["gamma_low"],
    gamma_high: float = DEFAULT_SYNTHESIS_CONFIG["gamma_high"],
    tolerance: float = DEFAULT_SYNTHESIS_CONFIG["tolerance"],
    max_iter: int = DEFAULT_SYNTHESIS_CONFIG["max_iter"],
    engine: Optional[SynthesisEngine] = None,
) -> SynthesisResult:
    """
    Synthesize an H∞ controller for a generalized plant.

    Args:
        plant: Generalized plant from [w; u] to [z; y]; the last
            ``n_control`` inputs are u and the last ``n_meas`` outputs are y
        n_meas: Number of measured outputs (controller inputs)
        n_control: Number of control inputs (controller outputs)
        gamma_low: Lower end of the gamma bracket
        gamma_high: Upper end of the gamma bracket
        tolerance: Relative bracket width at which the search stops
        max_iter: Cap on the number of engine evaluations
        engine: Synthesis engine, defaults to ``slycot_hinf_engine``

    Returns:
        SynthesisResult with the controller, the closed loop F_l(P, K), the
        achieved gamma and a sampled closed-loop norm

    Raises:
        ValueError: If the partition or the bracket is invalid
        MalformedSystemError: If the engine returns a controller of the
            wrong shape
        SynthesisInfeasibleError: If no stabilizing controller is found in
            the bracket, or the returned controller does not stabilize the
            plant

    Examples
    --------
    >>> G = mixed_sensitivity_interconnection(P, wu=Wu, wt=Wt)
    >>> result = synthesize(G, n_meas=1, n_control=1, gamma_low=0.1, gamma_high=8.0)
    >>> 0.1 < result['gamma'] < 8.0
    True

    Any callable with the engine signature can be plugged in:

    >>> def fixed_engine(plant, n_meas, n_control, lo, hi, tol, max_iter):
    ...     # K0: a known stabilizing controller
    ...     return K0, lower_lft(plant, K0, n_meas, n_control), 1.0, 1
    >>> synthesize(G, 1, 1, 0.1, 8.0, engine=fixed_engine)['gamma']
    1.0

    Notes
    -----
    The returned ``closed_loop`` is always recomputed from ``controller``
    with ``lower_lft`` so that its realization does not depend on the engine.
    An achieved gamma below ``gamma_low`` is accepted with a warning; the
    bracket was simply not tight.
    """
    if not isinstance(plant, StateSpaceSystem):
        raise TypeError(f"plant must be a StateSpaceSystem, got {type(plant).__name__}")
    if not 0 < n_meas < plant.n_outputs:
        raise ValueError(
            f"n_meas must be between 1 and {plant.n_outputs - 1}, got {n_meas}",
        )
    if not 0 < n_control < plant.n_inputs:
        raise ValueError(
            f"n_control must be between 1 and {plant.n_inputs - 1}, got {n_control}",
        )
    config = validate_synthesis_config(
        {
            "gamma_low": gamma_low,
            "gamma_high": gamma_high,
            "tolerance": tolerance,
            "max_iter": max_iter,
        },
    )
    bracket = (config["gamma_low"], config["gamma_high"])
    if engine is None:
        engine = slycot_hinf_engine

    logger.info(
        "Synthesizing H-infinity controller: %d states, %d meas, %d control, bracket [%g, %g]",
        plant.n_states,
        n_meas,
        n_control,
        *bracket,
    )
    controller, _, gamma, iterations = engine(
        plant,
        n_meas,
        n_control,
        config["gamma_low"],
        config["gamma_high"],
        config["tolerance"],
        config["max_iter"],
    )

    gamma = float(gamma)
    if controller.shape != (n_control, n_meas):
        raise MalformedSystemError(
            f"Engine returned a {controller.shape} controller, expected ({n_control}, {n_meas})",
        )
    if not np.isfinite(gamma) or gamma > bracket[1] * (1.0 + config["tolerance"]):
        raise SynthesisInfeasibleError(
            f"Engine reported gamma = {gamma:g} outside the bracket [{bracket[0]:g}, {bracket[1]:g}]",
            gamma_bracket=bracket,
        )
    if gamma < bracket[0]:
        logger.warning(
            "Achieved gamma %.6g is below gamma_low %.6g; the bracket is not tight",
            gamma,
            bracket[0],
        )

    closed_loop = lower_lft(plant, controller, n_meas, n_control)
    stability = analyze_stability(closed_loop.A)
    if not stability["is_stable"]:
        raise SynthesisInfeasibleError(
            f"Controller at gamma = {gamma:g} leaves closed-loop poles at "
            f"max Re = {stability['max_real_part']:.3g}",
            gamma_bracket=bracket,
        )

    sampled = peak_norm(evaluate(closed_loop, frequency_grid()))
    logger.info(
        "Synthesis finished after %d iteration(s): gamma = %.4f, sampled norm = %.4f",
        iterations,
        gamma,
        sampled,
    )

    result: SynthesisResult = {
        "controller": controller,
        "closed_loop": closed_loop,
        "gamma": gamma,
        "gamma_bracket": bracket,
        "iterations": int(iterations),
        "peak_norm": sampled,
        "closed_loop_stable": True,
    }
    return result


__all__ = [
    "SynthesisEngine",
    "slycot_hinf_engine",
    "synthesize",
]
