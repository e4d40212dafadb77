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
Mixed-Sensitivity Loop Shaping

The end-to-end workflow: weight the plant, form the generalized plant,
synthesize, validate on a frequency grid.

Generalized plant
-----------------
For a plant P with reference r and control u, the tracking error is
e = r - P u and the performance outputs are weighted copies of the error,
the control effort and the plant output:

          ┌──────────────┐
    r ───>│              │───> Ws e      (sensitivity weight)
          │              │───> Wu u      (control weight)
    u ───>│  G(s)        │───> Wt P u    (complementary sensitivity weight)
          │              │───> e         (measurement)
          └──────────────┘

Closing u = K e gives the stacked weighted sensitivities

    T_zr = [Ws S; Wu K S; Wt T],   S = (I + P K)⁻¹,  T = I - S

Usage
-----
>>> from loopshape.control.loopshaping import LoopShapingPipeline
>>> from loopshape.systems import RationalSystem
>>>
>>> P = RationalSystem.from_expression("10/((s-1)*(s+1))")
>>> Wt = RationalSystem.from_expression("2.4*s/(s+4)")
>>> pipeline = LoopShapingPipeline({"synthesis": {"gamma_low": 0.1, "gamma_high": 8.0}})
>>> report = pipeline.design(P, wu=1e-6, wt=Wt)
Final gamma = ..., max singular value = ...
"""

import logging
from typing import Dict, Optional, Union

import numpy as np

from loopshape.analysis.frequency import (
    evaluate,
    frequency_grid,
    peak_frequency,
    peak_norm,
    singular_values,
)
from loopshape.control.synthesis import SynthesisEngine, synthesize
from loopshape.interconnect.builder import Interconnection
from loopshape.systems.rational import RationalSystem
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import (
    PipelineConfig,
    resolve_grid,
    resolve_tolerances,
    validate_synthesis_config,
)
from loopshape.types.core import ArrayLike
from loopshape.types.robustness import PipelineReport

logger = logging.getLogger(__name__)

SystemLike = Union[StateSpaceSystem, RationalSystem, float, np.ndarray]


def _as_system(value: SystemLike, name: str, width: Optional[int] = None) -> StateSpaceSystem:
    """Promote a weight to a StateSpaceSystem; scalars become scalar·I."""
    if isinstance(value, StateSpaceSystem):
        system = value
    elif isinstance(value, RationalSystem):
        system = value.to_realization()
    else:
        system = StateSpaceSystem.static(value)

    if width is None:
        return system
    if system.is_static and system.shape == (1, 1) and width > 1:
        system = StateSpaceSystem.static(system.D[0, 0] * np.eye(width))
    if system.n_inputs != width:
        raise ValueError(f"Weight '{name}' must have {width} input(s), got {system.n_inputs}")
    return system


def mixed_sensitivity_interconnection(
    plant: SystemLike,
    ws: Optional[SystemLike] = None,
    wu: Optional[SystemLike] = None,
    wt: Optional[SystemLike] = None,
    minimal: bool = True,
) -> StateSpaceSystem:
    """
    Generalized plant for mixed-sensitivity design.

    Args:
        plant: Nominal plant P (p outputs, m inputs)
        ws: Weight on the error e = r - P u (p inputs)
        wu: Weight on the control u (m inputs)
        wt: Weight on the plant output P u (p inputs)
        minimal: Remove uncontrollable and unobservable modes

    Returns:
        System from [r; u] to [Ws e; Wu u; Wt P u; e]; omitted weights drop
        their output rows. Use ``n_meas = p`` and ``n_control = m`` for
        synthesis.

    Raises:
        ValueError: If no weight is given or a weight has the wrong width

    Examples
    --------
    >>> P = RationalSystem.from_coefficients([10], [1, 0, -1])
    >>> Wt = RationalSystem.from_coefficients([2.4, 0], [1, 4])
    >>> G = mixed_sensitivity_interconnection(P, wu=1e-6, wt=Wt)
    >>> G.shape
    (3, 2)
    """
    P = _as_system(plant, "plant")
    p, m = P.n_outputs, P.n_inputs

    components: Dict[str, StateSpaceSystem] = {"plant": P}
    input_to: Dict[str, str] = {"plant": "[u]"}
    outputs = []
    if ws is not None:
        components["ws"] = _as_system(ws, "ws", p)
        input_to["ws"] = "[r - plant]"
        outputs.append("ws")
    if wu is not None:
        components["wu"] = _as_system(wu, "wu", m)
        input_to["wu"] = "[u]"
        outputs.append("wu")
    if wt is not None:
        components["wt"] = _as_system(wt, "wt", p)
        input_to["wt"] = "[plant]"
        outputs.append("wt")
    if not outputs:
        raise ValueError("At least one of ws, wu, wt must be given")
    outputs.append("r - plant")

    ic = Interconnection.create(
        components=components,
        inputs={"r": p, "u": m},
        outputs="[" + "; ".join(outputs) + "]",
        input_to=input_to,
    )
    return ic.build(minimal=minimal)


class LoopShapingPipeline:
    """
    Build, synthesize, validate.

    Stateless between runs: every call to ``run`` or ``design`` returns a
    fresh ``PipelineReport``.

    Parameters
    ----------
    config : Optional[PipelineConfig]
        Synthesis bracket, validation grid and tolerances
    engine : Optional[SynthesisEngine]
        H∞ engine handed to ``synthesize``

    Examples
    --------
    >>> pipeline = LoopShapingPipeline({"synthesis": {"gamma_low": 0.1, "gamma_high": 8.0}})
    >>> report = pipeline.run(G, n_meas=1, n_control=1)
    >>> report["peak_norm"] <= report["synthesis"]["gamma"] * 1.01
    True
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        engine: Optional[SynthesisEngine] = None,
    ):
        config = config or {}
        unknown = set(config) - {"synthesis", "grid", "tolerances"}
        if unknown:
            raise ValueError(f"Unknown pipeline option(s) {sorted(unknown)}")
        self.synthesis = validate_synthesis_config(config.get("synthesis"))
        self.grid = resolve_grid(config.get("grid"))
        self.tolerances = resolve_tolerances(config.get("tolerances"))
        self.engine = engine

    def run(
        self,
        generalized_plant: StateSpaceSystem,
        n_meas: int,
        n_control: int,
        frequencies: Optional[ArrayLike] = None,
    ) -> PipelineReport:
        """
        Synthesize a controller and validate the closed loop.

        Args:
            generalized_plant: Plant from [w; u] to [z; y]
            n_meas: Number of measured outputs
            n_control: Number of control inputs
            frequencies: Validation grid; defaults to the configured grid

        Returns:
            PipelineReport

        Raises:
            SynthesisInfeasibleError: If no controller is found in the bracket
            SingularFrequencyError: If the closed loop has a pole on the grid
        """
        result = synthesize(
            generalized_plant,
            n_meas,
            n_control,
            engine=self.engine,
            **self.synthesis,
        )

        if frequencies is None:
            frequencies = frequency_grid(
                self.grid["start_decade"], self.grid["stop_decade"], self.grid["num"],
            )
        response = evaluate(result["closed_loop"], frequencies, self.tolerances["frequency"])
        peak = peak_norm(response)

        logger.info("Final gamma = %.4f, max singular value = %.4f", result["gamma"], peak)

        report: PipelineReport = {
            "synthesis": result,
            "response": response,
            "singular_values": singular_values(response),
            "peak_norm": peak,
            "peak_frequency": peak_frequency(response),
        }
        return report

    def design(
        self,
        plant: SystemLike,
        ws: Optional[SystemLike] = None,
        wu: Optional[SystemLike] = None,
        wt: Optional[SystemLike] = None,
        frequencies: Optional[ArrayLike] = None,
    ) -> PipelineReport:
        """
        Mixed-sensitivity design in one call.

        Builds ``mixed_sensitivity_interconnection`` and runs it with the
        error as measurement and the plant input as control.
        """
        G = mixed_sensitivity_interconnection(plant, ws=ws, wu=wu, wt=wt)
        p, m = _as_system(plant, "plant").shape
        return self.run(G, n_meas=p, n_control=m, frequencies=frequencies)


__all__ = [
    "mixed_sensitivity_interconnection",
    "LoopShapingPipeline",
]
