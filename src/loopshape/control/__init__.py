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
Robust Control Design
=====================

H∞ synthesis behind an engine boundary, µ bounds, D-K iteration and the
mixed-sensitivity loop-shaping pipeline.

Synthesis
---------
>>> from loopshape.control import synthesize, mixed_sensitivity_interconnection
>>>
>>> G = mixed_sensitivity_interconnection(P, wu=1e-6, wt=Wt)
>>> result = synthesize(G, n_meas=1, n_control=1, gamma_low=0.1, gamma_high=8.0)

Pipeline
--------
>>> from loopshape.control import LoopShapingPipeline
>>>
>>> report = LoopShapingPipeline().design(P, wu=1e-6, wt=Wt)

Robustness
----------
>>> from loopshape.control import DKIteration, UncertaintyBlock, mu_bounds
>>>
>>> result = DKIteration(G, 1, 1, [UncertaintyBlock(2)], w).run()

Authors
-------
Gil Benezer

License
-------
GNU Affero General Public License v3.0
"""

from .dk_iteration import (
    DKIteration,
    DKIterationRecord,
    DKResult,
    DKState,
    ScalingFitterProtocol,
    SlycotScalingFitter,
    StaticScalingFitter,
)
from .loopshaping import LoopShapingPipeline, mixed_sensitivity_interconnection
from .mu import (
    MuBounds,
    UncertaintyBlock,
    mu_bounds,
    singular_value_mu_engine,
    slycot_mu_engine,
)
from .synthesis import slycot_hinf_engine, synthesize

__all__ = [
    # Synthesis
    "synthesize",
    "slycot_hinf_engine",
    # µ analysis
    "UncertaintyBlock",
    "MuBounds",
    "mu_bounds",
    "slycot_mu_engine",
    "singular_value_mu_engine",
    # D-K iteration
    "DKState",
    "DKIterationRecord",
    "DKResult",
    "DKIteration",
    "ScalingFitterProtocol",
    "StaticScalingFitter",
    "SlycotScalingFitter",
    # Pipeline
    "mixed_sensitivity_interconnection",
    "LoopShapingPipeline",
]
