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
loopshape
=========

H∞ mixed-sensitivity loop shaping: build a weighted generalized plant,
synthesize a controller through an external engine, validate it on a
frequency grid.

>>> from loopshape import RationalSystem, LoopShapingPipeline
>>>
>>> P = RationalSystem.from_expression("10/((s-1)*(s+1))")
>>> Wt = RationalSystem.from_expression("2.4*s/(s+4)")
>>> report = LoopShapingPipeline(
...     {"synthesis": {"gamma_low": 0.1, "gamma_high": 8.0}}
... ).design(P, wu=1e-6, wt=Wt)

Subpackages
-----------
systems      RationalSystem, StateSpaceSystem, algebra, structural analysis
interconnect Declarative wiring (sysic-style expressions)
analysis     Frequency response and sampled norms
control      H∞ synthesis, µ bounds, D-K iteration, pipeline
workspace    Named-variable loading and saving
visualization Optional plotly reports (import explicitly)
"""

from loopshape.analysis import (
    FrequencyResponse,
    dc_gain,
    evaluate,
    frequency_grid,
    peak_frequency,
    peak_norm,
    singular_values,
)
from loopshape.control import (
    DKIteration,
    LoopShapingPipeline,
    UncertaintyBlock,
    mixed_sensitivity_interconnection,
    mu_bounds,
    synthesize,
)
from loopshape.exceptions import (
    DimensionMismatchError,
    LoopShapeError,
    MalformedSystemError,
    SingularFrequencyError,
    SingularLoopError,
    SynthesisInfeasibleError,
    UnresolvableInterconnectionError,
)
from loopshape.interconnect import Interconnection, parse_expression
from loopshape.systems import (
    RationalSystem,
    StateSpaceSystem,
    block_diagonal,
    feedback,
    lower_lft,
    minimal_realization,
    parallel,
    series,
)
from loopshape.workspace import Workspace, load_workspace, save_workspace

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Systems
    "RationalSystem",
    "StateSpaceSystem",
    "series",
    "parallel",
    "feedback",
    "block_diagonal",
    "lower_lft",
    "minimal_realization",
    # Interconnection
    "Interconnection",
    "parse_expression",
    # Frequency analysis
    "FrequencyResponse",
    "frequency_grid",
    "evaluate",
    "singular_values",
    "peak_norm",
    "peak_frequency",
    "dc_gain",
    # Control
    "synthesize",
    "mixed_sensitivity_interconnection",
    "LoopShapingPipeline",
    "UncertaintyBlock",
    "mu_bounds",
    "DKIteration",
    # Workspace
    "Workspace",
    "load_workspace",
    "save_workspace",
    # Errors
    "LoopShapeError",
    "MalformedSystemError",
    "SingularLoopError",
    "UnresolvableInterconnectionError",
    "DimensionMismatchError",
    "SingularFrequencyError",
    "SynthesisInfeasibleError",
]
