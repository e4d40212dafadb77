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
Type Definitions
================

Array aliases, configuration dictionaries and result dictionaries shared
across the loop-shaping pipeline.

>>> from loopshape.types import SynthesisConfig, SynthesisResult, StabilityInfo
"""

from .config import (
    DEFAULT_GRID,
    DEFAULT_SYNTHESIS_CONFIG,
    DEFAULT_TOLERANCES,
    GridConfig,
    PipelineConfig,
    SynthesisConfig,
    ToleranceConfig,
    resolve_grid,
    resolve_tolerances,
    validate_synthesis_config,
)
from .control_classical import (
    ControllabilityInfo,
    MinimalRealizationInfo,
    ObservabilityInfo,
    StabilityInfo,
)
from .robustness import PipelineReport, SynthesisResult

__all__ = [
    # Configuration
    "ToleranceConfig",
    "SynthesisConfig",
    "GridConfig",
    "PipelineConfig",
    "DEFAULT_TOLERANCES",
    "DEFAULT_SYNTHESIS_CONFIG",
    "DEFAULT_GRID",
    "resolve_tolerances",
    "resolve_grid",
    "validate_synthesis_config",
    # Analysis results
    "StabilityInfo",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "MinimalRealizationInfo",
    # Synthesis results
    "SynthesisResult",
    "PipelineReport",
]
