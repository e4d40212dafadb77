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
Linear Systems
==============

Immutable LTI value objects, the algebra that composes them and structural
analysis.

>>> from loopshape.systems import RationalSystem, StateSpaceSystem, feedback
>>>
>>> P = RationalSystem.from_expression("10/((s-1)*(s+1))").to_realization()
>>> T = feedback(P, StateSpaceSystem.static(1.0))
"""

from .algebra import (
    block_diagonal,
    close_static_loop,
    feedback,
    hstack,
    inverse,
    lower_lft,
    parallel,
    series,
    vstack,
)
from .analysis import (
    SystemAnalysis,
    analyze_controllability,
    analyze_observability,
    analyze_stability,
    minimal_realization,
)
from .rational import RationalSystem
from .state_space import StateSpaceSystem

__all__ = [
    # Representations
    "RationalSystem",
    "StateSpaceSystem",
    # Algebra
    "series",
    "parallel",
    "feedback",
    "block_diagonal",
    "hstack",
    "vstack",
    "inverse",
    "close_static_loop",
    "lower_lft",
    # Analysis
    "SystemAnalysis",
    "analyze_stability",
    "analyze_controllability",
    "analyze_observability",
    "minimal_realization",
]
