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
Frequency-Domain Analysis
=========================

>>> from loopshape.analysis import evaluate, frequency_grid, peak_norm
>>>
>>> response = evaluate(closed_loop, frequency_grid(-3, 3, 600))
>>> gamma_sampled = peak_norm(response)
"""

from .frequency import (
    FrequencyResponse,
    dc_gain,
    evaluate,
    frequency_grid,
    peak_frequency,
    peak_norm,
    singular_values,
)

__all__ = [
    "FrequencyResponse",
    "frequency_grid",
    "evaluate",
    "singular_values",
    "peak_norm",
    "peak_frequency",
    "dc_gain",
]
