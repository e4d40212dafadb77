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
Interconnection
===============

Declarative wiring of named components into a generalized plant.

>>> from loopshape.interconnect import Interconnection, parse_expression
>>>
>>> ic = Interconnection.create(
...     components={"plant": P, "wt": Wt},
...     inputs={"ref": 1, "control": 1},
...     outputs="[wt; ref - plant]",
...     input_to={"plant": "[control]", "wt": "[plant]"},
... )
>>> G = ic.build()
"""

from .builder import Interconnection
from .signals import (
    LinearCombination,
    NamedSignal,
    SignalExpression,
    SignalRef,
    Term,
    as_expression,
    parse_expression,
)

__all__ = [
    "Interconnection",
    "NamedSignal",
    "SignalRef",
    "Term",
    "LinearCombination",
    "SignalExpression",
    "parse_expression",
    "as_expression",
]
