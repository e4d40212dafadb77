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
Interconnection Builder

Turns a declarative wiring description into one aggregate
``StateSpaceSystem`` exposing only the declared external inputs and outputs.

Algorithm
---------
With components G_1 ... G_k stacked block-diagonally into G (inputs v,
outputs y) and external inputs w, every wiring expression is a constant
matrix over the signal vector [w; y]:

    v = W_in  [w; y] = E w + L y      (component inputs)
    z = W_out [w; y] = O_w w + O_y y  (external outputs)

Zero-delay paths through feedthrough terms make y depend on itself:
y = C x + D (E w + L y). The loop is solved with (I - D L)⁻¹; a singular
coupling matrix raises ``UnresolvableInterconnectionError``.

Usage
-----
>>> from loopshape.interconnect import Interconnection
>>>
>>> ic = Interconnection.create(
...     components={"plant": P, "wt": Wt, "wu": Wu},
...     inputs={"ref": 1, "control": 1},
...     outputs="[wt; wu; ref - plant]",
...     input_to={"plant": "[control]", "wt": "[plant]", "wu": "[control]"},
... )
>>> G = ic.build(minimal=True)
>>> G.shape
(3, 2)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from loopshape.exceptions import DimensionMismatchError, UnresolvableInterconnectionError
from loopshape.interconnect.signals import (
    NamedSignal,
    SignalExpression,
    WiringLike,
    as_expression,
)
from loopshape.systems.algebra import block_diagonal, close_static_loop
from loopshape.systems.analysis import minimal_realization
from loopshape.systems.state_space import StateSpaceSystem
from loopshape.types.config import ToleranceConfig, resolve_tolerances

logger = logging.getLogger(__name__)

InputsLike = Union[Mapping[str, int], Sequence[Union[NamedSignal, Tuple[str, int]]]]


def _named_signals(inputs: InputsLike) -> Tuple[NamedSignal, ...]:
    if isinstance(inputs, Mapping):
        items: Iterable = inputs.items()
    else:
        items = inputs
    signals = []
    for item in items:
        if isinstance(item, NamedSignal):
            signals.append(item)
        else:
            name, size = item
            signals.append(NamedSignal(name, int(size)))
    return tuple(signals)


@dataclass(frozen=True)
class Interconnection:
    """
    Immutable wiring description.

    Attributes
    ----------
    components : Tuple[Tuple[str, StateSpaceSystem], ...]
        Named components in stacking order
    inputs : Tuple[NamedSignal, ...]
        External inputs in order; their concatenation is the input vector
    outputs : SignalExpression
        Wiring of the external output vector
    input_to : Tuple[Tuple[str, SignalExpression], ...]
        Wiring of each component input vector

    Notes
    -----
    Use ``create`` to build one from plain mappings and textual expressions;
    textual expressions are parsed there, once.
    """

    components: Tuple[Tuple[str, StateSpaceSystem], ...]
    inputs: Tuple[NamedSignal, ...]
    outputs: SignalExpression
    input_to: Tuple[Tuple[str, SignalExpression], ...]

    @classmethod
    def create(
        cls,
        components: Mapping[str, StateSpaceSystem],
        inputs: InputsLike,
        outputs: WiringLike,
        input_to: Mapping[str, WiringLike],
    ) -> "Interconnection":
        """
        Build an interconnection from plain Python structures.

        Args:
            components: Ordered name → system mapping
            inputs: External inputs as ``{name: size}`` or ``[(name, size), ...]``
            outputs: Output wiring (text or typed expression)
            input_to: Component name → input wiring

        Raises:
            UnresolvableInterconnectionError: On duplicate names or wiring for
                an unknown component

        Examples
        --------
        >>> ic = Interconnection.create({"G": G}, {"u": 1}, "[G]", {"G": "[u]"})
        """
        comps = tuple((str(name), system) for name, system in components.items())
        signals = _named_signals(inputs)

        names = [name for name, _ in comps] + [s.name for s in signals]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise UnresolvableInterconnectionError(
                f"Signal names must be unique across components and inputs, duplicated: {duplicates}",
                component=duplicates[0],
            )

        known = {name for name, _ in comps}
        for name in input_to:
            if name not in known:
                raise UnresolvableInterconnectionError(
                    f"Input wiring given for unknown component '{name}'", component=name,
                )

        wiring = tuple((name, as_expression(input_to[name])) for name, _ in comps if name in input_to)
        return cls(comps, signals, as_expression(outputs), wiring)

    # ========================================================================
    # Signal layout
    # ========================================================================

    def signal_layout(self) -> Dict[str, Tuple[int, int]]:
        """
        Column range of every signal inside [w; y].

        Returns:
            Mapping name → (offset, width)
        """
        layout: Dict[str, Tuple[int, int]] = {}
        offset = 0
        for signal in self.inputs:
            layout[signal.name] = (offset, signal.size)
            offset += signal.size
        for name, system in self.components:
            layout[name] = (offset, system.n_outputs)
            offset += system.n_outputs
        return layout

    @property
    def n_external_inputs(self) -> int:
        return sum(signal.size for signal in self.inputs)

    def _wiring_matrix(
        self,
        expression: SignalExpression,
        layout: Dict[str, Tuple[int, int]],
        n_columns: int,
        target: str,
    ) -> np.ndarray:
        """Selection matrix over [w; y] for one wiring expression."""
        blocks = []
        for row in expression.rows:
            width = None
            block = None
            for term in row.terms:
                name = term.ref.name
                if name not in layout:
                    raise UnresolvableInterconnectionError(
                        f"{target} references unknown signal '{name}'", component=name,
                    )
                offset, size = layout[name]
                start, stop = term.ref.resolve(size)
                if width is None:
                    width = stop - start
                    block = np.zeros((width, n_columns))
                elif stop - start != width:
                    raise DimensionMismatchError(
                        f"{target}: terms of '{row}' have different widths "
                        f"({width} vs {stop - start})",
                        signal=name,
                    )
                block[:, offset + start : offset + stop] += term.sign * np.eye(width)
            blocks.append(block)
        return np.vstack(blocks)

    # ========================================================================
    # Build
    # ========================================================================

    def build(
        self,
        minimal: bool = False,
        tolerances: Optional[ToleranceConfig] = None,
    ) -> StateSpaceSystem:
        """
        Resolve the wiring into one aggregate system.

        Args:
            minimal: Remove uncontrollable and unobservable modes afterwards
            tolerances: Overrides for ``loop`` and ``minimal`` tolerances

        Returns:
            System from the external inputs (in declaration order) to the
            output wiring rows

        Raises:
            UnresolvableInterconnectionError: Unknown signal, missing component
                wiring or singular coupling matrix
            DimensionMismatchError: Slice out of range or wiring width that does
                not match a component input

        Examples
        --------
        >>> G = ic.build()
        >>> G_min = ic.build(minimal=True, tolerances={"minimal": 1e-8})
        """
        tol = resolve_tolerances(tolerances)
        if not self.components:
            raise UnresolvableInterconnectionError("Interconnection has no components")

        layout = self.signal_layout()
        q = self.n_external_inputs
        n_columns = q + sum(system.n_outputs for _, system in self.components)
        wiring = dict(self.input_to)

        rows = []
        for name, system in self.components:
            if system.n_inputs == 0:
                continue
            if name not in wiring:
                raise UnresolvableInterconnectionError(
                    f"Component '{name}' has {system.n_inputs} input(s) but no input wiring",
                    component=name,
                )
            W = self._wiring_matrix(wiring[name], layout, n_columns, f"input of '{name}'")
            if W.shape[0] != system.n_inputs:
                raise DimensionMismatchError(
                    f"Wiring {wiring[name]} gives {W.shape[0]} signal(s) but component "
                    f"'{name}' has {system.n_inputs} input(s)",
                    signal=name,
                )
            rows.append(W)

        W_in = np.vstack(rows) if rows else np.zeros((0, n_columns))
        W_out = self._wiring_matrix(self.outputs, layout, n_columns, "output")

        aggregate = block_diagonal(*(system for _, system in self.components))
        result = close_static_loop(
            aggregate,
            loop=W_in[:, q:],
            external_to_input=W_in[:, :q],
            output_from_internal=W_out[:, q:],
            output_from_external=W_out[:, :q],
            tolerance=tol["loop"],
            error=UnresolvableInterconnectionError,
            context="interconnection",
        )
        logger.debug(
            "Built interconnection of %d components: %d states, %d inputs, %d outputs",
            len(self.components),
            result.n_states,
            result.n_inputs,
            result.n_outputs,
        )

        if minimal:
            result = minimal_realization(result, tol["minimal"])
        return result


__all__ = [
    "Interconnection",
]
