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
Signal Expressions

Typed representation of interconnection wiring. A wiring is a stacked list of
rows; each row is a signed sum of signal references; each reference names an
external input or a component output and may select a slice of it.

    "[wt; wu; yref - plant]"      three rows
    "plant(2:3)"                  outputs 2 and 3 of ``plant`` (1-based, inclusive)
    "-noise + plant(1)"           signed sum of two width-1 references

Textual expressions are parsed once by ``parse_expression`` into
``SignalExpression`` objects; the builder only ever sees the typed form.
Slices are stored 0-based and half-open, like Python slices.

Grammar
-------
    expression  := '[' row (';' row)* ']' | row
    row         := [sign] reference (sign reference)*
    reference   := name ['(' index [':' index] ')']
    sign        := '+' | '-'

Usage
-----
>>> from loopshape.interconnect.signals import parse_expression
>>>
>>> expr = parse_expression("[wt; wu; yref - plant(1)]")
>>> len(expr.rows)
3
>>> expr.rows[2].terms[1]
Term(ref=SignalRef(name='plant', start=0, stop=1), sign=-1)
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from loopshape.exceptions import DimensionMismatchError, UnresolvableInterconnectionError

# ============================================================================
# Typed expression model
# ============================================================================


@dataclass(frozen=True)
class NamedSignal:
    """External signal label and width."""

    name: str
    size: int

    def __post_init__(self):
        if not _NAME.fullmatch(self.name):
            raise ValueError(f"Invalid signal name '{self.name}'")
        if int(self.size) < 1:
            raise DimensionMismatchError(
                f"Signal '{self.name}' must have positive size, got {self.size}",
                signal=self.name,
            )


@dataclass(frozen=True)
class SignalRef:
    """
    Reference to a whole signal or a slice of it.

    Attributes
    ----------
    name : str
        External input or component name
    start, stop : Optional[int]
        0-based half-open slice; both None selects the whole signal
    """

    name: str
    start: Optional[int] = None
    stop: Optional[int] = None

    def __post_init__(self):
        if (self.start is None) != (self.stop is None):
            raise ValueError("SignalRef slice needs both start and stop")
        if self.start is not None and not 0 <= self.start < self.stop:
            raise DimensionMismatchError(
                f"Empty or negative slice [{self.start}:{self.stop}] of '{self.name}'",
                signal=self.name,
            )

    def resolve(self, width: int) -> Tuple[int, int]:
        """
        Absolute (start, stop) inside a signal of the given width.

        Raises:
            DimensionMismatchError: If the slice exceeds the signal
        """
        if self.start is None:
            return 0, width
        if self.stop > width:
            raise DimensionMismatchError(
                f"Slice {self} is out of range for '{self.name}' with width {width}",
                signal=self.name,
            )
        return self.start, self.stop

    def __str__(self) -> str:
        if self.start is None:
            return self.name
        if self.stop == self.start + 1:
            return f"{self.name}({self.start + 1})"
        return f"{self.name}({self.start + 1}:{self.stop})"


@dataclass(frozen=True)
class Term:
    """Signed signal reference."""

    ref: SignalRef
    sign: int = 1

    def __post_init__(self):
        if self.sign not in (-1, 1):
            raise ValueError(f"Term sign must be +1 or -1, got {self.sign}")


@dataclass(frozen=True)
class LinearCombination:
    """Signed sum of equally wide references (one row of a wiring)."""

    terms: Tuple[Term, ...]

    def __post_init__(self):
        if not self.terms:
            raise ValueError("LinearCombination needs at least one term")
        object.__setattr__(self, "terms", tuple(self.terms))

    def __str__(self) -> str:
        parts = []
        for i, term in enumerate(self.terms):
            if term.sign < 0:
                parts.append(f"-{term.ref}" if i == 0 else f" - {term.ref}")
            else:
                parts.append(str(term.ref) if i == 0 else f" + {term.ref}")
        return "".join(parts)


@dataclass(frozen=True)
class SignalExpression:
    """Vertically stacked rows, the wiring of one input vector."""

    rows: Tuple[LinearCombination, ...]

    def __post_init__(self):
        if not self.rows:
            raise ValueError("SignalExpression needs at least one row")
        object.__setattr__(self, "rows", tuple(self.rows))

    def names(self) -> Iterator[str]:
        """Every referenced signal name, in order of appearance."""
        for row in self.rows:
            for term in row.terms:
                yield term.ref.name

    def __str__(self) -> str:
        return "[" + "; ".join(str(row) for row in self.rows) + "]"


# ============================================================================
# Parser
# ============================================================================

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_TOKEN = re.compile(r"\s*(?:(?P<name>[A-Za-z_][A-Za-z0-9_]*)|(?P<int>\d+)|(?P<op>[\[\];:+\-()]))")


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _TOKEN.match(stripped, pos)
        if match is None:
            raise UnresolvableInterconnectionError(
                f"Cannot parse wiring '{text}' at position {pos}: {stripped[pos:]!r}",
            )
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def error(self, message: str) -> UnresolvableInterconnectionError:
        return UnresolvableInterconnectionError(f"Cannot parse wiring '{self.text}': {message}")

    def peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, value: Optional[str] = None, kind: Optional[str] = None) -> str:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of expression")
        if (value is not None and token[1] != value) or (kind is not None and token[0] != kind):
            raise self.error(f"expected {value or kind}, got '{token[1]}'")
        self.pos += 1
        return token[1]

    def accept(self, value: str) -> bool:
        token = self.peek()
        if token is not None and token[0] == "op" and token[1] == value:
            self.pos += 1
            return True
        return False

    def expression(self) -> SignalExpression:
        if not self.tokens:
            raise self.error("empty expression")
        if self.accept("["):
            rows = [self.row()]
            while self.accept(";"):
                rows.append(self.row())
            self.take("]")
        else:
            rows = [self.row()]
        if self.peek() is not None:
            raise self.error(f"trailing input '{self.peek()[1]}'")
        return SignalExpression(tuple(rows))

    def row(self) -> LinearCombination:
        sign = 1
        if self.accept("-"):
            sign = -1
        else:
            self.accept("+")
        terms = [Term(self.reference(), sign)]
        while True:
            if self.accept("+"):
                terms.append(Term(self.reference(), 1))
            elif self.accept("-"):
                terms.append(Term(self.reference(), -1))
            else:
                return LinearCombination(tuple(terms))

    def reference(self) -> SignalRef:
        name = self.take(kind="name")
        if not self.accept("("):
            return SignalRef(name)
        first = int(self.take(kind="int"))
        last = int(self.take(kind="int")) if self.accept(":") else first
        self.take(")")
        if first < 1 or last < first:
            raise DimensionMismatchError(
                f"Invalid slice {name}({first}:{last}) in '{self.text}' "
                f"(indices are 1-based and inclusive)",
                signal=name,
            )
        return SignalRef(name, first - 1, last)


def parse_expression(text: str) -> SignalExpression:
    """
    Parse a textual wiring expression.

    Args:
        text: Expression such as ``"[wt; wu; yref - plant]"``

    Returns:
        SignalExpression

    Raises:
        UnresolvableInterconnectionError: On a syntax error
        DimensionMismatchError: On an empty or zero-based slice

    Examples
    --------
    >>> parse_expression("plant(2:3)").rows[0].terms[0].ref
    SignalRef(name='plant', start=1, stop=3)
    >>> str(parse_expression("[r - plant; u]"))
    '[r - plant; u]'
    """
    return _Parser(text).expression()


WiringLike = Union[str, SignalExpression, LinearCombination, Term, SignalRef, Sequence]


def as_expression(value: WiringLike) -> SignalExpression:
    """
    Coerce any supported wiring form to a ``SignalExpression``.

    Accepts a string, a typed expression, a single row, term or reference, or
    a sequence of those (one row each).
    """
    if isinstance(value, SignalExpression):
        return value
    if isinstance(value, str):
        return parse_expression(value)
    if isinstance(value, LinearCombination):
        return SignalExpression((value,))
    if isinstance(value, Term):
        return SignalExpression((LinearCombination((value,)),))
    if isinstance(value, SignalRef):
        return SignalExpression((LinearCombination((Term(value),)),))
    if isinstance(value, (list, tuple)):
        rows = []
        for item in value:
            rows.extend(as_expression(item).rows)
        return SignalExpression(tuple(rows))
    raise TypeError(f"Cannot interpret {type(value).__name__} as a wiring expression")


__all__ = [
    "NamedSignal",
    "SignalRef",
    "Term",
    "LinearCombination",
    "SignalExpression",
    "parse_expression",
    "as_expression",
]
