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
Unit Tests for Wiring Expressions

Tests cover:
- Parsing of rows, signed sums and 1-based inclusive slices
- Round trip of the textual form
- Syntax and slice errors
- Coercion of typed and sequence wiring forms
"""

import pytest

from loopshape.exceptions import DimensionMismatchError, UnresolvableInterconnectionError
from loopshape.interconnect.signals import (
    LinearCombination,
    NamedSignal,
    SignalExpression,
    SignalRef,
    Term,
    as_expression,
    parse_expression,
)


class TestParseExpression:
    def test_bracketed_rows(self):
        expr = parse_expression("[wt; wu; yref - plant]")
        assert len(expr.rows) == 3
        assert expr.rows[0].terms == (Term(SignalRef("wt"), 1),)
        assert expr.rows[2].terms == (
            Term(SignalRef("yref"), 1),
            Term(SignalRef("plant"), -1),
        )

    def test_unbracketed_single_row(self):
        expr = parse_expression("r - plant")
        assert len(expr.rows) == 1
        assert [t.sign for t in expr.rows[0].terms] == [1, -1]

    def test_leading_sign(self):
        expr = parse_expression("-n + plant(1)")
        terms = expr.rows[0].terms
        assert terms[0] == Term(SignalRef("n"), -1)
        assert terms[1] == Term(SignalRef("plant", 0, 1), 1)

    def test_range_slice_is_one_based_inclusive(self):
        ref = parse_expression("plant(2:3)").rows[0].terms[0].ref
        assert (ref.start, ref.stop) == (1, 3)

    def test_single_index_slice(self):
        ref = parse_expression("plant(2)").rows[0].terms[0].ref
        assert (ref.start, ref.stop) == (1, 2)

    def test_whitespace_is_ignored(self):
        a = parse_expression("[ r-plant ;u ]")
        b = parse_expression("[r - plant; u]")
        assert a == b

    def test_names(self):
        expr = parse_expression("[ws; wu; r - plant(1:2)]")
        assert list(expr.names()) == ["ws", "wu", "r", "plant"]

    @pytest.mark.parametrize(
        "text",
        ["[r - plant; u]", "[wt; wu; r - plant(2:3)]", "-n + plant(1)", "[a + b - c]"],
    )
    def test_textual_round_trip(self, text):
        expr = parse_expression(text)
        assert parse_expression(str(expr)) == expr

    def test_str_of_bracketed_expression(self):
        assert str(parse_expression("[r - plant; u]")) == "[r - plant; u]"


class TestParseErrors:
    @pytest.mark.parametrize(
        "text",
        ["", "   ", "[a; b", "a +", "a $ b", "[a;; b]", "a b", "plant(1:)", "[]"],
    )
    def test_syntax_errors(self, text):
        with pytest.raises(UnresolvableInterconnectionError):
            parse_expression(text)

    def test_zero_index_raises(self):
        with pytest.raises(DimensionMismatchError):
            parse_expression("plant(0:1)")

    def test_reversed_slice_raises(self):
        with pytest.raises(DimensionMismatchError) as exc_info:
            parse_expression("plant(3:2)")
        assert exc_info.value.signal == "plant"


class TestTypedModel:
    def test_slice_resolution(self):
        assert SignalRef("plant", 1, 3).resolve(4) == (1, 3)
        assert SignalRef("plant").resolve(4) == (0, 4)

    def test_slice_out_of_range_raises(self):
        with pytest.raises(DimensionMismatchError):
            SignalRef("plant", 1, 3).resolve(2)

    def test_half_open_slice_raises(self):
        with pytest.raises(ValueError):
            SignalRef("plant", start=1)

    def test_signal_ref_str_is_one_based(self):
        assert str(SignalRef("plant", 1, 3)) == "plant(2:3)"
        assert str(SignalRef("plant", 0, 1)) == "plant(1)"

    def test_named_signal_validation(self):
        assert NamedSignal("r", 2).size == 2
        with pytest.raises(DimensionMismatchError):
            NamedSignal("r", 0)
        with pytest.raises(ValueError):
            NamedSignal("2r", 1)

    def test_term_sign_validation(self):
        with pytest.raises(ValueError):
            Term(SignalRef("r"), 2)

    def test_empty_containers_raise(self):
        with pytest.raises(ValueError):
            LinearCombination(())
        with pytest.raises(ValueError):
            SignalExpression(())


class TestAsExpression:
    def test_string(self):
        assert as_expression("[a; b]") == parse_expression("[a; b]")

    def test_expression_passes_through(self):
        expr = parse_expression("[a; b]")
        assert as_expression(expr) is expr

    def test_reference_and_term(self):
        assert as_expression(SignalRef("a")) == parse_expression("a")
        assert as_expression(Term(SignalRef("a"), -1)) == parse_expression("-a")

    def test_sequence_stacks_rows(self):
        expr = as_expression(["r - plant", SignalRef("u")])
        assert expr == parse_expression("[r - plant; u]")

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            as_expression(42)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
