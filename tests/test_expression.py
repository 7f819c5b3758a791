"""
Tests for the computed-field expression language and its built-ins.

Validates that:
1. Arithmetic, comparison and boolean syntax evaluate like Python
2. "^" is a power operator outside string literals
3. Anything outside the whitelist is rejected at compile time
4. Built-in helpers coerce and round the documented way
"""

from dataclasses import dataclass

import pytest

from formflow.computed import BUILTIN_FUNCTIONS, compile_expression, round_half_up
from formflow.computed.functions import to_number
from formflow.errors import ExpressionError, UnsafeExpressionError


def _eval(source, **context):
    return compile_expression(source).evaluate(context)


@dataclass
class Account:
    name: str
    tier: str


class TestSyntax:
    """Supported expression syntax."""

    @pytest.mark.parametrize("source,expected", [
        ("2 + 3 * 4", 14),
        ("(2 + 3) * 4", 20),
        ("7 // 2", 3),
        ("7 % 4", 3),
        ("-3 + 1", -2),
        ("2 ** 3", 8),
        ("2 ^ 3", 8),
        ("'a^b'", "a^b"),
        ("1 < 2 < 3", True),
        ("3 in [1, 2, 3]", True),
        ("'x' not in ['y']", True),
        ("true and not false", True),
        ("null", None),
    ])
    def test_literals_and_operators(self, source, expected):
        """Each construct evaluates to its Python meaning."""
        assert _eval(source) == expected

    def test_conditional_expression(self):
        """a if cond else b picks a branch."""
        assert _eval("'big' if n > 10 else 'small'", n=20) == "big"
        assert _eval("'big' if n > 10 else 'small'", n=2) == "small"

    def test_boolean_operators_return_operands(self):
        """or returns the deciding operand, like Python."""
        assert _eval("nickname or name", nickname="", name="Ada") == "Ada"

    def test_member_and_index_access(self):
        """Mappings are read by attribute or key, lists by index."""
        context = {"applicant": {"income": 100}, "items": [{"price": 5}]}
        assert _eval("applicant.income", **context) == 100
        assert _eval("items[0].price", **context) == 5
        assert _eval("items[3]", **context) is None
        assert _eval("applicant.missing", **context) is None

    def test_attribute_of_none_is_none(self):
        """Walking through a missing value yields None."""
        assert _eval("address.city", address=None) is None

    def test_attribute_of_plain_object(self):
        """Non-mapping values expose their data attributes."""
        user = Account(name="Ada", tier="gold")
        assert _eval("user.name", user=user) == "Ada"
        assert _eval("upper(user.tier)", user=user, upper=str.upper) == "GOLD"

    def test_unknown_or_callable_attribute_raises(self):
        """Missing attributes and methods are not readable."""
        user = Account(name="Ada", tier="gold")
        with pytest.raises(ExpressionError, match="Cannot read 'email'"):
            _eval("user.email", user=user)
        with pytest.raises(ExpressionError, match="Cannot read 'upper'"):
            _eval("name.upper", name="ada")

    def test_referenced_names(self):
        """Compiled expressions list the names and functions they use."""
        compiled = compile_expression("round(price * qty, 2) + true")
        assert compiled.names == {"price", "qty"}
        assert compiled.calls == {"round"}


class TestErrors:
    """Rejected and failing expressions."""

    @pytest.mark.parametrize("source", [
        "a.__class__",
        "_secret",
        "lambda: 1",
        "[x for x in items]",
        "name.upper()",
        "round(x, ndigits=2)",
        "{'a': 1}",
    ])
    def test_unsafe_syntax(self, source):
        """Syntax outside the whitelist never compiles."""
        with pytest.raises(UnsafeExpressionError):
            compile_expression(source)

    @pytest.mark.parametrize("source", ["", "   ", "price *", "(1 + 2"])
    def test_syntax_errors(self, source):
        """Empty or malformed sources are expression errors."""
        with pytest.raises(ExpressionError):
            compile_expression(source)

    def test_undefined_name(self):
        """Unknown names fail at evaluation time."""
        with pytest.raises(ExpressionError, match="Undefined variable 'price'"):
            _eval("price * 2")

    def test_unknown_function(self):
        """Unknown functions fail at evaluation time."""
        with pytest.raises(ExpressionError, match="Unknown function 'nope'"):
            _eval("nope(1)")

    def test_huge_exponent(self):
        """Exponents past the bound are refused."""
        with pytest.raises(ExpressionError, match="too large"):
            _eval("9 ^ 100000")


class TestBuiltins:
    """Functions available to every expression."""

    def test_round_half_up(self):
        """Halves round toward +infinity; ints pass through."""
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(9, 2) == 9
        assert isinstance(round_half_up(9, 2), int)

    def test_to_number(self):
        """None is zero and numeric strings are accepted."""
        assert to_number(None) == 0
        assert to_number("2.5") == 2.5
        assert to_number(True) == 1
        with pytest.raises(ValueError):
            to_number("abc")

    @pytest.mark.parametrize("source,expected", [
        ("round(2.125, 2)", 2.13),
        ("floor(2.7)", 2),
        ("ceil(2.1)", 3),
        ("abs(-4)", 4),
        ("min(3, 1, 2)", 1),
        ("max([3, 1, 2])", 3),
        ("sum([1, '2', null])", 3),
        ("avg([2, 4])", 3),
        ("count([1, 2])", 2),
        ("count(5)", 0),
        ("concat('a', 1.0, null, true)", "a1true"),
        ("upper('ab')", "AB"),
        ("lower('AB')", "ab"),
        ("trim('  x ')", "x"),
        ("year('2024-03-09')", 2024),
        ("month('2024-03-09')", 3),
        ("day('2024-03-09')", 9),
    ])
    def test_builtin_functions(self, source, expected):
        """Each helper behaves as documented."""
        assert compile_expression(source).evaluate(BUILTIN_FUNCTIONS) == expected

    def test_now_and_today(self):
        """now() is epoch milliseconds; today() is an ISO date."""
        now = BUILTIN_FUNCTIONS["now"]()
        assert isinstance(now, int) and now > 1_600_000_000_000
        assert len(BUILTIN_FUNCTIONS["today"]()) == 10
