"""
Built-in functions available to computed-field expressions.

Numeric helpers treat None as 0 and accept numeric strings. Aggregates
(sum, avg, count) take a list and return 0 for anything else. String
helpers pass non-strings through unchanged.
"""

from __future__ import annotations

import math
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Union

Number = Union[int, float]


def to_number(value: Any) -> Number:
    """None -> 0, bool -> int, numeric string -> float; anything else is a ValueError."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return float(text)
        except ValueError:
            raise ValueError(f"Not a number: {value!r}") from None
    raise ValueError(f"Not a number: {value!r}")


def round_half_up(value: Number, decimals: int = 0) -> Number:
    """
    Round halves toward +infinity (2.5 -> 3, -2.5 -> -2).

    Integers come back unchanged so 9 stays 9.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not math.isfinite(value):
        return value
    factor = 10 ** decimals
    result = math.floor(value * factor + 0.5) / factor
    return int(result) if decimals == 0 else result


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as produced by now()
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Not a date: {value!r}") from None
    raise ValueError(f"Not a date: {value!r}")


def _numbers(values: Any) -> list[Number]:
    return [to_number(v) for v in values]


# =============================================================================
# Built-ins
# =============================================================================

def fn_now() -> int:
    return int(time.time() * 1000)


def fn_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def fn_year(value: Any) -> int:
    return _to_datetime(value).year


def fn_month(value: Any) -> int:
    return _to_datetime(value).month


def fn_day(value: Any) -> int:
    return _to_datetime(value).day


def fn_floor(value: Any) -> int:
    return math.floor(to_number(value))


def fn_ceil(value: Any) -> int:
    return math.ceil(to_number(value))


def fn_round(value: Any, decimals: Any = 0) -> Number:
    return round_half_up(to_number(value), int(to_number(decimals)))


def fn_abs(value: Any) -> Number:
    return abs(to_number(value))


def fn_min(*args: Any) -> Number:
    values = args[0] if len(args) == 1 and isinstance(args[0], (list, tuple)) else args
    return min(_numbers(values))


def fn_max(*args: Any) -> Number:
    values = args[0] if len(args) == 1 and isinstance(args[0], (list, tuple)) else args
    return max(_numbers(values))


def fn_concat(*args: Any) -> str:
    return "".join(_to_text(arg) for arg in args)


def fn_upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def fn_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def fn_trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def fn_sum(values: Any) -> Number:
    if not isinstance(values, (list, tuple)):
        return 0
    return sum(_numbers(values))


def fn_avg(values: Any) -> Number:
    if not isinstance(values, (list, tuple)) or not values:
        return 0
    return sum(_numbers(values)) / len(values)


def fn_count(values: Any) -> int:
    return len(values) if isinstance(values, (list, tuple)) else 0


BUILTIN_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "now": fn_now,
    "today": fn_today,
    "year": fn_year,
    "month": fn_month,
    "day": fn_day,
    "floor": fn_floor,
    "ceil": fn_ceil,
    "round": fn_round,
    "abs": fn_abs,
    "min": fn_min,
    "max": fn_max,
    "concat": fn_concat,
    "upper": fn_upper,
    "lower": fn_lower,
    "trim": fn_trim,
    "sum": fn_sum,
    "avg": fn_avg,
    "count": fn_count,
}


__all__ = [
    "BUILTIN_FUNCTIONS",
    "to_number",
    "round_half_up",
]
