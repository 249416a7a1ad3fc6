import functools
import numbers
from decimal import Decimal, Context, ROUND_FLOOR, localcontext
from typing import Union

import numpy as np

Number = Union[Decimal, int, float, str, np.number]

MINUTES_PER_YEAR = Decimal(365 * 24 * 60)

# Quantization exponents applied at accrual steps.
ASSET_SCALE = Decimal("1e-9")
VALUE_SCALE = Decimal("1e-6")

DECIMAL_CONTEXT = Context(prec=40, rounding=ROUND_FLOOR)

ZERO = Decimal(0)
ONE = Decimal(1)


def to_decimal(value: Number) -> Decimal:
    """
    Convert a numeric value to ``Decimal`` without inheriting binary float noise.

    Floats are routed through ``str`` so that ``0.33`` becomes ``Decimal("0.33")``
    rather than its exact binary expansion. numpy scalars, as found in float or
    integer pandas series, are accepted as well.

    Parameters
    ----------
    value : Decimal, int, float, numpy scalar or str
        The value to convert.

    Returns
    -------
    Decimal
        The decimal representation of ``value``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (float, np.floating)):
        return Decimal(str(value))
    if isinstance(value, numbers.Integral):
        return Decimal(int(value))
    return Decimal(value)


def with_decimal_context(fn):
    """Run ``fn`` inside the shared floor-rounding decimal context."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        with localcontext(DECIMAL_CONTEXT):
            return fn(*args, **kwargs)

    return wrapper


def floor_to(value: Decimal, exponent: Decimal) -> Decimal:
    """
    Round ``value`` toward negative infinity at the scale given by ``exponent``.

    Parameters
    ----------
    value : Decimal
        The amount to quantize.
    exponent : Decimal
        Scale template, e.g. ``Decimal("1e-9")`` for nine decimal places.

    Returns
    -------
    Decimal
        The floored amount.
    """
    return value.quantize(exponent, rounding=ROUND_FLOOR, context=DECIMAL_CONTEXT)


def period_fraction(rate: Decimal, period_minutes: Decimal) -> Decimal:
    """Return the share of an annual ``rate`` earned over ``period_minutes``."""
    with localcontext(DECIMAL_CONTEXT):
        return rate * period_minutes / MINUTES_PER_YEAR


def values_close(a: Decimal, b: Decimal, tolerance: Number = "0.001") -> bool:
    """Return True when ``a`` and ``b`` differ by strictly less than ``tolerance``."""
    return abs(a - b) < to_decimal(tolerance)
