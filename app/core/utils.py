from decimal import Decimal, ROUND_HALF_UP, getcontext, InvalidOperation

getcontext().prec = 28
CENTS = Decimal("0.01")
ZERO = Decimal("0")

# balances inside this band are treated as rounding noise
DEAD_ZONE = Decimal("0.01")


def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """
    Converts a float/int/str amount to Decimal through its string form,
    so 0.1 stays 0.1 instead of its binary expansion.

    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")

    if not d.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")

    return d


def is_settled(amount: Decimal) -> bool:
    return abs(amount) <= DEAD_ZONE


def money(d: Decimal) -> float:
    return float(qround(d))
