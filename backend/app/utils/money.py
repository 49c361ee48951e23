from decimal import Decimal, ROUND_HALF_UP

Q3 = Decimal("0.001")
ZERO = Decimal("0")


def to_dec(v) -> Decimal:
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def q3(x) -> Decimal:
    return to_dec(x).quantize(Q3, rounding=ROUND_HALF_UP)
