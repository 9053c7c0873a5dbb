from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def to_money(val) -> Decimal:
    """Decimal rounded to the cent, the precision every stored amount carries."""
    return to_decimal(val).quantize(CENT, rounding=ROUND_HALF_UP)
