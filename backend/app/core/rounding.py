from decimal import ROUND_FLOOR, Decimal

HALF = Decimal("0.5")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity (82.5 -> 83, -2.5 -> -2)."""
    return int((Decimal(value) + HALF).to_integral_value(rounding=ROUND_FLOOR))
