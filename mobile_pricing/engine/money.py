"""Integer-won arithmetic shared by the pricing engine.

All helpers evaluate in a private decimal context so that results never
depend on the caller's thread-local context. Monetary outputs are whole won,
rounded half up.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, localcontext

WON_QUANTIZER = Decimal("1")
MONTHS_PER_YEAR = Decimal("12")

_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a rate or amount to Decimal via its text form."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_won(value: Decimal) -> int:
    """Round a decimal amount to the nearest whole won, ties half up."""
    return int(value.quantize(WON_QUANTIZER, rounding=ROUND_HALF_UP))


def percentage_of(amount: int, rate: Decimal) -> int:
    """Return ``amount * rate`` rounded to whole won."""
    with localcontext(_CONTEXT):
        return round_won(Decimal(amount) * rate)


def amortize(principal: int, annual_rate: Decimal, months: int) -> int:
    """Equal total monthly payment (annuity) for ``principal`` over ``months``.

    ``payment = P * r * (1 + r)**n / ((1 + r)**n - 1)`` with ``r`` the annual
    rate divided by 12. A zero rate, or one too small to move ``(1 + r)**n``
    off 1 at context precision, degrades to ``P / n``. Lump sum
    (``months == 0``) and a zero principal both amortize to 0.
    """
    if months == 0 or principal == 0:
        return 0

    with localcontext(_CONTEXT):
        principal_decimal = Decimal(principal)
        monthly_rate = annual_rate / MONTHS_PER_YEAR
        growth = (1 + monthly_rate) ** months
        if annual_rate == 0 or growth == 1:
            return round_won(principal_decimal / months)

        payment = principal_decimal * monthly_rate * growth / (growth - 1)
        return round_won(payment)
