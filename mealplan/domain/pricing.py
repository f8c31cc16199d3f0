# mealplan/domain/pricing.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from mealplan.domain.catalog import MenuItem
from mealplan.domain.constants import EXTRA_ORDER_SURCHARGE

_WHOLE_RUPEE = Decimal("1")


def price(lines: Iterable[Tuple[MenuItem, int]], is_extra: bool) -> Decimal:
    """Order total in whole rupees; extra orders carry the surcharge."""
    subtotal = sum((item.unit_price * qty for item, qty in lines), Decimal("0"))
    if is_extra:
        subtotal = subtotal * EXTRA_ORDER_SURCHARGE
    return subtotal.quantize(_WHOLE_RUPEE, rounding=ROUND_HALF_UP)
