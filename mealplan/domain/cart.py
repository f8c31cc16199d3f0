# mealplan/domain/cart.py
from dataclasses import dataclass
from typing import Dict, List, Optional

from mealplan.domain.catalog import get_item
from mealplan.domain.constants import MAX_LINE_QUANTITY
from mealplan.domain.errors import CapacityError, QuantityOutOfRangeError
from mealplan.domain.plan import LedgerSnapshot, can_add


@dataclass(frozen=True)
class CartLine:
    item_id: str
    quantity: int


class Cart:
    """
    Staging area item_id -> quantity for one customer.

    Additions are gated by the ledger snapshot passed in; a rejected addition
    raises and leaves the cart untouched.
    """

    def __init__(self, lines: Optional[Dict[str, int]] = None):
        self._lines: Dict[str, int] = {}
        for item_id, qty in (lines or {}).items():
            if qty > 0:
                self._lines[item_id] = qty

    def add(self, item_id: str, ledger: Optional[LedgerSnapshot] = None) -> int:
        get_item(item_id)
        current = self._lines.get(item_id, 0)

        if ledger is not None:
            check = can_add(ledger, item_id, self.total_quantity(), requested_qty=1)
            if not check.ok:
                raise CapacityError(check.reason, item_id=item_id)

        if current >= MAX_LINE_QUANTITY:
            raise QuantityOutOfRangeError(
                f"At most {MAX_LINE_QUANTITY} of one item per order",
                item_id=item_id,
            )

        self._lines[item_id] = current + 1
        return self._lines[item_id]

    def remove(self, item_id: str) -> int:
        current = self._lines.get(item_id, 0)
        if current <= 1:
            self._lines.pop(item_id, None)
            return 0
        self._lines[item_id] = current - 1
        return self._lines[item_id]

    def set_quantity(self, item_id: str, quantity: int, ledger: Optional[LedgerSnapshot] = None) -> int:
        get_item(item_id)
        quantity = max(0, min(MAX_LINE_QUANTITY, quantity))
        current = self._lines.get(item_id, 0)

        if quantity > current and ledger is not None:
            check = can_add(ledger, item_id, self.total_quantity(), requested_qty=quantity - current)
            if not check.ok:
                raise CapacityError(check.reason, item_id=item_id)

        if quantity == 0:
            self._lines.pop(item_id, None)
        else:
            self._lines[item_id] = quantity
        return quantity

    def clear(self) -> None:
        self._lines.clear()

    def total_quantity(self) -> int:
        return sum(self._lines.values())

    def lines(self) -> List[CartLine]:
        return [CartLine(item_id, qty) for item_id, qty in self._lines.items()]

    def quantities(self) -> Dict[str, int]:
        return dict(self._lines)

    def is_empty(self) -> bool:
        return not self._lines
