# mealplan/domain/catalog.py
"""Static menu. Read-only, shared without synchronisation."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from mealplan.domain.errors import UnknownMenuItemError


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    category: str
    unit_price: Decimal
    calories: int


MENU: List[MenuItem] = [
    MenuItem("mix-veg-sandwich", "Mix Veg Sandwich", "Sandwich", Decimal("65"), 340),
    MenuItem("tofu-sandwich", "Tofu Sandwich", "Sandwich", Decimal("85"), 380),
    MenuItem("paneer-sandwich", "Paneer Sandwich", "Sandwich", Decimal("95"), 490),
    MenuItem("avocado-grill", "Avocado Grill Sandwich", "Sandwich", Decimal("95"), 330),

    MenuItem("date-almond", "Date Almond Energizer", "Smoothie", Decimal("85"), 380),
    MenuItem("melon-mint", "Melon Mint Cooler", "Smoothie", Decimal("75"), 150),
    MenuItem("beet-berry", "Beet Berry Power", "Smoothie", Decimal("85"), 230),
    MenuItem("berrylicious", "Berrylicious Glow", "Smoothie", Decimal("95"), 210),

    MenuItem("tropical-oats", "Tropical Fruit & Honey Oats", "Oats Bowl", Decimal("85"), 545),
    MenuItem("dark-choco-oats", "Dark Chocolate Oats", "Oats Bowl", Decimal("95"), 575),
    MenuItem("coffee-oats", "Coffee Flavoured Oats", "Oats Bowl", Decimal("105"), 555),

    MenuItem("peanut-cucumber", "Peanut Cucumber", "Salad", Decimal("95"), 440),
    MenuItem("black-chana", "Black Chana Salad", "Salad", Decimal("75"), 360),
    MenuItem("soya-chunk", "Soya Chunk Power Bowl", "Salad", Decimal("95"), 400),
    MenuItem("avocado-tomato", "Avocado Tomato", "Salad", Decimal("115"), 460),
]

_BY_ID: Dict[str, MenuItem] = {item.id: item for item in MENU}


def find_item(item_id: str) -> Optional[MenuItem]:
    return _BY_ID.get(item_id)


def get_item(item_id: str) -> MenuItem:
    """Like find_item, but an unknown id is a validation error."""
    item = _BY_ID.get(item_id)
    if item is None:
        raise UnknownMenuItemError(item_id)
    return item


def list_items(category: Optional[str] = None) -> List[MenuItem]:
    if category is None:
        return list(MENU)
    return [item for item in MENU if item.category == category]


def categories() -> List[str]:
    seen: List[str] = []
    for item in MENU:
        if item.category not in seen:
            seen.append(item.category)
    return seen
