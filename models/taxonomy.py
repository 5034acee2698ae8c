"""Canonical suggestion categories.

The model is asked for one of the canonical labels but often answers with a
product type instead ("loafers", "tote", "aviators"). Aliases keep every
suggestion inside the six categories the front end filters on.
"""

from enum import Enum
from typing import Dict, Optional


class Category(str, Enum):
    SHOES = "Shoes"
    WATCHES = "Watches"
    JEWELRY = "Jewelry"
    BAGS = "Bags"
    EYEWEAR = "Eyewear"
    CLOTHING = "Clothing"


DEFAULT_CATEGORY = Category.CLOTHING

CATEGORY_ALIASES: Dict[str, Category] = {
    "shoe": Category.SHOES,
    "footwear": Category.SHOES,
    "sneaker": Category.SHOES,
    "sneakers": Category.SHOES,
    "boots": Category.SHOES,
    "loafers": Category.SHOES,
    "heels": Category.SHOES,
    "sandals": Category.SHOES,
    "watch": Category.WATCHES,
    "timepiece": Category.WATCHES,
    "jewellery": Category.JEWELRY,
    "necklace": Category.JEWELRY,
    "bracelet": Category.JEWELRY,
    "ring": Category.JEWELRY,
    "earrings": Category.JEWELRY,
    "bag": Category.BAGS,
    "handbag": Category.BAGS,
    "tote": Category.BAGS,
    "backpack": Category.BAGS,
    "clutch": Category.BAGS,
    "glasses": Category.EYEWEAR,
    "sunglasses": Category.EYEWEAR,
    "aviators": Category.EYEWEAR,
    "clothes": Category.CLOTHING,
    "apparel": Category.CLOTHING,
    "garment": Category.CLOTHING,
    "top": Category.CLOTHING,
    "bottom": Category.CLOTHING,
    "shirt": Category.CLOTHING,
    "trousers": Category.CLOTHING,
    "pants": Category.CLOTHING,
    "jeans": Category.CLOTHING,
    "skirt": Category.CLOTHING,
    "outerwear": Category.CLOTHING,
    "jacket": Category.CLOTHING,
}


def _normalize_key(value: str) -> str:
    return value.strip().lower()


def normalize_category(value: Optional[str]) -> Category:
    """Map a free-form category label onto :class:`Category`.

    Unknown labels fall back to ``Clothing`` rather than raising, because a
    suggestion with an odd label is still worth showing.
    """

    if not value:
        return DEFAULT_CATEGORY
    key = _normalize_key(value)
    for category in Category:
        if category.value.lower() == key:
            return category
    return CATEGORY_ALIASES.get(key, DEFAULT_CATEGORY)


def parse_category_filter(value: Optional[str]) -> Optional[Category]:
    """Translate a tab label into a filter; ``None`` or ``"All"`` means no filter."""

    if value is None or _normalize_key(value) in {"", "all"}:
        return None
    key = _normalize_key(value)
    for category in Category:
        if category.value.lower() == key:
            return category
    raise ValueError(f"Unsupported category '{value}'. Allowed: {[c.value for c in Category]}")


__all__ = [
    "Category",
    "CATEGORY_ALIASES",
    "DEFAULT_CATEGORY",
    "normalize_category",
    "parse_category_filter",
]
