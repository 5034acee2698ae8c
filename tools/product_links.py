"""Outbound shopping links and static fallback imagery for suggestions."""

from urllib.parse import quote, urlencode

from models.analysis import Suggestion
from models.taxonomy import Category

SHOPPING_SEARCH_URL = "https://www.google.com/search"
FALLBACK_IMAGE_URL = "https://picsum.photos/seed/{seed}/500"


def shopping_search_url(name: str, category: Category | str) -> str:
    label = category.value if isinstance(category, Category) else str(category)
    query = f"{name} {label}".strip()
    return f"{SHOPPING_SEARCH_URL}?{urlencode({'q': query, 'tbm': 'shop'}, quote_via=quote)}"


def fallback_image_url(suggestion: Suggestion) -> str:
    """Static image shown when no product shot could be generated."""

    return FALLBACK_IMAGE_URL.format(seed=quote(suggestion.category.value.lower()))


def display_image_url(suggestion: Suggestion) -> str:
    return suggestion.image_url or fallback_image_url(suggestion)


__all__ = ["display_image_url", "fallback_image_url", "shopping_search_url"]
