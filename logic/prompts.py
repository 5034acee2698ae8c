"""Prompt text shared by the stylist provider implementations."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from models.analysis import Suggestion
from models.taxonomy import Category

ACCESSORY_CATEGORIES = [c.value for c in Category if c is not Category.CLOTHING]

ANALYSIS_RULES: List[str] = [
    "Identify the detected garments and list them in detectedPieces.",
    "If BOTH a top and a bottom garment are present, suggest ONLY accessories "
    f"({', '.join(ACCESSORY_CATEGORIES)}).",
    "If EITHER the top or the bottom is missing, suggest the missing garment first "
    "with category Clothing.",
    "Provide 6-9 suggestions in total, each with a short unique id.",
    "Create 2-3 curatedSets bundling these suggestions; itemIds must match suggestion ids.",
    f"Use only these categories: {', '.join(c.value for c in Category)}.",
    "Return valid JSON.",
]

MORE_SUGGESTIONS_COUNT = 6
MORE_LOOKBOOKS_COUNT = 3


def _numbered(rules: Sequence[str]) -> str:
    return "\n".join(f"{index}. {rule}" for index, rule in enumerate(rules, start=1))


def analysis_prompt() -> str:
    return f"Analyze this outfit.\nRULES:\n{_numbered(ANALYSIS_RULES)}"


def more_suggestions_prompt(style_name: str, description: str, exclude_names: Iterable[str]) -> str:
    existing = ", ".join(exclude_names)
    return (
        f'Based on the style profile "{style_name}" ({description}), suggest '
        f"{MORE_SUGGESTIONS_COUNT} additional accessories or missing clothes that were NOT "
        f"already mentioned: {existing}. Return a JSON array of suggestions. Use unique IDs."
    )


def more_lookbooks_prompt(exclude_names: Iterable[str], allowed_ids: Iterable[str]) -> str:
    return (
        f"Create {MORE_LOOKBOOKS_COUNT} NEW curated lookbook sets using ONLY these available "
        f"item IDs: [{', '.join(allowed_ids)}].\n"
        f"The sets should have unique names different from existing sets: [{', '.join(exclude_names)}].\n"
        "Each set must have a 'name', 'vibe', and 'itemIds' array. Return JSON."
    )


def product_image_prompt(suggestion: Suggestion) -> str:
    return (
        f"Luxury e-commerce product photography of: {suggestion.name}. "
        f"Context: {suggestion.description}. High-end fashion aesthetic, minimalist white "
        "studio background, clean lighting, 4k resolution."
    )


def composite_image_prompt(items: Sequence[Suggestion]) -> str:
    names = ", ".join(item.name for item in items)
    return (
        f"Apply these accessories to the outfit in this image: {names}. Create a professional "
        "high-end fashion campaign photograph. The person should be wearing the suggested items "
        "along with their original outfit. Ultra-realistic, luxury fashion magazine style."
    )


__all__ = [
    "ANALYSIS_RULES",
    "MORE_LOOKBOOKS_COUNT",
    "MORE_SUGGESTIONS_COUNT",
    "analysis_prompt",
    "composite_image_prompt",
    "more_lookbooks_prompt",
    "more_suggestions_prompt",
    "product_image_prompt",
]
