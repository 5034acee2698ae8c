"""Build, append to and patch the outfit analysis aggregate.

All functions mutate the aggregate they are handed and touch only the records
they target, so patches arriving in any order produce the same result.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Sequence, Set

from logic.validation import AnalysisPayload, CuratedSetPayload, SuggestionPayload
from models.analysis import CuratedSet, OutfitAnalysis, Suggestion
from models.taxonomy import Category, normalize_category

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "Unavailable item"


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug[:40] or "item"


def unique_suggestion_id(candidate: str, name: str, taken: Set[str]) -> str:
    """Return ``candidate`` if unused, otherwise a deterministic free variant."""

    base = candidate.strip() or _slugify(name)
    if base not in taken:
        return base
    counter = 2
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"


def to_suggestions(payloads: Iterable[SuggestionPayload], taken_ids: Iterable[str]) -> List[Suggestion]:
    """Convert payloads into suggestions whose ids avoid ``taken_ids`` and each other.

    A colliding id is re-keyed; set ``item_ids`` that name it keep referring
    to the suggestion that held the id first, so the re-keyed record is not
    part of any existing lookbook.
    """

    taken = set(taken_ids)
    suggestions: List[Suggestion] = []
    for payload in payloads:
        suggestion_id = unique_suggestion_id(payload.id, payload.name, taken)
        if not payload.id:
            logger.info("Assigned id %r to suggestion %r", suggestion_id, payload.name)
        elif suggestion_id != payload.id:
            logger.warning("Re-keyed colliding suggestion id %r -> %r", payload.id, suggestion_id)
        taken.add(suggestion_id)
        suggestions.append(
            Suggestion(
                id=suggestion_id,
                name=payload.name,
                category=normalize_category(payload.category),
                description=payload.description,
                style_reason=payload.style_reason,
            )
        )
    return suggestions


def build_sets(
    payloads: Iterable[CuratedSetPayload],
    allowed_ids: Iterable[str] | None = None,
    exclude_names: Iterable[str] = (),
) -> List[CuratedSet]:
    """Create curated sets, optionally restricting ``item_ids`` to ``allowed_ids``.

    Sets whose name repeats an excluded or earlier name (case-insensitive) are
    dropped.
    """

    allowed = set(allowed_ids) if allowed_ids is not None else None
    seen_names = {name.casefold() for name in exclude_names}
    sets: List[CuratedSet] = []
    for payload in payloads:
        key = payload.name.casefold()
        if key in seen_names:
            logger.info("Dropping duplicate lookbook name %r", payload.name)
            continue
        seen_names.add(key)
        item_ids = [item_id for item_id in payload.item_ids if allowed is None or item_id in allowed]
        if allowed is not None and len(item_ids) != len(payload.item_ids):
            logger.info(
                "Filtered %s unknown item ids from lookbook %r",
                len(payload.item_ids) - len(item_ids),
                payload.name,
            )
        sets.append(CuratedSet(name=payload.name, vibe=payload.vibe, item_ids=tuple(item_ids)))
    return sets


def build_analysis(payload: AnalysisPayload) -> OutfitAnalysis:
    """Turn a validated primary payload into a fresh aggregate.

    Set item ids are kept as returned; references to unknown suggestions are
    tolerated and skipped when the set is consumed.
    """

    return OutfitAnalysis(
        style_name=payload.style_name,
        description=payload.description,
        color_palette=list(payload.color_palette),
        occasions=list(payload.occasions),
        detected_pieces=list(payload.detected_pieces),
        suggestions=to_suggestions(payload.suggestions, taken_ids=()),
        curated_sets=build_sets(payload.curated_sets),
    )


def append_suggestions(analysis: OutfitAnalysis, payloads: Sequence[SuggestionPayload]) -> List[Suggestion]:
    new_suggestions = to_suggestions(payloads, taken_ids=analysis.suggestion_ids())
    analysis.suggestions.extend(new_suggestions)
    return new_suggestions


def append_sets(analysis: OutfitAnalysis, sets: Sequence[CuratedSet]) -> int:
    """Append ``sets`` and return the position of the first appended set."""

    start_index = len(analysis.curated_sets)
    analysis.curated_sets.extend(sets)
    return start_index


def patch_set_visual(analysis: OutfitAnalysis, set_id: str, visual_url: str) -> bool:
    curated = analysis.find_set(set_id)
    if curated is None:
        return False
    curated.visual_url = visual_url
    return True


def patch_suggestion_image(analysis: OutfitAnalysis, suggestion_id: str, image_url: str) -> bool:
    """Set ``image_url`` once; an already resolved suggestion is left alone."""

    suggestion = analysis.find_suggestion(suggestion_id)
    if suggestion is None or suggestion.image_url:
        return False
    suggestion.image_url = image_url
    return True


def _placeholder(item_id: str) -> Suggestion:
    return Suggestion(id=item_id, name=PLACEHOLDER_NAME, category=Category.CLOTHING)


def resolve_set_items(
    analysis: OutfitAnalysis, curated: CuratedSet, placeholders: bool = False
) -> List[Suggestion]:
    """Return the suggestions a set references, in set order.

    Ids with no matching suggestion are skipped, or rendered as placeholder
    records when ``placeholders`` is true.
    """

    by_id = {suggestion.id: suggestion for suggestion in analysis.suggestions}
    items: List[Suggestion] = []
    for item_id in curated.item_ids:
        suggestion = by_id.get(item_id)
        if suggestion is not None:
            items.append(suggestion)
        elif placeholders:
            items.append(_placeholder(item_id))
    return items


__all__ = [
    "PLACEHOLDER_NAME",
    "append_sets",
    "append_suggestions",
    "build_analysis",
    "build_sets",
    "patch_set_visual",
    "patch_suggestion_image",
    "resolve_set_items",
    "to_suggestions",
    "unique_suggestion_id",
]
