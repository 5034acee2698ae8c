"""Outfit analysis aggregate: suggestions, curated sets and the style profile."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from models.taxonomy import Category


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


@dataclass
class Suggestion:
    """A single recommended accessory or garment."""

    id: str
    name: str
    category: Category
    description: str = ""
    style_reason: str = ""
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "styleReason": self.style_reason,
            "imageUrl": self.image_url,
        }


@dataclass
class CuratedSet:
    """A named lookbook bundle referencing suggestions by id.

    ``item_ids`` is fixed at creation; only ``visual_url`` is filled in later.
    ``set_id`` is generated locally so that late visual results can find their
    set even after other sets have been appended.
    """

    name: str
    vibe: str
    item_ids: tuple[str, ...] = ()
    visual_url: Optional[str] = None
    set_id: str = field(default_factory=lambda: _new_id("set"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "setId": self.set_id,
            "name": self.name,
            "vibe": self.vibe,
            "itemIds": list(self.item_ids),
            "visualUrl": self.visual_url,
        }


@dataclass
class OutfitAnalysis:
    """Aggregate root owned by the current session."""

    style_name: str
    description: str
    color_palette: List[str] = field(default_factory=list)
    occasions: List[str] = field(default_factory=list)
    detected_pieces: List[str] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    curated_sets: List[CuratedSet] = field(default_factory=list)
    analysis_id: str = field(default_factory=lambda: _new_id("analysis"))

    def suggestion_ids(self) -> List[str]:
        return [suggestion.id for suggestion in self.suggestions]

    def find_suggestion(self, suggestion_id: str) -> Optional[Suggestion]:
        for suggestion in self.suggestions:
            if suggestion.id == suggestion_id:
                return suggestion
        return None

    def find_set(self, set_id: str) -> Optional[CuratedSet]:
        for curated in self.curated_sets:
            if curated.set_id == set_id:
                return curated
        return None

    def filter_suggestions(self, category: Optional[Category] = None) -> List[Suggestion]:
        if category is None:
            return list(self.suggestions)
        return [suggestion for suggestion in self.suggestions if suggestion.category == category]

    def to_dict(self, category: Optional[Category] = None) -> Dict[str, Any]:
        return {
            "analysisId": self.analysis_id,
            "styleName": self.style_name,
            "description": self.description,
            "colorPalette": list(self.color_palette),
            "occasions": list(self.occasions),
            "detectedPieces": list(self.detected_pieces),
            "suggestions": [s.to_dict() for s in self.filter_suggestions(category)],
            "curatedSets": [c.to_dict() for c in self.curated_sets],
        }


__all__ = ["Suggestion", "CuratedSet", "OutfitAnalysis"]
