"""Pydantic schemas for the model's structured output.

Gemini is asked for strict JSON, but responses still arrive truncated, wrapped
or with missing fields. Everything here degrades to an empty-equivalent
payload instead of raising; callers decide whether empty is an error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

LOGGER = logging.getLogger(__name__)
PayloadT = TypeVar("PayloadT", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _coerce_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _coerce_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [text for text in (_coerce_text(item) for item in value) if text]


def _valid_items(value: Any, model: Type[PayloadT]) -> List[PayloadT]:
    """Validate list entries one by one, dropping the ones that do not fit."""

    if not isinstance(value, (list, tuple)):
        return []
    items: List[PayloadT] = []
    for raw in value:
        try:
            items.append(model.model_validate(raw))
        except ValidationError as exc:
            LOGGER.warning(
                "Dropping malformed %s entry", model.__name__, extra={"errors": exc.error_count()}
            )
    return items


class SuggestionPayload(_Payload):
    id: str = ""
    name: str = Field(min_length=1)
    category: str = ""
    description: str = ""
    style_reason: str = ""

    @field_validator("id", "name", "category", "description", "style_reason", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)


class CuratedSetPayload(_Payload):
    name: str = Field(min_length=1)
    vibe: str = ""
    item_ids: List[str] = Field(default_factory=list)

    @field_validator("name", "vibe", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("item_ids", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> List[str]:
        return _coerce_text_list(value)


class AnalysisPayload(_Payload):
    style_name: str = ""
    description: str = ""
    color_palette: List[str] = Field(default_factory=list)
    occasions: List[str] = Field(default_factory=list)
    detected_pieces: List[str] = Field(default_factory=list)
    suggestions: List[SuggestionPayload] = Field(default_factory=list)
    curated_sets: List[CuratedSetPayload] = Field(default_factory=list)

    @field_validator("style_name", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("color_palette", "occasions", "detected_pieces", mode="before")
    @classmethod
    def _texts(cls, value: Any) -> List[str]:
        return _coerce_text_list(value)

    @field_validator("suggestions", mode="before")
    @classmethod
    def _suggestions(cls, value: Any) -> List[SuggestionPayload]:
        return _valid_items(value, SuggestionPayload)

    @field_validator("curated_sets", mode="before")
    @classmethod
    def _sets(cls, value: Any) -> List[CuratedSetPayload]:
        return _valid_items(value, CuratedSetPayload)

    @property
    def is_complete(self) -> bool:
        """A usable primary analysis names a style and proposes at least one item."""

        return bool(self.style_name and self.suggestions)


def _load_json(raw: str | bytes | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        LOGGER.warning("Model returned non-JSON output", extra={"length": len(raw)})
        return None


def _unwrap_list(data: Any, keys: Iterable[str]) -> Any:
    """Accept ``[...]`` or an object wrapping the list under a known key."""

    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
        return []
    return data


def parse_analysis_payload(raw: str | bytes | None) -> AnalysisPayload:
    data = _load_json(raw)
    if not isinstance(data, dict):
        return AnalysisPayload()
    try:
        return AnalysisPayload.model_validate(data)
    except ValidationError as exc:
        LOGGER.warning("Analysis payload failed schema checks", extra={"errors": exc.error_count()})
        return AnalysisPayload()


def parse_suggestion_list(raw: str | bytes | None) -> List[SuggestionPayload]:
    data = _unwrap_list(_load_json(raw), ("suggestions", "items"))
    return _valid_items(data, SuggestionPayload)


def parse_set_list(raw: str | bytes | None) -> List[CuratedSetPayload]:
    data = _unwrap_list(_load_json(raw), ("curatedSets", "curated_sets", "sets"))
    return _valid_items(data, CuratedSetPayload)


__all__ = [
    "AnalysisPayload",
    "CuratedSetPayload",
    "SuggestionPayload",
    "parse_analysis_payload",
    "parse_set_list",
    "parse_suggestion_list",
]
