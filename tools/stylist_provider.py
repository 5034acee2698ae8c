"""Generative stylist provider abstractions and implementations."""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from html import escape
from typing import Iterable, List, Optional, Sequence

from google import genai
from google.genai import types

from logic.prompts import (
    MORE_LOOKBOOKS_COUNT,
    MORE_SUGGESTIONS_COUNT,
    analysis_prompt,
    composite_image_prompt,
    more_lookbooks_prompt,
    more_suggestions_prompt,
    product_image_prompt,
)
from logic.validation import (
    AnalysisPayload,
    CuratedSetPayload,
    SuggestionPayload,
    parse_analysis_payload,
    parse_set_list,
    parse_suggestion_list,
)
from models.analysis import Suggestion
from models.images import EncodedImage
from tools.observability import instrument_call

LOGGER = logging.getLogger(__name__)

PRODUCT_ASPECT_RATIO = "1:1"
COMPOSITE_ASPECT_RATIO = "3:4"


def _string_schema() -> types.Schema:
    return types.Schema(type=types.Type.STRING)


def _string_list_schema() -> types.Schema:
    return types.Schema(type=types.Type.ARRAY, items=_string_schema())


SUGGESTION_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "name": _string_schema(),
        "category": _string_schema(),
        "description": _string_schema(),
        "styleReason": _string_schema(),
        "id": _string_schema(),
    },
    required=["name", "category", "description", "styleReason", "id"],
)

CURATED_SET_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "name": _string_schema(),
        "vibe": _string_schema(),
        "itemIds": _string_list_schema(),
    },
    required=["name", "vibe", "itemIds"],
)

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "styleName": _string_schema(),
        "description": _string_schema(),
        "colorPalette": _string_list_schema(),
        "occasions": _string_list_schema(),
        "detectedPieces": _string_list_schema(),
        "suggestions": types.Schema(type=types.Type.ARRAY, items=SUGGESTION_SCHEMA),
        "curatedSets": types.Schema(type=types.Type.ARRAY, items=CURATED_SET_SCHEMA),
    },
    required=[
        "styleName",
        "description",
        "colorPalette",
        "occasions",
        "suggestions",
        "detectedPieces",
        "curatedSets",
    ],
)


class StylistProvider(ABC):
    """Capability surface of the external generative-AI service."""

    @abstractmethod
    async def analyze_outfit(self, images: Sequence[EncodedImage]) -> AnalysisPayload:
        """Analyze 1-4 outfit photos; malformed output yields an empty payload."""

    @abstractmethod
    async def enrich_suggestions(
        self, style_name: str, description: str, exclude_names: Sequence[str]
    ) -> List[SuggestionPayload]:
        """Propose additional suggestions not named in ``exclude_names``."""

    @abstractmethod
    async def enrich_sets(
        self, exclude_names: Sequence[str], allowed_ids: Sequence[str]
    ) -> List[CuratedSetPayload]:
        """Propose new lookbooks built only from ``allowed_ids``."""

    @abstractmethod
    async def synthesize_product_image(self, suggestion: Suggestion) -> Optional[str]:
        """Return a product shot as a data URL, or ``None``."""

    @abstractmethod
    async def synthesize_composite_image(
        self, base_image: EncodedImage, items: Sequence[Suggestion]
    ) -> Optional[str]:
        """Return the base photo restyled with ``items`` as a data URL, or ``None``."""


class GeminiStylistProvider(StylistProvider):
    """Gemini-backed provider using the async ``google-genai`` client."""

    def __init__(
        self,
        api_key: str | None,
        analysis_model: str,
        image_model: str,
        client: genai.Client | None = None,
    ) -> None:
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.client = client or genai.Client(api_key=api_key)

    @staticmethod
    def _json_config(schema: types.Schema) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )

    @staticmethod
    def _image_part(image: EncodedImage) -> types.Part:
        return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    @staticmethod
    def _first_inline_image(response: types.GenerateContentResponse) -> Optional[str]:
        for candidate in response.candidates or []:
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                if part.inline_data and part.inline_data.data:
                    mime_type = part.inline_data.mime_type or "image/png"
                    encoded = base64.b64encode(part.inline_data.data).decode("ascii")
                    return f"data:{mime_type};base64,{encoded}"
        return None

    @instrument_call("analyze_outfit")
    async def analyze_outfit(self, images: Sequence[EncodedImage]) -> AnalysisPayload:
        contents: list = [self._image_part(image) for image in images]
        contents.append(analysis_prompt())
        response = await self.client.aio.models.generate_content(
            model=self.analysis_model,
            contents=contents,
            config=self._json_config(ANALYSIS_SCHEMA),
        )
        return parse_analysis_payload(response.text)

    @instrument_call("enrich_suggestions")
    async def enrich_suggestions(
        self, style_name: str, description: str, exclude_names: Sequence[str]
    ) -> List[SuggestionPayload]:
        response = await self.client.aio.models.generate_content(
            model=self.analysis_model,
            contents=more_suggestions_prompt(style_name, description, exclude_names),
            config=self._json_config(types.Schema(type=types.Type.ARRAY, items=SUGGESTION_SCHEMA)),
        )
        return parse_suggestion_list(response.text)

    @instrument_call("enrich_sets")
    async def enrich_sets(
        self, exclude_names: Sequence[str], allowed_ids: Sequence[str]
    ) -> List[CuratedSetPayload]:
        response = await self.client.aio.models.generate_content(
            model=self.analysis_model,
            contents=more_lookbooks_prompt(exclude_names, allowed_ids),
            config=self._json_config(types.Schema(type=types.Type.ARRAY, items=CURATED_SET_SCHEMA)),
        )
        return parse_set_list(response.text)

    @instrument_call("synthesize_product_image")
    async def synthesize_product_image(self, suggestion: Suggestion) -> Optional[str]:
        response = await self.client.aio.models.generate_content(
            model=self.image_model,
            contents=product_image_prompt(suggestion),
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=PRODUCT_ASPECT_RATIO)
            ),
        )
        return self._first_inline_image(response)

    @instrument_call("synthesize_composite_image")
    async def synthesize_composite_image(
        self, base_image: EncodedImage, items: Sequence[Suggestion]
    ) -> Optional[str]:
        response = await self.client.aio.models.generate_content(
            model=self.image_model,
            contents=[self._image_part(base_image), composite_image_prompt(items)],
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=COMPOSITE_ASPECT_RATIO)
            ),
        )
        return self._first_inline_image(response)


_MOCK_CATALOG = [
    ("Leather Chelsea Boots", "Shoes", "Polished ankle boots in dark brown leather."),
    ("Minimal Steel Watch", "Watches", "Slim brushed-steel case on a mesh strap."),
    ("Gold Chain Necklace", "Jewelry", "Fine gold chain that sits at the collarbone."),
    ("Structured Tote", "Bags", "Camel leather tote with a clean silhouette."),
    ("Tortoiseshell Sunglasses", "Eyewear", "Rounded frames in warm tortoiseshell."),
    ("Tailored Wool Trousers", "Clothing", "High-waisted trousers with a pressed crease."),
    ("Suede Loafers", "Shoes", "Soft suede loafers in taupe."),
    ("Silver Cuff Bracelet", "Jewelry", "Hammered sterling cuff."),
    ("Canvas Crossbody", "Bags", "Compact crossbody for hands-free days."),
    ("Chronograph Field Watch", "Watches", "Olive dial with a canvas strap."),
    ("Cat-eye Optical Frames", "Eyewear", "Black acetate cat-eye frames."),
    ("Cashmere Crewneck", "Clothing", "Oatmeal cashmere knit."),
    ("Pearl Drop Earrings", "Jewelry", "Freshwater pearls on gold hooks."),
    ("White Leather Sneakers", "Shoes", "Low-profile minimalist sneakers."),
]


def _svg_data_url(label: str, width: int, height: int) -> str:
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">'
        f'<rect width="100%" height="100%" fill="#f5f5f5"/>'
        f'<text x="50%" y="50%" text-anchor="middle" font-family="serif" font-size="18">'
        f"{escape(label)}</text></svg>"
    )
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


class MockStylistProvider(StylistProvider):
    """Offline deterministic provider for local runs without an API key."""

    def __init__(self) -> None:
        self._issued = 0

    def _next_payloads(self, count: int, exclude: Iterable[str]) -> List[SuggestionPayload]:
        excluded = {name.casefold() for name in exclude}
        payloads: List[SuggestionPayload] = []
        for name, category, description in _MOCK_CATALOG:
            if len(payloads) >= count:
                break
            if name.casefold() in excluded:
                continue
            self._issued += 1
            payloads.append(
                SuggestionPayload(
                    id=f"itm-{self._issued}",
                    name=name,
                    category=category,
                    description=description,
                    style_reason=f"{name} sharpens the outfit without competing with it.",
                )
            )
        return payloads

    async def analyze_outfit(self, images: Sequence[EncodedImage]) -> AnalysisPayload:
        self._issued = 0
        suggestions = self._next_payloads(7, exclude=())
        ids = [payload.id for payload in suggestions]
        LOGGER.info("Returning mock analysis", extra={"image_count": len(images)})
        return AnalysisPayload(
            style_name="Modern Minimalist",
            description="Clean lines and a neutral palette with room for one statement accessory.",
            color_palette=["camel", "ivory", "charcoal"],
            occasions=["Office", "Gallery opening", "Weekend brunch"],
            detected_pieces=["Top", "Bottom"],
            suggestions=suggestions,
            curated_sets=[
                CuratedSetPayload(name="City Edit", vibe="Polished and practical", item_ids=ids[:3]),
                CuratedSetPayload(name="Evening Ease", vibe="Quiet luxury after dark", item_ids=ids[3:6]),
            ],
        )

    async def enrich_suggestions(
        self, style_name: str, description: str, exclude_names: Sequence[str]
    ) -> List[SuggestionPayload]:
        return self._next_payloads(MORE_SUGGESTIONS_COUNT, exclude=exclude_names)

    async def enrich_sets(
        self, exclude_names: Sequence[str], allowed_ids: Sequence[str]
    ) -> List[CuratedSetPayload]:
        if not allowed_ids:
            return []
        taken = {name.casefold() for name in exclude_names}
        sets: List[CuratedSetPayload] = []
        number = 1
        while len(sets) < MORE_LOOKBOOKS_COUNT:
            name = f"Lookbook No. {number}"
            number += 1
            if name.casefold() in taken:
                continue
            start = (len(sets) * 2) % len(allowed_ids)
            item_ids = [allowed_ids[(start + offset) % len(allowed_ids)] for offset in range(3)]
            sets.append(CuratedSetPayload(name=name, vibe="Mixed and matched", item_ids=item_ids))
        return sets

    async def synthesize_product_image(self, suggestion: Suggestion) -> Optional[str]:
        return _svg_data_url(suggestion.name, 500, 500)

    async def synthesize_composite_image(
        self, base_image: EncodedImage, items: Sequence[Suggestion]
    ) -> Optional[str]:
        return _svg_data_url(" + ".join(item.name for item in items), 600, 800)


__all__ = [
    "ANALYSIS_SCHEMA",
    "GeminiStylistProvider",
    "MockStylistProvider",
    "StylistProvider",
]
