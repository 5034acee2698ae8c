"""Gemini and mock stylist providers, exercised without network access."""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, List

import pytest

from models.analysis import Suggestion
from models.images import EncodedImage
from models.taxonomy import Category
from tools.stylist_provider import GeminiStylistProvider, MockStylistProvider


class _FakeModels:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.requests: List[dict] = []

    async def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(*responses: Any) -> SimpleNamespace:
    return SimpleNamespace(aio=SimpleNamespace(models=_FakeModels(list(responses))))


def _text(payload: Any) -> SimpleNamespace:
    return SimpleNamespace(text=payload if isinstance(payload, str) else json.dumps(payload), candidates=[])


def _image_response(data: bytes, mime_type: str | None = "image/png") -> SimpleNamespace:
    text_part = SimpleNamespace(inline_data=None, text="here you go")
    image_part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(
        text=None,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[text_part, image_part]))],
    )


def _provider(client: SimpleNamespace) -> GeminiStylistProvider:
    return GeminiStylistProvider(
        api_key="test-key",
        analysis_model="analysis-model",
        image_model="image-model",
        client=client,
    )


SUGGESTION = Suggestion(id="itm-1", name="Gold Hoops", category=Category.JEWELRY, description="Small hoops")
PHOTO = EncodedImage(mime_type="image/jpeg", data=b"photo-bytes")


def test_analyze_outfit_parses_structured_json() -> None:
    client = _client(
        _text(
            {
                "styleName": "Boho Chic",
                "description": "Loose layers",
                "colorPalette": ["rust", "cream"],
                "occasions": ["Festival"],
                "detectedPieces": ["Top"],
                "suggestions": [
                    {"id": "a1", "name": "Wide Jeans", "category": "Clothing", "description": "", "styleReason": "Adds a bottom"},
                    {"id": "a2", "category": "Bags"},
                ],
                "curatedSets": [{"name": "Sunset", "vibe": "Warm", "itemIds": ["a1"]}],
            }
        )
    )

    payload = asyncio.run(_provider(client).analyze_outfit([PHOTO]))

    assert payload.style_name == "Boho Chic"
    assert [s.id for s in payload.suggestions] == ["a1"]
    assert payload.suggestions[0].style_reason == "Adds a bottom"
    assert payload.curated_sets[0].item_ids == ["a1"]
    request = client.aio.models.requests[0]
    assert request["model"] == "analysis-model"
    assert request["config"].response_mime_type == "application/json"
    assert len(request["contents"]) == 2


def test_malformed_analysis_yields_empty_payload() -> None:
    client = _client(_text("not json at all"))

    payload = asyncio.run(_provider(client).analyze_outfit([PHOTO]))

    assert not payload.is_complete
    assert payload.suggestions == []


def test_enrichment_accepts_wrapped_lists() -> None:
    client = _client(
        _text({"suggestions": [{"id": "n1", "name": "Silk Scarf", "category": "Clothing"}]}),
        _text({"curatedSets": [{"name": "Brunch", "vibe": "Soft", "itemIds": ["n1"]}]}),
    )
    provider = _provider(client)

    async def scenario():
        more = await provider.enrich_suggestions("Boho", "Loose layers", ["Wide Jeans"])
        sets = await provider.enrich_sets(["Sunset"], ["a1", "n1"])
        return more, sets

    more, sets = asyncio.run(scenario())

    assert [s.name for s in more] == ["Silk Scarf"]
    assert sets[0].name == "Brunch"
    prompt = client.aio.models.requests[1]["contents"]
    assert "a1, n1" in prompt and "Sunset" in prompt


def test_product_image_returns_first_inline_image_as_data_url() -> None:
    client = _client(_image_response(b"\x89PNG", mime_type=None))

    url = asyncio.run(_provider(client).synthesize_product_image(SUGGESTION))

    assert url == "data:image/png;base64,iVBORw=="
    request = client.aio.models.requests[0]
    assert request["model"] == "image-model"
    assert request["config"].image_config.aspect_ratio == "1:1"
    assert "Gold Hoops" in request["contents"]


def test_composite_image_sends_base_photo_and_items() -> None:
    client = _client(_image_response(b"jpeg", mime_type="image/jpeg"))

    url = asyncio.run(_provider(client).synthesize_composite_image(PHOTO, [SUGGESTION]))

    assert url.startswith("data:image/jpeg;base64,")
    request = client.aio.models.requests[0]
    assert request["config"].image_config.aspect_ratio == "3:4"
    assert "Gold Hoops" in request["contents"][1]


def test_image_response_without_picture_returns_none() -> None:
    client = _client(SimpleNamespace(text="sorry", candidates=[]))

    assert asyncio.run(_provider(client).synthesize_product_image(SUGGESTION)) is None


def test_transport_errors_propagate() -> None:
    client = _client(RuntimeError("503"))

    with pytest.raises(RuntimeError, match="503"):
        asyncio.run(_provider(client).analyze_outfit([PHOTO]))


def test_mock_provider_is_deterministic_and_excludes_names() -> None:
    provider = MockStylistProvider()

    async def scenario():
        analysis = await provider.analyze_outfit([PHOTO])
        more = await provider.enrich_suggestions(
            analysis.style_name, analysis.description, [s.name for s in analysis.suggestions]
        )
        sets = await provider.enrich_sets(
            [c.name for c in analysis.curated_sets], [s.id for s in analysis.suggestions]
        )
        image = await provider.synthesize_product_image(SUGGESTION)
        return analysis, more, sets, image

    analysis, more, sets, image = asyncio.run(scenario())

    assert analysis.is_complete
    assert len(analysis.suggestions) == 7
    assert len(analysis.curated_sets) == 2
    names = {s.name for s in analysis.suggestions}
    assert len(more) == 6
    assert not names & {s.name for s in more}
    ids = {s.id for s in analysis.suggestions}
    assert len(sets) == 3
    assert all(set(c.item_ids) <= ids for c in sets)
    assert image.startswith("data:image/svg+xml;base64,")
