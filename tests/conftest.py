"""Shared fixtures: a scriptable stylist provider and a signed-in orchestrator."""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, List, Optional, Sequence

import pytest

from agents.orchestrator import AnalysisOrchestrator
from logic.validation import AnalysisPayload, CuratedSetPayload, SuggestionPayload
from memory.entitlement import EntitlementGate
from memory.image_cache import ImageRequestCache
from memory.session_store import InMemorySessionStore
from models.analysis import Suggestion
from models.images import EncodedImage
from models.session import UserSession
from tools.stylist_provider import StylistProvider


def make_suggestion_payloads(ids: Sequence[str], category: str = "Shoes") -> List[SuggestionPayload]:
    return [
        SuggestionPayload(
            id=item_id,
            name=f"Item {item_id}",
            category=category,
            description=f"Description of {item_id}",
            style_reason="Balances the silhouette.",
        )
        for item_id in ids
    ]


def make_analysis_payload(suggestion_count: int = 7, set_count: int = 2) -> AnalysisPayload:
    ids = [f"itm-{index}" for index in range(1, suggestion_count + 1)]
    sets = [
        CuratedSetPayload(
            name=f"Set {index}",
            vibe="Quiet luxury",
            item_ids=[f"itm-{2 * index + 1}", f"itm-{2 * index + 2}"],
        )
        for index in range(set_count)
    ]
    return AnalysisPayload(
        style_name="Modern Minimalist",
        description="Clean neutral layers.",
        color_palette=["camel", "ivory"],
        occasions=["Office"],
        detected_pieces=["Top", "Bottom"],
        suggestions=make_suggestion_payloads(ids),
        curated_sets=sets,
    )


def composite_key(items: Sequence[Suggestion]) -> str:
    return "+".join(item.id for item in items)


class StubStylistProvider(StylistProvider):
    """Records calls and lets tests hold individual completions open."""

    def __init__(self, analysis: Optional[AnalysisPayload] = None) -> None:
        self.analysis_payload = analysis if analysis is not None else make_analysis_payload()
        self.more_suggestions: List[SuggestionPayload] = []
        self.more_sets: List[CuratedSetPayload] = []
        self.set_batches: List[List[CuratedSetPayload]] = []
        self.calls: Counter = Counter()
        self.product_calls: List[str] = []
        self.composite_calls: List[str] = []
        self.enrich_set_requests: List[tuple] = []
        self.fail_analysis = False
        self.fail_enrichment = False
        self.fail_product_ids: set[str] = set()
        self.fail_composite_keys: set[str] = set()
        self.product_gates: Dict[str, asyncio.Event] = {}
        self.composite_gates: Dict[str, asyncio.Event] = {}
        self.enrichment_gate: Optional[asyncio.Event] = None
        self.suggestion_gates: List[asyncio.Event] = []
        self.analysis_gate: Optional[asyncio.Event] = None

    async def analyze_outfit(self, images: Sequence[EncodedImage]) -> AnalysisPayload:
        self.calls["analyze_outfit"] += 1
        if self.analysis_gate is not None:
            await self.analysis_gate.wait()
        if self.fail_analysis:
            raise RuntimeError("model unavailable")
        return self.analysis_payload

    async def enrich_suggestions(
        self, style_name: str, description: str, exclude_names: Sequence[str]
    ) -> List[SuggestionPayload]:
        self.calls["enrich_suggestions"] += 1
        gate = self.suggestion_gates.pop(0) if self.suggestion_gates else self.enrichment_gate
        if gate is not None:
            await gate.wait()
        if self.fail_enrichment:
            raise RuntimeError("enrichment unavailable")
        return list(self.more_suggestions)

    async def enrich_sets(
        self, exclude_names: Sequence[str], allowed_ids: Sequence[str]
    ) -> List[CuratedSetPayload]:
        self.calls["enrich_sets"] += 1
        self.enrich_set_requests.append((list(exclude_names), list(allowed_ids)))
        batch = self.set_batches.pop(0) if self.set_batches else self.more_sets
        if self.enrichment_gate is not None:
            await self.enrichment_gate.wait()
        if self.fail_enrichment:
            raise RuntimeError("enrichment unavailable")
        return list(batch)

    async def synthesize_product_image(self, suggestion: Suggestion) -> Optional[str]:
        self.calls["synthesize_product_image"] += 1
        self.product_calls.append(suggestion.id)
        gate = self.product_gates.get(suggestion.id)
        if gate is not None:
            await gate.wait()
        if suggestion.id in self.fail_product_ids:
            raise RuntimeError(f"image failed for {suggestion.id}")
        return f"data:image/png;base64,product-{suggestion.id}"

    async def synthesize_composite_image(
        self, base_image: EncodedImage, items: Sequence[Suggestion]
    ) -> Optional[str]:
        key = composite_key(items)
        self.calls["synthesize_composite_image"] += 1
        self.composite_calls.append(key)
        gate = self.composite_gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.fail_composite_keys:
            raise RuntimeError(f"composite failed for {key}")
        return f"data:image/png;base64,look-{key}"


@pytest.fixture()
def images() -> List[EncodedImage]:
    return [
        EncodedImage(mime_type="image/jpeg", data=b"front-photo"),
        EncodedImage(mime_type="image/png", data=b"side-photo"),
    ]


@pytest.fixture()
def provider() -> StubStylistProvider:
    return StubStylistProvider()


@pytest.fixture()
def gate() -> EntitlementGate:
    store = InMemorySessionStore(UserSession(email="ava@example.com", trials_used=0))
    return EntitlementGate(store, free_trials=1)


@pytest.fixture()
def orchestrator(provider: StubStylistProvider, gate: EntitlementGate) -> AnalysisOrchestrator:
    cache = ImageRequestCache(provider.synthesize_product_image)
    return AnalysisOrchestrator(provider=provider, image_cache=cache, gate=gate)
