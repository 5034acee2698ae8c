"""Analysis orchestrator: primary analysis, enrichment and background imagery."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, List, Optional, Sequence, Set

from aura_app.logging_config import get_logger, log_event, operation_context
from logic.merge import (
    append_sets,
    append_suggestions,
    build_analysis,
    build_sets,
    patch_set_visual,
    patch_suggestion_image,
    resolve_set_items,
)
from memory.entitlement import EntitlementGate
from memory.image_cache import ImageRequestCache
from models.analysis import CuratedSet, OutfitAnalysis, Suggestion
from models.images import EncodedImage
from tools.stylist_provider import StylistProvider

LOGGER = get_logger(__name__)

MAX_ANALYSIS_IMAGES = 4


class AnalysisFailedError(RuntimeError):
    """The primary analysis call failed or returned an unusable result."""


class AnalysisInProgressError(RuntimeError):
    """Another primary analysis is still outstanding."""


@dataclass(frozen=True)
class SetVisualJob:
    """A dispatched lookbook visual: the set it targets and its position at dispatch."""

    analysis_id: str
    set_id: str
    position: int


class AnalysisOrchestrator:
    """Drives analyze-then-enrich and merges results into the session's analysis.

    Every background completion re-reads the current aggregate and patches a
    single record by id. Completions that belong to a replaced aggregate are
    dropped.
    """

    def __init__(
        self,
        provider: StylistProvider,
        image_cache: ImageRequestCache,
        gate: EntitlementGate,
        max_images: int = MAX_ANALYSIS_IMAGES,
    ) -> None:
        self.provider = provider
        self.image_cache = image_cache
        self.gate = gate
        self.max_images = max_images
        self.dispatched_visual_jobs: List[SetVisualJob] = []
        self._analysis: Optional[OutfitAnalysis] = None
        self._images: List[EncodedImage] = []
        self._background: Set[asyncio.Task] = set()
        self._in_flight: Counter[str] = Counter()
        self._reset_count = 0

    @property
    def analysis(self) -> Optional[OutfitAnalysis]:
        return self._analysis

    @property
    def images(self) -> List[EncodedImage]:
        return list(self._images)

    def status(self) -> Dict[str, Any]:
        return {
            "analyzing": self._in_flight["analyze"] > 0,
            "loadingMoreSuggestions": self._in_flight["more_suggestions"] > 0,
            "loadingMoreLookbooks": self._in_flight["more_lookbooks"] > 0,
            "backgroundTasks": len(self._background),
        }

    def _current(self, analysis_id: str) -> Optional[OutfitAnalysis]:
        if self._analysis is not None and self._analysis.analysis_id == analysis_id:
            return self._analysis
        return None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for all background work, including work spawned while waiting."""

        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def reset(self) -> None:
        """Drop the current analysis and uploads; late completions become no-ops.

        An analysis still awaiting the model when this runs is discarded on
        return and does not consume a trial.
        """

        self._reset_count += 1
        self._analysis = None
        self._images = []
        self.image_cache.clear()

    async def analyze(self, images: Sequence[EncodedImage]) -> OutfitAnalysis:
        """Run the primary analysis and replace the session's aggregate.

        Raises:
            ValueError: If no images or more than ``max_images`` are given.
            AnalysisInProgressError: If another analysis is outstanding.
            EntitlementDeniedError: If the user has no trial left.
            AnalysisFailedError: If the model call fails or returns an unusable payload.
        """

        images = list(images)
        if not images:
            raise ValueError("Select an item first.")
        if len(images) > self.max_images:
            raise ValueError(f"Max {self.max_images} images allowed")
        if self._in_flight["analyze"] > 0:
            raise AnalysisInProgressError("An analysis is already running.")
        self.gate.ensure_can_analyze()
        reset_count = self._reset_count

        with operation_context("orchestrator.analyze") as correlation_id:
            log_event(
                LOGGER,
                logging.INFO,
                "analysis_started",
                agent="orchestrator",
                image_count=len(images),
                correlation_id=correlation_id,
            )
            self._in_flight["analyze"] += 1
            try:
                try:
                    payload = await self.provider.analyze_outfit(images)
                except Exception as exc:
                    log_event(
                        LOGGER,
                        logging.ERROR,
                        "analysis_failed",
                        agent="orchestrator",
                        correlation_id=correlation_id,
                        exc_info=True,
                    )
                    raise AnalysisFailedError("Service unavailable.") from exc
                if reset_count != self._reset_count:
                    log_event(
                        LOGGER,
                        logging.INFO,
                        "analysis_discarded",
                        agent="orchestrator",
                        correlation_id=correlation_id,
                        reason="reset",
                    )
                    raise AnalysisFailedError("The session was reset before the analysis finished.")
                if not payload.is_complete:
                    log_event(
                        LOGGER,
                        logging.WARNING,
                        "analysis_incomplete",
                        agent="orchestrator",
                        correlation_id=correlation_id,
                        suggestion_count=len(payload.suggestions),
                    )
                    raise AnalysisFailedError("The stylist could not read this outfit. Please try again.")
                analysis = build_analysis(payload)
                self.gate.record_analysis()
            finally:
                self._in_flight["analyze"] -= 1

            self._analysis = analysis
            self._images = images
            self.image_cache.clear()
            self.schedule_set_visuals(analysis.curated_sets, start_index=0)
            self.schedule_product_images(analysis.suggestions)

            log_event(
                LOGGER,
                logging.INFO,
                "analysis_completed",
                agent="orchestrator",
                correlation_id=correlation_id,
                suggestion_count=len(analysis.suggestions),
                set_count=len(analysis.curated_sets),
            )
            return analysis

    async def load_more_suggestions(self) -> List[Suggestion]:
        """Append roughly six new suggestions; returns the appended records.

        Failures leave the aggregate untouched and return an empty list.
        """

        current = self._analysis
        if current is None:
            return []

        with operation_context("orchestrator.load_more_suggestions") as correlation_id:
            self._in_flight["more_suggestions"] += 1
            try:
                payloads = await self.provider.enrich_suggestions(
                    current.style_name,
                    current.description,
                    [suggestion.name for suggestion in current.suggestions],
                )
            except Exception:  # noqa: BLE001
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "enrichment_failed",
                    agent="orchestrator",
                    method="load_more_suggestions",
                    correlation_id=correlation_id,
                    exc_info=True,
                )
                return []
            finally:
                self._in_flight["more_suggestions"] -= 1

            latest = self._current(current.analysis_id)
            if latest is None:
                log_event(LOGGER, logging.INFO, "enrichment_dropped", method="load_more_suggestions")
                return []
            new_suggestions = append_suggestions(latest, payloads)
            self.schedule_product_images(new_suggestions)
            log_event(
                LOGGER,
                logging.INFO,
                "enrichment_completed",
                agent="orchestrator",
                method="load_more_suggestions",
                correlation_id=correlation_id,
                added=len(new_suggestions),
                total=len(latest.suggestions),
            )
            return new_suggestions

    async def load_more_lookbooks(self) -> List[CuratedSet]:
        """Append new lookbooks built only from suggestions present at call time."""

        current = self._analysis
        if current is None:
            return []
        allowed_ids = current.suggestion_ids()

        with operation_context("orchestrator.load_more_lookbooks") as correlation_id:
            self._in_flight["more_lookbooks"] += 1
            try:
                payloads = await self.provider.enrich_sets(
                    [curated.name for curated in current.curated_sets], allowed_ids
                )
            except Exception:  # noqa: BLE001
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "enrichment_failed",
                    agent="orchestrator",
                    method="load_more_lookbooks",
                    correlation_id=correlation_id,
                    exc_info=True,
                )
                return []
            finally:
                self._in_flight["more_lookbooks"] -= 1

            latest = self._current(current.analysis_id)
            if latest is None:
                log_event(LOGGER, logging.INFO, "enrichment_dropped", method="load_more_lookbooks")
                return []
            new_sets = build_sets(
                payloads,
                allowed_ids=allowed_ids,
                exclude_names=[curated.name for curated in latest.curated_sets],
            )
            start_index = append_sets(latest, new_sets)
            self.schedule_set_visuals(new_sets, start_index=start_index)
            log_event(
                LOGGER,
                logging.INFO,
                "enrichment_completed",
                agent="orchestrator",
                method="load_more_lookbooks",
                correlation_id=correlation_id,
                added=len(new_sets),
                start_index=start_index,
            )
            return new_sets

    def schedule_set_visuals(self, sets: Sequence[CuratedSet], start_index: int) -> List[SetVisualJob]:
        """Fire composite synthesis for ``sets`` without waiting for it."""

        analysis = self._analysis
        if analysis is None or not self._images:
            return []
        base_image = self._images[0]
        jobs: List[SetVisualJob] = []
        for offset, curated in enumerate(sets):
            job = SetVisualJob(analysis.analysis_id, curated.set_id, start_index + offset)
            jobs.append(job)
            self.dispatched_visual_jobs.append(job)
            self._spawn(self._render_set_visual(job, base_image))
        return jobs

    async def _render_set_visual(self, job: SetVisualJob, base_image: EncodedImage) -> None:
        analysis = self._current(job.analysis_id)
        curated = analysis.find_set(job.set_id) if analysis else None
        if analysis is None or curated is None:
            return
        items = resolve_set_items(analysis, curated)
        if not items:
            log_event(LOGGER, logging.INFO, "set_visual_skipped", set_id=job.set_id, reason="no_items")
            return

        try:
            visual_url = await self.provider.synthesize_composite_image(base_image, items)
        except Exception:  # noqa: BLE001
            log_event(
                LOGGER,
                logging.WARNING,
                "set_visual_failed",
                set_id=job.set_id,
                position=job.position,
                exc_info=True,
            )
            return
        if not visual_url:
            log_event(LOGGER, logging.INFO, "set_visual_empty", set_id=job.set_id, position=job.position)
            return

        latest = self._current(job.analysis_id)
        if latest is None or not patch_set_visual(latest, job.set_id, visual_url):
            log_event(LOGGER, logging.INFO, "set_visual_dropped", set_id=job.set_id)

    def schedule_product_images(self, suggestions: Sequence[Suggestion]) -> None:
        for suggestion in suggestions:
            if not suggestion.image_url:
                self._spawn(self.resolve_product_image(suggestion.id))

    async def resolve_product_image(self, suggestion_id: str) -> Optional[str]:
        """Return the product image for a suggestion, synthesizing it at most once.

        ``None`` means no image is available and the caller should show the
        category fallback.
        """

        analysis = self._analysis
        suggestion = analysis.find_suggestion(suggestion_id) if analysis else None
        if analysis is None or suggestion is None:
            return None
        if suggestion.image_url:
            return suggestion.image_url

        image_url = await self.image_cache.resolve(suggestion)
        latest = self._current(analysis.analysis_id)
        if image_url and latest is not None:
            patch_suggestion_image(latest, suggestion_id, image_url)
        return image_url


__all__ = [
    "AnalysisFailedError",
    "AnalysisInProgressError",
    "AnalysisOrchestrator",
    "MAX_ANALYSIS_IMAGES",
    "SetVisualJob",
]
