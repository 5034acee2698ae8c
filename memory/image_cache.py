"""Session-scoped cache that deduplicates product image synthesis."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from aura_app.logging_config import get_logger, log_event
from models.analysis import Suggestion

LOGGER = get_logger(__name__)

ImageSynthesizer = Callable[[Suggestion], Awaitable[Optional[str]]]


class ImageRequestCache:
    """Memoizes image synthesis per suggestion id.

    At most one synthesis call per id is outstanding; concurrent callers await
    the same task. Failures are not cached so a later call retries.
    """

    def __init__(self, synthesize: ImageSynthesizer) -> None:
        self._synthesize = synthesize
        self._resolved: Dict[str, str] = {}
        self._pending: Dict[str, asyncio.Task] = {}
        self._generation = 0

    def peek(self, suggestion_id: str) -> Optional[str]:
        return self._resolved.get(suggestion_id)

    def is_pending(self, suggestion_id: str) -> bool:
        return suggestion_id in self._pending

    def __len__(self) -> int:
        return len(self._resolved)

    async def resolve(self, suggestion: Suggestion) -> Optional[str]:
        cached = self._resolved.get(suggestion.id)
        if cached is not None:
            return cached

        task = self._pending.get(suggestion.id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(suggestion, self._generation))
            self._pending[suggestion.id] = task
        # Shield so a cancelled caller does not cancel the shared request.
        return await asyncio.shield(task)

    async def _fetch(self, suggestion: Suggestion, generation: int) -> Optional[str]:
        try:
            url = await self._synthesize(suggestion)
        except Exception:  # noqa: BLE001
            log_event(
                LOGGER,
                logging.WARNING,
                "product_image_failed",
                suggestion_id=suggestion.id,
                exc_info=True,
            )
            url = None

        if generation == self._generation:
            if url:
                self._resolved[suggestion.id] = url
            self._pending.pop(suggestion.id, None)
        return url or None

    def clear(self) -> None:
        """Forget resolved images; requests still in flight will not repopulate."""

        self._generation += 1
        self._resolved.clear()
        self._pending.clear()


__all__ = ["ImageRequestCache", "ImageSynthesizer"]
