"""Application bootstrap: wires provider, session, cache and orchestrator."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from agents.orchestrator import AnalysisOrchestrator
from aura_app.config import AuraConfig
from aura_app.logging_config import configure_logging, get_logger, log_event
from logic.merge import resolve_set_items
from memory.entitlement import EntitlementGate
from memory.image_cache import ImageRequestCache
from memory.session_store import JSONSessionStore, SessionStore, SQLiteSessionStore
from models.analysis import CuratedSet, OutfitAnalysis, Suggestion
from models.images import EncodedImage
from models.session import UserSession
from tools.product_links import display_image_url, shopping_search_url
from tools.stylist_provider import GeminiStylistProvider, MockStylistProvider, StylistProvider


LOGGER = get_logger(__name__)


class AuraStylistApp:
    """Owns one user's session state for the lifetime of the process.

    Login creates the session, logout tears down the session, the analysis and
    the image cache together.
    """

    def __init__(
        self,
        config: AuraConfig | None = None,
        provider: StylistProvider | None = None,
        session_store: SessionStore | None = None,
    ) -> None:
        self.config = config or AuraConfig.from_env()
        configure_logging()

        self.provider = provider or self._build_provider()
        self.session_store = session_store or self._build_session_store()
        self.gate = EntitlementGate(self.session_store, free_trials=self.config.free_trials)
        self.image_cache = ImageRequestCache(self.provider.synthesize_product_image)
        self.orchestrator = AnalysisOrchestrator(
            provider=self.provider,
            image_cache=self.image_cache,
            gate=self.gate,
            max_images=self.config.max_upload_images,
        )
        self._uploads: List[EncodedImage] = []

    def _build_provider(self) -> StylistProvider:
        if self.config.use_mock_provider:
            log_event(
                LOGGER,
                logging.WARNING,
                "mock_provider_selected",
                reason="configured" if self.config.api_key else "missing_api_key",
            )
            return MockStylistProvider()
        return GeminiStylistProvider(
            api_key=self.config.api_key,
            analysis_model=self.config.analysis_model,
            image_model=self.config.image_model,
        )

    def _build_session_store(self) -> SessionStore:
        if self.config.session_store_backend.lower() == "sqlite":
            return SQLiteSessionStore(self.config.session_store_path or "data/session_store.db")
        return JSONSessionStore(self.config.session_store_path or "data/sessions")

    @property
    def session(self) -> Optional[UserSession]:
        return self.gate.session

    @property
    def analysis(self) -> Optional[OutfitAnalysis]:
        return self.orchestrator.analysis

    @property
    def uploads(self) -> List[EncodedImage]:
        return list(self._uploads)

    def login(self, email: str, otp: str) -> UserSession:
        session = self.gate.login(email, otp)
        self.reset()
        return session

    def logout(self) -> None:
        self.gate.logout()
        self.reset()

    def reset(self) -> None:
        """Drop uploads, the analysis and cached images; the trial counter is kept."""

        self._uploads = []
        self.orchestrator.reset()

    def top_up(self) -> UserSession:
        return self.gate.top_up()

    def add_uploads(self, images: Sequence[EncodedImage]) -> List[EncodedImage]:
        self.gate.require_session()
        if len(self._uploads) + len(images) > self.config.max_upload_images:
            raise ValueError(f"Max {self.config.max_upload_images} images allowed")
        self._uploads.extend(images)
        return self.uploads

    def upload_previews(self) -> List[str]:
        """Uploaded photos as data URLs for the thumbnail strip."""

        return [image.to_data_url() for image in self._uploads]

    def remove_upload(self, index: int) -> List[EncodedImage]:
        if not 0 <= index < len(self._uploads):
            raise IndexError(f"No uploaded image at position {index}")
        del self._uploads[index]
        return self.uploads

    async def analyze(self) -> OutfitAnalysis:
        self.gate.require_session()
        return await self.orchestrator.analyze(self._uploads)

    async def load_more_suggestions(self) -> List[Suggestion]:
        self.gate.require_session()
        return await self.orchestrator.load_more_suggestions()

    async def load_more_lookbooks(self) -> List[CuratedSet]:
        self.gate.require_session()
        return await self.orchestrator.load_more_lookbooks()

    async def product_image(self, suggestion_id: str) -> Optional[str]:
        return await self.orchestrator.resolve_product_image(suggestion_id)

    def lookbook_detail(self, set_id: str) -> Dict[str, Any]:
        """Describe one lookbook with its items and shopping links."""

        analysis = self.orchestrator.analysis
        curated = analysis.find_set(set_id) if analysis else None
        if analysis is None or curated is None:
            raise KeyError(f"Unknown lookbook {set_id}")
        items = resolve_set_items(analysis, curated, placeholders=True)
        return {
            **curated.to_dict(),
            "items": [
                {
                    **item.to_dict(),
                    "displayImageUrl": display_image_url(item),
                    "shopUrl": shopping_search_url(item.name, item.category),
                    "available": analysis.find_suggestion(item.id) is not None,
                }
                for item in items
            ],
        }

    def session_summary(self) -> Dict[str, Any]:
        session = self.gate.session
        return {
            "signedIn": session is not None,
            "email": session.email if session else None,
            "trialsUsed": session.trials_used if session else 0,
            "trialsLeft": self.gate.trials_left,
            "uploadCount": len(self._uploads),
            "status": self.orchestrator.status(),
        }


__all__ = ["AuraStylistApp"]
