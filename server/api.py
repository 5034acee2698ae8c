"""FastAPI server exposing the stylist session to the browser front end."""

from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from agents.orchestrator import AnalysisFailedError, AnalysisInProgressError
from aura_app.app import AuraStylistApp
from memory.entitlement import EntitlementDeniedError, InvalidLoginError, NotSignedInError
from models.images import EncodedImage
from models.taxonomy import parse_category_filter
from tools.image_encoding import InvalidUploadError, decode_data_url, encode_upload
from tools.product_links import fallback_image_url, shopping_search_url


class LoginRequest(BaseModel):
    """Email plus the six-digit one-time code from the sign-in form."""

    email: str = Field(..., min_length=3)
    otp: str = Field(..., min_length=6, max_length=6)


class EncodedUploadRequest(BaseModel):
    """Photos already read by the browser as ``data:image/...;base64,...`` strings."""

    images: List[str] = Field(..., min_length=1)


def create_app(stylist_app: AuraStylistApp | None = None) -> FastAPI:
    """Build the ASGI app around one :class:`AuraStylistApp`."""

    stylist = stylist_app or AuraStylistApp()
    app = FastAPI(title="Maison Aura Stylist", version="0.1.0")
    app.state.stylist = stylist

    def _require_session() -> None:
        try:
            stylist.gate.require_session()
        except NotSignedInError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    def _require_analysis():
        analysis = stylist.analysis
        if analysis is None:
            raise HTTPException(status_code=404, detail="No analysis yet.")
        return analysis

    @app.get("/healthz")
    async def healthcheck() -> dict:
        return {
            "status": "ok",
            "service": "maison-aura-stylist",
            "environment": stylist.config.environment or "local",
            "provider": type(stylist.provider).__name__,
            "analysis_model": stylist.config.analysis_model,
        }

    @app.post("/auth/login")
    async def login(request: LoginRequest) -> dict:
        try:
            stylist.login(request.email, request.otp)
        except InvalidLoginError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return stylist.session_summary()

    @app.post("/auth/logout")
    async def logout() -> dict:
        stylist.logout()
        return stylist.session_summary()

    @app.get("/session")
    async def session() -> dict:
        return stylist.session_summary()

    @app.post("/billing/top-up")
    async def top_up() -> dict:
        _require_session()
        stylist.top_up()
        return stylist.session_summary()

    def _add_uploads(images: List[EncodedImage]) -> dict:
        try:
            uploads = stylist.add_uploads(images)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"uploadCount": len(uploads)}

    @app.get("/uploads")
    async def list_uploads() -> dict:
        _require_session()
        previews = stylist.upload_previews()
        return {"uploadCount": len(previews), "images": previews}

    @app.post("/uploads")
    async def upload(files: List[UploadFile] = File(...)) -> dict:
        _require_session()
        images = []
        for upload_file in files:
            payload = await upload_file.read()
            try:
                images.append(encode_upload(payload, upload_file.content_type, upload_file.filename))
            except InvalidUploadError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _add_uploads(images)

    @app.post("/uploads/encoded")
    async def upload_encoded(request: EncodedUploadRequest) -> dict:
        _require_session()
        try:
            images = [decode_data_url(value) for value in request.images]
        except InvalidUploadError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _add_uploads(images)

    @app.delete("/uploads/{index}")
    async def remove_upload(index: int) -> dict:
        _require_session()
        try:
            uploads = stylist.remove_upload(index)
        except IndexError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"uploadCount": len(uploads)}

    @app.post("/analysis")
    async def analyze() -> dict:
        try:
            analysis = await stylist.analyze()
        except NotSignedInError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except EntitlementDeniedError as exc:
            raise HTTPException(status_code=402, detail=exc.message) from exc
        except AnalysisInProgressError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except AnalysisFailedError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"analysis": analysis.to_dict(), "session": stylist.session_summary()}

    @app.get("/analysis")
    async def get_analysis(category: Optional[str] = None) -> dict:
        analysis = _require_analysis()
        try:
            category_filter = parse_category_filter(category)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"analysis": analysis.to_dict(category_filter), "status": stylist.orchestrator.status()}

    @app.delete("/analysis")
    async def reset_analysis() -> dict:
        stylist.reset()
        return stylist.session_summary()

    @app.post("/analysis/suggestions/more")
    async def more_suggestions() -> dict:
        _require_session()
        _require_analysis()
        added = await stylist.load_more_suggestions()
        return {"added": [suggestion.to_dict() for suggestion in added]}

    @app.post("/analysis/lookbooks/more")
    async def more_lookbooks() -> dict:
        _require_session()
        _require_analysis()
        added = await stylist.load_more_lookbooks()
        return {"added": [curated.to_dict() for curated in added]}

    @app.get("/analysis/lookbooks/{set_id}")
    async def lookbook_detail(set_id: str) -> dict:
        try:
            return stylist.lookbook_detail(set_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown lookbook {set_id}") from exc

    @app.get("/suggestions/{suggestion_id}/image")
    async def suggestion_image(suggestion_id: str) -> dict:
        analysis = _require_analysis()
        suggestion = analysis.find_suggestion(suggestion_id)
        if suggestion is None:
            raise HTTPException(status_code=404, detail=f"Unknown suggestion {suggestion_id}")
        image_url = await stylist.product_image(suggestion_id)
        return {
            "id": suggestion_id,
            "imageUrl": image_url,
            "displayImageUrl": image_url or fallback_image_url(suggestion),
            "fallback": image_url is None,
        }

    @app.get("/suggestions/{suggestion_id}/shop")
    async def suggestion_shop(suggestion_id: str) -> RedirectResponse:
        analysis = _require_analysis()
        suggestion = analysis.find_suggestion(suggestion_id)
        if suggestion is None:
            raise HTTPException(status_code=404, detail=f"Unknown suggestion {suggestion_id}")
        return RedirectResponse(shopping_search_url(suggestion.name, suggestion.category))

    return app


def get_app() -> FastAPI:
    """Expose a configured FastAPI instance for ASGI servers."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
