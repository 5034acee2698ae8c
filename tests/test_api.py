"""HTTP surface tests using FastAPI's TestClient and the mock provider."""

import base64
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from aura_app.app import AuraStylistApp
from aura_app.config import AuraConfig
from memory.session_store import InMemorySessionStore
from server.api import create_app

PHOTO = ("outfit.jpg", b"\xff\xd8\xff-fake-jpeg", "image/jpeg")


@pytest.fixture()
def client() -> Iterator[TestClient]:
    stylist = AuraStylistApp(config=AuraConfig(stylist_provider="mock"), session_store=InMemorySessionStore())
    with TestClient(create_app(stylist)) as test_client:
        yield test_client


def _sign_in_and_upload(client: TestClient) -> None:
    assert client.post("/auth/login", json={"email": "ava@example.com", "otp": "123456"}).status_code == 200
    response = client.post("/uploads", files=[("files", PHOTO)])
    assert response.status_code == 200
    assert response.json() == {"uploadCount": 1}


def test_healthcheck_reports_mock_provider(client: TestClient) -> None:
    body = client.get("/healthz").json()

    assert body["status"] == "ok"
    assert body["provider"] == "MockStylistProvider"


def test_protected_routes_require_sign_in(client: TestClient) -> None:
    assert client.post("/uploads", files=[("files", PHOTO)]).status_code == 401
    assert client.post("/analysis").status_code == 401
    assert client.post("/billing/top-up").status_code == 401
    assert client.get("/analysis").status_code == 404


def test_login_rejects_malformed_input(client: TestClient) -> None:
    assert client.post("/auth/login", json={"email": "ava@example.com", "otp": "12"}).status_code == 422
    assert client.post("/auth/login", json={"email": "nobody", "otp": "123456"}).status_code == 400


def test_upload_rejects_non_images(client: TestClient) -> None:
    client.post("/auth/login", json={"email": "ava@example.com", "otp": "123456"})

    response = client.post("/uploads", files=[("files", ("notes.txt", b"hello", "text/plain"))])

    assert response.status_code == 400


def test_analysis_without_uploads_is_rejected(client: TestClient) -> None:
    client.post("/auth/login", json={"email": "ava@example.com", "otp": "123456"})

    response = client.post("/analysis")

    assert response.status_code == 400
    assert response.json()["detail"] == "Select an item first."


def test_full_analysis_flow(client: TestClient) -> None:
    _sign_in_and_upload(client)

    response = client.post("/analysis")
    assert response.status_code == 200
    body = response.json()
    assert len(body["analysis"]["suggestions"]) == 7
    assert len(body["analysis"]["curatedSets"]) == 2
    assert body["session"]["trialsUsed"] == 1

    denied = client.post("/analysis")
    assert denied.status_code == 402
    assert "₹10" in denied.json()["detail"]

    shoes = client.get("/analysis", params={"category": "Shoes"}).json()["analysis"]["suggestions"]
    assert shoes and all(s["category"] == "Shoes" for s in shoes)
    assert client.get("/analysis", params={"category": "Hats"}).status_code == 400

    more = client.post("/analysis/suggestions/more").json()["added"]
    assert len(more) == 6
    lookbooks = client.post("/analysis/lookbooks/more").json()["added"]
    assert len(lookbooks) == 3

    set_id = lookbooks[0]["setId"]
    detail = client.get(f"/analysis/lookbooks/{set_id}").json()
    assert detail["name"] == lookbooks[0]["name"]
    assert all(item["shopUrl"].startswith("https://www.google.com/search") for item in detail["items"])
    assert client.get("/analysis/lookbooks/set-missing").status_code == 404


def test_suggestion_image_and_shop_redirect(client: TestClient) -> None:
    _sign_in_and_upload(client)
    suggestion_id = client.post("/analysis").json()["analysis"]["suggestions"][0]["id"]

    image = client.get(f"/suggestions/{suggestion_id}/image").json()
    assert image["fallback"] is False
    assert image["imageUrl"].startswith("data:image/svg+xml")

    redirect = client.get(f"/suggestions/{suggestion_id}/shop", follow_redirects=False)
    assert redirect.status_code == 307
    assert redirect.headers["location"].startswith("https://www.google.com/search?q=")
    assert "tbm=shop" in redirect.headers["location"]
    assert client.get("/suggestions/unknown/image").status_code == 404


def test_top_up_and_reset(client: TestClient) -> None:
    _sign_in_and_upload(client)
    client.post("/analysis")

    topped = client.post("/billing/top-up").json()
    assert topped["trialsLeft"] == 1

    reset = client.delete("/analysis").json()
    assert reset["uploadCount"] == 0
    assert reset["trialsUsed"] == 0
    assert client.get("/analysis").status_code == 404

    logged_out = client.post("/auth/logout").json()
    assert logged_out["signedIn"] is False


def test_removing_an_upload_requires_sign_in(client: TestClient) -> None:
    _sign_in_and_upload(client)
    client.post("/auth/logout")

    assert client.delete("/uploads/0").status_code == 401
    assert client.get("/uploads").status_code == 401


def test_encoded_uploads_are_listed_as_previews(client: TestClient) -> None:
    client.post("/auth/login", json={"email": "ava@example.com", "otp": "123456"})
    url = "data:image/png;base64," + base64.b64encode(b"png-photo").decode("ascii")

    response = client.post("/uploads/encoded", json={"images": [url]})
    assert response.status_code == 200
    assert response.json() == {"uploadCount": 1}

    listing = client.get("/uploads").json()
    assert listing == {"uploadCount": 1, "images": [url]}

    assert client.post("/uploads/encoded", json={"images": ["data:image/png;base64,%%%"]}).status_code == 400
    assert client.post("/uploads/encoded", json={"images": []}).status_code == 422
    assert client.delete("/uploads/0").json() == {"uploadCount": 0}
    assert client.delete("/uploads/0").status_code == 404
