import pytest
from httpx import AsyncClient

from planforge.config import settings
from planforge.modules.images import service as image_service
from planforge.modules.images.schemas import ImageGenerateRequest
from planforge.modules.images.service import (
    choose_model, image_cost, optimize_prompt, placeholder_url, render_placeholder_svg
)


def test_choose_model():
    assert choose_model(ImageGenerateRequest(prompt="a red fox")) == "flux-schnell"
    assert choose_model(ImageGenerateRequest(prompt="a red fox", style="photographic")) == "imagen3"
    assert choose_model(ImageGenerateRequest(prompt="a red fox", model="imagen3")) == "imagen3"
    assert choose_model(ImageGenerateRequest(
        prompt="a red fox", model="imagen3", reference_image="https://example.com/ref.png",
    )) == "flux-context"


def test_optimize_prompt_and_cost():
    prompt = optimize_prompt("a red fox", "watercolor", "flux-schnell")

    assert prompt.startswith("a red fox, watercolor painting")
    assert prompt.endswith("high quality")
    assert image_cost("imagen3", "high") == 0.075
    assert image_cost("flux-schnell", "balanced") == 0.024


def test_placeholder_url_and_svg():
    url = placeholder_url("flux-schnell", "a <red> fox", 1, "portrait")

    assert url.startswith("/api/images/placeholder?")
    assert "size=portrait" in url
    svg = render_placeholder_svg("flux-schnell", "a <red> fox", 1, 768, 1024)
    assert 'width="768"' in svg
    assert "&lt;red&gt;" in svg
    assert "flux-schnell #2" in svg


def test_request_validation():
    with pytest.raises(ValueError):
        ImageGenerateRequest(prompt="  a ")
    with pytest.raises(ValueError):
        ImageGenerateRequest(prompt="a red fox", count=5)
    assert ImageGenerateRequest.model_validate({"prompt": "a red fox", "async": True}).async_mode is True


@pytest.mark.asyncio
async def test_generate_sync_stores_images(client: AsyncClient, fake_db, project):
    """Test synchronous generation returns stored placeholder images"""
    response = await client.post("/api/images/generate", json={
        "prompt": "Landing page hero illustration",
        "count": 2,
        "quality": "fast",
        "project_id": project["id"],
        "tags": ["hero"],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["model"] == "flux-schnell"
    assert len(body["images"]) == 2
    assert body["total_cost"] == 0.04
    assert body["images"][0]["image_url"].startswith("/api/images/placeholder?")
    rows = fake_db.tables["generated_images"]
    assert [r["metadata"]["index"] for r in rows] == [0, 1]
    assert rows[0]["project_id"] == project["id"]
    assert rows[0]["metadata"]["steps"] == 8

    progress = await client.get("/api/images/generate", params={"id": body["generation_id"]})
    assert progress.json()["data"]["status"] == "completed"
    assert progress.json()["data"]["progress"] == 100


@pytest.mark.asyncio
async def test_generate_async_queues_and_completes(client: AsyncClient, fake_db):
    """Test async generation returns a generation id that can be polled"""
    response = await client.post("/api/images/generate", json={
        "prompt": "Product photo of a coffee mug",
        "style": "photographic",
        "async": True,
    })

    body = response.json()
    assert body["status"] == "queued"
    assert body["estimated_time"] == 15

    progress = await client.get("/api/images/generate", params={"id": body["generation_id"]})
    data = progress.json()["data"]
    assert data["status"] == "completed"
    assert data["model"] == "imagen3"
    assert len(data["images"]) == 1
    assert "user_id" not in data
    assert len(fake_db.tables["generated_images"]) == 1


@pytest.mark.asyncio
async def test_generate_rejects_when_slots_are_busy(client: AsyncClient, fake_db):
    held = 0
    try:
        while image_service._generation_slots.acquire(blocking=False):
            held += 1
        response = await client.post("/api/images/generate", json={"prompt": "Busy server test"})
    finally:
        for _ in range(held):
            image_service._generation_slots.release()

    assert held == settings.max_concurrent_generations
    assert response.status_code == 429
    assert fake_db.tables.get("generated_images", []) == []


@pytest.mark.asyncio
async def test_generate_for_foreign_project_forbidden(client: AsyncClient, foreign_project):
    response = await client.post("/api/images/generate", json={
        "prompt": "Not my project",
        "project_id": foreign_project["id"],
    })

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_generate_validation_errors(client: AsyncClient):
    short = await client.post("/api/images/generate", json={"prompt": "hi"})
    assert short.status_code == 400

    model = await client.post("/api/images/generate", json={"prompt": "a red fox", "model": "dalle"})
    assert model.status_code == 400


@pytest.mark.asyncio
async def test_progress_errors(client: AsyncClient):
    assert (await client.get("/api/images/generate")).status_code == 400
    assert (await client.get("/api/images/generate", params={"id": "unknown"})).status_code == 404


@pytest.mark.asyncio
async def test_image_library_operations(client: AsyncClient, fake_db):
    """Test listing, favoriting, downloading and deleting generated images"""
    generated = await client.post("/api/images/generate", json={"prompt": "Team photo mockup", "count": 2})
    first, second = generated.json()["images"]
    fake_db.seed("generated_images", {
        "user_id": "user-2", "prompt": "other", "model_used": "imagen3", "image_url": "/x",
    })

    listed = await client.get("/api/images")
    assert {i["id"] for i in listed.json()["data"]} == {first["id"], second["id"]}

    favorite = await client.post(f"/api/images/{first['id']}/favorite")
    assert favorite.json()["data"]["is_favorite"] is True
    favorites = await client.get("/api/images", params={"favorites": "true"})
    assert [i["id"] for i in favorites.json()["data"]] == [first["id"]]

    download = await client.get(f"/api/images/{first['id']}/download")
    assert download.headers["content-type"].startswith("image/svg+xml")
    assert f'filename="{first["id"]}.svg"' in download.headers["content-disposition"]
    assert download.text.startswith("<svg")

    deleted = await client.delete(f"/api/images/{second['id']}")
    assert deleted.status_code == 204
    assert (await client.get(f"/api/images/{second['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_image_stats(client: AsyncClient, fake_db):
    fake_db.seed(
        "generated_images",
        {"user_id": "user-1", "prompt": "a", "model_used": "imagen3", "image_url": "/a", "metadata": {"cost": 0.06}},
        {"user_id": "user-1", "prompt": "b", "model_used": "imagen3", "image_url": "/b", "metadata": {"cost": 0.06}},
        {"user_id": "user-1", "prompt": "c", "model_used": "flux-schnell", "image_url": "/c", "metadata": {"cost": 0.03}},
    )

    response = await client.get("/api/images/stats")

    data = response.json()["data"]
    assert data["imageCount"] == 3
    assert data["totalCost"] == 0.15
    assert data["averageCostPerImage"] == 0.05
    assert data["byModel"]["imagen3"] == {"count": 2, "cost": 0.12}


@pytest.mark.asyncio
async def test_placeholder_endpoint(client: AsyncClient):
    response = await client.get("/api/images/placeholder", params={
        "model": "imagen3", "prompt": "coffee mug", "index": 0, "size": "landscape",
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert 'width="1024" height="768"' in response.text
