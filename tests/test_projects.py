import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_project(client: AsyncClient, fake_db):
    """Test creating a project owned by the caller"""
    response = await client.post("/api/projects", json={
        "name": "  Mobile App  ",
        "category": "development",
        "tags": ["mobile"],
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "Mobile App"
    assert data["owner_id"] == "user-1"
    assert data["status"] == "active"
    assert fake_db.tables["projects"][0]["visibility_level"] == "private"


@pytest.mark.asyncio
async def test_create_project_requires_name(client: AsyncClient):
    response = await client.post("/api/projects", json={"name": " ", "category": "development"})

    assert response.status_code == 400
    assert "required" in response.json()["error"]


@pytest.mark.asyncio
async def test_list_owned_projects(client: AsyncClient, project, foreign_project):
    response = await client.get("/api/projects", params={"project_type": "owned"})

    assert response.status_code == 200
    ids = [p["id"] for p in response.json()["data"]]
    assert ids == [project["id"]]


@pytest.mark.asyncio
async def test_list_all_includes_public(client: AsyncClient, fake_db, project, foreign_project):
    public = fake_db.seed("projects", {
        "name": "Community Portal",
        "category": "proposal",
        "owner_id": "user-2",
        "is_public": True,
        "visibility_level": "public",
    })[0]

    response = await client.get("/api/projects", params={"project_type": "all"})
    ids = {p["id"] for p in response.json()["data"]}
    assert ids == {project["id"], public["id"]}

    response = await client.get("/api/projects", params={"project_type": "public"})
    assert [p["id"] for p in response.json()["data"]] == [public["id"]]


@pytest.mark.asyncio
async def test_list_defaults_to_all_visible(client: AsyncClient, fake_db, project, foreign_project):
    """Test a bare listing returns owned and public projects but not private foreign ones"""
    public = fake_db.seed("projects", {
        "name": "Open Data Hub",
        "category": "development",
        "owner_id": "user-2",
        "is_public": True,
        "visibility_level": "public",
    })[0]

    response = await client.get("/api/projects")

    assert response.status_code == 200
    assert {p["id"] for p in response.json()["data"]} == {project["id"], public["id"]}


@pytest.mark.asyncio
async def test_list_search_and_filters(client: AsyncClient, fake_db, project):
    fake_db.seed("projects", {
        "name": "Internal Wiki", "category": "development", "owner_id": "user-1", "status": "archived",
    })

    response = await client.get("/api/projects", params={"search": "renewal"})
    assert [p["name"] for p in response.json()["data"]] == ["Shop Renewal"]

    response = await client.get("/api/projects", params={"status": "archived"})
    assert [p["name"] for p in response.json()["data"]] == ["Internal Wiki"]


@pytest.mark.asyncio
async def test_invalid_project_type(client: AsyncClient):
    response = await client.get("/api/projects", params={"project_type": "shared"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_project(client: AsyncClient, project, foreign_project):
    response = await client.get(f"/api/projects/{project['id']}")
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Shop Renewal"

    response = await client.get(f"/api/projects/{foreign_project['id']}")
    assert response.status_code == 403

    response = await client.get("/api/projects/does-not-exist")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_project(client: AsyncClient, project):
    response = await client.put(f"/api/projects/{project['id']}", json={"status": "completed"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["name"] == "Shop Renewal"


@pytest.mark.asyncio
async def test_update_requires_owner(client: AsyncClient, fake_db):
    public = fake_db.seed("projects", {
        "name": "Open", "owner_id": "user-2", "is_public": True, "visibility_level": "public",
    })[0]

    response = await client.put(f"/api/projects/{public['id']}", json={"name": "Mine now"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_project_removes_workflow_data(client: AsyncClient, fake_db, project):
    fake_db.seed("workflow_data", {"project_id": project["id"], "user_id": "user-1", "workflow_type": "proposal"})
    fake_db.seed("workflow_data_links", {"project_id": project["id"], "source_workflow": "proposal"})

    response = await client.delete(f"/api/projects/{project['id']}")

    assert response.status_code == 204
    assert fake_db.tables["projects"] == []
    assert fake_db.tables["workflow_data"] == []
    assert fake_db.tables["workflow_data_links"] == []
