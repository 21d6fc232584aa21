"""
Tests for the supporting CRUD: /api/v1/carers, /api/v1/packages, /api/v1/tasks.
"""
import uuid

import pytest

from tests.conftest import auth_headers


# ── Carers ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_and_list_carers(client, admin_token):
    resp = await client.post(
        "/api/v1/carers", json={"name": "Zoe", "email": "zoe@caretrack.co.uk"}, headers=auth_headers(admin_token),
    )
    assert resp.status_code == 201
    await client.post("/api/v1/carers", json={"name": "Adam"}, headers=auth_headers(admin_token))

    resp = await client.get("/api/v1/carers", headers=auth_headers(admin_token))
    assert [c["name"] for c in resp.json()] == ["Adam", "Zoe"]


@pytest.mark.asyncio
async def test_duplicate_email_409(client, admin_token):
    payload = {"name": "Zoe", "email": "zoe@caretrack.co.uk"}
    await client.post("/api/v1/carers", json=payload, headers=auth_headers(admin_token))
    resp = await client.post("/api/v1/carers", json=payload, headers=auth_headers(admin_token))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_update_carer(client, admin_token, carer):
    resp = await client.put(
        f"/api/v1/carers/{carer.id}", json={"phone": "07700 900123"}, headers=auth_headers(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "07700 900123"
    assert resp.json()["name"] == "Alice Carer"


@pytest.mark.asyncio
async def test_soft_delete_carer(client, admin_token, carer):
    resp = await client.delete(f"/api/v1/carers/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204

    resp = await client.get(f"/api/v1/carers/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 404
    resp = await client.get(
        "/api/v1/carers", params={"include_inactive": True}, headers=auth_headers(admin_token),
    )
    assert resp.json() == []


@pytest.mark.asyncio
async def test_viewer_cannot_manage_carers(client, viewer_token):
    resp = await client.get("/api/v1/carers", headers=auth_headers(viewer_token))
    assert resp.status_code == 403


# ── Competencies ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_set_competency_upserts(client, admin_token, carer, task):
    url = f"/api/v1/carers/{carer.id}/competencies/{task.id}"
    resp = await client.put(url, json={"level": "ADVANCED_BEGINNER"}, headers=auth_headers(admin_token))
    assert resp.status_code == 200
    first_id = resp.json()["id"]

    resp = await client.put(
        url, json={"level": "COMPETENT", "source": "ASSESSMENT"}, headers=auth_headers(admin_token),
    )
    assert resp.json()["id"] == first_id
    assert resp.json()["level"] == "COMPETENT"
    assert resp.json()["source"] == "ASSESSMENT"

    resp = await client.get(f"/api/v1/carers/{carer.id}/competencies", headers=auth_headers(admin_token))
    assert [r["level"] for r in resp.json()] == ["COMPETENT"]


@pytest.mark.asyncio
async def test_set_competency_bad_level_422(client, admin_token, carer, task):
    resp = await client.put(
        f"/api/v1/carers/{carer.id}/competencies/{task.id}", json={"level": "GURU"},
        headers=auth_headers(admin_token),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_set_competency_unknown_task_404(client, admin_token, carer):
    resp = await client.put(
        f"/api/v1/carers/{carer.id}/competencies/{uuid.uuid4()}", json={"level": "COMPETENT"},
        headers=auth_headers(admin_token),
    )
    assert resp.status_code == 404


# ── Packages / tasks ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_package_normalises_postcode(client, admin_token):
    resp = await client.post(
        "/api/v1/packages", json={"name": "Mrs Patel", "postcode": " n1 "}, headers=auth_headers(admin_token),
    )
    assert resp.status_code == 201
    assert resp.json()["postcode"] == "N1"


@pytest.mark.asyncio
async def test_full_postcode_rejected(client, admin_token):
    resp = await client.post(
        "/api/v1/packages", json={"name": "Mrs Patel", "postcode": "SW1A 1AA"}, headers=auth_headers(admin_token),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_assign_task_to_package(client, admin_token, package):
    resp = await client.post("/api/v1/tasks", json={"name": "Hoist transfer"}, headers=auth_headers(admin_token))
    assert resp.status_code == 201
    task_id = resp.json()["id"]

    resp = await client.post(f"/api/v1/packages/{package.id}/tasks/{task_id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204
    # assigning twice is harmless
    resp = await client.post(f"/api/v1/packages/{package.id}/tasks/{task_id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204

    resp = await client.get(f"/api/v1/packages/{package.id}/tasks", headers=auth_headers(admin_token))
    assert [t["name"] for t in resp.json()] == ["Hoist transfer", "Medication support"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_assign_and_unassign_carer(client, admin_token, carer, package):
    url = f"/api/v1/packages/{package.id}/carers"
    resp = await client.post(f"{url}/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204
    # assigning twice is harmless
    resp = await client.post(f"{url}/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204

    resp = await client.get(url, headers=auth_headers(admin_token))
    assert [c["name"] for c in resp.json()] == ["Alice Carer"]

    resp = await client.delete(f"{url}/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 204
    resp = await client.get(url, headers=auth_headers(admin_token))
    assert resp.json() == []

    resp = await client.delete(f"{url}/{carer.id}", headers=auth_headers(admin_token))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_assign_unknown_carer_404(client, admin_token, package):
    resp = await client.post(
        f"/api/v1/packages/{package.id}/carers/{uuid.uuid4()}", headers=auth_headers(admin_token),
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Carer not found"
