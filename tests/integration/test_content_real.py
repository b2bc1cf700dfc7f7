"""Integration tests for content CRUD, referential guards and role gating."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


def _cookie(token: str) -> dict[str, str]:
    return {"cookie": f"session_token={token}"}


@pytest.mark.asyncio
async def test_exams_category_guarded_until_notice_removed(app_factory, user_factory, login) -> None:
    app = app_factory()
    await user_factory("editor@example.edu", "Editor-pass-1", role="editor")
    headers = _cookie(await login("editor@example.edu", "Editor-pass-1", app))

    async with _client(app) as client:
        category = await client.post(
            "/api/admin/notice-categories", headers=headers, json={"name": "Exams"}
        )
        assert category.status_code == 201
        category_id = category.json()["data"]["id"]

        notice = await client.post(
            "/api/admin/notices",
            headers=headers,
            json={
                "category_id": category_id,
                "title": "End-semester timetable",
                "content": "Exams begin on the 3rd.",
                "is_published": True,
            },
        )
        assert notice.status_code == 201
        assert notice.json()["data"]["category"]["name"] == "Exams"
        notice_id = notice.json()["data"]["id"]

        blocked = await client.delete(f"/api/admin/notice-categories/{category_id}", headers=headers)
        removed_notice = await client.delete(f"/api/admin/notices/{notice_id}", headers=headers)
        allowed = await client.delete(f"/api/admin/notice-categories/{category_id}", headers=headers)
        gone = await client.get(f"/api/admin/notice-categories/{category_id}", headers=headers)

    assert blocked.status_code == 400
    assert blocked.json() == {
        "success": False,
        "message": "Cannot delete category with existing notices. Please move or delete notices first.",
    }
    assert removed_notice.status_code == 200
    assert allowed.status_code == 200
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_viewer_denied_editor_operations(app_factory, user_factory, login) -> None:
    app = app_factory()
    await user_factory("viewer@example.edu", "Viewer-pass-1")
    headers = _cookie(await login("viewer@example.edu", "Viewer-pass-1", app))

    async with _client(app) as client:
        listed = await client.get("/api/admin/batches", headers=headers)
        created = await client.post(
            "/api/admin/batches", headers=headers, json={"name": "2024-2028"}
        )

    assert listed.status_code == 200
    assert created.status_code == 403
    assert created.json() == {"success": False, "message": "Insufficient permissions."}


@pytest.mark.asyncio
async def test_batch_section_note_hierarchy(app_factory, user_factory, login) -> None:
    """Parents with children refuse deletion; one notes link per section."""
    app = app_factory()
    await user_factory("admin@example.edu", "Admin-pass-1", role="admin")
    headers = _cookie(await login("admin@example.edu", "Admin-pass-1", app))

    async with _client(app) as client:
        batch = await client.post(
            "/api/admin/batches",
            headers=headers,
            json={"name": "2022-2026", "start_year": 2022, "end_year": 2026},
        )
        batch_id = batch.json()["data"]["id"]
        duplicate_batch = await client.post(
            "/api/admin/batches", headers=headers, json={"name": "2022-2026"}
        )
        section = await client.post(
            "/api/admin/sections", headers=headers, json={"batch_id": batch_id, "name": "A"}
        )
        section_id = section.json()["data"]["id"]
        note = await client.post(
            "/api/admin/notes",
            headers=headers,
            json={"section_id": section_id, "drive_link": "https://drive.example.com/a"},
        )
        second_note = await client.post(
            "/api/admin/notes",
            headers=headers,
            json={"section_id": section_id, "drive_link": "https://drive.example.com/b"},
        )
        bad_parent = await client.post(
            "/api/admin/sections",
            headers=headers,
            json={"batch_id": "00000000-0000-0000-0000-000000000000", "name": "B"},
        )
        delete_batch = await client.delete(f"/api/admin/batches/{batch_id}", headers=headers)
        delete_section = await client.delete(f"/api/admin/sections/{section_id}", headers=headers)
        batch_view = await client.get(f"/api/admin/batches/{batch_id}", headers=headers)

    assert batch.status_code == 201
    assert duplicate_batch.status_code == 400
    assert section.status_code == 201
    assert note.status_code == 201
    assert note.json()["data"]["section"]["batch"]["name"] == "2022-2026"
    assert second_note.status_code == 400
    assert bad_parent.status_code == 400
    assert delete_batch.status_code == 400
    assert delete_section.status_code == 400
    assert [s["name"] for s in batch_view.json()["data"]["sections"]] == ["A"]


@pytest.mark.asyncio
async def test_gallery_category_guard(app_factory, user_factory, login) -> None:
    app = app_factory()
    await user_factory("editor@example.edu", "Editor-pass-1", role="editor")
    headers = _cookie(await login("editor@example.edu", "Editor-pass-1", app))

    async with _client(app) as client:
        category = await client.post(
            "/api/admin/gallery-categories", headers=headers, json={"name": "Fest 2026"}
        )
        category_id = category.json()["data"]["id"]
        image = await client.post(
            "/api/admin/gallery-images",
            headers=headers,
            json={
                "category_id": category_id,
                "title": "Opening night",
                "image_url": "https://images.example.com/opening.jpg",
                "event_date": "2026-02-14",
                "is_featured": True,
            },
        )
        blocked = await client.delete(
            f"/api/admin/gallery-categories/{category_id}", headers=headers
        )

    assert image.status_code == 201
    assert blocked.status_code == 400
    assert blocked.json()["message"].startswith("Cannot delete category with existing images.")
