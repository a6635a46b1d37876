"""Tests for the content API (13 endpoints per kind) and the approval workflow."""
import uuid
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from app.models.content import Announcement, Program
from app.models.organization import Organization
from app.models.user import AppUser
from app.repositories.content_repository import announcement_repository
from app.schemas.content import AnnouncementCreate, AnnouncementUpdate
from app.services import content_service
from app.services.content_service import EDIT_CONFLICT_MESSAGE
from tests.conftest import _actor, _create_organization


async def _create_announcement(
    db: AsyncSession, org: Organization, creator: AppUser | None = None,
    approved: bool = False, archived: bool = False, title: str | None = None,
) -> Announcement:
    record = Announcement(
        organization_id=org.id,
        title=title or f"Announcement {uuid.uuid4().hex[:6]}",
        content="Summer camp registration opens next week.",
        published_date=date(2026, 6, 1),
        approved=approved,
        archived=archived,
        created_by=creator.id if creator else None,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


# --- POST /api/v1/announcements ---

async def test_org_create_is_pending(client: AsyncClient, org_a_auth, org_a):
    _, headers = org_a_auth
    resp = await client.post(
        "/api/v1/announcements", json={"title": "Open day", "content": "Come visit"}, headers=headers,
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["approved"] is False
    assert data["archived"] is False
    assert data["organization_id"] == str(org_a.id)


async def test_admin_create_is_auto_approved(client: AsyncClient, admin_auth, org_a):
    _, headers = admin_auth
    resp = await client.post(
        "/api/v1/announcements",
        json={"organization_id": str(org_a.id), "title": "Welcome", "content": "Hello"},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["approved"] is True


async def test_admin_create_requires_organization(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    resp = await client.post("/api/v1/announcements", json={"title": "x", "content": "y"}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["type"] == "validation-error"


async def test_org_cannot_create_for_other_org(client: AsyncClient, org_a_auth, org_b):
    _, headers = org_a_auth
    resp = await client.post(
        "/api/v1/announcements",
        json={"organization_id": str(org_b.id), "title": "x", "content": "y"},
        headers=headers,
    )
    assert resp.status_code == 403


async def test_create_requires_auth(client: AsyncClient):
    resp = await client.post("/api/v1/announcements", json={"title": "x", "content": "y"})
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


async def test_create_program_rejects_inverted_dates(client: AsyncClient, org_a_auth):
    _, headers = org_a_auth
    resp = await client.post(
        "/api/v1/programs",
        json={
            "title": "Hiking",
            "description": "Weekend hike",
            "start_date": "2026-07-10",
            "end_date": "2026-07-01",
        },
        headers=headers,
    )
    assert resp.status_code == 422


# --- approval workflow ---

async def test_approval_locks_editing(client: AsyncClient, admin_auth, org_a_auth, org_b_auth):
    _, admin_headers = admin_auth
    _, a_headers = org_a_auth
    _, b_headers = org_b_auth

    resp = await client.post(
        "/api/v1/announcements", json={"title": "Draft", "content": "First version"}, headers=a_headers,
    )
    record_id = resp.json()["data"]["id"]

    # Pending: the owner may edit, the other organization cannot see it
    resp = await client.put(f"/api/v1/announcements/{record_id}", json={"title": "Edited"}, headers=a_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Edited"
    resp = await client.get(f"/api/v1/announcements/{record_id}", headers=b_headers)
    assert resp.status_code == 404

    resp = await client.post(f"/api/v1/announcements/{record_id}/approve", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["approved"] is True

    resp = await client.put(f"/api/v1/announcements/{record_id}", json={"title": "Too late"}, headers=a_headers)
    assert resp.status_code == 409
    assert resp.json()["detail"] == EDIT_CONFLICT_MESSAGE

    # Approved: visible to the other organization, still not editable by it
    resp = await client.get(f"/api/v1/announcements/{record_id}", headers=b_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Edited"

    resp = await client.put(f"/api/v1/announcements/{record_id}", json={"title": "Hijack"}, headers=b_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/announcements/{record_id}", headers=b_headers)
    assert resp.status_code == 403

    resp = await client.get(f"/api/v1/announcements/{record_id}/permissions", headers=b_headers)
    perms = resp.json()["data"]
    assert perms["can_view"] is True
    assert perms["can_edit"] is False
    assert perms["can_delete"] is False


async def test_admin_edits_approved_content(client: AsyncClient, admin_auth, db_session, org_a):
    _, headers = admin_auth
    record = await _create_announcement(db_session, org_a, approved=True)
    resp = await client.put(
        f"/api/v1/announcements/{record.id}", json={"content": "Corrected"}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["content"] == "Corrected"
    assert resp.json()["data"]["approved"] is True


async def test_update_cannot_touch_protected_columns(client: AsyncClient, org_a_auth, db_session, org_a, org_b):
    _, headers = org_a_auth
    record = await _create_announcement(db_session, org_a)
    resp = await client.put(
        f"/api/v1/announcements/{record.id}",
        json={"title": "Still mine", "organization_id": str(org_b.id), "approved": True},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["organization_id"] == str(org_a.id)
    assert data["approved"] is False


async def test_reject_and_only_admin_approves(client: AsyncClient, admin_auth, org_a_auth, db_session, org_a):
    _, admin_headers = admin_auth
    _, a_headers = org_a_auth
    record = await _create_announcement(db_session, org_a, approved=True)

    resp = await client.post(f"/api/v1/announcements/{record.id}/approve", headers=a_headers)
    assert resp.status_code == 403

    resp = await client.post(f"/api/v1/announcements/{record.id}/reject", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["approved"] is False


async def test_approve_missing_record(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    resp = await client.post(f"/api/v1/announcements/{uuid.uuid4()}/approve", headers=headers)
    assert resp.status_code == 404


# --- archive / restore / delete ---

async def test_archive_and_restore(client: AsyncClient, org_a_auth, db_session, org_a):
    _, headers = org_a_auth
    record = await _create_announcement(db_session, org_a, approved=True)

    resp = await client.post(f"/api/v1/announcements/{record.id}/archive", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["archived"] is True
    assert resp.json()["data"]["approved"] is True

    resp = await client.get(f"/api/v1/announcements/{record.id}")
    assert resp.status_code == 404

    resp = await client.post(f"/api/v1/announcements/{record.id}/restore", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["archived"] is False

    resp = await client.get(f"/api/v1/announcements/{record.id}")
    assert resp.status_code == 200


async def test_archive_other_org_content(client: AsyncClient, org_b_auth, db_session, org_a):
    _, headers = org_b_auth
    pending = await _create_announcement(db_session, org_a)
    approved = await _create_announcement(db_session, org_a, approved=True)

    resp = await client.post(f"/api/v1/announcements/{pending.id}/archive", headers=headers)
    assert resp.status_code == 404
    resp = await client.post(f"/api/v1/announcements/{approved.id}/archive", headers=headers)
    assert resp.status_code == 403


async def test_hard_delete_requires_archived(client: AsyncClient, admin_auth, db_session, org_a):
    _, headers = admin_auth
    record = await _create_announcement(db_session, org_a, approved=True)

    resp = await client.delete(f"/api/v1/announcements/{record.id}", headers=headers)
    assert resp.status_code == 409

    await client.post(f"/api/v1/announcements/{record.id}/archive", headers=headers)
    resp = await client.delete(f"/api/v1/announcements/{record.id}", headers=headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/v1/announcements/{record.id}", headers=headers)
    assert resp.status_code == 404


async def test_org_cannot_hard_delete_own_content(client: AsyncClient, org_a_auth, db_session, org_a):
    _, headers = org_a_auth
    record = await _create_announcement(db_session, org_a, archived=True)
    resp = await client.delete(f"/api/v1/announcements/{record.id}", headers=headers)
    assert resp.status_code == 403


# --- listing ---

async def test_listing_visibility(client: AsyncClient, admin_auth, org_a_auth, org_b_auth, db_session, org_a, org_b):
    _, admin_headers = admin_auth
    _, a_headers = org_a_auth
    _, b_headers = org_b_auth
    a_pending = await _create_announcement(db_session, org_a, title="A pending")
    a_approved = await _create_announcement(db_session, org_a, approved=True, title="A approved")
    await _create_announcement(db_session, org_a, approved=True, archived=True, title="A archived")
    b_approved = await _create_announcement(db_session, org_b, approved=True, title="B approved")
    b_pending = await _create_announcement(db_session, org_b, title="B pending")

    def ids(resp):
        return {row["id"] for row in resp.json()["data"]}

    anon = await client.get("/api/v1/announcements")
    assert ids(anon) == {str(a_approved.id), str(b_approved.id)}

    mine = await client.get("/api/v1/announcements", headers=a_headers)
    assert ids(mine) == {str(a_pending.id), str(a_approved.id)}

    everyone = await client.get("/api/v1/announcements?scope=all", headers=a_headers)
    assert ids(everyone) == {str(a_pending.id), str(a_approved.id), str(b_approved.id)}
    assert str(b_pending.id) not in ids(everyone)

    admin = await client.get("/api/v1/announcements", headers=admin_headers)
    assert admin.json()["pagination"]["total"] == 4

    admin_all = await client.get("/api/v1/announcements?include_archived=true", headers=admin_headers)
    assert admin_all.json()["pagination"]["total"] == 5

    pending_only = await client.get(
        f"/api/v1/announcements?approved=false&organization_id={org_b.id}", headers=admin_headers,
    )
    assert ids(pending_only) == {str(b_pending.id)}


async def test_listing_pagination(client: AsyncClient, db_session, org_a):
    for _ in range(3):
        await _create_announcement(db_session, org_a, approved=True)
    resp = await client.get("/api/v1/announcements?page=1&per_page=2")
    body = resp.json()
    assert len(body["data"]) == 2
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["has_next"] is True


# --- batch operations and pending count ---

async def test_batch_approve(client: AsyncClient, admin_auth, org_a_auth, db_session, org_a):
    _, admin_headers = admin_auth
    _, a_headers = org_a_auth
    records = [await _create_announcement(db_session, org_a) for _ in range(3)]
    ids = [str(r.id) for r in records]

    resp = await client.post("/api/v1/announcements/batch/approve", json={"ids": ids}, headers=a_headers)
    assert resp.status_code == 403

    resp = await client.get("/api/v1/announcements/pending-count", headers=admin_headers)
    assert resp.json()["data"]["pending"] == 3

    resp = await client.post("/api/v1/announcements/batch/approve", json={"ids": ids}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["affected"] == 3

    resp = await client.get("/api/v1/announcements/pending-count", headers=admin_headers)
    assert resp.json()["data"]["pending"] == 0


async def test_batch_archive_is_scoped_to_own_org(client: AsyncClient, org_a_auth, db_session, org_a, org_b):
    _, headers = org_a_auth
    mine = await _create_announcement(db_session, org_a)
    theirs = await _create_announcement(db_session, org_b, approved=True)

    resp = await client.post(
        "/api/v1/announcements/batch/archive", json={"ids": [str(mine.id), str(theirs.id)]}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["affected"] == 1

    resp = await client.get(f"/api/v1/announcements/{theirs.id}")
    assert resp.status_code == 200


async def test_batch_rejects_empty_ids(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    resp = await client.post("/api/v1/announcements/batch/approve", json={"ids": []}, headers=headers)
    assert resp.status_code == 422


async def test_pending_count_for_org_is_own_only(client: AsyncClient, org_a_auth, db_session, org_a, org_b):
    _, headers = org_a_auth
    await _create_announcement(db_session, org_a)
    await _create_announcement(db_session, org_b)
    resp = await client.get(f"/api/v1/announcements/pending-count?organization_id={org_b.id}", headers=headers)
    assert resp.json()["data"]["pending"] == 1


# --- other content kinds share the router ---

async def test_carousel_items_ordered_by_display_order(client: AsyncClient, admin_auth, org_a):
    _, headers = admin_auth
    for order in (2, 0, 1):
        await client.post(
            "/api/v1/carousel-items",
            json={
                "organization_id": str(org_a.id),
                "title": f"Slide {order}",
                "image_url": "http://test/storage/organization-images/x.png",
                "display_order": order,
            },
            headers=headers,
        )
    resp = await client.get("/api/v1/carousel-items")
    assert [row["display_order"] for row in resp.json()["data"]] == [0, 1, 2]


async def test_program_update_keeps_date_check(client: AsyncClient, org_a_auth, db_session, org_a):
    _, headers = org_a_auth
    program = Program(
        organization_id=org_a.id, title="Camp", description="Summer camp",
        start_date=date(2026, 7, 1), end_date=date(2026, 7, 5),
    )
    db_session.add(program)
    await db_session.commit()

    resp = await client.put(f"/api/v1/programs/{program.id}", json={"location": "Lakeside"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["location"] == "Lakeside"
    assert resp.json()["data"]["end_date"] == "2026-07-05"


# --- service level: conditional writes ---

async def test_update_after_concurrent_approval_conflicts(db_session, admin_auth, org_a_auth, org_a):
    admin, _ = admin_auth
    member, _ = org_a_auth
    record = await _create_announcement(db_session, org_a)

    check = await content_service.check_permissions(db_session, announcement_repository, _actor(member), record.id)
    assert check.can_edit

    # An administrator approves between the check and the write
    await content_service.approve_content(db_session, announcement_repository, _actor(admin), record.id)
    await db_session.commit()

    with pytest.raises(ConflictError):
        await content_service.update_content(
            db_session, announcement_repository, _actor(member), record.id, AnnouncementUpdate(title="Stale"),
        )


async def test_update_missing_record_is_not_found(db_session, org_a_auth):
    member, _ = org_a_auth
    with pytest.raises(NotFoundError):
        await content_service.update_content(
            db_session, announcement_repository, _actor(member), uuid.uuid4(), AnnouncementUpdate(title="x"),
        )


async def test_batch_approve_requires_admin(db_session, org_a_auth, org_a):
    member, _ = org_a_auth
    record = await _create_announcement(db_session, org_a)
    with pytest.raises(PermissionDeniedError):
        await content_service.batch_approve(db_session, announcement_repository, _actor(member), [record.id])


async def test_create_for_archived_organization(db_session, admin_auth):
    admin, _ = admin_auth
    archived_org = await _create_organization(db_session, archived=True)
    with pytest.raises(NotFoundError):
        await content_service.create_content(
            db_session, announcement_repository, _actor(admin),
            AnnouncementCreate(organization_id=archived_org.id, title="x", content="y"),
        )
