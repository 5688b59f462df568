"""
Project role enforcement and isolation tests.

Verifies that:
- Non-members get 404 for every project-scoped resource (no existence leak)
- Members below the required role get 403
- Owner-only operations are refused to admins
- Removed members lose access immediately
"""

import uuid

import pytest


# ---------------------------------------------------------------------------
# 1. No existence leak
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_outsider_gets_404_for_project_and_children(client, team, create_task):
    project, users = team
    outsider = users["outsider"]
    task = await create_task(project["id"], users["member"])
    pid, tid = project["id"], task["id"]

    for path in (
        f"/api/projects/{pid}",
        f"/api/projects/{pid}/stats",
        f"/api/projects/{pid}/members",
        f"/api/projects/{pid}/tasks",
        f"/api/projects/{pid}/labels",
        f"/api/projects/{pid}/activity",
        f"/api/tasks/{tid}",
        f"/api/tasks/{tid}/comments",
        f"/api/tasks/{tid}/attachments",
    ):
        resp = await client.get(path, headers=outsider.headers)
        assert resp.status_code == 404, f"{path}: {resp.text}"
        assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_missing_and_foreign_project_look_the_same(client, team):
    project, users = team
    outsider = users["outsider"]

    foreign = await client.get(f"/api/projects/{project['id']}", headers=outsider.headers)
    missing = await client.get(f"/api/projects/{uuid.uuid4()}", headers=outsider.headers)

    assert foreign.status_code == missing.status_code == 404
    assert foreign.json()["error"] == missing.json()["error"]


@pytest.mark.asyncio
async def test_outsider_cannot_write(client, team, create_task):
    project, users = team
    outsider = users["outsider"]
    task = await create_task(project["id"], users["member"])

    resp = await client.post(
        f"/api/projects/{project['id']}/tasks", json={"title": "Sneaky"}, headers=outsider.headers
    )
    assert resp.status_code == 404

    resp = await client.put(f"/api/tasks/{task['id']}", json={"title": "Hijacked"}, headers=outsider.headers)
    assert resp.status_code == 404

    resp = await client.delete(f"/api/projects/{project['id']}", headers=outsider.headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unauthenticated_requests_rejected(client, team):
    project, _ = team

    resp = await client.get(f"/api/projects/{project['id']}")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "MISSING_TOKEN"

    resp = await client.get("/api/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"


# ---------------------------------------------------------------------------
# 2. Role matrix
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_viewer_can_read_but_not_write(client, team, create_task):
    project, users = team
    viewer = users["viewer"]
    task = await create_task(project["id"], users["member"])

    resp = await client.get(f"/api/projects/{project['id']}/tasks", headers=viewer.headers)
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 1

    resp = await client.post(
        f"/api/projects/{project['id']}/tasks", json={"title": "Nope"}, headers=viewer.headers
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "INSUFFICIENT_ROLE"

    resp = await client.put(f"/api/tasks/{task['id']}", json={"status": "DONE"}, headers=viewer.headers)
    assert resp.status_code == 403

    resp = await client.post(
        f"/api/tasks/{task['id']}/comments", json={"content": "hi"}, headers=viewer.headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_member_cannot_manage_project(client, team, add_member, register_user):
    project, users = team
    member = users["member"]
    newcomer = await register_user("Nina Newcomer")

    resp = await client.put(f"/api/projects/{project['id']}", json={"name": "Mine"}, headers=member.headers)
    assert resp.status_code == 403

    resp = await add_member(project["id"], member, newcomer)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_update_project_but_not_delete(client, team):
    project, users = team
    admin = users["admin"]

    resp = await client.put(
        f"/api/projects/{project['id']}", json={"description": "Q3 relaunch"}, headers=admin.headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["description"] == "Q3 relaunch"

    resp = await client.delete(f"/api/projects/{project['id']}", headers=admin.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "OWNER_ONLY"


@pytest.mark.asyncio
async def test_role_reported_in_project_detail(client, team):
    project, users = team
    for role in ("owner", "admin", "member", "viewer"):
        resp = await client.get(f"/api/projects/{project['id']}", headers=users[role].headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == role


# ---------------------------------------------------------------------------
# 3. Membership changes take effect immediately
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_removed_member_loses_access(client, team):
    project, users = team
    owner, member = users["owner"], users["member"]

    resp = await client.delete(f"/api/projects/{project['id']}/members/{member.id}", headers=owner.headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/projects/{project['id']}", headers=member.headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_demoted_member_loses_write_access(client, team):
    project, users = team
    owner, member = users["owner"], users["member"]

    resp = await client.put(
        f"/api/projects/{project['id']}/members/{member.id}",
        json={"role": "viewer"},
        headers=owner.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "viewer"

    resp = await client.post(
        f"/api/projects/{project['id']}/tasks", json={"title": "Too late"}, headers=member.headers
    )
    assert resp.status_code == 403
