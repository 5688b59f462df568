"""
Labels, comments and attachments.

Verifies that:
- Viewers can read labels but only members manage them
- Comments are editable by their author only, deletable by author or admin
- Attachments are deletable by their uploader or an admin
- Comment authors notify the task's assignee and creator, never themselves
"""

import pytest


def attachment_body(name: str = "brief.pdf", size: int = 2048) -> dict:
    return {
        "fileName": name,
        "fileUrl": f"https://files.example.com/{name}",
        "fileType": "application/pdf",
        "fileSize": size,
    }


# ---------------------------------------------------------------------------
# 1. Labels
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_label_permissions_and_task_count(client, team, create_task):
    project, users = team
    member, viewer = users["member"], users["viewer"]
    labels_url = f"/api/projects/{project['id']}/labels"

    resp = await client.post(labels_url, json={"name": "bug"}, headers=viewer.headers)
    assert resp.status_code == 403

    resp = await client.post(labels_url, json={"name": "bug"}, headers=member.headers)
    assert resp.status_code == 201
    label = resp.json()["data"]
    assert label["color"] == "#6366f1"

    await create_task(project["id"], member, labelIds=[label["id"]])

    resp = await client.get(labels_url, headers=viewer.headers)
    assert resp.status_code == 200
    assert [(lb["name"], lb["taskCount"]) for lb in resp.json()["data"]] == [("bug", 1)]


@pytest.mark.asyncio
async def test_label_color_must_be_hex(client, team):
    project, users = team
    resp = await client.post(
        f"/api/projects/{project['id']}/labels",
        json={"name": "bug", "color": "red"},
        headers=users["member"].headers,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_deleting_label_detaches_it(client, team, create_task):
    project, users = team
    member = users["member"]
    resp = await client.post(f"/api/projects/{project['id']}/labels", json={"name": "tmp"}, headers=member.headers)
    label = resp.json()["data"]
    task = await create_task(project["id"], member, labelIds=[label["id"]])

    resp = await client.put(f"/api/labels/{label['id']}", json={"color": "#00ff00"}, headers=member.headers)
    assert resp.json()["data"]["color"] == "#00ff00"

    resp = await client.delete(f"/api/labels/{label['id']}", headers=member.headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/tasks/{task['id']}", headers=member.headers)
    assert resp.json()["data"]["labels"] == []


# ---------------------------------------------------------------------------
# 2. Comments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_edit_is_author_only(client, team, create_task):
    project, users = team
    member, admin = users["member"], users["admin"]
    task = await create_task(project["id"], member)

    resp = await client.post(f"/api/tasks/{task['id']}/comments", json={"content": "Looks good"}, headers=member.headers)
    assert resp.status_code == 201
    comment = resp.json()["data"]
    assert comment["isEdited"] is False

    resp = await client.put(f"/api/comments/{comment['id']}", json={"content": "Hijack"}, headers=admin.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "NOT_COMMENT_AUTHOR"

    resp = await client.put(f"/api/comments/{comment['id']}", json={"content": "Looks great"}, headers=member.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["content"] == "Looks great"
    assert resp.json()["data"]["isEdited"] is True


@pytest.mark.asyncio
async def test_comment_delete_by_author_or_admin(client, team, create_task, add_member, register_user):
    project, users = team
    member, admin = users["member"], users["admin"]
    other = await register_user("Otto Other")
    await add_member(project["id"], users["owner"], other)
    task = await create_task(project["id"], member)

    first = (await client.post(f"/api/tasks/{task['id']}/comments", json={"content": "a"}, headers=member.headers)).json()["data"]
    second = (await client.post(f"/api/tasks/{task['id']}/comments", json={"content": "b"}, headers=member.headers)).json()["data"]

    resp = await client.delete(f"/api/comments/{first['id']}", headers=other.headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/comments/{first['id']}", headers=admin.headers)
    assert resp.status_code == 200
    resp = await client.delete(f"/api/comments/{second['id']}", headers=member.headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/tasks/{task['id']}/comments", headers=member.headers)
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_comments_listed_oldest_first(client, team, create_task):
    project, users = team
    member = users["member"]
    task = await create_task(project["id"], member)
    for text in ("first", "second", "third"):
        await client.post(f"/api/tasks/{task['id']}/comments", json={"content": text}, headers=member.headers)

    resp = await client.get(
        f"/api/tasks/{task['id']}/comments", params={"limit": 2}, headers=users["viewer"].headers
    )
    body = resp.json()
    assert [c["content"] for c in body["data"]] == ["first", "second"]
    assert body["pagination"]["hasNext"] is True


@pytest.mark.asyncio
async def test_comment_notifies_assignee_and_creator(client, team, create_task, inbox, sink):
    project, users = team
    owner, member, admin = users["owner"], users["member"], users["admin"]
    task = await create_task(project["id"], owner, "Budget", assigneeId=member.id)

    resp = await client.post(f"/api/tasks/{task['id']}/comments", json={"content": "Ping"}, headers=admin.headers)
    assert resp.status_code == 201

    for user in (owner, member):
        assert "COMMENT_ADDED" in [n["type"] for n in await inbox(user, read="false")]

    assert await inbox(admin) == []

    assert f"projects/{project['id']}/tasks/{task['id']}/comments" in sink.paths()


@pytest.mark.asyncio
async def test_comment_activity_actions(client, team, create_task):
    project, users = team
    member = users["member"]
    task = await create_task(project["id"], member)

    comment = (await client.post(f"/api/tasks/{task['id']}/comments", json={"content": "x"}, headers=member.headers)).json()["data"]
    await client.put(f"/api/comments/{comment['id']}", json={"content": "y"}, headers=member.headers)
    await client.delete(f"/api/comments/{comment['id']}", headers=member.headers)

    resp = await client.get(
        f"/api/projects/{project['id']}/activity", params={"taskId": task["id"]}, headers=member.headers
    )
    actions = [e["action"] for e in resp.json()["data"]]
    assert actions == ["COMMENT_DELETED", "COMMENT_UPDATED", "COMMENT_ADDED", "CREATED"]


# ---------------------------------------------------------------------------
# 3. Attachments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_attachment_lifecycle(client, team, create_task):
    project, users = team
    member, viewer = users["member"], users["viewer"]
    task = await create_task(project["id"], member)
    url = f"/api/tasks/{task['id']}/attachments"

    resp = await client.post(url, json=attachment_body(), headers=viewer.headers)
    assert resp.status_code == 403

    resp = await client.post(url, json=attachment_body(), headers=member.headers)
    assert resp.status_code == 201
    attachment = resp.json()["data"]
    assert attachment["uploadedBy"] == member.id
    assert attachment["uploader"]["id"] == member.id

    resp = await client.get(url, headers=viewer.headers)
    assert [a["fileName"] for a in resp.json()["data"]] == ["brief.pdf"]

    resp = await client.get(f"/api/tasks/{task['id']}", headers=viewer.headers)
    assert resp.json()["data"]["counts"]["attachments"] == 1


@pytest.mark.asyncio
async def test_attachment_size_limit(client, team, create_task):
    project, users = team
    task = await create_task(project["id"], users["member"])
    resp = await client.post(
        f"/api/tasks/{task['id']}/attachments",
        json=attachment_body(size=10 * 1024 * 1024 + 1),
        headers=users["member"].headers,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_attachment_delete_by_uploader_or_admin(client, team, create_task, add_member, register_user):
    project, users = team
    member, admin = users["member"], users["admin"]
    other = await register_user("Otto Other")
    await add_member(project["id"], users["owner"], other)
    task = await create_task(project["id"], member)
    url = f"/api/tasks/{task['id']}/attachments"

    first = (await client.post(url, json=attachment_body("a.pdf"), headers=member.headers)).json()["data"]
    second = (await client.post(url, json=attachment_body("b.pdf"), headers=member.headers)).json()["data"]

    resp = await client.delete(f"/api/attachments/{first['id']}", headers=other.headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "NOT_ATTACHMENT_OWNER"

    resp = await client.delete(f"/api/attachments/{first['id']}", headers=admin.headers)
    assert resp.status_code == 200
    resp = await client.delete(f"/api/attachments/{second['id']}", headers=member.headers)
    assert resp.status_code == 200

    resp = await client.delete(f"/api/attachments/{second['id']}", headers=member.headers)
    assert resp.status_code == 404
