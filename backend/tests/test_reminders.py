"""
Due-date reminder sweep tests.

Data is created through the API; the sweep runs directly against the
test session with a fixed clock.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from planboard.core.database import commit
from planboard.services.notification_service import NotificationService
from planboard.workers.reminder_tasks import reminder_redis_key, run_due_date_reminders


def iso(dt: datetime) -> str:
    return dt.isoformat()


@pytest.fixture
def now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


@pytest_asyncio.fixture
async def scheduled(client, register_user, create_project, create_task, now):
    """An owner with self-assigned tasks in every reminder state."""
    owner = await register_user("Olivia Owner")
    project = await create_project(owner)
    pid = project["id"]
    tasks = {
        "late": await create_task(pid, owner, "Late", assigneeId=owner.id, dueDate=iso(now - timedelta(hours=2))),
        "soon": await create_task(pid, owner, "Soon", assigneeId=owner.id, dueDate=iso(now + timedelta(hours=3))),
        "later": await create_task(pid, owner, "Later", assigneeId=owner.id, dueDate=iso(now + timedelta(days=3))),
        "done": await create_task(
            pid, owner, "Done", assigneeId=owner.id, status="DONE", dueDate=iso(now - timedelta(hours=1))
        ),
        "unassigned": await create_task(pid, owner, "Nobody", dueDate=iso(now - timedelta(hours=1))),
    }
    return owner, tasks


@pytest.mark.asyncio
async def test_sweep_notifies_overdue_and_due_soon(client, db, redis, outbox, scheduled, now):
    owner, tasks = scheduled

    counts = await run_due_date_reminders(db, redis, now=now)
    await commit(db)
    assert counts == {"TASK_OVERDUE": 1, "TASK_DUE_SOON": 1}

    resp = await client.get("/api/notifications", headers=owner.headers)
    by_type = {n["type"]: n for n in resp.json()["data"]}
    assert set(by_type) == {"TASK_OVERDUE", "TASK_DUE_SOON"}
    assert by_type["TASK_OVERDUE"]["message"] == 'Task "Late" is overdue'
    assert by_type["TASK_OVERDUE"]["relatedId"] == tasks["late"]["id"]
    due = now + timedelta(hours=3)
    assert by_type["TASK_DUE_SOON"]["message"] == f'Task "Soon" is due {due:%Y-%m-%d %H:%M} UTC'

    subjects = sorted(call["subject"] for call in outbox.notification.calls)
    assert subjects == ["A task is due soon", "A task is overdue"]
    assert {call["to_email"] for call in outbox.notification.calls} == {owner.email}


@pytest.mark.asyncio
async def test_sweep_sends_each_reminder_once_per_day(db, redis, outbox, scheduled, now):
    _, tasks = scheduled

    await run_due_date_reminders(db, redis, now=now)
    counts = await run_due_date_reminders(db, redis, now=now)
    assert counts == {"TASK_OVERDUE": 0, "TASK_DUE_SOON": 0}

    day = now.date().isoformat()
    assert await redis.exists(reminder_redis_key(tasks["late"]["id"], "TASK_OVERDUE", day))

    # A day later the soon task has slipped past due as well
    counts = await run_due_date_reminders(db, redis, now=now + timedelta(days=1))
    assert counts == {"TASK_OVERDUE": 2, "TASK_DUE_SOON": 0}

    await commit(db)
    assert len(outbox.notification.calls) == 4


@pytest.mark.asyncio
async def test_failed_notification_releases_dedupe_key(db, redis, scheduled, now, monkeypatch):
    _, tasks = scheduled

    async def refuse(self, *args, **kwargs):
        return None

    monkeypatch.setattr(NotificationService, "notify", refuse)
    counts = await run_due_date_reminders(db, redis, now=now)
    assert counts == {"TASK_OVERDUE": 0, "TASK_DUE_SOON": 0}

    day = now.date().isoformat()
    assert not await redis.exists(reminder_redis_key(tasks["late"]["id"], "TASK_OVERDUE", day))

    monkeypatch.undo()
    counts = await run_due_date_reminders(db, redis, now=now)
    assert counts == {"TASK_OVERDUE": 1, "TASK_DUE_SOON": 1}
