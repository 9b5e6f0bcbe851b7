from datetime import datetime, timedelta, timezone

import pytest

from app.models.task import TaskStatus, task_status

PUBLISH = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
DUE = datetime(2026, 3, 8, 23, 59, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "now, expected",
    [
        (PUBLISH - timedelta(seconds=1), TaskStatus.upcoming),
        (PUBLISH, TaskStatus.active),
        (DUE, TaskStatus.active),
        (DUE + timedelta(seconds=1), TaskStatus.completed),
    ],
)
def test_status_boundaries(now, expected):
    assert task_status(now, PUBLISH, DUE) == expected


def test_naive_datetimes_are_treated_as_utc():
    # what SQLite hands back
    naive_publish = PUBLISH.replace(tzinfo=None)
    naive_due = DUE.replace(tzinfo=None)

    assert task_status(PUBLISH + timedelta(days=1), naive_publish, naive_due) == TaskStatus.active


def test_status_is_derived_on_the_model(db, seed_data, make_task):
    task = make_task(seed_data.course, due_in=timedelta(days=2))
    assert task.status == TaskStatus.active

    task.due_date = task.publish_date
    db.commit()
    db.refresh(task)
    assert task.status == TaskStatus.completed
