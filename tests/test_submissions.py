from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.errors import DeadlineExceededError, SubmissionLockedError, ValidationFailedError
from app.core.timeutils import utcnow
from app.models.grade import Grade, GradeStatus
from app.models.submission import SubmissionStatus
from app.services.submissions import (
    SubmissionState,
    submission_state,
    submit_or_update_submission,
)
from tests.helpers import submission_students


def test_submit_and_resubmit_updates_same_row(client, headers, seed_data, make_task):
    task = make_task(seed_data.course)

    r1 = client.post(
        f"/tasks/{task.id}/submissions",
        headers=headers.a,
        json={"content": "first"},
    )
    assert r1.status_code == 201, r1.text
    id1 = r1.json()["id"]
    assert r1.json()["status"] == SubmissionStatus.on_time.value

    r2 = client.post(
        f"/tasks/{task.id}/submissions",
        headers=headers.a,
        json={"content": "second"},
    )
    assert r2.status_code == 200, r2.text
    body2 = r2.json()
    assert body2["id"] == id1
    assert body2["content"] == "second"


def test_submission_links_grade_slot(db, client, headers, seed_data, make_task):
    task = make_task(seed_data.course)

    r = client.post(f"/tasks/{task.id}/submissions", headers=headers.a, json={"content": "x"})
    assert r.status_code == 201, r.text

    submission_id = db.execute(
        select(Grade.submission_id).where(
            Grade.task_id == task.id, Grade.student_id == seed_data.a
        )
    ).scalar_one()
    assert submission_id == r.json()["id"]


def test_submission_after_deadline_is_rejected(client, headers, seed_data, make_task):
    task = make_task(seed_data.course, due_in=timedelta(seconds=-5), publish_date=utcnow() - timedelta(days=2))

    r = client.post(f"/tasks/{task.id}/submissions", headers=headers.a, json={"content": "late"})

    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "Task deadline has passed."


def test_resubmission_after_deadline_is_rejected(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "on time")

    with pytest.raises(DeadlineExceededError):
        submit_or_update_submission(
            db, task.id, seed_data.a, "too late", now=utcnow() + timedelta(days=2)
        )


def test_graded_submission_is_locked(client, headers, seed_data, make_task, db):
    task = make_task(seed_data.course)
    client.post(f"/tasks/{task.id}/submissions", headers=headers.a, json={"content": "v1"})

    grade_id = db.execute(
        select(Grade.id).where(Grade.task_id == task.id, Grade.student_id == seed_data.a)
    ).scalar_one()
    r = client.post(
        f"/tasks/{task.id}/grade",
        headers=headers.faculty,
        json={"grades": [{"grade_id": grade_id, "grade": 80, "feedback": "ok"}]},
    )
    assert r.status_code == 200, r.text

    r = client.post(f"/tasks/{task.id}/submissions", headers=headers.a, json={"content": "v2"})
    assert r.status_code == 400
    assert "already been graded" in r.json()["detail"]


def test_pending_grade_does_not_lock(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "v1")

    result = submit_or_update_submission(db, task.id, seed_data.a, "v2")

    assert result.created is False
    assert result.submission.content == "v2"


def test_locked_error_raised_by_engine(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "v1")
    grade = db.execute(
        select(Grade).where(Grade.task_id == task.id, Grade.student_id == seed_data.a)
    ).scalar_one()
    grade.grade, grade.status = 50, GradeStatus.graded
    db.commit()

    with pytest.raises(SubmissionLockedError):
        submit_or_update_submission(db, task.id, seed_data.a, "v2")


def test_student_outside_course_cannot_submit(client, headers, seed_data, make_task):
    task = make_task(seed_data.course)

    r = client.post(f"/tasks/{task.id}/submissions", headers=headers.c, json={"content": "hi"})

    assert r.status_code == 403
    assert r.json()["detail"] == "Not enrolled in this course"


def test_submit_to_missing_task_is_404(client, headers, seed_data):
    r = client.post("/tasks/999999/submissions", headers=headers.a, json={"content": "hi"})
    assert r.status_code == 404


def test_empty_submission_rejected(db, seed_data, make_task):
    task = make_task(seed_data.course)

    with pytest.raises(ValidationFailedError):
        submit_or_update_submission(db, task.id, seed_data.a, "   ", attachments=[])
    assert submission_students(db, task.id) == set()


def test_attachment_type_is_checked(client, headers, seed_data, make_task):
    task = make_task(seed_data.course)

    bad = client.post(
        f"/tasks/{task.id}/submissions",
        headers=headers.a,
        json={"attachments": [{"file_name": "run.exe", "url": "https://files/run.exe"}]},
    )
    ok = client.post(
        f"/tasks/{task.id}/submissions",
        headers=headers.a,
        json={"attachments": [{"file_name": "report.pdf", "url": "https://files/report.pdf"}]},
    )

    assert bad.status_code == 400
    assert ok.status_code == 201, ok.text
    assert ok.json()["attachments"][0]["file_name"] == "report.pdf"
    assert "uploaded_at" in ok.json()["attachments"][0]


def test_staff_view_lists_every_enrolled_student(client, headers, seed_data, make_task):
    task = make_task(seed_data.course)
    client.post(f"/tasks/{task.id}/submissions", headers=headers.b, json={"content": "done"})

    r = client.get(f"/tasks/{task.id}/submissions", headers=headers.faculty)
    assert r.status_code == 200, r.text

    rows = {row["student_id"]: row for row in r.json()}
    assert set(rows) == {seed_data.a, seed_data.b}
    assert rows[seed_data.a]["status"] == "Not Submitted"
    assert rows[seed_data.a]["submission_id"] is None
    assert rows[seed_data.b]["status"] == "On-Time"


def test_staff_view_requires_teaching_the_course(client, headers, seed_data, make_task):
    task = make_task(seed_data.course)

    assert client.get(f"/tasks/{task.id}/submissions", headers=headers.outsider).status_code == 403
    assert client.get(f"/tasks/{task.id}/submissions", headers=headers.a).status_code == 403
    assert client.get(f"/tasks/{task.id}/submissions", headers=headers.admin).status_code == 200


def test_submission_state_derivation(db, seed_data, make_task):
    task = make_task(seed_data.course)
    grade = db.execute(
        select(Grade).where(Grade.task_id == task.id, Grade.student_id == seed_data.a)
    ).scalar_one()

    assert submission_state(task, grade) == SubmissionState.not_submitted
    assert submission_state(task, grade, now=utcnow() + timedelta(days=3)) == SubmissionState.missed

    submit_or_update_submission(db, task.id, seed_data.a, "x")
    db.refresh(grade)
    assert submission_state(task, grade) == SubmissionState.submitted

    grade.grade, grade.status = 10, GradeStatus.graded
    db.commit()
    assert submission_state(task, grade) == SubmissionState.graded
