from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.core.errors import NotFoundError, ValidationFailedError
from app.models.batch import Batch, BatchMembership
from app.models.course import Course, CourseBatch
from app.models.grade import Grade
from app.models.student import Student
from app.models.submission import Submission
from app.models.task import Task
from app.services.cascades import (
    cascade_delete_batch,
    cascade_delete_course,
    cascade_delete_student,
    cascade_delete_task,
    reconcile_all,
    reconcile_course,
    set_student_batches,
    sync_grades_for_course_batch_change,
    update_batch_students,
    update_course_batches,
)
from app.services.enrollment import resolve_enrollment
from app.services.submissions import submit_or_update_submission
from tests.helpers import grade_students, submission_students


def test_batch_swap_scenario(db, seed_data, make_task):
    """C has B1 {A, B}; attach B2 {C}; detach B1; delete C."""
    task = make_task(seed_data.course)
    assert grade_students(db, task.id) == {seed_data.a, seed_data.b}

    sync_grades_for_course_batch_change(db, seed_data.course, added_batch_ids=[seed_data.b2])
    assert grade_students(db, task.id) == {seed_data.a, seed_data.b, seed_data.c}

    submit_or_update_submission(db, task.id, seed_data.c, "my work")

    sync_grades_for_course_batch_change(db, seed_data.course, removed_batch_ids=[seed_data.b1])
    assert grade_students(db, task.id) == {seed_data.c}

    cascade_delete_course(db, seed_data.course)
    assert db.get(Task, task.id) is None
    assert grade_students(db, task.id) == set()
    assert submission_students(db, task.id) == set()
    assert db.execute(select(CourseBatch)).first() is None


def test_adding_and_removing_same_batch_is_rejected(db, seed_data):
    with pytest.raises(ValidationFailedError):
        sync_grades_for_course_batch_change(
            db, seed_data.course, added_batch_ids=[seed_data.b2], removed_batch_ids=[seed_data.b2]
        )


def test_unknown_batch_rejected_before_any_change(db, seed_data, make_task):
    task = make_task(seed_data.course)

    with pytest.raises(NotFoundError):
        update_course_batches(db, seed_data.course, [seed_data.b1, 999999])

    assert grade_students(db, task.id) == {seed_data.a, seed_data.b}


def test_detaching_batch_keeps_students_reachable_through_another(db, seed_data, make_task):
    # A is also in B2, so B2 still covers A after B1 goes
    db.add(BatchMembership(batch_id=seed_data.b2, student_id=seed_data.a))
    db.commit()
    update_course_batches(db, seed_data.course, [seed_data.b1, seed_data.b2])
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "kept")

    report = update_course_batches(db, seed_data.course, [seed_data.b2])

    assert report.grades_deleted == 1
    assert grade_students(db, task.id) == {seed_data.a, seed_data.c}
    assert submission_students(db, task.id) == {seed_data.a}


def test_removing_student_from_batch_shrinks_only_lost_courses(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.b, "will vanish")

    report = update_batch_students(db, seed_data.b1, [seed_data.a])

    assert report.grades_deleted == 1
    assert grade_students(db, task.id) == {seed_data.a}
    assert submission_students(db, task.id) == set()


def test_adding_student_to_attached_batch_grows(db, seed_data, make_task):
    task = make_task(seed_data.course)

    report = update_batch_students(db, seed_data.b1, [seed_data.a, seed_data.b, seed_data.c])

    assert report.grades_created == 1
    assert grade_students(db, task.id) == {seed_data.a, seed_data.b, seed_data.c}


def test_set_student_batches_moves_student_between_courses(db, seed_data, make_task):
    update_course_batches(db, seed_data.course, [seed_data.b1])
    task = make_task(seed_data.course)

    set_student_batches(db, seed_data.c, [seed_data.b1])
    assert seed_data.c in grade_students(db, task.id)

    set_student_batches(db, seed_data.c, [seed_data.b2])
    assert seed_data.c not in grade_students(db, task.id)


def test_delete_student_removes_everything_they_own(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "gone soon")

    cascade_delete_student(db, seed_data.a)

    assert db.get(Student, seed_data.a) is None
    assert grade_students(db, task.id) == {seed_data.b}
    assert submission_students(db, task.id) == set()
    assert db.execute(
        select(BatchMembership).where(BatchMembership.student_id == seed_data.a)
    ).first() is None


def test_delete_batch_shrinks_students_it_covered(db, seed_data, make_task):
    task = make_task(seed_data.course)

    report = cascade_delete_batch(db, seed_data.b1)

    assert report.grades_deleted == 2
    assert db.get(Batch, seed_data.b1) is None
    assert grade_students(db, task.id) == set()
    assert resolve_enrollment(db, seed_data.course) == set()


def test_delete_batch_keeps_students_covered_by_another_batch(db, seed_data, make_task):
    db.add(BatchMembership(batch_id=seed_data.b2, student_id=seed_data.b))
    db.commit()
    update_course_batches(db, seed_data.course, [seed_data.b1, seed_data.b2])
    task = make_task(seed_data.course)

    cascade_delete_batch(db, seed_data.b1)

    assert grade_students(db, task.id) == {seed_data.b, seed_data.c}


def test_delete_batch_retry_after_crash_converges(db, seed_data, make_task):
    task = make_task(seed_data.course)

    with patch("app.services.cascades._shrink", side_effect=RuntimeError("db went away")):
        with pytest.raises(RuntimeError):
            cascade_delete_batch(db, seed_data.b1)

    # the batch was detached, its grade rows are still there
    assert db.get(Batch, seed_data.b1) is not None
    assert grade_students(db, task.id) == {seed_data.a, seed_data.b}

    cascade_delete_batch(db, seed_data.b1)

    assert db.get(Batch, seed_data.b1) is None
    assert grade_students(db, task.id) == set()


def test_delete_task_removes_grades_and_submissions(db, seed_data, make_task):
    task = make_task(seed_data.course)
    keep = make_task(seed_data.course, title="HW2")
    submit_or_update_submission(db, task.id, seed_data.a, "answer")

    cascade_delete_task(db, task.id)

    assert db.get(Task, task.id) is None
    assert grade_students(db, task.id) == set()
    assert submission_students(db, task.id) == set()
    assert grade_students(db, keep.id) == {seed_data.a, seed_data.b}


def test_delete_missing_root_raises_not_found(db, seed_data):
    with pytest.raises(NotFoundError):
        cascade_delete_course(db, 999999)
    with pytest.raises(NotFoundError):
        cascade_delete_student(db, 999999)


def test_reconcile_course_repairs_drift(db, seed_data, make_task):
    task = make_task(seed_data.course)

    # drift: B2 attached behind the engine's back, A's slot lost
    db.add(CourseBatch(course_id=seed_data.course, batch_id=seed_data.b2))
    db.query(Grade).filter(Grade.task_id == task.id, Grade.student_id == seed_data.a).delete()
    db.commit()

    result = reconcile_course(db, seed_data.course)

    assert result.created == 2
    assert grade_students(db, task.id) == {seed_data.a, seed_data.b, seed_data.c}

    again = reconcile_course(db, seed_data.course)
    assert (again.created, again.deleted) == (0, 0)


def test_reconcile_removes_orphan_submissions(db, seed_data, make_task):
    task = make_task(seed_data.course)
    submit_or_update_submission(db, task.id, seed_data.a, "orphaned")

    # a crash between the grade delete and the submission delete leaves this behind
    db.query(Grade).filter(Grade.task_id == task.id, Grade.student_id == seed_data.a).delete()
    db.query(BatchMembership).filter(BatchMembership.student_id == seed_data.a).delete()
    db.commit()

    reconcile_course(db, seed_data.course)

    assert submission_students(db, task.id) == set()
    assert grade_students(db, task.id) == {seed_data.b}


def test_reconcile_all_drops_rows_pointing_at_missing_parents(db, seed_data, make_task):
    task = make_task(seed_data.course)
    db.query(Student).filter(Student.id == seed_data.b).delete()
    db.query(BatchMembership).filter(BatchMembership.student_id == seed_data.b).delete()
    db.commit()

    reconcile_all(db)

    assert grade_students(db, task.id) == {seed_data.a}
    assert db.execute(select(Submission)).first() is None
    assert db.get(Course, seed_data.course) is not None
