"""
Grade placeholder synchronization.

For a task, keep exactly one Grade row per student enrolled in the task's
course. Growing is insert-if-absent: the unique (task_id, student_id)
constraint is the concurrency guard, so a duplicate-key rejection means a
concurrent grow already did the work and is skipped. Shrinking removes the
Grade rows and the Submissions hanging off them.

Every function here commits its own writes and is safe to call again with
the same arguments.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.integrity import is_duplicate_key
from app.models.grade import Grade, GradeStatus
from app.models.submission import Submission
from app.models.task import Task
from app.services.enrollment import resolve_enrollment

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    created: int = 0
    deleted: int = 0


def _existing_grade_students(db: Session, task_id: int) -> dict[int, int]:
    """student_id -> course_id for every grade row of the task."""
    rows = db.execute(
        select(Grade.student_id, Grade.course_id).where(Grade.task_id == task_id)
    ).all()
    return {r.student_id: r.course_id for r in rows}


def create_missing_grades(db: Session, task: Task, student_ids) -> int:
    """
    Insert a Pending grade for every student without one on this task.

    Rows go in one at a time so a duplicate-key rejection only skips that
    row. Any other integrity failure is re-raised.
    """
    task_id, course_id = task.id, task.course_id
    wanted = set(student_ids)
    if not wanted:
        return 0

    missing = sorted(wanted - set(_existing_grade_students(db, task_id)))
    created = 0
    for student_id in missing:
        db.add(
            Grade(
                task_id=task_id,
                student_id=student_id,
                course_id=course_id,
                status=GradeStatus.pending,
            )
        )
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not is_duplicate_key(exc):
                raise
            logger.debug(
                "grade placeholder task=%s student=%s already exists, skipping",
                task_id,
                student_id,
            )
            continue
        created += 1

    if created:
        logger.info("created %d grade placeholder(s) for task=%s", created, task_id)
    return created


def delete_grade_rows(db: Session, task_ids, student_ids=None) -> int:
    """
    Delete Grade rows (and their Submissions) for ``task_ids``, optionally
    limited to ``student_ids``. Returns the number of Grade rows removed.
    """
    task_ids = list(task_ids)
    if not task_ids:
        return 0
    if student_ids is not None:
        student_ids = list(student_ids)
        if not student_ids:
            return 0

    grade_stmt = delete(Grade).where(Grade.task_id.in_(task_ids))
    sub_stmt = delete(Submission).where(Submission.task_id.in_(task_ids))
    if student_ids is not None:
        grade_stmt = grade_stmt.where(Grade.student_id.in_(student_ids))
        sub_stmt = sub_stmt.where(Submission.student_id.in_(student_ids))

    # grades first: a leftover submission without a grade is an orphan that
    # reconciliation removes, a grade pointing at a deleted submission is not
    deleted = db.execute(grade_stmt).rowcount or 0
    db.execute(sub_stmt)
    db.commit()
    return deleted


def delete_obsolete_grades(db: Session, task: Task, student_ids) -> int:
    deleted = delete_grade_rows(db, [task.id], student_ids)
    if deleted:
        logger.info("deleted %d obsolete grade(s) for task=%s", deleted, task.id)
    return deleted


def sync_grades(db: Session, task: Task, target_students) -> SyncResult:
    """
    Make the task's grade rows match ``target_students`` exactly.

    Rows still filed under another course (a move that was interrupted) are
    treated as obsolete.
    """
    target = set(target_students)
    existing = _existing_grade_students(db, task.id)
    obsolete = {
        student_id
        for student_id, course_id in existing.items()
        if student_id not in target or course_id != task.course_id
    }

    result = SyncResult()
    result.deleted = delete_obsolete_grades(db, task, obsolete)
    result.created = create_missing_grades(db, task, target)
    return result


def sync_grades_for_task_creation(db: Session, task: Task) -> int:
    return create_missing_grades(db, task, resolve_enrollment(db, task.course_id))


def move_task_to_course(db: Session, task: Task, new_course_id: int) -> SyncResult:
    """
    Repoint a task at another course.

    All of the task's grade rows are removed before any placeholder is
    created for the new course, so no student ever holds two rows for the
    task under different courses.
    """
    result = SyncResult()
    if new_course_id == task.course_id:
        return result

    old_course_id = task.course_id
    result.deleted = delete_grade_rows(db, [task.id])

    task.course_id = new_course_id
    db.commit()

    result.created = sync_grades_for_task_creation(db, task)
    logger.info(
        "task=%s moved course %s -> %s (deleted=%d created=%d)",
        task.id,
        old_course_id,
        new_course_id,
        result.deleted,
        result.created,
    )
    return result
