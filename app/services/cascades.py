"""
Cascades over the membership web.

There is no multi-table transaction. Each cascade is a sequence of named
steps; every step is one idempotent mutation that commits on its own. A
failing step aborts the rest and propagates, and re-running the same
operation (or ``reconcile_course`` / ``reconcile_all``) converges.

Shrink policy, used everywhere: when students may have lost access to
courses, look at every course they still hold grade rows in (Grade.course_id),
re-resolve that course's enrollment against the state *after* the change and
delete only the rows of students it no longer covers. A student reachable
through a second batch keeps everything.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationFailedError
from app.db.integrity import is_duplicate_key
from app.models.actor import Faculty
from app.models.batch import Batch, BatchMembership
from app.models.course import Course, CourseBatch, CourseFaculty
from app.models.grade import Grade
from app.models.student import Student
from app.models.submission import Submission
from app.models.task import Task
from app.services.enrollment import (
    batch_student_ids,
    course_batch_ids,
    resolve_enrollment,
    student_batch_ids,
)
from app.services.grade_sync import (
    SyncResult,
    create_missing_grades,
    delete_grade_rows,
    sync_grades,
)

logger = logging.getLogger(__name__)


@dataclass
class CascadeReport:
    operation: str
    steps: list[str] = field(default_factory=list)
    grades_created: int = 0
    grades_deleted: int = 0


class _Cascade:
    def __init__(self, db: Session, operation: str):
        self.db = db
        self.report = CascadeReport(operation)

    def step(self, name: str, fn, *args):
        try:
            result = fn(*args)
        except Exception:
            self.db.rollback()
            logger.error(
                "cascade %s aborted at step '%s' after %s",
                self.report.operation,
                name,
                self.report.steps,
            )
            raise
        self.report.steps.append(name)
        logger.info("cascade %s: %s", self.report.operation, name)
        return result


# ---------------------------------------------------------------------------
# lookups
# ---------------------------------------------------------------------------


def _get_or_404(db: Session, model, entity_id: int):
    obj = db.get(model, entity_id)
    if obj is None:
        raise NotFoundError(model.__name__, entity_id)
    return obj


def ensure_all_exist(db: Session, model, ids) -> None:
    """Raise NotFoundError for the first id of ``model`` that does not exist."""
    ids = set(ids)
    if not ids:
        return
    found = set(db.execute(select(model.id).where(model.id.in_(ids))).scalars())
    missing = ids - found
    if missing:
        raise NotFoundError(model.__name__, sorted(missing)[0])


def _course_tasks(db: Session, course_id: int) -> list[Task]:
    return list(
        db.execute(select(Task).where(Task.course_id == course_id).order_by(Task.id)).scalars()
    )


def _courses_with_batches(db: Session, batch_ids) -> set[int]:
    batch_ids = list(batch_ids)
    if not batch_ids:
        return set()
    return set(
        db.execute(
            select(CourseBatch.course_id).where(CourseBatch.batch_id.in_(batch_ids))
        ).scalars()
    )


# ---------------------------------------------------------------------------
# grow / shrink primitives
# ---------------------------------------------------------------------------


def _grow(db: Session, course_ids, student_ids) -> int:
    """Placeholders for ``student_ids`` on every task of ``course_ids`` they are enrolled in."""
    student_ids = set(student_ids)
    if not student_ids:
        return 0
    created = 0
    for course_id in sorted(set(course_ids)):
        enrolled = student_ids & resolve_enrollment(db, course_id)
        if not enrolled:
            continue
        for task in _course_tasks(db, course_id):
            created += create_missing_grades(db, task, enrolled)
    return created


def _delete_student_rows_in_course(db: Session, course_id: int, student_ids) -> int:
    task_ids = [t.id for t in _course_tasks(db, course_id)]
    student_ids = list(student_ids)
    deleted = db.execute(
        delete(Grade)
        .where(Grade.student_id.in_(student_ids))
        .where(or_(Grade.course_id == course_id, Grade.task_id.in_(task_ids)))
        .execution_options(synchronize_session=False)
    ).rowcount or 0
    db.execute(
        delete(Submission)
        .where(Submission.student_id.in_(student_ids))
        .where(or_(Submission.course_id == course_id, Submission.task_id.in_(task_ids)))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return deleted


def _shrink(db: Session, student_ids) -> int:
    """Drop grade rows of ``student_ids`` in every course that no longer enrolls them."""
    student_ids = set(student_ids)
    if not student_ids:
        return 0
    course_ids = set(
        db.execute(
            select(Grade.course_id).where(Grade.student_id.in_(student_ids)).distinct()
        ).scalars()
    )
    deleted = 0
    for course_id in sorted(course_ids):
        lost = student_ids - resolve_enrollment(db, course_id)
        if lost:
            deleted += _delete_student_rows_in_course(db, course_id, lost)
    if deleted:
        logger.info("shrink removed %d grade row(s) for %d student(s)", deleted, len(student_ids))
    return deleted


def _insert_links(db: Session, model, rows: list[dict]) -> int:
    """Insert link rows one by one, tolerating ones that already exist."""
    inserted = 0
    for values in rows:
        db.add(model(**values))
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not is_duplicate_key(exc):
                raise
            continue
        inserted += 1
    return inserted


def _delete_where(db: Session, stmt) -> int:
    count = db.execute(stmt).rowcount or 0
    db.commit()
    return count


# ---------------------------------------------------------------------------
# course <-> batch
# ---------------------------------------------------------------------------


def sync_grades_for_course_batch_change(
    db: Session, course_id: int, added_batch_ids=(), removed_batch_ids=()
) -> CascadeReport:
    """Attach/detach batches and bring every task of the course in line."""
    added, removed = set(added_batch_ids), set(removed_batch_ids)
    if added & removed:
        raise ValidationFailedError("A batch cannot be both added and removed")

    _get_or_404(db, Course, course_id)
    ensure_all_exist(db, Batch, added)

    cascade = _Cascade(db, f"course[{course_id}].batches")
    report = cascade.report

    if added:
        cascade.step(
            "attach batches",
            _insert_links,
            db,
            CourseBatch,
            [{"course_id": course_id, "batch_id": b} for b in sorted(added)],
        )
    if removed:
        cascade.step(
            "detach batches",
            _delete_where,
            db,
            delete(CourseBatch).where(
                CourseBatch.course_id == course_id, CourseBatch.batch_id.in_(removed)
            ),
        )
    if added:
        report.grades_created += cascade.step(
            "grow added students", _grow, db, [course_id], batch_student_ids(db, added)
        )
    if removed:
        report.grades_deleted += cascade.step(
            "shrink removed students", _shrink, db, batch_student_ids(db, removed)
        )
    return report


def update_course_batches(db: Session, course_id: int, batch_ids) -> CascadeReport:
    current = course_batch_ids(db, course_id)
    wanted = set(batch_ids)
    return sync_grades_for_course_batch_change(
        db, course_id, added_batch_ids=wanted - current, removed_batch_ids=current - wanted
    )


def update_course_faculty(db: Session, course_id: int, faculty_ids) -> CascadeReport:
    """Faculty list changes only touch back-references; grades are unaffected."""
    course = _get_or_404(db, Course, course_id)
    wanted = set(faculty_ids)
    ensure_all_exist(db, Faculty, wanted)
    current = set(course.faculty_ids)

    cascade = _Cascade(db, f"course[{course_id}].faculty")
    if wanted - current:
        cascade.step(
            "link faculty",
            _insert_links,
            db,
            CourseFaculty,
            [{"course_id": course_id, "faculty_id": f} for f in sorted(wanted - current)],
        )
    if current - wanted:
        cascade.step(
            "unlink faculty",
            _delete_where,
            db,
            delete(CourseFaculty).where(
                CourseFaculty.course_id == course_id,
                CourseFaculty.faculty_id.in_(current - wanted),
            ),
        )
    return cascade.report


# ---------------------------------------------------------------------------
# batch <-> student
# ---------------------------------------------------------------------------


def update_batch_students(db: Session, batch_id: int, student_ids) -> CascadeReport:
    """Replace a batch's student set and resync every course the batch is attached to."""
    _get_or_404(db, Batch, batch_id)
    wanted = set(student_ids)
    ensure_all_exist(db, Student, wanted)

    current = batch_student_ids(db, [batch_id])
    added, removed = wanted - current, current - wanted
    course_ids = _courses_with_batches(db, [batch_id])

    cascade = _Cascade(db, f"batch[{batch_id}].students")
    report = cascade.report
    if added:
        cascade.step(
            "add members",
            _insert_links,
            db,
            BatchMembership,
            [{"batch_id": batch_id, "student_id": s} for s in sorted(added)],
        )
    if removed:
        cascade.step(
            "remove members",
            _delete_where,
            db,
            delete(BatchMembership).where(
                BatchMembership.batch_id == batch_id,
                BatchMembership.student_id.in_(removed),
            ),
        )
    if added:
        report.grades_created += cascade.step("grow added students", _grow, db, course_ids, added)
    if removed:
        report.grades_deleted += cascade.step("shrink removed students", _shrink, db, removed)
    return report


def set_student_batches(db: Session, student_id: int, batch_ids) -> CascadeReport:
    """Same delta as update_batch_students, driven from the student side."""
    _get_or_404(db, Student, student_id)
    wanted = set(batch_ids)
    ensure_all_exist(db, Batch, wanted)

    current = student_batch_ids(db, student_id)
    added, removed = wanted - current, current - wanted

    cascade = _Cascade(db, f"student[{student_id}].batches")
    report = cascade.report
    if added:
        cascade.step(
            "join batches",
            _insert_links,
            db,
            BatchMembership,
            [{"batch_id": b, "student_id": student_id} for b in sorted(added)],
        )
    if removed:
        cascade.step(
            "leave batches",
            _delete_where,
            db,
            delete(BatchMembership).where(
                BatchMembership.student_id == student_id,
                BatchMembership.batch_id.in_(removed),
            ),
        )
    if added:
        report.grades_created += cascade.step(
            "grow", _grow, db, _courses_with_batches(db, added), [student_id]
        )
    if removed:
        report.grades_deleted += cascade.step("shrink", _shrink, db, [student_id])
    return report


# ---------------------------------------------------------------------------
# root deletions
# ---------------------------------------------------------------------------


def cascade_delete_student(db: Session, student_id: int) -> CascadeReport:
    _get_or_404(db, Student, student_id)

    cascade = _Cascade(db, f"student[{student_id}].delete")
    cascade.step(
        "unlink from batches",
        _delete_where,
        db,
        delete(BatchMembership).where(BatchMembership.student_id == student_id),
    )
    cascade.report.grades_deleted += cascade.step(
        "delete grades", _delete_where, db, delete(Grade).where(Grade.student_id == student_id)
    )
    cascade.step(
        "delete submissions",
        _delete_where,
        db,
        delete(Submission).where(Submission.student_id == student_id),
    )
    cascade.step(
        "delete student", _delete_where, db, delete(Student).where(Student.id == student_id)
    )
    return cascade.report


def cascade_delete_batch(db: Session, batch_id: int) -> CascadeReport:
    """
    The batch is detached from its courses first so the shrink no longer
    counts it; memberships are dropped only after the shrink so a retry after
    a crash can still find the batch's students.
    """
    _get_or_404(db, Batch, batch_id)
    members = batch_student_ids(db, [batch_id])

    cascade = _Cascade(db, f"batch[{batch_id}].delete")
    cascade.step(
        "detach from courses",
        _delete_where,
        db,
        delete(CourseBatch).where(CourseBatch.batch_id == batch_id),
    )
    cascade.report.grades_deleted += cascade.step(
        "shrink students who lost enrollment", _shrink, db, members
    )
    cascade.step(
        "unlink students",
        _delete_where,
        db,
        delete(BatchMembership).where(BatchMembership.batch_id == batch_id),
    )
    cascade.step("delete batch", _delete_where, db, delete(Batch).where(Batch.id == batch_id))
    return cascade.report


def cascade_delete_course(db: Session, course_id: int) -> CascadeReport:
    _get_or_404(db, Course, course_id)

    cascade = _Cascade(db, f"course[{course_id}].delete")
    report = cascade.report

    task_ids = [t.id for t in _course_tasks(db, course_id)]
    report.grades_deleted += cascade.step(
        "delete grades and submissions", delete_grade_rows, db, task_ids
    )
    report.grades_deleted += cascade.step(
        "delete grades filed under course",
        _delete_where,
        db,
        delete(Grade).where(Grade.course_id == course_id),
    )
    cascade.step(
        "delete submissions filed under course",
        _delete_where,
        db,
        delete(Submission).where(Submission.course_id == course_id),
    )
    cascade.step("delete tasks", _delete_where, db, delete(Task).where(Task.course_id == course_id))
    cascade.step(
        "unlink faculty",
        _delete_where,
        db,
        delete(CourseFaculty).where(CourseFaculty.course_id == course_id),
    )
    cascade.step(
        "unlink batches",
        _delete_where,
        db,
        delete(CourseBatch).where(CourseBatch.course_id == course_id),
    )
    cascade.step("delete course", _delete_where, db, delete(Course).where(Course.id == course_id))
    return report


def cascade_delete_task(db: Session, task_id: int) -> CascadeReport:
    _get_or_404(db, Task, task_id)

    cascade = _Cascade(db, f"task[{task_id}].delete")
    cascade.report.grades_deleted += cascade.step(
        "delete grades and submissions", delete_grade_rows, db, [task_id]
    )
    cascade.step("delete task", _delete_where, db, delete(Task).where(Task.id == task_id))
    return cascade.report


# ---------------------------------------------------------------------------
# reconciliation
# ---------------------------------------------------------------------------


def _delete_orphan_submissions(db: Session, task_ids=None) -> int:
    """Submissions without a grade row for the same (task, student)."""
    has_grade = (
        select(Grade.id)
        .where(Grade.task_id == Submission.task_id, Grade.student_id == Submission.student_id)
        .exists()
    )
    stmt = delete(Submission).where(~has_grade)
    if task_ids is not None:
        stmt = stmt.where(Submission.task_id.in_(list(task_ids)))
    return _delete_where(db, stmt.execution_options(synchronize_session=False))


def reconcile_course(db: Session, course_id: int) -> SyncResult:
    """Recompute every task of the course from scratch against current enrollment."""
    _get_or_404(db, Course, course_id)
    enrolled = resolve_enrollment(db, course_id)

    total = SyncResult()
    tasks = _course_tasks(db, course_id)
    for task in tasks:
        result = sync_grades(db, task, enrolled)
        total.created += result.created
        total.deleted += result.deleted
    orphans = _delete_orphan_submissions(db, [t.id for t in tasks])

    logger.info(
        "reconciled course=%s tasks=%d created=%d deleted=%d orphan_submissions=%d",
        course_id,
        len(tasks),
        total.created,
        total.deleted,
        orphans,
    )
    return total


def reconcile_all(db: Session) -> SyncResult:
    total = SyncResult()

    task_exists = select(Task.id).where(Task.id == Grade.task_id).exists()
    student_exists = select(Student.id).where(Student.id == Grade.student_id).exists()
    total.deleted += _delete_where(
        db,
        delete(Grade)
        .where(~task_exists | ~student_exists)
        .execution_options(synchronize_session=False),
    )

    for course_id in db.execute(select(Course.id).order_by(Course.id)).scalars().all():
        result = reconcile_course(db, course_id)
        total.created += result.created
        total.deleted += result.deleted

    _delete_orphan_submissions(db)
    return total
