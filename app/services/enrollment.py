"""
Enrollment resolution: Course -> Batches -> Students.

Enrollment is never stored. A student is enrolled in a course while at least
one of the student's batches is attached to it. Reads here are not isolated
from concurrent membership writes; callers accept eventual consistency.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotEnrolledError
from app.models.batch import BatchMembership
from app.models.course import Course, CourseBatch


def _course_id(course: Course | int) -> int:
    return course.id if isinstance(course, Course) else int(course)


def course_batch_ids(db: Session, course: Course | int) -> set[int]:
    rows = db.execute(
        select(CourseBatch.batch_id).where(CourseBatch.course_id == _course_id(course))
    ).scalars()
    return set(rows)


def batch_student_ids(db: Session, batch_ids) -> set[int]:
    batch_ids = list(batch_ids)
    if not batch_ids:
        return set()
    rows = db.execute(
        select(BatchMembership.student_id).where(BatchMembership.batch_id.in_(batch_ids))
    ).scalars()
    return set(rows)


def resolve_enrollment(db: Session, course: Course | int) -> set[int]:
    """De-duplicated union of the students of every batch attached to the course."""
    return batch_student_ids(db, course_batch_ids(db, course))


def student_batch_ids(db: Session, student_id: int) -> set[int]:
    rows = db.execute(
        select(BatchMembership.batch_id).where(BatchMembership.student_id == student_id)
    ).scalars()
    return set(rows)


def is_student_enrolled(db: Session, student_id: int, course: Course | int) -> bool:
    return bool(student_batch_ids(db, student_id) & course_batch_ids(db, course))


def require_enrollment(db: Session, student_id: int, course: Course | int) -> None:
    if not is_student_enrolled(db, student_id, course):
        raise NotEnrolledError()


def enrolled_course_ids(db: Session, student_id: int) -> set[int]:
    batch_ids = student_batch_ids(db, student_id)
    if not batch_ids:
        return set()
    rows = db.execute(
        select(CourseBatch.course_id).where(CourseBatch.batch_id.in_(batch_ids))
    ).scalars()
    return set(rows)

