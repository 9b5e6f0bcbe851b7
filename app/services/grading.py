import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.core.errors import ValidationFailedError
from app.core.timeutils import utcnow
from app.models.actor import ActorRef
from app.models.grade import Grade, GradeStatus
from app.models.task import Task

logger = logging.getLogger(__name__)


@dataclass
class GradeEntry:
    grade_id: int
    grade: float | None
    feedback: str | None = None


@dataclass
class BulkGradeResult:
    applied: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


def apply_grade(grade: Grade, score: float | None, feedback: str | None, grader: ActorRef) -> None:
    """Status always follows the score: null -> Pending, anything else -> Graded."""
    grade.grade = score
    grade.feedback = feedback
    grade.grader_kind = grader.kind
    grade.grader_id = grader.id
    if score is None:
        grade.status = GradeStatus.pending
        grade.graded_at = None
    else:
        grade.status = GradeStatus.graded
        grade.graded_at = utcnow()


def _check_entry(db: Session, entry: GradeEntry, task_id: int | None) -> Grade:
    grade = db.get(Grade, entry.grade_id)
    if grade is None:
        raise ValidationFailedError("Grade not found")
    if task_id is not None and grade.task_id != task_id:
        raise ValidationFailedError("Grade belongs to another task")
    if entry.grade is not None:
        if entry.grade < 0:
            raise ValidationFailedError("Grade cannot be negative")
        task = db.get(Task, grade.task_id)
        if task is not None and entry.grade > task.max_points:
            raise ValidationFailedError(f"Grade must be between 0 and {task.max_points}")
    return grade


def bulk_apply_grades(
    db: Session, entries: list[GradeEntry], grader: ActorRef, task_id: int | None = None
) -> BulkGradeResult:
    """
    Apply each entry on its own and commit it immediately.

    A bad entry is recorded in ``failed`` and skipped; entries already
    applied stay applied. Database errors other than per-entry validation
    still propagate.
    """
    if not entries:
        raise ValidationFailedError("No grade data provided.")

    result = BulkGradeResult()
    for entry in entries:
        try:
            grade = _check_entry(db, entry, task_id)
        except ValidationFailedError as exc:
            logger.warning("grade entry %s rejected: %s", entry.grade_id, exc.detail)
            result.failed[entry.grade_id] = exc.detail
            continue
        apply_grade(grade, entry.grade, entry.feedback, grader)
        db.commit()
        result.applied.append(entry.grade_id)

    logger.info(
        "bulk grading by %s:%s applied=%d failed=%d",
        grader.kind.value,
        grader.id,
        len(result.applied),
        len(result.failed),
    )
    return result
