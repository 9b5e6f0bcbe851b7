"""
Submission lifecycle per (task, student).

    NoSubmission --submit, now <= due--> Submitted (On-Time)
    Submitted --resubmit, now <= due, grade not Graded--> Submitted
    Submitted --grade becomes Graded--> Locked

Late creation is refused outright, so every stored submission is On-Time.
A task whose deadline passed without a submission is "Missed"; nothing is
stored for it and submission_state() derives it at read time.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    DeadlineExceededError,
    NotFoundError,
    SubmissionLockedError,
    ValidationFailedError,
)
from app.core.config import ALLOWED_ATTACHMENT_TYPES
from app.core.timeutils import as_utc, utcnow
from app.db.integrity import is_duplicate_key
from app.models.grade import Grade, GradeStatus
from app.models.submission import Submission, SubmissionStatus
from app.models.task import Task
from app.services.enrollment import require_enrollment

logger = logging.getLogger(__name__)


class SubmissionState(str, enum.Enum):
    not_submitted = "Not Submitted"
    submitted = "Submitted"
    graded = "Graded"
    missed = "Missed"


@dataclass
class SubmitResult:
    submission: Submission
    created: bool


def submission_state(task: Task, grade: Grade | None, now: datetime | None = None) -> SubmissionState:
    now = as_utc(now or utcnow())
    if grade is not None and grade.status == GradeStatus.graded:
        return SubmissionState.graded
    if grade is not None and grade.submission_id is not None:
        return SubmissionState.submitted
    if now > as_utc(task.due_date):
        return SubmissionState.missed
    return SubmissionState.not_submitted


def _normalize_attachments(attachments, now: datetime) -> list[dict]:
    result = []
    for item in attachments or []:
        item = dict(item)
        file_name = item.get("file_name") or ""
        if not file_name or not item.get("url"):
            raise ValidationFailedError("Each attachment needs a file_name and a url")
        if not file_name.lower().endswith(ALLOWED_ATTACHMENT_TYPES):
            raise ValidationFailedError(f"File type not allowed: {file_name}")
        item.setdefault("uploaded_at", now.isoformat())
        result.append(item)
    return result


def _find_submission(db: Session, task_id: int, student_id: int) -> Submission | None:
    return db.execute(
        select(Submission).where(
            Submission.task_id == task_id, Submission.student_id == student_id
        )
    ).scalar_one_or_none()


def _find_grade(db: Session, task_id: int, student_id: int) -> Grade | None:
    return db.execute(
        select(Grade).where(Grade.task_id == task_id, Grade.student_id == student_id)
    ).scalar_one_or_none()


def _link_grade(db: Session, task: Task, student_id: int, submission_id: int) -> None:
    """Point the grade slot at the submission, creating the slot if a race left it missing."""
    grade = _find_grade(db, task.id, student_id)
    if grade is None:
        grade = Grade(
            task_id=task.id,
            student_id=student_id,
            course_id=task.course_id,
            status=GradeStatus.pending,
        )
        db.add(grade)
    grade.submission_id = submission_id
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_duplicate_key(exc):
            raise
        # a concurrent grow created the slot first; link that one
        grade = _find_grade(db, task.id, student_id)
        grade.submission_id = submission_id
        db.commit()


def _update(db: Session, submission: Submission, content, attachments, now: datetime) -> Submission:
    submission.content = content
    submission.attachments = attachments
    submission.submitted_at = now
    db.commit()
    db.refresh(submission)
    return submission


def submit_or_update_submission(
    db: Session,
    task_id: int,
    student_id: int,
    content: str | None,
    attachments=None,
    now: datetime | None = None,
) -> SubmitResult:
    now = as_utc(now or utcnow())

    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    require_enrollment(db, student_id, task.course_id)

    # editing is not allowed after the deadline either, graded or not
    if now > as_utc(task.due_date):
        raise DeadlineExceededError()

    attachments = _normalize_attachments(attachments, now)
    if not (content and content.strip()) and not attachments:
        raise ValidationFailedError("A submission needs content or at least one attachment")

    existing = _find_submission(db, task_id, student_id)
    if existing is not None:
        grade = _find_grade(db, task_id, student_id)
        if grade is not None and grade.status == GradeStatus.graded:
            raise SubmissionLockedError()
        submission = _update(db, existing, content, attachments, now)
        if grade is None or grade.submission_id != submission.id:
            _link_grade(db, task, student_id, submission.id)
        logger.info("submission updated task=%s student=%s", task_id, student_id)
        return SubmitResult(submission, created=False)

    submission = Submission(
        task_id=task_id,
        student_id=student_id,
        course_id=task.course_id,
        content=content,
        attachments=attachments,
        status=SubmissionStatus.on_time,
        submitted_at=now,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_duplicate_key(exc):
            raise
        # lost a race with another first submit for the same pair
        existing = _find_submission(db, task_id, student_id)
        grade = _find_grade(db, task_id, student_id)
        if grade is not None and grade.status == GradeStatus.graded:
            raise SubmissionLockedError()
        submission = _update(db, existing, content, attachments, now)
        _link_grade(db, task, student_id, submission.id)
        return SubmitResult(submission, created=False)

    db.refresh(submission)
    _link_grade(db, task, student_id, submission.id)
    logger.info("submission created task=%s student=%s", task_id, student_id)
    return SubmitResult(submission, created=True)
