from sqlalchemy import select

from app.models.grade import Grade
from app.models.submission import Submission


def grade_students(db, task_id: int) -> set[int]:
    return set(db.execute(select(Grade.student_id).where(Grade.task_id == task_id)).scalars())


def submission_students(db, task_id: int) -> set[int]:
    return set(
        db.execute(select(Submission.student_id).where(Submission.task_id == task_id)).scalars()
    )
