from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.permissions import ensure_teaches, require_staff, require_student
from app.models.actor import ActorRef
from app.models.course import Course
from app.models.grade import Grade
from app.models.task import Task
from app.schemas.grade import BulkGradeRequest, BulkGradeResponse, GradeRead, MyGradeRow
from app.services.grading import GradeEntry, bulk_apply_grades
from app.services.submissions import submission_state

router = APIRouter()


def _ensure_task_exists(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _percentage(grade: float | None, max_points: float) -> float | None:
    if grade is None or not max_points:
        return None
    return round(grade / max_points * 100, 2)


@router.get("/tasks/{task_id}/grades", response_model=list[GradeRead])
def list_task_grades(
    task_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    task = _ensure_task_exists(db, task_id)
    ensure_teaches(db, staff, task.course_id)
    return db.query(Grade).filter(Grade.task_id == task_id).order_by(Grade.student_id).all()


@router.post("/tasks/{task_id}/grade", response_model=BulkGradeResponse)
def grade_task(
    task_id: int,
    payload: BulkGradeRequest,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    task = _ensure_task_exists(db, task_id)
    ensure_teaches(db, staff, task.course_id)

    entries = [GradeEntry(e.grade_id, e.grade, e.feedback) for e in payload.grades]
    result = bulk_apply_grades(db, entries, grader=staff, task_id=task_id)
    return BulkGradeResponse(applied=result.applied, failed=result.failed)


@router.get("/grades/me", response_model=list[MyGradeRow])
def my_grades(
    db: Session = Depends(get_db),
    me: ActorRef = Depends(require_student),
):
    rows = (
        db.query(Grade, Task, Course)
        .join(Task, Task.id == Grade.task_id)
        .join(Course, Course.id == Task.course_id)
        .filter(Grade.student_id == me.id)
        .order_by(Course.course_code.asc(), Task.due_date.asc(), Task.id.asc())
        .all()
    )

    return [
        MyGradeRow(
            grade_id=grade.id,
            task_id=task.id,
            task_title=task.title,
            course_id=course.id,
            course_title=course.title,
            max_points=task.max_points,
            grade=grade.grade,
            feedback=grade.feedback,
            status=grade.status.value,
            submission_state=submission_state(task, grade).value,
            percentage=_percentage(grade.grade, task.max_points),
        )
        for grade, task, course in rows
    ]
