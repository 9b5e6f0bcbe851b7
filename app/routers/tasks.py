from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from app.core.current_user import get_current_actor
from app.core.deps import get_db
from app.core.errors import ValidationFailedError
from app.core.permissions import ensure_teaches, require_staff
from app.core.timeutils import as_utc, utcnow
from app.models.actor import ActorKind, ActorRef
from app.models.course import Course
from app.models.grade import Grade, GradeStatus
from app.models.task import Task
from app.schemas.task import TaskCreate, TaskDetail, TaskRead, TaskStats, TaskUpdate
from app.services.cascades import cascade_delete_task
from app.services.enrollment import require_enrollment
from app.services.grade_sync import move_task_to_course, sync_grades_for_task_creation

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _ensure_task_exists(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _task_stats(db: Session, task_id: int) -> TaskStats:
    """Counts come from the grade slots, one per enrolled student."""
    row = db.execute(
        select(
            func.count(Grade.id).label("total"),
            func.coalesce(
                func.sum(case((Grade.submission_id.is_not(None), 1), else_=0)), 0
            ).label("submitted"),
            func.coalesce(
                func.sum(case((Grade.status == GradeStatus.graded, 1), else_=0)), 0
            ).label("graded"),
        ).where(Grade.task_id == task_id)
    ).one()
    return TaskStats(
        total_enrolled=int(row.total or 0),
        total_submitted=int(row.submitted or 0),
        total_graded=int(row.graded or 0),
    )


@router.post(
    "/courses/{course_id}/tasks",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    course_id: int,
    payload: TaskCreate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    _ensure_course_exists(db, course_id)
    ensure_teaches(db, staff, course_id)

    publish_date = as_utc(payload.publish_date) if payload.publish_date else utcnow()
    due_date = as_utc(payload.due_date)
    if due_date < publish_date:
        raise ValidationFailedError("Due date must be on or after the publish date.")

    task = Task(
        course_id=course_id,
        title=payload.title.strip(),
        description=payload.description,
        type=payload.type,
        publish_date=publish_date,
        due_date=due_date,
        max_points=payload.max_points,
        attachments=[a.model_dump() for a in payload.attachments],
        created_by=staff.id if staff.kind == ActorKind.faculty else None,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    sync_grades_for_task_creation(db, task)
    db.refresh(task)
    return task


@router.get("/courses/{course_id}/tasks", response_model=list[TaskRead])
def list_course_tasks(
    course_id: int,
    db: Session = Depends(get_db),
    actor: ActorRef = Depends(get_current_actor),
):
    _ensure_course_exists(db, course_id)
    if actor.kind == ActorKind.student:
        require_enrollment(db, actor.id, course_id)

    return (
        db.execute(
            select(Task).where(Task.course_id == course_id).order_by(Task.due_date, Task.id)
        )
        .scalars()
        .all()
    )


@router.get("/tasks/{task_id}", response_model=TaskDetail)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    actor: ActorRef = Depends(get_current_actor),
):
    task = _ensure_task_exists(db, task_id)
    if actor.kind == ActorKind.student:
        require_enrollment(db, actor.id, task.course_id)

    return TaskDetail(task=TaskRead.model_validate(task), stats=_task_stats(db, task_id))


@router.put("/tasks/{task_id}", response_model=TaskRead)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    task = _ensure_task_exists(db, task_id)
    ensure_teaches(db, staff, task.course_id)

    target_course_id = payload.course_id
    if target_course_id is not None and target_course_id != task.course_id:
        _ensure_course_exists(db, target_course_id)
        ensure_teaches(db, staff, target_course_id)

    publish_date = as_utc(payload.publish_date) if payload.publish_date else as_utc(task.publish_date)
    due_date = as_utc(payload.due_date) if payload.due_date else as_utc(task.due_date)
    if due_date < publish_date:
        raise ValidationFailedError("Due date must be on or after the publish date.")

    changes = payload.model_dump(
        exclude_unset=True, exclude={"course_id", "publish_date", "due_date", "attachments"}
    )
    for field_name, value in changes.items():
        if value is not None:
            setattr(task, field_name, value)
    task.publish_date = publish_date
    task.due_date = due_date
    if payload.attachments is not None:
        task.attachments = [a.model_dump() for a in payload.attachments]
    db.commit()

    if target_course_id is not None:
        move_task_to_course(db, task, target_course_id)

    db.refresh(task)
    return task


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    task = _ensure_task_exists(db, task_id)
    ensure_teaches(db, staff, task.course_id)
    cascade_delete_task(db, task_id)
