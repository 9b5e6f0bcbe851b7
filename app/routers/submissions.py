from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.permissions import ensure_teaches, require_staff, require_student
from app.models.actor import ActorRef
from app.models.grade import Grade
from app.models.student import Student
from app.models.submission import Submission
from app.models.task import Task
from app.schemas.submission import SubmissionCreate, SubmissionRead, TaskSubmissionRow
from app.services.actors import actor_display_name
from app.services.enrollment import require_enrollment, resolve_enrollment
from app.services.submissions import submit_or_update_submission

router = APIRouter()

NOT_SUBMITTED = "Not Submitted"


def _ensure_task_exists(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.post(
    "/tasks/{task_id}/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
def submit_task(
    task_id: int,
    payload: SubmissionCreate,
    response: Response,
    db: Session = Depends(get_db),
    me: ActorRef = Depends(require_student),
):
    result = submit_or_update_submission(
        db,
        task_id=task_id,
        student_id=me.id,
        content=payload.content,
        attachments=[a.model_dump() for a in payload.attachments],
    )
    # resubmission edits the existing row
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.submission


@router.get("/tasks/{task_id}/submissions/me", response_model=SubmissionRead)
def my_submission(
    task_id: int,
    db: Session = Depends(get_db),
    me: ActorRef = Depends(require_student),
):
    task = _ensure_task_exists(db, task_id)
    require_enrollment(db, me.id, task.course_id)

    submission = (
        db.query(Submission)
        .filter(Submission.task_id == task_id, Submission.student_id == me.id)
        .first()
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    return submission


@router.get("/tasks/{task_id}/submissions", response_model=list[TaskSubmissionRow])
def list_task_submissions(
    task_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    """
    Every currently enrolled student, merged with their submission and grade.
    Students who have not submitted appear with status "Not Submitted".
    """
    task = _ensure_task_exists(db, task_id)
    ensure_teaches(db, staff, task.course_id)

    enrolled = resolve_enrollment(db, task.course_id)
    if not enrolled:
        return []

    rows = (
        db.query(
            Student.id.label("student_id"),
            Student.first_name,
            Student.last_name,
            Student.roll_number,
            Submission.id.label("submission_id"),
            Submission.status.label("submission_status"),
            Submission.submitted_at,
            Submission.attachments,
            Grade.grade,
            Grade.feedback,
            Grade.grader_kind,
            Grade.grader_id,
        )
        .select_from(Student)
        .outerjoin(
            Submission,
            and_(Submission.task_id == task_id, Submission.student_id == Student.id),
        )
        .outerjoin(
            Grade,
            and_(Grade.task_id == task_id, Grade.student_id == Student.id),
        )
        .filter(Student.id.in_(enrolled))
        .order_by(Student.roll_number.asc(), Student.id.asc())
        .all()
    )

    return [
        TaskSubmissionRow(
            student_id=r.student_id,
            student_name=f"{r.first_name} {r.last_name}",
            roll_number=r.roll_number,
            submission_id=r.submission_id,
            status=r.submission_status.value if r.submission_status else NOT_SUBMITTED,
            submitted_at=r.submitted_at,
            grade=r.grade,
            feedback=r.feedback,
            graded_by=actor_display_name(
                db, ActorRef(r.grader_kind, r.grader_id) if r.grader_kind else None
            ),
            attachments=r.attachments or [],
        )
        for r in rows
    ]
