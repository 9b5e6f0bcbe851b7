from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.submission import SubmissionStatus
from app.schemas.task import Attachment


class SubmissionCreate(BaseModel):
    content: Optional[str] = None
    attachments: list[Attachment] = []


class SubmissionRead(BaseModel):
    id: int
    task_id: int
    student_id: int
    content: Optional[str]
    attachments: list[dict]
    status: SubmissionStatus
    submitted_at: datetime

    class Config:
        from_attributes = True


class TaskSubmissionRow(BaseModel):
    """One row per enrolled student, whether or not they submitted."""

    student_id: int
    student_name: str
    roll_number: str
    submission_id: Optional[int] = None
    status: str  # "On-Time" | "Late" | "Not Submitted"
    submitted_at: Optional[datetime] = None
    grade: Optional[float] = None
    feedback: Optional[str] = None
    graded_by: Optional[str] = None
    attachments: list[dict] = []
