from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.actor import ActorKind
from app.models.grade import GradeStatus


class GradeRead(BaseModel):
    id: int
    task_id: int
    student_id: int
    course_id: int
    submission_id: Optional[int] = None
    grade: Optional[float] = None
    feedback: Optional[str] = None
    status: GradeStatus
    grader_kind: Optional[ActorKind] = None
    grader_id: Optional[int] = None
    graded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GradeEntryIn(BaseModel):
    grade_id: int
    grade: Optional[float] = None
    feedback: Optional[str] = None


class BulkGradeRequest(BaseModel):
    grades: list[GradeEntryIn] = Field(min_length=1)


class BulkGradeResponse(BaseModel):
    applied: list[int]
    failed: dict[int, str]


class MyGradeRow(BaseModel):
    grade_id: int
    task_id: int
    task_title: str
    course_id: int
    course_title: str
    max_points: float
    grade: Optional[float] = None
    feedback: Optional[str] = None
    status: str
    submission_state: str
    percentage: Optional[float] = None
