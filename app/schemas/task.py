from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.core.timeutils import as_utc
from app.models.task import TaskStatus, TaskType


class Attachment(BaseModel):
    file_name: str
    url: str
    file_type: Optional[str] = None


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str
    type: TaskType = TaskType.assignment
    publish_date: Optional[datetime] = None
    due_date: datetime
    max_points: float = Field(ge=0)
    attachments: list[Attachment] = []

    @model_validator(mode="after")
    def due_after_publish(self):
        if self.publish_date is not None and as_utc(self.due_date) < as_utc(self.publish_date):
            raise ValueError("Due date must be on or after the publish date.")
        return self


class TaskUpdate(BaseModel):
    # every task field is required on the row, so null means "leave unchanged"
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[TaskType] = None
    publish_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    max_points: Optional[float] = Field(default=None, ge=0)
    attachments: Optional[list[Attachment]] = None
    course_id: Optional[int] = None


class TaskRead(BaseModel):
    id: int
    course_id: int
    title: str
    description: str
    type: TaskType
    publish_date: datetime
    due_date: datetime
    max_points: float
    attachments: list[Attachment]
    status: TaskStatus
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskStats(BaseModel):
    total_enrolled: int
    total_submitted: int
    total_graded: int


class TaskDetail(BaseModel):
    task: TaskRead
    stats: TaskStats
