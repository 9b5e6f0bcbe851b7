from datetime import datetime

from pydantic import BaseModel, Field

from app.models.actor import ActorKind


class BatchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    academic_year: str = Field(min_length=1, max_length=20)  # e.g. "2024-2025"
    department: str = Field(min_length=1, max_length=100)
    students: list[int] = []


class BatchUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    academic_year: str | None = Field(default=None, min_length=1, max_length=20)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    students: list[int] | None = None


class BatchRead(BaseModel):
    id: int
    name: str
    academic_year: str
    department: str
    student_ids: list[int]
    creator_kind: ActorKind
    creator_id: int
    created_at: datetime

    class Config:
        from_attributes = True
