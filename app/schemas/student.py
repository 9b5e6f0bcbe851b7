from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class StudentCreate(BaseModel):
    student_code: str | None = Field(default=None, max_length=32)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    roll_number: str = Field(min_length=1, max_length=50)
    email: EmailStr
    department: str = Field(min_length=1, max_length=100)
    semester: int | None = Field(default=None, ge=1, le=8)
    batches: list[int] = []


class StudentUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    roll_number: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None
    department: str | None = Field(default=None, min_length=1, max_length=100)
    semester: int | None = Field(default=None, ge=1, le=8)


class StudentBatchesUpdate(BaseModel):
    batches: list[int]


class StudentRead(BaseModel):
    id: int
    student_code: str
    first_name: str
    last_name: str
    roll_number: str
    email: EmailStr
    department: str
    semester: int | None = None
    batch_ids: list[int]
    created_at: datetime

    class Config:
        from_attributes = True
