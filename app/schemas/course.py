from pydantic import BaseModel, Field

from app.models.course import CourseStatus


class CourseCreate(BaseModel):
    course_code: str = Field(min_length=1, max_length=32)
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    department: str = Field(min_length=1, max_length=100)
    academic_year: str = Field(min_length=1, max_length=20)
    semester: int | None = None
    status: CourseStatus = CourseStatus.upcoming
    faculty: list[int] = []
    batches: list[int] = []


class CourseUpdate(BaseModel):
    # null clears description and semester; other scalar fields keep their value
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    department: str | None = Field(default=None, min_length=1, max_length=100)
    academic_year: str | None = Field(default=None, min_length=1, max_length=20)
    semester: int | None = None
    status: CourseStatus | None = None
    # None leaves the list alone; [] empties it
    faculty: list[int] | None = None
    batches: list[int] | None = None


class CourseRead(BaseModel):
    id: int
    course_code: str
    title: str
    description: str | None = None
    department: str
    academic_year: str
    semester: int | None = None
    status: CourseStatus
    faculty_ids: list[int]
    batch_ids: list[int]

    class Config:
        from_attributes = True


class CourseDetail(CourseRead):
    enrolled_student_ids: list[int]
    task_count: int
