from pydantic import BaseModel, EmailStr, Field


class FacultyCreate(BaseModel):
    faculty_code: str | None = Field(default=None, max_length=32)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    department: str = Field(min_length=1, max_length=100)


class FacultyRead(BaseModel):
    id: int
    faculty_code: str
    first_name: str
    last_name: str
    email: EmailStr
    department: str

    class Config:
        from_attributes = True
