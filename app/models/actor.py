import enum
from dataclasses import dataclass

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class ActorKind(str, enum.Enum):
    admin = "admin"
    faculty = "faculty"
    student = "student"


@dataclass(frozen=True)
class ActorRef:
    """Tagged reference to whoever created, graded or is addressed by a row."""

    kind: ActorKind
    id: int


def actor_kind_column(**kwargs):
    return mapped_column(
        Enum(
            ActorKind,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        **kwargs,
    )


class Admin(Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Faculty(Base):
    __tablename__ = "faculty"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    faculty_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course_links = relationship("CourseFaculty", back_populates="faculty")
