import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.actor import ActorKind, ActorRef, actor_kind_column


class CourseStatus(str, enum.Enum):
    active = "Active"
    archived = "Archived"
    upcoming = "Upcoming"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[CourseStatus] = mapped_column(
        Enum(
            CourseStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=CourseStatus.upcoming,
        nullable=False,
    )

    creator_kind: Mapped[ActorKind] = actor_kind_column(nullable=False)
    creator_id: Mapped[int] = mapped_column(nullable=False)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    batch_links = relationship("CourseBatch", back_populates="course")
    faculty_links = relationship("CourseFaculty", back_populates="course")
    tasks = relationship("Task", back_populates="course")

    @property
    def creator(self) -> ActorRef:
        return ActorRef(self.creator_kind, self.creator_id)

    @property
    def batch_ids(self) -> list[int]:
        return sorted(link.batch_id for link in self.batch_links)

    @property
    def faculty_ids(self) -> list[int]:
        return sorted(link.faculty_id for link in self.faculty_links)


class CourseBatch(Base):
    __tablename__ = "course_batches"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    batch_id = Column(
        Integer, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("course_id", "batch_id", name="uq_course_batches_course_batch"),
    )

    course = relationship("Course", back_populates="batch_links")


class CourseFaculty(Base):
    __tablename__ = "course_faculty"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    faculty_id = Column(
        Integer, ForeignKey("faculty.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("course_id", "faculty_id", name="uq_course_faculty_course_faculty"),
    )

    course = relationship("Course", back_populates="faculty_links")
    faculty = relationship("Faculty", back_populates="course_links")
