import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.timeutils import as_utc, utcnow
from app.db.base_class import Base


class TaskType(str, enum.Enum):
    assignment = "Assignment"
    quiz = "Quiz"
    project = "Project"
    lab_report = "Lab Report"


class TaskStatus(str, enum.Enum):
    upcoming = "Upcoming"
    active = "Active"
    completed = "Completed"


def task_status(now: datetime, publish_date: datetime, due_date: datetime) -> TaskStatus:
    """
    Status is never stored:
    - before publish_date -> Upcoming
    - publish_date <= now <= due_date -> Active
    - after due_date -> Completed
    """
    now, publish_date, due_date = as_utc(now), as_utc(publish_date), as_utc(due_date)
    if now < publish_date:
        return TaskStatus.upcoming
    if now <= due_date:
        return TaskStatus.active
    return TaskStatus.completed


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[TaskType] = mapped_column(
        Enum(
            TaskType,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=TaskType.assignment,
        nullable=False,
    )
    publish_date = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    due_date = mapped_column(DateTime(timezone=True), nullable=False)
    max_points: Mapped[float] = mapped_column(Float, nullable=False)
    attachments: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("faculty.id"))

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("due_date >= publish_date", name="ck_tasks_due_after_publish"),
        CheckConstraint("max_points >= 0", name="ck_tasks_max_points_non_negative"),
    )

    course = relationship("Course", back_populates="tasks")

    @property
    def status(self) -> TaskStatus:
        return task_status(utcnow(), self.publish_date, self.due_date)
