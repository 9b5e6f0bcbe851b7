import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.models.actor import ActorKind, ActorRef


class GradeStatus(str, enum.Enum):
    pending = "Pending"
    graded = "Graded"


class Grade(Base):
    __tablename__ = "grades"

    id = Column(Integer, primary_key=True, index=True)

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # denormalized from the task so per-course queries skip the join
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)

    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="SET NULL"), nullable=True
    )

    # Grading fields (null until graded)
    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    status = Column(
        Enum(
            GradeStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=GradeStatus.pending,
        nullable=False,
    )
    grader_kind = Column(
        Enum(
            ActorKind,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    grader_id = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # one grade slot per student per task; the only guard against concurrent grows
    __table_args__ = (
        UniqueConstraint("task_id", "student_id", name="uq_grades_task_student"),
    )

    task = relationship("Task")
    student = relationship("Student")
    submission = relationship("Submission")

    @property
    def graded_by(self) -> ActorRef | None:
        if self.grader_kind is None:
            return None
        return ActorRef(self.grader_kind, self.grader_id)
