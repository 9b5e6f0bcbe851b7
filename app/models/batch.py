from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.actor import ActorKind, ActorRef, actor_kind_column


class Batch(Base):
    __tablename__ = "batches"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)

    creator_kind: Mapped[ActorKind] = actor_kind_column(nullable=False)
    creator_id: Mapped[int] = mapped_column(nullable=False)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "name", "academic_year", "department", name="uq_batches_name_year_department"
        ),
    )

    memberships = relationship("BatchMembership", back_populates="batch")

    @property
    def creator(self) -> ActorRef:
        return ActorRef(self.creator_kind, self.creator_id)

    @property
    def student_ids(self) -> list[int]:
        return sorted(m.student_id for m in self.memberships)


class BatchMembership(Base):
    __tablename__ = "batch_memberships"

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(
        Integer, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("batch_id", "student_id", name="uq_batch_memberships_batch_student"),
    )

    batch = relationship("Batch", back_populates="memberships")
    student = relationship("Student", back_populates="memberships")
