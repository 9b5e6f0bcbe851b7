import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.errors import ConflictError
from app.core.permissions import require_staff, require_student
from app.models.actor import ActorRef
from app.models.batch import Batch
from app.models.student import Student
from app.schemas.student import StudentBatchesUpdate, StudentCreate, StudentRead, StudentUpdate
from app.services.cascades import cascade_delete_student, ensure_all_exist, set_student_batches

router = APIRouter()


def _ensure_student_exists(db: Session, student_id: int) -> Student:
    student = db.get(Student, student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def _normalize(fields: dict) -> dict:
    """Identity fields are compared as stored: trimmed, email lower-cased."""
    for name in ("first_name", "last_name", "roll_number", "department"):
        if fields.get(name) is not None:
            fields[name] = fields[name].strip()
    if fields.get("email") is not None:
        fields["email"] = fields["email"].strip().lower()
    return fields


def _identity_taken(db: Session, student_id: int | None = None, **fields) -> bool:
    clauses = [getattr(Student, name) == value for name, value in fields.items() if value]
    if not clauses:
        return False
    stmt = select(Student.id).where(or_(*clauses))
    if student_id is not None:
        stmt = stmt.where(Student.id != student_id)
    return db.execute(stmt).first() is not None


@router.get("/", response_model=list[StudentRead])
def list_students(
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    return db.execute(select(Student).order_by(Student.last_name, Student.first_name)).scalars().all()


@router.get("/me", response_model=StudentRead)
def my_profile(
    db: Session = Depends(get_db),
    me: ActorRef = Depends(require_student),
):
    return _ensure_student_exists(db, me.id)


@router.post("/", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    fields = _normalize(payload.model_dump(exclude={"batches", "student_code"}))
    if _identity_taken(db, email=fields["email"], roll_number=fields["roll_number"]):
        raise ConflictError("Email or roll number already exists.")
    ensure_all_exist(db, Batch, payload.batches)

    student = Student(
        student_code=payload.student_code or f"STU{uuid.uuid4().hex[:6].upper()}",
        **fields,
    )
    db.add(student)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Student already exists")

    if payload.batches:
        set_student_batches(db, student.id, payload.batches)

    db.refresh(student)
    return student


@router.put("/{student_id}", response_model=StudentRead)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    student = _ensure_student_exists(db, student_id)
    changes = _normalize(payload.model_dump(exclude_unset=True, exclude_none=True))

    if _identity_taken(
        db,
        student_id=student_id,
        email=changes.get("email"),
        roll_number=changes.get("roll_number"),
    ):
        raise ConflictError("Email or roll number already in use.")

    for field_name, value in changes.items():
        setattr(student, field_name, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email or roll number already in use.")
    db.refresh(student)
    return student


@router.put("/{student_id}/batches", response_model=StudentRead)
def replace_student_batches(
    student_id: int,
    payload: StudentBatchesUpdate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    student = _ensure_student_exists(db, student_id)
    set_student_batches(db, student_id, payload.batches)
    db.refresh(student)
    return student


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_student(
    student_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    cascade_delete_student(db, student_id)
