from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.errors import ConflictError
from app.core.permissions import require_staff
from app.models.actor import ActorRef
from app.models.batch import Batch
from app.models.student import Student
from app.schemas.batch import BatchCreate, BatchRead, BatchUpdate
from app.services.cascades import cascade_delete_batch, ensure_all_exist, update_batch_students

router = APIRouter()

DUPLICATE_BATCH = "A batch with this name, year, and department already exists."


def _ensure_batch_exists(db: Session, batch_id: int) -> Batch:
    batch = db.get(Batch, batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch


def _ensure_unique(db: Session, name: str, academic_year: str, department: str, exclude_id=None):
    stmt = select(Batch.id).where(
        Batch.name == name,
        Batch.academic_year == academic_year,
        Batch.department == department,
    )
    if exclude_id is not None:
        stmt = stmt.where(Batch.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ConflictError(DUPLICATE_BATCH)


@router.get("/", response_model=list[BatchRead])
def list_batches(
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    return db.execute(select(Batch).order_by(Batch.academic_year.desc(), Batch.name)).scalars().all()


@router.get("/{batch_id}", response_model=BatchRead)
def get_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    return _ensure_batch_exists(db, batch_id)


@router.post("/", response_model=BatchRead, status_code=status.HTTP_201_CREATED)
def create_batch(
    payload: BatchCreate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    name, year, dept = payload.name.strip(), payload.academic_year.strip(), payload.department.strip()
    _ensure_unique(db, name, year, dept)
    ensure_all_exist(db, Student, payload.students)

    batch = Batch(
        name=name,
        academic_year=year,
        department=dept,
        creator_kind=staff.kind,
        creator_id=staff.id,
    )
    db.add(batch)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with an identical create
        db.rollback()
        raise ConflictError(DUPLICATE_BATCH)

    if payload.students:
        update_batch_students(db, batch.id, payload.students)

    db.refresh(batch)
    return batch


@router.put("/{batch_id}", response_model=BatchRead)
def update_batch(
    batch_id: int,
    payload: BatchUpdate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    batch = _ensure_batch_exists(db, batch_id)

    name = payload.name.strip() if payload.name is not None else batch.name
    year = payload.academic_year.strip() if payload.academic_year is not None else batch.academic_year
    dept = payload.department.strip() if payload.department is not None else batch.department
    if payload.students is not None:
        ensure_all_exist(db, Student, payload.students)

    if (name, year, dept) != (batch.name, batch.academic_year, batch.department):
        _ensure_unique(db, name, year, dept, exclude_id=batch_id)
        batch.name, batch.academic_year, batch.department = name, year, dept
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(DUPLICATE_BATCH)

    if payload.students is not None:
        update_batch_students(db, batch_id, payload.students)

    db.refresh(batch)
    return batch


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    cascade_delete_batch(db, batch_id)
