import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.errors import ConflictError
from app.core.permissions import require_admin, require_staff
from app.models.actor import ActorRef, Faculty
from app.schemas.faculty import FacultyCreate, FacultyRead

router = APIRouter()


@router.get("/", response_model=list[FacultyRead])
def list_faculty(
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    return db.execute(select(Faculty).order_by(Faculty.last_name)).scalars().all()


@router.post("/", response_model=FacultyRead, status_code=status.HTTP_201_CREATED)
def create_faculty(
    payload: FacultyCreate,
    db: Session = Depends(get_db),
    admin: ActorRef = Depends(require_admin),
):
    faculty = Faculty(
        faculty_code=payload.faculty_code or f"FAC{uuid.uuid4().hex[:6].upper()}",
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=payload.email.lower(),
        department=payload.department.strip(),
    )
    db.add(faculty)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email or faculty code already exists.")
    db.refresh(faculty)
    return faculty
