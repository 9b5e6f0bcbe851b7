from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.errors import ConflictError
from app.core.permissions import ensure_teaches, require_staff, require_student
from app.models.actor import ActorKind, ActorRef, Faculty
from app.models.batch import Batch
from app.models.course import Course
from app.models.task import Task
from app.schemas.course import CourseCreate, CourseDetail, CourseRead, CourseUpdate
from app.services.cascades import (
    cascade_delete_course,
    ensure_all_exist,
    update_course_batches,
    update_course_faculty,
)
from app.services.enrollment import enrolled_course_ids, resolve_enrollment

router = APIRouter()

NULLABLE_FIELDS = {"description", "semester"}


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _course_detail(db: Session, course: Course) -> CourseDetail:
    task_count = db.execute(
        select(func.count(Task.id)).where(Task.course_id == course.id)
    ).scalar_one()
    base = CourseRead.model_validate(course).model_dump()
    return CourseDetail(
        **base,
        enrolled_student_ids=sorted(resolve_enrollment(db, course)),
        task_count=task_count,
    )


@router.get("/", response_model=list[CourseRead])
def list_courses(
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    return db.execute(select(Course).order_by(Course.course_code)).scalars().all()


@router.get("/me", response_model=list[CourseRead])
def my_courses(
    db: Session = Depends(get_db),
    me: ActorRef = Depends(require_student),
):
    course_ids = enrolled_course_ids(db, me.id)
    if not course_ids:
        return []
    return (
        db.execute(select(Course).where(Course.id.in_(course_ids)).order_by(Course.course_code))
        .scalars()
        .all()
    )


@router.post("/", response_model=CourseDetail, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    code = payload.course_code.strip().upper()
    if db.execute(select(Course.id).where(Course.course_code == code)).first() is not None:
        raise ConflictError("Course code already exists.")

    faculty_ids = set(payload.faculty)
    # a faculty member creating a course teaches it
    if staff.kind == ActorKind.faculty:
        faculty_ids.add(staff.id)
    ensure_all_exist(db, Faculty, faculty_ids)
    ensure_all_exist(db, Batch, payload.batches)

    course = Course(
        course_code=code,
        title=payload.title.strip(),
        description=payload.description,
        department=payload.department.strip(),
        academic_year=payload.academic_year.strip(),
        semester=payload.semester,
        status=payload.status,
        creator_kind=staff.kind,
        creator_id=staff.id,
    )
    db.add(course)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Course code already exists.")

    if faculty_ids:
        update_course_faculty(db, course.id, faculty_ids)
    if payload.batches:
        update_course_batches(db, course.id, payload.batches)

    db.refresh(course)
    return _course_detail(db, course)


@router.get("/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    course = _ensure_course_exists(db, course_id)
    return _course_detail(db, course)


@router.put("/{course_id}", response_model=CourseDetail)
def update_course(
    course_id: int,
    payload: CourseUpdate,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    course = _ensure_course_exists(db, course_id)
    ensure_teaches(db, staff, course_id)

    if payload.faculty is not None:
        ensure_all_exist(db, Faculty, payload.faculty)
    if payload.batches is not None:
        ensure_all_exist(db, Batch, payload.batches)

    changes = payload.model_dump(exclude_unset=True, exclude={"faculty", "batches"})
    for field_name, value in changes.items():
        # description and semester may be cleared with an explicit null
        if value is not None or field_name in NULLABLE_FIELDS:
            setattr(course, field_name, value)
    db.commit()

    if payload.faculty is not None:
        update_course_faculty(db, course_id, payload.faculty)
    if payload.batches is not None:
        update_course_batches(db, course_id, payload.batches)

    db.refresh(course)
    return _course_detail(db, course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    staff: ActorRef = Depends(require_staff),
):
    _ensure_course_exists(db, course_id)
    ensure_teaches(db, staff, course_id)
    cascade_delete_course(db, course_id)
