from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.current_user import get_current_actor
from app.models.actor import ActorKind, ActorRef
from app.models.course import CourseFaculty


def require_admin(actor: ActorRef = Depends(get_current_actor)) -> ActorRef:
    if actor.kind != ActorKind.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return actor


def require_staff(actor: ActorRef = Depends(get_current_actor)) -> ActorRef:
    if actor.kind not in (ActorKind.admin, ActorKind.faculty):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or faculty role required",
        )
    return actor


def require_student(actor: ActorRef = Depends(get_current_actor)) -> ActorRef:
    if actor.kind != ActorKind.student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student role required",
        )
    return actor


def ensure_teaches(db: Session, actor: ActorRef, course_id: int) -> None:
    """Admins manage every course; faculty only the ones they are listed on."""
    if actor.kind == ActorKind.admin:
        return
    teaches = db.execute(
        select(CourseFaculty.id).where(
            CourseFaculty.course_id == course_id,
            CourseFaculty.faculty_id == actor.id,
        )
    ).first()
    if teaches is None:
        raise HTTPException(status_code=403, detail="Not course instructor")
