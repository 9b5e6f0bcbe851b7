from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.permissions import require_admin
from app.models.actor import ActorRef
from app.services.cascades import reconcile_all, reconcile_course

router = APIRouter()


@router.post("/reconcile")
def reconcile_everything(
    db: Session = Depends(get_db),
    admin: ActorRef = Depends(require_admin),
):
    result = reconcile_all(db)
    return {"created": result.created, "deleted": result.deleted}


@router.post("/courses/{course_id}/reconcile")
def reconcile_one_course(
    course_id: int,
    db: Session = Depends(get_db),
    admin: ActorRef = Depends(require_admin),
):
    result = reconcile_course(db, course_id)
    return {"course_id": course_id, "created": result.created, "deleted": result.deleted}
