from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.actor import ActorKind, ActorRef, Admin, Faculty
from app.models.student import Student

# kind -> table the id lives in
ACTOR_MODELS = {
    ActorKind.admin: Admin,
    ActorKind.faculty: Faculty,
    ActorKind.student: Student,
}


def resolve_actor(db: Session, ref: ActorRef):
    model = ACTOR_MODELS[ActorKind(ref.kind)]
    obj = db.get(model, ref.id)
    if obj is None:
        raise NotFoundError(model.__name__, ref.id)
    return obj


def actor_display_name(db: Session, ref: ActorRef | None) -> str | None:
    """None when there is no actor or it has since been deleted."""
    if ref is None:
        return None
    obj = db.get(ACTOR_MODELS[ActorKind(ref.kind)], ref.id)
    if obj is None:
        return None
    if isinstance(obj, Admin):
        return obj.full_name or obj.email
    return f"{obj.first_name} {obj.last_name}"
