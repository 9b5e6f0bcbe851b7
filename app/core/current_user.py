from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.errors import NotFoundError
from app.core.security import decode_access_token
from app.models.actor import ActorRef
from app.services.actors import resolve_actor

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> ActorRef:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    actor = decode_access_token(credentials.credentials)
    if actor is None:
        raise unauthorized

    # the account may have been deleted since the token was issued
    try:
        resolve_actor(db, actor)
    except NotFoundError:
        raise unauthorized

    return actor
