from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import ACCESS_TOKEN_EXPIRE, ALGORITHM, SECRET_KEY
from app.models.actor import ActorKind, ActorRef

# Tokens are issued by the identity service; we only need to agree on the claims.


def create_access_token(actor: ActorRef, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_EXPIRE)
    to_encode = {"sub": str(actor.id), "kind": ActorKind(actor.kind).value, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> ActorRef | None:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return ActorRef(ActorKind(payload["kind"]), int(payload["sub"]))
    except (JWTError, KeyError, ValueError):
        return None
