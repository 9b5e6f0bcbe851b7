from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION = "23505"


def is_duplicate_key(exc: IntegrityError) -> bool:
    """True when the store rejected a row because a unique key already exists."""
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    if getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    message = str(orig).lower()
    return "unique constraint failed" in message or "duplicate key" in message
