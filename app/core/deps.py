from app.db.session import SessionLocal


# every request that needs DB gets a fresh session; anything left
# uncommitted by a failing request is rolled back before the session closes.
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
