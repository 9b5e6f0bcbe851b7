import os
from types import SimpleNamespace

TEST_DB_FILE = "test_skillup.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

# must be set before app.core.config is imported anywhere
os.environ["DATABASE_URL"] = TEST_DB_URL

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal as TestingSessionLocal  # noqa: E402
from app.db.session import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.actor import ActorKind, ActorRef, Admin, Faculty  # noqa: E402
from app.models.batch import Batch, BatchMembership  # noqa: E402
from app.models.course import Course, CourseBatch, CourseFaculty, CourseStatus  # noqa: E402
from app.models.grade import Grade  # noqa: E402
from app.models.student import Student  # noqa: E402
from app.models.submission import Submission  # noqa: E402
from app.models.task import Task  # noqa: E402


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


def _student(code: str, first: str) -> Student:
    return Student(
        student_code=code,
        first_name=first,
        last_name="Tester",
        roll_number=f"R-{code}",
        email=f"{first.lower()}@example.com",
        department="CSE",
        semester=3,
    )


@pytest.fixture(autouse=True)
def seed_data():
    """
    Seed a clean dataset for each test:

        course CS101 <- batch B1 {A, B}
        batch B2 {C} exists but is not attached
        faculty F teaches CS101; faculty G teaches nothing
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        for model in (
            Grade,
            Submission,
            Task,
            CourseBatch,
            CourseFaculty,
            Course,
            BatchMembership,
            Batch,
            Student,
            Faculty,
            Admin,
        ):
            db.query(model).delete()
        db.commit()

        admin = Admin(email="admin@example.com", full_name="Admin One")
        faculty = Faculty(
            faculty_code="FAC001",
            first_name="Fran",
            last_name="Faculty",
            email="fran@example.com",
            department="CSE",
        )
        outsider = Faculty(
            faculty_code="FAC002",
            first_name="Gil",
            last_name="Guest",
            email="gil@example.com",
            department="ECE",
        )
        a, b, c = _student("A001", "Alice"), _student("B001", "Bob"), _student("C001", "Cara")
        db.add_all([admin, faculty, outsider, a, b, c])
        db.commit()

        b1 = Batch(
            name="B1",
            academic_year="2025-2026",
            department="CSE",
            creator_kind=ActorKind.admin,
            creator_id=admin.id,
        )
        b2 = Batch(
            name="B2",
            academic_year="2025-2026",
            department="CSE",
            creator_kind=ActorKind.admin,
            creator_id=admin.id,
        )
        course = Course(
            course_code="CS101",
            title="Intro to Programming",
            department="CSE",
            academic_year="2025-2026",
            semester=3,
            status=CourseStatus.active,
            creator_kind=ActorKind.admin,
            creator_id=admin.id,
        )
        db.add_all([b1, b2, course])
        db.commit()

        db.add_all(
            [
                BatchMembership(batch_id=b1.id, student_id=a.id),
                BatchMembership(batch_id=b1.id, student_id=b.id),
                BatchMembership(batch_id=b2.id, student_id=c.id),
                CourseBatch(course_id=course.id, batch_id=b1.id),
                CourseFaculty(course_id=course.id, faculty_id=faculty.id),
            ]
        )
        db.commit()

        yield SimpleNamespace(
            admin=admin.id,
            faculty=faculty.id,
            outsider=outsider.id,
            a=a.id,
            b=b.id,
            c=c.id,
            b1=b1.id,
            b2=b2.id,
            course=course.id,
        )
    finally:
        db.close()


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    """Test client that uses the test DB session via dependency override."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_header(kind: ActorKind, actor_id: int) -> dict:
    token = create_access_token(ActorRef(kind, actor_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers(seed_data):
    return SimpleNamespace(
        admin=auth_header(ActorKind.admin, seed_data.admin),
        faculty=auth_header(ActorKind.faculty, seed_data.faculty),
        outsider=auth_header(ActorKind.faculty, seed_data.outsider),
        a=auth_header(ActorKind.student, seed_data.a),
        b=auth_header(ActorKind.student, seed_data.b),
        c=auth_header(ActorKind.student, seed_data.c),
    )


@pytest.fixture()
def make_task(db):
    """Create a task the way the API does: insert, then grow its grade slots."""
    from datetime import timedelta

    from app.core.timeutils import utcnow
    from app.services.grade_sync import sync_grades_for_task_creation

    def _make(course_id: int, title: str = "HW1", due_in: timedelta = timedelta(days=1), **kwargs):
        now = utcnow()
        task = Task(
            course_id=course_id,
            title=title,
            description=kwargs.pop("description", "Do the thing"),
            publish_date=kwargs.pop("publish_date", now - timedelta(hours=1)),
            due_date=now + due_in,
            max_points=kwargs.pop("max_points", 100),
            attachments=[],
            **kwargs,
        )
        db.add(task)
        db.commit()
        sync_grades_for_task_creation(db, task)
        return task

    return _make
