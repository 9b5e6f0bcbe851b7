import pytest

from app.core.errors import NotEnrolledError
from app.models.batch import BatchMembership
from app.models.course import CourseBatch
from app.services.enrollment import (
    enrolled_course_ids,
    is_student_enrolled,
    require_enrollment,
    resolve_enrollment,
)


def test_resolve_enrollment_is_union_of_attached_batches(db, seed_data):
    assert resolve_enrollment(db, seed_data.course) == {seed_data.a, seed_data.b}

    db.add(CourseBatch(course_id=seed_data.course, batch_id=seed_data.b2))
    db.commit()

    assert resolve_enrollment(db, seed_data.course) == {seed_data.a, seed_data.b, seed_data.c}


def test_student_in_two_attached_batches_counted_once(db, seed_data):
    db.add(BatchMembership(batch_id=seed_data.b2, student_id=seed_data.a))
    db.add(CourseBatch(course_id=seed_data.course, batch_id=seed_data.b2))
    db.commit()

    enrolled = resolve_enrollment(db, seed_data.course)
    assert sorted(enrolled) == sorted({seed_data.a, seed_data.b, seed_data.c})


def test_course_without_batches_has_no_students(db, seed_data):
    db.query(CourseBatch).delete()
    db.commit()

    assert resolve_enrollment(db, seed_data.course) == set()
    assert enrolled_course_ids(db, seed_data.a) == set()


def test_is_student_enrolled(db, seed_data):
    assert is_student_enrolled(db, seed_data.a, seed_data.course)
    assert not is_student_enrolled(db, seed_data.c, seed_data.course)


def test_require_enrollment_raises_for_outsider(db, seed_data):
    require_enrollment(db, seed_data.a, seed_data.course)
    with pytest.raises(NotEnrolledError):
        require_enrollment(db, seed_data.c, seed_data.course)

