import pytest

from schoolportal.core import config
from schoolportal.init_db import seed_classes
from schoolportal.models.school_class import SchoolClass


def test_seed_classes_creates_each_grade_and_section_once(portal_db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'DEFAULT_CLASS_CAPACITY', 35)

    assert seed_classes(portal_db, 2026) == 24
    assert seed_classes(portal_db, 2026) == 0

    classes = portal_db.query(SchoolClass).filter(SchoolClass.academic_year == 2026).all()
    assert len(classes) == 24
    assert {(c.grade, c.section) for c in classes} >= {('R', 'A'), ('7', 'C')}
    assert all(c.max_capacity == 35 and c.current_count == 0 for c in classes)


def test_seed_classes_is_per_academic_year(portal_db) -> None:
    seed_classes(portal_db, 2026)

    assert seed_classes(portal_db, 2027) == 24
