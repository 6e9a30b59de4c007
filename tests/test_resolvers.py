from datetime import date
from unittest.mock import patch

import pytest
from django.db.models.query import QuerySet

from apps.corecode.models import AcademicTerm, Level, School, StudentClass
from apps.corecode.utils import (
    ClassCapacityError,
    NoNextTermError,
    ensure_class_capacity,
    get_first_term,
    get_next_class,
    get_next_term,
)

pytestmark = pytest.mark.django_db


def lose_first_lookup():
    """
    Make the first QuerySet.get miss, as if another caller inserted the row
    between our lookup and our insert.
    """
    original_get = QuerySet.get
    calls = {"n": 0}

    def racing_get(self, *args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise self.model.DoesNotExist
        return original_get(self, *args, **kwargs)

    return patch.object(QuerySet, "get", racing_get)


class TestFirstTerm:
    def test_creates_term_one_with_default_dates(self, school):
        term = get_first_term(school, 2025)

        assert term.term_number == 1
        assert term.academic_year == 2025
        assert term.start_date == date(2025, 9, 1)
        assert term.end_date == date(2025, 12, 15)

    def test_second_call_returns_same_term(self, school):
        first = get_first_term(school, 2025)
        second = get_first_term(school, 2025)

        assert first.pk == second.pk
        assert AcademicTerm.objects.filter(school=school, academic_year=2025).count() == 1

    def test_existing_term_is_reused(self, school, terms):
        assert get_first_term(school, 2024).pk == terms[1].pk

    def test_deleted_term_is_restored(self, school, terms):
        AcademicTerm.objects.filter(pk=terms[1].pk).update(is_deleted=True)

        term = get_first_term(school, 2024)

        assert term.pk == terms[1].pk
        assert not term.is_deleted
        assert not AcademicTerm.objects.get(pk=terms[1].pk).is_deleted

    def test_terms_are_per_school(self, school):
        other = School.objects.create(code="HIL", name="Hilltop")

        assert get_first_term(school, 2025).pk != get_first_term(other, 2025).pk

    def test_concurrent_creator_wins(self, school):
        existing = get_first_term(school, 2025)

        with lose_first_lookup():
            term = get_first_term(school, 2025)

        assert term.pk == existing.pk
        assert AcademicTerm.objects.filter(school=school, academic_year=2025).count() == 1


class TestNextTerm:
    def test_existing_next_term_is_reused(self, terms):
        assert get_next_term(terms[1]).pk == terms[2].pk

    def test_deleted_next_term_is_restored(self, terms):
        AcademicTerm.objects.filter(pk=terms[2].pk).update(is_deleted=True)

        assert not get_next_term(terms[1]).is_deleted
        assert AcademicTerm.objects.filter(academic_year=2024, is_deleted=False).count() == 3

    def test_created_term_starts_after_current_one(self, school):
        first = get_first_term(school, 2026)

        second = get_next_term(first)

        assert second.term_number == 2
        assert second.start_date == date(2026, 12, 16)
        assert second.end_date == date(2027, 3, 16)
        assert get_next_term(first).pk == second.pk

    def test_final_term_has_no_successor(self, terms):
        with pytest.raises(NoNextTermError):
            get_next_term(terms[3])


class TestNextClass:
    def test_creates_class_with_same_trade_and_capacity(self, make_class):
        current = make_class(Level.L3, capacity=25)

        next_class = get_next_class(current, Level.L4, 2025)

        assert next_class.school_id == current.school_id
        assert next_class.trade_id == current.trade_id
        assert next_class.level == Level.L4
        assert next_class.year == 2025
        assert next_class.capacity == 25

    def test_second_call_returns_same_class(self, l3_class):
        first = get_next_class(l3_class, Level.L4, 2025)
        second = get_next_class(l3_class, Level.L4, 2025)

        assert first.pk == second.pk
        assert StudentClass.objects.filter(level=Level.L4, year=2025).count() == 1

    def test_deleted_class_is_restored(self, make_class, l3_class):
        deleted = make_class(Level.L4, year=2025, is_deleted=True)

        next_class = get_next_class(l3_class, Level.L4, 2025)

        assert next_class.pk == deleted.pk
        assert not next_class.is_deleted
        deleted.refresh_from_db()
        assert not deleted.is_deleted

    def test_concurrent_creator_wins(self, l3_class):
        existing = get_next_class(l3_class, Level.L4, 2025)

        with lose_first_lookup():
            next_class = get_next_class(l3_class, Level.L4, 2025)

        assert next_class.pk == existing.pk
        assert StudentClass.objects.filter(level=Level.L4, year=2025).count() == 1


class TestClassCapacity:
    def test_room_left(self, make_class, make_student, make_enrollment, final_term):
        student_class = make_class(capacity=2)
        make_enrollment(make_student(), student_class)

        ensure_class_capacity(student_class, final_term)

    def test_full_class(self, make_class, make_student, make_enrollment, final_term):
        student_class = make_class(capacity=1)
        make_enrollment(make_student(), student_class)

        with pytest.raises(ClassCapacityError):
            ensure_class_capacity(student_class, final_term)

    def test_inactive_enrollments_do_not_count(self, make_class, make_student, make_enrollment, final_term):
        student_class = make_class(capacity=1)
        make_enrollment(make_student(), student_class, is_active=False)

        ensure_class_capacity(student_class, final_term)
