"""
Shared fixtures for the promotion tests.

Every school fixture comes with the three terms of 2024 already recorded,
so the year can be closed right away.
"""
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.cache import cache

from apps.corecode.models import AcademicTerm, Level, School, StudentClass, Trade
from apps.result.models import ReportCard
from apps.students.models import Enrollment, Student

YEAR = 2024

TERM_DATES = {
    1: (date(2024, 1, 8), date(2024, 4, 5)),
    2: (date(2024, 4, 22), date(2024, 7, 19)),
    3: (date(2024, 9, 2), date(2024, 12, 13)),
}


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def school(db):
    return School.objects.create(code="gvs", name="Green Valley School")


@pytest.fixture
def trade(db):
    return Trade.objects.create(code="swd", name="Software Development")


@pytest.fixture
def terms(school):
    return {
        number: AcademicTerm.objects.create(
            school=school,
            academic_year=YEAR,
            term_number=number,
            start_date=start,
            end_date=end,
        )
        for number, (start, end) in TERM_DATES.items()
    }


@pytest.fixture
def final_term(terms):
    return terms[3]


@pytest.fixture
def make_class(school, trade):
    def _make(level=Level.L3, year=YEAR, **kwargs):
        kwargs.setdefault("school", school)
        kwargs.setdefault("trade", trade)
        return StudentClass.objects.create(level=level, year=year, **kwargs)
    return _make


@pytest.fixture
def l3_class(make_class):
    return make_class(Level.L3)


@pytest.fixture
def l5_class(make_class):
    return make_class(Level.L5)


@pytest.fixture
def make_student(school):
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        kwargs.setdefault("surname", f"Mugisha{counter['n']}")
        kwargs.setdefault("firstname", "Eric")
        kwargs.setdefault("school", school)
        return Student.objects.create(**kwargs)
    return _make


@pytest.fixture
def make_enrollment(school, final_term):
    def _make(student, student_class, term=None, **kwargs):
        return Enrollment.objects.create(
            student=student,
            student_class=student_class,
            term=term or final_term,
            school=kwargs.pop("school", school),
            **kwargs
        )
    return _make


@pytest.fixture
def make_report_card(school, final_term):
    def _make(student, student_class, average, term=None, academic_year=YEAR):
        return ReportCard.objects.create(
            student=student,
            student_class=student_class,
            academic_year=academic_year,
            term=term or final_term,
            school=school,
            average=average,
        )
    return _make


@pytest.fixture
def enrolled_student(make_student, make_enrollment, make_report_card):
    """Student enrolled in the final term with a report card of the given average"""
    def _make(student_class, average=None, **enrollment_kwargs):
        student = make_student()
        enrollment = make_enrollment(student, student_class, **enrollment_kwargs)
        if average is not None:
            make_report_card(student, student_class, average)
        return student, enrollment
    return _make


@pytest.fixture
def promoter(db):
    user = get_user_model().objects.create_user(username="dean", password="secret-pass-123")
    user.user_permissions.add(
        Permission.objects.get(codename="promote_students"),
        Permission.objects.get(codename="view_promotionlog"),
    )
    return user


@pytest.fixture
def promoter_client(client, promoter):
    client.force_login(promoter)
    return client
