from datetime import date

import pytest
from django.core.exceptions import ValidationError

from apps.corecode.models import AcademicTerm, School
from apps.students.models import Enrollment, Student

pytestmark = pytest.mark.django_db


class TestStudent:
    def test_registration_numbers_are_sequential(self, make_student):
        first = make_student()
        second = make_student()

        assert first.registration_number.startswith("S")
        assert int(second.registration_number[-4:]) == int(first.registration_number[-4:]) + 1

    def test_staff_get_a_different_prefix(self, make_student):
        assert make_student(role=Student.Role.TEACHER).registration_number.startswith("U")


class TestEnrollmentValidation:
    def test_only_students_can_enroll(self, school, final_term, l3_class, make_student):
        with pytest.raises(ValidationError) as excinfo:
            Enrollment.enroll(make_student(role=Student.Role.DEAN), l3_class, final_term, school)
        assert "student" in excinfo.value.message_dict

    def test_class_and_term_must_belong_to_the_school(self, final_term, l3_class, make_student):
        other = School.objects.create(code="HIL", name="Hilltop")

        with pytest.raises(ValidationError) as excinfo:
            Enrollment.enroll(make_student(school=other), l3_class, final_term, other)
        assert {"student_class", "term"} <= set(excinfo.value.message_dict)

    def test_one_enrollment_per_student_and_term(self, school, final_term, l3_class, make_student):
        student = make_student()
        Enrollment.enroll(student, l3_class, final_term, school)

        with pytest.raises(ValidationError):
            Enrollment.enroll(student, l3_class, final_term, school)


class TestAcademicTerm:
    def test_dates_must_be_ordered(self, school):
        term = AcademicTerm(
            school=school, academic_year=2025, term_number=1,
            start_date=date(2025, 12, 15), end_date=date(2025, 9, 1),
        )
        with pytest.raises(ValidationError):
            term.full_clean()

    def test_school_code_is_normalised(self, school):
        assert school.code == "GVS"
