import pytest

from apps.corecode.models import Level, StudentClass
from apps.corecode.utils import get_first_term
from apps.students.models import Enrollment, PromotionLog
from apps.students.services import (
    DuplicateEnrollmentError,
    EntityNotFoundError,
    MaxLevelReachedError,
    PromotionService,
)

pytestmark = pytest.mark.django_db


class TestPromoteStudent:
    def test_student_is_moved_to_next_level(self, school, l3_class, enrolled_student):
        student, old = enrolled_student(l3_class, average=40)

        enrollment = PromotionService.promote_student(student.pk, l3_class.pk, 2025)

        assert enrollment.is_active
        assert enrollment.student_class.level == Level.L4
        assert enrollment.student_class.year == 2025
        assert enrollment.term.term_number == 1
        assert enrollment.term.academic_year == 2025

        old.refresh_from_db()
        assert not old.is_active

        log = PromotionLog.objects.get(student=student)
        assert log.status == PromotionLog.Status.PROMOTED
        assert log.manual
        assert log.academic_year == 2024
        assert log.to_class == enrollment.student_class

    def test_unknown_student(self, l3_class):
        with pytest.raises(EntityNotFoundError) as excinfo:
            PromotionService.promote_student(9999, l3_class.pk, 2025)
        assert excinfo.value.status_code == 404

    def test_unknown_class(self, make_student):
        with pytest.raises(EntityNotFoundError):
            PromotionService.promote_student(make_student().pk, 9999, 2025)

    def test_top_level_cannot_be_promoted(self, l5_class, enrolled_student):
        student, _ = enrolled_student(l5_class)

        with pytest.raises(MaxLevelReachedError) as excinfo:
            PromotionService.promote_student(student.pk, l5_class.pk, 2025)
        assert excinfo.value.status_code == 400

    def test_second_promotion_is_a_duplicate(self, l3_class, enrolled_student):
        student, _ = enrolled_student(l3_class)
        PromotionService.promote_student(student.pk, l3_class.pk, 2025)

        with pytest.raises(DuplicateEnrollmentError):
            PromotionService.promote_student(student.pk, l3_class.pk, 2025)

        assert Enrollment.objects.filter(student=student, term__academic_year=2025).count() == 1

    def test_already_enrolled_in_target_class(self, school, l3_class, make_class, enrolled_student, make_enrollment):
        student, _ = enrolled_student(l3_class)
        target = make_class(Level.L4, year=2025)
        make_enrollment(student, target, term=get_first_term(school, 2025))

        with pytest.raises(DuplicateEnrollmentError):
            PromotionService.promote_student(student.pk, l3_class.pk, 2025)

        assert not PromotionLog.objects.exists()
        assert StudentClass.objects.filter(level=Level.L4, year=2025).count() == 1
