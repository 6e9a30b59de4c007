import pytest

from apps.corecode.models import School
from apps.result.models import ReportCard
from apps.students.models import Enrollment
from apps.students.services import has_passed, passing_threshold


def enrollment(**kwargs):
    kwargs.setdefault("is_active", True)
    kwargs.setdefault("is_deleted", False)
    return Enrollment(**kwargs)


def card(average):
    return ReportCard(average=average)


class TestHasPassed:
    @pytest.mark.parametrize("average", [50, 50.01, 72, 100])
    def test_active_enrollment_at_or_above_threshold_passes(self, average):
        assert has_passed(enrollment(), card(average), 50)

    @pytest.mark.parametrize("average", [0, 30, 49.99])
    def test_below_threshold_fails(self, average):
        assert not has_passed(enrollment(), card(average), 50)

    @pytest.mark.parametrize("average", [0, 50, 100])
    def test_inactive_enrollment_always_fails(self, average):
        assert not has_passed(enrollment(is_active=False), card(average), 50)

    def test_deleted_enrollment_fails(self):
        assert not has_passed(enrollment(is_deleted=True), card(90), 50)

    def test_missing_report_card_fails(self):
        assert not has_passed(enrollment(), None, 50)

    @pytest.mark.parametrize("status", [
        Enrollment.PromotionStatus.EXPELLED,
        Enrollment.PromotionStatus.ON_LEAVE,
        Enrollment.PromotionStatus.WITHDRAWN,
    ])
    def test_ineligible_status_fails(self, status):
        assert not has_passed(enrollment(promotion_status=status), card(95), 50)

    def test_repeat_status_can_still_pass(self):
        assert has_passed(enrollment(promotion_status=Enrollment.PromotionStatus.REPEAT), card(60), 50)


class TestPassingThreshold:
    def test_default_threshold(self):
        assert passing_threshold(School(code="A", name="A")) == 50

    def test_school_override(self):
        assert passing_threshold(School(code="A", name="A", passing_threshold=65)) == 65

    def test_setting_override(self, settings):
        settings.PROMOTION = {"DEFAULT_PASSING_THRESHOLD": 40}
        assert passing_threshold(School(code="A", name="A")) == 40
